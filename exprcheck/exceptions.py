"""
Exception hierarchy for exprcheck.

Every failure the harness can diagnose has its own class so that reports
never conflate a bad literal, a broken code generator and an expression that
raised while being evaluated.

Usage:
    from exprcheck.exceptions import (
        ConversionError,
        EvaluationError,
        GenerationError,
        HarnessError,
    )

    try:
        projection = GenerateProjection.generate([expr])
    except GenerationError as e:
        print(e.source)  # generated program text
"""

from typing import Any


class HarnessError(Exception):
    """Base exception for all exprcheck errors.

    Attributes:
        message: Human-readable error description.
        details: Optional dict with additional error context.
    """

    def __init__(self, message: str, *, details: dict[str, Any] | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        return self.message


class ConversionError(HarnessError):
    """A host literal has no internal representation.

    Raised when:
    - The literal kind is not supported (e.g. ``set``, ``complex``)
    - A nested element of a list or dict cannot be converted
    - A row is built from literals and one position fails

    Attributes:
        position: Row position of the offending literal, if building a row.
        value: The offending literal, truncated for display.
    """

    def __init__(
        self,
        message: str = "Conversion failed",
        *,
        position: int | None = None,
        value: Any = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.position = position
        self.value = repr(value)[:100] if value is not None else None


class GenerationError(HarnessError):
    """Code generation or compilation of a projection failed.

    This points at the code-generation layer, not at expression semantics.

    Attributes:
        expression: Text of the expression being generated.
        source: Generated program text, possibly partial.
        cause: Underlying exception.
    """

    def __init__(
        self,
        message: str = "Code generation failed",
        *,
        expression: str | None = None,
        source: str | None = None,
        cause: BaseException | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.expression = expression
        self.source = source or ""
        self.cause = cause


class EvaluationError(HarnessError):
    """An expression raised while being evaluated.

    Attributes:
        expression: Text of the failing expression.
        cause: Underlying exception.
    """

    def __init__(
        self,
        message: str = "Evaluation failed",
        *,
        expression: str | None = None,
        cause: BaseException | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.expression = expression
        self.cause = cause


class OptimizationError(HarnessError):
    """The optimizer failed to rewrite a plan.

    Attributes:
        plan: Text of the plan handed to the optimizer.
        cause: Underlying exception.
    """

    def __init__(
        self,
        message: str = "Optimization failed",
        *,
        plan: str | None = None,
        cause: BaseException | None = None,
        **kwargs: Any,
    ) -> None:
        super().__init__(message, **kwargs)
        self.plan = plan
        self.cause = cause


class UnsupportedTypeError(HarnessError):
    """A data type cannot be represented in the packed binary row layout."""

    pass


class ConfigurationError(HarnessError):
    """Harness configuration is malformed."""

    pass


class EvaluationMismatch(AssertionError):
    """Raised by ``CheckReport.raise_for_failure()``.

    Subclasses AssertionError so pytest and unittest report it as a test
    failure rather than an error.

    Attributes:
        failure: The first CheckFailure of the report.
    """

    def __init__(self, message: str, failure: Any = None) -> None:
        super().__init__(message)
        self.failure = failure
