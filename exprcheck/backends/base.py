"""
Base classes for evaluation backends.

A backend is one strategy for computing an expression's value against an
input row. Every backend implements the same small interface so the harness
can run them side by side and compare what they produce.

Backends never raise for failures of the code under test. Generation,
evaluation and optimization failures come back as a CheckOutcome with the
matching status so that one failing backend cannot abort the others.
"""

import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from exprcheck.engine.expressions import Alias, Expression
from exprcheck.engine.rows import InternalRow
from exprcheck.engine.values import Value
from exprcheck.exceptions import HarnessError


class OutcomeStatus(Enum):
    """How a backend run ended."""

    OK = "OK"
    GENERATION_FAILED = "GENERATION_FAILED"
    EVALUATION_FAILED = "EVALUATION_FAILED"
    OPTIMIZATION_FAILED = "OPTIMIZATION_FAILED"


@dataclass
class CheckOutcome:
    """Result of running one backend once.

    Attributes:
        backend: Name of the backend that produced the outcome.
        status: How the run ended.
        value: Comparable result value when the run succeeded.
        row: Result row for backends that produce one.
        error: The failure when the run did not succeed.
        generated_code: Source of the generated program, if any.
        duration_ms: Wall time of the run in milliseconds.
        metadata: Backend-specific extras (packed size, rewritten expression).
    """

    backend: str
    status: OutcomeStatus
    value: Value | None = None
    row: InternalRow | None = None
    error: HarnessError | None = None
    generated_code: str | None = None
    duration_ms: float = 0.0
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def succeeded(self) -> bool:
        return self.status == OutcomeStatus.OK

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "backend": self.backend,
            "status": self.status.value,
            "value": None if self.value is None else str(self.value),
            "row": None if self.row is None else repr(self.row),
            "error": None if self.error is None else str(self.error),
            "duration_ms": self.duration_ms,
            "metadata": self.metadata,
        }


class EvaluationBackend(ABC):
    """Abstract base class for evaluation backends.

    Example:
        class EchoBackend(EvaluationBackend):
            name = "echo"

            def run(self, expression, input_row):
                return self.success(expression.eval(input_row), started=time.time())
    """

    # Prefix of the diagnostic reported when the result does not match
    mismatch_label: str = "Incorrect Evaluation"
    # Compare the result row slot-wise instead of the single result value
    compares_rows: bool = False
    # Also check row hash and copy fidelity; implies compares_rows
    verifies_row_representation: bool = False
    # Evaluates a rewritten expression, reported under metadata["optimized_expression"]
    rewrites_expression: bool = False

    @property
    @abstractmethod
    def name(self) -> str:
        """Unique identifier for this backend."""
        pass

    def applies_to(self, expression: Expression) -> bool:
        """Whether this backend can evaluate ``expression`` at all.

        Backends that return False are skipped, not attempted.
        """
        return True

    @abstractmethod
    def run(self, expression: Expression, input_row: InternalRow) -> CheckOutcome:
        """Evaluate ``expression`` against ``input_row``.

        Returns:
            CheckOutcome holding a value or a typed failure.
        """
        pass

    def success(
        self,
        value: Value,
        started: float,
        row: InternalRow | None = None,
        generated_code: str | None = None,
        **metadata: Any,
    ) -> CheckOutcome:
        return CheckOutcome(
            backend=self.name,
            status=OutcomeStatus.OK,
            value=value,
            row=row,
            generated_code=generated_code,
            duration_ms=(time.time() - started) * 1000,
            metadata=metadata,
        )

    def failure(
        self,
        status: OutcomeStatus,
        error: HarnessError,
        started: float,
        generated_code: str | None = None,
        **metadata: Any,
    ) -> CheckOutcome:
        return CheckOutcome(
            backend=self.name,
            status=status,
            error=error,
            generated_code=generated_code,
            duration_ms=(time.time() - started) * 1000,
            metadata=metadata,
        )


def output_alias(expression: Expression) -> Alias:
    """Name an expression as the single output of a projection."""
    return Alias(expression, f"Optimized({expression})")
