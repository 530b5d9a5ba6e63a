"""
Check reports.

A CheckReport is what one ``check_evaluation`` call returns: the outcomes of
every backend that ran, the backends skipped as not applicable, and the
failures found. Callers decide how to surface failures; test code usually
calls ``raise_for_failure()``.
"""

import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any

from exprcheck.backends.base import CheckOutcome
from exprcheck.engine.rows import EMPTY_ROW, InternalRow, is_empty_row
from exprcheck.engine.values import Value
from exprcheck.exceptions import EvaluationMismatch, HarnessError


class FailureKind(Enum):
    """What went wrong in a failed check."""

    CONVERSION_ERROR = "CONVERSION_ERROR"
    GENERATION_ERROR = "GENERATION_ERROR"
    EVALUATION_ERROR = "EVALUATION_ERROR"
    OPTIMIZATION_ERROR = "OPTIMIZATION_ERROR"
    RESULT_MISMATCH = "RESULT_MISMATCH"
    HASH_MISMATCH = "HASH_MISMATCH"
    COPY_MISMATCH = "COPY_MISMATCH"
    OPTIMIZATION_MISMATCH = "OPTIMIZATION_MISMATCH"


@dataclass
class CheckFailure:
    """One diagnosed failure.

    Attributes:
        kind: Failure category.
        backend: Backend that failed, or "conversion" for the expected value.
        message: Human-readable diagnostic.
        error: Underlying typed error, when there is one.
    """

    kind: FailureKind
    backend: str
    message: str
    error: HarnessError | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "kind": self.kind.value,
            "backend": self.backend,
            "message": self.message,
            "error": None if self.error is None else type(self.error).__name__,
        }


@dataclass
class CheckReport:
    """Result of checking one expression across backends.

    Attributes:
        expression: Text of the checked expression.
        expected: Expected value in internal form (None if conversion failed).
        input_row: Row the expression was evaluated against.
        check_id: Identifier correlating log records of this check.
        outcomes: Backend outcomes in run order.
        failures: Failures in the order they were found.
        skipped: Backends skipped as not applicable.
        timestamp: When the check started.
    """

    expression: str
    expected: Value | None = None
    input_row: InternalRow = EMPTY_ROW
    check_id: str = field(default_factory=lambda: uuid.uuid4().hex[:12])
    outcomes: list[CheckOutcome] = field(default_factory=list)
    failures: list[CheckFailure] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)
    timestamp: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    @property
    def passed(self) -> bool:
        return not self.failures

    @property
    def failure(self) -> CheckFailure | None:
        """The first failure, if any."""
        return self.failures[0] if self.failures else None

    @property
    def backends_run(self) -> list[str]:
        return [o.backend for o in self.outcomes]

    def outcome(self, backend: str) -> CheckOutcome | None:
        """Outcome of a backend by name, or None if it did not run."""
        for outcome in self.outcomes:
            if outcome.backend == backend:
                return outcome
        return None

    def raise_for_failure(self) -> None:
        """Raise EvaluationMismatch carrying the first failure, if any."""
        if self.passed:
            return
        first = self.failures[0]
        message = first.message
        if len(self.failures) > 1:
            message += f"\n(and {len(self.failures) - 1} more failure(s))"
        raise EvaluationMismatch(message, failure=first)

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "check_id": self.check_id,
            "expression": self.expression,
            "expected": None if self.expected is None else str(self.expected),
            "input_row": None if is_empty_row(self.input_row) else repr(self.input_row),
            "passed": self.passed,
            "outcomes": [o.to_dict() for o in self.outcomes],
            "failures": [f.to_dict() for f in self.failures],
            "skipped": self.skipped,
            "timestamp": self.timestamp,
        }
