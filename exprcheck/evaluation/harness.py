"""
Differential evaluation harness.

Runs one expression through every configured backend and checks that each
produces the expected value:

- interpreted            expression.eval, no codegen
- mutable_projection     generated code writing into a mutable row
- generated_projection   generated code returning an immutable row, plus
                         hash-code and copy checks on that row
- packed_projection      generated code returning a packed binary row,
                         only when the output type is embeddable
- optimized              optimizer rewrite, then interpreted

Usage:
    from exprcheck.engine import Add, Literal
    from exprcheck.evaluation import assert_evaluation

    assert_evaluation(Add(Literal.create(5), Literal.create(3)), 8)
"""

import logging
from dataclasses import dataclass
from typing import Any

from exprcheck.backends import CheckOutcome, EvaluationBackend, OutcomeStatus, create_backends
from exprcheck.backends.interpreted import InterpretedBackend
from exprcheck.config import HarnessSettings, get_settings
from exprcheck.engine.conversion import convert_to_internal
from exprcheck.engine.expressions import Expression
from exprcheck.engine.rows import EMPTY_ROW, GenericRow, InternalRow, is_empty_row
from exprcheck.engine.types import is_fractional
from exprcheck.evaluation.comparator import check_result, rows_equal
from exprcheck.evaluation.report import CheckFailure, CheckReport, FailureKind
from exprcheck.exceptions import ConversionError, GenerationError

logger = logging.getLogger(__name__)

_STATUS_KINDS = {
    OutcomeStatus.GENERATION_FAILED: FailureKind.GENERATION_ERROR,
    OutcomeStatus.EVALUATION_FAILED: FailureKind.EVALUATION_ERROR,
    OutcomeStatus.OPTIMIZATION_FAILED: FailureKind.OPTIMIZATION_ERROR,
}


@dataclass(frozen=True)
class Spread:
    """A closed interval ``pivot - tolerance .. pivot + tolerance``."""

    pivot: float
    tolerance: float

    def __post_init__(self) -> None:
        if self.tolerance < 0:
            raise ValueError(f"Tolerance must not be negative: {self.tolerance}")

    @property
    def lower(self) -> float:
        return self.pivot - self.tolerance

    @property
    def upper(self) -> float:
        return self.pivot + self.tolerance

    def contains(self, value: float) -> bool:
        return self.lower <= value <= self.upper

    def __str__(self) -> str:
        return f"{self.pivot} +- {self.tolerance}"


def plus_or_minus(pivot: float, tolerance: float | None = None) -> Spread:
    """Build a Spread; the tolerance defaults to ``default_double_tolerance``."""
    if tolerance is None:
        tolerance = get_settings().default_double_tolerance
    return Spread(float(pivot), float(tolerance))


def _input_suffix(input_row: InternalRow) -> str:
    return "" if is_empty_row(input_row) else f", input: {input_row!r}"


class ExpressionEvalHarness:
    """Checks expressions against expected values across all backends.

    Every check builds its own backend instances, so one harness can be
    shared between tests and threads.

    Args:
        settings: Harness settings; the cached global settings when None.
    """

    def __init__(self, settings: HarnessSettings | None = None) -> None:
        self.settings = settings or get_settings()

    def check_evaluation(
        self,
        expression: Expression,
        expected: Any,
        input_row: InternalRow = EMPTY_ROW,
    ) -> CheckReport:
        """Evaluate ``expression`` with every backend and compare to ``expected``.

        Args:
            expression: Expression under test.
            expected: Expected result as a host literal (or an internal Value).
            input_row: Row the expression reads from.

        Returns:
            CheckReport; ``report.passed`` is False when any backend failed.
        """
        report = CheckReport(expression=str(expression), input_row=input_row)

        try:
            report.expected = convert_to_internal(expected)
        except ConversionError as e:
            self._record(
                report,
                FailureKind.CONVERSION_ERROR,
                "conversion",
                f"Cannot convert expected value {expected!r}: {e.message}",
                error=e,
            )
            return report

        backends = create_backends(
            self.settings.backends, self.settings.optimizer_max_iterations
        )
        logger.debug(
            f"Checking {expression} across {len(backends)} backends",
            extra={"check_id": report.check_id, "expression": str(expression)},
        )

        for backend in backends:
            if not backend.applies_to(expression):
                logger.debug(f"Skipping {backend.name} for {expression}")
                report.skipped.append(backend.name)
                continue

            outcome = backend.run(expression, input_row)
            report.outcomes.append(outcome)
            if not self._verify(report, backend, expression, outcome, input_row):
                if self.settings.fail_fast:
                    break

        return report

    def check_double_evaluation(
        self,
        expression: Expression,
        expected: Spread | float,
        input_row: InternalRow = EMPTY_ROW,
    ) -> CheckReport:
        """Interpret ``expression`` and check the result lies within ``expected``.

        Only the interpreted backend runs. A null or non-fractional result
        fails the check.
        """
        if not isinstance(expected, Spread):
            expected = plus_or_minus(expected, self.settings.default_double_tolerance)

        report = CheckReport(expression=str(expression), input_row=input_row)
        backend = InterpretedBackend()
        outcome = backend.run(expression, input_row)
        report.outcomes.append(outcome)

        if not outcome.succeeded:
            self._record_outcome_failure(report, outcome, expression)
            return report

        actual = outcome.value
        if actual.is_null or not is_fractional(actual.data_type):
            matched = False
        else:
            matched = expected.contains(float(actual.payload))

        if not matched:
            self._record(
                report,
                FailureKind.RESULT_MISMATCH,
                backend.name,
                f"Incorrect evaluation: {expression}, actual: {actual}, "
                f"expected: {expected}{_input_suffix(input_row)}",
            )
        return report

    def _verify(
        self,
        report: CheckReport,
        backend: EvaluationBackend,
        expression: Expression,
        outcome: CheckOutcome,
        input_row: InternalRow,
    ) -> bool:
        """Check one outcome against the expected value, recording failures.

        Returns:
            True if the outcome passed every check.
        """
        if not outcome.succeeded:
            self._record_outcome_failure(report, outcome, expression)
            return False

        suffix = _input_suffix(input_row)
        if backend.verifies_row_representation:
            return self._verify_row_representation(report, backend, expression, outcome, suffix)

        if backend.compares_rows:
            expected_row = GenericRow((report.expected,))
            if rows_equal(outcome.row, expected_row):
                return True
            actual_text, expected_text = repr(outcome.row), repr(expected_row)
        else:
            if check_result(outcome.value, report.expected):
                return True
            actual_text, expected_text = str(outcome.value), str(report.expected)

        kind = FailureKind.RESULT_MISMATCH
        subject = str(expression)
        if backend.rewrites_expression:
            kind = FailureKind.OPTIMIZATION_MISMATCH
            rewritten = outcome.metadata.get("optimized_expression", subject)
            subject = f"{expression} (optimized to {rewritten})"
        self._record(
            report,
            kind,
            backend.name,
            f"{backend.mismatch_label}: {subject}, "
            f"actual: {actual_text}, expected: {expected_text}{suffix}",
        )
        return False

    def _verify_row_representation(
        self,
        report: CheckReport,
        backend: EvaluationBackend,
        expression: Expression,
        outcome: CheckOutcome,
        suffix: str,
    ) -> bool:
        # value, then hash code, then copy
        actual = outcome.row
        expected_row = GenericRow((report.expected,))
        ok = True

        if not rows_equal(actual, expected_row):
            self._record(
                report,
                FailureKind.RESULT_MISMATCH,
                backend.name,
                f"{backend.mismatch_label}: {expression}, "
                f"actual: {actual!r}, expected: {expected_row!r}{suffix}",
            )
            if self.settings.fail_fast:
                return False
            ok = False

        if self.settings.check_hash_codes and actual.hash_code() != expected_row.hash_code():
            self._record(
                report,
                FailureKind.HASH_MISMATCH,
                backend.name,
                f"Mismatched hashCodes for values: {actual!r}, {expected_row!r}",
            )
            if self.settings.fail_fast:
                return False
            ok = False

        if self.settings.check_copy:
            copied = actual.copy()
            if not rows_equal(copied, expected_row):
                self._record(
                    report,
                    FailureKind.COPY_MISMATCH,
                    backend.name,
                    f"Copy of generated Row is wrong: actual: {copied!r}, "
                    f"expected: {expected_row!r}",
                )
                ok = False

        return ok

    def _record_outcome_failure(
        self, report: CheckReport, outcome: CheckOutcome, expression: Expression
    ) -> None:
        kind = _STATUS_KINDS[outcome.status]
        error = outcome.error
        if isinstance(error, GenerationError):
            cause = error.cause if error.cause is not None else error
            message = f"Code generation of {expression} failed:\n{error.source}\n{cause}"
        else:
            message = str(error)
        self._record(report, kind, outcome.backend, message, error=error)

    def _record(
        self,
        report: CheckReport,
        kind: FailureKind,
        backend: str,
        message: str,
        error: Any = None,
    ) -> None:
        report.failures.append(CheckFailure(kind, backend, message, error))
        logger.warning(
            message,
            extra={
                "check_id": report.check_id,
                "backend": backend,
                "expression": report.expression,
                "failure_kind": kind.value,
            },
        )


def check_evaluation(
    expression: Expression,
    expected: Any,
    input_row: InternalRow = EMPTY_ROW,
    settings: HarnessSettings | None = None,
) -> CheckReport:
    """Module-level shortcut for ``ExpressionEvalHarness().check_evaluation``."""
    return ExpressionEvalHarness(settings).check_evaluation(expression, expected, input_row)


def check_double_evaluation(
    expression: Expression,
    expected: Spread | float,
    input_row: InternalRow = EMPTY_ROW,
    settings: HarnessSettings | None = None,
) -> CheckReport:
    return ExpressionEvalHarness(settings).check_double_evaluation(
        expression, expected, input_row
    )


def assert_evaluation(
    expression: Expression,
    expected: Any,
    input_row: InternalRow = EMPTY_ROW,
    settings: HarnessSettings | None = None,
) -> CheckReport:
    """Like check_evaluation, but raises EvaluationMismatch on failure."""
    report = check_evaluation(expression, expected, input_row, settings)
    report.raise_for_failure()
    return report


def assert_double_evaluation(
    expression: Expression,
    expected: Spread | float,
    input_row: InternalRow = EMPTY_ROW,
    settings: HarnessSettings | None = None,
) -> CheckReport:
    report = check_double_evaluation(expression, expected, input_row, settings)
    report.raise_for_failure()
    return report


__all__ = [
    "ExpressionEvalHarness",
    "Spread",
    "assert_double_evaluation",
    "assert_evaluation",
    "check_double_evaluation",
    "check_evaluation",
    "plus_or_minus",
]
