"""
Evaluation Harness Module.

Checks that every execution strategy of the expression engine agrees on an
expression's value.

Usage:
    from exprcheck.evaluation import ExpressionEvalHarness, create_row

    harness = ExpressionEvalHarness()
    report = harness.check_evaluation(expr, 8, create_row(5, 3))
    report.raise_for_failure()
"""

from exprcheck.evaluation.comparator import check_result, equal, rows_equal
from exprcheck.evaluation.harness import (
    ExpressionEvalHarness,
    Spread,
    assert_double_evaluation,
    assert_evaluation,
    check_double_evaluation,
    check_evaluation,
    plus_or_minus,
)
from exprcheck.evaluation.report import CheckFailure, CheckReport, FailureKind
from exprcheck.evaluation.row_builder import build_row, create_row

__all__ = [
    "ExpressionEvalHarness",
    "CheckReport",
    "CheckFailure",
    "FailureKind",
    "Spread",
    "plus_or_minus",
    "check_evaluation",
    "check_double_evaluation",
    "assert_evaluation",
    "assert_double_evaluation",
    "build_row",
    "create_row",
    "check_result",
    "equal",
    "rows_equal",
]
