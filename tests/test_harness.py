"""Tests for exprcheck/evaluation/harness.py - Harness Orchestrator."""

import logging
from unittest.mock import patch

import pytest


def _broken_codegen_leaf():
    """Evaluates to 1 when interpreted, emits source that does not compile."""
    from exprcheck.engine.expressions import LeafExpression
    from exprcheck.engine.types import IntegerType
    from exprcheck.engine.values import Value

    class BrokenCodegen(LeafExpression):
        @property
        def data_type(self):
            return IntegerType

        def eval(self, row):
            return Value(IntegerType, 1)

        def do_gen_code(self, ctx, ev):
            return f"{ev.is_null} = False\n{ev.value} = 1 +"

        def __str__(self):
            return "broken()"

    return BrokenCodegen()


def _add(a, b):
    from exprcheck.engine import Add, Literal

    return Add(Literal.create(a), Literal.create(b))


@pytest.mark.scenario
class TestScenarios:
    """End-to-end scenarios across all backends."""

    def test_add_literals(self, harness):
        """5 + 3 with expected 8 should pass on every backend."""
        report = harness.check_evaluation(_add(5, 3), 8)

        assert report.passed, report.failure
        assert report.backends_run == [
            "interpreted",
            "mutable_projection",
            "generated_projection",
            "packed_projection",
            "optimized",
        ]
        assert report.skipped == []
        assert all(o.value.payload == 8 for o in report.outcomes)

    def test_blob_concat_compares_bytewise(self, harness):
        """Concat of [0x41,0x42] and [0x43] should equal [0x41,0x42,0x43]."""
        from exprcheck.engine import Concat, Literal

        expr = Concat(Literal.create(bytes([0x41, 0x42])), Literal.create(bytes([0x43])))
        report = harness.check_evaluation(expr, bytes([0x41, 0x42, 0x43]))

        assert report.passed, report.failure
        assert str(report.expected) == "[0x41,0x42,0x43]"

    def test_array_output_skips_packed_backend(self, harness):
        """A non-embeddable output should skip the packed backend only."""
        from exprcheck.engine import CreateArray, Literal

        expr = CreateArray(Literal.create(1), Literal.create(2))
        report = harness.check_evaluation(expr, [1, 2])

        assert report.passed, report.failure
        assert report.skipped == ["packed_projection"]
        assert "packed_projection" not in report.backends_run
        assert len(report.outcomes) == 4

    def test_malformed_codegen_is_reported(self, harness):
        """Broken generated code should yield a GenerationError with its source."""
        from exprcheck.evaluation import FailureKind
        from exprcheck.exceptions import GenerationError

        report = harness.check_evaluation(_broken_codegen_leaf(), 1)

        assert not report.passed
        failure = report.failure
        assert failure.kind == FailureKind.GENERATION_ERROR
        assert failure.backend == "mutable_projection"
        assert isinstance(failure.error, GenerationError)
        assert failure.message.startswith("Code generation of broken() failed:\n")
        assert "= 1 +" in failure.message
        # interpreted ran and passed before the failing backend
        assert report.backends_run == ["interpreted", "mutable_projection"]

    def test_input_row(self, harness):
        """Bound references should read the provided input row."""
        from exprcheck.engine import Add, BoundReference
        from exprcheck.engine.types import IntegerType
        from exprcheck.evaluation import create_row

        expr = Add(BoundReference(0, IntegerType), BoundReference(1, IntegerType))
        report = harness.check_evaluation(expr, 8, create_row(5, 3))

        assert report.passed, report.failure

    def test_map_entry_order_does_not_matter(self, harness):
        """A map literal should match an equal dict written in another order."""
        from exprcheck.engine import Literal

        report = harness.check_evaluation(Literal.create({1: 2, 3: 4}), {3: 4, 1: 2})

        assert report.passed, report.failure
        assert report.skipped == ["packed_projection"]

    def test_null_result(self, harness):
        """A null result should match an expected None."""
        from exprcheck.engine import Add, BoundReference, Literal
        from exprcheck.engine.types import IntegerType
        from exprcheck.evaluation import create_row

        expr = Add(BoundReference(0, IntegerType), Literal.create(1))
        report = harness.check_evaluation(expr, None, create_row(None))

        assert report.passed, report.failure


class TestMismatchDiagnostics:
    """Failure kinds and messages."""

    def test_interpreted_mismatch_message(self, harness):
        """The first mismatch should come from the interpreter."""
        from exprcheck.evaluation import FailureKind

        report = harness.check_evaluation(_add(5, 3), 9)

        assert report.failure.kind == FailureKind.RESULT_MISMATCH
        assert report.failure.backend == "interpreted"
        assert report.failure.message == (
            "Incorrect evaluation (codegen off): (5 + 3), actual: 8, expected: 9"
        )
        assert len(report.outcomes) == 1

    def test_result_of_another_numeric_type_fails(self, harness):
        """A double result should not match an integer expectation of the same value."""
        from exprcheck.engine import Literal
        from exprcheck.evaluation import FailureKind

        report = harness.check_evaluation(Literal.create(8.0), 8)

        assert not report.passed
        assert report.failure.kind == FailureKind.RESULT_MISMATCH
        assert report.failure.backend == "interpreted"

    def test_wrong_type_fails_on_every_backend(self, collecting_harness):
        """With fail_fast off each backend should flag the type difference."""
        from exprcheck.engine import Literal
        from exprcheck.engine.types import LongType
        from exprcheck.evaluation import FailureKind

        report = collecting_harness.check_evaluation(Literal.create(8, LongType), 8)

        assert {f.backend for f in report.failures} == {
            "interpreted",
            "mutable_projection",
            "generated_projection",
            "packed_projection",
            "optimized",
        }
        assert FailureKind.HASH_MISMATCH in [f.kind for f in report.failures]

    def test_input_is_named_when_present(self, harness):
        """A non-empty input row should be appended to the diagnostic."""
        from exprcheck.engine import BoundReference
        from exprcheck.engine.types import IntegerType
        from exprcheck.evaluation import create_row

        report = harness.check_evaluation(BoundReference(0, IntegerType), 2, create_row(1))

        assert report.failure.message.endswith(", input: [1]")

    def test_collect_all_failures(self, collecting_harness):
        """With fail_fast off every backend should run and report."""
        from exprcheck.evaluation import FailureKind

        report = collecting_harness.check_evaluation(_add(5, 3), 9)
        kinds = [(f.backend, f.kind) for f in report.failures]

        assert len(report.outcomes) == 5
        assert kinds == [
            ("interpreted", FailureKind.RESULT_MISMATCH),
            ("mutable_projection", FailureKind.RESULT_MISMATCH),
            ("generated_projection", FailureKind.RESULT_MISMATCH),
            ("generated_projection", FailureKind.HASH_MISMATCH),
            ("generated_projection", FailureKind.COPY_MISMATCH),
            ("packed_projection", FailureKind.RESULT_MISMATCH),
            ("optimized", FailureKind.OPTIMIZATION_MISMATCH),
        ]
        assert report.failure is report.failures[0]

    def test_row_checks_messages(self, collecting_harness):
        """Hash and copy diagnostics should name both rows."""
        report = collecting_harness.check_evaluation(_add(5, 3), 9)
        messages = [f.message for f in report.failures if f.backend == "generated_projection"]

        assert messages[0] == "Incorrect Evaluation: (5 + 3), actual: [8], expected: [9]"
        assert messages[1] == "Mismatched hashCodes for values: [8], [9]"
        assert messages[2] == "Copy of generated Row is wrong: actual: [8], expected: [9]"

    def test_row_checks_can_be_disabled(self):
        """check_hash_codes and check_copy should switch those checks off."""
        from exprcheck.config import HarnessSettings
        from exprcheck.evaluation import ExpressionEvalHarness, FailureKind

        settings = HarnessSettings(
            backends=("generated_projection",),
            fail_fast=False,
            check_hash_codes=False,
            check_copy=False,
        )
        report = ExpressionEvalHarness(settings).check_evaluation(_add(5, 3), 9)

        assert [f.kind for f in report.failures] == [FailureKind.RESULT_MISMATCH]

    def test_comparison_follows_backend_attributes(self, harness):
        """An unregistered backend should be compared by its declared attributes."""
        import time

        from exprcheck.backends import EvaluationBackend
        from exprcheck.engine import GenericRow
        from exprcheck.engine.conversion import convert_to_internal
        from exprcheck.evaluation import FailureKind

        class WholeRowBackend(EvaluationBackend):
            name = "whole_row"
            mismatch_label = "Row mismatch"
            compares_rows = True

            def run(self, expression, input_row):
                value = expression.eval(input_row)
                extra = convert_to_internal(0)
                return self.success(value, time.time(), row=GenericRow((value, extra)))

        with patch(
            "exprcheck.evaluation.harness.create_backends",
            lambda names, max_iterations: [WholeRowBackend()],
        ):
            report = harness.check_evaluation(_add(5, 3), 8)

        assert report.failure.kind == FailureKind.RESULT_MISMATCH
        assert report.failure.message == (
            "Row mismatch: (5 + 3), actual: [8,0], expected: [8]"
        )

    def test_evaluation_error(self, harness):
        """An expression that raises should be an evaluation error, not a crash."""
        from exprcheck.engine.expressions import LeafExpression
        from exprcheck.engine.types import IntegerType
        from exprcheck.evaluation import FailureKind
        from exprcheck.exceptions import EvaluationError

        class Explode(LeafExpression):
            data_type = IntegerType

            def eval(self, row):
                raise ZeroDivisionError("division by zero")

            def do_gen_code(self, ctx, ev):
                return "1 / 0"

        report = harness.check_evaluation(Explode(), 1)

        assert report.failure.kind == FailureKind.EVALUATION_ERROR
        assert isinstance(report.failure.error, EvaluationError)
        assert "ZeroDivisionError" in report.failure.message

    def test_conversion_error(self, harness):
        """An unconvertible expected value should be a conversion error."""
        from exprcheck.evaluation import FailureKind
        from exprcheck.exceptions import ConversionError

        report = harness.check_evaluation(_add(5, 3), {8})

        assert report.failure.kind == FailureKind.CONVERSION_ERROR
        assert report.failure.backend == "conversion"
        assert isinstance(report.failure.error, ConversionError)
        assert report.outcomes == []
        assert report.expected is None

    def test_optimization_mismatch_is_distinct(self):
        """A wrong rewrite should be reported as an optimization mismatch."""
        from exprcheck.config import HarnessSettings
        from exprcheck.engine import Alias, Literal, OneRowRelation, Project
        from exprcheck.evaluation import ExpressionEvalHarness, FailureKind

        class WrongOptimizer:
            def __init__(self, max_iterations):
                pass

            def execute(self, plan):
                return Project([Alias(Literal.create(99), "out")], OneRowRelation())

        settings = HarnessSettings(backends=("interpreted", "optimized"))
        with patch("exprcheck.backends.optimized.Optimizer", WrongOptimizer):
            report = ExpressionEvalHarness(settings).check_evaluation(_add(5, 3), 8)

        assert report.failure.kind == FailureKind.OPTIMIZATION_MISMATCH
        assert report.failure.backend == "optimized"
        assert "optimized to 99" in report.failure.message

    def test_optimization_error_is_distinct(self):
        """An optimizer crash should be reported as an optimization error."""
        from exprcheck.config import HarnessSettings
        from exprcheck.evaluation import ExpressionEvalHarness, FailureKind
        from exprcheck.exceptions import OptimizationError

        class CrashingOptimizer:
            def __init__(self, max_iterations):
                pass

            def execute(self, plan):
                raise RuntimeError("rule exploded")

        settings = HarnessSettings(backends=("optimized",))
        with patch("exprcheck.backends.optimized.Optimizer", CrashingOptimizer):
            report = ExpressionEvalHarness(settings).check_evaluation(_add(5, 3), 8)

        assert report.failure.kind == FailureKind.OPTIMIZATION_ERROR
        assert isinstance(report.failure.error, OptimizationError)
        assert "rule exploded" in report.failure.message

    def test_failures_are_logged(self, harness, caplog):
        """Each failure should be logged with backend and check id extras."""
        with caplog.at_level(logging.WARNING, logger="exprcheck.evaluation.harness"):
            report = harness.check_evaluation(_add(5, 3), 9)

        records = [r for r in caplog.records if r.name == "exprcheck.evaluation.harness"]
        assert len(records) == 1
        assert records[0].backend == "interpreted"
        assert records[0].check_id == report.check_id
        assert records[0].failure_kind == "RESULT_MISMATCH"


class TestReport:
    """Tests for CheckReport."""

    def test_raise_for_failure(self, harness):
        """raise_for_failure should raise an AssertionError subclass."""
        from exprcheck.exceptions import EvaluationMismatch

        report = harness.check_evaluation(_add(5, 3), 9)

        with pytest.raises(AssertionError) as exc_info:
            report.raise_for_failure()

        assert isinstance(exc_info.value, EvaluationMismatch)
        assert exc_info.value.failure is report.failure

    def test_raise_for_failure_passes_silently(self, harness):
        """A passing report should not raise."""
        harness.check_evaluation(_add(5, 3), 8).raise_for_failure()

    def test_to_dict(self, harness):
        """to_dict should be JSON friendly."""
        import json

        data = harness.check_evaluation(_add(5, 3), 8).to_dict()

        assert data["passed"] is True
        assert data["expected"] == "8"
        assert data["input_row"] is None
        assert len(data["outcomes"]) == 5
        json.dumps(data)

    def test_outcome_lookup(self, harness):
        """outcome() should find an outcome by backend name."""
        report = harness.check_evaluation(_add(5, 3), 8)

        assert report.outcome("optimized").metadata["optimized_expression"] == "8"
        assert report.outcome("nope") is None


class TestDoubleEvaluation:
    """Tests for check_double_evaluation and Spread."""

    def test_within_tolerance(self, harness):
        """A result inside the spread should pass."""
        from exprcheck.engine import Literal, Sqrt
        from exprcheck.evaluation import plus_or_minus

        report = harness.check_double_evaluation(
            Sqrt(Literal.create(2.0)), plus_or_minus(1.41421356, 1e-6)
        )

        assert report.passed, report.failure
        assert report.backends_run == ["interpreted"]

    def test_outside_tolerance(self, harness):
        """A result outside the spread should fail with a mismatch."""
        from exprcheck.engine import Literal, Sqrt
        from exprcheck.evaluation import FailureKind, plus_or_minus

        report = harness.check_double_evaluation(Sqrt(Literal.create(2.0)), plus_or_minus(1.5, 0.01))

        assert report.failure.kind == FailureKind.RESULT_MISMATCH
        assert "expected: 1.5 +- 0.01" in report.failure.message

    def test_bounds_are_inclusive(self):
        """Both ends of the spread should be included."""
        from exprcheck.evaluation import Spread

        spread = Spread(1.0, 0.5)

        assert spread.contains(0.5)
        assert spread.contains(1.5)
        assert not spread.contains(1.5000001)

    def test_null_result_fails(self, harness):
        """A null result should never be within a spread."""
        from exprcheck.engine import Literal, Sqrt
        from exprcheck.engine.types import DoubleType
        from exprcheck.evaluation import plus_or_minus

        report = harness.check_double_evaluation(
            Sqrt(Literal.create(None, DoubleType)), plus_or_minus(0.0, 1.0)
        )

        assert not report.passed

    def test_integral_result_fails(self, harness):
        """A non-fractional result should fail even if numerically close."""
        from exprcheck.evaluation import plus_or_minus

        report = harness.check_double_evaluation(_add(5, 3), plus_or_minus(8.0, 0.5))

        assert not report.passed

    def test_plain_float_uses_default_tolerance(self, harness):
        """A bare float should be treated as pivot with the default tolerance."""
        from exprcheck.engine import Divide, Literal

        report = harness.check_double_evaluation(Divide(Literal.create(1.0), Literal.create(4.0)), 0.25)

        assert report.passed, report.failure

    def test_negative_tolerance_rejected(self):
        """A spread cannot have a negative tolerance."""
        from exprcheck.evaluation import Spread

        with pytest.raises(ValueError, match="negative"):
            Spread(1.0, -0.1)


class TestModuleFunctions:
    """Tests for the module-level shortcuts."""

    def test_assert_evaluation_passes(self):
        """assert_evaluation should return the passing report."""
        from exprcheck.evaluation import assert_evaluation

        assert assert_evaluation(_add(5, 3), 8).passed

    def test_assert_evaluation_raises(self):
        """assert_evaluation should raise on mismatch."""
        from exprcheck.evaluation import assert_evaluation
        from exprcheck.exceptions import EvaluationMismatch

        with pytest.raises(EvaluationMismatch, match="codegen off"):
            assert_evaluation(_add(5, 3), 9)

    def test_assert_double_evaluation(self):
        """assert_double_evaluation should accept a spread."""
        from exprcheck.engine import Literal, Sqrt
        from exprcheck.evaluation import assert_double_evaluation, plus_or_minus

        assert_double_evaluation(Sqrt(Literal.create(9.0)), plus_or_minus(3.0))

    def test_check_evaluation_uses_given_settings(self):
        """Explicit settings should override the global ones."""
        from exprcheck.config import HarnessSettings
        from exprcheck.evaluation import check_evaluation

        report = check_evaluation(_add(5, 3), 8, settings=HarnessSettings(backends=("interpreted",)))

        assert report.backends_run == ["interpreted"]

    def test_checks_are_reentrant(self, harness):
        """Interleaved checks on one harness should not share state."""
        from exprcheck.engine import BoundReference
        from exprcheck.engine.types import IntegerType
        from exprcheck.evaluation import create_row

        expr = BoundReference(0, IntegerType)
        first = harness.check_evaluation(expr, 1, create_row(1))
        second = harness.check_evaluation(expr, 2, create_row(2))

        assert first.passed and second.passed
        assert first.outcome("mutable_projection").row is not second.outcome(
            "mutable_projection"
        ).row
