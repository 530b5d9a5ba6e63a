"""Tests for exprcheck/engine/optimizer.py - rule-based optimizer."""


def _optimize(expr):
    from exprcheck.engine.expressions import Alias
    from exprcheck.engine.optimizer import OneRowRelation, Optimizer, Project

    plan = Project([Alias(expr, "out")], OneRowRelation())
    return Optimizer().execute(plan).expressions[0].child


class TestConstantFolding:
    """Tests for ConstantFolding."""

    def test_folds_literal_arithmetic(self):
        """5 + 3 should fold to the literal 8."""
        from exprcheck.engine import Add, Literal

        folded = _optimize(Add(Literal.create(5), Literal.create(3)))

        assert folded == Literal.create(8)

    def test_keeps_bound_references(self):
        """Expressions reading the input row should not fold."""
        from exprcheck.engine import Add, BoundReference, Literal
        from exprcheck.engine.types import IntegerType

        expr = Add(BoundReference(0, IntegerType), Literal.create(1))

        assert _optimize(expr) == expr

    def test_alias_survives(self):
        """The output alias itself should never be folded away."""
        from exprcheck.engine import Add, Alias, Literal
        from exprcheck.engine.optimizer import OneRowRelation, Optimizer, Project

        plan = Project([Alias(Add(Literal.create(1), Literal.create(1)), "out")], OneRowRelation())
        output = Optimizer().execute(plan).expressions[0]

        assert isinstance(output, Alias)
        assert output.name == "out"


class TestNullPropagation:
    """Tests for NullPropagation."""

    def test_null_operand_makes_null(self):
        """Arithmetic with a null literal should become a typed null literal."""
        from exprcheck.engine import Add, BoundReference, Literal
        from exprcheck.engine.types import IntegerType

        expr = Add(BoundReference(0, IntegerType), Literal.create(None, IntegerType))
        result = _optimize(expr)

        assert isinstance(result, Literal)
        assert result.value.is_null
        assert result.data_type == IntegerType

    def test_is_null_of_non_nullable(self):
        """isnull of a non-nullable child should be false."""
        from exprcheck.engine import BoundReference, IsNull, Literal
        from exprcheck.engine.types import IntegerType

        result = _optimize(IsNull(BoundReference(0, IntegerType, nullable=False)))

        assert result == Literal.create(False)

    def test_coalesce_drops_null_literals(self):
        """Null literals should be removed from coalesce."""
        from exprcheck.engine import BoundReference, Coalesce, Literal
        from exprcheck.engine.types import IntegerType

        ref = BoundReference(0, IntegerType)
        result = _optimize(Coalesce(Literal.create(None, IntegerType), ref))

        assert result == ref


class TestBooleanAndConditionals:
    """Tests for BooleanSimplification and SimplifyConditionals."""

    def test_double_negation(self):
        """NOT NOT x should become x."""
        from exprcheck.engine import BoundReference, Not
        from exprcheck.engine.types import BooleanType

        ref = BoundReference(0, BooleanType)

        assert _optimize(Not(Not(ref))) == ref

    def test_and_with_true(self):
        """x AND true should become x."""
        from exprcheck.engine import And, BoundReference, Literal
        from exprcheck.engine.types import BooleanType

        ref = BoundReference(0, BooleanType)

        assert _optimize(And(ref, Literal.create(True))) == ref

    def test_or_with_true(self):
        """x OR true should become true."""
        from exprcheck.engine import BoundReference, Literal, Or
        from exprcheck.engine.types import BooleanType

        ref = BoundReference(0, BooleanType)

        assert _optimize(Or(ref, Literal.create(True))) == Literal.create(True)

    def test_if_with_literal_predicate(self):
        """if(true) a else b should become a."""
        from exprcheck.engine import BoundReference, If, Literal
        from exprcheck.engine.types import IntegerType

        a, b = BoundReference(0, IntegerType), BoundReference(1, IntegerType)

        assert _optimize(If(Literal.create(True), a, b)) == a
        assert _optimize(If(Literal.create(False), a, b)) == b


class TestRuleExecutor:
    """Tests for the fixed-point executor."""

    def test_input_plan_untouched(self):
        """execute should return a new plan and leave the input as it was."""
        from exprcheck.engine import Add, Alias, Literal
        from exprcheck.engine.optimizer import OneRowRelation, Optimizer, Project

        expr = Add(Literal.create(5), Literal.create(3))
        plan = Project([Alias(expr, "out")], OneRowRelation())
        Optimizer().execute(plan)

        assert plan.expressions[0].child is expr

    def test_nested_rewrites_reach_fixed_point(self):
        """Rewrites enabled by other rewrites should all be applied."""
        from exprcheck.engine import Add, If, IsNull, Literal
        from exprcheck.engine.types import IntegerType

        expr = If(
            IsNull(Literal.create(None, IntegerType)),
            Add(Literal.create(1), Literal.create(2)),
            Literal.create(0),
        )

        assert _optimize(expr) == Literal.create(3)

    def test_iteration_limit_warns(self, caplog):
        """Hitting the iteration bound should log a warning."""
        import logging

        from exprcheck.engine import Literal
        from exprcheck.engine.expressions import Alias
        from exprcheck.engine.optimizer import (
            Batch,
            ExpressionRule,
            OneRowRelation,
            Project,
            RuleExecutor,
        )

        class Increment(ExpressionRule):
            def rewrite(self, expr):
                if isinstance(expr, Literal):
                    return Literal.create(expr.value.payload + 1)
                return expr

        plan = Project([Alias(Literal.create(0), "out")], OneRowRelation())
        executor = RuleExecutor([Batch("grow", [Increment()], max_iterations=3)])

        with caplog.at_level(logging.WARNING, logger="exprcheck.engine.optimizer"):
            result = executor.execute(plan)

        assert result.expressions[0].child == Literal.create(3)
        assert "Max iterations (3)" in caplog.text
