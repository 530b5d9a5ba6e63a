"""
Rule-based logical plan optimizer.

Plans are tiny: a Project over a OneRowRelation is all the harness builds.
The optimizer runs batches of expression rewrite rules until the plan stops
changing or the batch's iteration limit is reached.

Usage:
    from exprcheck.engine.optimizer import OneRowRelation, Optimizer, Project

    plan = Project([Alias(expr, "out")], OneRowRelation())
    optimized = Optimizer().execute(plan)
    rewritten = optimized.expressions[0]
"""

import logging
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from exprcheck.engine.expressions import (
    And,
    BinaryArithmetic,
    Coalesce,
    Concat,
    EqualTo,
    Expression,
    If,
    IsNotNull,
    IsNull,
    Length,
    Literal,
    Not,
    Or,
    Sqrt,
)
from exprcheck.engine.rows import EMPTY_ROW
from exprcheck.engine.types import BooleanType
from exprcheck.engine.values import Value

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 100

# Expressions that return null whenever any input is null
NULL_INTOLERANT = (BinaryArithmetic, Concat, EqualTo, Not, Length, Sqrt)


class LogicalPlan(ABC):
    """Node of a logical plan."""

    @property
    def children(self) -> tuple["LogicalPlan", ...]:
        return ()

    @property
    def expressions(self) -> list[Expression]:
        return []

    @abstractmethod
    def transform_expressions_up(
        self, rule: Callable[[Expression], Expression]
    ) -> "LogicalPlan":
        """Rewrite every expression of this node and its children bottom-up."""
        pass


class OneRowRelation(LogicalPlan):
    """Relation producing exactly one empty row."""

    def transform_expressions_up(
        self, rule: Callable[[Expression], Expression]
    ) -> LogicalPlan:
        return self

    def __eq__(self, other: object) -> bool:
        return isinstance(other, OneRowRelation)

    def __hash__(self) -> int:
        return hash(OneRowRelation)

    def __str__(self) -> str:
        return "OneRowRelation"


class Project(LogicalPlan):
    """Computes a list of output expressions over a child plan."""

    def __init__(self, project_list: Sequence[Expression], child: LogicalPlan) -> None:
        self.project_list = tuple(project_list)
        self.child = child

    @property
    def children(self) -> tuple[LogicalPlan, ...]:
        return (self.child,)

    @property
    def expressions(self) -> list[Expression]:
        return list(self.project_list)

    def transform_expressions_up(
        self, rule: Callable[[Expression], Expression]
    ) -> LogicalPlan:
        return Project(
            [e.transform_up(rule) for e in self.project_list],
            self.child.transform_expressions_up(rule),
        )

    def __eq__(self, other: object) -> bool:
        return (
            isinstance(other, Project)
            and self.project_list == other.project_list
            and self.child == other.child
        )

    def __hash__(self) -> int:
        return hash((self.project_list, self.child))

    def __str__(self) -> str:
        outputs = ", ".join(str(e) for e in self.project_list)
        return f"Project [{outputs}]\n+- {self.child}"


class Rule(ABC):
    """A plan rewrite."""

    @property
    def name(self) -> str:
        return type(self).__name__

    @abstractmethod
    def apply(self, plan: LogicalPlan) -> LogicalPlan:
        pass


class ExpressionRule(Rule):
    """A rule rewriting expressions node by node."""

    def apply(self, plan: LogicalPlan) -> LogicalPlan:
        return plan.transform_expressions_up(self.rewrite)

    @abstractmethod
    def rewrite(self, expr: Expression) -> Expression:
        """Return the rewritten node, or ``expr`` itself when nothing applies."""
        pass


def _null_literal(expr: Expression) -> Literal:
    return Literal(Value(expr.data_type, None))


def _is_null_literal(expr: Expression) -> bool:
    return isinstance(expr, Literal) and expr.value.is_null


def _is_bool_literal(expr: Expression, flag: bool) -> bool:
    return (
        isinstance(expr, Literal)
        and not expr.value.is_null
        and expr.data_type == BooleanType
        and expr.value.payload is flag
    )


class ConstantFolding(ExpressionRule):
    """Replaces foldable expressions with the literal they evaluate to."""

    def rewrite(self, expr: Expression) -> Expression:
        if isinstance(expr, Literal) or not expr.foldable:
            return expr
        value = expr.eval(EMPTY_ROW)
        if value.is_null:
            return _null_literal(expr)
        return Literal(value)


class NullPropagation(ExpressionRule):
    """Short-circuits expressions whose result is known from null inputs."""

    def rewrite(self, expr: Expression) -> Expression:
        if isinstance(expr, NULL_INTOLERANT) and any(_is_null_literal(c) for c in expr.children):
            return _null_literal(expr)
        if isinstance(expr, IsNull) and not expr.child.nullable:
            return Literal(Value(BooleanType, False))
        if isinstance(expr, IsNotNull) and not expr.child.nullable:
            return Literal(Value(BooleanType, True))
        if isinstance(expr, Coalesce):
            remaining = [c for c in expr.children if not _is_null_literal(c)]
            if not remaining:
                return _null_literal(expr)
            if len(remaining) == 1:
                return remaining[0]
            if len(remaining) < len(expr.children):
                return Coalesce(*remaining)
        return expr


class BooleanSimplification(ExpressionRule):
    """Removes double negation and literal operands of AND / OR."""

    def rewrite(self, expr: Expression) -> Expression:
        if isinstance(expr, Not) and isinstance(expr.child, Not):
            return expr.child.child
        if isinstance(expr, And):
            if _is_bool_literal(expr.left, True):
                return expr.right
            if _is_bool_literal(expr.right, True):
                return expr.left
            if _is_bool_literal(expr.left, False) or _is_bool_literal(expr.right, False):
                return Literal(Value(BooleanType, False))
        if isinstance(expr, Or):
            if _is_bool_literal(expr.left, False):
                return expr.right
            if _is_bool_literal(expr.right, False):
                return expr.left
            if _is_bool_literal(expr.left, True) or _is_bool_literal(expr.right, True):
                return Literal(Value(BooleanType, True))
        return expr


class SimplifyConditionals(ExpressionRule):
    """Resolves conditionals whose predicate is a literal."""

    def rewrite(self, expr: Expression) -> Expression:
        if not isinstance(expr, If):
            return expr
        if _is_bool_literal(expr.predicate, True):
            return expr.true_value
        if _is_bool_literal(expr.predicate, False) or _is_null_literal(expr.predicate):
            return expr.false_value
        if expr.true_value == expr.false_value and expr.predicate.deterministic:
            return expr.true_value
        return expr


@dataclass
class Batch:
    """Rules run together until fixed point or ``max_iterations``."""

    name: str
    rules: list[Rule] = field(default_factory=list)
    max_iterations: int = 1


class RuleExecutor:
    """Runs batches of rules over a plan."""

    def __init__(self, batches: Sequence[Batch]) -> None:
        self.batches = list(batches)

    def execute(self, plan: LogicalPlan) -> LogicalPlan:
        """Apply every batch in order.

        Returns:
            The rewritten plan; the input plan is left untouched.
        """
        current = plan
        for batch in self.batches:
            iteration = 0
            while True:
                iteration += 1
                before = current
                for rule in batch.rules:
                    rewritten = rule.apply(current)
                    if rewritten != current:
                        logger.debug(f"Rule {rule.name} rewrote plan in batch {batch.name}")
                    current = rewritten
                if current == before:
                    break
                if iteration >= batch.max_iterations:
                    if batch.max_iterations > 1:
                        logger.warning(
                            f"Max iterations ({batch.max_iterations}) reached for batch {batch.name}"
                        )
                    break
        return current


class Optimizer(RuleExecutor):
    """Default expression optimizer."""

    def __init__(self, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> None:
        super().__init__(
            [
                Batch(
                    "Operator Optimizations",
                    [
                        NullPropagation(),
                        ConstantFolding(),
                        BooleanSimplification(),
                        SimplifyConditionals(),
                    ],
                    max_iterations,
                )
            ]
        )
