"""
Optimized backend: optimize, then interpret.

The expression becomes the only output of a Project over a one-row
relation. The optimizer rewrites that plan, the rewritten output expression
is pulled back out, and the interpreted backend evaluates it.
"""

import logging
import time
from dataclasses import replace

from exprcheck.backends.base import (
    CheckOutcome,
    EvaluationBackend,
    OutcomeStatus,
    output_alias,
)
from exprcheck.backends.interpreted import InterpretedBackend
from exprcheck.engine.expressions import Alias, Expression
from exprcheck.engine.optimizer import (
    DEFAULT_MAX_ITERATIONS,
    OneRowRelation,
    Optimizer,
    Project,
)
from exprcheck.engine.rows import InternalRow
from exprcheck.exceptions import OptimizationError

logger = logging.getLogger(__name__)


class OptimizedBackend(EvaluationBackend):
    """Runs the optimizer over a trivial projection, then interprets the result.

    Args:
        max_iterations: Fixed-point bound handed to the optimizer.
    """

    mismatch_label = "Incorrect evaluation after optimization"
    rewrites_expression = True

    def __init__(self, max_iterations: int = DEFAULT_MAX_ITERATIONS) -> None:
        self.max_iterations = max_iterations

    @property
    def name(self) -> str:
        return "optimized"

    def optimize(self, expression: Expression) -> Expression:
        """Return the optimizer's rewrite of ``expression``.

        Raises:
            OptimizationError: If the optimizer fails.
        """
        plan = Project([output_alias(expression)], OneRowRelation())
        try:
            optimized_plan = Optimizer(self.max_iterations).execute(plan)
            rewritten = optimized_plan.expressions[0]
        except Exception as e:
            raise OptimizationError(
                f"Optimizing {expression} failed: {type(e).__name__}: {e}",
                plan=str(plan),
                cause=e,
            ) from e
        if isinstance(rewritten, Alias):
            rewritten = rewritten.child
        return rewritten

    def run(self, expression: Expression, input_row: InternalRow) -> CheckOutcome:
        started = time.time()
        try:
            rewritten = self.optimize(expression)
        except OptimizationError as e:
            logger.debug(str(e))
            return self.failure(OutcomeStatus.OPTIMIZATION_FAILED, e, started)

        if rewritten != expression:
            logger.debug(f"Optimizer rewrote {expression} to {rewritten}")
        outcome = InterpretedBackend().run(rewritten, input_row)
        return replace(
            outcome,
            backend=self.name,
            duration_ms=(time.time() - started) * 1000,
            metadata={**outcome.metadata, "optimized_expression": str(rewritten)},
        )
