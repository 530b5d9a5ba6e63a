"""
Interpreted backend: evaluates the expression tree directly, no codegen.
"""

import logging
import time

from exprcheck.backends.base import CheckOutcome, EvaluationBackend, OutcomeStatus
from exprcheck.engine.expressions import Expression
from exprcheck.engine.rows import InternalRow
from exprcheck.exceptions import EvaluationError

logger = logging.getLogger(__name__)


class InterpretedBackend(EvaluationBackend):
    """Calls ``expression.eval`` and reports anything it raises."""

    mismatch_label = "Incorrect evaluation (codegen off)"

    @property
    def name(self) -> str:
        return "interpreted"

    def run(self, expression: Expression, input_row: InternalRow) -> CheckOutcome:
        started = time.time()
        try:
            value = expression.eval(input_row)
        except Exception as e:
            logger.debug(f"Interpreted evaluation of {expression} raised {type(e).__name__}: {e}")
            return self.failure(
                OutcomeStatus.EVALUATION_FAILED,
                EvaluationError(
                    f"Exception evaluating {expression}: {type(e).__name__}: {e}",
                    expression=str(expression),
                    cause=e,
                ),
                started,
            )
        return self.success(value, started)
