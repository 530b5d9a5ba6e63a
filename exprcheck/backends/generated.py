"""
Generated-code backends.

Each backend compiles a single-output projection over the expression and
runs the compiled program against the input row. They differ in the row
representation the program produces:

- MutableProjectionBackend: writes into a reusable MutableRow, slot 0 is read.
- GeneratedProjectionBackend: returns a fresh immutable row.
- PackedProjectionBackend: returns a packed binary row that is decoded back
  into an immutable row before anything compares it.

Generation failures are reported separately from failures of the generated
program, since the former point at the code generator and the latter at
expression semantics.
"""

import logging
import time

from exprcheck.backends.base import (
    CheckOutcome,
    EvaluationBackend,
    OutcomeStatus,
    output_alias,
)
from exprcheck.engine.codegen import (
    FromPackedProjection,
    GenerateMutableProjection,
    GenerateProjection,
    GenerateUnsafeProjection,
)
from exprcheck.engine.expressions import Expression
from exprcheck.engine.packed import is_embeddable
from exprcheck.engine.rows import InternalRow
from exprcheck.exceptions import EvaluationError, GenerationError

logger = logging.getLogger(__name__)


def _generation_failed(
    backend: EvaluationBackend, error: GenerationError, started: float
) -> CheckOutcome:
    logger.debug(f"Code generation failed in {backend.name}: {error}")
    return backend.failure(
        OutcomeStatus.GENERATION_FAILED, error, started, generated_code=error.source
    )


def _program_failed(
    backend: EvaluationBackend,
    expression: Expression,
    error: Exception,
    started: float,
    source: str,
) -> CheckOutcome:
    logger.debug(f"Generated program for {expression} raised {type(error).__name__}: {error}")
    return backend.failure(
        OutcomeStatus.EVALUATION_FAILED,
        EvaluationError(
            f"Exception evaluating {expression} with generated code: "
            f"{type(error).__name__}: {error}",
            expression=str(expression),
            cause=error,
        ),
        started,
        generated_code=source,
    )


class MutableProjectionBackend(EvaluationBackend):
    """Generated projection writing into a mutable row buffer."""

    @property
    def name(self) -> str:
        return "mutable_projection"

    def run(self, expression: Expression, input_row: InternalRow) -> CheckOutcome:
        started = time.time()
        try:
            projection = GenerateMutableProjection.generate([output_alias(expression)])
        except GenerationError as e:
            return _generation_failed(self, e, started)

        try:
            row = projection(input_row)
            value = row.get(0)
        except Exception as e:
            return _program_failed(self, expression, e, started, projection.source)
        return self.success(value, started, row=row, generated_code=projection.source)


class GeneratedProjectionBackend(EvaluationBackend):
    """Generated projection returning a fresh immutable row."""

    compares_rows = True
    verifies_row_representation = True

    @property
    def name(self) -> str:
        return "generated_projection"

    def run(self, expression: Expression, input_row: InternalRow) -> CheckOutcome:
        started = time.time()
        try:
            projection = GenerateProjection.generate([output_alias(expression)])
        except GenerationError as e:
            return _generation_failed(self, e, started)

        try:
            row = projection(input_row)
            value = row.get(0)
        except Exception as e:
            return _program_failed(self, expression, e, started, projection.source)
        return self.success(value, started, row=row, generated_code=projection.source)


class PackedProjectionBackend(EvaluationBackend):
    """Generated projection producing a packed binary row.

    Only applies to expressions whose output type the packed layout can
    embed. The packed row is always decoded before comparison.
    """

    mismatch_label = "Incorrect Evaluation in packed mode"
    compares_rows = True

    @property
    def name(self) -> str:
        return "packed_projection"

    def applies_to(self, expression: Expression) -> bool:
        return is_embeddable(expression.data_type)

    def run(self, expression: Expression, input_row: InternalRow) -> CheckOutcome:
        started = time.time()
        try:
            projection = GenerateUnsafeProjection.generate([output_alias(expression)])
        except GenerationError as e:
            return _generation_failed(self, e, started)

        try:
            packed = projection(input_row)
            # packed rows are not comparable with boxed rows
            row = FromPackedProjection([expression.data_type])(packed)
            value = row.get(0)
        except Exception as e:
            return _program_failed(self, expression, e, started, projection.source)
        return self.success(
            value,
            started,
            row=row,
            generated_code=projection.source,
            packed_size_in_bytes=packed.size_in_bytes,
        )
