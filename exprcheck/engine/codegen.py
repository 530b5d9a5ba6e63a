"""
Projection code generation.

Expressions emit Python source through a CodegenContext. The generators in
this module wrap that source in a projection function, compile it with
compile() and load it into an isolated namespace. Three program shapes
exist, one per output row representation:

- GenerateMutableProjection: writes into a reusable MutableRow.
- GenerateProjection: returns a fresh immutable GenericRow.
- GenerateUnsafeProjection: returns a PackedRow.

FromPackedProjection is the inverse projection turning a PackedRow back into
a GenericRow.

Every compiled program keeps its source on ``.source``. Any failure while
generating or compiling raises GenerationError carrying the source produced
so far.

Usage:
    from exprcheck.engine.codegen import GenerateProjection

    projection = GenerateProjection.generate([Add(Literal.create(5), Literal.create(3))])
    row = projection(EMPTY_ROW)
"""

import itertools
import logging
import math
import textwrap
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING, Any

from exprcheck.engine.packed import PackedRow, PackedRowWriter, decode_row, is_embeddable
from exprcheck.engine.rows import GenericRow, InternalRow, MutableRow
from exprcheck.engine.types import DataType, wrap_integral
from exprcheck.engine.values import (
    NULL,
    UTF8String,
    Value,
    make_value,
    round_to_float32,
    values_equivalent,
)
from exprcheck.exceptions import GenerationError

if TYPE_CHECKING:
    from exprcheck.engine.expressions import Expression

logger = logging.getLogger(__name__)

INPUT_ROW = "i"
INDENT = "    "


def indent(code: str, level: int = 1) -> str:
    """Indent a block of generated code."""
    return textwrap.indent(code, INDENT * level)


@dataclass
class ExprCode:
    """Generated code for one expression.

    Attributes:
        code: Statements computing the result.
        is_null: Name of the variable holding the null flag.
        value: Name of the variable holding the unboxed payload.
    """

    code: str
    is_null: str
    value: str


@dataclass
class CodegenContext:
    """State shared while generating one projection.

    Objects that cannot be written as Python literals (types, decimals,
    strings) are passed to the program through ``refs``. ``emitted`` keeps
    the output blocks generated so far, for diagnostics when generation
    fails part way.
    """

    references: list[Any] = field(default_factory=list)
    emitted: list[str] = field(default_factory=list)
    _counter: Any = field(default_factory=itertools.count, repr=False)

    def fresh_name(self, prefix: str) -> str:
        return f"{prefix}_{next(self._counter)}"

    def add_reference(self, obj: Any) -> str:
        self.references.append(obj)
        return f"refs[{len(self.references) - 1}]"


def _namespace(ctx: CodegenContext) -> dict[str, Any]:
    return {
        "refs": ctx.references,
        "NULL": NULL,
        "Value": Value,
        "UTF8String": UTF8String,
        "Decimal": Decimal,
        "GenericRow": GenericRow,
        "make_value": make_value,
        "wrap_integral": wrap_integral,
        "round_to_float32": round_to_float32,
        "values_equivalent": values_equivalent,
        "math": math,
    }


def _expression_text(exprs: Sequence["Expression"]) -> str:
    return ", ".join(str(e) for e in exprs)


def _generate_outputs(
    ctx: CodegenContext,
    exprs: Sequence["Expression"],
    write: Callable[[int, ExprCode, str], str],
) -> str:
    """Generate code evaluating every output and storing it with ``write``."""
    blocks = ctx.emitted
    for ordinal, expr in enumerate(exprs):
        try:
            ev = expr.gen_code(ctx)
        except Exception as e:
            blocks.append(f"# generating output {ordinal} ({expr}) raised {type(e).__name__}: {e}")
            raise
        type_ref = ctx.add_reference(expr.data_type)
        blocks.append(ev.code)
        blocks.append(write(ordinal, ev, type_ref))
    return "\n".join(blocks)


def _compile(
    ctx: CodegenContext,
    exprs: Sequence["Expression"],
    body: Callable[[CodegenContext], str],
    kind: str,
) -> tuple[Callable[..., Any], str]:
    """Generate and compile a projection function named ``apply``."""
    source = ""
    try:
        source = body(ctx)
        namespace = _namespace(ctx)
        code = compile(source, f"<generated {kind}>", "exec")
        exec(code, namespace)  # noqa: S102 - executing generated projection
    except GenerationError:
        raise
    except Exception as e:
        text = _expression_text(exprs)
        if not source:
            source = "\n".join(ctx.emitted)
        raise GenerationError(
            f"Code generation of {text} failed: {type(e).__name__}: {e}",
            expression=text,
            source=source,
            cause=e,
        ) from e

    logger.debug(f"Generated {kind} for {_expression_text(exprs)} ({len(source)} chars)")
    return namespace["apply"], source


class MutableProjection:
    """Compiled projection writing into a reusable MutableRow."""

    def __init__(
        self, fn: Callable[..., Any], source: str, data_types: Sequence[DataType]
    ) -> None:
        self._fn = fn
        self.source = source
        self._target = MutableRow(data_types)

    def target(self, row: MutableRow) -> "MutableProjection":
        """Write into ``row`` instead of the projection's own buffer."""
        self._target = row
        return self

    def __call__(self, input_row: InternalRow) -> MutableRow:
        return self._fn(input_row, self._target)


class Projection:
    """Compiled projection returning a fresh immutable row."""

    def __init__(self, fn: Callable[..., Any], source: str) -> None:
        self._fn = fn
        self.source = source

    def __call__(self, input_row: InternalRow) -> GenericRow:
        return self._fn(input_row)


class PackedProjection:
    """Compiled projection returning a packed binary row."""

    def __init__(
        self, fn: Callable[..., Any], source: str, data_types: Sequence[DataType]
    ) -> None:
        self._fn = fn
        self.source = source
        self._writer = PackedRowWriter(data_types)

    def __call__(self, input_row: InternalRow) -> PackedRow:
        return self._fn(input_row, self._writer)


class GenerateMutableProjection:
    """Generates projections that overwrite a MutableRow in place."""

    @staticmethod
    def generate(exprs: Sequence["Expression"]) -> MutableProjection:
        exprs = list(exprs)
        ctx = CodegenContext()

        def write(ordinal: int, ev: ExprCode, type_ref: str) -> str:
            return "\n".join(
                [
                    f"if {ev.is_null}:",
                    f"    mutable_row.set_null_at({ordinal})",
                    "else:",
                    f"    mutable_row.update({ordinal}, make_value({type_ref}, {ev.value}))",
                ]
            )

        def body(ctx: CodegenContext) -> str:
            outputs = _generate_outputs(ctx, exprs, write)
            return "\n".join(
                [
                    f"def apply({INPUT_ROW}, mutable_row):",
                    indent(outputs),
                    "    return mutable_row",
                ]
            )

        fn, source = _compile(ctx, exprs, body, "mutable projection")
        return MutableProjection(fn, source, [e.data_type for e in exprs])


class GenerateProjection:
    """Generates projections that build a new immutable row per call."""

    @staticmethod
    def generate(exprs: Sequence["Expression"]) -> Projection:
        exprs = list(exprs)
        ctx = CodegenContext()

        def write(ordinal: int, ev: ExprCode, type_ref: str) -> str:
            return (
                f"c{ordinal} = NULL if {ev.is_null} else make_value({type_ref}, {ev.value})"
            )

        def body(ctx: CodegenContext) -> str:
            outputs = _generate_outputs(ctx, exprs, write)
            columns = ", ".join(f"c{i}" for i in range(len(exprs)))
            return "\n".join(
                [
                    f"def apply({INPUT_ROW}):",
                    indent(outputs),
                    f"    return GenericRow(({columns}{',' if len(exprs) == 1 else ''}))",
                ]
            )

        fn, source = _compile(ctx, exprs, body, "projection")
        return Projection(fn, source)


class GenerateUnsafeProjection:
    """Generates projections that produce packed binary rows."""

    @staticmethod
    def generate(exprs: Sequence["Expression"]) -> PackedProjection:
        exprs = list(exprs)
        text = _expression_text(exprs)
        for expr in exprs:
            if not is_embeddable(expr.data_type):
                raise GenerationError(
                    f"Code generation of {text} failed: "
                    f"type {expr.data_type} cannot be embedded in a packed row",
                    expression=text,
                )
        ctx = CodegenContext()

        def write(ordinal: int, ev: ExprCode, type_ref: str) -> str:
            return "\n".join(
                [
                    f"if {ev.is_null}:",
                    f"    writer.set_null_at({ordinal})",
                    "else:",
                    f"    writer.write({ordinal}, make_value({type_ref}, {ev.value}))",
                ]
            )

        def body(ctx: CodegenContext) -> str:
            outputs = _generate_outputs(ctx, exprs, write)
            return "\n".join(
                [
                    f"def apply({INPUT_ROW}, writer):",
                    "    writer.reset()",
                    indent(outputs),
                    "    return writer.build()",
                ]
            )

        fn, source = _compile(ctx, exprs, body, "packed projection")
        return PackedProjection(fn, source, [e.data_type for e in exprs])


class FromPackedProjection:
    """Inverse projection: decodes a PackedRow into a GenericRow.

    Args:
        data_types: Expected schema of the packed rows.
    """

    def __init__(self, data_types: Sequence[DataType]) -> None:
        self.data_types = tuple(data_types)

    def __call__(self, packed: PackedRow) -> GenericRow:
        if packed.schema != self.data_types:
            raise ValueError(
                f"Packed row schema {[str(t) for t in packed.schema]} does not match "
                f"{[str(t) for t in self.data_types]}"
            )
        return decode_row(packed)
