"""
Reference expression tree.

Every expression can be evaluated directly (``eval``) and can emit Python
source for generated projections (``gen_code``). Both paths must agree; the
evaluation harness exists to check that they do.

Expressions are immutable. Rewrites build new trees through
``with_new_children`` and ``transform_up``.
"""

import math
from abc import ABC, abstractmethod
from collections.abc import Callable, Sequence
from typing import Any

from exprcheck.engine.codegen import CodegenContext, ExprCode, indent
from exprcheck.engine.conversion import convert_to_internal, infer_type
from exprcheck.engine.rows import InternalRow
from exprcheck.engine.types import (
    ArrayType,
    BinaryType,
    BooleanType,
    DataType,
    DoubleType,
    IntegerType,
    NullType,
    StringType,
    TypeTag,
    is_fractional,
    is_integral,
    is_numeric,
    wrap_integral,
)
from exprcheck.engine.values import (
    NULL,
    UTF8String,
    Value,
    make_value,
    round_to_float32,
    values_equivalent,
)


class Expression(ABC):
    """Base class of all expressions."""

    @property
    @abstractmethod
    def data_type(self) -> DataType:
        """Declared output type."""
        pass

    @property
    def children(self) -> tuple["Expression", ...]:
        return ()

    @property
    def nullable(self) -> bool:
        return any(c.nullable for c in self.children)

    @property
    def foldable(self) -> bool:
        """Whether the expression can be evaluated without an input row."""
        return bool(self.children) and all(c.foldable for c in self.children)

    @property
    def deterministic(self) -> bool:
        return all(c.deterministic for c in self.children)

    @abstractmethod
    def eval(self, row: InternalRow) -> Value:
        """Evaluate against an input row."""
        pass

    def gen_code(self, ctx: CodegenContext) -> ExprCode:
        """Emit code computing this expression into fresh variables."""
        ev = ExprCode("", ctx.fresh_name("is_null"), ctx.fresh_name("value"))
        ev.code = self.do_gen_code(ctx, ev)
        return ev

    @abstractmethod
    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        """Return statements assigning ``ev.is_null`` and ``ev.value``."""
        pass

    def with_new_children(self, children: Sequence["Expression"]) -> "Expression":
        return type(self)(*children)

    def transform_up(self, rule: Callable[["Expression"], "Expression"]) -> "Expression":
        """Apply ``rule`` bottom-up, rebuilding only nodes whose children changed."""
        new_children = [c.transform_up(rule) for c in self.children]
        node = self
        if any(a is not b for a, b in zip(new_children, self.children)):
            node = self.with_new_children(new_children)
        return rule(node)

    def _args(self) -> tuple[Any, ...]:
        """Non-child constructor arguments, used for equality."""
        return ()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Expression):
            return NotImplemented
        return (
            type(self) is type(other)
            and self._args() == other._args()
            and self.children == other.children
        )

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._args(), self.children))

    def sql(self) -> str:
        return str(self)


class LeafExpression(Expression):
    @property
    def foldable(self) -> bool:
        return False

    def with_new_children(self, children: Sequence[Expression]) -> Expression:
        return self


class UnaryExpression(Expression):
    def __init__(self, child: Expression) -> None:
        self.child = child

    @property
    def children(self) -> tuple[Expression, ...]:
        return (self.child,)

    def eval(self, row: InternalRow) -> Value:
        value = self.child.eval(row)
        if value.is_null:
            return NULL
        return make_value(self.data_type, self.null_safe_eval(value.payload))

    def null_safe_eval(self, payload: Any) -> Any:
        raise NotImplementedError(f"{type(self).__name__} must override eval or null_safe_eval")

    def define_code_gen(
        self, ctx: CodegenContext, ev: ExprCode, f: Callable[[str], str]
    ) -> str:
        """Null-propagating codegen; ``f`` maps the child variable to a result expression."""
        child = self.child.gen_code(ctx)
        return "\n".join(
            [
                child.code,
                f"{ev.is_null} = {child.is_null}",
                f"{ev.value} = None",
                f"if not {ev.is_null}:",
                f"    {ev.value} = {f(child.value)}",
            ]
        )


class BinaryExpression(Expression):
    symbol = "?"

    def __init__(self, left: Expression, right: Expression) -> None:
        self.left = left
        self.right = right

    @property
    def children(self) -> tuple[Expression, ...]:
        return (self.left, self.right)

    def eval(self, row: InternalRow) -> Value:
        left = self.left.eval(row)
        if left.is_null:
            return NULL
        right = self.right.eval(row)
        if right.is_null:
            return NULL
        return make_value(self.data_type, self.null_safe_eval(left.payload, right.payload))

    def null_safe_eval(self, left: Any, right: Any) -> Any:
        raise NotImplementedError(f"{type(self).__name__} must override eval or null_safe_eval")

    def null_safe_code_gen(
        self, ctx: CodegenContext, ev: ExprCode, f: Callable[[str, str], str]
    ) -> str:
        """Null-propagating codegen; ``f`` returns statements over the child variables."""
        left = self.left.gen_code(ctx)
        right = self.right.gen_code(ctx)
        return "\n".join(
            [
                left.code,
                f"{ev.is_null} = {left.is_null}",
                f"{ev.value} = None",
                f"if not {ev.is_null}:",
                indent(right.code),
                f"    {ev.is_null} = {right.is_null}",
                f"    if not {ev.is_null}:",
                indent(f(left.value, right.value), 2),
            ]
        )

    def define_code_gen(
        self, ctx: CodegenContext, ev: ExprCode, f: Callable[[str, str], str]
    ) -> str:
        return self.null_safe_code_gen(ctx, ev, lambda l, r: f"{ev.value} = {f(l, r)}")

    def __str__(self) -> str:
        return f"({self.left} {self.symbol} {self.right})"


def _result_type(*children: Expression) -> DataType:
    """Type shared by all children, NULL-typed children excepted."""
    types = {c.data_type for c in children if c.data_type != NullType}
    if len(types) > 1:
        rendered = ", ".join(sorted(str(t) for t in types))
        raise TypeError(f"Children must share one type, got {rendered}")
    return types.pop() if types else NullType


def _require_boolean(expr: Expression, *children: Expression) -> None:
    for child in children:
        if child.data_type not in (BooleanType, NullType):
            raise TypeError(
                f"{type(expr).__name__} requires boolean children, got {child.data_type}"
            )


# ---------------------------------------------------------------------------
# Leaves
# ---------------------------------------------------------------------------


class Literal(LeafExpression):
    """A constant value."""

    def __init__(self, value: Value) -> None:
        self.value = value

    @classmethod
    def create(cls, host_value: Any, data_type: DataType | None = None) -> "Literal":
        """Build a literal from a host value.

        Raises:
            ConversionError: If the host value cannot be converted.
        """
        if data_type is None:
            data_type = infer_type(host_value)
        value = convert_to_internal(host_value, data_type)
        if value.is_null:
            return cls(Value(data_type, None))
        return cls(value)

    @property
    def data_type(self) -> DataType:
        return self.value.data_type

    @property
    def nullable(self) -> bool:
        return self.value.is_null

    @property
    def foldable(self) -> bool:
        return True

    def eval(self, row: InternalRow) -> Value:
        if self.value.is_null:
            return NULL
        return self.value

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        if self.value.is_null:
            return f"{ev.is_null} = True\n{ev.value} = None"
        payload = self.value.payload
        if isinstance(payload, (bool, int)):
            literal = repr(payload)
        elif self.data_type.tag == TypeTag.BINARY:
            # each evaluation gets its own allocation
            literal = f"bytearray({ctx.add_reference(bytes(payload))})"
        else:
            literal = ctx.add_reference(payload)
        return f"{ev.is_null} = False\n{ev.value} = {literal}"

    def _args(self) -> tuple[Any, ...]:
        return (self.value, self.data_type)

    def __str__(self) -> str:
        return str(self.value)


class BoundReference(LeafExpression):
    """Reads one field of the input row."""

    def __init__(self, ordinal: int, data_type: DataType, nullable: bool = True) -> None:
        self.ordinal = ordinal
        self._data_type = data_type
        self._nullable = nullable

    @property
    def data_type(self) -> DataType:
        return self._data_type

    @property
    def nullable(self) -> bool:
        return self._nullable

    def eval(self, row: InternalRow) -> Value:
        return row.get(self.ordinal)

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        boxed = ctx.fresh_name("boxed")
        return "\n".join(
            [
                f"{boxed} = i.get({self.ordinal})",
                f"{ev.is_null} = {boxed}.is_null",
                f"{ev.value} = {boxed}.payload",
            ]
        )

    def _args(self) -> tuple[Any, ...]:
        return (self.ordinal, self._data_type, self._nullable)

    def __str__(self) -> str:
        return f"input[{self.ordinal}, {self._data_type}]"


# ---------------------------------------------------------------------------
# Named expressions
# ---------------------------------------------------------------------------


class Alias(UnaryExpression):
    """Gives a name to an output expression."""

    def __init__(self, child: Expression, name: str) -> None:
        super().__init__(child)
        self.name = name

    @property
    def data_type(self) -> DataType:
        return self.child.data_type

    @property
    def nullable(self) -> bool:
        return self.child.nullable

    @property
    def foldable(self) -> bool:
        # aliases are never folded into literals
        return False

    def eval(self, row: InternalRow) -> Value:
        return self.child.eval(row)

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        child = self.child.gen_code(ctx)
        return "\n".join(
            [child.code, f"{ev.is_null} = {child.is_null}", f"{ev.value} = {child.value}"]
        )

    def with_new_children(self, children: Sequence[Expression]) -> Expression:
        return Alias(children[0], self.name)

    def _args(self) -> tuple[Any, ...]:
        return (self.name,)

    def __str__(self) -> str:
        return f"{self.child} AS {self.name}"


# ---------------------------------------------------------------------------
# Arithmetic
# ---------------------------------------------------------------------------


class BinaryArithmetic(BinaryExpression):
    """Numeric operator over two children of the same type."""

    def __init__(self, left: Expression, right: Expression) -> None:
        super().__init__(left, right)
        self._data_type = _result_type(left, right)
        if self._data_type != NullType and not is_numeric(self._data_type):
            raise TypeError(f"{type(self).__name__} requires numeric children, got {self._data_type}")

    @property
    def data_type(self) -> DataType:
        return self._data_type

    def apply(self, left: Any, right: Any) -> Any:
        raise NotImplementedError

    def null_safe_eval(self, left: Any, right: Any) -> Any:
        result = self.apply(left, right)
        return self._normalize(result)

    def _normalize(self, result: Any) -> Any:
        if is_integral(self._data_type):
            return wrap_integral(result, self._data_type)
        if self._data_type.tag == TypeTag.FLOAT:
            return round_to_float32(result)
        return result

    def _normalize_code(self, ctx: CodegenContext, code: str) -> str:
        if is_integral(self._data_type):
            return f"wrap_integral({code}, {ctx.add_reference(self._data_type)})"
        if self._data_type.tag == TypeTag.FLOAT:
            return f"round_to_float32({code})"
        return code

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        return self.define_code_gen(
            ctx, ev, lambda l, r: self._normalize_code(ctx, f"{l} {self.symbol} {r}")
        )


class Add(BinaryArithmetic):
    symbol = "+"

    def apply(self, left: Any, right: Any) -> Any:
        return left + right


class Subtract(BinaryArithmetic):
    symbol = "-"

    def apply(self, left: Any, right: Any) -> Any:
        return left - right


class Multiply(BinaryArithmetic):
    symbol = "*"

    def apply(self, left: Any, right: Any) -> Any:
        return left * right


class Divide(BinaryArithmetic):
    """Fractional division. Division by zero yields null."""

    symbol = "/"

    def __init__(self, left: Expression, right: Expression) -> None:
        super().__init__(left, right)
        if self._data_type != NullType and not is_fractional(self._data_type):
            raise TypeError(f"Divide requires fractional children, got {self._data_type}")

    @property
    def nullable(self) -> bool:
        return True

    def apply(self, left: Any, right: Any) -> Any:
        if right == 0:
            return None
        return left / right

    def null_safe_eval(self, left: Any, right: Any) -> Any:
        result = self.apply(left, right)
        return None if result is None else self._normalize(result)

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        def divide(l: str, r: str) -> str:
            quotient = self._normalize_code(ctx, f"{l} / {r}")
            return "\n".join(
                [
                    f"if {r} == 0:",
                    f"    {ev.is_null} = True",
                    "else:",
                    f"    {ev.value} = {quotient}",
                ]
            )

        return self.null_safe_code_gen(ctx, ev, divide)


class Sqrt(UnaryExpression):
    """Square root as double; negative input yields NaN."""

    def __init__(self, child: Expression) -> None:
        super().__init__(child)
        if child.data_type != NullType and not is_numeric(child.data_type):
            raise TypeError(f"SQRT requires a numeric child, got {child.data_type}")

    @property
    def data_type(self) -> DataType:
        return DoubleType

    def null_safe_eval(self, payload: Any) -> Any:
        value = float(payload)
        return math.sqrt(value) if value >= 0 else math.nan

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        return self.define_code_gen(
            ctx, ev, lambda c: f"math.sqrt(float({c})) if float({c}) >= 0 else math.nan"
        )

    def __str__(self) -> str:
        return f"SQRT({self.child})"


# ---------------------------------------------------------------------------
# Strings and binary
# ---------------------------------------------------------------------------


class Concat(Expression):
    """Concatenates strings or binaries. Null if any input is null."""

    def __init__(self, *children: Expression) -> None:
        self._children = tuple(children)
        data_type = _result_type(*children) if children else StringType
        if data_type == NullType:
            data_type = StringType
        if data_type.tag not in (TypeTag.STRING, TypeTag.BINARY):
            raise TypeError(f"concat requires string or binary children, got {data_type}")
        self._data_type = data_type

    @property
    def children(self) -> tuple[Expression, ...]:
        return self._children

    @property
    def data_type(self) -> DataType:
        return self._data_type

    def eval(self, row: InternalRow) -> Value:
        parts = []
        for child in self._children:
            value = child.eval(row)
            if value.is_null:
                return NULL
            parts.append(value.payload)
        if self._data_type == BinaryType:
            return Value(BinaryType, bytearray(b"".join(bytes(p) for p in parts)))
        return Value(StringType, UTF8String(b"".join(p.data for p in parts)))

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        evs = [c.gen_code(ctx) for c in self._children]
        null_check = " or ".join(e.is_null for e in evs) or "False"
        if self._data_type == BinaryType:
            joined = ", ".join(f"bytes({e.value})" for e in evs)
            result = f"bytearray(b''.join([{joined}]))"
        else:
            joined = ", ".join(f"{e.value}.data" for e in evs)
            result = f"UTF8String(b''.join([{joined}]))"
        return "\n".join(
            [e.code for e in evs]
            + [
                f"{ev.is_null} = {null_check}",
                f"{ev.value} = None if {ev.is_null} else {result}",
            ]
        )

    def __str__(self) -> str:
        return f"concat({', '.join(str(c) for c in self._children)})"


class Length(UnaryExpression):
    """Character length of a string, byte length of a binary."""

    def __init__(self, child: Expression) -> None:
        super().__init__(child)
        if child.data_type.tag not in (TypeTag.STRING, TypeTag.BINARY, TypeTag.NULL):
            raise TypeError(f"length requires string or binary, got {child.data_type}")

    @property
    def data_type(self) -> DataType:
        return IntegerType

    def null_safe_eval(self, payload: Any) -> Any:
        if isinstance(payload, UTF8String):
            return payload.num_chars()
        return len(payload)

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        if self.child.data_type == StringType:
            return self.define_code_gen(ctx, ev, lambda c: f"{c}.num_chars()")
        return self.define_code_gen(ctx, ev, lambda c: f"len({c})")

    def __str__(self) -> str:
        return f"length({self.child})"


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


class EqualTo(BinaryExpression):
    symbol = "="

    def __init__(self, left: Expression, right: Expression) -> None:
        super().__init__(left, right)
        lt, rt = left.data_type, right.data_type
        comparable = (
            lt == NullType
            or rt == NullType
            or lt.tag == rt.tag
            or (is_numeric(lt) and is_numeric(rt))
        )
        if not comparable:
            raise TypeError(f"Cannot compare {lt} with {rt}")

    @property
    def data_type(self) -> DataType:
        return BooleanType

    def eval(self, row: InternalRow) -> Value:
        left = self.left.eval(row)
        if left.is_null:
            return NULL
        right = self.right.eval(row)
        if right.is_null:
            return NULL
        return Value(BooleanType, values_equivalent(left, right))

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        lt = ctx.add_reference(self.left.data_type)
        rt = ctx.add_reference(self.right.data_type)
        return self.define_code_gen(
            ctx, ev, lambda l, r: f"values_equivalent(Value({lt}, {l}), Value({rt}, {r}))"
        )


class Not(UnaryExpression):
    def __init__(self, child: Expression) -> None:
        super().__init__(child)
        _require_boolean(self, child)

    @property
    def data_type(self) -> DataType:
        return BooleanType

    def null_safe_eval(self, payload: Any) -> Any:
        return not payload

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        return self.define_code_gen(ctx, ev, lambda c: f"not {c}")

    def __str__(self) -> str:
        return f"NOT {self.child}"


class And(BinaryExpression):
    """Three-valued conjunction."""

    symbol = "AND"

    def __init__(self, left: Expression, right: Expression) -> None:
        super().__init__(left, right)
        _require_boolean(self, left, right)

    @property
    def data_type(self) -> DataType:
        return BooleanType

    def eval(self, row: InternalRow) -> Value:
        left = self.left.eval(row)
        if not left.is_null and left.payload is False:
            return Value(BooleanType, False)
        right = self.right.eval(row)
        if not right.is_null and right.payload is False:
            return Value(BooleanType, False)
        if left.is_null or right.is_null:
            return NULL
        return Value(BooleanType, True)

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        left = self.left.gen_code(ctx)
        right = self.right.gen_code(ctx)
        return "\n".join(
            [
                left.code,
                f"if not {left.is_null} and {left.value} is False:",
                f"    {ev.is_null} = False",
                f"    {ev.value} = False",
                "else:",
                indent(right.code),
                f"    if not {right.is_null} and {right.value} is False:",
                f"        {ev.is_null} = False",
                f"        {ev.value} = False",
                f"    elif {left.is_null} or {right.is_null}:",
                f"        {ev.is_null} = True",
                f"        {ev.value} = None",
                "    else:",
                f"        {ev.is_null} = False",
                f"        {ev.value} = True",
            ]
        )


class Or(BinaryExpression):
    """Three-valued disjunction."""

    symbol = "OR"

    def __init__(self, left: Expression, right: Expression) -> None:
        super().__init__(left, right)
        _require_boolean(self, left, right)

    @property
    def data_type(self) -> DataType:
        return BooleanType

    def eval(self, row: InternalRow) -> Value:
        left = self.left.eval(row)
        if not left.is_null and left.payload is True:
            return Value(BooleanType, True)
        right = self.right.eval(row)
        if not right.is_null and right.payload is True:
            return Value(BooleanType, True)
        if left.is_null or right.is_null:
            return NULL
        return Value(BooleanType, False)

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        left = self.left.gen_code(ctx)
        right = self.right.gen_code(ctx)
        return "\n".join(
            [
                left.code,
                f"if not {left.is_null} and {left.value} is True:",
                f"    {ev.is_null} = False",
                f"    {ev.value} = True",
                "else:",
                indent(right.code),
                f"    if not {right.is_null} and {right.value} is True:",
                f"        {ev.is_null} = False",
                f"        {ev.value} = True",
                f"    elif {left.is_null} or {right.is_null}:",
                f"        {ev.is_null} = True",
                f"        {ev.value} = None",
                "    else:",
                f"        {ev.is_null} = False",
                f"        {ev.value} = False",
            ]
        )


class IsNull(UnaryExpression):
    @property
    def data_type(self) -> DataType:
        return BooleanType

    @property
    def nullable(self) -> bool:
        return False

    def eval(self, row: InternalRow) -> Value:
        return Value(BooleanType, self.child.eval(row).is_null)

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        child = self.child.gen_code(ctx)
        return "\n".join([child.code, f"{ev.is_null} = False", f"{ev.value} = {child.is_null}"])

    def __str__(self) -> str:
        return f"isnull({self.child})"


class IsNotNull(UnaryExpression):
    @property
    def data_type(self) -> DataType:
        return BooleanType

    @property
    def nullable(self) -> bool:
        return False

    def eval(self, row: InternalRow) -> Value:
        return Value(BooleanType, not self.child.eval(row).is_null)

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        child = self.child.gen_code(ctx)
        return "\n".join(
            [child.code, f"{ev.is_null} = False", f"{ev.value} = not {child.is_null}"]
        )

    def __str__(self) -> str:
        return f"isnotnull({self.child})"


# ---------------------------------------------------------------------------
# Conditionals
# ---------------------------------------------------------------------------


class If(Expression):
    """Picks a branch; a null predicate selects the false branch."""

    def __init__(
        self, predicate: Expression, true_value: Expression, false_value: Expression
    ) -> None:
        if predicate.data_type not in (BooleanType, NullType):
            raise TypeError(f"If predicate must be boolean, got {predicate.data_type}")
        self.predicate = predicate
        self.true_value = true_value
        self.false_value = false_value
        self._data_type = _result_type(true_value, false_value)

    @property
    def children(self) -> tuple[Expression, ...]:
        return (self.predicate, self.true_value, self.false_value)

    @property
    def data_type(self) -> DataType:
        return self._data_type

    @property
    def nullable(self) -> bool:
        return self.true_value.nullable or self.false_value.nullable

    def eval(self, row: InternalRow) -> Value:
        condition = self.predicate.eval(row)
        if not condition.is_null and condition.payload:
            return self.true_value.eval(row)
        return self.false_value.eval(row)

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        cond = self.predicate.gen_code(ctx)
        true_ev = self.true_value.gen_code(ctx)
        false_ev = self.false_value.gen_code(ctx)
        return "\n".join(
            [
                cond.code,
                f"if not {cond.is_null} and {cond.value}:",
                indent(true_ev.code),
                f"    {ev.is_null} = {true_ev.is_null}",
                f"    {ev.value} = {true_ev.value}",
                "else:",
                indent(false_ev.code),
                f"    {ev.is_null} = {false_ev.is_null}",
                f"    {ev.value} = {false_ev.value}",
            ]
        )

    def __str__(self) -> str:
        return f"if ({self.predicate}) {self.true_value} else {self.false_value}"


class Coalesce(Expression):
    """First non-null child."""

    def __init__(self, *children: Expression) -> None:
        if not children:
            raise TypeError("coalesce requires at least one child")
        self._children = tuple(children)
        self._data_type = _result_type(*children)

    @property
    def children(self) -> tuple[Expression, ...]:
        return self._children

    @property
    def data_type(self) -> DataType:
        return self._data_type

    @property
    def nullable(self) -> bool:
        return all(c.nullable for c in self._children)

    def eval(self, row: InternalRow) -> Value:
        for child in self._children:
            value = child.eval(row)
            if not value.is_null:
                return value
        return NULL

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        lines = [f"{ev.is_null} = True", f"{ev.value} = None"]
        depth = 0
        for child in self._children:
            child_ev = child.gen_code(ctx)
            block = "\n".join(
                [
                    child_ev.code,
                    f"if not {child_ev.is_null}:",
                    f"    {ev.is_null} = False",
                    f"    {ev.value} = {child_ev.value}",
                ]
            )
            lines.append(indent(block, depth) if depth else block)
            # later children only run while the result is still null
            lines.append(indent(f"if {ev.is_null}:", depth) if depth else f"if {ev.is_null}:")
            depth += 1
        lines.append(indent("pass", depth))
        return "\n".join(lines)

    def __str__(self) -> str:
        return f"coalesce({', '.join(str(c) for c in self._children)})"


# ---------------------------------------------------------------------------
# Complex types
# ---------------------------------------------------------------------------


class CreateArray(Expression):
    """Builds an array from its children. Never null itself."""

    def __init__(self, *children: Expression) -> None:
        self._children = tuple(children)
        self._data_type = ArrayType(_result_type(*children))

    @property
    def children(self) -> tuple[Expression, ...]:
        return self._children

    @property
    def data_type(self) -> DataType:
        return self._data_type

    @property
    def nullable(self) -> bool:
        return False

    @property
    def foldable(self) -> bool:
        return all(c.foldable for c in self._children)

    def eval(self, row: InternalRow) -> Value:
        return Value(self._data_type, tuple(c.eval(row) for c in self._children))

    def do_gen_code(self, ctx: CodegenContext, ev: ExprCode) -> str:
        element_type = ctx.add_reference(self._data_type.element_type)
        evs = [c.gen_code(ctx) for c in self._children]
        elements = "".join(
            f"NULL if {e.is_null} else make_value({element_type}, {e.value}), " for e in evs
        )
        return "\n".join(
            [e.code for e in evs] + [f"{ev.is_null} = False", f"{ev.value} = ({elements})"]
        )

    def __str__(self) -> str:
        return f"array({', '.join(str(c) for c in self._children)})"
