"""
Reference expression engine.

The evaluation harness treats everything in this package as an external
collaborator reached through four contracts:

    expressions   eval(row) -> Value, data_type
    codegen       generated projections over mutable, immutable and packed rows
    optimizer     Optimizer().execute(plan) -> plan
    conversion    convert_to_internal(host_value) -> Value, is_embeddable(type)

Usage:
    from exprcheck.engine import Add, Literal, EMPTY_ROW

    expr = Add(Literal.create(5), Literal.create(3))
    expr.eval(EMPTY_ROW)  # Value(int, 8)
"""

from exprcheck.engine.codegen import (
    CodegenContext,
    ExprCode,
    FromPackedProjection,
    GenerateMutableProjection,
    GenerateProjection,
    GenerateUnsafeProjection,
)
from exprcheck.engine.conversion import convert_to_internal, infer_type
from exprcheck.engine.expressions import (
    Add,
    Alias,
    And,
    BoundReference,
    Coalesce,
    Concat,
    CreateArray,
    Divide,
    EqualTo,
    Expression,
    If,
    IsNotNull,
    IsNull,
    Length,
    Literal,
    Multiply,
    Not,
    Or,
    Sqrt,
    Subtract,
)
from exprcheck.engine.optimizer import OneRowRelation, Optimizer, Project
from exprcheck.engine.packed import PackedRow, decode_row, encode_row, is_embeddable
from exprcheck.engine.rows import EMPTY_ROW, GenericRow, InternalRow, MutableRow
from exprcheck.engine.values import NULL, UTF8String, Value

__all__ = [
    # Values and rows
    "NULL",
    "UTF8String",
    "Value",
    "EMPTY_ROW",
    "GenericRow",
    "InternalRow",
    "MutableRow",
    "PackedRow",
    "decode_row",
    "encode_row",
    "is_embeddable",
    # Conversion
    "convert_to_internal",
    "infer_type",
    # Expressions
    "Expression",
    "Add",
    "Alias",
    "And",
    "BoundReference",
    "Coalesce",
    "Concat",
    "CreateArray",
    "Divide",
    "EqualTo",
    "If",
    "IsNotNull",
    "IsNull",
    "Length",
    "Literal",
    "Multiply",
    "Not",
    "Or",
    "Sqrt",
    "Subtract",
    # Code generation
    "CodegenContext",
    "ExprCode",
    "FromPackedProjection",
    "GenerateMutableProjection",
    "GenerateProjection",
    "GenerateUnsafeProjection",
    # Optimizer
    "OneRowRelation",
    "Optimizer",
    "Project",
]
