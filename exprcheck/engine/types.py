"""
Logical type model.

Types are an explicit tagged union: every DataType carries a TypeTag and,
for complex types, the component types. Code that branches on types
dispatches on the tag, never on Python classes of values.
"""

from dataclasses import dataclass
from enum import Enum


class TypeTag(Enum):
    """Tag of a logical data type."""

    NULL = "null"
    BOOLEAN = "boolean"
    BYTE = "tinyint"
    SHORT = "smallint"
    INTEGER = "int"
    LONG = "bigint"
    FLOAT = "float"
    DOUBLE = "double"
    DECIMAL = "decimal"
    DATE = "date"
    TIMESTAMP = "timestamp"
    STRING = "string"
    BINARY = "binary"
    ARRAY = "array"
    MAP = "map"
    STRUCT = "struct"


INTEGRAL_TAGS = frozenset({TypeTag.BYTE, TypeTag.SHORT, TypeTag.INTEGER, TypeTag.LONG})
FRACTIONAL_TAGS = frozenset({TypeTag.FLOAT, TypeTag.DOUBLE, TypeTag.DECIMAL})
FIXED_WIDTH_TAGS = frozenset(
    {
        TypeTag.NULL,
        TypeTag.BOOLEAN,
        TypeTag.BYTE,
        TypeTag.SHORT,
        TypeTag.INTEGER,
        TypeTag.LONG,
        TypeTag.FLOAT,
        TypeTag.DOUBLE,
        TypeTag.DATE,
        TypeTag.TIMESTAMP,
    }
)
VARIABLE_WIDTH_TAGS = frozenset({TypeTag.STRING, TypeTag.BINARY})

# Bit width of each integral tag, used for overflow wrapping
INTEGRAL_BITS = {
    TypeTag.BYTE: 8,
    TypeTag.SHORT: 16,
    TypeTag.INTEGER: 32,
    TypeTag.LONG: 64,
}


@dataclass(frozen=True)
class StructField:
    """A named field of a struct type."""

    name: str
    data_type: "DataType"
    nullable: bool = True


@dataclass(frozen=True)
class DataType:
    """A logical data type.

    Attributes:
        tag: Which kind of type this is.
        element_type: Element type of an ARRAY.
        key_type: Key type of a MAP.
        value_type: Value type of a MAP.
        fields: Fields of a STRUCT.
        precision: Precision of a DECIMAL.
        scale: Scale of a DECIMAL.
    """

    tag: TypeTag
    element_type: "DataType | None" = None
    key_type: "DataType | None" = None
    value_type: "DataType | None" = None
    fields: tuple[StructField, ...] = ()
    precision: int = 0
    scale: int = 0

    def simple_string(self) -> str:
        """Render the type the way it appears in diagnostics."""
        if self.tag == TypeTag.ARRAY:
            return f"array<{self.element_type.simple_string()}>"
        if self.tag == TypeTag.MAP:
            return f"map<{self.key_type.simple_string()},{self.value_type.simple_string()}>"
        if self.tag == TypeTag.STRUCT:
            inner = ",".join(f"{f.name}:{f.data_type.simple_string()}" for f in self.fields)
            return f"struct<{inner}>"
        if self.tag == TypeTag.DECIMAL:
            return f"decimal({self.precision},{self.scale})"
        return self.tag.value

    def __str__(self) -> str:
        return self.simple_string()


NullType = DataType(TypeTag.NULL)
BooleanType = DataType(TypeTag.BOOLEAN)
ByteType = DataType(TypeTag.BYTE)
ShortType = DataType(TypeTag.SHORT)
IntegerType = DataType(TypeTag.INTEGER)
LongType = DataType(TypeTag.LONG)
FloatType = DataType(TypeTag.FLOAT)
DoubleType = DataType(TypeTag.DOUBLE)
DateType = DataType(TypeTag.DATE)
TimestampType = DataType(TypeTag.TIMESTAMP)
StringType = DataType(TypeTag.STRING)
BinaryType = DataType(TypeTag.BINARY)


def DecimalType(precision: int = 38, scale: int = 18) -> DataType:  # noqa: N802
    """Build a DECIMAL type."""
    return DataType(TypeTag.DECIMAL, precision=precision, scale=scale)


def ArrayType(element_type: DataType) -> DataType:  # noqa: N802
    """Build an ARRAY type."""
    return DataType(TypeTag.ARRAY, element_type=element_type)


def MapType(key_type: DataType, value_type: DataType) -> DataType:  # noqa: N802
    """Build a MAP type."""
    return DataType(TypeTag.MAP, key_type=key_type, value_type=value_type)


def StructType(fields: list[StructField] | tuple[StructField, ...]) -> DataType:  # noqa: N802
    """Build a STRUCT type."""
    return DataType(TypeTag.STRUCT, fields=tuple(fields))


def is_integral(data_type: DataType) -> bool:
    return data_type.tag in INTEGRAL_TAGS


def is_fractional(data_type: DataType) -> bool:
    return data_type.tag in FRACTIONAL_TAGS


def is_numeric(data_type: DataType) -> bool:
    return is_integral(data_type) or is_fractional(data_type)


def is_fixed_width(data_type: DataType) -> bool:
    return data_type.tag in FIXED_WIDTH_TAGS


def is_variable_width(data_type: DataType) -> bool:
    return data_type.tag in VARIABLE_WIDTH_TAGS


def wrap_integral(value: int, data_type: DataType) -> int:
    """Wrap an int to the two's-complement width of an integral type."""
    bits = INTEGRAL_BITS[data_type.tag]
    mask = (1 << bits) - 1
    value &= mask
    if value >= 1 << (bits - 1):
        value -= 1 << bits
    return value
