"""
Host literal conversion.

Converts Python values into internal Values. Conversion is total for the
supported literal kinds and deterministic: the same host value always
converts to an equal Value.

    None                      -> NULL
    bool                      -> boolean
    int                       -> int, bigint or decimal(38,0) by magnitude
    float                     -> double
    decimal.Decimal           -> decimal(38,18)
    str                       -> string
    bytes/bytearray/memoryview-> binary
    datetime.datetime         -> timestamp
    datetime.date             -> date
    list                      -> array
    tuple                     -> struct<_1,_2,...>
    dict                      -> map

Anything else raises ConversionError.
"""

from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Any

from exprcheck.engine.types import (
    ArrayType,
    BinaryType,
    BooleanType,
    DataType,
    DateType,
    DecimalType,
    DoubleType,
    IntegerType,
    LongType,
    MapType,
    NullType,
    StringType,
    StructField,
    StructType,
    TimestampType,
    TypeTag,
    INTEGRAL_BITS,
    is_fractional,
    is_integral,
)
from exprcheck.engine.values import (
    EPOCH_DATE,
    EPOCH_DATETIME,
    NULL,
    UTF8String,
    Value,
    make_value,
)
from exprcheck.exceptions import ConversionError

INT_MIN, INT_MAX = -(2**31), 2**31 - 1
LONG_MIN, LONG_MAX = -(2**63), 2**63 - 1
MAX_DECIMAL_DIGITS = 38

SYSTEM_DEFAULT_DECIMAL = DecimalType(38, 18)


def infer_type(host_value: Any) -> DataType:
    """Infer the logical type of a host literal.

    Raises:
        ConversionError: If the literal kind is unsupported.
    """
    if isinstance(host_value, Value):
        return host_value.data_type
    if host_value is None:
        return NullType
    if isinstance(host_value, bool):
        return BooleanType
    if isinstance(host_value, int):
        if INT_MIN <= host_value <= INT_MAX:
            return IntegerType
        if LONG_MIN <= host_value <= LONG_MAX:
            return LongType
        if len(str(abs(host_value))) <= MAX_DECIMAL_DIGITS:
            return DecimalType(38, 0)
        raise ConversionError(f"Integer literal out of range: {host_value}", value=host_value)
    if isinstance(host_value, float):
        return DoubleType
    if isinstance(host_value, Decimal):
        if not host_value.is_finite():
            raise ConversionError(
                f"Decimal literal is not finite: {host_value}", value=host_value
            )
        return SYSTEM_DEFAULT_DECIMAL
    if isinstance(host_value, (str, UTF8String)):
        return StringType
    if isinstance(host_value, (bytes, bytearray, memoryview)):
        return BinaryType
    # datetime subclasses date, so it goes first
    if isinstance(host_value, datetime):
        return TimestampType
    if isinstance(host_value, date):
        return DateType
    if isinstance(host_value, list):
        return ArrayType(_common_type([infer_type(v) for v in host_value], host_value))
    if isinstance(host_value, tuple):
        return StructType(
            [StructField(f"_{i + 1}", infer_type(v)) for i, v in enumerate(host_value)]
        )
    if isinstance(host_value, dict):
        key_type = _common_type([infer_type(k) for k in host_value], host_value)
        if key_type == NullType and host_value:
            raise ConversionError("Map keys cannot be null", value=host_value)
        value_type = _common_type([infer_type(v) for v in host_value.values()], host_value)
        return MapType(key_type, value_type)
    raise ConversionError(
        f"Unsupported literal type: {type(host_value).__name__}", value=host_value
    )


def convert_to_internal(host_value: Any, data_type: DataType | None = None) -> Value:
    """Convert a host literal to an internal Value.

    Args:
        host_value: Python value to convert.
        data_type: Target type; inferred from the literal when omitted.

    Returns:
        The internal Value.

    Raises:
        ConversionError: If the literal kind is unsupported or does not fit
            the target type.
    """
    if isinstance(host_value, Value):
        return host_value
    if host_value is None:
        return NULL
    if data_type is None:
        data_type = infer_type(host_value)

    tag = data_type.tag
    if tag == TypeTag.NULL:
        return NULL
    if tag == TypeTag.BOOLEAN:
        return Value(data_type, bool(host_value))
    if is_integral(data_type):
        return Value(data_type, _to_integral(host_value, data_type))
    if is_fractional(data_type):
        if tag == TypeTag.DECIMAL:
            return Value(data_type, Decimal(host_value))
        return make_value(data_type, float(host_value))
    if tag == TypeTag.STRING:
        if isinstance(host_value, UTF8String):
            return Value(data_type, host_value)
        return Value(data_type, UTF8String.from_str(str(host_value)))
    if tag == TypeTag.BINARY:
        # always a fresh allocation, never the caller's buffer
        return Value(data_type, bytearray(host_value))
    if tag == TypeTag.DATE:
        if isinstance(host_value, datetime):
            host_value = host_value.date()
        return Value(data_type, (host_value - EPOCH_DATE).days)
    if tag == TypeTag.TIMESTAMP:
        return Value(data_type, _timestamp_micros(host_value))
    if tag == TypeTag.ARRAY:
        return Value(
            data_type,
            tuple(convert_to_internal(v, data_type.element_type) for v in host_value),
        )
    if tag == TypeTag.STRUCT:
        if len(host_value) != len(data_type.fields):
            raise ConversionError(
                f"Struct literal has {len(host_value)} fields, "
                f"type expects {len(data_type.fields)}",
                value=host_value,
            )
        return Value(
            data_type,
            tuple(
                convert_to_internal(v, f.data_type)
                for v, f in zip(host_value, data_type.fields)
            ),
        )
    if tag == TypeTag.MAP:
        return Value(
            data_type,
            tuple(
                (
                    convert_to_internal(k, data_type.key_type),
                    convert_to_internal(v, data_type.value_type),
                )
                for k, v in host_value.items()
            ),
        )
    raise ConversionError(f"Cannot convert to {data_type}", value=host_value)


def _to_integral(host_value: Any, data_type: DataType) -> int:
    if isinstance(host_value, bool) or not isinstance(host_value, (int, float, Decimal)):
        raise ConversionError(
            f"Cannot convert {type(host_value).__name__} to {data_type}", value=host_value
        )
    value = int(host_value)
    bits = INTEGRAL_BITS[data_type.tag]
    if not -(2 ** (bits - 1)) <= value < 2 ** (bits - 1):
        raise ConversionError(f"Value {value} does not fit {data_type}", value=host_value)
    return value


def _timestamp_micros(host_value: datetime) -> int:
    if host_value.tzinfo is not None:
        host_value = host_value.astimezone(timezone.utc).replace(tzinfo=None)
    delta = host_value - EPOCH_DATETIME
    return (delta.days * 86_400 + delta.seconds) * 1_000_000 + delta.microseconds


def _common_type(types: list[DataType], host_value: Any) -> DataType:
    """Find the type every element of a collection literal can take."""
    non_null = [t for t in types if t != NullType]
    if not non_null:
        return NullType
    result = non_null[0]
    for t in non_null[1:]:
        if t == result:
            continue
        if is_integral(t) and is_integral(result):
            result = t if INTEGRAL_BITS[t.tag] > INTEGRAL_BITS[result.tag] else result
        elif (is_integral(t) or t == DoubleType) and (is_integral(result) or result == DoubleType):
            result = DoubleType
        else:
            raise ConversionError(
                f"Collection literal mixes incompatible types {result} and {t}",
                value=host_value,
            )
    return result
