"""
Internal value representation.

A Value pairs a DataType with a payload in the engine's internal form:

    NULL                  None
    BOOLEAN               bool
    BYTE/SHORT/INT/LONG   int (wrapped to the type width)
    FLOAT/DOUBLE          float (FLOAT rounded to 32-bit precision)
    DECIMAL               decimal.Decimal
    DATE                  int, days since 1970-01-01
    TIMESTAMP             int, microseconds since 1970-01-01T00:00:00
    STRING                UTF8String
    BINARY                bytearray (a blob allocation of its own)
    ARRAY, STRUCT         tuple[Value, ...]
    MAP                   tuple[tuple[Value, Value], ...]

Equality is structural: same tag and same payload. NaN equals NaN, blobs
compare by content and maps compare as unordered sets of entries. Values of
different tags are never equal, even when both are numbers.
"""

import math
import struct
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Any

from exprcheck.engine.types import (
    DataType,
    FloatType,
    NullType,
    TypeTag,
    is_numeric,
)

EPOCH_DATE = date(1970, 1, 1)
EPOCH_DATETIME = datetime(1970, 1, 1)

# Hash shared by every NaN so that NaN values hash consistently with equality
_NAN_HASH = 0x7FF8000000000000
_HASH_MASK = 0xFFFFFFFFFFFFFFFF


class UTF8String:
    """Immutable string stored as UTF-8 bytes."""

    __slots__ = ("_data",)

    def __init__(self, data: bytes) -> None:
        self._data = bytes(data)

    @classmethod
    def from_str(cls, text: str) -> "UTF8String":
        return cls(text.encode("utf-8"))

    @property
    def data(self) -> bytes:
        return self._data

    def num_bytes(self) -> int:
        return len(self._data)

    def num_chars(self) -> int:
        return len(self._data.decode("utf-8"))

    def concat(self, other: "UTF8String") -> "UTF8String":
        return UTF8String(self._data + other._data)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, UTF8String):
            return NotImplemented
        return self._data == other._data

    def __hash__(self) -> int:
        return hash(self._data)

    def __str__(self) -> str:
        return self._data.decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"UTF8String({str(self)!r})"


def round_to_float32(value: float) -> float:
    """Round a Python float to the nearest 32-bit float."""
    return struct.unpack("<f", struct.pack("<f", value))[0]


def _is_nan(payload: Any) -> bool:
    return isinstance(payload, float) and math.isnan(payload)


@dataclass(frozen=True, eq=False)
class Value:
    """A tagged internal value.

    Attributes:
        data_type: Logical type of the value.
        payload: Internal payload, None for null.
    """

    data_type: DataType
    payload: Any

    @property
    def tag(self) -> TypeTag:
        return self.data_type.tag

    @property
    def is_null(self) -> bool:
        return self.payload is None

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Value):
            return NotImplemented
        return values_equal(self, other)

    def __hash__(self) -> int:
        return self.content_hash()

    def content_hash(self) -> int:
        """Hash consistent with structural equality."""
        if self.is_null:
            return hash(None)
        if _is_nan(self.payload):
            return hash((self.tag, _NAN_HASH))
        if self.tag == TypeTag.BINARY:
            return hash((TypeTag.BINARY, bytes(self.payload)))
        if self.tag == TypeTag.MAP:
            # order-independent over entries
            entries = sum(hash((k.content_hash(), v.content_hash())) for k, v in self.payload)
            return hash((TypeTag.MAP, entries & _HASH_MASK))
        return hash((self.tag, self.payload))

    def to_python(self) -> Any:
        """Convert back to a host-level value."""
        if self.is_null:
            return None
        tag = self.tag
        if tag == TypeTag.DATE:
            return EPOCH_DATE + timedelta(days=self.payload)
        if tag == TypeTag.TIMESTAMP:
            return EPOCH_DATETIME + timedelta(microseconds=self.payload)
        if tag == TypeTag.STRING:
            return str(self.payload)
        if tag == TypeTag.BINARY:
            return bytes(self.payload)
        if tag == TypeTag.ARRAY:
            return [v.to_python() for v in self.payload]
        if tag == TypeTag.STRUCT:
            return tuple(v.to_python() for v in self.payload)
        if tag == TypeTag.MAP:
            return {k.to_python(): v.to_python() for k, v in self.payload}
        return self.payload

    def __str__(self) -> str:
        if self.is_null:
            return "null"
        tag = self.tag
        if tag == TypeTag.BINARY:
            return "[" + ",".join(f"0x{b:02X}" for b in self.payload) + "]"
        if tag == TypeTag.BOOLEAN:
            return "true" if self.payload else "false"
        if tag in (TypeTag.ARRAY, TypeTag.STRUCT):
            return "[" + ",".join(str(v) for v in self.payload) + "]"
        if tag == TypeTag.MAP:
            return "{" + ",".join(f"{k}:{v}" for k, v in self.payload) + "}"
        if tag in (TypeTag.DATE, TypeTag.TIMESTAMP):
            return self.to_python().isoformat()
        return str(self.payload)

    def __repr__(self) -> str:
        return f"Value({self.data_type.simple_string()}, {self})"


NULL = Value(NullType, None)


def values_equal(a: Value, b: Value) -> bool:
    """Structural equality of two internal values."""
    if a.is_null or b.is_null:
        return a.is_null and b.is_null
    if a.tag != b.tag:
        return False
    if _is_nan(a.payload) or _is_nan(b.payload):
        return _is_nan(a.payload) and _is_nan(b.payload)
    if a.tag == TypeTag.BINARY:
        return bytes(a.payload) == bytes(b.payload)
    if a.tag in (TypeTag.ARRAY, TypeTag.STRUCT):
        return len(a.payload) == len(b.payload) and all(
            values_equal(x, y) for x, y in zip(a.payload, b.payload)
        )
    if a.tag == TypeTag.MAP:
        return len(a.payload) == len(b.payload) and all(
            any(values_equal(ka, kb) and values_equal(va, vb) for kb, vb in b.payload)
            for ka, va in a.payload
        )
    return a.payload == b.payload


def values_equivalent(a: Value, b: Value) -> bool:
    """Equality as the ``=`` predicate sees it: numbers compare by value across tags."""
    if not a.is_null and not b.is_null and is_numeric(a.data_type) and is_numeric(b.data_type):
        if _is_nan(a.payload) or _is_nan(b.payload):
            return _is_nan(a.payload) and _is_nan(b.payload)
        return a.payload == b.payload
    return values_equal(a, b)


def make_value(data_type: DataType, payload: Any) -> Value:
    """Build a Value, normalizing payloads that need it."""
    if payload is None:
        return NULL
    if data_type == FloatType:
        payload = round_to_float32(float(payload))
    elif data_type.tag == TypeTag.BINARY and not isinstance(payload, bytearray):
        payload = bytearray(payload)
    elif data_type.tag == TypeTag.STRING and not isinstance(payload, UTF8String):
        payload = UTF8String.from_str(payload) if isinstance(payload, str) else UTF8String(payload)
    return Value(data_type, payload)


def duplicate(value: Value) -> Value:
    """Copy a value so that no mutable payload is shared with the original."""
    if value.is_null:
        return value
    if value.tag == TypeTag.BINARY:
        return Value(value.data_type, bytearray(value.payload))
    if value.tag in (TypeTag.ARRAY, TypeTag.STRUCT):
        return Value(value.data_type, tuple(duplicate(v) for v in value.payload))
    if value.tag == TypeTag.MAP:
        return Value(
            value.data_type, tuple((duplicate(k), duplicate(v)) for k, v in value.payload)
        )
    return value
