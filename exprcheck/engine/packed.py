"""
Packed binary row format.

A packed row is a single byte buffer, little-endian and 8-byte aligned:

    [null bit set][fixed-length region][variable-length region]

- null bit set: ceil(n / 64) 64-bit words; bit i is set when field i is null.
- fixed-length region: one 8-byte word per field. Fixed-width values are
  stored in the word itself.
- variable-length region: string and binary bytes, each padded to a word
  boundary. The field's word holds (offset << 32) | length, with the offset
  measured from the start of the buffer.

Packed rows are not comparable with boxed rows. Decode them with
decode_row() (the inverse projection) first.
"""

import struct
from collections.abc import Sequence

from exprcheck.engine.rows import GenericRow, InternalRow
from exprcheck.engine.types import DataType, TypeTag, is_fixed_width, is_variable_width
from exprcheck.engine.values import NULL, UTF8String, Value
from exprcheck.exceptions import UnsupportedTypeError

WORD_SIZE = 8

# struct codes for values stored inside a fixed-length word
_FIXED_CODES = {
    TypeTag.BOOLEAN: "<?",
    TypeTag.BYTE: "<b",
    TypeTag.SHORT: "<h",
    TypeTag.INTEGER: "<i",
    TypeTag.LONG: "<q",
    TypeTag.FLOAT: "<f",
    TypeTag.DOUBLE: "<d",
    TypeTag.DATE: "<i",
    TypeTag.TIMESTAMP: "<q",
}


def is_embeddable(data_type: DataType) -> bool:
    """Whether a type can be laid out in a packed row."""
    return is_fixed_width(data_type) or is_variable_width(data_type)


def _null_bits_size(num_fields: int) -> int:
    return ((num_fields + 63) // 64) * WORD_SIZE


def _round_to_word(length: int) -> int:
    return (length + WORD_SIZE - 1) // WORD_SIZE * WORD_SIZE


class PackedRow:
    """Read-only view over a packed row buffer.

    Args:
        schema: Type of every field.
        buffer: The packed bytes.
    """

    __slots__ = ("_schema", "_buffer", "_fixed_offset")

    def __init__(self, schema: Sequence[DataType], buffer: bytes) -> None:
        self._schema = tuple(schema)
        self._buffer = bytes(buffer)
        self._fixed_offset = _null_bits_size(len(self._schema))

    @property
    def schema(self) -> tuple[DataType, ...]:
        return self._schema

    @property
    def num_fields(self) -> int:
        return len(self._schema)

    @property
    def size_in_bytes(self) -> int:
        return len(self._buffer)

    def to_bytes(self) -> bytes:
        return self._buffer

    def is_null_at(self, ordinal: int) -> bool:
        word = struct.unpack_from("<Q", self._buffer, (ordinal // 64) * WORD_SIZE)[0]
        return bool(word >> (ordinal % 64) & 1)

    def get(self, ordinal: int) -> Value:
        """Decode a single field."""
        if self.is_null_at(ordinal):
            return NULL
        data_type = self._schema[ordinal]
        offset = self._fixed_offset + ordinal * WORD_SIZE
        if data_type.tag in _FIXED_CODES:
            payload = struct.unpack_from(_FIXED_CODES[data_type.tag], self._buffer, offset)[0]
            return Value(data_type, payload)
        if is_variable_width(data_type):
            pointer = struct.unpack_from("<Q", self._buffer, offset)[0]
            start, length = pointer >> 32, pointer & 0xFFFFFFFF
            data = self._buffer[start : start + length]
            if data_type.tag == TypeTag.STRING:
                return Value(data_type, UTF8String(data))
            return Value(data_type, bytearray(data))
        raise UnsupportedTypeError(f"Cannot decode field of type {data_type}")

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PackedRow):
            return self._schema == other._schema and self._buffer == other._buffer
        if isinstance(other, InternalRow):
            raise TypeError("Packed rows cannot be compared with boxed rows; decode first")
        return NotImplemented

    def __hash__(self) -> int:
        return hash(self._buffer)

    def __len__(self) -> int:
        return self.num_fields

    def __repr__(self) -> str:
        words = [
            self._buffer[i : i + WORD_SIZE].hex() for i in range(0, len(self._buffer), WORD_SIZE)
        ]
        return f"PackedRow({' '.join(words)})"


class PackedRowWriter:
    """Builds packed rows for a fixed schema.

    Args:
        schema: Type of every field.

    Raises:
        UnsupportedTypeError: If any field type is not embeddable.
    """

    def __init__(self, schema: Sequence[DataType]) -> None:
        self._schema = tuple(schema)
        for data_type in self._schema:
            if not is_embeddable(data_type):
                raise UnsupportedTypeError(
                    f"Type {data_type} cannot be embedded in a packed row"
                )
        self._fixed_offset = _null_bits_size(len(self._schema))
        self._fixed_size = self._fixed_offset + len(self._schema) * WORD_SIZE
        self.reset()

    def reset(self) -> None:
        """Start a new row."""
        self._buffer = bytearray(self._fixed_size)

    def set_null_at(self, ordinal: int) -> None:
        bit_offset = (ordinal // 64) * WORD_SIZE
        word = struct.unpack_from("<Q", self._buffer, bit_offset)[0]
        struct.pack_into("<Q", self._buffer, bit_offset, word | (1 << (ordinal % 64)))
        struct.pack_into("<Q", self._buffer, self._word_offset(ordinal), 0)

    def write(self, ordinal: int, value: Value) -> None:
        """Write a field, appending variable-length data when needed."""
        if value.is_null:
            self.set_null_at(ordinal)
            return
        self._clear_null_bit(ordinal)
        data_type = self._schema[ordinal]
        offset = self._word_offset(ordinal)
        struct.pack_into("<Q", self._buffer, offset, 0)
        if data_type.tag in _FIXED_CODES:
            struct.pack_into(_FIXED_CODES[data_type.tag], self._buffer, offset, value.payload)
            return
        if data_type.tag == TypeTag.STRING:
            data = value.payload.data
        elif data_type.tag == TypeTag.BINARY:
            data = bytes(value.payload)
        else:
            raise UnsupportedTypeError(f"Cannot write value of type {data_type}")
        start = len(self._buffer)
        self._buffer.extend(data)
        self._buffer.extend(b"\x00" * (_round_to_word(len(data)) - len(data)))
        struct.pack_into("<Q", self._buffer, offset, (start << 32) | len(data))

    def build(self) -> PackedRow:
        return PackedRow(self._schema, bytes(self._buffer))

    def _word_offset(self, ordinal: int) -> int:
        return self._fixed_offset + ordinal * WORD_SIZE

    def _clear_null_bit(self, ordinal: int) -> None:
        bit_offset = (ordinal // 64) * WORD_SIZE
        word = struct.unpack_from("<Q", self._buffer, bit_offset)[0]
        struct.pack_into("<Q", self._buffer, bit_offset, word & ~(1 << (ordinal % 64)))


def encode_row(row: InternalRow, schema: Sequence[DataType]) -> PackedRow:
    """Pack a boxed row.

    Raises:
        UnsupportedTypeError: If any field type is not embeddable.
    """
    schema = tuple(schema)
    writer = PackedRowWriter(schema)
    for i in range(len(schema)):
        writer.write(i, row.get(i))
    return writer.build()


def decode_row(packed: PackedRow) -> GenericRow:
    """Unpack a packed row into an immutable boxed row."""
    return GenericRow([packed.get(i) for i in range(packed.num_fields)])
