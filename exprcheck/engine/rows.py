"""
Boxed row representations.

Two variants share the InternalRow interface:

- GenericRow: immutable, backed by a tuple of Values.
- MutableRow: fixed layout with a declared type per slot, overwritten in
  place by generated mutable projections.

EMPTY_ROW is the distinguished zero-field row used wherever no input is
needed.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterator, Sequence

from exprcheck.engine.types import DataType
from exprcheck.engine.values import NULL, Value, duplicate, values_equal


class InternalRow(ABC):
    """Abstract row of internal Values."""

    @property
    @abstractmethod
    def num_fields(self) -> int:
        """Number of fields in the row."""
        pass

    @abstractmethod
    def get(self, ordinal: int) -> Value:
        """Return the Value at a position."""
        pass

    @abstractmethod
    def copy(self) -> "InternalRow":
        """Return a row that shares no mutable state with this one."""
        pass

    def is_null_at(self, ordinal: int) -> bool:
        return self.get(ordinal).is_null

    def values(self) -> tuple[Value, ...]:
        return tuple(self.get(i) for i in range(self.num_fields))

    def hash_code(self) -> int:
        """Content hash of the row, consistent with row equality."""
        h = 37
        for value in self.values():
            h = (h * 31 + value.content_hash()) & 0xFFFFFFFFFFFFFFFF
        return h

    def __hash__(self) -> int:
        return self.hash_code()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, InternalRow):
            return NotImplemented
        if self.num_fields != other.num_fields:
            return False
        return all(values_equal(a, b) for a, b in zip(self.values(), other.values()))

    def __len__(self) -> int:
        return self.num_fields

    def __iter__(self) -> Iterator[Value]:
        return iter(self.values())

    def __getitem__(self, ordinal: int) -> Value:
        return self.get(ordinal)

    def __repr__(self) -> str:
        return "[" + ",".join(str(v) for v in self.values()) + "]"


class GenericRow(InternalRow):
    """Immutable row backed by a tuple of Values."""

    __slots__ = ("_values",)

    def __init__(self, values: Sequence[Value] = ()) -> None:
        self._values = tuple(values)

    @property
    def num_fields(self) -> int:
        return len(self._values)

    def get(self, ordinal: int) -> Value:
        return self._values[ordinal]

    def values(self) -> tuple[Value, ...]:
        return self._values

    def copy(self) -> "GenericRow":
        return GenericRow([duplicate(v) for v in self._values])


class MutableRow(InternalRow):
    """Fixed-layout row whose slots are overwritten in place.

    Args:
        slot_types: Declared type of every slot.
    """

    def __init__(self, slot_types: Sequence[DataType]) -> None:
        self._slot_types = tuple(slot_types)
        self._values: list[Value] = [NULL] * len(self._slot_types)

    @property
    def num_fields(self) -> int:
        return len(self._values)

    @property
    def slot_types(self) -> tuple[DataType, ...]:
        return self._slot_types

    def get(self, ordinal: int) -> Value:
        return self._values[ordinal]

    def update(self, ordinal: int, value: Value) -> None:
        """Overwrite a slot.

        Raises:
            TypeError: If the value's type does not fit the slot.
        """
        if not value.is_null and not _fits_slot(value.data_type, self._slot_types[ordinal]):
            raise TypeError(
                f"Cannot write {value.data_type} into slot {ordinal} "
                f"of type {self._slot_types[ordinal]}"
            )
        self._values[ordinal] = value

    def set_null_at(self, ordinal: int) -> None:
        self._values[ordinal] = NULL

    def copy(self) -> GenericRow:
        return GenericRow([duplicate(v) for v in self._values])


def _fits_slot(value_type: DataType, slot_type: DataType) -> bool:
    # decimals of any precision and complex types of any shape share a slot
    return value_type.tag == slot_type.tag


EMPTY_ROW = GenericRow()


def is_empty_row(row: InternalRow) -> bool:
    """Whether a row is the EMPTY_ROW singleton."""
    return row is EMPTY_ROW
