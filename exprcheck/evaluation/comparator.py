"""
Result comparison.

Blob values are compared byte for byte. Two blobs produced by separate
allocations with identical content are equal; memory identity never
matters. Every other value uses structural equality.
"""

from typing import Any

from exprcheck.engine.rows import InternalRow
from exprcheck.engine.types import TypeTag
from exprcheck.engine.values import Value, values_equal

_RAW_BLOBS = (bytes, bytearray, memoryview)


def _blob_bytes(value: Any) -> memoryview | None:
    """Return a byte view when ``value`` is a blob, else None."""
    if isinstance(value, Value):
        if not value.is_null and value.tag == TypeTag.BINARY:
            return memoryview(value.payload)
        return None
    if isinstance(value, _RAW_BLOBS):
        return memoryview(value)
    return None


def check_result(actual: Any, expected: Any) -> bool:
    """Whether an evaluation result matches the expected value.

    Args:
        actual: Value produced by a backend.
        expected: Expected value, already converted to internal form.

    Returns:
        True when both are blobs with the same bytes, or when they are
        structurally equal.
    """
    actual_blob = _blob_bytes(actual)
    expected_blob = _blob_bytes(expected)
    if actual_blob is not None and expected_blob is not None:
        if actual_blob.nbytes != expected_blob.nbytes:
            return False
        return actual_blob.tobytes() == expected_blob.tobytes()

    if isinstance(actual, Value) and isinstance(expected, Value):
        return values_equal(actual, expected)
    return actual == expected


equal = check_result


def rows_equal(actual: InternalRow, expected: InternalRow) -> bool:
    """Slot-wise check_result over two boxed rows."""
    if actual.num_fields != expected.num_fields:
        return False
    return all(
        check_result(actual.get(i), expected.get(i)) for i in range(actual.num_fields)
    )
