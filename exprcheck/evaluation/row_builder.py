"""
Input row construction from host literals.
"""

from collections.abc import Iterable
from typing import Any

from exprcheck.engine.conversion import convert_to_internal
from exprcheck.engine.rows import GenericRow
from exprcheck.exceptions import ConversionError


def build_row(values: Iterable[Any]) -> GenericRow:
    """Convert host literals and assemble them into an immutable row.

    The build is all or nothing: no row is returned when any position fails.

    Args:
        values: Host literals in field order.

    Returns:
        GenericRow with one converted Value per literal.

    Raises:
        ConversionError: Naming the first position that could not be converted.
    """
    converted = []
    for position, literal in enumerate(values):
        try:
            converted.append(convert_to_internal(literal))
        except ConversionError as e:
            raise ConversionError(
                f"Cannot convert value {literal!r} at position {position}: {e.message}",
                position=position,
                value=literal,
            ) from e
    return GenericRow(converted)


def create_row(*values: Any) -> GenericRow:
    """Variadic form of build_row: ``create_row(1, "a", None)``."""
    return build_row(values)
