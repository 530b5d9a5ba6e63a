"""Tests for exprcheck/engine/rows.py - boxed rows."""

import pytest


class TestGenericRow:
    """Tests for GenericRow."""

    def test_copy_is_equal(self):
        """A copy should equal its source."""
        from exprcheck.evaluation.row_builder import create_row

        row = create_row(1, "a", b"xy", None, [1, 2])

        assert row.copy() == row

    def test_copy_shares_no_blob(self):
        """Mutating a blob in the source should not affect the copy."""
        from exprcheck.evaluation.row_builder import create_row

        row = create_row(b"AB")
        copied = row.copy()
        row.get(0).payload[0] = 0x5A

        assert bytes(copied.get(0).payload) == b"AB"

    def test_hash_code_consistent_with_equality(self):
        """Equal rows built separately should have equal hash codes."""
        from exprcheck.evaluation.row_builder import create_row

        assert create_row(8, b"AB").hash_code() == create_row(8, b"AB").hash_code()

    def test_hash_code_depends_on_content(self):
        """Rows with different content should (here) hash differently."""
        from exprcheck.evaluation.row_builder import create_row

        assert create_row(8).hash_code() != create_row(9).hash_code()

    def test_repr_lists_values(self):
        """repr should render the values in brackets."""
        from exprcheck.evaluation.row_builder import create_row

        assert repr(create_row(1, None, b"A")) == "[1,null,[0x41]]"

    def test_empty_row_is_recognized(self):
        """is_empty_row should only be true for the EMPTY_ROW singleton."""
        from exprcheck.engine.rows import EMPTY_ROW, GenericRow, is_empty_row

        assert is_empty_row(EMPTY_ROW)
        assert not is_empty_row(GenericRow())
        assert GenericRow() == EMPTY_ROW


class TestMutableRow:
    """Tests for MutableRow."""

    def test_slots_start_null(self):
        """A new mutable row should be all nulls."""
        from exprcheck.engine.rows import MutableRow
        from exprcheck.engine.types import IntegerType, StringType

        row = MutableRow([IntegerType, StringType])

        assert row.num_fields == 2
        assert row.is_null_at(0) and row.is_null_at(1)

    def test_update_overwrites_in_place(self):
        """update should overwrite a slot, set_null_at should clear it."""
        from exprcheck.engine.conversion import convert_to_internal
        from exprcheck.engine.rows import MutableRow
        from exprcheck.engine.types import IntegerType

        row = MutableRow([IntegerType])
        row.update(0, convert_to_internal(5))
        assert row.get(0).payload == 5

        row.update(0, convert_to_internal(6))
        assert row.get(0).payload == 6

        row.set_null_at(0)
        assert row.is_null_at(0)

    def test_update_rejects_wrong_type(self):
        """Writing a string into an int slot should fail."""
        from exprcheck.engine.conversion import convert_to_internal
        from exprcheck.engine.rows import MutableRow
        from exprcheck.engine.types import IntegerType

        row = MutableRow([IntegerType])

        with pytest.raises(TypeError, match="slot 0"):
            row.update(0, convert_to_internal("a"))

    def test_copy_is_immutable_snapshot(self):
        """A copy should not follow later updates of the mutable row."""
        from exprcheck.engine.conversion import convert_to_internal
        from exprcheck.engine.rows import GenericRow, MutableRow
        from exprcheck.engine.types import IntegerType

        row = MutableRow([IntegerType])
        row.update(0, convert_to_internal(1))
        snapshot = row.copy()
        row.update(0, convert_to_internal(2))

        assert isinstance(snapshot, GenericRow)
        assert snapshot.get(0).payload == 1

    def test_equals_generic_row_with_same_values(self):
        """Row equality should not depend on the row variant."""
        from exprcheck.engine.conversion import convert_to_internal
        from exprcheck.engine.rows import MutableRow
        from exprcheck.engine.types import IntegerType
        from exprcheck.evaluation.row_builder import create_row

        row = MutableRow([IntegerType])
        row.update(0, convert_to_internal(3))

        assert row == create_row(3)
