"""Tests for the catalog row models."""

import pytest
from pydantic import ValidationError

from pgconsolidate.models.catalog import ColumnRow, ConstraintRow, IndexRow, TableRow


class TestTableRow:
    def test_from_row(self) -> None:
        row = TableRow.from_row({"table_schema": "public", "table_name": "users", "comment": None})

        assert row.table_name == "users"
        assert row.comment is None

    def test_rejects_blank_name(self) -> None:
        with pytest.raises(ValidationError):
            TableRow(table_schema="public", table_name="  ")

    def test_is_frozen(self) -> None:
        row = TableRow(table_schema="public", table_name="users")

        with pytest.raises(ValidationError):
            row.table_name = "accounts"


class TestColumnRow:
    @pytest.mark.parametrize(("value", "expected"), [("YES", True), ("NO", False), ("yes", True), (True, True)])
    def test_nullable_coercion(self, value: object, expected: bool) -> None:
        row = ColumnRow(column_name="email", ordinal_position=1, is_nullable=value, data_type="text")

        assert row.is_nullable is expected

    def test_ordinal_starts_at_one(self) -> None:
        with pytest.raises(ValidationError):
            ColumnRow(column_name="email", ordinal_position=0, is_nullable="NO", data_type="text")

    def test_unknown_fields_rejected(self) -> None:
        with pytest.raises(ValidationError):
            ColumnRow.from_row(
                {
                    "column_name": "email",
                    "ordinal_position": 1,
                    "is_nullable": "NO",
                    "data_type": "text",
                    "collation_name": "C",
                }
            )


class TestIndexRow:
    def test_defaults(self) -> None:
        row = IndexRow(index_name="users_email_idx", table_name="users", indexed_columns=("email",))

        assert row.indexed_columns == ["email"]
        assert row.index_type == "btree"
        assert not (row.is_unique or row.is_primary or row.is_functional or row.is_partial)

    def test_null_columns_become_empty(self) -> None:
        row = IndexRow(index_name="users_expr_idx", table_name="users", indexed_columns=None)

        assert row.indexed_columns == []

    def test_rejects_plain_string_columns(self) -> None:
        with pytest.raises(ValidationError):
            IndexRow(index_name="users_email_idx", table_name="users", indexed_columns="email")


class TestConstraintRow:
    @pytest.mark.parametrize("value", [b"c", "c"])
    def test_type_decoded(self, value: object) -> None:
        row = ConstraintRow(constraint_name="users_age_check", constraint_type=value, constraint_def="CHECK (age > 0)")

        assert row.constraint_type == "c"
