"""Tests for the normalized schema models."""

import pytest
from pydantic import TypeAdapter, ValidationError

from pgconsolidate.models.enums import ColumnKind, IndexPlacement, IndexRole
from pgconsolidate.models.schema import (
    POSTGRESQL_IMPORT,
    RUNTIME_IMPORT,
    AutoIncrementColumnType,
    BooleanColumnType,
    BooleanDefault,
    ColumnDescriptor,
    ColumnType,
    ConstraintDescriptor,
    DecimalColumnType,
    EnumColumnType,
    FloatColumnType,
    IndexDescriptor,
    IntegerColumnType,
    JsonbColumnType,
    NumberDefault,
    SpecificColumnType,
    StringColumnType,
    StringDefault,
    TableDescriptor,
    TextColumnType,
    TimestampColumnType,
)


def _index(name: str, columns: list[str], placement: IndexPlacement, **overrides) -> IndexDescriptor:
    data = {"index_name": name, "table_name": "t", "indexed_columns": columns, "placement": placement}
    data.update(overrides)
    return IndexDescriptor(**data)


class TestColumnTypes:
    @pytest.mark.parametrize(
        ("column_type", "expected"),
        [
            (IntegerColumnType(), "sa.Integer()"),
            (AutoIncrementColumnType(), "sa.Integer()"),
            (StringColumnType(length=255), "sa.String(255)"),
            (StringColumnType(), "sa.String()"),
            (JsonbColumnType(), "postgresql.JSONB()"),
            (TimestampColumnType(), "sa.DateTime(timezone=True)"),
            (TextColumnType(), "sa.Text()"),
            (BooleanColumnType(), "sa.Boolean()"),
            (FloatColumnType(), "sa.REAL()"),
            (DecimalColumnType(), "sa.Numeric()"),
            (DecimalColumnType(precision=10), "sa.Numeric(10)"),
            (DecimalColumnType(precision=10, scale=0), "sa.Numeric(10)"),
            (DecimalColumnType(precision=12, scale=2), "sa.Numeric(12, 2)"),
            (SpecificColumnType(type_name="citext"), 'SpecificType("citext")'),
            (
                EnumColumnType(values=("new", "paid"), constraint_name="Order_status_check"),
                "sa.Text()",
            ),
        ],
    )
    def test_type_expression(self, column_type, expected: str) -> None:
        assert column_type.type_expression() == expected

    def test_extra_imports(self) -> None:
        assert POSTGRESQL_IMPORT in JsonbColumnType.imports
        assert RUNTIME_IMPORT in SpecificColumnType.imports
        assert IntegerColumnType.imports == ("import sqlalchemy as sa",)

    def test_enum_needs_values(self) -> None:
        with pytest.raises(ValidationError):
            EnumColumnType(values=(), constraint_name="t_c_check")

    def test_enum_check_keeps_text_and_name(self) -> None:
        column_type = EnumColumnType(values=("new", "it's paid"), constraint_name="Order_status_check")

        assert column_type.check_expression("status") == (
            'sa.CheckConstraint(sa.column("status", sa.Text()).in_(["new", "it\'s paid"]), '
            'name="Order_status_check")'
        )

    def test_union_dispatches_on_kind(self) -> None:
        adapter = TypeAdapter(ColumnType)

        parsed = adapter.validate_python({"kind": "decimal", "precision": 8, "scale": 3})

        assert isinstance(parsed, DecimalColumnType)
        assert parsed.kind == ColumnKind.DECIMAL

    def test_union_rejects_unknown_kind(self) -> None:
        with pytest.raises(ValidationError):
            TypeAdapter(ColumnType).validate_python({"kind": "money"})


class TestDefaults:
    def test_string_default_is_literal(self) -> None:
        assert StringDefault(value='say "hi"').expression() == '"say \\"hi\\""'

    def test_number_default_is_sql_text(self) -> None:
        assert NumberDefault(literal="-1.5").expression() == 'sa.text("-1.5")'

    @pytest.mark.parametrize(("value", "expected"), [(True, 'sa.text("true")'), (False, 'sa.text("false")')])
    def test_boolean_default(self, value: bool, expected: str) -> None:
        assert BooleanDefault(value=value).expression() == expected


class TestIndexDescriptor:
    @pytest.mark.parametrize(
        ("overrides", "role"),
        [
            ({"is_primary": True, "is_unique": True}, IndexRole.PRIMARY),
            ({"is_unique": True}, IndexRole.UNIQUE),
            ({}, IndexRole.PLAIN),
        ],
    )
    def test_role(self, overrides: dict, role: IndexRole) -> None:
        assert _index("i", ["a"], IndexPlacement.SINGLE, **overrides).role == role

    def test_column_names_strip_quotes(self) -> None:
        index = _index("i", ['"createdAt"', "id"], IndexPlacement.COMPOSITE)

        assert index.column_names == ["createdAt", "id"]


class TestColumnDescriptor:
    def test_auto_increment_is_primary(self) -> None:
        column = ColumnDescriptor(
            column_name="id",
            ordinal_position=1,
            is_nullable=False,
            data_type="integer",
            column_type=AutoIncrementColumnType(),
        )

        assert column.is_primary

    def test_primary_index_makes_primary(self) -> None:
        column = ColumnDescriptor(
            column_name="code",
            ordinal_position=1,
            is_nullable=False,
            data_type="text",
            column_type=TextColumnType(),
            index=_index("t_pkey", ["code"], IndexPlacement.SINGLE, is_primary=True, is_unique=True),
        )

        assert column.is_primary

    def test_plain_column_is_not_primary(self) -> None:
        column = ColumnDescriptor(
            column_name="code", ordinal_position=1, is_nullable=True, data_type="text", column_type=TextColumnType()
        )

        assert not column.is_primary


class TestTableDescriptor:
    def test_ordered_columns_follow_ordinal(self) -> None:
        columns = {
            name: ColumnDescriptor(
                column_name=name,
                ordinal_position=position,
                is_nullable=True,
                data_type="text",
                column_type=TextColumnType(),
            )
            for name, position in (("b", 2), ("a", 3), ("c", 1))
        }

        table = TableDescriptor(schema_name="public", table_name="t", columns=columns)

        assert [column.column_name for column in table.ordered_columns] == ["c", "b", "a"]

    def test_composite_indexes_grouped_by_role(self) -> None:
        table = TableDescriptor(
            schema_name="public",
            table_name="t",
            indexes=[
                _index("t_a_b_idx", ["a", "b"], IndexPlacement.COMPOSITE),
                _index("t_a_gin", ["a"], IndexPlacement.RAW, index_type="gin"),
                _index("t_a_b_key", ["a", "b"], IndexPlacement.COMPOSITE, is_unique=True),
                _index("t_pkey", ["a", "b"], IndexPlacement.COMPOSITE, is_primary=True, is_unique=True),
            ],
        )

        assert [index.index_name for index in table.composite_indexes] == ["t_pkey", "t_a_b_key", "t_a_b_idx"]
        assert [index.index_name for index in table.raw_indexes] == ["t_a_gin"]

    def test_pending_constraints_skip_consumed_and_non_check(self) -> None:
        table = TableDescriptor(
            schema_name="public",
            table_name="t",
            constraints={
                "t_a_check": ConstraintDescriptor(
                    constraint_name="t_a_check", constraint_type="c", constraint_def="CHECK (a > 0)", consumed=True
                ),
                "t_b_check": ConstraintDescriptor(
                    constraint_name="t_b_check", constraint_type="c", constraint_def="CHECK (b > 0)"
                ),
                "t_fk": ConstraintDescriptor(
                    constraint_name="t_fk", constraint_type="f", constraint_def="FOREIGN KEY (c) REFERENCES u(id)"
                ),
            },
        )

        assert [constraint.constraint_name for constraint in table.pending_constraints] == ["t_b_check"]
