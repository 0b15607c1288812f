"""Normalized schema model built from catalog rows.

Column kinds form a closed set of variants, each carrying only the parameters
it needs and knowing how to spell itself as an SQLAlchemy type expression.
Normalization decides the variant once, so rendering never falls back to a
default branch.
"""

from typing import Annotated, ClassVar, Literal, Union

from pydantic import Field

from pgconsolidate.models.base import FrozenModel, python_literal, strip_identifier_quotes
from pgconsolidate.models.catalog import ColumnRow, ConstraintRow, IndexRow
from pgconsolidate.models.enums import ColumnKind, ConstraintType, IndexPlacement, IndexRole

SA_IMPORT = "import sqlalchemy as sa"
POSTGRESQL_IMPORT = "from sqlalchemy.dialects import postgresql"
RUNTIME_IMPORT = "from pgconsolidate.runtime import SpecificType"


class _ColumnTypeBase(FrozenModel):
    imports: ClassVar[tuple[str, ...]] = (SA_IMPORT,)

    def type_expression(self) -> str:
        raise NotImplementedError


class IntegerColumnType(_ColumnTypeBase):
    kind: Literal[ColumnKind.INTEGER] = ColumnKind.INTEGER

    def type_expression(self) -> str:
        return "sa.Integer()"


class AutoIncrementColumnType(_ColumnTypeBase):
    kind: Literal[ColumnKind.AUTO_INCREMENT] = ColumnKind.AUTO_INCREMENT

    def type_expression(self) -> str:
        return "sa.Integer()"


class StringColumnType(_ColumnTypeBase):
    kind: Literal[ColumnKind.STRING] = ColumnKind.STRING
    length: int | None = Field(default=None, gt=0)

    def type_expression(self) -> str:
        if self.length is None:
            return "sa.String()"
        return f"sa.String({self.length})"


class JsonbColumnType(_ColumnTypeBase):
    kind: Literal[ColumnKind.JSONB] = ColumnKind.JSONB
    imports: ClassVar[tuple[str, ...]] = (SA_IMPORT, POSTGRESQL_IMPORT)

    def type_expression(self) -> str:
        return "postgresql.JSONB()"


class TimestampColumnType(_ColumnTypeBase):
    kind: Literal[ColumnKind.TIMESTAMP] = ColumnKind.TIMESTAMP

    def type_expression(self) -> str:
        return "sa.DateTime(timezone=True)"


class TextColumnType(_ColumnTypeBase):
    kind: Literal[ColumnKind.TEXT] = ColumnKind.TEXT

    def type_expression(self) -> str:
        return "sa.Text()"


class EnumColumnType(_ColumnTypeBase):
    """Text column whose check constraint only admits a list of literals."""

    kind: Literal[ColumnKind.ENUM] = ColumnKind.ENUM
    values: tuple[str, ...] = Field(min_length=1)
    constraint_name: str

    def type_expression(self) -> str:
        return "sa.Text()"

    def check_expression(self, column_name: str) -> str:
        """Table-level check that restores the named constraint over the text column."""
        values = ", ".join(python_literal(value) for value in self.values)
        return (
            f"sa.CheckConstraint(sa.column({python_literal(column_name)}, sa.Text()).in_([{values}]), "
            f"name={python_literal(self.constraint_name)})"
        )


class BooleanColumnType(_ColumnTypeBase):
    kind: Literal[ColumnKind.BOOLEAN] = ColumnKind.BOOLEAN

    def type_expression(self) -> str:
        return "sa.Boolean()"


class FloatColumnType(_ColumnTypeBase):
    kind: Literal[ColumnKind.FLOAT] = ColumnKind.FLOAT

    def type_expression(self) -> str:
        return "sa.REAL()"


class DecimalColumnType(_ColumnTypeBase):
    kind: Literal[ColumnKind.DECIMAL] = ColumnKind.DECIMAL
    precision: int | None = Field(default=None, gt=0)
    scale: int | None = Field(default=None, ge=0)

    def type_expression(self) -> str:
        if self.precision is None:
            return "sa.Numeric()"
        if self.scale:
            return f"sa.Numeric({self.precision}, {self.scale})"
        return f"sa.Numeric({self.precision})"


class SpecificColumnType(_ColumnTypeBase):
    """User-defined type passed through by name."""

    kind: Literal[ColumnKind.SPECIFIC_TYPE] = ColumnKind.SPECIFIC_TYPE
    type_name: str
    imports: ClassVar[tuple[str, ...]] = (SA_IMPORT, RUNTIME_IMPORT)

    def type_expression(self) -> str:
        return f"SpecificType({python_literal(self.type_name)})"


ColumnType = Annotated[
    Union[
        IntegerColumnType,
        AutoIncrementColumnType,
        StringColumnType,
        JsonbColumnType,
        TimestampColumnType,
        TextColumnType,
        EnumColumnType,
        BooleanColumnType,
        FloatColumnType,
        DecimalColumnType,
        SpecificColumnType,
    ],
    Field(discriminator="kind"),
]


class StringDefault(FrozenModel):
    kind: Literal["string"] = "string"
    value: str

    def expression(self) -> str:
        return python_literal(self.value)


class NumberDefault(FrozenModel):
    kind: Literal["number"] = "number"
    literal: str

    def expression(self) -> str:
        return f"sa.text({python_literal(self.literal)})"


class BooleanDefault(FrozenModel):
    kind: Literal["boolean"] = "boolean"
    value: bool

    def expression(self) -> str:
        return f"sa.text({python_literal('true' if self.value else 'false')})"


DefaultValue = Annotated[
    Union[StringDefault, NumberDefault, BooleanDefault],
    Field(discriminator="kind"),
]


class IndexDescriptor(IndexRow):
    placement: IndexPlacement

    @property
    def role(self) -> IndexRole:
        if self.is_primary:
            return IndexRole.PRIMARY
        if self.is_unique:
            return IndexRole.UNIQUE
        return IndexRole.PLAIN

    @property
    def column_names(self) -> list[str]:
        return [strip_identifier_quotes(column) for column in self.indexed_columns]


class ConstraintDescriptor(ConstraintRow):
    consumed: bool = False

    @property
    def is_check(self) -> bool:
        return self.constraint_type == ConstraintType.CHECK


class ColumnDescriptor(ColumnRow):
    column_type: ColumnType
    default: DefaultValue | None = None
    index: IndexDescriptor | None = None
    enum_constraint_name: str | None = None

    @property
    def is_primary(self) -> bool:
        if isinstance(self.column_type, AutoIncrementColumnType):
            return True
        return self.index is not None and self.index.is_primary


_ROLE_ORDER = {IndexRole.PRIMARY: 0, IndexRole.UNIQUE: 1, IndexRole.PLAIN: 2}


class TableDescriptor(FrozenModel):
    schema_name: str
    table_name: str
    comment: str | None = None
    columns: dict[str, ColumnDescriptor] = Field(default_factory=dict)
    indexes: list[IndexDescriptor] = Field(default_factory=list)
    constraints: dict[str, ConstraintDescriptor] = Field(default_factory=dict)
    prerequisites: list[str] = Field(default_factory=list)

    @property
    def ordered_columns(self) -> list[ColumnDescriptor]:
        return sorted(self.columns.values(), key=lambda column: column.ordinal_position)

    @property
    def composite_indexes(self) -> list[IndexDescriptor]:
        """Composite indexes, primary first, then unique, then plain."""
        composite = [index for index in self.indexes if index.placement == IndexPlacement.COMPOSITE]
        return sorted(composite, key=lambda index: _ROLE_ORDER[index.role])

    @property
    def raw_indexes(self) -> list[IndexDescriptor]:
        return [index for index in self.indexes if index.placement == IndexPlacement.RAW]

    @property
    def pending_constraints(self) -> list[ConstraintDescriptor]:
        """Check constraints not folded into an enum column, in discovery order."""
        return [
            constraint for constraint in self.constraints.values() if constraint.is_check and not constraint.consumed
        ]

    def constraint_for(self, column: ColumnDescriptor) -> ConstraintDescriptor | None:
        if column.enum_constraint_name is None:
            return None
        return self.constraints.get(column.enum_constraint_name)


__all__ = [
    "ColumnType",
    "DefaultValue",
    "IntegerColumnType",
    "AutoIncrementColumnType",
    "StringColumnType",
    "JsonbColumnType",
    "TimestampColumnType",
    "TextColumnType",
    "EnumColumnType",
    "BooleanColumnType",
    "FloatColumnType",
    "DecimalColumnType",
    "SpecificColumnType",
    "StringDefault",
    "NumberDefault",
    "BooleanDefault",
    "IndexDescriptor",
    "ConstraintDescriptor",
    "ColumnDescriptor",
    "TableDescriptor",
]
