"""Maps catalog column types onto the closed set of canonical column kinds."""

import re

from pgconsolidate.errors import UnsupportedColumnTypeError
from pgconsolidate.models.catalog import ColumnRow, ConstraintRow
from pgconsolidate.models.enums import ColumnKind
from pgconsolidate.models.schema import (
    AutoIncrementColumnType,
    BooleanColumnType,
    ColumnType,
    DecimalColumnType,
    EnumColumnType,
    FloatColumnType,
    IntegerColumnType,
    JsonbColumnType,
    SpecificColumnType,
    StringColumnType,
    TextColumnType,
    TimestampColumnType,
)
from pgconsolidate.services.default_values import is_sequence_default

TYPE_MAP: dict[str, ColumnKind] = {
    "integer": ColumnKind.INTEGER,
    "character varying": ColumnKind.STRING,
    "jsonb": ColumnKind.JSONB,
    "timestamp with time zone": ColumnKind.TIMESTAMP,
    "text": ColumnKind.TEXT,
    "boolean": ColumnKind.BOOLEAN,
    "real": ColumnKind.FLOAT,
    "numeric": ColumnKind.DECIMAL,
    "USER-DEFINED": ColumnKind.SPECIFIC_TYPE,
}

CITEXT = "citext"

ENUM_LITERAL = re.compile(r"'((?:[^']|'')*)'")


def map_column_kind(table_name: str, column: ColumnRow) -> ColumnKind:
    """Look up the base canonical kind for a column.

    Raises:
        UnsupportedColumnTypeError: If the catalog type has no mapping.
    """
    kind = TYPE_MAP.get(column.data_type)
    if kind is None:
        raise UnsupportedColumnTypeError(table_name, column.column_name, column.data_type)
    return kind


def enum_constraint_name(table_name: str, column_name: str) -> str:
    """Name PostgreSQL gives a column-level check constraint."""
    return f"{table_name}_{column_name}_check"


def parse_enum_values(definition: str) -> tuple[str, ...]:
    """Collect the single-quoted literals of a check constraint, in order."""
    return tuple(match.replace("''", "'") for match in ENUM_LITERAL.findall(definition))


def is_citext(type_name: str) -> bool:
    return type_name.lower() == CITEXT


def resolve_column_type(
    table_name: str,
    column: ColumnRow,
    enum_constraint: ConstraintRow | None = None,
) -> ColumnType:
    """Decide the canonical column type, refining the base kind.

    Args:
        table_name: Owning table, used for error context.
        column: Catalog row for the column.
        enum_constraint: Unconsumed check constraint named after the column,
            if one exists. Only text columns use it.

    Returns:
        One of the column type variants.

    Raises:
        UnsupportedColumnTypeError: If the type cannot be mapped.
    """
    kind = map_column_kind(table_name, column)

    if kind == ColumnKind.INTEGER:
        if is_sequence_default(column.column_default):
            return AutoIncrementColumnType()
        return IntegerColumnType()
    if kind == ColumnKind.STRING:
        return StringColumnType(length=column.character_maximum_length or None)
    if kind == ColumnKind.JSONB:
        return JsonbColumnType()
    if kind == ColumnKind.TIMESTAMP:
        return TimestampColumnType()
    if kind == ColumnKind.TEXT:
        if enum_constraint is not None:
            values = parse_enum_values(enum_constraint.constraint_def)
            if values:
                return EnumColumnType(values=values, constraint_name=enum_constraint.constraint_name)
        return TextColumnType()
    if kind == ColumnKind.BOOLEAN:
        return BooleanColumnType()
    if kind == ColumnKind.FLOAT:
        return FloatColumnType()
    if kind == ColumnKind.DECIMAL:
        if not column.numeric_precision:
            return DecimalColumnType()
        return DecimalColumnType(precision=column.numeric_precision, scale=column.numeric_scale)
    if kind == ColumnKind.SPECIFIC_TYPE:
        if not column.udt_name:
            raise UnsupportedColumnTypeError(table_name, column.column_name, column.data_type)
        return SpecificColumnType(type_name=column.udt_name)

    raise UnsupportedColumnTypeError(table_name, column.column_name, column.data_type)
