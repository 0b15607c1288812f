"""Raw rows read from the PostgreSQL catalog.

Field names match the column aliases of the catalog queries so rows can be
validated straight from SQLAlchemy result mappings.
"""

from typing import Any

from pydantic import Field, ValidationInfo, field_validator

from pgconsolidate.models.base import FrozenModel, ensure_non_empty_text, ensure_string_list


class TableRow(FrozenModel):
    table_schema: str
    table_name: str
    comment: str | None = None

    @field_validator("table_schema", "table_name")
    @classmethod
    def _ensure_non_empty(cls, value: str, info: ValidationInfo) -> str:
        return ensure_non_empty_text(value, info.field_name or "value")


class ColumnRow(FrozenModel):
    column_name: str
    ordinal_position: int = Field(ge=1)
    is_nullable: bool
    data_type: str
    column_default: str | None = None
    character_maximum_length: int | None = None
    numeric_precision: int | None = None
    numeric_scale: int | None = None
    udt_name: str | None = None
    comment: str | None = None

    @field_validator("is_nullable", mode="before")
    @classmethod
    def _coerce_nullable(cls, value: Any) -> bool:
        # information_schema spells booleans as YES/NO
        if isinstance(value, str):
            return value.strip().upper() == "YES"
        return bool(value)


class IndexRow(FrozenModel):
    index_name: str
    table_name: str
    indexed_columns: list[str] = Field(default_factory=list)
    is_unique: bool = False
    is_primary: bool = False
    index_type: str = "btree"
    is_functional: bool = False
    is_partial: bool = False
    predicate: str | None = None

    @field_validator("indexed_columns", mode="before")
    @classmethod
    def _normalize_columns(cls, value: Any) -> list[str]:
        return ensure_string_list(value)


class ConstraintRow(FrozenModel):
    constraint_name: str
    constraint_type: str
    constraint_def: str

    @field_validator("constraint_type", mode="before")
    @classmethod
    def _normalize_type(cls, value: Any) -> str:
        # asyncpg returns the "char" column as bytes
        if isinstance(value, bytes):
            return value.decode()
        return value


__all__ = ["TableRow", "ColumnRow", "IndexRow", "ConstraintRow"]
