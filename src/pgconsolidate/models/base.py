import json
from typing import Any, Mapping, Type, TypeVar

from pydantic import BaseModel, ConfigDict

T_Model = TypeVar("T_Model", bound="FrozenModel")


class FrozenModel(BaseModel):
    """Base class for immutable catalog and schema models."""

    model_config = ConfigDict(frozen=True, extra="forbid", populate_by_name=True)

    @classmethod
    def from_row(cls: Type[T_Model], row: Mapping[str, Any]) -> T_Model:
        return cls.model_validate(dict(row))


def ensure_non_empty_text(value: str, field_name: str) -> str:
    if not isinstance(value, str):
        raise TypeError(f"{field_name} must be a string")
    if not value.strip():
        raise ValueError(f"{field_name} cannot be empty")
    return value


def ensure_string_list(value: Any) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        raise TypeError("expected a sequence of strings, not a string")
    return [str(item) for item in value]


def strip_identifier_quotes(value: str) -> str:
    return value.replace('"', "")


def python_literal(value: str) -> str:
    """Encode text as a double-quoted Python string literal."""
    return json.dumps(value, ensure_ascii=False)


def quote_identifier(value: str) -> str:
    """Quote an SQL identifier the way PostgreSQL expects."""
    return '"' + value.replace('"', '""') + '"'
