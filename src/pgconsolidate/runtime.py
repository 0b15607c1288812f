"""Helpers imported by generated migration modules."""

from typing import Any

from sqlalchemy.types import UserDefinedType


class SpecificType(UserDefinedType):
    """Column type rendered verbatim from its PostgreSQL type name (e.g. citext)."""

    cache_ok = True

    def __init__(self, type_name: str) -> None:
        self.type_name = type_name

    def get_col_spec(self, **kw: Any) -> str:
        return self.type_name

    def __repr__(self) -> str:
        return f"SpecificType({self.type_name!r})"
