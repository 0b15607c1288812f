"""Exceptions raised while consolidating a schema."""

from collections.abc import Sequence
from pathlib import Path


class ConsolidationError(Exception):
    """Base class for every error raised by pgconsolidate."""


class UnsupportedColumnTypeError(ConsolidationError):
    """A column's catalog type has no canonical kind."""

    def __init__(self, table_name: str, column_name: str, data_type: str) -> None:
        self.table_name = table_name
        self.column_name = column_name
        self.data_type = data_type
        super().__init__(f"unsupported column type {data_type!r} for column {column_name!r} in table {table_name!r}")


class CatalogAccessError(ConsolidationError):
    """Reading catalog metadata failed."""

    def __init__(self, message: str, table_name: str | None = None) -> None:
        self.table_name = table_name
        if table_name is not None:
            message = f"{message} (table {table_name!r})"
        super().__init__(message)


class OutputWriteError(ConsolidationError):
    """Clearing or writing generated artifacts failed."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"cannot write {path}: {reason}")


class TableGenerationError(ConsolidationError):
    """Wraps any failure raised while processing a single table."""

    def __init__(self, table_name: str, cause: BaseException) -> None:
        self.table_name = table_name
        self.cause = cause
        super().__init__(f"failed to generate table {table_name!r}: {cause}")


class ConsolidationFailedError(ConsolidationError):
    """One or more tables failed; the aggregator was not written."""

    def __init__(self, failures: Sequence[TableGenerationError]) -> None:
        self.failures = list(failures)
        names = ", ".join(failure.table_name for failure in self.failures)
        super().__init__(f"{len(self.failures)} table(s) failed: {names}")
