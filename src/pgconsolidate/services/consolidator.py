"""Consolidation service that orchestrates the generation pipeline.

Lists tables, drops partitioned ones, then reads, normalizes, renders and
writes every remaining table concurrently. The aggregator module is written
only after every table succeeded.
"""

import asyncio
import time
from collections.abc import Sequence
from pathlib import Path
from typing import Protocol

import structlog
from pydantic import BaseModel, Field, ValidationError

from pgconsolidate.errors import ConsolidationError, ConsolidationFailedError, TableGenerationError
from pgconsolidate.models.catalog import ColumnRow, ConstraintRow, IndexRow, TableRow
from pgconsolidate.services.artifact_writer import ArtifactWriter
from pgconsolidate.services.normalizer import SchemaNormalizer
from pgconsolidate.services.renderer import ArtifactRenderer, assign_module_names


class CatalogSource(Protocol):
    """What the service needs from a catalog reader."""

    @property
    def schema_name(self) -> str: ...

    async def list_tables(self, ignored: Sequence[str] = ()) -> list[TableRow]: ...

    async def is_partitioned(self, table_name: str) -> bool: ...

    async def get_columns(self, table_name: str) -> list[ColumnRow]: ...

    async def get_indexes(self, table_name: str) -> list[IndexRow]: ...

    async def get_constraints(self, table_name: str) -> list[ConstraintRow]: ...


class ConsolidationResult(BaseModel):
    """Outcome of a consolidation run."""

    schema_name: str
    tables_generated: list[str] = Field(default_factory=list)
    tables_skipped: list[str] = Field(default_factory=list)
    aggregator_path: str
    elapsed_seconds: float = Field(ge=0)

    model_config = {"frozen": True}


class ConsolidationService:
    """Drives catalog reading, normalization, rendering and writing.

    All collaborators are injected via constructor for testability.
    """

    def __init__(
        self,
        catalog_reader: CatalogSource,
        normalizer: SchemaNormalizer,
        renderer: ArtifactRenderer,
        writer: ArtifactWriter,
        ignored_tables: Sequence[str] = (),
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._catalog_reader = catalog_reader
        self._normalizer = normalizer
        self._renderer = renderer
        self._writer = writer
        self._ignored_tables = tuple(ignored_tables)
        self._logger = logger or structlog.get_logger(__name__)

    async def consolidate(self) -> ConsolidationResult:
        """Regenerate every table module and the aggregator.

        Returns:
            ConsolidationResult listing generated and skipped tables.

        Raises:
            CatalogAccessError: If listing tables or partitions fails.
            OutputWriteError: If the output directory cannot be reset or the
                aggregator cannot be written.
            ConsolidationFailedError: If any table failed; the aggregator is
                not written in that case.
        """
        started = time.perf_counter()
        schema_name = self._catalog_reader.schema_name
        self._logger.info("consolidation_started", schema_name=schema_name)

        tables = await self._catalog_reader.list_tables(self._ignored_tables)
        kept, skipped = await self._partition_filter(tables)
        module_names = assign_module_names(table.table_name for table in kept)

        await self._writer.reset()

        outcomes = await asyncio.gather(
            *(self._process_table(table, module_names[table.table_name]) for table in kept),
            return_exceptions=True,
        )

        failures: list[TableGenerationError] = []
        for outcome in outcomes:
            if isinstance(outcome, TableGenerationError):
                self._logger.error(
                    "table_generation_failed",
                    table_name=outcome.table_name,
                    error=str(outcome.cause),
                    error_type=type(outcome.cause).__name__,
                )
                failures.append(outcome)
            elif isinstance(outcome, BaseException):
                raise outcome
        if failures:
            raise ConsolidationFailedError(failures)

        aggregator = self._renderer.render_aggregator(schema_name, list(module_names.values()))
        aggregator_path = await self._writer.write_aggregator(aggregator)

        elapsed = time.perf_counter() - started
        generated = sorted(module_names)
        self._logger.info(
            "consolidation_completed",
            schema_name=schema_name,
            tables_generated=len(generated),
            tables_skipped=len(skipped),
            elapsed_seconds=round(elapsed, 3),
        )

        return ConsolidationResult(
            schema_name=schema_name,
            tables_generated=generated,
            tables_skipped=skipped,
            aggregator_path=str(aggregator_path),
            elapsed_seconds=elapsed,
        )

    async def _partition_filter(self, tables: list[TableRow]) -> tuple[list[TableRow], list[str]]:
        """Split tables into those to generate and partitioned ones to skip."""
        flags = await asyncio.gather(*(self._catalog_reader.is_partitioned(table.table_name) for table in tables))

        kept: list[TableRow] = []
        skipped: list[str] = []
        for table, partitioned in zip(tables, flags):
            if partitioned:
                self._logger.info("table_skipped_partitioned", table_name=table.table_name)
                skipped.append(table.table_name)
            else:
                kept.append(table)
        return kept, skipped

    async def _process_table(self, table: TableRow, module_name: str) -> Path:
        """Run one table through read, normalize, render and write.

        Raises:
            TableGenerationError: Wrapping whatever failed, with the table name.
        """
        table_name = table.table_name
        try:
            columns, indexes, constraints = await asyncio.gather(
                self._catalog_reader.get_columns(table_name),
                self._catalog_reader.get_indexes(table_name),
                self._catalog_reader.get_constraints(table_name),
            )
            descriptor = self._normalizer.normalize(table, columns, indexes, constraints)
            source = self._renderer.render_table(descriptor)
            return await self._writer.write_table(module_name, source)
        except (ConsolidationError, ValidationError) as e:
            raise TableGenerationError(table_name, e) from e
