"""Factory functions for creating and wiring consolidation services.

Provides a production factory that owns an async PostgreSQL engine and a test
factory that accepts any catalog source, so tests run without a database.
"""

from collections.abc import AsyncIterator, Sequence
from contextlib import asynccontextmanager
from pathlib import Path

import structlog
from sqlalchemy.ext.asyncio import create_async_engine

from pgconsolidate.config import Settings
from pgconsolidate.services.artifact_writer import ArtifactWriter
from pgconsolidate.services.catalog_reader import CatalogReader
from pgconsolidate.services.consolidator import CatalogSource, ConsolidationService
from pgconsolidate.services.normalizer import SchemaNormalizer
from pgconsolidate.services.renderer import ArtifactRenderer


@asynccontextmanager
async def create_consolidation_service(
    settings: Settings,
    root_dir: Path,
    schema_name: str | None = None,
) -> AsyncIterator[ConsolidationService]:
    """Create a production ConsolidationService bound to the configured database.

    The engine is disposed when the context exits.

    Args:
        settings: Process settings carrying the database URL.
        root_dir: Directory the migrations folder lives under.
        schema_name: Schema to consolidate; defaults to settings.schema_name.

    Yields:
        Configured ConsolidationService ready for use.
    """
    logger = structlog.get_logger(__name__)
    effective_schema = schema_name or settings.schema_name

    engine = create_async_engine(settings.async_database_url)
    try:
        yield ConsolidationService(
            catalog_reader=CatalogReader(engine=engine, schema_name=effective_schema, logger=logger),
            normalizer=SchemaNormalizer(logger=logger),
            renderer=ArtifactRenderer(logger=logger),
            writer=ArtifactWriter(
                migrations_dir=settings.migrations_path(root_dir),
                schema_name=effective_schema,
                logger=logger,
            ),
            ignored_tables=settings.ignored_tables,
            logger=logger,
        )
    finally:
        await engine.dispose()


def create_test_consolidation_service(
    catalog_reader: CatalogSource,
    migrations_dir: Path,
    ignored_tables: Sequence[str] = (),
) -> ConsolidationService:
    """Create a ConsolidationService around a fake or pre-built catalog source.

    Args:
        catalog_reader: Anything implementing the CatalogSource protocol.
        migrations_dir: Directory to write generated modules into.
        ignored_tables: Table names to leave out.

    Returns:
        Configured ConsolidationService.
    """
    logger = structlog.get_logger(__name__)
    return ConsolidationService(
        catalog_reader=catalog_reader,
        normalizer=SchemaNormalizer(logger=logger),
        renderer=ArtifactRenderer(logger=logger),
        writer=ArtifactWriter(
            migrations_dir=migrations_dir,
            schema_name=catalog_reader.schema_name,
            logger=logger,
        ),
        ignored_tables=ignored_tables,
        logger=logger,
    )
