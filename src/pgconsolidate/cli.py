"""Schema consolidation CLI.

Reads the live structure of the configured PostgreSQL database and writes one
SQLAlchemy migration module per table plus an aggregator module.
"""

import asyncio
import sys
from pathlib import Path
from typing import Optional

import structlog
import typer

from pgconsolidate.config import get_settings
from pgconsolidate.errors import ConsolidationError
from pgconsolidate.services.consolidator import ConsolidationResult
from pgconsolidate.services.factory import create_consolidation_service

structlog.configure(
    processors=[
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.dev.ConsoleRenderer(),
    ],
    logger_factory=lambda name: structlog.PrintLogger(file=sys.stderr),
    wrapper_class=structlog.BoundLogger,
    context_class=dict,
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger(__name__)

app = typer.Typer(
    name="pgconsolidate",
    help="""Consolidate a PostgreSQL schema into re-applicable SQLAlchemy migrations.

Examples:

  # Regenerate migrations/ from the database in PGCONSOLIDATE_DATABASE_URL
  uv run pgconsolidate consolidate

  # Write into another project directory
  uv run pgconsolidate consolidate --directory ../service""",
    rich_markup_mode="markdown",
)


@app.command()
def consolidate(
    directory: Optional[str] = typer.Option(
        None,
        "--directory",
        "-d",
        help="Project directory holding the migrations folder (default: current directory)",
    ),
    schema: Optional[str] = typer.Option(
        None,
        "--schema",
        "-s",
        help="Schema to consolidate (default: PGCONSOLIDATE_SCHEMA_NAME or public)",
    ),
) -> None:
    """Regenerate table migrations and the aggregator from the live database."""
    settings = get_settings()
    root_dir = Path(directory) if directory else Path.cwd()

    if not root_dir.is_dir():
        logger.error("directory_not_found", directory=str(root_dir))
        raise typer.Exit(1)

    async def run_consolidation() -> ConsolidationResult:
        async with create_consolidation_service(settings, root_dir, schema_name=schema) as service:
            return await service.consolidate()

    logger.info(
        "consolidating_database",
        database=settings.database_name,
        environment=settings.environment,
    )

    try:
        result = asyncio.run(run_consolidation())
    except ConsolidationError as e:
        logger.error("consolidation_failed", database=settings.database_name, error=str(e))
        raise typer.Exit(1)

    typer.echo(
        f"Consolidated {settings.database_name} DB: {len(result.tables_generated)} tables "
        f"({len(result.tables_skipped)} partitioned skipped) in {result.elapsed_seconds:.2f}s"
    )


@app.command()
def version() -> None:
    """Show version information."""
    from pgconsolidate import __version__

    typer.echo(f"pgconsolidate {__version__}")
