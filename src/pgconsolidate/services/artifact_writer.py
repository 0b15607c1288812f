"""Artifact writer service managing the generated migrations directory.

Every run starts from a clean slate: the generated tables package and the
aggregator module are removed before anything new is written. Filesystem work
runs through asyncio.to_thread so table pipelines do not block each other.
"""

import asyncio
import shutil
from pathlib import Path

import structlog

from pgconsolidate.config import AGGREGATOR_PREFIX, TABLES_DIRNAME
from pgconsolidate.errors import OutputWriteError

PACKAGE_MARKER = "__init__.py"
GENERATED_MARKER = '"""Generated by pgconsolidate; regenerated on every run."""\n'


class ArtifactWriter:
    """Writes per-table modules and the aggregator under a migrations directory."""

    def __init__(
        self,
        migrations_dir: Path,
        schema_name: str = "public",
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._migrations_dir = migrations_dir
        self._schema_name = schema_name
        self._logger = logger or structlog.get_logger(__name__)

    @property
    def tables_dir(self) -> Path:
        return self._migrations_dir / TABLES_DIRNAME

    @property
    def aggregator_path(self) -> Path:
        return self._migrations_dir / f"{AGGREGATOR_PREFIX}{self._schema_name}.py"

    def table_path(self, module_name: str) -> Path:
        return self.tables_dir / f"{module_name}.py"

    async def reset(self) -> None:
        """Delete previous output and recreate an empty tables package.

        Raises:
            OutputWriteError: If clearing or creating the directories fails.
        """
        await asyncio.to_thread(self._reset_sync)
        self._logger.info(
            "output_reset",
            tables_dir=str(self.tables_dir),
            aggregator_path=str(self.aggregator_path),
        )

    async def write_table(self, module_name: str, source: str) -> Path:
        path = self.table_path(module_name)
        await asyncio.to_thread(self._write_sync, path, source)
        self._logger.debug("table_artifact_written", path=str(path))
        return path

    async def write_aggregator(self, source: str) -> Path:
        path = self.aggregator_path
        await asyncio.to_thread(self._write_sync, path, source)
        self._logger.info("aggregator_written", path=str(path))
        return path

    def _reset_sync(self) -> None:
        try:
            if self.tables_dir.exists():
                shutil.rmtree(self.tables_dir)
            self.aggregator_path.unlink(missing_ok=True)
            self.tables_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise OutputWriteError(self._migrations_dir, str(e)) from e

        self._write_sync(self.tables_dir / PACKAGE_MARKER, GENERATED_MARKER)
        # The aggregator imports tables relatively, so the migrations directory
        # has to be a package too. An existing marker is left alone.
        root_marker = self._migrations_dir / PACKAGE_MARKER
        if not root_marker.exists():
            self._write_sync(root_marker, "")

    @staticmethod
    def _write_sync(path: Path, source: str) -> None:
        try:
            path.write_text(source, encoding="utf-8")
        except OSError as e:
            raise OutputWriteError(path, str(e)) from e
