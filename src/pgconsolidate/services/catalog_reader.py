"""Catalog reader service for PostgreSQL schema metadata.

Issues read-only queries against information_schema and pg_catalog through an
SQLAlchemy AsyncEngine. Every query is scoped to one table and bound by
parameter; nothing is cached between tables.
"""

from collections.abc import Mapping, Sequence
from typing import Any

import structlog
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine

from pgconsolidate.errors import CatalogAccessError
from pgconsolidate.models.catalog import ColumnRow, ConstraintRow, IndexRow, TableRow

_REGCLASS = "to_regclass(quote_ident(CAST(:schema_name AS text)) || '.' || quote_ident(CAST(:table_name AS text)))"

TABLES_QUERY = text(
    """
    SELECT
        t.table_schema,
        t.table_name,
        obj_description(
            to_regclass(quote_ident(t.table_schema) || '.' || quote_ident(t.table_name)),
            'pg_class'
        ) AS comment
    FROM information_schema.tables AS t
    WHERE t.table_schema = CAST(:schema_name AS text)
      AND t.table_type = 'BASE TABLE'
    ORDER BY t.table_name
    """
)

PARTITION_QUERY = text(
    f"""
    SELECT
        EXISTS (
            SELECT 1
            FROM pg_catalog.pg_inherits AS inh
            WHERE inh.inhparent = {_REGCLASS}
               OR inh.inhrelid = {_REGCLASS}
        )
        OR EXISTS (
            SELECT 1
            FROM pg_catalog.pg_class AS cls
            WHERE cls.oid = {_REGCLASS}
              AND cls.relkind = 'p'
        ) AS is_partitioned
    """
)

COLUMNS_QUERY = text(
    f"""
    SELECT
        c.column_name,
        c.ordinal_position,
        c.is_nullable,
        c.data_type,
        c.column_default,
        c.character_maximum_length,
        c.numeric_precision,
        c.numeric_scale,
        c.udt_name,
        col_description(a.attrelid, a.attnum) AS comment
    FROM information_schema.columns AS c
    LEFT JOIN pg_catalog.pg_attribute AS a
        ON a.attrelid = {_REGCLASS}
       AND a.attname = c.column_name
    WHERE c.table_schema = CAST(:schema_name AS text)
      AND c.table_name = CAST(:table_name AS text)
    ORDER BY c.ordinal_position
    """
)

INDEXES_QUERY = text(
    f"""
    SELECT
        i.relname AS index_name,
        t.relname AS table_name,
        idx.indisunique AS is_unique,
        idx.indisprimary AS is_primary,
        am.amname AS index_type,
        ARRAY(
            SELECT pg_get_indexdef(idx.indexrelid, k + 1, TRUE)
            FROM generate_subscripts(idx.indkey, 1) AS k
            WHERE k < idx.indnkeyatts
            ORDER BY k
        ) AS indexed_columns,
        (idx.indexprs IS NOT NULL) OR (idx.indkey::int[] @> ARRAY[0]) AS is_functional,
        idx.indpred IS NOT NULL AS is_partial,
        pg_get_expr(idx.indpred, idx.indrelid, TRUE) AS predicate
    FROM pg_catalog.pg_index AS idx
    JOIN pg_catalog.pg_class AS i ON i.oid = idx.indexrelid
    JOIN pg_catalog.pg_class AS t ON t.oid = idx.indrelid
    JOIN pg_catalog.pg_am AS am ON am.oid = i.relam
    WHERE idx.indrelid = {_REGCLASS}
    ORDER BY i.relname
    """
)

# Primary, unique and not-null constraints are already described by index and
# column metadata.
CONSTRAINTS_QUERY = text(
    f"""
    SELECT
        con.conname AS constraint_name,
        con.contype AS constraint_type,
        pg_get_constraintdef(con.oid) AS constraint_def
    FROM pg_catalog.pg_constraint AS con
    WHERE con.conrelid = {_REGCLASS}
      AND con.contype NOT IN ('p', 'u', 'n')
    ORDER BY con.conname
    """
)


class CatalogReader:
    """Reads table, column, index and constraint metadata for one schema.

    Accepts an AsyncEngine via dependency injection. Each call opens its own
    connection so pipelines for different tables can run concurrently.
    """

    def __init__(
        self,
        engine: AsyncEngine,
        schema_name: str = "public",
        logger: structlog.stdlib.BoundLogger | None = None,
    ) -> None:
        self._engine = engine
        self._schema_name = schema_name
        self._logger = logger or structlog.get_logger(__name__)

    @property
    def schema_name(self) -> str:
        return self._schema_name

    async def list_tables(self, ignored: Sequence[str] = ()) -> list[TableRow]:
        """List base tables of the schema, skipping bookkeeping tables by exact name."""
        rows = await self._fetch(TABLES_QUERY, {"schema_name": self._schema_name})
        tables = [TableRow.from_row(row) for row in rows if row["table_name"] not in ignored]
        self._logger.debug(
            "tables_listed",
            schema_name=self._schema_name,
            table_count=len(tables),
        )
        return tables

    async def is_partitioned(self, table_name: str) -> bool:
        """Whether the table is a partition parent or a partition child."""
        rows = await self._fetch(PARTITION_QUERY, self._params(table_name), table_name)
        return bool(rows and rows[0]["is_partitioned"])

    async def get_columns(self, table_name: str) -> list[ColumnRow]:
        rows = await self._fetch(COLUMNS_QUERY, self._params(table_name), table_name)
        return [ColumnRow.from_row(row) for row in rows]

    async def get_indexes(self, table_name: str) -> list[IndexRow]:
        rows = await self._fetch(INDEXES_QUERY, self._params(table_name), table_name)
        return [IndexRow.from_row(row) for row in rows]

    async def get_constraints(self, table_name: str) -> list[ConstraintRow]:
        rows = await self._fetch(CONSTRAINTS_QUERY, self._params(table_name), table_name)
        return [ConstraintRow.from_row(row) for row in rows]

    def _params(self, table_name: str) -> dict[str, str]:
        return {"schema_name": self._schema_name, "table_name": table_name}

    async def _fetch(
        self,
        statement: Any,
        params: dict[str, Any],
        table_name: str | None = None,
    ) -> Sequence[Mapping[str, Any]]:
        """Run a read-only query and return its rows as mappings."""
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(statement, params)
                return result.mappings().all()
        except SQLAlchemyError as e:
            self._logger.error(
                "catalog_query_failed",
                schema_name=self._schema_name,
                table_name=table_name,
                error=str(e),
            )
            raise CatalogAccessError(f"catalog query failed: {e}", table_name=table_name) from e
