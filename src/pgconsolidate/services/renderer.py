"""Renders normalized tables into SQLAlchemy migration modules.

Output depends only on the descriptor, so rendering the same catalog snapshot
twice yields byte-identical modules. Per-table layout:

1. prerequisite statements (extensions), each once
2. columns in ordinal order, then per-column enum checks and named
   single-column indexes
3. composite primary, unique and plain indexes
4. table comment
5. raw index and check constraint statements
6. ``revert`` dropping the table
"""

import re
from collections.abc import Iterable

import structlog

from pgconsolidate.models.base import python_literal, quote_identifier
from pgconsolidate.models.enums import IndexPlacement, IndexRole
from pgconsolidate.models.schema import (
    SA_IMPORT,
    AutoIncrementColumnType,
    ColumnDescriptor,
    ConstraintDescriptor,
    EnumColumnType,
    IndexDescriptor,
    TableDescriptor,
)

INDENT = "    "
ENGINE_IMPORT = "from sqlalchemy.ext.asyncio import AsyncEngine"
MODULE_PREFIX = "create_"

_COMMENT_BREAKS = re.compile(r"[\t\n\r]+")
_NON_IDENTIFIER = re.compile(r"\W")


def clean_comment(comment: str) -> str:
    """Collapse tab and newline runs so a comment fits on one line."""
    pieces = (piece.strip() for piece in _COMMENT_BREAKS.split(comment))
    return " ".join(piece for piece in pieces if piece)


def assign_module_names(table_names: Iterable[str]) -> dict[str, str]:
    """Map table names to importable module names, stable across runs.

    Characters that cannot appear in an identifier become underscores; names
    that collide after that get a numeric suffix in table-name order.
    """
    assigned: dict[str, str] = {}
    taken: set[str] = set()
    for table_name in sorted(table_names):
        base = MODULE_PREFIX + _NON_IDENTIFIER.sub("_", table_name)
        candidate = base
        suffix = 2
        while candidate in taken:
            candidate = f"{base}_{suffix}"
            suffix += 1
        taken.add(candidate)
        assigned[table_name] = candidate
    return assigned


def render_column(column: ColumnDescriptor) -> str:
    """Render one ``sa.Column`` call, keyword order mirroring the modifier chain.

    Unique and plain single-column indexes are emitted by
    ``render_column_constraints`` so they keep their catalog names.
    """
    parts = [python_literal(column.column_name), column.column_type.type_expression()]

    if column.is_primary:
        parts.append("primary_key=True")
    if isinstance(column.column_type, AutoIncrementColumnType):
        parts.append("autoincrement=True")
    if not column.is_primary:
        parts.append(f"nullable={column.is_nullable}")
    if column.default is not None:
        parts.append(f"server_default={column.default.expression()}")

    if column.comment:
        parts.append(f"comment={python_literal(clean_comment(column.comment))}")

    return f"sa.Column({', '.join(parts)})"


def render_column_constraints(column: ColumnDescriptor) -> list[str]:
    """Table-level entries owned by one column: its enum check, then its named index."""
    entries = []
    if isinstance(column.column_type, EnumColumnType):
        entries.append(column.column_type.check_expression(column.column_name))
    index = column.index
    if index is not None and index.placement == IndexPlacement.SINGLE and not index.is_primary:
        entries.append(render_index(index))
    return entries


def render_index(index: IndexDescriptor) -> str:
    columns = ", ".join(python_literal(column) for column in index.column_names)
    name = python_literal(index.index_name)
    if index.role == IndexRole.PRIMARY:
        return f"sa.PrimaryKeyConstraint({columns}, name={name})"
    if index.role == IndexRole.UNIQUE:
        return f"sa.UniqueConstraint({columns}, name={name})"
    return f"sa.Index({name}, {columns})"


def render_raw_index(table_name: str, index: IndexDescriptor) -> str:
    """Spell out an index that cannot be expressed through SQLAlchemy constructs."""
    unique = "UNIQUE " if index.is_unique else ""
    expressions = ", ".join(index.indexed_columns)
    statement = (
        f"CREATE {unique}INDEX IF NOT EXISTS {quote_identifier(index.index_name)} "
        f"ON {quote_identifier(table_name)} USING {index.index_type} ({expressions})"
    )
    if index.predicate:
        statement += f" WHERE {index.predicate}"
    return statement


def render_check_constraint(table_name: str, constraint: ConstraintDescriptor) -> str:
    return (
        f"ALTER TABLE {quote_identifier(table_name)} "
        f"ADD CONSTRAINT {quote_identifier(constraint.constraint_name)} {constraint.constraint_def}"
    )


def render_drop_table(table_name: str) -> str:
    return f"DROP TABLE IF EXISTS {quote_identifier(table_name)}"


def _render_list(name: str, items: list[str]) -> list[str]:
    if not items:
        return [f"{name}: list[str] = []"]
    lines = [f"{name} = ["]
    lines.extend(f"{INDENT}{python_literal(item)}," for item in items)
    lines.append("]")
    return lines


def _imports_for(table: TableDescriptor) -> list[str]:
    third_party = {SA_IMPORT, ENGINE_IMPORT}
    first_party: set[str] = set()
    for column in table.columns.values():
        for line in column.column_type.imports:
            if line.startswith("from pgconsolidate"):
                first_party.add(line)
            else:
                third_party.add(line)

    # plain imports ahead of from-imports, each group alphabetical
    ordered = sorted(third_party, key=lambda line: (line.startswith("from "), line))
    if first_party:
        ordered.append("")
        ordered.extend(sorted(first_party))
    return ordered


class ArtifactRenderer:
    """Produces per-table and aggregator migration module sources."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._logger = logger or structlog.get_logger(__name__)

    def render_table(self, table: TableDescriptor) -> str:
        """Render the migration module for one table.

        Args:
            table: The normalized table descriptor.

        Returns:
            Python source exposing async ``apply`` and ``revert``.
        """
        table_name = table.table_name
        columns = table.ordered_columns
        entries = [render_column(column) for column in columns]
        for column in columns:
            entries.extend(render_column_constraints(column))
        entries.extend(render_index(index) for index in table.composite_indexes)
        if table.comment:
            entries.append(f"comment={python_literal(clean_comment(table.comment))}")

        raw_statements = [render_raw_index(table_name, index) for index in table.raw_indexes]
        raw_statements.extend(render_check_constraint(table_name, c) for c in table.pending_constraints)

        lines = [f'"""Create table {python_literal(table_name)[1:-1]}."""', ""]
        lines.extend(_imports_for(table))
        lines.append("")
        lines.append(f"TABLE_NAME = {python_literal(table_name)}")
        lines.append("")
        lines.extend(_render_list("PREREQUISITES", table.prerequisites))
        lines.append("")
        lines.append("metadata = sa.MetaData()")
        lines.append("")
        lines.append("table = sa.Table(")
        lines.append(f"{INDENT}TABLE_NAME,")
        lines.append(f"{INDENT}metadata,")
        lines.extend(f"{INDENT}{entry}," for entry in entries)
        lines.append(")")
        lines.append("")
        lines.extend(_render_list("RAW_STATEMENTS", raw_statements))
        lines.append("")
        lines.append(f"DROP_STATEMENT = {python_literal(render_drop_table(table_name))}")
        lines.extend(
            [
                "",
                "",
                "async def apply(engine: AsyncEngine) -> None:",
                f"{INDENT}async with engine.begin() as conn:",
                f"{INDENT * 2}for statement in PREREQUISITES:",
                f"{INDENT * 3}await conn.exec_driver_sql(statement)",
                f"{INDENT * 2}await conn.run_sync(metadata.create_all)",
                f"{INDENT * 2}for statement in RAW_STATEMENTS:",
                f"{INDENT * 3}await conn.exec_driver_sql(statement)",
                "",
                "",
                "async def revert(engine: AsyncEngine) -> None:",
                f"{INDENT}async with engine.begin() as conn:",
                f"{INDENT * 2}await conn.exec_driver_sql(DROP_STATEMENT)",
                "",
            ]
        )

        self._logger.debug(
            "table_rendered",
            table_name=table_name,
            column_count=len(table.columns),
            raw_statement_count=len(raw_statements),
        )
        return "\n".join(lines)

    def render_aggregator(self, schema_name: str, module_names: list[str]) -> str:
        """Render the module that applies or reverts every table concurrently.

        Tables are not ordered by foreign-key dependencies; the module is only
        correct when no generated table references another one.
        """
        modules = sorted(module_names)
        lines = [
            f'"""Consolidated schema {python_literal(schema_name)[1:-1]}.',
            "",
            "Applies and reverts every table concurrently, without ordering by",
            "foreign-key dependencies.",
            '"""',
            "",
            "import asyncio",
            "",
            ENGINE_IMPORT,
            "",
        ]
        if modules:
            lines.append("from .tables import (")
            lines.extend(f"{INDENT}{module}," for module in modules)
            lines.append(")")
            lines.append("")
            lines.append("TABLES = [")
            lines.extend(f"{INDENT}{module}," for module in modules)
            lines.append("]")
        else:
            lines.append("TABLES: list = []")
        lines.extend(
            [
                "",
                "",
                "async def apply(engine: AsyncEngine) -> None:",
                f"{INDENT}await asyncio.gather(*(table.apply(engine) for table in TABLES))",
                "",
                "",
                "async def revert(engine: AsyncEngine) -> None:",
                f"{INDENT}await asyncio.gather(*(table.revert(engine) for table in TABLES))",
                "",
            ]
        )
        return "\n".join(lines)
