"""Schema normalizer that turns catalog rows into a TableDescriptor.

Performs type mapping, index classification and enum inference in one pass and
returns a fresh immutable descriptor. Check constraints folded into an enum
column come back marked as consumed; the input rows are never mutated.
"""

from collections.abc import Sequence

import structlog

from pgconsolidate.models.base import strip_identifier_quotes
from pgconsolidate.models.catalog import ColumnRow, ConstraintRow, IndexRow, TableRow
from pgconsolidate.models.enums import ColumnKind, IndexPlacement, IndexRole
from pgconsolidate.models.schema import (
    ColumnDescriptor,
    ColumnType,
    ConstraintDescriptor,
    DefaultValue,
    EnumColumnType,
    IndexDescriptor,
    SpecificColumnType,
    TableDescriptor,
)
from pgconsolidate.services.default_values import (
    parse_boolean_default,
    parse_number_default,
    parse_string_default,
)
from pgconsolidate.services.type_mapper import enum_constraint_name, is_citext, resolve_column_type

CITEXT_PREREQUISITE = "CREATE EXTENSION IF NOT EXISTS citext"

# Access methods whose column lists map onto per-column modifiers
COLUMN_INDEX_METHODS = frozenset({"btree"})

NUMERIC_KINDS = frozenset({ColumnKind.INTEGER, ColumnKind.DECIMAL, ColumnKind.FLOAT})

_ROLE_PRECEDENCE = {IndexRole.PRIMARY: 0, IndexRole.UNIQUE: 1, IndexRole.PLAIN: 2}


class SchemaNormalizer:
    """Builds annotated table descriptors from raw catalog output."""

    def __init__(self, logger: structlog.stdlib.BoundLogger | None = None) -> None:
        self._logger = logger or structlog.get_logger(__name__)

    def normalize(
        self,
        table: TableRow,
        columns: Sequence[ColumnRow],
        indexes: Sequence[IndexRow],
        constraints: Sequence[ConstraintRow],
    ) -> TableDescriptor:
        """Normalize one table.

        Args:
            table: Catalog row for the table.
            columns: Column rows, in any order.
            indexes: Index rows, including primary and unique indexes.
            constraints: Constraint rows other than primary, unique and not-null.

        Returns:
            The fully annotated TableDescriptor.

        Raises:
            UnsupportedColumnTypeError: If a column type has no canonical kind.
        """
        table_name = table.table_name
        log = self._logger.bind(table_name=table_name)

        constraint_map = self._collect_constraints(constraints, log)
        column_names = {column.column_name for column in columns}
        classified = self._classify_indexes(indexes, column_names, log)
        single_by_column = {
            index.column_names[0]: index for index in classified if index.placement == IndexPlacement.SINGLE
        }

        prerequisites: list[str] = []
        descriptors: dict[str, ColumnDescriptor] = {}
        for column in sorted(columns, key=lambda row: row.ordinal_position):
            candidate = self._enum_candidate(table_name, column, constraint_map)
            column_type = resolve_column_type(table_name, column, candidate)

            enum_name = None
            if isinstance(column_type, EnumColumnType):
                enum_name = column_type.constraint_name
                constraint_map[enum_name] = constraint_map[enum_name].model_copy(update={"consumed": True})
            elif isinstance(column_type, SpecificColumnType):
                self._note_specific_type(column_type, column, prerequisites, log)

            descriptors[column.column_name] = ColumnDescriptor(
                **column.model_dump(),
                column_type=column_type,
                default=self._normalize_default(column_type, column, log),
                index=single_by_column.get(column.column_name),
                enum_constraint_name=enum_name,
            )

        return TableDescriptor(
            schema_name=table.table_schema,
            table_name=table_name,
            comment=table.comment,
            columns=descriptors,
            indexes=classified,
            constraints=constraint_map,
            prerequisites=prerequisites,
        )

    def _collect_constraints(
        self,
        constraints: Sequence[ConstraintRow],
        log: structlog.stdlib.BoundLogger,
    ) -> dict[str, ConstraintDescriptor]:
        collected: dict[str, ConstraintDescriptor] = {}
        for row in constraints:
            descriptor = ConstraintDescriptor(**row.model_dump())
            if not descriptor.is_check:
                log.warning(
                    "unsupported_constraint_type",
                    constraint_name=row.constraint_name,
                    constraint_type=row.constraint_type,
                    constraint_def=row.constraint_def,
                )
            collected[row.constraint_name] = descriptor
        return collected

    def _classify_indexes(
        self,
        indexes: Sequence[IndexRow],
        column_names: set[str],
        log: structlog.stdlib.BoundLogger,
    ) -> list[IndexDescriptor]:
        """Give every index exactly one placement.

        Single-column indexes compete for their column; the highest role wins
        the column modifier and the rest become one-column composite statements.
        """
        placements: dict[str, IndexPlacement] = {}
        contenders: dict[str, list[IndexRow]] = {}

        for index in indexes:
            columns = [strip_identifier_quotes(column) for column in index.indexed_columns]
            if index.index_type not in COLUMN_INDEX_METHODS or index.is_functional or index.is_partial:
                placements[index.index_name] = IndexPlacement.RAW
            elif len(columns) > 1:
                placements[index.index_name] = IndexPlacement.COMPOSITE
            elif len(columns) == 1 and columns[0] in column_names:
                contenders.setdefault(columns[0], []).append(index)
            else:
                log.warning(
                    "unknown_index_column",
                    index_name=index.index_name,
                    indexed_columns=index.indexed_columns,
                    known_columns=sorted(column_names),
                )
                placements[index.index_name] = IndexPlacement.UNRESOLVED

        for rivals in contenders.values():
            ranked = sorted(rivals, key=self._single_rank)
            placements[ranked[0].index_name] = IndexPlacement.SINGLE
            for index in ranked[1:]:
                placements[index.index_name] = IndexPlacement.COMPOSITE

        return [IndexDescriptor(**index.model_dump(), placement=placements[index.index_name]) for index in indexes]

    @staticmethod
    def _single_rank(index: IndexRow) -> tuple[int, str]:
        if index.is_primary:
            role = IndexRole.PRIMARY
        elif index.is_unique:
            role = IndexRole.UNIQUE
        else:
            role = IndexRole.PLAIN
        return _ROLE_PRECEDENCE[role], index.index_name

    @staticmethod
    def _enum_candidate(
        table_name: str,
        column: ColumnRow,
        constraints: dict[str, ConstraintDescriptor],
    ) -> ConstraintDescriptor | None:
        constraint = constraints.get(enum_constraint_name(table_name, column.column_name))
        if constraint is None or not constraint.is_check or constraint.consumed:
            return None
        return constraint

    @staticmethod
    def _note_specific_type(
        column_type: SpecificColumnType,
        column: ColumnRow,
        prerequisites: list[str],
        log: structlog.stdlib.BoundLogger,
    ) -> None:
        if is_citext(column_type.type_name):
            if CITEXT_PREREQUISITE not in prerequisites:
                prerequisites.append(CITEXT_PREREQUISITE)
            return
        log.warning(
            "unmodeled_specific_type",
            column_name=column.column_name,
            type_name=column_type.type_name,
        )

    @staticmethod
    def _normalize_default(
        column_type: ColumnType,
        column: ColumnRow,
        log: structlog.stdlib.BoundLogger,
    ) -> DefaultValue | None:
        """Parse the raw default for the column's kind; unparseable defaults are dropped."""
        raw = column.column_default
        kind = column_type.kind
        if raw is None or kind == ColumnKind.AUTO_INCREMENT:
            return None

        try:
            if kind in NUMERIC_KINDS:
                return parse_number_default(raw)
            if kind == ColumnKind.BOOLEAN:
                return parse_boolean_default(raw)
        except ValueError as e:
            log.warning(
                "invalid_default_value",
                column_name=column.column_name,
                column_kind=kind.value,
                column_default=raw,
                error=str(e),
            )
            return None

        default = parse_string_default(raw)
        if default is None:
            log.warning(
                "unsupported_default_value",
                column_name=column.column_name,
                column_kind=kind.value,
                column_default=raw,
            )
        return default
