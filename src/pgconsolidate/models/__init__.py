from pgconsolidate.models.catalog import ColumnRow, ConstraintRow, IndexRow, TableRow
from pgconsolidate.models.enums import ColumnKind, ConstraintType, IndexPlacement, IndexRole
from pgconsolidate.models.schema import (
    ColumnDescriptor,
    ConstraintDescriptor,
    IndexDescriptor,
    TableDescriptor,
)

__all__ = [
    "TableRow",
    "ColumnRow",
    "IndexRow",
    "ConstraintRow",
    "ColumnKind",
    "ConstraintType",
    "IndexPlacement",
    "IndexRole",
    "ColumnDescriptor",
    "ConstraintDescriptor",
    "IndexDescriptor",
    "TableDescriptor",
]
