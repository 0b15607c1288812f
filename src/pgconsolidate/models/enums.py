from enum import StrEnum


class ColumnKind(StrEnum):
    INTEGER = "integer"
    AUTO_INCREMENT = "increments"
    STRING = "string"
    JSONB = "jsonb"
    TIMESTAMP = "timestamp"
    TEXT = "text"
    ENUM = "enum"
    BOOLEAN = "boolean"
    FLOAT = "float"
    DECIMAL = "decimal"
    SPECIFIC_TYPE = "specific_type"


class IndexRole(StrEnum):
    PRIMARY = "primary"
    UNIQUE = "unique"
    PLAIN = "plain"


class IndexPlacement(StrEnum):
    """Where an index ends up in the rendered artifact."""

    SINGLE = "single"
    COMPOSITE = "composite"
    RAW = "raw"
    UNRESOLVED = "unresolved"


class ConstraintType(StrEnum):
    CHECK = "c"
    FOREIGN_KEY = "f"
    EXCLUSION = "x"
    TRIGGER = "t"
