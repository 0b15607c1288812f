"""Parsers for the column default expressions PostgreSQL reports.

Only three shapes are recognized:

- string literal: ``'text'`` with ``''`` escapes, optionally followed by casts
  (``'paid'::text``, ``'{}'::jsonb``)
- numeric literal: optionally quoted, parenthesized and cast
  (``0``, ``'0'::numeric``, ``(-1)``, ``'-1.5'::real``)
- boolean literal: ``true`` or ``false``, optionally quoted and cast

Anything else is rejected rather than guessed at.
"""

import json
import re

from pgconsolidate.models.schema import BooleanDefault, NumberDefault, StringDefault

_CASTS = r"(?:::[\w\s]+(?:\[\])?)*"
STRING_LITERAL = re.compile(rf"^'((?:[^']|'')*)'{_CASTS}$", re.DOTALL)
NUMERIC_LITERAL = re.compile(r"^-?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?$")
CAST_SUFFIX = re.compile(r"::[\w\s]+(?:\[\])?$")
SEQUENCE_DEFAULT = re.compile(r"^nextval\(", re.IGNORECASE)


def is_sequence_default(raw: str | None) -> bool:
    return raw is not None and SEQUENCE_DEFAULT.match(raw.strip()) is not None


def _strip_casts(raw: str) -> str:
    value = raw.strip()
    while True:
        stripped = CAST_SUFFIX.sub("", value)
        if stripped == value:
            return value
        value = stripped.strip()


def _unwrap(raw: str) -> str:
    """Strip casts, then one level of parentheses and one level of quotes."""
    value = _strip_casts(raw)
    if value.startswith("(") and value.endswith(")"):
        value = _strip_casts(value[1:-1])
    if len(value) >= 2 and value.startswith("'") and value.endswith("'"):
        value = value[1:-1]
    return value.strip()


def parse_string_default(raw: str) -> StringDefault | None:
    """Unwrap a quoted literal, or return None when the expression is not one."""
    match = STRING_LITERAL.match(raw.strip())
    if match is None:
        return None
    return StringDefault(value=match.group(1).replace("''", "'"))


def parse_number_default(raw: str) -> NumberDefault:
    literal = _unwrap(raw)
    if not NUMERIC_LITERAL.match(literal):
        raise ValueError(f"not a numeric literal: {raw!r}")
    return NumberDefault(literal=literal)


def parse_boolean_default(raw: str) -> BooleanDefault:
    value = json.loads(_unwrap(raw))
    if not isinstance(value, bool):
        raise ValueError(f"not a boolean literal: {raw!r}")
    return BooleanDefault(value=value)
