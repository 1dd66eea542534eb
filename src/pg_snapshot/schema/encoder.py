"""Value encoder: typed cells to SQL literal text.

Row values are classified once, when they are read, into a ``Cell``
tagged union.  ``encode()`` then turns a cell into literal text:

1. ``NULL`` for an absent cell.
2. Quoted text when the declared column type belongs to the
   character/text/time/date family.
3. Otherwise the first representation the cell accepts, in order:
   literal pass-through, 32-bit integer, 64-bit integer, double,
   boolean, quoted string.  A cell accepting none of them is ``NULL``.

Encoding never raises.

Usage:
    from pg_snapshot.schema.encoder import Cell, encode

    encode(Cell.from_value("O'Brien"), "character varying")   # "'O''Brien'"
    encode(Cell.from_value(None), "integer")                  # "NULL"
"""

import ipaddress
import json
import math
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID

NULL = "NULL"

INT32_MIN, INT32_MAX = -(2 ** 31), 2 ** 31 - 1
INT64_MIN, INT64_MAX = -(2 ** 63), 2 ** 63 - 1

# Substrings marking a declared type whose values are always quoted.
QUOTED_TYPE_MARKERS = ("char", "text", "time", "date")

JSON_TYPES = ("json", "jsonb")

_PLAIN_IDENT = re.compile(r"^[a-z_][a-z0-9_$]*$")

# Reserved words that cannot appear as bare identifiers.
RESERVED_WORDS = frozenset({
    "all", "analyse", "analyze", "and", "any", "array", "as", "asc",
    "asymmetric", "both", "case", "cast", "check", "collate", "column",
    "constraint", "create", "current_catalog", "current_date",
    "current_role", "current_time", "current_timestamp", "current_user",
    "default", "deferrable", "desc", "distinct", "do", "else", "end",
    "except", "false", "fetch", "for", "foreign", "from", "grant", "group",
    "having", "in", "initially", "intersect", "into", "lateral", "leading",
    "limit", "localtime", "localtimestamp", "not", "null", "offset", "on",
    "only", "or", "order", "placing", "primary", "references", "returning",
    "select", "session_user", "some", "symmetric", "table", "then", "to",
    "trailing", "true", "union", "unique", "user", "using", "variadic",
    "when", "where", "window", "with",
})


class CellKind(str, Enum):
    """Tags of the ``Cell`` union."""

    ABSENT = "absent"
    LITERAL = "literal"    # text that is already a valid literal (numeric)
    INTEGER = "integer"
    FLOAT = "float"
    BOOLEAN = "boolean"
    TEXT = "text"
    OPAQUE = "opaque"      # no known textual form


@dataclass(frozen=True)
class Cell:
    """One row value, tagged with the kind of representation it carries."""

    kind: CellKind
    value: Any = None

    @classmethod
    def absent(cls) -> "Cell":
        return cls(CellKind.ABSENT)

    @classmethod
    def from_value(cls, value: Any, declared_type: str = "") -> "Cell":
        """Classify a driver value.

        Args:
            value: Value as returned by the database driver.
            declared_type: Column type from the catalog; only consulted to
                re-serialize json and jsonb values.

        Returns:
            The tagged cell.
        """
        if value is None:
            return cls.absent()
        # json values arrive decoded; scalars must be re-serialized too
        if declared_type.strip().lower() in JSON_TYPES:
            return cls(CellKind.TEXT, json.dumps(value, sort_keys=True, default=str))
        # bool before int: bool is an int subclass
        if isinstance(value, bool):
            return cls(CellKind.BOOLEAN, value)
        if isinstance(value, int):
            if INT64_MIN <= value <= INT64_MAX:
                return cls(CellKind.INTEGER, value)
            return cls(CellKind.LITERAL, str(value))
        if isinstance(value, float):
            if math.isfinite(value):
                return cls(CellKind.FLOAT, value)
            return cls(CellKind.TEXT, _non_finite_text(value))
        if isinstance(value, Decimal):
            if value.is_finite():
                return cls(CellKind.LITERAL, str(value))
            return cls(CellKind.TEXT, "NaN" if value.is_nan() else _non_finite_text(float(value)))
        if isinstance(value, str):
            return cls(CellKind.TEXT, value)
        if isinstance(value, (datetime, date, time)):
            return cls(CellKind.TEXT, value.isoformat(sep=" ") if isinstance(value, datetime) else value.isoformat())
        if isinstance(value, (bytes, bytearray, memoryview)):
            return cls(CellKind.TEXT, "\\x" + bytes(value).hex())
        if isinstance(value, (UUID, ipaddress.IPv4Address, ipaddress.IPv6Address,
                              ipaddress.IPv4Network, ipaddress.IPv6Network,
                              ipaddress.IPv4Interface, ipaddress.IPv6Interface)):
            return cls(CellKind.TEXT, str(value))
        if isinstance(value, list):
            return cls(CellKind.TEXT, _array_text(value))
        return cls(CellKind.OPAQUE, value)

    def text(self) -> str | None:
        """Textual form of the value, or None when it has none."""
        if self.kind in (CellKind.ABSENT, CellKind.OPAQUE):
            return None
        if self.kind is CellKind.BOOLEAN:
            return "true" if self.value else "false"
        if self.kind is CellKind.FLOAT:
            return repr(self.value)
        return str(self.value)


def _non_finite_text(value: float) -> str:
    if math.isnan(value):
        return "NaN"
    return "Infinity" if value > 0 else "-Infinity"


def _array_text(items: list) -> str:
    """Render a Python list as a PostgreSQL array literal body."""
    parts = []
    for item in items:
        if item is None:
            parts.append("NULL")
        elif isinstance(item, list):
            parts.append(_array_text(item))
        else:
            text = Cell.from_value(item).text()
            if text is None:
                parts.append("NULL")
            else:
                escaped = text.replace("\\", "\\\\").replace('"', '\\"')
                parts.append(f'"{escaped}"')
    return "{" + ",".join(parts) + "}"


# ------------------------------------------------------------------
# Literal helpers
# ------------------------------------------------------------------


def quote_literal(text: str) -> str:
    """Wrap ``text`` in single quotes, doubling embedded quotes."""
    return "'" + text.replace("'", "''") + "'"


def quote_ident(name: str) -> str:
    """Quote an identifier only when it cannot be written bare."""
    if _PLAIN_IDENT.match(name) and name not in RESERVED_WORDS:
        return name
    return '"' + name.replace('"', '""') + '"'


def is_quoted_type(declared_type: str) -> bool:
    """True when values of ``declared_type`` are always written quoted."""
    lowered = declared_type.lower()
    return any(marker in lowered for marker in QUOTED_TYPE_MARKERS)


# ------------------------------------------------------------------
# Ordered fallback
# ------------------------------------------------------------------


def _as_literal(cell: Cell) -> str | None:
    if cell.kind is CellKind.LITERAL:
        return cell.value
    return None


def _as_int32(cell: Cell) -> str | None:
    if cell.kind is CellKind.INTEGER and INT32_MIN <= cell.value <= INT32_MAX:
        return str(cell.value)
    return None


def _as_int64(cell: Cell) -> str | None:
    if cell.kind is CellKind.INTEGER and INT64_MIN <= cell.value <= INT64_MAX:
        return str(cell.value)
    return None


def _as_float(cell: Cell) -> str | None:
    if cell.kind is CellKind.FLOAT:
        return repr(cell.value)
    return None


def _as_bool(cell: Cell) -> str | None:
    if cell.kind is CellKind.BOOLEAN:
        return "TRUE" if cell.value else "FALSE"
    return None


def _as_quoted_text(cell: Cell) -> str | None:
    if cell.kind is CellKind.TEXT:
        return quote_literal(cell.value)
    return None


FALLBACK_ORDER = (
    _as_literal,
    _as_int32,
    _as_int64,
    _as_float,
    _as_bool,
    _as_quoted_text,
)


def encode(cell: Cell, declared_type: str) -> str:
    """Encode one cell as SQL literal text.

    Args:
        cell: The tagged row value.
        declared_type: Column type as rendered by the catalog
            (e.g. ``"character varying(40)"``, ``"integer"``, ``"status"``).

    Returns:
        Literal text safe to splice into an ``INSERT`` statement.
    """
    if cell.kind is CellKind.ABSENT:
        return NULL

    if is_quoted_type(declared_type):
        text = cell.text()
        return NULL if text is None else quote_literal(text)

    for attempt in FALLBACK_ORDER:
        literal = attempt(cell)
        if literal is not None:
            return literal
    return NULL
