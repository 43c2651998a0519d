"""Long/wide row-shape detection.

A long row carries one variable label in a named field with plain percentile
columns. A wide row carries ``<base><sep><percentile>`` columns for many
variables at once. A source may contain both shapes, so the source-level
verdict only says which shapes to look for; each row is then tagged on its
own.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Iterable, Union

from benchrecon.core.types import RawRow
from benchrecon.normalization.text import fold

LONG_FIELD_ALIASES: tuple[str, ...] = (
    "variable", "Variable", "Variable Name", "variable_name",
    "benchmark", "Benchmark", "metric", "Metric",
)
_LONG_FIELDS_FOLDED = frozenset(a.lower() for a in LONG_FIELD_ALIASES)

PERCENTILES: tuple[str, ...] = ("p25", "p50", "p75", "p90")

_WIDE_COLUMN = re.compile(
    r"^(?P<base>.+?)[\s_\-]+(?:p(?P<p>25|50|75|90)|(?P<th>25|50|75|90)th)$",
    re.IGNORECASE,
)
_NOT_A_BASE = frozenset({"p", "percentile", "pctl", "pct"})


@dataclass(frozen=True)
class WideColumn:
    column: str
    base: str
    percentile: str  # one of PERCENTILES


@dataclass(frozen=True)
class LongFormat:
    variable_field: str


@dataclass(frozen=True)
class WideFormat:
    columns: tuple[WideColumn, ...]

    def by_base(self) -> dict[str, dict[str, str]]:
        """``{base: {percentile: column}}`` in first-seen base order."""
        grouped: dict[str, dict[str, str]] = {}
        for col in self.columns:
            grouped.setdefault(col.base, {})[col.percentile] = col.column
        return grouped


RowFormat = Union[LongFormat, WideFormat]


@dataclass(frozen=True)
class SourceFormat:
    long: bool = False
    wide: bool = False
    wide_bases: tuple[str, ...] = field(default=())

    @property
    def label(self) -> str:
        if self.long and self.wide:
            return "mixed"
        if self.wide:
            return "wide"
        return "long" if self.long else "unknown"


def unwrap(row: RawRow) -> RawRow:
    """Lift a payload nested under ``data`` to the top level."""
    payload = row.get("data")
    if isinstance(payload, dict):
        merged = {k: v for k, v in row.items() if k != "data"}
        merged.update(payload)
        return merged
    return row


def parse_wide_column(column: str) -> WideColumn | None:
    match = _WIDE_COLUMN.match(column.strip())
    if match is None:
        return None
    base = match.group("base").strip(" _-")
    if not base or fold(base) in _NOT_A_BASE:
        return None
    token = match.group("p") or match.group("th")
    return WideColumn(column=column, base=base, percentile=f"p{token}")


def find_long_field(row: RawRow) -> str | None:
    """Name of the row's variable-label field, if it carries a non-empty label."""
    for key, value in row.items():
        if str(key).strip().lower() in _LONG_FIELDS_FOLDED:
            if isinstance(value, str) and value.strip():
                return key
    return None


def wide_columns(columns: Iterable[str]) -> list[WideColumn]:
    found: list[WideColumn] = []
    for column in columns:
        parsed = parse_wide_column(column)
        if parsed is not None:
            found.append(parsed)
    return found


def detect_source_format(rows: Iterable[RawRow]) -> SourceFormat:
    """Decide once per source which shapes occur, from the union of columns."""
    columns: dict[str, None] = {}
    for row in rows:
        for key in unwrap(row):
            columns.setdefault(str(key), None)

    long = any(c.strip().lower() in _LONG_FIELDS_FOLDED for c in columns)
    wide = wide_columns(columns)
    bases = tuple(dict.fromkeys(col.base for col in wide))
    return SourceFormat(long=long, wide=bool(wide), wide_bases=bases)


def row_formats(row: RawRow, source_format: SourceFormat) -> list[RowFormat]:
    """Tag one (already unwrapped) row; both tags may apply."""
    tags: list[RowFormat] = []
    if source_format.long:
        field_name = find_long_field(row)
        if field_name is not None:
            tags.append(LongFormat(variable_field=field_name))
    if source_format.wide:
        present = wide_columns(str(k) for k in row)
        if present:
            tags.append(WideFormat(columns=tuple(present)))
    return tags


def get_field(row: RawRow, aliases: Iterable[str]) -> Any:
    """First alias present with a non-blank value; exact names before case-folded."""
    aliases = tuple(aliases)
    for alias in aliases:
        value = row.get(alias)
        if value is not None and not (isinstance(value, str) and not value.strip()):
            return value
    folded = {str(k).strip().lower(): v for k, v in row.items()}
    for alias in aliases:
        value = folded.get(alias.lower())
        if value is not None and not (isinstance(value, str) and not value.strip()):
            return value
    return None
