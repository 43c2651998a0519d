"""In-memory backends for unit tests and local runs, dict-backed fakes."""

from __future__ import annotations

import copy
from typing import Any

from benchrecon.core.types import RawRow
from benchrecon.models.mapping import Dimension, MappingEntry, SourceEntry
from benchrecon.models.survey import SurveySource


def match_filters(row: RawRow, filters: dict[str, Any] | None) -> bool:
    """Equality filter on top-level (or ``data``-wrapped) row fields."""
    if not filters:
        return True
    payload = row.get("data") if isinstance(row.get("data"), dict) else row
    return all(payload.get(k, row.get(k)) == v for k, v in filters.items())


class MemoryRowStore:
    """Dict-backed IRowStore."""

    def __init__(self) -> None:
        self._sources: dict[str, SurveySource] = {}
        self._rows: dict[str, list[RawRow]] = {}
        self.get_rows_calls: list[str] = []
        self.fail_sources: set[str] = set()
        self.unavailable = False

    def add_source(self, source: SurveySource, rows: list[RawRow]) -> None:
        self._sources[source.id] = source
        self._rows[source.id] = [copy.deepcopy(r) for r in rows]

    def remove_source(self, source_id: str) -> None:
        self._sources.pop(source_id, None)
        self._rows.pop(source_id, None)

    def clear(self) -> None:
        self._sources.clear()
        self._rows.clear()

    async def list_sources(self) -> list[SurveySource]:
        if self.unavailable:
            raise ConnectionError("row store unavailable")
        return list(self._sources.values())

    async def get_rows(
        self,
        source_id: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[RawRow]:
        self.get_rows_calls.append(source_id)
        if source_id in self.fail_sources:
            raise ConnectionError(f"rows for {source_id} unavailable")
        rows = [copy.deepcopy(r) for r in self._rows.get(source_id, []) if match_filters(r, filters)]
        return rows if limit is None else rows[:limit]


class MemoryMappingStore:
    """Dict-backed IMappingStore."""

    def __init__(self) -> None:
        self._tables: dict[Dimension, dict[str, MappingEntry]] = {d: {} for d in Dimension}
        self._learned: dict[Dimension, dict[str, str]] = {d: {} for d in Dimension}

    def add_entry(
        self,
        dimension: Dimension,
        standardized_name: str,
        sources: list[tuple[str, str]],
    ) -> None:
        """Add ``(survey_source, original_label)`` pairs under a standardized name."""
        table = self._tables[dimension]
        existing = table.get(standardized_name)
        entries = list(existing.source_entries) if existing else []
        entries.extend(SourceEntry(survey_source=s, original_label=l) for s, l in sources)
        table[standardized_name] = MappingEntry(
            standardized_name=standardized_name, source_entries=tuple(entries),
        )

    def set_learned(self, dimension: Dimension, original_label: str, canonical_name: str) -> None:
        self._learned[dimension][original_label.strip().lower()] = canonical_name

    def get_mapping_table(self, dimension: Dimension) -> list[MappingEntry]:
        return list(self._tables[dimension].values())

    def get_learned_mappings(self, dimension: Dimension) -> dict[str, str]:
        return dict(self._learned[dimension])

    def invalidate(self, dimension: Dimension | None = None) -> None:
        """Reads are never cached here."""


class MemoryCacheBackend:
    """Dict-backed ICacheBackend."""

    def __init__(self) -> None:
        self._store: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        return self._store.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self._store[key] = value

    def delete(self, key: str) -> None:
        self._store.pop(key, None)
