"""Derivative cache with stale-while-revalidate reads and event invalidation.

Owned by one engine context. DISCOVERY, MAPPINGS and AGGREGATION are single
global slots; GROUPING, SUMMARY and FILTER slots are keyed by a stable hash
of their parameters. Values are deep-copied on the way in and out, so a hit
is indistinguishable from the recompute that produced it.
"""

from __future__ import annotations

import asyncio
import copy
import hashlib
import json
import time
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Awaitable, Callable, TypeVar

import structlog

logger = structlog.get_logger(__name__)

T = TypeVar("T")


class CacheKind(StrEnum):
    DISCOVERY = "discovery"
    MAPPINGS = "mappings"
    AGGREGATION = "aggregation"
    GROUPING = "grouping"
    SUMMARY = "summary"
    FILTER = "filter"


class Freshness(StrEnum):
    FRESH = "fresh"
    STALE = "stale"
    EXPIRED = "expired"


class InvalidationEvent(StrEnum):
    NEW_SOURCE_INGESTED = "new_source_ingested"
    SOURCE_REMOVED = "source_removed"
    MAPPING_CHANGED = "mapping_changed"
    VARIABLE_SELECTION_CHANGED = "variable_selection_changed"
    FILTER_CHANGED = "filter_changed"
    CORPUS_CLEARED = "corpus_cleared"


_EVERYTHING = frozenset(CacheKind)

INVALIDATION_TABLE: dict[InvalidationEvent, frozenset[CacheKind]] = {
    InvalidationEvent.NEW_SOURCE_INGESTED: _EVERYTHING,
    InvalidationEvent.SOURCE_REMOVED: frozenset({
        CacheKind.DISCOVERY, CacheKind.AGGREGATION, CacheKind.GROUPING, CacheKind.SUMMARY,
        CacheKind.FILTER,
    }),
    InvalidationEvent.MAPPING_CHANGED: frozenset({
        CacheKind.MAPPINGS, CacheKind.AGGREGATION, CacheKind.GROUPING, CacheKind.SUMMARY,
        CacheKind.FILTER,
    }),
    InvalidationEvent.VARIABLE_SELECTION_CHANGED: frozenset({
        CacheKind.SUMMARY, CacheKind.GROUPING,
    }),
    InvalidationEvent.FILTER_CHANGED: frozenset({CacheKind.FILTER}),
    InvalidationEvent.CORPUS_CLEARED: _EVERYTHING,
}

_GLOBAL_KINDS = frozenset({CacheKind.DISCOVERY, CacheKind.MAPPINGS, CacheKind.AGGREGATION})

Listener = Callable[[InvalidationEvent], None]
Slot = tuple[CacheKind, str]


@dataclass
class CacheEntry:
    value: Any
    stored_at: float


@dataclass
class CacheStats:
    hits: int = 0
    stale_hits: int = 0
    misses: int = 0
    evictions: int = 0
    refreshes: int = 0
    refresh_failures: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.stale_hits + self.misses
        return (self.hits + self.stale_hits) / total if total else 0.0


def param_key(params: dict[str, Any] | None) -> str:
    """Stable short hash of a parameter dict (order-insensitive)."""
    if not params:
        return ""
    blob = json.dumps(params, sort_keys=True, default=str)
    return hashlib.sha256(blob.encode()).hexdigest()[:16]


class CacheLayer:
    def __init__(
        self,
        fresh_seconds: float = 1800.0,
        stale_seconds: float = 300.0,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._fresh = fresh_seconds
        self._stale = stale_seconds
        self._clock = clock
        self._entries: dict[Slot, CacheEntry] = {}
        self._generations: dict[CacheKind, int] = {kind: 0 for kind in CacheKind}
        self._refreshing: dict[Slot, asyncio.Task[None]] = {}
        self._listeners: dict[InvalidationEvent, list[Listener]] = {}
        self.stats = CacheStats()

    # ---- slot access ----

    def _slot(self, kind: CacheKind, params: dict[str, Any] | None) -> Slot:
        if kind in _GLOBAL_KINDS:
            return (kind, "")
        return (kind, param_key(params))

    def _state(self, entry: CacheEntry) -> Freshness:
        age = self._clock() - entry.stored_at
        if age < self._fresh:
            return Freshness.FRESH
        if age < self._fresh + self._stale:
            return Freshness.STALE
        return Freshness.EXPIRED

    def freshness(self, kind: CacheKind, params: dict[str, Any] | None = None) -> Freshness | None:
        entry = self._entries.get(self._slot(kind, params))
        return None if entry is None else self._state(entry)

    def peek(self, kind: CacheKind, params: dict[str, Any] | None = None) -> Any:
        """Cached value if fresh or stale, without touching stats or scheduling."""
        entry = self._entries.get(self._slot(kind, params))
        if entry is None or self._state(entry) is Freshness.EXPIRED:
            return None
        return copy.deepcopy(entry.value)

    def put(self, kind: CacheKind, value: Any, params: dict[str, Any] | None = None) -> None:
        self._entries[self._slot(kind, params)] = CacheEntry(
            value=copy.deepcopy(value), stored_at=self._clock(),
        )

    def __len__(self) -> int:
        return len(self._entries)

    async def get_or_compute(
        self,
        kind: CacheKind,
        compute: Callable[[], Awaitable[T]],
        params: dict[str, Any] | None = None,
    ) -> T:
        slot = self._slot(kind, params)
        entry = self._entries.get(slot)
        if entry is not None:
            state = self._state(entry)
            if state is Freshness.FRESH:
                self.stats.hits += 1
                return copy.deepcopy(entry.value)
            if state is Freshness.STALE:
                self.stats.stale_hits += 1
                self._schedule_refresh(slot, compute)
                return copy.deepcopy(entry.value)
            del self._entries[slot]
            self.stats.evictions += 1

        self.stats.misses += 1
        generation = self._generations[kind]
        value = await compute()
        self._store(slot, value, generation)
        return value

    def _store(self, slot: Slot, value: Any, generation: int) -> None:
        # An invalidation that ran while we computed makes the value unsafe to keep.
        if self._generations[slot[0]] != generation:
            logger.debug("cache_store_skipped", kind=str(slot[0]), reason="invalidated")
            return
        self._entries[slot] = CacheEntry(value=copy.deepcopy(value), stored_at=self._clock())

    def _schedule_refresh(self, slot: Slot, compute: Callable[[], Awaitable[Any]]) -> None:
        if slot in self._refreshing:
            return
        generation = self._generations[slot[0]]
        task = asyncio.create_task(self._refresh(slot, compute, generation))
        self._refreshing[slot] = task
        task.add_done_callback(lambda _t: self._refreshing.pop(slot, None))

    async def _refresh(self, slot: Slot, compute: Callable[[], Awaitable[Any]],
                       generation: int) -> None:
        self.stats.refreshes += 1
        try:
            value = await compute()
        except Exception as exc:
            self.stats.refresh_failures += 1
            logger.warning("cache_refresh_failed", kind=str(slot[0]), error=str(exc))
            return
        self._store(slot, value, generation)
        logger.debug("cache_refreshed", kind=str(slot[0]))

    async def drain(self) -> None:
        """Wait for any background refreshes still in flight."""
        while self._refreshing:
            await asyncio.gather(*list(self._refreshing.values()), return_exceptions=True)

    # ---- invalidation ----

    def invalidate(self, kinds: frozenset[CacheKind] | set[CacheKind]) -> int:
        doomed = [slot for slot in self._entries if slot[0] in kinds]
        for slot in doomed:
            del self._entries[slot]
        for kind in kinds:
            self._generations[kind] += 1
        self.stats.evictions += len(doomed)
        return len(doomed)

    def clear(self) -> int:
        return self.invalidate(_EVERYTHING)

    def emit(self, event: InvalidationEvent) -> int:
        removed = self.invalidate(INVALIDATION_TABLE[event])
        logger.info("cache_invalidated", invalidation=str(event), removed=removed)
        for callback in list(self._listeners.get(event, [])):
            try:
                callback(event)
            except Exception:
                logger.exception("cache_listener_failed", invalidation=str(event))
        return removed

    def subscribe(self, event: InvalidationEvent, callback: Listener) -> Callable[[], None]:
        """Register ``callback`` for ``event``; returns the unsubscribe function."""
        self._listeners.setdefault(event, []).append(callback)

        def unsubscribe() -> None:
            listeners = self._listeners.get(event, [])
            if callback in listeners:
                listeners.remove(callback)

        return unsubscribe
