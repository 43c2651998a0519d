"""Per-pass MappingSnapshot loading, cached in the MAPPINGS slot."""

from __future__ import annotations

import asyncio

import structlog

from benchrecon.core.exceptions import CorpusUnavailableError
from benchrecon.core.protocols import IMappingStore
from benchrecon.models.mapping import Dimension, MappingSnapshot
from benchrecon.services.cache_layer import CacheKind, CacheLayer

logger = structlog.get_logger(__name__)


class MappingSnapshotProvider:
    def __init__(self, mapping_store: IMappingStore, cache: CacheLayer) -> None:
        self._store = mapping_store
        self._cache = cache

    async def snapshot(self) -> MappingSnapshot:
        return await self._cache.get_or_compute(CacheKind.MAPPINGS, self._load)

    def invalidate(self) -> None:
        """Drop the store's read-through cache; the MAPPINGS slot is cleared by events."""
        self._store.invalidate()

    async def _load(self) -> MappingSnapshot:
        try:
            return await asyncio.to_thread(self._read_all)
        except Exception as exc:
            raise CorpusUnavailableError("load_mappings", exc) from exc

    def _read_all(self) -> MappingSnapshot:
        tables = {dim: self._store.get_mapping_table(dim) for dim in Dimension}
        learned = {dim: self._store.get_learned_mappings(dim) for dim in Dimension}
        snapshot = MappingSnapshot.build(tables, learned)
        logger.info(
            "mapping_snapshot_loaded",
            entries={str(d): len(t) for d, t in snapshot.tables.items()},
            learned={str(d): len(m) for d, m in snapshot.learned.items()},
        )
        return snapshot
