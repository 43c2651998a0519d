"""Shared test doubles: re-export memory backends."""

from __future__ import annotations

from benchrecon.persistence.memory_backend import (
    MemoryCacheBackend,
    MemoryMappingStore,
    MemoryRowStore,
)

__all__ = ["MemoryCacheBackend", "MemoryMappingStore", "MemoryRowStore"]
