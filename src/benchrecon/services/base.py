"""Base service with common dependency wiring."""

from __future__ import annotations

from typing import Any

from benchrecon.core.config import AppSettings
from benchrecon.core.protocols import IRowStore
from benchrecon.services.cache_layer import CacheLayer


class BaseService:
    """Common base for engine services.

    Settings, the row store and the engine-owned cache layer are injected
    at construction time.
    """

    def __init__(
        self,
        *,
        settings: AppSettings,
        row_store: IRowStore,
        cache: CacheLayer,
    ) -> None:
        self._settings = settings
        self._rows = row_store
        self._cache = cache

    async def health_check(self) -> dict[str, Any]:
        """Return service health status."""
        return {
            "service": self.__class__.__name__,
            "status": "healthy",
            "environment": self._settings.environment,
            "cache_entries": len(self._cache),
        }
