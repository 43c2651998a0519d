"""Protocol interfaces for the collaborators BenchRecon reads from.

Structural typing only: the DynamoDB/S3 adapters and the in-memory fakes
satisfy these without inheriting from them.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from benchrecon.core.types import RawRow

if TYPE_CHECKING:
    from benchrecon.models.mapping import Dimension, MappingEntry
    from benchrecon.models.survey import SurveySource


# ---------------------------------------------------------------------------
# Row Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IRowStore(Protocol):
    """Read access to survey sources and their raw rows."""

    async def list_sources(self) -> list[SurveySource]: ...

    async def get_rows(
        self,
        source_id: str,
        filters: dict[str, Any] | None = None,
        limit: int | None = None,
    ) -> list[RawRow]: ...


# ---------------------------------------------------------------------------
# Mapping Store
# ---------------------------------------------------------------------------

@runtime_checkable
class IMappingStore(Protocol):
    """Curated mapping tables and learned overrides, one set per dimension."""

    def get_mapping_table(self, dimension: Dimension) -> list[MappingEntry]: ...

    def get_learned_mappings(self, dimension: Dimension) -> dict[str, str]: ...

    def invalidate(self, dimension: Dimension | None = None) -> None:
        """Drop any read-through cache so the next read sees current tables."""


# ---------------------------------------------------------------------------
# Cache Backend
# ---------------------------------------------------------------------------

@runtime_checkable
class ICacheBackend(Protocol):
    """Redis-compatible cache interface."""

    def get(self, key: str) -> str | None: ...

    def setex(self, key: str, ttl: int, value: str) -> None: ...

    def delete(self, key: str) -> None: ...
