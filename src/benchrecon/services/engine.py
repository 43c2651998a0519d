"""BenchmarkEngine: the explicit context object consumers talk to."""

from __future__ import annotations

from typing import Any, Callable, Sequence

import structlog

from benchrecon.core.concurrency import CancellationToken, run_bounded
from benchrecon.core.config import AppSettings
from benchrecon.core.exceptions import CorpusUnavailableError, SourceProcessingError
from benchrecon.core.protocols import IMappingStore, IRowStore
from benchrecon.models.aggregation import (
    AggregatedRecord,
    AggregationFilters,
    NormalizedRow,
    SpecialtyGroup,
    SummaryRow,
)
from benchrecon.models.survey import SourceCategory, SurveySource
from benchrecon.models.variables import DiscoveredVariable, DiscoveryStats, VariableCategory
from benchrecon.services.aggregation import AggregationEngine
from benchrecon.services.base import BaseService
from benchrecon.services.cache_layer import CacheKind, CacheLayer, InvalidationEvent, Listener
from benchrecon.services.discovery import VariableDiscoveryService
from benchrecon.services.mappings import MappingSnapshotProvider
from benchrecon.services.row_pipeline import RowNormalizationPipeline
from benchrecon.services.summary import group_by_specialty, summarize

logger = structlog.get_logger(__name__)


class BenchmarkEngine(BaseService):
    """Discovery, aggregation and cache invalidation over one corpus.

    Every public pass accepts an optional CancellationToken; a cancelled
    pass raises PassCancelledError and caches nothing. Callers must not
    mutate mapping tables while a pass runs.
    """

    def __init__(
        self,
        *,
        settings: AppSettings,
        row_store: IRowStore,
        mapping_store: IMappingStore,
        cache: CacheLayer | None = None,
    ) -> None:
        if cache is None:
            cache = CacheLayer(
                fresh_seconds=settings.cache.fresh_seconds,
                stale_seconds=settings.cache.stale_seconds,
            )
        super().__init__(settings=settings, row_store=row_store, cache=cache)
        self._mappings = MappingSnapshotProvider(mapping_store, cache)
        self._discovery = VariableDiscoveryService(
            settings=settings, row_store=row_store, cache=cache, mappings=self._mappings,
        )
        self._aggregator = AggregationEngine()

    @property
    def cache(self) -> CacheLayer:
        return self._cache

    # ---- discovery ----

    async def discover_variables(
        self,
        category: str | SourceCategory | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> list[DiscoveredVariable]:
        return await self._discovery.discover_all_variables(category, cancel=cancel)

    async def get_variables_by_category(
        self, category: str | SourceCategory | None = None,
    ) -> dict[VariableCategory, list[DiscoveredVariable]]:
        return await self._discovery.get_variables_by_category(category)

    async def get_discovery_stats(self) -> DiscoveryStats:
        return await self._discovery.get_discovery_stats()

    # ---- aggregation ----

    async def get_aggregated_data(
        self,
        filters: AggregationFilters | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> list[AggregatedRecord]:
        if filters is None or filters.is_empty:
            return await self._cache.get_or_compute(
                CacheKind.AGGREGATION, lambda: self._aggregate(None, cancel),
            )
        return await self._cache.get_or_compute(
            CacheKind.FILTER,
            lambda: self._filtered(filters, cancel),
            params={"aggregated": filters.cache_params()},
        )

    async def _filtered(
        self, filters: AggregationFilters, cancel: CancellationToken | None,
    ) -> list[AggregatedRecord]:
        if filters.selects_sources:
            records = await self._aggregate(filters, cancel)
        else:
            records = await self.get_aggregated_data(cancel=cancel)
        return self._aggregator.filter_records(records, filters)

    async def _aggregate(
        self,
        filters: AggregationFilters | None,
        cancel: CancellationToken | None,
    ) -> list[AggregatedRecord]:
        snapshot = await self._mappings.snapshot()
        try:
            sources = await self._rows.list_sources()
        except Exception as exc:
            raise CorpusUnavailableError("list_sources", exc) from exc
        selected = [s for s in sources if _source_selected(s, filters)]

        pipeline = RowNormalizationPipeline(
            snapshot, chunk_size=self._settings.engine.chunk_size,
        )

        async def normalize(source: SurveySource) -> list[NormalizedRow]:
            try:
                rows = await self._rows.get_rows(
                    source.id, None, self._settings.engine.aggregation_row_limit,
                )
            except Exception as exc:
                raise SourceProcessingError(source.id, str(exc)) from exc
            return await pipeline.normalize_source(source, rows, cancel=cancel)

        outcomes = await run_bounded(
            selected, normalize,
            limit=self._settings.engine.max_concurrency,
            cancel=cancel,
            stage="aggregation",
        )

        normalized: list[NormalizedRow] = []
        skipped = 0
        for outcome in outcomes:
            if outcome.ok:
                normalized.extend(outcome.result or [])
            else:
                skipped += 1
                logger.warning("source_skipped", source_id=outcome.item.id,
                               stage="aggregation", error=str(outcome.error))

        records = self._aggregator.aggregate(normalized)
        logger.info(
            "aggregation_complete",
            sources=len(selected),
            skipped=skipped,
            rows=len(normalized),
            records=len(records),
        )
        return records

    # ---- display derivatives ----

    async def get_summary(
        self,
        filters: AggregationFilters | None = None,
        variables: Sequence[str] = (),
        *,
        cancel: CancellationToken | None = None,
    ) -> list[SummaryRow]:
        filters = filters or AggregationFilters()
        params = {"filters": filters.cache_params(), "variables": list(variables)}

        async def compute() -> list[SummaryRow]:
            records = await self.get_aggregated_data(filters, cancel=cancel)
            return summarize(records, variables)

        return await self._cache.get_or_compute(CacheKind.SUMMARY, compute, params=params)

    async def get_grouped(
        self,
        filters: AggregationFilters | None = None,
        variables: Sequence[str] = (),
        *,
        cancel: CancellationToken | None = None,
    ) -> list[SpecialtyGroup]:
        filters = filters or AggregationFilters()
        params = {"filters": filters.cache_params(), "variables": list(variables)}

        async def compute() -> list[SpecialtyGroup]:
            records = await self.get_aggregated_data(filters, cancel=cancel)
            return group_by_specialty(records, variables)

        return await self._cache.get_or_compute(CacheKind.GROUPING, compute, params=params)

    # ---- invalidation ----

    def on_new_source_ingested(self) -> None:
        self._mappings.invalidate()
        self._cache.emit(InvalidationEvent.NEW_SOURCE_INGESTED)

    def on_source_removed(self) -> None:
        self._cache.emit(InvalidationEvent.SOURCE_REMOVED)

    def on_mapping_changed(self) -> None:
        self._mappings.invalidate()
        self._cache.emit(InvalidationEvent.MAPPING_CHANGED)

    def on_variable_selection_changed(self) -> None:
        self._cache.emit(InvalidationEvent.VARIABLE_SELECTION_CHANGED)

    def on_filter_changed(self) -> None:
        self._cache.emit(InvalidationEvent.FILTER_CHANGED)

    def on_corpus_cleared(self) -> None:
        self._mappings.invalidate()
        self._cache.emit(InvalidationEvent.CORPUS_CLEARED)

    def handle_event(self, event: InvalidationEvent | str) -> None:
        """Dispatch by event name, e.g. from the HTTP invalidation route."""
        getattr(self, f"on_{InvalidationEvent(event).value}")()

    def subscribe(self, event: InvalidationEvent, callback: Listener) -> Callable[[], None]:
        return self._cache.subscribe(event, callback)

    async def close(self) -> None:
        await self._cache.drain()

    async def health_check(self) -> dict[str, Any]:
        status = await super().health_check()
        status["cache_hit_rate"] = round(self._cache.stats.hit_rate, 3)
        return status


def _source_selected(source: SurveySource, filters: AggregationFilters | None) -> bool:
    if filters is None:
        return True
    if not AggregationFilters.is_open(filters.year):
        if str(source.year) != str(filters.year).strip():
            return False
    if not AggregationFilters.is_open(filters.category):
        if source.effective_category != SourceCategory.parse(str(filters.category)):
            return False
    return True
