"""Variable catalog discovery over sampled raw rows."""

from __future__ import annotations

import statistics
import time
from dataclasses import dataclass, field

import structlog

from benchrecon.core.concurrency import CancellationToken, checkpoint, chunked, run_bounded
from benchrecon.core.config import AppSettings
from benchrecon.core.exceptions import CorpusUnavailableError, SourceProcessingError
from benchrecon.core.protocols import IRowStore
from benchrecon.core.types import RawRow
from benchrecon.models.survey import SourceCategory, SurveySource
from benchrecon.models.variables import (
    DiscoveredVariable,
    DiscoveryStats,
    VariableCategory,
    VariableFormat,
)
from benchrecon.normalization.coercion import to_number
from benchrecon.normalization.format_detector import (
    SourceFormat,
    WideFormat,
    detect_source_format,
    find_long_field,
    unwrap,
    wide_columns,
)
from benchrecon.normalization.variable_normalizer import VariableNormalizer
from benchrecon.services.base import BaseService
from benchrecon.services.cache_layer import CacheKind, CacheLayer
from benchrecon.services.mappings import MappingSnapshotProvider
from benchrecon.services.row_pipeline import median_of

logger = structlog.get_logger(__name__)

_CATEGORY_ORDER = {category: i for i, category in enumerate(VariableCategory)}


@dataclass
class _LabelTally:
    """Per-label counts gathered from one source's sample."""

    label: str
    format: VariableFormat
    rows: int = 0
    rows_with_data: int = 0
    medians: list[float] = field(default_factory=list)

    def add(self, median: float | None) -> None:
        self.rows += 1
        if median is not None and median != 0:
            self.rows_with_data += 1
            self.medians.append(median)

    @property
    def median_hint(self) -> float | None:
        positive = [m for m in self.medians if m > 0]
        return statistics.median(positive) if positive else None


@dataclass
class _Merged:
    raw_label: str
    format: VariableFormat
    sources: list[str] = field(default_factory=list)
    rows: int = 0
    rows_with_data: int = 0


class VariableDiscoveryService(BaseService):
    """Builds the corpus-wide catalog of canonical variables."""

    def __init__(
        self,
        *,
        settings: AppSettings,
        row_store: IRowStore,
        cache: CacheLayer,
        mappings: MappingSnapshotProvider,
    ) -> None:
        super().__init__(settings=settings, row_store=row_store, cache=cache)
        self._mappings = mappings
        self._last_duration_ms = 0.0

    async def discover_all_variables(
        self,
        category: str | SourceCategory | None = None,
        *,
        cancel: CancellationToken | None = None,
    ) -> list[DiscoveredVariable]:
        if category is None or (isinstance(category, str) and not category.strip()):
            return await self._cache.get_or_compute(
                CacheKind.DISCOVERY, lambda: self._discover(None, cancel),
            )
        parsed = SourceCategory.parse(str(category))
        if parsed is None:
            logger.warning("discovery_unknown_category", category=str(category))
            return []
        # Filtered discovery lives in its own slot and never reads the global one.
        return await self._cache.get_or_compute(
            CacheKind.FILTER,
            lambda: self._discover(parsed, cancel),
            params={"discovery_category": parsed.value},
        )

    async def refresh(self, *, cancel: CancellationToken | None = None) -> list[DiscoveredVariable]:
        self.clear_cache()
        return await self.discover_all_variables(cancel=cancel)

    def clear_cache(self) -> None:
        self._cache.invalidate({CacheKind.DISCOVERY})

    async def get_variables_by_category(
        self, category: str | SourceCategory | None = None,
    ) -> dict[VariableCategory, list[DiscoveredVariable]]:
        grouped: dict[VariableCategory, list[DiscoveredVariable]] = {c: [] for c in VariableCategory}
        for variable in await self.discover_all_variables(category):
            grouped[variable.category].append(variable)
        return grouped

    async def get_discovery_stats(self) -> DiscoveryStats:
        variables = await self.discover_all_variables()
        sources = {s for v in variables for s in v.sources}
        return DiscoveryStats(
            total_variables=len(variables),
            total_sources=len(sources),
            total_records=sum(v.record_count for v in variables),
            duration_ms=self._last_duration_ms,
        )

    # ---- discovery pass ----

    async def _discover(
        self,
        category: SourceCategory | None,
        cancel: CancellationToken | None,
    ) -> list[DiscoveredVariable]:
        started = time.perf_counter()
        try:
            sources = await self._rows.list_sources()
        except Exception as exc:
            raise CorpusUnavailableError("list_sources", exc) from exc

        selected = [s for s in sources if category is None or s.effective_category == category]
        normalizer = VariableNormalizer(await self._mappings.snapshot())

        outcomes = await run_bounded(
            selected,
            lambda source: self._scan_source(source, cancel),
            limit=self._settings.engine.max_concurrency,
            cancel=cancel,
            stage="discovery",
        )

        merged: dict[str, _Merged] = {}
        for outcome in outcomes:
            source = outcome.item
            if not outcome.ok:
                logger.warning("source_skipped", source_id=source.id, stage="discovery",
                               error=str(outcome.error))
                continue
            for tally in outcome.result or []:
                key = normalizer.normalize(tally.label, source.survey_source,
                                           median=tally.median_hint)
                if not key:
                    continue
                entry = merged.setdefault(key, _Merged(raw_label=tally.label, format=tally.format))
                if source.source_label not in entry.sources:
                    entry.sources.append(source.source_label)
                entry.rows += tally.rows
                entry.rows_with_data += tally.rows_with_data

        variables = [
            DiscoveredVariable(
                raw_label=entry.raw_label,
                canonical_key=key,
                display_name=normalizer.display_name(key),
                category=normalizer.category_for(key),
                sources=entry.sources,
                record_count=entry.rows,
                data_quality=entry.rows_with_data / entry.rows if entry.rows else 0.0,
                format=entry.format,
            )
            for key, entry in merged.items()
        ]
        variables.sort(key=lambda v: (_CATEGORY_ORDER[v.category], v.canonical_key))

        self._last_duration_ms = (time.perf_counter() - started) * 1000
        logger.info(
            "discovery_complete",
            category=str(category) if category else None,
            sources=len(selected),
            variables=len(variables),
            duration_ms=round(self._last_duration_ms, 1),
        )
        return variables

    async def _scan_source(
        self, source: SurveySource, cancel: CancellationToken | None,
    ) -> list[_LabelTally]:
        try:
            raw = await self._rows.get_rows(
                source.id, None, self._settings.engine.discovery_sample_limit,
            )
        except Exception as exc:
            raise SourceProcessingError(source.id, str(exc)) from exc
        rows = [unwrap(r) for r in raw if isinstance(r, dict)]
        source_format = detect_source_format(rows)

        tallies: dict[tuple[VariableFormat, str], _LabelTally] = {}
        for chunk in chunked(rows, self._settings.engine.chunk_size):
            await checkpoint(cancel, f"discovery:{source.id}")
            for row in chunk:
                self._tally_row(row, source_format, tallies)
        return list(tallies.values())

    @staticmethod
    def _tally_row(
        row: RawRow,
        source_format: SourceFormat,
        tallies: dict[tuple[VariableFormat, str], _LabelTally],
    ) -> None:
        if source_format.long:
            field_name = find_long_field(row)
            if field_name is not None:
                label = str(row[field_name]).strip()
                tally = tallies.setdefault(
                    (VariableFormat.LONG, label.lower()),
                    _LabelTally(label=label, format=VariableFormat.LONG),
                )
                tally.add(median_of(row))
        if source_format.wide:
            present = WideFormat(columns=tuple(wide_columns(str(k) for k in row)))
            for base, columns in present.by_base().items():
                median = to_number(row.get(columns["p50"])) if "p50" in columns else None
                tally = tallies.setdefault(
                    (VariableFormat.WIDE, base.lower()),
                    _LabelTally(label=base, format=VariableFormat.WIDE),
                )
                tally.add(median)
