"""RawRow -> NormalizedRow conversion for one survey source."""

from __future__ import annotations

from typing import Any

import structlog

from benchrecon.core.concurrency import CancellationToken, checkpoint, chunked
from benchrecon.core.types import RawRow
from benchrecon.models.aggregation import NormalizedRow
from benchrecon.models.mapping import Dimension, MappingSnapshot
from benchrecon.models.survey import SourceCategory, SurveySource
from benchrecon.models.variables import VariableMetrics
from benchrecon.normalization.coercion import to_count, to_number
from benchrecon.normalization.format_detector import (
    PERCENTILES,
    LongFormat,
    SourceFormat,
    WideFormat,
    detect_source_format,
    get_field,
    row_formats,
    unwrap,
)
from benchrecon.normalization.name_normalizer import build_name_normalizers
from benchrecon.normalization.variable_normalizer import VariableNormalizer

logger = structlog.get_logger(__name__)

SPECIALTY_FIELDS = (
    "specialty", "Specialty", "surveySpecialty", "survey_specialty", "normalizedSpecialty",
)
REGION_FIELDS = (
    "geographic_region", "geographicRegion", "region", "Region", "Geographic Region",
)
PROVIDER_TYPE_FIELDS = ("provider_type", "providerType", "Provider Type")
YEAR_FIELDS = ("survey_year", "surveyYear", "year", "Year")
N_ORGS_FIELDS = (
    "n_orgs", "N_orgs", "n_org", "N_org", "# Orgs", "# of Orgs", "orgs", "Orgs",
    "number_of_organizations",
)
N_INCUMBENTS_FIELDS = (
    "n_incumbents", "N_incumbents", "n_incumbent", "N_incumbent", "# Incumbents",
    "# of Incumbents", "incumbents", "Incumbents", "number_of_incumbents",
)
PERCENTILE_FIELDS: dict[str, tuple[str, ...]] = {
    p: (p, p.upper(), f"{p[1:]}th", f"{p[1:]}th Percentile", f"percentile_{p[1:]}")
    for p in PERCENTILES
}
_WIDE_COUNT_SUFFIXES: dict[str, tuple[str, ...]] = {
    "n_orgs": ("n_orgs", "N_orgs", "n_org"),
    "n_incumbents": ("n_incumbents", "N_incumbents", "n_incumbent"),
}

# Source categories whose declared provider type stands in for a missing column.
_DECLARED_TYPE_CATEGORIES = frozenset({
    SourceCategory.CALL_PAY, SourceCategory.MOONLIGHTING, SourceCategory.CUSTOM,
})
_DECLARED_TYPES = frozenset({"APP", "PHYSICIAN"})


def long_metrics(row: RawRow, n_orgs: float | None,
                 n_incumbents: float | None) -> VariableMetrics:
    values = {p: to_number(get_field(row, PERCENTILE_FIELDS[p])) for p in PERCENTILES}
    return VariableMetrics(n_orgs=n_orgs, n_incumbents=n_incumbents, **values)


def median_of(row: RawRow) -> float | None:
    return to_number(get_field(row, PERCENTILE_FIELDS["p50"]))


class RowNormalizationPipeline:
    """Normalize rows against one MappingSnapshot."""

    def __init__(self, snapshot: MappingSnapshot, *, chunk_size: int = 500) -> None:
        self._names = build_name_normalizers(snapshot)
        self._variables = VariableNormalizer(snapshot)
        self._chunk_size = chunk_size

    def _declared_provider_type(self, source: SurveySource) -> str | None:
        declared = (source.provider_type or "").strip()
        if not declared or declared.upper() == "CALL":
            return None
        if source.effective_category in _DECLARED_TYPE_CATEGORIES or declared.upper() in _DECLARED_TYPES:
            return declared
        return None

    def normalize_row(
        self,
        row: RawRow,
        source: SurveySource,
        source_format: SourceFormat | None = None,
    ) -> NormalizedRow:
        row = unwrap(row)
        if source_format is None:
            source_format = detect_source_format([row])
        vendor = source.survey_source

        raw_type = get_field(row, PROVIDER_TYPE_FIELDS)
        if raw_type is None:
            raw_type = self._declared_provider_type(source)

        n_orgs, orgs_missing = to_count(get_field(row, N_ORGS_FIELDS))
        n_incumbents, incumbents_missing = to_count(get_field(row, N_INCUMBENTS_FIELDS))
        missing = [name for name, flag in (("n_orgs", orgs_missing),
                                           ("n_incumbents", incumbents_missing)) if flag]
        row_orgs = None if orgs_missing else n_orgs
        row_incumbents = None if incumbents_missing else n_incumbents

        year = source.year
        if year is None:
            parsed_year = to_number(get_field(row, YEAR_FIELDS))
            year = int(parsed_year) if parsed_year is not None else None

        variables: dict[str, VariableMetrics] = {}
        tags = row_formats(row, source_format)
        # Wide first so a Long value for the same key overwrites it.
        for tag in sorted(tags, key=lambda t: isinstance(t, LongFormat)):
            if isinstance(tag, WideFormat):
                self._apply_wide(row, tag, vendor, row_orgs, row_incumbents, variables)
            else:
                label = str(row[tag.variable_field])
                metrics = long_metrics(row, row_orgs, row_incumbents)
                key = self._variables.normalize(label, vendor, median=metrics.p50)
                if key:
                    variables[key] = metrics

        return NormalizedRow(
            specialty=self._names[Dimension.SPECIALTY].normalize(
                _as_text(get_field(row, SPECIALTY_FIELDS)), vendor),
            provider_type=self._names[Dimension.PROVIDER_TYPE].normalize(
                _as_text(raw_type), vendor),
            region=self._names[Dimension.REGION].normalize(
                _as_text(get_field(row, REGION_FIELDS)), vendor),
            survey_source=source.label_for(year),
            survey_year=year,
            category=source.effective_category,
            source_id=source.id,
            n_orgs=n_orgs,
            n_incumbents=n_incumbents,
            missing_counts=missing,
            variables=variables,
        )

    def _apply_wide(
        self,
        row: RawRow,
        tag: WideFormat,
        vendor: str,
        row_orgs: float | None,
        row_incumbents: float | None,
        variables: dict[str, VariableMetrics],
    ) -> None:
        for base, columns in tag.by_base().items():
            values = {p: to_number(row.get(col)) for p, col in columns.items()}
            if all(v is None for v in values.values()):
                continue
            counts = {"n_orgs": row_orgs, "n_incumbents": row_incumbents}
            for count, suffixes in _WIDE_COUNT_SUFFIXES.items():
                override = to_number(get_field(row, [f"{base}_{s}" for s in suffixes]))
                if override is not None:
                    counts[count] = override
            metrics = VariableMetrics(**counts, **values)
            key = self._variables.normalize(base, vendor, median=metrics.p50)
            if not key:
                continue
            existing = variables.get(key)
            if existing is None or (not existing.has_data and metrics.has_data):
                variables[key] = metrics

    async def normalize_source(
        self,
        source: SurveySource,
        rows: list[RawRow],
        *,
        cancel: CancellationToken | None = None,
    ) -> list[NormalizedRow]:
        """Normalize every row of one source, checking ``cancel`` per chunk."""
        unwrapped = [unwrap(r) for r in rows if isinstance(r, dict)]
        source_format = detect_source_format(unwrapped)
        normalized: list[NormalizedRow] = []
        for chunk in chunked(unwrapped, self._chunk_size):
            await checkpoint(cancel, f"normalize:{source.id}")
            normalized.extend(self.normalize_row(r, source, source_format) for r in chunk)
        logger.debug(
            "source_normalized",
            source_id=source.id,
            rows=len(normalized),
            format=source_format.label,
        )
        return normalized


def _as_text(value: Any) -> str | None:
    if value is None:
        return None
    return str(value)
