"""Grouping of normalized rows into aggregated benchmark records."""

from __future__ import annotations

from typing import Iterable, Sequence

from benchrecon.core.types import GroupKey
from benchrecon.models.aggregation import AggregatedRecord, AggregationFilters, NormalizedRow
from benchrecon.models.survey import SourceCategory
from benchrecon.models.variables import VariableMetrics
from benchrecon.normalization.text import casefold_label, fold


class AggregationEngine:
    """Collapse rows sharing a grouping key into one record per group.

    Vendor percentiles are never recomputed: each variable's representative
    metrics are taken whole from the earliest row that has a non-zero median.
    """

    def aggregate(self, rows: Iterable[NormalizedRow]) -> list[AggregatedRecord]:
        groups: dict[GroupKey, list[NormalizedRow]] = {}
        for row in rows:
            groups.setdefault(row.group_key, []).append(row)

        records: list[AggregatedRecord] = []
        for (specialty, survey_source, provider_type, region), members in groups.items():
            keys: dict[str, None] = {}
            for member in members:
                for key in member.variables:
                    keys.setdefault(key, None)
            variables = {
                key: self.select_representative(
                    [m.variables[key] for m in members if key in m.variables]
                )
                for key in keys
            }
            first = members[0]
            records.append(AggregatedRecord(
                specialty=specialty,
                survey_source=survey_source,
                provider_type=provider_type,
                region=region,
                survey_year=first.survey_year,
                category=first.category,
                variables=variables,
            ))
        return records

    @staticmethod
    def select_representative(candidates: Sequence[VariableMetrics]) -> VariableMetrics | None:
        for metrics in candidates:
            if metrics.has_data:
                return metrics.model_copy()
        return None

    @staticmethod
    def filter_records(
        records: Iterable[AggregatedRecord],
        filters: AggregationFilters | None,
    ) -> list[AggregatedRecord]:
        if filters is None or filters.is_empty:
            return list(records)
        is_open = AggregationFilters.is_open
        wanted_category = None if is_open(filters.category) else SourceCategory.parse(filters.category)

        def keep(record: AggregatedRecord) -> bool:
            if not is_open(filters.specialty) and fold(record.specialty) != fold(filters.specialty):
                return False
            for value, actual in (
                (filters.survey_source, record.survey_source),
                (filters.provider_type, record.provider_type),
                (filters.region, record.region),
            ):
                if not is_open(value) and casefold_label(actual) != casefold_label(str(value)):
                    return False
            if not is_open(filters.year) and str(record.survey_year) != str(filters.year).strip():
                return False
            if not is_open(filters.category) and record.category != wanted_category:
                return False
            return True

        return [r for r in records if keep(r)]
