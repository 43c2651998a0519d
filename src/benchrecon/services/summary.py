"""Display derivatives over aggregated records: summary rows and specialty groups."""

from __future__ import annotations

from typing import Iterable, Sequence

from benchrecon.models.aggregation import (
    AggregatedRecord,
    PercentileSummary,
    SpecialtyGroup,
    SummaryRow,
)
from benchrecon.models.variables import VariableMetrics
from benchrecon.normalization.format_detector import PERCENTILES


def _means(metrics: Sequence[VariableMetrics]) -> tuple[PercentileSummary, PercentileSummary]:
    simple: dict[str, float | None] = {}
    weighted: dict[str, float | None] = {}
    for p in PERCENTILES:
        values = [getattr(m, p) for m in metrics if getattr(m, p) is not None]
        simple[p] = sum(values) / len(values) if values else None

        pairs = [
            (getattr(m, p), m.n_incumbents) for m in metrics
            if getattr(m, p) is not None and m.n_incumbents
        ]
        total = sum(w for _, w in pairs)
        weighted[p] = sum(v * w for v, w in pairs) / total if total else None
    return PercentileSummary(**simple), PercentileSummary(**weighted)


def summarize(records: Iterable[AggregatedRecord], variables: Sequence[str]) -> list[SummaryRow]:
    """One row per selected variable with simple and incumbent-weighted means.

    Records where the variable is absent are left out of both means.
    """
    records = list(records)
    rows: list[SummaryRow] = []
    for key in variables:
        present = [r.variables[key] for r in records if r.variables.get(key) is not None]
        simple, weighted = _means(present)
        rows.append(SummaryRow(
            variable=key,
            record_count=len(present),
            total_incumbents=sum(m.n_incumbents or 0.0 for m in present),
            simple=simple,
            weighted=weighted,
        ))
    return rows


def group_by_specialty(
    records: Iterable[AggregatedRecord], variables: Sequence[str],
) -> list[SpecialtyGroup]:
    """Records grouped by specialty in first-seen order, projected onto ``variables``.

    With no variables selected every record is kept whole.
    """
    groups: dict[str, SpecialtyGroup] = {}
    for record in records:
        if variables:
            projected = {k: record.variables.get(k) for k in variables}
            if all(v is None for v in projected.values()):
                continue
            record = record.model_copy(update={"variables": projected})
        groups.setdefault(record.specialty, SpecialtyGroup(specialty=record.specialty))
        groups[record.specialty].records.append(record)
    return list(groups.values())
