"""Variable catalog and per-variable percentile metrics."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field


class VariableCategory(StrEnum):
    COMPENSATION = "compensation"
    PRODUCTIVITY = "productivity"
    RATIO = "ratio"
    OTHER = "other"


class VariableFormat(StrEnum):
    LONG = "long"
    WIDE = "wide"


class VariableMetrics(BaseModel):
    """Vendor-supplied percentiles for one variable; None means no data."""

    n_orgs: float | None = None
    n_incumbents: float | None = None
    p25: float | None = None
    p50: float | None = None
    p75: float | None = None
    p90: float | None = None

    @property
    def has_data(self) -> bool:
        return self.p50 is not None and self.p50 != 0


class DiscoveredVariable(BaseModel):
    """A canonical variable found across the corpus, with provenance."""

    raw_label: str
    canonical_key: str
    display_name: str
    category: VariableCategory = VariableCategory.OTHER
    sources: list[str] = Field(default_factory=list)
    record_count: int = 0
    data_quality: float = 0.0  # 0-1, share of rows with a non-zero median
    format: VariableFormat = VariableFormat.LONG


class DiscoveryStats(BaseModel):
    total_variables: int = 0
    total_sources: int = 0
    total_records: int = 0
    duration_ms: float = 0.0
