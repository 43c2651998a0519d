"""Normalized rows, aggregated records and their display derivatives."""

from __future__ import annotations

from pydantic import BaseModel, Field, computed_field

from benchrecon.core.types import GroupKey
from benchrecon.models.survey import SourceCategory
from benchrecon.models.variables import VariableMetrics

ALL_SENTINELS = frozenset({
    "", "all", "all sources", "all types", "all years", "all regions",
    "all specialties", "all categories",
})


class NormalizedRow(BaseModel):
    """One raw row after name resolution and value coercion."""

    specialty: str
    provider_type: str
    region: str
    survey_source: str
    survey_year: int | None = None
    category: SourceCategory = SourceCategory.COMPENSATION
    source_id: str = ""
    n_orgs: float = 0.0
    n_incumbents: float = 0.0
    missing_counts: list[str] = Field(default_factory=list)  # "n_orgs", "n_incumbents"
    variables: dict[str, VariableMetrics] = Field(default_factory=dict)

    @property
    def group_key(self) -> GroupKey:
        return (self.specialty, self.survey_source, self.provider_type, self.region)


class AggregatedRecord(BaseModel):
    """One grouping key with its representative metrics per variable."""

    specialty: str
    survey_source: str
    provider_type: str
    region: str
    survey_year: int | None = None
    category: SourceCategory = SourceCategory.COMPENSATION
    variables: dict[str, VariableMetrics | None] = Field(default_factory=dict)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def id(self) -> str:
        return "|".join(self.group_key)

    @property
    def group_key(self) -> GroupKey:
        return (self.specialty, self.survey_source, self.provider_type, self.region)


class AggregationFilters(BaseModel):
    """Optional narrowing of the aggregated view; "All ..." values are no-ops."""

    specialty: str | None = None
    survey_source: str | None = None
    provider_type: str | None = None
    region: str | None = None
    year: int | str | None = None
    category: str | None = None

    @staticmethod
    def is_open(value: object) -> bool:
        if value is None:
            return True
        return str(value).strip().lower() in ALL_SENTINELS

    @property
    def is_empty(self) -> bool:
        return all(self.is_open(v) for v in self.model_dump().values())

    @property
    def selects_sources(self) -> bool:
        """True when year or category narrows which sources are read."""
        return not (self.is_open(self.year) and self.is_open(self.category))

    def cache_params(self) -> dict[str, str]:
        return {k: str(v) for k, v in self.model_dump().items() if not self.is_open(v)}


class PercentileSummary(BaseModel):
    p25: float | None = None
    p50: float | None = None
    p75: float | None = None
    p90: float | None = None


class SummaryRow(BaseModel):
    """Means of the selected variable's percentiles over a set of records."""

    variable: str
    record_count: int = 0
    total_incumbents: float = 0.0
    simple: PercentileSummary = PercentileSummary()
    weighted: PercentileSummary = PercentileSummary()


class SpecialtyGroup(BaseModel):
    specialty: str
    records: list[AggregatedRecord] = Field(default_factory=list)
