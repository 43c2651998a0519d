"""Variable catalog, aggregated data and summary endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from benchrecon.api.routes.deps import get_engine
from benchrecon.models.aggregation import AggregationFilters
from benchrecon.services.engine import BenchmarkEngine

router = APIRouter(tags=["benchmarks"])


class SummaryRequest(BaseModel):
    filters: AggregationFilters = AggregationFilters()
    variables: list[str] = Field(default_factory=list)


@router.get("/variables")
async def list_variables(
    category: str | None = None,
    engine: BenchmarkEngine = Depends(get_engine),
) -> list[dict[str, Any]]:
    """Discovered variables, optionally for one source category."""
    variables = await engine.discover_variables(category)
    return [v.model_dump(mode="json") for v in variables]


@router.get("/variables/stats")
async def variable_stats(engine: BenchmarkEngine = Depends(get_engine)) -> dict[str, Any]:
    stats = await engine.get_discovery_stats()
    return stats.model_dump()


@router.get("/aggregated")
async def aggregated(
    specialty: str | None = None,
    survey_source: str | None = None,
    provider_type: str | None = None,
    region: str | None = None,
    year: str | None = None,
    category: str | None = None,
    engine: BenchmarkEngine = Depends(get_engine),
) -> list[dict[str, Any]]:
    filters = AggregationFilters(
        specialty=specialty, survey_source=survey_source, provider_type=provider_type,
        region=region, year=year, category=category,
    )
    records = await engine.get_aggregated_data(filters)
    return [r.model_dump(mode="json") for r in records]


@router.post("/summary")
async def summary(
    body: SummaryRequest,
    engine: BenchmarkEngine = Depends(get_engine),
) -> list[dict[str, Any]]:
    rows = await engine.get_summary(body.filters, body.variables)
    return [r.model_dump(mode="json") for r in rows]


@router.post("/grouped")
async def grouped(
    body: SummaryRequest,
    engine: BenchmarkEngine = Depends(get_engine),
) -> list[dict[str, Any]]:
    groups = await engine.get_grouped(body.filters, body.variables)
    return [g.model_dump(mode="json") for g in groups]
