"""Health check endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from benchrecon.api.routes.deps import get_engine
from benchrecon.services.engine import BenchmarkEngine

router = APIRouter(tags=["health"])


@router.get("/health")
async def health() -> dict[str, str]:
    return {"status": "healthy"}


@router.get("/ready")
async def ready(engine: BenchmarkEngine = Depends(get_engine)) -> dict[str, Any]:
    status = await engine.health_check()
    return {"status": "ready", "engine": status}
