"""Admin endpoints for cache invalidation."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from benchrecon.api.routes.deps import get_engine
from benchrecon.services.cache_layer import InvalidationEvent
from benchrecon.services.engine import BenchmarkEngine

router = APIRouter(tags=["admin"])


@router.post("/invalidate/{event}")
async def invalidate(event: str, engine: BenchmarkEngine = Depends(get_engine)) -> dict:
    """Fire one invalidation event, e.g. ``mapping_changed``."""
    try:
        parsed = InvalidationEvent(event)
    except ValueError:
        raise HTTPException(
            status_code=404,
            detail=f"Unknown event {event!r}; expected one of {[e.value for e in InvalidationEvent]}",
        )
    engine.handle_event(parsed)
    return {"event": parsed.value, "cache_entries": len(engine.cache)}
