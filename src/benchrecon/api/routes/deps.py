"""Request-scoped dependencies."""

from __future__ import annotations

from fastapi import Request

from benchrecon.services.engine import BenchmarkEngine


def get_engine(request: Request) -> BenchmarkEngine:
    return request.app.state.engine
