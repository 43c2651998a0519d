"""FastAPI application with lifespan and router mounting."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from benchrecon.api.routes import admin, benchmarks, health
from benchrecon.core.config import AppSettings
from benchrecon.core.exceptions import CorpusUnavailableError, PassCancelledError
from benchrecon.core.logging import configure_logging
from benchrecon.persistence import create_persistence
from benchrecon.services.engine import BenchmarkEngine


def build_engine(settings: AppSettings) -> BenchmarkEngine:
    row_store, mapping_store, _cache = create_persistence(settings)
    return BenchmarkEngine(settings=settings, row_store=row_store, mapping_store=mapping_store)


def create_app(engine: BenchmarkEngine | None = None,
               settings: AppSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    An injected engine is used as-is; otherwise one is built from settings
    on startup.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        app_settings = settings or AppSettings()
        configure_logging(app_settings.log_level, json_output=app_settings.environment != "dev")
        app.state.settings = app_settings
        app.state.engine = engine or build_engine(app_settings)
        yield
        await app.state.engine.close()

    app = FastAPI(
        title="BenchRecon Survey Benchmark Engine",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.include_router(health.router)
    app.include_router(benchmarks.router)
    app.include_router(admin.router)

    @app.exception_handler(CorpusUnavailableError)
    async def corpus_unavailable(_request: Request, exc: CorpusUnavailableError) -> JSONResponse:
        return JSONResponse(status_code=503, content={"detail": str(exc)})

    @app.exception_handler(PassCancelledError)
    async def pass_cancelled(_request: Request, exc: PassCancelledError) -> JSONResponse:
        return JSONResponse(status_code=409, content={"detail": str(exc)})

    return app
