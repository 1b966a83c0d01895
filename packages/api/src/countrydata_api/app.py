"""FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import duckdb
import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from countrydata_shared import __version__
from countrydata_shared.config import Settings, settings as default_settings

from countrydata_api.middleware.logging import LoggingMiddleware
from countrydata_api.routers.countries import router as countries_router
from countrydata_api.routers.health import router as health_router
from countrydata_api.routers.status import router as status_router
from countrydata_pipeline.pipelines.refresh import RefreshOrchestrator
from countrydata_pipeline.utils.logging import configure_logging

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    yield
    orchestrator = getattr(app.state, "orchestrator", None)
    if orchestrator is not None:
        await orchestrator.drain()
        logger.info("render_tasks_drained")


def create_app(
    conn: duckdb.DuckDBPyConnection | None = None,
    orchestrator: RefreshOrchestrator | None = None,
    cfg: Settings | None = None,
) -> FastAPI:
    """Build the API. The database is opened lazily on the first request."""
    cfg = cfg or default_settings
    configure_logging(cfg.log_level, cfg.log_format)
    app = FastAPI(
        title="Country Data API",
        description="Country facts, exchange rates and estimated GDP",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
        lifespan=lifespan,
    )
    app.state.conn = conn
    app.state.orchestrator = orchestrator
    app.state.settings = cfg

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=cfg.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(LoggingMiddleware)

    # Routers
    app.include_router(health_router)
    app.include_router(status_router)
    app.include_router(countries_router)

    logger.info("app_created", cors_origins=cfg.cors_origins_list)
    return app


app = create_app()
