"""Shared FastAPI dependencies."""

from __future__ import annotations

from collections.abc import Iterator

import duckdb
from fastapi import Request

from countrydata_shared.config import Settings, settings
from countrydata_shared.db import get_duckdb_connection
from countrydata_pipeline.pipelines.refresh import RefreshOrchestrator, build_orchestrator


def get_settings(request: Request) -> Settings:
    return getattr(request.app.state, "settings", None) or settings


def get_connection(request: Request) -> duckdb.DuckDBPyConnection:
    """The app's DuckDB connection, opened on first use."""
    state = request.app.state
    if getattr(state, "conn", None) is None:
        state.conn = get_duckdb_connection()
    return state.conn


def get_cursor(request: Request) -> Iterator[duckdb.DuckDBPyConnection]:
    """Per-request cursor; DuckDB connections must not be shared across threads."""
    cursor = get_connection(request).cursor()
    try:
        yield cursor
    finally:
        cursor.close()


def get_orchestrator(request: Request) -> RefreshOrchestrator:
    """The app-wide orchestrator, built lazily so detached renders outlive requests."""
    state = request.app.state
    if getattr(state, "orchestrator", None) is None:
        state.orchestrator = build_orchestrator(get_connection(request), get_settings(request))
    return state.orchestrator


__all__ = [
    "get_connection",
    "get_cursor",
    "get_orchestrator",
    "get_settings",
]
