"""Refresh status endpoint."""

from __future__ import annotations

import duckdb
from fastapi import APIRouter, Depends

from countrydata_shared.time_utils import isoformat_z
from countrydata_api.dependencies import get_cursor
from countrydata_api.responses import StatusResponse
from countrydata_api.services import country_service

router = APIRouter(tags=["status"])


@router.get("/status", response_model=StatusResponse)
def get_status(conn: duckdb.DuckDBPyConnection = Depends(get_cursor)) -> StatusResponse:
    total, last = country_service.get_status(conn)
    return StatusResponse(total_countries=total, last_refreshed_at=isoformat_z(last))
