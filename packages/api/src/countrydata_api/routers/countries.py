"""Country endpoints: refresh, list, lookup, delete and the summary image."""

from __future__ import annotations

from typing import Any

import duckdb
import structlog
from fastapi import APIRouter, Depends, Query, Response, status
from fastapi.responses import FileResponse, JSONResponse

from countrydata_shared.config import Settings
from countrydata_shared.constants import SORT_OPTIONS, SOURCE_LABELS
from countrydata_shared.time_utils import isoformat_z
from countrydata_api.dependencies import get_cursor, get_orchestrator, get_settings
from countrydata_api.responses import CountryOut, ErrorBody, RefreshResponse, error_response
from countrydata_api.services import country_service
from countrydata_pipeline.pipelines.refresh import RefreshOrchestrator, RefreshOutcome, RefreshStatus

router = APIRouter(prefix="/countries", tags=["countries"])
log = structlog.get_logger(__name__)

_NOT_FOUND = error_response("Country not found")
_ERRORS = {code: {"model": ErrorBody} for code in (400, 404, 500, 503)}


def _outcome_response(outcome: RefreshOutcome) -> JSONResponse:
    if outcome.status is RefreshStatus.SUCCESS:
        body = RefreshResponse(
            message=outcome.message,
            total=outcome.total,
            refreshed_at=isoformat_z(outcome.refreshed_at),
        )
        return JSONResponse(body.model_dump(), status_code=status.HTTP_200_OK)

    if outcome.status is RefreshStatus.VALIDATION_FAILED:
        return JSONResponse(
            error_response(
                "Validation failed",
                outcome.faults,
                total=outcome.total,
                refreshed_at=isoformat_z(outcome.refreshed_at),
            ),
            status_code=status.HTTP_400_BAD_REQUEST,
        )

    if outcome.status is RefreshStatus.SOURCE_UNAVAILABLE:
        label = SOURCE_LABELS.get(outcome.source or "", outcome.source or "external source")
        return JSONResponse(
            error_response("External data source unavailable", f"Could not fetch data from {label}"),
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
        )

    return JSONResponse(
        error_response("Internal server error"),
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
    )


@router.post(
    "/refresh",
    response_model=RefreshResponse,
    responses={code: _ERRORS[code] for code in (400, 500, 503)},
)
async def refresh_countries(
    orchestrator: RefreshOrchestrator = Depends(get_orchestrator),
) -> JSONResponse:
    outcome = await orchestrator.refresh()
    log.info("refresh_requested", status=outcome.status.value, total=outcome.total)
    return _outcome_response(outcome)


@router.get("", response_model=list[CountryOut], responses={400: _ERRORS[400]})
def list_countries(
    region: str | None = Query(None, description="Exact region, case-insensitive"),
    currency: str | None = Query(None, description="ISO 4217 currency code"),
    sort: str | None = Query(None, description=f"One of: {', '.join(SORT_OPTIONS)}"),
    conn: duckdb.DuckDBPyConnection = Depends(get_cursor),
) -> Any:
    if sort is not None and sort not in SORT_OPTIONS:
        return JSONResponse(
            error_response(
                "Validation failed",
                {"sort": f"must be one of: {', '.join(SORT_OPTIONS)}"},
            ),
            status_code=status.HTTP_400_BAD_REQUEST,
        )
    records = country_service.list_countries(conn, region=region, currency=currency, sort=sort)
    return [r.to_api_dict() for r in records]


@router.get("/image", response_class=FileResponse, responses={404: _ERRORS[404]})
def get_summary_image(cfg: Settings = Depends(get_settings)) -> Response:
    path = cfg.summary_image_path
    if not path.is_file():
        return JSONResponse(
            error_response("Summary image not found"),
            status_code=status.HTTP_404_NOT_FOUND,
        )
    return FileResponse(path, media_type="image/png")


@router.get("/{name}", response_model=CountryOut, responses={404: _ERRORS[404]})
def get_country(
    name: str,
    conn: duckdb.DuckDBPyConnection = Depends(get_cursor),
) -> Any:
    record = country_service.get_country(conn, name)
    if record is None:
        return JSONResponse(_NOT_FOUND, status_code=status.HTTP_404_NOT_FOUND)
    return record.to_api_dict()


@router.delete(
    "/{name}",
    status_code=status.HTTP_204_NO_CONTENT,
    responses={404: _ERRORS[404]},
)
def delete_country(
    name: str,
    conn: duckdb.DuckDBPyConnection = Depends(get_cursor),
) -> Response:
    if not country_service.delete_country(conn, name):
        return JSONResponse(_NOT_FOUND, status_code=status.HTTP_404_NOT_FOUND)
    log.info("country_deleted", name=name)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
