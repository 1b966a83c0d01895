"""Standardized API response wrappers."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class ErrorBody(BaseModel):
    error: str
    details: Any | None = None


class RefreshResponse(BaseModel):
    message: str
    total: int
    refreshed_at: str | None = None


class StatusResponse(BaseModel):
    total_countries: int
    last_refreshed_at: str | None = None


class CountryOut(BaseModel):
    id: str
    name: str
    capital: str | None = None
    region: str | None = None
    population: int
    currency_code: str | None = None
    exchange_rate: float | None = None
    estimated_gdp: float | None = None
    flag_url: str | None = None
    last_refreshed_at: str | None = None



def error_response(error: str, details: Any | None = None, **extra: Any) -> dict[str, Any]:
    """Build a standardized error response dict."""
    body: dict[str, Any] = {"error": error}
    if details is not None:
        body["details"] = details
    body.update(extra)
    return body
