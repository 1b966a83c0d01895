"""
models/countries.py — Pydantic models for the countries and metadata tables.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from pydantic import BaseModel, Field, field_validator

from countrydata_shared.time_utils import from_db_timestamp, isoformat_z


class RawCountry(BaseModel):
    """One country as delivered by the external catalog."""

    name: str | None = None
    capital: str | None = None
    region: str | None = None
    population: int | None = None
    currency_codes: list[str] = Field(default_factory=list)
    flag_url: str | None = None

    @field_validator("currency_codes")
    @classmethod
    def upper_codes(cls, v: list[str]) -> list[str]:
        return [code.upper() for code in v]

    @property
    def currency_code(self) -> str | None:
        """First currency of the record, if any."""
        return self.currency_codes[0] if self.currency_codes else None


class CountryCandidate(BaseModel):
    """A derived record waiting for validation and reconciliation."""

    name: str | None = None
    capital: str | None = None
    region: str | None = None
    population: int | None = None
    currency_code: str | None = None
    exchange_rate: Decimal | None = None
    estimated_gdp: Decimal | None = None
    flag_url: str | None = None


class CountryRecord(BaseModel):
    """
    Matches the countries table row.

    name_key (casefolded name) is the case-insensitive unique key.
    """

    id: UUID = Field(default_factory=uuid4)
    name: str
    capital: str | None = None
    region: str | None = None
    population: int
    currency_code: str | None = None
    exchange_rate: Decimal | None = None
    estimated_gdp: Decimal | None = None
    flag_url: str | None = None
    last_refreshed_at: datetime | None = None

    @classmethod
    def from_db_row(cls, row: dict[str, Any]) -> "CountryRecord":
        data = {k: v for k, v in row.items() if k != "name_key"}
        data["last_refreshed_at"] = from_db_timestamp(data.get("last_refreshed_at"))
        return cls(**data)

    def to_api_dict(self) -> dict[str, Any]:
        return {
            "id": str(self.id),
            "name": self.name,
            "capital": self.capital,
            "region": self.region,
            "population": self.population,
            "currency_code": self.currency_code,
            "exchange_rate": float(self.exchange_rate) if self.exchange_rate is not None else None,
            "estimated_gdp": float(self.estimated_gdp) if self.estimated_gdp is not None else None,
            "flag_url": self.flag_url,
            "last_refreshed_at": isoformat_z(self.last_refreshed_at),
        }


class ValidationFault(BaseModel):
    """A record rejected from the batch, with field -> reason."""

    identifier: str
    errors: dict[str, str]


class RefreshMetadata(BaseModel):
    """Matches the singleton last_refreshed_at row of the metadata table."""

    key: str
    value: datetime | None = None
