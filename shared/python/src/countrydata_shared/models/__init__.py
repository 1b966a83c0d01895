"""
countrydata_shared.models — Pydantic models matching each database table.

These models are used by:
- packages/pipeline: carry source records through derivation and validation
- packages/api: serialize query results into API responses

Persisted models provide:
  .from_db_row(row: dict) -> Model
"""

from countrydata_shared.models.countries import (
    CountryCandidate,
    CountryRecord,
    RawCountry,
    RefreshMetadata,
    ValidationFault,
)

__all__ = [
    "RawCountry",
    "CountryCandidate",
    "CountryRecord",
    "RefreshMetadata",
    "ValidationFault",
]
