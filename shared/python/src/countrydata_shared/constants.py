"""
constants.py — shared constants used across the pipeline and API.

Table names, the metadata key, GDP multiplier bounds and the source names
used in error reporting are defined here so they stay in sync between the
Python packages.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Final, Literal

# ---------------------------------------------------------------------------
# Storage
# ---------------------------------------------------------------------------
COUNTRIES_TABLE: Final[str] = "countries"
METADATA_TABLE: Final[str] = "metadata"

# Key of the singleton row in the metadata table
LAST_REFRESHED_KEY: Final[str] = "last_refreshed_at"

# ---------------------------------------------------------------------------
# GDP estimation
# ---------------------------------------------------------------------------
GDP_MULTIPLIER_MIN: Final[int] = 1000
GDP_MULTIPLIER_MAX: Final[int] = 2000

# Estimated GDP is stored with two decimal places
GDP_QUANTUM: Final[Decimal] = Decimal("0.01")

# ---------------------------------------------------------------------------
# Sources
# ---------------------------------------------------------------------------
SourceName = Literal["catalog", "rates"]

SOURCE_LABELS: Final[dict[str, str]] = {
    "catalog": "Countries API",
    "rates": "Exchange Rates API",
}

# ---------------------------------------------------------------------------
# API sort options for GET /countries: key -> (column, descending)
# ---------------------------------------------------------------------------
SORT_OPTIONS: Final[dict[str, tuple[str, bool]]] = {
    "gdp_desc": ("estimated_gdp", True),
    "gdp_asc": ("estimated_gdp", False),
    "population_desc": ("population", True),
    "population_asc": ("population", False),
    "name_asc": ("name", False),
    "name_desc": ("name", True),
}
