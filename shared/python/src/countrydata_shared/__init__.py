"""
countrydata_shared — shared utilities, models, and configuration for countrydata.

Usage:
    from countrydata_shared.config import settings
    from countrydata_shared.db import get_duckdb_connection, ensure_schema
    from countrydata_shared.models import CountryRecord, RawCountry
    from countrydata_shared.constants import LAST_REFRESHED_KEY
"""

__version__ = "0.1.0"
