"""
countrydata_pipeline.sources — external data source adapters.

Each source wraps one external provider:
  CountryCatalogSource — REST Countries v2 (names, population, currencies)
  ExchangeRateSource   — open.er-api.com latest rates (base USD)

ExternalSourceClient runs both concurrently with a timeout and fails fast.
"""

from countrydata_pipeline.sources.client import ExternalSourceClient
from countrydata_pipeline.sources.exchange_rates import ExchangeRateSource
from countrydata_pipeline.sources.restcountries import CountryCatalogSource

__all__ = [
    "CountryCatalogSource",
    "ExchangeRateSource",
    "ExternalSourceClient",
]
