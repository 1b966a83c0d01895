"""
countrydata_pipeline — the country/exchange-rate refresh pipeline.

Architecture:
  sources/     — REST Countries catalog + exchange rates, fetched in parallel
  transforms/  — estimated GDP derivation (injectable multiplier RNG)
  loaders/     — transactional DuckDB reconciliation + refresh metadata
  render/      — best-effort summary PNG (Pillow)
  pipelines/   — the refresh orchestrator wiring sources -> transforms -> loaders
  utils/       — structlog configuration, exponential-backoff retry decorator

Quick start:
    from countrydata_pipeline.pipelines.refresh import run
    import asyncio
    outcome = asyncio.run(run())

CLI:
    countrydata refresh --attempts 3
    countrydata status --max-age-hours 24

Shared code from countrydata_shared:
    from countrydata_shared.config import settings
    from countrydata_shared.db import get_duckdb_connection
    from countrydata_shared.models import CountryRecord, RawCountry
"""

__version__ = "0.1.0"
