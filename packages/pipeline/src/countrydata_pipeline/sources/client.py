"""
sources/client.py — ExternalSourceClient: both sources, fetched concurrently.

The two fetches run as sibling tasks, each bounded by the configured
timeout. Both must succeed: the first failure observed is raised as
SourceUnavailable and the sibling is cancelled. Nothing is retried here.

Usage:
    client = ExternalSourceClient.from_settings()
    catalog, rates = await client.fetch_sources()
"""

from __future__ import annotations

import asyncio
from decimal import Decimal

import structlog

from countrydata_shared.config import Settings, settings as default_settings
from countrydata_shared.models import RawCountry
from countrydata_pipeline.errors import SourceUnavailable
from countrydata_pipeline.sources.exchange_rates import ExchangeRateSource
from countrydata_pipeline.sources.restcountries import CountryCatalogSource

log = structlog.get_logger(__name__)


class ExternalSourceClient:
    """Fetches the country catalog and the exchange-rate table."""

    def __init__(
        self,
        catalog: CountryCatalogSource,
        rates: ExchangeRateSource,
        timeout: float = 10.0,
    ) -> None:
        self._catalog = catalog
        self._rates = rates
        self._timeout = timeout

    @classmethod
    def from_settings(cls, cfg: Settings | None = None) -> "ExternalSourceClient":
        cfg = cfg or default_settings
        return cls(
            CountryCatalogSource(cfg.countries_api_url, timeout=cfg.source_timeout_s),
            ExchangeRateSource(cfg.exchange_api_url, timeout=cfg.source_timeout_s),
            timeout=cfg.source_timeout_s,
        )

    async def fetch_sources(self) -> tuple[list[RawCountry], dict[str, Decimal]]:
        """
        Fetch both sources in parallel.

        Returns:
            (catalog records, exchange-rate table)

        Raises:
            SourceUnavailable: either source failed, timed out or sent an
                unusable payload. No partial result is returned.
        """
        tasks = {
            asyncio.create_task(self._guarded(self._catalog)): self._catalog.name,
            asyncio.create_task(self._guarded(self._rates)): self._rates.name,
        }
        try:
            pending = set(tasks)
            while pending:
                done, pending = await asyncio.wait(
                    pending, return_when=asyncio.FIRST_EXCEPTION
                )
                for task in done:
                    exc = task.exception()
                    if exc is not None:
                        raise exc
        finally:
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)

        frames = {tasks[t]: t.result() for t in tasks}
        catalog = self._catalog.records(frames[self._catalog.name])
        rates = self._rates.table(frames[self._rates.name])
        log.info("sources_fetched", countries=len(catalog), rates=len(rates))
        return catalog, rates

    async def _guarded(self, source: CountryCatalogSource | ExchangeRateSource):
        """Run one source under the timeout, mapping every failure."""
        try:
            return await asyncio.wait_for(source.run(), timeout=self._timeout)
        except asyncio.TimeoutError as exc:
            raise SourceUnavailable(source.name, "timed out") from exc
        except asyncio.CancelledError:
            raise
        except Exception as exc:
            raise SourceUnavailable(source.name, str(exc) or type(exc).__name__) from exc
