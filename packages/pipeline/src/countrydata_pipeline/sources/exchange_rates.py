"""
sources/exchange_rates.py — open.er-api.com exchange-rate adapter.

Endpoint:
  GET https://open.er-api.com/v6/latest/USD

Response shape:
  {
    "result": "success",
    "base_code": "USD",
    "time_last_update_utc": "Fri, 17 Oct 2025 00:02:31 +0000",
    "rates": { "USD": 1, "NGN": 1466.25, "EUR": 0.857, ... }
  }

Usage:
    source = ExchangeRateSource(settings.exchange_api_url)
    df = await source.run()
    # columns: currency_code, rate
    rates = source.table(df)     # {"NGN": Decimal("1466.25"), ...}
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

import polars as pl

from countrydata_pipeline.sources.base import BaseSource, InvalidPayload


class ExchangeRateSource(BaseSource):
    """Pulls the latest currency → rate table (base USD)."""

    name = "rates"

    async def extract(self, **kwargs: Any) -> pl.DataFrame:
        payload = await self._get_json()
        if not isinstance(payload, dict):
            raise InvalidPayload("rates payload is not a JSON object")
        if payload.get("result", "success") != "success":
            raise InvalidPayload(f"rates API reported result={payload.get('result')!r}")

        rates = payload.get("rates")
        if not isinstance(rates, dict):
            raise InvalidPayload("rates payload has no 'rates' mapping")

        rows = [
            {"currency_code": self._clean_str(code), "raw_rate": self._raw_number(value)}
            for code, value in rates.items()
        ]
        return pl.DataFrame(
            rows, schema={"currency_code": pl.String, "raw_rate": pl.String}
        )

    def transform(self, raw: pl.DataFrame) -> pl.DataFrame:
        """
        Keep usable rates only.

        Output columns:
            currency_code  String   — upper-cased ISO code
            rate           Float64  — strictly positive
        """
        df = raw.with_columns(
            pl.col("currency_code").str.to_uppercase(),
            pl.col("raw_rate").cast(pl.Float64, strict=False).alias("rate"),
        )
        df = df.filter(
            pl.col("currency_code").is_not_null()
            & pl.col("rate").is_not_null()
            & pl.col("rate").is_finite()
            & (pl.col("rate") > 0)
        )
        return df.select(["currency_code", "rate"])

    def table(self, df: pl.DataFrame) -> dict[str, Decimal]:
        """Convert a transformed frame to the ExchangeRateTable mapping."""
        return {
            row["currency_code"]: Decimal(str(row["rate"]))
            for row in df.iter_rows(named=True)
        }

    async def get_metadata(self) -> dict[str, Any]:
        return {
            "source_name": self.name,
            "url": self._url,
            "description": "open.er-api.com — latest exchange rates against USD",
        }
