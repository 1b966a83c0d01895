"""
sources/restcountries.py — REST Countries v2 catalog adapter.

Endpoint:
  GET https://restcountries.com/v2/all?fields=name,capital,region,population,flag,currencies

Response shape:
  [
    {
      "name": "Nigeria",
      "capital": "Abuja",
      "region": "Africa",
      "population": 206139587,
      "flag": "https://flagcdn.com/ng.svg",
      "currencies": [{"code": "NGN", "name": "Nigerian naira", "symbol": "₦"}]
    },
    ...
  ]

Usage:
    source = CountryCatalogSource(settings.countries_api_url)
    df = await source.run()
    # columns: name, capital, region, population, currency_codes, flag_url
    catalog = source.records(df)
"""

from __future__ import annotations

from typing import Any

import polars as pl

from countrydata_shared.models import RawCountry
from countrydata_pipeline.sources.base import BaseSource, InvalidPayload

RAW_SCHEMA: dict[str, Any] = {
    "name": pl.String,
    "capital": pl.String,
    "region": pl.String,
    "population": pl.String,
    "currency_codes": pl.List(pl.String),
    "flag_url": pl.String,
}


class CountryCatalogSource(BaseSource):
    """Pulls the country catalog (names, population, currencies)."""

    name = "catalog"

    async def extract(self, **kwargs: Any) -> pl.DataFrame:
        """
        Download the catalog and flatten it to one raw row per country.

        Only the first-level fields are kept; currencies collapse to the
        ordered list of their non-blank codes, upper-cased to match the
        rates table.
        """
        payload = await self._get_json()
        if not isinstance(payload, list):
            raise InvalidPayload("catalog payload is not a JSON list")

        rows: list[dict[str, Any]] = []
        for item in payload:
            if not isinstance(item, dict):
                continue
            currencies = item.get("currencies") or []
            codes = [
                code.upper()
                for code in (
                    self._clean_str(c.get("code")) if isinstance(c, dict) else None
                    for c in currencies
                )
                if code
            ]
            rows.append(
                {
                    "name": self._clean_str(item.get("name")),
                    "capital": self._clean_str(item.get("capital")),
                    "region": self._clean_str(item.get("region")),
                    "population": self._raw_number(item.get("population")),
                    "currency_codes": codes,
                    "flag_url": self._clean_str(item.get("flag")),
                }
            )

        if not rows:
            self._log.warning("catalog_empty")
        return pl.DataFrame(rows, schema=RAW_SCHEMA)

    def transform(self, raw: pl.DataFrame) -> pl.DataFrame:
        """
        Cast population to Int64. Missing or unparseable values become null
        and negative ones are kept; validation reports both.

        Output columns:
            name            String
            capital         String
            region          String
            population      Int64
            currency_codes  List[String]
            flag_url        String
        """
        if raw.is_empty():
            return pl.DataFrame(
                schema={**RAW_SCHEMA, "population": pl.Int64}
            )

        return raw.with_columns(
            pl.col("population").cast(pl.Int64, strict=False),
        ).select(list(RAW_SCHEMA))

    def records(self, df: pl.DataFrame) -> list[RawCountry]:
        """Convert a transformed catalog frame to RawCountry models."""
        return [
            RawCountry(**{**row, "currency_codes": row["currency_codes"] or []})
            for row in df.to_dicts()
        ]

    async def get_metadata(self) -> dict[str, Any]:
        return {
            "source_name": self.name,
            "url": self._url,
            "description": "REST Countries v2 — names, capitals, regions, population, currencies",
        }
