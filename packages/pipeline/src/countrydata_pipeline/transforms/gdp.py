"""
transforms/gdp.py — estimated GDP derivation.

Policy, per record:
  - no currency code                 → exactly 0
  - currency code with positive rate → population * multiplier / rate,
                                       multiplier ~ randint(1000, 2000),
                                       rounded to 2 dp
  - currency code without a rate     → None (unknown, not zero)

The multiplier comes from an injected random.Random so tests can pin it.

Usage:
    import random
    from countrydata_pipeline.transforms.gdp import derive_candidates, estimate_gdp

    gdp = estimate_gdp(1_000_000, "NGN", {"NGN": Decimal("1600")}, random.Random(7))
    candidates = derive_candidates(catalog, rates, rng=random.Random())
"""

from __future__ import annotations

import random
from collections.abc import Iterable, Mapping
from decimal import ROUND_HALF_UP, Decimal

from countrydata_shared.constants import (
    GDP_MULTIPLIER_MAX,
    GDP_MULTIPLIER_MIN,
    GDP_QUANTUM,
)
from countrydata_shared.models import CountryCandidate, RawCountry


def usable_rate(currency_code: str | None, rates: Mapping[str, Decimal]) -> Decimal | None:
    """Return the positive rate for currency_code, or None."""
    if not currency_code:
        return None
    rate = rates.get(currency_code)
    if rate is None or rate <= 0:
        return None
    return rate


def estimate_gdp(
    population: int,
    currency_code: str | None,
    rates: Mapping[str, Decimal],
    rng: random.Random,
) -> Decimal | None:
    """
    Estimate GDP for one country.

    Args:
        population:    Country population (>= 0).
        currency_code: First currency of the country, or None.
        rates:         Currency code → positive rate for this cycle.
        rng:           Multiplier source; one draw per call with a rate.

    Returns:
        Decimal rounded to 2 dp, Decimal("0") without a currency, or None
        when the currency has no usable rate.
    """
    if not currency_code:
        return Decimal("0")

    rate = usable_rate(currency_code, rates)
    if rate is None:
        return None

    multiplier = rng.randint(GDP_MULTIPLIER_MIN, GDP_MULTIPLIER_MAX)
    value = Decimal(population) * multiplier / rate
    return value.quantize(GDP_QUANTUM, rounding=ROUND_HALF_UP)


def derive_candidates(
    catalog: Iterable[RawCountry],
    rates: Mapping[str, Decimal],
    rng: random.Random,
) -> list[CountryCandidate]:
    """
    Map raw catalog records to reconciliation candidates.

    Records without a population are passed through with no estimate so
    that validation can report them.
    """
    candidates: list[CountryCandidate] = []
    for raw in catalog:
        code = raw.currency_code
        gdp = (
            estimate_gdp(raw.population, code, rates, rng)
            if raw.population is not None and raw.population >= 0
            else None
        )
        candidates.append(
            CountryCandidate(
                name=raw.name,
                capital=raw.capital,
                region=raw.region,
                population=raw.population,
                currency_code=code,
                exchange_rate=usable_rate(code, rates),
                estimated_gdp=gdp,
                flag_url=raw.flag_url,
            )
        )
    return candidates
