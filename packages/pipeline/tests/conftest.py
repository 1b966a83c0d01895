"""
tests/conftest.py — Shared pytest fixtures for the pipeline test suite.

Provides:
  fixture_path()        — resolves paths to tests/fixtures/
  duck                  — in-memory DuckDB connection with the schema applied
  catalog_payload       — REST Countries v2 sample (list of dicts)
  rates_payload         — open.er-api.com sample (dict)
  mock_http             — configured respx router for faking HTTP responses
  make_candidate()      — CountryCandidate factory with sensible defaults
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path

import duckdb
import pytest
import respx

from countrydata_shared.db import ensure_schema
from countrydata_shared.models import CountryCandidate

FIXTURES_DIR = Path(__file__).parent / "fixtures"


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

@pytest.fixture
def fixture_path() -> Path:
    return FIXTURES_DIR


# ---------------------------------------------------------------------------
# DuckDB
# ---------------------------------------------------------------------------

@pytest.fixture
def duck():
    """Fresh in-memory store per test."""
    conn = duckdb.connect(":memory:")
    ensure_schema(conn)
    yield conn
    conn.close()


# ---------------------------------------------------------------------------
# Sample payloads
# ---------------------------------------------------------------------------

@pytest.fixture
def catalog_payload() -> list[dict]:
    return json.loads((FIXTURES_DIR / "restcountries_sample.json").read_text(encoding="utf-8"))


@pytest.fixture
def rates_payload() -> dict:
    return json.loads((FIXTURES_DIR / "exchange_rates_sample.json").read_text(encoding="utf-8"))


@pytest.fixture
def make_candidate():
    def _make(name: str | None = "Nigeria", **overrides) -> CountryCandidate:
        data = {
            "name": name,
            "capital": "Abuja",
            "region": "Africa",
            "population": 206139587,
            "currency_code": "NGN",
            "exchange_rate": Decimal("1600.23"),
            "estimated_gdp": Decimal("25767448125.20"),
            "flag_url": "https://flagcdn.com/ng.svg",
        }
        data.update(overrides)
        return CountryCandidate(**data)

    return _make


# ---------------------------------------------------------------------------
# respx HTTP mock router
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_http():
    """
    Activate the respx mock router for all httpx requests.

    Usage in tests:
        def test_something(mock_http):
            mock_http.get("https://countries.test/v2/all").mock(return_value=httpx.Response(200, json=[...]))
    """
    with respx.mock(assert_all_called=False) as router:
        yield router
