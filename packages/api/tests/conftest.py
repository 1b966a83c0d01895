"""Shared test fixtures for countrydata-api."""

from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import duckdb
import pytest
from fastapi.testclient import TestClient

from countrydata_shared.config import Settings
from countrydata_shared.db import ensure_schema
from countrydata_shared.models import CountryCandidate
from countrydata_pipeline.loaders.metadata import MetadataStore
from countrydata_pipeline.loaders.reconcile import ReconciliationEngine
from countrydata_pipeline.pipelines.refresh import RefreshOutcome, RefreshStatus

REFRESHED = datetime(2025, 10, 18, 12, 0, tzinfo=timezone.utc)


class StubOrchestrator:
    """Returns a preset outcome; records how often it ran."""

    def __init__(self) -> None:
        self.outcome = RefreshOutcome(
            status=RefreshStatus.SUCCESS,
            total=3,
            refreshed_at=REFRESHED,
            message="Countries refreshed successfully",
        )
        self.calls = 0
        self.drained = False

    async def refresh(self) -> RefreshOutcome:
        self.calls += 1
        return self.outcome

    async def drain(self) -> None:
        self.drained = True


@pytest.fixture()
def duck():
    conn = duckdb.connect(":memory:")
    ensure_schema(conn)
    yield conn
    conn.close()


@pytest.fixture()
def cfg(tmp_path) -> Settings:
    return Settings(cache_dir=str(tmp_path), cors_origins="http://localhost:3000")


@pytest.fixture()
def orchestrator() -> StubOrchestrator:
    return StubOrchestrator()


@pytest.fixture()
def app(duck, orchestrator, cfg):
    """Create test FastAPI app over an in-memory store."""
    from countrydata_api.app import create_app
    return create_app(conn=duck, orchestrator=orchestrator, cfg=cfg)


@pytest.fixture()
def client(app):
    """HTTP test client."""
    return TestClient(app)


@pytest.fixture()
def seeded(duck):
    """Three countries committed through the real reconciliation engine."""
    candidates = [
        CountryCandidate(
            name="Nigeria", capital="Abuja", region="Africa", population=206139587,
            currency_code="NGN", exchange_rate=Decimal("1600.23"),
            estimated_gdp=Decimal("3000000000.00"), flag_url="https://flagcdn.com/ng.svg",
        ),
        CountryCandidate(
            name="Ghana", capital="Accra", region="Africa", population=31072945,
            currency_code="GHS", exchange_rate=None, estimated_gdp=None,
        ),
        CountryCandidate(
            name="Canada", capital="Ottawa", region="Americas", population=38005238,
            currency_code="CAD", exchange_rate=Decimal("1.4"),
            estimated_gdp=Decimal("50000000000.00"),
        ),
    ]
    ReconciliationEngine(duck, MetadataStore(duck)).reconcile(candidates, refreshed_at=REFRESHED)
    return candidates
