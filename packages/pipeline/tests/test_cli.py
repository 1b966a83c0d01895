"""
tests/test_cli.py — click entrypoint: refresh with caller-side retry, status.
"""

from __future__ import annotations

import random
from datetime import timedelta
from decimal import Decimal

import pytest
from click.testing import CliRunner

from countrydata_shared.models import RawCountry
from countrydata_shared.time_utils import utcnow
from countrydata_pipeline import cli
from countrydata_pipeline.errors import SourceUnavailable
from countrydata_pipeline.loaders.metadata import MetadataStore
from countrydata_pipeline.loaders.reconcile import ReconciliationEngine
from countrydata_pipeline.pipelines.refresh import RefreshOrchestrator
from countrydata_pipeline.render.summary import RenderConfig, SummaryRenderer


class FlakyClient:
    """Fails the first `failures` calls with SourceUnavailable."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    async def fetch_sources(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise SourceUnavailable("catalog", "connection refused")
        return (
            [RawCountry(name="Nigeria", population=206139587, currency_codes=["NGN"])],
            {"NGN": Decimal("1600.23")},
        )


@pytest.fixture
def wire(duck, tmp_path, monkeypatch):
    def _wire(client) -> None:
        orchestrator = RefreshOrchestrator(
            client,
            ReconciliationEngine(duck, MetadataStore(duck)),
            SummaryRenderer(RenderConfig(cache_dir=tmp_path)),
            rng=random.Random(3),
        )
        monkeypatch.setattr(cli, "get_duckdb_connection", lambda: duck)
        monkeypatch.setattr(cli, "build_orchestrator", lambda conn: orchestrator)

    monkeypatch.setattr(cli, "get_duckdb_connection", lambda: duck)
    return _wire


def test_refresh_success(wire, duck):
    wire(FlakyClient(failures=0))
    result = CliRunner().invoke(cli.main, ["refresh"])

    assert result.exit_code == 0, result.output
    assert '"status": "success"' in result.output
    assert duck.execute("SELECT count(*) FROM countries").fetchone()[0] == 1


def test_refresh_retries_unavailable_source(wire):
    client = FlakyClient(failures=2)
    wire(client)
    result = CliRunner().invoke(cli.main, ["refresh", "--attempts", "3", "--base-delay", "0"])

    assert result.exit_code == 0, result.output
    assert client.calls == 3


def test_refresh_gives_up_after_attempts(wire, duck):
    client = FlakyClient(failures=5)
    wire(client)
    result = CliRunner().invoke(cli.main, ["refresh", "--attempts", "2", "--base-delay", "0"])

    assert result.exit_code == 1
    assert '"status": "source_unavailable"' in result.output
    assert client.calls == 2
    assert duck.execute("SELECT count(*) FROM countries").fetchone()[0] == 0


def test_status_never_refreshed_is_stale(wire):
    result = CliRunner().invoke(cli.main, ["status", "--max-age-hours", "24"])
    assert result.exit_code == cli.EXIT_STALE
    assert "never" in result.output


def test_status_fresh(wire, duck):
    MetadataStore(duck).set_last_refreshed(utcnow() - timedelta(minutes=5), duck)
    result = CliRunner().invoke(cli.main, ["status", "--max-age-hours", "1"])
    assert result.exit_code == 0, result.output
    assert "fresh" in result.output


def test_status_old_refresh_is_stale(wire, duck):
    MetadataStore(duck).set_last_refreshed(utcnow() - timedelta(hours=30), duck)
    result = CliRunner().invoke(cli.main, ["status", "--max-age-hours", "24"])
    assert result.exit_code == cli.EXIT_STALE


def test_status_without_threshold_always_succeeds(wire):
    result = CliRunner().invoke(cli.main, ["status"])
    assert result.exit_code == 0
    assert "Total countries:   0" in result.output
