"""
tests/test_loaders/test_reconcile.py — ReconciliationEngine against in-memory DuckDB.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import duckdb
import pytest

from countrydata_pipeline.errors import PersistenceFailure
from countrydata_pipeline.loaders.metadata import MetadataStore
from countrydata_pipeline.loaders.reconcile import ReconciliationEngine, validate_candidate

T0 = datetime(2025, 10, 18, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def metadata(duck) -> MetadataStore:
    return MetadataStore(duck)


@pytest.fixture
def engine(duck, metadata) -> ReconciliationEngine:
    return ReconciliationEngine(duck, metadata)


def _count(conn) -> int:
    return conn.execute("SELECT count(*) FROM countries").fetchone()[0]


# ---------------------------------------------------------------------------
# validate_candidate()
# ---------------------------------------------------------------------------

class TestValidateCandidate:
    def test_valid(self, make_candidate):
        assert validate_candidate(make_candidate(), 0) is None

    def test_zero_population_is_valid(self, make_candidate):
        assert validate_candidate(make_candidate(population=0), 0) is None

    def test_missing_population(self, make_candidate):
        fault = validate_candidate(make_candidate("Ghana", population=None), 3)
        assert fault.identifier == "Ghana"
        assert fault.errors == {"population": "is required"}

    def test_negative_population(self, make_candidate):
        fault = validate_candidate(make_candidate("Ghana", population=-1), 3)
        assert fault.errors == {"population": "must be a non-negative integer"}

    def test_missing_name_uses_index(self, make_candidate):
        fault = validate_candidate(make_candidate("   ", population=None), 7)
        assert fault.identifier == "record[7]"
        assert set(fault.errors) == {"name", "population"}


# ---------------------------------------------------------------------------
# reconcile()
# ---------------------------------------------------------------------------

class TestReconcile:
    def test_inserts_new_records(self, engine, duck, metadata, make_candidate):
        result = engine.reconcile(
            [make_candidate("Nigeria"), make_candidate("Ghana", currency_code="GHS")],
            refreshed_at=T0,
        )

        assert result.total == 2
        assert result.inserted == 2
        assert result.updated == 0
        assert result.stored_total == 2
        assert result.refreshed_at == T0
        assert _count(duck) == 2
        assert metadata.get_last_refreshed() == T0

    def test_case_insensitive_match_updates_in_place(self, engine, duck, make_candidate):
        first = engine.reconcile([make_candidate("Canada", population=38_000_000)], refreshed_at=T0)
        second = engine.reconcile(
            [make_candidate("CANADA", population=39_000_000)],
            refreshed_at=T0 + timedelta(hours=1),
        )

        assert second.updated == 1
        assert second.inserted == 0
        assert _count(duck) == 1
        assert second.committed[0].id == first.committed[0].id

        name, population = duck.execute("SELECT name, population FROM countries").fetchone()
        assert name == "CANADA"
        assert population == 39_000_000

    def test_faulty_records_are_dropped_not_fatal(self, engine, duck, make_candidate):
        result = engine.reconcile(
            [
                make_candidate("Nigeria"),
                make_candidate("Ghana", population=None),
                make_candidate("Kenya"),
            ],
            refreshed_at=T0,
        )

        assert result.total == 2
        assert [f.identifier for f in result.faults] == ["Ghana"]
        assert _count(duck) == 2

    def test_repeated_fault_names_stay_distinct(self, engine, duck, make_candidate):
        result = engine.reconcile(
            [
                make_candidate("Atlantis", population=None),
                make_candidate("Atlantis", population=-5),
                make_candidate("Nigeria", population=10),
            ],
            refreshed_at=T0,
        )

        faults = {f.identifier: f.errors for f in result.faults}
        assert faults == {
            "Atlantis": {"population": "is required"},
            "Atlantis[1]": {"population": "must be a non-negative integer"},
        }
        assert result.total == 1
        assert _count(duck) == 1

    def test_runs_on_its_own_cursor(self, engine, duck, make_candidate):
        duck.execute("BEGIN")
        duck.execute("SELECT count(*) FROM countries").fetchone()

        result = engine.reconcile([make_candidate("Nigeria")], refreshed_at=T0)

        duck.execute("ROLLBACK")
        assert result.total == 1
        assert _count(duck) == 1

    def test_duplicate_names_in_batch_collapse(self, engine, duck, make_candidate):
        result = engine.reconcile(
            [make_candidate("Chad", population=1), make_candidate("chad", population=2)],
            refreshed_at=T0,
        )
        assert result.total == 1
        assert duck.execute("SELECT population FROM countries").fetchone()[0] == 2

    def test_refreshed_at_strictly_increases(self, engine, make_candidate):
        first = engine.reconcile([make_candidate()], refreshed_at=T0)
        second = engine.reconcile([make_candidate()], refreshed_at=T0)
        third = engine.reconcile([make_candidate()], refreshed_at=T0 - timedelta(days=1))

        assert first.refreshed_at < second.refreshed_at < third.refreshed_at

    def test_every_committed_row_shares_the_cycle_stamp(self, engine, duck, make_candidate):
        engine.reconcile([make_candidate("A"), make_candidate("B")], refreshed_at=T0)
        stamps = {r[0] for r in duck.execute("SELECT last_refreshed_at FROM countries").fetchall()}
        assert stamps == {T0.replace(tzinfo=None)}

    def test_null_gdp_and_rate_are_stored(self, engine, duck, make_candidate):
        engine.reconcile(
            [make_candidate("Eurozone", currency_code="EUR", exchange_rate=None, estimated_gdp=None)],
            refreshed_at=T0,
        )
        rate, gdp = duck.execute("SELECT exchange_rate, estimated_gdp FROM countries").fetchone()
        assert rate is None
        assert gdp is None

    def test_decimal_values_round_trip(self, engine, duck, make_candidate):
        engine.reconcile([make_candidate()], refreshed_at=T0)
        rate, gdp = duck.execute("SELECT exchange_rate, estimated_gdp FROM countries").fetchone()
        assert rate == Decimal("1600.23")
        assert gdp == Decimal("25767448125.20")

    def test_rollback_on_metadata_failure(self, engine, duck, metadata, make_candidate, monkeypatch):
        engine.reconcile([make_candidate("Nigeria")], refreshed_at=T0)

        def boom(*args, **kwargs):
            raise duckdb.Error("disk full")

        monkeypatch.setattr(metadata, "set_last_refreshed", boom)
        with pytest.raises(PersistenceFailure):
            engine.reconcile(
                [make_candidate("Nigeria", population=1), make_candidate("Ghana")],
                refreshed_at=T0 + timedelta(hours=1),
            )

        assert _count(duck) == 1
        assert duck.execute("SELECT population FROM countries").fetchone()[0] == 206139587
        assert metadata.get_last_refreshed() == T0

    def test_empty_batch_still_advances_metadata(self, engine, metadata):
        result = engine.reconcile([], refreshed_at=T0)
        assert result.total == 0
        assert metadata.get_last_refreshed() == T0
