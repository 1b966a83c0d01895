"""
loaders/reconcile.py — ReconciliationEngine: validated, atomic country upserts.

All refresh cycles funnel their derived candidates through this module.
The engine:
  - Validates every candidate on its own; bad records become
    ValidationFaults and are dropped from the batch without aborting it.
    Fault identifiers are unique per batch: a repeated name gets the
    record index appended, e.g. "Atlantis[1]"
  - Loads the full name_key → id map once per cycle
  - Resolves each candidate to an existing id (case-insensitive) or a new
    UUID and writes one UPDATE batch plus one INSERT batch
  - Stages the metadata timestamp on the same transaction, then commits
  - Rolls back everything and raises PersistenceFailure on any storage error

Each reconcile() runs on its own cursor of the shared connection, so it may
be called from a worker thread while other cursors serve reads.

Usage:
    engine = ReconciliationEngine(conn, MetadataStore(conn))
    result = engine.reconcile(candidates, refreshed_at=utcnow())
    print(len(result.committed), result.faults)
"""

from __future__ import annotations

import time
import uuid
from collections.abc import Sequence
from dataclasses import dataclass, field
from datetime import datetime

import duckdb
import structlog

from countrydata_shared.constants import COUNTRIES_TABLE
from countrydata_shared.db import name_key
from countrydata_shared.models import CountryCandidate, CountryRecord, ValidationFault
from countrydata_shared.time_utils import advance_past, to_db_timestamp, utcnow
from countrydata_pipeline.errors import PersistenceFailure
from countrydata_pipeline.loaders.metadata import MetadataStore

log = structlog.get_logger(__name__)

_UPDATE_SQL = f"""
    UPDATE {COUNTRIES_TABLE}
    SET name = ?, capital = ?, region = ?, population = ?, currency_code = ?,
        exchange_rate = ?, estimated_gdp = ?, flag_url = ?, last_refreshed_at = ?
    WHERE id = ?
"""

_INSERT_SQL = f"""
    INSERT INTO {COUNTRIES_TABLE} (
        id, name, name_key, capital, region, population, currency_code,
        exchange_rate, estimated_gdp, flag_url, last_refreshed_at
    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
"""


@dataclass
class ReconcileResult:
    """Summary of one reconciliation transaction."""

    committed: list[CountryRecord] = field(default_factory=list)
    faults: list[ValidationFault] = field(default_factory=list)
    inserted: int = 0
    updated: int = 0
    stored_total: int = 0
    refreshed_at: datetime | None = None
    duration_ms: int = 0

    @property
    def total(self) -> int:
        return len(self.committed)


def validate_candidate(candidate: CountryCandidate, index: int) -> ValidationFault | None:
    """Return a fault for a candidate missing name or population, else None."""
    errors: dict[str, str] = {}
    name = (candidate.name or "").strip()
    if not name:
        errors["name"] = "is required"
    if candidate.population is None:
        errors["population"] = "is required"
    elif candidate.population < 0:
        errors["population"] = "must be a non-negative integer"

    if not errors:
        return None
    return ValidationFault(identifier=name or f"record[{index}]", errors=errors)


class ReconciliationEngine:
    """Matches candidates to stored countries and commits them atomically."""

    def __init__(self, conn: duckdb.DuckDBPyConnection, metadata: MetadataStore) -> None:
        self._conn = conn
        self._metadata = metadata

    def reconcile(
        self,
        candidates: Sequence[CountryCandidate],
        refreshed_at: datetime | None = None,
    ) -> ReconcileResult:
        """
        Validate, resolve and upsert one cycle's candidates.

        Args:
            candidates:   Derived records for this cycle.
            refreshed_at: Cycle timestamp; bumped forward if it does not
                          exceed the stored last_refreshed_at.

        Returns:
            ReconcileResult with the committed records and faults.

        Raises:
            PersistenceFailure: the transaction failed and was rolled back.
        """
        t0 = time.monotonic()
        result = ReconcileResult()

        valid: dict[str, CountryCandidate] = {}
        fault_ids: set[str] = set()
        for index, candidate in enumerate(candidates):
            fault = validate_candidate(candidate, index)
            if fault is not None:
                if fault.identifier in fault_ids:
                    fault = fault.model_copy(
                        update={"identifier": f"{fault.identifier}[{index}]"}
                    )
                fault_ids.add(fault.identifier)
                result.faults.append(fault)
                continue
            key = name_key(candidate.name or "")
            if key in valid:
                log.warning("duplicate_name_in_batch", name=candidate.name)
            valid[key] = candidate

        rec_log = log.bind(candidates=len(candidates), valid=len(valid), faults=len(result.faults))
        rec_log.info("reconcile_start")

        conn = self._conn.cursor()
        try:
            conn.begin()
        except duckdb.Error as exc:
            conn.close()
            rec_log.error("reconcile_begin_failed", error=str(exc))
            raise PersistenceFailure("could not open transaction") from exc

        try:
            return self._apply(conn, valid, result, refreshed_at, rec_log, t0)
        finally:
            conn.close()

    def _apply(
        self,
        conn: duckdb.DuckDBPyConnection,
        valid: dict[str, CountryCandidate],
        result: ReconcileResult,
        refreshed_at: datetime | None,
        rec_log,
        t0: float,
    ) -> ReconcileResult:
        """Write the valid batch and metadata on conn; commit or roll back."""
        try:
            existing: dict[str, str] = {
                key: str(row_id)
                for key, row_id in conn.execute(
                    f"SELECT name_key, id FROM {COUNTRIES_TABLE}"
                ).fetchall()
            }
            previous = self._metadata.get_last_refreshed(conn)
            stamp = advance_past(refreshed_at or utcnow(), previous)
            db_stamp = to_db_timestamp(stamp)

            updates: list[list[object]] = []
            inserts: list[list[object]] = []
            for key, candidate in valid.items():
                record = CountryRecord(
                    id=uuid.UUID(existing[key]) if key in existing else uuid.uuid4(),
                    name=(candidate.name or "").strip(),
                    capital=candidate.capital,
                    region=candidate.region,
                    population=candidate.population,
                    currency_code=candidate.currency_code,
                    exchange_rate=candidate.exchange_rate,
                    estimated_gdp=candidate.estimated_gdp,
                    flag_url=candidate.flag_url,
                    last_refreshed_at=stamp,
                )
                values = [
                    record.name,
                    record.capital,
                    record.region,
                    record.population,
                    record.currency_code,
                    record.exchange_rate,
                    record.estimated_gdp,
                    record.flag_url,
                    db_stamp,
                ]
                if key in existing:
                    updates.append([*values, existing[key]])
                else:
                    inserts.append([str(record.id), record.name, key, *values[1:]])
                result.committed.append(record)

            if updates:
                conn.executemany(_UPDATE_SQL, updates)
            if inserts:
                conn.executemany(_INSERT_SQL, inserts)

            self._metadata.set_last_refreshed(stamp, conn)
            row = conn.execute(f"SELECT count(*) FROM {COUNTRIES_TABLE}").fetchone()
            result.stored_total = int(row[0]) if row else 0
            conn.commit()
        except Exception as exc:
            self._rollback(conn)
            rec_log.error(
                "reconcile_rolled_back",
                error=str(exc) or type(exc).__name__,
                duration_ms=int((time.monotonic() - t0) * 1000),
            )
            raise PersistenceFailure("could not update database") from exc

        result.inserted = len(inserts)
        result.updated = len(updates)
        result.refreshed_at = stamp
        result.duration_ms = int((time.monotonic() - t0) * 1000)
        rec_log.info(
            "reconcile_committed",
            inserted=result.inserted,
            updated=result.updated,
            stored_total=result.stored_total,
            refreshed_at=stamp.isoformat(),
            duration_ms=result.duration_ms,
        )
        return result

    @staticmethod
    def _rollback(conn: duckdb.DuckDBPyConnection) -> None:
        try:
            conn.rollback()
        except duckdb.Error as exc:
            log.error("rollback_failed", error=str(exc))
