"""
pipelines/refresh.py — the country refresh cycle.

Orchestrates:
  1. ExternalSourceClient → country catalog + exchange rates (parallel, fail-fast)
  2. GDP derivation → one CountryCandidate per catalog record
  3. ReconciliationEngine → validated batch upsert + metadata, one transaction,
     run in a worker thread so the event loop stays free during the commit
  4. SummaryRenderer → summary.png, detached and best-effort

States per invocation:
  START → FETCHING → DERIVING → RECONCILING → COMMITTED → RENDERING → DONE
  with SOURCE_UNAVAILABLE and PERSISTENCE_FAILED as terminal error states.

Exactly one RefreshOutcome is returned per call: success, validation_failed
(valid subset committed, faults reported), source_unavailable, or
persistence_failed. Nothing is retried here. Every log line of a cycle,
including those from sources, loaders and the detached render, carries its
refresh_id.

Usage:
    from countrydata_pipeline.pipelines.refresh import run
    outcome = await run()
    print(outcome.status, outcome.total)
"""

from __future__ import annotations

import asyncio
import random
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

import duckdb

from countrydata_shared.config import Settings, settings as default_settings
from countrydata_shared.db import get_duckdb_connection
from countrydata_shared.models import CountryRecord
from countrydata_shared.time_utils import isoformat_z, utcnow
from countrydata_pipeline.errors import PersistenceFailure, SourceUnavailable
from countrydata_pipeline.loaders.metadata import MetadataStore
from countrydata_pipeline.loaders.reconcile import ReconcileResult, ReconciliationEngine
from countrydata_pipeline.render.summary import RenderConfig, SummaryRenderer, select_top
from countrydata_pipeline.sources.client import ExternalSourceClient
from countrydata_pipeline.transforms.gdp import derive_candidates
from countrydata_pipeline.utils.logging import get_logger, refresh_context

log = get_logger(__name__, pipeline="refresh")


class RefreshState(str, Enum):
    START = "start"
    FETCHING = "fetching"
    SOURCE_UNAVAILABLE = "source_unavailable"
    DERIVING = "deriving"
    RECONCILING = "reconciling"
    PERSISTENCE_FAILED = "persistence_failed"
    COMMITTED = "committed"
    RENDERING = "rendering"
    DONE = "done"


class RefreshStatus(str, Enum):
    SUCCESS = "success"
    VALIDATION_FAILED = "validation_failed"
    SOURCE_UNAVAILABLE = "source_unavailable"
    PERSISTENCE_FAILED = "persistence_failed"


@dataclass
class RefreshOutcome:
    """The single result of one refresh cycle."""

    status: RefreshStatus
    total: int = 0
    refreshed_at: datetime | None = None
    faults: dict[str, dict[str, str]] = field(default_factory=dict)
    source: str | None = None
    message: str = ""
    states: list[RefreshState] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.status is RefreshStatus.SUCCESS

    @property
    def committed(self) -> bool:
        """True when this cycle's valid records were persisted."""
        return self.status in (RefreshStatus.SUCCESS, RefreshStatus.VALIDATION_FAILED)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"status": self.status.value, "message": self.message}
        if self.committed:
            data["total"] = self.total
            data["refreshed_at"] = isoformat_z(self.refreshed_at)
        if self.faults:
            data["faults"] = self.faults
        if self.source:
            data["source"] = self.source
        return data


class RefreshOrchestrator:
    """Runs refresh cycles and owns their detached render tasks."""

    def __init__(
        self,
        client: ExternalSourceClient,
        engine: ReconciliationEngine,
        renderer: SummaryRenderer,
        *,
        rng: random.Random | None = None,
        clock: Callable[[], datetime] = utcnow,
        top_n: int = 5,
    ) -> None:
        self._client = client
        self._engine = engine
        self._renderer = renderer
        self._rng = rng or random.Random()
        self._clock = clock
        self._top_n = top_n
        self._background: set[asyncio.Task[None]] = set()

    async def refresh(self) -> RefreshOutcome:
        """Run one cycle; never raises for source, validation or storage failures."""
        with refresh_context(refresh_id=uuid.uuid4().hex[:12]):
            return await self._cycle()

    async def _cycle(self) -> RefreshOutcome:
        states = [RefreshState.START]
        log.info("refresh_start")

        states.append(RefreshState.FETCHING)
        try:
            catalog, rates = await self._client.fetch_sources()
        except SourceUnavailable as exc:
            states.append(RefreshState.SOURCE_UNAVAILABLE)
            log.error("refresh_source_unavailable", source=exc.source, reason=exc.reason)
            return RefreshOutcome(
                status=RefreshStatus.SOURCE_UNAVAILABLE,
                source=exc.source,
                message=str(exc),
                states=states,
            )

        states.append(RefreshState.DERIVING)
        candidates = derive_candidates(catalog, rates, self._rng)
        log.info("candidates_derived", count=len(candidates), rates=len(rates))

        states.append(RefreshState.RECONCILING)
        try:
            result = await asyncio.to_thread(
                self._engine.reconcile, candidates, refreshed_at=self._clock()
            )
        except PersistenceFailure as exc:
            states.append(RefreshState.PERSISTENCE_FAILED)
            log.error("refresh_persistence_failed", error=str(exc))
            return RefreshOutcome(
                status=RefreshStatus.PERSISTENCE_FAILED,
                message="Could not update database",
                states=states,
            )

        states.append(RefreshState.COMMITTED)
        states.append(RefreshState.RENDERING)
        self._schedule_render(result)
        states.append(RefreshState.DONE)

        outcome = RefreshOutcome(
            status=RefreshStatus.SUCCESS,
            total=result.total,
            refreshed_at=result.refreshed_at,
            message="Countries refreshed successfully",
            states=states,
        )
        if result.faults:
            outcome.status = RefreshStatus.VALIDATION_FAILED
            outcome.message = "Validation failed"
            outcome.faults = {f.identifier: f.errors for f in result.faults}

        log.info(
            "refresh_complete",
            status=outcome.status.value,
            total=outcome.total,
            faults=len(outcome.faults),
        )
        return outcome

    async def drain(self) -> None:
        """Wait for every scheduled render to finish (shutdown, tests)."""
        while self._background:
            pending = list(self._background)
            await asyncio.gather(*pending, return_exceptions=True)
            self._background.difference_update(pending)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def _schedule_render(self, result: ReconcileResult) -> None:
        top = select_top(result.committed, self._top_n)
        task = asyncio.create_task(
            self._render(top, result.stored_total, result.refreshed_at or self._clock())
        )
        self._background.add(task)
        task.add_done_callback(self._background.discard)

    async def _render(
        self, top: list[CountryRecord], total: int, refreshed_at: datetime
    ) -> None:
        try:
            await asyncio.to_thread(self._renderer.render, top, total, refreshed_at)
        except Exception as exc:
            log.error("render_task_failed", error=str(exc) or type(exc).__name__)


def build_orchestrator(
    conn: duckdb.DuckDBPyConnection | None = None,
    cfg: Settings | None = None,
    *,
    rng: random.Random | None = None,
) -> RefreshOrchestrator:
    """Wire an orchestrator from settings and a DuckDB connection."""
    cfg = cfg or default_settings
    conn = conn or get_duckdb_connection()
    metadata = MetadataStore(conn)
    metadata.ensure_schema()
    return RefreshOrchestrator(
        ExternalSourceClient.from_settings(cfg),
        ReconciliationEngine(conn, metadata),
        SummaryRenderer(RenderConfig.from_settings(cfg)),
        rng=rng,
        top_n=cfg.summary_top_n,
    )


async def run(
    *,
    conn: duckdb.DuckDBPyConnection | None = None,
    wait_for_render: bool = True,
) -> RefreshOutcome:
    """
    Run a single refresh cycle end-to-end.

    Args:
        conn:            DuckDB connection (default: the process singleton).
        wait_for_render: Block until the detached render finishes, for
                         short-lived callers such as the CLI.

    Returns:
        RefreshOutcome.
    """
    orchestrator = build_orchestrator(conn)
    outcome = await orchestrator.refresh()
    if wait_for_render:
        await orchestrator.drain()
    return outcome
