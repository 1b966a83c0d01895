"""
cli.py — Click CLI entrypoint for the refresh pipeline.

Usage:
    countrydata refresh
    countrydata refresh --attempts 5
    countrydata status
    countrydata status --max-age-hours 24
"""

from __future__ import annotations

import asyncio
import json
from datetime import timedelta

import click
import structlog

from countrydata_shared.config import settings
from countrydata_shared.constants import COUNTRIES_TABLE
from countrydata_shared.db import get_duckdb_connection
from countrydata_shared.time_utils import isoformat_z, utcnow
from countrydata_pipeline.loaders.metadata import MetadataStore
from countrydata_pipeline.pipelines.refresh import RefreshOutcome, build_orchestrator
from countrydata_pipeline.utils.logging import configure_logging
from countrydata_pipeline.utils.retry import retry_refresh

log = structlog.get_logger(__name__)

EXIT_STALE = 2


@click.group()
@click.option(
    "--log-level",
    default=settings.log_level,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"]),
    help="Log level",
)
def main(log_level: str) -> None:
    """countrydata refresh pipeline."""
    configure_logging(log_level=log_level)


@main.command()
@click.option(
    "--attempts",
    default=1,
    show_default=True,
    type=click.IntRange(min=1),
    help="Retry the whole cycle while a source is unavailable.",
)
@click.option("--base-delay", default=2.0, show_default=True, help="First backoff delay (s).")
def refresh(attempts: int, base_delay: float) -> None:
    """Run one refresh cycle and print its outcome as JSON."""
    outcome = asyncio.run(_refresh_with_retry(attempts, base_delay))
    click.echo(json.dumps(outcome.to_dict(), indent=2))
    if not outcome.ok:
        raise SystemExit(1)


async def _refresh_with_retry(attempts: int, base_delay: float) -> RefreshOutcome:
    orchestrator = build_orchestrator(get_duckdb_connection())
    refresh_once = retry_refresh(max_attempts=attempts, base_delay=base_delay)(orchestrator.refresh)
    outcome = await refresh_once()
    await orchestrator.drain()
    return outcome


@main.command()
@click.option(
    "--max-age-hours",
    type=float,
    default=None,
    help="Exit with status 2 if the last refresh is older than this.",
)
def status(max_age_hours: float | None) -> None:
    """Show the country count and the last refresh time."""
    conn = get_duckdb_connection()
    last = MetadataStore(conn).get_last_refreshed()
    row = conn.execute(f"SELECT count(*) FROM {COUNTRIES_TABLE}").fetchone()
    total = int(row[0]) if row else 0

    click.echo(f"Total countries:   {total}")
    click.echo(f"Last refreshed at: {isoformat_z(last) or 'never'}")

    if max_age_hours is None:
        return
    if last is None or utcnow() - last > timedelta(hours=max_age_hours):
        log.warning("data_stale", last_refreshed_at=isoformat_z(last), max_age_hours=max_age_hours)
        click.echo(f"  ✗ stale (older than {max_age_hours:g}h)", err=True)
        raise SystemExit(EXIT_STALE)
    click.echo("  ✓ fresh")


if __name__ == "__main__":
    main()
