"""
loaders/metadata.py — MetadataStore: the singleton last_refreshed_at row.

The timestamp is written on the caller's open transaction, together with
the country batch; it is never committed on its own.
"""

from __future__ import annotations

from datetime import datetime

import duckdb
import structlog

from countrydata_shared.constants import LAST_REFRESHED_KEY, METADATA_TABLE
from countrydata_shared.db import ensure_schema
from countrydata_shared.models import RefreshMetadata
from countrydata_shared.time_utils import from_db_timestamp, to_db_timestamp

log = structlog.get_logger(__name__)


class MetadataStore:
    """Key/value refresh metadata backed by the DuckDB metadata table."""

    def __init__(self, conn: duckdb.DuckDBPyConnection) -> None:
        self._conn = conn

    def ensure_schema(self) -> None:
        """Idempotent; safe to call every cycle."""
        ensure_schema(self._conn)

    def read(
        self, conn: duckdb.DuckDBPyConnection | None = None
    ) -> RefreshMetadata | None:
        """The last_refreshed_at row, or None before the first commit."""
        row = (conn if conn is not None else self._conn).execute(
            f"SELECT key, value FROM {METADATA_TABLE} WHERE key = ?",
            [LAST_REFRESHED_KEY],
        ).fetchone()
        if row is None:
            return None
        return RefreshMetadata(key=row[0], value=from_db_timestamp(row[1]))

    def get_last_refreshed(
        self, conn: duckdb.DuckDBPyConnection | None = None
    ) -> datetime | None:
        meta = self.read(conn)
        return meta.value if meta else None

    def set_last_refreshed(
        self, timestamp: datetime, conn: duckdb.DuckDBPyConnection
    ) -> None:
        """Upsert last_refreshed_at inside the caller's transaction."""
        conn.execute(
            f"""
            INSERT INTO {METADATA_TABLE} (key, value) VALUES (?, ?)
            ON CONFLICT (key) DO UPDATE SET value = excluded.value
            """,
            [LAST_REFRESHED_KEY, to_db_timestamp(timestamp)],
        )
        log.debug("metadata_staged", key=LAST_REFRESHED_KEY, value=timestamp.isoformat())
