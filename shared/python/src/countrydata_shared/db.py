"""
db.py — DuckDB connection singleton and schema bootstrap.

Usage:
    from countrydata_shared.db import get_duckdb_connection, ensure_schema

    conn = get_duckdb_connection()
    ensure_schema(conn)
"""

from __future__ import annotations

import threading
from pathlib import Path
from typing import Optional

import duckdb
import structlog

from countrydata_shared.config import settings
from countrydata_shared.constants import COUNTRIES_TABLE, METADATA_TABLE

logger = structlog.get_logger(__name__)

# ---------------------------------------------------------------------------
# Schema: every statement is idempotent
# ---------------------------------------------------------------------------
SCHEMA_STATEMENTS: tuple[str, ...] = (
    f"""
    CREATE TABLE IF NOT EXISTS {COUNTRIES_TABLE} (
        id                VARCHAR PRIMARY KEY,
        name              VARCHAR NOT NULL,
        name_key          VARCHAR NOT NULL UNIQUE,
        capital           VARCHAR,
        region            VARCHAR,
        population        BIGINT NOT NULL,
        currency_code     VARCHAR,
        exchange_rate     DECIMAL(20, 8),
        estimated_gdp     DECIMAL(24, 2),
        flag_url          VARCHAR,
        last_refreshed_at TIMESTAMP
    )
    """,
    f"""
    CREATE TABLE IF NOT EXISTS {METADATA_TABLE} (
        key   VARCHAR PRIMARY KEY,
        value TIMESTAMP
    )
    """,
)


def ensure_schema(conn: duckdb.DuckDBPyConnection) -> None:
    """Create the countries and metadata tables if they do not exist."""
    for statement in SCHEMA_STATEMENTS:
        conn.execute(statement)


def name_key(name: str) -> str:
    """Case-insensitive identity of a country name."""
    return name.strip().casefold()


# ---------------------------------------------------------------------------
# DuckDB: single connection per process
# ---------------------------------------------------------------------------
_duckdb_lock = threading.Lock()
_duckdb_conn: Optional[duckdb.DuckDBPyConnection] = None


def get_duckdb_connection() -> duckdb.DuckDBPyConnection:
    """
    Return a singleton DuckDB connection to the country store.

    The file path is read from settings.duckdb_path (":memory:" is honoured).
    Creates parent directories and the schema on first use.

    Returns:
        duckdb.DuckDBPyConnection
    """
    global _duckdb_conn

    with _duckdb_lock:
        if _duckdb_conn is None:
            db_path = settings.duckdb_path
            if db_path != ":memory:":
                Path(db_path).parent.mkdir(parents=True, exist_ok=True)

            _duckdb_conn = duckdb.connect(db_path)
            ensure_schema(_duckdb_conn)

            logger.info("duckdb_connected", path=db_path)

        return _duckdb_conn


def reset_duckdb_connection() -> None:
    """Reset the DuckDB singleton (useful in tests)."""
    global _duckdb_conn
    with _duckdb_lock:
        if _duckdb_conn is not None:
            _duckdb_conn.close()
            _duckdb_conn = None
