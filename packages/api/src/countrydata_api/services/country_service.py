"""Country data service."""

from __future__ import annotations

from datetime import datetime
from typing import Any

import duckdb

from countrydata_shared.constants import COUNTRIES_TABLE, SORT_OPTIONS
from countrydata_shared.db import name_key
from countrydata_shared.models import CountryRecord
from countrydata_pipeline.loaders.metadata import MetadataStore

_COLUMNS = (
    "id, name, capital, region, population, currency_code, "
    "exchange_rate, estimated_gdp, flag_url, last_refreshed_at"
)


def _records(cursor: duckdb.DuckDBPyConnection) -> list[CountryRecord]:
    names = [d[0] for d in cursor.description]
    return [CountryRecord.from_db_row(dict(zip(names, row))) for row in cursor.fetchall()]


def list_countries(
    conn: duckdb.DuckDBPyConnection,
    *,
    region: str | None = None,
    currency: str | None = None,
    sort: str | None = None,
) -> list[CountryRecord]:
    clauses: list[str] = []
    params: list[Any] = []
    if region:
        clauses.append("lower(region) = lower(?)")
        params.append(region)
    if currency:
        clauses.append("upper(currency_code) = upper(?)")
        params.append(currency)

    column, descending = SORT_OPTIONS.get(sort or "name_asc", SORT_OPTIONS["name_asc"])
    direction = "DESC" if descending else "ASC"

    sql = f"SELECT {_COLUMNS} FROM {COUNTRIES_TABLE}"
    if clauses:
        sql += " WHERE " + " AND ".join(clauses)
    sql += f" ORDER BY {column} {direction} NULLS LAST, name ASC"

    return _records(conn.execute(sql, params))


def get_country(conn: duckdb.DuckDBPyConnection, name: str) -> CountryRecord | None:
    cursor = conn.execute(
        f"SELECT {_COLUMNS} FROM {COUNTRIES_TABLE} WHERE name_key = ?",
        [name_key(name)],
    )
    rows = _records(cursor)
    return rows[0] if rows else None


def delete_country(conn: duckdb.DuckDBPyConnection, name: str) -> bool:
    """Administrative delete; returns False when no country matched."""
    row = conn.execute(
        f"DELETE FROM {COUNTRIES_TABLE} WHERE name_key = ? RETURNING id",
        [name_key(name)],
    ).fetchone()
    return row is not None


def get_status(conn: duckdb.DuckDBPyConnection) -> tuple[int, datetime | None]:
    row = conn.execute(f"SELECT count(*) FROM {COUNTRIES_TABLE}").fetchone()
    total = int(row[0]) if row else 0
    return total, MetadataStore(conn).get_last_refreshed()
