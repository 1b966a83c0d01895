"""
time_utils.py — UTC timestamp helpers shared by the pipeline and API.

DuckDB stores refresh timestamps in plain TIMESTAMP columns as naive UTC.
Everything above the storage layer works with timezone-aware UTC datetimes.

Usage:
    from countrydata_shared.time_utils import utcnow, to_db_timestamp, from_db_timestamp

    ts = utcnow()
    conn.execute("INSERT ... VALUES (?)", [to_db_timestamp(ts)])
    aware = from_db_timestamp(row[0])
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

# Smallest step DuckDB TIMESTAMP can represent
TIMESTAMP_RESOLUTION = timedelta(microseconds=1)


def utcnow() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_db_timestamp(value: datetime) -> datetime:
    """Convert any datetime to naive UTC for a TIMESTAMP column."""
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def from_db_timestamp(value: datetime | None) -> datetime | None:
    """Attach UTC to a naive TIMESTAMP value read back from DuckDB."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def advance_past(candidate: datetime, previous: datetime | None) -> datetime:
    """
    Return candidate, or the earliest representable instant after previous.

    Keeps successive refresh timestamps strictly increasing even when two
    cycles complete within the same clock tick.
    """
    if previous is None or candidate > previous:
        return candidate
    return previous + TIMESTAMP_RESOLUTION


def isoformat_z(value: datetime | None) -> str | None:
    """Render an aware datetime as ISO-8601 with a trailing 'Z'."""
    if value is None:
        return None
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")
