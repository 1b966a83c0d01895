"""
sources/base.py — Abstract base class for the external source adapters.

Each concrete source must implement:
  extract()      — fetch raw data, return polars DataFrame of raw strings
  transform()    — clean/cast the raw DataFrame into the typed schema
  get_metadata() — return dict with source info for logging

The run() method orchestrates extract → transform → return and handles
timing/logging automatically. ExternalSourceClient calls run() rather than
the individual methods.
"""

from __future__ import annotations

import time
from abc import ABC, abstractmethod
from typing import Any

import httpx
import polars as pl
import structlog

log = structlog.get_logger(__name__)


class InvalidPayload(ValueError):
    """The source answered, but not with the shape we expect."""


class BaseSource(ABC):
    """Abstract base for countrydata source adapters."""

    # Override in subclass; used for logging and SourceUnavailable.source
    name: str = "unknown"

    def __init__(self, url: str, timeout: float = 10.0) -> None:
        self._url = url
        self._timeout = timeout
        self._log = log.bind(source_name=self.name)

    # ------------------------------------------------------------------
    # Abstract interface: subclasses must implement all three
    # ------------------------------------------------------------------

    @abstractmethod
    async def extract(self, **kwargs: Any) -> pl.DataFrame:
        """
        Fetch raw data from the external source.

        Implementations should:
        - Make the HTTP call via _get_json()
        - Raise InvalidPayload when the JSON shape is wrong
        - Return a polars DataFrame with raw (string) columns

        Returns:
            Raw polars DataFrame.
        """
        ...

    @abstractmethod
    def transform(self, raw: pl.DataFrame) -> pl.DataFrame:
        """
        Clean and cast a raw DataFrame into the source's typed schema.

        Args:
            raw: DataFrame returned by extract().

        Returns:
            Normalized polars DataFrame.
        """
        ...

    @abstractmethod
    async def get_metadata(self) -> dict[str, Any]:
        """Return source-level metadata for observability."""
        ...

    # ------------------------------------------------------------------
    # Orchestration
    # ------------------------------------------------------------------

    async def run(self, **kwargs: Any) -> pl.DataFrame:
        """
        Extract + transform in sequence with timing and structured logging.

        Raises:
            Any exception from extract() or transform() after logging it.
        """
        run_log = self._log.bind(**{k: str(v) for k, v in kwargs.items()})
        run_log.info("source_run_start")

        t0 = time.monotonic()
        try:
            raw = await self.extract(**kwargs)
            extract_ms = int((time.monotonic() - t0) * 1000)
            run_log.info(
                "extract_complete",
                raw_rows=len(raw),
                raw_cols=raw.width,
                duration_ms=extract_ms,
            )

            t1 = time.monotonic()
            result = self.transform(raw)
            transform_ms = int((time.monotonic() - t1) * 1000)
            run_log.info(
                "transform_complete",
                result_rows=len(result),
                result_cols=result.width,
                duration_ms=transform_ms,
            )

            run_log.info(
                "source_run_complete",
                total_duration_ms=int((time.monotonic() - t0) * 1000),
                output_rows=len(result),
            )
            return result

        except Exception as exc:
            run_log.error(
                "source_run_failed",
                error=str(exc) or type(exc).__name__,
                duration_ms=int((time.monotonic() - t0) * 1000),
            )
            raise

    # ------------------------------------------------------------------
    # Shared helpers available to all subclasses
    # ------------------------------------------------------------------

    async def _get_json(self) -> Any:
        """GET the source URL and decode the JSON body."""
        self._log.info("source_fetch", url=self._url)
        async with httpx.AsyncClient(timeout=self._timeout) as client:
            response = await client.get(self._url)
            response.raise_for_status()
            try:
                return response.json()
            except ValueError as exc:
                raise InvalidPayload(f"{self.name} returned non-JSON body") from exc

    @staticmethod
    def _clean_str(value: Any) -> str | None:
        """Strip strings; blanks and non-strings become None."""
        if not isinstance(value, str):
            return None
        value = value.strip()
        return value or None

    @staticmethod
    def _raw_number(value: Any) -> str | None:
        """
        Render a JSON number as a string the polars cast understands.

        Booleans are rejected and integral floats lose their ".0".
        """
        if isinstance(value, bool) or value is None:
            return None
        if isinstance(value, float) and value.is_integer():
            return str(int(value))
        if isinstance(value, (int, float)):
            return str(value)
        if isinstance(value, str):
            return value.strip() or None
        return None
