"""
utils/logging.py — structlog setup for refresh cycles, the CLI and the API.

Every event passes through two project processors:
  merge_contextvars — pulls in the refresh_id bound by refresh_context(),
                      so source, loader and render events of one cycle
                      share it, including those from worker threads
  _plain_values     — Decimal (GDP, rates) and datetime values become
                      JSON-friendly strings before rendering

Usage:
    from countrydata_pipeline.utils.logging import configure_logging, refresh_context

    configure_logging(log_format="json")
    with refresh_context(refresh_id="3f9c0a7d21be"):
        await orchestrator._cycle()
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime
from decimal import Decimal
from typing import Any

import structlog
from structlog.typing import EventDict, WrappedLogger

from countrydata_shared.config import settings
from countrydata_shared.time_utils import isoformat_z


def _plain_values(_: WrappedLogger, __: str, event_dict: EventDict) -> EventDict:
    for key, value in event_dict.items():
        if isinstance(value, Decimal):
            event_dict[key] = format(value, "f")
        elif isinstance(value, datetime) and value.tzinfo is not None:
            event_dict[key] = isoformat_z(value)
    return event_dict


def configure_logging(
    log_level: str | None = None,
    log_format: str | None = None,
) -> None:
    """
    Configure structlog over stdlib logging. Safe to call more than once.

    Args:
        log_level:  Override settings.log_level.
        log_format: "json" for one object per line, "console" for humans;
                    defaults to settings.log_format.
    """
    level = getattr(logging, (log_level or settings.log_level).upper(), logging.INFO)
    as_json = (log_format or settings.log_format) == "json"

    logging.basicConfig(format="%(message)s", stream=sys.stdout, level=level)

    renderer: Any = (
        structlog.processors.JSONRenderer()
        if as_json
        else structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())
    )
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.add_log_level,
            structlog.stdlib.add_logger_name,
            structlog.processors.TimeStamper(fmt="iso", utc=True),
            _plain_values,
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(level),
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )


@contextmanager
def refresh_context(**values: Any) -> Iterator[None]:
    """Bind cycle-wide values (refresh_id, attempt) for the enclosed code."""
    with structlog.contextvars.bound_contextvars(**values):
        yield


def get_logger(name: str, **initial_values: Any) -> structlog.BoundLogger:
    logger = structlog.get_logger(name)
    return logger.bind(**initial_values) if initial_values else logger  # type: ignore[return-value]
