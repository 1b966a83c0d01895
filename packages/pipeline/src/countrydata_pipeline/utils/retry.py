"""
utils/retry.py — Backoff around whole refresh cycles.

RefreshOrchestrator.refresh() reports an unreachable source as a
SOURCE_UNAVAILABLE outcome instead of raising, so retries key on the
returned outcome. Any other status ends the loop at once; when attempts run
out the last outcome is returned as-is. Exceptions are not retried.

Usage:
    from countrydata_pipeline.utils.retry import retry_refresh

    refresh_once = retry_refresh(max_attempts=3, base_delay=2.0)(orchestrator.refresh)
    outcome = await refresh_once()
"""

from __future__ import annotations

import functools
from collections.abc import Awaitable, Callable
from typing import Any

import structlog
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_exponential,
)

from countrydata_pipeline.pipelines.refresh import RefreshOutcome, RefreshStatus

log = structlog.get_logger(__name__)

RefreshFn = Callable[..., Awaitable[RefreshOutcome]]


def _source_unavailable(outcome: RefreshOutcome) -> bool:
    return outcome.status is RefreshStatus.SOURCE_UNAVAILABLE


def _log_retry(state: RetryCallState) -> None:
    outcome: RefreshOutcome = state.outcome.result()  # type: ignore[union-attr]
    log.warning(
        "refresh_retry_scheduled",
        attempt=state.attempt_number,
        source=outcome.source,
        reason=outcome.message,
        sleep_s=round(state.next_action.sleep, 2) if state.next_action else 0,
    )


def _give_up(state: RetryCallState) -> RefreshOutcome:
    outcome: RefreshOutcome = state.outcome.result()  # type: ignore[union-attr]
    log.error("refresh_retries_exhausted", attempts=state.attempt_number, source=outcome.source)
    return outcome


def retry_refresh(
    max_attempts: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
) -> Callable[[RefreshFn], RefreshFn]:
    """
    Retry a refresh callable while it reports SOURCE_UNAVAILABLE.

    Delays: base_delay * 2^(attempt-1), capped at max_delay.

    Args:
        max_attempts: Total cycles run before giving up.
        base_delay:   Initial delay in seconds.
        max_delay:    Maximum delay cap in seconds.
    """

    def decorator(fn: RefreshFn) -> RefreshFn:
        @functools.wraps(fn)
        async def wrapper(*args: Any, **kwargs: Any) -> RefreshOutcome:
            retrying = AsyncRetrying(
                stop=stop_after_attempt(max_attempts),
                wait=wait_exponential(multiplier=base_delay, max=max_delay),
                retry=retry_if_result(_source_unavailable),
                before_sleep=_log_retry,
                retry_error_callback=_give_up,
            )
            return await retrying(fn, *args, **kwargs)

        return wrapper

    return decorator
