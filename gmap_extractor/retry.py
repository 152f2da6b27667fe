"""Fixed-delay retry wrapper that reports every failed attempt."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, TypeVar

from tenacity import AsyncRetrying, RetryCallState, stop_after_attempt, wait_fixed

from gmap_extractor.error_log import ErrorRecorder
from gmap_extractor.logging_config import get_logger

LOGGER = get_logger(__name__)

T = TypeVar("T")


async def with_retry(
    operation: Callable[[], Awaitable[T]],
    context: str,
    *,
    recorder: ErrorRecorder,
    max_attempts: int = 3,
    delay_ms: int = 2000,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> T:
    """Run ``operation`` up to ``max_attempts`` times, ``delay_ms`` apart.

    Every failure that will be retried is recorded with ``retrying=True``; the
    last one is recorded with ``final_attempt=True`` and re-raised unchanged.
    """

    def _before_sleep(state: RetryCallState) -> None:
        exc = state.outcome.exception() if state.outcome else None
        if exc is None:
            return
        recorder.record(
            context,
            exc,
            attempt=state.attempt_number,
            max_attempts=max_attempts,
            retrying=True,
        )
        LOGGER.warning(
            "%s failed (attempt %s/%s); retrying in %sms",
            context,
            state.attempt_number,
            max_attempts,
            delay_ms,
        )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(max_attempts),
        wait=wait_fixed(delay_ms / 1000),
        before_sleep=_before_sleep,
        sleep=sleep,
        reraise=True,
    )
    try:
        return await retrying(operation)
    except Exception as exc:
        recorder.record(context, exc, max_attempts=max_attempts, final_attempt=True)
        raise
