"""Scroll the search results feed until it stops growing."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Protocol

from gmap_extractor.config import ScrollSettings
from gmap_extractor.logging_config import get_logger

LOGGER = get_logger(__name__)


class ScrollableResults(Protocol):
    async def has_results_container(self) -> bool: ...

    async def current_result_count(self) -> int: ...

    async def scroll_results_container(self) -> None: ...


async def load_all_results(
    session: ScrollableResults,
    *,
    cap: int | None = None,
    settings: ScrollSettings | None = None,
    scroll_delay_ms: int = 2000,
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
) -> int:
    """Scroll ``session``'s results feed and return the number of cards loaded.

    Stops when ``cap`` is reached (a falsy cap means no cap), when the count
    has been unchanged for ``no_new_results_threshold`` consecutive readings,
    or after ``max_scroll_attempts`` iterations. A missing feed yields 0.
    """

    settings = settings or ScrollSettings()
    if not await session.has_results_container():
        LOGGER.warning("Results container not found")
        return 0

    previous_count = 0
    stagnant_readings = 0
    for attempt in range(1, settings.max_scroll_attempts + 1):
        count = await session.current_result_count()
        LOGGER.debug("Scroll attempt %s: %s results loaded", attempt, count)

        if cap and count >= cap:
            LOGGER.info("Reached max results limit: %s", cap)
            return count

        if count == previous_count:
            stagnant_readings += 1
            if stagnant_readings >= settings.no_new_results_threshold:
                LOGGER.info("No new results after %s attempts; stopping", stagnant_readings)
                return count
        else:
            stagnant_readings = 0

        await session.scroll_results_container()
        await sleep(scroll_delay_ms / 1000)
        previous_count = count

    final_count = await session.current_result_count()
    LOGGER.info("Scroll limit reached with %s results loaded", final_count)
    return final_count
