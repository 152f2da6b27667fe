"""Browser session driving one Google Maps search."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable
from urllib.parse import quote

from playwright.async_api import Browser, BrowserContext, Page, Playwright, async_playwright
from playwright.async_api import Error as PlaywrightError

from gmap_extractor import selectors
from gmap_extractor.config import ExtractorConfig
from gmap_extractor.logging_config import get_logger
from gmap_extractor.playwright_env import close_browser, launch_browser

LOGGER = get_logger(__name__)

_COUNT_SCRIPT = "(selector) => document.querySelectorAll(selector).length"

_SCROLL_SCRIPT = """
([selector, amount]) => {
  const panel = document.querySelector(selector);
  if (panel) panel.scrollBy(0, amount);
}
"""

_LINKS_SCRIPT = """
([cardSelector, linkSelector]) => {
  const links = [];
  document.querySelectorAll(cardSelector).forEach((card) => {
    const link = card.querySelector(linkSelector);
    if (link && link.href) links.push(link.href);
  });
  return links;
}
"""

_CLICK_SCRIPT = """
([cardSelector, linkSelector, index]) => {
  const cards = document.querySelectorAll(cardSelector);
  if (index >= cards.length) return false;
  const link = cards[index].querySelector(linkSelector);
  if (!link) return false;
  link.click();
  return true;
}
"""


def build_search_url(query: str) -> str:
    return selectors.SEARCH_URL.format(query=quote(query, safe=""))


class MapsSession:
    """Owns the browser, context and page for a single search run.

    Use as ``async with MapsSession(config) as session``; the browser is
    released on exit even when the body raises.
    """

    def __init__(
        self,
        config: ExtractorConfig,
        *,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.config = config
        self._sleep = sleep
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._context: BrowserContext | None = None
        self._page: Page | None = None

    async def __aenter__(self) -> "MapsSession":
        try:
            await self.start()
        except BaseException:
            await self.close()
            raise
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    @property
    def page(self) -> Page:
        if self._page is None:
            raise RuntimeError("MapsSession.start() has not been called")
        return self._page

    async def start(self) -> None:
        LOGGER.info("Launching browser (headless=%s)", self.config.browser.headless)
        self._playwright = await async_playwright().start()
        self._browser, self._context = await launch_browser(self._playwright, self.config)
        self._page = await self._context.new_page()

    async def navigate_to_search(self, query: str) -> bool:
        """Open the search page for ``query``; ``False`` when no feed appears."""

        url = build_search_url(query)
        LOGGER.info("Searching for: %s", query)
        try:
            await self.page.goto(url, wait_until="domcontentloaded")
            await self._sleep(self.config.timeouts.search_settle_ms / 1000)
            await self.page.wait_for_selector(
                selectors.RESULTS_FEED,
                timeout=self.config.timeouts.element_ms,
            )
        except PlaywrightError as exc:
            LOGGER.error("Search results did not load for %s: %s", url, exc)
            return False
        LOGGER.info("Search results loaded")
        return True

    async def has_results_container(self) -> bool:
        try:
            return await self.page.locator(selectors.RESULTS_FEED).count() > 0
        except PlaywrightError as exc:
            LOGGER.debug("Results container lookup failed: %s", exc)
            return False

    async def current_result_count(self) -> int:
        count = await self.page.evaluate(_COUNT_SCRIPT, selectors.RESULT_CARD)
        return int(count or 0)

    async def scroll_results_container(self) -> None:
        await self.page.evaluate(
            _SCROLL_SCRIPT,
            [selectors.RESULTS_FEED, self.config.scrolling.scroll_amount],
        )

    async def result_links(self) -> list[str]:
        links = await self.page.evaluate(_LINKS_SCRIPT, [selectors.RESULT_CARD, selectors.RESULT_LINK])
        return [str(link) for link in links or []]

    async def activate_result_at_index(self, index: int) -> bool:
        """Click the card at ``index`` and wait for its detail panel.

        Re-issuing the same click is harmless, so callers may retry this.
        """

        clicked = await self.page.evaluate(
            _CLICK_SCRIPT,
            [selectors.RESULT_CARD, selectors.RESULT_LINK, index],
        )
        if not clicked:
            LOGGER.warning("No clickable result card at index %s", index)
            return False
        await self._sleep(self.config.timeouts.detail_load_ms / 1000)
        return True

    def current_url(self) -> str:
        return self.page.url

    async def close(self) -> None:
        await close_browser(self._browser, self._context)
        self._browser = None
        self._context = None
        self._page = None
        if self._playwright is not None:
            try:
                await self._playwright.stop()
            except Exception as exc:
                LOGGER.debug("Playwright shutdown failed: %s", exc)
            self._playwright = None
        LOGGER.info("Browser closed")
