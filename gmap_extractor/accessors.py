"""Helpers for safely reading DOM content from the Maps detail panel.

Every accessor converts Playwright failures into ``None`` so that a missing or
reshaped element never aborts the surrounding extraction. Anything else is a
bug and propagates to the caller.
"""

from __future__ import annotations

from typing import Any

from playwright.async_api import Error as PlaywrightError

from gmap_extractor.logging_config import get_logger

LOGGER = get_logger(__name__)

_HANDLEABLE_ERRORS: tuple[type[BaseException], ...] = (PlaywrightError,)

# Scan the DOM for the first element matching the given filters and return the
# requested value. ``filters`` mirrors ``strategies.ElementScan``.
SCAN_SCRIPT = """
(filters) => {
  const nodes = Array.from(document.querySelectorAll(filters.tag));
  const pattern = filters.textPattern ? new RegExp(filters.textPattern) : null;
  for (const el of nodes) {
    const text = (el.textContent || '').trim();
    if (filters.requireClass && !el.className) continue;
    if (filters.maxLength && (!text || text.length >= filters.maxLength)) continue;
    if (filters.excludeText && text.includes(filters.excludeText)) continue;
    if (pattern && !pattern.test(text)) continue;
    if (filters.matchers.length) {
      const hit = filters.matchers.some(([source, op, needle]) => {
        const value = source === 'text' ? text : el.getAttribute(source);
        if (value === null || value === undefined) return false;
        return op === 'equals' ? value === needle : value.includes(needle);
      });
      if (!hit) continue;
    }
    if (filters.read === 'text') return text;
    if (filters.read === 'href') return el.href || el.getAttribute('href');
    return el.getAttribute(filters.read);
  }
  return null;
}
"""

BODY_TEXT_SCRIPT = "() => document.body ? document.body.innerText : ''"


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


async def _first_present(page: Any, selector: str) -> Any | None:
    locator = page.locator(selector)
    if await locator.count() == 0:
        return None
    return locator.first


async def text_or_none(page: Any, selector: str, *, timeout: int = 3000) -> str | None:
    """Return the stripped inner text of the first ``selector`` match."""

    try:
        element = await _first_present(page, selector)
        if element is None:
            return None
        return _clean(await element.inner_text(timeout=timeout))
    except _HANDLEABLE_ERRORS as exc:
        LOGGER.debug("Text read failed for %s: %s", selector, exc)
        return None


async def attribute_or_none(
    page: Any,
    selector: str,
    name: str,
    *,
    timeout: int = 3000,
) -> str | None:
    """Return attribute ``name`` of the first ``selector`` match."""

    try:
        element = await _first_present(page, selector)
        if element is None:
            return None
        return _clean(await element.get_attribute(name, timeout=timeout))
    except _HANDLEABLE_ERRORS as exc:
        LOGGER.debug("Attribute %s read failed for %s: %s", name, selector, exc)
        return None


async def evaluate_or_none(page: Any, script: str, arg: Any = None) -> Any:
    try:
        if arg is None:
            return await page.evaluate(script)
        return await page.evaluate(script, arg)
    except _HANDLEABLE_ERRORS as exc:
        LOGGER.debug("Script evaluation failed: %s", exc)
        return None


async def scan_or_none(page: Any, filters: dict[str, Any]) -> str | None:
    return _clean(await evaluate_or_none(page, SCAN_SCRIPT, filters))


async def body_text_or_none(page: Any) -> str | None:
    return _clean(await evaluate_or_none(page, BODY_TEXT_SCRIPT))
