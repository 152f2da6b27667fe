"""Centralised helpers for Playwright launch + anti-bot configuration."""

from __future__ import annotations

import random
from typing import Any
from urllib.parse import urlparse

from playwright.async_api import Browser, BrowserContext, Playwright
from playwright_stealth import Stealth

from gmap_extractor.config import BrowserSettings, ExtractorConfig
from gmap_extractor.logging_config import get_logger

LOGGER = get_logger(__name__)


def pick_user_agent(settings: BrowserSettings, rng: random.Random | None = None) -> str:
    chooser = rng or random
    return chooser.choice(settings.user_agents)


def stealth_instance(settings: BrowserSettings, user_agent: str) -> Stealth | None:
    """Return the fixed stealth configuration, or ``None`` when disabled."""

    if not settings.stealth:
        return None
    primary_lang = settings.locale
    langs = (primary_lang, primary_lang.split("-")[0])
    return Stealth(
        navigator_languages_override=langs,
        navigator_platform_override="Win32",
        navigator_user_agent_override=user_agent,
        navigator_vendor_override="Google Inc.",
    )


def _proxy_config(raw: str | None) -> dict[str, str] | None:
    if not raw:
        return None
    parsed = urlparse(raw)
    if not parsed.scheme:
        return {"server": f"http://{raw}"}
    return {"server": raw}


def launch_kwargs(settings: BrowserSettings) -> dict[str, Any]:
    """Return kwargs passed to chromium.launch."""

    args = [
        "--disable-blink-features=AutomationControlled",
        "--disable-dev-shm-usage",
        "--disable-infobars",
        "--no-sandbox",
        "--disable-setuid-sandbox",
        f"--lang={settings.locale}",
        "--no-default-browser-check",
        f"--window-size={settings.viewport_width},{settings.viewport_height}",
    ]

    kwargs: dict[str, Any] = {
        "headless": settings.headless,
        "args": args,
    }

    proxy = _proxy_config(settings.proxy)
    if proxy:
        kwargs["proxy"] = proxy

    return kwargs


def context_kwargs(settings: BrowserSettings, user_agent: str) -> dict[str, Any]:
    return {
        "user_agent": user_agent,
        "viewport": {"width": settings.viewport_width, "height": settings.viewport_height},
        "locale": settings.locale,
    }


async def launch_browser(
    playwright: Playwright,
    config: ExtractorConfig,
    *,
    user_agent: str | None = None,
) -> tuple[Browser, BrowserContext]:
    """Launch Chromium and open a stealth-patched context. Returns (browser, context)."""

    settings = config.browser
    agent = user_agent or pick_user_agent(settings)
    browser = await playwright.chromium.launch(**launch_kwargs(settings))
    context = await browser.new_context(**context_kwargs(settings, agent))

    stealth = stealth_instance(settings, agent)
    if stealth is not None:
        await stealth.apply_stealth_async(context)

    context.set_default_navigation_timeout(config.timeouts.navigation_ms)
    context.set_default_timeout(config.timeouts.element_ms)
    LOGGER.debug("Browser launched (headless=%s, ua=%s)", settings.headless, agent)
    return browser, context


async def close_browser(browser: Browser | None, context: BrowserContext | None) -> None:
    """Close the provided browser/context pair without raising."""

    if context is not None:
        try:
            await context.close()
        except Exception as exc:
            LOGGER.debug("Context close failed: %s", exc)

    if browser is not None:
        try:
            await browser.close()
        except Exception as exc:
            LOGGER.debug("Browser close failed: %s", exc)
