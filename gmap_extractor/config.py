"""Immutable runtime configuration for an extraction run.

Values are resolved once, in order: built-in defaults, an optional YAML file,
environment variables (``.env`` is honoured through python-dotenv) and finally
explicit overrides coming from the command line. The resulting
:class:`ExtractorConfig` is handed to every component at construction time.
"""

from __future__ import annotations

import os
from copy import deepcopy
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Mapping

import yaml
from dotenv import load_dotenv

from gmap_extractor.logging_config import get_logger

LOGGER = get_logger(__name__)

_FALSE_VALUES = {"0", "false", "no", "off"}

DEFAULT_USER_AGENTS: tuple[str, ...] = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
    "Mozilla/5.0 (X11; Linux x86_64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36",
)

DEFAULT_CONFIG: dict[str, Any] = {
    "browser": {
        "headless": True,
        "stealth": True,
        "viewport_width": 1920,
        "viewport_height": 1080,
        "locale": "en-US",
        "proxy": None,
        "user_agents": list(DEFAULT_USER_AGENTS),
    },
    "timeouts": {
        "navigation_ms": 30000,
        "element_ms": 10000,
        "search_settle_ms": 2000,
        "scroll_delay_ms": 2000,
        "detail_load_ms": 3000,
        "detail_settle_ms": 1500,
        "between_clicks_ms": 1000,
    },
    "scrolling": {
        "max_scroll_attempts": 50,
        "scroll_amount": 1000,
        "no_new_results_threshold": 3,
    },
    "retry": {
        "click_attempts": 2,
        "click_delay_ms": 1000,
        "extract_attempts": 2,
        "extract_delay_ms": 1000,
    },
    "export": {
        "output_dir": "output",
        "format": "csv",
        "output_file": None,
        "error_report": None,
        "error_log": "logs/extraction_errors.log",
    },
    "max_results": None,
}

EXPORT_FORMATS = ("csv", "json", "both")


class ConfigError(ValueError):
    """Raised when configuration values cannot be interpreted."""


@dataclass(frozen=True)
class BrowserSettings:
    headless: bool = True
    stealth: bool = True
    viewport_width: int = 1920
    viewport_height: int = 1080
    locale: str = "en-US"
    proxy: str | None = None
    user_agents: tuple[str, ...] = DEFAULT_USER_AGENTS


@dataclass(frozen=True)
class Timeouts:
    navigation_ms: int = 30000
    element_ms: int = 10000
    search_settle_ms: int = 2000
    scroll_delay_ms: int = 2000
    detail_load_ms: int = 3000
    detail_settle_ms: int = 1500
    between_clicks_ms: int = 1000


@dataclass(frozen=True)
class ScrollSettings:
    max_scroll_attempts: int = 50
    scroll_amount: int = 1000
    no_new_results_threshold: int = 3


@dataclass(frozen=True)
class RetrySettings:
    click_attempts: int = 2
    click_delay_ms: int = 1000
    extract_attempts: int = 2
    extract_delay_ms: int = 1000


@dataclass(frozen=True)
class ExportSettings:
    output_dir: Path = Path("output")
    format: str = "csv"
    output_file: Path | None = None
    error_report: Path | None = None
    error_log: Path | None = Path("logs/extraction_errors.log")

    @property
    def wants_csv(self) -> bool:
        return self.format in ("csv", "both")

    @property
    def wants_json(self) -> bool:
        return self.format in ("json", "both")


@dataclass(frozen=True)
class ExtractorConfig:
    browser: BrowserSettings = field(default_factory=BrowserSettings)
    timeouts: Timeouts = field(default_factory=Timeouts)
    scrolling: ScrollSettings = field(default_factory=ScrollSettings)
    retry: RetrySettings = field(default_factory=RetrySettings)
    export: ExportSettings = field(default_factory=ExportSettings)
    max_results: int | None = None


def _deep_merge(default: Any, override: Any) -> Any:
    if not isinstance(default, dict) or not isinstance(override, dict):
        return deepcopy(override)

    merged: dict[str, Any] = deepcopy(default)
    for key, value in override.items():
        if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = deepcopy(value)
    return merged


def _as_bool(value: Any, default: bool) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() not in _FALSE_VALUES


def _as_int(section: str, key: str, value: Any, *, minimum: int = 0) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{section}.{key} must be an integer, got {value!r}")
    try:
        number = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"{section}.{key} must be an integer, got {value!r}") from exc
    if number < minimum:
        raise ConfigError(f"{section}.{key} must be >= {minimum}, got {number}")
    return number


def _optional_path(value: Any) -> Path | None:
    if value is None or value == "":
        return None
    return Path(str(value)).expanduser()


def _read_yaml(path: Path) -> dict[str, Any]:
    if not path.exists():
        raise ConfigError(f"Configuration file {path} not found")
    with path.open("r", encoding="utf-8") as handle:
        try:
            data = yaml.safe_load(handle) or {}
        except yaml.YAMLError as exc:
            raise ConfigError(f"Configuration file {path} is not valid YAML: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file {path} must contain a mapping")
    return data


def _env_overrides() -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    browser: dict[str, Any] = {}
    timeouts: dict[str, Any] = {}
    export: dict[str, Any] = {}

    if os.getenv("GMAP_HEADLESS") is not None:
        browser["headless"] = _as_bool(os.getenv("GMAP_HEADLESS"), True)
    if os.getenv("GMAP_STEALTH") is not None:
        browser["stealth"] = _as_bool(os.getenv("GMAP_STEALTH"), True)
    if os.getenv("GMAP_PROXY"):
        browser["proxy"] = os.getenv("GMAP_PROXY")
    if os.getenv("GMAP_ELEMENT_TIMEOUT_MS"):
        timeouts["element_ms"] = os.getenv("GMAP_ELEMENT_TIMEOUT_MS", "").strip()
    if os.getenv("GMAP_OUTPUT_DIR"):
        export["output_dir"] = os.getenv("GMAP_OUTPUT_DIR")

    if browser:
        overrides["browser"] = browser
    if timeouts:
        overrides["timeouts"] = timeouts
    if export:
        overrides["export"] = export
    return overrides


def _build(data: Mapping[str, Any]) -> ExtractorConfig:
    browser_raw = data.get("browser") or {}
    timeouts_raw = data.get("timeouts") or {}
    scrolling_raw = data.get("scrolling") or {}
    retry_raw = data.get("retry") or {}
    export_raw = data.get("export") or {}

    agents = tuple(str(agent).strip() for agent in browser_raw.get("user_agents") or () if str(agent).strip())
    if not agents:
        raise ConfigError("browser.user_agents must list at least one user agent")

    browser = BrowserSettings(
        headless=_as_bool(browser_raw.get("headless"), True),
        stealth=_as_bool(browser_raw.get("stealth"), True),
        viewport_width=_as_int("browser", "viewport_width", browser_raw.get("viewport_width"), minimum=1),
        viewport_height=_as_int("browser", "viewport_height", browser_raw.get("viewport_height"), minimum=1),
        locale=str(browser_raw.get("locale") or "en-US"),
        proxy=browser_raw.get("proxy") or None,
        user_agents=agents,
    )
    timeouts = Timeouts(
        **{key: _as_int("timeouts", key, timeouts_raw.get(key)) for key in Timeouts.__dataclass_fields__}
    )
    scrolling = ScrollSettings(
        max_scroll_attempts=_as_int("scrolling", "max_scroll_attempts", scrolling_raw.get("max_scroll_attempts"), minimum=1),
        scroll_amount=_as_int("scrolling", "scroll_amount", scrolling_raw.get("scroll_amount"), minimum=1),
        no_new_results_threshold=_as_int(
            "scrolling", "no_new_results_threshold", scrolling_raw.get("no_new_results_threshold"), minimum=1
        ),
    )
    retry = RetrySettings(
        click_attempts=_as_int("retry", "click_attempts", retry_raw.get("click_attempts"), minimum=1),
        click_delay_ms=_as_int("retry", "click_delay_ms", retry_raw.get("click_delay_ms")),
        extract_attempts=_as_int("retry", "extract_attempts", retry_raw.get("extract_attempts"), minimum=1),
        extract_delay_ms=_as_int("retry", "extract_delay_ms", retry_raw.get("extract_delay_ms")),
    )

    export_format = str(export_raw.get("format") or "csv").lower()
    if export_format not in EXPORT_FORMATS:
        raise ConfigError(f"export.format must be one of {', '.join(EXPORT_FORMATS)}, got {export_format!r}")
    export = ExportSettings(
        output_dir=_optional_path(export_raw.get("output_dir")) or Path("output"),
        format=export_format,
        output_file=_optional_path(export_raw.get("output_file")),
        error_report=_optional_path(export_raw.get("error_report")),
        error_log=_optional_path(export_raw.get("error_log")),
    )

    max_results_raw = data.get("max_results")
    max_results = None
    if max_results_raw is not None:
        max_results = _as_int("config", "max_results", max_results_raw)
        # Zero means "no cap", matching the truthiness check in pagination.
        max_results = max_results or None

    return ExtractorConfig(
        browser=browser,
        timeouts=timeouts,
        scrolling=scrolling,
        retry=retry,
        export=export,
        max_results=max_results,
    )


def load_config(
    path: str | Path | None = None,
    overrides: Mapping[str, Any] | None = None,
    *,
    use_env: bool = True,
) -> ExtractorConfig:
    """Resolve configuration from defaults, YAML, environment and ``overrides``."""

    merged: dict[str, Any] = deepcopy(DEFAULT_CONFIG)
    if path is not None:
        LOGGER.debug("Loading configuration from %s", path)
        merged = _deep_merge(merged, _read_yaml(Path(path)))
    if use_env:
        load_dotenv()
        merged = _deep_merge(merged, _env_overrides())
    if overrides:
        merged = _deep_merge(merged, dict(overrides))
    return _build(merged)
