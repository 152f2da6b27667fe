"""Command-line interface entry point for gmap-extractor."""

from __future__ import annotations

import argparse
import asyncio
import signal
from typing import Any, Iterable

from gmap_extractor import __version__, pipeline
from gmap_extractor.config import EXPORT_FORMATS, ConfigError, ExtractorConfig, load_config
from gmap_extractor.errors import SearchNavigationError
from gmap_extractor.logging_config import disable_file_logging, enable_file_logging, get_logger, set_level

LOGGER = get_logger(__name__)

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _bool_arg(value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE_VALUES:
        return True
    if lowered in _FALSE_VALUES:
        return False
    raise argparse.ArgumentTypeError(f"expected true or false, got {value!r}")


def parse_args(argv: Iterable[str] | None = None) -> argparse.Namespace:
    """Parse CLI arguments for the application."""

    parser = argparse.ArgumentParser(
        prog="gmap-extractor",
        description="Extract business data from Google Maps search results.",
    )
    parser.add_argument("query", help='Search query (e.g. "Computer dealers in Ahmedabad").')
    parser.add_argument("-o", "--output", help="Custom output filename, relative to the output directory.")
    parser.add_argument(
        "--headless",
        type=_bool_arg,
        default=None,
        metavar="BOOL",
        help="Run the browser headless: true or false (default: true).",
    )
    parser.add_argument(
        "--timeout",
        type=int,
        default=None,
        metavar="MS",
        help="Maximum wait per element in milliseconds (default: 10000).",
    )
    parser.add_argument("--max-results", type=int, default=None, help="Maximum number of results to extract.")
    parser.add_argument(
        "--format",
        dest="export_format",
        type=str.lower,
        choices=EXPORT_FORMATS,
        default=None,
        help="Output format: csv, json or both (default: csv).",
    )
    parser.add_argument("--output-dir", help="Directory for exported files (default: output).")
    parser.add_argument("--config", help="Optional YAML configuration file.")
    parser.add_argument("--error-report", help="Path for the JSON error report.")
    parser.add_argument("--log-level", help="Override LOG_LEVEL for this run.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    args = parser.parse_args(list(argv) if argv is not None else None)

    if not args.query.strip():
        parser.error("query must not be empty")
    if args.timeout is not None and args.timeout <= 0:
        parser.error("--timeout must be a positive integer")
    if args.max_results is not None and args.max_results < 0:
        parser.error("--max-results must not be negative")
    return args


def _cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    overrides: dict[str, Any] = {}
    if args.headless is not None:
        overrides.setdefault("browser", {})["headless"] = args.headless
    if args.timeout is not None:
        overrides.setdefault("timeouts", {})["element_ms"] = args.timeout
    export: dict[str, Any] = {}
    if args.output:
        export["output_file"] = args.output
    if args.export_format:
        export["format"] = args.export_format
    if args.output_dir:
        export["output_dir"] = args.output_dir
    if args.error_report:
        export["error_report"] = args.error_report
    if export:
        overrides["export"] = export
    if args.max_results is not None:
        overrides["max_results"] = args.max_results
    return overrides


def _install_signal_handlers(task: asyncio.Task[Any]) -> None:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, task.cancel)
        except (NotImplementedError, RuntimeError, ValueError):
            # Unsupported on Windows loops and outside the main thread.
            LOGGER.debug("Signal handler for %s unavailable", sig)


async def _run_query(query: str, config: ExtractorConfig) -> int:
    _install_signal_handlers(asyncio.current_task())
    try:
        result = await pipeline.run(query, config)
    except asyncio.CancelledError:
        LOGGER.info("Shutdown signal received; browser closed")
        return 0
    except SearchNavigationError as exc:
        LOGGER.error("Fatal error: %s", exc)
        return 1
    except Exception:
        LOGGER.exception("Fatal error during extraction")
        return 1

    if result.records:
        LOGGER.info("Extraction completed successfully")
    return 0


async def _run_cli(args: argparse.Namespace) -> int:
    try:
        config = load_config(args.config, _cli_overrides(args))
    except ConfigError as exc:
        LOGGER.error("Invalid configuration: %s", exc)
        return 2

    LOGGER.info("Google Maps Data Extractor %s", __version__)
    return await _run_query(args.query.strip(), config)


async def _async_main(argv: Iterable[str] | None = None) -> int:
    args = parse_args(argv)
    enable_file_logging()
    if args.log_level:
        set_level(args.log_level)
    try:
        return await _run_cli(args)
    finally:
        disable_file_logging()


def main(argv: Iterable[str] | None = None) -> None:
    try:
        code = asyncio.run(_async_main(argv))
    except KeyboardInterrupt:  # pragma: no cover - interactive safety
        LOGGER.info("Interrupted by user")
        return
    if code:
        raise SystemExit(code)


if __name__ == "__main__":
    main()
