"""Search, paginate, extract and export for a single query."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Awaitable, Callable, Protocol

from tqdm import tqdm

from gmap_extractor import exporter
from gmap_extractor.config import ExtractorConfig
from gmap_extractor.error_log import ErrorRecorder
from gmap_extractor.errors import DetailExtractionError, ResultActivationError, SearchNavigationError
from gmap_extractor.extractor import BusinessDataExtractor
from gmap_extractor.logging_config import get_logger
from gmap_extractor.models import BusinessRecord, ExtractionError, RunResult
from gmap_extractor.pagination import load_all_results
from gmap_extractor.retry import with_retry
from gmap_extractor.session import MapsSession

LOGGER = get_logger(__name__)

Sleep = Callable[[float], Awaitable[None]]


class ResultSession(Protocol):
    async def activate_result_at_index(self, index: int) -> bool: ...

    async def result_links(self) -> list[str]: ...

    def current_url(self) -> str: ...


class RecordExtractor(Protocol):
    async def extract_one(self, expected_url: str | None = None, index: int | None = None) -> BusinessRecord | None: ...


async def extract_batch(
    session: ResultSession,
    extractor: RecordExtractor,
    total: int,
    *,
    config: ExtractorConfig,
    recorder: ErrorRecorder,
    sleep: Sleep = asyncio.sleep,
    show_progress: bool = True,
) -> tuple[list[BusinessRecord], list[ExtractionError]]:
    """Activate and extract results ``0..total-1`` strictly in order.

    Every index ends up in exactly one of the two returned lists.
    """

    retry = config.retry
    records: list[BusinessRecord] = []
    errors: list[ExtractionError] = []

    try:
        links = await session.result_links()
    except Exception as exc:
        LOGGER.debug("Result links unavailable: %s", exc)
        links = []

    progress = tqdm(total=total, unit="business", desc="Extracting", disable=not show_progress)
    try:
        for index in range(total):
            expected_url = links[index] if index < len(links) else None

            async def _activate(index: int = index, expected_url: str | None = expected_url) -> bool:
                if not await session.activate_result_at_index(index):
                    raise ResultActivationError(index=index, url=expected_url)
                return True

            async def _extract(index: int = index, expected_url: str | None = expected_url) -> BusinessRecord:
                source_url = expected_url or session.current_url()
                record = await extractor.extract_one(source_url, index)
                if record is None:
                    raise DetailExtractionError(index=index, url=source_url)
                return record

            try:
                await with_retry(
                    _activate,
                    f"Click business {index + 1}",
                    recorder=recorder,
                    max_attempts=retry.click_attempts,
                    delay_ms=retry.click_delay_ms,
                    sleep=sleep,
                )
                record = await with_retry(
                    _extract,
                    f"Extract business {index + 1}",
                    recorder=recorder,
                    max_attempts=retry.extract_attempts,
                    delay_ms=retry.extract_delay_ms,
                    sleep=sleep,
                )
            except Exception as exc:
                recorder.record(f"Business {index + 1}", exc, index=index)
                errors.append(ExtractionError(index=index, reason=str(exc)))
            else:
                records.append(record)
                await sleep(config.timeouts.between_clicks_ms / 1000)
            finally:
                progress.update(1)
    finally:
        progress.close()

    return records, errors


def _resolve_outputs(config: ExtractorConfig, query: str) -> tuple[Path, Path]:
    export = config.export
    if export.output_file is not None:
        base = export.output_dir / export.output_file
        csv_path = base
        json_path = base.with_suffix(".json")
        if csv_path == json_path:
            csv_path = base.with_suffix(".csv")
    else:
        csv_path = export.output_dir / exporter.generate_output_filename(query, "csv")
        json_path = export.output_dir / exporter.generate_output_filename(query, "json")
    return csv_path, json_path


def export_results(result: RunResult, config: ExtractorConfig) -> list[Path]:
    csv_path, json_path = _resolve_outputs(config, result.query)
    written: list[Path] = []
    if config.export.wants_csv:
        written.append(exporter.export_csv(result.records, csv_path))
    if config.export.wants_json:
        written.append(exporter.export_json(result.records, json_path, result.query))
    return written


async def run(
    query: str,
    config: ExtractorConfig,
    *,
    session_factory: Callable[[ExtractorConfig], Any] = MapsSession,
    extractor_factory: Callable[[Any, ExtractorConfig], RecordExtractor] = BusinessDataExtractor,
    recorder: ErrorRecorder | None = None,
    sleep: Sleep = asyncio.sleep,
) -> RunResult:
    """Run one query end to end. Raises :class:`SearchNavigationError` when the search fails."""

    recorder = recorder or ErrorRecorder(config.export.error_log)
    result = RunResult(query=query)

    async with session_factory(config) as session:
        if not await session.navigate_to_search(query):
            raise SearchNavigationError("Failed to perform Google Maps search", query=query)

        result.total_found = await load_all_results(
            session,
            cap=config.max_results,
            settings=config.scrolling,
            scroll_delay_ms=config.timeouts.scroll_delay_ms,
            sleep=sleep,
        )
        if result.total_found == 0:
            LOGGER.warning("No results found for this query")
            return result

        total = min(config.max_results, result.total_found) if config.max_results else result.total_found
        LOGGER.info("Starting extraction of %s businesses...", total)
        extractor = extractor_factory(session.page, config)
        result.records, result.errors = await extract_batch(
            session,
            extractor,
            total,
            config=config,
            recorder=recorder,
            sleep=sleep,
        )

    if not result.records:
        LOGGER.error("No business data extracted")
        _write_error_report(recorder, config)
        return result

    export_results(result, config)
    exporter.log_summary(exporter.generate_summary_report(result.records, result.errors))
    if result.errors:
        LOGGER.warning("%s businesses failed to extract", len(result.errors))
    _write_error_report(recorder, config)
    return result


def _write_error_report(recorder: ErrorRecorder, config: ExtractorConfig) -> Path | None:
    if not recorder.has_errors:
        return None
    path = config.export.error_report or config.export.output_dir / "error_report.json"
    return recorder.export_report(path)
