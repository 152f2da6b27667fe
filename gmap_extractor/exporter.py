"""CSV/JSON export and the end-of-run summary report."""

from __future__ import annotations

import csv
from datetime import datetime, timezone
import json
import os
from pathlib import Path
import re
from tempfile import NamedTemporaryFile
from typing import Any, Iterable, Sequence

from gmap_extractor.logging_config import get_logger
from gmap_extractor.models import CSV_HEADER, BusinessRecord, ExtractionError

LOGGER = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-z0-9]+")

COMPLETION_FIELDS: tuple[str, ...] = (
    "name",
    "address",
    "phone",
    "website",
    "rating",
    "review_count",
    "category",
    "hours",
    "price_level",
    "plus_code",
)


def sanitize_filename(value: str) -> str:
    """Lowercase ``value`` and collapse non-alphanumeric runs into ``_``."""

    return _UNSAFE_CHARS.sub("_", value.lower()).strip("_")


def generate_output_filename(query: str, extension: str = "csv", *, now: datetime | None = None) -> str:
    moment = now or datetime.now(timezone.utc)
    stem = sanitize_filename(query) or "results"
    return f"{stem}_{moment.strftime('%Y-%m-%dT%H-%M-%S')}.{extension}"


def _write_atomic(path: Path, write: Any) -> Path:
    os.makedirs(path.parent, exist_ok=True)
    with NamedTemporaryFile(
        mode="w", newline="", encoding="utf-8", dir=str(path.parent), delete=False
    ) as handle:
        write(handle)
        handle.flush()
        os.fsync(handle.fileno())
        tmp_name = handle.name

    os.replace(tmp_name, path)
    return path


def export_csv(records: Iterable[BusinessRecord], path: str | Path) -> Path:
    """Write ``records`` as fully quoted CSV; missing values become ``N/A``."""

    target = Path(path)
    rows = [record.to_csv_row() for record in records]

    def _write(handle: Any) -> None:
        writer = csv.writer(handle, quoting=csv.QUOTE_ALL)
        writer.writerow(CSV_HEADER)
        writer.writerows(rows)

    _write_atomic(target, _write)
    LOGGER.info("Exported %s records to %s", len(rows), target)
    return target


def export_json(records: Sequence[BusinessRecord], path: str | Path, query: str) -> Path:
    target = Path(path)
    payload = {
        "query": query,
        "exportDate": datetime.now(timezone.utc).isoformat(),
        "totalResults": len(records),
        "results": [record.to_export_dict() for record in records],
    }

    def _write(handle: Any) -> None:
        json.dump(payload, handle, indent=2, ensure_ascii=False)

    _write_atomic(target, _write)
    LOGGER.info("Exported %s records to %s", len(records), target)
    return target


def calculate_field_completion(records: Sequence[BusinessRecord]) -> dict[str, str]:
    if not records:
        return {}
    completion: dict[str, str] = {}
    for field_name in COMPLETION_FIELDS:
        filled = sum(1 for record in records if getattr(record, field_name) is not None)
        completion[field_name] = f"{filled / len(records) * 100:.1f}%"
    return completion


def generate_summary_report(
    records: Sequence[BusinessRecord],
    errors: Sequence[ExtractionError] = (),
) -> dict[str, Any]:
    attempted = len(records) + len(errors)
    success_rate = f"{len(records) / attempted * 100:.2f}%" if records else "0%"
    return {
        "totalExtracted": len(records),
        "totalErrors": len(errors),
        "successRate": success_rate,
        "fieldsCompletion": calculate_field_completion(records),
    }


def log_summary(summary: dict[str, Any]) -> None:
    LOGGER.info("=== Extraction Summary ===")
    LOGGER.info("Total extracted: %s", summary["totalExtracted"])
    LOGGER.info("Total errors: %s", summary["totalErrors"])
    LOGGER.info("Success rate: %s", summary["successRate"])
    for field_name, rate in summary["fieldsCompletion"].items():
        LOGGER.info("  %s: %s", field_name, rate)
