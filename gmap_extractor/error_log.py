"""Structured error log kept for the lifetime of one extraction run."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
import json
from pathlib import Path
import traceback
from typing import Any

from gmap_extractor.logging_config import get_logger

LOGGER = get_logger(__name__)


def _utc_now() -> str:
    return datetime.now(timezone.utc).isoformat()


@dataclass(frozen=True)
class ErrorLogEntry:
    timestamp: str
    context: str
    message: str
    stack: str | None
    metadata: dict[str, Any] = field(default_factory=dict)


@dataclass
class ErrorRecorder:
    """Append-only error list mirrored to a JSON-lines file.

    ``log_path`` may be ``None`` to keep the log in memory only (tests do this).
    """

    log_path: Path | None = None
    entries: list[ErrorLogEntry] = field(init=False, default_factory=list)

    def __post_init__(self) -> None:
        if self.log_path is not None:
            self.log_path.parent.mkdir(parents=True, exist_ok=True)

    def record(self, context: str, error: BaseException, **metadata: Any) -> ErrorLogEntry:
        """Record ``error`` under ``context`` and append it to the log file."""

        stack = None
        if error.__traceback__ is not None:
            stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
        entry = ErrorLogEntry(
            timestamp=_utc_now(),
            context=context,
            message=str(error) or type(error).__name__,
            stack=stack,
            metadata=dict(metadata),
        )
        self.entries.append(entry)
        LOGGER.error("[%s] %s", context, entry.message)
        self._append(entry)
        return entry

    def _append(self, entry: ErrorLogEntry) -> None:
        if self.log_path is None:
            return
        try:
            with self.log_path.open("a", encoding="utf-8") as handle:
                handle.write(json.dumps(asdict(entry), ensure_ascii=False, default=str) + "\n")
        except OSError as exc:
            LOGGER.warning("Unable to append to error log %s: %s", self.log_path, exc)

    @property
    def has_errors(self) -> bool:
        return bool(self.entries)

    def clear(self) -> None:
        self.entries.clear()

    def summary(self) -> dict[str, Any]:
        """Totals plus every recorded event grouped under its context, in order."""

        by_context: dict[str, list[dict[str, Any]]] = defaultdict(list)
        for entry in self.entries:
            by_context[entry.context].append(asdict(entry))
        return {
            "totalErrors": len(self.entries),
            "errorsByContext": dict(by_context),
            "uniqueContexts": len(by_context),
        }

    def export_report(self, path: Path) -> Path:
        """Write the JSON error report to ``path`` and return it."""

        report = {
            "generatedAt": _utc_now(),
            "summary": self.summary(),
            "detailedErrors": [asdict(entry) for entry in self.entries],
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        with path.open("w", encoding="utf-8") as handle:
            json.dump(report, handle, indent=2, ensure_ascii=False, default=str)
        LOGGER.info("Error report written to %s", path)
        return path
