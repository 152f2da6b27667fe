"""Logging configuration helpers for the gmap-extractor application.

Loggers log to the console as soon as they are created. The rotating log file
is only attached once :func:`enable_file_logging` is called (the CLI does this
at startup), so importing the package never touches the filesystem.
"""

from __future__ import annotations

import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path

PACKAGE_LOGGER = "gmap_extractor"
LOG_FILE_NAME = "gmap_extractor.log"
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
DEFAULT_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()

_file_handler: RotatingFileHandler | None = None


def _package_loggers() -> list[logging.Logger]:
    loggers = []
    for name, candidate in logging.Logger.manager.loggerDict.items():
        if not isinstance(candidate, logging.Logger):
            continue
        if name == PACKAGE_LOGGER or name.startswith(f"{PACKAGE_LOGGER}."):
            loggers.append(candidate)
    return loggers


def get_logger(name: str) -> logging.Logger:
    """Return a logger with a console handler, plus the log file once enabled."""

    logger = logging.getLogger(name)
    logger.setLevel(DEFAULT_LEVEL)
    logger.propagate = False

    if not logger.handlers:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT))
        console_handler.setLevel(DEFAULT_LEVEL)
        logger.addHandler(console_handler)

    if _file_handler is not None and _file_handler not in logger.handlers:
        logger.addHandler(_file_handler)

    return logger


def enable_file_logging(log_dir: str | Path | None = None) -> Path:
    """Attach one shared rotating file handler to every package logger.

    ``log_dir`` defaults to ``GMAP_LOG_DIR`` or ``logs``. Returns the log file path.
    """

    global _file_handler

    directory = Path(log_dir or os.getenv("GMAP_LOG_DIR", "logs"))
    log_file = directory / LOG_FILE_NAME
    if _file_handler is not None and Path(_file_handler.baseFilename) == log_file.resolve():
        return log_file

    disable_file_logging()
    directory.mkdir(parents=True, exist_ok=True)
    handler = RotatingFileHandler(
        log_file,
        maxBytes=1_000_000,
        backupCount=3,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    handler.setLevel(DEFAULT_LEVEL)
    _file_handler = handler

    for logger in _package_loggers():
        logger.addHandler(handler)
    return log_file


def disable_file_logging() -> None:
    """Detach and close the shared file handler, if any."""

    global _file_handler

    if _file_handler is None:
        return
    for logger in _package_loggers():
        logger.removeHandler(_file_handler)
    _file_handler.close()
    _file_handler = None


def set_level(level: str) -> None:
    """Apply ``level`` to every logger already created under this package."""

    resolved = level.upper()
    for logger in _package_loggers():
        logger.setLevel(resolved)
        for handler in logger.handlers:
            handler.setLevel(resolved)
