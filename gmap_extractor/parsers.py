"""Pure text parsers for fields read out of a business detail panel."""

from __future__ import annotations

import re

_RATING_PATTERN = re.compile(r"\d+(?:\.\d+)?")
_REVIEW_PATTERN = re.compile(r"\d+(?:,\d+)*")
_PRICE_PATTERN = re.compile(r"\$+|€+|£+|¥+|₹+|₩+")
_PLUS_CODE_PATTERN = re.compile(r"[A-Z0-9]{4}\+[A-Z0-9]{2,}")
_WHITESPACE = re.compile(r"\s+")

MAX_RATING = 5.0


def clean_text(value: str | None) -> str | None:
    """Collapse whitespace and return ``None`` for empty text."""

    if value is None:
        return None
    cleaned = _WHITESPACE.sub(" ", value).strip()
    return cleaned or None


def parse_rating(text: str | None) -> float | None:
    """Return the first decimal number in ``text`` when it is a valid 0-5 rating.

    >>> parse_rating("4.5 stars")
    4.5
    """

    if not text:
        return None
    match = _RATING_PATTERN.search(text)
    if not match:
        return None
    value = float(match.group(0))
    if value < 0 or value > MAX_RATING:
        return None
    return value


def parse_review_count(text: str | None) -> int | None:
    """Return the first integer in ``text`` with thousands separators removed."""

    if not text:
        return None
    match = _REVIEW_PATTERN.search(text)
    if not match:
        return None
    return int(match.group(0).replace(",", ""))


def parse_price_level(text: str | None) -> str | None:
    """Return the first run of a single repeated currency symbol, e.g. ``$$``."""

    if not text:
        return None
    match = _PRICE_PATTERN.search(text)
    return match.group(0) if match else None


def normalize_hours(text: str | None) -> str | None:
    return clean_text(text)


def find_plus_code(text: str | None) -> str | None:
    """Return the first Open Location Code fragment found in ``text``."""

    if not text:
        return None
    match = _PLUS_CODE_PATTERN.search(text)
    return match.group(0) if match else None
