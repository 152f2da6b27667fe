"""Custom exception types for gmap-extractor."""

from __future__ import annotations

from typing import Optional


class ExtractorError(Exception):
    """Base class carrying optional query/index/url context."""

    default_message = "Extraction failed."

    def __init__(
        self,
        message: Optional[str] = None,
        *,
        query: Optional[str] = None,
        index: Optional[int] = None,
        url: Optional[str] = None,
    ) -> None:
        self.message = message or self.default_message
        self.query = query
        self.index = index
        self.url = url
        super().__init__(self.message)

    def __str__(self) -> str:
        context_parts: list[str] = []
        if self.query:
            context_parts.append(f"query={self.query}")
        if self.index is not None:
            context_parts.append(f"index={self.index}")
        if self.url:
            context_parts.append(f"url={self.url}")
        context = ", ".join(context_parts)
        return f"{self.message} ({context})" if context else self.message


class SearchNavigationError(ExtractorError):
    """Raised when the search page or its results feed cannot be reached."""

    default_message = "Failed to load search results."


class ResultActivationError(ExtractorError):
    """Raised when a result card cannot be clicked open."""

    default_message = "Failed to open result card."


class DetailExtractionError(ExtractorError):
    """Raised when a detail panel yields no record."""

    default_message = "Failed to extract business details."
