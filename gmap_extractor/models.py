"""Record types produced by an extraction run."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

NOT_AVAILABLE = "N/A"

# Exported column order; CSV_HEADER labels line up with these field names.
EXPORT_FIELDS: tuple[str, ...] = (
    "name",
    "category",
    "address",
    "phone",
    "website",
    "rating",
    "review_count",
    "price_level",
    "hours",
    "plus_code",
    "source_url",
)

CSV_HEADER: tuple[str, ...] = (
    "Business Name",
    "Category",
    "Address",
    "Phone",
    "Website",
    "Rating",
    "Review Count",
    "Price Level",
    "Business Hours",
    "Plus Code",
    "Google Maps URL",
)


class BusinessRecord(BaseModel):
    """One business as read from its detail panel. Missing fields are ``None``."""

    model_config = ConfigDict(
        frozen=True,
        extra="ignore",
        alias_generator=to_camel,
        populate_by_name=True,
    )

    name: str | None = None
    address: str | None = None
    phone: str | None = None
    website: str | None = None
    rating: float | None = Field(default=None, ge=0, le=5)
    review_count: int | None = Field(default=None, ge=0)
    category: str | None = None
    hours: str | None = None
    price_level: str | None = None
    plus_code: str | None = None
    source_url: str | None = None

    @field_validator(
        "name",
        "address",
        "phone",
        "website",
        "category",
        "hours",
        "price_level",
        "plus_code",
        "source_url",
        mode="before",
    )
    @classmethod
    def _blank_to_none(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip()
            if not value or value == NOT_AVAILABLE:
                return None
        return value

    def to_export_dict(self) -> dict[str, Any]:
        """Return camelCase keys with ``N/A`` in place of missing values."""

        data = self.model_dump(by_alias=True)
        return {key: (NOT_AVAILABLE if value is None else value) for key, value in data.items()}

    def to_csv_row(self) -> list[str]:
        row: list[str] = []
        for name in EXPORT_FIELDS:
            value = getattr(self, name)
            row.append(NOT_AVAILABLE if value is None else str(value))
        return row


@dataclass(frozen=True)
class ExtractionError:
    """A result index that could not be extracted after retries."""

    index: int
    reason: str


@dataclass
class RunResult:
    query: str
    total_found: int = 0
    records: list[BusinessRecord] = field(default_factory=list)
    errors: list[ExtractionError] = field(default_factory=list)

    @property
    def attempted(self) -> int:
        return len(self.records) + len(self.errors)
