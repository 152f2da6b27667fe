"""Turn the currently open detail panel into a :class:`BusinessRecord`."""

from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Mapping

from gmap_extractor.config import ExtractorConfig
from gmap_extractor.logging_config import get_logger
from gmap_extractor.models import BusinessRecord
from gmap_extractor.selectors import FIELD_STRATEGIES, FieldPlan
from gmap_extractor.strategies import first_match

LOGGER = get_logger(__name__)


class BusinessDataExtractor:
    """Reads every field of one detail panel independently.

    A field whose strategies all come up empty is left as ``None``; it never
    prevents the other fields from being read.
    """

    def __init__(
        self,
        page: Any,
        config: ExtractorConfig,
        *,
        plans: Mapping[str, FieldPlan] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.page = page
        self.config = config
        self.plans = dict(plans if plans is not None else FIELD_STRATEGIES)
        self._sleep = sleep

    async def _extract_field(self, field_name: str, plan: FieldPlan) -> Any:
        try:
            return await first_match(
                self.page,
                plan.strategies,
                plan.parser,
                timeout=self.config.timeouts.element_ms,
            )
        except Exception as exc:
            LOGGER.warning("Field %s could not be read: %s", field_name, exc, exc_info=True)
            return None

    async def extract_one(self, expected_url: str | None = None, index: int | None = None) -> BusinessRecord | None:
        """Extract the open detail panel; ``None`` only when the step itself fails."""

        try:
            await self._sleep(self.config.timeouts.detail_settle_ms / 1000)
            values: dict[str, Any] = {}
            for field_name, plan in self.plans.items():
                values[field_name] = await self._extract_field(field_name, plan)
            values["source_url"] = expected_url or self.page.url
            record = BusinessRecord(**values)
        except Exception as exc:
            LOGGER.error("Error extracting business data at index %s: %s", index, exc)
            return None

        LOGGER.info("Extracted: %s", record.name or "unnamed business")
        return record
