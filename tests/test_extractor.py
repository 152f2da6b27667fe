import asyncio
from typing import Any, Callable

from playwright.async_api import Error as PlaywrightError
import pytest

from gmap_extractor import accessors, selectors
from gmap_extractor.config import ExtractorConfig
from gmap_extractor.extractor import BusinessDataExtractor
from gmap_extractor.models import NOT_AVAILABLE
from gmap_extractor.parsers import parse_rating
from gmap_extractor.strategies import SelectorAttribute, SelectorText, first_match


class FakeElement:
    def __init__(self, text: str = "", **attrs: str) -> None:
        self.text = text
        self.attrs = {key.replace("_", "-"): value for key, value in attrs.items()}

    async def inner_text(self, timeout: int | None = None) -> str:
        return self.text

    async def get_attribute(self, name: str, timeout: int | None = None) -> str | None:
        return self.attrs.get(name)


class BrokenElement(FakeElement):
    async def inner_text(self, timeout: int | None = None) -> str:
        raise PlaywrightError("Element is not attached to the DOM")


class BuggyElement(FakeElement):
    async def inner_text(self, timeout: int | None = None) -> str:
        raise RuntimeError("unexpected")


class FakeLocator:
    def __init__(self, elements: list[FakeElement]) -> None:
        self.elements = elements

    async def count(self) -> int:
        return len(self.elements)

    @property
    def first(self) -> FakeElement:
        return self.elements[0]


class FakePage:
    def __init__(
        self,
        elements: dict[str, list[FakeElement]] | None = None,
        *,
        scan: Callable[[dict[str, Any]], Any] | None = None,
        body: str = "",
        url: str = "https://www.google.com/maps/place/current",
    ) -> None:
        self.elements = elements or {}
        self.scan = scan or (lambda filters: None)
        self.body = body
        self.url = url
        self.evaluations: list[Any] = []

    def locator(self, selector: str) -> FakeLocator:
        return FakeLocator(self.elements.get(selector, []))

    async def evaluate(self, script: str, arg: Any = None) -> Any:
        self.evaluations.append(arg)
        if script == accessors.BODY_TEXT_SCRIPT:
            return self.body
        if script == accessors.SCAN_SCRIPT:
            return self.scan(arg)
        return None


async def _no_sleep(_: float) -> None:
    return None


def _extract(page: FakePage, expected_url: str | None = None):
    extractor = BusinessDataExtractor(page, ExtractorConfig(), sleep=_no_sleep)
    return asyncio.run(extractor.extract_one(expected_url, 0))


def test_extracts_fields_from_primary_selectors() -> None:
    page = FakePage(
        {
            "h1.DUwDvf": [FakeElement("  Blue Bottle Coffee ")],
            'button[data-item-id="address"]': [FakeElement("66 Mint St, San Francisco")],
            'button[data-item-id*="phone"]': [FakeElement("(510) 653-3394")],
            'a[data-item-id="authority"]': [FakeElement("bluebottle", href="https://bluebottlecoffee.com/")],
            "div.F7nice span[aria-label]": [FakeElement("4.5", aria_label="4.5 stars")],
            'div.F7nice span[aria-label*="review"]': [FakeElement("(2,345)", aria_label="2,345 reviews")],
            'button[jsaction*="category"]': [FakeElement("Coffee shop")],
            'button[data-item-id="oh"]': [FakeElement("Open", aria_label="Open  ⋅ Closes 6 PM")],
            'span[aria-label*="Price"]': [FakeElement("$$", aria_label="Price: $$")],
            'button[data-item-id="oloc"]': [FakeElement("QHHR+2X San Francisco")],
        }
    )

    record = _extract(page, "https://www.google.com/maps/place/blue-bottle")

    assert record is not None
    assert record.name == "Blue Bottle Coffee"
    assert record.address == "66 Mint St, San Francisco"
    assert record.phone == "(510) 653-3394"
    assert record.website == "https://bluebottlecoffee.com/"
    assert record.rating == 4.5
    assert record.review_count == 2345
    assert record.category == "Coffee shop"
    assert record.hours == "Open ⋅ Closes 6 PM"
    assert record.price_level == "$$"
    assert record.plus_code == "QHHR+2X"
    assert record.source_url == "https://www.google.com/maps/place/blue-bottle"


def test_empty_panel_yields_record_with_sentinels_on_export() -> None:
    page = FakePage()

    record = _extract(page)

    assert record is not None
    assert record.name is None
    assert record.rating is None
    assert record.source_url == "https://www.google.com/maps/place/current"
    exported = record.to_export_dict()
    assert exported["name"] == NOT_AVAILABLE
    assert exported["reviewCount"] == NOT_AVAILABLE
    assert exported["sourceUrl"] == "https://www.google.com/maps/place/current"


def test_fallback_strategies_used_when_primary_missing() -> None:
    def scan(filters: dict[str, Any]) -> Any:
        matchers = [tuple(matcher) for matcher in filters["matchers"]]
        if ("aria-label", "contains", "Phone") in matchers:
            return "+1 206-555-0100"
        if filters["textPattern"]:
            return "€€"
        return None

    page = FakePage(
        {
            "h1": [FakeElement("Fallback Diner")],
            'div[role="img"][aria-label*="stars"]': [FakeElement(aria_label="3.9 stars")],
        },
        scan=scan,
        body="Menu\nCF7P+Q4 Amsterdam\nDirections",
    )

    record = _extract(page)

    assert record.name == "Fallback Diner"
    assert record.phone == "+1 206-555-0100"
    assert record.rating == 3.9
    assert record.price_level == "€€"
    assert record.plus_code == "CF7P+Q4"


def test_failing_field_does_not_abort_other_fields() -> None:
    page = FakePage(
        {
            "h1.DUwDvf": [BrokenElement()],
            'button[data-item-id*="phone"]': [FakeElement("555-0100")],
        }
    )

    record = _extract(page)

    assert record is not None
    assert record.name is None
    assert record.phone == "555-0100"


def test_out_of_range_rating_is_treated_as_missing() -> None:
    page = FakePage({"div.F7nice span[aria-label]": [FakeElement(aria_label="42 photos")]})

    record = _extract(page)

    assert record.rating is None


def test_outer_failure_returns_none() -> None:
    async def broken_sleep(_: float) -> None:
        raise RuntimeError("page crashed")

    extractor = BusinessDataExtractor(FakePage(), ExtractorConfig(), sleep=broken_sleep)

    assert asyncio.run(extractor.extract_one(None, 3)) is None


def test_first_match_skips_unparseable_values_in_order() -> None:
    page = FakePage(
        {
            "span.primary": [FakeElement("Write a review")],
            "span.secondary": [FakeElement(aria_label="4.2 stars")],
            "span.tertiary": [FakeElement(aria_label="1.0 stars")],
        }
    )
    strategies = (
        SelectorText("span.primary"),
        SelectorAttribute("span.secondary", "aria-label"),
        SelectorAttribute("span.tertiary", "aria-label"),
    )

    assert asyncio.run(first_match(page, strategies, parse_rating)) == 4.2


def test_single_review_is_counted() -> None:
    page = FakePage({selectors.REVIEW_COUNT: [FakeElement("(1)", aria_label="1 review")]})

    record = _extract(page)

    assert record.review_count == 1


def test_text_or_none_returns_none_on_playwright_error() -> None:
    page = FakePage({"h1.DUwDvf": [BrokenElement()]})

    assert asyncio.run(accessors.text_or_none(page, "h1.DUwDvf")) is None


def test_accessors_let_unexpected_errors_propagate() -> None:
    page = FakePage({"h1.DUwDvf": [BuggyElement()]})

    with pytest.raises(RuntimeError, match="unexpected"):
        asyncio.run(accessors.text_or_none(page, "h1.DUwDvf"))


def test_unexpected_field_error_is_contained_to_that_field() -> None:
    page = FakePage(
        {
            "h1.DUwDvf": [BuggyElement()],
            'button[data-item-id*="phone"]': [FakeElement("555-0100")],
        }
    )

    record = _extract(page)

    assert record is not None
    assert record.name is None
    assert record.phone == "555-0100"
