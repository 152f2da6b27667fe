"""Centralised selectors for the Google Maps search feed and detail panel."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable

from gmap_extractor import parsers
from gmap_extractor.strategies import (
    BodyText,
    ElementScan,
    SelectorAttribute,
    SelectorText,
    Strategy,
)

SEARCH_URL = "https://www.google.com/maps/search/{query}"

# ==== SEARCH FEED ====
RESULTS_FEED = 'div[role="feed"]'
RESULT_CARD = 'div[role="article"]'
RESULT_LINK = 'a[href*="/maps/place/"]'

# ==== DETAIL PANEL ====
BUSINESS_NAME = "h1.DUwDvf"
BUSINESS_NAME_ALT = "h1"
ADDRESS = 'button[data-item-id="address"]'
PHONE = 'button[data-item-id*="phone"]'
WEBSITE = 'a[data-item-id="authority"]'
RATING = "div.F7nice span[aria-label]"
RATING_ALT = 'div[role="img"][aria-label*="stars"]'
REVIEW_COUNT = 'div.F7nice span[aria-label*="review"]'
CATEGORY = 'button[jsaction*="category"]'
HOURS = 'button[data-item-id="oh"]'
PRICE_LEVEL = 'span[aria-label*="Price"]'
PLUS_CODE = 'button[data-item-id="oloc"]'


@dataclass(frozen=True)
class FieldPlan:
    strategies: tuple[Strategy, ...]
    parser: Callable[[str | None], Any]


FIELD_STRATEGIES: dict[str, FieldPlan] = {
    "name": FieldPlan(
        (SelectorText(BUSINESS_NAME), SelectorText(BUSINESS_NAME_ALT)),
        parsers.clean_text,
    ),
    "address": FieldPlan(
        (
            SelectorText(ADDRESS),
            ElementScan(
                "button",
                matchers=(("data-item-id", "equals", "address"), ("aria-label", "contains", "Address")),
            ),
        ),
        parsers.clean_text,
    ),
    "phone": FieldPlan(
        (
            SelectorText(PHONE),
            ElementScan(
                "button",
                matchers=(("data-item-id", "contains", "phone"), ("aria-label", "contains", "Phone")),
            ),
        ),
        parsers.clean_text,
    ),
    "website": FieldPlan(
        (
            SelectorAttribute(WEBSITE, "href"),
            ElementScan(
                "a",
                matchers=(("data-item-id", "equals", "authority"), ("aria-label", "contains", "Website")),
                read_from="href",
            ),
        ),
        parsers.clean_text,
    ),
    "rating": FieldPlan(
        (SelectorAttribute(RATING, "aria-label"), SelectorAttribute(RATING_ALT, "aria-label")),
        parsers.parse_rating,
    ),
    "review_count": FieldPlan(
        (
            SelectorAttribute(REVIEW_COUNT, "aria-label"),
            ElementScan(
                "span",
                matchers=(("text", "contains", "review"), ("aria-label", "contains", "review")),
            ),
        ),
        parsers.parse_review_count,
    ),
    "category": FieldPlan(
        (
            SelectorText(CATEGORY),
            ElementScan("span", max_length=50, exclude_text="·", require_class=True),
        ),
        parsers.clean_text,
    ),
    "hours": FieldPlan(
        (
            SelectorAttribute(HOURS, "aria-label"),
            SelectorText(HOURS),
            ElementScan("[aria-label]", matchers=(("aria-label", "contains", "Hours"),), read_from="aria-label"),
        ),
        parsers.normalize_hours,
    ),
    "price_level": FieldPlan(
        (
            SelectorAttribute(PRICE_LEVEL, "aria-label"),
            ElementScan("span", text_pattern=r"^(\$+|€+|£+|¥+|₹+|₩+)$"),
        ),
        parsers.parse_price_level,
    ),
    "plus_code": FieldPlan(
        (SelectorText(PLUS_CODE), BodyText()),
        parsers.find_plus_code,
    ),
}
