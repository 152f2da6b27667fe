"""Ordered, data-driven lookup strategies for detail-panel fields."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Protocol, Sequence, TypeVar

from gmap_extractor import accessors

T = TypeVar("T")


class Strategy(Protocol):
    async def read(self, page: Any, *, timeout: int) -> str | None: ...


@dataclass(frozen=True)
class SelectorText:
    """Inner text of the first element matching ``selector``."""

    selector: str

    async def read(self, page: Any, *, timeout: int) -> str | None:
        return await accessors.text_or_none(page, self.selector, timeout=timeout)


@dataclass(frozen=True)
class SelectorAttribute:
    """An attribute of the first element matching ``selector``."""

    selector: str
    attribute: str

    async def read(self, page: Any, *, timeout: int) -> str | None:
        return await accessors.attribute_or_none(page, self.selector, self.attribute, timeout=timeout)


@dataclass(frozen=True)
class ElementScan:
    """Walk every ``tag`` element in document order and read the first match.

    ``matchers`` are ``(source, op, needle)`` triples where ``source`` is an
    attribute name or ``"text"`` and ``op`` is ``"equals"`` or ``"contains"``;
    an element matches when any of them hits. ``read`` is ``"text"``,
    ``"href"`` or an attribute name.
    """

    tag: str
    matchers: tuple[tuple[str, str, str], ...] = ()
    read_from: str = "text"
    text_pattern: str | None = None
    max_length: int | None = None
    exclude_text: str | None = None
    require_class: bool = False

    def as_script_arg(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "matchers": [list(matcher) for matcher in self.matchers],
            "read": self.read_from,
            "textPattern": self.text_pattern,
            "maxLength": self.max_length,
            "excludeText": self.exclude_text,
            "requireClass": self.require_class,
        }

    async def read(self, page: Any, *, timeout: int) -> str | None:
        return await accessors.scan_or_none(page, self.as_script_arg())


@dataclass(frozen=True)
class BodyText:
    """The whole rendered page text; pair it with a pattern-matching parser."""

    async def read(self, page: Any, *, timeout: int) -> str | None:
        return await accessors.body_text_or_none(page)


async def first_match(
    page: Any,
    strategies: Sequence[Strategy],
    parser: Callable[[str | None], T | None],
    *,
    timeout: int = 3000,
) -> T | None:
    """Return the first parsed, non-empty value produced by ``strategies``.

    Strategies run in order and later ones only run when earlier ones yield
    nothing usable.
    """

    for strategy in strategies:
        raw = await strategy.read(page, timeout=timeout)
        value = parser(raw)
        if value is not None:
            return value
    return None
