"""Shared fixtures for extraction engine tests."""

from collections.abc import Callable
from typing import Any

import pytest

from gleaner.common.exceptions import FetchError
from gleaner.common.lxml_page_element import LxmlPageElement, parse_document
from gleaner.data_types import Item, ScraperSpec


class FakeFetcher:
    """In-memory fetcher serving HTML keyed by URL.

    Unknown URLs fail with a 404 FetchError. Every requested URL is recorded
    in calls, in order.
    """

    def __init__(self, pages: dict[str, str]) -> None:
        self.pages = dict(pages)
        self.calls: list[str] = []
        self.closed = False

    def fetch(self, url: str) -> str:
        self.calls.append(url)
        if url not in self.pages:
            raise FetchError(url, "404 Not Found", status_code=404)
        return self.pages[url]

    def close(self) -> None:
        self.closed = True


@pytest.fixture
def fake_fetcher() -> Callable[[dict[str, str]], FakeFetcher]:
    """Factory for FakeFetcher instances."""
    return FakeFetcher


@pytest.fixture
def parse() -> Callable[..., LxmlPageElement]:
    """Parse markup into a document at a fixed default URL."""

    def _parse(
        markup: str, url: str = "https://example.com/events"
    ) -> LxmlPageElement:
        return parse_document(markup, url)

    return _parse


@pytest.fixture
def first_item(
    parse: Callable[..., LxmlPageElement],
) -> Callable[..., LxmlPageElement]:
    """Parse markup and return the first node matching a selector."""

    def _first_item(markup: str, selector: str = ".event") -> LxmlPageElement:
        return parse(markup).query_css(selector, "item", min_count=1)[0]

    return _first_item


@pytest.fixture
def make_scraper() -> Callable[..., ScraperSpec]:
    """Build a ScraperSpec from configuration-style keyword arguments."""

    def _make_scraper(**overrides: Any) -> ScraperSpec:
        raw: dict[str, Any] = {
            "name": "test-scraper",
            "url": "https://example.com/events",
            "item": ".event",
        }
        raw.update(overrides)
        return ScraperSpec.model_validate(raw)

    return _make_scraper


@pytest.fixture
def collect_results() -> tuple[Callable[[Item], None], list[Item]]:
    """A callback that appends to a list, and the list."""
    results: list[Item] = []
    return results.append, results
