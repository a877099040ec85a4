"""Item extraction: turn one item node into one record.

Fields on the main page are resolved first, in definition order, so that the
url fields subpage fields refer to are available. Subpage fields then read
their subpage through a SubpageCache that lives exactly as long as the item.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

from gleaner.common.exceptions import (
    ExtractionError,
    ScraperAssumptionException,
    TransientException,
)
from gleaner.common.lxml_page_element import LxmlPageElement, parse_document
from gleaner.common.page_element import PageElement
from gleaner.common.request_manager import Fetcher
from gleaner.data_types import FieldSpec, Item, ScraperSpec
from gleaner.extraction.fields import classify_field, extract_field
from gleaner.extraction.filters import filter_item, remove_hidden_fields


class SubpageCache:
    """Parsed subpages of a single item, keyed by URL.

    Create one per item and drop it afterwards: two items pointing at the
    same subpage fetch it twice.
    """

    def __init__(self, fetcher: Fetcher) -> None:
        self._fetcher = fetcher
        self._documents: dict[str, LxmlPageElement] = {}

    def __contains__(self, url: object) -> bool:
        return url in self._documents

    def __len__(self) -> int:
        return len(self._documents)

    def get(self, url: str) -> LxmlPageElement:
        """Return the parsed subpage, fetching it on first use.

        Raises:
            FetchError: If the subpage cannot be fetched.
            DocumentParseError: If the subpage cannot be parsed.
        """
        document = self._documents.get(url)
        if document is None:
            document = parse_document(self._fetcher.fetch(url), url)
            self._documents[url] = document
        return document


class ItemStatus(Enum):
    KEPT = "kept"
    EXCLUDED = "excluded"
    FILTERED = "filtered"
    FAILED = "failed"


@dataclass
class ItemOutcome:
    """The result of processing one item node.

    Attributes:
        status: What happened to the item.
        record: The record (final for KEPT, partial for FAILED).
        error: Why the item failed.
        field_name: The field being resolved when it failed, if any.
    """

    status: ItemStatus
    record: Item = field(default_factory=dict)
    error: Exception | None = None
    field_name: str | None = None

    @property
    def kept(self) -> bool:
        return self.status is ItemStatus.KEPT


def is_excluded(scraper: ScraperSpec, node: PageElement) -> bool:
    """Check whether a node matches or contains an excluded selector."""
    return any(
        node.matches_css(selector)
        or node.query_css(selector, "excluded item content")
        for selector in scraper.exclude_with_selector
    )


def _subpage_url(spec: FieldSpec, record: Item) -> str:
    value = record.get(spec.on_subpage)
    if not isinstance(value, str) or not value:
        raise ExtractionError(
            f"field {spec.name} is on the subpage of field "
            f"{spec.on_subpage}, which has no url value"
        )
    return value


def extract_item(
    scraper: ScraperSpec,
    node: PageElement,
    page_url: str,
    fetcher: Fetcher,
) -> ItemOutcome:
    """Resolve every field of one item, then filter it.

    Args:
        scraper: The scraper definition.
        node: The item node.
        page_url: URL of the page the item was found on.
        fetcher: Used for subpage fields.

    Returns:
        An ItemOutcome. Extraction and subpage I/O errors are reported as
        FAILED outcomes rather than raised.

    Raises:
        FilterConfigurationError: If a filter regex is invalid.
    """
    record: Item = {}
    current: FieldSpec | None = None
    try:
        if is_excluded(scraper, node):
            return ItemOutcome(ItemStatus.EXCLUDED)

        for current in scraper.fields:
            if current.is_static or not current.on_subpage:
                record[current.name] = extract_field(
                    classify_field(current), node, page_url
                )

        subpages = SubpageCache(fetcher)
        for current in scraper.fields:
            if current.is_static or not current.on_subpage:
                continue
            url = _subpage_url(current, record)
            record[current.name] = extract_field(
                classify_field(current), subpages.get(url), url
            )
    except (ScraperAssumptionException, TransientException) as e:
        return ItemOutcome(
            ItemStatus.FAILED,
            record=record,
            error=e,
            field_name=current.name if current is not None else None,
        )

    if not filter_item(scraper.filters, record):
        return ItemOutcome(ItemStatus.FILTERED, record=record)
    return ItemOutcome(
        ItemStatus.KEPT, record=remove_hidden_fields(scraper, record)
    )
