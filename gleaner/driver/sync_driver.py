"""Synchronous crawl driver.

The driver walks a scraper's pages in order: fetch the page, parse it,
extract every item, then follow the paginator to the next page. It stops when
no next page is found or when the page limit is reached.

Failures are scoped as narrowly as possible:

- An extraction error or a subpage I/O error skips one item.
- A fetch or parse error on a listing page ends the run; items collected so
  far are kept and returned together with the error.
- A broken filter regex is a broken definition and propagates.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Generator
from dataclasses import dataclass, field
from typing import Any

from gleaner.common.exceptions import TransientException
from gleaner.common.lxml_page_element import LxmlPageElement, parse_document
from gleaner.common.request_manager import Fetcher, make_fetcher
from gleaner.data_types import GlobalConfig, Item, ScraperSpec
from gleaner.extraction.items import ItemOutcome, ItemStatus, extract_item
from gleaner.extraction.urls import get_url_string

logger = logging.getLogger(__name__)


@dataclass
class CrawlResult:
    """Everything a finished run produced.

    Attributes:
        items: Kept items in document order.
        skipped: Outcomes of items that failed extraction.
        pages: Number of listing pages fetched.
        error: The page-level error that ended the run early, if any.
    """

    items: list[Item] = field(default_factory=list)
    skipped: list[ItemOutcome] = field(default_factory=list)
    pages: int = 0
    error: TransientException | None = None

    @property
    def complete(self) -> bool:
        return self.error is None


class SyncDriver:
    """Synchronous driver for running one scraper definition.

    Example usage::

        driver = SyncDriver(scraper_spec, on_data=print)
        result = driver.run()
        if result.error:
            print(f"stopped early: {result.error}")

    Items can also be consumed lazily with iter_items(), in which case a
    page-level error is raised once the items before it have been yielded.
    """

    def __init__(
        self,
        scraper: ScraperSpec,
        fetcher: Fetcher | None = None,
        global_config: GlobalConfig | None = None,
        on_data: Callable[[Item], None] | None = None,
        on_item_error: Callable[[ItemOutcome], None] | None = None,
        on_run_start: Callable[[str], None] | None = None,
        on_run_complete: Callable[[str, str, Exception | None], None]
        | None = None,
        stop_event: threading.Event | None = None,
    ) -> None:
        """Initialize the driver.

        Args:
            scraper: The scraper definition to run.
            fetcher: Fetcher for listing pages and subpages. If None, one is
                created from the definition (static or rendering) and closed
                when the run ends.
            global_config: Global settings, used when creating a fetcher.
            on_data: Optional callback invoked for each kept item.
            on_item_error: Optional callback invoked for each item that
                failed extraction, after it has been logged.
            on_run_start: Optional callback invoked with the scraper name.
            on_run_complete: Optional callback invoked with the scraper name,
                a status ("completed", "partial" or "error") and the error.
            stop_event: Optional threading.Event for graceful shutdown. When
                set, the driver stops before fetching the next page.
        """
        self.scraper = scraper
        if fetcher is not None:
            self.fetcher = fetcher
            self._owns_fetcher = False
        else:
            self.fetcher = make_fetcher(scraper, global_config)
            self._owns_fetcher = True

        self.on_data = on_data
        self.on_item_error = on_item_error
        self.on_run_start = on_run_start
        self.on_run_complete = on_run_complete
        self.stop_event = stop_event
        self.pages_fetched = 0

    def close(self) -> None:
        """Close the fetcher if the driver created it."""
        if self._owns_fetcher:
            self.fetcher.close()

    def __enter__(self) -> SyncDriver:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def fetch_page(self, url: str) -> LxmlPageElement:
        """Fetch and parse one listing page.

        Raises:
            FetchError: If the page cannot be fetched.
            DocumentParseError: If the page cannot be parsed.
        """
        return parse_document(self.fetcher.fetch(url), url)

    def next_page_url(self, document: LxmlPageElement, page_url: str) -> str:
        """Return the URL of the page after document, or "" if there is none."""
        return get_url_string(
            self.scraper.paginator.location, document, page_url
        )

    def _iter_outcomes(self) -> Generator[ItemOutcome, None, None]:
        max_pages = self.scraper.paginator.max_pages
        page_url = self.scraper.url
        self.pages_fetched = 0

        while page_url:
            if self.stop_event and self.stop_event.is_set():
                logger.info(f"{self.scraper.name}: stop requested")
                break

            document = self.fetch_page(page_url)
            self.pages_fetched += 1

            for node in document.query_css(self.scraper.item, "items"):
                outcome = extract_item(
                    self.scraper, node, page_url, self.fetcher
                )
                self.handle_outcome(outcome)
                yield outcome

            next_url = self.next_page_url(document, page_url)
            if not next_url:
                break
            if max_pages and self.pages_fetched >= max_pages:
                break
            page_url = next_url

    def handle_outcome(self, outcome: ItemOutcome) -> None:
        match outcome.status:
            case ItemStatus.KEPT:
                if self.on_data:
                    self.on_data(outcome.record)
            case ItemStatus.FAILED:
                logger.error(
                    f"{self.scraper.name} ERROR: error while parsing field "
                    f"{outcome.field_name}: {outcome.error}. "
                    f"Skipping item {outcome.record}.",
                    extra={
                        "scraper": self.scraper.name,
                        "field": outcome.field_name,
                        "partial_item": outcome.record,
                    },
                )
                if self.on_item_error:
                    self.on_item_error(outcome)
            case ItemStatus.EXCLUDED | ItemStatus.FILTERED:
                pass

    def iter_items(self) -> Generator[Item, None, None]:
        """Lazily yield kept items across all pages.

        Raises:
            TransientException: If a listing page cannot be fetched or
                parsed, after the items of earlier pages were yielded.
        """
        for outcome in self._iter_outcomes():
            if outcome.kept:
                yield outcome.record

    def run(self) -> CrawlResult:
        """Run the scraper to completion.

        Returns:
            A CrawlResult. If a listing page failed, result.error holds the
            error and result.items the items extracted before it.
        """
        scraper_name = self.scraper.name
        if self.on_run_start:
            self.on_run_start(scraper_name)

        result = CrawlResult()
        status = "completed"
        error: Exception | None = None

        try:
            for outcome in self._iter_outcomes():
                if outcome.kept:
                    result.items.append(outcome.record)
                elif outcome.status is ItemStatus.FAILED:
                    result.skipped.append(outcome)
        except TransientException as e:
            logger.error(
                f"{scraper_name} ERROR: {e}. Returning "
                f"{len(result.items)} items collected so far.",
                extra={"scraper": scraper_name},
            )
            result.error = e
            status = "partial"
            error = e
        except Exception as e:
            status = "error"
            error = e
            raise
        finally:
            result.pages = self.pages_fetched
            self.close()
            if self.on_run_complete:
                self.on_run_complete(scraper_name, status, error)

        logger.info(
            f"{scraper_name}: {len(result.items)} items from "
            f"{result.pages} pages, {len(result.skipped)} skipped"
        )
        return result
