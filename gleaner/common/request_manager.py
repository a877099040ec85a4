"""Fetchers for retrieving page bodies.

This module provides the Fetcher protocol and its two implementations:

- StaticFetcher retrieves pages over HTTP with httpx.
- DynamicFetcher renders pages in a headless Playwright browser and returns
  the serialized DOM, for sites that build their content with JavaScript.

Both return the page body as text and raise FetchError on failure, so the
crawl loop never needs to know which one it is talking to.
"""

from __future__ import annotations

import logging
import ssl
from typing import Any, Protocol

import httpx
from playwright.sync_api import (
    Browser,
    Page,
    Playwright,
    sync_playwright,
)
from playwright.sync_api import (
    Error as PlaywrightError,
)

from gleaner.common.exceptions import FetchError
from gleaner.data_types import GlobalConfig, ScraperSpec

logger = logging.getLogger(__name__)


class Fetcher(Protocol):
    """Retrieve the body of a page."""

    def fetch(self, url: str) -> str:
        """Fetch a page.

        Args:
            url: Absolute URL of the page.

        Returns:
            The page body as text.

        Raises:
            FetchError: If the page cannot be retrieved.
        """
        ...

    def close(self) -> None: ...


class StaticFetcher:
    """Fetches pages with a plain HTTP GET.

    Example::

        with StaticFetcher(user_agent="gleaner/0.1") as fetcher:
            body = fetcher.fetch("https://example.com/events")
    """

    def __init__(
        self,
        user_agent: str = "",
        timeout: float | None = 30.0,
        ssl_context: ssl.SSLContext | None = None,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the fetcher.

        Args:
            user_agent: Value of the User-Agent header; empty keeps httpx's.
            timeout: Request timeout in seconds. None means no timeout.
            ssl_context: Optional SSL context for HTTPS connections.
            transport: Optional httpx transport, mainly for tests.
        """
        headers = {"User-Agent": user_agent} if user_agent else None
        self.timeout = timeout
        self._client = httpx.Client(
            headers=headers,
            timeout=timeout,
            verify=ssl_context if ssl_context is not None else True,
            follow_redirects=True,
            transport=transport,
        )

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        self._client.close()

    def __enter__(self) -> StaticFetcher:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()

    def fetch(self, url: str) -> str:
        logger.debug(f"fetching {url}")
        try:
            response = self._client.get(url)
        except httpx.TimeoutException as e:
            raise FetchError(url, f"timed out after {self.timeout}s") from e
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise FetchError(url, str(e)) from e

        if not response.is_success:
            raise FetchError(
                url,
                f"status code error: {response.status_code} "
                f"{response.reason_phrase}",
                status_code=response.status_code,
            )
        return response.text


class DynamicFetcher:
    """Fetches pages through a headless browser.

    The browser is started on the first fetch and reused until close().
    Playwright's sync API is bound to the thread that started it, so each
    crawl thread needs its own DynamicFetcher.

    Attributes:
        user_agent: User agent for the browser context.
        wait_ms: Extra time to let scripts settle after the load event.
        timeout_ms: Navigation timeout.
        browser_type: chromium, firefox or webkit.
    """

    def __init__(
        self,
        user_agent: str = "",
        wait_ms: int = 2000,
        timeout_ms: int = 30000,
        browser_type: str = "chromium",
    ) -> None:
        self.user_agent = user_agent
        self.wait_ms = wait_ms
        self.timeout_ms = timeout_ms
        self.browser_type = browser_type
        self._playwright: Playwright | None = None
        self._browser: Browser | None = None
        self._page: Page | None = None

    def _ensure_page(self) -> Page:
        if self._page is None:
            self._playwright = sync_playwright().start()
            launcher = getattr(self._playwright, self.browser_type)
            self._browser = launcher.launch(headless=True)
            context = self._browser.new_context(
                user_agent=self.user_agent or None
            )
            self._page = context.new_page()
        return self._page

    def fetch(self, url: str) -> str:
        logger.debug(f"rendering {url}")
        try:
            page = self._ensure_page()
            page.goto(url, wait_until="load", timeout=self.timeout_ms)
            if self.wait_ms:
                page.wait_for_timeout(self.wait_ms)
            return page.content()
        except PlaywrightError as e:
            raise FetchError(url, e.message) from e

    def close(self) -> None:
        """Shut the browser down."""
        if self._browser is not None:
            self._browser.close()
            self._browser = None
        if self._playwright is not None:
            self._playwright.stop()
            self._playwright = None
        self._page = None

    def __enter__(self) -> DynamicFetcher:
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def make_fetcher(
    scraper: ScraperSpec, global_config: GlobalConfig | None = None
) -> Fetcher:
    """Pick the fetcher a scraper asks for."""
    user_agent = global_config.user_agent if global_config else ""
    if scraper.render_js:
        return DynamicFetcher(user_agent=user_agent)
    return StaticFetcher(user_agent=user_agent)
