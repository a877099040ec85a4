"""LxmlPageElement implementation of the PageElement protocol.

This module wraps lxml.html elements and translates CSS selectors with
cssselect. It is the standard document implementation used by the engine.

Selectors are matched against descendants only, never against the element a
query starts from; use matches_css() to test the element itself.
"""

from __future__ import annotations

import threading
from functools import lru_cache

from cssselect import HTMLTranslator, SelectorError
from lxml import etree, html

from gleaner.common.exceptions import (
    DocumentParseError,
    HTMLStructuralAssumptionException,
)
from gleaner.common.page_element import ChildNode

_translator = HTMLTranslator()

_EMPTY_DOCUMENT = "<html><body></body></html>"

# lxml parsers must not be shared between threads.
_local = threading.local()


def _parser() -> html.HTMLParser:
    parser = getattr(_local, "parser", None)
    if parser is None:
        # Fetchers hand over decoded text; it is re-encoded as UTF-8 and the
        # parser is told so explicitly.
        parser = _local.parser = html.HTMLParser(encoding="utf-8")
    return parser


@lru_cache(maxsize=512)
def _to_xpath(selector: str, prefix: str) -> str:
    return _translator.css_to_xpath(selector, prefix=prefix)


def parse_document(markup: str, url: str = "") -> LxmlPageElement:
    """Parse raw markup into a queryable document.

    Args:
        markup: The HTML body of a page.
        url: The URL the body was fetched from.

    Returns:
        An LxmlPageElement for the document root.

    Raises:
        DocumentParseError: If lxml cannot build a tree from the markup.
    """
    if not markup.strip():
        # an empty body is an empty page, not malformed markup
        markup = _EMPTY_DOCUMENT
    try:
        root = html.document_fromstring(markup.encode("utf-8"), parser=_parser())
    except (etree.ParserError, ValueError) as e:
        raise DocumentParseError(url, str(e)) from e
    return LxmlPageElement(root, url, is_document=True)


class LxmlPageElement:
    """Implementation of the PageElement protocol over lxml.

    Attributes:
        _element: The underlying lxml HtmlElement.
        _url: The URL of the page the element belongs to.
        _is_document: True for the document root, whose queries may also
            match the root element itself.
    """

    def __init__(
        self,
        element: html.HtmlElement,
        url: str = "",
        is_document: bool = False,
    ) -> None:
        self._element = element
        self._url = url
        self._is_document = is_document

    def __repr__(self) -> str:
        return f"<LxmlPageElement {self._element.tag} url={self._url!r}>"

    @property
    def url(self) -> str:
        return self._url

    def query_css(
        self,
        selector: str,
        description: str,
        min_count: int = 0,
        max_count: int | None = None,
    ) -> list[LxmlPageElement]:
        """Query descendant elements by CSS selector.

        Args:
            selector: CSS selector expression.
            description: Human-readable description of what's being selected.
            min_count: Minimum number of elements expected (default: 0).
            max_count: Maximum number of elements expected (None = unlimited).

        Returns:
            List of matching LxmlPageElement instances in document order.

        Raises:
            HTMLStructuralAssumptionException: If the selector is invalid or
                the count doesn't match expectations.
        """
        prefix = "descendant-or-self::" if self._is_document else "descendant::"
        try:
            expression = _to_xpath(selector, prefix)
        except SelectorError as e:
            raise HTMLStructuralAssumptionException(
                selector=selector,
                description=description,
                expected_min=min_count,
                expected_max=max_count,
                actual_count=0,
                request_url=self._url,
            ) from e

        results = self._element.xpath(expression)

        actual_count = len(results)
        if actual_count < min_count or (
            max_count is not None and actual_count > max_count
        ):
            raise HTMLStructuralAssumptionException(
                selector=selector,
                description=description,
                expected_min=min_count,
                expected_max=max_count,
                actual_count=actual_count,
                request_url=self._url,
            )

        return [LxmlPageElement(result, self._url) for result in results]

    def matches_css(self, selector: str) -> bool:
        try:
            expression = _to_xpath(selector, "self::")
        except SelectorError as e:
            raise HTMLStructuralAssumptionException(
                selector=selector,
                description="self match",
                expected_min=0,
                expected_max=None,
                actual_count=0,
                request_url=self._url,
            ) from e
        return bool(self._element.xpath(expression))

    def get_attribute(self, name: str) -> str | None:
        return self._element.get(name)

    def text_content(self) -> str:
        return str(self._element.text_content())

    def child_nodes(self) -> list[ChildNode]:
        """List the direct children of the element, text nodes included.

        lxml stores text as .text (before the first child) and .tail (after
        each child); this rebuilds the interleaved DOM child list.
        """
        element = self._element
        nodes: list[ChildNode] = []
        if element.text is not None:
            nodes.append(ChildNode(text=element.text))
        for child in element:
            nodes.append(ChildNode())
            if child.tail is not None:
                nodes.append(ChildNode(text=child.tail))
        return nodes
