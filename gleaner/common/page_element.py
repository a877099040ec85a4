"""PageElement protocol for driver-agnostic DOM queries.

This module provides the interface the extraction engine uses to query HTML.
A PageElement is always backed by static parsed HTML. The fetcher is
responsible for obtaining the HTML, whether via HTTP or by serializing a
rendered Playwright DOM.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol


@dataclass(frozen=True)
class ChildNode:
    """One direct child of an element, in document order.

    Text runs and element (or comment) children are interleaved exactly as
    they appear in the markup, so a child offset counts both kinds.

    Attributes:
        text: The raw text of a text node, or None for non-text children.
    """

    text: str | None = None

    @property
    def is_text(self) -> bool:
        return self.text is not None


class PageElement(Protocol):
    """Protocol for data extraction from a parsed HTML element.

    All query methods accept a human-readable description that is attached
    to HTMLStructuralAssumptionException when the result count does not
    match expectations.
    """

    @property
    def url(self) -> str:
        """The URL of the page this element belongs to."""
        ...

    def query_css(
        self,
        selector: str,
        description: str,
        min_count: int = 0,
        max_count: int | None = None,
    ) -> list[PageElement]:
        """Query descendant elements by CSS selector.

        Args:
            selector: CSS selector expression.
            description: Human-readable description of what's being selected.
            min_count: Minimum number of elements expected (default: 0).
            max_count: Maximum number of elements expected (None = unlimited).

        Returns:
            List of matching PageElement instances in document order.

        Raises:
            HTMLStructuralAssumptionException: If the selector is invalid or
                the count doesn't match expectations.
        """
        ...

    def matches_css(self, selector: str) -> bool:
        """Check whether the element itself matches a CSS selector."""
        ...

    def get_attribute(self, name: str) -> str | None:
        """Extract an attribute value, or None if it doesn't exist."""
        ...

    def text_content(self) -> str:
        """Concatenate the text of every text node below the element.

        Whitespace inside the element is preserved.
        """
        ...

    def child_nodes(self) -> list[ChildNode]:
        """List the direct children of the element, text nodes included."""
        ...
