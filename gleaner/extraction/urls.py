"""URL resolution primitive.

URLs are read from an attribute (href unless the location says otherwise)
and normalized against the URL of the page they were found on.
"""

from __future__ import annotations

import re
from urllib.parse import urlsplit

from gleaner.common.page_element import PageElement
from gleaner.data_types import ElementLocation
from gleaner.extraction.text import select_nodes

DEFAULT_URL_ATTRIBUTE = "href"

_SCHEME = re.compile(r"^[a-zA-Z][a-zA-Z0-9+.\-]*:")


def resolve_attribute(
    location: ElementLocation, default: str = DEFAULT_URL_ATTRIBUTE
) -> str:
    """Return the attribute a URL is read from, without touching location."""
    return location.attr or default


def normalize_url(value: str, base_url: str) -> str:
    """Make a URL found on a page absolute.

    Args:
        value: The raw attribute value.
        base_url: The URL of the page the value was found on.

    Returns:
        value unchanged if it carries a scheme; the page path plus value if
        value is a bare query string; the page scheme plus value for
        protocol-relative URLs; otherwise value joined to the page's scheme
        and host with a single slash. Empty input gives "".

    Example::

        >>> normalize_url("/events/1", "https://x.test/a/b")
        'https://x.test/events/1'
        >>> normalize_url("?p=2", "https://x.test/a/b")
        'https://x.test/a/b?p=2'
    """
    value = value.strip()
    if not value:
        return ""
    if _SCHEME.match(value):
        return value

    base = urlsplit(base_url)
    if value.startswith("?"):
        return f"{base.scheme}://{base.netloc}{base.path}{value}"
    if value.startswith("//"):
        return f"{base.scheme}:{value}"
    return f"{base.scheme}://{base.netloc}/{value.lstrip('/')}"


def get_url_string(
    location: ElementLocation, element: PageElement, base_url: str
) -> str:
    """Read and normalize a URL from the node a location points to.

    Args:
        location: Where the URL is. node_index picks the matched node.
        element: The item node or document to search in.
        base_url: The URL of the page element belongs to.

    Returns:
        The absolute URL, or "" if the node or attribute is missing.
    """
    attribute = resolve_attribute(location)
    nodes = select_nodes(location, element)
    if len(nodes) <= location.node_index:
        return ""
    value = nodes[location.node_index].get_attribute(attribute) or ""
    return normalize_url(value, base_url)
