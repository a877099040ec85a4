"""Text extraction primitive shared by text fields and date components."""

from __future__ import annotations

import re

from gleaner.common.exceptions import RegexExtractError
from gleaner.common.page_element import PageElement
from gleaner.data_types import AttributePolicy, ElementLocation, RegexConfig

ELLIPSIS = "..."

# child_index value that scans every text child instead of a single offset.
ALL_CHILDREN = -1


def extract_string_regex(rc: RegexConfig, s: str) -> str:
    """Narrow a string down to one match of a regular expression.

    Args:
        rc: The regex configuration. An empty pattern returns s unchanged.
        s: The string to search.

    Returns:
        The match at rc.index, or the last match when rc.index is -1.

    Raises:
        RegexExtractError: If the pattern is invalid, does not match, or
            the index is out of bounds.
    """
    if not rc.exp:
        return s
    try:
        regex = re.compile(rc.exp)
    except re.error as e:
        raise RegexExtractError(
            f"invalid regex '{rc.exp}': {e}", rc.exp
        ) from e

    matches = [m.group(0) for m in regex.finditer(s)]
    if not matches:
        raise RegexExtractError(
            f"no matching strings found for regex: {rc.exp}", rc.exp
        )
    if rc.index == -1:
        return matches[-1]
    if rc.index < 0 or rc.index >= len(matches):
        raise RegexExtractError(
            f"regex index out of bounds. regex '{rc.exp}' gave only "
            f"{len(matches)} matches",
            rc.exp,
            len(matches),
        )
    return matches[rc.index]


def shorten(s: str, max_length: int) -> str:
    """Truncate s to max_length characters, marking the cut with an ellipsis."""
    if 0 < max_length < len(s):
        return s[:max_length] + ELLIPSIS
    return s


def select_nodes(
    location: ElementLocation, element: PageElement
) -> list[PageElement]:
    """Return the nodes a location refers to.

    An empty selector refers to the element itself.
    """
    if not location.selector:
        return [element]
    return element.query_css(location.selector, location.selector)


def _read_attribute(
    location: ElementLocation, nodes: list[PageElement]
) -> str:
    if location.attr_policy is AttributePolicy.NODE_INDEX:
        node = nodes[location.node_index]
    else:
        node = nodes[0]
    return node.get_attribute(location.attr) or ""


def _read_children(location: ElementLocation, node: PageElement) -> str:
    for offset, child in enumerate(node.child_nodes()):
        if location.child_index == ALL_CHILDREN:
            if not child.is_text:
                continue
            try:
                extract_string_regex(
                    location.regex_extract, child.text.strip()
                )
            except RegexExtractError:
                continue
            return child.text
        if offset == location.child_index:
            return child.text or ""
    return ""


def get_text_string(location: ElementLocation, element: PageElement) -> str:
    """Extract a string from the nodes matched by a location.

    If the location names an attribute, the attribute is read (from the
    first matched node unless attr_policy says otherwise). Otherwise the text
    of the whole subtree, or of one direct child, is read. The raw string is
    then trimmed, narrowed by the regex and truncated to max_length.

    Args:
        location: Where the string is.
        element: The item node or document to search in.

    Returns:
        The extracted string, possibly empty.

    Raises:
        RegexExtractError: If a regex is configured and cannot be satisfied.
        HTMLStructuralAssumptionException: If the selector is invalid.
    """
    nodes = select_nodes(location, element)
    raw = ""
    if len(nodes) > location.node_index:
        if location.attr:
            raw = _read_attribute(location, nodes)
        elif location.entire_subtree:
            raw = nodes[location.node_index].text_content()
        else:
            raw = _read_children(location, nodes[location.node_index])

    text = extract_string_regex(location.regex_extract, raw.strip())
    return shorten(text, location.max_length)
