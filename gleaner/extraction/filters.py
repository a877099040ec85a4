"""Item filtering and hidden field removal."""

from __future__ import annotations

import re
from datetime import datetime

from gleaner.common.exceptions import FilterConfigurationError
from gleaner.data_types import Filter, Item, ScraperSpec


def _as_string(value: object) -> str:
    if isinstance(value, datetime):
        return value.isoformat()
    return str(value)


def filter_item(filters: list[Filter], item: Item) -> bool:
    """Decide whether an item is kept.

    An item is kept when at least one positive filter (match=True) matches,
    or there are no positive filters, and no exclusion filter (match=False)
    matches. Filters on fields the item does not have are ignored.

    Raises:
        FilterConfigurationError: If a filter regex does not compile.
    """
    positive_filters = 0
    has_true_match = False
    no_exclusion = True
    for item_filter in filters:
        try:
            regex = re.compile(item_filter.regex)
        except re.error as e:
            raise FilterConfigurationError(
                item_filter.field, item_filter.regex, str(e)
            ) from e
        if item_filter.field not in item:
            continue
        matched = regex.search(_as_string(item[item_filter.field])) is not None
        if item_filter.match:
            positive_filters += 1
            if matched:
                has_true_match = True
        elif matched:
            no_exclusion = False
    if positive_filters == 0:
        has_true_match = True
    return has_true_match and no_exclusion


def remove_hidden_fields(scraper: ScraperSpec, item: Item) -> Item:
    """Drop every field marked hide from a kept item, in place."""
    for name in scraper.hidden_fields:
        item.pop(name, None)
    return item
