"""Date assembly from independently located fragments.

Event pages often split a date across separate nodes: a weekday label, a
day/month label, a time label. A date field lists one component per
fragment, each with the calendar parts it covers and the layouts it may be
written in. The fragments are concatenated, missing year and time get
defaults, and the resulting string is parsed against every combination of
the fragment layouts until one succeeds.

Layouts are strftime directives (``%d.%m``) or Go reference layouts
(``02.01``), the notation most existing scraper definitions use.
"""

from __future__ import annotations

import itertools
import logging
import re
from dataclasses import dataclass
from datetime import datetime
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import dateparser

from gleaner.common.exceptions import (
    DateAssemblyError,
    DateParseError,
    DoubleCoveredDatePartError,
    MissingDatePartError,
    TimeZoneError,
)
from gleaner.common.page_element import PageElement
from gleaner.data_types import CoveredDateParts, DateComponent, FieldSpec
from gleaner.extraction.text import get_text_string

logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "de_DE"
DEFAULT_TIME = "20:00"

# Longest tokens first so that "2006" wins over "2" and "15" over "1".
_GO_LAYOUT_TOKENS: tuple[tuple[str, str], ...] = (
    ("January", "%B"),
    ("Monday", "%A"),
    ("2006", "%Y"),
    ("Jan", "%b"),
    ("Mon", "%a"),
    ("_2", "%d"),
    ("01", "%m"),
    ("02", "%d"),
    ("03", "%I"),
    ("04", "%M"),
    ("05", "%S"),
    ("06", "%y"),
    ("15", "%H"),
    ("PM", "%p"),
    ("pm", "%p"),
    ("1", "%m"),
    ("2", "%d"),
    ("3", "%I"),
    ("4", "%M"),
    ("5", "%S"),
)

# Month abbreviation some German sites use that no calendar knows.
_MONTH_CORRECTIONS = (("Mrz", "Mär"),)

_DATEPARSER_SETTINGS = {
    "PARSERS": ["custom-formats"],
    "RETURN_AS_TIMEZONE_AWARE": False,
}

# dateparser translates month and weekday names, abbreviated or not, to full
# English names before applying the format.
_TRANSLATED_DIRECTIVES = {"b": "B", "a": "A"}

_DIRECTIVE = re.compile(r"%(.)")


@dataclass(frozen=True)
class DateFragment:
    """The literal text of one date fragment and its layout alternatives."""

    text: str
    layouts: tuple[str, ...]


def go_layout_to_strftime(layout: str) -> str:
    """Translate a Go reference layout into strftime directives.

    Example::

        >>> go_layout_to_strftime("02.01.2006 15:04")
        '%d.%m.%Y %H:%M'
    """
    out: list[str] = []
    i = 0
    while i < len(layout):
        for token, directive in _GO_LAYOUT_TOKENS:
            if layout.startswith(token, i):
                out.append(directive)
                i += len(token)
                break
        else:
            char = layout[i]
            out.append("%%" if char == "%" else char)
            i += 1
    return "".join(out)


def to_strftime(layout: str) -> str:
    """Return layout as strftime directives, translating Go layouts."""
    if "%" in layout:
        return layout
    return go_layout_to_strftime(layout)


def language_code(language: str) -> str:
    """Reduce a locale such as ``de_DE`` to the language code ``de``."""
    return (language or DEFAULT_LANGUAGE).replace("-", "_").split("_")[0]


def load_zone(location: str) -> ZoneInfo:
    """Resolve a date location; an empty location means UTC."""
    try:
        return ZoneInfo(location or "UTC")
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise TimeZoneError(location) from e


def check_date_components(components: list[DateComponent]) -> None:
    """Reject component lists that cover a calendar part twice.

    Components are checked in order against the parts declared by the
    components before them; the first offender raises.

    Raises:
        DoubleCoveredDatePartError: On the first part covered twice.
    """
    declared = CoveredDateParts()
    for component in components:
        part = declared.overlap(component.covers)
        if part is not None:
            raise DoubleCoveredDatePartError(part)
        declared = declared.merge(component.covers)


def collect_fragments(
    components: list[DateComponent],
    element: PageElement,
    now: datetime,
) -> list[DateFragment]:
    """Extract the fragments of a date and append the year and time defaults.

    Raises:
        DoubleCoveredDatePartError: If two components cover the same part.
        MissingDatePartError: If day or month is not covered.
        RegexExtractError: If a component's regex cannot be satisfied.
    """
    check_date_components(components)

    covered = CoveredDateParts()
    fragments: list[DateFragment] = []
    for component in components:
        if covered.complete:
            break
        text = get_text_string(component.location, element)
        if not text:
            continue
        fragments.append(
            DateFragment(
                text=text.replace("p.m.", "pm", 1),
                layouts=tuple(
                    to_strftime(layout.replace("p.m.", "pm", 1))
                    for layout in component.layout
                ),
            )
        )
        covered = covered.merge(component.covers)

    if not covered.year:
        fragments.append(DateFragment(str(now.year), ("%Y",)))
    if not covered.time:
        fragments.append(DateFragment(DEFAULT_TIME, ("%H:%M",)))
    if not covered.day or not covered.month:
        raise MissingDatePartError()
    return fragments


def assemble(fragments: list[DateFragment]) -> tuple[str, list[str]]:
    """Join fragments into one date string and every candidate layout.

    Returns:
        The space-joined fragment texts and the cartesian product of the
        fragment layouts, each space-joined in fragment order.
    """
    date_string = " ".join(fragment.text for fragment in fragments)
    for wrong, right in _MONTH_CORRECTIONS:
        date_string = date_string.replace(wrong, right, 1)
    layouts = [
        " ".join(combination)
        for combination in itertools.product(
            *(fragment.layouts for fragment in fragments)
        )
    ]
    return date_string, layouts


def full_name_layout(layout: str) -> str:
    """Widen abbreviated name directives to the full names dateparser produces.

    Example::

        >>> full_name_layout("%a, %d. %b %Y")
        '%A, %d. %B %Y'
    """
    return _DIRECTIVE.sub(
        lambda m: "%" + _TRANSLATED_DIRECTIVES.get(m.group(1), m.group(1)),
        layout,
    )


def parse_with_layout(
    date_string: str, layout: str, language: str
) -> datetime | None:
    """Parse date_string against exactly one layout.

    Numeric and English strings are parsed with strptime; localized month and
    weekday names go through dateparser restricted to the given format.
    """
    try:
        return datetime.strptime(date_string, layout)
    except ValueError:
        pass
    try:
        return dateparser.parse(
            date_string,
            date_formats=[full_name_layout(layout)],
            languages=[language],
            settings=_DATEPARSER_SETTINGS,
        )
    except ValueError as e:
        # unknown language codes
        raise DateAssemblyError(f"date parsing error: {e}") from e


def get_date(
    field: FieldSpec,
    element: PageElement,
    now: datetime | None = None,
) -> datetime:
    """Assemble and parse the date described by a date field.

    Args:
        field: The date field; its components, location and language are used.
        element: The item node or document the fragments are searched in.
        now: Reference time for the default year (defaults to the current
            time in the field's zone).

    Returns:
        A timezone-aware datetime in the field's date location.

    Raises:
        TimeZoneError: If the date location is unknown.
        DoubleCoveredDatePartError: If two components cover the same part.
        MissingDatePartError: If day or month is not covered.
        DateParseError: If no layout combination parses the date string.
    """
    zone = load_zone(field.date_location)
    language = language_code(field.date_language)
    if now is None:
        now = datetime.now(zone)

    fragments = collect_fragments(field.components, element, now)
    date_string, layouts = assemble(fragments)

    for layout in layouts:
        parsed = parse_with_layout(date_string, layout, language)
        if parsed is not None:
            return parsed.replace(tzinfo=zone)
        logger.debug(f"date '{date_string}' does not match layout '{layout}'")
    raise DateParseError(date_string, layouts[-1] if layouts else "")
