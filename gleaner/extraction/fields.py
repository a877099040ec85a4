"""Field resolution by type.

A FieldSpec is classified once into one of four variants and resolved by a
single exhaustive dispatch, so adding a variant without handling it is a
type-checking error rather than a silent default case.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Union

from typing_extensions import assert_never

from gleaner.common.exceptions import EmptyFieldError, UnknownFieldTypeError
from gleaner.common.page_element import PageElement
from gleaner.data_types import FieldSpec
from gleaner.extraction.dates import get_date
from gleaner.extraction.text import get_text_string
from gleaner.extraction.urls import get_url_string


@dataclass(frozen=True)
class StaticField:
    spec: FieldSpec


@dataclass(frozen=True)
class TextField:
    spec: FieldSpec


@dataclass(frozen=True)
class UrlField:
    spec: FieldSpec


@dataclass(frozen=True)
class DateField:
    spec: FieldSpec


ResolvedField = Union[StaticField, TextField, UrlField, DateField]


def classify_field(spec: FieldSpec) -> ResolvedField:
    """Turn a field spec into its variant.

    A non-empty value makes a field static whatever its type. An empty type
    means text.

    Raises:
        UnknownFieldTypeError: If the type is not text, url or date.
    """
    if spec.is_static:
        return StaticField(spec)
    match spec.type:
        case "text" | "":
            return TextField(spec)
        case "url":
            return UrlField(spec)
        case "date":
            return DateField(spec)
        case _:
            raise UnknownFieldTypeError(spec.name, spec.type)


def extract_field(
    field: ResolvedField, element: PageElement, base_url: str
) -> str | datetime:
    """Resolve one field against an item node or a subpage document.

    Args:
        field: The classified field.
        element: The node the field's location is relative to.
        base_url: URL of the page element belongs to, used for URL fields.

    Returns:
        The field value: a string, an absolute URL, or a datetime.

    Raises:
        EmptyFieldError: If a required text field resolves to "".
        ScraperAssumptionException: Any extraction or date assembly error.
    """
    match field:
        case StaticField(spec=spec):
            return spec.value
        case TextField(spec=spec):
            text = get_text_string(spec.location, element)
            if not text and not spec.can_be_empty:
                raise EmptyFieldError(spec.name, base_url)
            return text
        case UrlField(spec=spec):
            # an empty url falls back to the page itself
            return get_url_string(spec.location, element, base_url) or base_url
        case DateField(spec=spec):
            return get_date(spec, element)
        case _:
            assert_never(field)
