"""Data types for declarative scraper definitions.

This module defines the configuration schema consumed by the extraction
engine. The models are Pydantic models so a YAML document is validated once
when it is loaded, and they are frozen so the same definition can be reused
across items and pages without any risk of one item's processing leaking into
the next.

YAML keys follow the established configuration format (``node_index``,
``regex_extract``, ``on_subpage``, ``renderJs``, ...).
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

# An extracted record: field name to string, URL string or timestamp.
Item = dict[str, Union[str, datetime]]


class _SpecModel(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)


class RegexConfig(_SpecModel):
    """Extract a substring with a regular expression.

    Attributes:
        exp: The pattern. An empty pattern disables extraction.
        index: Which match to keep; -1 keeps the last one.
    """

    exp: str = ""
    index: int = 0


class AttributePolicy(str, Enum):
    """Which node an attribute is read from when a selector matches several.

    Values:
        FIRST: Always read the first matched node, ignoring node_index.
            This is the historical behaviour of text extraction.
        NODE_INDEX: Read the node at node_index, like URL extraction does.
    """

    FIRST = "first"
    NODE_INDEX = "node_index"


class ElementLocation(_SpecModel):
    """Locate a string inside the nodes matched by a CSS selector.

    Attributes:
        selector: CSS selector, relative to the item (or document). An empty
            selector means the item node itself.
        node_index: Which matched node to read.
        child_index: Which direct child of that node to read. -1 scans every
            text child and returns the first one the regex accepts.
        regex_extract: Optional regex narrowing the text.
        attr: Read this attribute instead of text.
        max_length: Truncate longer strings and append an ellipsis marker.
        entire_subtree: Read the text of all descendants instead of a child.
        attr_policy: Which node an attribute is read from for text values.
    """

    selector: str = ""
    node_index: int = 0
    child_index: int = 0
    regex_extract: RegexConfig = Field(default_factory=RegexConfig)
    attr: str = ""
    max_length: int = 0
    entire_subtree: bool = False
    attr_policy: AttributePolicy = AttributePolicy.FIRST


class CoveredDateParts(_SpecModel):
    """The calendar parts a date component provides."""

    day: bool = False
    month: bool = False
    year: bool = False
    time: bool = False

    def merge(self, other: CoveredDateParts) -> CoveredDateParts:
        return CoveredDateParts(
            day=self.day or other.day,
            month=self.month or other.month,
            year=self.year or other.year,
            time=self.time or other.time,
        )

    def overlap(self, other: CoveredDateParts) -> str | None:
        """Return the first part covered by both, or None."""
        for part in ("day", "month", "year", "time"):
            if getattr(self, part) and getattr(other, part):
                return part
        return None

    @property
    def complete(self) -> bool:
        return self.day and self.month and self.year and self.time


class DateComponent(_SpecModel):
    """One independently located fragment of a date.

    Attributes:
        covers: Calendar parts provided by this fragment.
        location: Where to find the fragment's text.
        layout: Alternative layouts the fragment may appear in, either as
            strftime directives or as Go reference layouts.
    """

    covers: CoveredDateParts = Field(default_factory=CoveredDateParts)
    location: ElementLocation = Field(default_factory=ElementLocation)
    layout: list[str] = Field(default_factory=list)

    @field_validator("layout", mode="before")
    @classmethod
    def _single_layout(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value


class FieldSpec(_SpecModel):
    """A single field of an extracted record.

    A field with a non-empty value is a constant. Otherwise it is resolved on
    the item node, or, when on_subpage names a url field of the same record,
    on the page that url points to.

    The type is kept as a free string so that an unknown type only discards
    the items it is applied to.
    """

    name: str
    value: str = ""
    type: str = "text"
    location: ElementLocation = Field(default_factory=ElementLocation)
    on_subpage: str = ""
    can_be_empty: bool = False
    components: list[DateComponent] = Field(default_factory=list)
    date_location: str = "UTC"
    date_language: str = "de_DE"
    hide: bool = False

    @property
    def is_static(self) -> bool:
        return self.value != ""


class Filter(_SpecModel):
    """Keep (match=True) or drop (match=False) items whose field matches."""

    field: str
    regex: str
    match: bool = False


class Paginator(_SpecModel):
    """Locate the next page and bound the number of pages fetched.

    Attributes:
        location: Where the next-page URL is found. The attribute defaults
            to href.
        max_pages: Maximum number of pages to fetch; 0 means unbounded.
    """

    location: ElementLocation = Field(default_factory=ElementLocation)
    max_pages: int = 0


class ScraperSpec(_SpecModel):
    """Everything needed to extract items from one website."""

    name: str
    url: str
    item: str
    exclude_with_selector: list[str] = Field(default_factory=list)
    fields: list[FieldSpec] = Field(default_factory=list)
    filters: list[Filter] = Field(default_factory=list)
    paginator: Paginator = Field(default_factory=Paginator)
    render_js: bool = Field(default=False, alias="renderJs")

    @model_validator(mode="after")
    def _unique_field_names(self) -> ScraperSpec:
        seen: set[str] = set()
        for field in self.fields:
            if field.name in seen:
                raise ValueError(
                    f"scraper '{self.name}': field name '{field.name}' "
                    "is used more than once"
                )
            seen.add(field.name)
        return self

    @property
    def hidden_fields(self) -> list[str]:
        return [f.name for f in self.fields if f.hide]


class GlobalConfig(_SpecModel):
    """Settings shared by all scrapers."""

    user_agent: str = Field(default="", alias="user-agent")


class WriterType(str, Enum):
    STDOUT = "stdout"
    API = "api"


class WriterConfig(_SpecModel):
    """Where extracted items are sent."""

    type: WriterType = WriterType.STDOUT
    uri: str = ""
    user: str = ""
    password: str = ""


class Config(_SpecModel):
    """The top-level configuration document."""

    writer: WriterConfig = Field(default_factory=WriterConfig)
    scrapers: list[ScraperSpec] = Field(default_factory=list)
    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
