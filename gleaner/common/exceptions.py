"""Exception types for extraction errors.

This module defines the exception hierarchy for the extraction engine.
Assumption exceptions describe a mismatch between a scraper definition and
the page it runs against; they are scoped to a single item. Transient
exceptions describe I/O failures that are scoped to a page or a subpage.
"""

from typing import Any


class ScraperAssumptionException(Exception):
    """Base class for scraper assumption violations.

    Scraper definitions make assumptions about page structure and data
    formats. When these assumptions are violated, the engine raises a
    contextual exception that helps diagnose the mismatch.
    """

    def __init__(
        self,
        message: str,
        request_url: str = "",
        context: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable description of the assumption violation.
            request_url: The URL of the page that triggered this error.
            context: Optional dict of additional context (selector, regex, etc).
        """
        self.message = message
        self.request_url = request_url
        self.context = context or {}
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        """Format the error message with context.

        Returns:
            Formatted error message string.
        """
        parts = [self.message]
        if self.request_url:
            parts.append(f"URL: {self.request_url}")

        if self.context:
            parts.append("Context:")
            for key, value in self.context.items():
                parts.append(f"  {key}: {value}")

        return "\n".join(parts)


class HTMLStructuralAssumptionException(ScraperAssumptionException):
    """Raised when a CSS selector returns an unexpected number of nodes."""

    def __init__(
        self,
        selector: str,
        description: str,
        expected_min: int,
        expected_max: int | None,
        actual_count: int,
        request_url: str = "",
    ) -> None:
        self.selector = selector
        self.description = description
        self.expected_min = expected_min
        self.expected_max = expected_max
        self.actual_count = actual_count

        if expected_max is None:
            expected_str = f"at least {expected_min}"
        elif expected_min == expected_max:
            expected_str = f"exactly {expected_min}"
        else:
            expected_str = f"between {expected_min} and {expected_max}"

        message = (
            f"HTML structure mismatch: Expected {expected_str} "
            f"elements for '{description}', but found {actual_count}"
        )
        super().__init__(message, request_url, {"selector": selector})


class ExtractionError(ScraperAssumptionException):
    """Base class for errors raised while resolving a single field."""


class EmptyFieldError(ExtractionError):
    """Raised when a field that cannot be empty resolves to an empty string."""

    def __init__(self, field_name: str, request_url: str = "") -> None:
        self.field_name = field_name
        super().__init__(f"field {field_name} cannot be empty", request_url)


class RegexExtractError(ExtractionError):
    """Raised when a regex extract step finds no usable match.

    Attributes:
        pattern: The regular expression that was applied.
        match_count: Number of matches found (0 for no match).
    """

    def __init__(
        self, message: str, pattern: str, match_count: int = 0
    ) -> None:
        self.pattern = pattern
        self.match_count = match_count
        super().__init__(message, context={"regex": pattern})


class UnknownFieldTypeError(ExtractionError):
    """Raised when a field declares a type the engine does not know."""

    def __init__(self, field_name: str, field_type: str) -> None:
        self.field_name = field_name
        self.field_type = field_type
        super().__init__(f"field type '{field_type}' does not exist")


class DateAssemblyError(ExtractionError):
    """Base class for errors raised while assembling a date field."""


class TimeZoneError(DateAssemblyError):
    """Raised when a field's date location is not a known time zone."""

    def __init__(self, location: str) -> None:
        self.location = location
        super().__init__(f"unknown time zone '{location}'")


class DoubleCoveredDatePartError(DateAssemblyError):
    """Raised when two date components cover the same calendar part."""

    def __init__(self, part: str) -> None:
        self.part = part
        super().__init__(
            f"date parsing error: '{part}' covered at least twice"
        )


class MissingDatePartError(DateAssemblyError):
    """Raised when no date component covers the day or the month."""

    def __init__(self) -> None:
        super().__init__(
            "date parsing error: to generate a date at least a day "
            "and a month is needed"
        )


class DateParseError(DateAssemblyError):
    """Raised when an assembled date string matches none of the layouts.

    Attributes:
        date_string: The assembled date-time string.
        layout: The last layout that was tried.
    """

    def __init__(self, date_string: str, layout: str) -> None:
        self.date_string = date_string
        self.layout = layout
        super().__init__(
            f"date parsing error: '{date_string}' does not match "
            f"layout '{layout}'",
            context={"date_string": date_string, "layout": layout},
        )


class FilterConfigurationError(Exception):
    """Raised when a filter regex cannot be compiled.

    A broken filter is a broken scraper definition, so this error ends the
    whole run instead of skipping a single item.
    """

    def __init__(self, field: str, regex: str, reason: str) -> None:
        self.field = field
        self.regex = regex
        super().__init__(
            f"invalid filter regex '{regex}' for field '{field}': {reason}"
        )


class ConfigurationError(Exception):
    """Raised when a configuration file cannot be loaded or validated."""


# =============================================================================
# Transient Exceptions
# =============================================================================


class TransientException(Exception):
    """Base class for I/O errors that might resolve on a later run.

    Transient exceptions represent temporary failures like network issues,
    server errors, or unparsable responses. At page level they end the crawl
    with partial results; at subpage level they discard the current item.
    """


class FetchError(TransientException):
    """Raised when a page cannot be retrieved.

    Attributes:
        url: The URL that failed.
        status_code: HTTP status code, if a response was received.
    """

    def __init__(
        self, url: str, reason: str, status_code: int | None = None
    ) -> None:
        self.url = url
        self.status_code = status_code
        self.message = f"error while fetching {url}: {reason}"
        super().__init__(self.message)


class DocumentParseError(TransientException):
    """Raised when a fetched body cannot be parsed into a document."""

    def __init__(self, url: str, reason: str) -> None:
        self.url = url
        self.message = f"error while reading document {url}: {reason}"
        super().__init__(self.message)


class WriterError(Exception):
    """Raised when an output sink cannot deliver items."""
