"""Writer protocol and shared JSON helpers for output sinks."""

from __future__ import annotations

import json
from collections.abc import Iterable
from datetime import datetime
from typing import Any, Protocol

from gleaner.data_types import Item, WriterConfig, WriterType


class Writer(Protocol):
    """Consume items until the iterable is exhausted."""

    def write(self, items: Iterable[Item]) -> None: ...


def json_default(value: Any) -> Any:
    """Serialize timestamps as RFC 3339 strings."""
    if isinstance(value, datetime):
        return value.isoformat()
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def dumps(data: Any, indent: int | None = None) -> str:
    """Encode data as JSON, leaving HTML and non-ASCII characters as they are."""
    return json.dumps(
        data, indent=indent, ensure_ascii=False, default=json_default
    )


def make_writer(config: WriterConfig) -> Writer:
    """Build the writer a configuration asks for."""
    from gleaner.output.api_writer import APIWriter
    from gleaner.output.stdout_writer import StdoutWriter

    match config.type:
        case WriterType.API:
            return APIWriter(config)
        case WriterType.STDOUT:
            return StdoutWriter()
