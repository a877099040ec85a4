"""Writer that prints each item as indented JSON."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterable
from typing import TextIO

from gleaner.data_types import Item
from gleaner.output.writer import dumps

logger = logging.getLogger(__name__)


class StdoutWriter:
    """Print items to a text stream, one indented JSON object each.

    Characters such as ``&``, ``<`` and ``>`` are written as they are rather
    than as unicode escapes, so URLs and titles stay readable.
    """

    def __init__(self, stream: TextIO | None = None) -> None:
        self.stream = stream if stream is not None else sys.stdout

    def write(self, items: Iterable[Item]) -> None:
        for item in items:
            try:
                encoded = dumps(item, indent=2)
            except (TypeError, ValueError) as e:
                logger.error(
                    f"StdoutWriter ERROR while writing item {item}: {e}"
                )
                continue
            self.stream.write(encoded + "\n")
            self.stream.flush()
