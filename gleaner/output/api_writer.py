"""Writer that sends items to a remote event API.

The API stores events per source. Before the first batch of a source is
posted, every stored event of that source from the first item's date onward
is deleted, so a rerun replaces the upcoming events instead of duplicating
them. This assumes that:

- every item has a ``sourceUrl`` string and a ``date`` timestamp, and
- the items of one source arrive ordered by ascending date.

Any unexpected status or network error is fatal to the writer.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from datetime import datetime, timezone

import httpx

from gleaner.common.exceptions import WriterError
from gleaner.data_types import Item, WriterConfig
from gleaner.output.writer import dumps

logger = logging.getLogger(__name__)

BATCH_SIZE = 100


class APIWriter:
    """Post items to an authenticated HTTP endpoint in batches."""

    def __init__(
        self,
        config: WriterConfig,
        transport: httpx.BaseTransport | None = None,
        timeout: float = 10.0,
    ) -> None:
        self.config = config
        self._client = httpx.Client(
            auth=(config.user, config.password),
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _delete_source(self, source_url: str, first_date: datetime) -> None:
        first_date_utc = first_date.astimezone(timezone.utc).strftime(
            "%Y-%m-%d %H:%M"
        )
        try:
            response = self._client.delete(
                self.config.uri,
                params={"sourceUrl": source_url, "datetime": first_date_utc},
            )
        except httpx.HTTPError as e:
            raise WriterError(f"error while deleting items: {e}") from e
        if response.status_code != 200:
            raise WriterError(
                "something went wrong while deleting items. "
                f"Status Code: {response.status_code} "
                f"Url: {response.request.url} Response: {response.text}"
            )

    def _post_batch(self, batch: list[Item]) -> None:
        try:
            response = self._client.post(
                self.config.uri,
                content=dumps(batch).encode("utf-8"),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as e:
            raise WriterError(f"error while adding new events: {e}") from e
        if response.status_code != 201:
            raise WriterError(
                "something went wrong while adding new events. "
                f"Status Code: {response.status_code} "
                f"Response: {response.text}"
            )

    def write(self, items: Iterable[Item]) -> None:
        deleted_sources: set[str] = set()
        batch: list[Item] = []
        count = 0

        try:
            for item in items:
                count += 1
                source_url = item.get("sourceUrl")
                if not isinstance(source_url, str):
                    raise WriterError(
                        f"item {item} has no string field 'sourceUrl'"
                    )
                if source_url not in deleted_sources:
                    first_date = item.get("date")
                    if not isinstance(first_date, datetime):
                        raise WriterError(
                            f"the date field of item {item} is not a timestamp"
                        )
                    self._delete_source(source_url, first_date)
                    deleted_sources.add(source_url)

                batch.append(item)
                if len(batch) == BATCH_SIZE:
                    self._post_batch(batch)
                    batch = []
            if batch:
                self._post_batch(batch)
        finally:
            self.close()

        logger.info(
            f"wrote {count} items from {len(deleted_sources)} sources to the api"
        )
