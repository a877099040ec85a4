"""Run several scrapers at once and feed one writer.

Each scraper runs in its own thread with its own fetcher and pushes kept
items into a bounded queue. A single writer thread drains the queue. Puts
are timed and re-check a stop event, so a writer that dies does not leave
the crawl threads blocked on a full queue.
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Generator
from concurrent.futures import ThreadPoolExecutor

from gleaner.data_types import Config, Item, ScraperSpec
from gleaner.driver.sync_driver import CrawlResult, SyncDriver
from gleaner.output.writer import Writer

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 1000
PUT_TIMEOUT = 0.5

_DONE = object()


class RunCancelled(Exception):
    """Raised inside a crawl thread when the run is being torn down."""


class ItemQueue:
    """Bounded conduit between crawl threads and the writer."""

    def __init__(
        self,
        maxsize: int = DEFAULT_QUEUE_SIZE,
        stop_event: threading.Event | None = None,
    ) -> None:
        self._queue: queue.Queue[object] = queue.Queue(maxsize=maxsize)
        self.stop_event = stop_event or threading.Event()

    def _offer(self, entry: object) -> bool:
        while True:
            try:
                self._queue.put(entry, timeout=PUT_TIMEOUT)
                return True
            except queue.Full:
                if self.stop_event.is_set():
                    return False

    def put(self, item: Item) -> None:
        """Enqueue an item, giving up once the run is stopped.

        Raises:
            RunCancelled: If the stop event is set while the queue is full.
        """
        if not self._offer(item):
            raise RunCancelled("item queue closed")

    def close(self) -> None:
        """Signal the consumer that no more items will arrive.

        If the run was stopped and the queue is full, the consumer is gone
        and the marker is dropped.
        """
        self._offer(_DONE)

    def __iter__(self) -> Generator[Item, None, None]:
        while True:
            item = self._queue.get()
            if item is _DONE:
                return
            yield item  # type: ignore[misc]


def select_scrapers(config: Config, name: str | None = None) -> list[ScraperSpec]:
    """Return all scrapers, or the one with the given name."""
    if name is None:
        return list(config.scrapers)
    return [s for s in config.scrapers if s.name == name]


def run_scrapers(
    config: Config,
    writer: Writer,
    scrapers: list[ScraperSpec] | None = None,
    max_workers: int | None = None,
    queue_size: int = DEFAULT_QUEUE_SIZE,
) -> dict[str, CrawlResult | Exception]:
    """Run scrapers concurrently and write their items.

    Args:
        config: The loaded configuration.
        writer: The sink consuming all items.
        scrapers: Scrapers to run; all configured scrapers if None.
        max_workers: Crawl thread limit; one thread per scraper if None.
        queue_size: Capacity of the item queue.

    Returns:
        The CrawlResult of each scraper, or the exception that ended it.

    Raises:
        WriterError: If the writer failed.
    """
    scrapers = list(config.scrapers) if scrapers is None else scrapers
    stop_event = threading.Event()
    items = ItemQueue(queue_size, stop_event)
    writer_errors: list[BaseException] = []

    def consume() -> None:
        try:
            writer.write(items)
        except Exception as e:
            logger.error(f"writer failed: {e}")
            writer_errors.append(e)
            stop_event.set()

    def crawl(scraper: ScraperSpec) -> CrawlResult:
        driver = SyncDriver(
            scraper,
            global_config=config.global_,
            on_data=items.put,
            stop_event=stop_event,
        )
        return driver.run()

    writer_thread = threading.Thread(target=consume, name="gleaner-writer")
    writer_thread.start()

    results: dict[str, CrawlResult | Exception] = {}
    try:
        with ThreadPoolExecutor(
            max_workers=max_workers or max(len(scrapers), 1),
            thread_name_prefix="gleaner-crawl",
        ) as pool:
            futures = {s.name: pool.submit(crawl, s) for s in scrapers}
            for name, future in futures.items():
                try:
                    results[name] = future.result()
                except Exception as e:
                    logger.error(f"{name} ERROR: run aborted: {e}")
                    results[name] = e
    finally:
        items.close()
        writer_thread.join()

    if writer_errors:
        raise writer_errors[0]
    return results
