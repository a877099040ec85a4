"""Tests for running several scrapers into one writer."""

import threading

import pytest

from gleaner.common.exceptions import FetchError, WriterError
from gleaner.data_types import Config
from gleaner.driver import sync_driver
from gleaner.runner import ItemQueue, RunCancelled, run_scrapers, select_scrapers


def listing(prefix: str, count: int) -> str:
    events = "".join(
        f'<div class="event"><h2 class="title">{prefix} {i}</h2></div>'
        for i in range(count)
    )
    return f"<html><body>{events}</body></html>"


PAGES = {
    "https://a.test/": listing("a", 3),
    "https://b.test/": listing("b", 2),
}


def make_config(*scrapers: tuple[str, str]) -> Config:
    return Config.model_validate(
        {
            "scrapers": [
                {
                    "name": name,
                    "url": url,
                    "item": ".event",
                    "fields": [{"name": "title", "location": {"selector": ".title"}}],
                }
                for name, url in scrapers
            ]
        }
    )


class RecordingWriter:
    def __init__(self) -> None:
        self.items: list[dict] = []

    def write(self, items) -> None:
        for item in items:
            self.items.append(item)


class FailingWriter:
    def write(self, items) -> None:
        for _ in items:
            raise WriterError("sink is down")


@pytest.fixture
def fake_pages(monkeypatch, fake_fetcher):
    """Serve PAGES to every driver the runner creates."""
    monkeypatch.setattr(
        sync_driver, "make_fetcher", lambda scraper, global_config: fake_fetcher(PAGES)
    )


def test_items_from_all_scrapers_reach_the_writer(fake_pages) -> None:
    config = make_config(("a", "https://a.test/"), ("b", "https://b.test/"))
    writer = RecordingWriter()

    results = run_scrapers(config, writer)

    assert sorted(item["title"] for item in writer.items) == [
        "a 0",
        "a 1",
        "a 2",
        "b 0",
        "b 1",
    ]
    a_titles = [item["title"] for item in writer.items if item["title"].startswith("a")]
    assert a_titles == ["a 0", "a 1", "a 2"]
    assert set(results) == {"a", "b"}
    assert all(result.complete for result in results.values())


def test_page_failure_only_affects_its_scraper(fake_pages) -> None:
    config = make_config(("a", "https://a.test/"), ("broken", "https://c.test/"))
    writer = RecordingWriter()

    results = run_scrapers(config, writer)

    assert len(writer.items) == 3
    assert isinstance(results["broken"].error, FetchError)
    assert results["a"].complete


def test_writer_failure_stops_producers(fake_pages) -> None:
    config = make_config(("a", "https://a.test/"), ("b", "https://b.test/"))

    with pytest.raises(WriterError, match="sink is down"):
        run_scrapers(config, FailingWriter(), queue_size=1)


def test_selected_scrapers_only(fake_pages) -> None:
    config = make_config(("a", "https://a.test/"), ("b", "https://b.test/"))
    writer = RecordingWriter()

    results = run_scrapers(config, writer, select_scrapers(config, "b"))

    assert set(results) == {"b"}
    assert [item["title"] for item in writer.items] == ["b 0", "b 1"]


def test_select_scrapers() -> None:
    config = make_config(("a", "https://a.test/"), ("b", "https://b.test/"))
    assert [s.name for s in select_scrapers(config)] == ["a", "b"]
    assert [s.name for s in select_scrapers(config, "a")] == ["a"]
    assert select_scrapers(config, "zzz") == []


class TestItemQueue:
    def test_put_gives_up_once_stopped(self) -> None:
        stop_event = threading.Event()
        items = ItemQueue(maxsize=1, stop_event=stop_event)
        items.put({"title": "first"})
        stop_event.set()

        with pytest.raises(RunCancelled):
            items.put({"title": "second"})

    def test_iteration_ends_at_close(self) -> None:
        items = ItemQueue(maxsize=3)
        items.put({"title": "one"})
        items.put({"title": "two"})
        items.close()
        assert list(items) == [{"title": "one"}, {"title": "two"}]
