"""Tests for output writers."""

import io
import json
from datetime import datetime, timedelta, timezone
from zoneinfo import ZoneInfo

import httpx
import pytest

from gleaner.common.exceptions import WriterError
from gleaner.data_types import WriterConfig, WriterType
from gleaner.output.api_writer import BATCH_SIZE, APIWriter
from gleaner.output.stdout_writer import StdoutWriter
from gleaner.output.writer import dumps, make_writer

API_URI = "https://api.example.com/events"
BERLIN = ZoneInfo("Europe/Berlin")


class TestDumps:
    def test_html_and_non_ascii_are_not_escaped(self) -> None:
        encoded = dumps({"title": "Rock & Roll <live> in Zürich"})
        assert encoded == '{"title": "Rock & Roll <live> in Zürich"}'

    def test_datetimes_are_iso_formatted(self) -> None:
        date = datetime(2026, 4, 12, 18, 30, tzinfo=BERLIN)
        assert dumps({"date": date}) == '{"date": "2026-04-12T18:30:00+02:00"}'

    def test_unsupported_values_fail(self) -> None:
        with pytest.raises(TypeError):
            dumps({"value": object()})


class TestStdoutWriter:
    def test_writes_one_indented_object_per_item(self) -> None:
        stream = io.StringIO()
        StdoutWriter(stream).write(
            [{"title": "A & B"}, {"title": "C", "url": "https://x.test/?a=1&b=2"}]
        )
        output = stream.getvalue()
        assert output == (
            '{\n  "title": "A & B"\n}\n'
            '{\n  "title": "C",\n  "url": "https://x.test/?a=1&b=2"\n}\n'
        )

    def test_unencodable_item_is_skipped(self, caplog) -> None:
        stream = io.StringIO()
        StdoutWriter(stream).write([{"bad": object()}, {"title": "ok"}])
        assert json.loads(stream.getvalue()) == {"title": "ok"}
        assert "StdoutWriter ERROR" in caplog.text


class RecordingAPI:
    """Mock event API recording every request it receives."""

    def __init__(self, delete_status: int = 200, post_status: int = 201) -> None:
        self.requests: list[httpx.Request] = []
        self.delete_status = delete_status
        self.post_status = post_status

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.method == "DELETE":
            return httpx.Response(self.delete_status)
        return httpx.Response(self.post_status, text="stored")

    @property
    def posted_batches(self) -> list[list[dict]]:
        return [json.loads(r.content) for r in self.requests if r.method == "POST"]

    @property
    def deletes(self) -> list[httpx.Request]:
        return [r for r in self.requests if r.method == "DELETE"]


def api_writer(api: RecordingAPI) -> APIWriter:
    config = WriterConfig(type=WriterType.API, uri=API_URI, user="u", password="p")
    return APIWriter(config, transport=httpx.MockTransport(api))


def event(source: str, day: int, title: str = "show") -> dict:
    return {
        "sourceUrl": source,
        "date": datetime(2026, 4, 1, 20, 0, tzinfo=BERLIN) + timedelta(days=day),
        "title": title,
    }


class TestAPIWriter:
    def test_deletes_each_source_once_before_posting(self) -> None:
        api = RecordingAPI()
        items = [
            event("https://a.test", 0),
            event("https://a.test", 1),
            event("https://b.test", 3),
        ]
        api_writer(api).write(items)

        assert [r.method for r in api.requests] == ["DELETE", "DELETE", "POST"]
        first, second = api.deletes
        assert first.url.params["sourceUrl"] == "https://a.test"
        assert first.url.params["datetime"] == "2026-04-01 18:00"
        assert second.url.params["sourceUrl"] == "https://b.test"
        assert second.url.params["datetime"] == "2026-04-04 18:00"

    def test_uses_basic_auth(self) -> None:
        api = RecordingAPI()
        api_writer(api).write([event("https://a.test", 0)])
        assert all(
            r.headers["Authorization"].startswith("Basic ") for r in api.requests
        )

    def test_posts_in_batches(self) -> None:
        api = RecordingAPI()
        items = [event("https://a.test", 0, f"show {i}") for i in range(BATCH_SIZE + 5)]
        api_writer(api).write(items)

        batches = api.posted_batches
        assert [len(b) for b in batches] == [BATCH_SIZE, 5]
        assert batches[0][0]["date"] == "2026-04-01T20:00:00+02:00"
        assert batches[1][-1]["title"] == f"show {BATCH_SIZE + 4}"

    def test_no_items_sends_nothing(self) -> None:
        api = RecordingAPI()
        api_writer(api).write([])
        assert api.requests == []

    def test_rejected_post_is_fatal(self) -> None:
        api = RecordingAPI(post_status=500)
        with pytest.raises(WriterError, match="Status Code: 500"):
            api_writer(api).write([event("https://a.test", 0)])

    def test_rejected_delete_is_fatal(self) -> None:
        api = RecordingAPI(delete_status=403)
        with pytest.raises(WriterError, match="deleting"):
            api_writer(api).write([event("https://a.test", 0)])
        assert api.posted_batches == []

    def test_item_without_source_is_fatal(self) -> None:
        with pytest.raises(WriterError, match="sourceUrl"):
            api_writer(RecordingAPI()).write([{"title": "x"}])

    def test_item_without_timestamp_is_fatal(self) -> None:
        item = {"sourceUrl": "https://a.test", "date": "tomorrow"}
        with pytest.raises(WriterError, match="not a timestamp"):
            api_writer(RecordingAPI()).write([item])

    def test_network_error_is_fatal(self) -> None:
        def refuse(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        config = WriterConfig(type=WriterType.API, uri=API_URI)
        writer = APIWriter(config, transport=httpx.MockTransport(refuse))
        with pytest.raises(WriterError, match="connection refused"):
            writer.write([event("https://a.test", 0)])

    def test_date_is_converted_to_utc(self) -> None:
        api = RecordingAPI()
        item = event("https://a.test", 0)
        item["date"] = datetime(2026, 1, 1, 0, 30, tzinfo=timezone(timedelta(hours=2)))
        api_writer(api).write([item])
        assert api.deletes[0].url.params["datetime"] == "2025-12-31 22:30"


def test_make_writer() -> None:
    assert isinstance(make_writer(WriterConfig()), StdoutWriter)
    assert isinstance(
        make_writer(WriterConfig(type=WriterType.API, uri=API_URI)), APIWriter
    )
