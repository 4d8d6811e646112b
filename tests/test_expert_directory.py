"""Tests for the expert sheet parser, fetcher and TTL directory."""
from __future__ import annotations

import threading
import time

import httpx
import pytest

from engine.errors import DirectoryFetchFailed
from engine.tools.expert_directory import (
    ExpertDirectory,
    ExpertRecord,
    SheetCsvFetcher,
    parse_expert_csv,
    parse_expert_row,
    render_expert_pool,
)
from tests.conftest import SAMPLE_CSV


HEADER = "Last,First,Years,Field1,Field2,Descriptor,Field3,Status,Gender,Geography,Recognizable"


class FakeClock:
    def __init__(self, now: float = 1000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


class CountingFetch:
    def __init__(self, *results) -> None:
        self.results = list(results)
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        result = self.results.pop(0) if len(self.results) > 1 else self.results[0]
        if isinstance(result, Exception):
            raise result
        return result


class TestParseExpertCsv:
    def test_example_row_retained(self):
        experts = parse_expert_csv(HEADER + "\nDoe,Jane,10,Ethics,,Moral philosopher,,0,F,EU,Yes")
        assert experts == [
            ExpertRecord(
                first_name="Jane",
                last_name="Doe",
                years="10",
                field1="Ethics",
                field2="",
                descriptor="Moral philosopher",
                field3="",
                status=0,
                gender="F",
                geography="EU",
                recognizable="Yes",
            )
        ]

    def test_unavailable_status_excluded(self):
        assert parse_expert_csv(HEADER + "\nDoe,Jane,10,Ethics,,Moral philosopher,,1,F,EU,Yes") == []

    def test_sample_filters_status_and_blank_names(self):
        names = [e.full_name for e in parse_expert_csv(SAMPLE_CSV)]
        assert names == ["Jane Doe", "Ada Lovelace"]

    def test_header_only_is_empty(self):
        assert parse_expert_csv(HEADER) == []
        assert parse_expert_csv("") == []

    @pytest.mark.parametrize("status", ["abc", "", " "])
    def test_non_numeric_status_defaults_to_available(self, status):
        experts = parse_expert_csv(f"{HEADER}\nDoe,Jane,10,Ethics,,Phil,,{status},F,EU,Yes")
        assert len(experts) == 1
        assert experts[0].status == 0

    def test_missing_trailing_columns_use_defaults(self):
        expert = parse_expert_row("Doe,Jane")
        assert expert.first_name == "Jane"
        assert expert.years == ""
        assert expert.status == 0
        assert expert.recognizable == "No"

    @pytest.mark.parametrize("raw, expected", [(" 2", 2), ("1x", 1), ("0", 0), ("-3", -3)])
    def test_status_leading_integer(self, raw, expected):
        assert parse_expert_row(f"Doe,Jane,,,,,,{raw}").status == expected

    def test_carriage_returns_are_stripped(self):
        experts = parse_expert_csv(HEADER + "\r\nDoe,Jane,10,Ethics,,Phil,,0,F,EU,Yes\r\n")
        assert experts[0].recognizable == "Yes"


def test_render_expert_pool():
    experts = parse_expert_csv(SAMPLE_CSV)
    assert render_expert_pool(experts) == (
        "Jane Doe (10) - Ethics, Moral philosopher\n"
        "Ada Lovelace (1833-1852) - Mathematics, Analytical pioneer"
    )
    assert render_expert_pool([]) == ""


class TestExpertDirectory:
    def test_fresh_snapshot_skips_fetch(self):
        clock = FakeClock()
        fetch = CountingFetch(SAMPLE_CSV)
        directory = ExpertDirectory(fetch, ttl_seconds=300, clock=clock)

        first = directory.get()
        clock.now += 299
        second = directory.get()

        assert fetch.calls == 1
        assert second is first

    def test_stale_snapshot_is_replaced(self):
        clock = FakeClock()
        fetch = CountingFetch(SAMPLE_CSV, HEADER + "\nTuring,Alan,1936-1954,Computing,,Codebreaker,,0,M,UK,Yes")
        directory = ExpertDirectory(fetch, ttl_seconds=300, clock=clock)

        directory.get()
        clock.now += 300
        experts = directory.get()

        assert fetch.calls == 2
        assert [e.full_name for e in experts] == ["Alan Turing"]
        assert directory.fetched_at == clock.now

    def test_failed_refresh_keeps_previous_snapshot(self):
        clock = FakeClock()
        fetch = CountingFetch(SAMPLE_CSV, DirectoryFetchFailed("boom"))
        directory = ExpertDirectory(fetch, ttl_seconds=300, clock=clock)

        before = directory.get()
        fetched_at = directory.fetched_at
        clock.now += 600
        after = directory.get()

        assert after == before
        assert len(after) == 2
        assert directory.fetched_at == fetched_at

    def test_failure_is_retried_on_next_read(self):
        fetch = CountingFetch(DirectoryFetchFailed("down"), SAMPLE_CSV)
        directory = ExpertDirectory(fetch, clock=FakeClock())

        assert directory.get() == ()
        assert directory.fetched_at is None
        assert len(directory.get()) == 2
        assert fetch.calls == 2

    def test_unexpected_fetch_error_is_absorbed(self):
        directory = ExpertDirectory(CountingFetch(RuntimeError("bad")), clock=FakeClock())
        assert directory.get() == ()

    def test_concurrent_stale_reads_share_one_fetch(self):
        started = threading.Event()
        calls = []

        def slow_fetch() -> str:
            calls.append(1)
            started.set()
            time.sleep(0.2)
            return SAMPLE_CSV

        directory = ExpertDirectory(slow_fetch, clock=FakeClock())
        results = []

        def read():
            results.append(directory.get())

        first = threading.Thread(target=read)
        first.start()
        assert started.wait(timeout=5)
        second = threading.Thread(target=read)
        second.start()
        first.join(timeout=5)
        second.join(timeout=5)

        assert len(calls) == 1
        assert len(results) == 2
        assert results[0] is results[1]

    def test_empty_feed_is_a_valid_snapshot(self):
        clock = FakeClock()
        fetch = CountingFetch(HEADER)
        directory = ExpertDirectory(fetch, clock=clock)

        assert directory.get() == ()
        assert directory.get() == ()
        assert fetch.calls == 1


class TestSheetCsvFetcher:
    def test_returns_body_text(self):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(str(request.url))
            return httpx.Response(200, text=SAMPLE_CSV)

        fetcher = SheetCsvFetcher("https://sheets.example/export?format=csv", transport=httpx.MockTransport(handler))
        assert fetcher() == SAMPLE_CSV
        assert seen == ["https://sheets.example/export?format=csv"]

    def test_http_error_raises_directory_fetch_failed(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(500, text="nope"))
        fetcher = SheetCsvFetcher("https://sheets.example/export", transport=transport)
        with pytest.raises(DirectoryFetchFailed):
            fetcher()

    def test_transport_error_raises_directory_fetch_failed(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("unreachable", request=request)

        fetcher = SheetCsvFetcher("https://sheets.example/export", transport=httpx.MockTransport(handler))
        with pytest.raises(DirectoryFetchFailed, match="unreachable"):
            fetcher()

    def test_directory_survives_fetcher_failure(self):
        transport = httpx.MockTransport(lambda request: httpx.Response(503))
        directory = ExpertDirectory(
            SheetCsvFetcher("https://sheets.example/export", transport=transport),
            clock=FakeClock(),
        )
        assert directory.get() == ()
