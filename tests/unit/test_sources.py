"""Unit tests for :mod:`propsync.sources`.

Covers:
- :func:`~propsync.sources.records.extract_records` for every payload shape
  the scraping workflow is known to return.
- :func:`~propsync.sources.records.parse_records` key folding and skipping
  of invalid records.
- :class:`~propsync.sources.webhook.WebhookBatchSource` retry behaviour,
  driven through :class:`httpx.MockTransport` (no network I/O).
- :class:`~propsync.sources.file.FileBatchSource`.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import Any

import httpx
import pytest

from propsync.core.exceptions import BatchFetchError, ListingValidationError
from propsync.sources.file import FileBatchSource
from propsync.sources.records import extract_records, parse_records
from propsync.sources.webhook import WebhookBatchSource

_URL = "https://flows.example.com/webhook/scrape"

_RECORD_A = {"link": "https://www.99acres.com/a", "area": "1200 sqft", "source": "99acres"}
_RECORD_B = {"link": "https://vitalspace.in/b", "area": "950 sqft", "source": "VitalSpace"}


# ===========================================================================
# extract_records
# ===========================================================================


class TestExtractRecords:
    def test_bare_array(self) -> None:
        assert extract_records([_RECORD_A, _RECORD_B]) == [_RECORD_A, _RECORD_B]

    def test_bare_array_of_json_wrapped_items(self) -> None:
        payload = [{"json": _RECORD_A}, _RECORD_B]
        assert extract_records(payload) == [_RECORD_A, _RECORD_B]

    def test_success_envelope(self) -> None:
        payload = {"success": True, "data": [_RECORD_A]}
        assert extract_records(payload) == [_RECORD_A]

    def test_json_data_envelope(self) -> None:
        payload = {"json": {"data": [_RECORD_B]}}
        assert extract_records(payload) == [_RECORD_B]

    def test_data_envelope(self) -> None:
        assert extract_records({"data": [_RECORD_A, _RECORD_B]}) == [_RECORD_A, _RECORD_B]

    @pytest.mark.parametrize(
        "payload",
        [None, "ok", 42, {}, {"data": "nope"}, {"json": {"rows": []}}, {"success": False}],
    )
    def test_unrecognised_shapes_yield_empty_batch(self, payload: Any) -> None:
        assert extract_records(payload) == []


# ===========================================================================
# parse_records
# ===========================================================================


class TestParseRecords:
    def test_camel_case_and_row_keys_are_folded(self) -> None:
        records = [
            {"link": "a", "propertyName": "Skyline", "regDate": "2024"},
            {"link": "b", "propertyname": "Lakeview", "property_type": "Villa"},
            {"link": "c", "PropertyType": "Plot", "isNew": True},
        ]

        listings, rejected = parse_records(records)

        assert rejected == []
        assert [item.property_name for item in listings] == ["Skyline", "Lakeview", ""]
        assert listings[0].reg_date == "2024"
        assert listings[1].property_type == "Villa"
        assert listings[2].property_type == "Plot"
        assert listings[2].is_new is True

    def test_unknown_keys_are_ignored(self) -> None:
        listings, _ = parse_records([{"link": "a", "rating": 5, "created_at": "x"}])
        assert listings[0].link == "a"
        assert listings[0].created_at is None

    def test_invalid_records_are_skipped_not_fatal(self) -> None:
        records = [
            _RECORD_A,
            {"area": "100 sqft"},
            {"link": "  "},
            "not-an-object",
            {"link": "c", "source": "all"},
            _RECORD_B,
        ]

        listings, rejected = parse_records(records)

        assert [item.link for item in listings] == [_RECORD_A["link"], _RECORD_B["link"]]
        assert [err.index for err in rejected] == [1, 2, 3, 4]
        assert all(isinstance(err, ListingValidationError) for err in rejected)
        assert "link" in str(rejected[0])
        assert "expected an object" in str(rejected[2])

    def test_skipped_records_are_logged(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level("WARNING"):
            parse_records([{"area": "1"}])
        assert any(
            getattr(record, "event", None) == "LISTING_SKIPPED" for record in caplog.records
        )


# ===========================================================================
# WebhookBatchSource
# ===========================================================================


def _transport(
    responses: list[httpx.Response | Exception],
    calls: list[httpx.Request],
) -> httpx.MockTransport:
    """Serve *responses* in order; an exception instance is raised instead."""

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        item = responses[min(len(calls), len(responses)) - 1]
        if isinstance(item, Exception):
            raise item
        return item

    return httpx.MockTransport(handler)


def _fetch(
    responses: list[httpx.Response | Exception],
    *,
    max_attempts: int = 3,
) -> tuple[Callable[[], Any], list[httpx.Request]]:
    calls: list[httpx.Request] = []
    client = httpx.AsyncClient(transport=_transport(responses, calls))
    source = WebhookBatchSource(_URL, max_attempts=max_attempts, backoff=0, client=client)

    async def run() -> list[Any]:
        try:
            return await source.fetch_batch()
        finally:
            await source.close()
            await client.aclose()

    return run, calls


class TestWebhookBatchSource:
    async def test_posts_and_extracts_records(self) -> None:
        run, calls = _fetch(
            [httpx.Response(200, json={"success": True, "data": [_RECORD_A]})]
        )

        records = await run()

        assert records == [_RECORD_A]
        assert len(calls) == 1
        assert calls[0].method == "POST"
        assert str(calls[0].url) == _URL

    async def test_retries_transient_5xx_then_succeeds(self) -> None:
        run, calls = _fetch(
            [httpx.Response(503), httpx.Response(200, json=[_RECORD_B])]
        )

        assert await run() == [_RECORD_B]
        assert len(calls) == 2

    async def test_persistent_5xx_raises_after_all_attempts(self) -> None:
        run, calls = _fetch([httpx.Response(502)], max_attempts=3)

        with pytest.raises(BatchFetchError, match="502"):
            await run()
        assert len(calls) == 3

    async def test_4xx_fails_without_retry(self) -> None:
        run, calls = _fetch([httpx.Response(404, text="no such webhook")])

        with pytest.raises(BatchFetchError, match="404"):
            await run()
        assert len(calls) == 1

    async def test_transport_error_is_wrapped(self) -> None:
        request = httpx.Request("POST", _URL)
        run, calls = _fetch(
            [httpx.ConnectError("connection refused", request=request)], max_attempts=2
        )

        with pytest.raises(BatchFetchError, match="network error") as excinfo:
            await run()
        assert len(calls) == 2
        assert isinstance(excinfo.value.__cause__, httpx.ConnectError)

    async def test_non_json_body_raises(self) -> None:
        run, _ = _fetch([httpx.Response(200, text="<html>oops</html>")])

        with pytest.raises(BatchFetchError, match="not JSON"):
            await run()

    async def test_owned_client_is_closed(self) -> None:
        source = WebhookBatchSource(_URL)
        async with source:
            client = source._ensure_client()  # noqa: SLF001
        assert client.is_closed

    @pytest.mark.parametrize("kwargs", [{"url": ""}, {"url": _URL, "max_attempts": 0}])
    def test_invalid_construction(self, kwargs: dict[str, Any]) -> None:
        with pytest.raises(ValueError):
            WebhookBatchSource(**kwargs)


# ===========================================================================
# FileBatchSource
# ===========================================================================


class TestFileBatchSource:
    async def test_reads_any_supported_shape(self, tmp_path: Path) -> None:
        path = tmp_path / "batch.json"
        path.write_text(json.dumps({"json": {"data": [_RECORD_A]}}), encoding="utf-8")

        async with FileBatchSource(path) as source:
            assert await source.fetch_batch() == [_RECORD_A]

    async def test_missing_file_raises(self, tmp_path: Path) -> None:
        source = FileBatchSource(tmp_path / "absent.json")
        with pytest.raises(BatchFetchError, match="cannot read"):
            await source.fetch_batch()

    async def test_invalid_json_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "broken.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(BatchFetchError, match="invalid JSON"):
            await FileBatchSource(path).fetch_batch()
