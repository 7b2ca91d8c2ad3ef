"""Tests for tunerkit.sinks: Helicone envelope and JSONL sink."""

from __future__ import annotations

import json
import logging
from types import SimpleNamespace

import httpx
import pytest

from tunerkit import HeliconeLogger, Instant, InvocationRecord, JsonlLogger, LoggingSink, TimingRecord
from tunerkit.sinks import build_helicone_envelope


def _record(**overrides) -> InvocationRecord:
    fields = dict(
        params={"model": "m", "messages": []},
        response={"id": "r-1", "headers": {"x-request-id": "abc"}},
        headers={"Tunerkit-Session-Id": "s"},
        timing=TimingRecord(start=Instant(100, 5), end=Instant(101, 250)),
        meta={"status": "201", "team": "ml"},
    )
    fields.update(overrides)
    return InvocationRecord(**fields)


class TestEnvelope:
    def test_maps_record(self):
        data = build_helicone_envelope(_record()).model_dump(by_alias=True)
        assert data["providerRequest"] == {
            "url": "custom-model-nopath",
            "json": {"model": "m", "messages": []},
            "meta": {"status": "201", "team": "ml"},
        }
        assert data["providerResponse"]["status"] == 201
        assert data["providerResponse"]["headers"] == {"x-request-id": "abc"}
        assert data["providerResponse"]["json"]["id"] == "r-1"
        assert data["timing"] == {
            "startTime": {"seconds": 100, "milliseconds": 5},
            "endTime": {"seconds": 101, "milliseconds": 250},
        }

    def test_defaults_without_meta(self):
        data = build_helicone_envelope(_record(meta=None, response="plain")).model_dump(by_alias=True)
        assert data["providerResponse"]["status"] == 200
        assert data["providerResponse"]["headers"] == {}
        assert data["providerRequest"]["meta"] == {}

    def test_non_numeric_status(self):
        data = build_helicone_envelope(_record(meta={"status": "ok"})).model_dump(by_alias=True)
        assert data["providerResponse"]["status"] == 200

    def test_headers_from_response_object(self):
        response = SimpleNamespace(headers={"h": 1})
        data = build_helicone_envelope(_record(response=response)).model_dump(by_alias=True)
        assert data["providerResponse"]["headers"] == {"h": "1"}


class TestHeliconeLogger:
    def test_satisfies_protocol(self):
        assert isinstance(HeliconeLogger("k", "https://h.test"), LoggingSink)
        assert isinstance(JsonlLogger("/tmp/x.jsonl"), LoggingSink)

    @pytest.mark.asyncio
    async def test_posts_trace_log(self):
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200)

        sink = HeliconeLogger("sk-helicone", "https://h.test", transport=httpx.MockTransport(handler))
        await sink.log(_record())

        (req,) = seen
        assert req.url == "https://h.test/trace/log"
        assert req.headers["Authorization"] == "Bearer sk-helicone"
        assert req.headers["Tunerkit-Session-Id"] == "s"
        body = json.loads(req.content)
        assert set(body) == {"providerRequest", "providerResponse", "timing"}

    @pytest.mark.asyncio
    async def test_missing_params_reported(self, caplog):
        seen: list[httpx.Request] = []
        sink = HeliconeLogger(
            "k", "https://h.test",
            transport=httpx.MockTransport(lambda r: seen.append(r) or httpx.Response(200)),
        )
        with caplog.at_level(logging.ERROR, logger="tunerkit.sinks"):
            await sink.log(_record(params=None))
        assert seen == []
        assert "Request is not registered." in caplog.text

    @pytest.mark.asyncio
    async def test_transport_failure_swallowed(self, caplog):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("down", request=request)

        sink = HeliconeLogger("k", "https://h.test", transport=httpx.MockTransport(handler))
        await sink.log(_record())
        assert "Error making request to Helicone" in caplog.text

    @pytest.mark.asyncio
    async def test_error_status_reported(self, caplog):
        sink = HeliconeLogger("k", "https://h.test", transport=httpx.MockTransport(lambda r: httpx.Response(500)))
        await sink.log(_record())
        assert "status 500" in caplog.text

    def test_attached_to_client(self, make_tk, fake_client, pending):
        seen: list[httpx.Request] = []
        sink = HeliconeLogger(
            "k", "https://h.test",
            transport=httpx.MockTransport(lambda r: seen.append(r) or httpx.Response(200)),
        )
        tk = make_tk(fake_client, logger=sink)
        assert tk.logger is sink
        tk.chat.completions.create(model="m")
        pending.flush(5)
        assert [r.url.path for r in seen] == ["/trace/log"]


class TestJsonlLogger:
    def test_appends_lines(self, tmp_path):
        path = tmp_path / "logs" / "calls.jsonl"
        sink = JsonlLogger(path)
        sink.log(_record())
        sink.log(_record(response={"id": "r-2"}))
        lines = [json.loads(line) for line in path.read_text().splitlines()]
        assert [line["response"]["id"] for line in lines] == ["r-1", "r-2"]
        assert lines[0]["timing"]["startTime"] == {"seconds": 100, "milliseconds": 5}

    def test_never_raises(self, tmp_path, caplog):
        blocker = tmp_path / "file"
        blocker.write_text("x")
        sink = JsonlLogger(blocker / "nested" / "calls.jsonl")
        sink.log(_record())
        assert "JsonlLogger failed" in caplog.text
