"""Shared fakes: a scripted Tunerkit backend and small wrapped clients."""

from __future__ import annotations

import json
import threading
from typing import Any

import httpx
import pytest

from tunerkit import PendingDeliveries, TunerkitClient, TunerkitConfig

BASE_URL = "https://tunerkit.test"
API_KEY = "tk-test"


class FakeBackend:
    """Records every request; answers log, simulation and Helicone routes."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.simulation: dict[str, Any] = {"run_model": True}
        self.simulation_status = 200
        self.log_status = 200
        self.fail_logs = False
        self._lock = threading.Lock()

    def handler(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            self.requests.append(request)
        path = request.url.path
        if path in ("/api/completions", "/v1/dev/completions"):
            return httpx.Response(self.simulation_status, json=self.simulation)
        if path in ("/api/logs", "/logs", "/trace/log"):
            if self.fail_logs:
                raise httpx.ConnectError("backend down", request=request)
            return httpx.Response(self.log_status, json={"ok": True})
        return httpx.Response(404)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    def sent(self, path: str) -> list[httpx.Request]:
        with self._lock:
            return [r for r in self.requests if r.url.path == path]

    def bodies(self, path: str) -> list[Any]:
        return [json.loads(r.content) for r in self.sent(path)]


class Completions:
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if kwargs.get("stream") is True:
            return iter(['{"a":1,', '"b":2}'])
        return {"id": "cmpl-1", "model": kwargs.get("model"), "meta": {"status": "201"}}


class AsyncCompletions:
    def __init__(self) -> None:
        self.calls: list[dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.calls.append(kwargs)
        if kwargs.get("stream") is True:
            return _achunks(['{"a":1,', '"b":2}'])
        return {"id": "acmpl-1", "model": kwargs.get("model")}


async def _achunks(chunks: list[str]) -> Any:
    for chunk in chunks:
        yield chunk


class Chat:
    def __init__(self, completions: Any) -> None:
        self.completions = completions


class FakeClient:
    def __init__(self) -> None:
        self.chat = Chat(Completions())


class FakeAsyncClient:
    def __init__(self) -> None:
        self.chat = Chat(AsyncCompletions())


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture
def pending() -> PendingDeliveries:
    return PendingDeliveries(max_workers=2)


@pytest.fixture
def config() -> TunerkitConfig:
    return TunerkitConfig(api_key=API_KEY, base_url=BASE_URL)


@pytest.fixture
def make_tk(backend: FakeBackend, pending: PendingDeliveries, config: TunerkitConfig):
    """Factory building a TunerkitClient wired to the fake backend."""

    def _make(client: Any, **kwargs: Any) -> TunerkitClient:
        kwargs.setdefault("config", config)
        return TunerkitClient(
            client=client,
            api_key=API_KEY,
            transport=backend.transport,
            pending=pending,
            **kwargs,
        )

    return _make


@pytest.fixture
def fake_client() -> FakeClient:
    return FakeClient()


@pytest.fixture
def fake_async_client() -> FakeAsyncClient:
    return FakeAsyncClient()
