"""HTTP transport to the Tunerkit backend.

A fresh ``httpx`` client is opened per request. Deliveries may run on a
worker thread inside their own event loop, so no client is shared across
loops. No retries and no extra timeouts are layered on top of httpx's
defaults.
"""

from __future__ import annotations

from typing import Any, Mapping

import httpx

from tunerkit.records import to_jsonable


class TunerkitHTTP:
    """Authenticated JSON POSTs against one base URL.

    Args:
        base_url: Origin of the backend.
        api_key: Sent as ``Authorization: Bearer <api_key>``.
        transport: Optional httpx transport used for both sync and async
            requests (e.g. ``httpx.MockTransport`` in tests).
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        transport: Any | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._transport = transport

    def _headers(self, extra: Mapping[str, str] | None) -> dict[str, str]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self._api_key}",
        }
        if extra:
            headers.update(extra)
        return headers

    def post(
        self,
        path: str,
        body: Any,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        with httpx.Client(base_url=self.base_url, transport=self._transport) as client:
            return client.post(path, json=to_jsonable(body), headers=self._headers(headers))

    async def apost(
        self,
        path: str,
        body: Any,
        headers: Mapping[str, str] | None = None,
    ) -> httpx.Response:
        async with httpx.AsyncClient(base_url=self.base_url, transport=self._transport) as client:
            return await client.post(path, json=to_jsonable(body), headers=self._headers(headers))
