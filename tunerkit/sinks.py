"""Pluggable logging sinks.

A sink is anything with ``log(record)``; it may be sync or return an
awaitable. Sinks run as background deliveries and must not raise past
their own boundary.

    from tunerkit import TunerkitClient, HeliconeLogger

    tk = TunerkitClient(
        client=openai_client,
        api_key="tk-...",
        logger=HeliconeLogger("sk-helicone-...", "https://api.hconeai.com"),
    )
"""

from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Any, Awaitable, Mapping, Protocol, runtime_checkable

from pydantic import BaseModel, Field

from tunerkit.records import InvocationRecord, to_jsonable
from tunerkit.transport import TunerkitHTTP

logger = logging.getLogger(__name__)


@runtime_checkable
class LoggingSink(Protocol):
    """Receives one finished :class:`InvocationRecord` per intercepted call."""

    def log(self, record: InvocationRecord) -> Awaitable[None] | None: ...


# ---------------------------------------------------------------------------
# Helicone
# ---------------------------------------------------------------------------


class ProviderRequest(BaseModel):
    url: str = "custom-model-nopath"
    json_body: Any = Field(default=None, serialization_alias="json")
    meta: dict[str, str] = Field(default_factory=dict)


class ProviderResponse(BaseModel):
    json_body: Any = Field(default=None, serialization_alias="json")
    status: int = 200
    headers: dict[str, str] = Field(default_factory=dict)


class TimingEnvelope(BaseModel):
    startTime: dict[str, int]
    endTime: dict[str, int]


class HeliconeLogEnvelope(BaseModel):
    providerRequest: ProviderRequest
    providerResponse: ProviderResponse
    timing: TimingEnvelope


def _response_headers(response: Any) -> dict[str, str]:
    if isinstance(response, Mapping):
        raw = response.get("headers")
    else:
        raw = getattr(response, "headers", None)
    if isinstance(raw, Mapping):
        return {str(k): str(v) for k, v in raw.items()}
    return {}


def _status_from_meta(meta: Mapping[str, Any] | None) -> int:
    raw = (meta or {}).get("status", 200)
    try:
        return int(raw)
    except (TypeError, ValueError):
        logger.debug("Ignoring non-numeric meta status %r", raw)
        return 200


def build_helicone_envelope(record: InvocationRecord) -> HeliconeLogEnvelope:
    meta = {str(k): str(v) for k, v in (record.meta or {}).items()}
    return HeliconeLogEnvelope(
        providerRequest=ProviderRequest(json_body=to_jsonable(record.params), meta=meta),
        providerResponse=ProviderResponse(
            json_body=to_jsonable(record.response),
            status=_status_from_meta(record.meta),
            headers=_response_headers(record.response),
        ),
        timing=TimingEnvelope(**record.timing.to_dict()),
    )


class HeliconeLogger:
    """Forwards records to Helicone's custom-model ``/trace/log`` endpoint.

    Args:
        api_key: Helicone API key (sent as a Bearer token).
        base_url: Helicone API origin, e.g. ``https://api.hconeai.com``.
        transport: Optional httpx transport, mainly for tests.
    """

    def __init__(self, api_key: str, base_url: str, *, transport: Any | None = None) -> None:
        self._http = TunerkitHTTP(base_url, api_key, transport=transport)

    async def log(self, record: InvocationRecord) -> None:
        if record.params is None:
            logger.error("Request is not registered.")
            return
        try:
            envelope = build_helicone_envelope(record)
            resp = await self._http.apost(
                "/trace/log",
                envelope.model_dump(by_alias=True),
                record.headers,
            )
            if not resp.is_success:
                logger.error("Helicone log endpoint returned status %d", resp.status_code)
        except Exception as exc:
            logger.error("Error making request to Helicone log endpoint: %s", exc)


# ---------------------------------------------------------------------------
# Local JSONL
# ---------------------------------------------------------------------------


class JsonlLogger:
    """Appends one JSON line per record to a local file. Never raises."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()

    def log(self, record: InvocationRecord) -> None:
        try:
            line = json.dumps(record.to_dict(), default=str)
            with self._lock:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "a") as f:
                    f.write(line + "\n")
        except Exception:
            # Never break calls for logging
            logger.warning("JsonlLogger failed to write %s", self.path, exc_info=True)
