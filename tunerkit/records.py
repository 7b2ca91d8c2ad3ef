"""Per-call records: wall-clock timing and the invocation record handed to sinks."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Mapping

from pydantic_core import to_jsonable_python


@dataclass(frozen=True)
class Instant:
    """Wall-clock instant split into whole seconds and a millisecond remainder."""

    seconds: int
    milliseconds: int

    @classmethod
    def now(cls) -> "Instant":
        return cls.from_timestamp(time.time())

    @classmethod
    def from_timestamp(cls, ts: float) -> "Instant":
        total_ms = int(ts * 1000)
        return cls(seconds=total_ms // 1000, milliseconds=total_ms % 1000)

    def to_dict(self) -> dict[str, int]:
        return {"seconds": self.seconds, "milliseconds": self.milliseconds}


@dataclass(frozen=True)
class TimingRecord:
    start: Instant
    end: Instant

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {"startTime": self.start.to_dict(), "endTime": self.end.to_dict()}


class TimingCapture:
    """Open on construction, close with :meth:`stop`.

    For streamed results, stop only after the stream has been fully drained
    so the end instant is the completion signal, not the call initiation.
    """

    def __init__(self) -> None:
        self.start = Instant.now()

    def stop(self) -> TimingRecord:
        return TimingRecord(start=self.start, end=Instant.now())


@dataclass
class InvocationRecord:
    """One intercepted call, as delivered to the log endpoint and sinks.

    ``response`` is always the exact value the caller received, real or
    simulated.
    """

    params: Any
    response: Any
    headers: dict[str, str]
    timing: TimingRecord
    meta: dict[str, Any] | None = None
    path: str | None = None
    simulated: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "params": to_jsonable(self.params),
            "response": to_jsonable(self.response),
            "headers": dict(self.headers),
            "meta": to_jsonable(self.meta),
            "timing": self.timing.to_dict(),
            "simulated": self.simulated,
        }


def to_jsonable(value: Any) -> Any:
    """JSON-safe copy of arbitrary client payloads (pydantic models, dataclasses...)."""
    return to_jsonable_python(value, fallback=str)


def extract_meta(response: Any) -> dict[str, Any] | None:
    """Pull a ``meta`` mapping off a response dict or object, if it has one."""
    if isinstance(response, Mapping):
        meta = response.get("meta")
    else:
        meta = getattr(response, "meta", None)
    return dict(meta) if isinstance(meta, Mapping) else None
