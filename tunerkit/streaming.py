"""Stream normalization.

When a call is made with ``stream=True`` the wrapped client hands back an
iterator (or async iterator) of text/byte chunks instead of a value. The
normalizer drains it completely, joins the chunks in arrival order and
parses the result as JSON, so the caller and the log record both get the
same structured value a non-streaming call would have produced.

Nothing is forwarded to the caller before the stream completes.
"""

from __future__ import annotations

import codecs
import json
from collections.abc import AsyncIterable, Iterable, Mapping
from typing import Any

from tunerkit.errors import StreamDecodeError


def wants_stream(params: Any) -> bool:
    return isinstance(params, Mapping) and params.get("stream") is True


class ChunkBuffer:
    """Accumulates chunks; byte chunks go through an incremental UTF-8 decoder
    so a multi-byte character split across chunk boundaries survives."""

    def __init__(self) -> None:
        self._parts: list[str] = []
        self._decoder = codecs.getincrementaldecoder("utf-8")()

    def feed(self, chunk: Any) -> None:
        if isinstance(chunk, str):
            self._parts.append(chunk)
        elif isinstance(chunk, (bytes, bytearray, memoryview)):
            try:
                self._parts.append(self._decoder.decode(bytes(chunk)))
            except UnicodeDecodeError as exc:
                raise StreamDecodeError(f"Stream chunk is not valid UTF-8: {exc}", original=exc) from exc
        else:
            raise StreamDecodeError(
                f"Unsupported stream chunk type {type(chunk).__name__}; expected str or bytes"
            )

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def finish(self) -> Any:
        try:
            self._parts.append(self._decoder.decode(b"", final=True))
        except UnicodeDecodeError as exc:
            raise StreamDecodeError(
                "Stream ended inside a multi-byte character", text=self.text, original=exc,
            ) from exc
        text = self.text
        try:
            return json.loads(text)
        except json.JSONDecodeError as exc:
            raise StreamDecodeError(
                f"Streamed text is not valid JSON: {exc}", text=text, original=exc,
            ) from exc


def _reject_non_stream(result: Any) -> None:
    if isinstance(result, Mapping):
        raise StreamDecodeError("stream=True was requested but the call returned a mapping")


def normalize_stream(result: Any) -> Any:
    """Drain a sync chunk iterable and parse it."""
    _reject_non_stream(result)
    buffer = ChunkBuffer()
    if isinstance(result, (str, bytes, bytearray)):
        buffer.feed(result)
    elif isinstance(result, Iterable):
        for chunk in result:
            buffer.feed(chunk)
    else:
        raise StreamDecodeError(
            f"stream=True was requested but the call returned {type(result).__name__}, not a chunk iterable"
        )
    return buffer.finish()


async def anormalize_stream(result: Any) -> Any:
    """Drain a sync or async chunk iterable and parse it."""
    if not isinstance(result, AsyncIterable):
        return normalize_stream(result)
    buffer = ChunkBuffer()
    async for chunk in result:
        buffer.feed(chunk)
    return buffer.finish()
