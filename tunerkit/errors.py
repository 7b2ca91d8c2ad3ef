"""Structured error types for tunerkit.

Only three kinds ever reach the caller of a proxied call:

    from tunerkit.errors import MethodNotFoundError, SimulationUnavailableError

    try:
        response = tk.chat.completions.create(model="gpt-4o", messages=msgs)
    except SimulationUnavailableError:
        # Dev mode could not reach the simulator; the real model was NOT called
        ...
    except MethodNotFoundError:
        # Typo in the attribute path, or the sub-client does not exist
        ...

Errors raised by the wrapped client itself pass through untouched.
``LoggingDeliveryError`` is only raised inside background deliveries and is
reported to the ``tunerkit`` logger, never to the caller.
"""

from __future__ import annotations

from typing import Sequence


class TunerkitError(Exception):
    """Base for all tunerkit errors."""

    def __init__(self, message: str, original: Exception | None = None) -> None:
        super().__init__(message)
        self.original = original


class TunerkitConfigurationError(TunerkitError):
    """Client cannot be built from the given configuration (e.g. no API key)."""


class MethodNotFoundError(TunerkitError):
    """Attribute path does not resolve to a callable on the wrapped client."""

    def __init__(
        self,
        path: Sequence[str],
        *,
        missing: str | None = None,
        original: Exception | None = None,
    ) -> None:
        dotted = ".".join(path)
        if missing is not None:
            message = f"{dotted}: wrapped client has no attribute {missing!r}"
        else:
            message = f"{dotted}: resolved value is not callable"
        super().__init__(message, original=original)
        self.path = tuple(path)
        self.missing = missing


class SimulationUnavailableError(TunerkitError):
    """Simulation endpoint unreachable or non-success; real call not attempted."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message, original=original)
        self.status_code = status_code


class StreamDecodeError(TunerkitError):
    """Buffered stream text could not be decoded into structured data."""

    def __init__(
        self,
        message: str,
        *,
        text: str | None = None,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message, original=original)
        self.text = text


class LoggingDeliveryError(TunerkitError):
    """Log endpoint or sink delivery failed. Reported, never surfaced."""

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        original: Exception | None = None,
    ) -> None:
        super().__init__(message, original=original)
        self.status_code = status_code
