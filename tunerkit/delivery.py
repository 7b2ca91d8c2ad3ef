"""Fire-and-forget delivery of call records and session boundary events.

Deliveries never block or alter the value returned to the caller. Each one
is tracked in a process-wide pending set so it can be drained before exit:

- called with a running event loop: scheduled as an ``asyncio`` task on it;
- called without one: run on a small background thread pool, each delivery
  in its own event loop.

Use :func:`flush` (thread deliveries) or :func:`aflush` (both kinds) for
graceful shutdown. Any delivery failure is reported to this module's logger
at WARNING and swallowed.
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import inspect
import logging
import threading
from typing import Any, Awaitable, Callable, Mapping

import httpx

from tunerkit.config import TunerkitConfig
from tunerkit.errors import LoggingDeliveryError
from tunerkit.records import InvocationRecord, Instant, TimingRecord
from tunerkit.session import boundary_headers
from tunerkit.transport import TunerkitHTTP

logger = logging.getLogger(__name__)

DeliveryFactory = Callable[[], Awaitable[None]]


async def _guarded(factory: DeliveryFactory, label: str) -> None:
    try:
        await factory()
    except Exception as exc:
        logger.warning("tunerkit: %s delivery failed: %s", label, exc)
        logger.debug("tunerkit: %s delivery traceback", label, exc_info=True)


class PendingDeliveries:
    """Tracks in-flight deliveries so they can be drained."""

    def __init__(self, max_workers: int = 4) -> None:
        self._max_workers = max_workers
        self._executor: concurrent.futures.ThreadPoolExecutor | None = None
        self._tasks: set[asyncio.Task[None]] = set()
        self._futures: set[concurrent.futures.Future[None]] = set()
        self._lock = threading.Lock()

    @property
    def pending_count(self) -> int:
        with self._lock:
            return len(self._tasks) + len(self._futures)

    def _get_executor(self) -> concurrent.futures.ThreadPoolExecutor:
        with self._lock:
            if self._executor is None:
                self._executor = concurrent.futures.ThreadPoolExecutor(
                    max_workers=self._max_workers,
                    thread_name_prefix="tunerkit-delivery",
                )
            return self._executor

    def submit(self, factory: DeliveryFactory, *, label: str) -> None:
        coro = _guarded(factory, label)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            loop = None

        if loop is not None:
            task = loop.create_task(coro)
            with self._lock:
                self._tasks.add(task)
            task.add_done_callback(self._forget_task)
            return

        try:
            future = self._get_executor().submit(asyncio.run, coro)
        except RuntimeError as exc:
            # Executor already shut down (interpreter exit).
            coro.close()
            logger.warning("tunerkit: %s delivery dropped: %s", label, exc)
            return
        with self._lock:
            self._futures.add(future)
        future.add_done_callback(self._forget_future)

    def _forget_task(self, task: asyncio.Task[None]) -> None:
        with self._lock:
            self._tasks.discard(task)

    def _forget_future(self, future: concurrent.futures.Future[None]) -> None:
        with self._lock:
            self._futures.discard(future)

    def flush(self, timeout: float | None = None) -> bool:
        """Block until thread-pool deliveries finish. True if all completed.

        Event-loop deliveries cannot be waited on synchronously; use
        :meth:`aflush` from async code.
        """
        with self._lock:
            futures = list(self._futures)
            n_tasks = len(self._tasks)
        if n_tasks:
            logger.debug("tunerkit: flush() skips %d event-loop deliveries; use aflush()", n_tasks)
        if not futures:
            return True
        _, not_done = concurrent.futures.wait(futures, timeout=timeout)
        return not not_done

    async def aflush(self, timeout: float | None = None) -> bool:
        """Await deliveries on this loop and on the thread pool. True if all completed."""
        loop = asyncio.get_running_loop()
        with self._lock:
            tasks = [t for t in self._tasks if t.get_loop() is loop]
            futures = list(self._futures)
        waitables: list[Any] = [*tasks, *(asyncio.wrap_future(f) for f in futures)]
        if not waitables:
            return True
        _, pending = await asyncio.wait(waitables, timeout=timeout)
        return not pending


_pending = PendingDeliveries()


def pending_deliveries() -> PendingDeliveries:
    """The process-wide pending set."""
    return _pending


def flush(timeout: float | None = None) -> bool:
    return _pending.flush(timeout)


async def aflush(timeout: float | None = None) -> bool:
    return await _pending.aflush(timeout)


# ---------------------------------------------------------------------------
# Dispatch
# ---------------------------------------------------------------------------


class LogDispatcher:
    """Sends call records to the primary log endpoint and to an optional sink.

    The two destinations are separate deliveries, so a failing sink never
    suppresses the primary log and vice versa.
    """

    def __init__(
        self,
        http: TunerkitHTTP,
        config: TunerkitConfig,
        *,
        sink: Any | None = None,
        pending: PendingDeliveries | None = None,
    ) -> None:
        self._http = http
        self._config = config
        self.sink = sink
        self._pending = pending or _pending

    def record_call(self, record: InvocationRecord) -> None:
        label = record.path or "call"
        if self._config.log_enabled:
            self._pending.submit(lambda: self._send_call(record), label=f"log {label}")
        if self.sink is not None:
            self._pending.submit(lambda: self._send_to_sink(record), label=f"sink {label}")

    def record_boundary(self, marker: str, key: str, payload: Any, headers: Mapping[str, Any]) -> None:
        """Emit a session boundary event (``key`` is ``inputs`` or ``outputs``)."""
        if not self._config.log_enabled:
            return
        body: dict[str, Any] = {key: payload}
        if self._config.routes == "current":
            now = Instant.now()
            body["timing"] = TimingRecord(start=now, end=now).to_dict()
        wire_headers = boundary_headers(headers, marker)
        self._pending.submit(lambda: self._post(body, wire_headers), label=f"session {marker}")

    async def _send_call(self, record: InvocationRecord) -> None:
        if self._config.routes == "legacy":
            body = {"params": record.params, "response": record.response}
        else:
            body = {
                "request": record.params,
                "response": record.response,
                "timing": record.timing.to_dict(),
            }
        await self._post(body, record.headers)

    async def _post(self, body: Any, headers: Mapping[str, str]) -> None:
        path = self._config.logs_path
        try:
            resp = await self._http.apost(path, body, headers)
        except httpx.HTTPError as exc:
            raise LoggingDeliveryError(f"POST {path} failed: {exc}", original=exc) from exc
        if not resp.is_success:
            raise LoggingDeliveryError(
                f"POST {path} returned status {resp.status_code}",
                status_code=resp.status_code,
            )

    async def _send_to_sink(self, record: InvocationRecord) -> None:
        log = self.sink.log
        if inspect.iscoroutinefunction(log):
            await log(record)
            return
        # Sync sinks may block on I/O; keep them off the caller's loop.
        result = await asyncio.to_thread(log, record)
        if inspect.isawaitable(result):
            await result
