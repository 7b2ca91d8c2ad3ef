"""The per-call interception protocol shared by proxied paths and tools.

For one prepared call:

1. open the timing interval;
2. ask the simulation gate, when the call is flagged for simulation;
3. otherwise invoke the real method with the caller's original arguments;
4. drain and parse a streamed result;
5. close the timing interval;
6. hand an :class:`InvocationRecord` to the dispatcher (fire-and-forget);
7. return the exact value that was recorded.

Errors from the real method propagate unchanged and nothing is recorded for
them. Errors while building or dispatching the record are logged and
swallowed.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Callable

from tunerkit.delivery import LogDispatcher
from tunerkit.records import InvocationRecord, TimingCapture, TimingRecord, extract_meta
from tunerkit.simulation import SimulationGate
from tunerkit.streaming import anormalize_stream, normalize_stream, wants_stream

logger = logging.getLogger(__name__)

HEADERS_KWARG = "tunerkit_headers"
DEV_KWARG = "tunerkit_dev"


@dataclass
class PreparedCall:
    """Everything the protocol needs, resolved before the timer starts."""

    label: str
    method: Callable[..., Any]
    args: tuple[Any, ...]
    kwargs: dict[str, Any]
    params: Any
    headers: dict[str, str]
    simulate: bool = False

    @property
    def streaming(self) -> bool:
        return wants_stream(self.params)


def call_params(args: tuple[Any, ...], kwargs: Mapping[str, Any]) -> dict[str, Any]:
    """The params view of a call, as logged and as sent to the simulator.

    ``create(model=..., messages=...)`` -> the kwargs;
    ``create({"model": ...})`` -> that mapping (merged with any kwargs);
    anything else -> ``{"args": [...], **kwargs}``.
    """
    if not args:
        return dict(kwargs)
    if len(args) == 1 and isinstance(args[0], Mapping):
        return {**args[0], **kwargs}
    return {"args": list(args), **kwargs}


def is_async_callable(fn: Any) -> bool:
    """True for coroutine functions, including ones hidden behind ``functools.wraps``."""
    if inspect.iscoroutinefunction(fn):
        return True
    try:
        unwrapped = inspect.unwrap(fn)
    except ValueError:
        unwrapped = fn
    if inspect.iscoroutinefunction(unwrapped):
        return True
    if not inspect.isroutine(fn):
        return inspect.iscoroutinefunction(getattr(fn, "__call__", None))
    return False


class CallProtocol:
    def __init__(self, gate: SimulationGate, dispatcher: LogDispatcher) -> None:
        self._gate = gate
        self._dispatcher = dispatcher

    def run(self, call: PreparedCall) -> Any:
        """Synchronous protocol. Returns a coroutine if the method turns out to be async."""
        timer = TimingCapture()
        if call.simulate:
            decision = self._gate.decide(call.params, call.headers)
            if not decision.run_model:
                self._record(call, decision.response, timer.stop(), simulated=True)
                return decision.response

        result = call.method(*call.args, **call.kwargs)
        if inspect.isawaitable(result):
            return self._finish_async(call, timer, result)

        response = normalize_stream(result) if call.streaming else result
        self._record(call, response, timer.stop())
        return response

    async def arun(self, call: PreparedCall) -> Any:
        timer = TimingCapture()
        if call.simulate:
            decision = await self._gate.adecide(call.params, call.headers)
            if not decision.run_model:
                self._record(call, decision.response, timer.stop(), simulated=True)
                return decision.response

        result = call.method(*call.args, **call.kwargs)
        if inspect.isawaitable(result):
            result = await result
        return await self._finish(call, timer, result)

    async def _finish_async(self, call: PreparedCall, timer: TimingCapture, pending: Any) -> Any:
        return await self._finish(call, timer, await pending)

    async def _finish(self, call: PreparedCall, timer: TimingCapture, result: Any) -> Any:
        response = await anormalize_stream(result) if call.streaming else result
        self._record(call, response, timer.stop())
        return response

    def _record(
        self,
        call: PreparedCall,
        response: Any,
        timing: TimingRecord,
        *,
        simulated: bool = False,
    ) -> None:
        try:
            record = InvocationRecord(
                params=call.params,
                response=response,
                headers=dict(call.headers),
                timing=timing,
                meta=extract_meta(response),
                path=call.label,
                simulated=simulated,
            )
            self._dispatcher.record_call(record)
        except Exception:
            logger.warning("tunerkit: could not record call %s", call.label, exc_info=True)
