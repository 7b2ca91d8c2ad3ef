"""Instrumenting a single, known function.

Same protocol as proxied paths, with trivial resolution: the function is
given directly. Simulation is triggered only by the decorator's ``dev``
flag, never by the session type.
"""

from __future__ import annotations

import functools
import inspect
from typing import Any, Callable, TypeVar

from tunerkit.protocol import HEADERS_KWARG, CallProtocol, PreparedCall, call_params, is_async_callable
from tunerkit.session import SessionContext, merge_headers

F = TypeVar("F", bound=Callable[..., Any])


def _bound_params(
    sig: inspect.Signature | None,
    args: tuple[Any, ...],
    kwargs: dict[str, Any],
) -> dict[str, Any]:
    if sig is None:
        return call_params(args, kwargs)
    try:
        bound = sig.bind(*args, **kwargs)
    except TypeError:
        # The real call will raise the same TypeError.
        return call_params(args, kwargs)
    params = dict(bound.arguments)
    for name in ("self", "cls"):
        params.pop(name, None)
    return params


def instrument(
    fn: F,
    *,
    protocol: CallProtocol,
    session: SessionContext,
    dev: bool = False,
) -> F:
    """Wrap ``fn`` so every call goes through the interception protocol.

    The wrapper accepts an extra ``tunerkit_headers=`` keyword that is
    merged over the session headers and not forwarded to ``fn``.
    """
    try:
        sig: inspect.Signature | None = inspect.signature(fn)
    except (TypeError, ValueError):
        sig = None
    label = getattr(fn, "__qualname__", None) or getattr(fn, "__name__", repr(fn))

    def _prepare(args: tuple[Any, ...], kwargs: dict[str, Any]) -> PreparedCall:
        explicit_headers = kwargs.pop(HEADERS_KWARG, None)
        return PreparedCall(
            label=label,
            method=fn,
            args=args,
            kwargs=kwargs,
            params=_bound_params(sig, args, kwargs),
            headers=merge_headers(session.to_headers(), explicit_headers),
            simulate=dev,
        )

    if is_async_callable(fn):

        @functools.wraps(fn)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            return await protocol.arun(_prepare(args, kwargs))

        return async_wrapper  # type: ignore[return-value]

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        return protocol.run(_prepare(args, kwargs))

    return wrapper  # type: ignore[return-value]
