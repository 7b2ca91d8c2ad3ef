"""Lazy, path-recording proxy over an arbitrary client object.

Attribute access on the proxy never touches the wrapped client; it only
extends a recorded path::

    tk.chat                          # InterceptedPath(chat)
    tk.chat.completions.create       # InterceptedPath(chat.completions.create)
    tk.chat.completions.create(...)  # resolve against the live client, then intercept

The path is re-resolved on every call, so sub-clients that are created
lazily, or attached after the proxy was built, are picked up. Resolution
uses plain ``getattr``, which yields methods bound to their natural parent
object (never to the proxy).
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Sequence

from tunerkit.errors import MethodNotFoundError
from tunerkit.protocol import (
    DEV_KWARG,
    HEADERS_KWARG,
    CallProtocol,
    PreparedCall,
    call_params,
    is_async_callable,
)
from tunerkit.session import SessionContext, merge_headers


def resolve_path(root: Any, path: Sequence[str]) -> Any:
    """Walk ``path`` from ``root`` and return the callable at its end.

    Mapping containers are walked by key first, so a stored ``"items"`` or
    ``"get"`` entry wins over the mapping's own method of that name.
    """
    target = root
    for segment in path:
        if isinstance(target, Mapping) and segment in target:
            target = target[segment]
            continue
        try:
            target = getattr(target, segment)
        except AttributeError as exc:
            raise MethodNotFoundError(path, missing=segment, original=exc) from exc
    if not callable(target):
        raise MethodNotFoundError(path)
    return target


class CallInterceptor:
    """Turns a recorded path plus call arguments into a protocol run."""

    def __init__(self, target: Any, session: SessionContext, protocol: CallProtocol) -> None:
        self.target = target
        self._session = session
        self._protocol = protocol

    def node(self, name: str) -> "InterceptedPath":
        return InterceptedPath(self, (name,))

    def invoke(self, path: tuple[str, ...], args: tuple[Any, ...], kwargs: dict[str, Any]) -> Any:
        explicit_headers = kwargs.pop(HEADERS_KWARG, None)
        dev = kwargs.pop(DEV_KWARG, None)
        headers = merge_headers(self._session.to_headers(), explicit_headers)

        method = resolve_path(self.target, path)
        call = PreparedCall(
            label=".".join(path),
            method=method,
            args=args,
            kwargs=kwargs,
            params=call_params(args, kwargs),
            headers=headers,
            simulate=self._session.simulate if dev is None else bool(dev),
        )
        if is_async_callable(method):
            return self._protocol.arun(call)
        return self._protocol.run(call)


class InterceptedPath:
    """A not-yet-resolved attribute path. Calling it runs the protocol."""

    __slots__ = ("_tk_interceptor", "_tk_path")

    def __init__(self, interceptor: CallInterceptor, path: tuple[str, ...]) -> None:
        self._tk_interceptor = interceptor
        self._tk_path = path

    def __getattr__(self, name: str) -> "InterceptedPath":
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        return InterceptedPath(self._tk_interceptor, (*self._tk_path, name))

    def __call__(self, *args: Any, **kwargs: Any) -> Any:
        return self._tk_interceptor.invoke(self._tk_path, args, kwargs)

    def __repr__(self) -> str:
        return f"<InterceptedPath {'.'.join(self._tk_path)}>"
