"""The user-facing client: a drop-in stand-in for any wrapped client object.

    tk = TunerkitClient(client=OpenAI(), api_key="tk-...")

    headers = tk.start_session({"question": q}, dataset_id="ds-1")
    response = tk.chat.completions.create(model="gpt-4o", messages=msgs)
    tk.end_session(response.choices[0].message.content, headers)

Any attribute ``TunerkitClient`` does not define itself is treated as the
start of a method path on the wrapped client. Names defined here
(``start_session``, ``tool``, ``flush``, ...) shadow same-named attributes of
the wrapped client; use ``tk.client`` to reach those directly.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, TypeVar

from tunerkit import delivery
from tunerkit.config import TunerkitConfig
from tunerkit.delivery import LogDispatcher, PendingDeliveries
from tunerkit.errors import TunerkitConfigurationError
from tunerkit.protocol import CallProtocol
from tunerkit.proxy import CallInterceptor, InterceptedPath
from tunerkit.session import SESSION_END, SESSION_START, SessionContext
from tunerkit.simulation import SimulationGate
from tunerkit.tool import instrument
from tunerkit.transport import TunerkitHTTP

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])


class TunerkitClient:
    """Intercepts every method call made through it on ``client``.

    Args:
        client: The object to wrap. Its shape is not inspected up front.
        api_key: Tunerkit API key. Falls back to ``TUNERKIT_API_KEY``.
        logger: Optional logging sink (see :mod:`tunerkit.sinks`).
        base_url: Overrides the configured backend origin.
        config: Full config; defaults to :meth:`TunerkitConfig.from_env`.
        transport: Optional httpx transport for backend requests.
        pending: Pending-delivery set; defaults to the process-wide one.

    Raises:
        TunerkitConfigurationError: No API key was given or configured.
    """

    def __init__(
        self,
        client: Any,
        api_key: str | None = None,
        *,
        logger: Any | None = None,
        base_url: str | None = None,
        config: TunerkitConfig | None = None,
        transport: Any | None = None,
        pending: PendingDeliveries | None = None,
    ) -> None:
        cfg = config or TunerkitConfig.from_env()
        key = api_key or cfg.api_key
        if not key:
            raise TunerkitConfigurationError(
                "No Tunerkit API key: pass api_key= or set TUNERKIT_API_KEY"
            )
        self.client = client
        self.config = cfg
        self.session_context = SessionContext()
        self._pending = pending or delivery.pending_deliveries()

        http = TunerkitHTTP(base_url or cfg.base_url, key, transport=transport)
        self._dispatcher = LogDispatcher(http, cfg, sink=logger, pending=self._pending)
        self._protocol = CallProtocol(SimulationGate(http, cfg.simulation_path), self._dispatcher)
        self._interceptor = CallInterceptor(client, self.session_context, self._protocol)

    @property
    def logger(self) -> Any | None:
        """The attached logging sink, if any."""
        return self._dispatcher.sink

    def __getattr__(self, name: str) -> InterceptedPath:
        if name.startswith("__") and name.endswith("__"):
            raise AttributeError(name)
        if name in ("_interceptor", "_dispatcher", "_protocol", "_pending"):
            # Not yet set: __init__ failed part-way.
            raise AttributeError(name)
        return self._interceptor.node(name)

    def __repr__(self) -> str:
        return f"TunerkitClient(client={self.client!r}, base_url={self.config.base_url!r})"

    # -- sessions ----------------------------------------------------------

    def start_session(
        self,
        inputs: Any,
        dataset_id: str,
        *,
        record_id: str | None = None,
        session_id: str | None = None,
        parent_id: str | None = None,
        session_type: str = "real",
    ) -> dict[str, str]:
        """Open a session and emit its ``__START__`` boundary event.

        Missing session/record ids are generated. A ``"test"`` session sends
        every proxied call through the simulation gate.

        Returns:
            The session's correlation headers; keep them for :meth:`end_session`.
        """
        self.session_context.start(
            dataset_id,
            record_id=record_id,
            session_id=session_id,
            parent_id=parent_id,
            session_type=session_type,
        )
        headers = self.session_context.to_headers()
        logger.debug("tunerkit: session %s started (%s)", self.session_context.session_id, session_type)
        self._dispatcher.record_boundary(SESSION_START, "inputs", inputs, headers)
        return headers

    def end_session(self, outputs: Any, headers: dict[str, str] | None = None) -> None:
        """Emit the ``__END__`` boundary event for the session ``headers`` identify.

        ``headers`` may belong to an earlier session than the active one.
        When omitted, the active session's headers are used.
        """
        if headers is None:
            headers = self.session_context.to_headers()
        self._dispatcher.record_boundary(SESSION_END, "outputs", outputs, headers)

    def set_session(self, session_id: str, session_name: str | None = None) -> None:
        """Overwrite the session id/name only. Emits no boundary event."""
        self.session_context.assign(session_id, session_name)

    # -- annotated functions ----------------------------------------------

    def tool(self, dev: bool = False) -> Callable[[F], F]:
        """Decorator instrumenting a known function (sync or async).

        Example::

            @tk.tool(dev=True)
            def generate_text(prompt: str) -> str:
                ...
        """

        def decorator(fn: F) -> F:
            return instrument(fn, protocol=self._protocol, session=self.session_context, dev=dev)

        return decorator

    # -- draining ----------------------------------------------------------

    def flush(self, timeout: float | None = None) -> bool:
        """Wait for background log deliveries made without an event loop."""
        return self._pending.flush(timeout)

    async def aflush(self, timeout: float | None = None) -> bool:
        """Await all background log deliveries."""
        return await self._pending.aflush(timeout)

    def __enter__(self) -> "TunerkitClient":
        return self

    def __exit__(self, *exc: Any) -> None:
        self.flush()

    async def __aenter__(self) -> "TunerkitClient":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aflush()
