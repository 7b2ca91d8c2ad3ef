"""Transparent call interception for arbitrary API clients.

Wrap any client object; every method call made through the wrapper is
tagged with session headers, optionally routed through a dev-mode
simulator, timed, and logged to Tunerkit (plus an optional sink) in the
background. The wrapped client does not change.

Usage:
    from openai import OpenAI
    from tunerkit import TunerkitClient, HeliconeLogger

    tk = TunerkitClient(client=OpenAI(), api_key="tk-...")

    headers = tk.start_session({"test": "Basic API call"}, dataset_id="ds-1")
    response = tk.chat.completions.create(
        model="gpt-4o-mini",
        messages=[{"role": "user", "content": "Hello"}],
    )
    tk.end_session(response.choices[0].message.content, headers)

    # Dev mode: a "test" session asks the simulator before each real call
    tk.start_session({"test": "dry run"}, dataset_id="ds-1", session_type="test")

    # Instrument a known function
    @tk.tool(dev=True)
    def summarize(text: str) -> str:
        ...

    # Before exit
    tk.flush()
"""

from tunerkit.client import TunerkitClient
from tunerkit.config import TunerkitConfig
from tunerkit.delivery import PendingDeliveries, aflush, flush, pending_deliveries
from tunerkit.errors import (
    LoggingDeliveryError,
    MethodNotFoundError,
    SimulationUnavailableError,
    StreamDecodeError,
    TunerkitConfigurationError,
    TunerkitError,
)
from tunerkit.proxy import InterceptedPath, resolve_path
from tunerkit.records import Instant, InvocationRecord, TimingCapture, TimingRecord
from tunerkit.session import (
    SESSION_END,
    SESSION_PATH_HEADER,
    SESSION_START,
    SessionContext,
)
from tunerkit.simulation import SimulationDecision, SimulationGate
from tunerkit.sinks import HeliconeLogger, JsonlLogger, LoggingSink
from tunerkit.streaming import normalize_stream, anormalize_stream

__all__ = [
    "HeliconeLogger",
    "Instant",
    "InterceptedPath",
    "InvocationRecord",
    "JsonlLogger",
    "LoggingDeliveryError",
    "LoggingSink",
    "MethodNotFoundError",
    "PendingDeliveries",
    "SESSION_END",
    "SESSION_PATH_HEADER",
    "SESSION_START",
    "SessionContext",
    "SimulationDecision",
    "SimulationGate",
    "SimulationUnavailableError",
    "StreamDecodeError",
    "TimingCapture",
    "TimingRecord",
    "TunerkitClient",
    "TunerkitConfig",
    "TunerkitConfigurationError",
    "TunerkitError",
    "aflush",
    "anormalize_stream",
    "flush",
    "normalize_stream",
    "pending_deliveries",
    "resolve_path",
]

__version__ = "0.2.0"
