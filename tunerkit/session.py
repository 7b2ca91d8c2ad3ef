"""Session correlation state and its wire headers.

One ``SessionContext`` is created empty per ``TunerkitClient`` and shared by
reference with every call site of that client. It is mutated only by
``start_session`` / ``set_session`` and is never cleared.

There is no lock. A session change racing with in-flight calls decides
non-deterministically which headers a late call picks up, so set the
session before issuing a batch of correlated calls.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from typing import Any, Literal, Mapping

SessionType = Literal["real", "test"]
SESSION_TYPES: tuple[str, ...] = ("real", "test")

DATASET_ID_HEADER = "Tunerkit-Dataset-Id"
SESSION_ID_HEADER = "Tunerkit-Session-Id"
RECORD_ID_HEADER = "Tunerkit-Record-Id"
PARENT_ID_HEADER = "Tunerkit-Session-Parent-Id"
SESSION_TYPE_HEADER = "Tunerkit-Session-Type"
SESSION_NAME_HEADER = "Tunerkit-Session-Name"
SESSION_PATH_HEADER = "Tunerkit-Session-Path"

SESSION_START = "__START__"
SESSION_END = "__END__"


def new_id() -> str:
    return str(uuid.uuid4())


@dataclass
class SessionContext:
    """Correlation identifiers attached to every outgoing record."""

    dataset_id: str | None = None
    session_id: str | None = None
    record_id: str | None = None
    parent_id: str | None = None
    session_type: SessionType | None = None
    session_name: str | None = None

    @property
    def simulate(self) -> bool:
        """Test sessions route proxied calls through the simulation gate."""
        return self.session_type == "test"

    def start(
        self,
        dataset_id: str,
        *,
        record_id: str | None = None,
        session_id: str | None = None,
        parent_id: str | None = None,
        session_type: str = "real",
    ) -> None:
        """Overwrite the whole context, generating missing ids."""
        if session_type not in SESSION_TYPES:
            raise ValueError(f"session_type must be one of {SESSION_TYPES}, got {session_type!r}")
        self.dataset_id = dataset_id
        self.session_id = session_id or new_id()
        self.record_id = record_id or new_id()
        self.parent_id = parent_id
        self.session_type = session_type  # type: ignore[assignment]
        self.session_name = None

    def assign(self, session_id: str, session_name: str | None = None) -> None:
        """Overwrite only the identifying fields."""
        self.session_id = session_id
        self.session_name = session_name

    def to_headers(self) -> dict[str, str]:
        pairs = (
            (DATASET_ID_HEADER, self.dataset_id),
            (SESSION_ID_HEADER, self.session_id),
            (RECORD_ID_HEADER, self.record_id),
            (PARENT_ID_HEADER, self.parent_id),
            (SESSION_TYPE_HEADER, self.session_type),
            (SESSION_NAME_HEADER, self.session_name),
        )
        return {name: value for name, value in pairs if value}


def merge_headers(
    session_headers: Mapping[str, str],
    explicit: Mapping[str, Any] | None,
) -> dict[str, str]:
    """Explicit headers win; session fields fill the gaps.

    Header names compare case-insensitively. An explicit header replaces the
    session header of the same name and keeps the session's spelling. Empty
    values are dropped and the session-path marker is stripped in any casing,
    since only boundary events may carry it.
    """
    merged: dict[str, tuple[str, str]] = {
        name.lower(): (name, value) for name, value in session_headers.items()
    }
    for name, value in (explicit or {}).items():
        if value is None:
            continue
        key = str(name).lower()
        canonical = merged[key][0] if key in merged else str(name)
        merged[key] = (canonical, str(value))
    merged.pop(SESSION_PATH_HEADER.lower(), None)
    return {name: value for name, value in merged.values() if value != ""}


def boundary_headers(headers: Mapping[str, Any], marker: str) -> dict[str, str]:
    """Header set for a ``__START__`` / ``__END__`` boundary event."""
    path_key = SESSION_PATH_HEADER.lower()
    out = {
        str(k): str(v)
        for k, v in headers.items()
        if v is not None and v != "" and str(k).lower() != path_key
    }
    out[SESSION_PATH_HEADER] = marker
    return out
