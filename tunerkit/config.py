"""Typed runtime configuration for tunerkit."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Literal

logger = logging.getLogger(__name__)

API_KEY_ENV = "TUNERKIT_API_KEY"
BASE_URL_ENV = "TUNERKIT_BASE_URL"
ROUTES_ENV = "TUNERKIT_ROUTES"
LOG_ENABLED_ENV = "TUNERKIT_LOG_ENABLED"
DEFAULT_BASE_URL = "https://api.tunerkit.dev"

RouteRevision = Literal["current", "legacy"]

_LOG_PATHS: dict[str, str] = {"current": "/api/logs", "legacy": "/logs"}
_SIMULATION_PATHS: dict[str, str] = {"current": "/api/completions", "legacy": "/v1/dev/completions"}


@dataclass(frozen=True)
class TunerkitConfig:
    """Backend location and policy, resolved once per client.

    Attributes:
        api_key: Bearer token for the Tunerkit backend.
        base_url: Backend origin, without a trailing slash.
        routes: ``"current"`` uses ``/api/logs`` + ``/api/completions`` and the
            ``{request, response, timing}`` log body. ``"legacy"`` uses
            ``/logs`` + ``/v1/dev/completions`` and the ``{params, response}``
            body.
        log_enabled: When False nothing is sent to the primary log endpoint.
            An attached sink still receives records.
    """

    api_key: str | None = None
    base_url: str = DEFAULT_BASE_URL
    routes: RouteRevision = "current"
    log_enabled: bool = True

    @property
    def logs_path(self) -> str:
        return _LOG_PATHS[self.routes]

    @property
    def simulation_path(self) -> str:
        return _SIMULATION_PATHS[self.routes]

    @classmethod
    def from_env(cls) -> "TunerkitConfig":
        """Build typed config from environment variables."""
        routes_raw = os.environ.get(ROUTES_ENV, "current").strip().lower()
        if routes_raw in {"current", "legacy"}:
            routes: RouteRevision = routes_raw  # type: ignore[assignment]
        else:
            logger.warning(
                "Invalid %s=%r; expected current/legacy. Defaulting to current.",
                ROUTES_ENV,
                routes_raw,
            )
            routes = "current"

        enabled_raw = os.environ.get(LOG_ENABLED_ENV, "1").strip().lower()
        if enabled_raw in {"0", "false", "no", "off"}:
            log_enabled = False
        elif enabled_raw in {"1", "true", "yes", "on", ""}:
            log_enabled = True
        else:
            logger.warning(
                "Invalid %s=%r; expected on/off boolean. Defaulting to on.",
                LOG_ENABLED_ENV,
                enabled_raw,
            )
            log_enabled = True

        return cls(
            api_key=os.environ.get(API_KEY_ENV) or None,
            base_url=os.environ.get(BASE_URL_ENV, DEFAULT_BASE_URL).rstrip("/"),
            routes=routes,
            log_enabled=log_enabled,
        )
