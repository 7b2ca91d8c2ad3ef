"""Dev-mode simulation gate.

Before a real call runs, the gate POSTs the call params plus correlation
headers to the simulation endpoint. The answer decides whether the real
method runs (``run_model: true``) or whether the returned ``response`` is
handed back to the caller verbatim instead.

Any failure to obtain a decision raises ``SimulationUnavailableError`` and
the real call is not attempted. There is no fallback to the real model.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import httpx
from pydantic import BaseModel, ConfigDict

from tunerkit.errors import SimulationUnavailableError
from tunerkit.transport import TunerkitHTTP

logger = logging.getLogger(__name__)


class SimulationDecision(BaseModel):
    """Body returned by the simulation endpoint."""

    model_config = ConfigDict(extra="ignore")

    run_model: bool
    response: Any = None


class SimulationGate:
    def __init__(self, http: TunerkitHTTP, path: str) -> None:
        self._http = http
        self._path = path

    def decide(self, params: Any, headers: Mapping[str, str]) -> SimulationDecision:
        try:
            resp = self._http.post(self._path, params, headers)
        except httpx.HTTPError as exc:
            raise SimulationUnavailableError(
                f"Simulation endpoint unreachable: {exc}", original=exc,
            ) from exc
        return self._parse(resp)

    async def adecide(self, params: Any, headers: Mapping[str, str]) -> SimulationDecision:
        try:
            resp = await self._http.apost(self._path, params, headers)
        except httpx.HTTPError as exc:
            raise SimulationUnavailableError(
                f"Simulation endpoint unreachable: {exc}", original=exc,
            ) from exc
        return self._parse(resp)

    def _parse(self, resp: httpx.Response) -> SimulationDecision:
        if not resp.is_success:
            raise SimulationUnavailableError(
                f"Tunerkit simulation request failed with status {resp.status_code}",
                status_code=resp.status_code,
            )
        try:
            decision = SimulationDecision.model_validate(resp.json())
        except ValueError as exc:
            raise SimulationUnavailableError(
                f"Malformed simulation decision: {exc}",
                status_code=resp.status_code,
                original=exc,
            ) from exc
        logger.debug(
            "Simulation decision for %s: run_model=%s", self._path, decision.run_model,
        )
        return decision
