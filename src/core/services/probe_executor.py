"""Probe plan execution.

The plan is fixed:
1. The three primary endpoints are probed concurrently and joined with an
   all-complete barrier (`asyncio.gather`). Each probe owns its timeout; a
   slow sibling never cancels the others.
2. Only after the barrier, the captive probe and then the resolution probe
   run one after the other. Their heuristics read first-round evidence.

When probing is disabled the plan does nothing at all: no client is built
and no request leaves the machine.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass

from core.domain.endpoints import DEFAULT_ENDPOINTS, PRIMARY_ROLES, endpoint_for
from core.domain.models import (
    Endpoint,
    EndpointRole,
    ProbeErrorKind,
    ProbeOutcome,
    Transparency,
)
from core.domain.thresholds import PROBE_TIMEOUT_MS
from core.interfaces.prober import Prober
from core.services.cancellation import CancelToken

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbePlanResult:
    """Outcomes of one plan run, grouped by stage."""

    executed: bool = False
    primary: tuple[ProbeOutcome, ...] = ()
    captive: ProbeOutcome | None = None
    resolution: ProbeOutcome | None = None

    @property
    def outcomes(self) -> tuple[ProbeOutcome, ...]:
        """Primary and captive outcomes (the resolution probe is reported apart)."""

        if self.captive is None:
            return self.primary
        return (*self.primary, self.captive)


class ProbeExecutor:
    def __init__(
        self,
        prober: Prober,
        *,
        endpoints: tuple[Endpoint, ...] = DEFAULT_ENDPOINTS,
        timeout_ms: int = PROBE_TIMEOUT_MS,
    ) -> None:
        self._prober = prober
        self._endpoints = endpoints
        self._timeout_ms = timeout_ms

    @property
    def endpoints(self) -> tuple[Endpoint, ...]:
        return self._endpoints

    async def run_probe(self, endpoint: Endpoint, *, cancel: CancelToken | None = None) -> ProbeOutcome:
        """Run one probe; never raises.

        A prober that breaks its own contract and raises is reported as a
        network failure, so one bad adapter cannot take down the scan.
        """

        started = time.perf_counter()
        try:
            outcome = await self._prober.probe(endpoint, timeout_ms=self._timeout_ms, cancel=cancel)
        except Exception as exc:
            logger.debug("Prober raised for %s: %r", endpoint.key, exc)
            outcome = ProbeOutcome(
                endpoint_key=endpoint.key,
                role=endpoint.role,
                completed=False,
                elapsed_ms=max(0, round((time.perf_counter() - started) * 1000)),
                transparency=Transparency.ERROR,
                error_kind=ProbeErrorKind.NETWORK,
                error_detail=type(exc).__name__,
            )

        if outcome.completed:
            logger.debug("Probe %s completed in %d ms (%s)", endpoint.key, outcome.elapsed_ms, outcome.transparency.value)
        else:
            logger.debug(
                "Probe %s failed after %d ms: %s",
                endpoint.key,
                outcome.elapsed_ms,
                outcome.error_kind.value if outcome.error_kind else "?",
            )
        return outcome

    async def run_plan(self, *, probing_enabled: bool, cancel: CancelToken | None = None) -> ProbePlanResult:
        if not probing_enabled:
            return ProbePlanResult(executed=False)

        primary_endpoints = [endpoint_for(role, self._endpoints) for role in PRIMARY_ROLES]
        primary = await asyncio.gather(*(self.run_probe(e, cancel=cancel) for e in primary_endpoints))

        if cancel is not None and cancel.cancelled:
            return ProbePlanResult(executed=True, primary=tuple(primary))

        captive = await self.run_probe(endpoint_for(EndpointRole.CAPTIVE_PROBE, self._endpoints), cancel=cancel)

        if cancel is not None and cancel.cancelled:
            return ProbePlanResult(executed=True, primary=tuple(primary), captive=captive)

        resolution = await self.run_probe(
            endpoint_for(EndpointRole.RESOLUTION_PROBE, self._endpoints),
            cancel=cancel,
        )
        return ProbePlanResult(
            executed=True,
            primary=tuple(primary),
            captive=captive,
            resolution=resolution,
        )
