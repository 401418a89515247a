"""Reachability prober contract.

Why Protocol:
- Structural contract (duck typing) without rigid inheritance.
- The HTTP prober and the in-memory fakes used by the tests are
  interchangeable without coupling the core to httpx.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import Endpoint, ProbeOutcome
from core.services.cancellation import CancelToken


@runtime_checkable
class Prober(Protocol):
    """Minimal contract for a single-endpoint probe.

    Design rules:
    - `probe` is async because it does network I/O.
    - It resolves exactly once and never raises: timeout, transport failure
      and cancellation are all reported as a failed `ProbeOutcome`.
    """

    async def probe(
        self,
        endpoint: Endpoint,
        *,
        timeout_ms: int,
        cancel: CancelToken | None = None,
    ) -> ProbeOutcome:
        """Probe `endpoint` and return the normalized outcome."""

        ...
