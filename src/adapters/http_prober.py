"""HTTP reachability prober.

Each probe is a plain GET through a fresh client, raced against its own
timeout and against the session's cancel token. Whatever happens first
decides the outcome, and the losers are cancelled and awaited so the probe
leaves nothing running behind it.

Endpoints marked `observe=False` are read only up to the response headers:
the body is never downloaded and the status is not recorded, so the
outcome is `opaque`. That still proves the path was reachable.
"""

from __future__ import annotations

import asyncio
import time
from typing import Callable

import httpx

from adapters.http_client import build_async_client
from core.config import AppSettings
from core.domain.models import Endpoint, ProbeErrorKind, ProbeOutcome, Transparency
from core.interfaces.prober import Prober
from core.services.cancellation import CancelToken


class HttpProber(Prober):
    """Probes endpoints over HTTPS with httpx."""

    def __init__(
        self,
        settings: AppSettings | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
        clock: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._settings = settings or AppSettings()
        self._transport = transport
        self._clock = clock

    async def probe(
        self,
        endpoint: Endpoint,
        *,
        timeout_ms: int,
        cancel: CancelToken | None = None,
    ) -> ProbeOutcome:
        started = self._clock()
        if cancel is not None and cancel.cancelled:
            return _failure(endpoint, ProbeErrorKind.ABORTED, 0, "CancelToken")

        request = asyncio.ensure_future(self._fetch(endpoint, timeout_ms))
        racers: set[asyncio.Future] = {request}
        cancel_wait: asyncio.Future | None = None
        if cancel is not None:
            cancel_wait = asyncio.ensure_future(cancel.wait())
            racers.add(cancel_wait)

        try:
            done, _ = await asyncio.wait(
                racers,
                timeout=timeout_ms / 1000,
                return_when=asyncio.FIRST_COMPLETED,
            )
            elapsed_ms = self._elapsed_ms(started)
        finally:
            pending = [r for r in racers if not r.done()]
            for racer in pending:
                racer.cancel()
            if pending:
                await asyncio.gather(*pending, return_exceptions=True)

        if request not in done:
            if cancel_wait is not None and cancel_wait in done:
                return _failure(endpoint, ProbeErrorKind.ABORTED, elapsed_ms, "CancelToken")
            return _failure(endpoint, ProbeErrorKind.TIMEOUT, elapsed_ms, "Timeout")

        exc = request.exception()
        if exc is not None:
            kind = ProbeErrorKind.TIMEOUT if isinstance(exc, httpx.TimeoutException) else ProbeErrorKind.NETWORK
            return _failure(endpoint, kind, elapsed_ms, type(exc).__name__)

        status_code = request.result()
        return ProbeOutcome(
            endpoint_key=endpoint.key,
            role=endpoint.role,
            completed=True,
            elapsed_ms=elapsed_ms,
            transparency=Transparency.TRANSPARENT if endpoint.observe else Transparency.OPAQUE,
            status_code=status_code,
        )

    async def _fetch(self, endpoint: Endpoint, timeout_ms: int) -> int | None:
        async with build_async_client(
            self._settings,
            extra_headers=endpoint.headers,
            timeout_ms=timeout_ms,
            transport=self._transport,
        ) as client:
            if endpoint.observe:
                response = await client.get(endpoint.url)
                return response.status_code
            # Headers arrived: the path works. The body stays unread.
            async with client.stream("GET", endpoint.url):
                return None

    def _elapsed_ms(self, started: float) -> int:
        return max(0, round((self._clock() - started) * 1000))


def _failure(endpoint: Endpoint, kind: ProbeErrorKind, elapsed_ms: int, detail: str) -> ProbeOutcome:
    return ProbeOutcome(
        endpoint_key=endpoint.key,
        role=endpoint.role,
        completed=False,
        elapsed_ms=elapsed_ms,
        transparency=Transparency.ERROR,
        error_kind=kind,
        error_detail=detail,
    )
