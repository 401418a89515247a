"""httpx wrapper.

Why a wrapper:
- Standardizes timeouts, headers and caching policy for every probe.
- Eases testing: a `httpx.MockTransport` can be injected instead of the
  network.
"""

from __future__ import annotations

import httpx

from core.config import AppSettings


def build_async_client(
    settings: AppSettings | None = None,
    *,
    extra_headers: dict[str, str] | None = None,
    timeout_ms: int | None = None,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """Create an `httpx.AsyncClient` with probe-safe defaults.

    Why a builder:
    - Every probe gets a fresh client: no shared connection pool between
      concurrent probes, no cookies carried over, no cache.
    - Centralizes timeouts/headers so all endpoints behave the same.
    """

    settings = settings or AppSettings()
    headers: dict[str, str] = {
        "User-Agent": settings.user_agent,
        "Accept": "*/*",
        "Cache-Control": "no-store",
        "Pragma": "no-cache",
    }
    if extra_headers:
        headers.update(extra_headers)

    timeout_ms = timeout_ms or settings.probe_timeout_ms
    kwargs: dict[str, object] = {}
    if transport is not None:
        kwargs["transport"] = transport
    return httpx.AsyncClient(
        timeout=httpx.Timeout(timeout_ms / 1000),
        follow_redirects=True,
        headers=headers,
        **kwargs,
    )
