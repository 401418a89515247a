"""Device/environment signals.

- Online flag: whether the OS has a route to the public internet. A UDP
  `connect()` only asks the kernel to pick a route; no packet is sent and no
  privilege is needed.
- Network hint: there is no portable API for the connection type, so it
  comes from configuration (unsupported when unset).
- Busy signal: cumulative event-loop lag during a scan, the closest thing a
  Python process has to "long task" observation. A loaded device delays the
  loop, and those delays inflate every probe timing.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
import socket

from core.config import AppSettings
from core.domain.models import NetworkHint
from core.domain.thresholds import LONG_TASK_MS
from core.interfaces.environment import BusyMonitor, EnvironmentProvider

logger = logging.getLogger(__name__)

# Route lookup targets only: connect() on a UDP socket sends nothing.
_ROUTE_CHECK_TARGETS: tuple[tuple[int, str], ...] = (
    (socket.AF_INET, "1.1.1.1"),
    (socket.AF_INET6, "2606:4700:4700::1111"),
)


def has_default_route() -> bool:
    for family, address in _ROUTE_CHECK_TARGETS:
        try:
            with socket.socket(family, socket.SOCK_DGRAM) as sock:
                sock.connect((address, 53))
                return True
        except OSError:
            continue
    return False


class LoopLagMonitor(BusyMonitor):
    """Measures how long the event loop was blocked while it runs."""

    def __init__(self, sample_ms: int = LONG_TASK_MS, threshold_ms: int = LONG_TASK_MS) -> None:
        self._sample_s = sample_ms / 1000
        self._threshold_ms = threshold_ms
        self._busy_ms = 0.0
        self._task: asyncio.Task | None = None

    @property
    def busy_ms(self) -> int:
        return round(self._busy_ms)

    def start(self) -> None:
        if self._task is not None:
            return
        self._busy_ms = 0.0
        self._task = asyncio.get_running_loop().create_task(self._sample())

    async def stop(self) -> int:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        return self.busy_ms

    async def _sample(self) -> None:
        loop = asyncio.get_running_loop()
        while True:
            started = loop.time()
            await asyncio.sleep(self._sample_s)
            lag_ms = (loop.time() - started - self._sample_s) * 1000
            if lag_ms >= self._threshold_ms:
                self._busy_ms += lag_ms


class SystemEnvironment(EnvironmentProvider):
    def __init__(self, settings: AppSettings | None = None) -> None:
        self._settings = settings or AppSettings()

    def is_online(self) -> bool:
        online = has_default_route()
        if not online:
            logger.info("No route to the public internet; treating device as offline")
        return online

    def network_hint(self) -> NetworkHint:
        return self._settings.network_hint()

    def has_busy_signal(self) -> bool:
        return True

    def busy_monitor(self) -> BusyMonitor | None:
        return LoopLagMonitor(sample_ms=self._settings.busy_sample_ms)
