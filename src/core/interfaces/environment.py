"""Environment signal contracts.

The engine consumes a handful of facts about the device that it cannot
measure itself: whether the OS thinks it is online, an optional connection
type hint, and an optional "device busy" signal.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from core.domain.models import NetworkHint


@runtime_checkable
class BusyMonitor(Protocol):
    """Accumulates device-busy time while a scan is running."""

    def start(self) -> None: ...

    async def stop(self) -> int:
        """Stop sampling and return the cumulative busy time in milliseconds."""

        ...


@runtime_checkable
class EnvironmentProvider(Protocol):
    def is_online(self) -> bool: ...

    def network_hint(self) -> NetworkHint: ...

    def has_busy_signal(self) -> bool:
        """Whether `busy_monitor()` can return a monitor on this device."""

        ...

    def busy_monitor(self) -> BusyMonitor | None:
        """A fresh monitor for one scan, or None when the signal is unavailable."""

        ...
