"""Explicit cancellation tokens.

A scan is cancelled when the user turns probing off. Rather than cancelling
asyncio tasks from the outside (which would make probes raise), each probe
receives a token and races its request against it, so it still resolves
exactly once with an `aborted` outcome.
"""

from __future__ import annotations

import asyncio


class CancelToken:
    """One-shot cancellation flag that can be awaited."""

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self.reason: str | None = None

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def cancel(self, reason: str | None = None) -> None:
        if self._event.is_set():
            return
        self.reason = reason
        self._event.set()

    async def wait(self) -> None:
        await self._event.wait()
