"""Errors raised by the core.

Probe failures are never exceptions: they are outcomes, and they feed the
heuristics as signal. The only thing that propagates is a violation of the
session state machine, which is a caller bug.
"""

from __future__ import annotations

from core.domain.models import ScanPhase


class SessionStateError(RuntimeError):
    """An action was requested in a phase where it is not allowed."""

    def __init__(self, action: str, phase: ScanPhase, reason: str | None = None) -> None:
        self.action = action
        self.phase = phase
        message = f"{action}() is not allowed in phase {phase.value!r}"
        if reason:
            message = f"{message}: {reason}"
        super().__init__(message)
