"""Latency aggregation.

Only completed probes carry a meaningful timing; a timed-out probe's elapsed
time is just the timeout and would poison the statistics.
"""

from __future__ import annotations

from typing import Iterable

from core.domain.models import LatencyStats, LatencyTier, ProbeOutcome
from core.domain.thresholds import LATENCY_ELEVATED_MS, LATENCY_SEVERE_MS

DISABLED_NOTE = "Privacy Mode is ON: external probes are disabled."
NO_DATA_NOTE = "No probe completed, latency could not be measured."

_TIER_NOTES: dict[LatencyTier, str] = {
    LatencyTier.NORMAL: "Latency looks normal.",
    LatencyTier.ELEVATED: "Elevated latency — possible congestion.",
    LatencyTier.SEVERE: "Very high latency — likely congestion or stalled session.",
}


def tier_for(best_ms: int | None) -> LatencyTier | None:
    if best_ms is None:
        return None
    if best_ms >= LATENCY_SEVERE_MS:
        return LatencyTier.SEVERE
    if best_ms >= LATENCY_ELEVATED_MS:
        return LatencyTier.ELEVATED
    return LatencyTier.NORMAL


def aggregate(outcomes: Iterable[ProbeOutcome]) -> LatencyStats:
    timings = [o.elapsed_ms for o in outcomes if o.completed]
    if not timings:
        return LatencyStats(best_ms=None, worst_ms=None, tier=None, note=NO_DATA_NOTE)

    best_ms = min(timings)
    tier = tier_for(best_ms)
    return LatencyStats(
        best_ms=best_ms,
        worst_ms=max(timings),
        tier=tier,
        note=_TIER_NOTES[tier],
    )


def disabled() -> LatencyStats:
    return LatencyStats(note=DISABLED_NOTE)
