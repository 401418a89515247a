"""Baseline vs after-reset comparison and remediation suggestions.

The suggestion tree mirrors the health classifier's priority, then adds the
delta branches that only exist once both phases have been measured:

    captive suspected      -> portal login guidance
    DNS not ok             -> APN / VPN guidance
    best >= 900 ms         -> radio reset guidance
    delta <= -250 ms       -> stalled session, much better after reset
    delta >= +250 ms       -> congestion / coverage, worse after reset
    otherwise              -> generic guidance
"""

from __future__ import annotations

from core.domain.models import Comparison, ScanResult, Suggestion
from core.domain.thresholds import DEVICE_BUSY_MS, LATENCY_SEVERE_MS, SIGNIFICANT_DELTA_MS
from core.domain.tristate import TriState

BUSY_BULLET = "Device seems busy — close heavy apps and retry."


def _changed(before: TriState, after: TriState) -> bool | None:
    if not before.known or not after.known:
        return None
    return before is not after


def latency_delta(baseline: ScanResult, after: ScanResult) -> int | None:
    if baseline.latency.best_ms is None or after.latency.best_ms is None:
        return None
    return after.latency.best_ms - baseline.latency.best_ms


def format_delta_ms(delta: int | None) -> str:
    if delta is None:
        return "-"
    sign = "+" if delta > 0 else ""
    return f"{sign}{delta} ms"


def suggest(
    latest: ScanResult | None,
    *,
    probing_enabled: bool,
    delta_ms: int | None = None,
    busy_ms: int | None = None,
) -> Suggestion:
    """Pick exactly one remediation suggestion, first match wins."""

    if not probing_enabled:
        return Suggestion(
            label="Limited Scan",
            reason="External diagnostics are OFF. Enable them for deeper checks.",
            bullets=("No external probes performed.", "No data stored by this app."),
        )
    if latest is None:
        return Suggestion(label="Ready", reason="Run a scan to generate results.")

    extra: tuple[str, ...] = ()
    if busy_ms is not None and busy_ms >= DEVICE_BUSY_MS:
        extra = (BUSY_BULLET,)

    best_ms = latest.latency.best_ms

    if latest.captive.suspected is TriState.YES:
        return Suggestion(
            label="Captive Portal",
            reason="You may be on Wi-Fi that requires login. Turn off Wi-Fi or complete sign-in.",
            bullets=("Open browser to sign in (public Wi-Fi).", "Disable Wi-Fi to test mobile data.", *extra),
        )

    if latest.dns.ok is TriState.NO:
        return Suggestion(
            label="DNS / APN Issue",
            reason="Domains appear broken — often APN/VPN/Private DNS misconfiguration.",
            bullets=("Check the APN setting for your carrier.", "Disable VPN / Private DNS and retry.", *extra),
        )

    if best_ms is None or best_ms >= LATENCY_SEVERE_MS:
        return Suggestion(
            label="Radio Congestion",
            reason="Latency is extremely high. Congestion or a stalled session is likely.",
            bullets=("Toggle airplane mode then re-run.", "Retry later (peak-time congestion).", *extra),
        )

    if delta_ms is not None and delta_ms <= -SIGNIFICANT_DELTA_MS:
        return Suggestion(
            label="Stalled Radio Session",
            reason="After the reset, latency improved a lot — often a stuck data session.",
            bullets=(
                "If frequent: reboot phone or re-seat SIM.",
                "If location-specific: tower handover/congestion.",
                *extra,
            ),
        )

    if delta_ms is not None and delta_ms >= SIGNIFICANT_DELTA_MS:
        return Suggestion(
            label="Congestion / Coverage",
            reason="Latency got worse after the reset — likely congestion, weak coverage, or throttling.",
            bullets=("Move to open area / near window.", "Try 4G-only mode temporarily.", *extra),
        )

    return Suggestion(
        label="Healthy",
        reason="Connectivity looks normal based on best-effort reachability checks.",
        bullets=("If apps still fail, check VPN/Private DNS/data saver modes.", *extra),
    )


def compare(baseline: ScanResult, after: ScanResult) -> Comparison:
    delta = latency_delta(baseline, after)
    return Comparison(
        latency_delta_ms=delta,
        dns_changed=_changed(baseline.dns.ok, after.dns.ok),
        captive_changed=_changed(baseline.captive.suspected, after.captive.suspected),
        suggestion=suggest(after, probing_enabled=after.probing_enabled, delta_ms=delta, busy_ms=after.busy_ms),
    )
