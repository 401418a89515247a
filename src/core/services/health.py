"""Health classification and confidence scoring.

The health classifier is a decision table: an ordered tuple of rules, each a
predicate over `HealthSignals` paired with the diagnosis it produces. The
first matching rule wins, so the order *is* the diagnostic priority, from
most certain/severe to least:

1. device offline            -> red    "No Connectivity"
2. probing disabled          -> amber  "Limited Scan Mode"
3. captive portal suspected  -> amber  "Captive Portal Suspected"
4. DNS not ok                -> amber  "DNS / APN Issue"
5. best latency >= 900 ms    -> amber  "Congestion / Stall"
6. otherwise                 -> green  "Healthy"

A missing best latency (no probe completed) satisfies rule 5: an all-failed
scan can never be reported as healthy.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable

from core.domain.models import (
    ConfidenceLevel,
    ConfidenceScore,
    Diagnosis,
    ScanResult,
    Severity,
)
from core.domain.thresholds import LATENCY_SEVERE_MS
from core.domain.tristate import TriState


@dataclass(frozen=True)
class HealthSignals:
    """Flattened inputs of the decision table."""

    device_online: bool
    probing_enabled: bool
    measured: bool = False
    captive_suspected: TriState = TriState.UNKNOWN
    dns_ok: TriState = TriState.UNKNOWN
    best_ms: int | None = None

    @classmethod
    def from_result(
        cls,
        result: ScanResult | None,
        *,
        device_online: bool,
        probing_enabled: bool,
    ) -> "HealthSignals":
        if result is None:
            return cls(device_online=device_online, probing_enabled=probing_enabled)
        return cls(
            device_online=device_online,
            probing_enabled=probing_enabled,
            measured=True,
            captive_suspected=result.captive.suspected,
            dns_ok=result.dns.ok,
            best_ms=result.latency.best_ms,
        )


@dataclass(frozen=True)
class HealthRule:
    name: str
    predicate: Callable[[HealthSignals], bool]
    diagnosis: Diagnosis
    # Rules that read scan evidence cannot fire before a scan exists.
    needs_result: bool = True


def _diagnosis(rule: str, severity: Severity, title: str, detail: str, label: str) -> Diagnosis:
    return Diagnosis(severity=severity, title=title, detail=detail, label=label, rule=rule)


HEALTH_RULES: tuple[HealthRule, ...] = (
    HealthRule(
        name="offline",
        predicate=lambda s: not s.device_online,
        diagnosis=_diagnosis(
            "offline",
            Severity.RED,
            "No Connectivity",
            "Device appears offline (or network blocks connectivity).",
            "OFFLINE",
        ),
        needs_result=False,
    ),
    HealthRule(
        name="probing-disabled",
        predicate=lambda s: not s.probing_enabled,
        diagnosis=_diagnosis(
            "probing-disabled",
            Severity.AMBER,
            "Limited Scan Mode",
            "External diagnostics are OFF. Enable them for deeper checks.",
            "PRIVACY MODE",
        ),
        needs_result=False,
    ),
    HealthRule(
        name="captive-portal",
        predicate=lambda s: s.captive_suspected is TriState.YES,
        diagnosis=_diagnosis(
            "captive-portal",
            Severity.AMBER,
            "Captive Portal Suspected",
            "You may be stuck on a ‘Login required’ Wi-Fi page.",
            "LOGIN REQUIRED",
        ),
    ),
    HealthRule(
        name="dns",
        predicate=lambda s: s.dns_ok is TriState.NO,
        diagnosis=_diagnosis(
            "dns",
            Severity.AMBER,
            "DNS / APN Issue",
            "Domain resolution appears broken (often APN/DNS/VPN settings).",
            "DNS DEGRADED",
        ),
    ),
    HealthRule(
        name="congestion",
        predicate=lambda s: s.best_ms is None or s.best_ms >= LATENCY_SEVERE_MS,
        diagnosis=_diagnosis(
            "congestion",
            Severity.AMBER,
            "Congestion / Stall",
            "Latency is extremely high — congestion or a stuck radio session is likely.",
            "CONGESTION / STALL",
        ),
    ),
    HealthRule(
        name="healthy",
        predicate=lambda s: True,
        diagnosis=_diagnosis(
            "healthy",
            Severity.GREEN,
            "Healthy",
            "Data path looks OK (best-effort reachability checks).",
            "OK",
        ),
    ),
)


def classify(signals: HealthSignals, rules: tuple[HealthRule, ...] = HEALTH_RULES) -> Diagnosis | None:
    """Return the diagnosis of the first matching rule, or None before any scan."""

    for rule in rules:
        if rule.needs_result and not signals.measured:
            continue
        if rule.predicate(signals):
            return rule.diagnosis
    return None


def diagnose(
    latest: ScanResult | None,
    *,
    device_online: bool,
    probing_enabled: bool,
) -> Diagnosis | None:
    signals = HealthSignals.from_result(
        latest,
        device_online=device_online,
        probing_enabled=probing_enabled,
    )
    return classify(signals)


_CONFIDENCE_NOTES: dict[str, str] = {
    "disabled": "Privacy Mode is ON — external checks are disabled, so diagnosis is guidance-only.",
    "high": "External probes + device signals available (best accuracy this device can offer).",
    "partial": "External probes are available, but some device/network signals are not supported.",
    "none": "External probes are available. Device/network hints are limited on this device.",
}


def score_confidence(
    *,
    probing_enabled: bool,
    has_device_hint: bool,
    has_busy_signal: bool,
) -> ConfidenceScore:
    """Rate how much the diagnosis can be trusted, independent of what it says."""

    if not probing_enabled:
        return ConfidenceScore(level=ConfidenceLevel.LOW, label="Low", note=_CONFIDENCE_NOTES["disabled"])

    extras = int(has_device_hint) + int(has_busy_signal)
    if extras >= 2:
        return ConfidenceScore(level=ConfidenceLevel.HIGH, label="High", note=_CONFIDENCE_NOTES["high"])
    note = _CONFIDENCE_NOTES["partial"] if extras == 1 else _CONFIDENCE_NOTES["none"]
    return ConfidenceScore(level=ConfidenceLevel.MEDIUM, label="Medium", note=note)
