"""DNS-health and captive-portal heuristics.

Both detectors combine evidence from several probes, because no single
probe can tell the failure modes apart:

- DNS: if *some* path reaches the internet (transport evidence) but every
  name-bearing domain fails, the fault is name resolution, not the radio.
  Transport success alone never implies DNS health, and without transport
  evidence we never claim DNS is broken.
- Captive portal: a portal intercepts only some traffic, so we need the
  primary round to have succeeded *and* an anomaly (failure or stall) on
  the dedicated captive probe.
"""

from __future__ import annotations

from typing import Iterable

from core.domain.models import CaptiveVerdict, DnsVerdict, Endpoint, ProbeOutcome
from core.domain.thresholds import CAPTIVE_STALL_MS
from core.domain.tristate import TriState


def has_transport_evidence(primary: Iterable[ProbeOutcome]) -> bool:
    """True if any primary probe completed, regardless of transparency."""

    return any(o.completed for o in primary if o.role.is_primary)


def has_domain_evidence(primary: Iterable[ProbeOutcome], endpoints: Iterable[Endpoint]) -> bool:
    """True if any primary probe against a domain-bearing endpoint completed."""

    domain_keys = {e.key for e in endpoints if e.domain_bearing and e.role.is_primary}
    return any(o.completed for o in primary if o.endpoint_key in domain_keys)


def dns_verdict(
    *,
    transport_ok: bool,
    domain_ok: bool,
    resolution: ProbeOutcome | None = None,
) -> DnsVerdict:
    dns_broken = transport_ok and not domain_ok
    if dns_broken:
        note = "Transport seems reachable but domains fail — DNS/APN/VPN/Private DNS likely."
    elif resolution is not None and resolution.completed:
        note = "DNS resolution appears OK (best effort)."
    else:
        note = "DNS looks OK, but DoH probe was inconclusive (blocked/opaque)."
    return DnsVerdict(ok=TriState.from_bool(not dns_broken), note=note)


def captive_verdict(
    *,
    device_online: bool,
    transport_ok: bool,
    captive_probe: ProbeOutcome | None,
    stall_ms: int = CAPTIVE_STALL_MS,
) -> CaptiveVerdict:
    # A missing captive outcome (plan cut short) is not an anomaly on its own.
    anomaly = captive_probe is not None and (
        not captive_probe.completed or captive_probe.elapsed_ms >= stall_ms
    )
    suspected = device_online and transport_ok and anomaly
    note = (
        "Possible Wi-Fi login intercept detected."
        if suspected
        else "No strong captive portal signals."
    )
    return CaptiveVerdict(suspected=TriState.from_bool(suspected), note=note)


def disabled_dns() -> DnsVerdict:
    return DnsVerdict(ok=TriState.UNKNOWN, note="Privacy Mode is ON: DNS check is disabled.")


def disabled_captive() -> CaptiveVerdict:
    return CaptiveVerdict(
        suspected=TriState.UNKNOWN,
        note="Privacy Mode is ON: captive portal check is disabled.",
    )
