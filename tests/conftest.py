import asyncio

import pytest

from core.config import AppSettings
from core.domain.models import (
    CaptiveVerdict,
    DnsVerdict,
    LatencyStats,
    NetworkHint,
    ProbeErrorKind,
    ProbeOutcome,
    ScanLabel,
    ScanResult,
    Transparency,
)
from core.domain.tristate import TriState
from core.services.latency import tier_for


class Script:
    """How a fake probe of one endpoint should resolve."""

    def __init__(self, elapsed_ms=100, error=None, delay=0.0, opaque=False):
        self.elapsed_ms = elapsed_ms
        self.error = error
        self.delay = delay
        self.opaque = opaque


class FakeProber:
    """In-memory prober: scripted outcome per endpoint key, no network."""

    def __init__(self, scripts=None, default=None, raises=None):
        self.scripts = dict(scripts or {})
        self.default = default or Script()
        self.raises = dict(raises or {})
        self.calls = []
        self.events = []

    async def probe(self, endpoint, *, timeout_ms, cancel=None):
        self.calls.append(endpoint.key)
        self.events.append(("start", endpoint.key))
        if endpoint.key in self.raises:
            raise self.raises[endpoint.key]

        script = self.scripts.get(endpoint.key, self.default)
        if script.delay:
            if cancel is not None:
                waiter = asyncio.ensure_future(cancel.wait())
                done, _ = await asyncio.wait({waiter}, timeout=script.delay)
                if not done:
                    waiter.cancel()
                    await asyncio.gather(waiter, return_exceptions=True)
            else:
                await asyncio.sleep(script.delay)
        self.events.append(("end", endpoint.key))

        if cancel is not None and cancel.cancelled:
            return failed(endpoint, ProbeErrorKind.ABORTED, script.elapsed_ms)
        if script.error is not None:
            return failed(endpoint, script.error, script.elapsed_ms)
        return ProbeOutcome(
            endpoint_key=endpoint.key,
            role=endpoint.role,
            completed=True,
            elapsed_ms=script.elapsed_ms,
            transparency=Transparency.OPAQUE if script.opaque else Transparency.TRANSPARENT,
        )


def failed(endpoint, kind, elapsed_ms=2500):
    return ProbeOutcome(
        endpoint_key=endpoint.key,
        role=endpoint.role,
        completed=False,
        elapsed_ms=elapsed_ms,
        transparency=Transparency.ERROR,
        error_kind=kind,
    )


class FakeBusyMonitor:
    def __init__(self, busy_ms):
        self.busy_ms = busy_ms
        self.started = False
        self.stopped = False

    def start(self):
        self.started = True

    async def stop(self):
        self.stopped = True
        return self.busy_ms


class FakeEnvironment:
    def __init__(self, online=True, hint=None, busy_ms=None):
        self.online = online
        self.hint = hint or NetworkHint(supported=False)
        self.busy_ms = busy_ms
        self.monitors = []

    def is_online(self):
        return self.online

    def network_hint(self):
        return self.hint

    def has_busy_signal(self):
        return self.busy_ms is not None

    def busy_monitor(self):
        if self.busy_ms is None:
            return None
        monitor = FakeBusyMonitor(self.busy_ms)
        self.monitors.append(monitor)
        return monitor


@pytest.fixture
def settings():
    """Settings isolated from the developer's .env files."""
    return AppSettings(
        _env_file=None,
        probing_enabled=True,
        ab_enabled=True,
        progress_tick_ms=5,
    )


@pytest.fixture
def fake_env():
    return FakeEnvironment()


def make_result(
    best_ms=120,
    worst_ms=None,
    dns=None,
    captive=None,
    label=None,
    probing_enabled=True,
    device_online=True,
    busy_ms=None,
):
    """Build a ScanResult directly, bypassing the probe plan."""
    return ScanResult(
        label=label or ScanLabel.BASELINE,
        device_online=device_online,
        probing_enabled=probing_enabled,
        latency=LatencyStats(
            best_ms=best_ms,
            worst_ms=worst_ms if worst_ms is not None else best_ms,
            tier=tier_for(best_ms),
        ),
        dns=DnsVerdict(ok=dns or TriState.YES),
        captive=CaptiveVerdict(suspected=captive or TriState.NO),
        busy_ms=busy_ms,
    )
