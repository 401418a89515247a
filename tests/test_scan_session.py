"""Tests for core/services/scan_session.py — state machine and end-to-end flow."""
import asyncio

import pytest

from conftest import FakeEnvironment, FakeProber, Script
from core.domain.models import ConfidenceLevel, NetworkHint, ProbeErrorKind, ScanPhase, Severity
from core.domain.tristate import TriState
from core.errors import SessionStateError
from core.services.probe_executor import ProbeExecutor
from core.services.scan_session import BASELINE_STEPS, ProgressTicker, ScanOrchestrator, SessionHooks

HEALTHY = {
    "google204": Script(elapsed_ms=120),
    "cfTrace": Script(elapsed_ms=150),
    "cfHome": Script(elapsed_ms=900),
    "gstatic204": Script(elapsed_ms=200),
    "dohCloudflare": Script(elapsed_ms=180),
}


def _orchestrator(settings, prober=None, env=None, hooks=None, **overrides):
    if overrides:
        settings = settings.model_copy(update=overrides)
    executor = ProbeExecutor(prober or FakeProber(HEALTHY), timeout_ms=settings.probe_timeout_ms)
    return ScanOrchestrator(executor, env or FakeEnvironment(), settings=settings, hooks=hooks)


class TestInitialState:
    def test_starts_idle(self, settings):
        orch = _orchestrator(settings)
        assert orch.phase is ScanPhase.IDLE
        assert orch.diagnosis() is None
        assert orch.suggestion().label == "Ready"

    def test_offline_before_any_scan(self, settings):
        orch = _orchestrator(settings, env=FakeEnvironment(online=False))
        assert orch.diagnosis().severity is Severity.RED


class TestBaseline:
    def test_ab_mode_goes_to_baseline_ready(self, settings):
        orch = _orchestrator(settings)
        result = asyncio.run(orch.start())
        assert result is not None
        assert orch.phase is ScanPhase.BASELINE_READY
        assert orch.snapshot().baseline == result

    def test_single_phase_goes_to_complete(self, settings):
        orch = _orchestrator(settings, ab_enabled=False)
        asyncio.run(orch.start())
        assert orch.phase is ScanPhase.COMPLETE

    def test_healthy_end_to_end(self, settings):
        orch = _orchestrator(settings, ab_enabled=False)
        result = asyncio.run(orch.start())
        assert result.latency.best_ms == 120
        assert result.latency.worst_ms == 900
        assert result.dns.ok is TriState.YES
        assert result.captive.suspected is TriState.NO
        assert orch.diagnosis().severity is Severity.GREEN
        assert orch.suggestion().label == "Healthy"

    def test_dns_failure_end_to_end(self, settings):
        scripts = dict(HEALTHY)
        scripts["google204"] = Script(error=ProbeErrorKind.NETWORK)
        scripts["cfHome"] = Script(error=ProbeErrorKind.NETWORK)
        orch = _orchestrator(settings, prober=FakeProber(scripts), ab_enabled=False)
        result = asyncio.run(orch.start())
        assert result.dns.ok is TriState.NO
        assert orch.diagnosis().title == "DNS / APN Issue"

    def test_captive_end_to_end(self, settings):
        scripts = dict(HEALTHY)
        scripts["gstatic204"] = Script(error=ProbeErrorKind.TIMEOUT, elapsed_ms=2500)
        orch = _orchestrator(settings, prober=FakeProber(scripts), ab_enabled=False)
        asyncio.run(orch.start())
        assert orch.diagnosis().title == "Captive Portal Suspected"
        assert orch.suggestion().label == "Captive Portal"

    def test_all_failed_is_not_healthy(self, settings):
        prober = FakeProber(default=Script(error=ProbeErrorKind.TIMEOUT, elapsed_ms=2500))
        orch = _orchestrator(settings, prober=prober, ab_enabled=False)
        result = asyncio.run(orch.start())
        assert result.latency.best_ms is None
        assert result.dns.ok is TriState.YES
        assert orch.diagnosis().severity is not Severity.GREEN

    def test_disabled_end_to_end(self, settings):
        prober = FakeProber(HEALTHY)
        orch = _orchestrator(settings, prober=prober, probing_enabled=False)
        result = asyncio.run(orch.start())
        assert prober.calls == []
        assert result.dns.ok is TriState.UNKNOWN
        assert result.captive.suspected is TriState.UNKNOWN
        assert orch.phase is ScanPhase.COMPLETE
        assert orch.diagnosis().title == "Limited Scan Mode"
        assert orch.suggestion().label == "Limited Scan"
        assert orch.confidence().level is ConfidenceLevel.LOW

    def test_busy_signal_is_recorded(self, settings):
        env = FakeEnvironment(busy_ms=2000, hint=NetworkHint(supported=True, effective_type="4g"))
        orch = _orchestrator(settings, env=env, ab_enabled=False)
        result = asyncio.run(orch.start())
        assert result.busy_ms == 2000
        assert orch.confidence().level is ConfidenceLevel.HIGH
        assert "busy" in orch.suggestion().bullets[-1]

    def test_report_does_not_build_monitors(self, settings):
        env = FakeEnvironment(busy_ms=10)
        orch = _orchestrator(settings, env=env, ab_enabled=False)
        asyncio.run(orch.start())
        assert len(env.monitors) == 1
        assert env.monitors[0].stopped is True
        orch.report()
        orch.confidence()
        assert len(env.monitors) == 1


class TestReentrancy:
    def test_start_while_running_is_noop(self, settings):
        prober = FakeProber(default=Script(delay=0.02))

        async def scenario():
            orch = _orchestrator(settings, prober=prober)
            first = asyncio.ensure_future(orch.start())
            await asyncio.sleep(0)
            assert orch.phase is ScanPhase.RUNNING
            second = await orch.start()
            baseline = await first
            return orch, second, baseline

        orch, second, baseline = asyncio.run(scenario())
        assert second is None
        assert orch.snapshot().baseline == baseline
        assert prober.calls.count("google204") == 1

    def test_start_from_baseline_ready_is_noop(self, settings):
        orch = _orchestrator(settings)

        async def scenario():
            baseline = await orch.start()
            again = await orch.start()
            return baseline, again

        baseline, again = asyncio.run(scenario())
        assert again is None
        assert orch.phase is ScanPhase.BASELINE_READY
        assert orch.snapshot().baseline == baseline

    def test_restart_from_complete_clears_after(self, settings):
        orch = _orchestrator(settings)

        async def scenario():
            await orch.start()
            await orch.start_after()
            assert orch.snapshot().after is not None
            await orch.start()

        asyncio.run(scenario())
        assert orch.snapshot().after is None
        assert orch.phase is ScanPhase.BASELINE_READY


class TestAfterReset:
    @pytest.mark.parametrize("phase_setup", ["idle", "complete"])
    def test_start_after_outside_baseline_ready_raises(self, settings, phase_setup):
        orch = _orchestrator(settings, ab_enabled=phase_setup == "idle")
        if phase_setup == "complete":
            asyncio.run(orch.start())
        before = orch.snapshot()
        with pytest.raises(SessionStateError):
            asyncio.run(orch.start_after())
        assert orch.snapshot() == before

    def test_full_ab_flow(self, settings):
        prober = FakeProber(HEALTHY)
        orch = _orchestrator(settings, prober=prober)

        async def scenario():
            await orch.start()
            prober.scripts["google204"] = Script(elapsed_ms=400)
            prober.scripts["cfTrace"] = Script(elapsed_ms=450)
            await orch.start_after()

        asyncio.run(scenario())
        assert orch.phase is ScanPhase.COMPLETE
        comparison = orch.comparison()
        assert comparison.latency_delta_ms == 280
        assert comparison.dns_changed is False
        assert orch.suggestion().label == "Congestion / Coverage"
        report = orch.report()
        assert report.comparison == comparison
        assert report.session.latest == report.session.after

    def test_ab_off_from_baseline_ready_completes(self, settings):
        orch = _orchestrator(settings)
        asyncio.run(orch.start())
        orch.set_ab_mode(False)
        assert orch.phase is ScanPhase.COMPLETE
        assert orch.snapshot().baseline is not None

    def test_ab_off_after_complete_drops_after_result(self, settings):
        orch = _orchestrator(settings)

        async def scenario():
            await orch.start()
            await orch.start_after()

        asyncio.run(scenario())
        assert orch.comparison() is not None

        orch.set_ab_mode(False)
        snap = orch.snapshot()
        assert snap.phase is ScanPhase.COMPLETE
        assert snap.ab_enabled is False
        assert snap.after is None
        assert snap.baseline is not None
        assert orch.comparison() is None
        assert orch.report().comparison is None

    def test_ab_back_on_does_not_restore_after(self, settings):
        orch = _orchestrator(settings)

        async def scenario():
            await orch.start()
            await orch.start_after()

        asyncio.run(scenario())
        orch.set_ab_mode(False)
        orch.set_ab_mode(True)
        assert orch.snapshot().after is None
        assert orch.phase is ScanPhase.COMPLETE

    def test_ab_off_during_after_drops_result(self, settings):
        prober = FakeProber(HEALTHY)
        orch = _orchestrator(settings, prober=prober)

        async def scenario():
            await orch.start()
            prober.default = Script(delay=0.02)
            prober.scripts = {}
            task = asyncio.ensure_future(orch.start_after())
            await asyncio.sleep(0)
            orch.set_ab_mode(False)
            return await task

        assert asyncio.run(scenario()) is None
        assert orch.phase is ScanPhase.COMPLETE
        assert orch.snapshot().after is None


class TestProbingToggle:
    def test_probing_off_from_baseline_ready_resets(self, settings):
        orch = _orchestrator(settings)
        asyncio.run(orch.start())
        orch.set_probing(False)
        snap = orch.snapshot()
        assert snap.phase is ScanPhase.IDLE
        assert snap.baseline is None
        assert snap.after is None

    def test_probing_off_mid_scan_discards_result(self, settings):
        prober = FakeProber(default=Script(delay=1.0))
        phases = []
        orch = _orchestrator(settings, prober=prober, hooks=SessionHooks(phase_changed=phases.append))

        async def scenario():
            task = asyncio.ensure_future(orch.start())
            await asyncio.sleep(0.01)
            orch.set_probing(False)
            return await asyncio.wait_for(task, timeout=0.5)

        assert asyncio.run(scenario()) is None
        assert orch.phase is ScanPhase.IDLE
        assert orch.snapshot().baseline is None
        assert phases == [ScanPhase.RUNNING, ScanPhase.IDLE]
        assert "gstatic204" not in prober.calls

    def test_enabling_after_disabled_scan_is_not_congestion(self, settings):
        orch = _orchestrator(settings, probing_enabled=False)
        asyncio.run(orch.start())
        orch.set_probing(True)
        assert orch.diagnosis().title == "Limited Scan Mode"
        assert orch.suggestion().label == "Limited Scan"


class TestProgress:
    def test_ticker_labels(self):
        ticker = ProgressTicker(BASELINE_STEPS, interval_ms=10)
        assert ticker.label == "Starting"
        ticker.step = 2
        assert ticker.label == "Testing latency"
        ticker.step = 99
        assert ticker.label == "Compiling diagnosis"

    def test_stop_waits_for_ticker_task(self):
        async def scenario():
            ticker = ProgressTicker(BASELINE_STEPS, interval_ms=5)
            ticker.start()
            task = ticker._task
            await asyncio.sleep(0.01)
            await ticker.stop(finished=False)
            return task.done()

        assert asyncio.run(scenario()) is True

    def test_progress_reaches_total_on_success(self, settings):
        ticks = []
        orch = _orchestrator(settings, hooks=SessionHooks(progress=lambda s, t, label: ticks.append((s, t))))
        asyncio.run(orch.start())
        assert ticks[0] == (0, len(BASELINE_STEPS))
        assert ticks[-1] == (len(BASELINE_STEPS), len(BASELINE_STEPS))
        assert all(step <= total for step, total in ticks)
