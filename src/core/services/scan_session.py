"""Scan session orchestration.

The orchestrator is the only owner of `ScanSession` state and the only
place where it changes. Phases:

    idle -> running -> baseline-ready -> running-after -> complete
                  \\-----------------------------------> complete

`running -> complete` is taken when A/B mode or probing is off. Rules:

- `start()` is only legal from `idle` or `complete`. Anywhere else it is a
  no-op, which is what keeps at most one scan in flight.
- `start_after()` is only legal from `baseline-ready`; anything else is a
  caller bug and raises `SessionStateError` without touching state.
- Turning probing off at any time aborts in-flight probes, drops both
  results and goes back to `idle`. The aborted scan dies silently: its
  coroutine returns None and writes nothing.
- Turning A/B mode off drops the after-reset result, so a comparison
  only exists while A/B is on.

All mutations happen on one event loop and the switch to a running phase
happens before the first `await`, so two `start()` calls can never both
pass the phase check.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from dataclasses import dataclass
from typing import Callable

from core.config import AppSettings
from core.domain.models import (
    Comparison,
    ConfidenceScore,
    Diagnosis,
    DiagnosticReport,
    NetworkHint,
    ScanLabel,
    ScanPhase,
    ScanResult,
    SessionSnapshot,
    Suggestion,
)
from core.errors import SessionStateError
from core.interfaces.environment import EnvironmentProvider
from core.services import heuristics, latency
from core.services.cancellation import CancelToken
from core.services.comparison import compare, suggest
from core.services.health import diagnose, score_confidence
from core.services.probe_executor import ProbeExecutor, ProbePlanResult

logger = logging.getLogger(__name__)

BASELINE_STEPS: tuple[str, ...] = (
    "Initializing",
    "Testing latency",
    "Checking captive portal",
    "Verifying DNS",
    "Compiling diagnosis",
)
AFTER_STEPS: tuple[str, ...] = (
    "Re-checking",
    "Testing latency",
    "Checking captive portal",
    "Verifying DNS",
    "Comparing results",
)


@dataclass
class SessionHooks:
    """Optional callbacks for UI layers (progress, phase changes)."""

    progress: Callable[[int, int, str], None] | None = None
    phase_changed: Callable[[ScanPhase], None] | None = None


@dataclass
class ScanSession:
    """Mutable aggregate root. Only `ScanOrchestrator` writes to it."""

    phase: ScanPhase = ScanPhase.IDLE
    baseline: ScanResult | None = None
    after: ScanResult | None = None
    ab_enabled: bool = True
    probing_enabled: bool = False

    def reset(self) -> None:
        self.phase = ScanPhase.IDLE
        self.baseline = None
        self.after = None

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            phase=self.phase,
            baseline=self.baseline,
            after=self.after,
            ab_enabled=self.ab_enabled,
            probing_enabled=self.probing_enabled,
        )


class ProgressTicker:
    """Advisory progress counter.

    Ticks on its own clock, bounded by the number of steps. It only exists
    to show liveness; probe completion, not the counter, ends a phase.
    """

    def __init__(
        self,
        steps: tuple[str, ...],
        *,
        interval_ms: int,
        callback: Callable[[int, int, str], None] | None = None,
    ) -> None:
        self._steps = steps
        self._interval_s = interval_ms / 1000
        self._callback = callback
        self._task: asyncio.Task | None = None
        self.step = 0

    @property
    def total(self) -> int:
        return len(self._steps)

    @property
    def label(self) -> str:
        if self.step <= 0:
            return "Starting"
        return self._steps[min(self.total, self.step) - 1]

    def start(self) -> None:
        self.step = 0
        self._emit()
        self._task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self, *, finished: bool) -> None:
        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task
        if finished:
            self.step = self.total
            self._emit()

    async def _run(self) -> None:
        while self.step < self.total:
            await asyncio.sleep(self._interval_s)
            self.step = min(self.total, self.step + 1)
            self._emit()

    def _emit(self) -> None:
        if self._callback is not None:
            self._callback(self.step, self.total, self.label)


class ScanOrchestrator:
    def __init__(
        self,
        executor: ProbeExecutor,
        environment: EnvironmentProvider,
        *,
        settings: AppSettings | None = None,
        hooks: SessionHooks | None = None,
    ) -> None:
        self._settings = settings or AppSettings()
        self._executor = executor
        self._environment = environment
        self._hooks = hooks or SessionHooks()
        self._session = ScanSession(
            ab_enabled=self._settings.ab_enabled,
            probing_enabled=self._settings.probing_enabled,
        )
        self._cancel: CancelToken | None = None

    # -- read side ---------------------------------------------------------

    @property
    def phase(self) -> ScanPhase:
        return self._session.phase

    def snapshot(self) -> SessionSnapshot:
        return self._session.snapshot()

    def _latest(self) -> ScanResult | None:
        return self._session.after or self._session.baseline

    def _has_evidence(self) -> bool:
        """Probing is on now *and* was on when the latest result was taken."""

        latest = self._latest()
        return self._session.probing_enabled and (latest is None or latest.probing_enabled)

    def diagnosis(self) -> Diagnosis | None:
        latest = self._latest()
        device_online = latest.device_online if latest is not None else self._environment.is_online()
        return diagnose(
            latest,
            device_online=device_online,
            probing_enabled=self._has_evidence(),
        )

    def confidence(self) -> ConfidenceScore:
        return score_confidence(
            probing_enabled=self._has_evidence(),
            has_device_hint=self._environment.network_hint().supported,
            has_busy_signal=self._environment.has_busy_signal(),
        )

    def comparison(self) -> Comparison | None:
        if self._session.baseline is None or self._session.after is None:
            return None
        return compare(self._session.baseline, self._session.after)

    def suggestion(self) -> Suggestion:
        comparison = self.comparison()
        if comparison is not None:
            return comparison.suggestion
        latest = self._latest()
        return suggest(
            latest,
            probing_enabled=self._has_evidence(),
            busy_ms=latest.busy_ms if latest is not None else None,
        )

    def report(self) -> DiagnosticReport:
        return DiagnosticReport(
            session=self.snapshot(),
            diagnosis=self.diagnosis(),
            confidence=self.confidence(),
            suggestion=self.suggestion(),
            comparison=self.comparison(),
        )

    # -- user actions ------------------------------------------------------

    def set_probing(self, enabled: bool) -> None:
        if enabled:
            self._session.probing_enabled = True
            return

        self._session.probing_enabled = False
        if self._cancel is not None:
            self._cancel.cancel("probing disabled")
            self._cancel = None
        if self._session.phase is not ScanPhase.IDLE or self._session.baseline is not None:
            logger.info("Probing disabled: discarding session results")
        self._session.reset()
        self._notify_phase()

    def set_ab_mode(self, enabled: bool) -> None:
        self._session.ab_enabled = enabled
        if enabled:
            return
        if self._session.after is not None:
            logger.info("A/B mode turned off: discarding the after-reset result")
            self._session.after = None
        if self._session.phase is ScanPhase.BASELINE_READY:
            self._set_phase(ScanPhase.COMPLETE)

    async def start(self) -> ScanResult | None:
        """Run a fresh baseline scan. A no-op (returns None) unless idle or complete."""

        phase = self._session.phase
        if phase not in (ScanPhase.IDLE, ScanPhase.COMPLETE):
            logger.warning("start() ignored while session is %s", phase.value)
            return None

        token = CancelToken()
        self._cancel = token
        self._session.after = None
        self._set_phase(ScanPhase.RUNNING)

        try:
            result = await self._scan(ScanLabel.BASELINE, BASELINE_STEPS, token)
        except BaseException:
            if not token.cancelled:
                self._set_phase(ScanPhase.COMPLETE if self._session.baseline else ScanPhase.IDLE)
            raise

        if token.cancelled:
            logger.debug("Baseline scan discarded after cancellation")
            return None

        self._session.baseline = result
        if self._session.ab_enabled and self._session.probing_enabled:
            self._set_phase(ScanPhase.BASELINE_READY)
        else:
            self._set_phase(ScanPhase.COMPLETE)
        return result

    async def start_after(self) -> ScanResult | None:
        """Run the after-reset scan. Only legal from `baseline-ready`."""

        phase = self._session.phase
        if phase is not ScanPhase.BASELINE_READY:
            raise SessionStateError("start_after", phase, "a baseline must be ready first")

        token = CancelToken()
        self._cancel = token
        self._set_phase(ScanPhase.RUNNING_AFTER)

        try:
            result = await self._scan(ScanLabel.AFTER_RESET, AFTER_STEPS, token)
        except BaseException:
            if not token.cancelled:
                self._set_phase(ScanPhase.BASELINE_READY)
            raise

        if token.cancelled:
            logger.debug("After-reset scan discarded after cancellation")
            return None

        if not self._session.ab_enabled:
            logger.info("A/B mode turned off during the after scan; result dropped")
            self._set_phase(ScanPhase.COMPLETE)
            return None

        self._session.after = result
        self._set_phase(ScanPhase.COMPLETE)
        return result

    # -- internals ---------------------------------------------------------

    async def _scan(self, label: ScanLabel, steps: tuple[str, ...], token: CancelToken) -> ScanResult:
        probing_enabled = self._session.probing_enabled
        device_online = self._environment.is_online()
        network_hint = self._environment.network_hint()
        monitor = self._environment.busy_monitor()

        ticker = ProgressTicker(
            steps,
            interval_ms=self._settings.progress_tick_ms,
            callback=self._hooks.progress,
        )
        if monitor is not None:
            monitor.start()
        ticker.start()
        finished = False
        try:
            plan = await self._executor.run_plan(probing_enabled=probing_enabled, cancel=token)
            finished = True
        finally:
            busy_ms = await monitor.stop() if monitor is not None else None
            await ticker.stop(finished=finished and not token.cancelled)

        return self._build_result(
            label,
            plan,
            probing_enabled=probing_enabled,
            device_online=device_online,
            network_hint=network_hint,
            busy_ms=busy_ms,
        )

    def _build_result(
        self,
        label: ScanLabel,
        plan: ProbePlanResult,
        *,
        probing_enabled: bool,
        device_online: bool,
        network_hint: NetworkHint,
        busy_ms: int | None,
    ) -> ScanResult:
        if not plan.executed:
            return ScanResult(
                label=label,
                device_online=device_online,
                probing_enabled=probing_enabled,
                latency=latency.disabled(),
                dns=heuristics.disabled_dns(),
                captive=heuristics.disabled_captive(),
                network_hint=network_hint,
                busy_ms=busy_ms,
            )

        transport_ok = heuristics.has_transport_evidence(plan.primary)
        domain_ok = heuristics.has_domain_evidence(plan.primary, self._executor.endpoints)
        return ScanResult(
            label=label,
            device_online=device_online,
            probing_enabled=probing_enabled,
            latency=latency.aggregate(plan.primary),
            dns=heuristics.dns_verdict(
                transport_ok=transport_ok,
                domain_ok=domain_ok,
                resolution=plan.resolution,
            ),
            captive=heuristics.captive_verdict(
                device_online=device_online,
                transport_ok=transport_ok,
                captive_probe=plan.captive,
                stall_ms=self._settings.captive_stall_ms,
            ),
            outcomes=plan.outcomes,
            resolution=plan.resolution,
            network_hint=network_hint,
            busy_ms=busy_ms,
        )

    def _set_phase(self, phase: ScanPhase) -> None:
        if self._session.phase is phase:
            return
        logger.info("Scan session: %s -> %s", self._session.phase.value, phase.value)
        self._session.phase = phase
        self._notify_phase()

    def _notify_phase(self) -> None:
        if self._hooks.phase_changed is not None:
            self._hooks.phase_changed(self._session.phase)
