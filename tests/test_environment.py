"""Tests for adapters/environment.py — busy monitor and env signals."""
import asyncio
import time

from adapters.environment import LoopLagMonitor, SystemEnvironment


class TestLoopLagMonitor:
    def test_blocked_loop_is_counted(self):
        async def scenario():
            monitor = LoopLagMonitor(sample_ms=5, threshold_ms=20)
            monitor.start()
            await asyncio.sleep(0.01)
            time.sleep(0.1)  # block the loop
            await asyncio.sleep(0.02)
            return await monitor.stop()

        assert asyncio.run(scenario()) >= 50

    def test_idle_loop_is_not_busy(self):
        async def scenario():
            monitor = LoopLagMonitor(sample_ms=5, threshold_ms=200)
            monitor.start()
            await asyncio.sleep(0.03)
            return await monitor.stop()

        assert asyncio.run(scenario()) == 0

    def test_stop_waits_for_sampler(self):
        async def scenario():
            monitor = LoopLagMonitor(sample_ms=5)
            monitor.start()
            task = monitor._task
            await asyncio.sleep(0.01)
            await monitor.stop()
            return task.done(), task.cancelled()

        assert asyncio.run(scenario()) == (True, True)

    def test_stop_before_start(self):
        assert asyncio.run(LoopLagMonitor().stop()) == 0


class TestSystemEnvironment:
    def test_hint_comes_from_settings(self, settings):
        env = SystemEnvironment(settings.model_copy(update={"network_type": "wifi"}))
        assert env.network_hint().effective_type == "wifi"

    def test_busy_signal_available(self, settings):
        assert SystemEnvironment(settings).has_busy_signal() is True

    def test_fresh_monitor_per_scan(self, settings):
        env = SystemEnvironment(settings)
        assert env.busy_monitor() is not env.busy_monitor()

    def test_offline_without_route(self, settings, monkeypatch):
        monkeypatch.setattr("adapters.environment.has_default_route", lambda: False)
        assert SystemEnvironment(settings).is_online() is False
