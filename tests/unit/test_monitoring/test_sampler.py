"""
Unit tests for the periodic sampler.
"""

from unittest.mock import patch

import pytest

from hangwatch.collectors import LoopLagProbe
from hangwatch.models import CallOutcome, CallStackEntry, HangingDetectionConfig, MemoryUsage
from hangwatch.monitoring import HangPolicy, Sampler
from hangwatch.registry import CallRegistry

from conftest import StubResourceCollector, TestUtils


def _sampler(config=None, collector=None, registry=None) -> Sampler:
    config = config or HangingDetectionConfig(timeout_threshold=100.0)
    return Sampler(
        registry=registry if registry is not None else CallRegistry(),
        config=config,
        collector=collector or StubResourceCollector(),
        lag_probe=LoopLagProbe(),
        policy=HangPolicy(config),
    )


@pytest.mark.unit
class TestSamplerSnapshots:
    """Snapshots produced by take_snapshot."""

    def test_snapshot_reflects_registry(self):
        registry = CallRegistry()
        sampler = _sampler(registry=registry)

        running, done = CallStackEntry(function_name="running"), CallStackEntry(function_name="done")
        registry.insert(running)
        registry.insert(done)
        registry.finalize(done.id, CallOutcome.success(), 5.0)

        snapshot = sampler.take_snapshot()

        assert [call.id for call in snapshot.active_calls] == [running.id]
        assert [call.id for call in snapshot.completed_calls] == [done.id]
        assert snapshot.hanging_calls == ()
        assert snapshot.summary.total_active == 1
        assert snapshot.summary.total_completed == 1
        assert snapshot.memory_usage.rss == 50 * 1024 * 1024
        assert snapshot.event_loop_lag == 0.0
        assert sampler.history == [snapshot]

    def test_old_active_call_is_hanging_and_flagged(self):
        registry = CallRegistry()
        sampler = _sampler(registry=registry)
        stuck = CallStackEntry(function_name="stuck", metadata={"component": "sync"})
        registry.insert(stuck)
        stuck.started_at -= 1.0  # started one second ago

        snapshot = sampler.take_snapshot()

        assert [call.id for call in snapshot.hanging_calls] == [stuck.id]
        assert snapshot.hanging_calls[0].metadata == {"component": "sync"}
        assert snapshot.summary.total_hanging == 1
        assert registry.get(stuck.id).was_flagged_hanging
        assert any("HANGING CALL DETECTED" in alert for alert in snapshot.alerts)

    def test_failing_collector_yields_empty_counters(self):
        sampler = _sampler(collector=StubResourceCollector(fail=True))
        snapshot = sampler.take_snapshot()

        assert snapshot.memory_usage == MemoryUsage()
        assert sampler.ticks_completed == 1

    def test_history_is_bounded(self):
        sampler = _sampler(config=HangingDetectionConfig(snapshot_history_size=3))
        for _ in range(5):
            sampler.take_snapshot()

        assert len(sampler.history) == 3
        assert sampler.latest is sampler.history[-1]

    def test_clear_history(self):
        sampler = _sampler()
        sampler.take_snapshot()
        sampler.clear_history()
        assert sampler.history == []
        assert sampler.latest is None


@pytest.mark.unit
class TestSamplerThread:
    """Lifecycle of the sampling thread."""

    def test_start_and_stop(self):
        collector = StubResourceCollector()
        sampler = _sampler(collector=collector)

        sampler.start(0.01)
        assert sampler.running
        assert collector.start_calls == 1
        assert TestUtils.wait_for(lambda: sampler.ticks_completed >= 3)

        sampler.stop()
        sampler.close()
        assert not sampler.running
        assert not sampler.thread.is_alive()
        assert collector.stop_calls == 1

    def test_start_twice_is_ignored(self):
        sampler = _sampler()
        sampler.start(0.05)
        first_thread = sampler.thread
        try:
            sampler.start(0.05)
            assert sampler.thread is first_thread
        finally:
            sampler.stop()

    def test_invalid_interval(self):
        with pytest.raises(ValueError):
            _sampler().start(0)

    def test_failed_tick_does_not_stop_the_loop(self):
        registry = CallRegistry()
        sampler = _sampler(registry=registry)
        original = registry.flag_hanging
        calls = {"count": 0}

        def flaky(*args, **kwargs):
            calls["count"] += 1
            if calls["count"] == 1:
                raise RuntimeError("transient failure")
            return original(*args, **kwargs)

        with patch.object(registry, "flag_hanging", side_effect=flaky):
            sampler.start(0.01)
            try:
                assert TestUtils.wait_for(lambda: sampler.ticks_completed >= 2)
            finally:
                sampler.stop()

        assert sampler.ticks_failed == 1
        assert sampler.get_performance_info()["ticks_failed"] == 1
