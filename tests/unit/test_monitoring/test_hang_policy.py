"""
Unit tests for the hang policy.
"""

import logging
from unittest.mock import Mock

import pytest

from hangwatch.models import (
    CallStackEntry,
    CpuUsage,
    EventLoopSnapshot,
    HangingDetectionConfig,
    MemoryUsage,
    SnapshotSummary,
)
from hangwatch.monitoring import AlertKind, HangPolicy, describe_call


def _snapshot(active=(), hanging=(), memory=None, cpu=None, lag=0.0) -> EventLoopSnapshot:
    return EventLoopSnapshot(
        timestamp=1.0,
        active_calls=tuple(active),
        hanging_calls=tuple(hanging),
        memory_usage=memory or MemoryUsage(rss=1024),
        cpu_usage=cpu or CpuUsage(),
        event_loop_lag=lag,
        summary=SnapshotSummary.from_calls(active, (), (), hanging),
    )


@pytest.mark.unit
class TestHangPolicy:
    """Test cases for HangPolicy.evaluate."""

    def test_quiet_snapshot_raises_nothing(self):
        policy = HangPolicy(HangingDetectionConfig())
        assert policy.evaluate(_snapshot()) == []

    def test_hanging_call_alert(self):
        call = CallStackEntry(function_name="slow_query", file_name="db.py", line_number=7,
                              metadata={"component": "db"})
        policy = HangPolicy(HangingDetectionConfig(timeout_threshold=1000.0))

        alerts = policy.evaluate(_snapshot([call], [call]), (), {call.id: 1500.0})

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.kind is AlertKind.HANGING_CALL
        assert alert.call is call
        assert alert.value == 1500.0
        assert alert.threshold == 1000.0
        assert "HANGING CALL DETECTED" in alert.message
        assert "slow_query" in alert.message
        assert "db.py:7" in alert.message

    def test_alert_on_hanging_disabled(self):
        call = CallStackEntry(function_name="slow")
        policy = HangPolicy(HangingDetectionConfig(alert_on_hanging=False))
        assert policy.evaluate(_snapshot([call], [call])) == []

    def test_newly_flagged_calls_are_logged_once(self, caplog):
        call = CallStackEntry(function_name="slow")
        policy = HangPolicy(HangingDetectionConfig(alert_on_hanging=False))

        with caplog.at_level(logging.WARNING, logger="hangwatch.monitoring.hang_policy"):
            policy.evaluate(_snapshot([call], [call]), [call], {call.id: 2000.0})
            policy.evaluate(_snapshot([call], [call]), [], {call.id: 3000.0})

        messages = [record.message for record in caplog.records if "Hanging call detected" in record.message]
        assert len(messages) == 1

    def test_log_hanging_calls_disabled(self, caplog):
        call = CallStackEntry(function_name="slow")
        policy = HangPolicy(HangingDetectionConfig(alert_on_hanging=False, log_hanging_calls=False))

        with caplog.at_level(logging.WARNING, logger="hangwatch.monitoring.hang_policy"):
            policy.evaluate(_snapshot([call], [call]), [call])

        assert not any("Hanging call detected" in record.message for record in caplog.records)

    def test_memory_threshold(self):
        config = HangingDetectionConfig(memory_threshold=1024 * 1024)
        alerts = HangPolicy(config).evaluate(_snapshot(memory=MemoryUsage(rss=2 * 1024 * 1024)))

        assert [alert.kind for alert in alerts] == [AlertKind.MEMORY]
        assert "High memory usage: 2.00MB" == alerts[0].message

    def test_heap_counter_preferred_over_rss(self):
        config = HangingDetectionConfig(memory_threshold=1024 * 1024)
        memory = MemoryUsage(rss=10 * 1024 * 1024, heap_used=512 * 1024, heap_total=600 * 1024)
        assert HangPolicy(config).evaluate(_snapshot(memory=memory)) == []

    def test_memory_tracking_disabled(self):
        config = HangingDetectionConfig(memory_threshold=1, enable_memory_tracking=False)
        assert HangPolicy(config).evaluate(_snapshot(memory=MemoryUsage(rss=10))) == []

    def test_cpu_threshold(self):
        config = HangingDetectionConfig(cpu_threshold=50.0)
        alerts = HangPolicy(config).evaluate(_snapshot(cpu=CpuUsage(percent=75.0)))
        assert [alert.kind for alert in alerts] == [AlertKind.CPU]

    def test_event_loop_lag_threshold(self):
        config = HangingDetectionConfig(event_loop_lag_threshold=100.0)
        alerts = HangPolicy(config).evaluate(_snapshot(lag=250.0))

        assert [alert.kind for alert in alerts] == [AlertKind.EVENT_LOOP_LAG]
        assert alerts[0].value == 250.0

    def test_active_call_count_threshold(self):
        config = HangingDetectionConfig(max_active_calls=2)
        calls = [CallStackEntry(function_name=f"work{i}") for i in range(2)]
        alerts = HangPolicy(config).evaluate(_snapshot(active=calls))
        assert [alert.kind for alert in alerts] == [AlertKind.ACTIVE_CALLS]

    def test_handlers_receive_alerts(self):
        handler = Mock()
        policy = HangPolicy(HangingDetectionConfig(event_loop_lag_threshold=1.0), [handler])

        alerts = policy.evaluate(_snapshot(lag=5.0))

        handler.assert_called_once_with(alerts[0])

    def test_failing_handler_does_not_propagate(self):
        failing = Mock(side_effect=RuntimeError("handler broke"))
        second = Mock()
        policy = HangPolicy(HangingDetectionConfig(event_loop_lag_threshold=1.0))
        policy.add_handler(failing)
        policy.add_handler(second)

        alerts = policy.evaluate(_snapshot(lag=5.0))

        assert len(alerts) == 1
        second.assert_called_once()


@pytest.mark.unit
def test_describe_call_includes_metadata():
    call = CallStackEntry(function_name="fetch", file_name="app.py", line_number=3, metadata={"a": 1})
    text = describe_call(call, 12.5)

    assert text.startswith("fetch (call_")
    assert "12.50ms" in text
    assert "app.py:3" in text
    assert "{'a': 1}" in text
