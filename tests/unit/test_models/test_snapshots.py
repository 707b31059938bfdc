"""
Unit tests for snapshot models.
"""

import json

import pytest

from hangwatch.models import (
    CallStackEntry,
    CallStatus,
    CpuUsage,
    EventLoopSnapshot,
    MemoryUsage,
    SnapshotSummary,
)


def _finished(name: str, duration: float, status: CallStatus = CallStatus.COMPLETED) -> CallStackEntry:
    return CallStackEntry(function_name=name, duration=duration, status=status)


@pytest.mark.unit
class TestSnapshotSummary:
    """Test cases for SnapshotSummary.from_calls."""

    def test_empty(self):
        summary = SnapshotSummary.from_calls((), (), (), ())
        assert summary == SnapshotSummary()
        assert summary.average_duration == 0.0

    def test_counts_match_lists(self):
        active = (CallStackEntry(function_name="a"), CallStackEntry(function_name="b"))
        completed = (_finished("c", 10.0), _finished("d", 30.0))
        failed = (_finished("e", 50.0, CallStatus.ERROR),)
        hanging = active[:1]

        summary = SnapshotSummary.from_calls(active, completed, failed, hanging)

        assert summary.total_active == 2
        assert summary.total_completed == 2
        assert summary.total_failed == 1
        assert summary.total_hanging == 1

    def test_duration_statistics_cover_all_terminal_entries(self):
        completed = (_finished("c", 10.0), _finished("d", 30.0))
        failed = (_finished("e", 50.0, CallStatus.ERROR),)

        summary = SnapshotSummary.from_calls((), completed, failed, ())

        assert summary.average_duration == pytest.approx(30.0)
        assert summary.max_duration == 50.0
        assert summary.min_duration == 10.0


@pytest.mark.unit
class TestEventLoopSnapshot:
    """Test cases for EventLoopSnapshot."""

    def test_to_dict_is_json_serializable(self):
        active = (CallStackEntry(function_name="slow", metadata={"component": "sync"}),)
        snapshot = EventLoopSnapshot(
            timestamp=1700000000.0,
            active_calls=active,
            hanging_calls=active,
            memory_usage=MemoryUsage(rss=1024, vms=2048),
            cpu_usage=CpuUsage(user=1.0, system=2.0, percent=3.0),
            event_loop_lag=4.5,
            summary=SnapshotSummary.from_calls(active, (), (), active),
            alerts=("HANGING CALL DETECTED: slow",),
        )

        data = json.loads(json.dumps(snapshot.to_dict()))

        assert data["timestamp"] == 1700000000.0
        assert data["active_calls"][0]["function_name"] == "slow"
        assert data["hanging_calls"][0]["metadata"] == {"component": "sync"}
        assert data["memory_usage"]["rss"] == 1024
        assert data["cpu_usage"]["percent"] == 3.0
        assert data["summary"]["total_hanging"] == 1
        assert data["alerts"] == ["HANGING CALL DETECTED: slow"]

    def test_snapshot_is_immutable(self):
        snapshot = EventLoopSnapshot(timestamp=1.0)
        with pytest.raises(AttributeError):
            snapshot.event_loop_lag = 10.0
