"""
Unit tests for the psutil resource collector.
"""

import time
from unittest.mock import Mock, patch

import pytest

from hangwatch.collectors import PsutilResourceCollector
from hangwatch.models import CpuUsage, MemoryUsage


@pytest.mark.unit
class TestPsutilResourceCollector:
    """Test cases for PsutilResourceCollector."""

    def test_memory_sample(self, mock_psutil):
        collector = PsutilResourceCollector(track_cpu=False)
        collector.start()

        with patch("hangwatch.collectors.psutil_collector.tracemalloc.is_tracing", return_value=False):
            sample = collector.sample()

        assert sample.memory == MemoryUsage(
            rss=64 * 1024 * 1024,
            vms=512 * 1024 * 1024,
            heap_used=0,
            heap_total=0,
            external=8 * 1024 * 1024,
        )
        assert sample.cpu == CpuUsage()

    def test_heap_counters_from_tracemalloc(self, mock_psutil):
        collector = PsutilResourceCollector(track_cpu=False)

        with (
            patch("hangwatch.collectors.psutil_collector.tracemalloc.is_tracing", return_value=True),
            patch(
                "hangwatch.collectors.psutil_collector.tracemalloc.get_traced_memory",
                return_value=(1000, 5000),
            ),
        ):
            sample = collector.sample()

        assert sample.memory.heap_used == 1000
        assert sample.memory.heap_total == 5000

    def test_cpu_usage_is_a_delta(self, mock_psutil):
        process = mock_psutil["process_instance"]
        collector = PsutilResourceCollector(track_memory=False)

        collector.start()
        # Pretend the baseline was taken one second ago.
        collector._last_wall = time.monotonic() - 1.0
        process.cpu_times.return_value = Mock(user=1.25, system=0.75)
        sample = collector.sample()

        # 0.25s user + 0.25s system within a 1s window
        assert sample.cpu.user == pytest.approx(250.0)
        assert sample.cpu.system == pytest.approx(250.0)
        assert sample.cpu.percent == pytest.approx(50.0, rel=0.05)
        assert sample.memory == MemoryUsage()

    def test_trace_python_heap_starts_and_stops_tracemalloc(self, mock_psutil):
        collector = PsutilResourceCollector(trace_python_heap=True)

        with (
            patch("hangwatch.collectors.psutil_collector.tracemalloc.is_tracing", return_value=False),
            patch("hangwatch.collectors.psutil_collector.tracemalloc.start") as mock_start,
            patch("hangwatch.collectors.psutil_collector.tracemalloc.stop") as mock_stop,
        ):
            collector.start()
            collector.stop()

        mock_start.assert_called_once()
        mock_stop.assert_called_once()

    def test_existing_tracemalloc_session_is_left_alone(self, mock_psutil):
        collector = PsutilResourceCollector(trace_python_heap=True)

        with (
            patch("hangwatch.collectors.psutil_collector.tracemalloc.is_tracing", return_value=True),
            patch("hangwatch.collectors.psutil_collector.tracemalloc.start") as mock_start,
            patch("hangwatch.collectors.psutil_collector.tracemalloc.stop") as mock_stop,
        ):
            collector.start()
            collector.stop()

        mock_start.assert_not_called()
        mock_stop.assert_not_called()

    def test_real_process_sample(self):
        collector = PsutilResourceCollector()
        collector.start()
        sample = collector.sample()
        collector.stop()

        assert sample.memory.rss > 0
        assert sample.cpu.percent >= 0.0
