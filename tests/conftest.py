"""
Pytest configuration and shared fixtures for the hangwatch test suite.

This module provides common fixtures, test utilities, and configuration
for all test modules in the hangwatch project.
"""

import shutil
import sys
import tempfile
import threading
import time
from pathlib import Path
from typing import Any, Callable, Dict
from unittest.mock import Mock, patch

import pytest

# Add src to Python path for testing
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from hangwatch.collectors.base import AbstractResourceCollector, ResourceSample  # noqa: E402
from hangwatch.config import clear_config_cache, reset_config_path  # noqa: E402
from hangwatch.models import CpuUsage, HangingDetectionConfig, MemoryUsage  # noqa: E402
from hangwatch.monitoring import EventLoopMonitor  # noqa: E402
from hangwatch.monitoring.global_monitor import reset_global_monitor  # noqa: E402


# ============================================================================
# Test Configuration
# ============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: mark test as a unit test")
    config.addinivalue_line("markers", "integration: mark test as an integration test")
    config.addinivalue_line("markers", "slow: mark test as slow running")


# ============================================================================
# Core Fixtures
# ============================================================================


@pytest.fixture
def temp_dir():
    """Create a temporary directory for test files."""
    temp_path = tempfile.mkdtemp()
    yield Path(temp_path)
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture(autouse=True)
def isolated_global_state():
    """Reset the process-wide monitor and config cache around every test."""
    reset_global_monitor()
    reset_config_path()
    yield
    reset_global_monitor()
    reset_config_path()
    clear_config_cache()


class StubResourceCollector(AbstractResourceCollector):
    """Collector returning a fixed sample, counting lifecycle calls."""

    def __init__(self, sample: ResourceSample = None, fail: bool = False):
        super().__init__()
        self.fixed_sample = sample or ResourceSample(
            memory=MemoryUsage(rss=50 * 1024 * 1024, vms=200 * 1024 * 1024),
            cpu=CpuUsage(user=5.0, system=1.0, percent=10.0),
        )
        self.fail = fail
        self.start_calls = 0
        self.stop_calls = 0
        self.sample_calls = 0

    def start(self) -> None:
        self.start_calls += 1

    def stop(self) -> None:
        self.stop_calls += 1

    def sample(self) -> ResourceSample:
        self.sample_calls += 1
        if self.fail:
            raise RuntimeError("resource counters unavailable")
        return self.fixed_sample


@pytest.fixture
def stub_collector():
    return StubResourceCollector()


@pytest.fixture
def detection_config():
    """Detection config with a short hang threshold for fast tests."""
    return HangingDetectionConfig(timeout_threshold=100.0, max_active_calls=10)


@pytest.fixture
def monitor(detection_config, stub_collector):
    """A monitor that is stopped again after the test."""
    instance = EventLoopMonitor(config=detection_config, collector=stub_collector)
    yield instance
    instance.stop_monitoring()


@pytest.fixture
def sample_config_data() -> Dict[str, Any]:
    """Sample [monitor] configuration data for testing."""
    return {
        "detection": {
            "timeout_threshold": 2000,
            "memory_threshold": 256 * 1024 * 1024,
            "cpu_threshold": 90.0,
            "event_loop_lag_threshold": 50.0,
            "max_active_calls": 50,
            "enable_stack_trace": True,
            "enable_memory_tracking": True,
            "enable_cpu_tracking": False,
            "log_hanging_calls": True,
            "alert_on_hanging": True,
            "completed_history_size": 20,
            "snapshot_history_size": 200,
        },
        "sampling": {
            "interval_ms": 250,
            "lag_probe_timeout_ms": 100,
        },
        "storage": {
            "format": "parquet",
            "compression": "zstd",
            "output_dir": "out",
        },
    }


@pytest.fixture
def mock_psutil():
    """Mock psutil.Process for testing without system dependencies."""
    with patch("psutil.Process") as mock_process_class:
        mock_process = Mock()
        mock_process.pid = 12345
        mock_process.memory_info.return_value = Mock(
            rss=64 * 1024 * 1024, vms=512 * 1024 * 1024, shared=8 * 1024 * 1024
        )
        mock_process.cpu_times.return_value = Mock(user=1.0, system=0.5)

        mock_process_class.return_value = mock_process

        yield {
            "Process": mock_process_class,
            "process_instance": mock_process,
        }


# ============================================================================
# Configuration Fixtures
# ============================================================================


@pytest.fixture
def config_files(temp_dir, sample_config_data):
    """Create a temporary config.toml for testing."""
    import toml

    config_file = temp_dir / "config.toml"
    with open(config_file, "w") as f:
        toml.dump({"monitor": sample_config_data}, f)

    return {"config": config_file, "dir": temp_dir}


# ============================================================================
# Test Utilities
# ============================================================================


class TestUtils:
    """Utility functions for testing."""

    __test__ = False

    @staticmethod
    def wait_for(predicate: Callable[[], bool], timeout: float = 5.0, interval: float = 0.01) -> bool:
        """Poll ``predicate`` until it is true or ``timeout`` seconds pass."""
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(interval)
        return predicate()

    @staticmethod
    def blocking_work(seconds: float, result: Any = None, started: threading.Event = None):
        """Build a zero-argument callable sleeping in the calling thread."""
        def work():
            if started is not None:
                started.set()
            time.sleep(seconds)
            return result
        return work


@pytest.fixture
def test_utils():
    return TestUtils
