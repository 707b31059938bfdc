"""
hangwatch: call tracking and hang detection for long-running Python processes.

Units of work are wrapped with the instrumentation API, recorded in a
thread-safe registry and observed by a sampler thread that takes periodic
snapshots of the registry and of process resources. Active calls older than
the configured threshold are flagged as hanging and reported.

The package is organized into specialized modules:
- models: Call entries, snapshots and configuration structures
- registry: Thread-safe store of tracked calls
- collectors: Process resource and event loop lag measurement
- monitoring: Monitor sessions, sampler and hang policy
- instrumentation: Wrapping sync and async work for tracking
- reporting: Summaries, Markdown reports and export payloads
- storage: JSON and Parquet export backends
- config: TOML configuration loading and validation
- validation: Input validation and error handling
- cli: Command-line interface

Usage:
    From command line:
        hangwatch start --timeout 2000

    Programmatically:
        from hangwatch import EventLoopMonitor
        monitor = EventLoopMonitor()
        monitor.start_monitoring(interval_ms=500)
        result = monitor.track_operation(lambda: work(), "work")
        history = monitor.stop_monitoring()
        print(monitor.generate_report())
"""

# Main interfaces
from .config import get_config, clear_config_cache, set_config_path
from .monitoring import EventLoopMonitor, HangAlert, AlertKind
from .monitoring.global_monitor import (
    export_monitoring_data,
    generate_monitoring_report,
    get_call_stack_summary,
    get_event_loop_monitor,
    reset_global_monitor,
    start_monitoring,
    stop_monitoring,
    track_operation,
    track_operation_async,
)

# Model classes for external use
from .models import (
    AppConfig,
    CallStackEntry,
    CallStatus,
    CpuUsage,
    EventLoopSnapshot,
    HangingDetectionConfig,
    MemoryUsage,
    SnapshotSummary,
)

# Validation utilities
from .validation import ValidationError

__version__ = "1.0.0"

__all__ = [
    # Main interfaces
    "get_config",
    "clear_config_cache",
    "set_config_path",
    "EventLoopMonitor",
    "HangAlert",
    "AlertKind",
    # Process-wide monitor
    "export_monitoring_data",
    "generate_monitoring_report",
    "get_call_stack_summary",
    "get_event_loop_monitor",
    "reset_global_monitor",
    "start_monitoring",
    "stop_monitoring",
    "track_operation",
    "track_operation_async",
    # Models
    "AppConfig",
    "CallStackEntry",
    "CallStatus",
    "CpuUsage",
    "EventLoopSnapshot",
    "HangingDetectionConfig",
    "MemoryUsage",
    "SnapshotSummary",
    # Validation
    "ValidationError",
]
