"""
Process-wide monitor and module-level convenience functions.

The global monitor is created lazily from the application configuration the
first time it is needed. Queries made before any monitor exists return empty
results instead of creating one.
"""

import inspect
import logging
import threading
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from ..models.snapshots import EventLoopSnapshot
from ..reporting.report import EMPTY_REPORT
from ..reporting.summary import empty_call_stack_summary
from .monitor import ConfigArg, DEFAULT_EXPORT_FILENAME, EventLoopMonitor

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_PATH = Path("fossils") / DEFAULT_EXPORT_FILENAME

_global_monitor: Optional[EventLoopMonitor] = None
_global_lock = threading.Lock()


def get_event_loop_monitor() -> EventLoopMonitor:
    """Return the process-wide monitor, creating it on first use."""
    global _global_monitor
    with _global_lock:
        if _global_monitor is None:
            _global_monitor = EventLoopMonitor.from_config()
        return _global_monitor


def start_monitoring(interval_ms: Optional[float] = None, config: ConfigArg = None) -> bool:
    """Start the process-wide monitor; see `EventLoopMonitor.start_monitoring`."""
    return get_event_loop_monitor().start_monitoring(interval_ms, config)


def stop_monitoring() -> List[EventLoopSnapshot]:
    """Stop the process-wide monitor and return its snapshot history."""
    monitor = _global_monitor
    if monitor is None:
        return []
    return monitor.stop_monitoring()


def track_operation(
    work: Callable[[], Any],
    name: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Any:
    """Track ``work`` on the process-wide monitor, or just run it if none exists."""
    monitor = _global_monitor
    if monitor is None:
        return work()
    return monitor.track_operation(work, name, metadata)


async def track_operation_async(
    work: Callable[[], Any],
    name: Optional[str] = None,
    metadata: Optional[Dict[str, Any]] = None,
) -> Any:
    monitor = _global_monitor
    if monitor is None:
        result = work()
        if inspect.isawaitable(result):
            return await result
        return result
    return await monitor.track_operation_async(work, name, metadata)


def get_call_stack_summary() -> Dict[str, Any]:
    monitor = _global_monitor
    if monitor is None:
        return empty_call_stack_summary()
    return monitor.get_call_stack_summary()


def generate_monitoring_report() -> str:
    monitor = _global_monitor
    if monitor is None:
        return EMPTY_REPORT
    return monitor.generate_report()


def export_monitoring_data(path: Union[str, Path] = DEFAULT_EXPORT_PATH) -> List[Path]:
    """
    Export the process-wide monitor's data.

    Returns:
        Paths written; empty when no monitor was ever created
    """
    monitor = _global_monitor
    if monitor is None:
        logger.warning("No event loop monitor exists; nothing to export")
        return []
    return monitor.export_data(path)


def reset_global_monitor() -> None:
    """Stop and discard the process-wide monitor."""
    global _global_monitor
    with _global_lock:
        monitor = _global_monitor
        _global_monitor = None
    if monitor is not None and monitor.is_monitoring:
        monitor.stop_monitoring()
