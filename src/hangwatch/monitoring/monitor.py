"""
Event loop monitor: the session object tying the pieces together.

An `EventLoopMonitor` owns the call registry, the sampler thread and the
export settings of one monitoring session. Work is tracked through it, the
sampler observes the registry, and summaries, reports and exports are
produced from whatever the session collected.

Querying a monitor that was never started returns empty, well-typed results.
After `stop_monitoring()` the registry and snapshot history of the finished
session remain queryable until the next `start_monitoring()` or `clear()`.
"""

import asyncio
import logging
import threading
import time
import uuid
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from ..collectors.base import AbstractResourceCollector
from ..collectors.loop_lag import LoopLagProbe
from ..collectors.psutil_collector import PsutilResourceCollector
from ..config import get_config
from ..instrumentation.tracker import OperationTracker
from ..models.config import (
    MAX_INTERVAL_MS,
    MIN_INTERVAL_MS,
    AppConfig,
    HangingDetectionConfig,
    SamplingConfig,
    StorageConfig,
)
from ..models.snapshots import EventLoopSnapshot
from ..registry.call_registry import CallRegistry
from ..reporting.export import build_export_payload
from ..reporting.report import render_report
from ..reporting.summary import build_call_stack_summary
from ..storage.writer import MonitoringDataWriter
from ..validation import ErrorSeverity, handle_error, validate_positive_float
from .hang_policy import AlertHandler, HangPolicy
from .sampler import Sampler

logger = logging.getLogger(__name__)

DEFAULT_EXPORT_FILENAME = "event-loop-monitoring.json"

ConfigArg = Optional[Union[HangingDetectionConfig, Dict[str, Any]]]


def generate_instance_id() -> str:
    return f"monitor_{int(time.time() * 1000)}_{uuid.uuid4().hex[:9]}"


class EventLoopMonitor:
    """
    Tracks calls, samples the process and flags hanging work.

    Args:
        config: Detection policy used when `start_monitoring` gets none
        sampling: Sampler scheduling settings
        storage: Export storage settings
        collector: Resource collector to use instead of a psutil collector
            built from the session config
        lag_probe: Event loop lag probe
    """

    def __init__(
        self,
        config: Optional[HangingDetectionConfig] = None,
        sampling: Optional[SamplingConfig] = None,
        storage: Optional[StorageConfig] = None,
        collector: Optional[AbstractResourceCollector] = None,
        lag_probe: Optional[LoopLagProbe] = None,
    ):
        self.instance_id = generate_instance_id()
        self.config = config or HangingDetectionConfig()
        self.sampling = sampling or SamplingConfig()
        self.storage = storage or StorageConfig()
        self.lag_probe = lag_probe or LoopLagProbe()

        self.registry = self._new_registry(self.config)
        self.sampler: Optional[Sampler] = None

        self._collector = collector
        self._handlers: List[AlertHandler] = []
        self._tracker = OperationTracker(self)

        self._state_lock = threading.Lock()
        self._running = False
        self._interval_ms = self.sampling.interval_ms
        self._started_at: Optional[float] = None
        self._stopped_at: Optional[float] = None
        self._started_monotonic: Optional[float] = None
        self._stopped_monotonic: Optional[float] = None

        logger.debug(f"Created event loop monitor {self.instance_id}")

    @classmethod
    def from_config(cls, app_config: Optional[AppConfig] = None, **kwargs) -> "EventLoopMonitor":
        """
        Create a monitor from the application configuration.

        Args:
            app_config: Loaded configuration; defaults to `get_config()`
            **kwargs: Passed through to the constructor (collector, lag_probe)
        """
        app_config = app_config or get_config()
        return cls(
            config=app_config.detection,
            sampling=app_config.sampling,
            storage=app_config.storage,
            **kwargs,
        )

    @staticmethod
    def _new_registry(config: HangingDetectionConfig) -> CallRegistry:
        return CallRegistry(
            max_active_calls=config.max_active_calls,
            history_size=config.completed_history_size,
        )

    def _resolve_config(self, config: ConfigArg) -> HangingDetectionConfig:
        if config is None:
            return self.config
        if isinstance(config, HangingDetectionConfig):
            return config
        return self.config.with_overrides(**config)

    def _build_collector(self, config: HangingDetectionConfig) -> AbstractResourceCollector:
        if self._collector is not None:
            return self._collector
        return PsutilResourceCollector(
            track_memory=config.enable_memory_tracking,
            track_cpu=config.enable_cpu_tracking,
            trace_python_heap=config.trace_python_heap,
        )

    # --- Session control ---

    @property
    def is_monitoring(self) -> bool:
        return self._running

    def start_monitoring(
        self,
        interval_ms: Optional[float] = None,
        config: ConfigArg = None,
    ) -> bool:
        """
        Start a monitoring session and return immediately.

        Starting a monitor that is already running logs a warning and leaves
        the running session and its config untouched.

        Args:
            interval_ms: Milliseconds between sampler ticks; defaults to the
                configured sampling interval
            config: Detection policy for this session, either a complete
                HangingDetectionConfig or a mapping of overrides

        Returns:
            True if a new session was started

        Raises:
            ValidationError: If the interval or config overrides are invalid
        """
        with self._state_lock:
            if self._running:
                logger.warning(
                    f"Event loop monitoring already running ({self.instance_id}); "
                    f"ignoring start request"
                )
                return False

            if interval_ms is None:
                interval_ms = self.sampling.interval_ms
            interval_ms = validate_positive_float(
                interval_ms,
                min_value=MIN_INTERVAL_MS,
                max_value=MAX_INTERVAL_MS,
                field_name="interval_ms",
            )
            session_config = self._resolve_config(config)

            lag_timeout = self.sampling.lag_probe_timeout_ms / 1000.0 or None
            self.config = session_config
            self.registry = self._new_registry(session_config)
            self.sampler = Sampler(
                registry=self.registry,
                config=session_config,
                collector=self._build_collector(session_config),
                lag_probe=self.lag_probe,
                policy=HangPolicy(session_config, self._handlers),
                lag_probe_timeout=lag_timeout,
            )
            self.lag_probe.attach_running_loop()
            self.sampler.start(interval_ms / 1000.0)

            self._interval_ms = interval_ms
            self._running = True
            self._started_at = time.time()
            self._started_monotonic = time.monotonic()
            self._stopped_at = None
            self._stopped_monotonic = None

        logger.info(
            f"Event loop monitoring started ({self.instance_id}): interval {interval_ms:.0f}ms, "
            f"timeout threshold {session_config.timeout_threshold:.0f}ms"
        )
        return True

    def stop_monitoring(self) -> List[EventLoopSnapshot]:
        """
        Stop the session, take one final snapshot and return the history.

        The final snapshot runs alert handlers, so it is taken after the
        state lock is released; a handler may call back into the monitor.

        Returns:
            Snapshots of the session, oldest first; empty if not running
        """
        with self._state_lock:
            if not self._running:
                logger.debug("Event loop monitoring is not running; nothing to stop")
                return []

            self._running = False
            sampler = self.sampler
            self._stopped_at = time.time()
            self._stopped_monotonic = time.monotonic()

        sampler.stop()
        try:
            sampler.take_snapshot()
        except Exception as e:
            handle_error(
                error=e,
                context="taking final snapshot",
                severity=ErrorSeverity.WARNING,
                reraise=False,
                logger=logger
            )
        sampler.close()

        history = sampler.history
        logger.info(
            f"Event loop monitoring stopped ({self.instance_id}) after "
            f"{self.session_duration_ms / 1000.0:.2f}s with {len(history)} snapshots"
        )
        return history

    def clear(self) -> None:
        """Discard collected calls and snapshots."""
        self.registry.clear()
        if self.sampler is not None:
            self.sampler.clear_history()

    def take_snapshot(self) -> Optional[EventLoopSnapshot]:
        """
        Take a snapshot outside the regular schedule.

        Returns:
            The snapshot, or None when no session is running
        """
        sampler = self.sampler
        if not self._running or sampler is None:
            return None
        return sampler.take_snapshot()

    # --- Event loop and alerting ---

    def attach_event_loop(self, loop: Optional[asyncio.AbstractEventLoop]) -> None:
        """Measure lag on ``loop`` from now on."""
        self.lag_probe.attach(loop)

    def attach_running_loop(self) -> bool:
        """
        Attach the loop running in the current thread unless a live loop is
        already attached.
        """
        current = self.lag_probe.loop
        if current is not None and current.is_running() and not current.is_closed():
            return False
        return self.lag_probe.attach_running_loop()

    def add_alert_handler(self, handler: AlertHandler) -> None:
        """Register a callable invoked with every HangAlert raised."""
        self._handlers.append(handler)
        if self.sampler is not None:
            self.sampler.policy.add_handler(handler)

    # --- Instrumentation ---

    def track_operation(
        self,
        work: Callable[[], Any],
        name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Any:
        return self._tracker.track_operation(work, name, metadata)

    async def track_operation_async(
        self,
        work: Callable[[], Any],
        name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Any:
        return await self._tracker.track_operation_async(work, name, metadata)

    def tracked(self, name: Optional[str] = None, metadata: Optional[Dict[str, Any]] = None):
        return self._tracker.tracked(name, metadata)

    # --- Queries ---

    @property
    def snapshots(self) -> List[EventLoopSnapshot]:
        return self.sampler.history if self.sampler is not None else []

    @property
    def session_duration_ms(self) -> float:
        if self._started_monotonic is None:
            return 0.0
        end = self._stopped_monotonic if self._stopped_monotonic is not None else time.monotonic()
        return (end - self._started_monotonic) * 1000.0

    def get_status(self) -> Dict[str, Any]:
        """
        Current state of the monitor.

        Returns:
            Dictionary with session timing, registry counts and lifetime
            counters
        """
        stats = self.registry.summary_stats(self.config.timeout_threshold)
        return {
            "instance_id": self.instance_id,
            "is_monitoring": self._running,
            "timestamp": time.time(),
            "started_at": self._started_at,
            "stopped_at": self._stopped_at,
            "session_duration_ms": self.session_duration_ms,
            "interval_ms": self._interval_ms,
            "snapshot_count": len(self.snapshots),
            "active_calls": stats.active,
            "completed_calls": stats.completed,
            "failed_calls": stats.failed,
            "hanging_calls": stats.hanging,
            "total_started": stats.total_started,
            "total_finished": stats.total_finished,
            "total_errors": stats.total_errors,
            "total_evicted": stats.total_evicted,
            "capacity_warnings": stats.capacity_warnings,
        }

    def get_call_stack_summary(self) -> Dict[str, Any]:
        """Summary statistics plus active, hanging and recent calls."""
        view = self.registry.snapshot_view(self.config.timeout_threshold)
        return build_call_stack_summary(view)

    def generate_report(self) -> str:
        """Render the Markdown report of the current or last session."""
        snapshots = self.snapshots
        return render_report(
            self.get_status(),
            self.get_call_stack_summary(),
            snapshots[-1].to_dict() if snapshots else None,
        )

    def build_export_payload(self, snapshots: Optional[List[EventLoopSnapshot]] = None) -> Dict[str, Any]:
        """Complete, JSON-serializable monitoring data."""
        return build_export_payload(
            instance_id=self.instance_id,
            config=self.config,
            status=self.get_status(),
            call_stack_summary=self.get_call_stack_summary(),
            snapshots=self.snapshots if snapshots is None else snapshots,
        )

    def export_data(self, path: Optional[Union[str, Path]] = None) -> List[Path]:
        """
        Write monitoring data to ``path``.

        The format follows the file suffix (``.json`` or ``.parquet``).

        Args:
            path: Target file; defaults to ``event-loop-monitoring.json`` in
                the configured output directory

        Returns:
            Paths of every file written
        """
        if path is None:
            path = self.storage.output_dir / DEFAULT_EXPORT_FILENAME
        snapshots = self.snapshots
        writer = MonitoringDataWriter(self.storage)
        return writer.export(self.build_export_payload(snapshots), snapshots, path)

    # --- Context managers ---

    def __enter__(self) -> "EventLoopMonitor":
        self.start_monitoring()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop_monitoring()

    async def __aenter__(self) -> "EventLoopMonitor":
        self.start_monitoring()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop_monitoring()
