"""
Periodic sampler.

The sampler runs on its own daemon thread. Each tick copies the registry,
classifies hanging calls, reads process resource counters and the event loop
lag, assembles an immutable snapshot, appends it to a bounded history and
applies the hang policy. Ticks are serialized: the thread waits a full
interval after finishing one tick before starting the next, and manual
`take_snapshot()` calls share the same lock.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import replace
from typing import Deque, List, Optional

from ..collectors.base import AbstractResourceCollector, ResourceSample
from ..collectors.loop_lag import LoopLagProbe
from ..models.config import HangingDetectionConfig
from ..models.snapshots import EventLoopSnapshot, SnapshotSummary
from ..registry.call_registry import CallRegistry
from ..validation import handle_error, ErrorSeverity
from .hang_policy import HangPolicy

logger = logging.getLogger(__name__)


class Sampler:
    """
    Produces EventLoopSnapshots on a fixed interval.

    Args:
        registry: Registry to sample
        config: Detection policy of the session
        collector: Resource collector (already constructed, not yet started)
        lag_probe: Event loop lag probe
        policy: Hang policy applied to each snapshot
        lag_probe_timeout: Seconds one lag measurement may wait; defaults
            to the sampling interval
    """

    def __init__(
        self,
        registry: CallRegistry,
        config: HangingDetectionConfig,
        collector: AbstractResourceCollector,
        lag_probe: LoopLagProbe,
        policy: HangPolicy,
        lag_probe_timeout: Optional[float] = None,
    ):
        self.registry = registry
        self.config = config
        self.collector = collector
        self.lag_probe = lag_probe
        self.policy = policy
        self.lag_probe_timeout = lag_probe_timeout

        self.interval = 1.0
        self.stop_event = threading.Event()
        self.thread: Optional[threading.Thread] = None
        self.running = False

        self._tick_lock = threading.Lock()
        self._history_lock = threading.Lock()
        self._history: Deque[EventLoopSnapshot] = deque(maxlen=config.snapshot_history_size)

        # Tick statistics
        self.ticks_completed = 0
        self.ticks_failed = 0
        self.last_tick_time = 0.0

    @property
    def history(self) -> List[EventLoopSnapshot]:
        """Snapshots taken so far, oldest first."""
        with self._history_lock:
            return list(self._history)

    @property
    def latest(self) -> Optional[EventLoopSnapshot]:
        with self._history_lock:
            return self._history[-1] if self._history else None

    def start(self, interval: float) -> None:
        """
        Start the sampling thread and return immediately.

        Args:
            interval: Seconds between the end of one tick and the next
        """
        if self.running:
            logger.warning("Sampler already running")
            return
        if interval <= 0:
            raise ValueError("interval must be positive")

        self.interval = interval
        self.collector.start()
        self.running = True
        self.stop_event.clear()
        self.thread = threading.Thread(
            target=self.sampling_loop,
            name="HangwatchSampler",
            daemon=True
        )
        self.thread.start()
        logger.debug(f"Sampler started with interval {interval:.3f}s")

    def stop(self, timeout: float = 5.0) -> None:
        """
        Stop the sampling thread.

        Args:
            timeout: Seconds to wait for the thread to finish
        """
        if not self.running:
            return

        self.running = False
        self.stop_event.set()

        if self.thread and self.thread.is_alive() and self.thread is not threading.current_thread():
            self.thread.join(timeout=timeout)
            if self.thread.is_alive():
                logger.warning("Sampler thread did not stop within timeout")
        logger.debug("Sampler stopped")

    def close(self) -> None:
        """Release collector resources; called once the session ends."""
        try:
            self.collector.stop()
        except Exception as e:
            handle_error(
                error=e,
                context="stopping resource collector",
                severity=ErrorSeverity.WARNING,
                reraise=False,
                logger=logger
            )

    def sampling_loop(self) -> None:
        """Main sampling loop."""
        logger.debug("Sampling loop started")
        try:
            while not self.stop_event.wait(self.interval):
                try:
                    self.take_snapshot()
                except Exception as e:
                    self.ticks_failed += 1
                    handle_error(
                        error=e,
                        context="sampler tick",
                        severity=ErrorSeverity.ERROR,
                        reraise=False,
                        logger=logger
                    )
        finally:
            logger.debug("Sampling loop finished")

    def take_snapshot(self) -> EventLoopSnapshot:
        """
        Produce one snapshot, append it to the history and apply the policy.

        Returns:
            The snapshot, including the messages of alerts it raised
        """
        with self._tick_lock:
            threshold = self.config.timeout_threshold
            now = time.monotonic()
            timestamp = time.time()

            newly_flagged = self.registry.flag_hanging(threshold, now)
            view = self.registry.snapshot_view(threshold, now)

            resources = self._sample_resources()
            lag = self._measure_lag()

            snapshot = EventLoopSnapshot(
                timestamp=timestamp,
                active_calls=view.active,
                completed_calls=view.completed,
                failed_calls=view.failed,
                hanging_calls=view.hanging,
                memory_usage=resources.memory,
                cpu_usage=resources.cpu,
                event_loop_lag=lag,
                summary=SnapshotSummary.from_calls(
                    view.active, view.completed, view.failed, view.hanging
                ),
            )

            elapsed_by_id = {call.id: call.elapsed_ms(now) for call in view.active}
            alerts = self.policy.evaluate(snapshot, newly_flagged, elapsed_by_id)
            if alerts:
                snapshot = replace(snapshot, alerts=tuple(alert.message for alert in alerts))

            with self._history_lock:
                self._history.append(snapshot)
            self.ticks_completed += 1
            self.last_tick_time = timestamp

        logger.debug(
            f"Snapshot: active={snapshot.summary.total_active} "
            f"completed={snapshot.summary.total_completed} "
            f"hanging={snapshot.summary.total_hanging} lag={lag:.2f}ms"
        )
        return snapshot

    def _sample_resources(self) -> ResourceSample:
        try:
            return self.collector.sample()
        except Exception as e:
            handle_error(
                error=e,
                context="reading process resource counters",
                severity=ErrorSeverity.WARNING,
                reraise=False,
                logger=logger
            )
            return ResourceSample()

    def _measure_lag(self) -> float:
        timeout = self.lag_probe_timeout if self.lag_probe_timeout else self.interval
        try:
            return self.lag_probe.measure(timeout)
        except Exception as e:
            handle_error(
                error=e,
                context="measuring event loop lag",
                severity=ErrorSeverity.WARNING,
                reraise=False,
                logger=logger
            )
            return 0.0

    def clear_history(self) -> None:
        with self._history_lock:
            self._history.clear()

    def get_performance_info(self) -> dict:
        """
        Get sampler statistics.

        Returns:
            Dictionary with tick counters and history size
        """
        return {
            'running': self.running,
            'interval_seconds': self.interval,
            'ticks_completed': self.ticks_completed,
            'ticks_failed': self.ticks_failed,
            'last_tick_time': self.last_tick_time,
            'history_size': len(self._history),
        }
