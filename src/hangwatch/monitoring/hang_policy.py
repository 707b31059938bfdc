"""
Hang detection policy.

Evaluates a freshly taken snapshot against the session's thresholds and turns
every violation into a `HangAlert`. Alerts are logged and handed to any
registered alert handlers; handler failures are logged and never propagate,
so alerting can not disturb the sampler or the monitored work.
"""

import logging
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, List, Optional, Sequence

from ..models.calls import CallStackEntry
from ..models.config import HangingDetectionConfig
from ..models.snapshots import EventLoopSnapshot

logger = logging.getLogger(__name__)


class AlertKind(Enum):
    """Categories of policy violations."""
    HANGING_CALL = "hanging_call"
    MEMORY = "memory"
    CPU = "cpu"
    EVENT_LOOP_LAG = "event_loop_lag"
    ACTIVE_CALLS = "active_calls"


@dataclass(frozen=True)
class HangAlert:
    """One threshold violation observed in a snapshot."""

    kind: AlertKind
    message: str
    value: float
    threshold: float
    call: Optional[CallStackEntry] = None
    timestamp: float = field(default_factory=time.time)


AlertHandler = Callable[[HangAlert], None]


def describe_call(call: CallStackEntry, elapsed_ms: float) -> str:
    """Single-line description of a call for logs and alerts."""
    text = (
        f"{call.function_name} ({call.id}) running for {elapsed_ms:.2f}ms "
        f"at {call.file_name}:{call.line_number}"
    )
    if call.metadata:
        text += f" metadata={call.metadata}"
    return text


class HangPolicy:
    """
    Applies a HangingDetectionConfig to snapshots.

    Args:
        config: Thresholds and toggles of the session
        handlers: Callables invoked with every alert raised
    """

    def __init__(
        self,
        config: HangingDetectionConfig,
        handlers: Optional[Sequence[AlertHandler]] = None,
    ):
        self.config = config
        self.handlers: List[AlertHandler] = list(handlers or [])

    def add_handler(self, handler: AlertHandler) -> None:
        self.handlers.append(handler)

    def evaluate(
        self,
        snapshot: EventLoopSnapshot,
        newly_flagged: Sequence[CallStackEntry] = (),
        elapsed_by_id: Optional[dict] = None,
    ) -> List[HangAlert]:
        """
        Check a snapshot against every threshold.

        Args:
            snapshot: The snapshot just produced
            newly_flagged: Entries classified as hanging for the first time
            elapsed_by_id: Elapsed milliseconds of active calls at sample time

        Returns:
            Alerts raised for this snapshot, in evaluation order
        """
        config = self.config
        elapsed_by_id = elapsed_by_id or {}
        alerts: List[HangAlert] = []

        if config.log_hanging_calls:
            for call in newly_flagged:
                logger.warning(
                    f"Hanging call detected: "
                    f"{describe_call(call, elapsed_by_id.get(call.id, 0.0))}"
                )

        if config.alert_on_hanging:
            for call in snapshot.hanging_calls:
                elapsed = elapsed_by_id.get(call.id, 0.0)
                alerts.append(HangAlert(
                    kind=AlertKind.HANGING_CALL,
                    message=f"HANGING CALL DETECTED: {describe_call(call, elapsed)}",
                    value=elapsed,
                    threshold=config.timeout_threshold,
                    call=call,
                ))

        if config.enable_memory_tracking:
            memory = snapshot.memory_usage
            # Heap counters are only populated while tracemalloc runs.
            used = memory.heap_used or memory.rss
            if used > config.memory_threshold:
                alerts.append(HangAlert(
                    kind=AlertKind.MEMORY,
                    message=f"High memory usage: {used / 1024 / 1024:.2f}MB",
                    value=float(used),
                    threshold=float(config.memory_threshold),
                ))

        if config.enable_cpu_tracking and snapshot.cpu_usage.percent > config.cpu_threshold:
            alerts.append(HangAlert(
                kind=AlertKind.CPU,
                message=f"High CPU usage: {snapshot.cpu_usage.percent:.2f}%",
                value=snapshot.cpu_usage.percent,
                threshold=config.cpu_threshold,
            ))

        if snapshot.event_loop_lag > config.event_loop_lag_threshold:
            alerts.append(HangAlert(
                kind=AlertKind.EVENT_LOOP_LAG,
                message=f"High event loop lag: {snapshot.event_loop_lag:.2f}ms",
                value=snapshot.event_loop_lag,
                threshold=config.event_loop_lag_threshold,
            ))

        if snapshot.summary.total_active >= config.max_active_calls:
            alerts.append(HangAlert(
                kind=AlertKind.ACTIVE_CALLS,
                message=f"Too many active calls: {snapshot.summary.total_active}",
                value=float(snapshot.summary.total_active),
                threshold=float(config.max_active_calls),
            ))

        for alert in alerts:
            self._emit(alert)

        if config.alert_on_hanging and snapshot.hanging_calls:
            logger.error(f"{len(snapshot.hanging_calls)} hanging calls detected!")

        return alerts

    def _emit(self, alert: HangAlert) -> None:
        if alert.kind is AlertKind.HANGING_CALL:
            logger.error(alert.message)
        else:
            logger.warning(alert.message)

        for handler in self.handlers:
            try:
                handler(alert)
            except Exception as e:
                logger.warning(f"Alert handler {handler!r} failed: {e}", exc_info=True)
