"""
Snapshot data models produced by the sampler.

A snapshot is an immutable, point-in-time view of the call registry plus the
process resource counters sampled in the same tick. Every list it holds is a
copy; nothing in a snapshot refers back to live registry state.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Sequence, Tuple

from .calls import CallStackEntry


@dataclass(frozen=True)
class MemoryUsage:
    """Process memory counters in bytes."""

    rss: int = 0
    vms: int = 0
    # Python heap usage as reported by tracemalloc (0 when not tracing).
    heap_used: int = 0
    heap_total: int = 0
    # Shared/external memory mapped into the process, where the platform reports it.
    external: int = 0

    def to_dict(self) -> Dict[str, int]:
        return {
            "rss": self.rss,
            "vms": self.vms,
            "heap_used": self.heap_used,
            "heap_total": self.heap_total,
            "external": self.external,
        }


@dataclass(frozen=True)
class CpuUsage:
    """CPU time consumed since the previous sample."""

    # Milliseconds of user/system CPU time in the sampling window.
    user: float = 0.0
    system: float = 0.0
    # (user + system) / wall-clock window, as a percentage.
    percent: float = 0.0

    def to_dict(self) -> Dict[str, float]:
        return {"user": self.user, "system": self.system, "percent": self.percent}


@dataclass(frozen=True)
class SnapshotSummary:
    """Aggregate counts and duration statistics of one snapshot."""

    total_active: int = 0
    total_completed: int = 0
    total_hanging: int = 0
    total_failed: int = 0
    average_duration: float = 0.0
    max_duration: float = 0.0
    min_duration: float = 0.0

    @classmethod
    def from_calls(
        cls,
        active: Sequence[CallStackEntry],
        completed: Sequence[CallStackEntry],
        failed: Sequence[CallStackEntry],
        hanging: Sequence[CallStackEntry],
    ) -> "SnapshotSummary":
        """
        Build the summary as a pure function of the call lists.

        Duration statistics cover every terminal entry (completed and failed).
        """
        durations = [
            call.duration for call in (*completed, *failed) if call.duration is not None
        ]
        return cls(
            total_active=len(active),
            total_completed=len(completed),
            total_hanging=len(hanging),
            total_failed=len(failed),
            average_duration=sum(durations) / len(durations) if durations else 0.0,
            max_duration=max(durations) if durations else 0.0,
            min_duration=min(durations) if durations else 0.0,
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total_active": self.total_active,
            "total_completed": self.total_completed,
            "total_hanging": self.total_hanging,
            "total_failed": self.total_failed,
            "average_duration": self.average_duration,
            "max_duration": self.max_duration,
            "min_duration": self.min_duration,
        }


@dataclass(frozen=True)
class EventLoopSnapshot:
    """
    Point-in-time summary produced by one sampler tick.

    ``hanging_calls`` is a derived view: active entries whose elapsed time
    exceeded the timeout threshold when the snapshot was taken. They also
    appear in ``active_calls``.
    """

    timestamp: float
    active_calls: Tuple[CallStackEntry, ...] = ()
    completed_calls: Tuple[CallStackEntry, ...] = ()
    failed_calls: Tuple[CallStackEntry, ...] = ()
    hanging_calls: Tuple[CallStackEntry, ...] = ()
    memory_usage: MemoryUsage = field(default_factory=MemoryUsage)
    cpu_usage: CpuUsage = field(default_factory=CpuUsage)
    # Scheduler responsiveness in milliseconds.
    event_loop_lag: float = 0.0
    summary: SnapshotSummary = field(default_factory=SnapshotSummary)
    # Messages of the alerts raised while this snapshot was evaluated.
    alerts: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "active_calls": [call.to_dict() for call in self.active_calls],
            "completed_calls": [call.to_dict() for call in self.completed_calls],
            "failed_calls": [call.to_dict() for call in self.failed_calls],
            "hanging_calls": [call.to_dict() for call in self.hanging_calls],
            "memory_usage": self.memory_usage.to_dict(),
            "cpu_usage": self.cpu_usage.to_dict(),
            "event_loop_lag": self.event_loop_lag,
            "summary": self.summary.to_dict(),
            "alerts": list(self.alerts),
        }
