"""
Export payloads and tabular snapshot history.
"""

from typing import Any, Dict, List, Sequence

import polars as pl

from ..models.config import HangingDetectionConfig
from ..models.snapshots import EventLoopSnapshot

# Column layout of the snapshot time series table.
SNAPSHOT_SCHEMA = {
    "timestamp": pl.Float64,
    "total_active": pl.Int64,
    "total_completed": pl.Int64,
    "total_failed": pl.Int64,
    "total_hanging": pl.Int64,
    "average_duration": pl.Float64,
    "min_duration": pl.Float64,
    "max_duration": pl.Float64,
    "rss": pl.Int64,
    "vms": pl.Int64,
    "heap_used": pl.Int64,
    "heap_total": pl.Int64,
    "external": pl.Int64,
    "cpu_user": pl.Float64,
    "cpu_system": pl.Float64,
    "cpu_percent": pl.Float64,
    "event_loop_lag": pl.Float64,
    "alert_count": pl.Int64,
}


def build_export_payload(
    instance_id: str,
    config: HangingDetectionConfig,
    status: Dict[str, Any],
    call_stack_summary: Dict[str, Any],
    snapshots: Sequence[EventLoopSnapshot],
) -> Dict[str, Any]:
    """
    Assemble the complete, JSON-serializable export payload.

    Args:
        instance_id: Identifier of the exporting monitor
        config: Detection policy of the session
        status: Monitor status dictionary
        call_stack_summary: Output of `build_call_stack_summary`
        snapshots: Snapshot history, oldest first

    Returns:
        Dictionary with ``instance_id``, ``config``, ``status``,
        ``call_stack_summary`` and ``snapshots`` keys
    """
    return {
        "instance_id": instance_id,
        "config": config.to_dict(),
        "status": dict(status),
        "call_stack_summary": call_stack_summary,
        "snapshots": [snapshot.to_dict() for snapshot in snapshots],
    }


def _snapshot_row(snapshot: EventLoopSnapshot) -> Dict[str, Any]:
    summary = snapshot.summary
    memory = snapshot.memory_usage
    cpu = snapshot.cpu_usage
    return {
        "timestamp": snapshot.timestamp,
        "total_active": summary.total_active,
        "total_completed": summary.total_completed,
        "total_failed": summary.total_failed,
        "total_hanging": summary.total_hanging,
        "average_duration": summary.average_duration,
        "min_duration": summary.min_duration,
        "max_duration": summary.max_duration,
        "rss": memory.rss,
        "vms": memory.vms,
        "heap_used": memory.heap_used,
        "heap_total": memory.heap_total,
        "external": memory.external,
        "cpu_user": cpu.user,
        "cpu_system": cpu.system,
        "cpu_percent": cpu.percent,
        "event_loop_lag": snapshot.event_loop_lag,
        "alert_count": len(snapshot.alerts),
    }


def snapshot_history_frame(snapshots: Sequence[EventLoopSnapshot]) -> pl.DataFrame:
    """
    Flatten snapshots into one row per tick.

    Call lists are not part of the table; only their counts and duration
    statistics are.
    """
    rows: List[Dict[str, Any]] = [_snapshot_row(snapshot) for snapshot in snapshots]
    return pl.DataFrame(rows, schema=SNAPSHOT_SCHEMA)
