"""
Markdown report rendering.

Reports are rendered from plain dictionaries (the shapes produced by
`EventLoopMonitor.get_status`, `build_call_stack_summary` and
`EventLoopSnapshot.to_dict`), so the same renderer serves live monitors and
previously exported JSON files.
"""

import json
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from .summary import empty_call_stack_summary

logger = logging.getLogger(__name__)

REPORT_TITLE = "# Event Loop Monitoring Report"
EMPTY_REPORT = f"{REPORT_TITLE}\n\nNo monitoring data available."


def _format_time(timestamp: Optional[float]) -> str:
    if not timestamp:
        return "n/a"
    return datetime.fromtimestamp(timestamp).isoformat(sep=" ", timespec="seconds")


def _format_mb(value: int) -> str:
    return f"{value / 1024 / 1024:.2f}MB"


def _running_for(call: Dict[str, Any], now: float) -> float:
    return max(0.0, (now - call["timestamp"]) * 1000.0)


def _location(call: Dict[str, Any]) -> str:
    return f"{call['file_name']}:{call['line_number']}:{call['column_number']}"


def _summary_lines(summary: Dict[str, Any]) -> List[str]:
    return [
        "## Summary",
        "",
        f"- **Active Calls:** {summary['total_active']}",
        f"- **Completed Calls:** {summary['total_completed']}",
        f"- **Failed Calls:** {summary['total_failed']}",
        f"- **Hanging Calls:** {summary['total_hanging']}",
        f"- **Average Duration:** {summary['average_duration']:.2f}ms",
        f"- **Min Duration:** {summary['min_duration']:.2f}ms",
        f"- **Max Duration:** {summary['max_duration']:.2f}ms",
        "",
    ]


def _resource_lines(snapshot: Dict[str, Any]) -> List[str]:
    memory = snapshot["memory_usage"]
    cpu = snapshot["cpu_usage"]
    lines = [
        "## Resources (latest sample)",
        "",
        f"- **Sampled At:** {_format_time(snapshot['timestamp'])}",
        f"- **RSS:** {_format_mb(memory['rss'])}",
        f"- **VMS:** {_format_mb(memory['vms'])}",
    ]
    if memory["heap_total"]:
        lines.append(
            f"- **Python Heap:** {_format_mb(memory['heap_used'])} "
            f"(peak {_format_mb(memory['heap_total'])})"
        )
    lines += [
        f"- **CPU:** {cpu['percent']:.2f}% (user {cpu['user']:.2f}ms, system {cpu['system']:.2f}ms)",
        f"- **Event Loop Lag:** {snapshot['event_loop_lag']:.2f}ms",
    ]
    if snapshot["alerts"]:
        lines.append(f"- **Alerts:** {len(snapshot['alerts'])}")
        lines += [f"  - {alert}" for alert in snapshot["alerts"]]
    lines.append("")
    return lines


def render_report(
    status: Dict[str, Any],
    call_stack_summary: Dict[str, Any],
    latest_snapshot: Optional[Dict[str, Any]] = None,
) -> str:
    """
    Render a human-readable Markdown report.

    Args:
        status: Monitor status dictionary
        call_stack_summary: Output of `build_call_stack_summary`
        latest_snapshot: Most recent snapshot as a dict, if any

    Returns:
        Markdown text; `EMPTY_REPORT` when there is nothing to report
    """
    active = call_stack_summary["active"]
    recent = call_stack_summary["recent"]
    if not status.get("snapshot_count") and not active and not recent:
        return EMPTY_REPORT

    now = status.get("timestamp") or datetime.now().timestamp()
    lines = [
        REPORT_TITLE,
        "",
        f"**Generated:** {_format_time(now)}",
        f"**Instance:** {status.get('instance_id', 'unknown')}",
        f"**Monitoring:** {'Active' if status.get('is_monitoring') else 'Stopped'}",
        f"**Session Duration:** {status.get('session_duration_ms', 0.0) / 1000.0:.2f}s",
        f"**Snapshots:** {status.get('snapshot_count', 0)}",
        "",
    ]
    lines += _summary_lines(call_stack_summary["summary"])

    if latest_snapshot:
        lines += _resource_lines(latest_snapshot)

    if active:
        lines += ["## Currently Running Calls", ""]
        for call in active:
            lines.append(
                f"- `{call['function_name']}` ({call['id']}) running for "
                f"{_running_for(call, now):.2f}ms at {_location(call)}"
            )
        lines.append("")

    hanging = call_stack_summary["hanging"]
    if hanging:
        lines += ["## Hanging Calls", ""]
        for call in hanging:
            lines += [
                f"### {call['function_name']}",
                f"- **ID:** {call['id']}",
                f"- **Running For:** {_running_for(call, now):.2f}ms",
                f"- **Started:** {_format_time(call['timestamp'])}",
                f"- **Location:** {_location(call)}",
            ]
            if call["metadata"]:
                lines.append(f"- **Metadata:** {json.dumps(call['metadata'], default=str)}")
            lines.append("")

    failed = [call for call in recent if call["status"] != "completed"]
    if failed:
        lines += ["## Failed Calls", ""]
        for call in failed:
            duration = call["duration"] or 0.0
            lines.append(
                f"- `{call['function_name']}` ({call['id']}) {call['status']} "
                f"after {duration:.2f}ms: {call['error'] or 'no details'}"
            )
        lines.append("")

    return "\n".join(lines).rstrip() + "\n"


def render_report_from_payload(payload: Dict[str, Any]) -> str:
    """
    Render the report of a previously exported monitoring payload.

    Args:
        payload: Dictionary produced by `build_export_payload`

    Returns:
        Markdown text
    """
    snapshots = payload.get("snapshots") or []
    summary = payload.get("call_stack_summary")
    if summary is None:
        logger.warning("Export payload has no call_stack_summary section")
        summary = empty_call_stack_summary()
    return render_report(
        payload.get("status") or {},
        summary,
        snapshots[-1] if snapshots else None,
    )
