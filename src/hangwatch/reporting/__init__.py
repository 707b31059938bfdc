"""
Reporting and export of monitoring data.

- Call stack summaries of the registry
- Markdown reports, live or from exported JSON
- Export payloads and the tabular snapshot history
"""

from .summary import HANGING_LIMIT, RECENT_LIMIT, build_call_stack_summary, empty_call_stack_summary
from .report import EMPTY_REPORT, render_report, render_report_from_payload
from .export import SNAPSHOT_SCHEMA, build_export_payload, snapshot_history_frame

__all__ = [
    "HANGING_LIMIT",
    "RECENT_LIMIT",
    "build_call_stack_summary",
    "empty_call_stack_summary",
    "EMPTY_REPORT",
    "render_report",
    "render_report_from_payload",
    "SNAPSHOT_SCHEMA",
    "build_export_payload",
    "snapshot_history_frame",
]
