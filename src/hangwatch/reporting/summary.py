"""
Call stack summaries.
"""

from typing import Any, Dict

from ..models.snapshots import SnapshotSummary
from ..registry.call_registry import RegistryView

# Number of entries listed in the hanging and recent sections.
HANGING_LIMIT = 10
RECENT_LIMIT = 20


def build_call_stack_summary(view: RegistryView) -> Dict[str, Any]:
    """
    Summarize a registry view for callers and reports.

    Args:
        view: Copy-on-read registry view

    Returns:
        Dictionary with ``summary`` statistics, all ``active`` entries, the
        most recent ``hanging`` entries and the most recent terminal entries
        under ``recent``, each as plain dicts
    """
    summary = SnapshotSummary.from_calls(view.active, view.completed, view.failed, view.hanging)
    return {
        "summary": summary.to_dict(),
        "active": [call.to_dict() for call in view.active],
        "hanging": [call.to_dict() for call in view.hanging[-HANGING_LIMIT:]],
        "recent": [call.to_dict() for call in view.finished[-RECENT_LIMIT:]],
    }


def empty_call_stack_summary() -> Dict[str, Any]:
    """Summary returned when no monitoring data exists."""
    return {
        "summary": SnapshotSummary().to_dict(),
        "active": [],
        "hanging": [],
        "recent": [],
    }
