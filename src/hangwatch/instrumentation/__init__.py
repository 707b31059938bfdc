"""
Instrumentation API: wrapping caller work for tracking.
"""

from .location import CallSite, UNKNOWN_CALL_SITE, capture_call_site
from .tracker import OperationTracker

__all__ = ["CallSite", "UNKNOWN_CALL_SITE", "capture_call_site", "OperationTracker"]
