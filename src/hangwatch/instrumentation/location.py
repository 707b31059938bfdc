"""
Call-site location capture.
"""

import os
import traceback
from typing import NamedTuple

# Frames from inside this package are never reported as call sites.
_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


class CallSite(NamedTuple):
    file_name: str
    line_number: int
    column_number: int


UNKNOWN_CALL_SITE = CallSite("unknown", 0, 0)


def _is_internal(filename: str) -> bool:
    return os.path.abspath(filename).startswith(_PACKAGE_DIR + os.sep)


def capture_call_site(limit: int = 32) -> CallSite:
    """
    Find the innermost stack frame outside the hangwatch package.

    Args:
        limit: Number of innermost frames to inspect

    Returns:
        CallSite of the caller, or UNKNOWN_CALL_SITE when every inspected
        frame belongs to the package
    """
    for frame in reversed(traceback.extract_stack(limit=limit)):
        if _is_internal(frame.filename):
            continue
        return CallSite(
            file_name=frame.filename,
            line_number=frame.lineno or 0,
            column_number=(getattr(frame, "colno", None) or 0),
        )
    return UNKNOWN_CALL_SITE
