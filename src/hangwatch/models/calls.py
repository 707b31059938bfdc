"""
Call tracking data models.

This module defines the atomic unit of tracked work, `CallStackEntry`, its
lifecycle states, and the tagged outcome used when an entry is finalized.

An entry starts `active` and moves exactly once to one of the terminal
states. While active it has no duration; once terminal its duration is
stamped and never changes again.
"""

import time
import uuid
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional


class CallStatus(Enum):
    """Lifecycle states of a tracked call."""
    ACTIVE = "active"
    COMPLETED = "completed"
    TIMEOUT = "timeout"
    ERROR = "error"

    @property
    def is_terminal(self) -> bool:
        return self is not CallStatus.ACTIVE


def generate_call_id() -> str:
    """Generate a process-unique call identifier."""
    return f"call_{uuid.uuid4().hex}"


@dataclass
class CallStackEntry:
    """
    One attempted unit of work and its recorded lifecycle.

    Location fields are best-effort: when stack capture is disabled or no
    caller frame can be resolved they hold ``"unknown"`` and ``0``.
    """

    # Human-readable label supplied by the caller (not required to be unique).
    function_name: str
    # Opaque unique identifier assigned at creation.
    id: str = field(default_factory=generate_call_id)
    # Call-site location.
    file_name: str = "unknown"
    line_number: int = 0
    column_number: int = 0
    # Wall-clock creation time (epoch seconds).
    timestamp: float = field(default_factory=time.time)
    # Elapsed time in milliseconds, set only once the entry is terminal.
    duration: Optional[float] = None
    status: CallStatus = CallStatus.ACTIVE
    # Caller-supplied key/value pairs, stored verbatim.
    metadata: Dict[str, Any] = field(default_factory=dict)
    # True once the sampler has classified this entry as hanging.
    was_flagged_hanging: bool = False
    # "<ExceptionType>: <message>" for entries finalized as errors.
    error: Optional[str] = None
    # True when the registry dropped this entry to stay within capacity.
    evicted: bool = False
    # Monotonic start stamp (seconds) used for elapsed-time arithmetic.
    started_at: float = field(default_factory=time.monotonic, repr=False, compare=False)

    @property
    def is_terminal(self) -> bool:
        return self.status.is_terminal

    def elapsed_ms(self, now: Optional[float] = None) -> float:
        """
        Milliseconds elapsed since the entry started.

        Args:
            now: Monotonic time in seconds; defaults to ``time.monotonic()``

        Returns:
            Non-negative elapsed time in milliseconds
        """
        if now is None:
            now = time.monotonic()
        return max(0.0, (now - self.started_at) * 1000.0)

    def copy(self) -> "CallStackEntry":
        """Return a detached copy safe to hand out to readers."""
        return replace(self, metadata=dict(self.metadata))

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "function_name": self.function_name,
            "file_name": self.file_name,
            "line_number": self.line_number,
            "column_number": self.column_number,
            "timestamp": self.timestamp,
            "duration": self.duration,
            "status": self.status.value,
            "metadata": dict(self.metadata),
            "was_flagged_hanging": self.was_flagged_hanging,
            "error": self.error,
            "evicted": self.evicted,
        }


@dataclass(frozen=True)
class CallOutcome:
    """
    Tagged result of running tracked work.

    The registry only needs to know whether the work succeeded and, if not,
    a printable description of the failure; the exception object itself is
    re-raised to the caller by the instrumentation layer.
    """

    status: CallStatus
    error_text: Optional[str] = None

    @classmethod
    def success(cls) -> "CallOutcome":
        return cls(status=CallStatus.COMPLETED)

    @classmethod
    def failure(cls, error: BaseException) -> "CallOutcome":
        return cls(status=CallStatus.ERROR, error_text=f"{type(error).__name__}: {error}")

    @classmethod
    def timed_out(cls, reason: str) -> "CallOutcome":
        return cls(status=CallStatus.TIMEOUT, error_text=reason)
