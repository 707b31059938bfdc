"""
Thread-safe registry of tracked calls.

The registry is the only mutable state shared between instrumented work and
the sampler. Every read and mutation goes through one lock, which is held
only long enough to copy or swap references; tracked work never runs while
the lock is held, so the registry can be used from threads and from asyncio
tasks alike.

Active entries live in an insertion-ordered dict (oldest first). Terminal
entries are kept in a bounded ring buffer so memory stays flat in
long-running processes.
"""

import logging
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Deque, Dict, List, Optional, Tuple

from ..models.calls import CallOutcome, CallStackEntry, CallStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RegistryView:
    """Consistent, copy-on-read view of the registry."""

    active: Tuple[CallStackEntry, ...]
    completed: Tuple[CallStackEntry, ...]
    failed: Tuple[CallStackEntry, ...]
    hanging: Tuple[CallStackEntry, ...]

    @property
    def finished(self) -> Tuple[CallStackEntry, ...]:
        """All retained terminal entries ordered by finish time."""
        return tuple(sorted(
            (*self.completed, *self.failed),
            key=lambda call: call.timestamp + (call.duration or 0.0) / 1000.0,
        ))


@dataclass(frozen=True)
class RegistryStats:
    """Current counts plus duration statistics over retained history."""

    active: int
    completed: int
    failed: int
    hanging: int
    average_duration: float
    max_duration: float
    min_duration: float
    # Lifetime counters (not bounded by the history size).
    total_started: int
    total_finished: int
    total_errors: int
    total_evicted: int
    capacity_warnings: int


class CallRegistry:
    """
    Concurrent store of call entries keyed by id.

    Args:
        max_active_calls: Capacity for active entries; inserting beyond it
            evicts the oldest active entry instead of failing
        history_size: Number of terminal entries retained for statistics
    """

    def __init__(self, max_active_calls: int = 100, history_size: int = 100):
        if max_active_calls < 1:
            raise ValueError("max_active_calls must be at least 1")
        if history_size < 1:
            raise ValueError("history_size must be at least 1")

        self.max_active_calls = max_active_calls
        self.history_size = history_size

        self._lock = threading.Lock()
        self._active: Dict[str, CallStackEntry] = {}
        self._finished: Deque[CallStackEntry] = deque(maxlen=history_size)

        self._total_started = 0
        self._total_finished = 0
        self._total_errors = 0
        self._total_evicted = 0
        self._capacity_warnings = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._active)

    def insert(self, entry: CallStackEntry) -> bool:
        """
        Add a new active entry.

        When the registry is at capacity the oldest active entry is evicted
        into history as a ``timeout`` record; the new entry is inserted
        regardless, since observation must never block execution.

        Args:
            entry: Entry in ``active`` status

        Returns:
            True if inserted within capacity, False if an eviction was needed
        """
        if entry.status is not CallStatus.ACTIVE:
            raise ValueError(f"Only active entries can be inserted, got {entry.status.value}")

        evicted: Optional[CallStackEntry] = None
        with self._lock:
            if entry.id in self._active:
                raise ValueError(f"Duplicate call id: {entry.id}")

            if len(self._active) >= self.max_active_calls:
                oldest_id = next(iter(self._active))
                evicted = self._evict_locked(oldest_id)

            self._active[entry.id] = entry
            self._total_started += 1

        if evicted is not None:
            logger.warning(
                f"Active call capacity ({self.max_active_calls}) exceeded; "
                f"no longer tracking {evicted.function_name} ({evicted.id}) "
                f"after {evicted.duration:.2f}ms"
            )
            return False
        return True

    def _evict_locked(self, entry_id: str) -> CallStackEntry:
        live = self._active.pop(entry_id)
        record = live.copy()
        record.status = CallStatus.TIMEOUT
        record.duration = live.elapsed_ms()
        record.evicted = True
        record.error = f"evicted after {record.duration:.2f}ms: active call capacity exceeded"
        self._finished.append(record)
        self._total_evicted += 1
        self._capacity_warnings += 1
        self._total_finished += 1
        return record

    def finalize(
        self,
        entry_id: str,
        outcome: CallOutcome,
        duration: float,
    ) -> Optional[CallStackEntry]:
        """
        Move an active entry to its terminal status.

        Args:
            entry_id: Id of the entry to finalize
            outcome: Terminal status and error text
            duration: Elapsed milliseconds; negative values are clamped to 0

        Returns:
            A copy of the finalized entry, or None if the id is not active
        """
        if not outcome.status.is_terminal:
            raise ValueError("finalize requires a terminal outcome")

        with self._lock:
            entry = self._active.pop(entry_id, None)
            if entry is not None:
                entry.status = outcome.status
                entry.duration = max(0.0, float(duration))
                entry.error = outcome.error_text
                self._finished.append(entry)
                self._total_finished += 1
                if outcome.status is CallStatus.ERROR:
                    self._total_errors += 1
                result = entry.copy()

        if entry is None:
            logger.debug(f"Ignoring finalize for unknown or evicted call {entry_id}")
            return None
        return result

    def withdraw(self, entry_id: str) -> Optional[CallStackEntry]:
        """
        Remove an active entry as if it had never been inserted.

        Nothing is recorded in history and the started counter is rolled
        back, so the same entry can be inserted again later.

        Returns:
            The removed entry, or None if the id is not active
        """
        with self._lock:
            entry = self._active.pop(entry_id, None)
            if entry is not None:
                self._total_started -= 1
        return entry

    def flag_hanging(self, threshold_ms: float, now: Optional[float] = None) -> List[CallStackEntry]:
        """
        Mark every active entry older than the threshold as observed hanging.

        The flag is informational; it does not change the entry's status.

        Args:
            threshold_ms: Age above which an active entry counts as hanging
            now: Monotonic reference time in seconds

        Returns:
            Copies of the entries flagged for the first time
        """
        newly_flagged = []
        with self._lock:
            if now is None:
                now = time.monotonic()
            for entry in self._active.values():
                if not entry.was_flagged_hanging and entry.elapsed_ms(now) > threshold_ms:
                    entry.was_flagged_hanging = True
                    newly_flagged.append(entry.copy())
        return newly_flagged

    def get(self, entry_id: str) -> Optional[CallStackEntry]:
        """Return a copy of an active or retained entry by id."""
        with self._lock:
            entry = self._active.get(entry_id)
            if entry is None:
                entry = next((call for call in self._finished if call.id == entry_id), None)
            return entry.copy() if entry is not None else None

    def snapshot_view(self, threshold_ms: float, now: Optional[float] = None) -> RegistryView:
        """
        Copy the registry contents for a concurrent reader.

        Args:
            threshold_ms: Age above which an active entry counts as hanging
            now: Monotonic reference time in seconds

        Returns:
            RegistryView holding copies only
        """
        with self._lock:
            if now is None:
                now = time.monotonic()
            active = tuple(entry.copy() for entry in self._active.values())
            finished = [entry.copy() for entry in self._finished]

        completed = tuple(call for call in finished if call.status is CallStatus.COMPLETED)
        failed = tuple(call for call in finished if call.status is not CallStatus.COMPLETED)
        hanging = tuple(call for call in active if call.elapsed_ms(now) > threshold_ms)
        return RegistryView(active=active, completed=completed, failed=failed, hanging=hanging)

    def summary_stats(self, threshold_ms: float) -> RegistryStats:
        """
        Current counts and duration statistics over retained history.

        Args:
            threshold_ms: Age above which an active entry counts as hanging
        """
        now = time.monotonic()
        with self._lock:
            hanging = sum(1 for entry in self._active.values() if entry.elapsed_ms(now) > threshold_ms)
            durations = [entry.duration for entry in self._finished if entry.duration is not None]
            completed = sum(1 for entry in self._finished if entry.status is CallStatus.COMPLETED)
            return RegistryStats(
                active=len(self._active),
                completed=completed,
                failed=len(self._finished) - completed,
                hanging=hanging,
                average_duration=sum(durations) / len(durations) if durations else 0.0,
                max_duration=max(durations) if durations else 0.0,
                min_duration=min(durations) if durations else 0.0,
                total_started=self._total_started,
                total_finished=self._total_finished,
                total_errors=self._total_errors,
                total_evicted=self._total_evicted,
                capacity_warnings=self._capacity_warnings,
            )

    def clear(self) -> None:
        """Drop all entries and reset counters."""
        with self._lock:
            self._active.clear()
            self._finished.clear()
            self._total_started = 0
            self._total_finished = 0
            self._total_errors = 0
            self._total_evicted = 0
            self._capacity_warnings = 0
        logger.debug("Call registry cleared")
