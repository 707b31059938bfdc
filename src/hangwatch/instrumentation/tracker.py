"""
Instrumentation of caller-supplied work.

`OperationTracker` is the only way work enters the registry. It records an
active entry, runs the work, and finalizes the entry with the outcome. The
registry lock is touched only when the entry is inserted and when it is
finalized, never while the work runs or while an awaitable is pending, so
tracked calls never block one another or the sampler.

The tracker is transparent: return values pass through unchanged and
exceptions are re-raised as the very same object after the entry is
finalized as ``error``. No timeout is imposed on the work; hang detection is
an observation made by the sampler.
"""

import functools
import inspect
import logging
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Dict, Optional, TypeVar

from ..models.calls import CallOutcome, CallStackEntry
from ..registry.call_registry import CallRegistry
from .location import UNKNOWN_CALL_SITE, capture_call_site

if TYPE_CHECKING:
    from ..monitoring.monitor import EventLoopMonitor

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _default_name(work: Callable[..., Any]) -> str:
    name = getattr(work, "__qualname__", None) or getattr(work, "__name__", None)
    if not name or "<lambda>" in name:
        return "anonymous"
    return name


class OperationTracker:
    """
    Wraps sync and async work for tracking by an EventLoopMonitor.

    Args:
        monitor: The monitor whose registry and policy are used
    """

    def __init__(self, monitor: "EventLoopMonitor"):
        self.monitor = monitor

    def _new_entry(
        self,
        work: Callable[..., Any],
        name: Optional[str],
        metadata: Optional[Dict[str, Any]],
    ) -> CallStackEntry:
        config = self.monitor.config
        site = capture_call_site() if config.enable_stack_trace else UNKNOWN_CALL_SITE
        return CallStackEntry(
            function_name=name or _default_name(work),
            file_name=site.file_name,
            line_number=site.line_number,
            column_number=site.column_number,
            metadata=dict(metadata) if metadata else {},
        )

    @staticmethod
    def _insert(registry: CallRegistry, entry: CallStackEntry) -> None:
        registry.insert(entry)
        logger.debug(f"Tracking {entry.function_name} ({entry.id})")

    def _begin(
        self,
        work: Callable[..., Any],
        name: Optional[str],
        metadata: Optional[Dict[str, Any]],
    ) -> "tuple[CallRegistry, CallStackEntry]":
        registry = self.monitor.registry
        entry = self._new_entry(work, name, metadata)
        self._insert(registry, entry)
        return registry, entry

    def _finish(self, registry: CallRegistry, entry: CallStackEntry, outcome: CallOutcome) -> None:
        finished = registry.finalize(entry.id, outcome, entry.elapsed_ms())
        if finished is not None:
            logger.debug(
                f"{finished.function_name} ({finished.id}) finished as "
                f"{finished.status.value} in {finished.duration:.2f}ms"
            )

    def track_operation(
        self,
        work: Callable[[], Any],
        name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Run ``work`` as a tracked call.

        If ``work()`` returns an awaitable, a coroutine is returned that
        awaits it and finalizes the entry on resolution; the caller must await
        that coroutine. The entry is active only while that coroutine runs,
        keeping the start time of the original call, so a coroutine that is
        cancelled or closed before its first step leaves nothing behind.
        Otherwise the entry is finalized immediately and the value returned.

        Args:
            work: Zero-argument callable
            name: Label for the entry; defaults to the callable's qualified name
            metadata: Key/value pairs stored verbatim on the entry

        Returns:
            The work's result, or a coroutine resolving to it
        """
        if not self.monitor.is_monitoring:
            logger.debug(f"Monitor not running; executing {name or _default_name(work)} untracked")
            return work()

        registry, entry = self._begin(work, name, metadata)
        try:
            result = work()
        except BaseException as e:
            self._finish(registry, entry, CallOutcome.failure(e))
            raise

        if inspect.isawaitable(result):
            reinsert = registry.withdraw(entry.id) is not None
            return self._await_and_finish(registry, entry, result, reinsert)

        self._finish(registry, entry, CallOutcome.success())
        return result

    async def _await_and_finish(
        self,
        registry: CallRegistry,
        entry: CallStackEntry,
        awaitable: Awaitable[T],
        insert: bool = True,
    ) -> T:
        self.monitor.attach_running_loop()
        if insert:
            self._insert(registry, entry)
        try:
            value = await awaitable
        except BaseException as e:
            self._finish(registry, entry, CallOutcome.failure(e))
            raise
        self._finish(registry, entry, CallOutcome.success())
        return value

    async def track_operation_async(
        self,
        work: Callable[[], Any],
        name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Any:
        """
        Coroutine form of `track_operation`.

        Awaits the work's result when it is awaitable; plain return values
        are passed through, so sync work can be tracked from async code too.
        """
        if not self.monitor.is_monitoring:
            logger.debug(f"Monitor not running; executing {name or _default_name(work)} untracked")
            result = work()
            if inspect.isawaitable(result):
                return await result
            return result

        self.monitor.attach_running_loop()
        registry, entry = self._begin(work, name, metadata)
        try:
            result = work()
            if inspect.isawaitable(result):
                result = await result
        except BaseException as e:
            self._finish(registry, entry, CallOutcome.failure(e))
            raise
        self._finish(registry, entry, CallOutcome.success())
        return result

    def tracked(
        self,
        name: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
        """
        Decorator tracking every call of a sync or ``async def`` function.

        Usage:
            @monitor.tracked(metadata={"component": "sync"})
            async def fetch(): ...
        """
        def decorator(func: Callable[..., Any]) -> Callable[..., Any]:
            label = name or _default_name(func)

            if inspect.iscoroutinefunction(func):
                @functools.wraps(func)
                async def async_wrapper(*args, **kwargs):
                    return await self.track_operation_async(
                        lambda: func(*args, **kwargs), label, metadata
                    )
                return async_wrapper

            @functools.wraps(func)
            def wrapper(*args, **kwargs):
                return self.track_operation(lambda: func(*args, **kwargs), label, metadata)
            return wrapper

        return decorator
