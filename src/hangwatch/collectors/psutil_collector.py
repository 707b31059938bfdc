"""
Process resource collector based on psutil.

Reads memory and CPU counters of the current process. Python heap usage is
taken from tracemalloc when heap tracing is enabled for the session.
"""

import logging
import time
import tracemalloc
from typing import Optional

import psutil

from .base import AbstractResourceCollector, ResourceSample
from ..models.snapshots import CpuUsage, MemoryUsage

logger = logging.getLogger(__name__)


class PsutilResourceCollector(AbstractResourceCollector):
    """
    Samples the monitored process with psutil.

    Args:
        pid: Process to sample; defaults to the current process
        track_memory: Read memory counters
        track_cpu: Read CPU times and compute usage deltas
        trace_python_heap: Start tracemalloc for heap used/peak counters
    """

    def __init__(
        self,
        pid: Optional[int] = None,
        track_memory: bool = True,
        track_cpu: bool = True,
        trace_python_heap: bool = False,
    ):
        super().__init__(track_memory=track_memory, track_cpu=track_cpu)
        self.process = psutil.Process(pid)
        self.trace_python_heap = trace_python_heap

        self._started_tracemalloc = False
        self._last_cpu_user = 0.0
        self._last_cpu_system = 0.0
        self._last_wall = 0.0

    def start(self) -> None:
        if self.trace_python_heap and not tracemalloc.is_tracing():
            tracemalloc.start()
            self._started_tracemalloc = True
            logger.debug("tracemalloc started for heap tracking")
        self._reset_cpu_baseline()

    def stop(self) -> None:
        if self._started_tracemalloc:
            tracemalloc.stop()
            self._started_tracemalloc = False
            logger.debug("tracemalloc stopped")

    def _reset_cpu_baseline(self) -> None:
        cpu_times = self.process.cpu_times()
        self._last_cpu_user = cpu_times.user
        self._last_cpu_system = cpu_times.system
        self._last_wall = time.monotonic()

    def sample(self) -> ResourceSample:
        memory = self._sample_memory() if self.track_memory else MemoryUsage()
        cpu = self._sample_cpu() if self.track_cpu else CpuUsage()
        return ResourceSample(memory=memory, cpu=cpu)

    def _sample_memory(self) -> MemoryUsage:
        memory_info = self.process.memory_info()

        heap_used = heap_total = 0
        if tracemalloc.is_tracing():
            heap_used, heap_total = tracemalloc.get_traced_memory()

        return MemoryUsage(
            rss=int(memory_info.rss),
            vms=int(memory_info.vms),
            heap_used=int(heap_used),
            heap_total=int(heap_total),
            # 'shared' only exists on Linux
            external=int(getattr(memory_info, "shared", 0)),
        )

    def _sample_cpu(self) -> CpuUsage:
        cpu_times = self.process.cpu_times()
        now = time.monotonic()

        user_s = max(0.0, cpu_times.user - self._last_cpu_user)
        system_s = max(0.0, cpu_times.system - self._last_cpu_system)
        wall_s = now - self._last_wall

        self._last_cpu_user = cpu_times.user
        self._last_cpu_system = cpu_times.system
        self._last_wall = now

        percent = ((user_s + system_s) / wall_s * 100.0) if wall_s > 0 else 0.0
        return CpuUsage(user=user_s * 1000.0, system=system_s * 1000.0, percent=percent)
