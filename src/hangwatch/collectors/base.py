"""
Defines the base structures and abstract class for resource collectors.

This module provides:
- ResourceSample: the process-level counters read in one sampler tick.
- AbstractResourceCollector: the interface every resource collector
  implementation must provide (e.g. the psutil-based collector).
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field

from ..models.snapshots import CpuUsage, MemoryUsage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResourceSample:
    """
    Process resource counters captured at one point in time.

    Attributes:
        memory: Memory counters (zeros when memory tracking is disabled)
        cpu: CPU usage since the previous sample (zeros when CPU tracking is disabled)
    """

    memory: MemoryUsage = field(default_factory=MemoryUsage)
    cpu: CpuUsage = field(default_factory=CpuUsage)


class AbstractResourceCollector(ABC):
    """
    Abstract base class for process resource collectors.

    Implementations are stateful: CPU usage is reported as a delta against
    the previous `sample()` call, so `start()` must establish the baseline.
    """

    def __init__(self, track_memory: bool = True, track_cpu: bool = True):
        self.track_memory = track_memory
        self.track_cpu = track_cpu
        logger.debug(
            f"Initializing {self.__class__.__name__} "
            f"(memory={track_memory}, cpu={track_cpu})"
        )

    @abstractmethod
    def start(self) -> None:
        """Establish the CPU baseline and any tracing required for sampling."""
        pass

    @abstractmethod
    def stop(self) -> None:
        """Release resources acquired in `start()`."""
        pass

    @abstractmethod
    def sample(self) -> ResourceSample:
        """
        Read the current counters.

        Returns:
            ResourceSample for this instant

        Raises:
            Exception: Implementations may raise on counter read failures;
                the sampler logs the failure and continues with the next tick
        """
        pass
