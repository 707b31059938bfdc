"""
Resource collectors used by the sampler.

This package provides the process-level measurements each sampler tick
records next to the call registry view:

- Abstract interface defining the collector contract
- psutil-based memory and CPU collection (with optional tracemalloc heap data)
- Event loop lag probing for asyncio applications
"""

from .base import AbstractResourceCollector, ResourceSample
from .psutil_collector import PsutilResourceCollector
from .loop_lag import LoopLagProbe

__all__ = [
    "AbstractResourceCollector",
    "ResourceSample",
    "PsutilResourceCollector",
    "LoopLagProbe",
]
