"""
Monitoring sessions, periodic sampling and the hang policy.

Main classes:
- EventLoopMonitor: Session object tracking calls and producing reports
- Sampler: Daemon thread taking periodic snapshots
- HangPolicy: Turns threshold violations into alerts

The `global_monitor` module offers the same operations on one process-wide
monitor.
"""

from .hang_policy import AlertKind, HangAlert, HangPolicy, describe_call
from .sampler import Sampler
from .monitor import EventLoopMonitor
from . import global_monitor

__all__ = [
    "AlertKind",
    "HangAlert",
    "HangPolicy",
    "describe_call",
    "Sampler",
    "EventLoopMonitor",
    "global_monitor",
]
