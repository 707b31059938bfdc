"""
Data models and structures for the monitoring system.

Call Models:
- Lifecycle states and the tracked-call entry
- Tagged outcome used when finalizing an entry

Snapshot Models:
- Process memory and CPU counters
- Aggregate summary statistics
- The immutable per-tick snapshot

Configuration Models:
- Hang detection policy and thresholds
- Sampling schedule
- Export storage settings
"""

# Call models
from .calls import CallOutcome, CallStackEntry, CallStatus, generate_call_id

# Snapshot models
from .snapshots import CpuUsage, EventLoopSnapshot, MemoryUsage, SnapshotSummary

# Configuration models
from .config import AppConfig, HangingDetectionConfig, SamplingConfig, StorageConfig

__all__ = [
    # Calls
    "CallOutcome",
    "CallStackEntry",
    "CallStatus",
    "generate_call_id",
    # Snapshots
    "CpuUsage",
    "EventLoopSnapshot",
    "MemoryUsage",
    "SnapshotSummary",
    # Configuration
    "AppConfig",
    "HangingDetectionConfig",
    "SamplingConfig",
    "StorageConfig",
]
