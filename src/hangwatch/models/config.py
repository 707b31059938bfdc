"""
Configuration data models.

This module contains the configuration structures for hang detection,
sampling and export storage, plus the root object aggregating them as
loaded from `config.toml`.
"""

from dataclasses import asdict, dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Literal


@dataclass(frozen=True)
class HangingDetectionConfig:
    """
    Process-wide hang detection policy, immutable for a monitoring session.

    Thresholds are expressed in milliseconds, bytes and percent respectively.
    """

    # [monitor.detection]
    timeout_threshold: float = 5000.0
    memory_threshold: int = 100 * 1024 * 1024
    cpu_threshold: float = 80.0
    event_loop_lag_threshold: float = 100.0
    max_active_calls: int = 100

    enable_stack_trace: bool = True
    enable_memory_tracking: bool = True
    enable_cpu_tracking: bool = True
    log_hanging_calls: bool = True
    alert_on_hanging: bool = True

    # Bounded histories
    completed_history_size: int = 100
    snapshot_history_size: int = 1000

    # Start tracemalloc for the session so heap counters are populated.
    trace_python_heap: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "HangingDetectionConfig":
        """
        Create a validated config from a mapping.

        Accepts snake_case keys as well as the camelCase spelling used by
        exported monitoring data (``timeoutThreshold`` etc.).

        Raises:
            ValidationError: If any value is invalid or a key is unknown
        """
        from ..config.validators import validate_detection_config

        return validate_detection_config(data)

    def with_overrides(self, **overrides: Any) -> "HangingDetectionConfig":
        """Return a new validated config with the given fields replaced."""
        merged = self.to_dict()
        merged.update(overrides)
        return HangingDetectionConfig.from_dict(merged)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# Bounds on the sampling interval, shared by config files and start_monitoring.
MIN_INTERVAL_MS = 10.0
MAX_INTERVAL_MS = 3_600_000.0


@dataclass(frozen=True)
class SamplingConfig:
    """Sampler scheduling settings from [monitor.sampling]."""

    interval_ms: float = 1000.0
    # Upper bound on how long one lag probe may wait; defaults to the interval.
    lag_probe_timeout_ms: float = 0.0

    @property
    def interval_seconds(self) -> float:
        return self.interval_ms / 1000.0

    @property
    def lag_probe_timeout_seconds(self) -> float:
        timeout_ms = self.lag_probe_timeout_ms or self.interval_ms
        return timeout_ms / 1000.0


@dataclass(frozen=True)
class StorageConfig:
    """
    Export storage settings from [monitor.storage].

    Attributes:
        format: Default export format when a path has no recognised suffix
            - 'json': complete payload in one human-readable file
            - 'parquet': snapshot time series as a table plus a JSON sidecar
        compression: Compression algorithm for Parquet output
        output_dir: Directory used by the CLI for reports and exports
    """

    format: Literal["json", "parquet"] = "json"
    compression: Literal["snappy", "gzip", "brotli", "lz4", "zstd"] = "snappy"
    output_dir: Path = Path("fossils")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "format": self.format,
            "compression": self.compression,
            "output_dir": str(self.output_dir),
        }


@dataclass(frozen=True)
class AppConfig:
    """
    The root configuration object that aggregates all loaded settings.
    """

    detection: HangingDetectionConfig = field(default_factory=HangingDetectionConfig)
    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)

    def with_detection(self, detection: HangingDetectionConfig) -> "AppConfig":
        return replace(self, detection=detection)
