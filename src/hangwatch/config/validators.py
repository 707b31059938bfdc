"""
Configuration validation utilities.

This module turns raw configuration mappings (from TOML or from callers
overriding a session's policy) into validated, immutable config models.
"""

import logging
import re
from pathlib import Path
from typing import Any, Dict

from ..models.config import (
    MAX_INTERVAL_MS,
    MIN_INTERVAL_MS,
    AppConfig,
    HangingDetectionConfig,
    SamplingConfig,
    StorageConfig,
)
from ..validation import (
    ValidationError,
    validate_boolean,
    validate_enum_choice,
    validate_positive_float,
    validate_positive_integer,
)

logger = logging.getLogger(__name__)

_CAMEL_BOUNDARY = re.compile(r"(?<!^)(?=[A-Z])")

_BOOLEAN_FIELDS = (
    "enable_stack_trace",
    "enable_memory_tracking",
    "enable_cpu_tracking",
    "log_hanging_calls",
    "alert_on_hanging",
    "trace_python_heap",
)


def _normalize_key(key: str) -> str:
    """Convert ``timeoutThreshold`` style keys to ``timeout_threshold``."""
    return _CAMEL_BOUNDARY.sub("_", key).lower()


def validate_detection_config(
    detection_data: Dict[str, Any],
    section: str = "monitor.detection",
) -> HangingDetectionConfig:
    """
    Validate and create a HangingDetectionConfig from raw configuration data.

    Missing keys take their defaults.

    Args:
        detection_data: Raw detection settings, snake_case or camelCase keys
        section: Prefix used in error messages

    Returns:
        Validated HangingDetectionConfig instance

    Raises:
        ValidationError: If a value is invalid or a key is unknown
    """
    data = {_normalize_key(key): value for key, value in detection_data.items()}
    defaults = HangingDetectionConfig()

    unknown = sorted(set(data) - set(defaults.to_dict()))
    if unknown:
        raise ValidationError(
            f"{section} has unknown keys: {unknown}",
            field_name=section,
            value=unknown,
        )

    timeout_threshold = validate_positive_float(
        data.get("timeout_threshold", defaults.timeout_threshold),
        min_value=1.0,  # 1ms minimum
        field_name=f"{section}.timeout_threshold",
    )

    memory_threshold = validate_positive_integer(
        data.get("memory_threshold", defaults.memory_threshold),
        min_value=1,
        field_name=f"{section}.memory_threshold",
    )

    cpu_threshold = validate_positive_float(
        data.get("cpu_threshold", defaults.cpu_threshold),
        min_value=0.0,
        field_name=f"{section}.cpu_threshold",
    )

    event_loop_lag_threshold = validate_positive_float(
        data.get("event_loop_lag_threshold", defaults.event_loop_lag_threshold),
        min_value=0.0,
        field_name=f"{section}.event_loop_lag_threshold",
    )

    max_active_calls = validate_positive_integer(
        data.get("max_active_calls", defaults.max_active_calls),
        min_value=1,
        max_value=1_000_000,
        field_name=f"{section}.max_active_calls",
    )

    completed_history_size = validate_positive_integer(
        data.get("completed_history_size", defaults.completed_history_size),
        min_value=1,
        max_value=1_000_000,
        field_name=f"{section}.completed_history_size",
    )

    snapshot_history_size = validate_positive_integer(
        data.get("snapshot_history_size", defaults.snapshot_history_size),
        min_value=1,
        max_value=1_000_000,
        field_name=f"{section}.snapshot_history_size",
    )

    toggles = {
        name: validate_boolean(data.get(name, getattr(defaults, name)), field_name=f"{section}.{name}")
        for name in _BOOLEAN_FIELDS
    }

    return HangingDetectionConfig(
        timeout_threshold=timeout_threshold,
        memory_threshold=memory_threshold,
        cpu_threshold=cpu_threshold,
        event_loop_lag_threshold=event_loop_lag_threshold,
        max_active_calls=max_active_calls,
        completed_history_size=completed_history_size,
        snapshot_history_size=snapshot_history_size,
        **toggles,
    )


def validate_sampling_config(sampling_data: Dict[str, Any]) -> SamplingConfig:
    """
    Validate [monitor.sampling] settings.

    Raises:
        ValidationError: If validation fails
    """
    interval_ms = validate_positive_float(
        sampling_data.get("interval_ms", 1000.0),
        min_value=MIN_INTERVAL_MS,
        max_value=MAX_INTERVAL_MS,
        field_name="monitor.sampling.interval_ms",
    )

    lag_probe_timeout_ms = validate_positive_float(
        sampling_data.get("lag_probe_timeout_ms", 0.0),
        min_value=0.0,
        max_value=3_600_000.0,
        field_name="monitor.sampling.lag_probe_timeout_ms",
    )

    return SamplingConfig(interval_ms=interval_ms, lag_probe_timeout_ms=lag_probe_timeout_ms)


def validate_storage_config(storage_data: Dict[str, Any]) -> StorageConfig:
    """
    Validate [monitor.storage] settings.

    Raises:
        ValidationError: If validation fails
    """
    storage_format = validate_enum_choice(
        storage_data.get("format", "json"),
        choices=["json", "parquet"],
        field_name="monitor.storage.format",
        case_sensitive=False,
    )

    compression = validate_enum_choice(
        storage_data.get("compression", "snappy"),
        choices=["snappy", "gzip", "brotli", "lz4", "zstd"],
        field_name="monitor.storage.compression",
        case_sensitive=False,
    )

    output_dir = storage_data.get("output_dir", "fossils")
    if not isinstance(output_dir, str) or not output_dir.strip():
        raise ValidationError(
            "monitor.storage.output_dir must be a non-empty string",
            field_name="monitor.storage.output_dir",
            value=output_dir,
        )

    return StorageConfig(
        format=storage_format,
        compression=compression,
        output_dir=Path(output_dir),
    )


def validate_monitor_config(monitor_data: Dict[str, Any]) -> AppConfig:
    """
    Validate the whole [monitor] table and assemble an AppConfig.

    Args:
        monitor_data: Raw [monitor] table from config.toml

    Returns:
        Validated AppConfig instance

    Raises:
        ValidationError: If validation fails
    """
    detection = validate_detection_config(monitor_data.get("detection", {}))
    sampling = validate_sampling_config(monitor_data.get("sampling", {}))
    storage = validate_storage_config(monitor_data.get("storage", {}))

    logger.debug(
        f"Validated monitor config: timeout={detection.timeout_threshold}ms, "
        f"interval={sampling.interval_ms}ms, storage={storage.format}"
    )
    return AppConfig(detection=detection, sampling=sampling, storage=storage)
