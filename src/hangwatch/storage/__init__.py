"""
Storage of monitoring exports.

- JSON for complete, human-readable export payloads
- Parquet (via Polars) for the snapshot time series, with a JSON sidecar
- A writer choosing the backend from the target file suffix
"""

from .base import DataStorage
from .json_storage import JsonStorage
from .parquet_storage import ParquetStorage
from .factory import create_storage, format_for_path
from .writer import MonitoringDataWriter, metadata_path_for

__all__ = [
    "DataStorage",
    "JsonStorage",
    "ParquetStorage",
    "create_storage",
    "format_for_path",
    "MonitoringDataWriter",
    "metadata_path_for",
]
