"""
Factory for creating storage instances.
"""

import logging
from pathlib import Path
from typing import Literal, Optional

from .base import DataStorage
from .json_storage import JsonStorage
from .parquet_storage import ParquetStorage

logger = logging.getLogger(__name__)

SUPPORTED_FORMATS = ("json", "parquet")


def create_storage(
    format_type: Literal["json", "parquet"] = "json",
    compression: Literal["snappy", "gzip", "brotli", "lz4", "zstd"] = "snappy",
) -> DataStorage:
    """
    Create a storage instance based on the specified format type.

    Args:
        format_type: Storage format type ('json' or 'parquet')
        compression: Compression algorithm (for Parquet only)

    Returns:
        DataStorage instance

    Raises:
        ValueError: If an unsupported format type is specified
    """
    if format_type == "parquet":
        logger.debug(f"Creating ParquetStorage with compression: {compression}")
        return ParquetStorage(compression=compression)
    elif format_type == "json":
        logger.debug("Creating JsonStorage")
        return JsonStorage()
    else:
        raise ValueError(f"Unsupported storage format: {format_type}")


def format_for_path(path: Path, default: str = "json") -> str:
    """Pick the storage format from a file suffix, falling back to ``default``."""
    suffix = Path(path).suffix.lower().lstrip(".")
    return suffix if suffix in SUPPORTED_FORMATS else default
