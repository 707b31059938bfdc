"""
Parquet storage implementation using Polars.
"""

import logging
from pathlib import Path
from typing import List, Literal, Optional

import polars as pl

from .json_storage import JsonStorage

logger = logging.getLogger(__name__)


class ParquetStorage(JsonStorage):
    """
    Columnar storage for the snapshot time series.

    DataFrames are written as compressed Parquet; dictionary documents such
    as export metadata stay JSON, which suits small nested data better.

    Args:
        compression: Compression algorithm to use
    """

    suffix = ".parquet"

    def __init__(self, compression: Literal["snappy", "gzip", "brotli", "lz4", "zstd"] = "snappy"):
        super().__init__()
        self.compression = compression
        logger.debug(f"Initialized ParquetStorage with compression: {compression}")

    def save_dataframe(self, df: pl.DataFrame, path: str) -> None:
        try:
            Path(path).parent.mkdir(parents=True, exist_ok=True)
            df.write_parquet(path, compression=self.compression)
            logger.debug(f"Saved DataFrame with {len(df)} rows to {path}")
        except Exception as e:
            logger.error(f"Failed to save DataFrame to {path}: {e}")
            raise

    def load_dataframe(self, path: str, columns: Optional[List[str]] = None) -> pl.DataFrame:
        """
        Load a Parquet file, reading only ``columns`` when given.
        """
        try:
            if columns:
                df = pl.read_parquet(path, columns=columns)
            else:
                df = pl.read_parquet(path)
            logger.debug(f"Loaded DataFrame with {len(df)} rows from {path}")
            return df
        except Exception as e:
            logger.error(f"Failed to load DataFrame from {path}: {e}")
            raise
