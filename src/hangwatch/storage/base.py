"""
Abstract base class for export storage backends.

Backends persist two kinds of data: tabular snapshot history as a Polars
DataFrame, and dictionary payloads (export documents, metadata sidecars).
The monitor writes through this interface so the export format can be chosen
per file without touching the callers.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import polars as pl


class DataStorage(ABC):
    """Abstract base class for data storage implementations."""

    #: File suffix written by `save_dataframe`.
    suffix: str = ""

    @abstractmethod
    def save_dataframe(self, df: pl.DataFrame, path: str) -> None:
        """
        Save a Polars DataFrame to the specified path.

        Args:
            df: Polars DataFrame to save
            path: File path to save to
        """
        pass

    @abstractmethod
    def load_dataframe(
        self, path: str, columns: Optional[List[str]] = None
    ) -> pl.DataFrame:
        """
        Load a Polars DataFrame from the specified path.

        Args:
            path: File path to load from
            columns: Optional list of columns to load

        Returns:
            Loaded Polars DataFrame
        """
        pass

    @abstractmethod
    def save_dict(self, data: Dict[str, Any], path: str) -> None:
        """
        Save dictionary data to the specified path.

        Args:
            data: JSON-serializable dictionary
            path: File path to save to
        """
        pass

    @abstractmethod
    def load_dict(self, path: str) -> Dict[str, Any]:
        """
        Load dictionary data from the specified path.

        Args:
            path: File path to load from

        Returns:
            Loaded dictionary data
        """
        pass

    @abstractmethod
    def file_exists(self, path: str) -> bool:
        pass

    @abstractmethod
    def get_file_size(self, path: str) -> int:
        """
        Get the size of a file in bytes.

        Returns:
            File size in bytes, 0 if the file does not exist
        """
        pass
