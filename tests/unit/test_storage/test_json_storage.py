"""
Unit tests for JSON storage implementation.
"""

from pathlib import Path

import polars as pl
import pytest

from hangwatch.storage import JsonStorage


class TestJsonStorage:
    """Test cases for JsonStorage class."""

    def test_save_load_dict(self, temp_dir):
        storage = JsonStorage()
        data = {"config": {"timeout_threshold": 5000.0}, "paths": [Path("a")]}
        file_path = temp_dir / "sub" / "payload.json"

        storage.save_dict(data, str(file_path))
        loaded = storage.load_dict(str(file_path))

        assert loaded["config"] == {"timeout_threshold": 5000.0}
        # Values without a JSON representation are written as strings.
        assert loaded["paths"] == ["a"]
        assert storage.file_exists(str(file_path))

    def test_save_load_dataframe(self, temp_dir):
        storage = JsonStorage()
        df = pl.DataFrame({"timestamp": [1.0, 2.0], "total_active": [1, 2]})
        file_path = temp_dir / "frame.json"

        storage.save_dataframe(df, str(file_path))
        loaded = storage.load_dataframe(str(file_path), columns=["total_active"])

        assert loaded.columns == ["total_active"]
        assert loaded["total_active"].to_list() == [1, 2]

    def test_load_missing_dict_raises(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            JsonStorage().load_dict(str(temp_dir / "missing.json"))
