"""
Unit tests for the cached configuration manager.
"""

import tomllib
from pathlib import Path

import pytest

from hangwatch.config import (
    clear_config_cache,
    get_config,
    get_config_info,
    is_config_loaded,
    load_toml_file,
    set_config_path,
)
from hangwatch.config import manager
from hangwatch.models import AppConfig
from hangwatch.validation import ValidationError


@pytest.mark.unit
class TestConfigManager:
    """Test cases for get_config and friends."""

    def test_load_from_explicit_path(self, config_files):
        set_config_path(config_files["config"])

        config = get_config()

        assert config.detection.timeout_threshold == 2000.0
        assert config.storage.format == "parquet"
        assert is_config_loaded()
        assert get_config() is config

    def test_clear_cache_reloads(self, config_files):
        set_config_path(config_files["config"])
        first = get_config()

        clear_config_cache()
        assert not is_config_loaded()
        assert get_config() is not first

    def test_missing_explicit_path_raises(self, temp_dir):
        set_config_path(temp_dir / "missing.toml")
        with pytest.raises(FileNotFoundError):
            get_config()

    def test_missing_default_file_uses_defaults(self, temp_dir, monkeypatch):
        monkeypatch.setattr(manager, "_CONFIG_FILE_PATH", temp_dir / "absent.toml")
        clear_config_cache()

        assert get_config() == AppConfig()

    def test_invalid_values_raise(self, temp_dir):
        config_file = temp_dir / "config.toml"
        config_file.write_text("[monitor.detection]\ntimeout_threshold = -1\n")
        set_config_path(config_file)

        with pytest.raises(ValidationError):
            get_config()

    def test_malformed_toml_raises(self, temp_dir):
        config_file = temp_dir / "config.toml"
        config_file.write_text("[monitor.detection\n")

        with pytest.raises(tomllib.TOMLDecodeError):
            load_toml_file(config_file)

    def test_config_info(self, config_files):
        set_config_path(config_files["config"])
        info = get_config_info()

        assert info["config_path"] == str(config_files["config"])
        assert info["config_path_explicit"] is True
        assert info["config_loaded"] is False

    def test_shipped_config_is_valid(self):
        shipped = Path(__file__).parents[3] / "conf" / "config.toml"
        set_config_path(shipped)

        assert get_config() == AppConfig()
