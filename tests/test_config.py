"""Tests for the configuration model and the INI file manager."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from treesync.exceptions import ConfigurationError
from treesync.models.config import SyncConfig, get_messages
from treesync.storage import ConfigManager


def make_config(**overrides) -> SyncConfig:
    values = {
        "base_url": "https://content.example/api",
        "token": "secret",
        "user_id": 7,
        "config_path": "/tmp/treesync",
    }
    values.update(overrides)
    return SyncConfig(**values)


class TestSyncConfig:
    """Validation of the settings model."""

    def test_base_url_gets_trailing_slash(self) -> None:
        assert make_config().base_url == "https://content.example/api/"

    def test_relative_base_url_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_config(base_url="content.example")

    def test_user_id_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            make_config(user_id=0)

    def test_workers_are_bounded(self) -> None:
        with pytest.raises(ValidationError):
            make_config(max_workers=0)
        with pytest.raises(ValidationError):
            make_config(max_workers=33)

    def test_file_limit_cannot_exceed_quota(self) -> None:
        with pytest.raises(ValidationError):
            make_config(quota_size_mb=10, download_size_mb=20)

    def test_unknown_language_rejected(self) -> None:
        with pytest.raises(ValidationError):
            make_config(language="fr")

    def test_settings_use_decimal_megabytes(self) -> None:
        settings = make_config(quota_size_mb=100, download_size_mb=10).settings
        assert settings.quota_bytes == 100_000_000
        assert settings.download_limit_bytes == 10_000_000

    def test_ini_keys_exclude_internal_fields(self) -> None:
        keys = SyncConfig.get_ini_keys()
        assert "config_path" not in keys
        assert {"base_url", "token", "quota_size_mb", "language"} <= keys

    def test_unknown_language_messages_fall_back_to_english(self) -> None:
        assert get_messages("xx")["today"] == "today"


class TestConfigManager:
    """Reading, writing and migrating the INI file."""

    @pytest.fixture
    def manager(self, tmp_path: Path) -> ConfigManager:
        return ConfigManager(tmp_path / "config.ini")

    def test_missing_file_raises(self, manager) -> None:
        with pytest.raises(ConfigurationError):
            manager.load_config()

    def test_saved_config_loads_back(self, manager, tmp_path) -> None:
        manager.save_new_config(
            {"base_url": "https://content.example/", "token": "t", "user_id": 7}
        )

        config = manager.load_config()

        assert config.user_id == 7
        assert config.quota_size_mb == 1000
        assert config.offline_dir == str(tmp_path / "offline")

    def test_cli_options_override_file(self, manager) -> None:
        manager.save_new_config(
            {"base_url": "https://content.example/", "token": "t", "user_id": 7}
        )

        config = manager.load_config({"max_workers": 8, "language": None})

        assert config.max_workers == 8
        assert config.language == "en"

    def test_missing_keys_are_migrated(self, manager) -> None:
        manager.config_file_path.write_text(
            "[DEFAULT]\nbase_url = https://content.example/\ntoken = t\nuser_id = 7\n",
            encoding="utf-8",
        )

        manager.load_config()

        text = manager.config_file_path.read_text(encoding="utf-8")
        assert "quota_size_mb" in text
        assert "language" in text

    def test_invalid_values_raise(self, manager) -> None:
        manager.config_file_path.write_text(
            "[DEFAULT]\nbase_url = https://content.example/\nuser_id = seven\n",
            encoding="utf-8",
        )

        with pytest.raises(ConfigurationError):
            manager.load_config()
