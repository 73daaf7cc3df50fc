"""
Tests for centralized configuration module.
"""

from __future__ import annotations

import logging
from pathlib import Path

import pytest
from pydantic import ValidationError

from tribal_intel.core.config import (
    TribalSettings,
    get_settings,
    reset_settings,
)


class TestTribalSettings:
    """Test TribalSettings class."""

    def test_default_values(self, monkeypatch):
        for name in ("TRIBAL_LOG_LEVEL", "TRIBAL_WORLD_URL"):
            monkeypatch.delenv(name, raising=False)

        settings = TribalSettings()

        assert settings.log_level == "WARNING"
        assert settings.world_url == "https://es95.guerrastribales.es"
        assert settings.http_timeout_seconds == 15.0
        assert settings.conquest_stale_watermark_hours == 6.0
        assert settings.conquest_grace_seconds == 300
        assert settings.conquest_processed_cap == 1000
        assert settings.twstats_utc_offset_hours == 1.0
        assert settings.snapshot_interval_seconds == 7200
        assert settings.snapshot_retention_days == 30
        assert settings.discord_token is None

    def test_log_level_case_insensitive(self, monkeypatch):
        monkeypatch.setenv("TRIBAL_LOG_LEVEL", "debug")
        assert TribalSettings().log_level == "DEBUG"

    def test_invalid_log_level(self, monkeypatch):
        monkeypatch.setenv("TRIBAL_LOG_LEVEL", "LOUD")
        with pytest.raises(ValidationError):
            TribalSettings()

    def test_log_level_int(self, monkeypatch):
        monkeypatch.setenv("TRIBAL_LOG_LEVEL", "ERROR")
        assert TribalSettings().log_level_int == logging.ERROR

    def test_world_url_trailing_slash_stripped(self, monkeypatch):
        monkeypatch.setenv("TRIBAL_WORLD_URL", "https://es90.guerrastribales.es/")
        assert TribalSettings().world_url == "https://es90.guerrastribales.es"

    def test_discord_token_without_prefix(self, monkeypatch):
        monkeypatch.setenv("DISCORD_TOKEN", "secret")
        assert TribalSettings().discord_token == "secret"

    def test_timeout_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("TRIBAL_HTTP_TIMEOUT_SECONDS", "0")
        with pytest.raises(ValidationError):
            TribalSettings()

    def test_data_paths_under_instance_root(self, tmp_path: Path):
        settings = TribalSettings()

        assert settings.instance_root == tmp_path
        assert settings.data_dir == tmp_path / "data"
        assert settings.conquest_config_path == tmp_path / "data" / "conquest-config.json"
        assert settings.village_history_dir == tmp_path / "data" / "village-history"
        assert settings.kills_cache_dir == tmp_path / "data" / "kills"
        assert settings.kills_tracker_path.name == "kills-tracker.json"
        assert settings.kills_report_config_path.name == "kills-report.json"
        assert settings.tracked_villages_path.name == "tracked-villages.json"


class TestSettingsSingleton:
    """Test get_settings caching."""

    def test_cached(self):
        assert get_settings() is get_settings()

    def test_reset_reloads_environment(self, monkeypatch):
        monkeypatch.setenv("TRIBAL_LOG_LEVEL", "INFO")
        assert get_settings().log_level == "INFO"

        monkeypatch.setenv("TRIBAL_LOG_LEVEL", "DEBUG")
        assert get_settings().log_level == "INFO"

        reset_settings()
        assert get_settings().log_level == "DEBUG"
