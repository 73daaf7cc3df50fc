"""
Tribal Intel Centralized Configuration

Provides validated, type-safe access to all environment variables using Pydantic Settings.

Usage:
    from tribal_intel.core.config import get_settings

    settings = get_settings()
    if settings.log_level == "DEBUG":
        ...

Data Paths:
    All runtime state is stored in {instance_root}/data/:
    - data/conquest-config.json: Conquest monitor configuration and watermark
    - data/village-history/: Per-village point snapshots
    - data/tracked-villages.json: Explicit village tracking set
    - data/kills/: Cached kill-stat feeds
    - data/kills-tracker.json: Last kill snapshot for delta reports
    - data/kills-report.json: Kill report channel configuration

Environment Variables:
    TRIBAL_LOG_LEVEL: Log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
    TRIBAL_LOG_JSON: Output logs as JSON
    TRIBAL_WORLD_URL: Base URL of the game world (map feeds)
    TRIBAL_TWSTATS_URL: Live ennoblements page used as secondary conquest feed
    TRIBAL_HTTP_TIMEOUT_SECONDS: Timeout for every feed request
    TRIBAL_CONQUEST_STALE_WATERMARK_HOURS: Watermark age that triggers a reset
    TRIBAL_TWSTATS_UTC_OFFSET_HOURS: UTC offset of scraped timestamps
    TRIBAL_WORLD_SPEED / TRIBAL_UNIT_SPEED: Speed settings for travel times

External Credentials (no TRIBAL_ prefix):
    DISCORD_TOKEN: Bot token used to post channel messages
"""

from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _find_project_env_file() -> Path | None:
    """
    Find .env file by searching for project root markers.

    Returns:
        Path to .env if found, None otherwise
    """
    current = Path(__file__).resolve().parent

    for _ in range(10):
        if (current / "pyproject.toml").exists():
            env_file = current / ".env"
            if env_file.exists():
                return env_file
            return None
        parent = current.parent
        if parent == current:
            break
        current = parent

    return None


def _find_instance_root() -> Path:
    """
    Find the instance root directory.

    Resolution order:
    1. TRIBAL_INSTANCE_ROOT environment variable (explicit override)
    2. Project root (directory containing pyproject.toml)
    3. Current working directory (fallback)
    """
    import os

    override = os.environ.get("TRIBAL_INSTANCE_ROOT")
    if override:
        return Path(override)

    current = Path(__file__).resolve().parent
    for _ in range(10):
        if (current / "pyproject.toml").exists():
            return current
        parent = current.parent
        if parent == current:
            break
        current = parent

    return Path.cwd()


_ENV_FILE = _find_project_env_file()
_INSTANCE_ROOT = _find_instance_root()


class TribalSettings(BaseSettings):
    """
    Configuration settings with validation.

    Environment variables are automatically loaded with the TRIBAL_ prefix.
    """

    model_config = SettingsConfigDict(
        env_prefix="TRIBAL_",
        env_file=_ENV_FILE,
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="WARNING",
        description="Log level for tribal_intel components",
    )

    log_json: bool = Field(
        default=False,
        description="Output logs in JSON format for machine parsing",
    )

    # =========================================================================
    # Data Sources
    # =========================================================================

    world_url: str = Field(
        default="https://es95.guerrastribales.es",
        description="Base URL of the game world serving /map/*.txt feeds",
    )

    twstats_url: str = Field(
        default="https://es.twstats.com/es95/index.php?page=ennoblements&live=live",
        description="Live ennoblements table scraped as secondary conquest source",
    )

    http_timeout_seconds: float = Field(
        default=15.0,
        gt=0,
        description="Timeout applied to every feed request",
    )

    roster_cache_ttl_seconds: int = Field(
        default=300,
        description="How long player/tribe/village rosters stay fresh",
    )

    kills_cache_ttl_seconds: int = Field(
        default=3600,
        description="How long downloaded kill-stat files stay fresh",
    )

    world_speed: float = Field(
        default=1.0,
        gt=0,
        description="World speed setting, divides unit travel times",
    )

    unit_speed: float = Field(
        default=1.0,
        gt=0,
        description="Unit speed modifier, divides unit travel times",
    )

    # =========================================================================
    # Discord
    # =========================================================================

    discord_token: Optional[str] = Field(
        default=None,
        validation_alias="DISCORD_TOKEN",
        description="Bot token used to post channel messages",
    )

    discord_api_url: str = Field(
        default="https://discord.com/api/v10",
        description="Discord REST API base URL",
    )

    # =========================================================================
    # Conquest Monitor
    # =========================================================================

    conquest_stale_watermark_hours: float = Field(
        default=6.0,
        gt=0,
        description="Persisted watermark older than this is reset on start",
    )

    conquest_grace_seconds: int = Field(
        default=300,
        ge=0,
        description="Watermark reset target is now minus this window",
    )

    conquest_processed_cap: int = Field(
        default=1000,
        gt=0,
        description="Maximum remembered conquest identities",
    )

    twstats_utc_offset_hours: float = Field(
        default=1.0,
        description="UTC offset of the timestamps shown on the scraped page",
    )

    # =========================================================================
    # Village Tracking / Kill Reports
    # =========================================================================

    snapshot_interval_seconds: int = Field(
        default=7200,
        gt=0,
        description="Interval between village point samples",
    )

    snapshot_retention_days: int = Field(
        default=30,
        gt=0,
        description="Days of village point history kept",
    )

    kills_report_interval_hours: int = Field(
        default=2,
        gt=0,
        description="Default interval between kill summary reports",
    )

    # =========================================================================
    # Data Paths
    # =========================================================================

    instance_root: Path = Field(
        default=_INSTANCE_ROOT,
        description="Instance root directory (project root containing pyproject.toml)",
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def uppercase_log_level(cls, v: str) -> str:
        """Normalize log level to uppercase."""
        if isinstance(v, str):
            return v.upper()
        return v

    @field_validator("world_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # =========================================================================
    # Computed Properties
    # =========================================================================

    @property
    def log_level_int(self) -> int:
        """Log level as a logging constant."""
        return getattr(logging, self.log_level)

    @property
    def data_dir(self) -> Path:
        return self.instance_root / "data"

    @property
    def conquest_config_path(self) -> Path:
        return self.data_dir / "conquest-config.json"

    @property
    def village_history_dir(self) -> Path:
        return self.data_dir / "village-history"

    @property
    def tracked_villages_path(self) -> Path:
        return self.data_dir / "tracked-villages.json"

    @property
    def kills_cache_dir(self) -> Path:
        return self.data_dir / "kills"

    @property
    def kills_tracker_path(self) -> Path:
        return self.data_dir / "kills-tracker.json"

    @property
    def kills_report_config_path(self) -> Path:
        return self.data_dir / "kills-report.json"


# =============================================================================
# Singleton Accessor
# =============================================================================


@lru_cache(maxsize=1)
def get_settings() -> TribalSettings:
    """
    Get the singleton settings instance.

    The settings are validated at first access.
    """
    return TribalSettings()


def reset_settings() -> None:
    """
    Reset the settings cache (for testing).

    After calling this, the next get_settings() call will
    reload settings from environment variables.
    """
    get_settings.cache_clear()
