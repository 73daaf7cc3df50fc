"""
Monitor configuration file.

The same JSON file is rewritten by configuration commands and by the
monitor loop; every write is an atomic replace.
"""

from __future__ import annotations

from pathlib import Path

from ...core.logging import get_logger
from ...core.persistence import atomic_write_json, read_json
from .models import MonitorConfig

logger = get_logger(__name__)


class MonitorConfigStore:
    """Load/save MonitorConfig; a missing file means the monitor is disabled."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def load(self) -> MonitorConfig | None:
        data = read_json(self.path)
        if not isinstance(data, dict):
            return None
        try:
            return MonitorConfig.from_dict(data)
        except (ValueError, TypeError) as e:
            logger.warning("Invalid monitor config %s: %s", self.path, e)
            return None

    def save(self, config: MonitorConfig) -> None:
        atomic_write_json(self.path, config.to_dict())
