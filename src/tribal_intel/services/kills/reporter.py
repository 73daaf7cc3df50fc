"""
Kills Reporter.

Runs the kill tracker on a schedule and posts the summary to a Discord
channel. The schedule is configured in kills-report.json:

    {"enabled": true, "channelId": "123", "intervalHours": 2}
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from ...core.logging import get_logger
from ...core.persistence import atomic_write_json, read_json
from ..scheduler import PeriodicScheduler

if TYPE_CHECKING:
    from ..notifications.discord_client import ChannelSender, SendResult
    from ..notifications.formatter import MessageFormatter
    from .tracker import KillsTracker

logger = get_logger(__name__)

DEFAULT_INTERVAL_HOURS = 2


@dataclass
class KillsReportConfig:
    enabled: bool = False
    channel_id: str | None = None
    interval_hours: float = DEFAULT_INTERVAL_HOURS

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "channelId": self.channel_id,
            "intervalHours": self.interval_hours,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any], default_interval_hours: float) -> KillsReportConfig:
        channel = data.get("channelId")
        return cls(
            enabled=bool(data.get("enabled", False)),
            channel_id=str(channel) if channel else None,
            interval_hours=float(data.get("intervalHours") or default_interval_hours),
        )


class KillsReporter:
    """Scheduled kill summaries sent through a ChannelSender."""

    def __init__(
        self,
        tracker: KillsTracker,
        sender: ChannelSender,
        formatter: MessageFormatter,
        config_path: Path,
        default_interval_hours: float = DEFAULT_INTERVAL_HOURS,
    ) -> None:
        self.tracker = tracker
        self.sender = sender
        self.formatter = formatter
        self.config_path = config_path
        self.default_interval_hours = default_interval_hours
        self._scheduler = PeriodicScheduler(
            name="kills-report",
            interval_provider=lambda: self.load_config().interval_hours * 3600,
            tick=self.report_once,
        )

    @property
    def is_running(self) -> bool:
        return self._scheduler.is_running

    def load_config(self) -> KillsReportConfig:
        data = read_json(self.config_path)
        if not isinstance(data, dict):
            return KillsReportConfig(interval_hours=self.default_interval_hours)
        try:
            return KillsReportConfig.from_dict(data, self.default_interval_hours)
        except (TypeError, ValueError) as e:
            logger.warning("Invalid kill report config %s: %s", self.config_path, e)
            return KillsReportConfig(interval_hours=self.default_interval_hours)

    def configure(self, channel_id: str, interval_hours: float | None = None) -> KillsReportConfig:
        if interval_hours is not None and interval_hours <= 0:
            raise ValueError("interval_hours must be positive")
        config = KillsReportConfig(
            enabled=True,
            channel_id=channel_id,
            interval_hours=interval_hours or self.default_interval_hours,
        )
        atomic_write_json(self.config_path, config.to_dict())
        logger.info("Kill reports enabled for channel %s every %sh", channel_id, config.interval_hours)
        return config

    async def disable(self) -> KillsReportConfig:
        config = self.load_config()
        config.enabled = False
        atomic_write_json(self.config_path, config.to_dict())
        await self.stop()
        return config

    def start(self) -> bool:
        config = self.load_config()
        if not config.enabled or not config.channel_id:
            logger.info("Kill reports not enabled, not starting")
            return False
        self._scheduler.start()
        return True

    async def stop(self) -> None:
        await self._scheduler.stop()

    async def report_once(self) -> SendResult | None:
        """
        Track kills and send the summary.

        The first run only records a baseline and sends nothing.
        """
        config = self.load_config()
        if not config.enabled or not config.channel_id:
            return None

        result = await self.tracker.track(save=True)
        if result.first_run:
            logger.info("Kill baseline recorded, first report on the next run")
            return None

        send_result = await self.sender.send(
            config.channel_id, self.formatter.format_kill_summary(result.summary)
        )
        if not send_result.success:
            logger.warning("Kill report not delivered: %s", send_result.error)
        return send_result

    def status(self) -> dict[str, Any]:
        return {
            "config": self.load_config().to_dict(),
            "running": self.is_running,
            "scheduler": self._scheduler.get_status(),
        }
