"""
Application wiring.

Builds every service from TribalSettings and shares one FeedClient
between them. Commands and the long-running bot both go through
build_app().
"""

from __future__ import annotations

from dataclasses import dataclass

from .core.async_client import FeedClient
from .core.config import TribalSettings, get_settings
from .core.logging import get_logger
from .services.buildings import BuildingCatalog, BuildingUpgradeEngine
from .services.conquest import (
    ConquestAnalyzer,
    ConquestNotifier,
    MonitorConfigStore,
    PrimaryConquestSource,
    ProcessedEventSet,
    SecondaryConquestSource,
)
from .services.gamedata import GameDataClient
from .services.kills import KillsReporter, KillStatsClient, KillsTracker
from .services.notifications import DiscordChannelClient, MessageFormatter
from .services.villages import TrackedVillageSet, VillagePointsTracker, VillageSnapshotStore

logger = get_logger(__name__)


class MissingTokenError(RuntimeError):
    """A command needs to post to Discord but DISCORD_TOKEN is not set."""


@dataclass
class TribalApp:
    """All services of one bot instance."""

    settings: TribalSettings
    feed_client: FeedClient
    game_data: GameDataClient
    discord: DiscordChannelClient
    formatter: MessageFormatter
    conquest: ConquestNotifier
    catalog: BuildingCatalog
    engine: BuildingUpgradeEngine
    snapshots: VillageSnapshotStore
    tracked: TrackedVillageSet
    village_tracker: VillagePointsTracker
    kills: KillStatsClient
    kills_tracker: KillsTracker
    kills_reporter: KillsReporter

    def require_token(self) -> None:
        if not self.settings.discord_token:
            raise MissingTokenError("DISCORD_TOKEN is not set")

    async def start(self) -> None:
        """Start every enabled background loop."""
        self.require_token()
        self.conquest.start()
        self.village_tracker.start()
        self.kills_reporter.start()

    async def stop(self) -> None:
        await self.conquest.stop()
        await self.village_tracker.stop()
        await self.kills_reporter.stop()

    async def aclose(self) -> None:
        await self.stop()
        await self.discord.close()
        await self.feed_client.close()


def build_app(settings: TribalSettings | None = None) -> TribalApp:
    """Wire the services for the configured world."""
    settings = settings or get_settings()

    feed_client = FeedClient(timeout=settings.http_timeout_seconds)
    game_data = GameDataClient(
        world_url=settings.world_url,
        feed_client=feed_client,
        cache_ttl_seconds=settings.roster_cache_ttl_seconds,
    )
    discord = DiscordChannelClient(
        token=settings.discord_token or "",
        api_url=settings.discord_api_url,
    )
    formatter = MessageFormatter(world_url=settings.world_url)

    conquest = ConquestNotifier(
        store=MonitorConfigStore(settings.conquest_config_path),
        analyzer=ConquestAnalyzer(ProcessedEventSet(settings.conquest_processed_cap)),
        sources=[
            PrimaryConquestSource(settings.world_url, feed_client, game_data),
            SecondaryConquestSource(
                settings.twstats_url, feed_client, settings.twstats_utc_offset_hours
            ),
        ],
        sender=discord,
        formatter=formatter,
        game_data=game_data,
        fetch_timeout=settings.http_timeout_seconds,
        stale_watermark_hours=settings.conquest_stale_watermark_hours,
        grace_seconds=settings.conquest_grace_seconds,
    )

    catalog = BuildingCatalog.from_yaml()
    snapshots = VillageSnapshotStore(
        settings.village_history_dir, retention_days=settings.snapshot_retention_days
    )
    tracked = TrackedVillageSet(settings.tracked_villages_path)

    kills = KillStatsClient(
        world_url=settings.world_url,
        feed_client=feed_client,
        cache_dir=settings.kills_cache_dir,
        cache_ttl_seconds=settings.kills_cache_ttl_seconds,
    )
    kills_tracker = KillsTracker(kills, game_data, settings.kills_tracker_path)

    return TribalApp(
        settings=settings,
        feed_client=feed_client,
        game_data=game_data,
        discord=discord,
        formatter=formatter,
        conquest=conquest,
        catalog=catalog,
        engine=BuildingUpgradeEngine(catalog),
        snapshots=snapshots,
        tracked=tracked,
        village_tracker=VillagePointsTracker(
            game_data, snapshots, tracked, interval_seconds=settings.snapshot_interval_seconds
        ),
        kills=kills,
        kills_tracker=kills_tracker,
        kills_reporter=KillsReporter(
            kills_tracker,
            discord,
            formatter,
            settings.kills_report_config_path,
            default_interval_hours=settings.kills_report_interval_hours,
        ),
    )
