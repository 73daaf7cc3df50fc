"""
Village Points Tracker.

Periodically samples the points of tracked villages into the snapshot
store. With no villages tracked it falls back to the villages of the
strongest players, which is best-effort coverage.
"""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Awaitable, Callable

from ...core.async_client import FeedError
from ...core.logging import get_logger
from ..scheduler import PeriodicScheduler

if TYPE_CHECKING:
    from ..gamedata.client import GameDataClient
    from .snapshots import TrackedVillageSet, VillageSnapshotStore

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

SNAPSHOT_INTERVAL_SECONDS = 7200
BATCH_SIZE = 20
BATCH_PAUSE_SECONDS = 1.0

# Fallback selection when nothing is tracked explicitly
FALLBACK_PLAYER_COUNT = 100
FALLBACK_MIN_PLAYER_POINTS = 1000


@dataclass
class SamplingResult:
    """Outcome of one sampling pass."""

    success: bool
    processed: int = 0
    skipped: int = 0
    errors: int = 0
    duration_seconds: float = 0.0
    used_fallback: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "success": self.success,
            "processed": self.processed,
            "skipped": self.skipped,
            "errors": self.errors,
            "duration_seconds": round(self.duration_seconds, 2),
            "used_fallback": self.used_fallback,
        }
        if self.error:
            result["error"] = self.error
        return result


class VillagePointsTracker:
    """Sampling loop feeding VillageSnapshotStore."""

    def __init__(
        self,
        game_data: GameDataClient,
        store: VillageSnapshotStore,
        tracked: TrackedVillageSet,
        interval_seconds: int = SNAPSHOT_INTERVAL_SECONDS,
        batch_size: int = BATCH_SIZE,
        batch_pause_seconds: float = BATCH_PAUSE_SECONDS,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.game_data = game_data
        self.store = store
        self.tracked = tracked
        self.interval_seconds = interval_seconds
        self.batch_size = batch_size
        self.batch_pause_seconds = batch_pause_seconds
        self._sleep = sleep
        self._scheduler = PeriodicScheduler(
            name="village-snapshots",
            interval_provider=lambda: self.interval_seconds,
            tick=self.sample_once,
        )

    @property
    def is_running(self) -> bool:
        return self._scheduler.is_running

    def start(self) -> None:
        self._scheduler.start()

    async def stop(self) -> None:
        await self._scheduler.stop()

    async def fallback_villages(self) -> list[int]:
        """Villages of the top players above the minimum points."""
        players = await self.game_data.get_players()
        active = sorted(
            (p for p in players if p.points > FALLBACK_MIN_PLAYER_POINTS),
            key=lambda p: p.points,
            reverse=True,
        )[:FALLBACK_PLAYER_COUNT]
        active_ids = {p.id for p in active}
        return [v.id for v in await self.game_data.get_villages() if v.player_id in active_ids]

    async def track_village(self, village_id: int) -> bool:
        """Record the current points of one village; False if it is unknown."""
        village = await self.game_data.get_village(village_id)
        if village is None or not village.points:
            logger.warning("No roster data for village %d", village_id)
            return False
        self.store.record_snapshot(village_id, village.points)
        return True

    async def sample_once(self) -> SamplingResult:
        """One pass over the tracked (or fallback) villages, in batches."""
        started = time.monotonic()
        result = SamplingResult(success=True)

        try:
            village_ids = self.tracked.ids()
            if not village_ids:
                village_ids = await self.fallback_villages()
                result.used_fallback = True
        except FeedError as e:
            logger.warning("Village sampling skipped, rosters unavailable: %s", e)
            return SamplingResult(success=False, error=str(e))

        for start in range(0, len(village_ids), self.batch_size):
            batch = village_ids[start : start + self.batch_size]
            outcomes = await asyncio.gather(
                *(self.track_village(v) for v in batch), return_exceptions=True
            )
            for village_id, outcome in zip(batch, outcomes):
                if isinstance(outcome, BaseException):
                    logger.warning("Sampling village %d failed: %s", village_id, outcome)
                    result.errors += 1
                elif outcome:
                    result.processed += 1
                else:
                    result.skipped += 1
            if start + self.batch_size < len(village_ids):
                await self._sleep(self.batch_pause_seconds)

        result.duration_seconds = time.monotonic() - started
        logger.info(
            "Village sampling: %d recorded, %d skipped, %d errors",
            result.processed,
            result.skipped,
            result.errors,
        )
        return result

    def get_status(self) -> dict[str, Any]:
        return {
            "running": self.is_running,
            "tracked_villages": len(self.tracked.ids()),
            "interval_seconds": self.interval_seconds,
        }
