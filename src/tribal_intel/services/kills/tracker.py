"""
Kills Tracker.

Compares the current kill rankings against the last saved snapshot and
reports which players gained kills in between.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from ...core.logging import get_logger
from ...core.persistence import atomic_write_json, read_json
from .models import CategoryGain, KillCategory, KillChanges, KillEntry, KillSummary, PlayerKillChange

if TYPE_CHECKING:
    from ..gamedata.client import GameDataClient
    from .client import KillStatsClient

logger = get_logger(__name__)

TOP_GAINERS = 5
MIN_GAIN = 1


# =============================================================================
# Snapshot
# =============================================================================


@dataclass
class KillSnapshot:
    """All four rankings at one point in time, indexed by player id."""

    taken_at: float
    categories: dict[KillCategory, dict[int, KillEntry]]

    @classmethod
    def from_rankings(
        cls, rankings: dict[KillCategory, list[KillEntry]], taken_at: float
    ) -> KillSnapshot:
        return cls(
            taken_at=taken_at,
            categories={c: {e.player_id: e for e in entries} for c, entries in rankings.items()},
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "takenAt": self.taken_at,
            "categories": {
                c.value: {str(pid): [e.ranking, e.kills] for pid, e in entries.items()}
                for c, entries in self.categories.items()
            },
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> KillSnapshot:
        categories: dict[KillCategory, dict[int, KillEntry]] = {}
        for name, entries in data.get("categories", {}).items():
            category = KillCategory(name)
            categories[category] = {
                int(pid): KillEntry(ranking=int(row[0]), player_id=int(pid), kills=int(row[1]))
                for pid, row in entries.items()
            }
        return cls(taken_at=float(data.get("takenAt", 0)), categories=categories)


def compare_snapshots(current: KillSnapshot, previous: KillSnapshot) -> KillChanges:
    """Collect every category where a player gained at least one kill."""
    changes = KillChanges(taken_at=current.taken_at, previous_taken_at=previous.taken_at)

    for category, entries in current.categories.items():
        before = previous.categories.get(category, {})
        for player_id, entry in entries.items():
            old = before.get(player_id)
            previous_kills = old.kills if old else 0
            if entry.kills - previous_kills < MIN_GAIN:
                continue
            change = changes.players.setdefault(player_id, PlayerKillChange(player_id=player_id))
            change.gains[category] = CategoryGain(
                category=category,
                previous=previous_kills,
                current=entry.kills,
                current_ranking=entry.ranking,
                previous_ranking=old.ranking if old else None,
            )

    return changes


def summarize_changes(changes: KillChanges) -> KillSummary:
    """Per-category totals and the top gainers."""
    players = list(changes.players.values())
    totals = {category: 0 for category in KillCategory}
    for player in players:
        for category, gain in player.gains.items():
            totals[category] += gain.gained

    top = sorted(players, key=lambda p: p.total_gained, reverse=True)[:TOP_GAINERS]
    return KillSummary(
        has_changes=bool(players),
        total_players=len(players),
        totals=totals,
        top_gainers=top,
        elapsed_seconds=changes.elapsed_seconds,
    )


# =============================================================================
# Tracker
# =============================================================================


@dataclass
class TrackResult:
    """Outcome of one tracking run."""

    first_run: bool
    saved: bool
    changes: KillChanges | None = None
    summary: KillSummary | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "first_run": self.first_run,
            "saved": self.saved,
            "summary": self.summary.to_dict() if self.summary else None,
        }


class KillsTracker:
    """Snapshot-and-compare loop body for kill rankings."""

    def __init__(
        self,
        kills_client: KillStatsClient,
        game_data: GameDataClient,
        snapshot_path: Path,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.kills_client = kills_client
        self.game_data = game_data
        self.snapshot_path = snapshot_path
        self.clock = clock

    def load_previous(self) -> KillSnapshot | None:
        data = read_json(self.snapshot_path)
        if not data:
            return None
        try:
            return KillSnapshot.from_dict(data)
        except (KeyError, ValueError, TypeError, IndexError) as e:
            logger.warning("Ignoring unreadable kill snapshot %s: %s", self.snapshot_path, e)
            return None

    async def fetch_current(self) -> KillSnapshot:
        rankings = await self.kills_client.snapshot()
        return KillSnapshot.from_rankings(rankings, taken_at=self.clock())

    async def enrich(self, changes: KillChanges) -> None:
        """Attach player name, points and tribe to each change."""
        for player_id, change in changes.players.items():
            player = await self.game_data.get_player(player_id)
            if player is None:
                logger.debug("Player %d not found in roster", player_id)
                continue
            change.player_name = player.name
            change.points = player.points
            if player.tribe_id:
                tribe = await self.game_data.get_tribe(player.tribe_id)
                if tribe is not None:
                    change.tribe_tag = tribe.tag
                    change.tribe_name = tribe.name

    async def track(self, save: bool = True) -> TrackResult:
        """
        Run one comparison.

        Args:
            save: Persist the new snapshot; False is a preview that leaves
                the baseline untouched

        Returns:
            TrackResult; first_run is True when there was no baseline
        """
        previous = self.load_previous()
        current = await self.fetch_current()

        if previous is None:
            if save:
                atomic_write_json(self.snapshot_path, current.to_dict())
                logger.info("Saved first kill snapshot as baseline")
            return TrackResult(first_run=True, saved=save)

        changes = compare_snapshots(current, previous)
        await self.enrich(changes)
        summary = summarize_changes(changes)
        logger.info("Kill tracking: %d players gained kills", summary.total_players)

        if save:
            atomic_write_json(self.snapshot_path, current.to_dict())
        else:
            logger.debug("Preview run, kill snapshot not updated")

        return TrackResult(first_run=False, saved=save, changes=changes, summary=summary)
