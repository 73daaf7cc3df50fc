"""
Game Data Client.

Fetches the three public roster feeds of a world (players, tribes,
villages) and serves lookups over them.

- 5-minute TTL cache per feed, replaced wholesale on refresh
- Stale data served when a refresh fails, with a cooldown before the
  next attempt
- Malformed lines skipped with a debug log
"""

from __future__ import annotations

import asyncio
import re
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Generic, TypeVar

from ...core.async_client import FeedClient, FeedError
from ...core.logging import get_logger
from .models import Player, Tribe, Village

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

ROSTER_CACHE_TTL_SECONDS = 300
# After a failed refresh, stale data is served without retrying for this long
REFRESH_COOLDOWN_SECONDS = 60

PLAYER_FEED = "/map/player.txt"
TRIBE_FEED = "/map/ally.txt"
VILLAGE_FEED = "/map/village.txt"

VILLAGE_SEARCH_RADIUS = 2

_COORD_QUERY_RE = re.compile(r"^\s*(\d{1,3})\s*[|, ]\s*(\d{1,3})\s*$")

T = TypeVar("T", Player, Tribe, Village)


class RankingKind(str, Enum):
    PLAYERS = "players"
    TRIBES = "tribes"
    VILLAGES = "villages"
    POINTS = "points"


# =============================================================================
# Parsing
# =============================================================================


def parse_feed(text: str, record: type[T]) -> list[T]:
    """
    Parse a roster feed into records, skipping malformed lines.

    Args:
        text: Raw feed body
        record: Player, Tribe or Village

    Returns:
        Parsed records in feed order
    """
    rows: list[T] = []
    skipped = 0
    for line in text.strip().splitlines():
        line = line.strip()
        if not line:
            continue
        try:
            rows.append(record.from_line(line))
        except ValueError as e:
            skipped += 1
            logger.debug("Skipping %s line %r: %s", record.__name__, line[:80], e)
    if skipped:
        logger.warning("Skipped %d malformed %s lines", skipped, record.__name__)
    return rows


# =============================================================================
# Cache
# =============================================================================


@dataclass
class _Roster(Generic[T]):
    """One parsed feed plus its id index; replaced as a whole on refresh."""

    rows: list[T]
    by_id: dict[int, T]
    fetched_at: float

    @classmethod
    def build(cls, rows: list[T], fetched_at: float) -> _Roster[T]:
        return cls(rows=rows, by_id={row.id: row for row in rows}, fetched_at=fetched_at)


# =============================================================================
# Client
# =============================================================================


@dataclass
class GameDataClient:
    """
    Read-only access to a world's player, tribe and village rosters.

    The cache is safe to share across loops: a refresh builds a new
    _Roster and swaps the reference, so readers never see a partial list.
    """

    world_url: str
    feed_client: FeedClient
    cache_ttl_seconds: int = ROSTER_CACHE_TTL_SECONDS
    refresh_cooldown_seconds: float = REFRESH_COOLDOWN_SECONDS
    clock: Callable[[], float] = time.time
    _failed_at: dict[str, float] = field(default_factory=dict, repr=False)
    _rosters: dict[str, _Roster[Any]] = field(default_factory=dict, repr=False)
    _locks: dict[str, asyncio.Lock] = field(default_factory=dict, repr=False)

    # -------------------------------------------------------------------------
    # Feed loading
    # -------------------------------------------------------------------------

    def _usable(self, path: str, cached: _Roster[Any] | None) -> bool:
        """Cached roster is fresh, or a refresh failed within the cooldown."""
        if cached is None:
            return False
        now = self.clock()
        if now - cached.fetched_at < self.cache_ttl_seconds:
            return True
        failed_at = self._failed_at.get(path)
        return failed_at is not None and now - failed_at < self.refresh_cooldown_seconds

    async def _load(self, path: str, record: type[T]) -> _Roster[T]:
        cached = self._rosters.get(path)
        if self._usable(path, cached):
            return cached

        lock = self._locks.setdefault(path, asyncio.Lock())
        async with lock:
            # Another caller may have refreshed while we waited
            cached = self._rosters.get(path)
            if self._usable(path, cached):
                return cached

            try:
                text = await self.feed_client.get_text_with_retry(f"{self.world_url}{path}")
            except FeedError as e:
                if cached is not None:
                    self._failed_at[path] = self.clock()
                    logger.warning("Refresh of %s failed, serving stale data: %s", path, e)
                    return cached
                raise

            roster = _Roster.build(parse_feed(text, record), self.clock())
            self._rosters[path] = roster
            self._failed_at.pop(path, None)
            logger.debug("Loaded %d rows from %s", len(roster.rows), path)
            return roster

    async def get_players(self) -> list[Player]:
        return (await self._load(PLAYER_FEED, Player)).rows

    async def get_tribes(self) -> list[Tribe]:
        """All tribes ordered by rank."""
        roster = await self._load(TRIBE_FEED, Tribe)
        return sorted(roster.rows, key=lambda t: t.rank)

    async def get_villages(self) -> list[Village]:
        return (await self._load(VILLAGE_FEED, Village)).rows

    def clear_cache(self) -> None:
        """Drop every cached roster."""
        self._rosters.clear()
        self._failed_at.clear()

    # -------------------------------------------------------------------------
    # Lookups
    # -------------------------------------------------------------------------

    async def get_player(self, player_id: int) -> Player | None:
        return (await self._load(PLAYER_FEED, Player)).by_id.get(player_id)

    async def get_tribe(self, tribe_id: int) -> Tribe | None:
        return (await self._load(TRIBE_FEED, Tribe)).by_id.get(tribe_id)

    async def get_village(self, village_id: int) -> Village | None:
        return (await self._load(VILLAGE_FEED, Village)).by_id.get(village_id)

    async def find_player(self, name: str) -> Player | None:
        """
        Find a player by name.

        An exact case-insensitive match wins; otherwise the first player
        whose name contains the query.
        """
        query = name.strip().lower()
        if not query:
            return None
        players = await self.get_players()
        for player in players:
            if player.name.lower() == query:
                return player
        for player in players:
            if query in player.name.lower():
                return player
        return None

    async def find_tribe(self, search: str) -> Tribe | None:
        """Find a tribe by tag or name, exact matches first."""
        query = search.strip().lower()
        if not query:
            return None
        tribes = await self.get_tribes()
        for tribe in tribes:
            if tribe.tag.lower() == query or tribe.name.lower() == query:
                return tribe
        for tribe in tribes:
            if query in tribe.tag.lower() or query in tribe.name.lower():
                return tribe
        return None

    async def village_by_coordinates(self, x: int, y: int) -> Village | None:
        for village in await self.get_villages():
            if village.x == x and village.y == y:
                return village
        return None

    async def player_villages(self, player_id: int) -> list[Village]:
        return [v for v in await self.get_villages() if v.player_id == player_id]

    async def tribe_members(self, tribe_id: int) -> list[Player]:
        return [p for p in await self.get_players() if p.tribe_id == tribe_id]

    async def player_profile(self, name: str) -> dict[str, Any] | None:
        """
        Player record with tribe and village list.

        Returns:
            Dict with player fields, "tribe", "villages_list" and
            "avg_village_points", or None if no player matches
        """
        player = await self.find_player(name)
        if player is None:
            return None

        tribe = await self.get_tribe(player.tribe_id) if player.tribe_id else None
        villages = await self.player_villages(player.id)

        result = player.to_dict()
        result["tribe"] = tribe.to_dict() if tribe else None
        result["villages_list"] = [v.to_dict() for v in villages]
        result["avg_village_points"] = (
            round(player.points / player.villages) if player.villages else 0
        )
        return result

    async def tribe_profile(self, search: str) -> dict[str, Any] | None:
        """Tribe record with member list, or None if nothing matches."""
        tribe = await self.find_tribe(search)
        if tribe is None:
            return None

        members = sorted(await self.tribe_members(tribe.id), key=lambda p: p.rank)

        result = tribe.to_dict()
        result["members_list"] = [p.to_dict() for p in members]
        result["avg_player_points"] = round(tribe.points / tribe.members) if tribe.members else 0
        return result

    # -------------------------------------------------------------------------
    # World queries
    # -------------------------------------------------------------------------

    async def rankings(self, kind: RankingKind, limit: int = 10) -> list[Player] | list[Tribe]:
        """
        Top of a world ranking.

        PLAYERS and TRIBES follow the in-game rank (unranked rows last);
        VILLAGES and POINTS order players by village count or points.
        """
        if kind is RankingKind.TRIBES:
            return sorted(await self.get_tribes(), key=_rank_order)[:limit]

        players = await self.get_players()
        if kind is RankingKind.PLAYERS:
            ordered = sorted(players, key=_rank_order)
        elif kind is RankingKind.VILLAGES:
            ordered = sorted(players, key=lambda p: (-p.villages, -p.points))
        else:
            ordered = sorted(players, key=lambda p: -p.points)
        return ordered[:limit]

    async def world_stats(self) -> dict[str, Any]:
        """Totals, averages and leaders across the three rosters."""
        players, tribes, villages = await asyncio.gather(
            self.get_players(), self.get_tribes(), self.get_villages()
        )
        by_points = sorted(players, key=lambda p: -p.points)
        tribes_by_points = sorted(tribes, key=lambda t: -t.points)

        return {
            "players": {
                "total": len(players),
                "top": _pick(by_points[:1], "name", "points"),
                "most_villages": _pick(
                    [max(players, key=lambda p: p.villages)] if players else [], "name", "villages"
                ),
                "avg_points": _average([p.points for p in players]),
                "top5": [_pick([p], "name", "points") for p in by_points[:5]],
            },
            "tribes": {
                "total": len(tribes),
                "top": _pick(tribes_by_points[:1], "tag", "points"),
                "most_members": _pick(
                    [max(tribes, key=lambda t: t.members)] if tribes else [], "tag", "members"
                ),
                "avg_points": _average([t.points for t in tribes]),
                "top5": [_pick([t], "tag", "points") for t in tribes_by_points[:5]],
            },
            "villages": {
                "total": len(villages),
                "top": _pick(
                    [max(villages, key=lambda v: v.points)] if villages else [],
                    "name",
                    "coordinates",
                    "points",
                ),
                "avg_points": _average([v.points for v in villages]),
                "per_player": round(len(villages) / len(players), 1) if players else 0.0,
            },
        }

    async def search_players(self, query: str) -> list[Player]:
        """Players whose name contains query, case-insensitive, in feed order."""
        needle = query.strip().lower()
        if not needle:
            return []
        return [p for p in await self.get_players() if needle in p.name.lower()]

    async def search_tribes(self, query: str) -> list[Tribe]:
        """Tribes whose tag or name contains query, by rank."""
        needle = query.strip().lower()
        if not needle:
            return []
        return [
            t
            for t in await self.get_tribes()
            if needle in t.tag.lower() or needle in t.name.lower()
        ]

    async def search_villages(self, query: str) -> list[Village]:
        """
        Villages matching a name fragment or near a coordinate.

        "500|500", "500,500" and "500 500" select every village within
        VILLAGE_SEARCH_RADIUS fields on both axes, nearest first. Anything
        else is a case-insensitive substring of the village name.
        """
        villages = await self.get_villages()
        match = _COORD_QUERY_RE.match(query)
        if match:
            x, y = int(match.group(1)), int(match.group(2))
            near = [
                v
                for v in villages
                if abs(v.x - x) <= VILLAGE_SEARCH_RADIUS and abs(v.y - y) <= VILLAGE_SEARCH_RADIUS
            ]
            return sorted(near, key=lambda v: ((v.x - x) ** 2 + (v.y - y) ** 2, v.id))

        needle = query.strip().lower()
        if not needle:
            return []
        return [v for v in villages if needle in v.name.lower()]


def _rank_order(row: Player | Tribe) -> tuple[bool, int]:
    return (row.rank <= 0, row.rank)


def _average(values: list[int]) -> int:
    return round(sum(values) / len(values)) if values else 0


def _pick(rows: list[Any], *fields: str) -> dict[str, Any] | None:
    if not rows:
        return None
    return {name: getattr(rows[0], name) for name in fields}
