"""
Kill statistics records.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class KillCategory(str, Enum):
    """Kill ranking category and the map feed that serves it."""

    ALL = "all"
    ATTACK = "attack"
    DEFENSE = "defense"
    SUPPORT = "support"

    @property
    def feed(self) -> str:
        return _FEEDS[self]

    @classmethod
    def parse(cls, value: str) -> KillCategory:
        """Accept either the category name or its feed name (kill_att)."""
        value = value.strip().lower()
        for category in cls:
            if value in (category.value, category.feed):
                return category
        raise ValueError(f"Unknown kill category: {value}")


_FEEDS = {
    KillCategory.ALL: "kill_all",
    KillCategory.ATTACK: "kill_att",
    KillCategory.DEFENSE: "kill_def",
    KillCategory.SUPPORT: "kill_sup",
}


@dataclass(frozen=True)
class KillEntry:
    """One ranking row: ranking,player_id,kills."""

    ranking: int
    player_id: int
    kills: int

    def to_dict(self) -> dict[str, int]:
        return {"ranking": self.ranking, "player_id": self.player_id, "kills": self.kills}


@dataclass
class CategoryGain:
    """Kills gained in one category between two snapshots."""

    category: KillCategory
    previous: int
    current: int
    current_ranking: int
    previous_ranking: int | None = None

    @property
    def gained(self) -> int:
        return self.current - self.previous

    def to_dict(self) -> dict[str, Any]:
        return {
            "category": self.category.value,
            "previous": self.previous,
            "current": self.current,
            "gained": self.gained,
            "current_ranking": self.current_ranking,
            "previous_ranking": self.previous_ranking,
        }


@dataclass
class PlayerKillChange:
    """All category gains of one player, enriched with roster data when known."""

    player_id: int
    gains: dict[KillCategory, CategoryGain] = field(default_factory=dict)
    player_name: str | None = None
    points: int | None = None
    tribe_tag: str | None = None
    tribe_name: str | None = None

    @property
    def total_gained(self) -> int:
        """The "all" gain when present, otherwise the sum of the others."""
        if KillCategory.ALL in self.gains:
            return self.gains[KillCategory.ALL].gained
        return sum(g.gained for g in self.gains.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            "player_id": self.player_id,
            "player_name": self.player_name,
            "points": self.points,
            "tribe_tag": self.tribe_tag,
            "tribe_name": self.tribe_name,
            "total_gained": self.total_gained,
            "gains": {c.value: g.to_dict() for c, g in self.gains.items()},
        }


@dataclass
class KillChanges:
    """Per-player gains between two snapshots."""

    taken_at: float
    previous_taken_at: float
    players: dict[int, PlayerKillChange] = field(default_factory=dict)

    @property
    def elapsed_seconds(self) -> float:
        return max(0.0, self.taken_at - self.previous_taken_at)


@dataclass
class KillSummary:
    """Totals and top gainers of a KillChanges."""

    has_changes: bool
    total_players: int
    totals: dict[KillCategory, int]
    top_gainers: list[PlayerKillChange]
    elapsed_seconds: float = 0.0

    def to_dict(self) -> dict[str, Any]:
        return {
            "has_changes": self.has_changes,
            "total_players": self.total_players,
            "totals": {c.value: n for c, n in self.totals.items()},
            "top_gainers": [p.to_dict() for p in self.top_gainers],
            "elapsed_seconds": self.elapsed_seconds,
        }
