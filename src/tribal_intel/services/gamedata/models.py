"""
World roster records.

One dataclass per public map feed, each with a from_line constructor for
its fixed comma-separated column layout.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

from .decoding import decode_game_text


@dataclass(frozen=True)
class Player:
    """Row of map/player.txt: id,name,tribe_id,villages,points,rank."""

    id: int
    name: str
    tribe_id: int | None
    villages: int
    points: int
    rank: int

    @classmethod
    def from_line(cls, line: str) -> Player:
        parts = line.split(",")
        if len(parts) < 6:
            raise ValueError(f"expected 6 fields, got {len(parts)}")
        tribe_id = int(parts[2])
        return cls(
            id=int(parts[0]),
            name=decode_game_text(parts[1]),
            tribe_id=tribe_id or None,
            villages=int(parts[3]),
            points=int(parts[4]),
            rank=int(parts[5]),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Tribe:
    """Row of map/ally.txt: id,name,tag,members,villages,points,all_points,rank."""

    id: int
    name: str
    tag: str
    members: int
    villages: int
    points: int
    all_points: int
    rank: int

    @classmethod
    def from_line(cls, line: str) -> Tribe:
        parts = line.split(",")
        if len(parts) < 6:
            raise ValueError(f"expected at least 6 fields, got {len(parts)}")
        tribe_id = int(parts[0])
        name = decode_game_text(parts[1])
        if not tribe_id or not name:
            raise ValueError("tribe without id or name")
        points = int(parts[5] or 0)
        # Older worlds omit all_points and rank
        all_points = int(parts[6]) if len(parts) >= 7 else points
        rank = int(parts[7]) if len(parts) >= 8 else 0
        return cls(
            id=tribe_id,
            name=name,
            tag=decode_game_text(parts[2]),
            members=int(parts[3] or 0),
            villages=int(parts[4] or 0),
            points=points,
            all_points=all_points,
            rank=rank,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Village:
    """Row of map/village.txt: id,name,x,y,player_id,points."""

    id: int
    name: str
    x: int
    y: int
    player_id: int
    points: int

    @classmethod
    def from_line(cls, line: str) -> Village:
        parts = line.split(",")
        if len(parts) < 6:
            raise ValueError(f"expected 6 fields, got {len(parts)}")
        return cls(
            id=int(parts[0]),
            name=decode_game_text(parts[1]),
            x=int(parts[2]),
            y=int(parts[3]),
            player_id=int(parts[4]),
            points=int(parts[5]),
        )

    @property
    def coordinates(self) -> str:
        return f"{self.x}|{self.y}"

    @property
    def is_barbarian(self) -> bool:
        return self.player_id == 0

    def to_dict(self) -> dict[str, Any]:
        result = asdict(self)
        result["coordinates"] = self.coordinates
        return result
