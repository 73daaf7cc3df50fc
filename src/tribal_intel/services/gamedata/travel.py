"""
Travel times between two map positions.

Units march a fixed number of minutes per field. World and unit speed
settings divide that base time.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

# Minutes per field at world speed 1 and unit speed 1
UNIT_MINUTES_PER_FIELD: dict[str, float] = {
    "spear": 18,
    "sword": 22,
    "axe": 18,
    "archer": 18,
    "spy": 9,
    "light": 10,
    "marcher": 10,
    "heavy": 11,
    "ram": 30,
    "catapult": 30,
    "snob": 35,
}


@dataclass(frozen=True)
class TravelTime:
    unit: str
    seconds: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "unit": self.unit,
            "seconds": self.seconds,
            "duration": format_duration(self.seconds),
        }


def distance(origin: tuple[int, int], target: tuple[int, int]) -> float:
    """Euclidean distance in fields."""
    return math.hypot(target[0] - origin[0], target[1] - origin[1])


def travel_times(
    origin: tuple[int, int],
    target: tuple[int, int],
    world_speed: float = 1.0,
    unit_speed: float = 1.0,
) -> list[TravelTime]:
    """Time for every unit to cover the distance, in UNIT_MINUTES_PER_FIELD order."""
    if world_speed <= 0 or unit_speed <= 0:
        raise ValueError("world and unit speed must be positive")
    fields = distance(origin, target)
    return [
        TravelTime(unit=unit, seconds=round(minutes * fields * 60 / (world_speed * unit_speed)))
        for unit, minutes in UNIT_MINUTES_PER_FIELD.items()
    ]


def format_duration(seconds: int) -> str:
    """
    Examples:
        >>> format_duration(90061)
        '1d 1h 1m 1s'
        >>> format_duration(1080)
        '18m'
        >>> format_duration(0)
        '0s'
    """
    days, rest = divmod(max(0, seconds), 86400)
    hours, rest = divmod(rest, 3600)
    minutes, secs = divmod(rest, 60)
    parts = [
        f"{value}{suffix}"
        for value, suffix in ((days, "d"), (hours, "h"), (minutes, "m"))
        if value
    ]
    if secs or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)
