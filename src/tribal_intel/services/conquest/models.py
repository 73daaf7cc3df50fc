"""
Conquest Data Models.

Source records as read from each feed, the canonical ConquestEvent they
are normalized into, and the persisted monitor configuration.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Literal

# Owner names the scraped page uses for unclaimed villages
BARBARIAN_NAMES = frozenset({"bárbaro", "barbaro", "barbarian"})

_COORDS_RE = re.compile(r"(\d{1,3})\|(\d{1,3})")
_OWNER_TAG_RE = re.compile(r"^(.*?)\s*\[([^\]]+)\]\s*$")


# =============================================================================
# Shared Value Types
# =============================================================================


@dataclass(frozen=True)
class Coordinates:
    """Map position, 1-999 per axis."""

    x: int
    y: int

    def __str__(self) -> str:
        return f"{self.x}|{self.y}"

    @classmethod
    def parse(cls, text: str) -> Coordinates | None:
        """Find the first "x|y" pair in text."""
        match = _COORDS_RE.search(text)
        if not match:
            return None
        return cls(x=int(match.group(1)), y=int(match.group(2)))


@dataclass(frozen=True)
class Owner:
    """
    Village owner at one side of a conquest.

    A barbarian owner (player id 0 or the barbarian marker name) never has
    a tribe, whatever the source says.
    """

    name: str
    tribe_tag: str | None = None
    tribe_id: int | None = None
    tribe_name: str | None = None
    player_id: int | None = None

    @classmethod
    def barbarian(cls) -> Owner:
        return cls(name="Bárbaro", player_id=0)

    @classmethod
    def parse(cls, text: str) -> Owner:
        """
        Parse scraped owner text.

        "Name [TAG]" carries a tribe tag; a bare "Name" has none.
        """
        text = text.strip()
        if text.lower() in BARBARIAN_NAMES or not text:
            return cls.barbarian()
        match = _OWNER_TAG_RE.match(text)
        if match and match.group(1):
            return cls(name=match.group(1).strip(), tribe_tag=match.group(2).strip())
        return cls(name=text)

    @property
    def is_barbarian(self) -> bool:
        return self.player_id == 0 or self.name.strip().lower() in BARBARIAN_NAMES

    @property
    def has_tribe(self) -> bool:
        if self.is_barbarian:
            return False
        return bool(self.tribe_id) or bool(self.tribe_tag)

    @property
    def display(self) -> str:
        if self.has_tribe and self.tribe_tag:
            return f"{self.name} [{self.tribe_tag}]"
        return self.name

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "tribe_tag": self.tribe_tag,
            "tribe_id": self.tribe_id,
            "tribe_name": self.tribe_name,
            "player_id": self.player_id,
        }


# =============================================================================
# Source Records
# =============================================================================


class SourceKind(str, Enum):
    """Which feed produced an event; part of its identity."""

    RAW = "raw"
    SCRAPED = "scraped"


@dataclass(frozen=True)
class RawConquest:
    """Line of the raw ownership-change feed: village_id,timestamp,new_owner_id,old_owner_id."""

    village_id: int
    timestamp: int
    new_owner_id: int
    old_owner_id: int
    kind: Literal["raw"] = "raw"

    @classmethod
    def from_line(cls, line: str) -> RawConquest:
        parts = line.strip().split(",")
        if len(parts) != 4:
            raise ValueError(f"expected 4 fields, got {len(parts)}")
        return cls(
            village_id=int(parts[0]),
            timestamp=int(parts[1]),
            new_owner_id=int(parts[2] or 0),
            old_owner_id=int(parts[3] or 0),
        )


@dataclass(frozen=True)
class ScrapedConquest:
    """Row of the scraped ennoblements table."""

    village_name: str
    coordinates: Coordinates
    points: int
    old_owner_text: str
    new_owner_text: str
    timestamp: int
    kind: Literal["scraped"] = "scraped"


# =============================================================================
# Canonical Event
# =============================================================================


@dataclass(frozen=True)
class ConquestEvent:
    """A single village ownership change, whatever feed it came from."""

    village_id: int | None
    village_name: str
    coordinates: Coordinates | None
    points: int
    old_owner: Owner
    new_owner: Owner
    timestamp: int
    source: SourceKind

    @property
    def identity(self) -> tuple[str, str, int]:
        """
        Key that is stable across repeated polls of the same capture.

        Scraped rows have no village id, so name and coordinates stand in.
        """
        if self.village_id is not None:
            village_key = str(self.village_id)
        else:
            village_key = f"{self.village_name}@{self.coordinates}"
        return (self.source.value, village_key, self.timestamp)

    def to_dict(self) -> dict[str, Any]:
        return {
            "village_id": self.village_id,
            "village_name": self.village_name,
            "coordinates": str(self.coordinates) if self.coordinates else None,
            "points": self.points,
            "old_owner": self.old_owner.to_dict(),
            "new_owner": self.new_owner.to_dict(),
            "timestamp": self.timestamp,
            "source": self.source.value,
        }


class ConquestClassification(str, Enum):
    GAIN = "gain"
    LOSS = "loss"
    NEUTRAL = "neutral"


@dataclass(frozen=True)
class RelevantEvent:
    """An event selected for notification, with its classification."""

    event: ConquestEvent
    classification: ConquestClassification

    @property
    def is_loss(self) -> bool:
        return self.classification is ConquestClassification.LOSS


# =============================================================================
# Monitor Configuration
# =============================================================================


class PollMode(str, Enum):
    """Poll cadence presets."""

    FAST = "fast"
    NORMAL = "normal"
    SLOW = "slow"

    @property
    def interval_seconds(self) -> int:
        return _POLL_INTERVALS[self]

    @classmethod
    def parse(cls, value: str) -> PollMode:
        """Parse a mode name; the older intensive/economy names are accepted."""
        value = (value or "").strip().lower()
        value = _LEGACY_MODES.get(value, value)
        return cls(value)


_POLL_INTERVALS = {PollMode.FAST: 15, PollMode.NORMAL: 60, PollMode.SLOW: 300}
_LEGACY_MODES = {"intensive": "fast", "economy": "slow"}


class FilterMode(str, Enum):
    ALL = "all"
    SPECIFIC = "specific"


@dataclass(frozen=True)
class TribeFilter:
    """Gain-side display filter."""

    mode: FilterMode = FilterMode.ALL
    specific_tribe_name: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"mode": self.mode.value, "specificTribeName": self.specific_tribe_name}

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> TribeFilter:
        if not data:
            return cls()
        mode = data.get("mode") or data.get("type") or FilterMode.ALL.value
        name = data.get("specificTribeName") or data.get("specificTribe")
        return cls(mode=FilterMode(mode), specific_tribe_name=name)


@dataclass
class MonitorConfig:
    """
    Persisted conquest monitor configuration.

    Stored as camelCase JSON. watermark is Unix seconds; a document that
    only has the older millisecond lastCheck field is converted on load.
    """

    enabled: bool = False
    home_tribe_id: int | None = None
    home_tribe_tag: str | None = None
    gains_channel_id: str | None = None
    losses_channel_id: str | None = None
    mode: PollMode = PollMode.NORMAL
    tribe_filter: TribeFilter = field(default_factory=TribeFilter)
    watermark: float = 0.0

    @property
    def poll_interval_seconds(self) -> int:
        return self.mode.interval_seconds

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "homeTribeId": self.home_tribe_id,
            "homeTribeTag": self.home_tribe_tag,
            "gainsChannelId": self.gains_channel_id,
            "lossesChannelId": self.losses_channel_id,
            "mode": self.mode.value,
            "pollIntervalMs": self.poll_interval_seconds * 1000,
            "tribeFilter": self.tribe_filter.to_dict(),
            "watermarkTimestamp": self.watermark,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> MonitorConfig:
        if "watermarkTimestamp" in data:
            watermark = float(data["watermarkTimestamp"] or 0)
        else:
            watermark = float(data.get("lastCheck") or 0) / 1000

        tribe_id = data.get("homeTribeId", data.get("tribeId"))
        channel = data.get("gainsChannelId")
        losses = data.get("lossesChannelId")

        return cls(
            enabled=bool(data.get("enabled", False)),
            home_tribe_id=int(tribe_id) if tribe_id not in (None, "") else None,
            home_tribe_tag=data.get("homeTribeTag"),
            gains_channel_id=str(channel) if channel else None,
            losses_channel_id=str(losses) if losses else None,
            mode=PollMode.parse(data.get("mode") or PollMode.NORMAL.value),
            tribe_filter=TribeFilter.from_dict(data.get("tribeFilter")),
            watermark=watermark,
        )
