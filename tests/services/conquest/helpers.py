"""
Builders for conquest test data.
"""

from __future__ import annotations

from tribal_intel.services.conquest import (
    ConquestEvent,
    Coordinates,
    MonitorConfig,
    Owner,
    SourceKind,
)

HOME_TRIBE_ID = 10
HOME_TAG = "HG"


def home_player(name: str = "Alice", player_id: int = 5) -> Owner:
    return Owner(
        name=name,
        tribe_tag=HOME_TAG,
        tribe_id=HOME_TRIBE_ID,
        tribe_name="Home Guard",
        player_id=player_id,
    )


def enemy_player(name: str = "Eve", player_id: int = 9, tribe_id: int = 20) -> Owner:
    return Owner(
        name=name,
        tribe_tag="RR",
        tribe_id=tribe_id,
        tribe_name="Red Raiders",
        player_id=player_id,
    )


def make_event(
    village_id: int | None = 7,
    timestamp: int = 1000,
    old_owner: Owner | None = None,
    new_owner: Owner | None = None,
    source: SourceKind = SourceKind.RAW,
    village_name: str = "Alpha",
    coordinates: Coordinates | None = Coordinates(500, 500),
) -> ConquestEvent:
    return ConquestEvent(
        village_id=village_id,
        village_name=village_name,
        coordinates=coordinates,
        points=9000,
        old_owner=old_owner or Owner.barbarian(),
        new_owner=new_owner or home_player(),
        timestamp=timestamp,
        source=source,
    )


def make_config(**overrides) -> MonitorConfig:
    values = {
        "enabled": True,
        "home_tribe_id": HOME_TRIBE_ID,
        "home_tribe_tag": HOME_TAG,
        "gains_channel_id": "111",
        "losses_channel_id": "222",
    }
    values.update(overrides)
    return MonitorConfig(**values)
