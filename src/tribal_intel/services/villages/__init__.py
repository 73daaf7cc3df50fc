"""
Village point sampling and history.
"""

from .snapshots import TrackedVillageSet, VillageSnapshot, VillageSnapshotStore
from .tracker import SamplingResult, VillagePointsTracker

__all__ = [
    "SamplingResult",
    "TrackedVillageSet",
    "VillagePointsTracker",
    "VillageSnapshot",
    "VillageSnapshotStore",
]
