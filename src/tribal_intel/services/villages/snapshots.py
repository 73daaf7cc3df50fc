"""
Village Snapshot Store.

Point history per village, one JSON file each (village_<id>.json),
kept for a rolling window and sorted by timestamp ascending. Consumed
read-only by the building upgrade engine.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from ...core.logging import get_logger
from ...core.persistence import atomic_write_json, read_json

logger = get_logger(__name__)

SNAPSHOT_RETENTION_DAYS = 30


@dataclass(frozen=True)
class VillageSnapshot:
    village_id: int
    timestamp: float
    points: int

    def to_dict(self) -> dict[str, Any]:
        return {"timestamp": self.timestamp, "points": self.points}


class VillageSnapshotStore:
    """
    File-backed point history.

    Writes replace the whole file atomically, so a reader sees either the
    previous or the new history.
    """

    def __init__(
        self,
        history_dir: Path,
        retention_days: int = SNAPSHOT_RETENTION_DAYS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.history_dir = history_dir
        self.retention_seconds = retention_days * 86400
        self.clock = clock

    def _path(self, village_id: int) -> Path:
        return self.history_dir / f"village_{village_id}.json"

    def history(self, village_id: int) -> list[VillageSnapshot]:
        """Snapshots sorted oldest first; empty if none recorded."""
        rows = read_json(self._path(village_id), default=[])
        snapshots = []
        for row in rows if isinstance(rows, list) else []:
            try:
                snapshots.append(
                    VillageSnapshot(
                        village_id=village_id,
                        timestamp=float(row["timestamp"]),
                        points=int(row["points"]),
                    )
                )
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping bad snapshot row for village %d: %r", village_id, row)
        snapshots.sort(key=lambda s: s.timestamp)
        return snapshots

    def record_snapshot(self, village_id: int, points: int, timestamp: float | None = None) -> bool:
        """
        Append a sample, prune the window and re-sort.

        Recording the same (timestamp, points) twice has no further effect.

        Returns:
            True if the sample was added. False for a duplicate or for a
            sample older than the retention window.
        """
        if timestamp is None:
            timestamp = self.clock()

        history = self.history(village_id)
        if any(s.timestamp == timestamp and s.points == points for s in history):
            return False

        cutoff = self.clock() - self.retention_seconds
        if timestamp <= cutoff:
            logger.debug("Snapshot for village %d is outside the retention window", village_id)
            return False

        history.append(VillageSnapshot(village_id=village_id, timestamp=timestamp, points=points))
        history = sorted((s for s in history if s.timestamp > cutoff), key=lambda s: s.timestamp)

        atomic_write_json(self._path(village_id), [s.to_dict() for s in history])
        logger.debug("Snapshot for village %d: %d points", village_id, points)
        return True

    def known_villages(self) -> list[int]:
        """Ids of every village with a history file."""
        if not self.history_dir.exists():
            return []
        ids = []
        for path in self.history_dir.glob("village_*.json"):
            try:
                ids.append(int(path.stem.split("_", 1)[1]))
            except ValueError:
                continue
        return sorted(ids)


class TrackedVillageSet:
    """Explicit set of village ids to sample, persisted as a JSON list."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def ids(self) -> list[int]:
        data = read_json(self.path, default=[])
        return sorted({int(v) for v in data}) if isinstance(data, list) else []

    def add(self, village_id: int) -> bool:
        """Returns False if the village was already tracked."""
        current = set(self.ids())
        if village_id in current:
            return False
        current.add(village_id)
        atomic_write_json(self.path, sorted(current))
        return True

    def remove(self, village_id: int) -> bool:
        """Returns False if the village was not tracked."""
        current = set(self.ids())
        if village_id not in current:
            return False
        current.discard(village_id)
        atomic_write_json(self.path, sorted(current))
        return True
