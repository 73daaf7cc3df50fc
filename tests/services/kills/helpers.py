"""
Builders for kill ranking test data.
"""

from __future__ import annotations

from unittest.mock import AsyncMock, MagicMock

from tribal_intel.services.kills import KillCategory, KillEntry


def rankings(**kills_by_category: dict[int, int]) -> dict[KillCategory, list[KillEntry]]:
    """rankings(all={1: 500, 2: 300}) -> ranked entries per category."""
    result: dict[KillCategory, list[KillEntry]] = {c: [] for c in KillCategory}
    for name, kills in kills_by_category.items():
        ordered = sorted(kills.items(), key=lambda item: item[1], reverse=True)
        result[KillCategory(name)] = [
            KillEntry(ranking=rank, player_id=pid, kills=n)
            for rank, (pid, n) in enumerate(ordered, 1)
        ]
    return result


def fake_kills_client(*snapshots: dict[KillCategory, list[KillEntry]]) -> MagicMock:
    """KillStatsClient stand-in returning each snapshot in turn."""
    client = MagicMock()
    client.snapshot = AsyncMock(side_effect=list(snapshots))
    return client
