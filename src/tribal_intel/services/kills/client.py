"""
Kill Stats Client.

Downloads the four gzip kill ranking feeds of a world and keeps a local
copy of each one. A copy younger than the TTL is served without a
request; an older copy is served when the download fails.
"""

from __future__ import annotations

import gzip
import re
import time
import zlib
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

from ...core.async_client import FeedClient, FeedError
from ...core.logging import get_logger
from ...core.persistence import atomic_write_text
from .models import KillCategory, KillEntry

if TYPE_CHECKING:
    from ..gamedata.client import GameDataClient

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

KILLS_CACHE_TTL_SECONDS = 3600

_GZIP_MAGIC = b"\x1f\x8b"

# Rows run together when the feed arrives without line breaks
_ROW_PATTERN = re.compile(r"(\d+),(\d+),(\d+)")


# =============================================================================
# Parsing
# =============================================================================


def decode_kill_feed(raw: bytes) -> str:
    """Decompress a kill feed body; plain bodies are passed through."""
    if raw.startswith(_GZIP_MAGIC):
        raw = gzip.decompress(raw)
    return raw.decode("utf-8", errors="replace")


def parse_kill_feed(text: str) -> list[KillEntry]:
    """
    Parse ranking,player_id,kills rows, sorted by ranking.

    When the text contains no newline at all, rows are recovered by
    scanning for the repeating digits,digits,digits pattern.
    """
    entries: list[KillEntry] = []

    if "\n" not in text.strip():
        for match in _ROW_PATTERN.finditer(text):
            ranking, player_id, kills = (int(g) for g in match.groups())
            entries.append(KillEntry(ranking=ranking, player_id=player_id, kills=kills))
    else:
        for line in text.splitlines():
            parts = [p.strip() for p in line.split(",")]
            if len(parts) != 3:
                continue
            try:
                ranking, player_id, kills = (int(p) for p in parts)
            except ValueError:
                logger.debug("Skipping kill line %r", line[:80])
                continue
            entries.append(KillEntry(ranking=ranking, player_id=player_id, kills=kills))

    entries.sort(key=lambda e: e.ranking)
    return entries


# =============================================================================
# Client
# =============================================================================


@dataclass
class KillStatsClient:
    """
    Kill rankings for a world, cached in memory and on disk.

    Never raises for feed problems: a failed refresh falls back to the
    previous file and then to an empty list.
    """

    world_url: str
    feed_client: FeedClient
    cache_dir: Path
    cache_ttl_seconds: int = KILLS_CACHE_TTL_SECONDS
    clock: Callable[[], float] = time.time
    _memory: dict[KillCategory, tuple[float, list[KillEntry]]] = field(
        default_factory=dict, repr=False
    )

    def _cache_path(self, category: KillCategory) -> Path:
        return self.cache_dir / f"{category.feed}.txt"

    def _read_cached(self, path: Path) -> list[KillEntry]:
        return parse_kill_feed(path.read_text(encoding="utf-8"))

    async def get(self, category: KillCategory) -> list[KillEntry]:
        """Rankings of one category, sorted by ranking."""
        now = self.clock()

        memory = self._memory.get(category)
        if memory and now - memory[0] < self.cache_ttl_seconds:
            return memory[1]

        path = self._cache_path(category)
        if path.exists() and now - path.stat().st_mtime < self.cache_ttl_seconds:
            entries = self._read_cached(path)
            self._memory[category] = (path.stat().st_mtime, entries)
            return entries

        url = f"{self.world_url}/map/{category.feed}.txt.gz"
        try:
            raw = await self.feed_client.get_bytes_with_retry(url)
            text = decode_kill_feed(raw)
        except (FeedError, OSError, EOFError, zlib.error) as e:
            if path.exists():
                logger.warning("Kill feed %s unavailable, serving cached file: %s", category.feed, e)
                entries = self._read_cached(path)
                self._memory[category] = (now, entries)
                return entries
            logger.warning("Kill feed %s unavailable and nothing cached: %s", category.feed, e)
            return []

        entries = parse_kill_feed(text)
        atomic_write_text(path, text)
        self._memory[category] = (now, entries)
        logger.info("Cached %d %s entries", len(entries), category.feed)
        return entries

    def clear_cache(self) -> None:
        """Drop in-memory rankings; files are refreshed by TTL."""
        self._memory.clear()

    async def snapshot(self) -> dict[KillCategory, list[KillEntry]]:
        """All four categories."""
        return {category: await self.get(category) for category in KillCategory}

    async def player_kills(self, player_id: int) -> dict[KillCategory, KillEntry | None]:
        """Entry of one player in each category, None where unranked."""
        result: dict[KillCategory, KillEntry | None] = {}
        for category in KillCategory:
            entries = await self.get(category)
            result[category] = next((e for e in entries if e.player_id == player_id), None)
        return result

    async def top(self, category: KillCategory = KillCategory.ALL, limit: int = 10) -> list[KillEntry]:
        return (await self.get(category))[:limit]

    async def tribe_kills(self, tribe_id: int, game_data: GameDataClient) -> dict[str, Any] | None:
        """
        Kill totals of a tribe and its members.

        Returns:
            Dict with tribe_name, members (sorted by total kills) and
            per-category totals, or None if the tribe does not exist
        """
        tribe = await game_data.get_tribe(tribe_id)
        if tribe is None:
            return None

        members = await game_data.tribe_members(tribe_id)
        by_category = {
            category: {e.player_id: e for e in await self.get(category)} for category in KillCategory
        }

        rows = []
        totals = {category.value: 0 for category in KillCategory}
        for member in members:
            kills: dict[str, int] = {}
            for category, index in by_category.items():
                entry = index.get(member.id)
                kills[category.value] = entry.kills if entry else 0
                totals[category.value] += kills[category.value]
            rows.append({"id": member.id, "name": member.name, "kills": kills})

        rows.sort(key=lambda r: r["kills"][KillCategory.ALL.value], reverse=True)
        return {"tribe_name": tribe.name, "tribe_tag": tribe.tag, "members": rows, "totals": totals}
