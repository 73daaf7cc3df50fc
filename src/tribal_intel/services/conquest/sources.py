"""
Conquest Feed Sources.

Two independently formatted feeds of village captures:

- Primary: the world's raw conquer.txt, one
  village_id,timestamp,new_owner_id,old_owner_id line per capture.
  Ids are resolved to names and tribes through the roster feeds.
- Secondary: the live ennoblements table of a stats site, scraped with
  BeautifulSoup. Owners come as "Name [TAG]" text.

Each source reads its own record type and normalizes it into the
canonical ConquestEvent through an explicit adapter.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Protocol

from bs4 import BeautifulSoup

from ...core.async_client import FeedClient, FeedError
from ...core.logging import get_logger
from .models import (
    ConquestEvent,
    Coordinates,
    Owner,
    RawConquest,
    ScrapedConquest,
    SourceKind,
)

if TYPE_CHECKING:
    from ..gamedata.client import GameDataClient

logger = get_logger(__name__)

CONQUER_FEED = "/map/conquer.txt"

# Header labels of the ennoblements table (first and fifth column)
VILLAGE_HEADERS = frozenset({"pueblos", "village", "villages"})
DATE_HEADERS = frozenset({"fecha/tiempo", "date/time"})

_VILLAGE_CELL_RE = re.compile(r"^(.+?)\s*\((\d+)\|(\d+)\)")
_DATE_RE = re.compile(r"(\d{4})-(\d{1,2})-(\d{1,2})\s*-\s*(\d{1,2}):(\d{2}):(\d{2})")


class ConquestSource(Protocol):
    """A feed of canonical conquest events."""

    name: str

    async def fetch(self, since: float) -> list[ConquestEvent]: ...


# =============================================================================
# Primary: raw ownership-change feed
# =============================================================================


def parse_conquer_feed(text: str) -> list[RawConquest]:
    """Parse conquer.txt, skipping lines without exactly four integer fields."""
    records: list[RawConquest] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        try:
            records.append(RawConquest.from_line(line))
        except ValueError as e:
            logger.debug("Skipping conquer line %r: %s", line[:80], e)
    return records


class PrimaryConquestSource:
    """Raw conquer.txt feed, enriched from the world rosters."""

    name = "primary"

    def __init__(self, world_url: str, feed_client: FeedClient, game_data: GameDataClient) -> None:
        self.url = f"{world_url.rstrip('/')}{CONQUER_FEED}"
        self.feed_client = feed_client
        self.game_data = game_data

    async def fetch_raw(self) -> list[RawConquest]:
        text = await self.feed_client.get_text(self.url)
        return parse_conquer_feed(text)

    async def _resolve_owner(self, player_id: int) -> Owner:
        if player_id == 0:
            return Owner.barbarian()
        player = await self.game_data.get_player(player_id)
        if player is None:
            return Owner(name=f"Player {player_id}", player_id=player_id)
        tribe = await self.game_data.get_tribe(player.tribe_id) if player.tribe_id else None
        return Owner(
            name=player.name,
            tribe_tag=tribe.tag if tribe else None,
            tribe_id=player.tribe_id,
            tribe_name=tribe.name if tribe else None,
            player_id=player_id,
        )

    async def adapt(self, record: RawConquest) -> ConquestEvent:
        """Normalize a raw record, looking up village and owners by id."""
        village = await self.game_data.get_village(record.village_id)
        return ConquestEvent(
            village_id=record.village_id,
            village_name=village.name if village else f"Village {record.village_id}",
            coordinates=Coordinates(village.x, village.y) if village else None,
            points=village.points if village else 0,
            old_owner=await self._resolve_owner(record.old_owner_id),
            new_owner=await self._resolve_owner(record.new_owner_id),
            timestamp=record.timestamp,
            source=SourceKind.RAW,
        )

    async def fetch(self, since: float) -> list[ConquestEvent]:
        """
        Captures newer than since.

        Roster failures propagate as FeedError so the caller falls back
        to the other source.
        """
        records = [r for r in await self.fetch_raw() if r.timestamp > since]
        return [await self.adapt(r) for r in records]


# =============================================================================
# Secondary: scraped ennoblements table
# =============================================================================


def parse_scraped_date(text: str, utc_offset_hours: float) -> int:
    """
    Convert "YYYY-MM-DD - HH:MM:SS" at a fixed UTC offset to Unix seconds.

    Raises:
        ValueError: text does not hold a valid date
    """
    match = _DATE_RE.search(text)
    if not match:
        raise ValueError(f"unrecognized date: {text!r}")
    year, month, day, hour, minute, second = (int(g) for g in match.groups())
    tz = timezone(timedelta(hours=utc_offset_hours))
    return int(datetime(year, month, day, hour, minute, second, tzinfo=tz).timestamp())


def _parse_int(text: str) -> int:
    digits = re.sub(r"[^\d]", "", text)
    return int(digits) if digits else 0


def _is_header(cells: list[str]) -> bool:
    return (
        len(cells) >= 5
        and cells[0].strip().lower() in VILLAGE_HEADERS
        and cells[4].strip().lower() in DATE_HEADERS
    )


def parse_scraped_row(cells: list[str], utc_offset_hours: float) -> ScrapedConquest:
    """
    Parse the five text cells of a data row.

    Raises:
        ValueError: the row is malformed
    """
    if len(cells) < 5:
        raise ValueError(f"expected 5 cells, got {len(cells)}")
    village_match = _VILLAGE_CELL_RE.match(cells[0].strip())
    if not village_match:
        raise ValueError(f"no coordinates in {cells[0]!r}")
    return ScrapedConquest(
        village_name=village_match.group(1).strip(),
        coordinates=Coordinates(int(village_match.group(2)), int(village_match.group(3))),
        points=_parse_int(cells[1]),
        old_owner_text=cells[2].strip(),
        new_owner_text=cells[3].strip(),
        timestamp=parse_scraped_date(cells[4], utc_offset_hours),
    )


def parse_ennoblements_html(html: str, utc_offset_hours: float) -> list[ScrapedConquest]:
    """
    Find the ennoblements table and parse its data rows.

    Raises:
        FeedError: no table with the expected header exists
    """
    soup = BeautifulSoup(html, "html.parser")

    for table in soup.find_all("table"):
        rows = table.find_all("tr")
        if not rows:
            continue
        header = [c.get_text(" ", strip=True) for c in rows[0].find_all(["th", "td"])]
        if not _is_header(header):
            continue

        records: list[ScrapedConquest] = []
        for tr in rows[1:]:
            cells = [td.get_text(" ", strip=True) for td in tr.find_all("td")]
            try:
                records.append(parse_scraped_row(cells, utc_offset_hours))
            except ValueError as e:
                logger.warning("Skipping ennoblement row: %s", e)
        return records

    raise FeedError("Ennoblements table not found", source="scraped")


def adapt_scraped(record: ScrapedConquest) -> ConquestEvent:
    """Normalize a scraped row; the village id is unknown."""
    return ConquestEvent(
        village_id=None,
        village_name=record.village_name,
        coordinates=record.coordinates,
        points=record.points,
        old_owner=Owner.parse(record.old_owner_text),
        new_owner=Owner.parse(record.new_owner_text),
        timestamp=record.timestamp,
        source=SourceKind.SCRAPED,
    )


class SecondaryConquestSource:
    """Scraped ennoblements page."""

    name = "secondary"

    def __init__(self, url: str, feed_client: FeedClient, utc_offset_hours: float = 1.0) -> None:
        self.url = url
        self.feed_client = feed_client
        self.utc_offset_hours = utc_offset_hours

    async def fetch(self, since: float) -> list[ConquestEvent]:
        html = await self.feed_client.get_text(self.url)
        records = parse_ennoblements_html(html, self.utc_offset_hours)
        return [adapt_scraped(r) for r in records if r.timestamp > since]
