"""
Tests for the primary (raw) and secondary (scraped) conquest sources.
"""

from __future__ import annotations

import pytest

from tests.conftest import WORLD_URL, load_fixture
from tribal_intel.core.async_client import FeedError
from tribal_intel.services.conquest import (
    PrimaryConquestSource,
    SecondaryConquestSource,
    SourceKind,
)
from tribal_intel.services.conquest.sources import (
    adapt_scraped,
    parse_conquer_feed,
    parse_ennoblements_html,
    parse_scraped_date,
    parse_scraped_row,
)
from tribal_intel.services.gamedata import GameDataClient

SCRAPED_URL = "https://stats.example.test/es95/index.php"

# 2024-03-01 12:00:00 UTC
NOON_UTC = 1_709_294_400


@pytest.fixture
def game_data(feed_client) -> GameDataClient:
    return GameDataClient(world_url=WORLD_URL, feed_client=feed_client)


@pytest.fixture
def primary(feed_client, game_data) -> PrimaryConquestSource:
    return PrimaryConquestSource(WORLD_URL, feed_client, game_data)


class TestParseConquerFeed:
    def test_skips_malformed_lines(self):
        records = parse_conquer_feed("7,1000,5,0\nbroken\n8,1001,9,5\n\n1,2,3\n")

        assert [(r.village_id, r.timestamp) for r in records] == [(7, 1000), (8, 1001)]


class TestPrimaryConquestSource:
    """Tests for the raw ownership-change feed."""

    @pytest.mark.asyncio
    async def test_resolves_owners_from_rosters(self, primary, world_routes):
        world_routes.add("/map/conquer.txt", "104,1000,1,3\n")

        events = await primary.fetch(since=0)

        assert len(events) == 1
        event = events[0]
        assert event.source is SourceKind.RAW
        assert event.village_id == 104
        assert event.village_name == "Epsilon"
        assert str(event.coordinates) == "520|520"
        assert event.new_owner.name == "Alice"
        assert event.new_owner.tribe_id == 10
        assert event.new_owner.tribe_tag == "HG"
        assert event.old_owner.name == "Carol Smith"
        assert event.old_owner.tribe_name == "Red Raiders"

    @pytest.mark.asyncio
    async def test_barbarian_and_unknown_owners(self, primary, world_routes):
        world_routes.add("/map/conquer.txt", "105,1000,777,0\n")

        event = (await primary.fetch(since=0))[0]

        assert event.old_owner.is_barbarian is True
        assert event.new_owner.name == "Player 777"
        assert event.new_owner.has_tribe is False

    @pytest.mark.asyncio
    async def test_unknown_village(self, primary, world_routes):
        world_routes.add("/map/conquer.txt", "999,1000,1,0\n")

        event = (await primary.fetch(since=0))[0]

        assert event.village_name == "Village 999"
        assert event.coordinates is None

    @pytest.mark.asyncio
    async def test_filters_by_since(self, primary, world_routes):
        world_routes.add("/map/conquer.txt", "100,1000,1,0\n101,2000,1,0\n")

        events = await primary.fetch(since=1000)

        assert [e.timestamp for e in events] == [2000]

    @pytest.mark.asyncio
    async def test_feed_error_propagates(self, primary, feed_routes):
        feed_routes.add("/map/conquer.txt", "down", status=502)

        with pytest.raises(FeedError):
            await primary.fetch(since=0)


class TestScrapedDates:
    def test_offset_applied(self):
        assert parse_scraped_date("2024-03-01 - 13:00:00", utc_offset_hours=1) == NOON_UTC

    def test_utc(self):
        assert parse_scraped_date("2024-03-01 - 12:00:00", utc_offset_hours=0) == NOON_UTC

    def test_single_digit_fields(self):
        assert parse_scraped_date("2024-3-1 - 13:00:00", utc_offset_hours=1) == NOON_UTC

    @pytest.mark.parametrize("text", ["yesterday", "2024-13-01 - 10:00:00", "13:00:00"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_scraped_date(text, utc_offset_hours=1)


class TestScrapedRows:
    def test_parse_row(self):
        record = parse_scraped_row(
            ["Alpha (500|500) K55", "9.000", "Carol Smith [RR]", "Alice [HG]", "2024-03-01 - 13:00:00"],
            utc_offset_hours=1,
        )

        assert record.village_name == "Alpha"
        assert str(record.coordinates) == "500|500"
        assert record.points == 9000
        assert record.timestamp == NOON_UTC
        assert record.kind == "scraped"

    def test_short_row(self):
        with pytest.raises(ValueError):
            parse_scraped_row(["Alpha (500|500)"], utc_offset_hours=1)

    def test_adapt_scraped(self):
        record = parse_scraped_row(
            ["Ruins (530|530)", "300", "Bárbaro", "Carol Smith [RR]", "2024-03-01 - 13:10:00"],
            utc_offset_hours=1,
        )

        event = adapt_scraped(record)

        assert event.village_id is None
        assert event.source is SourceKind.SCRAPED
        assert event.old_owner.is_barbarian is True
        assert event.new_owner.tribe_tag == "RR"
        assert event.identity == ("scraped", "Ruins@530|530", NOON_UTC + 600)


class TestParseEnnoblementsHtml:
    def test_parses_table(self, caplog):
        records = parse_ennoblements_html(load_fixture("ennoblements.html"), utc_offset_hours=1)

        assert [r.village_name for r in records] == ["Alpha", "Delta", "Ruins"]
        assert records[0].old_owner_text == "Carol Smith [RR]"
        assert records[0].new_owner_text == "Alice [HG]"
        assert records[1].points == 3250
        assert records[1].timestamp == NOON_UTC + 330
        assert "Skipping ennoblement row" in caplog.text

    def test_missing_table(self):
        with pytest.raises(FeedError):
            parse_ennoblements_html("<html><table><tr><td>x</td></tr></table></html>", 1)


class TestSecondaryConquestSource:
    @pytest.mark.asyncio
    async def test_fetch(self, feed_client, feed_routes):
        feed_routes.add("/es95/index.php", load_fixture("ennoblements.html"))
        source = SecondaryConquestSource(SCRAPED_URL, feed_client, utc_offset_hours=1)

        events = await source.fetch(since=NOON_UTC)

        assert [e.village_name for e in events] == ["Delta", "Ruins"]
        assert all(e.source is SourceKind.SCRAPED for e in events)
        assert events[0].old_owner.display == "Bob [HG]"
        assert events[0].new_owner.has_tribe is False
