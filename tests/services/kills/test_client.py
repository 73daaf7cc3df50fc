"""
Tests for the kill ranking client.
"""

import gzip
import os
import time

import pytest

from tests.conftest import WORLD_URL
from tribal_intel.services.gamedata import GameDataClient
from tribal_intel.services.kills import (
    KillCategory,
    KillEntry,
    KillStatsClient,
    decode_kill_feed,
    parse_kill_feed,
)

KILL_ALL = "1,1,1500\n2,2,800\n3,3,20\n"


@pytest.fixture
def cache_dir(tmp_path):
    return tmp_path / "kills"


@pytest.fixture
def kills(feed_client, cache_dir) -> KillStatsClient:
    return KillStatsClient(world_url=WORLD_URL, feed_client=feed_client, cache_dir=cache_dir)


class TestParsing:
    def test_lines(self):
        entries = parse_kill_feed("2,20,50\n1,10,90\nbad,line,x\n\n")

        assert entries == [KillEntry(1, 10, 90), KillEntry(2, 20, 50)]

    def test_without_line_breaks(self):
        entries = parse_kill_feed("1,10,90 2,20,50 3,30,7")

        assert [e.player_id for e in entries] == [10, 20, 30]
        assert entries[2].kills == 7

    def test_gzip_body(self):
        assert decode_kill_feed(gzip.compress(b"1,10,90\n")) == "1,10,90\n"

    def test_plain_body(self):
        assert decode_kill_feed(b"1,10,90\n") == "1,10,90\n"

    def test_category_parse(self):
        assert KillCategory.parse("kill_att") is KillCategory.ATTACK
        assert KillCategory.parse("Defense") is KillCategory.DEFENSE
        with pytest.raises(ValueError):
            KillCategory.parse("siege")


class TestFetch:
    @pytest.mark.asyncio
    async def test_downloads_and_caches(self, kills, feed_routes, cache_dir):
        feed_routes.add("/map/kill_all.txt.gz", gzip.compress(KILL_ALL.encode()))

        entries = await kills.get(KillCategory.ALL)

        assert [e.kills for e in entries] == [1500, 800, 20]
        assert (cache_dir / "kill_all.txt").read_text() == KILL_ALL

    @pytest.mark.asyncio
    async def test_fresh_file_skips_download(self, feed_client, feed_routes, cache_dir):
        feed_routes.add("/map/kill_all.txt.gz", gzip.compress(KILL_ALL.encode()))
        first = KillStatsClient(WORLD_URL, feed_client, cache_dir)
        await first.get(KillCategory.ALL)

        second = KillStatsClient(WORLD_URL, feed_client, cache_dir)
        entries = await second.get(KillCategory.ALL)

        assert len(entries) == 3
        assert feed_routes.count("/map/kill_all.txt.gz") == 1

    @pytest.mark.asyncio
    async def test_stale_file_served_when_download_fails(self, kills, feed_routes, cache_dir):
        cache_dir.mkdir(parents=True)
        path = cache_dir / "kill_all.txt"
        path.write_text(KILL_ALL)
        old = time.time() - 2 * 3600
        os.utime(path, (old, old))

        entries = await kills.get(KillCategory.ALL)

        assert feed_routes.count("/map/kill_all.txt.gz") == 1
        assert len(entries) == 3

    @pytest.mark.asyncio
    async def test_nothing_cached_and_download_fails(self, kills, feed_routes):
        assert await kills.get(KillCategory.SUPPORT) == []

    @pytest.mark.asyncio
    async def test_corrupt_gzip_treated_as_failure(self, kills, feed_routes):
        feed_routes.add("/map/kill_att.txt.gz", b"\x1f\x8bnot really gzip")

        assert await kills.get(KillCategory.ATTACK) == []

    @pytest.mark.asyncio
    async def test_player_kills_and_top(self, kills, feed_routes):
        feed_routes.add("/map/kill_all.txt.gz", KILL_ALL)
        feed_routes.add("/map/kill_att.txt.gz", "1,2,400\n")

        player = await kills.player_kills(2)
        top = await kills.top(KillCategory.ALL, limit=2)

        assert player[KillCategory.ALL].kills == 800
        assert player[KillCategory.ATTACK].ranking == 1
        assert player[KillCategory.DEFENSE] is None
        assert [e.player_id for e in top] == [1, 2]

    @pytest.mark.asyncio
    async def test_tribe_kills(self, kills, feed_client, world_routes, clock):
        world_routes.add("/map/kill_all.txt.gz", KILL_ALL)
        game_data = GameDataClient(world_url=WORLD_URL, feed_client=feed_client, clock=clock)

        report = await kills.tribe_kills(10, game_data)

        assert report["tribe_tag"] == "HG"
        assert [m["name"] for m in report["members"]] == ["Alice", "Bob"]
        assert report["totals"]["all"] == 2300
        assert report["totals"]["support"] == 0

    @pytest.mark.asyncio
    async def test_unknown_tribe(self, kills, feed_client, world_routes, clock):
        game_data = GameDataClient(world_url=WORLD_URL, feed_client=feed_client, clock=clock)

        assert await kills.tribe_kills(999, game_data) is None
