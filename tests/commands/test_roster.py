"""
Tests for world ranking, search and travel commands.
"""

import argparse

from tribal_intel.commands.roster import (
    cmd_ranking,
    cmd_search,
    cmd_travel,
    cmd_tribe_list,
    cmd_world_stats,
)
from tribal_intel.core.config import reset_settings


class TestWorldCommands:
    def test_ranking(self, offline_world):
        result = cmd_ranking(argparse.Namespace(kind="points", limit=2))

        assert result["kind"] == "points"
        assert [row["name"] for row in result["ranking"]] == ["Alice", "Bob"]

    def test_world_stats(self, offline_world):
        result = cmd_world_stats(argparse.Namespace())

        assert result["players"]["total"] == 4
        assert result["tribes"]["top"]["tag"] == "HG"
        assert "query_timestamp" in result

    def test_tribe_list(self, offline_world):
        result = cmd_tribe_list(argparse.Namespace(limit=1))

        assert result["total_tribes"] == 2
        assert [t["tag"] for t in result["tribes"]] == ["HG"]


class TestSearchCommand:
    def test_players(self, offline_world):
        result = cmd_search(argparse.Namespace(kind="players", query="a", limit=2))

        assert result["total_matches"] == 3
        assert [row["name"] for row in result["results"]] == ["Alice", "Carol Smith"]

    def test_villages_carry_owner(self, offline_world):
        result = cmd_search(argparse.Namespace(kind="villages", query="530|530", limit=5))

        rows = {row["id"]: row["owner_name"] for row in result["results"]}
        assert rows == {105: None}

        result = cmd_search(argparse.Namespace(kind="villages", query="delta", limit=5))
        assert result["results"][0]["owner_name"] == "Bob"

    def test_no_match(self, offline_world):
        result = cmd_search(argparse.Namespace(kind="tribes", query="zzz", limit=5))

        assert result["error"] == "not_found"


class TestTravelCommand:
    def test_times(self, monkeypatch):
        monkeypatch.setenv("TRIBAL_WORLD_SPEED", "2")
        reset_settings()

        result = cmd_travel(argparse.Namespace(origin="500|500", target="503|504"))

        assert result["distance"] == 5.0
        assert result["world_speed"] == 2.0
        spear = next(t for t in result["times"] if t["unit"] == "spear")
        assert spear["seconds"] == 2700
        assert spear["duration"] == "45m"

    def test_bad_coordinates(self):
        result = cmd_travel(argparse.Namespace(origin="500-500", target="503|504"))

        assert result["error"] == "invalid_argument"
