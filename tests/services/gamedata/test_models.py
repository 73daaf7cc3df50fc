"""
Tests for roster records.
"""

from __future__ import annotations

import pytest

from tribal_intel.services.gamedata import Player, Tribe, Village


class TestPlayer:
    def test_from_line(self):
        player = Player.from_line("7,Jos%C3%A9+Luis,12,4,20500,9")

        assert player.id == 7
        assert player.name == "José Luis"
        assert player.tribe_id == 12
        assert player.villages == 4
        assert player.points == 20500
        assert player.rank == 9

    def test_tribeless_player(self):
        assert Player.from_line("7,Solo,0,1,100,50").tribe_id is None

    def test_short_line_rejected(self):
        with pytest.raises(ValueError):
            Player.from_line("7,Solo,0")

    def test_non_numeric_rejected(self):
        with pytest.raises(ValueError):
            Player.from_line("x,Solo,0,1,100,50")


class TestTribe:
    def test_from_line(self):
        tribe = Tribe.from_line("10,Home+Guard,HG,2,5,24000,25000,1")

        assert tribe.name == "Home Guard"
        assert tribe.tag == "HG"
        assert tribe.all_points == 25000
        assert tribe.rank == 1

    def test_older_layout_defaults(self):
        tribe = Tribe.from_line("10,Home+Guard,HG,2,5,24000")

        assert tribe.all_points == 24000
        assert tribe.rank == 0

    def test_missing_name_rejected(self):
        with pytest.raises(ValueError):
            Tribe.from_line("10,,HG,2,5,24000,24000,1")


class TestVillage:
    def test_from_line(self):
        village = Village.from_line("100,Alpha+Base,500,501,1,9000")

        assert village.name == "Alpha Base"
        assert village.coordinates == "500|501"
        assert village.is_barbarian is False
        assert village.to_dict()["coordinates"] == "500|501"

    def test_barbarian(self):
        assert Village.from_line("105,Barb,530,530,0,300").is_barbarian is True
