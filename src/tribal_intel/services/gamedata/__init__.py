"""
World roster feeds (players, tribes, villages).
"""

from .client import GameDataClient, RankingKind, parse_feed
from .decoding import decode_game_text
from .models import Player, Tribe, Village
from .travel import TravelTime, distance, travel_times

__all__ = [
    "GameDataClient",
    "Player",
    "RankingKind",
    "TravelTime",
    "Tribe",
    "Village",
    "decode_game_text",
    "distance",
    "parse_feed",
    "travel_times",
]
