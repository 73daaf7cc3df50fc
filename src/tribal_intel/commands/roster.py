"""
Roster CLI Commands.

Player and tribe lookups, world rankings and search against the world's
map feeds, plus a travel time calculator.
"""

from __future__ import annotations

import argparse
from typing import TYPE_CHECKING

from ..core import get_settings, get_utc_timestamp
from ..services.conquest import Coordinates
from ..services.gamedata import RankingKind, distance, travel_times
from . import bounded_int, not_found, run_with_app

if TYPE_CHECKING:
    from ..app import TribalApp


def cmd_player(args: argparse.Namespace) -> dict:
    async def run(app: TribalApp) -> dict:
        profile = await app.game_data.player_profile(args.name)
        if profile is None:
            return not_found(f"Player not found: {args.name}")
        profile["query_timestamp"] = get_utc_timestamp()
        return profile

    return run_with_app(run)


def cmd_tribe(args: argparse.Namespace) -> dict:
    async def run(app: TribalApp) -> dict:
        profile = await app.game_data.tribe_profile(args.search)
        if profile is None:
            return not_found(f"Tribe not found: {args.search}")
        profile["query_timestamp"] = get_utc_timestamp()
        return profile

    return run_with_app(run)


def cmd_ranking(args: argparse.Namespace) -> dict:
    """Top players or tribes of the world."""
    kind = RankingKind(args.kind)

    async def run(app: TribalApp) -> dict:
        rows = await app.game_data.rankings(kind, limit=args.limit)
        return {
            "kind": kind.value,
            "ranking": [row.to_dict() for row in rows],
            "query_timestamp": get_utc_timestamp(),
        }

    return run_with_app(run)


def cmd_world_stats(args: argparse.Namespace) -> dict:
    async def run(app: TribalApp) -> dict:
        stats = await app.game_data.world_stats()
        stats["world_url"] = app.settings.world_url
        stats["query_timestamp"] = get_utc_timestamp()
        return stats

    return run_with_app(run)


def cmd_search(args: argparse.Namespace) -> dict:
    """
    Search players, tribes or villages.

    Village results carry the owner's name; villages can be searched by
    name or around "x|y" coordinates.
    """

    async def run(app: TribalApp) -> dict:
        game_data = app.game_data
        if args.kind == "players":
            matches = await game_data.search_players(args.query)
            rows = [m.to_dict() for m in matches[: args.limit]]
        elif args.kind == "tribes":
            matches = await game_data.search_tribes(args.query)
            rows = [m.to_dict() for m in matches[: args.limit]]
        else:
            matches = await game_data.search_villages(args.query)
            rows = []
            for village in matches[: args.limit]:
                owner = await game_data.get_player(village.player_id) if village.player_id else None
                row = village.to_dict()
                row["owner_name"] = owner.name if owner else None
                rows.append(row)

        if not matches:
            return not_found(f"No {args.kind} match: {args.query}")
        return {
            "kind": args.kind,
            "query": args.query,
            "total_matches": len(matches),
            "results": rows,
            "query_timestamp": get_utc_timestamp(),
        }

    return run_with_app(run)


def cmd_tribe_list(args: argparse.Namespace) -> dict:
    async def run(app: TribalApp) -> dict:
        tribes = await app.game_data.get_tribes()
        return {
            "total_tribes": len(tribes),
            "tribes": [t.to_dict() for t in tribes[: args.limit]],
            "query_timestamp": get_utc_timestamp(),
        }

    return run_with_app(run)


def cmd_travel(args: argparse.Namespace) -> dict:
    """Distance and per-unit travel time between two "x|y" positions."""
    origin = Coordinates.parse(args.origin)
    target = Coordinates.parse(args.target)
    if origin is None or target is None:
        return {
            "error": "invalid_argument",
            "message": "Coordinates must look like 500|500",
            "query_timestamp": get_utc_timestamp(),
        }

    settings = get_settings()
    start, end = (origin.x, origin.y), (target.x, target.y)
    return {
        "origin": str(origin),
        "target": str(target),
        "distance": round(distance(start, end), 2),
        "world_speed": settings.world_speed,
        "unit_speed": settings.unit_speed,
        "times": [
            t.to_dict()
            for t in travel_times(start, end, settings.world_speed, settings.unit_speed)
        ],
        "query_timestamp": get_utc_timestamp(),
    }


def register_parsers(subparsers) -> None:
    """Register roster lookup parsers."""

    player_parser = subparsers.add_parser("player", help="Look up a player")
    player_parser.add_argument("name", help="Player name (exact or partial)")
    player_parser.set_defaults(func=cmd_player)

    tribe_parser = subparsers.add_parser("tribe", help="Look up a tribe")
    tribe_parser.add_argument("search", help="Tribe tag or name")
    tribe_parser.set_defaults(func=cmd_tribe)

    ranking_parser = subparsers.add_parser("ranking", help="Show a world ranking")
    ranking_parser.add_argument(
        "kind",
        choices=[k.value for k in RankingKind],
        help="players or tribes by rank, players by villages or by points",
    )
    ranking_parser.add_argument(
        "--limit", type=bounded_int(5, 20), default=10, help="Rows to show, 5-20 (default: 10)"
    )
    ranking_parser.set_defaults(func=cmd_ranking)

    stats_parser = subparsers.add_parser("world-stats", help="Summarize the world")
    stats_parser.set_defaults(func=cmd_world_stats)

    search_parser = subparsers.add_parser("search", help="Search players, tribes or villages")
    search_parser.add_argument("kind", choices=["players", "tribes", "villages"])
    search_parser.add_argument("query", help="Name fragment, tag, or x|y for villages")
    search_parser.add_argument(
        "--limit", type=bounded_int(1, 15), default=5, help="Results to show, 1-15 (default: 5)"
    )
    search_parser.set_defaults(func=cmd_search)

    list_parser = subparsers.add_parser("tribe-list", help="List tribes by rank")
    list_parser.add_argument(
        "--limit", type=bounded_int(1, 25), default=14, help="Tribes to show, 1-25 (default: 14)"
    )
    list_parser.set_defaults(func=cmd_tribe_list)

    travel_parser = subparsers.add_parser("travel", help="Travel times between two villages")
    travel_parser.add_argument("origin", help="Origin coordinates x|y")
    travel_parser.add_argument("target", help="Target coordinates x|y")
    travel_parser.set_defaults(func=cmd_travel)
