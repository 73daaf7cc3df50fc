"""
Kill Statistics CLI Commands.

Player kill lookups, rankings, delta tracking and scheduled reports.
"""

from __future__ import annotations

import argparse
from typing import TYPE_CHECKING

from ..core import get_utc_timestamp
from ..services.kills import KillCategory
from . import not_found, run_with_app

if TYPE_CHECKING:
    from ..app import TribalApp


def cmd_kills(args: argparse.Namespace) -> dict:
    """Kills of one player in every category."""

    async def run(app: TribalApp) -> dict:
        player = await app.game_data.find_player(args.player)
        if player is None:
            return not_found(f"Player not found: {args.player}")

        kills = await app.kills.player_kills(player.id)
        return {
            "player": player.to_dict(),
            "kills": {
                category.value: entry.to_dict() if entry else None
                for category, entry in kills.items()
            },
            "query_timestamp": get_utc_timestamp(),
        }

    return run_with_app(run)


def cmd_kills_top(args: argparse.Namespace) -> dict:
    """Top of a kill ranking, with player names."""
    try:
        category = KillCategory.parse(args.type)
    except ValueError as e:
        return {
            "error": "invalid_argument",
            "message": str(e),
            "query_timestamp": get_utc_timestamp(),
        }

    async def run(app: TribalApp) -> dict:
        rows = []
        for entry in await app.kills.top(category, limit=args.limit):
            player = await app.game_data.get_player(entry.player_id)
            row = entry.to_dict()
            row["player_name"] = player.name if player else None
            rows.append(row)
        return {
            "category": category.value,
            "ranking": rows,
            "query_timestamp": get_utc_timestamp(),
        }

    return run_with_app(run)


def cmd_kills_tribe(args: argparse.Namespace) -> dict:
    async def run(app: TribalApp) -> dict:
        tribe = await app.game_data.find_tribe(args.tribe)
        if tribe is None:
            return not_found(f"Tribe not found: {args.tribe}")
        result = await app.kills.tribe_kills(tribe.id, app.game_data)
        if result is None:
            return not_found(f"Tribe not found: {args.tribe}")
        result["query_timestamp"] = get_utc_timestamp()
        return result

    return run_with_app(run)


def cmd_kills_update(args: argparse.Namespace) -> dict:
    """
    Compare current kills with the last snapshot.

    --preview shows the changes without replacing the baseline.
    """

    async def run(app: TribalApp) -> dict:
        result = await app.kills_tracker.track(save=not args.preview)
        output = result.to_dict()
        output["preview"] = args.preview
        output["query_timestamp"] = get_utc_timestamp()
        return output

    return run_with_app(run)


def cmd_kills_report(args: argparse.Namespace) -> dict:
    """Enable scheduled kill reports to a channel."""

    async def run(app: TribalApp) -> dict:
        try:
            config = app.kills_reporter.configure(args.channel, args.hours)
        except ValueError as e:
            return {
                "error": "invalid_argument",
                "message": str(e),
                "query_timestamp": get_utc_timestamp(),
            }
        return {
            "status": "enabled",
            "config": config.to_dict(),
            "query_timestamp": get_utc_timestamp(),
        }

    return run_with_app(run)


def cmd_kills_report_disable(args: argparse.Namespace) -> dict:
    async def run(app: TribalApp) -> dict:
        config = await app.kills_reporter.disable()
        return {
            "status": "disabled",
            "config": config.to_dict(),
            "query_timestamp": get_utc_timestamp(),
        }

    return run_with_app(run)


def register_parsers(subparsers) -> None:
    """Register kill statistics command parsers."""

    kills_parser = subparsers.add_parser(
        "kills",
        help="Show a player's kills",
    )
    kills_parser.add_argument("player", help="Player name")
    kills_parser.set_defaults(func=cmd_kills)

    top_parser = subparsers.add_parser(
        "kills-top",
        help="Show a kill ranking",
    )
    top_parser.add_argument(
        "--type",
        default=KillCategory.ALL.value,
        help="all, attack, defense or support (default: all)",
    )
    top_parser.add_argument("--limit", type=int, default=10, help="Rows to show (default: 10)")
    top_parser.set_defaults(func=cmd_kills_top)

    tribe_parser = subparsers.add_parser(
        "kills-tribe",
        help="Show kill totals of a tribe's members",
    )
    tribe_parser.add_argument("tribe", help="Tribe tag or name")
    tribe_parser.set_defaults(func=cmd_kills_tribe)

    update_parser = subparsers.add_parser(
        "kills-update",
        help="Report kills gained since the last snapshot",
    )
    update_parser.add_argument(
        "--preview",
        action="store_true",
        help="Show changes without saving a new snapshot",
    )
    update_parser.set_defaults(func=cmd_kills_update)

    report_parser = subparsers.add_parser(
        "kills-report",
        help="Send kill reports to a channel on a schedule",
    )
    report_parser.add_argument("--channel", required=True, help="Discord channel ID")
    report_parser.add_argument("--hours", type=float, help="Report interval in hours")
    report_parser.set_defaults(func=cmd_kills_report)

    report_disable_parser = subparsers.add_parser(
        "kills-report-disable",
        help="Stop scheduled kill reports",
    )
    report_disable_parser.set_defaults(func=cmd_kills_report_disable)
