"""
Village Tracking CLI Commands.

Manage the set of villages whose points are sampled, and run a sampling
pass on demand.
"""

from __future__ import annotations

import argparse
from typing import TYPE_CHECKING

from ..core import get_utc_timestamp
from ..services.conquest import Coordinates
from . import not_found, run_with_app

if TYPE_CHECKING:
    from ..app import TribalApp
    from ..services.gamedata import Village


async def resolve_village(app: TribalApp, reference: str) -> Village | None:
    """Look up a village by "x|y" coordinates or by numeric id."""
    reference = reference.strip()
    if reference.isdigit():
        return await app.game_data.get_village(int(reference))
    coordinates = Coordinates.parse(reference)
    if coordinates is None:
        return None
    return await app.game_data.village_by_coordinates(coordinates.x, coordinates.y)


def cmd_villages_track(args: argparse.Namespace) -> dict:
    """Add a village to the sampled set and record its current points."""

    async def run(app: TribalApp) -> dict:
        village = await resolve_village(app, args.village)
        if village is None:
            return not_found(f"Village not found: {args.village}")
        added = app.tracked.add(village.id)
        recorded = app.snapshots.record_snapshot(village.id, village.points)
        return {
            "status": "tracked" if added else "already_tracked",
            "village": village.to_dict(),
            "snapshot_recorded": recorded,
            "tracked_count": len(app.tracked.ids()),
            "query_timestamp": get_utc_timestamp(),
        }

    return run_with_app(run)


def cmd_villages_untrack(args: argparse.Namespace) -> dict:
    async def run(app: TribalApp) -> dict:
        village = await resolve_village(app, args.village)
        if village is not None:
            village_id = village.id
        else:
            village_id = int(args.village) if args.village.isdigit() else None
        if village_id is None:
            return not_found(f"Village not found: {args.village}")
        removed = app.tracked.remove(village_id)
        return {
            "status": "untracked" if removed else "not_tracked",
            "village_id": village_id,
            "tracked_count": len(app.tracked.ids()),
            "query_timestamp": get_utc_timestamp(),
        }

    return run_with_app(run)


def cmd_villages_list(args: argparse.Namespace) -> dict:
    async def run(app: TribalApp) -> dict:
        villages = []
        for village_id in app.tracked.ids():
            history = app.snapshots.history(village_id)
            villages.append(
                {
                    "village_id": village_id,
                    "snapshots": len(history),
                    "latest_points": history[-1].points if history else None,
                }
            )
        return {
            "tracked": villages,
            "history_files": len(app.snapshots.known_villages()),
            "query_timestamp": get_utc_timestamp(),
        }

    return run_with_app(run)


def cmd_villages_sample(args: argparse.Namespace) -> dict:
    """Run one sampling pass over tracked (or fallback) villages."""

    async def run(app: TribalApp) -> dict:
        result = await app.village_tracker.sample_once()
        output = result.to_dict()
        output["query_timestamp"] = get_utc_timestamp()
        return output

    return run_with_app(run)


def register_parsers(subparsers) -> None:
    """Register village tracking command parsers."""

    track_parser = subparsers.add_parser(
        "villages-track",
        help="Track a village's points",
    )
    track_parser.add_argument("village", help="Coordinates (x|y) or village ID")
    track_parser.set_defaults(func=cmd_villages_track)

    untrack_parser = subparsers.add_parser(
        "villages-untrack",
        help="Stop tracking a village",
    )
    untrack_parser.add_argument("village", help="Coordinates (x|y) or village ID")
    untrack_parser.set_defaults(func=cmd_villages_untrack)

    list_parser = subparsers.add_parser(
        "villages-list",
        help="List tracked villages",
    )
    list_parser.set_defaults(func=cmd_villages_list)

    sample_parser = subparsers.add_parser(
        "villages-sample",
        help="Record current points of tracked villages",
    )
    sample_parser.set_defaults(func=cmd_villages_sample)
