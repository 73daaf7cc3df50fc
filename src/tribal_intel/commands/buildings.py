"""
Building Analysis CLI Commands.

Infer building upgrades from a village's recorded point history.
"""

from __future__ import annotations

import argparse
import time
from typing import TYPE_CHECKING

from ..core import get_utc_timestamp
from ..services.buildings import TimeWindow
from ..services.buildings.engine import ALL_BUILDINGS
from . import not_found, run_with_app
from .villages import resolve_village

if TYPE_CHECKING:
    from ..app import TribalApp


def cmd_buildings_analyze(args: argparse.Namespace) -> dict:
    """
    Explain a village's point gains as building upgrades.

    Args:
        args: Parsed arguments with village reference, optional
            --building filter and --hours window
    """

    async def run(app: TribalApp) -> dict:
        reference = args.village.strip()
        if reference.isdigit():
            village_id = int(reference)
            label = f"village {village_id}"
        else:
            village = await resolve_village(app, reference)
            if village is None:
                return not_found(f"Village not found: {reference}")
            village_id = village.id
            label = f"{village.name} ({village.x}|{village.y})"

        window = TimeWindow.last_hours(args.hours, time.time()) if args.hours else None
        result = app.engine.analyze(
            app.snapshots.history(village_id),
            building_filter=args.building,
            window=window,
        )

        output = result.to_dict()
        output["village_id"] = village_id
        output["village"] = label
        output["query_timestamp"] = get_utc_timestamp()
        return output

    return run_with_app(run)


def cmd_buildings_explain(args: argparse.Namespace) -> dict:
    """Hypotheses for a single point delta."""
    from ..services.buildings import BuildingCatalog, BuildingUpgradeEngine

    engine = BuildingUpgradeEngine(BuildingCatalog.from_yaml())
    try:
        hypotheses = engine.explain_delta(args.delta, args.building)
    except ValueError as e:
        return {
            "error": "invalid_argument",
            "message": str(e),
            "buildings": engine.catalog.buildings,
            "query_timestamp": get_utc_timestamp(),
        }
    return {
        "delta": args.delta,
        "building_filter": args.building or ALL_BUILDINGS,
        "hypotheses": [h.to_dict() for h in hypotheses],
        "query_timestamp": get_utc_timestamp(),
    }


def register_parsers(subparsers) -> None:
    """Register building analysis command parsers."""

    analyze_parser = subparsers.add_parser(
        "buildings-analyze",
        help="Infer building upgrades from recorded village points",
    )
    analyze_parser.add_argument("village", help="Coordinates (x|y) or village ID")
    analyze_parser.add_argument(
        "--building",
        help="Only consider one building (e.g. wall, main); default: all",
    )
    analyze_parser.add_argument(
        "--hours",
        type=float,
        help="Only use snapshots from the last N hours",
    )
    analyze_parser.set_defaults(func=cmd_buildings_analyze)

    explain_parser = subparsers.add_parser(
        "buildings-explain",
        help="List building upgrades worth exactly N points",
    )
    explain_parser.add_argument("delta", type=int, help="Point gain to explain")
    explain_parser.add_argument("--building", help="Only consider one building")
    explain_parser.set_defaults(func=cmd_buildings_explain)
