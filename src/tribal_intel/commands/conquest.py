"""
Conquest Monitor CLI Commands.

Configure the conquest monitor and run it in the foreground.
"""

from __future__ import annotations

import argparse
from typing import TYPE_CHECKING

from ..core import get_utc_timestamp
from ..core.logging import get_logger
from ..services.conquest import FilterMode, PollMode, TribeFilter
from . import run_with_app, wait_for_shutdown

if TYPE_CHECKING:
    from ..app import TribalApp

logger = get_logger(__name__)


def cmd_conquest_start(args: argparse.Namespace) -> dict:
    """
    Run the conquest monitor in the foreground.

    Use Ctrl+C to stop.
    """

    async def run(app: TribalApp) -> dict:
        app.require_token()
        if not app.conquest.start():
            return {
                "error": "not_enabled",
                "message": "Conquest monitor is not enabled",
                "hint": "Run 'tribal-intel conquest-enable' first",
                "query_timestamp": get_utc_timestamp(),
            }
        print("Conquest monitor running. Press Ctrl+C to stop")
        await wait_for_shutdown(app.conquest.status)
        await app.conquest.stop()
        return {}

    try:
        return run_with_app(run)
    except KeyboardInterrupt:
        print("\nInterrupted")
        return {}


def cmd_conquest_enable(args: argparse.Namespace) -> dict:
    """Enable notifications for a home tribe."""

    async def run(app: TribalApp) -> dict:
        config = await app.conquest.activate(
            gains_channel_id=args.gains_channel,
            losses_channel_id=args.losses_channel,
            home_tribe_id=args.tribe_id,
            home_tribe_tag=args.tribe_tag,
        )
        result = {
            "status": "enabled",
            "config": config.to_dict(),
            "query_timestamp": get_utc_timestamp(),
        }
        if not config.home_tribe_tag:
            result["warning"] = (
                "Home tribe tag unknown: conquests from the fallback source "
                "will not be classified as gains or losses"
            )
            result["hint"] = "Run conquest-enable again with --tribe-tag"
        return result

    return run_with_app(run)


def cmd_conquest_disable(args: argparse.Namespace) -> dict:
    async def run(app: TribalApp) -> dict:
        config = await app.conquest.deactivate()
        return {
            "status": "disabled",
            "configured": config is not None,
            "query_timestamp": get_utc_timestamp(),
        }

    return run_with_app(run)


def cmd_conquest_mode(args: argparse.Namespace) -> dict:
    async def run(app: TribalApp) -> dict:
        config = app.conquest.set_mode(PollMode.parse(args.mode))
        return {
            "status": "ok",
            "mode": config.mode.value,
            "interval_seconds": config.poll_interval_seconds,
            "query_timestamp": get_utc_timestamp(),
        }

    return run_with_app(run)


def cmd_conquest_filter(args: argparse.Namespace) -> dict:
    mode = FilterMode(args.mode)
    if mode is FilterMode.SPECIFIC and not args.tribe:
        return {
            "error": "invalid_argument",
            "message": "--tribe is required with the specific filter",
            "query_timestamp": get_utc_timestamp(),
        }

    async def run(app: TribalApp) -> dict:
        tribe_filter = TribeFilter(
            mode=mode, specific_tribe_name=args.tribe if mode is FilterMode.SPECIFIC else None
        )
        config = app.conquest.set_tribe_filter(tribe_filter)
        return {
            "status": "ok",
            "tribe_filter": config.tribe_filter.to_dict(),
            "query_timestamp": get_utc_timestamp(),
        }

    return run_with_app(run)


def cmd_conquest_status(args: argparse.Namespace) -> dict:
    async def run(app: TribalApp) -> dict:
        status = app.conquest.status()
        status["query_timestamp"] = get_utc_timestamp()
        return status

    return run_with_app(run)


def cmd_conquest_check(args: argparse.Namespace) -> dict:
    """Run a single poll cycle and report what it did."""

    async def run(app: TribalApp) -> dict:
        app.require_token()
        result = await app.conquest.run_cycle()
        return {"cycle": result.to_dict(), "query_timestamp": get_utc_timestamp()}

    return run_with_app(run)


def register_parsers(subparsers) -> None:
    """Register conquest command parsers."""

    # conquest-start
    start_parser = subparsers.add_parser(
        "conquest-start",
        help="Run the conquest monitor in the foreground",
    )
    start_parser.set_defaults(func=cmd_conquest_start)

    # conquest-enable
    enable_parser = subparsers.add_parser(
        "conquest-enable",
        help="Enable conquest notifications for a home tribe",
    )
    enable_parser.add_argument("--gains-channel", required=True, help="Channel for gains")
    enable_parser.add_argument("--losses-channel", required=True, help="Channel for losses")
    enable_parser.add_argument("--tribe-id", type=int, required=True, help="Home tribe ID")
    enable_parser.add_argument(
        "--tribe-tag",
        help="Home tribe tag (looked up from the tribe roster if omitted)",
    )
    enable_parser.set_defaults(func=cmd_conquest_enable)

    # conquest-disable
    disable_parser = subparsers.add_parser(
        "conquest-disable",
        help="Disable conquest notifications",
    )
    disable_parser.set_defaults(func=cmd_conquest_disable)

    # conquest-mode
    mode_parser = subparsers.add_parser(
        "conquest-mode",
        help="Set the poll cadence",
    )
    mode_parser.add_argument(
        "mode",
        choices=[m.value for m in PollMode],
        help="fast (15s), normal (60s) or slow (5m)",
    )
    mode_parser.set_defaults(func=cmd_conquest_mode)

    # conquest-filter
    filter_parser = subparsers.add_parser(
        "conquest-filter",
        help="Filter which gains are shown",
    )
    filter_parser.add_argument("mode", choices=[m.value for m in FilterMode])
    filter_parser.add_argument("--tribe", help="Tribe name or tag (specific mode)")
    filter_parser.set_defaults(func=cmd_conquest_filter)

    # conquest-status
    status_parser = subparsers.add_parser(
        "conquest-status",
        help="Show conquest monitor configuration and state",
    )
    status_parser.set_defaults(func=cmd_conquest_status)

    # conquest-check
    check_parser = subparsers.add_parser(
        "conquest-check",
        help="Run one poll cycle now",
    )
    check_parser.set_defaults(func=cmd_conquest_check)
