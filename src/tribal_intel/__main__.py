#!/usr/bin/env python3
"""
Tribal Intel CLI Entry Point

Provides command-line interface for the bot's services.
Run with: python -m tribal_intel <command> [args]
"""

import argparse
import json
import sys

from .core import get_utc_timestamp


def output_json(data: dict, indent: int = 2) -> None:
    """Print JSON output to stdout."""
    print(json.dumps(data, indent=indent, ensure_ascii=False))


def output_error(message: str, exit_code: int = 1, **kwargs) -> None:
    """Print error JSON and exit."""
    error_data = {
        "error": kwargs.pop("error_type", "error"),
        "message": message,
        "query_timestamp": get_utc_timestamp(),
    }
    error_data.update(kwargs)
    output_json(error_data)
    sys.exit(exit_code)


# =============================================================================
# Built-in Commands
# =============================================================================


def cmd_help(args: argparse.Namespace) -> dict:
    """Show help message."""
    help_text = """
═══════════════════════════════════════════════════════════════════
Tribal Intel - Tribal Wars world intelligence bot
───────────────────────────────────────────────────────────────────

Bot:
  run                        Run all enabled background loops

Conquest Commands:
  conquest-enable [opts]     Enable notifications for a home tribe
                             --gains-channel <id> --losses-channel <id>
                             --tribe-id <id> [--tribe-tag <tag>]
  conquest-disable           Disable notifications
  conquest-mode <mode>       Poll cadence: fast (15s), normal (60s), slow (5m)
  conquest-filter <mode>     Gain filter: all, specific --tribe <name>
  conquest-status            Show configuration and watermark
  conquest-check             Run one poll cycle now
  conquest-start             Run only the conquest monitor

Building Commands:
  buildings-analyze <v>      Infer upgrades from a village's history
                             --building <name>, --hours N
  buildings-explain <delta>  List upgrades worth exactly <delta> points

Village Commands:
  villages-track <v>         Track a village (x|y or id)
  villages-untrack <v>       Stop tracking a village
  villages-list              List tracked villages
  villages-sample            Record current points now

Kill Commands:
  kills <player>             A player's kills in every category
  kills-top [opts]           Kill ranking --type all|attack|defense|support
  kills-tribe <tribe>        Kill totals of a tribe's members
  kills-update [--preview]   Kills gained since the last snapshot
  kills-report --channel <id> [--hours N]
                             Send kill reports on a schedule
  kills-report-disable       Stop kill reports

Roster Commands:
  player <name>              Player profile with villages
  tribe <tag|name>           Tribe profile with members
  ranking <kind> [--limit N] Top players|tribes by rank, players by villages|points
  world-stats                World totals, averages and leaders
  search <kind> <query>      Find players, tribes or villages (name or x|y)
  tribe-list [--limit N]     Tribes by rank
  travel <x|y> <x|y>         Distance and travel time per unit

Examples:
  tribal-intel conquest-enable --gains-channel 111 --losses-channel 222 --tribe-id 42
  tribal-intel conquest-mode fast
  tribal-intel villages-track 500|500
  tribal-intel buildings-analyze 500|500 --building wall --hours 48
  tribal-intel kills-top --type attack

Usage:
  python3 -m tribal_intel <command> [args]

═══════════════════════════════════════════════════════════════════
"""
    print(help_text)
    return {}


# =============================================================================
# Main Entry Point
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with all subcommands."""
    parser = argparse.ArgumentParser(
        prog="tribal-intel",
        description="Tribal Intel - Tribal Wars world intelligence bot",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    help_parser = subparsers.add_parser("help", help="Show help message")
    help_parser.set_defaults(func=cmd_help)

    from .commands import bot, buildings, conquest, kills, roster, villages

    bot.register_parsers(subparsers)
    conquest.register_parsers(subparsers)
    buildings.register_parsers(subparsers)
    villages.register_parsers(subparsers)
    kills.register_parsers(subparsers)
    roster.register_parsers(subparsers)

    return parser


def main() -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args()

    # Default to help if no command
    if not args.command:
        cmd_help(args)
        return 0

    if not hasattr(args, "func"):
        output_error(
            f"Unknown command: {args.command}",
            error_type="unknown_command",
            hint="Run 'tribal-intel help' for usage",
        )

    try:
        result = args.func(args)

        if isinstance(result, dict) and result:
            output_json(result)

            if "error" in result:
                return 1

        return 0

    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 130
    except Exception as e:
        output_error(str(e), error_type="command_error", command=args.command)
        return 1


if __name__ == "__main__":
    sys.exit(main())
