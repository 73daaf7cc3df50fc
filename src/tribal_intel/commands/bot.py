"""
Bot CLI Command.

Runs every enabled background loop (conquest monitor, village sampling,
kill reports) in one foreground process.
"""

from __future__ import annotations

import argparse
from typing import TYPE_CHECKING

from ..core.logging import get_logger
from . import run_with_app, wait_for_shutdown

if TYPE_CHECKING:
    from ..app import TribalApp

logger = get_logger(__name__)


def cmd_run(args: argparse.Namespace) -> dict:
    """
    Start the bot.

    Runs as a foreground process. Use Ctrl+C to stop.
    """

    async def run(app: TribalApp) -> dict:
        await app.start()
        print("Bot running. Press Ctrl+C to stop")

        def status() -> dict:
            return {
                "conquest": app.conquest.is_running,
                "villages": app.village_tracker.get_status(),
                "kills_report": app.kills_reporter.is_running,
                "discord": app.discord.get_metrics(),
            }

        await wait_for_shutdown(status)
        await app.stop()
        print("\nBot stopped")
        return {}

    try:
        return run_with_app(run)
    except KeyboardInterrupt:
        print("\nInterrupted")
        return {}


def register_parsers(subparsers) -> None:
    """Register the bot runner parser."""

    run_parser = subparsers.add_parser(
        "run",
        help="Run all enabled background loops",
    )
    run_parser.set_defaults(func=cmd_run)
