"""
Tribal Intel Commands

Each module registers a group of related CLI commands. Command handlers
are synchronous and return a dict that the entry point prints as JSON;
async work runs through run_with_app().
"""

from __future__ import annotations

import argparse
import asyncio
import signal
from typing import TYPE_CHECKING, Any, Awaitable, Callable, TypeVar

from ..core.logging import get_logger

if TYPE_CHECKING:
    from ..app import TribalApp

logger = get_logger(__name__)

T = TypeVar("T")


def run_with_app(func: Callable[[TribalApp], Awaitable[T]]) -> T:
    """Build the app, run one coroutine against it and close it."""
    from ..app import build_app

    async def runner() -> T:
        app = build_app()
        try:
            return await func(app)
        finally:
            await app.aclose()

    return asyncio.run(runner())


async def wait_for_shutdown(status: Callable[[], dict[str, Any]], interval: float = 300) -> None:
    """
    Block until SIGINT/SIGTERM, logging status periodically.
    """
    stop_event = asyncio.Event()

    def signal_handler() -> None:
        logger.info("Shutdown signal received")
        stop_event.set()

    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            # Windows doesn't support add_signal_handler
            pass

    while not stop_event.is_set():
        try:
            await asyncio.wait_for(stop_event.wait(), timeout=interval)
        except asyncio.TimeoutError:
            logger.info("Status: %s", status())


def not_found(message: str, **kwargs: Any) -> dict[str, Any]:
    from ..core import get_utc_timestamp

    result = {"error": "not_found", "message": message, "query_timestamp": get_utc_timestamp()}
    result.update(kwargs)
    return result


def bounded_int(low: int, high: int) -> Callable[[str], int]:
    """argparse type accepting integers in [low, high]."""

    def parse(text: str) -> int:
        try:
            value = int(text)
        except ValueError:
            raise argparse.ArgumentTypeError(f"not an integer: {text}") from None
        if not low <= value <= high:
            raise argparse.ArgumentTypeError(f"must be between {low} and {high}")
        return value

    return parse
