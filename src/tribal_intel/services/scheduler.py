"""
Periodic Scheduler.

Runs an async tick on a fixed cadence in its own task. The interval is
read again before every sleep, so a mode change takes effect on the next
cycle without a restart.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from ..core.logging import bind_loop, get_logger

logger = get_logger(__name__)


class PeriodicScheduler:
    """
    Handle-based timer loop.

    stop() cancels the task, so no tick fires after it returns. A tick
    that raises is logged and the loop keeps going.
    """

    def __init__(
        self,
        name: str,
        interval_provider: Callable[[], float],
        tick: Callable[[], Awaitable[object]],
        run_immediately: bool = True,
    ) -> None:
        self.name = name
        self.interval_provider = interval_provider
        self.tick = tick
        self.run_immediately = run_immediately
        self._task: asyncio.Task | None = None
        self._ticks = 0
        self._errors = 0

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        """Start the loop; a no-op if it is already running."""
        if self.is_running:
            logger.warning("Scheduler %s already running", self.name)
            return
        self._task = asyncio.create_task(self._run(), name=f"scheduler:{self.name}")
        logger.info("Scheduler %s started", self.name)

    async def stop(self) -> None:
        """Cancel the loop and wait for it to finish."""
        task = self._task
        self._task = None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
        logger.info("Scheduler %s stopped", self.name)

    async def restart(self) -> None:
        await self.stop()
        self.start()

    async def _run_tick(self) -> None:
        try:
            await self.tick()
            self._ticks += 1
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._errors += 1
            logger.error("Scheduler %s tick failed: %s", self.name, e, exc_info=True)

    async def _run(self) -> None:
        bind_loop(self.name)
        if self.run_immediately:
            await self._run_tick()
        while True:
            interval = max(0.0, float(self.interval_provider()))
            await asyncio.sleep(interval)
            await self._run_tick()

    def get_status(self) -> dict[str, object]:
        return {
            "name": self.name,
            "running": self.is_running,
            "ticks": self._ticks,
            "errors": self._errors,
        }
