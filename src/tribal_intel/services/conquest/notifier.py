"""
Conquest Notifier.

Owns the conquest poll loop. Each cycle walks a fixed sequence of
states:

    IDLE -> FETCH_PRIMARY -> [FETCH_SECONDARY] -> ANALYZE -> DISPATCH
         -> ADVANCE_WATERMARK -> IDLE

and ends in SKIP_CYCLE when every source fails. A skipped cycle leaves
the persisted watermark untouched, so the next tick retries from the
same point.

Routing: GAIN and NEUTRAL go to the gains channel without a mention;
LOSS goes to the losses channel with @everyone. Sends are sequential and
a failed send never stops the rest of the batch.
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Callable

from ...core.async_client import FeedError
from ...core.formatters import format_unix
from ...core.logging import get_logger
from ..scheduler import PeriodicScheduler
from .analyzer import ConquestAnalyzer
from .config_store import MonitorConfigStore
from .models import (
    ConquestClassification,
    ConquestEvent,
    MonitorConfig,
    PollMode,
    RelevantEvent,
    TribeFilter,
)

if TYPE_CHECKING:
    from ..gamedata.client import GameDataClient
    from ..notifications.discord_client import ChannelSender
    from ..notifications.formatter import MessageFormatter
    from .sources import ConquestSource

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

FETCH_TIMEOUT_SECONDS = 15.0
STALE_WATERMARK_HOURS = 6.0
WATERMARK_GRACE_SECONDS = 300


class CycleState(str, Enum):
    IDLE = "idle"
    FETCH_PRIMARY = "fetch_primary"
    FETCH_SECONDARY = "fetch_secondary"
    ANALYZE = "analyze"
    DISPATCH = "dispatch"
    ADVANCE_WATERMARK = "advance_watermark"
    SKIP_CYCLE = "skip_cycle"


_FETCH_STATES = (CycleState.FETCH_PRIMARY, CycleState.FETCH_SECONDARY)


@dataclass
class CycleResult:
    """What one poll cycle did."""

    states: list[CycleState] = field(default_factory=lambda: [CycleState.IDLE])
    skipped: bool = False
    reason: str | None = None
    source: str | None = None
    events_found: int = 0
    relevant: int = 0
    sent: int = 0
    failed: int = 0
    watermark_before: float | None = None
    watermark_after: float | None = None

    def enter(self, state: CycleState) -> None:
        self.states.append(state)

    def skip(self, reason: str) -> CycleResult:
        self.skipped = True
        self.reason = reason
        self.enter(CycleState.SKIP_CYCLE)
        return self

    def to_dict(self) -> dict[str, Any]:
        return {
            "states": [s.value for s in self.states],
            "skipped": self.skipped,
            "reason": self.reason,
            "source": self.source,
            "events_found": self.events_found,
            "relevant": self.relevant,
            "sent": self.sent,
            "failed": self.failed,
            "watermark_before": self.watermark_before,
            "watermark_after": self.watermark_after,
        }


class ConquestNotifier:
    """
    Conquest poll loop with source fallback and two-channel routing.

    Configuration commands and the loop share one config file; every
    write is an atomic replace and the loop reloads the file before
    dispatch and again before committing the watermark.
    """

    def __init__(
        self,
        store: MonitorConfigStore,
        analyzer: ConquestAnalyzer,
        sources: Sequence[ConquestSource],
        sender: ChannelSender,
        formatter: MessageFormatter,
        game_data: GameDataClient | None = None,
        fetch_timeout: float = FETCH_TIMEOUT_SECONDS,
        stale_watermark_hours: float = STALE_WATERMARK_HOURS,
        grace_seconds: float = WATERMARK_GRACE_SECONDS,
        clock: Callable[[], float] = time.time,
    ) -> None:
        if not sources:
            raise ValueError("at least one conquest source is required")
        self.store = store
        self.analyzer = analyzer
        self.sources = list(sources)
        self.sender = sender
        self.formatter = formatter
        self.game_data = game_data
        self.fetch_timeout = fetch_timeout
        self.stale_watermark_seconds = stale_watermark_hours * 3600
        self.grace_seconds = grace_seconds
        self.clock = clock
        self._last_result: CycleResult | None = None
        self._scheduler = PeriodicScheduler(
            name="conquest-monitor",
            interval_provider=self._current_interval,
            tick=self.run_cycle,
        )

    # -------------------------------------------------------------------------
    # Loop control
    # -------------------------------------------------------------------------

    def _current_interval(self) -> float:
        config = self.store.load()
        mode = config.mode if config else PollMode.NORMAL
        return mode.interval_seconds

    @property
    def is_running(self) -> bool:
        return self._scheduler.is_running

    def reset_stale_watermark(self, config: MonitorConfig) -> bool:
        """
        Move an unset or stale watermark up to now minus the grace window.

        Skips the backlog that built up while the monitor was off. Never
        moves the watermark backwards.

        Returns:
            True if the watermark changed
        """
        now = self.clock()
        if config.watermark and now - config.watermark <= self.stale_watermark_seconds:
            return False
        new_watermark = max(config.watermark, now - self.grace_seconds)
        if new_watermark == config.watermark:
            return False
        logger.info(
            "Resetting conquest watermark from %s to %s",
            format_unix(config.watermark) or "unset",
            format_unix(new_watermark),
        )
        config.watermark = new_watermark
        return True

    def start(self) -> bool:
        """
        Start polling if the monitor is enabled.

        Returns:
            False when there is no enabled configuration
        """
        config = self.store.load()
        if config is None or not config.enabled:
            logger.info("Conquest monitor not enabled, not starting")
            return False
        if self.reset_stale_watermark(config):
            self.store.save(config)
        self._scheduler.start()
        logger.info("Conquest monitor started (%s mode)", config.mode.value)
        return True

    async def stop(self) -> None:
        await self._scheduler.stop()

    # -------------------------------------------------------------------------
    # Configuration commands
    # -------------------------------------------------------------------------

    async def activate(
        self,
        gains_channel_id: str,
        losses_channel_id: str,
        home_tribe_id: int | None,
        home_tribe_tag: str | None = None,
    ) -> MonitorConfig:
        """Enable the monitor for a home tribe and persist the configuration."""
        config = self.store.load() or MonitorConfig()
        config.enabled = True
        config.gains_channel_id = gains_channel_id
        config.losses_channel_id = losses_channel_id
        config.home_tribe_id = home_tribe_id
        config.home_tribe_tag = home_tribe_tag or await self._lookup_tribe_tag(home_tribe_id)
        self.reset_stale_watermark(config)
        self.store.save(config)
        logger.info(
            "Conquest monitor enabled for tribe %s [%s]", home_tribe_id, config.home_tribe_tag
        )
        if not config.home_tribe_tag:
            logger.warning(
                "Tag of home tribe %s is unknown; scraped conquests carry only tags "
                "and will not be classified as gains or losses",
                home_tribe_id,
            )
        return config

    async def _lookup_tribe_tag(self, tribe_id: int | None) -> str | None:
        # The scraped source only knows tags, so resolve one when possible
        if tribe_id is None or self.game_data is None:
            return None
        try:
            tribe = await self.game_data.get_tribe(tribe_id)
        except FeedError as e:
            logger.warning("Could not resolve tag of tribe %d: %s", tribe_id, e)
            return None
        return tribe.tag if tribe else None

    async def deactivate(self) -> MonitorConfig | None:
        """Disable the monitor and stop the loop."""
        config = self.store.load()
        if config is not None:
            config.enabled = False
            self.store.save(config)
        await self.stop()
        logger.info("Conquest monitor disabled")
        return config

    def set_mode(self, mode: PollMode) -> MonitorConfig:
        """Change the poll cadence; the running loop picks it up on its next sleep."""
        config = self.store.load() or MonitorConfig()
        config.mode = mode
        self.store.save(config)
        return config

    def set_tribe_filter(self, tribe_filter: TribeFilter) -> MonitorConfig:
        config = self.store.load() or MonitorConfig()
        config.tribe_filter = tribe_filter
        self.store.save(config)
        return config

    def status(self) -> dict[str, Any]:
        config = self.store.load()
        return {
            "configured": config is not None,
            "config": config.to_dict() if config else None,
            "watermark": format_unix(config.watermark) if config else None,
            "running": self.is_running,
            "processed_events": len(self.analyzer.processed),
            "last_cycle": self._last_result.to_dict() if self._last_result else None,
        }

    # -------------------------------------------------------------------------
    # Poll cycle
    # -------------------------------------------------------------------------

    async def _fetch(self, watermark: float, result: CycleResult) -> list[ConquestEvent] | None:
        """
        Try each source in order.

        An error moves on to the next source. An empty result also tries
        the next source, but counts as a valid answer if nothing better
        comes back.

        Returns:
            Events, or None when every source raised
        """
        fallback_empty: str | None = None
        for index, source in enumerate(self.sources):
            result.enter(_FETCH_STATES[min(index, len(_FETCH_STATES) - 1)])
            try:
                events = await asyncio.wait_for(source.fetch(watermark), timeout=self.fetch_timeout)
            except asyncio.TimeoutError:
                logger.warning("Conquest source %s timed out", source.name)
                continue
            except Exception as e:
                logger.warning("Conquest source %s failed: %s", source.name, e)
                continue

            if events:
                result.source = source.name
                return events
            logger.debug("Conquest source %s returned no events", source.name)
            fallback_empty = fallback_empty or source.name

        if fallback_empty is not None:
            result.source = fallback_empty
            return []
        return None

    def _route(self, relevant: RelevantEvent, config: MonitorConfig) -> str | None:
        if relevant.classification is ConquestClassification.LOSS:
            return config.losses_channel_id
        return config.gains_channel_id

    async def _dispatch(self, relevant: list[RelevantEvent], config: MonitorConfig, result: CycleResult) -> None:
        for item in relevant:
            channel_id = self._route(item, config)
            if not channel_id:
                logger.warning(
                    "No %s channel configured, dropping %s",
                    item.classification.value,
                    item.event.identity,
                )
                result.failed += 1
                continue
            try:
                send_result = await self.sender.send(
                    channel_id,
                    self.formatter.format_conquest(item),
                    mention_everyone=item.is_loss,
                )
            except Exception as e:
                logger.warning("Sending conquest %s failed: %s", item.event.identity, e)
                result.failed += 1
                continue

            if send_result.success:
                result.sent += 1
            else:
                logger.warning(
                    "Sending conquest %s failed: %s", item.event.identity, send_result.error
                )
                result.failed += 1

    async def run_cycle(self) -> CycleResult:
        """
        Run one poll cycle.

        Never raises for feed or send failures; the returned CycleResult
        records what happened.
        """
        result = CycleResult()
        self._last_result = result

        config = self.store.load()
        if config is None or not config.enabled:
            return result.skip("disabled")

        cycle_start = self.clock()
        result.watermark_before = config.watermark

        events = await self._fetch(config.watermark, result)
        if events is None:
            logger.warning("All conquest sources failed, skipping cycle")
            return result.skip("all sources failed")
        result.events_found = len(events)

        result.enter(CycleState.ANALYZE)
        relevant = self.analyzer.analyze(events, config, config.watermark)
        result.relevant = len(relevant)

        # A disable command may have landed while we were fetching
        current = self.store.load()
        if current is None or not current.enabled:
            logger.info("Conquest monitor disabled during cycle, discarding results")
            return result.skip("disabled during cycle")

        result.enter(CycleState.DISPATCH)
        await self._dispatch(relevant, current, result)

        current = self.store.load()
        if current is None or not current.enabled:
            logger.info("Conquest monitor disabled during dispatch, watermark not committed")
            return result.skip("disabled during cycle")

        result.enter(CycleState.ADVANCE_WATERMARK)
        current.watermark = max(current.watermark, cycle_start)
        self.store.save(current)
        result.watermark_after = current.watermark
        result.enter(CycleState.IDLE)

        if relevant:
            logger.info(
                "Conquest cycle via %s: %d events, %d relevant, %d sent, %d failed",
                result.source,
                result.events_found,
                result.relevant,
                result.sent,
                result.failed,
            )
        return result
