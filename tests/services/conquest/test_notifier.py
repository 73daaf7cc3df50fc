"""
Tests for the conquest poll cycle.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock, MagicMock

import pytest

from tribal_intel.core.async_client import FeedError
from tribal_intel.services.conquest import (
    ConquestAnalyzer,
    ConquestNotifier,
    CycleState,
    FilterMode,
    MonitorConfigStore,
    PollMode,
    TribeFilter,
)
from tribal_intel.services.notifications import MessageFormatter, SendResult

from .helpers import enemy_player, home_player, make_config, make_event

NOW = 1_700_000_000.0


class FakeSource:
    """ConquestSource returning canned events or raising."""

    def __init__(self, name: str, events=None, error: Exception | None = None, delay: float = 0):
        self.name = name
        self.events = events or []
        self.error = error
        self.delay = delay
        self.calls: list[float] = []

    async def fetch(self, since: float):
        self.calls.append(since)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise self.error
        return [e for e in self.events if e.timestamp > since]


@pytest.fixture
def store(tmp_path) -> MonitorConfigStore:
    return MonitorConfigStore(tmp_path / "conquest-config.json")


@pytest.fixture
def sender() -> MagicMock:
    sender = MagicMock()
    sender.send = AsyncMock(return_value=SendResult(success=True, status_code=200))
    return sender


def make_notifier(store, sender, sources, clock, **kwargs) -> ConquestNotifier:
    return ConquestNotifier(
        store=store,
        analyzer=ConquestAnalyzer(),
        sources=sources,
        sender=sender,
        formatter=MessageFormatter(),
        clock=clock,
        **kwargs,
    )


class TestRunCycle:
    """Tests for one poll cycle."""

    @pytest.mark.asyncio
    async def test_gain_sent_to_gains_channel(self, store, sender, clock):
        clock.now = NOW
        store.save(make_config(watermark=NOW - 60))
        event = make_event(timestamp=int(NOW - 30))
        notifier = make_notifier(store, sender, [FakeSource("primary", [event])], clock)

        result = await notifier.run_cycle()

        assert result.sent == 1
        assert result.source == "primary"
        channel, payload = sender.send.call_args.args
        assert channel == "111"
        assert sender.send.call_args.kwargs["mention_everyone"] is False
        assert payload["embeds"][0]["title"] == "Village conquered"

    @pytest.mark.asyncio
    async def test_loss_sent_to_losses_channel_with_mention(self, store, sender, clock):
        clock.now = NOW
        store.save(make_config(watermark=NOW - 60))
        event = make_event(
            timestamp=int(NOW - 30), old_owner=home_player(), new_owner=enemy_player()
        )
        notifier = make_notifier(store, sender, [FakeSource("primary", [event])], clock)

        await notifier.run_cycle()

        sender.send.assert_awaited_once()
        assert sender.send.call_args.args[0] == "222"
        assert sender.send.call_args.kwargs["mention_everyone"] is True

    @pytest.mark.asyncio
    async def test_watermark_advances_to_cycle_start(self, store, sender, clock):
        clock.now = NOW
        store.save(make_config(watermark=NOW - 60))
        notifier = make_notifier(store, sender, [FakeSource("primary", [])], clock)

        result = await notifier.run_cycle()

        assert store.load().watermark == NOW
        assert result.watermark_after == NOW
        assert result.states == [
            CycleState.IDLE,
            CycleState.FETCH_PRIMARY,
            CycleState.ANALYZE,
            CycleState.DISPATCH,
            CycleState.ADVANCE_WATERMARK,
            CycleState.IDLE,
        ]

    @pytest.mark.asyncio
    async def test_watermark_never_moves_backwards(self, store, sender, clock):
        clock.now = NOW
        store.save(make_config(watermark=NOW + 100))
        notifier = make_notifier(store, sender, [FakeSource("primary", [])], clock)

        await notifier.run_cycle()

        assert store.load().watermark == NOW + 100

    @pytest.mark.asyncio
    async def test_all_sources_fail_skips_cycle(self, store, sender, clock):
        clock.now = NOW
        store.save(make_config(watermark=NOW - 60))
        notifier = make_notifier(
            store,
            sender,
            [
                FakeSource("primary", error=FeedError("down")),
                FakeSource("secondary", error=RuntimeError("parse failure")),
            ],
            clock,
        )

        result = await notifier.run_cycle()

        assert result.skipped is True
        assert result.reason == "all sources failed"
        assert result.states[-1] is CycleState.SKIP_CYCLE
        assert store.load().watermark == NOW - 60
        sender.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_falls_back_to_secondary_on_error(self, store, sender, clock):
        clock.now = NOW
        store.save(make_config(watermark=NOW - 60))
        secondary = FakeSource("secondary", [make_event(village_id=None, timestamp=int(NOW - 10))])
        notifier = make_notifier(
            store, sender, [FakeSource("primary", error=FeedError("down")), secondary], clock
        )

        result = await notifier.run_cycle()

        assert result.source == "secondary"
        assert result.sent == 1
        assert CycleState.FETCH_SECONDARY in result.states
        assert secondary.calls == [NOW - 60]

    @pytest.mark.asyncio
    async def test_empty_primary_tries_secondary(self, store, sender, clock):
        clock.now = NOW
        store.save(make_config(watermark=NOW - 60))
        secondary = FakeSource("secondary", [make_event(timestamp=int(NOW - 10))])
        notifier = make_notifier(store, sender, [FakeSource("primary", []), secondary], clock)

        result = await notifier.run_cycle()

        assert result.source == "secondary"
        assert result.sent == 1

    @pytest.mark.asyncio
    async def test_empty_primary_and_failed_secondary_still_advances(self, store, sender, clock):
        clock.now = NOW
        store.save(make_config(watermark=NOW - 60))
        notifier = make_notifier(
            store,
            sender,
            [FakeSource("primary", []), FakeSource("secondary", error=FeedError("down"))],
            clock,
        )

        result = await notifier.run_cycle()

        assert result.skipped is False
        assert result.source == "primary"
        assert store.load().watermark == NOW

    @pytest.mark.asyncio
    async def test_source_timeout_falls_back(self, store, sender, clock):
        clock.now = NOW
        store.save(make_config(watermark=NOW - 60))
        slow = FakeSource("primary", [make_event(timestamp=int(NOW - 5))], delay=1.0)
        fallback = FakeSource("secondary", [make_event(village_id=None, timestamp=int(NOW - 5))])
        notifier = make_notifier(store, sender, [slow, fallback], clock, fetch_timeout=0.01)

        result = await notifier.run_cycle()

        assert result.source == "secondary"

    @pytest.mark.asyncio
    async def test_send_failure_does_not_stop_batch(self, store, sender, clock):
        clock.now = NOW
        store.save(make_config(watermark=NOW - 60))
        events = [make_event(village_id=v, timestamp=int(NOW - 50 + v)) for v in range(1, 4)]
        sender.send.side_effect = [
            SendResult(success=True, status_code=200),
            RuntimeError("connection reset"),
            SendResult(success=False, status_code=403, error="Missing Access"),
        ]
        notifier = make_notifier(store, sender, [FakeSource("primary", events)], clock)

        result = await notifier.run_cycle()

        assert sender.send.await_count == 3
        assert result.sent == 1
        assert result.failed == 2
        assert store.load().watermark == NOW

    @pytest.mark.asyncio
    async def test_second_cycle_sends_nothing_new(self, store, sender, clock):
        clock.now = NOW
        store.save(make_config(watermark=NOW - 60))
        source = FakeSource("primary", [make_event(timestamp=int(NOW - 30))])
        notifier = make_notifier(store, sender, [source], clock)

        await notifier.run_cycle()
        # Same watermark again: dedup must still suppress the event
        store.save(make_config(watermark=NOW - 60))
        result = await notifier.run_cycle()

        assert result.sent == 0
        assert sender.send.await_count == 1

    @pytest.mark.asyncio
    async def test_missing_channel_counts_as_failure(self, store, sender, clock):
        clock.now = NOW
        store.save(make_config(watermark=NOW - 60, losses_channel_id=None))
        event = make_event(
            timestamp=int(NOW - 30), old_owner=home_player(), new_owner=enemy_player()
        )
        notifier = make_notifier(store, sender, [FakeSource("primary", [event])], clock)

        result = await notifier.run_cycle()

        assert result.failed == 1
        sender.send.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_disabled_monitor_does_nothing(self, store, sender, clock):
        store.save(make_config(enabled=False))
        source = FakeSource("primary", [make_event()])
        notifier = make_notifier(store, sender, [source], clock)

        result = await notifier.run_cycle()

        assert result.skipped is True
        assert result.reason == "disabled"
        assert source.calls == []

    @pytest.mark.asyncio
    async def test_disable_during_fetch_discards_results(self, store, sender, clock):
        clock.now = NOW
        store.save(make_config(watermark=NOW - 60))

        class DisablingSource(FakeSource):
            async def fetch(self, since):
                store.save(make_config(enabled=False, watermark=NOW - 60))
                return [make_event(timestamp=int(NOW - 30))]

        notifier = make_notifier(store, sender, [DisablingSource("primary")], clock)

        result = await notifier.run_cycle()

        assert result.reason == "disabled during cycle"
        sender.send.assert_not_awaited()
        assert store.load().watermark == NOW - 60
        assert store.load().enabled is False


class TestLoopControl:
    """Tests for start/stop, activation and configuration commands."""

    def test_requires_a_source(self, store, sender, clock):
        with pytest.raises(ValueError):
            make_notifier(store, sender, [], clock)

    def test_stale_watermark_reset(self, store, sender, clock):
        clock.now = NOW
        notifier = make_notifier(store, sender, [FakeSource("primary")], clock)
        config = make_config(watermark=NOW - 7 * 3600)

        assert notifier.reset_stale_watermark(config) is True
        assert config.watermark == NOW - 300

    def test_unset_watermark_reset(self, store, sender, clock):
        clock.now = NOW
        notifier = make_notifier(store, sender, [FakeSource("primary")], clock)
        config = make_config(watermark=0)

        notifier.reset_stale_watermark(config)

        assert config.watermark == NOW - 300

    def test_fresh_watermark_kept(self, store, sender, clock):
        clock.now = NOW
        notifier = make_notifier(store, sender, [FakeSource("primary")], clock)
        config = make_config(watermark=NOW - 3600)

        assert notifier.reset_stale_watermark(config) is False
        assert config.watermark == NOW - 3600

    def test_threshold_configurable(self, store, sender, clock):
        clock.now = NOW
        notifier = make_notifier(
            store, sender, [FakeSource("primary")], clock, stale_watermark_hours=0.5
        )
        config = make_config(watermark=NOW - 3600)

        assert notifier.reset_stale_watermark(config) is True

    @pytest.mark.asyncio
    async def test_start_requires_enabled_config(self, store, sender, clock):
        notifier = make_notifier(store, sender, [FakeSource("primary")], clock)

        assert notifier.start() is False
        assert notifier.is_running is False

    @pytest.mark.asyncio
    async def test_start_resets_stale_watermark_and_stop_cancels(self, store, sender, clock):
        clock.now = NOW
        store.save(make_config(watermark=NOW - 24 * 3600))
        source = FakeSource("primary")
        notifier = make_notifier(store, sender, [source], clock)

        assert notifier.start() is True
        for _ in range(5):
            await asyncio.sleep(0)

        assert notifier.is_running is True
        await notifier.stop()
        assert notifier.is_running is False
        assert source.calls[0] == NOW - 300

    @pytest.mark.asyncio
    async def test_activate_looks_up_tag(self, store, sender, clock):
        clock.now = NOW
        game_data = MagicMock()
        game_data.get_tribe = AsyncMock(return_value=MagicMock(tag="HG"))
        notifier = make_notifier(
            store, sender, [FakeSource("primary")], clock, game_data=game_data
        )

        config = await notifier.activate("111", "222", home_tribe_id=10)

        assert config.enabled is True
        assert config.home_tribe_tag == "HG"
        assert config.watermark == NOW - 300
        assert store.load() == config

    @pytest.mark.asyncio
    async def test_activate_tolerates_roster_failure(self, store, sender, clock, caplog):
        game_data = MagicMock()
        game_data.get_tribe = AsyncMock(side_effect=FeedError("down"))
        notifier = make_notifier(
            store, sender, [FakeSource("primary")], clock, game_data=game_data
        )

        config = await notifier.activate("111", "222", home_tribe_id=10)

        assert config.home_tribe_tag is None
        assert config.enabled is True
        assert "will not be classified" in caplog.text

    @pytest.mark.asyncio
    async def test_deactivate(self, store, sender, clock):
        store.save(make_config())
        notifier = make_notifier(store, sender, [FakeSource("primary")], clock)

        await notifier.deactivate()

        assert store.load().enabled is False
        assert notifier.is_running is False

    def test_set_mode_changes_interval(self, store, sender, clock):
        store.save(make_config())
        notifier = make_notifier(store, sender, [FakeSource("primary")], clock)

        assert notifier._current_interval() == 60
        notifier.set_mode(PollMode.FAST)

        assert store.load().mode is PollMode.FAST
        assert notifier._current_interval() == 15

    def test_set_tribe_filter(self, store, sender, clock):
        notifier = make_notifier(store, sender, [FakeSource("primary")], clock)

        notifier.set_tribe_filter(TribeFilter(FilterMode.SPECIFIC, "Red"))

        assert store.load().tribe_filter.specific_tribe_name == "Red"

    @pytest.mark.asyncio
    async def test_status(self, store, sender, clock):
        clock.now = NOW
        store.save(make_config(watermark=NOW - 60))
        notifier = make_notifier(store, sender, [FakeSource("primary")], clock)
        await notifier.run_cycle()

        status = notifier.status()

        assert status["configured"] is True
        assert status["running"] is False
        assert status["watermark"] == "2023-11-14T22:13:20Z"
        assert status["last_cycle"]["source"] == "primary"
