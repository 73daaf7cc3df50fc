"""
Conquest Analyzer.

Turns a batch of canonical conquest events into the new, relevant,
classified events to notify, each exactly once.

The analyzer never touches the watermark. The notifier advances it
after dispatch, so "seen" and "committed" stay separate.
"""

from __future__ import annotations

from collections import OrderedDict
from collections.abc import Iterable

from ...core.logging import get_logger
from .models import (
    ConquestClassification,
    ConquestEvent,
    FilterMode,
    MonitorConfig,
    Owner,
    RelevantEvent,
)

logger = get_logger(__name__)

DEFAULT_PROCESSED_CAPACITY = 1000

EventIdentity = tuple[str, str, int]


# =============================================================================
# Processed Event Set
# =============================================================================


class ProcessedEventSet:
    """
    Bounded memory of notified event identities.

    Insertion-ordered; once capacity is reached the oldest identity is
    evicted for each new one.
    """

    def __init__(self, capacity: int = DEFAULT_PROCESSED_CAPACITY) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self.capacity = capacity
        self._items: OrderedDict[EventIdentity, None] = OrderedDict()

    def __contains__(self, identity: object) -> bool:
        return identity in self._items

    def __len__(self) -> int:
        return len(self._items)

    def add(self, identity: EventIdentity) -> None:
        if identity in self._items:
            self._items.move_to_end(identity)
            return
        self._items[identity] = None
        while len(self._items) > self.capacity:
            self._items.popitem(last=False)

    def clear(self) -> None:
        self._items.clear()


# =============================================================================
# Classification
# =============================================================================


def is_home_owner(owner: Owner, config: MonitorConfig) -> bool:
    """
    Whether an owner belongs to the home tribe.

    Compared by tribe id when the owner's id is known, otherwise by
    case-insensitive tag. Barbarians and tribeless owners never match.
    """
    if not owner.has_tribe:
        return False
    if owner.tribe_id is not None and config.home_tribe_id is not None:
        return owner.tribe_id == config.home_tribe_id
    if owner.tribe_tag and config.home_tribe_tag:
        return owner.tribe_tag.strip().lower() == config.home_tribe_tag.strip().lower()
    return False


def classify(event: ConquestEvent, config: MonitorConfig) -> ConquestClassification:
    """
    GAIN when the home tribe takes a village, LOSS when it loses one.

    A transfer between two home tribe members is NEUTRAL.
    """
    new_home = is_home_owner(event.new_owner, config)
    old_home = is_home_owner(event.old_owner, config)
    if new_home and old_home:
        return ConquestClassification.NEUTRAL
    if new_home:
        return ConquestClassification.GAIN
    if old_home:
        return ConquestClassification.LOSS
    return ConquestClassification.NEUTRAL


def matches_tribe_filter(owner: Owner, name_filter: str | None) -> bool:
    """Case-insensitive substring match against the owner's tribe name or tag."""
    if not name_filter or not owner.has_tribe:
        return False
    needle = name_filter.strip().lower()
    if not needle:
        return False
    for candidate in (owner.tribe_name, owner.tribe_tag):
        if candidate and needle in candidate.lower():
            return True
    return False


def is_relevant(event: ConquestEvent, config: MonitorConfig) -> bool:
    """
    Whether an event passes the gain-side filter.

    In specific mode losses of the home tribe always pass, because they go
    to their own channel.
    """
    tribe_filter = config.tribe_filter
    if tribe_filter.mode is not FilterMode.SPECIFIC:
        return True
    if matches_tribe_filter(event.new_owner, tribe_filter.specific_tribe_name):
        return True
    return is_home_owner(event.old_owner, config)


# =============================================================================
# Analyzer
# =============================================================================


class ConquestAnalyzer:
    """Selects and classifies events newer than a watermark, deduplicated."""

    def __init__(self, processed: ProcessedEventSet | None = None) -> None:
        self.processed = processed if processed is not None else ProcessedEventSet()

    def analyze(
        self,
        events: Iterable[ConquestEvent],
        config: MonitorConfig,
        watermark: float,
    ) -> list[RelevantEvent]:
        """
        Select new relevant events.

        Args:
            events: Canonical events in any order
            config: Monitor configuration (home tribe and filter)
            watermark: Events at or before this timestamp are ignored

        Returns:
            Relevant events sorted oldest first; each identity is
            recorded as processed
        """
        relevant: list[RelevantEvent] = []
        skipped_old = 0
        skipped_seen = 0

        for event in sorted(events, key=lambda e: e.timestamp):
            if event.timestamp <= watermark:
                skipped_old += 1
                continue

            identity = event.identity
            if identity in self.processed:
                skipped_seen += 1
                continue

            if not is_relevant(event, config):
                continue

            classification = classify(event, config)
            self.processed.add(identity)
            relevant.append(RelevantEvent(event=event, classification=classification))
            logger.debug(
                "Relevant conquest %s: %s -> %s (%s)",
                identity,
                event.old_owner.display,
                event.new_owner.display,
                classification.value,
            )

        logger.debug(
            "Analyzed batch: %d relevant, %d at/before watermark, %d already processed",
            len(relevant),
            skipped_old,
            skipped_seen,
        )
        return relevant
