"""
Building Upgrade Engine.

Explains the point gains of a village as building level-ups. For every
positive delta between consecutive snapshots it searches, in order:

1. Single level of one building whose cost equals the delta
2. A run of 2..MAX_MULTI_LEVEL_SPAN consecutive levels of one building
3. One level each of two different buildings (all-buildings filter only)

The search is deliberately bounded. Combinations of three or more
buildings grow exponentially and are not attempted.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from dataclasses import dataclass
from typing import TYPE_CHECKING

from ...core.formatters import format_time_span
from ...core.logging import get_logger
from .catalog import BuildingCatalog
from .models import (
    AnalysisResult,
    BuildingStats,
    BuildingStep,
    CombinationUpgrade,
    Confidence,
    MultiLevelUpgrade,
    PeriodAnalysis,
    SingleUpgrade,
    UpgradeHypothesis,
    UpgradeSummary,
)

if TYPE_CHECKING:
    from ..villages.snapshots import VillageSnapshot

logger = get_logger(__name__)

# =============================================================================
# Search Bounds
# =============================================================================

MAX_COMBINATION_BUILDINGS = 2
MAX_MULTI_LEVEL_SPAN = 5
MAX_RESULTS = 10
MAX_COMBINATIONS_PER_PAIR = 5
# Slots each hypothesis kind keeps before the rest fill in rank order
RESERVED_SLOTS_PER_KIND = 3

MIN_SNAPSHOTS = 2
TOP_UPGRADE_KEYS = 5

# Confidence is a sample-size heuristic, not a statistical measure
HIGH_CONFIDENCE_PERIODS = 5
MEDIUM_CONFIDENCE_PERIODS = 2

ALL_BUILDINGS = "all"


@dataclass(frozen=True)
class TimeWindow:
    """Inclusive time range; None leaves that side open."""

    start: float | None = None
    end: float | None = None

    @classmethod
    def last_hours(cls, hours: float, now: float) -> TimeWindow:
        return cls(start=now - hours * 3600, end=now)

    def contains(self, timestamp: float) -> bool:
        if self.start is not None and timestamp < self.start:
            return False
        if self.end is not None and timestamp > self.end:
            return False
        return True


def confidence_for(periods: int) -> Confidence:
    if periods >= HIGH_CONFIDENCE_PERIODS:
        return "high"
    if periods >= MEDIUM_CONFIDENCE_PERIODS:
        return "medium"
    return "low"


def cap_results(hypotheses: list[UpgradeHypothesis]) -> list[UpgradeHypothesis]:
    """
    Best-first hypotheses, at most MAX_RESULTS.

    Each kind keeps its first RESERVED_SLOTS_PER_KIND matches, so a delta
    with many single-level matches across the catalog still lists its
    multi-level and combination matches. Remaining slots go by rank.
    """
    by_rank: dict[int, list[UpgradeHypothesis]] = {}
    for hypothesis in sorted(hypotheses, key=lambda h: h.rank):
        by_rank.setdefault(hypothesis.rank, []).append(hypothesis)

    kept = [h for group in by_rank.values() for h in group[:RESERVED_SLOTS_PER_KIND]]
    rest = [h for group in by_rank.values() for h in group[RESERVED_SLOTS_PER_KIND:]]
    kept.extend(rest[: MAX_RESULTS - len(kept)])
    kept.sort(key=lambda h: h.rank)
    return kept


class BuildingUpgradeEngine:
    """Bounded search for building upgrades matching point deltas."""

    def __init__(self, catalog: BuildingCatalog) -> None:
        self.catalog = catalog
        # building -> single-level cost -> levels with that cost
        self._cost_index: dict[str, dict[int, list[int]]] = {}
        for building in catalog:
            index: dict[int, list[int]] = {}
            for level in range(catalog.max_level(building)):
                index.setdefault(catalog.level_cost(building, level), []).append(level)
            self._cost_index[building] = index

    # -------------------------------------------------------------------------
    # Hypothesis search
    # -------------------------------------------------------------------------

    def _resolve_filter(self, building_filter: str | None) -> list[str]:
        if not building_filter or building_filter == ALL_BUILDINGS:
            return self.catalog.buildings
        if building_filter not in self.catalog:
            raise ValueError(f"Unknown building: {building_filter}")
        return [building_filter]

    def single_upgrades(self, delta: int, building: str) -> list[SingleUpgrade]:
        return [
            SingleUpgrade(building=building, from_level=level, to_level=level + 1, points_cost=delta)
            for level in self._cost_index[building].get(delta, [])
        ]

    def multi_level_upgrades(self, delta: int, building: str) -> list[MultiLevelUpgrade]:
        table = self.catalog[building]
        found: list[MultiLevelUpgrade] = []
        for start in range(len(table) - 2):
            last = min(len(table) - 1, start + MAX_MULTI_LEVEL_SPAN)
            for end in range(start + 2, last + 1):
                cost = table[end] - table[start]
                if cost > delta:
                    break
                if cost == delta:
                    found.append(
                        MultiLevelUpgrade(
                            building=building, from_level=start, to_level=end, points_cost=cost
                        )
                    )
        return found

    def combination_upgrades(self, delta: int, buildings: Sequence[str]) -> list[CombinationUpgrade]:
        """Pairs of single-level upgrades of two distinct buildings summing to delta."""
        found: list[CombinationUpgrade] = []
        for i, first in enumerate(buildings):
            for second in buildings[i + 1 :]:
                pair: list[CombinationUpgrade] = []
                second_index = self._cost_index[second]
                for level1 in range(self.catalog.max_level(first)):
                    cost1 = self.catalog.level_cost(first, level1)
                    cost2 = delta - cost1
                    if cost1 <= 0 or cost2 <= 0:
                        continue
                    for level2 in second_index.get(cost2, []):
                        pair.append(
                            CombinationUpgrade(
                                buildings=(
                                    BuildingStep(first, level1, level1 + 1, cost1),
                                    BuildingStep(second, level2, level2 + 1, cost2),
                                ),
                                total_points_cost=delta,
                            )
                        )
                        if len(pair) >= MAX_COMBINATIONS_PER_PAIR:
                            break
                    if len(pair) >= MAX_COMBINATIONS_PER_PAIR:
                        break
                found.extend(pair)
                if len(found) >= MAX_RESULTS:
                    return found[:MAX_RESULTS]
        return found

    def explain_delta(self, delta: int, building_filter: str | None = None) -> list[UpgradeHypothesis]:
        """
        All hypotheses for one delta, best first, at most MAX_RESULTS.

        Fewer buildings implicated ranks higher: single, then multi-level,
        then combinations. Zero and negative deltas have no explanation.

        Raises:
            ValueError: building_filter names no catalog building
        """
        buildings = self._resolve_filter(building_filter)
        if delta <= 0:
            return []

        hypotheses: list[UpgradeHypothesis] = []
        for building in buildings:
            hypotheses.extend(self.single_upgrades(delta, building))
            hypotheses.extend(self.multi_level_upgrades(delta, building))
        searching_all = not building_filter or building_filter == ALL_BUILDINGS
        if searching_all and len(buildings) >= MAX_COMBINATION_BUILDINGS:
            hypotheses.extend(self.combination_upgrades(delta, buildings))

        return cap_results(hypotheses)

    # -------------------------------------------------------------------------
    # Series analysis
    # -------------------------------------------------------------------------

    def analyze(
        self,
        series: Sequence[VillageSnapshot],
        building_filter: str | None = None,
        window: TimeWindow | None = None,
    ) -> AnalysisResult:
        """
        Explain every positive delta of a village's point history.

        Args:
            series: Snapshots sorted by timestamp ascending
            building_filter: Building key, or None/"all" for every building
            window: Only snapshots inside this range are used

        Returns:
            AnalysisResult; success=False with a reason when the window
            holds fewer than two snapshots or the building is unknown
        """
        try:
            self._resolve_filter(building_filter)
        except ValueError as e:
            return AnalysisResult(success=False, reason=str(e), building_filter=building_filter)

        snapshots = [s for s in series if window is None or window.contains(s.timestamp)]
        if len(snapshots) < MIN_SNAPSHOTS:
            return AnalysisResult(
                success=False,
                reason="Not enough snapshots in the selected period",
                building_filter=building_filter,
                total_snapshots=len(snapshots),
            )

        periods: list[PeriodAnalysis] = []
        for previous, current in zip(snapshots, snapshots[1:]):
            delta = current.points - previous.points
            if delta <= 0:
                continue
            periods.append(
                PeriodAnalysis(
                    from_timestamp=previous.timestamp,
                    to_timestamp=current.timestamp,
                    previous_points=previous.points,
                    current_points=current.points,
                    hypotheses=self.explain_delta(delta, building_filter),
                    time_span=format_time_span(current.timestamp - previous.timestamp),
                )
            )

        summary = self.summarize(periods)
        logger.debug(
            "Analyzed %d snapshots: %d periods, %d unexplained",
            len(snapshots),
            summary.total_periods,
            summary.unexplained_periods,
        )
        return AnalysisResult(
            success=True,
            building_filter=building_filter,
            total_snapshots=len(snapshots),
            periods=periods,
            summary=summary,
        )

    def summarize(self, periods: Sequence[PeriodAnalysis]) -> UpgradeSummary:
        building_stats: dict[str, BuildingStats] = {}
        frequency: Counter[str] = Counter()

        for period in periods:
            for hypothesis in period.hypotheses:
                frequency[hypothesis.key] += 1
                for step in hypothesis.steps:
                    stats = building_stats.setdefault(step.building, BuildingStats())
                    stats.count += 1
                    stats.total_levels += step.levels
                    stats.total_points += step.points_cost

        return UpgradeSummary(
            total_periods=len(periods),
            total_points=sum(p.delta for p in periods),
            building_stats=building_stats,
            most_likely=frequency.most_common(TOP_UPGRADE_KEYS),
            confidence=confidence_for(len(periods)),
            unexplained_periods=sum(1 for p in periods if not p.explained),
        )
