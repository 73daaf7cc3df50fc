"""
Building upgrade hypotheses and analysis results.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Literal, Union


@dataclass(frozen=True)
class BuildingStep:
    """One building going from one level to another."""

    building: str
    from_level: int
    to_level: int
    points_cost: int

    @property
    def levels(self) -> int:
        return self.to_level - self.from_level

    def to_dict(self) -> dict[str, Any]:
        return {
            "building": self.building,
            "from_level": self.from_level,
            "to_level": self.to_level,
            "points_cost": self.points_cost,
        }


@dataclass(frozen=True)
class SingleUpgrade(BuildingStep):
    """Exactly one level of one building."""

    kind: Literal["single"] = "single"
    rank: int = 1

    @property
    def steps(self) -> tuple[BuildingStep, ...]:
        return (self,)

    @property
    def key(self) -> str:
        return f"{self.building}_{self.from_level}_to_{self.to_level}"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, **super().to_dict()}


@dataclass(frozen=True)
class MultiLevelUpgrade(BuildingStep):
    """Several consecutive levels of one building."""

    kind: Literal["multiple"] = "multiple"
    rank: int = 2

    @property
    def steps(self) -> tuple[BuildingStep, ...]:
        return (self,)

    @property
    def levels_upgraded(self) -> int:
        return self.levels

    @property
    def key(self) -> str:
        return f"{self.building}_multiple_{self.levels_upgraded}"

    def to_dict(self) -> dict[str, Any]:
        return {"type": self.kind, **super().to_dict(), "levels_upgraded": self.levels_upgraded}


@dataclass(frozen=True)
class CombinationUpgrade:
    """One level each of two or more different buildings."""

    buildings: tuple[BuildingStep, ...]
    total_points_cost: int
    kind: Literal["combination"] = "combination"
    rank: int = 3

    @property
    def steps(self) -> tuple[BuildingStep, ...]:
        return self.buildings

    @property
    def key(self) -> str:
        return f"combination_{len(self.buildings)}_buildings"

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.kind,
            "buildings": [b.to_dict() for b in self.buildings],
            "total_points_cost": self.total_points_cost,
        }


UpgradeHypothesis = Union[SingleUpgrade, MultiLevelUpgrade, CombinationUpgrade]


@dataclass
class PeriodAnalysis:
    """A positive point delta between two consecutive snapshots."""

    from_timestamp: float
    to_timestamp: float
    previous_points: int
    current_points: int
    hypotheses: list[UpgradeHypothesis] = field(default_factory=list)
    time_span: str = ""

    @property
    def delta(self) -> int:
        return self.current_points - self.previous_points

    @property
    def explained(self) -> bool:
        return bool(self.hypotheses)

    def to_dict(self) -> dict[str, Any]:
        return {
            "from": self.from_timestamp,
            "to": self.to_timestamp,
            "points_gained": self.delta,
            "previous_points": self.previous_points,
            "current_points": self.current_points,
            "time_span": self.time_span,
            "explained": self.explained,
            "possible_upgrades": [h.to_dict() for h in self.hypotheses],
        }


@dataclass
class BuildingStats:
    count: int = 0
    total_levels: int = 0
    total_points: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "count": self.count,
            "total_levels": self.total_levels,
            "total_points": self.total_points,
        }


Confidence = Literal["low", "medium", "high"]


@dataclass
class UpgradeSummary:
    """Aggregate over all analyzed periods."""

    total_periods: int
    total_points: int
    building_stats: dict[str, BuildingStats]
    most_likely: list[tuple[str, int]]
    confidence: Confidence
    unexplained_periods: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_periods": self.total_periods,
            "total_points": self.total_points,
            "unexplained_periods": self.unexplained_periods,
            "building_stats": {b: s.to_dict() for b, s in self.building_stats.items()},
            "most_likely_upgrades": [
                {"upgrade": key, "frequency": count} for key, count in self.most_likely
            ],
            "confidence": self.confidence,
        }


@dataclass
class AnalysisResult:
    """
    Outcome of an upgrade analysis.

    success=False carries a reason (insufficient data, unknown building);
    it is a normal result, not an error.
    """

    success: bool
    reason: str | None = None
    building_filter: str | None = None
    total_snapshots: int = 0
    periods: list[PeriodAnalysis] = field(default_factory=list)
    summary: UpgradeSummary | None = None

    @property
    def unexplained(self) -> list[PeriodAnalysis]:
        return [p for p in self.periods if not p.explained]

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"success": self.success}
        if self.reason:
            result["reason"] = self.reason
        if self.success:
            result.update(
                {
                    "building_filter": self.building_filter or "all",
                    "total_snapshots": self.total_snapshots,
                    "periods": [p.to_dict() for p in self.periods],
                    "summary": self.summary.to_dict() if self.summary else None,
                }
            )
        return result
