"""
Building upgrade inference from village point history.
"""

from .catalog import BuildingCatalog, CatalogError
from .engine import (
    MAX_COMBINATION_BUILDINGS,
    MAX_MULTI_LEVEL_SPAN,
    MAX_RESULTS,
    BuildingUpgradeEngine,
    TimeWindow,
)
from .models import (
    AnalysisResult,
    BuildingStep,
    CombinationUpgrade,
    MultiLevelUpgrade,
    SingleUpgrade,
)

__all__ = [
    "MAX_COMBINATION_BUILDINGS",
    "MAX_MULTI_LEVEL_SPAN",
    "MAX_RESULTS",
    "AnalysisResult",
    "BuildingCatalog",
    "BuildingStep",
    "BuildingUpgradeEngine",
    "CatalogError",
    "CombinationUpgrade",
    "MultiLevelUpgrade",
    "SingleUpgrade",
    "TimeWindow",
]
