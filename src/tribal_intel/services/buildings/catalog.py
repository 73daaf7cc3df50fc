"""
Building Catalog.

Cumulative points per building level, loaded once from YAML and
immutable afterwards.
"""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from pathlib import Path
from types import MappingProxyType

import yaml

from ...core.logging import get_logger

logger = get_logger(__name__)

DEFAULT_CATALOG_PATH = Path(__file__).parent / "data" / "building_points.yaml"


class CatalogError(ValueError):
    """Catalog data does not describe valid cumulative point tables."""


class BuildingCatalog(Mapping[str, tuple[int, ...]]):
    """
    Read-only mapping building -> cumulative points by level.

    Invariants checked on construction: points[0] == 0 and the table is
    non-decreasing.
    """

    def __init__(self, points: Mapping[str, list[int] | tuple[int, ...]]) -> None:
        tables: dict[str, tuple[int, ...]] = {}
        for building, values in points.items():
            table = tuple(int(v) for v in values)
            if not table or table[0] != 0:
                raise CatalogError(f"{building}: level 0 must be worth 0 points")
            if any(b < a for a, b in zip(table, table[1:])):
                raise CatalogError(f"{building}: points must not decrease with level")
            tables[str(building)] = table
        self._tables = MappingProxyType(tables)

    def __getitem__(self, building: str) -> tuple[int, ...]:
        return self._tables[building]

    def __iter__(self) -> Iterator[str]:
        return iter(self._tables)

    def __len__(self) -> int:
        return len(self._tables)

    def __repr__(self) -> str:
        return f"BuildingCatalog({list(self._tables)})"

    @property
    def buildings(self) -> list[str]:
        return list(self._tables)

    def max_level(self, building: str) -> int:
        return len(self._tables[building]) - 1

    def level_cost(self, building: str, level: int) -> int:
        """Points gained going from level to level + 1."""
        table = self._tables[building]
        return table[level + 1] - table[level]

    @classmethod
    def from_yaml(cls, path: Path = DEFAULT_CATALOG_PATH) -> BuildingCatalog:
        with open(path, encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        buildings = data.get("buildings")
        if not isinstance(buildings, dict):
            raise CatalogError(f"{path}: missing 'buildings' mapping")
        catalog = cls(buildings)
        logger.debug("Loaded %d buildings from %s", len(catalog), path)
        return catalog
