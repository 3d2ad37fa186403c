"""
Road segments and their footprint on the grid.

A RoadSegment is created once per successful path query and never changed
afterwards. Stamping a land segment raises the road level of every hex it
crosses and adds the segment's traffic to those hexes, which is what later
feeder searches connect into.
"""

from enum import IntEnum
from typing import Dict, Iterable, List, Tuple

import structlog
from pydantic import BaseModel, ConfigDict, Field

from .hex_grid import HexGrid

logger = structlog.get_logger()


class RoadLevel(IntEnum):
    """Road classes, best first in value order."""

    NONE = 0
    SEA_ROUTE = 1
    VILLAGE = 2
    TOWN = 3
    HIGHWAY = 4
    TRADE = 5


class RoadSegment(BaseModel):
    """One built road: an ordered hex path between settlements."""

    model_config = ConfigDict(frozen=True)

    path: Tuple[int, ...] = Field(description="Hex indices from origin to the end of the road")
    level: RoadLevel = Field(description="Road class")
    nation_id: int = Field(default=0, description="Owning nation, 0 if unaffiliated")
    origin: int = Field(description="Settlement hex the road starts from")
    destination: int = Field(description="Settlement hex the road serves")
    cost: float = Field(default=0.0, description="Accumulated travel cost of the path")

    @property
    def is_sea_route(self) -> bool:
        return self.level == RoadLevel.SEA_ROUTE

    def coordinates(self, grid: HexGrid) -> List[Tuple[int, int]]:
        """Path as (col, row) pairs."""
        return [grid.coords_of(i) for i in self.path]

    def is_traversable(self, grid: HexGrid) -> bool:
        """Land roads must not cross water; sea routes are exempt."""
        if self.is_sea_route:
            return True
        return not any(grid.is_water[i] for i in self.path)


def stamp_road(grid: HexGrid, segment: RoadSegment, traffic: float) -> None:
    """
    Write a land segment onto the grid.

    Args:
        grid: Hex grid to update
        segment: Road to stamp; sea routes are ignored
        traffic: Traffic added to every hex on the path
    """
    if segment.is_sea_route:
        return
    for cell_id in segment.path:
        if grid.road_level[cell_id] < segment.level:
            grid.road_level[cell_id] = segment.level
        grid.road_traffic[cell_id] += traffic


def summarize_roads(roads: Iterable[RoadSegment], hex_size_km: float) -> Dict[str, float]:
    """
    Count segments and road length per level.

    Returns:
        Mapping with "<level>_segments" and "<level>_km" entries plus "total_km"
    """
    summary: Dict[str, float] = {}
    total_hexes = 0
    for segment in roads:
        name = segment.level.name.lower()
        steps = max(len(segment.path) - 1, 0)
        summary[f"{name}_segments"] = summary.get(f"{name}_segments", 0) + 1
        summary[f"{name}_km"] = summary.get(f"{name}_km", 0.0) + steps * hex_size_km
        total_hexes += steps
    summary["total_km"] = total_hexes * hex_size_km
    return summary
