"""
Terrain traversal costs for road building.

Each hex gets a base movement cost from its vegetation, elevation and river
flow. Moving between two adjacent hexes then costs one step plus a slope
penalty and half of the target's extra movement cost. Roads built for a
nation avoid foreign soil through a large multiplier.
"""

import math
from typing import Callable, Collection, Optional

import numpy as np
import structlog
from pydantic import BaseModel, Field

from .hex_grid import HexGrid, Vegetation

logger = structlog.get_logger()

INF = math.inf

EdgeCost = Callable[[int, int], float]


class CostOptions(BaseModel):
    """Weights of the terrain cost model."""

    marsh_cost: float = Field(default=50.0, description="Base cost of marsh and lake shore hexes")
    forest_penalty: float = Field(
        default=2.0, description="Added cost for sparse and ordinary forest"
    )
    dense_forest_penalty: float = Field(
        default=4.0, description="Added cost for dense and coniferous forest"
    )
    mountain_threshold: float = Field(
        default=1000.0, description="Elevation (m) above which the mountain penalty applies"
    )
    mountain_scale: float = Field(default=700.0, description="Elevation divisor of the mountain curve")
    mountain_exponent: float = Field(default=2.8, description="Power of the mountain curve")
    river_flow_threshold: float = Field(
        default=2.0, description="Flow above which a hex counts as a river crossing"
    )
    river_flow_penalty: float = Field(default=3.0, description="Cost per unit of river flow")
    slope_scale: float = Field(default=100.0, description="Elevation difference (m) per slope unit")
    slope_penalty_factor: float = Field(default=20.0, description="Weight of the squared slope")
    terrain_weight: float = Field(
        default=0.5, description="Share of the target's extra movement cost added per step"
    )
    foreign_nation_multiplier: float = Field(
        default=50.0, description="Multiplier for entering another nation's hex"
    )


class CostModel:
    """Directed edge costs over a HexGrid.

    Terrain is read once at construction; nation ownership is read live from
    the grid because affiliation keeps changing it.
    """

    def __init__(self, grid: HexGrid, options: Optional[CostOptions] = None):
        self.grid = grid
        self.options = options or CostOptions()

        self.movement_cost = self._base_movement_costs()
        self._movement = self.movement_cost.tolist()
        self._elevation = grid.elevation.astype(np.float64).tolist()
        self._water = grid.is_water.tolist()

    def _base_movement_costs(self) -> np.ndarray:
        """Calculate per-hex movement cost (infinite for water)."""
        opts = self.options
        grid = self.grid
        veg = grid.vegetation

        cost = np.ones(grid.size, dtype=np.float64)
        cost[veg == Vegetation.MARSH] = opts.marsh_cost
        cost[np.isin(veg, (Vegetation.SPARSE_FOREST, Vegetation.FOREST))] += opts.forest_penalty
        cost[
            np.isin(veg, (Vegetation.DENSE_FOREST, Vegetation.CONIFEROUS_FOREST))
        ] += opts.dense_forest_penalty

        elevation = grid.elevation.astype(np.float64)
        high = elevation > opts.mountain_threshold
        cost[high] += np.power(elevation[high] / opts.mountain_scale, opts.mountain_exponent)

        flow = grid.flow.astype(np.float64)
        river = flow > opts.river_flow_threshold
        cost[river] += flow[river] * opts.river_flow_penalty

        cost[grid.is_water] = INF

        logger.debug(
            "Movement costs calculated",
            land_cells=int((~grid.is_water).sum()),
            mean_cost=float(cost[~grid.is_water].mean()) if (~grid.is_water).any() else 0.0,
        )
        return cost

    def edge_cost(self, from_cell: int, to_cell: int, owner_nation: Optional[int] = None) -> float:
        """
        Cost of stepping from one land hex to an adjacent one.

        Args:
            from_cell: Hex being left
            to_cell: Hex being entered
            owner_nation: Nation building the road, or None for neutral travel

        Returns:
            Non-negative cost, infinite when the target is water
        """
        if self._water[to_cell]:
            return INF

        opts = self.options
        slope = abs(self._elevation[from_cell] - self._elevation[to_cell]) / opts.slope_scale
        cost = 1.0 + slope * slope * opts.slope_penalty_factor
        cost += (self._movement[to_cell] - 1.0) * opts.terrain_weight

        if owner_nation:
            target_nation = self.grid.nation_id[to_cell]
            if target_nation != 0 and target_nation != owner_nation:
                cost *= opts.foreign_nation_multiplier
        return cost

    def land_cost(self, owner_nation: Optional[int] = None) -> EdgeCost:
        """Edge cost function for land roads, optionally owned by a nation."""
        def cost(from_cell: int, to_cell: int) -> float:
            return self.edge_cost(from_cell, to_cell, owner_nation)
        return cost

    def sea_cost(self, landings: Collection[int] = ()) -> EdgeCost:
        """
        Edge cost function for sea routes.

        Every water hex costs one step. Land is impassable except for the
        given landing hexes, which lets a route leave and reach its ports.
        """
        water = self._water

        def cost(from_cell: int, to_cell: int) -> float:
            if water[to_cell] or to_cell in landings:
                return 1.0
            return INF
        return cost
