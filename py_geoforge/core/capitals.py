"""
Capital selection and initial nation claims.

The map is split into a coarse tiling of regions. The most populous eligible
settlement of each region becomes a capital candidate; candidates are ranked
by population and the best become capitals with sequential nation ids.
"""

from typing import List, Optional, Sequence

import numpy as np
import structlog
from pydantic import BaseModel, Field
from sklearn.neighbors import KDTree

from .hex_grid import NO_HEX, HexGrid, SettlementTier

logger = structlog.get_logger()


class CapitalOptions(BaseModel):
    """Capital selection options."""

    nations_number: int = Field(default=4, description="Target number of nations")
    region_cols: int = Field(default=3, description="Region tiling columns")
    region_rows: int = Field(default=3, description="Region tiling rows")
    min_capital_tier: SettlementTier = Field(
        default=SettlementTier.TOWN, description="Lowest tier eligible to become a capital"
    )
    frontier_distance: int = Field(
        default=35, description="Hexes beyond this distance from every capital stay unclaimed"
    )
    min_capital_distance: int = Field(
        default=0, description="Capitals must be farther apart than this (0 disables spacing)"
    )


class CapitalSelector:
    """Chooses one capital per coarse region and seeds nations from them."""

    def __init__(self, grid: HexGrid, options: Optional[CapitalOptions] = None):
        self.grid = grid
        self.options = options or CapitalOptions()

    def region_of(self, cell_id: int) -> int:
        """Region index of a hex in the row-major region tiling."""
        col, row = self.grid.coords_of(cell_id)
        region_col = col * self.options.region_cols // self.grid.cols
        region_row = row * self.options.region_rows // self.grid.rows
        return region_row * self.options.region_cols + region_col

    def region_candidates(self) -> List[int]:
        """Most populous eligible settlement of every region, in region order."""
        grid = self.grid
        eligible = np.flatnonzero(
            (grid.settlement_tier >= self.options.min_capital_tier)
            & ~grid.is_water
            & (grid.population > 0)
        ).tolist()

        best = {}
        for cell_id in eligible:
            region = self.region_of(cell_id)
            current = best.get(region)
            if current is None or grid.population[cell_id] > grid.population[current]:
                best[region] = cell_id
        return [best[region] for region in sorted(best)]

    def select_capitals(self) -> List[int]:
        """
        Promote the best region candidates to capitals.

        Returns:
            Capital hexes; the capital at position i founds nation i + 1
        """
        logger.info("Selecting capitals")
        grid = self.grid
        candidates = self.region_candidates()
        candidates.sort(key=lambda c: (-int(grid.population[c]), c))

        count = self.options.nations_number
        if len(candidates) < count:
            if not candidates:
                logger.warning("No eligible settlements for capitals")
                return []
            count = max(1, len(candidates))
            logger.warning(
                f"Not enough capital candidates. Reducing nations to {count}",
                requested=self.options.nations_number,
            )

        capitals = self._spaced(candidates, count)
        if len(capitals) < count:
            logger.warning(
                "Capital spacing rejected candidates",
                requested=count,
                placed=len(capitals),
                min_distance=self.options.min_capital_distance,
            )

        grid.snapshot_settlement_tiers()
        for nation_id, cell_id in enumerate(capitals, start=1):
            grid.settlement_tier[cell_id] = SettlementTier.CAPITAL
            grid.nation_id[cell_id] = nation_id
            grid.parent_hex_id[cell_id] = NO_HEX

        logger.info(f"Selected {len(capitals)} capitals", regions=len(candidates))
        return capitals

    def _spaced(self, ranked: List[int], count: int) -> List[int]:
        """Take ranked candidates in order, skipping any too close to one already taken."""
        min_distance = self.options.min_capital_distance
        chosen: List[int] = []
        for cell_id in ranked:
            if len(chosen) == count:
                break
            col, row = self.grid.coords_of(cell_id)
            if all(
                max(abs(col - c), abs(row - r)) > min_distance
                for c, r in (self.grid.coords_of(other) for other in chosen)
            ):
                chosen.append(cell_id)
        return chosen

    def claim_frontier(self, capitals: Sequence[int]) -> int:
        """
        Give every land hex the nation of its nearest capital.

        Distance is the larger of the column and row offsets. Hexes at or
        beyond frontier_distance from every capital are left at nation 0.

        Args:
            capitals: Capital hexes, position i founding nation i + 1

        Returns:
            Number of hexes claimed
        """
        grid = self.grid
        land = np.flatnonzero(~grid.is_water)
        if not len(capitals) or not len(land):
            return 0

        capital_coords = np.array([grid.coords_of(c) for c in capitals], dtype=np.float64)
        land_coords = np.column_stack((land % grid.cols, land // grid.cols)).astype(np.float64)

        tree = KDTree(capital_coords, metric="chebyshev")
        distances, nearest = tree.query(land_coords, k=1)
        distances = distances[:, 0]
        nearest = nearest[:, 0]

        capital_nations = np.array([grid.nation_id[c] for c in capitals], dtype=np.int32)
        within = distances < self.options.frontier_distance
        nations = np.where(within, capital_nations[nearest], 0)

        # Capitals keep their own nation regardless of neighbours
        is_capital = np.isin(land, np.asarray(capitals))
        grid.nation_id[land[~is_capital]] = nations[~is_capital]

        claimed = int(within.sum())
        logger.info("Frontier claimed", claimed=claimed, unclaimed=int(len(land) - claimed))
        return claimed
