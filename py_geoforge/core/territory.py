"""
Territory resolution.

Process:
1. resolve_territory_root() - follow parent links to the ruling root hex
2. assign_settlement_territories() - give every settlement its root
3. propagate_territory() - flood nation and territory from populated
   settlements over unsettled habitable land, first claim wins
4. aggregate_territories() - population and settlement counts per hub
"""

from collections import defaultdict, deque
from typing import Dict, List, Optional

import numpy as np
import structlog
from pydantic import BaseModel, Field

from .hex_grid import NO_HEX, HexGrid, SettlementTier

logger = structlog.get_logger()


class TerritoryOptions(BaseModel):
    """Territory flood-fill options."""

    min_seed_population: int = Field(
        default=100, description="Settlements above this population seed the flood"
    )
    min_habitability: float = Field(
        default=5.0, description="Unsettled hexes at or below this stay unclaimed"
    )
    max_parent_hops: int = Field(default=100, description="Cap on parent chain walks")
    aggregate_min_tier: SettlementTier = Field(
        default=SettlementTier.TOWN, description="Lowest tier that gets territory aggregates"
    )


class TerritoryAggregate(BaseModel):
    """Totals for the domain of one hub, for the economy simulation."""

    hub: int = Field(description="Hub hex")
    nation_id: int = Field(default=0, description="Nation of the hub")
    population: int = Field(default=0, description="Hub plus all descendant settlements")
    settlement_counts: Dict[str, int] = Field(
        default_factory=dict, description="Direct children per tier name"
    )
    cells: int = Field(default=0, description="Hexes whose territory root is this hub")


def resolve_territory_root(grid: HexGrid, cell_id: int, max_hops: int = 100) -> int:
    """
    Follow parent links from a hex to its territory root.

    A link pointing outside the grid, a link that closes a cycle and a chain
    longer than ``max_hops`` all stop the walk; the hex holding the bad link
    becomes sovereign and its parent is cleared.

    Args:
        grid: Hex grid
        cell_id: Starting hex
        max_hops: Longest chain followed

    Returns:
        Index of the root hex
    """
    current = cell_id
    visited = {current}
    for _ in range(max_hops):
        parent = int(grid.parent_hex_id[current])
        if parent == NO_HEX:
            return current
        if not grid.in_bounds(parent):
            logger.warning("Parent index out of range, hex made sovereign", cell=current, parent=parent)
            grid.parent_hex_id[current] = NO_HEX
            return current
        if parent in visited:
            logger.warning("Cyclic parent chain, hex made sovereign", cell=current, parent=parent)
            grid.parent_hex_id[current] = NO_HEX
            return current
        visited.add(parent)
        current = parent

    if grid.parent_hex_id[current] != NO_HEX:
        logger.warning("Parent chain too long, hex made sovereign", cell=current, hops=max_hops)
        grid.parent_hex_id[current] = NO_HEX
    return current


def assign_settlement_territories(grid: HexGrid, max_hops: int = 100) -> int:
    """
    Set territory_id of every settlement to its root.

    Returns:
        Number of settlements resolved
    """
    settlements = grid.settlements()
    for cell_id in settlements:
        grid.territory_id[cell_id] = resolve_territory_root(grid, cell_id, max_hops)
    logger.info("Settlement territories assigned", settlements=len(settlements))
    return len(settlements)


def propagate_territory(grid: HexGrid, options: Optional[TerritoryOptions] = None) -> int:
    """
    Flood nation and territory outward from populated settlements.

    Unsettled hexes lose any earlier claim first. Seeds are affiliated
    settlements above the population threshold, queued in index order; a
    breadth-first wave then claims unsettled, habitable land hexes. Water is
    never crossed and a claimed hex is never overwritten.

    Args:
        grid: Hex grid with settlement territories assigned
        options: Flood options

    Returns:
        Number of hexes claimed
    """
    options = options or TerritoryOptions()

    unsettled = grid.settlement_tier == SettlementTier.NONE
    grid.nation_id[unsettled] = 0
    grid.territory_id[unsettled] = NO_HEX

    seeds = np.flatnonzero(
        (~unsettled) & (grid.nation_id > 0) & (grid.population > options.min_seed_population)
    ).tolist()

    queue = deque(seeds)
    visited = set(seeds)
    claimed = 0
    while queue:
        current = queue.popleft()
        nation = grid.nation_id[current]
        territory = grid.territory_id[current]
        for neighbor in grid.valid_neighbors(current):
            if neighbor in visited:
                continue
            visited.add(neighbor)
            if (
                grid.is_water[neighbor]
                or not unsettled[neighbor]
                or grid.habitability[neighbor] <= options.min_habitability
            ):
                continue
            grid.nation_id[neighbor] = nation
            grid.territory_id[neighbor] = territory
            queue.append(neighbor)
            claimed += 1

    logger.info("Territory propagated", seeds=len(seeds), claimed=claimed)
    return claimed


def aggregate_territories(
    grid: HexGrid, min_tier: SettlementTier = SettlementTier.TOWN
) -> Dict[int, TerritoryAggregate]:
    """
    Sum each hub's domain by walking its parent-link descendants.

    Args:
        grid: Hex grid after affiliation and territory propagation
        min_tier: Lowest settlement tier treated as a hub

    Returns:
        Mapping of hub hex to its aggregate
    """
    children: Dict[int, List[int]] = defaultdict(list)
    for cell_id in grid.settlements():
        parent = int(grid.parent_hex_id[cell_id])
        if parent != NO_HEX and grid.in_bounds(parent):
            children[parent].append(cell_id)

    claimed = grid.territory_id[grid.territory_id >= 0]
    cell_counts = np.bincount(claimed, minlength=grid.size)

    aggregates: Dict[int, TerritoryAggregate] = {}
    for hub in grid.settlements(min_tier):
        population = int(grid.population[hub])
        counts: Dict[str, int] = defaultdict(int)
        for child in children.get(hub, []):
            counts[SettlementTier(int(grid.settlement_tier[child])).name.lower()] += 1

        queue = deque(children.get(hub, []))
        visited = set(queue) | {hub}
        while queue:
            descendant = queue.popleft()
            population += int(grid.population[descendant])
            for child in children.get(descendant, []):
                if child not in visited:
                    visited.add(child)
                    queue.append(child)

        aggregates[hub] = TerritoryAggregate(
            hub=hub,
            nation_id=int(grid.nation_id[hub]),
            population=population,
            settlement_counts=dict(counts),
            cells=int(cell_counts[hub]),
        )

    logger.info("Territory aggregates calculated", hubs=len(aggregates))
    return aggregates
