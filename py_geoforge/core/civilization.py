"""
Civilization derivation pipeline.

Runs every phase over a HexGrid in dependency order:
1. Capital selection and frontier claim
2. Trunk trade network between capitals, then sea routes
3. Tier-by-tier affiliation with feeder roads
4. Settlement territory roots and territory flood fill
5. Territory aggregates for the economy simulation
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

import structlog
from pydantic import BaseModel, Field

from .affiliation import DEFAULT_TIER_PASSES, AffiliationOptions, AffiliationResolver, TierPass, TierStats
from .capitals import CapitalOptions, CapitalSelector
from .costs import CostModel, CostOptions
from .hex_grid import HexGrid
from .network import NetworkBuilder, NetworkOptions
from .roads import RoadLevel, RoadSegment, summarize_roads
from .territory import (
    TerritoryAggregate,
    TerritoryOptions,
    aggregate_territories,
    assign_settlement_territories,
    propagate_territory,
)
from ..config import settings
from ..utils.progress import Reporter, log_reporter

logger = structlog.get_logger()


class CivilizationOptions(BaseModel):
    """Options for a full civilization derivation."""

    costs: CostOptions = Field(default_factory=CostOptions)
    capitals: CapitalOptions = Field(default_factory=CapitalOptions)
    network: NetworkOptions = Field(default_factory=NetworkOptions)
    affiliation: AffiliationOptions = Field(default_factory=AffiliationOptions)
    territory: TerritoryOptions = Field(default_factory=TerritoryOptions)
    hex_size_km: Optional[float] = Field(
        default=None, description="Hex size for road summaries, defaults to settings.hex_size_km"
    )


@dataclass
class CivilizationResult:
    """Everything a derivation run produces besides the mutated grid."""

    capitals: List[int] = field(default_factory=list)
    roads: List[RoadSegment] = field(default_factory=list)
    tier_stats: List[TierStats] = field(default_factory=list)
    territories: Dict[int, TerritoryAggregate] = field(default_factory=dict)

    @property
    def trunk_roads(self) -> List[RoadSegment]:
        return [r for r in self.roads if r.level == RoadLevel.TRADE]

    @property
    def sea_routes(self) -> List[RoadSegment]:
        return [r for r in self.roads if r.is_sea_route]


class CivilizationGenerator:
    """Derives nations, settlement hierarchy, roads and territories."""

    def __init__(
        self,
        grid: HexGrid,
        options: Optional[CivilizationOptions] = None,
        reporter: Optional[Reporter] = None,
        tier_passes: Sequence[TierPass] = DEFAULT_TIER_PASSES,
    ):
        self.grid = grid
        self.options = options or CivilizationOptions()
        self.reporter = reporter or log_reporter
        self.tier_passes = tier_passes

    def generate(self) -> CivilizationResult:
        """
        Run all phases over the grid.

        Derivation outputs already on the grid are cleared first. Settlement
        tiers are kept, except that the chosen capitals are promoted.

        Returns:
            CivilizationResult with capitals, roads, tier statistics and
            territory aggregates
        """
        grid = self.grid
        opts = self.options
        result = CivilizationResult()

        logger.info("Starting civilization generation", cols=grid.cols, rows=grid.rows)
        grid.reset_derivation()

        # Capitals and initial nation partition
        selector = CapitalSelector(grid, opts.capitals)
        result.capitals = selector.select_capitals()
        selector.claim_frontier(result.capitals)
        self.reporter(f"Placed {len(result.capitals)} capitals", "capitals")

        # Trade network
        cost_model = CostModel(grid, opts.costs)
        network = NetworkBuilder(grid, cost_model, opts.network, self.reporter)
        result.roads.extend(network.build_trunk_network(result.capitals))
        if opts.network.build_sea_routes:
            result.roads.extend(network.build_sea_routes(result.capitals))
        hubs, components = network.component_count()
        self.reporter(f"Trade network built: {hubs} capitals in {components} networks", "trunk")

        # Settlement hierarchy
        resolver = AffiliationResolver(grid, cost_model, opts.affiliation, self.reporter)
        result.tier_stats = resolver.resolve(self.tier_passes)
        result.roads.extend(resolver.roads)

        # Territories
        territory = opts.territory
        assign_settlement_territories(grid, territory.max_parent_hops)
        claimed = propagate_territory(grid, territory)
        self.reporter(f"Territory claimed: {claimed} hexes", "territory")
        result.territories = aggregate_territories(grid, territory.aggregate_min_tier)

        hex_size_km = opts.hex_size_km if opts.hex_size_km is not None else settings.hex_size_km
        summary = summarize_roads(result.roads, hex_size_km)
        logger.info(
            "Civilization generation complete",
            capitals=len(result.capitals),
            roads=len(result.roads),
            road_km=round(summary["total_km"], 1),
            territories=len(result.territories),
        )
        self.reporter(
            f"Civilization complete: {len(result.roads)} roads, {summary['total_km']:.0f} km",
            "civilization",
        )
        return result
