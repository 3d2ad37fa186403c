"""
Tier-by-tier affiliation of settlements to superior hubs.

Tiers are processed from highest to lowest so every tier links to hubs that
are already affiliated:

1. Partition the tier's candidates by their current nation
2. Flood one cost field per nation from that nation's hubs
3. Flood a fallback field from all hubs for candidates still unresolved
4. Accept candidates below the affiliation cost ceiling, adopt the hub's
   nation and build a feeder road into the existing network

Candidates beyond the ceiling become nationless frontier settlements.
"""

from collections import defaultdict
from dataclasses import dataclass
from typing import Dict, List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import structlog
from pydantic import BaseModel, Field

from .clusters import SettlementCluster, aggregate_clusters
from .costs import CostModel
from .hex_grid import NO_HEX, HexGrid, SettlementTier
from .pathfinding import CostField, PathResult, compute_cost_field, find_path
from .roads import RoadLevel, RoadSegment, stamp_road
from ..utils.progress import Reporter, log_reporter

logger = structlog.get_logger()


class TierPass(NamedTuple):
    """One affiliation pass: the tier resolved and the road it builds."""
    tier: SettlementTier
    road_level: RoadLevel
    clustered: bool = False


DEFAULT_TIER_PASSES: Tuple[TierPass, ...] = (
    TierPass(SettlementTier.CITY, RoadLevel.HIGHWAY),
    TierPass(SettlementTier.REGIONAL_CAPITAL, RoadLevel.HIGHWAY),
    TierPass(SettlementTier.STREET, RoadLevel.TOWN),
    TierPass(SettlementTier.TOWN, RoadLevel.TOWN),
    TierPass(SettlementTier.VILLAGE, RoadLevel.VILLAGE, clustered=True),
)


class AffiliationOptions(BaseModel):
    """Affiliation and feeder road options."""

    max_cost_for_affiliation: float = Field(
        default=1500.0, description="Travel cost ceiling for joining a hub"
    )
    cluster_max_size: int = Field(default=7, description="Largest village cluster")
    feeder_search_factor: float = Field(
        default=2.0, description="Feeder search budget as a multiple of the ceiling"
    )
    traffic_per_person: float = Field(
        default=1.0, description="Road traffic added per inhabitant served"
    )


@dataclass
class TierStats:
    """Outcome of one affiliation pass."""
    tier: SettlementTier
    candidates: int = 0
    clusters: int = 0
    affiliated: int = 0
    nationless: int = 0
    roads: int = 0


class _Decision(NamedTuple):
    hub: int
    cost: float
    field: CostField


class AffiliationResolver:
    """Links settlements to their nearest eligible superior hub."""

    def __init__(
        self,
        grid: HexGrid,
        cost_model: CostModel,
        options: Optional[AffiliationOptions] = None,
        reporter: Optional[Reporter] = None,
    ):
        self.grid = grid
        self.cost_model = cost_model
        self.options = options or AffiliationOptions()
        self.reporter = reporter or log_reporter
        self.roads: List[RoadSegment] = []

    def resolve(
        self, tier_passes: Sequence[TierPass] = DEFAULT_TIER_PASSES
    ) -> List[TierStats]:
        """
        Run all tier passes, highest tier first.

        Returns:
            Statistics per pass, in processing order

        Raises:
            ValueError: If a pass names a tier that has no superior hubs
        """
        for tier_pass in tier_passes:
            if tier_pass.tier in (SettlementTier.NONE, SettlementTier.CAPITAL):
                raise ValueError(f"Cannot run an affiliation pass for tier {tier_pass.tier.name}")
        ordered = sorted(tier_passes, key=lambda p: p.tier, reverse=True)
        stats = []
        for tier_pass in ordered:
            tier_stats = self.resolve_tier(tier_pass)
            stats.append(tier_stats)
            self.reporter(
                f"{tier_pass.tier.name.replace('_', ' ').title()} affiliation complete: "
                f"{tier_stats.affiliated} affiliated, {tier_stats.nationless} frontier",
                "affiliation",
            )
        return stats

    def resolve_tier(self, tier_pass: TierPass) -> TierStats:
        """
        Affiliate every settlement of one tier.

        Args:
            tier_pass: Tier to resolve and road level to build

        Returns:
            TierStats for the pass
        """
        grid = self.grid
        stats = TierStats(tier=tier_pass.tier)
        settlements = grid.settlements_of_tier(tier_pass.tier)
        if not settlements:
            return stats

        hubs = np.flatnonzero(grid.settlement_tier > tier_pass.tier).tolist()
        if tier_pass.clustered:
            clusters = aggregate_clusters(grid, settlements, self.options.cluster_max_size)
        else:
            clusters = [SettlementCluster(representative=s, members=[s]) for s in settlements]

        stats.candidates = len(settlements)
        stats.clusters = len(clusters)
        logger.info(
            "Resolving tier affiliation",
            tier=tier_pass.tier.name,
            candidates=len(settlements),
            clusters=len(clusters),
            hubs=len(hubs),
        )
        if not hubs:
            logger.warning("No superior hubs for tier", tier=tier_pass.tier.name)

        decisions = self._nearest_hubs([c.representative for c in clusters], hubs)

        population = grid.population
        clusters.sort(key=lambda c: (-int(population[c.representative]), c.representative))
        for cluster in clusters:
            decision = decisions.get(cluster.representative)
            if decision is None:
                self._mark_nationless(cluster.members)
                stats.nationless += len(cluster.members)
                continue

            nation = int(grid.nation_id[decision.hub])
            for member in cluster.members:
                member_cost = decision.field.cost[member]
                grid.parent_hex_id[member] = decision.hub
                grid.nation_id[member] = nation
                grid.distance_to_parent[member] = (
                    member_cost if np.isfinite(member_cost) else decision.cost
                )
            stats.affiliated += len(cluster.members)

            road = self._build_feeder(cluster.representative, decision, nation, tier_pass.road_level)
            if road is not None:
                served = int(sum(int(population[m]) for m in cluster.members))
                stamp_road(grid, road, served * self.options.traffic_per_person)
                self.roads.append(road)
                stats.roads += 1

        logger.info(
            "Tier affiliation resolved",
            tier=tier_pass.tier.name,
            affiliated=stats.affiliated,
            nationless=stats.nationless,
            roads=stats.roads,
        )
        return stats

    def _nearest_hubs(self, candidates: List[int], hubs: List[int]) -> Dict[int, _Decision]:
        """Resolve the nearest hub per candidate, own nation first."""
        grid = self.grid
        ceiling = self.options.max_cost_for_affiliation
        decisions: Dict[int, _Decision] = {}
        if not hubs:
            return decisions

        by_nation: Dict[int, List[int]] = defaultdict(list)
        for candidate in candidates:
            by_nation[int(grid.nation_id[candidate])].append(candidate)

        for nation in sorted(n for n in by_nation if n != 0):
            nation_hubs = [h for h in hubs if grid.nation_id[h] == nation]
            if not nation_hubs:
                continue
            field = compute_cost_field(
                grid, nation_hubs, self.cost_model.land_cost(nation), max_cost=ceiling
            )
            for candidate in by_nation[nation]:
                nearest = field.nearest(candidate)
                if nearest is not None and nearest[1] < ceiling:
                    decisions[candidate] = _Decision(nearest[0], nearest[1], field)

        unresolved = [c for c in candidates if c not in decisions]
        if unresolved:
            fallback = compute_cost_field(
                grid, hubs, self.cost_model.land_cost(), max_cost=ceiling
            )
            for candidate in unresolved:
                nearest = fallback.nearest(candidate)
                if nearest is not None and nearest[1] < ceiling:
                    decisions[candidate] = _Decision(nearest[0], nearest[1], fallback)

        return decisions

    def _mark_nationless(self, members: List[int]) -> None:
        for member in members:
            self.grid.nation_id[member] = 0
            self.grid.parent_hex_id[member] = NO_HEX
            self.grid.distance_to_parent[member] = 0

    def _build_feeder(
        self, start: int, decision: _Decision, nation: int, level: RoadLevel
    ) -> Optional[RoadSegment]:
        result = self.find_path_to_existing_network(start, decision.hub, nation, level)
        if result is None:
            path = decision.field.path_to_source(start)
            if not path:
                return None
            result = PathResult(path, float(decision.field.cost[start]))
        if len(result.path) < 2:
            return None  # already on the network
        return RoadSegment(
            path=result.path,
            level=level,
            nation_id=nation,
            origin=start,
            destination=decision.hub,
            cost=float(result.total_cost),
        )

    def find_path_to_existing_network(
        self, start: int, hub: int, nation_id: int, min_road_level: RoadLevel
    ) -> Optional[PathResult]:
        """
        Path from a settlement to the nearest point of its nation's network.

        The goal is the hub itself or any hex of the same nation that already
        carries a road of at least ``min_road_level``, so feeders join the
        closest existing road instead of running to the hub's center.

        Args:
            start: Settlement hex
            hub: Parent hub hex
            nation_id: Nation the road is built for (0 for none)
            min_road_level: Weakest road class worth connecting to

        Returns:
            PathResult, or None if nothing is reachable within budget
        """
        grid = self.grid
        road_level = grid.road_level
        nations = grid.nation_id
        threshold = int(min_road_level)

        def is_goal(cell: int) -> bool:
            if cell == hub:
                return True
            return road_level[cell] >= threshold and nations[cell] == nation_id

        return find_path(
            start,
            is_goal,
            grid.land_neighbors,
            self.cost_model.land_cost(nation_id or None),
            max_cost=self.options.max_cost_for_affiliation * self.options.feeder_search_factor,
        )
