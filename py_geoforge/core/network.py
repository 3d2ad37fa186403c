"""
Trunk trade network between top-tier hubs.

Process:
1. Path every pair of hubs on the same landmass with A*
2. Sort the candidate edges by cost (ties by hub order)
3. Accept an edge only when it joins two Union-Find components (Kruskal)
4. Join the remaining components with sea routes between coastal hubs

The result is a spanning forest: H hubs in k reachable components give
exactly H - k land edges.
"""

from typing import List, NamedTuple, Optional, Sequence, Tuple

import numpy as np
import structlog
from pydantic import BaseModel, Field

from .costs import CostModel
from .hex_grid import HexGrid
from .pathfinding import PathResult, find_path, hex_heuristic
from .roads import RoadLevel, RoadSegment, stamp_road
from ..utils.progress import Reporter, format_progress_bar, log_reporter

logger = structlog.get_logger()


class NetworkOptions(BaseModel):
    """Trunk network options."""

    trunk_traffic: float = Field(default=100000.0, description="Traffic stamped on trunk roads")
    sea_route_traffic: float = Field(default=0.0, description="Traffic recorded for sea routes")
    build_sea_routes: bool = Field(default=True, description="Join separate landmasses by sea")
    report_every: int = Field(default=50, description="Hub pairs between progress reports")


class UnionFind:
    """Disjoint sets over positions 0..n-1 with path halving and union by rank."""

    def __init__(self, size: int):
        self.parent = np.arange(size, dtype=np.int32)
        self.rank = np.zeros(size, dtype=np.int8)
        self.components = size

    def find(self, item: int) -> int:
        parent = self.parent
        while parent[item] != item:
            parent[item] = parent[parent[item]]
            item = int(parent[item])
        return item

    def union(self, a: int, b: int) -> bool:
        """Merge the sets of ``a`` and ``b``; False if already joined."""
        root_a, root_b = self.find(a), self.find(b)
        if root_a == root_b:
            return False
        if self.rank[root_a] < self.rank[root_b]:
            root_a, root_b = root_b, root_a
        self.parent[root_b] = root_a
        if self.rank[root_a] == self.rank[root_b]:
            self.rank[root_a] += 1
        self.components -= 1
        return True

    def connected(self, a: int, b: int) -> bool:
        return self.find(a) == self.find(b)


class CandidateEdge(NamedTuple):
    """Pathed connection between two hubs, by position in the hub list."""
    cost: float
    a: int
    b: int
    path: List[int]


class NetworkBuilder:
    """Builds the minimum-cost trunk network connecting hubs."""

    def __init__(
        self,
        grid: HexGrid,
        cost_model: CostModel,
        options: Optional[NetworkOptions] = None,
        reporter: Optional[Reporter] = None,
    ):
        self.grid = grid
        self.cost_model = cost_model
        self.options = options or NetworkOptions()
        self.reporter = reporter or log_reporter
        self.landmass = grid.label_landmasses()
        self.union_find: Optional[UnionFind] = None

    def build_trunk_network(
        self, hubs: Sequence[int], level: RoadLevel = RoadLevel.TRADE
    ) -> List[RoadSegment]:
        """
        Connect hubs with a minimum spanning forest of land roads.

        Args:
            hubs: Hub hexes (capitals or major cities)
            level: Road level of the accepted edges

        Returns:
            One RoadSegment per accepted edge, in acceptance order
        """
        hubs = [int(h) for h in hubs]
        self.union_find = UnionFind(len(hubs))
        if len(hubs) < 2:
            logger.warning("Not enough hubs for a trunk network", hubs=len(hubs))
            return []

        logger.info("Building trunk network", hubs=len(hubs))
        candidates = self._candidate_edges(hubs)
        candidates.sort(key=lambda edge: (edge.cost, edge.a, edge.b))

        roads = []
        for edge in candidates:
            if not self.union_find.union(edge.a, edge.b):
                continue
            segment = RoadSegment(
                path=edge.path,
                level=level,
                nation_id=self._shared_nation(hubs[edge.a], hubs[edge.b]),
                origin=hubs[edge.a],
                destination=hubs[edge.b],
                cost=edge.cost,
            )
            stamp_road(self.grid, segment, self.options.trunk_traffic)
            roads.append(segment)

        logger.info(
            "Trunk network built",
            candidates=len(candidates),
            roads=len(roads),
            components=self.union_find.components,
        )
        return roads

    def _candidate_edges(self, hubs: List[int]) -> List[CandidateEdge]:
        grid = self.grid
        land_cost = self.cost_model.land_cost()
        total_pairs = len(hubs) * (len(hubs) - 1) // 2
        report_every = max(self.options.report_every, 1)

        candidates = []
        processed = 0
        for i in range(len(hubs)):
            for j in range(i + 1, len(hubs)):
                processed += 1
                if processed % report_every == 0:
                    self.reporter(
                        format_progress_bar(processed, total_pairs, prefix="Trunk routes"),
                        "trunk",
                    )

                start, target = hubs[i], hubs[j]
                if self.landmass[start] < 0 or self.landmass[start] != self.landmass[target]:
                    continue
                result = find_path(
                    start,
                    lambda cell, target=target: cell == target,
                    grid.land_neighbors,
                    land_cost,
                    hex_heuristic(grid, target),
                )
                if result is not None:
                    candidates.append(CandidateEdge(result.total_cost, i, j, result.path))
        return candidates

    def build_sea_routes(self, hubs: Sequence[int]) -> List[RoadSegment]:
        """
        Join trunk components that no land road can connect.

        Only coastal hubs take part. Candidate routes run over water only
        and are accepted Kruskal-style against the trunk's Union-Find, so
        each sea route links two previously separate components.

        Args:
            hubs: The same hub list passed to build_trunk_network

        Returns:
            Accepted sea routes
        """
        hubs = [int(h) for h in hubs]
        if self.union_find is None or len(self.union_find.parent) != len(hubs):
            self.union_find = UnionFind(len(hubs))
        if self.union_find.components <= 1:
            return []

        grid = self.grid
        coastal = [
            position for position, hub in enumerate(hubs)
            if any(grid.is_water[n] for n in grid.valid_neighbors(hub))
        ]

        candidates = []
        for x in range(len(coastal)):
            for y in range(x + 1, len(coastal)):
                a, b = coastal[x], coastal[y]
                if self.union_find.connected(a, b):
                    continue
                result = self._sea_path(hubs[a], hubs[b])
                if result is not None:
                    candidates.append(CandidateEdge(result.total_cost, a, b, result.path))
        candidates.sort(key=lambda edge: (edge.cost, edge.a, edge.b))

        routes = []
        for edge in candidates:
            if not self.union_find.union(edge.a, edge.b):
                continue
            routes.append(RoadSegment(
                path=edge.path,
                level=RoadLevel.SEA_ROUTE,
                nation_id=self._shared_nation(hubs[edge.a], hubs[edge.b]),
                origin=hubs[edge.a],
                destination=hubs[edge.b],
                cost=edge.cost,
            ))

        logger.info(
            "Sea routes built",
            coastal_hubs=len(coastal),
            routes=len(routes),
            components=self.union_find.components,
        )
        return routes

    def _sea_path(self, start: int, target: int) -> Optional[PathResult]:
        grid = self.grid
        sea_cost = self.cost_model.sea_cost(landings=(target,))

        def neighbors_of(cell: int) -> List[int]:
            return [n for n in grid.valid_neighbors(cell) if grid.is_water[n] or n == target]

        return find_path(
            start,
            lambda cell: cell == target,
            neighbors_of,
            sea_cost,
            hex_heuristic(grid, target),
        )

    def _shared_nation(self, a: int, b: int) -> int:
        nation_a = int(self.grid.nation_id[a])
        return nation_a if nation_a == int(self.grid.nation_id[b]) else 0

    def component_count(self) -> Tuple[int, int]:
        """Hubs and connected components of the last network built."""
        if self.union_find is None:
            return 0, 0
        return len(self.union_find.parent), self.union_find.components
