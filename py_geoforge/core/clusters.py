"""Grouping of adjacent low-tier settlements into bounded clusters."""

from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, List

import structlog

from .hex_grid import HexGrid

logger = structlog.get_logger()


@dataclass
class SettlementCluster:
    """Hex-adjacent settlements that share one affiliation decision."""

    representative: int
    members: List[int] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.members)


def aggregate_clusters(
    grid: HexGrid, settlements: Iterable[int], max_size: int
) -> List[SettlementCluster]:
    """
    Group settlements into clusters of at most ``max_size`` members.

    Settlements are seeded in order of descending population. Each unvisited
    seed absorbs hex-adjacent unvisited settlements breadth first until the
    cluster is full. The most populous member represents the cluster.

    Args:
        grid: Hex grid
        settlements: Settlement hexes to group, typically one tier
        max_size: Upper bound on cluster size

    Returns:
        Clusters in seed order; every input hex appears in exactly one
    """
    if max_size < 1:
        raise ValueError(f"max_size must be at least 1, got {max_size}")

    population = grid.population
    members = {int(s) for s in settlements}
    order = sorted(members, key=lambda s: (-int(population[s]), s))

    visited = set()
    clusters: List[SettlementCluster] = []
    for seed in order:
        if seed in visited:
            continue
        visited.add(seed)
        cluster = [seed]
        queue = deque([seed])
        while queue and len(cluster) < max_size:
            current = queue.popleft()
            for neighbor in grid.valid_neighbors(current):
                if len(cluster) >= max_size:
                    break
                if neighbor in members and neighbor not in visited:
                    visited.add(neighbor)
                    cluster.append(neighbor)
                    queue.append(neighbor)

        representative = min(cluster, key=lambda s: (-int(population[s]), s))
        clusters.append(SettlementCluster(representative=representative, members=cluster))

    logger.info(
        "Settlements clustered",
        settlements=len(members),
        clusters=len(clusters),
        max_size=max_size,
    )
    return clusters
