"""
Shortest-path searches over the hex grid.

Two searches are provided:
1. find_path() - A* from one start to the first hex satisfying a goal predicate
2. compute_cost_field() - multi-source Dijkstra giving every hex its nearest
   source and the accumulated cost to reach it

Both break heap ties with an insertion counter so identical inputs always give
identical paths. Neither raises when nothing is reachable.
"""

import heapq
import itertools
import math
from dataclasses import dataclass
from typing import Callable, Iterable, List, NamedTuple, Optional, Tuple

import numpy as np
import structlog

from .hex_grid import NO_HEX, HexGrid

logger = structlog.get_logger()

INF = math.inf

Heuristic = Callable[[int], float]


class PathResult(NamedTuple):
    """A found path, start first, with its accumulated cost."""
    path: List[int]
    total_cost: float


def zero_heuristic(cell_id: int) -> float:
    return 0.0


def hex_heuristic(grid: HexGrid, target: int) -> Heuristic:
    """Hex step distance to ``target``; admissible while every step costs at least 1."""
    def heuristic(cell_id: int) -> float:
        return float(grid.hex_distance(cell_id, target))
    return heuristic


def find_path(
    start: int,
    is_goal: Callable[[int], bool],
    neighbors_of: Callable[[int], Iterable[int]],
    cost: Callable[[int, int], float],
    heuristic: Heuristic = zero_heuristic,
    max_cost: float = INF,
) -> Optional[PathResult]:
    """
    A* search from ``start`` to the first hex accepted by ``is_goal``.

    Args:
        start: Starting hex
        is_goal: Predicate marking acceptable destinations
        neighbors_of: Adjacent hexes of a hex
        cost: Directed edge cost, may be infinite
        heuristic: Lower bound of the remaining cost to any goal
        max_cost: Paths costing more than this are not explored

    Returns:
        PathResult, or None if no goal is reachable
    """
    counter = itertools.count()
    g_score = {start: 0.0}
    came_from = {start: None}
    closed = set()
    open_heap: List[Tuple[float, int, float, int]] = [
        (heuristic(start), next(counter), 0.0, start)
    ]

    while open_heap:
        _, _, g, current = heapq.heappop(open_heap)
        if current in closed:
            continue
        if is_goal(current):
            path = [current]
            while came_from[path[-1]] is not None:
                path.append(came_from[path[-1]])
            path.reverse()
            return PathResult(path, g)
        closed.add(current)

        for neighbor in neighbors_of(current):
            if neighbor in closed:
                continue
            step = cost(current, neighbor)
            if step == INF:
                continue
            tentative = g + step
            if tentative > max_cost:
                continue
            if tentative < g_score.get(neighbor, INF):
                g_score[neighbor] = tentative
                came_from[neighbor] = current
                heapq.heappush(
                    open_heap,
                    (tentative + heuristic(neighbor), next(counter), tentative, neighbor),
                )

    return None


@dataclass
class CostField:
    """Result of a multi-source Dijkstra flood."""

    cost: np.ndarray       # float64, inf where unreachable
    source_of: np.ndarray  # int32, nearest source or NO_HEX
    previous: np.ndarray   # int32, next hex toward the source or NO_HEX

    def nearest(self, cell_id: int) -> Optional[Tuple[int, float]]:
        """Nearest source of a hex and the cost to reach it."""
        source = int(self.source_of[cell_id])
        if source == NO_HEX:
            return None
        return source, float(self.cost[cell_id])

    def path_to_source(self, cell_id: int) -> List[int]:
        """Hexes from ``cell_id`` to its source, both included; empty if unreached."""
        if self.source_of[cell_id] == NO_HEX:
            return []
        path = [cell_id]
        while self.previous[path[-1]] != NO_HEX:
            path.append(int(self.previous[path[-1]]))
        return path


def compute_cost_field(
    grid: HexGrid,
    sources: Iterable[int],
    cost: Callable[[int, int], float],
    max_cost: float = INF,
) -> CostField:
    """
    Flood accumulated cost outward from every source at once.

    Each hex ends up with the cost of its cheapest source and that source's
    index, which resolves "nearest hub" for any number of hexes in one pass.

    Args:
        grid: Hex grid
        sources: Source hexes, seeded at cost 0
        cost: Directed edge cost, evaluated outward from the sources
        max_cost: Hexes beyond this cost are left unreached

    Returns:
        CostField covering the whole grid
    """
    sources = sorted({s for s in sources if grid.in_bounds(s)})
    field = CostField(
        cost=np.full(grid.size, INF, dtype=np.float64),
        source_of=np.full(grid.size, NO_HEX, dtype=np.int32),
        previous=np.full(grid.size, NO_HEX, dtype=np.int32),
    )
    best = [INF] * grid.size
    origin = [NO_HEX] * grid.size
    previous = [NO_HEX] * grid.size

    counter = itertools.count()
    heap: List[Tuple[float, int, int]] = []
    for source in sources:
        best[source] = 0.0
        origin[source] = source
        heapq.heappush(heap, (0.0, next(counter), source))

    settled = 0
    while heap:
        current_cost, _, current = heapq.heappop(heap)
        if current_cost > best[current]:
            continue
        settled += 1
        for neighbor in grid.valid_neighbors(current):
            step = cost(current, neighbor)
            if step == INF:
                continue
            total = current_cost + step
            if total > max_cost or total >= best[neighbor]:
                continue
            best[neighbor] = total
            origin[neighbor] = origin[current]
            previous[neighbor] = current
            heapq.heappush(heap, (total, next(counter), neighbor))

    field.cost[:] = best
    field.source_of[:] = origin
    field.previous[:] = previous
    logger.debug("Cost field computed", sources=len(sources), settled=settled)
    return field
