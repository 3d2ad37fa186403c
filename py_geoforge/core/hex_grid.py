"""Hexagonal grid arena for civilization generation.

All per-hex attributes live in flat numpy arrays indexed by
``row * cols + col``. Cross references between hexes (parents, territory
roots, road paths) are plain integer indices into these arrays.
"""

from enum import IntEnum
from dataclasses import dataclass, field
from typing import Iterable, List, NamedTuple, Optional, Tuple

import numpy as np
import structlog
from scipy.sparse import coo_matrix
from scipy.sparse.csgraph import connected_components

logger = structlog.get_logger()

NO_HEX = -1  # parent_hex_id / territory_id sentinel


class SettlementTier(IntEnum):
    """Settlement hierarchy, lowest to highest."""

    NONE = 0
    VILLAGE = 1
    TOWN = 2
    STREET = 3
    REGIONAL_CAPITAL = 4
    CITY = 5
    CAPITAL = 6


class Vegetation(IntEnum):
    """Vegetation classes supplied by the terrain collaborator."""

    OPEN = 0
    SPARSE_FOREST = 1
    FOREST = 2
    DENSE_FOREST = 3
    CONIFEROUS_FOREST = 4
    MARSH = 5
    ALPINE = 6
    DESERT = 7


class GridConfig(NamedTuple):
    """Grid dimensions."""
    cols: int
    rows: int


def build_hex_neighbors(cols: int, rows: int) -> List[List[int]]:
    """
    Build neighbor lists for an odd-column offset hex grid.

    Odd columns are shifted half a hex down, so their diagonal neighbors sit
    on ``row + 1`` while even columns use ``row - 1``. Hexes on the map edge
    get fewer than six neighbors.

    Args:
        cols: Number of columns
        rows: Number of rows

    Returns:
        List of neighbor index lists, one per hex
    """
    neighbors: List[List[int]] = []
    for row in range(rows):
        for col in range(cols):
            diagonal_row = row + 1 if col % 2 else row - 1
            candidates = [
                (col, row - 1),
                (col, row + 1),
                (col - 1, row),
                (col + 1, row),
                (col - 1, diagonal_row),
                (col + 1, diagonal_row),
            ]
            neighbors.append([
                r * cols + c
                for c, r in candidates
                if 0 <= c < cols and 0 <= r < rows
            ])
    return neighbors


@dataclass
class HexGrid:
    """Struct-of-arrays hex grid shared by every generation phase.

    Terrain attributes are inputs and are never modified here. Settlement,
    nation, parent, territory and road arrays are mutated in place by the
    civilization passes.
    """
    cols: int
    rows: int

    # Terrain (inputs)
    elevation: np.ndarray      # meters, float32
    is_water: np.ndarray       # bool
    vegetation: np.ndarray     # Vegetation codes, int8
    flow: np.ndarray           # river flow, float32
    habitability: np.ndarray   # float32

    # Settlements (inputs, refined by capital selection)
    settlement_tier: np.ndarray  # SettlementTier codes, int8
    population: np.ndarray       # int64

    # Derivation outputs
    nation_id: np.ndarray           # int32, 0 = unclaimed
    parent_hex_id: np.ndarray       # int32, NO_HEX = no parent
    territory_id: np.ndarray        # int32, NO_HEX = unresolved
    road_level: np.ndarray          # RoadLevel codes, uint8
    road_traffic: np.ndarray        # float32
    distance_to_parent: np.ndarray  # float32

    neighbors: List[List[int]] = field(default_factory=list)

    # Input tiers saved before the first capital promotion
    base_settlement_tier: Optional[np.ndarray] = None

    def __post_init__(self):
        size = self.cols * self.rows
        for name in (
            "elevation", "is_water", "vegetation", "flow", "habitability",
            "settlement_tier", "population", "nation_id", "parent_hex_id",
            "territory_id", "road_level", "road_traffic", "distance_to_parent",
        ):
            if len(getattr(self, name)) != size:
                raise ValueError(
                    f"{name} has {len(getattr(self, name))} entries, expected {size}"
                )
        if not self.neighbors:
            self.neighbors = build_hex_neighbors(self.cols, self.rows)
        elif len(self.neighbors) != size:
            raise ValueError(f"neighbors has {len(self.neighbors)} entries, expected {size}")

    @classmethod
    def empty(cls, config: GridConfig) -> "HexGrid":
        """Allocate a flat, dry, unsettled grid."""
        size = config.cols * config.rows
        return cls(
            cols=config.cols,
            rows=config.rows,
            elevation=np.zeros(size, dtype=np.float32),
            is_water=np.zeros(size, dtype=bool),
            vegetation=np.zeros(size, dtype=np.int8),
            flow=np.zeros(size, dtype=np.float32),
            habitability=np.zeros(size, dtype=np.float32),
            settlement_tier=np.zeros(size, dtype=np.int8),
            population=np.zeros(size, dtype=np.int64),
            nation_id=np.zeros(size, dtype=np.int32),
            parent_hex_id=np.full(size, NO_HEX, dtype=np.int32),
            territory_id=np.full(size, NO_HEX, dtype=np.int32),
            road_level=np.zeros(size, dtype=np.uint8),
            road_traffic=np.zeros(size, dtype=np.float32),
            distance_to_parent=np.zeros(size, dtype=np.float32),
        )

    @classmethod
    def from_terrain(
        cls,
        config: GridConfig,
        elevation: Iterable[float],
        is_water: Iterable[bool],
        vegetation: Optional[Iterable[int]] = None,
        flow: Optional[Iterable[float]] = None,
        habitability: Optional[Iterable[float]] = None,
        settlement_tier: Optional[Iterable[int]] = None,
        population: Optional[Iterable[int]] = None,
    ) -> "HexGrid":
        """
        Wrap precomputed terrain and settlement data from upstream generators.

        Args:
            config: Grid dimensions
            elevation: Per-hex elevation in meters
            is_water: Per-hex water flag
            vegetation: Optional Vegetation codes
            flow: Optional river flow values
            habitability: Optional habitability scores
            settlement_tier: Optional SettlementTier codes
            population: Optional populations

        Returns:
            New HexGrid with derivation outputs reset
        """
        grid = cls.empty(config)
        grid.elevation[:] = np.asarray(list(elevation), dtype=np.float32)
        grid.is_water[:] = np.asarray(list(is_water), dtype=bool)
        if vegetation is not None:
            grid.vegetation[:] = np.asarray(list(vegetation), dtype=np.int8)
        if flow is not None:
            grid.flow[:] = np.asarray(list(flow), dtype=np.float32)
        if habitability is not None:
            grid.habitability[:] = np.asarray(list(habitability), dtype=np.float32)
        if settlement_tier is not None:
            grid.settlement_tier[:] = np.asarray(list(settlement_tier), dtype=np.int8)
        if population is not None:
            grid.population[:] = np.asarray(list(population), dtype=np.int64)
        return grid

    @property
    def size(self) -> int:
        return self.cols * self.rows

    def index_of(self, col: int, row: int) -> int:
        return row * self.cols + col

    def coords_of(self, index: int) -> Tuple[int, int]:
        return index % self.cols, index // self.cols

    def in_bounds(self, index: int) -> bool:
        return 0 <= index < self.size

    def hex_distance(self, a: int, b: int) -> int:
        """Number of hex steps between two hexes (cube-coordinate distance)."""
        col_a, row_a = self.coords_of(a)
        col_b, row_b = self.coords_of(b)
        z_a = row_a - (col_a - (col_a & 1)) // 2
        z_b = row_b - (col_b - (col_b & 1)) // 2
        dx = col_a - col_b
        dz = z_a - z_b
        return max(abs(dx), abs(dz), abs(dx + dz))

    def is_settlement(self, index: int) -> bool:
        return self.settlement_tier[index] > SettlementTier.NONE

    def settlements(self, min_tier: SettlementTier = SettlementTier.VILLAGE) -> List[int]:
        """Indices of settlements at or above ``min_tier``, ascending."""
        return np.flatnonzero(self.settlement_tier >= min_tier).tolist()

    def settlements_of_tier(self, tier: SettlementTier) -> List[int]:
        return np.flatnonzero(self.settlement_tier == tier).tolist()

    def valid_neighbors(self, index: int) -> List[int]:
        """Neighbors of a hex, skipping malformed out-of-range entries."""
        size = self.size
        return [n for n in self.neighbors[index] if 0 <= n < size]

    def land_neighbors(self, index: int) -> List[int]:
        return [n for n in self.valid_neighbors(index) if not self.is_water[n]]

    def parent_of(self, index: int) -> Optional[int]:
        parent = int(self.parent_hex_id[index])
        return None if parent == NO_HEX else parent

    def label_landmasses(self) -> np.ndarray:
        """
        Label connected land regions.

        Returns:
            int32 array with a landmass label per land hex and -1 for water
        """
        land = ~self.is_water
        rows, cols = [], []
        for i in range(self.size):
            if not land[i]:
                continue
            for n in self.valid_neighbors(i):
                if land[n]:
                    rows.append(i)
                    cols.append(n)

        adjacency = coo_matrix(
            (
                np.ones(len(rows), dtype=np.int8),
                (np.asarray(rows, dtype=np.int64), np.asarray(cols, dtype=np.int64)),
            ),
            shape=(self.size, self.size),
        ).tocsr()
        _, labels = connected_components(adjacency, directed=False)

        result = np.full(self.size, -1, dtype=np.int32)
        # Relabel so landmass ids are compact and ordered by first hex
        _, compact = np.unique(labels[land], return_inverse=True)
        result[land] = compact
        logger.debug("Landmasses labelled", count=int(compact.max()) + 1 if compact.size else 0)
        return result

    def snapshot_settlement_tiers(self) -> None:
        """Remember the input tiers so promotions can be undone by reset_derivation."""
        if self.base_settlement_tier is None:
            self.base_settlement_tier = self.settlement_tier.copy()

    def reset_derivation(self) -> None:
        """Clear all civilization outputs, keeping terrain and input settlements.

        Tiers promoted since the last snapshot are restored to their input values.
        """
        if self.base_settlement_tier is not None:
            self.settlement_tier[:] = self.base_settlement_tier
            self.base_settlement_tier = None
        self.nation_id.fill(0)
        self.parent_hex_id.fill(NO_HEX)
        self.territory_id.fill(NO_HEX)
        self.road_level.fill(0)
        self.road_traffic.fill(0)
        self.distance_to_parent.fill(0)
