"""Tests for capital selection and the frontier claim."""

import pytest

from py_geoforge.core.capitals import CapitalOptions, CapitalSelector
from py_geoforge.core.hex_grid import NO_HEX, GridConfig, HexGrid, SettlementTier


class TestCapitalOptions:
    """Test capital option defaults."""

    def test_default_options(self):
        options = CapitalOptions()
        assert options.nations_number == 4
        assert options.region_cols == 3
        assert options.region_rows == 3
        assert options.min_capital_tier == SettlementTier.TOWN


class TestSelectCapitals:
    """Test region-partitioned capital selection."""

    def setup_method(self):
        """Setup test fixtures."""
        self.grid = HexGrid.empty(GridConfig(30, 30))

    def place(self, col, row, population, tier=SettlementTier.TOWN):
        cell = self.grid.index_of(col, row)
        self.grid.settlement_tier[cell] = tier
        self.grid.population[cell] = population
        return cell

    def test_region_of(self):
        selector = CapitalSelector(self.grid)
        assert selector.region_of(self.grid.index_of(0, 0)) == 0
        assert selector.region_of(self.grid.index_of(15, 15)) == 4
        assert selector.region_of(self.grid.index_of(29, 29)) == 8
        assert selector.region_of(self.grid.index_of(25, 2)) == 2

    def test_best_per_region_ranked_by_population(self):
        grid = self.grid
        self.place(1, 1, 500)
        best_west = self.place(5, 5, 900)
        center = self.place(15, 15, 700)
        south_east = self.place(25, 25, 300)
        self.place(25, 2, 100)

        capitals = CapitalSelector(grid, CapitalOptions(nations_number=3)).select_capitals()

        assert capitals == [best_west, center, south_east]
        for nation_id, capital in enumerate(capitals, start=1):
            assert grid.settlement_tier[capital] == SettlementTier.CAPITAL
            assert grid.nation_id[capital] == nation_id
            assert grid.parent_hex_id[capital] == NO_HEX
        # Runner-up in a region keeps its tier
        assert grid.settlement_tier[grid.index_of(1, 1)] == SettlementTier.TOWN

    def test_fewer_candidates_than_requested(self):
        self.place(5, 5, 900)
        self.place(15, 15, 700)

        capitals = CapitalSelector(self.grid, CapitalOptions(nations_number=10)).select_capitals()

        assert len(capitals) == 2

    def test_no_candidates(self):
        self.place(5, 5, 900, tier=SettlementTier.VILLAGE)
        assert CapitalSelector(self.grid).select_capitals() == []

    def test_water_and_empty_settlements_ineligible(self):
        grid = self.grid
        flooded = self.place(5, 5, 900)
        grid.is_water[flooded] = True
        self.place(15, 15, 0)
        town = self.place(25, 25, 100)

        assert CapitalSelector(grid).select_capitals() == [town]

    def test_capitals_spaced_across_region_border(self):
        """Neighbouring region winners one hex apart cannot both become capitals."""
        first = self.place(9, 5, 900)
        self.place(10, 5, 800)
        third = self.place(25, 25, 300)
        options = CapitalOptions(nations_number=2, min_capital_distance=5)

        capitals = CapitalSelector(self.grid, options).select_capitals()

        assert capitals == [first, third]
        assert self.grid.settlement_tier[self.grid.index_of(10, 5)] == SettlementTier.TOWN

    def test_spacing_disabled_by_default(self):
        first = self.place(9, 5, 900)
        second = self.place(10, 5, 800)

        capitals = CapitalSelector(self.grid, CapitalOptions(nations_number=2)).select_capitals()

        assert capitals == [first, second]

    def test_spacing_can_leave_fewer_capitals(self):
        self.place(9, 5, 900)
        self.place(10, 5, 800)

        options = CapitalOptions(nations_number=2, min_capital_distance=5)
        assert len(CapitalSelector(self.grid, options).select_capitals()) == 1

    def test_population_tie_goes_to_lower_index(self):
        first = self.place(2, 2, 500)
        self.place(4, 4, 500)

        assert CapitalSelector(self.grid, CapitalOptions(nations_number=1)).select_capitals() == [first]


class TestClaimFrontier:
    """Test the distance-based initial nation claim."""

    def setup_method(self):
        """Setup test fixtures."""
        self.grid = HexGrid.empty(GridConfig(30, 10))
        grid = self.grid
        self.west = grid.index_of(5, 5)
        self.east = grid.index_of(15, 5)
        grid.nation_id[self.west] = 1
        grid.nation_id[self.east] = 2

    def test_nearest_capital_wins(self):
        grid = self.grid
        selector = CapitalSelector(grid, CapitalOptions(frontier_distance=35))

        claimed = selector.claim_frontier([self.west, self.east])

        assert claimed == grid.size
        assert grid.nation_id[grid.index_of(8, 5)] == 1
        assert grid.nation_id[grid.index_of(12, 5)] == 2
        assert grid.nation_id[grid.index_of(29, 0)] == 2

    def test_distance_limit(self):
        grid = self.grid
        selector = CapitalSelector(grid, CapitalOptions(frontier_distance=3))

        selector.claim_frontier([self.west])

        assert grid.nation_id[grid.index_of(7, 5)] == 1
        assert grid.nation_id[grid.index_of(7, 7)] == 1
        assert grid.nation_id[grid.index_of(8, 5)] == 0
        assert grid.nation_id[grid.index_of(20, 5)] == 0

    def test_water_not_claimed(self):
        grid = self.grid
        lake = grid.index_of(6, 5)
        grid.is_water[lake] = True

        claimed = CapitalSelector(grid).claim_frontier([self.west, self.east])

        assert grid.nation_id[lake] == 0
        assert claimed == grid.size - 1

    def test_capitals_keep_their_nation(self):
        grid = self.grid
        CapitalSelector(grid).claim_frontier([self.west, self.east])
        assert grid.nation_id[self.west] == 1
        assert grid.nation_id[self.east] == 2

    def test_no_capitals(self):
        assert CapitalSelector(self.grid).claim_frontier([]) == 0
