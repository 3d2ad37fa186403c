"""Tests for tier-by-tier settlement affiliation."""

import pytest
from unittest.mock import Mock

from py_geoforge.core.affiliation import (
    DEFAULT_TIER_PASSES,
    AffiliationOptions,
    AffiliationResolver,
    TierPass,
)
from py_geoforge.core.costs import CostModel
from py_geoforge.core.hex_grid import NO_HEX, GridConfig, HexGrid, SettlementTier
from py_geoforge.core.roads import RoadLevel

TOWN_PASS = TierPass(SettlementTier.TOWN, RoadLevel.TOWN)
VILLAGE_PASS = TierPass(SettlementTier.VILLAGE, RoadLevel.VILLAGE, clustered=True)


class TestAffiliationOptions:
    """Test affiliation option defaults."""

    def test_default_options(self):
        options = AffiliationOptions()
        assert options.max_cost_for_affiliation == 1500
        assert options.cluster_max_size == 7

    def test_default_tier_passes(self):
        tiers = [p.tier for p in DEFAULT_TIER_PASSES]
        assert tiers == sorted(tiers, reverse=True)
        assert DEFAULT_TIER_PASSES[-1].clustered


class TestAffiliationResolver:
    """Test hub resolution and feeder roads."""

    def setup_method(self):
        """Setup test fixtures."""
        self.grid = HexGrid.empty(GridConfig(12, 12))
        # Frontier claim gave all land to nation 1
        self.grid.nation_id[:] = 1
        self.capital = self.place(2, 2, SettlementTier.CAPITAL, 2000)

    def place(self, col, row, tier, population):
        cell = self.grid.index_of(col, row)
        self.grid.settlement_tier[cell] = tier
        self.grid.population[cell] = population
        return cell

    def resolver(self, **options):
        return AffiliationResolver(
            self.grid, CostModel(self.grid), AffiliationOptions(**options), reporter=Mock()
        )

    def test_town_joins_capital(self):
        grid = self.grid
        town = self.place(2, 7, SettlementTier.TOWN, 300)
        resolver = self.resolver()

        stats = resolver.resolve_tier(TOWN_PASS)

        assert stats.affiliated == 1
        assert stats.nationless == 0
        assert grid.parent_hex_id[town] == self.capital
        assert grid.nation_id[town] == 1
        assert grid.distance_to_parent[town] == pytest.approx(5.0)

        assert len(resolver.roads) == 1
        road = resolver.roads[0]
        assert road.level == RoadLevel.TOWN
        assert road.origin == town
        assert road.destination == self.capital
        assert road.path[0] == town and road.path[-1] == self.capital
        assert grid.road_level[town] == RoadLevel.TOWN
        assert grid.road_traffic[town] == pytest.approx(300.0)

    def test_feeder_joins_existing_road(self):
        """A village road ends where it meets the town road."""
        grid = self.grid
        town = self.place(2, 7, SettlementTier.TOWN, 300)
        village = self.place(4, 5, SettlementTier.VILLAGE, 40)
        resolver = self.resolver()

        resolver.resolve([TOWN_PASS, VILLAGE_PASS])

        assert grid.parent_hex_id[village] == town
        road = resolver.roads[-1]
        assert road.origin == village
        assert road.destination == town
        assert len(road.path) == 3
        junction = road.path[-1]
        assert junction != town
        assert grid.coords_of(junction)[0] == 2
        assert grid.road_level[junction] == RoadLevel.TOWN

    def test_beyond_ceiling_is_nationless(self):
        grid = self.grid
        town = self.place(2, 7, SettlementTier.TOWN, 300)

        stats = self.resolver(max_cost_for_affiliation=3).resolve_tier(TOWN_PASS)

        assert stats.nationless == 1
        assert grid.nation_id[town] == 0
        assert grid.parent_hex_id[town] == NO_HEX

    def test_isolated_village_is_nationless(self):
        grid = self.grid
        village = self.place(6, 5, SettlementTier.VILLAGE, 80)
        for neighbor in grid.neighbors[village]:
            grid.is_water[neighbor] = True

        stats = self.resolver().resolve_tier(VILLAGE_PASS)

        assert stats.nationless == 1
        assert grid.nation_id[village] == 0
        assert grid.parent_hex_id[village] == NO_HEX
        assert stats.roads == 0

    def test_unclaimed_candidate_uses_fallback(self):
        grid = self.grid
        grid.nation_id[:] = 0
        grid.nation_id[self.capital] = 2
        town = self.place(2, 7, SettlementTier.TOWN, 300)

        self.resolver().resolve_tier(TOWN_PASS)

        assert grid.parent_hex_id[town] == self.capital
        assert grid.nation_id[town] == 2

    def wall_off_capital(self):
        for neighbor in self.grid.neighbors[self.capital]:
            self.grid.is_water[neighbor] = True

    def test_unreachable_own_hub_falls_back_to_foreign(self):
        """A claimed town adopts the nation of the foreign hub it reaches."""
        grid = self.grid
        self.wall_off_capital()
        foreign = self.place(8, 8, SettlementTier.CAPITAL, 1500)
        grid.nation_id[foreign] = 2
        town = self.place(8, 4, SettlementTier.TOWN, 300)
        resolver = self.resolver()

        stats = resolver.resolve_tier(TOWN_PASS)

        assert stats.affiliated == 1
        assert grid.parent_hex_id[town] == foreign
        assert grid.nation_id[town] == 2
        road = resolver.roads[-1]
        assert road.origin == town
        assert road.destination == foreign
        assert road.nation_id == 2
        assert road.path[-1] == foreign

    def test_fallback_to_nationless_hub(self):
        grid = self.grid
        self.wall_off_capital()
        street = self.place(6, 6, SettlementTier.STREET, 250)
        grid.nation_id[street] = 0
        town = self.place(6, 9, SettlementTier.TOWN, 300)
        resolver = self.resolver()

        stats = resolver.resolve_tier(TOWN_PASS)

        assert stats.affiliated == 1
        assert stats.nationless == 0
        assert grid.parent_hex_id[town] == street
        assert grid.nation_id[town] == 0
        road = resolver.roads[-1]
        assert road.destination == street
        assert road.nation_id == 0

    def test_own_nation_hub_preferred(self):
        grid = self.grid
        foreign = self.place(6, 9, SettlementTier.CAPITAL, 1500)
        grid.nation_id[foreign] = 2
        town = self.place(6, 6, SettlementTier.TOWN, 300)
        own = self.place(6, 1, SettlementTier.CAPITAL, 1000)

        self.resolver().resolve_tier(TOWN_PASS)

        assert grid.parent_hex_id[town] == own
        assert grid.nation_id[town] == 1

    def test_cluster_members_share_parent(self):
        grid = self.grid
        a = self.place(8, 8, SettlementTier.VILLAGE, 60)
        b = self.place(8, 9, SettlementTier.VILLAGE, 30)

        stats = self.resolver().resolve_tier(VILLAGE_PASS)

        assert stats.clusters == 1
        assert stats.affiliated == 2
        assert grid.parent_hex_id[a] == self.capital
        assert grid.parent_hex_id[b] == self.capital
        assert stats.roads == 1

    def test_hubs_are_strictly_higher_tier(self):
        """Same-tier settlements never become each other's parent."""
        grid = self.grid
        grid.settlement_tier[self.capital] = SettlementTier.NONE
        a = self.place(4, 4, SettlementTier.TOWN, 300)
        b = self.place(4, 5, SettlementTier.TOWN, 200)

        stats = self.resolver().resolve_tier(TOWN_PASS)

        assert stats.nationless == 2
        assert grid.parent_hex_id[a] == NO_HEX
        assert grid.parent_hex_id[b] == NO_HEX

    def test_passes_run_highest_tier_first(self):
        self.place(2, 7, SettlementTier.TOWN, 300)
        self.place(4, 5, SettlementTier.VILLAGE, 40)
        resolver = self.resolver()

        stats = resolver.resolve([VILLAGE_PASS, TOWN_PASS])

        assert [s.tier for s in stats] == [SettlementTier.TOWN, SettlementTier.VILLAGE]
        assert resolver.reporter.call_count == 2
        assert resolver.reporter.call_args[0][1] == "affiliation"

    def test_invalid_tier_pass(self):
        with pytest.raises(ValueError):
            self.resolver().resolve([TierPass(SettlementTier.CAPITAL, RoadLevel.TRADE)])
