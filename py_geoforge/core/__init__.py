"""
Core civilization derivation functionality.
"""

from .hex_grid import GridConfig, HexGrid, SettlementTier, Vegetation
from .costs import CostModel, CostOptions
from .pathfinding import CostField, PathResult, compute_cost_field, find_path
from .roads import RoadLevel, RoadSegment
from .network import NetworkBuilder, NetworkOptions
from .clusters import SettlementCluster, aggregate_clusters
from .affiliation import AffiliationOptions, AffiliationResolver, TierPass
from .territory import TerritoryOptions, TerritoryAggregate
from .capitals import CapitalOptions, CapitalSelector
from .civilization import CivilizationGenerator, CivilizationOptions, CivilizationResult

__all__ = ['GridConfig', 'HexGrid', 'SettlementTier', 'Vegetation',
           'CostModel', 'CostOptions', 'CostField', 'PathResult', 'compute_cost_field', 'find_path',
           'RoadLevel', 'RoadSegment', 'NetworkBuilder', 'NetworkOptions',
           'SettlementCluster', 'aggregate_clusters',
           'AffiliationOptions', 'AffiliationResolver', 'TierPass',
           'TerritoryOptions', 'TerritoryAggregate', 'CapitalOptions', 'CapitalSelector',
           'CivilizationGenerator', 'CivilizationOptions', 'CivilizationResult']
