"""Aggregated token-liquidity graph and equilibrium solver.

Module structure:
- liquidities.py: Sparse and dense geometric-liquidity storage
- components.py: UnionFind for connected components
- token_graph.py: TokenGraph, aggregation and the Gauss-Seidel solver
"""

from eqrouter.graph.components import UnionFind
from eqrouter.graph.liquidities import PairwiseLiquidities, SparseLiquidities
from eqrouter.graph.token_graph import EquilibriumResult, GraphSnapshot, TokenGraph, TokenNode

__all__ = [
    "EquilibriumResult",
    "GraphSnapshot",
    "PairwiseLiquidities",
    "SparseLiquidities",
    "TokenGraph",
    "TokenNode",
    "UnionFind",
]
