"""Geometric-liquidity storage for the token graph.

Two layouts satisfy the same contract:
- SparseLiquidities: one adjacency map per token, both directions written.
  Suited to large token sets with few pools per token.
- PairwiseLiquidities: dense n x n table addressed in canonical (min, max)
  order. Only pays off for near-complete graphs.

Either way liquidity(u, v) == liquidity(v, u) and a missing edge reads as 0.
"""

from __future__ import annotations

from typing import Protocol

from eqrouter.constants import LAYOUT_DENSE, LAYOUT_SPARSE


class Liquidities(Protocol):
    """Protocol for symmetric geometric-liquidity storage."""

    def add(self, token_a: int, token_b: int, liquidity: float) -> None: ...

    def get(self, token_a: int, token_b: int) -> float: ...

    def neighbors(self, token: int) -> dict[int, float]: ...

    @property
    def edge_count(self) -> int: ...


class SparseLiquidities:
    """Per-token adjacency maps of aggregated geometric liquidity."""

    def __init__(self, num_tokens: int) -> None:
        self._adjacency: list[dict[int, float]] = [{} for _ in range(num_tokens)]

    def add(self, token_a: int, token_b: int, liquidity: float) -> None:
        """Accumulate liquidity on the undirected edge (token_a, token_b)."""
        self._adjacency[token_a][token_b] = self._adjacency[token_a].get(token_b, 0.0) + liquidity
        self._adjacency[token_b][token_a] = self._adjacency[token_b].get(token_a, 0.0) + liquidity

    def get(self, token_a: int, token_b: int) -> float:
        return self._adjacency[token_a].get(token_b, 0.0)

    def neighbors(self, token: int) -> dict[int, float]:
        return dict(self._adjacency[token])

    @property
    def edge_count(self) -> int:
        return sum(len(adjacent) for adjacent in self._adjacency) // 2


class PairwiseLiquidities:
    """Dense pairwise liquidity table with a single canonical entry per pair."""

    def __init__(self, num_tokens: int) -> None:
        self._num_tokens = num_tokens
        self._inner: list[list[float]] = [[0.0] * num_tokens for _ in range(num_tokens)]

    @staticmethod
    def _index(token_a: int, token_b: int) -> tuple[int, int]:
        return (token_a, token_b) if token_a < token_b else (token_b, token_a)

    def add(self, token_a: int, token_b: int, liquidity: float) -> None:
        a, b = self._index(token_a, token_b)
        self._inner[a][b] += liquidity

    def get(self, token_a: int, token_b: int) -> float:
        a, b = self._index(token_a, token_b)
        return self._inner[a][b]

    def neighbors(self, token: int) -> dict[int, float]:
        adjacent: dict[int, float] = {}
        for other in range(self._num_tokens):
            if other == token:
                continue
            liquidity = self.get(token, other)
            if liquidity != 0.0:
                adjacent[other] = liquidity
        return adjacent

    @property
    def edge_count(self) -> int:
        return sum(
            1
            for a in range(self._num_tokens)
            for b in range(a + 1, self._num_tokens)
            if self._inner[a][b] != 0.0
        )


def make_liquidities(layout: str, num_tokens: int) -> Liquidities:
    """Create empty liquidity storage for the given layout name.

    Raises:
        ValueError: If the layout is not supported
    """
    if layout == LAYOUT_SPARSE:
        return SparseLiquidities(num_tokens)
    if layout == LAYOUT_DENSE:
        return PairwiseLiquidities(num_tokens)
    raise ValueError(f"Unknown liquidity layout: {layout!r}")


__all__ = ["Liquidities", "PairwiseLiquidities", "SparseLiquidities", "make_liquidities"]
