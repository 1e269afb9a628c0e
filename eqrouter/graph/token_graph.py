"""Aggregated token-liquidity graph and no-arbitrage equilibrium solver.

All constant-product pools connecting the same token pair (u, v) collapse into
a single undirected edge whose weight is the sum of the square roots of the
individual pool invariants:

    K(u, v) = Σ √(reserve0ᵢ · reserve1ᵢ),   over all pools i linking u and v

Each token node carries its total reserve T across every pool it appears in
and a square-root price variable q. A trade adds the input amount to T of the
input token, then the whole network is driven back to a no-arbitrage
equilibrium with the output token's price held fixed. The drop in the output
token's total reserve is the amount the trade can extract.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass

import structlog

from eqrouter.amm.uniswap_v2 import UniswapV2Pool
from eqrouter.constants import (
    INITIAL_PRICE,
    LAYOUT_SPARSE,
    MAX_ITERATIONS,
    REFERENCE_TOKEN,
    TOLERANCE,
)
from eqrouter.errors import DisconnectedTokensError, InvalidPoolError, InvalidTradeError
from eqrouter.graph.components import UnionFind
from eqrouter.graph.liquidities import Liquidities, make_liquidities

logger = structlog.get_logger()


@dataclass
class TokenNode:
    """A token in the aggregated graph."""

    # Total amount of the token across all pools
    total_reserve: float = 0.0
    # Square-root price of the token, seeded from the previous solve
    price: float = INITIAL_PRICE


@dataclass(frozen=True)
class EquilibriumResult:
    """Outcome of one equilibrium solve."""

    amount_out: float
    # Post-equilibrium total reserve of the output token
    output_reserve: float
    # Gauss-Seidel sweeps performed
    iterations: int
    # Largest relative price change in the final sweep
    max_relative_change: float
    converged: bool


@dataclass(frozen=True)
class GraphSnapshot:
    """Copy of the mutable graph state, used to roll back failed trades."""

    reserves: tuple[float, ...]
    prices: tuple[float, ...]


class TokenGraph:
    """Undirected, weighted graph of tokens connected by aggregated liquidity.

    Geometric liquidities are fixed at construction. Total reserves and prices
    are mutated in place by every trade, so the equilibrium reached by one
    trade seeds the solve of the next.

    Usage:
        graph = TokenGraph.from_pools(pools, {"A": 0, "B": 1})
        result = graph.apply_trade_and_solve(0, 1, 20.0)
    """

    def __init__(
        self,
        nodes: list[TokenNode],
        liquidities: Liquidities,
        tolerance: float = TOLERANCE,
        max_iterations: int = MAX_ITERATIONS,
        reference_token: int = REFERENCE_TOKEN,
    ) -> None:
        """Initialize the graph from prepared nodes and liquidity storage.

        Args:
            nodes: One node per token index
            liquidities: Aggregated geometric liquidities between token pairs
            tolerance: Relative price change at which the solver stops
            max_iterations: Hard cap on solver sweeps
            reference_token: Index of the token whose price is pinned to 1.0

        Raises:
            ValueError: If reference_token is out of range
        """
        if not 0 <= reference_token < len(nodes):
            raise ValueError(
                f"reference_token {reference_token} out of range for {len(nodes)} tokens"
            )
        self.nodes = nodes
        self.liquidities = liquidities
        self.tolerance = tolerance
        self.max_iterations = max_iterations
        self.reference_token = reference_token

        # Liquidity is immutable, so neighbor lists are resolved once, in
        # ascending order for reproducible sweeps
        self._adjacency: list[list[tuple[int, float]]] = [
            sorted(liquidities.neighbors(token).items()) for token in range(len(nodes))
        ]

        union_find = UnionFind(len(nodes))
        for token, adjacent in enumerate(self._adjacency):
            for paired_token, _ in adjacent:
                union_find.union(token, paired_token)
        self._components = union_find.groups()
        self._component_of = [0] * len(nodes)
        for component_id, members in enumerate(self._components):
            for token in members:
                self._component_of[token] = component_id

    @classmethod
    def from_pools(
        cls,
        pools: Iterable[UniswapV2Pool],
        token_index: Mapping[str, int],
        layout: str = LAYOUT_SPARSE,
        tolerance: float = TOLERANCE,
        max_iterations: int = MAX_ITERATIONS,
        reference_token: int = REFERENCE_TOKEN,
    ) -> TokenGraph:
        """Build the aggregated token graph from pools.

        - accumulates T per token,
        - sums K(u, v) = Σ √kᵢ per token pair,
        - sets every price q to 1.0 (updated by the first equilibrium solve).

        Args:
            pools: Constant-product pools
            token_index: Mapping from token name to dense index in [0, n)
            layout: Liquidity storage layout ("sparse" or "dense")
            tolerance: Relative price change at which the solver stops
            max_iterations: Hard cap on solver sweeps
            reference_token: Index of the token whose price is pinned to 1.0

        Returns:
            TokenGraph ready for trading

        Raises:
            InvalidPoolError: If a pool is malformed, references a token missing
                from the index, or a token ends up without any pool
        """
        pools = list(pools)
        num_tokens = len(token_index)
        if not pools:
            raise InvalidPoolError("At least one pool is required")
        if num_tokens < 2:
            raise InvalidPoolError(f"At least two tokens are required, got {num_tokens}")

        nodes = [TokenNode() for _ in range(num_tokens)]
        liquidities = make_liquidities(layout, num_tokens)

        for position, pool in enumerate(pools):
            _validate_pool(position, pool)
            try:
                index_0 = token_index[pool.token0]
                index_1 = token_index[pool.token1]
            except LookupError as err:
                raise InvalidPoolError(
                    f"Pool {position} references a token missing from the index: {pool.tokens}"
                ) from err
            nodes[index_0].total_reserve += pool.reserve0
            nodes[index_1].total_reserve += pool.reserve1
            liquidities.add(index_0, index_1, pool.geometric_liquidity)

        isolated = [name for name, index in token_index.items() if nodes[index].total_reserve == 0]
        if isolated:
            raise InvalidPoolError(f"Tokens without any pool: {sorted(isolated)}")

        graph = cls(nodes, liquidities, tolerance, max_iterations, reference_token)
        logger.info(
            "token_graph_built",
            pool_count=len(pools),
            token_count=graph.token_count,
            edge_count=graph.edge_count,
            component_count=graph.component_count,
            layout=layout,
        )
        return graph

    # -------------------------------------------------------------------------
    # Inspection
    # -------------------------------------------------------------------------

    @property
    def token_count(self) -> int:
        return len(self.nodes)

    @property
    def edge_count(self) -> int:
        """Number of distinct token pairs with at least one pool."""
        return self.liquidities.edge_count

    @property
    def component_count(self) -> int:
        return len(self._components)

    def total_reserve(self, token: int) -> float:
        return self.nodes[token].total_reserve

    def price(self, token: int) -> float:
        return self.nodes[token].price

    def liquidity(self, token_a: int, token_b: int) -> float:
        """Aggregated geometric liquidity K(a, b), 0 when no pool links them."""
        return self.liquidities.get(token_a, token_b)

    def neighbors(self, token: int) -> dict[int, float]:
        return dict(self._adjacency[token])

    def component(self, token: int) -> list[int]:
        """Ascending token indices of the component containing token."""
        return list(self._components[self._component_of[token]])

    def connected(self, token_a: int, token_b: int) -> bool:
        return self._component_of[token_a] == self._component_of[token_b]

    def snapshot(self) -> GraphSnapshot:
        return GraphSnapshot(
            reserves=tuple(node.total_reserve for node in self.nodes),
            prices=tuple(node.price for node in self.nodes),
        )

    def restore(self, snapshot: GraphSnapshot) -> None:
        """Reset reserves and prices to a previously taken snapshot."""
        for node, reserve, price in zip(
            self.nodes, snapshot.reserves, snapshot.prices, strict=True
        ):
            node.total_reserve = reserve
            node.price = price

    # -------------------------------------------------------------------------
    # Trading
    # -------------------------------------------------------------------------

    def validate_trade(self, input_token: int, output_token: int, input_amount: float) -> None:
        """Check trade preconditions without touching any state.

        Raises:
            InvalidTradeError: Unknown index, identical tokens, or a negative
                or non-finite amount
            DisconnectedTokensError: No chain of pools links the two tokens
        """
        for token in (input_token, output_token):
            if not 0 <= token < self.token_count:
                raise InvalidTradeError(
                    f"Token index {token} out of range for {self.token_count} tokens"
                )
        if input_token == output_token:
            raise InvalidTradeError("Cannot trade a token for itself")
        if not math.isfinite(input_amount) or input_amount < 0:
            raise InvalidTradeError(
                f"Input amount must be finite and non-negative, got {input_amount}"
            )
        if not self.connected(input_token, output_token):
            raise DisconnectedTokensError(
                f"Tokens {input_token} and {output_token} are not connected by any pools"
            )

    def apply_trade_and_solve(
        self,
        input_token: int,
        output_token: int,
        input_amount: float,
    ) -> EquilibriumResult:
        """Sell input_amount of input_token and extract output_token.

        Adds input_amount to the total reserve of input_token, then resolves
        the new no-arbitrage equilibrium of the pool network. The difference
        in output_token reserves before and after equilibrium is the
        extractable output amount. Only the input and output reserves change.

        Raises:
            InvalidTradeError: If the trade violates a precondition; the graph
                is left untouched
        """
        self.validate_trade(input_token, output_token, input_amount)
        self.nodes[input_token].total_reserve += input_amount
        return self.no_arbitrage_equilibrium(output_token)

    def no_arbitrage_equilibrium(self, output_token: int) -> EquilibriumResult:
        """Fixed-point no-arbitrage solver (Gauss-Seidel).

        The system enforces conservation of total token balances:

            Σ_v K(u, v) · (q_u / q_v) = T_u,   for all u ≠ output_token

        iterating, in ascending token order and with the latest prices,

            q_u ← T_u / ( Σ_v K(u, v) / q_v )

        until the largest relative change of a sweep drops below the
        tolerance, or the sweep cap is hit. Only the component containing the
        output token is swept. Once prices settle, the post-equilibrium
        total of the output token f is

            T'_f = Σ_v K(f, v) · (q_f / q_v)

        and the extracted amount is Δf = T_f − T'_f. Δf is not clamped:
        negative or NaN values are left for the caller to reject. Prices that
        overflow to inf or underflow to 0 are not caught either; the next
        division by them raises ZeroDivisionError with the graph half updated.

        Complexity: O(max_iterations × E), E the number of edges.
        """
        nodes = self.nodes
        adjacency = self._adjacency
        tokens = [token for token in self.component(output_token) if token != output_token]

        iterations = 0
        max_relative_change = 0.0
        converged = False
        for iterations in range(1, self.max_iterations + 1):
            max_relative_change = 0.0

            for token in tokens:
                node = nodes[token]
                q = node.price

                denom = 0.0
                for paired_token, liquidity in adjacency[token]:
                    denom += liquidity / nodes[paired_token].price
                updated_q = node.total_reserve / denom

                relative_change = abs(updated_q - q) / abs(q)
                if relative_change > max_relative_change:
                    max_relative_change = relative_change

                node.price = updated_q

            if max_relative_change < self.tolerance:
                converged = True
                break

        if not converged:
            logger.warning(
                "equilibrium_not_converged",
                output_token=output_token,
                iterations=iterations,
                max_relative_change=max_relative_change,
                tolerance=self.tolerance,
            )

        self.normalize_prices(output_token)

        output_node = nodes[output_token]
        output_reserve = 0.0
        for token, liquidity in adjacency[output_token]:
            output_reserve += liquidity * (output_node.price / nodes[token].price)
        amount_out = output_node.total_reserve - output_reserve
        output_node.total_reserve = output_reserve

        logger.debug(
            "equilibrium_solved",
            output_token=output_token,
            iterations=iterations,
            max_relative_change=max_relative_change,
            amount_out=amount_out,
        )
        return EquilibriumResult(
            amount_out=amount_out,
            output_reserve=output_reserve,
            iterations=iterations,
            max_relative_change=max_relative_change,
            converged=converged,
        )

    def normalize_prices(self, token: int) -> None:
        """Rescale the prices of token's component so the reference price is 1.0.

        Prices are only defined up to a common factor. The configured
        reference token anchors the scale; a component that does not contain
        it is anchored on its lowest-index token instead.
        """
        members = self._components[self._component_of[token]]
        if self.connected(token, self.reference_token):
            reference = self.reference_token
        else:
            reference = members[0]
        reference_price = self.nodes[reference].price
        for member in members:
            self.nodes[member].price /= reference_price


def _validate_pool(position: int, pool: UniswapV2Pool) -> None:
    if pool.token0 == pool.token1:
        raise InvalidPoolError(f"Pool {position} pairs token {pool.token0!r} with itself")
    for reserve in (pool.reserve0, pool.reserve1):
        if not math.isfinite(reserve) or reserve <= 0:
            raise InvalidPoolError(
                f"Pool {position} has invalid reserve {reserve} (must be positive and finite)"
            )


__all__ = ["EquilibriumResult", "GraphSnapshot", "TokenGraph", "TokenNode"]
