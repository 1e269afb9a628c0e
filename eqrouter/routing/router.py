"""Equilibrium routing facade.

Resolves token names, validates trades before any state changes, and runs
them through the aggregated TokenGraph. A trade either commits in full or,
when the solve breaks down numerically (or fails to converge under a strict
config), leaves the graph exactly as it found it.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from typing import Any

import structlog

from eqrouter.amm.uniswap_v2 import UniswapV2Pool
from eqrouter.config import DEFAULT_ROUTER_CONFIG, RouterConfig
from eqrouter.constants import REFERENCE_TOKEN
from eqrouter.errors import (
    DisconnectedTokensError,
    EquilibriumNotConvergedError,
    NumericalDegeneracyError,
    RouterError,
)
from eqrouter.graph.token_graph import GraphSnapshot, TokenGraph
from eqrouter.models.pools import parse_pools
from eqrouter.routing.token_index import TokenIndex
from eqrouter.routing.types import TradeResult

logger = structlog.get_logger()


class EquilibriumRouter:
    """Routes trades by solving the no-arbitrage equilibrium of a pool network.

    The router owns its graph. Trades mutate it, so callers sharing a router
    must serialize access: partially solved prices are never a valid state.

    Usage:
        router = EquilibriumRouter(pools)
        usdc_out = router.solve("ETH", "USDC", 10.0)

    Args:
        pools: Constant-product pools making up the network
        config: Solver configuration. Defaults to DEFAULT_ROUTER_CONFIG.
    """

    def __init__(
        self,
        pools: Iterable[UniswapV2Pool],
        config: RouterConfig | None = None,
    ) -> None:
        """Build the token index and aggregated graph, all prices at 1.0.

        Raises:
            InvalidPoolError: If the pools cannot form a valid graph
            UnknownTokenError: If config.reference_token is not in any pool
        """
        self.config = config if config is not None else DEFAULT_ROUTER_CONFIG
        pools = list(pools)
        self.token_index = TokenIndex.from_pools(pools)

        reference_token = REFERENCE_TOKEN
        if self.config.reference_token is not None and pools:
            reference_token = self.token_index[self.config.reference_token]

        self.graph = TokenGraph.from_pools(
            pools,
            self.token_index,
            layout=self.config.layout,
            tolerance=self.config.tolerance,
            max_iterations=self.config.max_iterations,
            reference_token=reference_token,
        )

    @classmethod
    def from_pool_data(
        cls,
        records: Iterable[Mapping[str, Any]],
        config: RouterConfig | None = None,
    ) -> EquilibriumRouter:
        """Build a router from raw pool mappings (token0, token1, reserve0, reserve1).

        Raises:
            InvalidPoolError: If any record fails validation
        """
        return cls(parse_pools(records), config=config)

    def __repr__(self) -> str:
        return (
            f"EquilibriumRouter(tokens={self.graph.token_count}, "
            f"edges={self.graph.edge_count}, layout={self.config.layout!r})"
        )

    # -------------------------------------------------------------------------
    # Trading
    # -------------------------------------------------------------------------

    def solve(self, input_token: str, output_token: str, input_amount: float) -> float:
        """Sell input_amount of input_token for as much output_token as possible.

        Updates the router state: the network is left at its new equilibrium,
        ready for the next trade.

        Returns:
            Amount of output_token extracted
        """
        return self.trade(input_token, output_token, input_amount).amount_out

    def trade(self, input_token: str, output_token: str, input_amount: float) -> TradeResult:
        """Like solve(), but also reports how well the equilibrium converged.

        Raises:
            UnknownTokenError: If either token is not in the index
            InvalidTradeError: If the tokens are identical, not connected, or
                the amount is negative or non-finite
            NumericalDegeneracyError: If the solve divided by zero, produced a
                non-finite amount, or left a price non-finite or non-positive
            EquilibriumNotConvergedError: If the sweep cap was hit and the
                config asks for strict convergence
        """
        result = self._execute(input_token, output_token, input_amount)
        logger.info(
            "trade_applied",
            input_token=input_token,
            output_token=output_token,
            amount_in=input_amount,
            amount_out=result.amount_out,
            iterations=result.iterations,
            converged=result.converged,
        )
        return result

    def quote(self, input_token: str, output_token: str, input_amount: float) -> TradeResult:
        """Compute a trade without committing it.

        Raises the same errors as trade().
        """
        snapshot = self.graph.snapshot()
        try:
            return self._execute(input_token, output_token, input_amount)
        finally:
            self.graph.restore(snapshot)

    def _execute(self, input_token: str, output_token: str, input_amount: float) -> TradeResult:
        """Validate, apply and solve one trade, rolling back on failure."""
        try:
            input_index = self.token_index[input_token]
            output_index = self.token_index[output_token]
            self.graph.validate_trade(input_index, output_index, input_amount)
        except RouterError as err:
            logger.warning(
                "trade_rejected",
                input_token=input_token,
                output_token=output_token,
                amount_in=input_amount,
                reason=str(err),
            )
            raise

        snapshot = self.graph.snapshot()
        try:
            equilibrium = self.graph.apply_trade_and_solve(
                input_index, output_index, input_amount
            )
        except ArithmeticError as err:
            self._reject_degenerate(snapshot, input_token, output_token, input_amount, str(err))
            raise NumericalDegeneracyError(
                f"Solving {input_token} -> {output_token} failed: {err}"
            ) from err

        if not math.isfinite(equilibrium.amount_out):
            reason = f"amount out is {equilibrium.amount_out}"
            self._reject_degenerate(snapshot, input_token, output_token, input_amount, reason)
            raise NumericalDegeneracyError(
                f"Solving {input_token} -> {output_token} produced {equilibrium.amount_out}"
            )

        bad_prices = self._degenerate_prices(output_index)
        if bad_prices:
            reason = f"prices out of range for {sorted(bad_prices)}"
            self._reject_degenerate(snapshot, input_token, output_token, input_amount, reason)
            raise NumericalDegeneracyError(
                f"Solving {input_token} -> {output_token} left degenerate prices: {bad_prices}"
            )

        if not equilibrium.converged and self.config.raise_on_non_convergence:
            self.graph.restore(snapshot)
            raise EquilibriumNotConvergedError(
                f"Equilibrium did not converge after {equilibrium.iterations} iterations "
                f"(max relative change {equilibrium.max_relative_change:.3e})"
            )

        return TradeResult.from_equilibrium(input_token, output_token, input_amount, equilibrium)

    def _degenerate_prices(self, output_index: int) -> dict[str, float]:
        """Prices in the traded component that are non-finite or not positive."""
        degenerate = {}
        for index in self.graph.component(output_index):
            price = self.graph.price(index)
            if not math.isfinite(price) or price <= 0:
                degenerate[self.token_index.name(index)] = price
        return degenerate

    def _reject_degenerate(
        self,
        snapshot: GraphSnapshot,
        input_token: str,
        output_token: str,
        input_amount: float,
        reason: str,
    ) -> None:
        self.graph.restore(snapshot)
        logger.error(
            "non_finite_output",
            input_token=input_token,
            output_token=output_token,
            amount_in=input_amount,
            reason=reason,
        )

    # -------------------------------------------------------------------------
    # State inspection
    # -------------------------------------------------------------------------

    @property
    def tokens(self) -> list[str]:
        """Token names in index order."""
        return self.token_index.names

    def total_reserve(self, token: str) -> float:
        return self.graph.total_reserve(self.token_index[token])

    def price(self, token: str) -> float:
        """Current square-root price variable q of a token."""
        return self.graph.price(self.token_index[token])

    def reserves(self) -> dict[str, float]:
        return {name: self.graph.total_reserve(index) for name, index in self.token_index.items()}

    def prices(self) -> dict[str, float]:
        return {name: self.graph.price(index) for name, index in self.token_index.items()}

    def liquidity(self, token_a: str, token_b: str) -> float:
        """Aggregated geometric liquidity between two tokens (0 if no pool)."""
        return self.graph.liquidity(self.token_index[token_a], self.token_index[token_b])

    def implied_price(self, base_token: str, quote_token: str) -> float:
        """Amount of quote_token per unit of base_token implied by current prices.

        Equal to (q_quote / q_base)². Meaningful once a trade has brought the
        tokens' component to equilibrium; before that all q are 1.0.

        Raises:
            DisconnectedTokensError: If no pools link the two tokens
        """
        base_index = self.token_index[base_token]
        quote_index = self.token_index[quote_token]
        if not self.graph.connected(base_index, quote_index):
            raise DisconnectedTokensError(
                f"Tokens {base_token} and {quote_token} are not connected by any pools"
            )
        ratio = self.graph.price(quote_index) / self.graph.price(base_index)
        return ratio * ratio


__all__ = ["EquilibriumRouter"]
