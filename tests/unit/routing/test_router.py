"""Tests for the EquilibriumRouter facade."""

import math

import pytest
from structlog.testing import capture_logs

from eqrouter.config import RouterConfig
from eqrouter.errors import (
    DisconnectedTokensError,
    EquilibriumNotConvergedError,
    InvalidPoolError,
    InvalidTradeError,
    NumericalDegeneracyError,
    UnknownTokenError,
)
from eqrouter.graph.token_graph import EquilibriumResult
from eqrouter.routing.router import EquilibriumRouter
from eqrouter.routing.types import TradeResult
from tests.helpers import (
    DAI,
    ETH,
    STABLECOIN_TOTALS,
    TOKEN_A,
    TOKEN_B,
    TOKEN_C,
    TOKEN_D,
    USDC,
    USDT,
    make_pool,
)


class TestConstruction:
    """Tests for router construction."""

    def test_prices_start_at_one(self, network_router):
        """No trade has settled the prices yet."""
        assert network_router.prices() == {ETH: 1.0, USDC: 1.0, DAI: 1.0, USDT: 1.0}

    def test_tokens_in_first_seen_order(self, network_router):
        """Tokens are indexed in the order pools mention them."""
        assert network_router.tokens == [ETH, USDC, DAI, USDT]

    def test_reserves(self, network_router):
        """Reserves aggregate every pool of the network."""
        assert network_router.reserves() == pytest.approx(STABLECOIN_TOTALS)

    def test_liquidity_lookup(self, duplicate_pools):
        """Liquidity is looked up by name in either order."""
        router = EquilibriumRouter(duplicate_pools)
        assert router.liquidity(TOKEN_A, TOKEN_B) == pytest.approx(40.0)
        assert router.liquidity(TOKEN_B, TOKEN_A) == router.liquidity(TOKEN_A, TOKEN_B)

    def test_dense_layout(self, stablecoin_network):
        """The dense layout is selectable through config."""
        router = EquilibriumRouter(stablecoin_network, RouterConfig(layout="dense"))
        assert router.liquidity(USDC, USDT) == 0.0
        assert "dense" in repr(router)

    def test_from_pool_data(self):
        """Raw mappings are validated and routed."""
        router = EquilibriumRouter.from_pool_data(
            [{"token0": TOKEN_A, "token1": TOKEN_B, "reserve0": "10", "reserve1": 40}]
        )
        assert router.solve(TOKEN_A, TOKEN_B, 10.0) == pytest.approx(20.0, rel=1e-9)

    def test_from_pool_data_invalid(self):
        """Invalid raw records raise InvalidPoolError."""
        with pytest.raises(InvalidPoolError):
            EquilibriumRouter.from_pool_data(
                [{"token0": TOKEN_A, "token1": TOKEN_B, "reserve0": 0, "reserve1": 40}]
            )

    def test_no_pools(self):
        with pytest.raises(InvalidPoolError):
            EquilibriumRouter([])

    def test_unknown_reference_token(self, single_pool):
        """A reference token must appear in some pool."""
        with pytest.raises(UnknownTokenError):
            EquilibriumRouter(single_pool, RouterConfig(reference_token="ZZZ"))

    def test_reference_token_by_name(self, stablecoin_network):
        """The named reference token keeps price 1.0."""
        router = EquilibriumRouter(stablecoin_network, RouterConfig(reference_token=DAI))
        router.solve(ETH, USDC, 10.0)
        assert router.price(DAI) == 1.0

    def test_logs_graph_built(self, single_pool):
        """Construction logs the graph dimensions."""
        with capture_logs() as logs:
            EquilibriumRouter(single_pool)
        built = [log for log in logs if log["event"] == "token_graph_built"]
        assert len(built) == 1
        assert built[0]["token_count"] == 2
        assert built[0]["edge_count"] == 1


class TestSolve:
    """Tests for solve() and trade()."""

    def test_single_pool_reduction(self, single_pool_router):
        """5 A into a 10/40 pool: 5 * 40 / 15 B."""
        assert single_pool_router.solve(TOKEN_A, TOKEN_B, 5.0) == pytest.approx(
            5.0 * 40.0 / 15.0, rel=1e-9
        )

    def test_duplicate_pools(self, duplicate_pools):
        """Two 10/40 pools act as one 20/80 pool."""
        router = EquilibriumRouter(duplicate_pools)
        assert router.solve(TOKEN_A, TOKEN_B, 20.0) == pytest.approx(40.0, rel=1e-9)

    def test_state_carries_over(self, single_pool_router):
        """Each trade starts from the reserves the last one left."""
        single_pool_router.solve(TOKEN_A, TOKEN_B, 10.0)
        assert single_pool_router.total_reserve(TOKEN_A) == 20.0
        assert single_pool_router.total_reserve(TOKEN_B) == pytest.approx(20.0, rel=1e-9)
        # The pool is now 20/20: 20 A buys 20 * 20 / 40 = 10 B
        assert single_pool_router.solve(TOKEN_A, TOKEN_B, 20.0) == pytest.approx(10.0, rel=1e-9)

    def test_trade_result(self, single_pool_router):
        """trade() reports amounts and convergence details."""
        result = single_pool_router.trade(TOKEN_A, TOKEN_B, 10.0)

        assert isinstance(result, TradeResult)
        assert result.input_token == TOKEN_A
        assert result.output_token == TOKEN_B
        assert result.amount_in == 10.0
        assert result.amount_out == pytest.approx(20.0, rel=1e-9)
        assert result.converged
        assert result.iterations >= 1
        assert result.effective_price == pytest.approx(0.5, rel=1e-9)

    def test_trade_logged(self, single_pool_router):
        """Committed trades are logged."""
        with capture_logs() as logs:
            single_pool_router.trade(TOKEN_A, TOKEN_B, 10.0)
        applied = [log for log in logs if log["event"] == "trade_applied"]
        assert len(applied) == 1
        assert applied[0]["input_token"] == TOKEN_A
        assert applied[0]["converged"] is True

    def test_zero_trade(self, single_pool_router):
        """A zero trade on one pool extracts nothing."""
        before = single_pool_router.reserves()
        assert single_pool_router.solve(TOKEN_A, TOKEN_B, 0.0) == pytest.approx(0.0, abs=1e-9)
        assert single_pool_router.reserves() == pytest.approx(before, rel=1e-12)


class TestTradeErrors:
    """Invalid trades fail fast and leave the router untouched."""

    @pytest.mark.parametrize(
        "input_token,output_token,amount,error",
        [
            ("ZZZ", USDC, 1.0, UnknownTokenError),
            (ETH, "ZZZ", 1.0, UnknownTokenError),
            (ETH, ETH, 1.0, InvalidTradeError),
            (ETH, USDC, -1.0, InvalidTradeError),
            (ETH, USDC, float("nan"), InvalidTradeError),
            (ETH, USDC, float("inf"), InvalidTradeError),
        ],
    )
    def test_rejected(self, network_router, input_token, output_token, amount, error):
        """Invalid trades raise and leave the router untouched."""
        reserves, prices = network_router.reserves(), network_router.prices()
        with pytest.raises(error):
            network_router.solve(input_token, output_token, amount)
        assert network_router.reserves() == reserves
        assert network_router.prices() == prices

    def test_rejection_logged(self, network_router):
        """Rejections are logged as warnings."""
        with capture_logs() as logs:
            with pytest.raises(InvalidTradeError):
                network_router.solve(ETH, ETH, 1.0)
        assert [log["event"] for log in logs] == ["trade_rejected"]
        assert logs[0]["log_level"] == "warning"

    def test_disconnected_tokens(self):
        """Tokens without a pool path between them cannot trade."""
        router = EquilibriumRouter(
            [make_pool(TOKEN_A, TOKEN_B), make_pool(TOKEN_C, TOKEN_D, 5.0, 5.0)]
        )
        with pytest.raises(DisconnectedTokensError):
            router.solve(TOKEN_A, TOKEN_D, 1.0)
        assert router.total_reserve(TOKEN_A) == 10.0

    def test_non_finite_output_rolls_back(self, network_router, monkeypatch):
        """A NaN amount from the solver is rejected and the trade undone."""

        def degenerate(output_token):
            return EquilibriumResult(
                amount_out=math.nan,
                output_reserve=math.nan,
                iterations=1,
                max_relative_change=math.nan,
                converged=False,
            )

        monkeypatch.setattr(network_router.graph, "no_arbitrage_equilibrium", degenerate)
        reserves = network_router.reserves()

        with capture_logs() as logs:
            with pytest.raises(NumericalDegeneracyError):
                network_router.solve(ETH, USDC, 10.0)

        assert network_router.reserves() == reserves
        assert any(log["event"] == "non_finite_output" for log in logs)


class TestNumericalDegeneracy:
    """Extreme but valid reserves that break the solve are rolled back."""

    def test_division_by_zero_rolls_back(self):
        """An underflowed liquidity zeroes a price denominator mid-sweep."""
        # sqrt(1e-300 * 1e-300) underflows to 0, sqrt(1e300 * 1e300) overflows to inf
        router = EquilibriumRouter(
            [
                make_pool(TOKEN_A, TOKEN_B, 1e-300, 1e-300),
                make_pool(TOKEN_B, TOKEN_C, 1e300, 1e300),
            ]
        )
        reserves, prices = router.reserves(), router.prices()

        with capture_logs() as logs:
            with pytest.raises(NumericalDegeneracyError):
                router.solve(TOKEN_A, TOKEN_C, 1e300)

        assert router.reserves() == reserves
        assert router.prices() == prices
        assert [log["event"] for log in logs if log["log_level"] == "error"] == [
            "non_finite_output"
        ]

    def test_infinite_price_not_committed(self):
        """A price overflowing to inf is rejected even with a finite amount out."""
        router = EquilibriumRouter(
            [
                make_pool(TOKEN_A, TOKEN_B, 1e-300, 1e300),
                make_pool(TOKEN_B, TOKEN_C, 1e-300, 1e300),
            ]
        )
        reserves, prices = router.reserves(), router.prices()

        with pytest.raises(NumericalDegeneracyError, match="degenerate prices"):
            router.solve(TOKEN_C, TOKEN_A, 1e300)

        assert router.reserves() == reserves
        assert router.prices() == prices
        assert all(math.isfinite(price) for price in router.prices().values())

    def test_quote_rolls_back_degenerate_solve(self):
        """quote() raises the same error and leaves state untouched."""
        router = EquilibriumRouter(
            [
                make_pool(TOKEN_A, TOKEN_B, 1e-300, 1e-300),
                make_pool(TOKEN_B, TOKEN_C, 1e300, 1e300),
            ]
        )
        reserves = router.reserves()
        with pytest.raises(NumericalDegeneracyError):
            router.quote(TOKEN_A, TOKEN_C, 1e300)
        assert router.reserves() == reserves


class TestConvergencePolicy:
    """Behavior when the sweep cap is reached."""

    def test_best_effort_by_default(self, stablecoin_network):
        """Hitting the cap commits a best-effort trade with a warning."""
        router = EquilibriumRouter(stablecoin_network, RouterConfig(max_iterations=1))
        with capture_logs() as logs:
            result = router.trade(ETH, USDC, 10.0)

        assert not result.converged
        assert result.iterations == 1
        assert router.total_reserve(ETH) == STABLECOIN_TOTALS[ETH] + 10.0
        assert any(log["event"] == "equilibrium_not_converged" for log in logs)

    def test_strict_mode_raises_and_rolls_back(self, stablecoin_network):
        """Strict config rejects an unconverged trade."""
        router = EquilibriumRouter(
            stablecoin_network,
            RouterConfig(max_iterations=1, raise_on_non_convergence=True),
        )
        reserves, prices = router.reserves(), router.prices()

        with pytest.raises(EquilibriumNotConvergedError, match="after 1 iterations"):
            router.solve(ETH, USDC, 10.0)

        assert router.reserves() == reserves
        assert router.prices() == prices

    def test_strict_mode_passes_when_converged(self, stablecoin_network):
        """Strict config does not get in the way of converged trades."""
        router = EquilibriumRouter(
            stablecoin_network, RouterConfig(raise_on_non_convergence=True)
        )
        assert router.trade(ETH, USDC, 10.0).converged


class TestQuote:
    """quote() computes a trade without committing it."""

    def test_quote_does_not_mutate(self, network_router):
        """Quoting leaves reserves and prices unchanged."""
        reserves, prices = network_router.reserves(), network_router.prices()
        network_router.quote(ETH, USDC, 10.0)
        assert network_router.reserves() == reserves
        assert network_router.prices() == prices

    def test_quote_matches_trade(self, network_router):
        """A quote equals the trade it previews."""
        quoted = network_router.quote(ETH, USDC, 10.0)
        traded = network_router.trade(ETH, USDC, 10.0)
        assert quoted == traded

    def test_quote_errors(self, network_router):
        with pytest.raises(UnknownTokenError):
            network_router.quote(ETH, "ZZZ", 1.0)


class TestImpliedPrice:
    def test_single_pool(self, single_pool_router):
        """10 A against 40 B: one A is worth four B."""
        single_pool_router.solve(TOKEN_A, TOKEN_B, 0.0)
        # 10 A against 40 B: one A is worth four B
        assert single_pool_router.implied_price(TOKEN_A, TOKEN_B) == pytest.approx(4.0, rel=1e-9)
        assert single_pool_router.implied_price(TOKEN_B, TOKEN_A) == pytest.approx(0.25, rel=1e-9)

    def test_follows_trades(self, single_pool_router):
        """Prices move with the reserves."""
        single_pool_router.solve(TOKEN_A, TOKEN_B, 10.0)
        # Pool is now 20/20
        assert single_pool_router.implied_price(TOKEN_A, TOKEN_B) == pytest.approx(1.0, rel=1e-9)

    def test_disconnected(self):
        """Prices of unlinked tokens cannot be compared."""
        router = EquilibriumRouter(
            [make_pool(TOKEN_A, TOKEN_B), make_pool(TOKEN_C, TOKEN_D, 5.0, 5.0)]
        )
        with pytest.raises(DisconnectedTokensError):
            router.implied_price(TOKEN_A, TOKEN_C)
