"""Pytest configuration and fixtures."""

import pytest

from eqrouter.amm.uniswap_v2 import UniswapV2Pool
from eqrouter.routing.router import EquilibriumRouter
from tests.helpers import make_pool, make_stablecoin_network


@pytest.fixture
def single_pool() -> list[UniswapV2Pool]:
    """One A/B pool with reserves 10/40."""
    return [make_pool()]


@pytest.fixture
def duplicate_pools() -> list[UniswapV2Pool]:
    """Two identical A/B pools, 20/80 in aggregate."""
    return [make_pool(), make_pool()]


@pytest.fixture
def stablecoin_network() -> list[UniswapV2Pool]:
    """Four-token network starting away from equilibrium."""
    return make_stablecoin_network()


@pytest.fixture
def single_pool_router(single_pool: list[UniswapV2Pool]) -> EquilibriumRouter:
    return EquilibriumRouter(single_pool)


@pytest.fixture
def network_router(stablecoin_network: list[UniswapV2Pool]) -> EquilibriumRouter:
    return EquilibriumRouter(stablecoin_network)
