"""Test helpers module for shared test utilities.

- constants: Token names and pool data
- factories: Pool factory functions
"""

from tests.helpers.constants import (
    DAI,
    ETH,
    STABLECOIN_NETWORK,
    STABLECOIN_TOTALS,
    TOKEN_A,
    TOKEN_B,
    TOKEN_C,
    TOKEN_D,
    USDC,
    USDT,
)
from tests.helpers.factories import make_pool, make_pools, make_stablecoin_network

__all__ = [
    # Constants
    "ETH",
    "USDC",
    "DAI",
    "USDT",
    "TOKEN_A",
    "TOKEN_B",
    "TOKEN_C",
    "TOKEN_D",
    "STABLECOIN_NETWORK",
    "STABLECOIN_TOTALS",
    # Factories
    "make_pool",
    "make_pools",
    "make_stablecoin_network",
]
