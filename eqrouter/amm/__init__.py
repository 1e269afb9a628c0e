"""Constant-product pool records consumed by the token graph."""

from eqrouter.amm.uniswap_v2 import UniswapV2Pool

__all__ = ["UniswapV2Pool"]
