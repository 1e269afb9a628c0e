"""UniswapV2 pool record.

UniswapV2 uses the constant product formula: x * y = k.
Pools here are fee-free and hold float reserves; the token graph only reads
them at construction time.
"""

from __future__ import annotations

import math
from dataclasses import dataclass


@dataclass(frozen=True)
class UniswapV2Pool:
    """Represents a UniswapV2 liquidity pool."""

    token0: str
    token1: str
    reserve0: float
    reserve1: float

    @property
    def tokens(self) -> tuple[str, str]:
        return self.token0, self.token1

    @property
    def geometric_liquidity(self) -> float:
        """Square root of the pool invariant, sqrt(reserve0 * reserve1)."""
        return math.sqrt(self.reserve0 * self.reserve1)

    def get_reserves(self, token_in: str) -> tuple[float, float]:
        """Get reserves ordered as (reserve_in, reserve_out)."""
        if token_in == self.token0:
            return self.reserve0, self.reserve1
        elif token_in == self.token1:
            return self.reserve1, self.reserve0
        else:
            raise ValueError(f"Token {token_in} not in pool")

    def get_token_out(self, token_in: str) -> str:
        """Get the output token for a given input token."""
        if token_in == self.token0:
            return self.token1
        elif token_in == self.token1:
            return self.token0
        else:
            raise ValueError(f"Token {token_in} not in pool")

    def get_output_amount(self, token_in: str, amount_in: float) -> float:
        """Calculate output amount using constant product formula.

        Formula: amount_out = (amount_in * reserve_out) / (reserve_in + amount_in)

        Args:
            token_in: Token being sold into the pool
            amount_in: Input token amount

        Returns:
            Output token amount
        """
        reserve_in, reserve_out = self.get_reserves(token_in)
        return (amount_in * reserve_out) / (reserve_in + amount_in)

    def get_spot_price(self, token_in: str) -> float:
        """Instantaneous price of the output token in units of token_in."""
        reserve_in, reserve_out = self.get_reserves(token_in)
        return reserve_in / reserve_out


__all__ = ["UniswapV2Pool"]
