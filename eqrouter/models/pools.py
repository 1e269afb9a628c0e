"""Pydantic models for raw constant-product pool records.

Raw records arrive as plain mappings (e.g. decoded JSON) with the keys
token0, token1, reserve0 and reserve1. Validation rejects anything the
token graph cannot aggregate: blank token names, identical tokens, and
non-positive or non-finite reserves.
"""

from collections.abc import Iterable, Mapping
from typing import Any

from pydantic import BaseModel, Field, ValidationError, model_validator

from eqrouter.amm.uniswap_v2 import UniswapV2Pool
from eqrouter.errors import InvalidPoolError


class PoolData(BaseModel):
    """A two-token constant-product pool as supplied by the caller."""

    token0: str = Field(min_length=1)
    token1: str = Field(min_length=1)
    reserve0: float = Field(gt=0, allow_inf_nan=False)
    reserve1: float = Field(gt=0, allow_inf_nan=False)
    # Optional identifier, only used in error messages
    id: str | None = None

    model_config = {"extra": "ignore", "frozen": True}

    @model_validator(mode="after")
    def check_distinct_tokens(self) -> "PoolData":
        if self.token0 == self.token1:
            raise ValueError(f"Pool tokens must differ, got {self.token0} twice")
        return self

    def to_pool(self) -> UniswapV2Pool:
        return UniswapV2Pool(
            token0=self.token0,
            token1=self.token1,
            reserve0=self.reserve0,
            reserve1=self.reserve1,
        )


def parse_pools(records: Iterable[Mapping[str, Any]]) -> list[UniswapV2Pool]:
    """Validate raw pool records and convert them to pool objects.

    Args:
        records: Mappings with token0, token1, reserve0 and reserve1 keys

    Returns:
        Pools in input order

    Raises:
        InvalidPoolError: If any record fails validation
    """
    pools: list[UniswapV2Pool] = []
    for position, record in enumerate(records):
        try:
            data = PoolData.model_validate(record)
        except ValidationError as err:
            label = record.get("id", position) if isinstance(record, Mapping) else position
            raise InvalidPoolError(f"Invalid pool record {label}: {err}") from err
        pools.append(data.to_pool())
    return pools


__all__ = ["PoolData", "parse_pools"]
