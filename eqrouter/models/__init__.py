"""Pydantic models for raw pool input."""

from eqrouter.models.pools import PoolData, parse_pools

__all__ = ["PoolData", "parse_pools"]
