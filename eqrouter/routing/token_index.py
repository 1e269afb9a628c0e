"""Token name to dense index lookup."""

from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping

from eqrouter.amm.uniswap_v2 import UniswapV2Pool
from eqrouter.errors import UnknownTokenError


class TokenIndex(Mapping[str, int]):
    """Maps token names to indices in [0, n), in first-seen order.

    Index order carries no meaning beyond picking the default reference
    token (index 0).
    """

    def __init__(self, tokens: Iterable[str]) -> None:
        self._index: dict[str, int] = {}
        self._names: list[str] = []
        for token in tokens:
            if token not in self._index:
                self._index[token] = len(self._names)
                self._names.append(token)

    @classmethod
    def from_pools(cls, pools: Iterable[UniswapV2Pool]) -> TokenIndex:
        return cls(token for pool in pools for token in pool.tokens)

    def __getitem__(self, token: str) -> int:
        try:
            return self._index[token]
        except KeyError:
            raise UnknownTokenError(f"Unknown token: {token!r}") from None

    # Mapping's defaults rely on KeyError, which UnknownTokenError is not
    def __contains__(self, token: object) -> bool:
        return token in self._index

    def get(self, token: str, default: int | None = None) -> int | None:  # type: ignore[override]
        return self._index.get(token, default)

    def __iter__(self) -> Iterator[str]:
        return iter(self._names)

    def __len__(self) -> int:
        return len(self._names)

    def name(self, index: int) -> str:
        """Token name for a dense index."""
        return self._names[index]

    @property
    def names(self) -> list[str]:
        return list(self._names)


__all__ = ["TokenIndex"]
