"""Connected components of the token graph."""

from __future__ import annotations

from collections import defaultdict


class UnionFind:
    """Union-Find over dense token indices.

    Uses path compression and union by rank for O(α(n)) amortized operations,
    where α is the inverse Ackermann function (effectively constant).
    """

    def __init__(self, size: int) -> None:
        self._parent: list[int] = list(range(size))
        self._rank: list[int] = [0] * size

    def find(self, x: int) -> int:
        """Find the root of element x with path compression."""
        root = x
        while self._parent[root] != root:
            root = self._parent[root]
        while self._parent[x] != root:
            self._parent[x], x = root, self._parent[x]
        return root

    def union(self, x: int, y: int) -> None:
        """Union the sets containing x and y using rank."""
        root_x = self.find(x)
        root_y = self.find(y)

        if root_x == root_y:
            return

        # Union by rank: attach smaller tree under larger
        if self._rank[root_x] < self._rank[root_y]:
            self._parent[root_x] = root_y
        elif self._rank[root_x] > self._rank[root_y]:
            self._parent[root_y] = root_x
        else:
            self._parent[root_y] = root_x
            self._rank[root_x] += 1

    def connected(self, x: int, y: int) -> bool:
        return self.find(x) == self.find(y)

    def groups(self) -> list[list[int]]:
        """Return every component as an ascending list of members.

        Components are ordered by their lowest member.
        """
        members: dict[int, list[int]] = defaultdict(list)
        for element in range(len(self._parent)):
            members[self.find(element)].append(element)
        return sorted(members.values(), key=lambda group: group[0])


__all__ = ["UnionFind"]
