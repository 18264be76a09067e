"""
Union-find over dots with undo, used by the loop solver to spot cycles the
moment they close. Union by size without path compression, so every union
can be reversed exactly from the history stack.
"""

from __future__ import annotations

from typing import List, Tuple


class UndoableUnionFind:
    def __init__(self, count: int):
        self.parent: List[int] = list(range(count))
        self.size: List[int] = [1] * count
        # ON edges inside each component, keyed by root
        self.edges: List[int] = [0] * count
        self._history: List[Tuple[int, int, int]] = []

    def find(self, x: int) -> int:
        parent = self.parent
        while parent[x] != x:
            x = parent[x]
        return x

    def add_edge(self, a: int, b: int) -> Tuple[bool, int]:
        """
        Record an ON edge between dots a and b.
        Returns (closes_cycle, root of the merged component).
        """
        ra = self.find(a)
        rb = self.find(b)
        if ra == rb:
            self.edges[ra] += 1
            self._history.append((ra, -1, 0))
            return True, ra

        if self.size[ra] < self.size[rb]:
            ra, rb = rb, ra
        moved = self.edges[rb]
        self.parent[rb] = ra
        self.size[ra] += self.size[rb]
        self.edges[ra] += moved + 1
        self._history.append((ra, rb, moved))
        return False, ra

    def component_edges(self, x: int) -> int:
        return self.edges[self.find(x)]

    def mark(self) -> int:
        return len(self._history)

    def rollback(self, mark: int) -> None:
        history = self._history
        while len(history) > mark:
            ra, rb, moved = history.pop()
            if rb < 0:
                self.edges[ra] -= 1
                continue
            self.parent[rb] = rb
            self.size[ra] -= self.size[rb]
            self.edges[ra] -= moved + 1
