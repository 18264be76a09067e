"""
Grid Model
==========
Geometry of an N x N dot grid ((N-1) x (N-1) cells) plus the two value
types that live on it: edge assignments and clue grids.

Edge ids are integers. Horizontal edges (r, c)-(r, c+1) come first with
id ``r * (N-1) + c``; vertical edges (r, c)-(r+1, c) follow with id
``N * (N-1) + r * N + c``. Dot index is ``row * N + col``.
"""

from __future__ import annotations

import numbers
from typing import Iterable, List, Optional, Sequence, Tuple

from slitherlink.solvers.solver_errors import InvalidInputError

Dot = Tuple[int, int]
Cell = Tuple[int, int]
EdgeKey = Tuple[Dot, Dot]
ClueGrid = List[List[Optional[int]]]

# Edge states (line / cross / undecided)
ON = 1
OFF = -1
UNKNOWN = 0

NO_CLUE = -1


class Grid:
    """Pure coordinate scheme for an N x N dot grid. Stateless once built."""

    def __init__(self, size: int):
        if isinstance(size, bool) or not isinstance(size, numbers.Integral) or size < 2:
            raise InvalidInputError(f"Grid size must be an integer >= 2, got {size!r}")
        n = int(size)
        self.size = n
        self.cells_per_side = n - 1
        self.dot_count = n * n
        self.cell_count = (n - 1) * (n - 1)
        self.horizontal_count = n * (n - 1)
        self.edge_count = 2 * n * (n - 1)

        # Index tables shared by the solver and generator
        self.edge_dot_ids: List[Tuple[int, int]] = []
        self.dot_edge_ids: List[List[int]] = [[] for _ in range(self.dot_count)]
        self.cell_edge_ids: List[Tuple[int, int, int, int]] = []
        self.edge_cell_ids: List[List[int]] = [[] for _ in range(self.edge_count)]

        for r in range(n):
            for c in range(n - 1):
                self.edge_dot_ids.append((r * n + c, r * n + c + 1))
        for r in range(n - 1):
            for c in range(n):
                self.edge_dot_ids.append((r * n + c, (r + 1) * n + c))

        for edge, (a, b) in enumerate(self.edge_dot_ids):
            self.dot_edge_ids[a].append(edge)
            self.dot_edge_ids[b].append(edge)

        for r in range(n - 1):
            for c in range(n - 1):
                top = r * (n - 1) + c
                bottom = (r + 1) * (n - 1) + c
                left = self.horizontal_count + r * n + c
                right = self.horizontal_count + r * n + c + 1
                cell = r * (n - 1) + c
                self.cell_edge_ids.append((top, bottom, left, right))
                for edge in (top, bottom, left, right):
                    self.edge_cell_ids[edge].append(cell)

    def __repr__(self) -> str:
        return f"Grid(size={self.size})"

    def __eq__(self, other) -> bool:
        return isinstance(other, Grid) and other.size == self.size

    def __hash__(self) -> int:
        return hash(("Grid", self.size))

    # ── Coordinates ────────────────────────────────────────────

    def dot_index(self, row: int, col: int) -> int:
        return row * self.size + col

    def dot_coords(self, index: int) -> Dot:
        return divmod(index, self.size)

    def cell_index(self, row: int, col: int) -> int:
        return row * self.cells_per_side + col

    def cell_coords(self, index: int) -> Cell:
        return divmod(index, self.cells_per_side)

    def dots(self) -> List[Dot]:
        return [(r, c) for r in range(self.size) for c in range(self.size)]

    def cells(self) -> List[Cell]:
        return [(r, c) for r in range(self.cells_per_side) for c in range(self.cells_per_side)]

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.size and 0 <= col < self.size

    def neighbors(self, row: int, col: int) -> List[Dot]:
        """Orthogonally adjacent dots (up, down, left, right order)."""
        ns = []
        if row > 0: ns.append((row - 1, col))
        if row < self.size - 1: ns.append((row + 1, col))
        if col > 0: ns.append((row, col - 1))
        if col < self.size - 1: ns.append((row, col + 1))
        return ns

    # ── Geometry ───────────────────────────────────────────────

    def cell_edges(self, row: int, col: int) -> Tuple[int, int, int, int]:
        """The four edges (top, bottom, left, right) bordering a cell."""
        return self.cell_edge_ids[self.cell_index(row, col)]

    def edges_of_dot(self, row: int, col: int) -> List[int]:
        """Edges touching a dot: 4 inside, 3 on a border, 2 in a corner."""
        return list(self.dot_edge_ids[self.dot_index(row, col)])

    def dot_degree(self, assignment: "EdgeAssignment", row: int, col: int) -> int:
        """Number of ``on`` edges touching dot (row, col)."""
        states = assignment.states
        return sum(1 for e in self.dot_edge_ids[self.dot_index(row, col)] if states[e] == ON)

    def edge_dots(self, edge: int) -> Tuple[Dot, Dot]:
        a, b = self.edge_dot_ids[edge]
        return self.dot_coords(a), self.dot_coords(b)

    def cells_of_edge(self, edge: int) -> List[Cell]:
        return [self.cell_coords(cell) for cell in self.edge_cell_ids[edge]]

    def is_horizontal(self, edge: int) -> bool:
        return edge < self.horizontal_count

    def edge_between(self, u: Dot, v: Dot) -> int:
        """Edge id joining two adjacent dots."""
        (r1, c1), (r2, c2) = sorted((tuple(u), tuple(v)))
        if not (self.in_bounds(r1, c1) and self.in_bounds(r2, c2)):
            raise InvalidInputError(f"Dots {u} and {v} are not on a {self.size}x{self.size} grid")
        if r1 == r2 and c2 == c1 + 1:
            return r1 * (self.size - 1) + c1
        if c1 == c2 and r2 == r1 + 1:
            return self.horizontal_count + r1 * self.size + c1
        raise InvalidInputError(f"Dots {u} and {v} are not adjacent")

    def edge_key(self, edge: int) -> EdgeKey:
        """Sorted dot-pair form, e.g. ((0, 0), (0, 1))."""
        return tuple(sorted(self.edge_dots(edge)))

    def edge_from_key(self, key: Sequence[Dot]) -> int:
        u, v = key
        return self.edge_between(u, v)


class EdgeAssignment:
    """
    Per-edge states (ON / OFF / UNKNOWN) over one grid.
    A complete assignment has no UNKNOWN edges.
    """

    __slots__ = ("grid", "states")

    def __init__(self, grid: Grid, states: Optional[Iterable[int]] = None):
        self.grid = grid
        if states is None:
            self.states = [UNKNOWN] * grid.edge_count
        else:
            self.states = list(states)
            if len(self.states) != grid.edge_count:
                raise InvalidInputError(
                    f"Assignment has {len(self.states)} edges, grid of size {grid.size} has {grid.edge_count}"
                )
            for st in self.states:
                if st not in (ON, OFF, UNKNOWN):
                    raise InvalidInputError(f"Invalid edge state {st!r}")

    @classmethod
    def empty(cls, grid: Grid) -> "EdgeAssignment":
        return cls(grid)

    @classmethod
    def from_on_edges(cls, grid: Grid, edges: Iterable[int]) -> "EdgeAssignment":
        """Complete assignment: given edges ON, everything else OFF."""
        states = [OFF] * grid.edge_count
        for e in edges:
            states[e] = ON
        return cls(grid, states)

    @classmethod
    def from_edge_keys(cls, grid: Grid, keys: Iterable[Sequence[Dot]]) -> "EdgeAssignment":
        return cls.from_on_edges(grid, (grid.edge_from_key(k) for k in keys))

    def __eq__(self, other) -> bool:
        return (
            isinstance(other, EdgeAssignment)
            and other.grid == self.grid
            and other.states == self.states
        )

    __hash__ = None

    def __repr__(self) -> str:
        return (
            f"EdgeAssignment(size={self.grid.size}, on={self.count(ON)}, "
            f"off={self.count(OFF)}, unknown={self.count(UNKNOWN)})"
        )

    def state(self, edge: int) -> int:
        return self.states[edge]

    def set(self, edge: int, state: int) -> None:
        self.states[edge] = state

    def count(self, state: int) -> int:
        return self.states.count(state)

    def is_complete(self) -> bool:
        return UNKNOWN not in self.states

    def on_edges(self) -> List[int]:
        return [e for e, st in enumerate(self.states) if st == ON]

    def edge_keys(self) -> set:
        """ON edges as a set of sorted dot pairs."""
        return {self.grid.edge_key(e) for e in self.on_edges()}

    def copy(self) -> "EdgeAssignment":
        return EdgeAssignment(self.grid, self.states)


# ── Clue grids ─────────────────────────────────────────────────

def _is_int(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool)


def normalize_clues(grid: Grid, clues) -> ClueGrid:
    """
    Validate a clue grid and return a fresh list-of-lists copy with ``None``
    for blanks. ``-1`` is accepted as a blank.
    """
    k = grid.cells_per_side
    try:
        rows = [list(row) for row in clues]
    except TypeError:
        raise InvalidInputError("Clue grid must be a 2D sequence") from None
    if len(rows) != k or any(len(row) != k for row in rows):
        raise InvalidInputError(f"Clue grid for grid size {grid.size} must be {k}x{k}")

    normalized: ClueGrid = []
    for r, row in enumerate(rows):
        out_row: List[Optional[int]] = []
        for c, value in enumerate(row):
            if value is None:
                out_row.append(None)
            elif not _is_int(value):
                raise InvalidInputError(f"Clue at ({r}, {c}) is not an integer: {value!r}")
            elif value == NO_CLUE:
                out_row.append(None)
            elif 0 <= value <= 4:
                out_row.append(int(value))
            else:
                raise InvalidInputError(f"Clue at ({r}, {c}) out of range [0, 4]: {value}")
        normalized.append(out_row)
    return normalized


def validate_clues(grid: Grid, clues) -> None:
    """Raise InvalidInputError unless ``clues`` is a well-formed clue grid."""
    normalize_clues(grid, clues)


def derive_clues(grid: Grid, assignment: EdgeAssignment) -> ClueGrid:
    """Full clue grid: every cell labelled with its count of ON edges."""
    states = assignment.states
    k = grid.cells_per_side
    clues: ClueGrid = []
    for r in range(k):
        row = []
        for c in range(k):
            row.append(sum(1 for e in grid.cell_edges(r, c) if states[e] == ON))
        clues.append(row)
    return clues


def clue_count(clues: Sequence[Sequence[Optional[int]]]) -> int:
    return sum(1 for row in clues for v in row if v is not None and v != NO_CLUE)


def density(clues: Sequence[Sequence[Optional[int]]]) -> float:
    """Fraction of cells carrying a clue."""
    total = sum(len(row) for row in clues)
    if total == 0:
        return 0.0
    return clue_count(clues) / total
