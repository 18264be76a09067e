"""
Loop Validators
===============
Search-free checks over complete edge assignments: clue satisfaction and
the single-simple-loop property. Used to confirm solver output and to
validate submitted solutions.
"""

from slitherlink.grid import ON, OFF, UNKNOWN


def count_edges_around_cell(grid, assignment, row, col):
    states = assignment.states
    return sum(1 for e in grid.cell_edges(row, col) if states[e] == ON)


def check_clues(grid, assignment, clues):
    """
    Every non-null clue equals the number of ON edges around its cell.
    Returns: (bool, reason)
    """
    for r, row in enumerate(clues):
        for c, clue in enumerate(row):
            if clue is None:
                continue
            if count_edges_around_cell(grid, assignment, r, c) != clue:
                return False, f"Clue at ({r}, {c}) not satisfied"
    return True, "OK"


def loop_statistics(grid, assignment):
    """
    Returns (component_count, loop_dots, loop_edges, bad_degree_dots) over
    the ON subgraph.
    """
    states = assignment.states
    on_edges = [e for e, st in enumerate(states) if st == ON]

    degree = [0] * grid.dot_count
    dsu = _DSU()
    for e in on_edges:
        a, b = grid.edge_dot_ids[e]
        degree[a] += 1
        degree[b] += 1
        dsu.union(a, b)

    active = [d for d in range(grid.dot_count) if degree[d] > 0]
    bad_degree = [d for d in active if degree[d] != 2]
    roots = {dsu.find(d) for d in active}
    return len(roots), len(active), len(on_edges), bad_degree


def is_single_loop(grid, assignment):
    """
    Check that the ON edges form exactly one simple closed loop:
    every touched dot has degree 2, one connected component, and the
    component has as many edges as dots.
    Returns: (bool, reason)
    """
    components, loop_dots, loop_edges, bad_degree = loop_statistics(grid, assignment)
    if loop_edges == 0:
        return False, "Empty board"
    if bad_degree:
        return False, "Not a closed loop"
    if components != 1:
        return False, "Multiple loops detected"
    if loop_dots != loop_edges:
        return False, "Not a simple cycle"
    return True, "OK"


def check_solution(grid, assignment, clues):
    """
    Full search-free validation of a candidate.
    Conditions:
    1. Complete (no undecided edges).
    2. All clues satisfied.
    3. Single simple loop.
    Returns: (bool, reason)
    """
    if assignment.grid != grid:
        return False, "Grid size mismatch"
    if any(st not in (ON, OFF) for st in assignment.states):
        if UNKNOWN in assignment.states:
            return False, "Assignment incomplete"
        return False, "Invalid edge state"

    ok, reason = check_clues(grid, assignment, clues)
    if not ok:
        return False, reason

    return is_single_loop(grid, assignment)


class _DSU:
    def __init__(self):
        self.parent = {}
        self.rank = {}

    def find(self, x):
        if x not in self.parent:
            self.parent[x] = x
            self.rank[x] = 0
            return x
        while self.parent[x] != x:
            self.parent[x] = self.parent[self.parent[x]]
            x = self.parent[x]
        return x

    def union(self, a, b):
        ra = self.find(a)
        rb = self.find(b)
        if ra == rb:
            return
        if self.rank[ra] < self.rank[rb]:
            self.parent[ra] = rb
        elif self.rank[ra] > self.rank[rb]:
            self.parent[rb] = ra
        else:
            self.parent[rb] = ra
            self.rank[ra] += 1
