"""
Loop Generator
==============
Produces a random simple closed loop on the dot grid: the solution a
puzzle is built around.

Randomized self-avoiding walk with backtracking:
- start at a random dot, extend to random unvisited neighbours
- once the walk reaches its target length, prefer neighbours closer to
  the start dot and close the loop as soon as the start is adjacent
- dead ends are undone step by step (untried neighbours are kept per depth)
- an attempt that burns its step budget restarts from a new random dot
"""

from __future__ import annotations

import logging
import random
from typing import List, Optional, Tuple

from slitherlink.grid import Dot, EdgeAssignment, Grid
from slitherlink.solvers.solver_errors import (
    GenerationFailedError,
    SolverInvariantError,
    resolve_max_restarts,
)
from slitherlink.validators import is_single_loop

logger = logging.getLogger(__name__)


class LoopGenerator:
    MIN_LOOP_DOTS = 4
    DEFAULT_COVERAGE = (0.40, 0.70)    # target loop length as a share of all dots
    STEP_BUDGET_PER_DOT = 50

    def __init__(self, grid_size, rng_seed=None, *, rng: Optional[random.Random] = None,
                 max_restarts: Optional[int] = None,
                 coverage: Tuple[float, float] = DEFAULT_COVERAGE):
        self.grid = grid_size if isinstance(grid_size, Grid) else Grid(grid_size)
        self.rng = rng if rng is not None else random.Random(rng_seed)
        self.max_restarts = resolve_max_restarts(max_restarts)
        self.coverage = coverage
        self.attempts = 0
        self.last_path: List[Dot] = []

    def generate(self) -> EdgeAssignment:
        for attempt in range(1, self.max_restarts + 1):
            self.attempts = attempt
            path = self._attempt()
            if path is None:
                logger.debug("Loop attempt %d on %dx%d grid failed, restarting",
                             attempt, self.grid.size, self.grid.size)
                continue

            self.last_path = path
            assignment = self._to_assignment(path)
            ok, reason = is_single_loop(self.grid, assignment)
            if not ok:
                raise SolverInvariantError(f"Generated loop is invalid: {reason}")
            logger.debug("Generated loop of %d dots after %d attempt(s)", len(path), attempt)
            return assignment

        raise GenerationFailedError(
            f"No loop found on a {self.grid.size}x{self.grid.size} grid "
            f"after {self.max_restarts} restarts",
            attempts=self.attempts,
            grid_size=self.grid.size,
        )

    def _target_length(self) -> int:
        n = self.grid.size
        # A grid loop visits an even number of dots
        longest = n * n if n % 2 == 0 else n * n - 1
        low, high = self.coverage
        target = int(round(self.rng.uniform(low, high) * n * n))
        return max(self.MIN_LOOP_DOTS, min(target, longest))

    def _attempt(self) -> Optional[List[Dot]]:
        grid = self.grid
        rng = self.rng
        target = self._target_length()
        budget = self.STEP_BUDGET_PER_DOT * grid.dot_count

        start = (rng.randrange(grid.size), rng.randrange(grid.size))
        path = [start]
        visited = {start}
        options = [self._candidates(start, start, visited, steer=False)]

        steps = 0
        while options:
            steps += 1
            if steps > budget:
                return None

            current = path[-1]
            if len(path) >= target and start in grid.neighbors(*current):
                return path

            if not options[-1]:
                # Dead end: undo the last step
                options.pop()
                visited.discard(path.pop())
                continue

            nxt = options[-1].pop()
            if nxt in visited:
                continue
            path.append(nxt)
            visited.add(nxt)
            options.append(self._candidates(nxt, start, visited, steer=len(path) >= target))
        return None

    def _candidates(self, dot: Dot, start: Dot, visited, steer: bool) -> List[Dot]:
        """Untried neighbours, ordered so that list.pop() yields the next choice."""
        ns = [d for d in self.grid.neighbors(*dot) if d not in visited]
        self.rng.shuffle(ns)
        if steer:
            sr, sc = start
            ns.sort(key=lambda d: abs(d[0] - sr) + abs(d[1] - sc), reverse=True)
        return ns

    def _to_assignment(self, path: List[Dot]) -> EdgeAssignment:
        grid = self.grid
        edges = [grid.edge_between(path[i], path[i + 1]) for i in range(len(path) - 1)]
        edges.append(grid.edge_between(path[-1], path[0]))
        return EdgeAssignment.from_on_edges(grid, edges)


def generate_loop(grid_size, rng_seed=None, *, max_restarts: Optional[int] = None) -> EdgeAssignment:
    """Random complete assignment whose ON edges form one simple cycle."""
    return LoopGenerator(grid_size, rng_seed, max_restarts=max_restarts).generate()
