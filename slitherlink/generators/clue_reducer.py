"""
Clue Reducer
============
Greedy randomized clue removal with a uniqueness guard.

Walks a permutation of the clued cells, removing each clue only if the
solver still finds exactly one solution. Stops as soon as the density
drops into the policy's band. Density bands are targets, not hard
limits: a puzzle that cannot get there is emitted at the density reached.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import List, Optional, Tuple

from slitherlink.generators.difficulty_policy import DifficultyPolicy, removal_priority
from slitherlink.grid import ClueGrid, EdgeAssignment, Grid, density, normalize_clues
from slitherlink.solvers.loop_solver import LoopSolver
from slitherlink.solvers.solver_errors import InvalidInputError, SearchCancelledError
from slitherlink.validators import check_clues

logger = logging.getLogger(__name__)


@dataclass
class ReductionStats:
    attempts: int = 0           # solver calls made
    removals: int = 0           # clues removed
    solver_nodes: int = 0       # total search nodes across all calls
    state_limit_hits: int = 0   # checks that ran out of states; clue kept
    start_density: float = 0.0
    final_density: float = 0.0


class ClueReducer:
    UNIQUENESS_BOUND = 2    # 0, 1 or "more than one" is all the reducer needs

    def __init__(self, grid_size, policy: DifficultyPolicy, rng_seed=None, *,
                 rng: Optional[random.Random] = None, stop_event=None,
                 deadline: Optional[float] = None, max_states: Optional[int] = None,
                 metrics_queue=None):
        self.grid = grid_size if isinstance(grid_size, Grid) else Grid(grid_size)
        self.policy = policy
        self.rng = rng if rng is not None else random.Random(rng_seed)
        self.stop_event = stop_event
        self.deadline = deadline
        self.max_states = max_states
        self.metrics_queue = metrics_queue
        self.stats = ReductionStats()

    def reduce(self, full_clues, solution: EdgeAssignment) -> ClueGrid:
        grid = self.grid
        working = normalize_clues(grid, full_clues)
        if solution.grid != grid:
            raise InvalidInputError("Solution belongs to a different grid size")
        ok, reason = check_clues(grid, solution, working)
        if not ok:
            raise InvalidInputError(f"Clues do not match the solution: {reason}")

        self.stats = ReductionStats(start_density=density(working))
        high = self.policy.density_high

        for r, c in self._removal_order(working):
            if density(working) <= high:
                break
            value = working[r][c]
            working[r][c] = None
            if self._is_unique(working):
                self.stats.removals += 1
                logger.debug("Removed clue %d at (%d, %d)", value, r, c)
            else:
                working[r][c] = value
                logger.debug("Kept clue %d at (%d, %d)", value, r, c)

        final = density(working)
        self.stats.final_density = final
        if final > high:
            logger.warning(
                "Clue density %.1f%% stays above the %s band (%.0f%%-%.0f%%); emitting anyway",
                final * 100, self.policy.difficulty.value,
                self.policy.density_low * 100, high * 100,
            )
        return working

    def _removal_order(self, clues: ClueGrid) -> List[Tuple[int, int]]:
        cells = [(r, c) for r, row in enumerate(clues) for c, v in enumerate(row) if v is not None]
        self.rng.shuffle(cells)
        if self.policy.ordering == "priority":
            # Stable sort keeps the random order among equal priorities
            cells.sort(
                key=lambda cell: removal_priority(
                    cell, clues[cell[0]][cell[1]], self.grid.size, self.policy.difficulty
                ),
                reverse=True,
            )
        return cells

    def _is_unique(self, clues: ClueGrid) -> bool:
        solver = LoopSolver(self.grid, clues, stop_event=self.stop_event,
                            deadline=self.deadline, max_states=self.max_states,
                            metrics_queue=self.metrics_queue)
        self.stats.attempts += 1
        try:
            result = solver.solve(max_solutions=self.UNIQUENESS_BOUND)
        except SearchCancelledError as e:
            if e.reason != "state_limit":
                raise
            # Uniqueness not proven within the state budget: keep the clue
            self.stats.state_limit_hits += 1
            self.stats.solver_nodes += e.nodes_visited or 0
            logger.debug("Uniqueness check hit the state limit after %s nodes", e.nodes_visited)
            return False
        self.stats.solver_nodes += result.nodes_visited
        return result.solution_count == 1


def reduce_clues(grid_size, full_clues, solution: EdgeAssignment, policy: DifficultyPolicy,
                 rng_seed=None, **limits) -> ClueGrid:
    """
    Partial clue grid with a unique solution, reduced toward the policy's
    density band. Extra keyword arguments: stop_event, deadline, max_states,
    metrics_queue.
    """
    return ClueReducer(grid_size, policy, rng_seed, **limits).reduce(full_clues, solution)
