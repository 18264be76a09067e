"""
Puzzle API
==========
Entry points used by the rest of the application:

- generate_puzzle(): random loop -> full clues -> reduced unique puzzle
- check_unique_solution(): bounded solution count for a clue grid
- validate_assignment(): search-free check of a submitted solution
"""

from __future__ import annotations

import logging
import random
import threading
import time
from dataclasses import dataclass
from typing import Optional, Tuple, Union

from slitherlink.generators.clue_reducer import ClueReducer
from slitherlink.generators.difficulty_policy import Difficulty, policy_for
from slitherlink.generators.loop_generator import LoopGenerator
from slitherlink.grid import (
    ClueGrid,
    EdgeAssignment,
    Grid,
    clue_count,
    density,
    derive_clues,
    normalize_clues,
)
from slitherlink.solvers.loop_solver import LoopSolver, SolverResult
from slitherlink.solvers.solver_errors import (
    GenerationFailedError,
    InvalidInputError,
    SearchCancelledError,
    resolve_max_restarts,
    resolve_timeout,
)
from slitherlink.validators import check_solution

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Puzzle:
    """A generated puzzle together with the loop it was built from."""
    grid_size: int
    clues: Tuple[Tuple[Optional[int], ...], ...]
    solution_edges: Tuple[int, ...]      # ON edge ids of the loop
    difficulty: str
    density: float
    seed: Optional[Union[int, str, bytes]] = None
    loop_length: int = 0
    full_clue_count: int = 0

    @classmethod
    def build(cls, grid: Grid, clues, solution: EdgeAssignment, difficulty,
              seed=None, full_clue_count: Optional[int] = None) -> "Puzzle":
        rows = normalize_clues(grid, clues)
        on_edges = tuple(solution.on_edges())
        return cls(
            grid_size=grid.size,
            clues=tuple(tuple(row) for row in rows),
            solution_edges=on_edges,
            difficulty=Difficulty.parse(difficulty).value,
            density=density(rows),
            seed=seed,
            loop_length=len(on_edges),
            full_clue_count=grid.cell_count if full_clue_count is None else full_clue_count,
        )

    @property
    def grid(self) -> Grid:
        return Grid(self.grid_size)

    @property
    def solution(self) -> EdgeAssignment:
        """Fresh complete assignment of the hidden loop."""
        return EdgeAssignment.from_on_edges(self.grid, self.solution_edges)

    @property
    def clue_count(self) -> int:
        return clue_count(self.clues)

    def clue_grid(self) -> ClueGrid:
        """Mutable list-of-lists copy of the clues."""
        return [list(row) for row in self.clues]


def generate_puzzle(grid_size: int, difficulty, rng_seed=None, *, calibrated: bool = False,
                    ordering: str = "random", stop_event: Optional[threading.Event] = None,
                    timeout: Optional[float] = None, max_restarts: Optional[int] = None,
                    max_states: Optional[int] = None, metrics_queue=None) -> Puzzle:
    """
    Generate a puzzle with exactly one solution.

    The same (grid_size, difficulty, rng_seed) always yields the same puzzle.
    ``timeout`` bounds the whole request; ``stop_event`` cancels it. Both
    surface as SearchCancelledError. A uniqueness check that runs out of
    ``max_states`` is treated as "not proven unique", never as a failure.
    ``metrics_queue`` receives SolverMetrics from every solver call.
    """
    grid = Grid(grid_size)
    policy = policy_for(difficulty, grid.size, calibrated=calibrated, ordering=ordering)
    rng = random.Random(rng_seed)
    budget = resolve_max_restarts(max_restarts)
    timeout = resolve_timeout(timeout)
    deadline = time.monotonic() + timeout if timeout else None
    started = time.perf_counter()

    used = 0
    while used < budget:
        generator = LoopGenerator(grid, rng=rng, max_restarts=budget - used)
        try:
            loop = generator.generate()
        except GenerationFailedError as e:
            raise GenerationFailedError(
                f"No puzzle found on a {grid.size}x{grid.size} grid after {budget} restarts",
                attempts=used + (e.attempts or 0),
                grid_size=grid.size,
            ) from e
        used += generator.attempts

        full_clues = derive_clues(grid, loop)
        try:
            check = LoopSolver(grid, full_clues, stop_event=stop_event, deadline=deadline,
                               max_states=max_states,
                               metrics_queue=metrics_queue).solve(max_solutions=2)
        except SearchCancelledError as e:
            if e.reason != "state_limit":
                raise
            logger.debug("Full clue check hit the state limit, drawing a new loop")
            continue
        if check.solution_count != 1:
            # Every clue shown and still ambiguous: no reduction can fix that
            logger.debug("Full clue grid has %d solutions, drawing a new loop",
                         check.solution_count)
            continue

        reducer = ClueReducer(grid, policy, rng=rng, stop_event=stop_event,
                              deadline=deadline, max_states=max_states,
                              metrics_queue=metrics_queue)
        clues = reducer.reduce(full_clues, loop)
        puzzle = Puzzle.build(grid, clues, loop, policy.difficulty, seed=rng_seed,
                              full_clue_count=clue_count(full_clues))
        logger.info(
            "Generated %dx%d %s puzzle: %d/%d clues (%.1f%%), loop %d edges, %d solver calls, %.3fs",
            grid.size, grid.size, puzzle.difficulty, puzzle.clue_count, grid.cell_count,
            puzzle.density * 100, puzzle.loop_length, reducer.stats.attempts,
            time.perf_counter() - started,
        )
        return puzzle

    raise GenerationFailedError(
        f"No puzzle found on a {grid.size}x{grid.size} grid after {budget} restarts",
        attempts=used,
        grid_size=grid.size,
    )


def check_unique_solution(grid_size: int, clues, max_solutions: int = 2, **limits) -> SolverResult:
    """Solution count capped at ``max_solutions`` plus the first solution found."""
    return LoopSolver(grid_size, clues, **limits).solve(max_solutions=max_solutions)


def validate_assignment(grid_size: int, clues, candidate) -> bool:
    """
    True iff ``candidate`` is complete, meets every clue and forms one simple
    loop. ``candidate`` is an EdgeAssignment, a list of (dot, dot) index
    pairs or a collection of ((r, c), (r, c)) edge keys.

    Malformed clues raise InvalidInputError; a malformed candidate is simply
    not a valid solution.
    """
    grid = Grid(grid_size)
    rows = normalize_clues(grid, clues)
    try:
        assignment = _coerce_candidate(grid, candidate)
    except InvalidInputError as e:
        logger.debug("Rejected candidate: %s", e)
        return False
    ok, reason = check_solution(grid, assignment, rows)
    if not ok:
        logger.debug("Candidate is not a solution: %s", reason)
    return ok


def _coerce_candidate(grid: Grid, candidate) -> EdgeAssignment:
    if isinstance(candidate, EdgeAssignment):
        if candidate.grid != grid:
            raise InvalidInputError("Candidate belongs to a different grid size")
        return candidate

    from slitherlink.serialization import solution_from_pairs

    try:
        pairs = list(candidate)
    except TypeError:
        raise InvalidInputError(f"Unsupported candidate {candidate!r}") from None
    if pairs and all(_is_dot_key(pair) for pair in pairs):
        try:
            return EdgeAssignment.from_edge_keys(grid, pairs)
        except (TypeError, ValueError) as e:
            raise InvalidInputError(str(e)) from None
    return solution_from_pairs(grid, pairs)


def _is_dot_key(pair) -> bool:
    try:
        u, v = pair
        return len(u) == 2 and len(v) == 2
    except (TypeError, ValueError):
        return False
