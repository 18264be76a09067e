"""
Loop Solver
===========
Backtracking search with constraint propagation over edge states.

Constraints:
- clue cells: exactly k of the four bordering edges are ON
- dots: ON degree is 0 or 2
- the ON edges form one closed loop (no premature sub-loops)

Search state is local to one solver instance:
- per-edge states plus per-dot / per-cell ON and UNKNOWN counters
- an undo trail of assigned edges
- an undoable union-find over dots for cycle detection
- an explicit stack of decision frames (no recursion)

Stop conditions (stop_event, timeout, deadline, max_states) are checked at
every branch point and raise SearchCancelledError.
"""

from __future__ import annotations

import logging
import queue
import threading
import time
from collections import deque
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from slitherlink.grid import ON, OFF, UNKNOWN, ClueGrid, EdgeAssignment, Grid, normalize_clues
from slitherlink.solver_worker import SolverMetrics
from slitherlink.solvers.solver_errors import (
    InvalidInputError,
    SearchCancelledError,
    SolverInvariantError,
    resolve_max_states,
    resolve_timeout,
)
from slitherlink.solvers.union_find import UndoableUnionFind
from slitherlink.validators import check_solution

logger = logging.getLogger(__name__)

_DOT = 0
_CELL = 1


@dataclass
class SolverResult:
    """Outcome of one solver invocation. Not persisted."""
    solution_count: int                         # capped at max_solutions
    first_solution: Optional[EdgeAssignment]    # first complete loop found
    nodes_visited: int = 0
    time_taken: float = 0.0
    max_solutions: int = 2

    @property
    def is_unique(self) -> bool:
        return self.solution_count == 1

    @property
    def status(self) -> str:
        if self.solution_count == 0:
            return "NoSolution"
        if self.solution_count == 1:
            return "Unique"
        return "Multiple"


class LoopSolver:
    """
    Counts solutions (up to a bound) for a clue grid.

    Supports:
    - stop_event: threading.Event to request a clean stop from outside
    - timeout: wall-clock seconds per solve() call
    - deadline: absolute time.monotonic() value shared by several calls
    - max_states: maximum search nodes before giving up
    - metrics_queue: optional queue.Queue receiving SolverMetrics snapshots
    """

    DEFAULT_MAX_SOLUTIONS = 2
    METRICS_PUSH_INTERVAL = 500    # push metrics every N nodes
    YIELD_CHECK_INTERVAL = 64      # check the clock every N nodes

    def __init__(self, grid_size: Any, clues, *, stop_event: Optional[threading.Event] = None,
                 timeout: Optional[float] = None, deadline: Optional[float] = None,
                 max_states: Optional[int] = None, metrics_queue: Optional[queue.Queue] = None):
        self.grid = grid_size if isinstance(grid_size, Grid) else Grid(grid_size)
        self.clues: ClueGrid = normalize_clues(self.grid, clues)
        self.cell_clue: List[Optional[int]] = [v for row in self.clues for v in row]

        self.stop_event = stop_event
        self.timeout = resolve_timeout(timeout)
        self.deadline = deadline
        self.max_states = resolve_max_states(max_states)
        self.metrics_queue = metrics_queue

        self.nodes_visited = 0
        self._start_time = 0.0
        self._stop_at: Optional[float] = None
        self._last_metrics_time = 0.0
        self._last_metrics_states = 0

    # ── Public API ─────────────────────────────────────────────

    def solve(self, max_solutions: int = DEFAULT_MAX_SOLUTIONS,
              initial_assignment: Optional[EdgeAssignment] = None) -> SolverResult:
        if isinstance(max_solutions, bool) or not isinstance(max_solutions, int) or max_solutions < 1:
            raise InvalidInputError(f"max_solutions must be a positive integer, got {max_solutions!r}")
        if initial_assignment is not None and initial_assignment.grid != self.grid:
            raise InvalidInputError("Initial assignment belongs to a different grid size")

        self._reset()
        self._start_time = time.monotonic()
        self._last_metrics_time = self._start_time
        self._last_metrics_states = 0
        stops = [t for t in (self.deadline,
                             self._start_time + self.timeout if self.timeout else None) if t is not None]
        self._stop_at = min(stops) if stops else None

        found = 0
        first: Optional[EdgeAssignment] = None
        stack: List[Tuple[Tuple[int, int, bool], int, int]] = []

        ok = self._seed(initial_assignment)
        while True:
            self.nodes_visited += 1
            self._check_stop()
            self._push_metrics_if_due()

            if ok:
                edge = self._pick_branch_edge()
                if edge is None:
                    if self.loop_closed:
                        solution = EdgeAssignment(self.grid, self.states)
                        self._verify(solution)
                        found += 1
                        if first is None:
                            first = solution
                        if found >= max_solutions:
                            break
                    ok = False
                    continue
                mark = self._mark()
                stack.append((mark, edge, ON))
                ok = self._assign(edge, ON) and self._propagate()
                continue

            # Backtrack to the most recent frame with an untried value
            resumed = False
            while stack:
                mark, edge, value = stack.pop()
                self._rollback(mark)
                if value == ON:
                    stack.append((mark, edge, OFF))
                    ok = self._assign(edge, OFF) and self._propagate()
                    resumed = True
                    break
            if not resumed:
                break

        elapsed = time.monotonic() - self._start_time
        logger.debug(
            "Solved %dx%d grid: %d solution(s) (cap %d), %d nodes in %.4fs",
            self.grid.size, self.grid.size, found, max_solutions, self.nodes_visited, elapsed,
        )
        return SolverResult(
            solution_count=found,
            first_solution=first,
            nodes_visited=self.nodes_visited,
            time_taken=elapsed,
            max_solutions=max_solutions,
        )

    # ── Search state ───────────────────────────────────────────

    def _reset(self):
        grid = self.grid
        self.nodes_visited = 0
        self.states = [UNKNOWN] * grid.edge_count
        self.dot_on = [0] * grid.dot_count
        self.dot_unk = [len(edges) for edges in grid.dot_edge_ids]
        self.cell_on = [0] * grid.cell_count
        self.cell_unk = [4] * grid.cell_count
        self.total_on = 0
        self.unknown_count = grid.edge_count
        self.loop_closed = False
        self.uf = UndoableUnionFind(grid.dot_count)
        self.trail: List[int] = []
        self._queue: deque = deque()

    def _seed(self, initial_assignment: Optional[EdgeAssignment]) -> bool:
        for cell, clue in enumerate(self.cell_clue):
            if clue is not None:
                self._queue.append((_CELL, cell))
        for dot in range(self.grid.dot_count):
            self._queue.append((_DOT, dot))

        if initial_assignment is not None:
            for edge, state in enumerate(initial_assignment.states):
                if state != UNKNOWN and not self._assign(edge, state):
                    self._queue.clear()
                    return False
        return self._propagate()

    def _mark(self) -> Tuple[int, int, bool]:
        return len(self.trail), self.uf.mark(), self.loop_closed

    def _rollback(self, mark: Tuple[int, int, bool]) -> None:
        trail_len, uf_mark, loop_closed = mark
        grid = self.grid
        states = self.states
        while len(self.trail) > trail_len:
            edge = self.trail.pop()
            value = states[edge]
            states[edge] = UNKNOWN
            self.unknown_count += 1
            a, b = grid.edge_dot_ids[edge]
            self.dot_unk[a] += 1
            self.dot_unk[b] += 1
            cells = grid.edge_cell_ids[edge]
            for cell in cells:
                self.cell_unk[cell] += 1
            if value == ON:
                self.dot_on[a] -= 1
                self.dot_on[b] -= 1
                for cell in cells:
                    self.cell_on[cell] -= 1
                self.total_on -= 1
        self.uf.rollback(uf_mark)
        self.loop_closed = loop_closed
        self._queue.clear()

    def _assign(self, edge: int, value: int) -> bool:
        """Set an UNKNOWN edge and queue its neighbourhood. False on contradiction."""
        current = self.states[edge]
        if current != UNKNOWN:
            return current == value

        grid = self.grid
        self.states[edge] = value
        self.trail.append(edge)
        self.unknown_count -= 1
        a, b = grid.edge_dot_ids[edge]
        self.dot_unk[a] -= 1
        self.dot_unk[b] -= 1
        cells = grid.edge_cell_ids[edge]
        for cell in cells:
            self.cell_unk[cell] -= 1

        if value == ON:
            self.dot_on[a] += 1
            self.dot_on[b] += 1
            for cell in cells:
                self.cell_on[cell] += 1
            self.total_on += 1

            # Nothing may be added once the loop is closed
            if self.loop_closed:
                return False
            if self.dot_on[a] > 2 or self.dot_on[b] > 2:
                return False
            closes, root = self.uf.add_edge(a, b)
            if closes:
                # A cycle is only legal if it already holds every ON edge
                if self.uf.edges[root] != self.total_on:
                    return False
                self.loop_closed = True

        q = self._queue
        q.append((_DOT, a))
        q.append((_DOT, b))
        for cell in cells:
            if self.cell_clue[cell] is not None:
                q.append((_CELL, cell))
        return True

    def _assign_unknown(self, edges, value: int) -> bool:
        for edge in edges:
            if self.states[edge] == UNKNOWN and not self._assign(edge, value):
                return False
        return True

    # ── Propagation ────────────────────────────────────────────

    def _propagate(self) -> bool:
        """Run the local rules to a fixpoint."""
        q = self._queue
        while True:
            while q:
                kind, index = q.popleft()
                if kind == _CELL:
                    ok = self._check_cell(index)
                else:
                    ok = self._check_dot(index)
                if not ok:
                    q.clear()
                    return False

            if self.loop_closed and self.unknown_count:
                # The loop is finished: every undecided edge is OFF
                if not self._assign_unknown(range(self.grid.edge_count), OFF):
                    q.clear()
                    return False
                continue
            return True

    def _check_cell(self, cell: int) -> bool:
        clue = self.cell_clue[cell]
        if clue is None:
            return True
        on = self.cell_on[cell]
        unk = self.cell_unk[cell]
        if on > clue or on + unk < clue:
            return False
        if unk:
            if on == clue:
                return self._assign_unknown(self.grid.cell_edge_ids[cell], OFF)
            if on + unk == clue:
                return self._assign_unknown(self.grid.cell_edge_ids[cell], ON)
        return True

    def _check_dot(self, dot: int) -> bool:
        on = self.dot_on[dot]
        unk = self.dot_unk[dot]
        edges = self.grid.dot_edge_ids[dot]
        if on > 2:
            return False
        if on == 2:
            return self._assign_unknown(edges, OFF) if unk else True
        if on == 1:
            if unk == 0:
                return False  # dead end
            if unk == 1:
                return self._assign_unknown(edges, ON)
            return self._block_premature_closures(dot, edges)
        # on == 0: a dot with a single possible edge stays unused
        if unk == 1:
            return self._assign_unknown(edges, OFF)
        return True

    def _block_premature_closures(self, dot: int, edges) -> bool:
        """
        ``dot`` is a path end. An undecided edge to the other end of the same
        path would close a loop; forbid it unless that path holds every ON edge.
        """
        uf = self.uf
        root = uf.find(dot)
        if uf.edges[root] == self.total_on:
            return True
        grid = self.grid
        for edge in edges:
            if self.states[edge] != UNKNOWN:
                continue
            a, b = grid.edge_dot_ids[edge]
            other = b if a == dot else a
            if uf.find(other) == root and not self._assign(edge, OFF):
                return False
        return True

    # ── Branching ──────────────────────────────────────────────

    def _pick_branch_edge(self) -> Optional[int]:
        """
        Highest-scoring undecided edge; lowest id wins ties.
        Path ends and nearly-decided clue cells score highest.
        """
        if self.unknown_count == 0:
            return None

        grid = self.grid
        states = self.states
        best_edge = None
        best_score = -1
        for edge in range(grid.edge_count):
            if states[edge] != UNKNOWN:
                continue
            a, b = grid.edge_dot_ids[edge]
            score = 0
            if self.dot_on[a] == 1:
                score += 100
            if self.dot_on[b] == 1:
                score += 100
            for cell in grid.edge_cell_ids[edge]:
                clue = self.cell_clue[cell]
                if clue is None:
                    continue
                unk = self.cell_unk[cell]
                score += (4 - unk) * 10
                if clue == 3 or clue == 1:
                    score += 5

            if score > best_score:
                best_score = score
                best_edge = edge
        return best_edge

    # ── Checks ─────────────────────────────────────────────────

    def _verify(self, solution: EdgeAssignment) -> None:
        ok, reason = check_solution(self.grid, solution, self.clues)
        if not ok:
            raise SolverInvariantError(f"Solver produced an invalid loop: {reason}")

    def _check_stop(self) -> None:
        if self.stop_event is not None and self.stop_event.is_set():
            raise SearchCancelledError(reason="stopped", nodes_visited=self.nodes_visited)

        if self.nodes_visited > self.max_states:
            raise SearchCancelledError(
                f"Search exceeded {self.max_states} states",
                reason="state_limit",
                nodes_visited=self.nodes_visited,
            )

        if self._stop_at is not None and self.nodes_visited % self.YIELD_CHECK_INTERVAL == 0:
            if time.monotonic() >= self._stop_at:
                raise SearchCancelledError(
                    "Search deadline reached",
                    reason="timeout",
                    nodes_visited=self.nodes_visited,
                )

    def _push_metrics_if_due(self) -> None:
        """Push a metrics snapshot to the queue if the interval elapsed."""
        if self.metrics_queue is None:
            return
        if self.nodes_visited % self.METRICS_PUSH_INTERVAL != 0:
            return

        now = time.monotonic()
        elapsed_since_last = now - self._last_metrics_time
        states_delta = self.nodes_visited - self._last_metrics_states
        time_per_step_ms = 0.0
        if states_delta > 0:
            time_per_step_ms = (elapsed_since_last * 1000.0) / states_delta

        metrics = SolverMetrics(
            timestamp=now - self._start_time,
            states_explored=self.nodes_visited,
            states_delta=states_delta,
            time_per_step_ms=time_per_step_ms,
            interval_ms=elapsed_since_last * 1000.0,
        )
        try:
            self.metrics_queue.put_nowait(metrics)
        except queue.Full:
            pass

        self._last_metrics_time = now
        self._last_metrics_states = self.nodes_visited


def solve(grid_size, clues, max_solutions: int = LoopSolver.DEFAULT_MAX_SOLUTIONS,
          initial_assignment: Optional[EdgeAssignment] = None, **limits) -> SolverResult:
    """
    Count solutions of ``clues`` on a ``grid_size`` dot grid, up to
    ``max_solutions``. Extra keyword arguments are passed to LoopSolver
    (stop_event, timeout, deadline, max_states, metrics_queue).
    """
    solver = LoopSolver(grid_size, clues, **limits)
    return solver.solve(max_solutions=max_solutions, initial_assignment=initial_assignment)
