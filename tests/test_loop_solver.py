import os
import queue
import sys
import threading
import time
import unittest

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from slitherlink.grid import OFF, EdgeAssignment, Grid
from slitherlink.solvers.loop_solver import LoopSolver, SolverResult, solve
from slitherlink.solvers.solver_errors import InvalidInputError, SearchCancelledError
from slitherlink.solvers.union_find import UndoableUnionFind
from slitherlink.validators import check_solution

# 5x5-dot puzzle with a single 18-dot loop through
# 1 2 7 8 3 4 9 14 13 18 23 22 21 16 11 10 5 6
FIXTURE_CLUES = [
    [-1, 3, -1, 3],
    [-1, 0, -1, 2],
    [-1, 1, -1, 2],
    [1, 2, 2, -1],
]
FIXTURE_LOOP = [1, 2, 7, 8, 3, 4, 9, 14, 13, 18, 23, 22, 21, 16, 11, 10, 5, 6]


def empty_clues(size):
    return [[None] * (size - 1) for _ in range(size - 1)]


class TestUndoableUnionFind(unittest.TestCase):
    def test_cycle_detection(self):
        uf = UndoableUnionFind(4)
        self.assertEqual(uf.add_edge(0, 1)[0], False)
        self.assertEqual(uf.add_edge(1, 3)[0], False)
        self.assertEqual(uf.add_edge(3, 2)[0], False)
        closes, root = uf.add_edge(2, 0)
        self.assertTrue(closes)
        self.assertEqual(uf.edges[root], 4)

    def test_rollback_restores_components(self):
        uf = UndoableUnionFind(4)
        uf.add_edge(0, 1)
        mark = uf.mark()
        uf.add_edge(1, 2)
        uf.add_edge(2, 3)
        self.assertEqual(uf.find(3), uf.find(0))
        uf.rollback(mark)
        self.assertNotEqual(uf.find(3), uf.find(0))
        self.assertNotEqual(uf.find(2), uf.find(0))
        self.assertEqual(uf.component_edges(0), 1)
        self.assertEqual(uf.component_edges(2), 0)


class TestLoopSolverCounts(unittest.TestCase):
    def test_single_cell_clue_four(self):
        result = solve(2, [[4]])
        self.assertEqual(result.solution_count, 1)
        self.assertEqual(result.status, "Unique")
        self.assertTrue(result.is_unique)
        self.assertEqual(result.first_solution.on_edges(), [0, 1, 2, 3])

    def test_single_cell_unsatisfiable(self):
        for clue in (0, 1, 2, 3):
            result = solve(2, [[clue]])
            self.assertEqual(result.solution_count, 0, f"clue {clue}")
            self.assertIsNone(result.first_solution)
            self.assertEqual(result.status, "NoSolution")

    def test_single_cell_without_clue(self):
        self.assertEqual(solve(2, [[None]]).solution_count, 1)

    def test_counts_every_loop_on_small_grids(self):
        """A 3x3-dot grid holds 13 simple loops, a 4x4-dot grid 213."""
        self.assertEqual(solve(3, empty_clues(3), max_solutions=100).solution_count, 13)
        self.assertEqual(solve(4, empty_clues(4), max_solutions=1000).solution_count, 213)

    def test_empty_clues_are_ambiguous(self):
        result = solve(4, empty_clues(4))
        self.assertEqual(result.solution_count, 2)
        self.assertEqual(result.status, "Multiple")
        self.assertFalse(result.is_unique)

    def test_count_is_capped(self):
        result = solve(4, empty_clues(4), max_solutions=5)
        self.assertEqual(result.solution_count, 5)

    def test_full_clues_of_square_loop(self):
        self.assertEqual(solve(3, [[2, 2], [2, 2]]).solution_count, 1)
        self.assertEqual(solve(3, [[None, 2], [2, 2]]).solution_count, 1)

    def test_l_shaped_loops_share_clues(self):
        """Two L-tromino outlines give identical full clue grids."""
        self.assertEqual(solve(3, [[3, 2], [2, 3]]).solution_count, 2)
        self.assertEqual(solve(3, [[2, 3], [3, 2]]).solution_count, 2)

    def test_fixture_puzzle(self):
        grid = Grid(5)
        result = solve(5, FIXTURE_CLUES)
        self.assertGreaterEqual(result.solution_count, 1)
        clues = [[None if v == -1 else v for v in row] for row in FIXTURE_CLUES]
        ok, reason = check_solution(grid, result.first_solution, clues)
        self.assertTrue(ok, reason)

    def test_solutions_are_valid_loops(self):
        grid = Grid(4)
        clues = [[None, 3, None], [None, None, None], [1, None, None]]
        result = solve(4, clues, max_solutions=10)
        self.assertGreater(result.solution_count, 0)
        ok, reason = check_solution(grid, result.first_solution, clues)
        self.assertTrue(ok, reason)

    def test_initial_assignment(self):
        grid = Grid(2)
        partial = EdgeAssignment.empty(grid)
        partial.set(0, OFF)
        self.assertEqual(solve(2, [[None]], initial_assignment=partial).solution_count, 0)

    def test_determinism(self):
        clues = [[None, 2, None], [3, None, None], [None, None, 2]]
        first = solve(4, clues, max_solutions=3)
        second = solve(4, clues, max_solutions=3)
        self.assertEqual(first.solution_count, second.solution_count)
        self.assertEqual(first.first_solution, second.first_solution)

    def test_result_reports_effort(self):
        result = solve(4, empty_clues(4))
        self.assertIsInstance(result, SolverResult)
        self.assertGreater(result.nodes_visited, 0)
        self.assertGreaterEqual(result.time_taken, 0.0)
        self.assertEqual(result.max_solutions, 2)


class TestLoopSolverInput(unittest.TestCase):
    def test_rejects_bad_clues(self):
        with self.assertRaises(InvalidInputError):
            LoopSolver(3, [[5, 0], [0, 0]])
        with self.assertRaises(InvalidInputError):
            LoopSolver(3, [[0, 0, 0]])

    def test_rejects_bad_grid(self):
        with self.assertRaises(InvalidInputError):
            LoopSolver(1, [])

    def test_rejects_bad_max_solutions(self):
        solver = LoopSolver(3, empty_clues(3))
        for bad in (0, -1, True, 1.5):
            with self.assertRaises(InvalidInputError):
                solver.solve(max_solutions=bad)

    def test_rejects_foreign_initial_assignment(self):
        solver = LoopSolver(3, empty_clues(3))
        with self.assertRaises(InvalidInputError):
            solver.solve(initial_assignment=EdgeAssignment.empty(Grid(4)))


class TestLoopSolverCancellation(unittest.TestCase):
    def test_stop_event(self):
        stop_event = threading.Event()
        stop_event.set()
        with self.assertRaises(SearchCancelledError) as ctx:
            solve(5, empty_clues(5), stop_event=stop_event)
        self.assertEqual(ctx.exception.reason, "stopped")

    def test_state_limit(self):
        with self.assertRaises(SearchCancelledError) as ctx:
            solve(5, empty_clues(5), max_solutions=100, max_states=1)
        self.assertEqual(ctx.exception.reason, "state_limit")
        self.assertEqual(ctx.exception.nodes_visited, 2)

    def test_deadline(self):
        with self.assertRaises(SearchCancelledError) as ctx:
            solve(6, empty_clues(6), max_solutions=10_000, deadline=time.monotonic() - 1)
        self.assertEqual(ctx.exception.reason, "timeout")

    def test_timeout(self):
        start = time.monotonic()
        with self.assertRaises(SearchCancelledError) as ctx:
            solve(8, empty_clues(8), max_solutions=10 ** 9, timeout=0.2, max_states=10 ** 9)
        self.assertEqual(ctx.exception.reason, "timeout")
        self.assertLess(time.monotonic() - start, 2.0)

    def test_metrics_queue(self):
        mq = queue.Queue()
        solve(5, empty_clues(5), max_solutions=500, metrics_queue=mq)
        self.assertGreater(mq.qsize(), 0)
        sample = mq.get()
        self.assertGreater(sample.states_explored, 0)
        self.assertGreaterEqual(sample.timestamp, 0.0)


if __name__ == '__main__':
    unittest.main()
