import os
import sys
import threading
import unittest
from unittest import mock

# Add project root to path
sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from slitherlink import (
    Difficulty,
    GenerationFailedError,
    InvalidInputError,
    Puzzle,
    SearchCancelledError,
    check_unique_solution,
    generate_puzzle,
    validate_assignment,
)
from slitherlink.generators.difficulty_policy import DENSITY_BANDS
from slitherlink.generators.loop_generator import LoopGenerator
from slitherlink.grid import OFF, ON, EdgeAssignment, Grid, derive_clues
from slitherlink.serialization import solution_to_pairs
from slitherlink.solvers.loop_solver import LoopSolver
from slitherlink.validators import check_clues, is_single_loop

FIXTURE_CLUES = [
    [-1, 3, -1, 3],
    [-1, 0, -1, 2],
    [-1, 1, -1, 2],
    [1, 2, 2, -1],
]
FIXTURE_LOOP = [1, 2, 7, 8, 3, 4, 9, 14, 13, 18, 23, 22, 21, 16, 11, 10, 5, 6]


def fixture_pairs():
    return [[a, b] for a, b in zip(FIXTURE_LOOP, FIXTURE_LOOP[1:] + FIXTURE_LOOP[:1])]


class TestGeneratePuzzle(unittest.TestCase):
    def assert_valid_puzzle(self, puzzle):
        grid = Grid(puzzle.grid_size)
        solution = puzzle.solution
        ok, reason = is_single_loop(grid, solution)
        self.assertTrue(ok, reason)
        ok, reason = check_clues(grid, solution, puzzle.clues)
        self.assertTrue(ok, reason)
        self.assertEqual(check_unique_solution(puzzle.grid_size, puzzle.clues).solution_count, 1)
        self.assertTrue(validate_assignment(puzzle.grid_size, puzzle.clues, solution))
        self.assertGreaterEqual(puzzle.density, 0.0)
        self.assertLessEqual(puzzle.clue_count, puzzle.full_clue_count)

    def test_easy_5x5_batch(self):
        low, _ = DENSITY_BANDS[Difficulty.EASY]
        for seed in range(20):
            puzzle = generate_puzzle(5, "easy", seed)
            self.assert_valid_puzzle(puzzle)
            self.assertGreaterEqual(puzzle.density, low, f"seed {seed}")

    def test_every_difficulty(self):
        for difficulty in Difficulty:
            puzzle = generate_puzzle(6, difficulty, 7)
            self.assert_valid_puzzle(puzzle)
            self.assertEqual(puzzle.difficulty, difficulty.value)

    def test_calibrated_generation(self):
        puzzle = generate_puzzle(6, "medium", 3, calibrated=True, ordering="priority")
        self.assert_valid_puzzle(puzzle)

    def test_smallest_grid(self):
        puzzle = generate_puzzle(2, "easy", 0)
        self.assert_valid_puzzle(puzzle)
        self.assertEqual(puzzle.loop_length, 4)

    def test_3x3_grid_skips_ambiguous_loops(self):
        for seed in range(25):
            self.assert_valid_puzzle(generate_puzzle(3, "difficult", seed))

    def test_same_seed_same_puzzle(self):
        first = generate_puzzle(6, "medium", 99)
        second = generate_puzzle(6, "medium", 99)
        self.assertEqual(first, second)
        self.assertEqual(first.seed, 99)

    def test_puzzle_fields(self):
        puzzle = generate_puzzle(5, "medium", 12)
        self.assertIsInstance(puzzle, Puzzle)
        self.assertEqual(len(puzzle.clues), 4)
        self.assertTrue(all(isinstance(row, tuple) for row in puzzle.clues))
        self.assertEqual(puzzle.loop_length, puzzle.solution.count(ON))
        self.assertEqual(puzzle.full_clue_count, 16)
        self.assertAlmostEqual(puzzle.density, puzzle.clue_count / 16)
        # solution is a fresh object every time
        sol = puzzle.solution
        sol.set(sol.on_edges()[0], OFF)
        self.assertTrue(validate_assignment(5, puzzle.clues, puzzle.solution))

    def test_invalid_input(self):
        with self.assertRaises(InvalidInputError):
            generate_puzzle(1, "easy")
        with self.assertRaises(InvalidInputError):
            generate_puzzle(5, "impossible")

    def test_generation_failed(self):
        with mock.patch.object(LoopGenerator, "_attempt", return_value=None):
            with self.assertRaises(GenerationFailedError) as ctx:
                generate_puzzle(5, "easy", 1, max_restarts=4)
        self.assertEqual(ctx.exception.attempts, 4)
        self.assertEqual(ctx.exception.grid_size, 5)

    def test_cancelled(self):
        stop_event = threading.Event()
        stop_event.set()
        with self.assertRaises(SearchCancelledError):
            generate_puzzle(5, "easy", 1, stop_event=stop_event)


class TestLargeGrids(unittest.TestCase):
    """Boards above 7 dots run with a state cap; an exhausted check must never escape."""
    MAX_STATES = 5000

    def assert_unique_within_cap(self, puzzle):
        grid = Grid(puzzle.grid_size)
        ok, reason = check_clues(grid, puzzle.solution, puzzle.clues)
        self.assertTrue(ok, reason)
        result = check_unique_solution(puzzle.grid_size, puzzle.clues,
                                       max_states=self.MAX_STATES)
        self.assertEqual(result.solution_count, 1)
        self.assertEqual(result.first_solution, puzzle.solution)
        self.assertTrue(validate_assignment(puzzle.grid_size, puzzle.clues, puzzle.solution))

    def test_medium_10x10(self):
        puzzle = generate_puzzle(10, "medium", 1, max_states=self.MAX_STATES)
        self.assert_unique_within_cap(puzzle)
        self.assertLess(puzzle.clue_count, puzzle.full_clue_count)

    def test_difficult_12x12(self):
        puzzle = generate_puzzle(12, "difficult", 5, max_states=self.MAX_STATES)
        self.assert_unique_within_cap(puzzle)

    def test_calibrated_15x15(self):
        puzzle = generate_puzzle(15, "medium", 1, calibrated=True, max_states=self.MAX_STATES)
        self.assert_unique_within_cap(puzzle)
        self.assertEqual(puzzle.full_clue_count, 196)

    def test_exhausted_full_clue_check_draws_new_loop(self):
        real_solve = LoopSolver.solve
        calls = []

        def flaky_solve(solver, max_solutions=1, initial_assignment=None):
            calls.append(max_solutions)
            if len(calls) == 1:
                raise SearchCancelledError(reason="state_limit", nodes_visited=1)
            return real_solve(solver, max_solutions, initial_assignment)

        with mock.patch.object(LoopSolver, "solve", flaky_solve):
            puzzle = generate_puzzle(5, "easy", 3)
        self.assertGreater(len(calls), 2)
        self.assertEqual(check_unique_solution(5, puzzle.clues).solution_count, 1)


class TestCheckUniqueSolution(unittest.TestCase):
    def test_single_cell(self):
        self.assertEqual(check_unique_solution(2, [[4]]).solution_count, 1)
        self.assertEqual(check_unique_solution(2, [[3]]).solution_count, 0)

    def test_empty_clues_capped(self):
        empty = [[None] * 3 for _ in range(3)]
        self.assertEqual(check_unique_solution(4, empty).solution_count, 2)
        self.assertEqual(check_unique_solution(4, empty, max_solutions=7).solution_count, 7)

    def test_accepts_minus_one_blanks(self):
        result = check_unique_solution(5, FIXTURE_CLUES)
        self.assertGreaterEqual(result.solution_count, 1)

    def test_invalid_clues(self):
        with self.assertRaises(InvalidInputError):
            check_unique_solution(3, [[9, 0], [0, 0]])


class TestValidateAssignment(unittest.TestCase):
    def setUp(self):
        self.grid = Grid(5)
        self.pairs = fixture_pairs()
        self.solution = EdgeAssignment.from_on_edges(
            self.grid,
            [self.grid.edge_between(self.grid.dot_coords(a), self.grid.dot_coords(b))
             for a, b in self.pairs],
        )

    def test_fixture_solution(self):
        self.assertTrue(validate_assignment(5, FIXTURE_CLUES, self.solution))
        self.assertTrue(validate_assignment(5, FIXTURE_CLUES, self.pairs))
        self.assertTrue(validate_assignment(5, FIXTURE_CLUES, self.solution.edge_keys()))

    def test_flipped_edge(self):
        for edge in (0, 1, self.solution.on_edges()[3]):
            flipped = self.solution.copy()
            flipped.set(edge, OFF if flipped.state(edge) == ON else ON)
            self.assertFalse(validate_assignment(5, FIXTURE_CLUES, flipped), f"edge {edge}")

    def test_two_separate_cycles(self):
        grid = self.grid
        two_cells = EdgeAssignment.from_on_edges(
            grid, list(grid.cell_edges(0, 0)) + list(grid.cell_edges(2, 2))
        )
        clues = derive_clues(grid, two_cells)
        ok, _ = check_clues(grid, two_cells, clues)
        self.assertTrue(ok)
        self.assertFalse(validate_assignment(5, clues, two_cells))

    def test_incomplete(self):
        partial = self.solution.copy()
        partial.set(0, 0)
        self.assertFalse(validate_assignment(5, FIXTURE_CLUES, partial))

    def test_malformed_candidates(self):
        self.assertFalse(validate_assignment(5, FIXTURE_CLUES, EdgeAssignment.empty(Grid(4))))
        self.assertFalse(validate_assignment(5, FIXTURE_CLUES, [[0, 6]]))
        self.assertFalse(validate_assignment(5, FIXTURE_CLUES, [[0, 99]]))
        self.assertFalse(validate_assignment(5, FIXTURE_CLUES, []))
        self.assertFalse(validate_assignment(5, FIXTURE_CLUES, 17))

    def test_malformed_clues_raise(self):
        with self.assertRaises(InvalidInputError):
            validate_assignment(5, [[1, 2]], self.solution)

    def test_own_solution_always_valid(self):
        for seed in range(5):
            puzzle = generate_puzzle(4, "medium", seed)
            grid = Grid(4)
            self.assertTrue(validate_assignment(4, puzzle.clues, puzzle.solution))
            self.assertTrue(validate_assignment(4, puzzle.clues,
                                                solution_to_pairs(grid, puzzle.solution)))


if __name__ == '__main__':
    unittest.main()
