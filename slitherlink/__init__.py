"""Slitherlink puzzle generation and solving."""

from slitherlink.generators.difficulty_policy import Difficulty, DifficultyPolicy, policy_for
from slitherlink.grid import EdgeAssignment, Grid
from slitherlink.puzzle import Puzzle, check_unique_solution, generate_puzzle, validate_assignment
from slitherlink.solvers.loop_solver import SolverResult, solve
from slitherlink.solvers.solver_errors import (
    GenerationFailedError,
    InvalidInputError,
    SearchCancelledError,
    SlitherlinkError,
    SolverInvariantError,
)

__version__ = "1.0.0"

__all__ = [
    "Difficulty",
    "DifficultyPolicy",
    "EdgeAssignment",
    "GenerationFailedError",
    "Grid",
    "InvalidInputError",
    "Puzzle",
    "SearchCancelledError",
    "SlitherlinkError",
    "SolverInvariantError",
    "SolverResult",
    "check_unique_solution",
    "generate_puzzle",
    "policy_for",
    "solve",
    "validate_assignment",
]
