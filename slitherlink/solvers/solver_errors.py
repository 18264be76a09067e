"""
Solver errors and limits.
"""

from __future__ import annotations

import os
from typing import Optional

DEFAULT_MAX_STATES = 2_000_000
DEFAULT_MAX_RESTARTS = 500
SEARCH_CANCELLED_MESSAGE = "Search cancelled before the solution space was exhausted."


class SlitherlinkError(Exception):
    """Base class for every error raised by this package."""


class InvalidInputError(SlitherlinkError, ValueError):
    """
    Raised for malformed input: grid size below 2, clue values outside [0, 4],
    clue grids of the wrong shape. Always raised before any search begins.
    """


class GenerationFailedError(SlitherlinkError, RuntimeError):
    """
    Raised when the loop generator exhausts its restart budget.
    Callers may retry with a different seed.
    """

    def __init__(
        self,
        message: str = "Loop generation exhausted its restart budget.",
        *,
        attempts: Optional[int] = None,
        grid_size: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.attempts = attempts
        self.grid_size = grid_size


class SearchCancelledError(SlitherlinkError, RuntimeError):
    """
    Raised when a search is aborted by a stop event, a deadline or the state
    limit. Distinct from an unsatisfiable puzzle, which is an ordinary result.
    """

    def __init__(
        self,
        message: str = SEARCH_CANCELLED_MESSAGE,
        *,
        reason: str = "stopped",
        nodes_visited: Optional[int] = None,
    ) -> None:
        super().__init__(message)
        self.reason = reason
        self.nodes_visited = nodes_visited


class SolverInvariantError(SlitherlinkError, AssertionError):
    """
    Internal bookkeeping went inconsistent. This is a programming defect.
    """


def _positive_int(raw) -> Optional[int]:
    try:
        value = int(raw)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def _positive_float(raw) -> Optional[float]:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        return None
    return value if value > 0 else None


def resolve_max_states(explicit: Optional[int] = None) -> int:
    """
    Resolve the per-call solver state limit.

    Priority:
    1) explicit argument
    2) env SLITHERLINK_MAX_STATES
    3) DEFAULT_MAX_STATES
    """
    for raw in (explicit, os.getenv("SLITHERLINK_MAX_STATES")):
        if raw is None:
            continue
        value = _positive_int(raw)
        if value is not None:
            return value
    return DEFAULT_MAX_STATES


def resolve_timeout(explicit: Optional[float] = None) -> Optional[float]:
    """Explicit timeout, then env SLITHERLINK_SOLVER_TIMEOUT, else no timeout."""
    for raw in (explicit, os.getenv("SLITHERLINK_SOLVER_TIMEOUT")):
        if raw is None:
            continue
        value = _positive_float(raw)
        if value is not None:
            return value
    return None


def resolve_max_restarts(explicit: Optional[int] = None) -> int:
    """Explicit restart budget, then env SLITHERLINK_MAX_RESTARTS, else 500."""
    for raw in (explicit, os.getenv("SLITHERLINK_MAX_RESTARTS")):
        if raw is None:
            continue
        value = _positive_int(raw)
        if value is not None:
            return value
    return DEFAULT_MAX_RESTARTS
