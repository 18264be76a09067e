"""
Difficulty / Density Policy
===========================
Static lookup from a difficulty label to the clue-density band the
reducer aims for, plus the removal-priority scoring used when a policy
asks for priority ordering instead of a plain random permutation.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, Optional, Tuple

from slitherlink.solvers.solver_errors import InvalidInputError


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    DIFFICULT = "difficult"

    @classmethod
    def parse(cls, value) -> "Difficulty":
        if isinstance(value, cls):
            return value
        try:
            return cls(str(value).strip().lower())
        except ValueError:
            raise InvalidInputError(
                f"Unknown difficulty {value!r}; expected one of easy, medium, difficult"
            ) from None


@dataclass(frozen=True)
class DifficultyPolicy:
    difficulty: Difficulty
    density_low: float
    density_high: float
    ordering: str = "random"    # "random" or "priority"

    def contains(self, density: float) -> bool:
        return self.density_low <= density <= self.density_high


# Size-independent bands
DENSITY_BANDS: Dict[Difficulty, Tuple[float, float]] = {
    Difficulty.EASY: (0.35, 0.60),
    Difficulty.MEDIUM: (0.20, 0.40),
    Difficulty.DIFFICULT: (0.15, 0.30),
}

# Bands calibrated per grid size, keyed by the largest dot count of the tier
CALIBRATED_BANDS: Tuple[Tuple[int, Dict[Difficulty, Tuple[float, float]]], ...] = (
    (7, {
        Difficulty.EASY: (0.45, 0.65),
        Difficulty.MEDIUM: (0.35, 0.50),
        Difficulty.DIFFICULT: (0.25, 0.40),
    }),
    (10, {
        Difficulty.EASY: (0.35, 0.50),
        Difficulty.MEDIUM: (0.25, 0.35),
        Difficulty.DIFFICULT: (0.15, 0.25),
    }),
    (None, {
        Difficulty.EASY: (0.30, 0.45),
        Difficulty.MEDIUM: (0.20, 0.30),
        Difficulty.DIFFICULT: (0.15, 0.25),
    }),
)


def policy_for(difficulty, grid_size: Optional[int] = None, calibrated: bool = False,
               ordering: str = "random") -> DifficultyPolicy:
    """
    Look up the density band for a difficulty. With ``calibrated=True`` and a
    grid size, the band narrows as the grid grows.
    """
    level = Difficulty.parse(difficulty)
    if ordering not in ("random", "priority"):
        raise InvalidInputError(f"Unknown ordering {ordering!r}")

    low, high = DENSITY_BANDS[level]
    if calibrated:
        if grid_size is None:
            raise InvalidInputError("Calibrated bands need a grid size")
        for limit, bands in CALIBRATED_BANDS:
            if limit is None or grid_size <= limit:
                low, high = bands[level]
                break
    return DifficultyPolicy(level, low, high, ordering)


def removal_priority(cell: Tuple[int, int], value: int, grid_size: int, difficulty) -> int:
    """
    Higher priority = tried for removal earlier.
    Centre cells, 0s and 3s go first; corners go first on difficult puzzles
    and last on the easier ones.
    """
    level = Difficulty.parse(difficulty)
    row, col = cell
    last = grid_size - 2
    priority = 0

    centre_distance = min(row, col, last - row, last - col)
    priority += centre_distance * 2

    priority += {0: 5, 3: 5, 1: 3, 2: 1}.get(value, 0)

    is_corner = row in (0, last) and col in (0, last)
    is_edge = row in (0, last) or col in (0, last)
    if level is Difficulty.DIFFICULT:
        if is_corner:
            priority += 10
        elif is_edge:
            priority += 3
    else:
        if is_corner:
            priority -= 5
        elif is_edge:
            priority += 1
    return priority
