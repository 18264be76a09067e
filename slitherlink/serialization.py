"""
Boundary formats
================
Conversions between in-memory puzzles and the JSON records used by the
puzzle service:

- clue grids: (N-1) x (N-1) arrays, ``-1`` or ``null`` for "no clue"
- solutions: ``pairs`` of dot indices following the loop, dot = row * N + col
- puzzle records: ``puzzle_data`` / ``solution_data`` documents and the
  generator response (``count`` / ``pairs`` / ``seed`` JSON strings)
"""

from __future__ import annotations

import hashlib
import json
from typing import Any, Dict, List, Optional, Sequence

import numpy as np

from slitherlink.grid import NO_CLUE, ClueGrid, EdgeAssignment, Grid, normalize_clues
from slitherlink.solvers.solver_errors import InvalidInputError
from slitherlink.validators import is_single_loop

Pair = List[int]


# ── Clue grids ─────────────────────────────────────────────────

def clues_to_json(clues, blank: Optional[int] = NO_CLUE) -> List[List[Optional[int]]]:
    """Plain nested lists; blanks become ``blank`` (-1 by default, or None)."""
    return [[blank if v is None or v == NO_CLUE else int(v) for v in row] for row in clues]


def clues_from_json(rows, grid_size: Optional[int] = None) -> ClueGrid:
    """Parse a clue array (``-1``/``null`` blanks). Grid size defaults to rows + 1."""
    if isinstance(rows, str):
        rows = json.loads(rows)
    if grid_size is None:
        grid_size = len(rows) + 1
    return normalize_clues(Grid(grid_size), rows)


def clues_to_array(clues) -> np.ndarray:
    """Clue grid as an int8 numpy array with -1 for blanks."""
    return np.array(clues_to_json(clues), dtype=np.int8).reshape(len(clues), -1)


def clues_from_array(array: np.ndarray) -> ClueGrid:
    arr = np.asarray(array)
    if arr.ndim != 2 or arr.shape[0] != arr.shape[1]:
        raise InvalidInputError(f"Clue array must be square, got shape {arr.shape}")
    return clues_from_json(arr.astype(int).tolist(), arr.shape[0] + 1)


def seed_to_text(seed) -> Optional[str]:
    """JSON-safe seed: bytes as hex, everything else via str()."""
    if seed is None:
        return None
    if isinstance(seed, (bytes, bytearray)):
        return bytes(seed).hex()
    return str(seed)


def puzzle_hash(clues) -> str:
    """sha256 of the compact JSON clue array (null blanks), used for dedup."""
    payload = json.dumps(clues_to_json(clues, blank=None), separators=(",", ":"))
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


# ── Solutions ──────────────────────────────────────────────────

def solution_to_pairs(grid: Grid, assignment: EdgeAssignment) -> List[Pair]:
    """
    Loop as consecutive (dot, next_dot) pairs, starting from the lowest dot
    index on the loop and heading to its lower-index neighbour first.
    """
    ok, reason = is_single_loop(grid, assignment)
    if not ok:
        raise InvalidInputError(f"Assignment is not a single loop: {reason}")

    adj: Dict[int, List[int]] = {}
    for e in assignment.on_edges():
        a, b = grid.edge_dot_ids[e]
        adj.setdefault(a, []).append(b)
        adj.setdefault(b, []).append(a)

    start = min(adj)
    prev, current = start, min(adj[start])
    pairs = [[start, current]]
    while current != start:
        a, b = adj[current]
        nxt = b if a == prev else a
        pairs.append([current, nxt])
        prev, current = current, nxt
    return pairs


def solution_from_pairs(grid: Grid, pairs: Sequence[Sequence[int]]) -> EdgeAssignment:
    """Complete assignment with the paired edges ON (order does not matter)."""
    if isinstance(pairs, str):
        pairs = json.loads(pairs)
    edges = []
    for pair in pairs:
        try:
            a, b = (int(x) for x in pair)
        except (TypeError, ValueError):
            raise InvalidInputError(f"Invalid dot pair {pair!r}") from None
        if not (0 <= a < grid.dot_count and 0 <= b < grid.dot_count):
            raise InvalidInputError(f"Dot pair {pair!r} outside a {grid.size}x{grid.size} grid")
        edges.append(grid.edge_between(grid.dot_coords(a), grid.dot_coords(b)))
    return EdgeAssignment.from_on_edges(grid, edges)


# ── Records ────────────────────────────────────────────────────

def puzzle_to_record(puzzle) -> Dict[str, Any]:
    """Document shaped like the puzzle service's stored puzzle."""
    grid = Grid(puzzle.grid_size)
    clues = clues_to_json(puzzle.clues, blank=None)
    pairs = solution_to_pairs(grid, puzzle.solution)
    return {
        "puzzle_hash": puzzle_hash(puzzle.clues),
        "grid_size": puzzle.grid_size,
        "difficulty": puzzle.difficulty,
        "density": puzzle.density,
        "seed": puzzle.seed if isinstance(puzzle.seed, int) else seed_to_text(puzzle.seed),
        "puzzle_data": {"clues": clues, "gridSize": puzzle.grid_size},
        "solution_data": {
            "pairs": pairs,
            "edges": [{"from": a, "to": b, "isPath": True} for a, b in pairs],
        },
    }


def puzzle_from_record(record: Dict[str, Any]):
    """Rebuild a Puzzle from a stored document."""
    from slitherlink.puzzle import Puzzle

    try:
        grid_size = int(record["puzzle_data"].get("gridSize", record.get("grid_size")))
        clue_rows = record["puzzle_data"]["clues"]
        pairs = record["solution_data"]["pairs"]
        difficulty = record["difficulty"]
    except (KeyError, TypeError, AttributeError) as e:
        raise InvalidInputError(f"Malformed puzzle record: missing {e}") from None

    grid = Grid(grid_size)
    clues = normalize_clues(grid, clue_rows)
    solution = solution_from_pairs(grid, pairs)
    return Puzzle.build(grid, clues, solution, difficulty, seed=record.get("seed"))


def puzzle_to_generator_response(puzzle) -> Dict[str, str]:
    """
    Response of the generation endpoint: ``count`` (clue array, -1 blanks)
    and ``pairs`` as JSON strings, ``seed`` as "size-difficulty-seed" (bytes seeds hex-encoded).
    """
    grid = Grid(puzzle.grid_size)
    return {
        "count": json.dumps(clues_to_json(puzzle.clues)),
        "pairs": json.dumps(solution_to_pairs(grid, puzzle.solution)),
        "seed": f"{puzzle.grid_size}-{puzzle.difficulty}-{seed_to_text(puzzle.seed)}",
    }
