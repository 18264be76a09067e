"""
Generator Benchmark
===================
Generates batches of puzzles and re-solves each one, recording timings,
solver effort and clue density per puzzle.

Run:  python benchmark_generator.py --games 10 --size 7 --difficulty all
Output: CSV with one row per puzzle plus a summary table on the console.
"""

import argparse
import concurrent.futures
import csv
import logging
import time
from typing import Any, Dict, List

import numpy as np

from slitherlink.generators.difficulty_policy import Difficulty
from slitherlink.logger_config import configure_logging
from slitherlink.puzzle import check_unique_solution, generate_puzzle
from slitherlink.solvers.solver_errors import GenerationFailedError, SearchCancelledError

logger = logging.getLogger("slitherlink.benchmark")

FIELDS = [
    "game_id", "size", "difficulty", "seed", "generated", "gen_time",
    "solve_time", "solver_nodes", "solution_count", "loop_length",
    "clue_count", "cell_count", "density", "error",
]


def run_single_game(game_id: int, size: int, difficulty: str, seed: int,
                    timeout: float = None) -> Dict[str, Any]:
    """Generate one puzzle, then solve it again from its clues alone."""
    result = {
        "game_id": game_id,
        "size": size,
        "difficulty": difficulty,
        "seed": seed,
        "generated": False,
        "gen_time": 0.0,
        "solve_time": 0.0,
        "solver_nodes": 0,
        "solution_count": 0,
        "loop_length": 0,
        "clue_count": 0,
        "cell_count": (size - 1) ** 2,
        "density": 0.0,
        "error": "",
    }

    start = time.perf_counter()
    try:
        puzzle = generate_puzzle(size, difficulty, seed, timeout=timeout)
    except (GenerationFailedError, SearchCancelledError) as e:
        result["gen_time"] = time.perf_counter() - start
        result["error"] = type(e).__name__
        return result
    result["gen_time"] = time.perf_counter() - start

    solved = check_unique_solution(size, puzzle.clues, timeout=timeout)
    result.update(
        generated=True,
        solve_time=solved.time_taken,
        solver_nodes=solved.nodes_visited,
        solution_count=solved.solution_count,
        loop_length=puzzle.loop_length,
        clue_count=puzzle.clue_count,
        density=puzzle.density,
    )
    return result


def run_benchmark(games: int, size: int, difficulties: List[str], base_seed: int,
                  workers: int = 1, timeout: float = None) -> List[Dict[str, Any]]:
    jobs = []
    game_id = 0
    for diff in difficulties:
        for g in range(games):
            game_id += 1
            jobs.append((game_id, size, diff, base_seed + g, timeout))

    if workers <= 1:
        results = []
        for i, job in enumerate(jobs):
            print(f"Running Game {i+1}/{len(jobs)}...", end="\r")
            results.append(run_single_game(*job))
        print()
        return results

    with concurrent.futures.ProcessPoolExecutor(max_workers=workers) as pool:
        futures = [pool.submit(run_single_game, *job) for job in jobs]
        return [f.result() for f in futures]


def print_summary(results: List[Dict[str, Any]]):
    print("\n" + "=" * 78)
    print("  GENERATOR BENCHMARK SUMMARY")
    print("=" * 78)
    print(f"  {'Difficulty':<11} {'Games':>6} {'OK':>5} {'Unique':>7} {'Density':>9} "
          f"{'Gen (s)':>9} {'Solve (s)':>10} {'Nodes':>10}")
    print("-" * 78)

    for diff in dict.fromkeys(r["difficulty"] for r in results):
        rows = [r for r in results if r["difficulty"] == diff]
        ok = [r for r in rows if r["generated"]]
        unique = sum(1 for r in ok if r["solution_count"] == 1)
        if ok:
            density = np.mean([r["density"] for r in ok]) * 100
            gen_t = np.mean([r["gen_time"] for r in ok])
            solve_t = np.mean([r["solve_time"] for r in ok])
            nodes = np.mean([r["solver_nodes"] for r in ok])
        else:
            density = gen_t = solve_t = nodes = 0.0
        print(f"  {diff:<11} {len(rows):>6} {len(ok):>5} {unique:>7} {density:>8.1f}% "
              f"{gen_t:>9.3f} {solve_t:>10.4f} {nodes:>10.0f}")
    print("=" * 78)


def main():
    parser = argparse.ArgumentParser(description="Benchmark the puzzle generator")
    parser.add_argument("--games", type=int, default=10, help="Puzzles per difficulty")
    parser.add_argument("--size", type=int, default=7, help="Dots per side")
    parser.add_argument("--difficulty", action="append", default=None,
                        help="easy, medium, difficult or all (repeatable)")
    parser.add_argument("--seed", type=int, default=0, help="Seed of the first puzzle")
    parser.add_argument("--workers", type=int, default=1, help="Worker processes")
    parser.add_argument("--timeout", type=float, default=None, help="Per-puzzle timeout (s)")
    parser.add_argument("--output", type=str, default="generator_benchmark.csv", help="Output CSV file")
    parser.add_argument("--log-level", type=str, default=None, help="Logging level")
    args = parser.parse_args()

    configure_logging(args.log_level)

    requested = args.difficulty or ["all"]
    if "all" in requested:
        difficulties = [d.value for d in Difficulty]
    else:
        difficulties = [Difficulty.parse(d).value for d in requested]

    logger.info("Starting benchmark: %d game(s) x %s on a %dx%d grid",
                args.games, ", ".join(difficulties), args.size, args.size)
    results = run_benchmark(args.games, args.size, difficulties, args.seed,
                            args.workers, args.timeout)

    with open(args.output, "w", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=FIELDS)
        writer.writeheader()
        writer.writerows(results)
    logger.info("Results saved to %s", args.output)

    print_summary(results)


if __name__ == "__main__":
    main()
