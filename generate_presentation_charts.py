"""
Presentation Chart Generator
=============================
Draws charts from a generator benchmark CSV (see benchmark_generator.py).
Run:  python generate_presentation_charts.py --input generator_benchmark.csv
Output: presentation_charts/ folder with 4 PNG files.
"""

import argparse
import csv
import os
from collections import defaultdict
from typing import Any, Dict, List

import numpy as np

import matplotlib
matplotlib.use("Agg")  # Non-interactive backend for file output
import matplotlib.pyplot as plt

from slitherlink.generators.difficulty_policy import DENSITY_BANDS, Difficulty

# ─────────────────────────────────────────────────────────────
# Color Palette & Styling
# ─────────────────────────────────────────────────────────────
COLORS = {
    "easy":      "#51CF66",   # Emerald Green
    "medium":    "#339AF0",   # Sky Blue
    "difficult": "#FF6B6B",   # Coral Red
}
BG_COLOR = "#1A1B26"
CARD_COLOR = "#24283B"
TEXT_COLOR = "#C0CAF5"
GRID_COLOR = "#414868"
ACCENT_GOLD = "#E0AF68"


def setup_style():
    """Apply a dark, presentation-friendly matplotlib style."""
    plt.rcParams.update({
        "figure.facecolor": BG_COLOR,
        "axes.facecolor": CARD_COLOR,
        "axes.edgecolor": GRID_COLOR,
        "axes.labelcolor": TEXT_COLOR,
        "axes.titleweight": "bold",
        "text.color": TEXT_COLOR,
        "xtick.color": TEXT_COLOR,
        "ytick.color": TEXT_COLOR,
        "grid.color": GRID_COLOR,
        "grid.alpha": 0.3,
        "font.size": 13,
        "axes.titlesize": 16,
        "legend.facecolor": CARD_COLOR,
        "legend.edgecolor": GRID_COLOR,
        "figure.dpi": 180,
        "savefig.dpi": 180,
        "savefig.bbox": "tight",
        "savefig.facecolor": BG_COLOR,
    })


def load_results(path: str) -> Dict[str, List[Dict[str, Any]]]:
    """Generated puzzles from the CSV, grouped by difficulty."""
    grouped = defaultdict(list)
    with open(path, newline="") as f:
        for row in csv.DictReader(f):
            if row["generated"] != "True":
                continue
            grouped[row["difficulty"]].append({
                "size": int(row["size"]),
                "density": float(row["density"]),
                "gen_time": float(row["gen_time"]),
                "solve_time": float(row["solve_time"]),
                "solver_nodes": int(row["solver_nodes"]),
                "loop_length": int(row["loop_length"]),
            })
    order = [d.value for d in Difficulty]
    return {d: grouped[d] for d in order if grouped.get(d)}


def _finish(ax, fig, out_dir, filename, label):
    ax.spines["top"].set_visible(False)
    ax.spines["right"].set_visible(False)
    fig.savefig(os.path.join(out_dir, filename))
    plt.close(fig)
    print(f"  ✓ {label}")


def chart_1_density(results, out_dir):
    """Box plot: clue density per difficulty against its target band."""
    fig, ax = plt.subplots(figsize=(10, 6))
    labels = list(results.keys())
    data = [np.array([r["density"] for r in results[d]]) * 100 for d in labels]

    for i, diff in enumerate(labels, start=1):
        low, high = DENSITY_BANDS[Difficulty.parse(diff)]
        ax.fill_between([i - 0.4, i + 0.4], low * 100, high * 100,
                        color=COLORS[diff], alpha=0.15, zorder=1)

    box = ax.boxplot(data, patch_artist=True, zorder=3)
    for patch, diff in zip(box["boxes"], labels):
        patch.set_facecolor(COLORS[diff])
        patch.set_alpha(0.85)
    for median in box["medians"]:
        median.set_color(ACCENT_GOLD)

    ax.set_xticks(range(1, len(labels) + 1))
    ax.set_xticklabels([d.capitalize() for d in labels])
    ax.set_ylabel("Clue Density (%)")
    ax.set_title("Clue Density vs Target Band", fontsize=18, pad=15)
    ax.grid(axis="y", zorder=0)
    _finish(ax, fig, out_dir, "1_density.png", "Chart 1: Density")


def chart_2_timing(results, out_dir):
    """Bar chart: average generation and solve time per difficulty."""
    fig, ax = plt.subplots(figsize=(10, 6))
    labels = list(results.keys())
    x = np.arange(len(labels))
    width = 0.35

    gen = [np.mean([r["gen_time"] for r in results[d]]) for d in labels]
    solve = [np.mean([r["solve_time"] for r in results[d]]) for d in labels]
    ax.bar(x - width / 2, gen, width, label="Generate", color=ACCENT_GOLD, alpha=0.9, zorder=3)
    ax.bar(x + width / 2, solve, width, label="Solve", color=[COLORS[d] for d in labels],
           alpha=0.9, zorder=3)

    ax.set_xticks(x)
    ax.set_xticklabels([d.capitalize() for d in labels])
    ax.set_ylabel("Average Time (seconds)")
    ax.set_title("Generation and Solve Time", fontsize=18, pad=15)
    ax.legend(loc="upper left")
    ax.grid(axis="y", zorder=0)
    _finish(ax, fig, out_dir, "2_timing.png", "Chart 2: Timing")


def chart_3_effort(results, out_dir):
    """Scatter: solver nodes against clue density."""
    fig, ax = plt.subplots(figsize=(10, 6))
    for diff, rows in results.items():
        ax.scatter([r["density"] * 100 for r in rows], [r["solver_nodes"] for r in rows],
                   label=diff.capitalize(), color=COLORS[diff], alpha=0.8, zorder=3)
    ax.set_xlabel("Clue Density (%)")
    ax.set_ylabel("Solver Nodes")
    ax.set_yscale("log")
    ax.set_title("Search Effort vs Clue Density", fontsize=18, pad=15)
    ax.legend()
    ax.grid(True, zorder=0)
    _finish(ax, fig, out_dir, "3_effort.png", "Chart 3: Search Effort")


def chart_4_loop_length(results, out_dir):
    """Histogram: loop length as a share of all dots."""
    fig, ax = plt.subplots(figsize=(10, 6))
    coverage = [r["loop_length"] / (r["size"] ** 2) * 100 for rows in results.values() for r in rows]
    ax.hist(coverage, bins=np.linspace(0, 100, 21), color=ACCENT_GOLD, alpha=0.9, zorder=3)
    ax.set_xlabel("Loop Coverage (% of dots)")
    ax.set_ylabel("Puzzles")
    ax.set_title("Loop Length Distribution", fontsize=18, pad=15)
    ax.grid(axis="y", zorder=0)
    _finish(ax, fig, out_dir, "4_loop_length.png", "Chart 4: Loop Length")


def main():
    parser = argparse.ArgumentParser(description="Generate Presentation Charts")
    parser.add_argument("--input", type=str, default="generator_benchmark.csv",
                        help="Benchmark CSV (default: generator_benchmark.csv)")
    parser.add_argument("--output-dir", type=str, default="presentation_charts",
                        help="Folder for the PNG files")
    args = parser.parse_args()

    results = load_results(args.input)
    if not results:
        parser.error(f"No generated puzzles in {args.input}")

    os.makedirs(args.output_dir, exist_ok=True)
    setup_style()

    print("Generating Charts...")
    chart_1_density(results, args.output_dir)
    chart_2_timing(results, args.output_dir)
    chart_3_effort(results, args.output_dir)
    chart_4_loop_length(results, args.output_dir)
    print(f"All charts saved to: {args.output_dir}")


if __name__ == "__main__":
    main()
