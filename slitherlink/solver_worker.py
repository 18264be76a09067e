"""
Solver Worker
=============
Background-thread wrapper for one generation or solving request.

Provides:
- Background thread execution for a generation/solve task
- Hard timeout passed down to the search
- Metrics streaming via queue.Queue
- Clean stop mechanism via threading.Event
"""

import logging
import queue
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class SolverMetrics:
    """Snapshot of solver progress at a point in time."""
    timestamp: float          # seconds since the solve() call started
    states_explored: int      # total states explored so far
    states_delta: int         # states explored since last snapshot
    time_per_step_ms: float   # avg time per expansion in this window (ms)
    interval_ms: float        # time since last snapshot (ms)


class SolverWorker:
    """
    Runs a task in a background thread with a stop event, an optional
    timeout and metrics streaming.

    The task is called as ``task_fn(stop_event=..., metrics_queue=..., timeout=...)``
    and its return value becomes ``result["value"]``.

    Usage:
        worker = SolverWorker.for_generation(7, "medium", timeout=10.0)
        worker.start()
        while not worker.is_done():
            snapshots = worker.drain_metrics()
            ...
        result = worker.get_result()
    """

    def __init__(
        self,
        task_fn: Callable[..., Any],
        timeout: Optional[float] = None,
        label: str = "solver",
    ):
        self.task_fn = task_fn
        self.timeout = timeout
        self.label = label

        self.stop_event = threading.Event()
        self.done_event = threading.Event()
        self._metrics_queue: queue.Queue = queue.Queue(maxsize=500)
        self._result: Optional[Dict[str, Any]] = None
        self._thread: Optional[threading.Thread] = None
        self._error: Optional[BaseException] = None

    @classmethod
    def for_generation(cls, grid_size: int, difficulty: str, rng_seed=None,
                       timeout: Optional[float] = None, **options) -> "SolverWorker":
        """Worker that runs one generate_puzzle() request, streaming solver metrics."""
        from slitherlink.puzzle import generate_puzzle

        def task(stop_event, metrics_queue, timeout):
            return generate_puzzle(grid_size, difficulty, rng_seed, stop_event=stop_event,
                                   timeout=timeout, metrics_queue=metrics_queue, **options)

        return cls(task, timeout=timeout, label=f"generate {grid_size}x{grid_size} {difficulty}")

    @classmethod
    def for_solving(cls, grid_size: int, clues, max_solutions: int = 2,
                    timeout: Optional[float] = None) -> "SolverWorker":
        """Worker that runs one solver invocation with metrics streaming."""
        from slitherlink.solvers.loop_solver import LoopSolver

        def task(stop_event, metrics_queue, timeout):
            solver = LoopSolver(grid_size, clues, stop_event=stop_event,
                                timeout=timeout, metrics_queue=metrics_queue)
            return solver.solve(max_solutions=max_solutions)

        return cls(task, timeout=timeout, label=f"solve {grid_size}x{grid_size}")

    # ── Public API ─────────────────────────────────────────────

    def start(self):
        """Launch the task in a background daemon thread."""
        self.stop_event.clear()
        self.done_event.clear()
        self._result = None
        self._error = None

        self._thread = threading.Thread(target=self._run, name=self.label, daemon=True)
        self._thread.start()

    def stop(self):
        """Signal the task to stop cleanly."""
        self.stop_event.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for completion. Returns True when the task is done."""
        return self.done_event.wait(timeout)

    def is_done(self) -> bool:
        return self.done_event.is_set()

    def get_result(self) -> Optional[Dict[str, Any]]:
        """Return the result dict. None if not yet done."""
        if not self.done_event.is_set():
            return None
        return self._result

    def get_error(self) -> Optional[BaseException]:
        return self._error

    def drain_metrics(self) -> list:
        """Non-blocking drain of all queued metrics snapshots."""
        items = []
        while True:
            try:
                items.append(self._metrics_queue.get_nowait())
            except queue.Empty:
                break
        return items

    # ── Internal ───────────────────────────────────────────────

    def _run(self):
        from slitherlink.solvers.solver_errors import SearchCancelledError

        start_time = time.perf_counter()
        try:
            value = self.task_fn(
                stop_event=self.stop_event,
                metrics_queue=self._metrics_queue,
                timeout=self.timeout,
            )
            self._result = {
                "success": True,
                "status": "Success",
                "value": value,
            }
        except SearchCancelledError as e:
            self._error = e
            self._result = {
                "success": False,
                "status": "Cancelled",
                "reason": e.reason,
                "error": str(e),
            }
        except Exception as e:
            logger.exception("Worker %r failed", self.label)
            self._error = e
            self._result = {
                "success": False,
                "status": "Error",
                "error": str(e),
            }
        finally:
            if self._result is not None:
                self._result["time_taken"] = time.perf_counter() - start_time
                self._result["worker_label"] = self.label
            self.done_event.set()
