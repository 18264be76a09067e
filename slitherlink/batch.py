"""
Batch generation on a concurrent.futures pool.

Each request is an independent generate_puzzle() call with its own random
source, so requests share no mutable state and can run in any order.
"""

from __future__ import annotations

import concurrent.futures
import logging
from typing import Any, Dict, Iterable, List, Mapping, Optional, Sequence, Union

from slitherlink.puzzle import Puzzle, generate_puzzle
from slitherlink.solvers.solver_errors import InvalidInputError

logger = logging.getLogger(__name__)

Request = Union[Mapping[str, Any], Sequence[Any]]

_EXECUTORS = {
    "process": concurrent.futures.ProcessPoolExecutor,
    "thread": concurrent.futures.ThreadPoolExecutor,
}


def _as_kwargs(request: Request) -> Dict[str, Any]:
    """Accepts {"grid_size": ..., "difficulty": ..., ...} or (grid_size, difficulty[, seed])."""
    if isinstance(request, Mapping):
        kwargs = dict(request)
    else:
        values = list(request)
        if not 2 <= len(values) <= 3:
            raise InvalidInputError(f"Request must be (grid_size, difficulty[, seed]), got {request!r}")
        kwargs = dict(zip(("grid_size", "difficulty", "rng_seed"), values))
    if "grid_size" not in kwargs or "difficulty" not in kwargs:
        raise InvalidInputError(f"Request needs grid_size and difficulty: {request!r}")
    return kwargs


def _run_request(kwargs: Dict[str, Any]) -> Puzzle:
    return generate_puzzle(**kwargs)


def generate_batch(requests: Iterable[Request], max_workers: Optional[int] = None,
                   executor: str = "process") -> List[Puzzle]:
    """
    Generate one puzzle per request in parallel. Results come back in request
    order; the first failing request's exception is re-raised after the
    remaining work is cancelled.
    """
    if executor not in _EXECUTORS:
        raise InvalidInputError(f"Unknown executor {executor!r}; expected 'process' or 'thread'")
    jobs = [_as_kwargs(r) for r in requests]
    if not jobs:
        return []

    logger.info("Generating %d puzzle(s) on a %s pool", len(jobs), executor)
    with _EXECUTORS[executor](max_workers=max_workers) as pool:
        futures = [pool.submit(_run_request, job) for job in jobs]
        try:
            return [f.result() for f in futures]
        except BaseException:
            for f in futures:
                f.cancel()
            raise
