"""Parallel execution over contiguous ranges of independent tasks.

Each worker receives one contiguous, disjoint range of task indices, e.g.
a block of test-cell columns. Workers run as threads so they can write
their results straight into shared output arrays at disjoint positions.
"""

from __future__ import annotations

import logging
import math
import time
from typing import Callable, List, Optional, Tuple

from joblib import Parallel, delayed

RangeFunction = Callable[[int, int, int], None]


def check_num_threads(num_threads: int) -> int:
    """Validate a worker count and return it as int."""
    num_threads = int(num_threads)
    if num_threads < 1:
        raise ValueError(f"num_threads must be at least 1, got {num_threads}")
    return num_threads


def split_ranges(n_tasks: int, n_workers: int) -> List[Tuple[int, int]]:
    """Split ``n_tasks`` into at most ``n_workers`` contiguous ranges.

    Returns:
        List of (start, length) tuples; empty ranges are omitted
    """
    n_workers = check_num_threads(n_workers)
    if n_tasks <= 0:
        return []
    per_worker = math.ceil(n_tasks / n_workers)
    return [
        (start, min(per_worker, n_tasks - start))
        for start in range(0, n_tasks, per_worker)
    ]


def parallelize(
    fn: RangeFunction,
    n_tasks: int,
    n_workers: int = 1,
    logger: Optional[logging.Logger] = None,
) -> None:
    """Run ``fn(worker_index, start, length)`` over contiguous task ranges.

    With a single range the function runs in the calling thread. Otherwise
    the ranges are dispatched with joblib's threading backend. Exceptions
    raised by any worker propagate to the caller.

    Parameters
    ----------
    fn : RangeFunction
        Worker function taking (worker_index, start, length).
    n_tasks : int
        Total number of tasks.
    n_workers : int
        Number of workers (1 = sequential).
    logger : logging.Logger, optional
        Logger for timing information.
    """
    _logger = logger or logging.getLogger(__name__)
    ranges = split_ranges(n_tasks, n_workers)
    if not ranges:
        return

    start_time = time.time()
    if len(ranges) == 1:
        start, length = ranges[0]
        fn(0, start, length)
    else:
        Parallel(n_jobs=len(ranges), backend="threading")(
            delayed(fn)(worker, start, length)
            for worker, (start, length) in enumerate(ranges)
        )

    _logger.debug(
        "Processed %d tasks in %d ranges in %.2f sec",
        n_tasks,
        len(ranges),
        time.time() - start_time,
    )
