"""
Bounded-parallelism map.

`concurrency` workers pull the next index from a shared counter until the
batch is exhausted. Each slot holds either the worker's return value or the
exception it raised; one failing item never stops the others.
"""

from __future__ import annotations

import itertools
import logging
import threading
from collections.abc import Callable, Sequence
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar, Union

T = TypeVar("T")
R = TypeVar("R")

log = logging.getLogger(__name__)

Outcome = Union[R, Exception]


def run_bounded(
    items: Sequence[T],
    worker: Callable[[T], R],
    concurrency: int = 1,
) -> list[Outcome]:
    """Apply `worker` to every item with at most `concurrency` in flight; results keep input order."""
    n = len(items)
    if n == 0:
        return []

    results: list[Outcome] = [None] * n  # type: ignore[list-item]
    counter = itertools.count()
    lock = threading.Lock()

    def _next_index() -> int:
        with lock:
            return next(counter)

    def _drain() -> None:
        while True:
            idx = _next_index()
            if idx >= n:
                return
            try:
                results[idx] = worker(items[idx])
            except Exception as e:
                log.warning("item %d failed: %r", idx, e)
                results[idx] = e

    workers = max(1, min(int(concurrency or 1), n))
    if workers == 1:
        _drain()
        return results

    with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="dispatch") as pool:
        futures = [pool.submit(_drain) for _ in range(workers)]
        for fut in futures:
            fut.result()
    return results


def successes(outcomes: Sequence[Outcome]) -> list:
    """Drop error slots (and empty ones)."""
    return [o for o in outcomes if o is not None and not isinstance(o, Exception)]
