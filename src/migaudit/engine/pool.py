"""Bounded worker pool used for file reads and per-file rule evaluation."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable

T = TypeVar("T")
R = TypeVar("R")


def bounded_map(func: Callable[[T], R], items: Iterable[T], *, concurrency: int) -> list[R]:
    """Apply *func* to every item using at most *concurrency* worker threads.

    Results are returned in input order.  The first failure (in input order)
    cancels work that has not started yet and is re-raised once every running
    task has finished, so no worker outlives the call.
    """
    if concurrency < 1:
        msg = f"concurrency must be a positive integer, got {concurrency}"
        raise ValueError(msg)

    work = list(items)
    if not work:
        return []

    executor = ThreadPoolExecutor(
        max_workers=min(concurrency, len(work)),
        thread_name_prefix="migaudit",
    )
    try:
        futures = [executor.submit(func, item) for item in work]
        return [future.result() for future in futures]
    finally:
        executor.shutdown(wait=True, cancel_futures=True)
