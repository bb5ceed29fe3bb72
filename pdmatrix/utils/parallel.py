# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Thread Pool Helper
Index-preserving map over a ThreadPoolExecutor. Results are merged by
input position, never by completion order, so the output of a run does
not depend on n_threads.
"""

from __future__ import annotations

from concurrent.futures import Future, ThreadPoolExecutor
from typing import Callable, Sequence, TypeVar

T = TypeVar("T")
R = TypeVar("R")


def parallel_map(fn: Callable[[T], R], items: Sequence[T], n_threads: int = 1) -> list[R]:
    """Apply `fn` to every item; sequential when n_threads <= 1."""
    if n_threads <= 1 or len(items) <= 1:
        return [fn(item) for item in items]

    with ThreadPoolExecutor(max_workers=n_threads) as executor:
        futures: list[Future[R]] = [executor.submit(fn, item) for item in items]
        return [future.result() for future in futures]
