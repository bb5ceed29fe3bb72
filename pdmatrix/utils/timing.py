# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Wall-Clock Budget
Deadline polled between rounds. There is no other cancellation point:
work in progress always finishes its current round.
"""

from __future__ import annotations

import math
import time


class Deadline:
    """Monotonic-clock budget of `seconds` starting at construction."""

    def __init__(self, seconds: float = math.inf) -> None:
        self.seconds = seconds
        self._start = time.perf_counter()

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self._start

    @property
    def remaining(self) -> float:
        if math.isinf(self.seconds):
            return math.inf
        return max(self.seconds - self.elapsed, 0.0)

    def expired(self) -> bool:
        if math.isinf(self.seconds):
            return False
        return self.elapsed >= self.seconds
