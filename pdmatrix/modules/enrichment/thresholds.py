# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Progressive Threshold Schedule
Per-family persistence thresholds, all lists indexed by PairFamily.

  start:  half the most persistent value of the family
  step:   halve the threshold
  end:    once it falls below the least persistent value, jump to the
          floor (0 = every point, or min_persistence_ratio × most persistent)

Families without pairs carry NaN statistics and get threshold 0.
"""

from __future__ import annotations

import math
from typing import Optional, Sequence


def initial_thresholds(most_persistent: Sequence[float]) -> list[float]:
    return [0.0 if math.isnan(m) else m / 2.0 for m in most_persistent]


def next_thresholds(
    current: Sequence[float],
    less_persistent: Sequence[float],
    floors: Optional[Sequence[float]] = None,
) -> list[float]:
    """Halve each threshold, dropping to its floor below the least persistent pair."""
    if floors is None:
        floors = [0.0] * len(current)

    thresholds: list[float] = []
    for value, least, floor in zip(current, less_persistent, floors):
        halved = value / 2.0
        if math.isnan(least) or halved < least:
            halved = floor
        thresholds.append(max(halved, floor))
    return thresholds


def schedule_finished(previous: Sequence[float], floors: Optional[Sequence[float]] = None) -> bool:
    """True once every family has been enriched down to its floor."""
    if floors is None:
        floors = [0.0] * len(previous)
    return all(p <= f for p, f in zip(previous, floors))
