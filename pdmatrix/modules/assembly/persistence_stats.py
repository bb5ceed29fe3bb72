# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Extremal Persistence
Most / least persistent pair over the full diagrams, for one family or
over every active family (pair_type = -1). NaN when there is no pair.
"""

from __future__ import annotations

import math

from pdmatrix.models.diagram import ALL_FAMILIES, PairFamily
from pdmatrix.models.state import FamilyToggles, WorkingSet


def _family_values(working: WorkingSet, family: PairFamily) -> list[float]:
    data = working.family(family)
    return [float(p) for b in data.bidders for p in b.persistence]


def family_extremes(
    working: WorkingSet,
    positive_only: bool = False,
) -> tuple[list[float], list[float]]:
    """(most persistent, least persistent) per family, NaN for empty families."""
    most: list[float] = []
    less: list[float] = []
    for family in ALL_FAMILIES:
        values = _family_values(working, family)
        if positive_only:
            values = [v for v in values if v > 0.0]
        most.append(max(values) if values else math.nan)
        less.append(min(values) if values else math.nan)
    return most, less


def _selected(toggles: FamilyToggles, pair_type: int) -> tuple[PairFamily, ...]:
    if pair_type == -1:
        return toggles.active
    return (PairFamily(pair_type),)


def get_most_persistent(working: WorkingSet, toggles: FamilyToggles, pair_type: int = -1) -> float:
    values = [v for f in _selected(toggles, pair_type) for v in _family_values(working, f)]
    return max(values) if values else math.nan


def get_less_persistent(working: WorkingSet, toggles: FamilyToggles, pair_type: int = -1) -> float:
    values = [v for f in _selected(toggles, pair_type) for v in _family_values(working, f)]
    return min(values) if values else math.nan
