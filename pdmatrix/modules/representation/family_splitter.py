# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Pair-Type Family Splitter
Partitions every input diagram into the three disjoint pair-type families.
Geometric distance only makes sense within one family, so each family is
matched independently downstream.

Classification (checked in this order):
  minimum – maximum   → MIN_SADDLE   (the global pair)
  touches a maximum   → SADDLE_MAX
  touches a minimum   → MIN_SADDLE
  saddle1 – saddle2   → SADDLE_SADDLE
  anything else       → ignored

pair_type filter: -1 keeps every family, 0/1/2 keeps only that family.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Sequence

from pdmatrix.models.diagram import (
    ALL_FAMILIES,
    CriticalPair,
    CriticalType,
    PairFamily,
    RawPair,
    as_pair,
)
from pdmatrix.models.state import FamilyToggles
from pdmatrix.utils.logger import get_logger

log = get_logger(__name__)

_SADDLES = {CriticalType.SADDLE1, CriticalType.SADDLE2}


@dataclass
class FamilySplit:
    inputs: dict[PairFamily, list[list[CriticalPair]]]
    toggles: FamilyToggles
    ignored: int = 0


def classify_pair(pair: CriticalPair) -> Optional[PairFamily]:
    """Return the family a pair belongs to, or None if it belongs to none."""
    birth, death = pair.birth_type, pair.death_type
    if birth == CriticalType.LOCAL_MINIMUM and death == CriticalType.LOCAL_MAXIMUM:
        return PairFamily.MIN_SADDLE
    if CriticalType.LOCAL_MAXIMUM in (birth, death):
        return PairFamily.SADDLE_MAX
    if CriticalType.LOCAL_MINIMUM in (birth, death):
        return PairFamily.MIN_SADDLE
    if birth in _SADDLES and death in _SADDLES and birth != death:
        return PairFamily.SADDLE_SADDLE
    return None


def split_by_family(
    diagrams: Sequence[Sequence[RawPair]],
    pair_type: int = -1,
) -> FamilySplit:
    """
    Split raw diagrams into per-family pair lists.

    Args:
        diagrams:  One sequence of CriticalPair / DiagramTuple per input
        pair_type: Family filter (-1 = all)

    Returns:
        FamilySplit with one list of pairs per (family, input) and the
        toggles of families that own at least one pair and pass the filter.
    """
    inputs: dict[PairFamily, list[list[CriticalPair]]] = {
        f: [[] for _ in diagrams] for f in ALL_FAMILIES
    }
    ignored = 0

    for i, diagram in enumerate(diagrams):
        for raw in diagram:
            pair = as_pair(raw)
            family = classify_pair(pair)
            if family is None:
                ignored += 1
                continue
            inputs[family][i].append(pair)

    toggles = FamilyToggles()
    for family in ALL_FAMILIES:
        populated = any(inputs[family][i] for i in range(len(diagrams)))
        allowed = pair_type == -1 or pair_type == int(family)
        toggles = toggles.with_family(family, populated and allowed)

    log.info(
        "family_split_complete",
        n_diagrams=len(diagrams),
        active=[f.label for f in toggles.active],
        pair_counts={f.label: sum(len(d) for d in inputs[f]) for f in ALL_FAMILIES},
        ignored=ignored,
    )

    return FamilySplit(inputs=inputs, toggles=toggles, ignored=ignored)
