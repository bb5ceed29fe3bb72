# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Bidder Diagram Builder
Projects critical pairs into BidderDiagrams and assembles the WorkingSet
used by every later stage.

Critical coordinates of a point interpolate the two critical positions:
  coords = lambda · extremum + (1 − lambda) · saddle
The extremum is the birth of MIN_SADDLE / SADDLE_SADDLE pairs and the
death of SADDLE_MAX pairs. lambda = 1 is the most stable choice.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from pdmatrix.models.diagram import ALL_FAMILIES, CriticalPair, PairFamily
from pdmatrix.models.state import FamilyData, FamilyToggles, WorkingSet
from pdmatrix.models.views import COORD_DIM, BidderDiagram
from pdmatrix.utils.logger import get_logger

log = get_logger(__name__)


def pair_coordinates(
    pair: CriticalPair,
    family: PairFamily,
    lambda_factor: float,
) -> tuple[float, float, float]:
    birth = np.asarray(pair.birth_position, dtype=np.float64)
    death = np.asarray(pair.death_position, dtype=np.float64)
    if family == PairFamily.SADDLE_MAX:
        extremum, saddle = death, birth
    else:
        extremum, saddle = birth, death
    coords = lambda_factor * extremum + (1.0 - lambda_factor) * saddle
    return tuple(float(c) for c in coords)


def pairs_to_bidders(
    pairs: Sequence[CriticalPair],
    family: PairFamily,
    lambda_factor: float = 1.0,
) -> BidderDiagram:
    """Project one family's pairs of one diagram into a BidderDiagram."""
    if not pairs:
        return BidderDiagram.empty()

    births = np.array([p.birth_value for p in pairs], dtype=np.float64)
    deaths = np.array([p.death_value for p in pairs], dtype=np.float64)
    coords = np.array(
        [pair_coordinates(p, family, lambda_factor) for p in pairs],
        dtype=np.float64,
    ).reshape(len(pairs), COORD_DIM)
    pair_ids = np.array([p.pair_id for p in pairs], dtype=np.int64)

    return BidderDiagram.from_points(births, deaths, coords, pair_ids)


def build_working_set(
    inputs: dict[PairFamily, list[list[CriticalPair]]],
    toggles: FamilyToggles,
    lambda_factor: float = 1.0,
    progressive: bool = True,
) -> WorkingSet:
    """
    Build full and current bidder diagrams for every active family.

    Progressive runs start with empty current diagrams that enrichment
    fills; otherwise current diagrams are the full ones.
    """
    n_inputs = len(next(iter(inputs.values()))) if inputs else 0
    families: dict[PairFamily, FamilyData] = {}
    n_diagonal = 0

    for family in ALL_FAMILIES:
        data = FamilyData(inputs=inputs.get(family, [[] for _ in range(n_inputs)]))
        if toggles.is_active(family):
            for pairs in data.inputs:
                bidders = pairs_to_bidders(pairs, family, lambda_factor)
                n_diagonal += int((bidders.persistence == 0.0).sum())
                data.bidders.append(bidders)
                if progressive:
                    data.current.append(BidderDiagram.empty(bidders.dim))
                    data.current_ids.append(np.full(len(bidders), -1, dtype=np.int64))
                else:
                    data.current.append(bidders)
                    data.current_ids.append(np.arange(len(bidders), dtype=np.int64))
        families[family] = data

    if n_diagonal:
        log.warning("diagonal_points_in_input", count=n_diagonal)

    log.info(
        "bidder_diagrams_built",
        n_inputs=n_inputs,
        progressive=progressive,
        points={f.label: families[f].n_points for f in toggles.active},
    )

    return WorkingSet(n_inputs=n_inputs, families=families)
