# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Barycenter Update
One Lloyd step of the Wasserstein barycenter of a cluster.

Every centroid point moves to the mean of what it is matched to in each
member diagram: the matched member point, or its own diagonal projection
((b + d) / 2, (b + d) / 2) when the member sends it to the diagonal.
Centroid points that end up on the diagonal are dropped. Unmatched member
points never create centroid points here; progressive enrichment grows
the centroids instead.
"""

from __future__ import annotations

from typing import Sequence

import numpy as np

from pdmatrix.models.diagram import DIAGONAL_ID, Matching
from pdmatrix.models.views import BidderDiagram, GoodDiagram

# Persistence under which a moved centroid point counts as diagonal
_COLLAPSE_TOLERANCE = 1e-12


def update_barycenter(
    centroid: GoodDiagram,
    members: Sequence[BidderDiagram],
    matchings: Sequence[Sequence[Matching]],
) -> tuple[GoodDiagram, np.ndarray]:
    """
    Move a centroid to the mean of its matched member points.

    Args:
        centroid:  Current centroid
        members:   Current diagrams of the cluster members
        matchings: matchings[m] = member m (bidders) → centroid (goods)

    Returns:
        (new centroid, keep mask over the old centroid points). Prices of
        the kept points are carried over.
    """
    n = len(centroid)
    if n == 0 or not members:
        return centroid, np.ones(n, dtype=bool)

    projection = (centroid.births + centroid.deaths) / 2.0
    births = np.zeros(n)
    deaths = np.zeros(n)
    coords = np.zeros_like(centroid.coords)

    for member, member_matchings in zip(members, matchings):
        partner = np.full(n, DIAGONAL_ID, dtype=np.int64)
        for m in member_matchings:
            if m.good_id != DIAGONAL_ID and m.bidder_id != DIAGONAL_ID:
                partner[m.good_id] = m.bidder_id
        real = partner != DIAGONAL_ID
        if not real.any():
            births += projection
            deaths += projection
            coords += centroid.coords
            continue
        safe = np.where(real, partner, 0)
        births += np.where(real, member.births[safe], projection)
        deaths += np.where(real, member.deaths[safe], projection)
        coords += np.where(real[:, None], member.coords[safe], centroid.coords)

    births /= len(members)
    deaths /= len(members)
    coords /= len(members)

    keep = np.abs(deaths - births) > _COLLAPSE_TOLERANCE
    moved = GoodDiagram.from_points(
        births[keep],
        deaths[keep],
        coords[keep],
        pair_ids=centroid.pair_ids[keep],
        prices=centroid.prices[keep],
    )
    return moved, keep
