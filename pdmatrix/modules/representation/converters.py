# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Bidder ↔ Good Converters
Conversions between the two dual forms and cold-start price resets.
None of these mutate their input: views are immutable and every function
returns an independent copy.
"""

from __future__ import annotations

import numpy as np

from pdmatrix.models.views import BidderDiagram, GoodDiagram


def diagram_to_centroid(diagram: BidderDiagram) -> GoodDiagram:
    """Turn a bidder diagram into a good diagram usable as a barycenter."""
    return GoodDiagram.from_points(
        diagram.births,
        diagram.deaths,
        diagram.coords,
        pair_ids=diagram.pair_ids,
        prices=diagram.prices,
    )


def centroid_to_diagram(centroid: GoodDiagram) -> BidderDiagram:
    """Turn a centroid back into a bidder diagram (prices carried as prices paid)."""
    return BidderDiagram.from_points(
        centroid.births,
        centroid.deaths,
        centroid.coords,
        pair_ids=centroid.pair_ids,
    ).with_prices(prices=centroid.prices)


def diagram_with_zero_prices(diagram: BidderDiagram) -> BidderDiagram:
    n = len(diagram)
    return diagram.with_prices(
        prices=np.zeros(n),
        diagonal_prices=np.zeros(n),
        assignments=np.full(n, -1),
    )


def centroid_with_zero_prices(centroid: GoodDiagram) -> GoodDiagram:
    return centroid.with_prices(np.zeros(len(centroid)))
