# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Diagram Representation Module
Public API for family splitting and the bidder / good projections.
"""

from pdmatrix.modules.representation.converters import (
    centroid_to_diagram,
    centroid_with_zero_prices,
    diagram_to_centroid,
    diagram_with_zero_prices,
)
from pdmatrix.modules.representation.family_splitter import (
    FamilySplit,
    classify_pair,
    split_by_family,
)
from pdmatrix.modules.representation.point_builder import (
    build_working_set,
    pair_coordinates,
    pairs_to_bidders,
)

__all__ = [
    # Family splitting
    "FamilySplit",
    "classify_pair",
    "split_by_family",
    # Bidder construction
    "pair_coordinates",
    "pairs_to_bidders",
    "build_working_set",
    # Converters
    "diagram_to_centroid",
    "centroid_to_diagram",
    "diagram_with_zero_prices",
    "centroid_with_zero_prices",
]
