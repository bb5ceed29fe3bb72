# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Distance Module
Public API for pairwise diagram distances.
"""

from pdmatrix.modules.distance.evaluator import (
    DistanceEvaluator,
    combine_family_costs,
    wasserstein_distance,
)

__all__ = [
    "DistanceEvaluator",
    "wasserstein_distance",
    "combine_family_costs",
]
