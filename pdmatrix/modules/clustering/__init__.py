# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Clustering Module
Public API for k-means over persistence diagrams.
"""

from pdmatrix.modules.clustering.barycenter import update_barycenter
from pdmatrix.modules.clustering.bounds import (
    assign_with_bounds,
    can_skip,
    commit_updates,
    initialize_bounds,
    shift_bounds,
    tighten_upper,
    update_centroid_distances,
)
from pdmatrix.modules.clustering.kmeans import ClusteringEngine
from pdmatrix.modules.clustering.seeding import (
    initial_centroid_indices,
    kmeanspp_seeds,
    make_rng,
)
from pdmatrix.modules.clustering.toggles import (
    disable_family,
    families_without_points,
    restore_families,
    round_toggles,
)

__all__ = [
    # Toggles
    "disable_family",
    "restore_families",
    "families_without_points",
    "round_toggles",
    # Bounds
    "initialize_bounds",
    "can_skip",
    "assign_with_bounds",
    "commit_updates",
    "tighten_upper",
    "shift_bounds",
    "update_centroid_distances",
    # Seeding
    "make_rng",
    "kmeanspp_seeds",
    "initial_centroid_indices",
    # Barycenter
    "update_barycenter",
    # Engine
    "ClusteringEngine",
]
