# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Distance Matrix Assembly
Evaluates each unordered pair of diagrams once over the active families
and mirrors the result.

  matrix[i, j]        = (Σ_f cost_f(i, j))^(1/p)   (max over f for bottleneck)
  family[f][i, j]     = cost_f(i, j)^(1/p)
  matrix[i, i]        = 0

With no active family there is nothing to compare: off-diagonal entries
are NaN. Pairs may be spread over a thread pool; results are merged by
pair index.
"""

from __future__ import annotations

from typing import Mapping, Sequence

import numpy as np

from pdmatrix.models.diagram import PairFamily
from pdmatrix.models.state import FamilyToggles
from pdmatrix.models.views import DiagramView
from pdmatrix.modules.distance.evaluator import (
    DistanceEvaluator,
    combine_family_costs,
    wasserstein_distance,
)
from pdmatrix.utils.logger import get_logger
from pdmatrix.utils.parallel import parallel_map

log = get_logger(__name__)


def assemble_distance_matrix(
    views: Mapping[PairFamily, Sequence[DiagramView]],
    toggles: FamilyToggles,
    evaluator: DistanceEvaluator,
    n_diagrams: int,
    n_threads: int = 1,
) -> tuple[np.ndarray, dict[PairFamily, np.ndarray]]:
    """
    Build the symmetric pairwise distance matrix.

    Args:
        views:      family → one view per diagram (full or current diagrams)
        toggles:    Families to compare
        evaluator:  Distance evaluator carrying the run settings
        n_diagrams: Matrix size
        n_threads:  Thread pool size for the pair loop

    Returns:
        (matrix, family_matrices); family matrices only for active families.
    """
    exponent = evaluator.settings.exponent
    families = toggles.active
    matrix = np.zeros((n_diagrams, n_diagrams))
    family_matrices = {f: np.zeros((n_diagrams, n_diagrams)) for f in families}

    if not families:
        matrix[~np.eye(n_diagrams, dtype=bool)] = np.nan
        log.warning("distance_matrix_no_active_family", n_diagrams=n_diagrams)
        return matrix, family_matrices

    pairs = [(i, j) for i in range(n_diagrams) for j in range(i + 1, n_diagrams)]
    costs = parallel_map(
        lambda ij: [evaluator.compute_distance(views[f][ij[0]], views[f][ij[1]]) for f in families],
        pairs,
        n_threads,
    )

    for (i, j), pair_costs in zip(pairs, costs):
        value = wasserstein_distance(combine_family_costs(pair_costs, exponent), exponent)
        matrix[i, j] = matrix[j, i] = value
        for f, cost in zip(families, pair_costs):
            family_matrices[f][i, j] = family_matrices[f][j, i] = wasserstein_distance(cost, exponent)

    log.info(
        "distance_matrix_complete",
        n_diagrams=n_diagrams,
        n_pairs=len(pairs),
        families=[f.label for f in families],
    )
    return matrix, family_matrices
