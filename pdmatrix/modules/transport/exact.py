# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Exact Assignment Solvers
Hungarian algorithm (scipy.optimize.linear_sum_assignment) for Wasserstein
exponents, and a threshold search for the bottleneck distance.

Bottleneck: the smallest value t such that the bipartite graph
{ (i, j) : c_ij <= t } admits a perfect matching. Candidate thresholds are
the distinct entries of the cost matrix; a binary search over them with
scipy.sparse.csgraph.maximum_bipartite_matching finds t in
O(log(n²)) matchings.
"""

from __future__ import annotations

import numpy as np
from scipy.optimize import linear_sum_assignment
from scipy.sparse import csr_matrix
from scipy.sparse.csgraph import maximum_bipartite_matching

from pdmatrix.utils.logger import get_logger

log = get_logger(__name__)


def solve_exact(cost: np.ndarray) -> tuple[np.ndarray, float]:
    """
    Optimal assignment of a square cost matrix.

    Returns:
        (assignment, total) where assignment[i] is the column of row i.
    """
    if cost.shape[0] == 0:
        return np.zeros(0, dtype=np.int64), 0.0
    rows, cols = linear_sum_assignment(cost)
    assignment = np.empty(cost.shape[0], dtype=np.int64)
    assignment[rows] = cols
    return assignment, float(cost[rows, cols].sum())


def _perfect_matching(mask: np.ndarray) -> np.ndarray:
    return maximum_bipartite_matching(csr_matrix(mask), perm_type="column")


def solve_bottleneck(cost: np.ndarray) -> tuple[np.ndarray, float]:
    """
    Assignment minimising the largest matched cost.

    Returns:
        (assignment, bottleneck) where bottleneck is the largest matched cost.
    """
    n = cost.shape[0]
    if n == 0:
        return np.zeros(0, dtype=np.int64), 0.0

    thresholds = np.unique(cost)
    lo, hi = 0, len(thresholds) - 1
    while lo < hi:
        mid = (lo + hi) // 2
        matching = _perfect_matching(cost <= thresholds[mid])
        if (matching >= 0).all():
            hi = mid
        else:
            lo = mid + 1

    assignment = _perfect_matching(cost <= thresholds[lo]).astype(np.int64)
    value = float(cost[np.arange(n), assignment].max())

    log.debug("bottleneck_complete", n=n, candidates=len(thresholds), value=value)
    return assignment, value
