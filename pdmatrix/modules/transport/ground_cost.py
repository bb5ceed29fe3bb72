# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Ground Cost & Augmented Cost Matrix
Builds the square assignment problem solved by every transport solver.

Ground cost between a bidder point b and a good point g (exponent p):
  alpha · (|b.birth − g.birth|^p + |b.death − g.death|^p)
    + (1 − alpha) · Σ |b.coords − g.coords|^p
Cost of a point to the diagonal:
  alpha · 2 · (persistence / 2)^p
Bottleneck (p = ∞) replaces every sum by a max:
  alpha · max(|Δbirth|, |Δdeath|) + (1 − alpha) · max |Δcoords|
  alpha · persistence / 2                       (to the diagonal)

Augmented matrix for nb bidders and ng goods, size (nb + ng)²:

                 real goods (ng)        diagonal goods (nb)
  bidders (nb)   ground cost            bidder's diagonal cost
  diag (ng)      good's diagonal cost   0

Every diagonal good is interchangeable, so letting any bidder take any
diagonal slot does not change the optimum and keeps the matrix finite.

kd-tree pruning (alpha = 1, finite p): the ground cost is then the p-th
power of the Minkowski-p distance in the (birth, death) plane. A real–real
match is only useful when it is cheaper than sending both points to the
diagonal, which bounds its distance by (max bidder diag + max good diag)^(1/p).
Pairs outside that radius get cost db_i + dg_j. The optimum is unchanged
and a pruned pair picked by the solver stands for two diagonal matches.
"""

from __future__ import annotations

from typing import Optional

import numpy as np
from scipy.spatial import cKDTree

from pdmatrix.config import BOTTLENECK
from pdmatrix.models.views import DiagramView


def diagonal_costs(view: DiagramView, exponent: int, alpha: float) -> np.ndarray:
    """Cost of moving every point of `view` onto its diagonal projection."""
    half = view.persistence / 2.0
    if exponent == BOTTLENECK:
        return alpha * half
    return alpha * 2.0 * half ** exponent


def pairwise_costs(
    bidders: DiagramView,
    goods: DiagramView,
    exponent: int,
    alpha: float,
) -> np.ndarray:
    """Dense (nb, ng) ground-cost matrix between two point sets."""
    d_birth = np.abs(bidders.births[:, None] - goods.births[None, :])
    d_death = np.abs(bidders.deaths[:, None] - goods.deaths[None, :])

    if exponent == BOTTLENECK:
        cost = alpha * np.maximum(d_birth, d_death)
    else:
        cost = alpha * (d_birth ** exponent + d_death ** exponent)

    if alpha < 1.0 and bidders.dim > 0:
        d_coords = np.abs(bidders.coords[:, None, :] - goods.coords[None, :, :])
        if exponent == BOTTLENECK:
            geometric = d_coords.max(axis=2)
        else:
            geometric = (d_coords ** exponent).sum(axis=2)
        cost = cost + (1.0 - alpha) * geometric

    return cost


def _pruned_costs(
    bidders: DiagramView,
    goods: DiagramView,
    exponent: int,
    diag_b: np.ndarray,
    diag_g: np.ndarray,
) -> tuple[np.ndarray, np.ndarray]:
    """Sparse real–real costs from a kd-tree radius query (alpha = 1 only)."""
    through_diagonal = diag_b[:, None] + diag_g[None, :]
    cost = through_diagonal.copy()
    pruned = np.ones(cost.shape, dtype=bool)

    radius = float(diag_b.max() + diag_g.max()) ** (1.0 / exponent)
    tree_b = cKDTree(np.column_stack([bidders.births, bidders.deaths]))
    tree_g = cKDTree(np.column_stack([goods.births, goods.deaths]))
    near = tree_b.sparse_distance_matrix(
        tree_g, radius, p=float(exponent), output_type="ndarray"
    )

    if near.size:
        rows = near["i"].astype(np.intp)
        cols = near["j"].astype(np.intp)
        direct = (
            np.abs(bidders.births[rows] - goods.births[cols]) ** exponent
            + np.abs(bidders.deaths[rows] - goods.deaths[cols]) ** exponent
        )
        cheaper = direct < through_diagonal[rows, cols]
        cost[rows[cheaper], cols[cheaper]] = direct[cheaper]
        pruned[rows[cheaper], cols[cheaper]] = False

    return cost, pruned


def build_cost_matrix(
    bidders: DiagramView,
    goods: DiagramView,
    exponent: int,
    alpha: float = 1.0,
    use_kdtree: bool = False,
) -> tuple[np.ndarray, Optional[np.ndarray]]:
    """
    Build the diagonal-augmented square cost matrix.

    Args:
        bidders:    Row point set
        goods:      Column point set
        exponent:   Wasserstein exponent p, or BOTTLENECK
        alpha:      Persistence-plane weight in [0, 1]
        use_kdtree: Prune far real–real pairs (alpha = 1, finite p only)

    Returns:
        (cost, pruned)
        cost:   (nb + ng, ng + nb) float64 matrix
        pruned: (nb, ng) bool mask of real–real entries replaced by the
                through-diagonal cost, or None when pruning was not used
    """
    nb, ng = len(bidders), len(goods)
    diag_b = diagonal_costs(bidders, exponent, alpha)
    diag_g = diagonal_costs(goods, exponent, alpha)

    cost = np.zeros((nb + ng, ng + nb), dtype=np.float64)
    cost[:nb, ng:] = diag_b[:, None]
    cost[nb:, :ng] = diag_g[None, :]

    pruned: Optional[np.ndarray] = None
    can_prune = use_kdtree and alpha == 1.0 and exponent != BOTTLENECK
    if can_prune and nb > 0 and ng > 0:
        cost[:nb, :ng], pruned = _pruned_costs(bidders, goods, exponent, diag_b, diag_g)
    elif nb > 0 and ng > 0:
        cost[:nb, :ng] = pairwise_costs(bidders, goods, exponent, alpha)

    return cost, pruned
