# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Progressive Enrichment
Admits points of the full bidder diagrams into the current (working)
diagrams as the family thresholds decrease.

Per active family:
  1. Candidates of diagram i are its not-yet-admitted points, sorted by
     persistence descending (index order on ties).
  2. Diagrams that have at least min_points_to_add candidates but fewer
     than that above the target force the threshold down to the
     persistence of their min_points_to_add-th candidate.
  3. The realized threshold is the lowest of those; every candidate at or
     above it is appended, seeded with the diagonal price.

Every round only admits points below everything already admitted, so the
final current diagram is the full diagram in persistence-descending order
whatever the schedule was.

Side effects when a clustering is running:
  - add_points_to_barycenter: for each cluster, one admitted point per
    cluster-size admissions is appended to the centroid, and the
    off-diagonal seed price is appended to every member's centroid prices.
  - bounds: a diagram (or centroid) that gained points moved by at most
    the cost of sending them to the diagonal, δ = (Σ added diagonal cost)^(1/p).
    u and l are loosened by the diagram and center shifts, D by both
    center shifts, and r is set for every diagram that moved.
"""

from __future__ import annotations

from typing import Optional, Sequence

import numpy as np

from pdmatrix.config import BOTTLENECK
from pdmatrix.models.diagram import ALL_FAMILIES
from pdmatrix.models.state import (
    AccelerationBounds,
    ClusteringState,
    FamilyData,
    FamilyToggles,
    WorkingSet,
)
from pdmatrix.models.views import GoodDiagram
from pdmatrix.modules.transport.ground_cost import diagonal_costs
from pdmatrix.utils.logger import get_logger

log = get_logger(__name__)


def _candidates(data: FamilyData, diagram: int) -> np.ndarray:
    """Not-yet-admitted point indices of one diagram, persistence descending."""
    waiting = np.flatnonzero(data.current_ids[diagram] < 0)
    persistence = data.bidders[diagram].persistence[waiting]
    return waiting[np.argsort(-persistence, kind="stable")]


def _realized_threshold(
    data: FamilyData,
    candidates: list[np.ndarray],
    target: float,
    min_points: int,
) -> float:
    realized = target
    if min_points <= 0:
        return realized
    for i, order in enumerate(candidates):
        if len(order) < min_points:
            continue
        persistence = data.bidders[i].persistence[order]
        if int((persistence >= target).sum()) < min_points:
            realized = min(realized, float(persistence[min_points - 1]))
    return realized


def _accumulate(total: float, cost: np.ndarray, exponent: int) -> float:
    if cost.size == 0:
        return total
    if exponent == BOTTLENECK:
        return max(total, float(cost.max()))
    return total + float(cost.sum())


def _grow_centroids(
    data: FamilyData,
    admitted: list[np.ndarray],
    clustering: ClusteringState,
    off_diagonal_prices: Sequence[float],
    cluster_cost: np.ndarray,
    exponent: int,
    alpha: float,
) -> int:
    added_total = 0
    for cluster, members in clustering.cluster_members().items():
        if not members:
            continue
        pool = [(d, int(j)) for d in members for j in admitted[d]]
        n_new = len(pool) // len(members)
        if n_new == 0:
            continue

        pool.sort(key=lambda dj: -data.bidders[dj[0]].persistence[dj[1]])
        chosen = pool[:n_new]
        births = [data.bidders[d].births[j] for d, j in chosen]
        deaths = [data.bidders[d].deaths[j] for d, j in chosen]
        coords = np.array([data.bidders[d].coords[j] for d, j in chosen])

        points = GoodDiagram.from_points(births, deaths, coords)
        data.centroids[cluster] = data.centroids[cluster].concat(points)
        for d in members:
            seed = np.full(n_new, off_diagonal_prices[d])
            data.centroid_prices[d] = np.concatenate([data.centroid_prices[d], seed])

        cluster_cost[cluster] = _accumulate(
            cluster_cost[cluster], diagonal_costs(points, exponent, alpha), exponent
        )
        added_total += n_new
    return added_total


def _loosen_bounds(
    bounds: AccelerationBounds,
    diagram_cost: np.ndarray,
    cluster_cost: np.ndarray,
    assignment: np.ndarray,
    exponent: int,
) -> None:
    """
    Diagram d moved by at most δd, center c by at most δc, so any
    d → c distance changed by at most δd + δc.
    """
    if exponent == BOTTLENECK:
        moved_d, moved_c = diagram_cost, cluster_cost
    else:
        moved_d = diagram_cost ** (1.0 / exponent)
        moved_c = cluster_cost ** (1.0 / exponent)

    own = moved_d + moved_c[assignment]
    bounds.upper = bounds.upper + own
    bounds.lower = np.maximum(bounds.lower - moved_d[:, None] - moved_c[None, :], 0.0)
    gaps = np.maximum(
        bounds.centroid_distances - moved_c[:, None] - moved_c[None, :], 0.0
    )
    np.fill_diagonal(gaps, 0.0)
    bounds.centroid_distances = gaps
    bounds.recompute[own > 0.0] = True


def enrich_current_bidder_diagrams(
    working: WorkingSet,
    previous_min_persistence: Sequence[float],
    min_persistence: Sequence[float],
    initial_diagonal_prices: Sequence[Sequence[float]],
    initial_off_diagonal_prices: Sequence[Sequence[float]],
    min_points_to_add: Sequence[int],
    add_points_to_barycenter: bool = False,
    *,
    toggles: FamilyToggles,
    clustering: Optional[ClusteringState] = None,
    bounds: Optional[AccelerationBounds] = None,
    exponent: int = 2,
    alpha: float = 1.0,
) -> list[float]:
    """
    Admit the points opened by lowering the thresholds.

    Args:
        working:                     Working set (current diagrams updated in place)
        previous_min_persistence:    Thresholds of the previous round, per family
        min_persistence:             Target thresholds, per family
        initial_diagonal_prices:     [family][diagram] seed of admitted points
        initial_off_diagonal_prices: [family][diagram] seed of centroid points
        min_points_to_add:           Minimum admissions per diagram, per family
        add_points_to_barycenter:    Grow the centroids alongside (needs clustering)
        toggles:                     Families to enrich
        clustering:                  Current assignment, for centroid growth
        bounds:                      Elkan bounds to loosen, if accelerated
        exponent, alpha:             Ground cost parameters for the bound shift

    Returns:
        Realized thresholds per family (<= targets). Inactive families keep
        their target.
    """
    realized = [float(t) for t in min_persistence]
    diagram_cost = np.zeros(working.n_inputs)
    n_clusters = clustering.n_clusters if clustering is not None else 0
    cluster_cost = np.zeros(n_clusters)
    admitted_counts: dict[str, int] = {}

    for family in ALL_FAMILIES:
        if not toggles.is_active(family):
            continue
        data = working.family(family)
        f = int(family)
        candidates = [_candidates(data, i) for i in range(working.n_inputs)]
        threshold = _realized_threshold(data, candidates, realized[f], min_points_to_add[f])
        # Thresholds never increase
        threshold = min(threshold, float(previous_min_persistence[f]))
        realized[f] = threshold

        admitted: list[np.ndarray] = []
        for i, order in enumerate(candidates):
            full = data.bidders[i]
            chosen = order[full.persistence[order] >= threshold]
            admitted.append(chosen)
            if len(chosen) == 0:
                continue

            start = len(data.current[i])
            seed = np.full(len(chosen), initial_diagonal_prices[f][i])
            points = full.take(chosen).with_prices(
                prices=np.zeros(len(chosen)),
                diagonal_prices=seed,
                assignments=np.full(len(chosen), -1),
            )
            data.current[i] = data.current[i].concat(points)
            ids = data.current_ids[i].copy()
            ids[chosen] = np.arange(start, start + len(chosen))
            data.current_ids[i] = ids

            diagram_cost[i] = _accumulate(
                diagram_cost[i], diagonal_costs(points, exponent, alpha), exponent
            )

        admitted_counts[family.label] = int(sum(len(a) for a in admitted))

        if add_points_to_barycenter and clustering is not None and data.centroids:
            grown = _grow_centroids(
                data,
                admitted,
                clustering,
                initial_off_diagonal_prices[f],
                cluster_cost,
                exponent,
                alpha,
            )
            if grown:
                log.debug("centroids_grown", family=family.label, points=grown)

    if bounds is not None and bounds.initialized and clustering is not None:
        _loosen_bounds(bounds, diagram_cost, cluster_cost, clustering.assignment, exponent)

    log.info(
        "enrichment_round_complete",
        thresholds=[round(t, 8) for t in realized],
        admitted=admitted_counts,
    )
    return realized


def fully_enriched(working: WorkingSet, toggles: FamilyToggles) -> bool:
    return all(working.family(f).is_fully_enriched() for f in toggles.active)
