# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Elkan Bound Bookkeeping
Triangle-inequality pruning for k-means over diagrams.

For diagram d assigned to a, and any other center c, d → c cannot win when
  u[d] <= l[d][c]          (c is provably at least as far as a)
  u[d] <= ½ · D(a, c)      (c is too far from a to be closer than a)
u[d] is only tightened (an exact d → a evaluation) when r[d] says it may be
loose, and only if the cheap tests did not already rule c out.

After the centers moved by δ(c):
  l[d][c] = max(l[d][c] − δ(c), 0),  u[d] += δ(a(d)),  r[d] = True
and the rows / columns of D for the moved centers are recomputed.

Every function here works on distances (the p-th root of transport
costs); the triangle inequality does not hold for the costs themselves.
"""

from __future__ import annotations

from typing import Callable, Iterable, Sequence

import numpy as np

from pdmatrix.models.state import AccelerationBounds, DiagramBoundsUpdate


def initialize_bounds(distances: np.ndarray, assignment: np.ndarray) -> AccelerationBounds:
    """Exact bounds from a full (n_diagrams, n_clusters) distance table."""
    n, k = distances.shape
    bounds = AccelerationBounds.empty(n, k)
    bounds.lower = np.array(distances, dtype=np.float64)
    bounds.upper = bounds.lower[np.arange(n), assignment].copy()
    bounds.recompute[:] = False
    bounds.initialized = True
    return bounds


def can_skip(upper: float, lower_c: float, center_gap: float) -> bool:
    return upper <= lower_c or upper <= 0.5 * center_gap


def assign_with_bounds(
    bounds: AccelerationBounds,
    diagram: int,
    assigned: int,
    distance_to: Callable[[int], float],
) -> DiagramBoundsUpdate:
    """
    Elkan assignment step for one diagram. Reads the bounds, never writes
    them: the staged update is committed with commit_updates().
    """
    recompute, upper, lower = bounds.row(diagram)
    gaps = bounds.centroid_distances
    best = assigned
    evaluations = 0

    for c in range(lower.size):
        if c == best or can_skip(upper, lower[c], gaps[best, c]):
            continue
        if recompute:
            upper = distance_to(best)
            evaluations += 1
            lower[best] = upper
            recompute = False
            if can_skip(upper, lower[c], gaps[best, c]):
                continue
        candidate = distance_to(c)
        evaluations += 1
        lower[c] = candidate
        # Strict: ties keep the current assignment
        if candidate < upper:
            best = c
            upper = candidate

    return DiagramBoundsUpdate(
        diagram=diagram,
        cluster=best,
        upper=upper,
        lower=lower,
        recompute=recompute,
        evaluations=evaluations,
    )


def commit_updates(bounds: AccelerationBounds, updates: Iterable[DiagramBoundsUpdate]) -> None:
    for update in updates:
        bounds.upper[update.diagram] = update.upper
        bounds.lower[update.diagram] = update.lower
        bounds.recompute[update.diagram] = update.recompute


def tighten_upper(bounds: AccelerationBounds, exact: Sequence[float], assignment: np.ndarray) -> None:
    """Record exact distances of every diagram to its (pre-move) center."""
    n = len(exact)
    values = np.asarray(exact, dtype=np.float64)
    bounds.upper = values.copy()
    bounds.lower[np.arange(n), assignment] = values
    bounds.recompute[:] = False


def shift_bounds(bounds: AccelerationBounds, shifts: np.ndarray, assignment: np.ndarray) -> None:
    """Loosen every bound after the centers moved by `shifts`."""
    bounds.lower = np.maximum(bounds.lower - shifts[None, :], 0.0)
    bounds.upper = bounds.upper + shifts[assignment]
    bounds.recompute[:] = True


def update_centroid_distances(
    bounds: AccelerationBounds,
    moved: Iterable[int],
    distance_between: Callable[[int, int], float],
) -> int:
    """Recompute the rows / columns of D for the moved centers; returns evaluations."""
    k = bounds.centroid_distances.shape[0]
    done: set[tuple[int, int]] = set()
    for a in moved:
        for c in range(k):
            if c == a or (min(a, c), max(a, c)) in done:
                continue
            value = distance_between(a, c)
            bounds.centroid_distances[a, c] = value
            bounds.centroid_distances[c, a] = value
            done.add((min(a, c), max(a, c)))
    return len(done)
