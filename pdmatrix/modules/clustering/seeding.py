# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Centroid Seeding
Chooses which input diagrams become the initial centroids.

  use_kmeanspp   → k-means++: first seed uniform, then each next seed drawn
                   with probability ∝ D², D = distance to the nearest seed
  deterministic  → the first k diagrams
  otherwise      → k distinct diagrams drawn uniformly

All randomness goes through one numpy Generator, seeded with random_seed
when deterministic is set.
"""

from __future__ import annotations

from typing import Callable

import numpy as np

from pdmatrix.config import Settings
from pdmatrix.utils.logger import get_logger

log = get_logger(__name__)


def make_rng(settings: Settings) -> np.random.Generator:
    return np.random.default_rng(settings.random_seed if settings.deterministic else None)


def kmeanspp_seeds(
    n_diagrams: int,
    n_clusters: int,
    distance_between: Callable[[int, int], float],
    rng: np.random.Generator,
) -> list[int]:
    seeds = [int(rng.integers(n_diagrams))]
    nearest = np.array([distance_between(seeds[0], i) for i in range(n_diagrams)])
    nearest[seeds[0]] = 0.0

    while len(seeds) < n_clusters:
        weights = nearest ** 2
        total = weights.sum()
        if total > 0.0:
            choice = int(rng.choice(n_diagrams, p=weights / total))
        else:
            # Every remaining diagram sits on a seed already
            choice = next(i for i in range(n_diagrams) if i not in seeds)
        seeds.append(choice)
        for i in range(n_diagrams):
            if nearest[i] > 0.0:
                nearest[i] = min(nearest[i], distance_between(choice, i))
        nearest[choice] = 0.0

    return seeds


def initial_centroid_indices(
    n_diagrams: int,
    n_clusters: int,
    settings: Settings,
    rng: np.random.Generator,
    distance_between: Callable[[int, int], float],
) -> list[int]:
    """
    Pick the diagrams seeding each cluster.

    Args:
        n_diagrams:       Number of inputs
        n_clusters:       k (<= n_diagrams)
        settings:         use_kmeanspp / deterministic options
        rng:              Random generator (see make_rng)
        distance_between: Metric distance between two input diagrams

    Returns:
        k distinct diagram indices.
    """
    if settings.use_kmeanspp:
        seeds = kmeanspp_seeds(n_diagrams, n_clusters, distance_between, rng)
        method = "kmeanspp"
    elif settings.deterministic:
        seeds = list(range(n_clusters))
        method = "first"
    else:
        seeds = [int(i) for i in rng.choice(n_diagrams, size=n_clusters, replace=False)]
        method = "random"

    log.info("centroids_seeded", method=method, seeds=seeds)
    return seeds
