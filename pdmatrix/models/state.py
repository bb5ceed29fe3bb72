# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Engine State Models
Mutable bookkeeping owned by one engine run:

  WorkingSet          — per-family inputs, full / current bidder diagrams,
                        centroids and per-diagram warm-start prices
  FamilyToggles       — immutable (do_min, do_sad, do_max) snapshot
  EnrichmentState     — progressive thresholds and admission seeds
  ClusteringState     — diagram → cluster assignment (+ previous round)
  AccelerationBounds  — Elkan r / u / l bookkeeping + center distances

Operations on these live in the modules packages; the models only hold data
and the invariants that are cheap to express locally.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field

import numpy as np

from pdmatrix.models.diagram import ALL_FAMILIES, CriticalPair, PairFamily
from pdmatrix.models.views import BidderDiagram, GoodDiagram


# ─── Family Toggles ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class FamilyToggles:
    do_min: bool = False
    do_sad: bool = False
    do_max: bool = False

    def is_active(self, family: PairFamily) -> bool:
        return (self.do_min, self.do_sad, self.do_max)[int(family)]

    @property
    def active(self) -> tuple[PairFamily, ...]:
        return tuple(f for f in ALL_FAMILIES if self.is_active(f))

    @property
    def any_active(self) -> bool:
        return self.do_min or self.do_sad or self.do_max

    def with_family(self, family: PairFamily, enabled: bool) -> FamilyToggles:
        flags = [self.do_min, self.do_sad, self.do_max]
        flags[int(family)] = enabled
        return FamilyToggles(*flags)


# ─── Working Set ─────────────────────────────────────────────────────────────

@dataclass
class FamilyData:
    """Everything the engine tracks for one pair-type family."""
    inputs: list[list[CriticalPair]]
    bidders: list[BidderDiagram] = field(default_factory=list)
    current: list[BidderDiagram] = field(default_factory=list)
    # current_ids[i][j] = position of full point j inside current[i], -1 if not admitted
    current_ids: list[np.ndarray] = field(default_factory=list)
    centroids: list[GoodDiagram] = field(default_factory=list)
    # Warm-start goods prices of the assigned centroid, one vector per diagram
    centroid_prices: list[np.ndarray] = field(default_factory=list)

    @property
    def n_points(self) -> int:
        return sum(len(b) for b in self.bidders)

    @property
    def n_current_points(self) -> int:
        return sum(len(b) for b in self.current)

    def is_fully_enriched(self) -> bool:
        return all(len(c) == len(b) for c, b in zip(self.current, self.bidders))


@dataclass
class WorkingSet:
    n_inputs: int
    families: dict[PairFamily, FamilyData]

    def family(self, family: PairFamily) -> FamilyData:
        return self.families[family]


# ─── Progressive Enrichment ──────────────────────────────────────────────────

@dataclass
class EnrichmentState:
    """
    Thresholds are indexed by family. They only ever decrease, down to the
    0.0 of the non-progressive case, after which the state is discarded.
    """
    previous_min_persistence: list[float]
    min_persistence: list[float]
    min_points_to_add: list[int]
    rounds: int = 0

    @classmethod
    def start(cls, initial: list[float], min_points_to_add: int) -> EnrichmentState:
        return cls(
            previous_min_persistence=[math.inf] * len(ALL_FAMILIES),
            min_persistence=list(initial),
            min_points_to_add=[min_points_to_add] * len(ALL_FAMILIES),
        )

    def advance(self, realized: list[float], next_targets: list[float]) -> None:
        self.previous_min_persistence = list(realized)
        self.min_persistence = [min(r, t) for r, t in zip(realized, next_targets)]
        self.rounds += 1


# ─── Clustering ──────────────────────────────────────────────────────────────

@dataclass
class ClusteringState:
    """
    assignment[d] = cluster of diagram d (every diagram has exactly one);
    previous is the assignment of the last committed round (-1 before the first).
    """
    assignment: np.ndarray
    previous: np.ndarray
    n_clusters: int

    @classmethod
    def initial(cls, assignment: np.ndarray, n_clusters: int) -> ClusteringState:
        assignment = np.asarray(assignment, dtype=np.int64)
        return cls(
            assignment=assignment.copy(),
            previous=np.full_like(assignment, -1),
            n_clusters=n_clusters,
        )

    def members(self, cluster: int) -> list[int]:
        return [int(d) for d in np.flatnonzero(self.assignment == cluster)]

    def cluster_members(self) -> dict[int, list[int]]:
        """Inverse mapping cluster id → member indices."""
        return {c: self.members(c) for c in range(self.n_clusters)}

    def commit(self, new_assignment: np.ndarray) -> None:
        self.previous = self.assignment
        self.assignment = np.asarray(new_assignment, dtype=np.int64).copy()

    def has_changed(self) -> bool:
        return not np.array_equal(self.assignment, self.previous)


@dataclass
class AccelerationBounds:
    """
    Elkan bookkeeping. Invariant for every diagram d and center c:
      lower[d, c] <= dist(d, c)   and   dist(d, assigned(d)) <= upper[d].
    recompute[d] = True means upper[d] may be loose.
    """
    recompute: np.ndarray
    upper: np.ndarray
    lower: np.ndarray
    centroid_distances: np.ndarray
    initialized: bool = False

    @classmethod
    def empty(cls, n_diagrams: int, n_clusters: int) -> AccelerationBounds:
        return cls(
            recompute=np.ones(n_diagrams, dtype=bool),
            upper=np.full(n_diagrams, np.inf),
            lower=np.zeros((n_diagrams, n_clusters)),
            centroid_distances=np.zeros((n_clusters, n_clusters)),
        )

    def row(self, diagram: int) -> tuple[bool, float, np.ndarray]:
        return bool(self.recompute[diagram]), float(self.upper[diagram]), self.lower[diagram].copy()


@dataclass
class DiagramBoundsUpdate:
    """Staged per-diagram result of one assignment round."""
    diagram: int
    cluster: int
    upper: float
    lower: np.ndarray
    recompute: bool
    evaluations: int = 0
