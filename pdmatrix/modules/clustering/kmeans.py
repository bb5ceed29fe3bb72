# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Progressive k-means over Persistence Diagrams
Lloyd iterations with Wasserstein barycenters as centers.

Round structure:
  1. Deadline check (the only cancellation point)
  2. Families without admitted points are switched off for the round
  3. Assignment: every diagram against every center, or Elkan-pruned
     when use_accelerated; staged per diagram, committed at once
  4. Barycenter update of every center from its members' matchings
     (warm-started with each member's own centroid prices)
  5. Bound maintenance: exact upper bounds, center shifts, D(a, c)
  6. Stop on stable assignment + fully enriched diagrams + relative cost
     change <= delta_lim, else enrich the diagrams one more step

With fewer inputs than clusters the clustering is trivial (one diagram
per cluster) unless force_use_of_algorithm is set.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from pdmatrix.config import Settings, get_settings
from pdmatrix.models.diagram import ALL_FAMILIES, Matching, PairFamily
from pdmatrix.models.output import ClusteringResult
from pdmatrix.models.state import (
    AccelerationBounds,
    ClusteringState,
    EnrichmentState,
    FamilyToggles,
    WorkingSet,
)
from pdmatrix.models.views import GoodDiagram
from pdmatrix.modules.assembly.persistence_stats import family_extremes
from pdmatrix.modules.clustering.barycenter import update_barycenter
from pdmatrix.modules.clustering.bounds import (
    assign_with_bounds,
    commit_updates,
    initialize_bounds,
    shift_bounds,
    tighten_upper,
    update_centroid_distances,
)
from pdmatrix.modules.clustering.seeding import initial_centroid_indices, make_rng
from pdmatrix.modules.clustering.toggles import restore_families, round_toggles
from pdmatrix.modules.distance.evaluator import (
    DistanceEvaluator,
    combine_family_costs,
    wasserstein_distance,
)
from pdmatrix.modules.enrichment.enricher import (
    enrich_current_bidder_diagrams,
    fully_enriched,
)
from pdmatrix.modules.enrichment.thresholds import initial_thresholds, next_thresholds
from pdmatrix.modules.representation.converters import (
    centroid_with_zero_prices,
    diagram_to_centroid,
)
from pdmatrix.utils.logger import get_logger
from pdmatrix.utils.parallel import parallel_map
from pdmatrix.utils.timing import Deadline

log = get_logger(__name__)


class ClusteringEngine:
    """
    k-means over one WorkingSet. The working set is updated in place
    (current diagrams, centroids, centroid prices).
    """

    def __init__(
        self,
        working: WorkingSet,
        toggles: FamilyToggles,
        settings: Optional[Settings] = None,
        deadline: Optional[Deadline] = None,
        progressive: Optional[bool] = None,
    ) -> None:
        if settings is None:
            settings = get_settings()
        if deadline is None:
            deadline = Deadline(settings.time_limit)
        if progressive is None:
            progressive = settings.use_progressive

        self.settings = settings
        self.working = working
        self.toggles = toggles
        self.deadline = deadline
        self.progressive = progressive
        self.evaluator = DistanceEvaluator(settings, deadline)
        self.rng = make_rng(settings)
        self.n_clusters = min(settings.n_clusters, max(working.n_inputs, 1))

        self.clustering: Optional[ClusteringState] = None
        self.bounds: Optional[AccelerationBounds] = None
        self.enrichment: Optional[EnrichmentState] = None
        self._less_persistent: list[float] = [math.nan] * len(ALL_FAMILIES)
        self._distances = np.zeros(working.n_inputs)

    # ─── Distances ───────────────────────────────────────────────────────────

    def _root(self, costs: list[float]) -> float:
        exponent = self.settings.exponent
        return wasserstein_distance(combine_family_costs(costs, exponent), exponent)

    def distance_to_centroid(self, diagram: int, cluster: int, toggles: FamilyToggles) -> float:
        costs = [
            self.evaluator.compute_distance(
                self.working.family(f).current[diagram],
                self.working.family(f).centroids[cluster],
            )
            for f in toggles.active
        ]
        return self._root(costs)

    def distance_between_diagrams(self, first: int, second: int, toggles: FamilyToggles) -> float:
        costs = [
            self.evaluator.compute_distance(
                self.working.family(f).current[first],
                self.working.family(f).current[second],
            )
            for f in toggles.active
        ]
        return self._root(costs)

    def distance_between_centroids(
        self,
        first: dict[PairFamily, GoodDiagram],
        second: dict[PairFamily, GoodDiagram],
        toggles: FamilyToggles,
    ) -> float:
        costs = [self.evaluator.compute_distance(first[f], second[f]) for f in toggles.active]
        return self._root(costs)

    def _centroid(self, cluster: int) -> dict[PairFamily, GoodDiagram]:
        return {
            f: self.working.family(f).centroids[cluster]
            for f in ALL_FAMILIES
            if self.working.family(f).centroids
        }

    # ─── Seeding ─────────────────────────────────────────────────────────────

    def _seed(self, toggles: FamilyToggles) -> list[int]:
        seeds = initial_centroid_indices(
            self.working.n_inputs,
            self.n_clusters,
            self.settings,
            self.rng,
            lambda i, j: self.distance_between_diagrams(i, j, toggles),
        )
        for family in self.toggles.active:
            data = self.working.family(family)
            data.centroids = [
                centroid_with_zero_prices(diagram_to_centroid(data.current[s]))
                for s in seeds
            ]
            data.centroid_prices = [np.zeros(0) for _ in range(self.working.n_inputs)]
        return seeds

    # ─── Assignment ──────────────────────────────────────────────────────────

    def _full_assignment(self, toggles: FamilyToggles) -> tuple[np.ndarray, np.ndarray]:
        k = self.n_clusters
        rows = parallel_map(
            lambda d: [self.distance_to_centroid(d, c, toggles) for c in range(k)],
            list(range(self.working.n_inputs)),
            self.settings.n_threads,
        )
        table = np.array(rows, dtype=np.float64).reshape(self.working.n_inputs, k)

        if self.clustering is None:
            return np.argmin(table, axis=1), table

        assignment = self.clustering.assignment.copy()
        for d in range(self.working.n_inputs):
            best = assignment[d]
            for c in range(k):
                if table[d, c] < table[d, best]:
                    best = c
            assignment[d] = best
        return assignment, table

    def _assign(self, toggles: FamilyToggles) -> np.ndarray:
        if self.settings.use_accelerated and self.bounds is not None and self.bounds.initialized:
            current = self.clustering.assignment
            updates = parallel_map(
                lambda d: assign_with_bounds(
                    self.bounds,
                    d,
                    int(current[d]),
                    lambda c: self.distance_to_centroid(d, c, toggles),
                ),
                list(range(self.working.n_inputs)),
                self.settings.n_threads,
            )
            commit_updates(self.bounds, updates)
            log.debug(
                "accelerated_assignment",
                evaluations=sum(u.evaluations for u in updates),
                full_evaluations=self.working.n_inputs * self.n_clusters,
            )
            return np.array([u.cluster for u in updates], dtype=np.int64)

        assignment, table = self._full_assignment(toggles)
        if self.settings.use_accelerated:
            self.bounds = initialize_bounds(table, assignment)
            update_centroid_distances(
                self.bounds,
                range(self.n_clusters),
                lambda a, c: self.distance_between_centroids(
                    self._centroid(a), self._centroid(c), toggles
                ),
            )
        return assignment

    # ─── Barycenter update ───────────────────────────────────────────────────

    def _match_member(self, family: PairFamily, diagram: int, cluster: int) -> tuple[float, list[Matching]]:
        data = self.working.family(family)
        centroid = data.centroids[cluster]
        prices = data.centroid_prices[diagram]
        if len(prices) != len(centroid):
            prices = np.zeros(len(centroid))

        result = self.evaluator.compute_matching(
            data.current[diagram],
            centroid.with_prices(prices),
            warm_start=True,
        )
        data.current[diagram] = result.bidders
        data.centroid_prices[diagram] = np.array(result.goods.prices)
        return result.cost, result.matchings

    def _update_centroids(self, toggles: FamilyToggles) -> tuple[float, np.ndarray]:
        n = self.working.n_inputs
        assignment = self.clustering.assignment
        members = self.clustering.cluster_members()
        previous = {c: self._centroid(c) for c in range(self.n_clusters)}
        costs = np.zeros((n, len(toggles.active)))

        for column, family in enumerate(toggles.active):
            data = self.working.family(family)
            matched = parallel_map(
                lambda d: self._match_member(family, d, int(assignment[d])),
                list(range(n)),
                self.settings.n_threads,
            )
            costs[:, column] = [cost for cost, _ in matched]

            for cluster, ids in members.items():
                if not ids:
                    continue
                moved, keep = update_barycenter(
                    data.centroids[cluster],
                    [data.current[d] for d in ids],
                    [matched[d][1] for d in ids],
                )
                data.centroids[cluster] = moved
                for d in ids:
                    data.centroid_prices[d] = data.centroid_prices[d][keep]

        if toggles.any_active:
            per_diagram = [combine_family_costs(costs[d], self.settings.exponent) for d in range(n)]
            exact = np.array([wasserstein_distance(c, self.settings.exponent) for c in per_diagram])
            total = float(sum(per_diagram))
        else:
            exact, total = np.zeros(n), 0.0

        if self.bounds is not None and self.bounds.initialized:
            shifts = np.array([
                self.distance_between_centroids(previous[c], self._centroid(c), toggles)
                if members[c] else 0.0
                for c in range(self.n_clusters)
            ])
            tighten_upper(self.bounds, exact, assignment)
            shift_bounds(self.bounds, shifts, assignment)
            update_centroid_distances(
                self.bounds,
                [c for c in range(self.n_clusters) if shifts[c] > 0.0],
                lambda a, c: self.distance_between_centroids(
                    self._centroid(a), self._centroid(c), toggles
                ),
            )

        return total, exact

    # ─── Enrichment ──────────────────────────────────────────────────────────

    def _seed_prices(self) -> tuple[list[list[float]], list[list[float]]]:
        diagonal: list[list[float]] = []
        off_diagonal: list[list[float]] = []
        for family in ALL_FAMILIES:
            data = self.working.family(family)
            if not self.toggles.is_active(family):
                diagonal.append([0.0] * self.working.n_inputs)
                off_diagonal.append([0.0] * self.working.n_inputs)
                continue
            diagonal.append([
                float(c.diagonal_prices.min()) if len(c) else 0.0 for c in data.current
            ])
            off_diagonal.append([
                float(p.min()) if len(p) else 0.0
                for p in (data.centroid_prices or [np.zeros(0)] * self.working.n_inputs)
            ])
        return diagonal, off_diagonal

    def _enrich(self) -> None:
        state = self.enrichment
        diagonal, off_diagonal = self._seed_prices()
        realized = enrich_current_bidder_diagrams(
            self.working,
            state.previous_min_persistence,
            state.min_persistence,
            diagonal,
            off_diagonal,
            state.min_points_to_add,
            add_points_to_barycenter=self.clustering is not None,
            toggles=self.toggles,
            clustering=self.clustering,
            bounds=self.bounds,
            exponent=self.settings.exponent,
            alpha=self.settings.alpha,
        )
        state.advance(realized, next_thresholds(realized, self._less_persistent))

    # ─── Main loop ───────────────────────────────────────────────────────────

    def _trivial(self) -> ClusteringResult:
        n = self.working.n_inputs
        centroids = {
            f.label: [diagram_to_centroid(b) for b in self.working.family(f).bidders]
            for f in self.toggles.active
        }
        log.info("clustering_trivial", n_diagrams=n, n_clusters=self.settings.n_clusters)
        return ClusteringResult(
            assignment=list(range(n)),
            n_clusters=self.settings.n_clusters,
            cluster_sizes=[1] * n + [0] * (self.settings.n_clusters - n),
            centroids=centroids,
            distances=[0.0] * n,
            converged=True,
            trivial=True,
        )

    def run(self) -> ClusteringResult:
        """
        Run the clustering to convergence, max_iterations or the deadline.

        Returns:
            ClusteringResult of the last committed round.
        """
        settings = self.settings
        n = self.working.n_inputs
        if settings.n_clusters >= n and not settings.force_use_of_algorithm:
            return self._trivial()
        if settings.n_clusters > n:
            log.warning("more_clusters_than_inputs", n_clusters=settings.n_clusters, n_diagrams=n)

        if self.progressive:
            # Diagonal points are only reached by the final drop to 0
            most, self._less_persistent = family_extremes(self.working, positive_only=True)
            self.enrichment = EnrichmentState.start(
                initial_thresholds(most), settings.min_points_to_add
            )
            self._enrich()

        toggles, snapshot = round_toggles(self.working, self.toggles)
        self._seed(toggles)
        self.toggles = restore_families(snapshot)

        previous_cost = math.inf
        cost = 0.0
        iteration = 0
        converged = False
        timed_out = False

        log.info(
            "clustering_start",
            n_diagrams=n,
            n_clusters=self.n_clusters,
            progressive=self.progressive,
            accelerated=settings.use_accelerated,
        )

        while iteration < settings.max_iterations:
            if self.deadline.expired():
                timed_out = True
                log.warning("clustering_time_limit_reached", iteration=iteration)
                break
            iteration += 1

            toggles, snapshot = round_toggles(self.working, self.toggles)
            assignment = self._assign(toggles)
            if self.clustering is None:
                self.clustering = ClusteringState.initial(assignment, self.n_clusters)
            else:
                self.clustering.commit(assignment)

            cost, self._distances = self._update_centroids(toggles)
            self.toggles = restore_families(snapshot)

            enriched = fully_enriched(self.working, self.toggles)
            if previous_cost > 0.0 and math.isfinite(previous_cost):
                change = abs(previous_cost - cost) / previous_cost
            else:
                change = 0.0 if cost == previous_cost else math.inf
            stable = not self.clustering.has_changed()

            log.info(
                "clustering_round_complete",
                iteration=iteration,
                cost=round(cost, 8),
                relative_change=change,
                stable=stable,
                enriched=enriched,
                sizes=[len(m) for m in self.clustering.cluster_members().values()],
            )

            if stable and enriched and change <= settings.delta_lim:
                converged = True
                break
            previous_cost = cost
            if self.progressive and not enriched:
                self._enrich()

        return self._result(cost, iteration, converged, timed_out)

    def _result(self, cost: float, iterations: int, converged: bool, timed_out: bool) -> ClusteringResult:
        n = self.working.n_inputs
        if self.clustering is None:
            assignment = [0] * n
            sizes = [n] + [0] * (self.n_clusters - 1)
        else:
            assignment = [int(a) for a in self.clustering.assignment]
            sizes = [len(m) for m in self.clustering.cluster_members().values()]

        log.info(
            "clustering_complete",
            iterations=iterations,
            converged=converged,
            timed_out=timed_out,
            cost=round(cost, 8),
            evaluations=self.evaluator.n_calls,
        )

        return ClusteringResult(
            assignment=assignment,
            n_clusters=self.n_clusters,
            cluster_sizes=sizes,
            centroids={
                f.label: list(self.working.family(f).centroids) for f in self.toggles.active
            },
            distances=[float(x) for x in self._distances],
            cost=cost,
            iterations=iterations,
            converged=converged,
            timed_out=timed_out,
            n_evaluations=self.evaluator.n_calls,
            elapsed_seconds=self.deadline.elapsed,
        )
