# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Engine Orchestrator
PersistenceDiagramDistanceMatrix wires the modules in dependency order:

  1. Family split of the raw diagrams (pair_type filter)
  2. Bidder diagrams (full + current)
  3. Progressive enrichment down to min_persistence_ratio × most persistent
     (skipped with use_full_diagrams or without use_progressive)
  4. Pairwise distance matrix over the active families
  5. Optional k-means over the same inputs (run_clustering)

Every run binds a run_id into the structlog context so that all events of
one execute() / run_clustering() call can be correlated.
"""

from __future__ import annotations

import math
import traceback
import uuid
from typing import Any, Optional, Sequence

import numpy as np
import structlog

from pdmatrix.config import Settings, get_settings
from pdmatrix.core.errors import ConfigurationError, EngineStateError
from pdmatrix.models.diagram import ALL_FAMILIES, PairFamily, RawPair
from pdmatrix.models.output import ClusteringResult, DistanceMatrixResult
from pdmatrix.models.state import EnrichmentState, FamilyToggles, WorkingSet
from pdmatrix.models.views import BidderDiagram, DiagramView, GoodDiagram
from pdmatrix.modules.assembly.distance_matrix import assemble_distance_matrix
from pdmatrix.modules.assembly.persistence_stats import (
    family_extremes,
    get_less_persistent,
    get_most_persistent,
)
from pdmatrix.modules.assembly.writer import format_distance_matrix
from pdmatrix.modules.clustering.kmeans import ClusteringEngine
from pdmatrix.modules.clustering.toggles import disable_family, restore_families
from pdmatrix.modules.distance.evaluator import DistanceEvaluator
from pdmatrix.modules.enrichment.enricher import enrich_current_bidder_diagrams
from pdmatrix.modules.enrichment.thresholds import (
    initial_thresholds,
    next_thresholds,
    schedule_finished,
)
from pdmatrix.modules.representation.converters import (
    centroid_to_diagram,
    centroid_with_zero_prices,
    diagram_to_centroid,
    diagram_with_zero_prices,
)
from pdmatrix.modules.representation.family_splitter import FamilySplit, split_by_family
from pdmatrix.modules.representation.point_builder import build_working_set
from pdmatrix.utils.logger import get_logger
from pdmatrix.utils.timing import Deadline

log = get_logger(__name__)


class PersistenceDiagramDistanceMatrix:
    """
    Distance matrix and clustering engine over a set of persistence diagrams.

    Usage:
        engine = PersistenceDiagramDistanceMatrix(Settings(wasserstein="2"))
        result = engine.execute(diagrams)
        result.matrix          # (n, n) numpy array
        engine.run_clustering()
    """

    def __init__(self, settings: Optional[Settings] = None) -> None:
        if settings is None:
            settings = get_settings()
        self.settings = settings
        self.evaluator = DistanceEvaluator(settings)

        self._split: Optional[FamilySplit] = None
        self._working: Optional[WorkingSet] = None
        self._original_toggles: Optional[FamilyToggles] = None
        self.toggles = FamilyToggles()
        self.enrichment: Optional[EnrichmentState] = None
        self.result: Optional[DistanceMatrixResult] = None
        self.clustering_engine: Optional[ClusteringEngine] = None
        self._family_matrices: dict[PairFamily, np.ndarray] = {}

    # ─── State guards ────────────────────────────────────────────────────────

    @property
    def working(self) -> WorkingSet:
        if self._working is None:
            raise EngineStateError("Engine has no diagrams: call execute() first.")
        return self._working

    @property
    def n_inputs(self) -> int:
        return self.working.n_inputs

    @property
    def progressive(self) -> bool:
        return self.settings.use_progressive and not self.settings.use_full_diagrams

    # ─── Entry point ─────────────────────────────────────────────────────────

    def execute(self, diagrams: Sequence[Sequence[RawPair]]) -> DistanceMatrixResult:
        """
        Compute the pairwise distance matrix of the input diagrams.

        Args:
            diagrams: One sequence of CriticalPair / DiagramTuple per input.

        Returns:
            DistanceMatrixResult (also kept on self.result).

        Raises:
            ConfigurationError if number_of_inputs exceeds the diagrams supplied.
        """
        settings = self.settings
        n_inputs = settings.number_of_inputs or len(diagrams)
        if n_inputs > len(diagrams):
            raise ConfigurationError(
                f"number_of_inputs={n_inputs} but only {len(diagrams)} diagrams were supplied."
            )

        structlog.contextvars.bind_contextvars(run_id=uuid.uuid4().hex[:8])
        try:
            return self._execute(list(diagrams[:n_inputs]))
        except Exception as exc:
            log.error(
                "engine_fatal_error",
                error=f"{type(exc).__name__}: {exc}",
                traceback=traceback.format_exc(),
            )
            raise
        finally:
            structlog.contextvars.clear_contextvars()

    def _execute(self, diagrams: list[Sequence[RawPair]]) -> DistanceMatrixResult:
        settings = self.settings
        deadline = Deadline(settings.time_limit)
        self.evaluator = DistanceEvaluator(settings, deadline)

        log.info(
            "engine_start",
            n_diagrams=len(diagrams),
            wasserstein=settings.wasserstein,
            pair_type=settings.pair_type,
            progressive=settings.use_progressive,
            full_diagrams=settings.use_full_diagrams,
        )

        self._split = split_by_family(diagrams, settings.pair_type)
        self._original_toggles = self._split.toggles
        self.toggles = self._split.toggles

        progressive = self.progressive
        self.set_bidder_diagrams(progressive=progressive)

        if settings.use_full_diagrams:
            matrix = self.get_diagrams_dist_mat()
            thresholds = [0.0] * len(ALL_FAMILIES)
        else:
            thresholds = self._enrich_to_floor(deadline) if progressive else [0.0] * len(ALL_FAMILIES)
            matrix = self.get_distance_matrix()

        self.result = DistanceMatrixResult(
            matrix=matrix,
            family_matrices={f.label: m for f, m in self._family_matrices.items()},
            families=[f.label for f in self.toggles.active],
            n_diagrams=len(diagrams),
            exponent=settings.exponent,
            use_full_diagrams=settings.use_full_diagrams,
            min_persistence=thresholds,
            n_evaluations=self.evaluator.n_calls,
            elapsed_seconds=deadline.elapsed,
        )

        log.info(
            "engine_complete",
            n_diagrams=len(diagrams),
            evaluations=self.evaluator.n_calls,
            not_converged=self.evaluator.n_not_converged,
            elapsed_s=round(deadline.elapsed, 3),
        )
        return self.result

    def get_output(self) -> Any:
        """The last matrix in the layout of distance_writing_options."""
        if self.result is None:
            raise EngineStateError("No distance matrix yet: call execute() first.")
        return format_distance_matrix(self.result, self.settings.distance_writing_options)

    # ─── Representation ──────────────────────────────────────────────────────

    def set_bidder_diagrams(self, progressive: Optional[bool] = None) -> WorkingSet:
        """(Re)build full and current bidder diagrams from the split inputs."""
        if self._split is None:
            raise EngineStateError("Engine has no diagrams: call execute() first.")
        if progressive is None:
            progressive = self.progressive
        self._working = build_working_set(
            self._split.inputs,
            self._original_toggles,
            self.settings.lambda_factor,
            progressive=progressive,
        )
        return self._working

    def diagram_to_centroid(self, diagram: BidderDiagram) -> GoodDiagram:
        return diagram_to_centroid(diagram)

    def centroid_to_diagram(self, centroid: GoodDiagram) -> BidderDiagram:
        return centroid_to_diagram(centroid)

    def diagram_with_zero_prices(self, diagram: BidderDiagram) -> BidderDiagram:
        return diagram_with_zero_prices(diagram)

    def centroid_with_zero_prices(self, centroid: GoodDiagram) -> GoodDiagram:
        return centroid_with_zero_prices(centroid)

    # ─── Distances ───────────────────────────────────────────────────────────

    def compute_distance(
        self,
        first: DiagramView,
        second: DiagramView,
        delta_lim: Optional[float] = None,
        warm_start: bool = False,
    ) -> float:
        """Transport cost between two views (see DistanceEvaluator)."""
        return self.evaluator.compute_distance(first, second, delta_lim, warm_start)

    def _matrix(self, views: dict[PairFamily, list[BidderDiagram]]) -> np.ndarray:
        matrix, self._family_matrices = assemble_distance_matrix(
            views,
            self.toggles,
            self.evaluator,
            self.n_inputs,
            self.settings.n_threads,
        )
        return matrix

    def get_diagrams_dist_mat(self) -> np.ndarray:
        """Distance matrix over the full diagrams."""
        working = self.working
        return self._matrix({f: working.family(f).bidders for f in self.toggles.active})

    def get_distance_matrix(self) -> np.ndarray:
        """Distance matrix over the current (enriched) diagrams."""
        working = self.working
        return self._matrix({f: working.family(f).current for f in self.toggles.active})

    # ─── Persistence statistics ──────────────────────────────────────────────

    def get_most_persistent(self, pair_type: int = -1) -> float:
        return get_most_persistent(self.working, self.toggles, pair_type)

    def get_less_persistent(self, pair_type: int = -1) -> float:
        return get_less_persistent(self.working, self.toggles, pair_type)

    # ─── Progressive enrichment ──────────────────────────────────────────────

    def enrich_current_bidder_diagrams(
        self,
        previous_min_persistence: Sequence[float],
        min_persistence: Sequence[float],
        initial_diagonal_prices: Sequence[Sequence[float]],
        initial_off_diagonal_prices: Sequence[Sequence[float]],
        min_points_to_add: Sequence[int],
        add_points_to_barycenter: bool = False,
    ) -> list[float]:
        """
        Admit points of the current diagrams; returns the realized thresholds.

        With add_points_to_barycenter the diagrams, centroids and bounds of
        the last run_clustering() call are enriched instead, so that every
        centroid grows alongside its members.

        Raises:
            EngineStateError if centroids are requested before run_clustering().
        """
        if not add_points_to_barycenter:
            return enrich_current_bidder_diagrams(
                self.working,
                previous_min_persistence,
                min_persistence,
                initial_diagonal_prices,
                initial_off_diagonal_prices,
                min_points_to_add,
                toggles=self.toggles,
                exponent=self.settings.exponent,
                alpha=self.settings.alpha,
            )

        clustering = self.clustering_engine
        if clustering is None or clustering.clustering is None:
            raise EngineStateError("No centroids to grow: call run_clustering() first.")
        return enrich_current_bidder_diagrams(
            clustering.working,
            previous_min_persistence,
            min_persistence,
            initial_diagonal_prices,
            initial_off_diagonal_prices,
            min_points_to_add,
            add_points_to_barycenter=True,
            toggles=clustering.toggles,
            clustering=clustering.clustering,
            bounds=clustering.bounds,
            exponent=self.settings.exponent,
            alpha=self.settings.alpha,
        )

    def _enrich_to_floor(self, deadline: Deadline) -> list[float]:
        most, _ = family_extremes(self.working)
        _, less = family_extremes(self.working, positive_only=True)
        floors = [
            0.0 if math.isnan(m) else self.settings.min_persistence_ratio * m for m in most
        ]
        start = [max(t, f) for t, f in zip(initial_thresholds(most), floors)]
        state = EnrichmentState.start(start, self.settings.min_points_to_add)
        zeros = [[0.0] * self.n_inputs for _ in ALL_FAMILIES]

        while not schedule_finished(state.previous_min_persistence, floors):
            if deadline.expired():
                log.warning(
                    "enrichment_time_limit_reached",
                    rounds=state.rounds,
                    thresholds=state.previous_min_persistence,
                )
                break
            realized = self.enrich_current_bidder_diagrams(
                state.previous_min_persistence,
                state.min_persistence,
                zeros,
                zeros,
                state.min_points_to_add,
            )
            state.advance(realized, next_thresholds(realized, less, floors))

        self.enrichment = state
        return [0.0 if math.isinf(t) else t for t in state.previous_min_persistence]

    # ─── Family toggles ──────────────────────────────────────────────────────

    def disable_family(self, family: PairFamily) -> FamilyToggles:
        """Switch a family off; returns the snapshot that restores it."""
        self.toggles, snapshot = disable_family(self.toggles, family)
        return snapshot

    def restore_families(self, snapshot: FamilyToggles) -> None:
        self.toggles = restore_families(snapshot)

    def reset_dos_to_original_values(self) -> None:
        """Restore the toggles computed by the family split."""
        if self._original_toggles is None:
            raise EngineStateError("Engine has no diagrams: call execute() first.")
        self.toggles = self._original_toggles

    # ─── Clustering ──────────────────────────────────────────────────────────

    def run_clustering(self) -> ClusteringResult:
        """
        k-means over the inputs of the last execute() call. The clustering
        keeps its own working set (current diagrams, centroids, bounds),
        reachable as self.clustering_engine once the run returns.
        """
        if self._split is None:
            raise EngineStateError("Engine has no diagrams: call execute() first.")

        structlog.contextvars.bind_contextvars(run_id=uuid.uuid4().hex[:8])
        try:
            working = build_working_set(
                self._split.inputs,
                self._original_toggles,
                self.settings.lambda_factor,
                progressive=self.progressive,
            )
            self.clustering_engine = ClusteringEngine(
                working,
                self.toggles,
                self.settings,
                Deadline(self.settings.time_limit),
                progressive=self.progressive,
            )
            return self.clustering_engine.run()
        finally:
            structlog.contextvars.clear_contextvars()
