# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Pairwise Distance Evaluator
One distance operation over the tagged Bidder / Good view, four shapes:

  (Bidder, Bidder) → second converted to a good
  (Bidder, Good)   → solved as given
  (Good,   Bidder) → roles swapped (the augmented problem is symmetric)
  (Good,   Good)   → first converted to a bidder (centroid shift distance)

warm_start=False zeroes every price first, so the call is a pure function
of the two point sets. warm_start=True keeps the carried prices and the
caller is expected to keep the priced views returned by compute_matching.

Costs are p-th powers of the Wasserstein distance; wasserstein_distance()
takes the root. Per-family costs add up (max for bottleneck) before the root.
"""

from __future__ import annotations

import math
import threading
from typing import Iterable, Mapping, Optional

from pdmatrix.config import BOTTLENECK, Settings, get_settings
from pdmatrix.models.diagram import PairFamily
from pdmatrix.models.views import BidderDiagram, DiagramView, GoodDiagram, Role
from pdmatrix.modules.representation.converters import (
    centroid_to_diagram,
    centroid_with_zero_prices,
    diagram_to_centroid,
    diagram_with_zero_prices,
)
from pdmatrix.modules.transport.solver import TransportResult, solve_transport
from pdmatrix.utils.logger import get_logger
from pdmatrix.utils.timing import Deadline

log = get_logger(__name__)


def wasserstein_distance(cost: float, exponent: int) -> float:
    """Metric value of a transport cost: cost^(1/p), the cost itself for bottleneck."""
    if math.isnan(cost):
        return cost
    if exponent == BOTTLENECK:
        return cost
    return max(cost, 0.0) ** (1.0 / exponent)


def combine_family_costs(costs: Iterable[float], exponent: int) -> float:
    """Combine per-family costs; NaN when there is no family to combine."""
    values = list(costs)
    if not values:
        return math.nan
    if exponent == BOTTLENECK:
        return max(values)
    return sum(values)


class DistanceEvaluator:
    """Distance between any two diagram views under one run's settings."""

    def __init__(
        self,
        settings: Optional[Settings] = None,
        deadline: Optional[Deadline] = None,
    ) -> None:
        if settings is None:
            settings = get_settings()
        self.settings = settings
        self.deadline = deadline
        # Call counters are shared by the assembly thread pool
        self._lock = threading.Lock()
        self.n_calls = 0
        self.n_not_converged = 0

    @staticmethod
    def _orient(
        first: DiagramView,
        second: DiagramView,
    ) -> tuple[BidderDiagram, GoodDiagram]:
        if first.role is Role.BIDDER and second.role is Role.BIDDER:
            return first, diagram_to_centroid(second)
        if first.role is Role.BIDDER:
            return first, second
        if second.role is Role.BIDDER:
            return second, first
        return centroid_to_diagram(first), second

    def compute_matching(
        self,
        first: DiagramView,
        second: DiagramView,
        delta_lim: Optional[float] = None,
        warm_start: bool = False,
    ) -> TransportResult:
        """
        Solve the transport problem between two views.

        Args:
            first, second: Any combination of BidderDiagram / GoodDiagram
            delta_lim:     Relative gap target (defaults to settings.delta_lim)
            warm_start:    Keep the prices carried by the views

        Returns:
            TransportResult whose bidders / goods are the (re)priced views
            in bidder → good orientation.
        """
        if delta_lim is None:
            delta_lim = self.settings.delta_lim

        bidders, goods = self._orient(first, second)
        if not warm_start:
            bidders = diagram_with_zero_prices(bidders)
            goods = centroid_with_zero_prices(goods)

        result = solve_transport(
            bidders,
            goods,
            exponent=self.settings.exponent,
            alpha=self.settings.alpha,
            delta_lim=delta_lim,
            epsilon_min=self.settings.epsilon_min,
            method=self.settings.transport_solver,
            use_kdtree=self.settings.use_kdtree,
            deadline=self.deadline,
        )

        with self._lock:
            self.n_calls += 1
            if not result.converged:
                self.n_not_converged += 1
        return result

    def compute_distance(
        self,
        first: DiagramView,
        second: DiagramView,
        delta_lim: Optional[float] = None,
        warm_start: bool = False,
    ) -> float:
        """Transport cost (p-th power of the distance) between two views."""
        return self.compute_matching(first, second, delta_lim, warm_start).cost

    def family_distance(
        self,
        first: Mapping[PairFamily, DiagramView],
        second: Mapping[PairFamily, DiagramView],
        families: Iterable[PairFamily],
    ) -> float:
        """Metric distance between two diagrams over the given families."""
        costs = [self.compute_distance(first[f], second[f]) for f in families]
        return wasserstein_distance(
            combine_family_costs(costs, self.settings.exponent),
            self.settings.exponent,
        )
