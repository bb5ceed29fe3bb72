# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
Phase 4 — Distance evaluator tests.
Tests cover: the four bidder / good shapes, symmetry, identity,
cost combination across families, warm start and call accounting.
"""

import math

import numpy as np
import pytest


# ─── Helpers ─────────────────────────────────────────────────────────────────

def _settings(**overrides):
    from pdmatrix.config import Settings
    return Settings(_env_file=None, **overrides)


def _random_bidders(seed, n):
    from pdmatrix.models.views import BidderDiagram
    rng = np.random.default_rng(seed)
    births = rng.uniform(0.0, 1.0, n)
    deaths = births + rng.uniform(0.05, 1.0, n)
    return BidderDiagram.from_points(births, deaths)


# ─── Metric Helpers ──────────────────────────────────────────────────────────

def test_wasserstein_distance_takes_root():
    from pdmatrix.config import BOTTLENECK
    from pdmatrix.modules.distance import wasserstein_distance
    assert wasserstein_distance(9.0, 2) == pytest.approx(3.0)
    assert wasserstein_distance(8.0, 3) == pytest.approx(2.0)
    assert wasserstein_distance(1.5, BOTTLENECK) == 1.5
    assert math.isnan(wasserstein_distance(math.nan, 2))


def test_combine_family_costs():
    from pdmatrix.config import BOTTLENECK
    from pdmatrix.modules.distance import combine_family_costs
    assert combine_family_costs([1.0, 2.0], 2) == pytest.approx(3.0)
    assert combine_family_costs([1.0, 2.0], BOTTLENECK) == 2.0
    assert math.isnan(combine_family_costs([], 2))


# ─── Evaluator ───────────────────────────────────────────────────────────────

def test_four_shapes_agree():
    from pdmatrix.modules.distance import DistanceEvaluator
    from pdmatrix.modules.representation import diagram_to_centroid
    evaluator = DistanceEvaluator(_settings(transport_solver="exact"))
    a, b = _random_bidders(1, 6), _random_bidders(2, 4)
    ga, gb = diagram_to_centroid(a), diagram_to_centroid(b)
    expected = evaluator.compute_distance(a, b)
    assert evaluator.compute_distance(a, gb) == pytest.approx(expected)
    assert evaluator.compute_distance(ga, b) == pytest.approx(expected)
    assert evaluator.compute_distance(ga, gb) == pytest.approx(expected)


def test_symmetry_exact():
    from pdmatrix.modules.distance import DistanceEvaluator
    evaluator = DistanceEvaluator(_settings(transport_solver="exact"))
    a, b = _random_bidders(3, 7), _random_bidders(4, 5)
    assert evaluator.compute_distance(a, b) == pytest.approx(evaluator.compute_distance(b, a))


def test_symmetry_auction_within_tolerance():
    from pdmatrix.modules.distance import DistanceEvaluator
    evaluator = DistanceEvaluator(_settings())
    a, b = _random_bidders(5, 7), _random_bidders(6, 5)
    assert evaluator.compute_distance(a, b) == pytest.approx(
        evaluator.compute_distance(b, a), rel=0.03
    )


def test_identity_is_zero():
    from pdmatrix.modules.distance import DistanceEvaluator
    a = _random_bidders(7, 6)
    exact = DistanceEvaluator(_settings(transport_solver="exact"))
    assert exact.compute_distance(a, a) == pytest.approx(0.0, abs=1e-12)
    auction = DistanceEvaluator(_settings())
    assert auction.compute_distance(a, a) == pytest.approx(0.0, abs=1e-3)


def test_cold_start_ignores_carried_prices():
    from pdmatrix.modules.distance import DistanceEvaluator
    evaluator = DistanceEvaluator(_settings(transport_solver="exact"))
    a, b = _random_bidders(8, 5), _random_bidders(9, 5)
    priced = evaluator.compute_matching(a, b, warm_start=True)
    again = evaluator.compute_distance(priced.bidders, priced.goods)
    assert again == pytest.approx(priced.cost)


def test_warm_start_returns_priced_views():
    from pdmatrix.modules.distance import DistanceEvaluator
    evaluator = DistanceEvaluator(_settings())
    a, b = _random_bidders(10, 5), _random_bidders(11, 3)
    first = evaluator.compute_matching(a, b, warm_start=True)
    assert first.goods.prices.shape == (3,)
    second = evaluator.compute_matching(first.bidders, first.goods, warm_start=True)
    assert second.cost == pytest.approx(first.cost, rel=0.03)


def test_family_distance_sums_costs_before_root():
    from pdmatrix.models.diagram import PairFamily
    from pdmatrix.models.views import BidderDiagram
    from pdmatrix.modules.distance import DistanceEvaluator
    evaluator = DistanceEvaluator(_settings(transport_solver="exact"))
    first = {
        PairFamily.MIN_SADDLE: BidderDiagram.from_points([0.0], [2.0]),
        PairFamily.SADDLE_MAX: BidderDiagram.from_points([0.0], [4.0]),
    }
    second = {
        PairFamily.MIN_SADDLE: BidderDiagram.from_points([1.0], [4.0]),
        PairFamily.SADDLE_MAX: BidderDiagram.empty(),
    }
    families = [PairFamily.MIN_SADDLE, PairFamily.SADDLE_MAX]
    # 5 for the min-saddle match, 8 for sending (0, 4) to the diagonal
    assert evaluator.family_distance(first, second, families) == pytest.approx(math.sqrt(13.0))
    assert math.isnan(evaluator.family_distance(first, second, []))


def test_dimension_mismatch_propagates():
    from pdmatrix.core.errors import ShapeMismatchError
    from pdmatrix.models.views import BidderDiagram
    from pdmatrix.modules.distance import DistanceEvaluator
    evaluator = DistanceEvaluator(_settings())
    a = BidderDiagram.from_points([0.0], [1.0], np.zeros((1, 3)))
    b = BidderDiagram.from_points([0.0], [1.0], np.zeros((1, 2)))
    with pytest.raises(ShapeMismatchError):
        evaluator.compute_distance(a, b)


def test_call_counter():
    from pdmatrix.modules.distance import DistanceEvaluator
    evaluator = DistanceEvaluator(_settings())
    a, b = _random_bidders(12, 3), _random_bidders(13, 3)
    evaluator.compute_distance(a, b)
    evaluator.compute_distance(b, a, delta_lim=0.5)
    assert evaluator.n_calls == 2
    assert evaluator.n_not_converged == 0
