# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
Phase 5 — Progressive enrichment tests.
Tests cover: the threshold schedule, point admission order, the
min_points_to_add rule, price seeding, centroid growth and the loosening
of acceleration bounds.
"""

import math

import numpy as np
import pytest


# ─── Helpers ─────────────────────────────────────────────────────────────────

def _diagrams():
    from pdmatrix.models.diagram import make_pair
    return [
        [make_pair(0.0, 5.0, pair_id=0), make_pair(0.0, 3.0, pair_id=1), make_pair(0.0, 1.0, pair_id=2)],
        [make_pair(0.0, 4.0, pair_id=0), make_pair(0.0, 2.0, pair_id=1)],
    ]


def _make_working(progressive=True):
    from pdmatrix.modules.representation import build_working_set, split_by_family
    split = split_by_family(_diagrams())
    return build_working_set(split.inputs, split.toggles, progressive=progressive), split.toggles


def _enrich(working, toggles, target, min_points=0, diagonal_price=0.0, **kwargs):
    from pdmatrix.modules.enrichment import enrich_current_bidder_diagrams
    n = working.n_inputs
    return enrich_current_bidder_diagrams(
        working,
        [math.inf] * 3,
        [target, 0.0, 0.0],
        [[diagonal_price] * n] * 3,
        kwargs.pop("off_diagonal_prices", [[0.0] * n] * 3),
        [min_points] * 3,
        toggles=toggles,
        **kwargs,
    )


def _current_persistence(working, diagram):
    from pdmatrix.models.diagram import PairFamily
    return working.family(PairFamily.MIN_SADDLE).current[diagram].persistence.tolist()


# ─── Threshold Schedule ──────────────────────────────────────────────────────

def test_initial_thresholds_halve_most_persistent():
    from pdmatrix.modules.enrichment import initial_thresholds
    assert initial_thresholds([4.0, math.nan, 2.0]) == [2.0, 0.0, 1.0]


def test_next_thresholds_halve_then_drop_to_floor():
    from pdmatrix.modules.enrichment import next_thresholds
    assert next_thresholds([2.0], [0.5]) == [1.0]
    assert next_thresholds([0.8], [0.5]) == [0.0]
    assert next_thresholds([2.0], [math.nan]) == [0.0]


def test_next_thresholds_respect_floor():
    from pdmatrix.modules.enrichment import next_thresholds
    assert next_thresholds([2.0], [0.1], [1.5]) == [1.5]
    assert next_thresholds([0.8], [0.5], [0.3]) == [0.3]


def test_schedule_finished():
    from pdmatrix.modules.enrichment import schedule_finished
    assert schedule_finished([0.0, 0.0, 0.0]) is True
    assert schedule_finished([0.5, 0.0, 0.0]) is False
    assert schedule_finished([0.5, 0.0, 0.0], [0.5, 0.0, 0.0]) is True


# ─── Admission ───────────────────────────────────────────────────────────────

def test_admits_points_above_threshold():
    working, toggles = _make_working()
    realized = _enrich(working, toggles, 2.5)
    assert realized[0] == pytest.approx(2.5)
    assert _current_persistence(working, 0) == [5.0, 3.0]
    assert _current_persistence(working, 1) == [4.0]


def test_current_ids_track_admitted_points():
    from pdmatrix.models.diagram import PairFamily
    working, toggles = _make_working()
    _enrich(working, toggles, 2.5)
    ids = working.family(PairFamily.MIN_SADDLE).current_ids
    assert ids[0].tolist() == [0, 1, -1]
    assert ids[1].tolist() == [0, -1]


def test_enrichment_is_monotonic():
    from pdmatrix.models.diagram import PairFamily
    working, toggles = _make_working()
    data = working.family(PairFamily.MIN_SADDLE)
    _enrich(working, toggles, 2.5)
    before = [c.persistence.tolist() for c in data.current]
    _enrich(working, toggles, 0.0)
    for i, prefix in enumerate(before):
        assert data.current[i].persistence.tolist()[: len(prefix)] == prefix
    assert data.is_fully_enriched() is True


def test_schedule_independent_final_diagrams():
    from pdmatrix.models.diagram import PairFamily
    stepped, toggles = _make_working()
    for target in (4.5, 2.5, 0.5, 0.0):
        _enrich(stepped, toggles, target)
    oneshot, _ = _make_working()
    _enrich(oneshot, toggles, 0.0)

    a = stepped.family(PairFamily.MIN_SADDLE).current
    b = oneshot.family(PairFamily.MIN_SADDLE).current
    for x, y in zip(a, b):
        assert x.births.tolist() == y.births.tolist()
        assert x.deaths.tolist() == y.deaths.tolist()
        assert x.pair_ids.tolist() == y.pair_ids.tolist()


def test_min_points_lowers_threshold():
    working, toggles = _make_working()
    realized = _enrich(working, toggles, 4.5, min_points=2)
    # diagram 1 holds only one point above 4.5; its 2nd point sets the threshold
    assert realized[0] == pytest.approx(2.0)
    assert _current_persistence(working, 0) == [5.0, 3.0]
    assert _current_persistence(working, 1) == [4.0, 2.0]


def test_min_points_skips_diagrams_with_too_few_candidates():
    working, toggles = _make_working()
    realized = _enrich(working, toggles, 4.5, min_points=3)
    # only diagram 0 has 3 candidates; it forces the threshold to 1.0
    assert realized[0] == pytest.approx(1.0)
    assert _current_persistence(working, 1) == [4.0, 2.0]


def test_all_points_below_threshold():
    from pdmatrix.models.diagram import PairFamily, make_pair
    from pdmatrix.modules.enrichment import enrich_current_bidder_diagrams
    from pdmatrix.modules.representation import build_working_set, split_by_family
    split = split_by_family([[make_pair(0.0, 1.0), make_pair(0.0, 0.5, pair_id=1)]])

    working = build_working_set(split.inputs, split.toggles, progressive=True)
    realized = enrich_current_bidder_diagrams(
        working, [math.inf] * 3, [4.0, 0.0, 0.0], [[0.0]] * 3, [[0.0]] * 3, [0] * 3,
        toggles=split.toggles,
    )
    assert realized[0] == pytest.approx(4.0)
    assert working.family(PairFamily.MIN_SADDLE).n_current_points == 0

    working = build_working_set(split.inputs, split.toggles, progressive=True)
    realized = enrich_current_bidder_diagrams(
        working, [math.inf] * 3, [4.0, 0.0, 0.0], [[0.0]] * 3, [[0.0]] * 3, [1] * 3,
        toggles=split.toggles,
    )
    assert realized[0] == pytest.approx(1.0)
    assert working.family(PairFamily.MIN_SADDLE).current[0].persistence.tolist() == [1.0]


def test_inactive_families_keep_target():
    working, toggles = _make_working()
    realized = _enrich(working, toggles, 2.5)
    assert realized[1:] == [0.0, 0.0]


def test_exhausted_diagrams_contribute_nothing():
    from pdmatrix.models.diagram import PairFamily
    from pdmatrix.modules.enrichment import fully_enriched
    working, toggles = _make_working()
    _enrich(working, toggles, 0.0)
    assert fully_enriched(working, toggles) is True
    _enrich(working, toggles, 0.0)
    assert working.family(PairFamily.MIN_SADDLE).n_current_points == 5


def test_admitted_points_get_seed_price():
    from pdmatrix.models.diagram import PairFamily
    working, toggles = _make_working()
    _enrich(working, toggles, 2.5, diagonal_price=0.75)
    current = working.family(PairFamily.MIN_SADDLE).current[0]
    assert current.diagonal_prices.tolist() == [0.75, 0.75]
    assert current.assignments.tolist() == [-1, -1]


def test_previous_threshold_caps_target():
    from pdmatrix.modules.enrichment import enrich_current_bidder_diagrams
    working, toggles = _make_working()
    realized = enrich_current_bidder_diagrams(
        working, [3.5, 0.0, 0.0], [4.5, 0.0, 0.0],
        [[0.0, 0.0]] * 3, [[0.0, 0.0]] * 3, [0] * 3,
        toggles=toggles,
    )
    assert realized[0] == pytest.approx(3.5)
    assert _current_persistence(working, 1) == [4.0]


# ─── Clustering Side Effects ─────────────────────────────────────────────────

def test_centroid_grows_with_admissions():
    from pdmatrix.models.diagram import PairFamily
    from pdmatrix.models.state import ClusteringState
    from pdmatrix.models.views import GoodDiagram
    working, toggles = _make_working()
    data = working.family(PairFamily.MIN_SADDLE)
    data.centroids = [GoodDiagram.empty()]
    data.centroid_prices = [np.zeros(0), np.zeros(0)]

    _enrich(
        working, toggles, 2.5,
        off_diagonal_prices=[[0.5, 0.25]] * 3,
        add_points_to_barycenter=True,
        clustering=ClusteringState.initial(np.array([0, 0]), 1),
    )
    # 3 admissions over 2 members → one new centroid point, the most persistent
    assert data.centroids[0].persistence.tolist() == [5.0]
    assert data.centroid_prices[0].tolist() == [0.5]
    assert data.centroid_prices[1].tolist() == [0.25]


def test_bounds_loosened_by_admitted_mass():
    from pdmatrix.models.state import ClusteringState
    from pdmatrix.modules.clustering import initialize_bounds
    working, toggles = _make_working()
    bounds = initialize_bounds(np.array([[1.0], [2.0]]), np.array([0, 0]))

    _enrich(
        working, toggles, 2.5,
        clustering=ClusteringState.initial(np.array([0, 0]), 1),
        bounds=bounds,
    )
    # diagram 0 admitted (0, 5) and (0, 3): 12.5 + 4.5 to the diagonal
    assert bounds.upper[0] == pytest.approx(1.0 + math.sqrt(17.0))
    assert bounds.upper[1] == pytest.approx(2.0 + math.sqrt(8.0))
    assert bounds.lower.tolist() == [[0.0], [0.0]]
    assert bounds.recompute.all()
