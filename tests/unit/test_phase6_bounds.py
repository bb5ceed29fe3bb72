# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
Phase 6 — Acceleration bound tests.
Tests cover: bound initialisation, the skip tests, staged per-diagram
assignment, center-shift maintenance, center distances and the validity
of the bounds left by an accelerated clustering run.
"""

import numpy as np
import pytest


# ─── Helpers ─────────────────────────────────────────────────────────────────

def _make_bounds(upper, lower, recompute=False, gaps=None):
    from pdmatrix.models.state import AccelerationBounds
    lower = np.atleast_2d(np.array(lower, dtype=float))
    n, k = lower.shape
    bounds = AccelerationBounds.empty(n, k)
    bounds.upper = np.atleast_1d(np.array(upper, dtype=float))
    bounds.lower = lower
    bounds.recompute[:] = recompute
    if gaps is not None:
        bounds.centroid_distances = np.array(gaps, dtype=float)
    bounds.initialized = True
    return bounds


class _Recorder:
    def __init__(self, values):
        self.values = values
        self.calls = []

    def __call__(self, c):
        self.calls.append(c)
        return self.values[c]


def _grouped_diagrams():
    from pdmatrix.models.diagram import make_pair
    diagrams = []
    for i in range(3):
        diagrams.append([make_pair(0.0, 10.0 + 0.1 * i, pair_id=0), make_pair(0.0, 0.5, pair_id=1)])
        diagrams.append([make_pair(0.0, 1.0 + 0.1 * i, pair_id=0)])
        diagrams.append([make_pair(5.0, 8.0 + 0.2 * i, pair_id=0)])
    return diagrams


def _two_family_diagrams(n, seed):
    from pdmatrix.models.diagram import CriticalType as C, make_pair
    rng = np.random.default_rng(seed)
    diagrams = []
    for _ in range(n):
        pairs = []
        for k in range(int(rng.integers(2, 6))):
            birth = float(rng.uniform(0.0, 1.0))
            death = birth + float(rng.uniform(0.05, 2.0))
            pairs.append(make_pair(birth, death, C.LOCAL_MINIMUM, C.SADDLE1, pair_id=k))
        for k in range(int(rng.integers(1, 4))):
            birth = float(rng.uniform(1.0, 2.0))
            death = birth + float(rng.uniform(0.05, 1.0))
            pairs.append(make_pair(birth, death, C.SADDLE2, C.LOCAL_MAXIMUM, pair_id=10 + k))
        diagrams.append(pairs)
    return diagrams


# ─── Initialisation & Skip Tests ─────────────────────────────────────────────

def test_initialize_bounds_from_table():
    from pdmatrix.modules.clustering import initialize_bounds
    bounds = initialize_bounds(np.array([[1.0, 3.0], [4.0, 2.0]]), np.array([0, 1]))
    assert bounds.initialized is True
    assert bounds.upper.tolist() == [1.0, 2.0]
    assert bounds.lower.tolist() == [[1.0, 3.0], [4.0, 2.0]]
    assert not bounds.recompute.any()


def test_can_skip():
    from pdmatrix.modules.clustering import can_skip
    assert can_skip(1.0, 1.0, 0.0) is True
    assert can_skip(1.0, 0.5, 2.0) is True
    assert can_skip(1.0, 0.5, 1.5) is False


# ─── Assignment Step ─────────────────────────────────────────────────────────

def test_assign_skips_with_tight_lower_bound():
    from pdmatrix.modules.clustering import assign_with_bounds
    bounds = _make_bounds([1.0], [[1.0, 5.0]])
    distance = _Recorder({0: 1.0, 1: 5.0})
    update = assign_with_bounds(bounds, 0, 0, distance)
    assert update.cluster == 0
    assert update.evaluations == 0
    assert distance.calls == []


def test_assign_skips_on_center_gap():
    from pdmatrix.modules.clustering import assign_with_bounds
    bounds = _make_bounds([1.0], [[1.0, 0.0]], gaps=[[0.0, 4.0], [4.0, 0.0]])
    update = assign_with_bounds(bounds, 0, 0, _Recorder({0: 1.0, 1: 9.0}))
    assert update.evaluations == 0


def test_assign_tightens_then_switches():
    from pdmatrix.modules.clustering import assign_with_bounds
    bounds = _make_bounds([3.5], [[0.0, 0.0]], recompute=True)
    distance = _Recorder({0: 3.0, 1: 2.0})
    update = assign_with_bounds(bounds, 0, 0, distance)
    assert distance.calls == [0, 1]
    assert update.cluster == 1
    assert update.upper == pytest.approx(2.0)
    assert update.lower.tolist() == [3.0, 2.0]
    assert update.recompute is False


def test_assign_ties_keep_current_cluster():
    from pdmatrix.modules.clustering import assign_with_bounds
    bounds = _make_bounds([2.0], [[0.0, 0.0]], recompute=True)
    update = assign_with_bounds(bounds, 0, 0, _Recorder({0: 2.0, 1: 2.0}))
    assert update.cluster == 0


def test_assign_reads_but_never_writes_bounds():
    from pdmatrix.modules.clustering import assign_with_bounds, commit_updates
    bounds = _make_bounds([3.5], [[0.0, 0.0]], recompute=True)
    update = assign_with_bounds(bounds, 0, 0, _Recorder({0: 3.0, 1: 2.0}))
    assert bounds.upper[0] == 3.5
    assert bounds.recompute[0]
    commit_updates(bounds, [update])
    assert bounds.upper[0] == pytest.approx(2.0)
    assert bounds.lower[0].tolist() == [3.0, 2.0]
    assert not bounds.recompute[0]


# ─── Center Moves ────────────────────────────────────────────────────────────

def test_tighten_and_shift():
    from pdmatrix.modules.clustering import initialize_bounds, shift_bounds, tighten_upper
    assignment = np.array([0, 1])
    bounds = initialize_bounds(np.array([[1.0, 3.0], [4.0, 2.0]]), assignment)
    tighten_upper(bounds, [1.5, 2.5], assignment)
    assert bounds.upper.tolist() == [1.5, 2.5]
    assert bounds.lower.tolist() == [[1.5, 3.0], [4.0, 2.5]]

    shift_bounds(bounds, np.array([0.5, 1.0]), assignment)
    assert bounds.upper.tolist() == [2.0, 3.5]
    assert bounds.lower.tolist() == [[1.0, 2.0], [3.5, 1.5]]
    assert bounds.recompute.all()


def test_shift_floors_lower_bounds_at_zero():
    from pdmatrix.modules.clustering import shift_bounds
    bounds = _make_bounds([1.0], [[0.2, 0.3]])
    shift_bounds(bounds, np.array([1.0, 1.0]), np.array([0]))
    assert bounds.lower.tolist() == [[0.0, 0.0]]


def test_update_centroid_distances_counts_pairs():
    from pdmatrix.models.state import AccelerationBounds
    from pdmatrix.modules.clustering import update_centroid_distances
    bounds = AccelerationBounds.empty(1, 3)
    assert update_centroid_distances(bounds, [0], lambda a, c: float(a + c)) == 2
    assert bounds.centroid_distances[1, 0] == 1.0
    assert bounds.centroid_distances[0, 2] == 2.0
    assert bounds.centroid_distances[1, 2] == 0.0
    assert update_centroid_distances(bounds, [0, 1], lambda a, c: float(a + c)) == 3
    assert bounds.centroid_distances[2, 1] == 3.0


# ─── Validity In A Run ───────────────────────────────────────────────────────

def test_accelerated_run_keeps_valid_bounds():
    from pdmatrix.config import Settings
    from pdmatrix.modules.clustering import ClusteringEngine
    from pdmatrix.modules.representation import build_working_set, split_by_family

    settings = Settings(
        _env_file=None, n_clusters=3, transport_solver="exact",
        use_accelerated=True, use_progressive=False,
    )
    split = split_by_family(_grouped_diagrams())
    working = build_working_set(split.inputs, split.toggles, progressive=False)
    engine = ClusteringEngine(working, split.toggles, settings)
    engine.run()

    bounds = engine.bounds
    assignment = engine.clustering.assignment
    for d in range(working.n_inputs):
        exact = [engine.distance_to_centroid(d, c, engine.toggles) for c in range(3)]
        assert bounds.upper[d] >= exact[assignment[d]] - 1e-9
        for c in range(3):
            assert bounds.lower[d, c] <= exact[c] + 1e-9


def test_progressive_accelerated_bounds_hold_every_round():
    from pdmatrix.config import Settings
    from pdmatrix.modules.clustering import ClusteringEngine
    from pdmatrix.modules.representation import build_working_set, split_by_family

    settings = Settings(
        _env_file=None, n_clusters=2, transport_solver="exact",
        use_accelerated=True, use_progressive=True, min_points_to_add=1,
    )
    checked_rounds = 0
    for seed in range(6):
        split = split_by_family(_two_family_diagrams(6, seed))
        working = build_working_set(split.inputs, split.toggles, progressive=True)
        engine = ClusteringEngine(working, split.toggles, settings, progressive=True)
        assign = engine._assign

        def checked_assign(toggles, engine=engine, assign=assign):
            nonlocal checked_rounds
            bounds = engine.bounds
            if bounds is not None and bounds.initialized:
                current = engine.clustering.assignment
                for d in range(engine.working.n_inputs):
                    exact = [engine.distance_to_centroid(d, c, toggles) for c in range(2)]
                    assert exact[current[d]] <= bounds.upper[d] + 1e-9
                    for c in range(2):
                        assert bounds.lower[d, c] <= exact[c] + 1e-9
                checked_rounds += 1
            return assign(toggles)

        engine._assign = checked_assign
        engine.run()
    assert checked_rounds > 0


def test_accelerated_matches_plain_assignment():
    from pdmatrix.config import Settings
    from pdmatrix.modules.clustering import ClusteringEngine
    from pdmatrix.modules.representation import build_working_set, split_by_family

    results = []
    for accelerated in (False, True):
        settings = Settings(
            _env_file=None, n_clusters=3, transport_solver="exact",
            use_accelerated=accelerated, use_progressive=False,
        )
        split = split_by_family(_grouped_diagrams())
        working = build_working_set(split.inputs, split.toggles, progressive=False)
        results.append(ClusteringEngine(working, split.toggles, settings).run())

    plain, fast = results
    assert plain.assignment == fast.assignment == [0, 1, 2] * 3
    assert fast.converged is True
