# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Auction Solver
Gauss-Seidel forward auction with epsilon scaling on a square cost matrix
(minimisation form).

Each unassigned bidder i bids for the good j minimising c_ij + p_j and
raises its price by (second best − best + epsilon), evicting the previous
owner. A phase ends when every bidder owns a good. Prices are kept across
phases while epsilon shrinks by a factor 5 down to epsilon_min.

Stopping rule after each phase:
  primal = Σ c_i,σ(i)
  dual   = Σ_i min_j (c_ij + p_j) − Σ_j p_j       (always <= primal)
  stop when (primal − dual) / dual <= delta_lim or epsilon hit its floor.

The deadline is only checked between phases, so a phase in progress always
completes and the assignment returned is always a full permutation.
Prices can be supplied to warm-start from a previous, similar problem.
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Optional

import numpy as np

from pdmatrix.utils.logger import get_logger
from pdmatrix.utils.timing import Deadline

log = get_logger(__name__)

# Epsilon shrink factor between phases
_SCALING_FACTOR = 5.0


@dataclass
class AuctionOutcome:
    assignment: np.ndarray   # row → column
    prices: np.ndarray       # column prices after the last phase
    primal: float
    dual: float
    converged: bool
    phases: int
    bids: int

    @property
    def relative_gap(self) -> float:
        return _relative_gap(self.primal, self.dual)


def _relative_gap(primal: float, dual: float) -> float:
    gap = primal - dual
    if gap <= 1e-12:
        return 0.0
    if dual <= 0.0:
        return float("inf")
    return gap / dual


def _bidding_phase(
    cost: np.ndarray,
    prices: np.ndarray,
    epsilon: float,
) -> tuple[np.ndarray, int]:
    """Run one full auction phase in place on `prices`; return (assignment, bids)."""
    n = cost.shape[0]
    assignment = np.full(n, -1, dtype=np.int64)
    owner = np.full(n, -1, dtype=np.int64)
    unassigned = deque(range(n))
    bids = 0

    while unassigned:
        i = unassigned.popleft()
        values = cost[i] + prices
        if n == 1:
            best, increment = 0, epsilon
        else:
            first_two = np.argpartition(values, 1)[:2]
            best, second = int(first_two[0]), int(first_two[1])
            increment = values[second] - values[best] + epsilon

        prices[best] += increment
        evicted = owner[best]
        if evicted >= 0:
            assignment[evicted] = -1
            unassigned.append(int(evicted))
        owner[best] = i
        assignment[i] = best
        bids += 1

    return assignment, bids


def run_auction(
    cost: np.ndarray,
    prices: Optional[np.ndarray] = None,
    *,
    delta_lim: float = 0.01,
    epsilon_min: float = 5e-5,
    deadline: Optional[Deadline] = None,
) -> AuctionOutcome:
    """
    Solve the square assignment problem `cost` by auction.

    Args:
        cost:        (n, n) non-negative cost matrix
        prices:      Optional warm-start column prices (not modified)
        delta_lim:   Accepted relative primal/dual gap
        epsilon_min: Floor of the epsilon schedule
        deadline:    Wall-clock budget polled between phases

    Returns:
        AuctionOutcome with a full permutation; converged=False only when
        the deadline cut the epsilon schedule short of the gap target.
    """
    n = cost.shape[0]
    if n == 0:
        return AuctionOutcome(
            assignment=np.zeros(0, dtype=np.int64),
            prices=np.zeros(0),
            primal=0.0,
            dual=0.0,
            converged=True,
            phases=0,
            bids=0,
        )

    prices = np.zeros(n) if prices is None else np.array(prices, dtype=np.float64)
    epsilon = max(float(cost.max()) / 4.0, epsilon_min)
    rows = np.arange(n)
    phases = 0
    total_bids = 0

    while True:
        assignment, bids = _bidding_phase(cost, prices, epsilon)
        phases += 1
        total_bids += bids

        primal = float(cost[rows, assignment].sum())
        dual = float((cost + prices[None, :]).min(axis=1).sum() - prices.sum())
        gap_reached = _relative_gap(primal, dual) <= delta_lim
        at_floor = epsilon <= epsilon_min

        if gap_reached or at_floor:
            converged = True
            break
        if deadline is not None and deadline.expired():
            converged = False
            break
        epsilon = max(epsilon / _SCALING_FACTOR, epsilon_min)

    log.debug(
        "auction_complete",
        n=n,
        phases=phases,
        bids=total_bids,
        primal=round(primal, 8),
        dual=round(dual, 8),
        converged=converged,
    )

    return AuctionOutcome(
        assignment=assignment,
        prices=prices,
        primal=primal,
        dual=dual,
        converged=converged,
        phases=phases,
        bids=total_bids,
    )
