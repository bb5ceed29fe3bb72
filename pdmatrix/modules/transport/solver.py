# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Transport Solver Facade
(bidders, goods, exponent, tolerance) → cost, matchings and priced views.

Method selection:
  bottleneck exponent → exact threshold search (always)
  method="exact"      → Hungarian
  method="auction"    → epsilon-scaling auction, warm-started from the
                        goods' prices and the bidders' diagonal prices

Column prices of the augmented problem are laid out as
  [goods.prices (ng) | bidders.diagonal_prices (nb)]
and written back into the returned views so a caller can keep them for the
next, similar solve.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

import numpy as np

from pdmatrix.config import BOTTLENECK
from pdmatrix.core.errors import ShapeMismatchError
from pdmatrix.models.diagram import DIAGONAL_ID, Matching
from pdmatrix.models.views import BidderDiagram, GoodDiagram
from pdmatrix.modules.transport.auction import run_auction
from pdmatrix.modules.transport.exact import solve_bottleneck, solve_exact
from pdmatrix.modules.transport.ground_cost import build_cost_matrix, diagonal_costs
from pdmatrix.utils.logger import get_logger
from pdmatrix.utils.timing import Deadline

log = get_logger(__name__)


@dataclass
class TransportResult:
    """
    cost is the sum of matched ground costs (the max for bottleneck), i.e.
    the p-th power of the Wasserstein distance.
    """
    cost: float
    matchings: list[Matching] = field(default_factory=list)
    bidders: Optional[BidderDiagram] = None
    goods: Optional[GoodDiagram] = None
    converged: bool = True
    rounds: int = 0


def _matchings(
    assignment: np.ndarray,
    cost: np.ndarray,
    pruned: Optional[np.ndarray],
    diag_b: np.ndarray,
    diag_g: np.ndarray,
) -> list[Matching]:
    nb, ng = len(diag_b), len(diag_g)
    matchings: list[Matching] = []
    for row, col in enumerate(assignment):
        col = int(col)
        if row < nb and col < ng:
            if pruned is not None and pruned[row, col]:
                matchings.append(Matching(row, DIAGONAL_ID, float(diag_b[row])))
                matchings.append(Matching(DIAGONAL_ID, col, float(diag_g[col])))
            else:
                matchings.append(Matching(row, col, float(cost[row, col])))
        elif row < nb:
            matchings.append(Matching(row, DIAGONAL_ID, float(diag_b[row])))
        elif col < ng:
            matchings.append(Matching(DIAGONAL_ID, col, float(diag_g[col])))
    return matchings


def solve_transport(
    bidders: BidderDiagram,
    goods: GoodDiagram,
    *,
    exponent: int = 2,
    alpha: float = 1.0,
    delta_lim: float = 0.01,
    epsilon_min: float = 5e-5,
    method: Literal["auction", "exact"] = "auction",
    use_kdtree: bool = True,
    deadline: Optional[Deadline] = None,
) -> TransportResult:
    """
    Solve the diagonal-augmented transport problem between two point sets.

    Args:
        bidders:     Row side, prices / diagonal prices used for warm-start
        goods:       Column side, prices used for warm-start
        exponent:    Wasserstein exponent p, or BOTTLENECK
        alpha:       Persistence-plane weight
        delta_lim:   Accepted relative primal/dual gap (auction)
        epsilon_min: Auction epsilon floor
        method:      "auction" or "exact"
        use_kdtree:  Prune far pairs when alpha = 1 and p is finite
        deadline:    Wall-clock budget (auction only)

    Returns:
        TransportResult; never raises on non-convergence.

    Raises:
        ShapeMismatchError if the critical coordinates differ in dimension.
    """
    if bidders.dim != goods.dim:
        raise ShapeMismatchError(
            f"Coordinate dimension mismatch: bidders have {bidders.dim}, "
            f"goods have {goods.dim}."
        )

    nb, ng = len(bidders), len(goods)
    if nb == 0 and ng == 0:
        return TransportResult(cost=0.0, bidders=bidders, goods=goods)

    cost, pruned = build_cost_matrix(bidders, goods, exponent, alpha, use_kdtree)
    diag_b = diagonal_costs(bidders, exponent, alpha)
    diag_g = diagonal_costs(goods, exponent, alpha)
    prices = np.concatenate([goods.prices, bidders.diagonal_prices])

    converged, rounds = True, 1
    if exponent == BOTTLENECK:
        assignment, total = solve_bottleneck(cost)
    elif method == "exact":
        assignment, total = solve_exact(cost)
    else:
        outcome = run_auction(
            cost,
            prices,
            delta_lim=delta_lim,
            epsilon_min=epsilon_min,
            deadline=deadline,
        )
        assignment, total = outcome.assignment, outcome.primal
        prices, converged, rounds = outcome.prices, outcome.converged, outcome.phases
        if not converged:
            log.warning(
                "transport_not_converged",
                n_bidders=nb,
                n_goods=ng,
                cost=round(total, 8),
                relative_gap=outcome.relative_gap,
            )

    matched = assignment[:nb]
    paid = prices[matched] if nb else np.zeros(0)
    priced_bidders = bidders.with_prices(
        prices=paid,
        diagonal_prices=prices[ng:],
        assignments=np.where(matched < ng, matched, DIAGONAL_ID),
    )
    priced_goods = goods.with_prices(prices[:ng])

    return TransportResult(
        cost=total,
        matchings=_matchings(assignment, cost, pruned, diag_b, diag_g),
        bidders=priced_bidders,
        goods=priced_goods,
        converged=converged,
        rounds=rounds,
    )
