# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Transport Solver Module
Public API for the diagram-to-diagram assignment problem.
"""

from pdmatrix.modules.transport.auction import AuctionOutcome, run_auction
from pdmatrix.modules.transport.exact import solve_bottleneck, solve_exact
from pdmatrix.modules.transport.ground_cost import (
    build_cost_matrix,
    diagonal_costs,
    pairwise_costs,
)
from pdmatrix.modules.transport.solver import TransportResult, solve_transport

__all__ = [
    # Ground cost
    "diagonal_costs",
    "pairwise_costs",
    "build_cost_matrix",
    # Solvers
    "AuctionOutcome",
    "run_auction",
    "solve_exact",
    "solve_bottleneck",
    # Facade
    "TransportResult",
    "solve_transport",
]
