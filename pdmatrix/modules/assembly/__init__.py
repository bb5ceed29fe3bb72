# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Assembly Module
Public API for the distance matrix and extremal persistence queries.
"""

from pdmatrix.modules.assembly.distance_matrix import assemble_distance_matrix
from pdmatrix.modules.assembly.persistence_stats import (
    family_extremes,
    get_less_persistent,
    get_most_persistent,
)
from pdmatrix.modules.assembly.writer import condensed, format_distance_matrix

__all__ = [
    # Persistence statistics
    "family_extremes",
    "get_most_persistent",
    "get_less_persistent",
    # Matrix
    "assemble_distance_matrix",
    # Output
    "condensed",
    "format_distance_matrix",
]
