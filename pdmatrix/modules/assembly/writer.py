# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Distance Matrix Output
Shapes a DistanceMatrixResult according to distance_writing_options:

  0 → square (n, n) matrix
  1 → condensed upper triangle (scipy.spatial.distance.squareform order)
  2 → {"distance": square matrix, "<family label>": square matrix, ...}
"""

from __future__ import annotations

from typing import Any

import numpy as np
from scipy.spatial.distance import squareform

from pdmatrix.core.errors import ConfigurationError
from pdmatrix.models.output import DistanceMatrixResult


def condensed(matrix: np.ndarray) -> np.ndarray:
    # checks=False: NaN entries of an empty run are kept as-is
    return squareform(np.asarray(matrix, dtype=np.float64), checks=False)


def format_distance_matrix(result: DistanceMatrixResult, option: int = 0) -> Any:
    """Return the matrix in the layout selected by `option`."""
    if option == 0:
        return np.array(result.matrix)
    if option == 1:
        return condensed(result.matrix)
    if option == 2:
        output = {"distance": np.array(result.matrix)}
        for label, family_matrix in result.family_matrices.items():
            output[label] = np.array(family_matrix)
        return output
    raise ConfigurationError(f"Unknown distance writing option {option!r}: expected 0, 1 or 2.")
