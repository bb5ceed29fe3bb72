# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Result Models
Final outputs of a run: the assembled distance matrix and the clustering.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class DistanceMatrixResult(BaseModel):
    """Pairwise distances between every pair of input diagrams."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    matrix: Any = Field(..., description="np.ndarray (n, n) symmetric, zero diagonal")
    family_matrices: dict[str, Any] = Field(
        default_factory=dict,
        description="family label → np.ndarray (n, n) distances of that family alone",
    )
    families: list[str] = Field(default_factory=list)
    n_diagrams: int = Field(..., ge=0)
    exponent: int
    use_full_diagrams: bool = True
    # Realized per-family thresholds of the diagrams the matrix was built on
    min_persistence: list[float] = Field(default_factory=lambda: [0.0, 0.0, 0.0])
    n_evaluations: int = 0
    elapsed_seconds: float = 0.0


class ClusteringResult(BaseModel):
    """Final assignment and centroids of a k-means run over diagrams."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    assignment: list[int]
    n_clusters: int = Field(..., ge=1)
    cluster_sizes: list[int]
    centroids: dict[str, list[Any]] = Field(
        default_factory=dict,
        description="family label → one GoodDiagram per cluster",
    )
    # Distance of every diagram to its assigned centroid, last committed round
    distances: list[float] = Field(default_factory=list)
    cost: float = 0.0
    iterations: int = 0
    converged: bool = False
    timed_out: bool = False
    trivial: bool = False
    n_evaluations: int = 0
    elapsed_seconds: float = 0.0
