# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Engine Configuration
One immutable settings object per clustering / distance-matrix run.
All options can be overridden via PDMATRIX_* environment variables
or constructor keyword arguments.
"""

from __future__ import annotations

import math
from functools import lru_cache
from typing import Literal, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from pdmatrix.core.errors import ConfigurationError

# Internal sentinel for the ∞-order (bottleneck) distance
BOTTLENECK = -1

# Epsilon floors of the auction solver
EPSILON_MIN_DELTA_LIM = 1e-8
EPSILON_MIN_DEFAULT = 5e-5


def parse_wasserstein(value: str | int) -> int:
    """
    Map a Wasserstein exponent option to its internal integer form.
    "inf" → BOTTLENECK (-1); positive integers are kept as-is.
    Raises ConfigurationError for anything else.
    """
    text = str(value).strip().lower()
    if text == "inf":
        return BOTTLENECK
    try:
        exponent = int(text)
    except ValueError:
        raise ConfigurationError(
            f"Invalid Wasserstein exponent {value!r}: expected a positive integer or 'inf'."
        ) from None
    if exponent < 1:
        raise ConfigurationError(
            f"Invalid Wasserstein exponent {value!r}: must be >= 1."
        )
    return exponent


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="PDMATRIX_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    # ─── Inputs & Clusters ───────────────────────────────────────────────────
    # None = use every supplied diagram
    number_of_inputs: Optional[int] = Field(None, ge=1)
    n_clusters: int = Field(1, ge=1)
    pair_type: Literal[-1, 0, 1, 2] = -1

    # ─── Distance ────────────────────────────────────────────────────────────
    wasserstein: str = "2"
    # Weight of the persistence-plane term against critical coordinates
    alpha: float = Field(1.0, ge=0.0, le=1.0)
    # 1 = extremum position, 0 = saddle position, 0.5 = midpoint
    lambda_factor: float = Field(1.0, ge=0.0, le=1.0)
    transport_solver: Literal["auction", "exact"] = "auction"
    use_kdtree: bool = True
    use_delta_lim: bool = False
    delta_lim: float = Field(0.01, gt=0.0)

    # ─── Progressive / Clustering ────────────────────────────────────────────
    use_progressive: bool = True
    use_full_diagrams: bool = False
    min_persistence_ratio: float = Field(0.0, ge=0.0, le=1.0)
    min_points_to_add: int = Field(10, ge=0)
    use_kmeanspp: bool = False
    use_accelerated: bool = False
    force_use_of_algorithm: bool = False
    deterministic: bool = True
    random_seed: int = 0
    max_iterations: int = Field(100, ge=1)
    # Seconds; inf = no budget
    time_limit: float = Field(math.inf, gt=0.0)

    # ─── Execution / Output ──────────────────────────────────────────────────
    n_threads: int = Field(1, ge=1)
    distance_writing_options: Literal[0, 1, 2] = 0

    # ─── Logging ─────────────────────────────────────────────────────────────
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"

    @field_validator("wasserstein", mode="before")
    @classmethod
    def _check_wasserstein(cls, value: str | int) -> str:
        parse_wasserstein(value)
        return str(value).strip().lower()

    # ─── Derived helpers ─────────────────────────────────────────────────────
    @property
    def exponent(self) -> int:
        return parse_wasserstein(self.wasserstein)

    @property
    def is_bottleneck(self) -> bool:
        return self.exponent == BOTTLENECK

    @property
    def epsilon_min(self) -> float:
        return EPSILON_MIN_DELTA_LIM if self.use_delta_lim else EPSILON_MIN_DEFAULT


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached singleton Settings instance."""
    return Settings()
