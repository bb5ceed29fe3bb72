# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Engine Exceptions
Fatal conditions only. Degenerate numerical inputs produce NaN sentinels
and solver non-convergence produces a best-effort result, neither raises.
"""


class ConfigurationError(ValueError):
    """Raised when an option is malformed or inconsistent with the inputs."""


class ShapeMismatchError(ValueError):
    """Raised when two diagrams fed to one distance call disagree in dimension."""


class EngineStateError(RuntimeError):
    """Raised when an accessor is used before execute() populated the engine."""
