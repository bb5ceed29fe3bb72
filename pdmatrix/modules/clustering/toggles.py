# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Family Toggles
Snapshot-based enable / disable of pair-type families. Toggles are values:
disabling returns the new toggles together with the snapshot that restores
the previous ones.
"""

from __future__ import annotations

from pdmatrix.models.diagram import PairFamily
from pdmatrix.models.state import FamilyToggles, WorkingSet
from pdmatrix.utils.logger import get_logger

log = get_logger(__name__)


def disable_family(
    toggles: FamilyToggles,
    family: PairFamily,
) -> tuple[FamilyToggles, FamilyToggles]:
    """Return (toggles without `family`, snapshot of the toggles before)."""
    return toggles.with_family(family, False), toggles


def restore_families(snapshot: FamilyToggles) -> FamilyToggles:
    return snapshot


def families_without_points(working: WorkingSet, toggles: FamilyToggles) -> list[PairFamily]:
    """Active families whose current diagrams hold no point at all."""
    return [f for f in toggles.active if working.family(f).n_current_points == 0]


def round_toggles(
    working: WorkingSet,
    toggles: FamilyToggles,
) -> tuple[FamilyToggles, FamilyToggles]:
    """
    Toggles for one clustering round: families with nothing admitted yet
    are switched off. Returns (round toggles, snapshot to restore).
    """
    snapshot = toggles
    for family in families_without_points(working, toggles):
        toggles, _ = disable_family(toggles, family)
        log.debug("family_disabled_for_round", family=family.label)
    return toggles, snapshot
