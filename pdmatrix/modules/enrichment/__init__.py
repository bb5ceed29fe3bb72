# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Progressive Enrichment Module
Public API for threshold scheduling and point admission.
"""

from pdmatrix.modules.enrichment.enricher import (
    enrich_current_bidder_diagrams,
    fully_enriched,
)
from pdmatrix.modules.enrichment.thresholds import (
    initial_thresholds,
    next_thresholds,
    schedule_finished,
)

__all__ = [
    # Schedule
    "initial_thresholds",
    "next_thresholds",
    "schedule_finished",
    # Admission
    "enrich_current_bidder_diagrams",
    "fully_enriched",
]
