# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Persistence Diagram Models
Critical pairs as produced by the upstream topological analysis, the
pair-type families they are split into, and the matching tuple returned
by the transport solver.
"""

from __future__ import annotations

from enum import Enum
from typing import NamedTuple, Union

from pydantic import BaseModel, ConfigDict, Field


class CriticalType(int, Enum):
    LOCAL_MINIMUM = 0
    SADDLE1 = 1
    SADDLE2 = 2
    LOCAL_MAXIMUM = 3
    DEGENERATE = 4
    REGULAR = 5


class PairFamily(int, Enum):
    """Pair-type families. Distances are only computed within a family."""
    MIN_SADDLE = 0
    SADDLE_SADDLE = 1
    SADDLE_MAX = 2

    @property
    def label(self) -> str:
        return self.name.lower()


ALL_FAMILIES: tuple[PairFamily, ...] = (
    PairFamily.MIN_SADDLE,
    PairFamily.SADDLE_SADDLE,
    PairFamily.SADDLE_MAX,
)

# (birth id, birth type, death id, death type, persistence, pair id,
#  birth value, birth x, birth y, birth z, death value, death x, death y, death z)
DiagramTuple = tuple[
    int, int, int, int, float, int,
    float, float, float, float,
    float, float, float, float,
]


class CriticalPair(BaseModel):
    """
    One (birth, death) pair of critical points.
    Immutable once extracted; persistence = |death_value - birth_value|.
    """
    model_config = ConfigDict(frozen=True)

    birth_id: int
    birth_type: CriticalType
    death_id: int
    death_type: CriticalType
    persistence: float = Field(..., ge=0.0)
    pair_id: int
    birth_value: float
    birth_position: tuple[float, float, float] = (0.0, 0.0, 0.0)
    death_value: float
    death_position: tuple[float, float, float] = (0.0, 0.0, 0.0)

    @property
    def is_diagonal(self) -> bool:
        return self.persistence == 0.0

    @classmethod
    def from_tuple(cls, t: DiagramTuple) -> CriticalPair:
        return cls(
            birth_id=int(t[0]),
            birth_type=CriticalType(int(t[1])),
            death_id=int(t[2]),
            death_type=CriticalType(int(t[3])),
            persistence=abs(float(t[4])),
            pair_id=int(t[5]),
            birth_value=float(t[6]),
            birth_position=(float(t[7]), float(t[8]), float(t[9])),
            death_value=float(t[10]),
            death_position=(float(t[11]), float(t[12]), float(t[13])),
        )

    def to_tuple(self) -> DiagramTuple:
        return (
            self.birth_id, int(self.birth_type),
            self.death_id, int(self.death_type),
            self.persistence, self.pair_id,
            self.birth_value, *self.birth_position,
            self.death_value, *self.death_position,
        )


def make_pair(
    birth_value: float,
    death_value: float,
    birth_type: CriticalType = CriticalType.LOCAL_MINIMUM,
    death_type: CriticalType = CriticalType.SADDLE1,
    pair_id: int = 0,
    birth_position: tuple[float, float, float] = (0.0, 0.0, 0.0),
    death_position: tuple[float, float, float] = (0.0, 0.0, 0.0),
) -> CriticalPair:
    """Build a CriticalPair from scalar values, deriving its persistence."""
    return CriticalPair(
        birth_id=2 * pair_id,
        birth_type=birth_type,
        death_id=2 * pair_id + 1,
        death_type=death_type,
        persistence=abs(death_value - birth_value),
        pair_id=pair_id,
        birth_value=birth_value,
        birth_position=birth_position,
        death_value=death_value,
        death_position=death_position,
    )


RawPair = Union[CriticalPair, DiagramTuple]


def as_pair(raw: RawPair) -> CriticalPair:
    if isinstance(raw, CriticalPair):
        return raw
    return CriticalPair.from_tuple(raw)


# Matching id used for the diagonal on either side
DIAGONAL_ID = -1


class Matching(NamedTuple):
    """(bidder id, good id, matched cost); DIAGONAL_ID marks the diagonal."""
    bidder_id: int
    good_id: int
    cost: float


MatchingTuple = Matching
