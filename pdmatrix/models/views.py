# Copyright (c) 2026 Harsh Dwivedi
# Licensed under the Harsh Non-Commercial Attribution License (HNCAL) v1.0
# Commercial use requires written permission. See LICENSE for details.

"""
pdmatrix — Bidder / Good Diagram Views
The two dual point-set roles of the transport formulation.

Both views are numpy-backed and immutable: every array is copied on
construction and marked read-only. Enrichment, price updates and
centroid moves always build a new view.

Per point:
  births, deaths  — scalar values of the pair (persistence plane)
  coords          — (n, dim) critical coordinates, lambda-interpolated
  pair_ids        — source pair id, -1 for synthetic (centroid) points
Bidders also carry:
  prices          — price paid for the current tentative match
  diagonal_prices — price of the bidder's own diagonal projection
  assignments     — matched good index, -1 for the diagonal / none
Goods carry:
  prices          — price offered
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from enum import Enum
from typing import Any, ClassVar, Optional, Union

import numpy as np

COORD_DIM = 3


class Role(str, Enum):
    BIDDER = "bidder"
    GOOD = "good"


def _frozen_array(values: Any, dtype: Any, shape: Optional[tuple[int, ...]] = None) -> np.ndarray:
    arr = np.array(values, dtype=dtype, copy=True)
    if shape is not None:
        arr = arr.reshape(shape)
    arr.flags.writeable = False
    return arr


@dataclass(frozen=True, eq=False)
class _PointView:
    births: np.ndarray
    deaths: np.ndarray
    coords: np.ndarray
    pair_ids: np.ndarray

    # Names of the per-point float arrays specific to the subclass
    _extra_float_fields: ClassVar[tuple[str, ...]] = ()
    _extra_int_fields: ClassVar[tuple[str, ...]] = ()

    def __post_init__(self) -> None:
        n = int(np.asarray(self.births).size)
        dim = np.asarray(self.coords).shape[-1] if np.asarray(self.coords).ndim == 2 else COORD_DIM
        object.__setattr__(self, "births", _frozen_array(self.births, np.float64, (n,)))
        object.__setattr__(self, "deaths", _frozen_array(self.deaths, np.float64, (n,)))
        object.__setattr__(self, "coords", _frozen_array(self.coords, np.float64, (n, dim)))
        object.__setattr__(self, "pair_ids", _frozen_array(self.pair_ids, np.int64, (n,)))
        for name in self._extra_float_fields:
            object.__setattr__(self, name, _frozen_array(getattr(self, name), np.float64, (n,)))
        for name in self._extra_int_fields:
            object.__setattr__(self, name, _frozen_array(getattr(self, name), np.int64, (n,)))

    def __len__(self) -> int:
        return int(self.births.size)

    @property
    def dim(self) -> int:
        return int(self.coords.shape[1])

    @property
    def persistence(self) -> np.ndarray:
        return np.abs(self.deaths - self.births)

    def take(self, indices: Any):
        """Return a new view restricted to `indices` (order preserved)."""
        idx = np.asarray(indices, dtype=np.intp)
        values = {f.name: getattr(self, f.name)[idx] for f in fields(self)}
        return type(self)(**values)

    def concat(self, other):
        """Return a new view with `other`'s points appended."""
        if type(other) is not type(self):
            raise TypeError(f"Cannot append {type(other).__name__} to {type(self).__name__}")
        values = {
            f.name: np.concatenate([getattr(self, f.name), getattr(other, f.name)])
            for f in fields(self)
        }
        return type(self)(**values)


@dataclass(frozen=True, eq=False)
class BidderDiagram(_PointView):
    prices: np.ndarray
    diagonal_prices: np.ndarray
    assignments: np.ndarray

    role: ClassVar[Role] = Role.BIDDER
    _extra_float_fields: ClassVar[tuple[str, ...]] = ("prices", "diagonal_prices")
    _extra_int_fields: ClassVar[tuple[str, ...]] = ("assignments",)

    @classmethod
    def from_points(
        cls,
        births: Any,
        deaths: Any,
        coords: Any = None,
        pair_ids: Any = None,
        diagonal_prices: Any = None,
    ) -> BidderDiagram:
        n = int(np.asarray(births).size)
        return cls(
            births=births,
            deaths=deaths,
            coords=np.zeros((n, COORD_DIM)) if coords is None else coords,
            pair_ids=np.arange(n) if pair_ids is None else pair_ids,
            prices=np.zeros(n),
            diagonal_prices=np.zeros(n) if diagonal_prices is None else diagonal_prices,
            assignments=np.full(n, -1),
        )

    @classmethod
    def empty(cls, dim: int = COORD_DIM) -> BidderDiagram:
        return cls.from_points(np.zeros(0), np.zeros(0), np.zeros((0, dim)))

    def with_prices(
        self,
        prices: Any = None,
        diagonal_prices: Any = None,
        assignments: Any = None,
    ) -> BidderDiagram:
        """Return a copy carrying the given auction state (None keeps the current one)."""
        return replace(
            self,
            prices=self.prices if prices is None else prices,
            diagonal_prices=self.diagonal_prices if diagonal_prices is None else diagonal_prices,
            assignments=self.assignments if assignments is None else assignments,
        )


@dataclass(frozen=True, eq=False)
class GoodDiagram(_PointView):
    prices: np.ndarray

    role: ClassVar[Role] = Role.GOOD
    _extra_float_fields: ClassVar[tuple[str, ...]] = ("prices",)

    @classmethod
    def from_points(
        cls,
        births: Any,
        deaths: Any,
        coords: Any = None,
        pair_ids: Any = None,
        prices: Any = None,
    ) -> GoodDiagram:
        n = int(np.asarray(births).size)
        return cls(
            births=births,
            deaths=deaths,
            coords=np.zeros((n, COORD_DIM)) if coords is None else coords,
            pair_ids=np.full(n, -1) if pair_ids is None else pair_ids,
            prices=np.zeros(n) if prices is None else prices,
        )

    @classmethod
    def empty(cls, dim: int = COORD_DIM) -> GoodDiagram:
        return cls.from_points(np.zeros(0), np.zeros(0), np.zeros((0, dim)))

    def with_prices(self, prices: Any) -> GoodDiagram:
        return replace(self, prices=prices)


# Tagged variant consumed by the distance evaluator
DiagramView = Union[BidderDiagram, GoodDiagram]
