"""Rectangular kinematic patches of tabulated values.

A subgrid owns one :class:`~pyneopdf.axis.Axis` per dimension in
``(nucleons, alphas, kt, x, q2)`` order and a dense value tensor laid out as
``(pid, nucleons, alphas, kt, x, q2)``. Dimensions a subgrid does not vary
along are stored as length-1 axes.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Mapping, Sequence

import numpy as np

from .axis import Axis, AxisScheme, ParamRange, scheme_for
from .constants import ALPHAS, AXIS_NAMES, KT, LOG_AXES, NUCLEONS, PID_GLUON, PID_GLUON_ALT, Q2, X
from .errors import UnknownParton
from .metadata import InterpolatorType


@dataclass(frozen=True, eq=False)
class SubGrid:
    pids: tuple[int, ...]
    nucleons: Axis
    alphas: Axis
    kt: Axis
    x: Axis
    q2: Axis
    values: np.ndarray
    _pid_lookup: dict[int, int] = field(default_factory=dict, init=False, repr=False)
    _active: tuple[Axis, ...] = field(default=(), init=False, repr=False)
    _schemes: dict = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        pids = tuple(int(p) for p in self.pids)
        if not pids:
            raise ValueError("subgrid needs at least one parton id")
        if len(set(pids)) != len(pids):
            raise ValueError(f"duplicate parton ids in subgrid: {pids}")
        object.__setattr__(self, "pids", pids)
        for name in AXIS_NAMES:
            axis = getattr(self, name)
            if axis.name != name:
                raise ValueError(f"axis stored as {name!r} is named {axis.name!r}")

        expected = self.shape
        values = np.asarray(self.values, dtype=np.float64)
        if values.size != int(np.prod(expected)):
            raise ValueError(f"value tensor has shape {values.shape} ({values.size} entries), expected {expected}")
        values = np.array(values.reshape(expected), dtype=np.float64, order="C", copy=True)
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

        lookup = {pid: i for i, pid in enumerate(pids)}
        if PID_GLUON in lookup and PID_GLUON_ALT not in lookup:
            lookup[PID_GLUON_ALT] = lookup[PID_GLUON]
        elif PID_GLUON_ALT in lookup and PID_GLUON not in lookup:
            lookup[PID_GLUON] = lookup[PID_GLUON_ALT]
        object.__setattr__(self, "_pid_lookup", lookup)
        object.__setattr__(self, "_active", tuple(a for a in self.axes if not a.is_degenerate))

    @classmethod
    def build(
        cls,
        pids: Sequence[int],
        x: Sequence[float],
        q2: Sequence[float],
        values: np.ndarray,
        *,
        nucleons: Sequence[float] = (1.0,),
        alphas: Sequence[float] = (0.0,),
        kt: Sequence[float] = (0.0,),
    ) -> "SubGrid":
        """Construct from raw knot sequences; ``values`` is reshaped to the full layout."""
        return cls(
            pids=tuple(pids),
            nucleons=Axis(NUCLEONS, nucleons),
            alphas=Axis(ALPHAS, alphas),
            kt=Axis(KT, kt),
            x=Axis(X, x),
            q2=Axis(Q2, q2),
            values=values,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, SubGrid):
            return NotImplemented
        return (
            self.pids == other.pids
            and self.axes == other.axes
            and np.array_equal(self.values, other.values)
        )

    @property
    def axes(self) -> tuple[Axis, ...]:
        return (self.nucleons, self.alphas, self.kt, self.x, self.q2)

    @property
    def shape(self) -> tuple[int, ...]:
        return (len(self.pids),) + tuple(len(a) for a in self.axes)

    def axis(self, name: str) -> Axis:
        if name not in AXIS_NAMES:
            raise ValueError(f"unknown axis {name!r}; expected one of {AXIS_NAMES}")
        return getattr(self, name)

    def active_axes(self) -> tuple[Axis, ...]:
        """Axes taking part in interpolation.

        Length-1 axes are fixed values and match any requested coordinate,
        x and Q2 included.
        """
        return self._active

    def schemes(self, interpolator_type: InterpolatorType, cubic_order: int = 3) -> tuple[AxisScheme, ...]:
        """Per-axis interpolation schemes, computed once per (type, order)."""
        key = (interpolator_type, cubic_order)
        cached = self._schemes.get(key)
        if cached is None:
            cached = tuple(scheme_for(a, interpolator_type, cubic_order) for a in self.axes)
            self._schemes[key] = cached
        return cached

    def ranges(self) -> dict[str, ParamRange]:
        return {a.name: a.domain for a in self.axes}

    def contains_point(self, point: Mapping[str, float]) -> bool:
        """Whether every active coordinate of ``point`` lies inside this patch (inclusive)."""
        for axis in self.active_axes():
            value = point.get(axis.name)
            if value is None or not axis.domain.contains(value):
                return False
        return True

    def distance_to_point(self, point: Mapping[str, float]) -> float:
        """Squared distance from ``point`` to the bounding box, log-scaled along x and Q2."""
        total = 0.0
        for axis in self.active_axes():
            value = point.get(axis.name)
            if value is None:
                continue
            lo, hi = axis.domain.min, axis.domain.max
            if axis.name in LOG_AXES and value > 0.0 and lo > 0.0:
                value, lo, hi = np.log(value), np.log(lo), np.log(hi)
            if value < lo:
                total += (lo - value) ** 2
            elif value > hi:
                total += (value - hi) ** 2
        return float(total)

    def pid_index(self, pid: int) -> int:
        try:
            return self._pid_lookup[int(pid)]
        except KeyError:
            raise UnknownParton(f"parton id {pid} not tabulated; available ids: {list(self.pids)}") from None

    def pid_values(self, pid: int) -> np.ndarray:
        """Value block ``(nucleons, alphas, kt, x, q2)`` for one parton."""
        return self.values[self.pid_index(pid)]

    def slice2d(self, pid: int, nucleon_index: int = 0, alphas_index: int = 0, kt_index: int = 0) -> np.ndarray:
        """The ``(x, q2)`` table at fixed nucleon, coupling and kT knots."""
        for name, index in ((NUCLEONS, nucleon_index), (ALPHAS, alphas_index), (KT, kt_index)):
            n = len(self.axis(name))
            if not (0 <= index < n):
                raise IndexError(f"{name} index {index} out of range for axis of length {n}")
        return self.values[self.pid_index(pid), nucleon_index, alphas_index, kt_index]
