"""Immutable knot axes and their per-axis interpolation scheme."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum

import numpy as np

from .constants import LOG_AXES
from .metadata import InterpolatorType


@dataclass(frozen=True)
class ParamRange:
    """Closed interval ``[min, max]`` covered by one axis."""

    min: float
    max: float

    def contains(self, value: float) -> bool:
        return self.min <= value <= self.max


class AxisScheme(Enum):
    """How a single axis takes part in the tensor-product interpolation."""

    CUBIC_LOG = "cubic_log"
    LINEAR_LOG = "linear_log"
    CHEBYSHEV_LOG = "chebyshev_log"
    CUBIC = "cubic"
    LINEAR = "linear"
    DEGENERATE = "degenerate"

    @property
    def is_log(self) -> bool:
        return self in (AxisScheme.CUBIC_LOG, AxisScheme.LINEAR_LOG, AxisScheme.CHEBYSHEV_LOG)

    @property
    def is_global(self) -> bool:
        """Whether every knot of the axis enters the weights."""
        return self is AxisScheme.CHEBYSHEV_LOG

    @property
    def order(self) -> int:
        if self in (AxisScheme.CUBIC_LOG, AxisScheme.CUBIC):
            return 3
        if self is AxisScheme.DEGENERATE:
            return 0
        return 1


@dataclass(frozen=True)
class Axis:
    """Strictly increasing knot sequence for one kinematic dimension.

    A length-1 axis marks a dimension that is absent for the owning subgrid;
    it is never interpolated.
    """

    name: str
    knots: np.ndarray
    _log_knots: np.ndarray | None = field(default=None, init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        knots = np.array(self.knots, dtype=np.float64, copy=True).reshape(-1)
        if knots.size < 1:
            raise ValueError(f"axis {self.name!r} must contain at least one knot")
        if not np.all(np.isfinite(knots)):
            raise ValueError(f"axis {self.name!r} knots must be finite")
        if knots.size > 1 and not np.all(np.diff(knots) > 0.0):
            raise ValueError(f"axis {self.name!r} knots must be strictly increasing")
        knots.setflags(write=False)
        object.__setattr__(self, "knots", knots)
        if self.name in LOG_AXES and knots[0] > 0.0:
            log_knots = np.log(knots)
            log_knots.setflags(write=False)
            object.__setattr__(self, "_log_knots", log_knots)

    def __len__(self) -> int:
        return int(self.knots.size)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Axis):
            return NotImplemented
        return self.name == other.name and np.array_equal(self.knots, other.knots)

    def __hash__(self) -> int:
        return hash((self.name, self.knots.tobytes()))

    @property
    def is_degenerate(self) -> bool:
        return self.knots.size == 1

    @property
    def domain(self) -> ParamRange:
        return ParamRange(float(self.knots[0]), float(self.knots[-1]))

    def coords(self, log: bool) -> np.ndarray:
        """Knots in the coordinate the interpolation runs in."""
        if not log:
            return self.knots
        if self._log_knots is None:
            raise ValueError(f"axis {self.name!r} has non-positive knots and cannot be log-interpolated")
        return self._log_knots


def scheme_for(axis: Axis, interpolator_type: InterpolatorType, cubic_order: int = 3) -> AxisScheme:
    """Pick the interpolation variant of ``axis`` for a given interpolator type."""
    if axis.is_degenerate:
        return AxisScheme.DEGENERATE
    if axis.name not in LOG_AXES:
        if interpolator_type is InterpolatorType.LOG_FOUR_CUBIC and cubic_order == 3:
            return AxisScheme.CUBIC
        return AxisScheme.LINEAR
    if interpolator_type in (InterpolatorType.BILINEAR, InterpolatorType.INTERP_ND_LINEAR):
        return AxisScheme.LINEAR
    if interpolator_type is InterpolatorType.LOG_BILINEAR or cubic_order == 1:
        return AxisScheme.LINEAR_LOG
    if interpolator_type is InterpolatorType.LOG_CHEBYSHEV:
        return AxisScheme.CHEBYSHEV_LOG
    return AxisScheme.CUBIC_LOG
