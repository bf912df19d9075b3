"""Interpolation runtime API: subgrid selection, tensor-product evaluation, alpha_s.

Loaded grid sets are immutable, so a :class:`GridInterpolator` carries no
per-set state and one instance can serve many threads at once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import math
from typing import Mapping, Sequence, Tuple

import numpy as np

from .axis import AxisScheme
from .backends.factory import build_backend
from .config import InterpolationConfig
from .constants import ALPHAS, AXIS_NAMES, LOG_AXES, Q2, X
from .errors import OutOfDomain
from .gridset import CouplingTable, GridSet, Member
from .interpolation import POLICY_CODES, barycentric_stencil, contract
from .subgrid import SubGrid

_ONE = np.ones(1, dtype=np.float64)
_ONE.setflags(write=False)


def _describe(point: Mapping[str, float]) -> str:
    return ", ".join(f"{k}={point[k]!r}" for k in AXIS_NAMES if k in point)


@dataclass
class GridInterpolator:
    """Evaluates grid sets according to an :class:`InterpolationConfig`."""

    config: InterpolationConfig = field(default_factory=InterpolationConfig)

    def __post_init__(self) -> None:
        self._backend = build_backend(self.config.backend)
        self._policy = POLICY_CODES[self.config.extrapolation]

    @property
    def backend_name(self) -> str:
        return self._backend.name

    def select_subgrid(self, member: Member, point: Mapping[str, float], *, member_index: int = 0) -> Tuple[int, SubGrid]:
        """Subgrid covering ``point``; ties on shared boundaries go to the lower index.

        Outside every subgrid the nearest one is used unless extrapolation is
        disabled, in which case :class:`OutOfDomain` is raised.
        """
        for s, sg in enumerate(member.subgrids):
            if sg.contains_point(point):
                return s, sg
        if self._policy == POLICY_CODES["fail"]:
            ranges = "; ".join(
                f"subgrid {s}: x in [{sg.x.domain.min:g}, {sg.x.domain.max:g}], q2 in [{sg.q2.domain.min:g}, {sg.q2.domain.max:g}]"
                for s, sg in enumerate(member.subgrids)
            )
            raise OutOfDomain(f"point ({_describe(point)}) outside member {member_index} ({ranges})")
        distances = [sg.distance_to_point(point) for sg in member.subgrids]
        s = int(np.argmin(distances))
        return s, member.subgrids[s]

    def _check_point(self, gridset: GridSet, member_index: int, point: Mapping[str, float]) -> Member:
        member = gridset.member(member_index)
        for name in (X, Q2):
            if name not in point:
                raise ValueError(f"point is missing required coordinate {name!r}")
        for name in member.required_axes:
            if name not in point:
                raise ValueError(f"member {member_index} interpolates along {name!r}; point ({_describe(point)}) lacks it")
        for name in LOG_AXES:
            if not point[name] > 0.0:
                raise OutOfDomain(f"{name} must be positive, got {point[name]!r} (member {member_index})")
        return member

    def _stencils(
        self,
        gridset: GridSet,
        sg: SubGrid,
        point: Mapping[str, float],
        where: str,
    ) -> Tuple[Tuple[slice, ...], list]:
        slices = []
        weights = []
        schemes = sg.schemes(gridset.metadata.interpolator_type, self.config.cubic_order)
        for axis, scheme in zip(sg.axes, schemes):
            if scheme is AxisScheme.DEGENERATE:
                start, w = 0, _ONE
            else:
                value = float(point[axis.name])
                t = math.log(value) if scheme.is_log else value
                if scheme.is_global:
                    start, w = barycentric_stencil(axis.coords(True), t, self._policy)
                else:
                    start, w = self._backend.stencil(axis.coords(scheme.is_log), t, scheme.order, self._policy)
                if start < 0:
                    dom = axis.domain
                    raise OutOfDomain(f"{axis.name}={value!r} outside [{dom.min!r}, {dom.max!r}] in {where}")
            slices.append(slice(start, start + len(w)))
            weights.append(w)
        return tuple(slices), weights

    def evaluate(self, gridset: GridSet, member_index: int, parton_id: int, point: Mapping[str, float]) -> float:
        """``x f(x, Q2, ...)`` for one parton at ``point``."""
        member = self._check_point(gridset, member_index, point)
        s, sg = self.select_subgrid(member, point, member_index=member_index)
        slices, weights = self._stencils(gridset, sg, point, f"member {member_index} subgrid {s}")
        block = sg.values[(sg.pid_index(parton_id),) + slices]
        return float(contract(block, weights))

    def evaluate_pids(
        self,
        gridset: GridSet,
        member_index: int,
        parton_ids: Sequence[int],
        point: Mapping[str, float],
    ) -> np.ndarray:
        """Like :meth:`evaluate` for several partons sharing one stencil computation."""
        member = self._check_point(gridset, member_index, point)
        s, sg = self.select_subgrid(member, point, member_index=member_index)
        slices, weights = self._stencils(gridset, sg, point, f"member {member_index} subgrid {s}")
        rows = [sg.pid_index(pid) for pid in parton_ids]
        block = sg.values[(slice(None),) + slices][rows]
        return np.asarray(contract(block, weights), dtype=np.float64)

    def alphas(self, gridset: GridSet, member_index: int, q2: float, coupling_value: float | None = None) -> float:
        """alpha_s(Q2), interpolated in log Q2 (and linearly in the coupling axis if present)."""
        table = gridset.coupling_for(member_index)
        return self.alphas_from_table(table, q2, coupling_value, where=f"member {member_index}")

    def alphas_from_table(
        self,
        table: CouplingTable,
        q2: float,
        coupling_value: float | None = None,
        *,
        where: str = "coupling table",
    ) -> float:
        if not q2 > 0.0:
            raise OutOfDomain(f"q2 must be positive, got {q2!r} ({where})")
        if not table.is_1d and coupling_value is None:
            raise ValueError(f"coupling table in {where} has a coupling-value axis; coupling_value is required")

        seg = None
        for candidate in table.segments:
            if candidate.q2.domain.contains(q2):
                seg = candidate
                break
        if seg is None:
            lo, hi = table.q2_range()
            if self._policy == POLICY_CODES["fail"]:
                raise OutOfDomain(f"q2={q2!r} outside [{lo!r}, {hi!r}] in {where}")
            logq = math.log(q2)
            gaps = [
                max(math.log(c.q2.domain.min) - logq, logq - math.log(c.q2.domain.max), 0.0)
                for c in table.segments
            ]
            seg = table.segments[int(np.argmin(gaps))]

        order = 3 if self.config.cubic_order == 3 else 1
        q_start, q_w = self._backend.stencil(seg.q2.coords(True), math.log(q2), order, self._policy)
        if q_start < 0:
            raise OutOfDomain(f"q2={q2!r} outside [{seg.q2.domain.min!r}, {seg.q2.domain.max!r}] in {where}")
        if table.is_1d:
            a_start, a_w = 0, _ONE
        else:
            a_start, a_w = self._backend.stencil(table.coupling.knots, float(coupling_value), 1, self._policy)
            if a_start < 0:
                dom = table.coupling.domain
                raise OutOfDomain(f"{ALPHAS}={coupling_value!r} outside [{dom.min!r}, {dom.max!r}] in {where}")
        block = seg.values[a_start : a_start + len(a_w), q_start : q_start + len(q_w)]
        return float(contract(block, [a_w, q_w]))


_DEFAULT = GridInterpolator(InterpolationConfig(backend="numpy"))


def default_interpolator() -> GridInterpolator:
    return _DEFAULT


def evaluate(
    gridset: GridSet,
    member_index: int,
    parton_id: int,
    point: Mapping[str, float],
    interpolator: GridInterpolator | None = None,
) -> float:
    return (interpolator or _DEFAULT).evaluate(gridset, member_index, parton_id, point)


def alphas(
    gridset: GridSet,
    member_index: int,
    q2: float,
    coupling_value: float | None = None,
    interpolator: GridInterpolator | None = None,
) -> float:
    return (interpolator or _DEFAULT).alphas(gridset, member_index, q2, coupling_value)
