"""Combination of grid sets along the nucleon-number or coupling-value axis."""

from __future__ import annotations

from dataclasses import replace
import logging
from typing import Sequence

import numpy as np

from .axis import Axis
from .config import InterpolationConfig
from .constants import ALPHAS, AXIS_INDEX, AXIS_NAMES, ION_PID_THRESHOLD, NUCLEONS, PROTON_NUCLEONS
from .errors import DuplicateAxisValue, IncompatibleDomain, MemberCountMismatch, MissingCouplingTable
from .gridset import CouplingTable, GridSet, Member
from .interpolation_api import GridInterpolator
from .subgrid import SubGrid

logger = logging.getLogger(__name__)

_AXIS_ALIASES = {
    NUCLEONS: NUCLEONS,
    "nucleon_number": NUCLEONS,
    ALPHAS: ALPHAS,
    "coupling_value": ALPHAS,
}


def _axis_kind(axis_kind: str) -> str:
    try:
        return _AXIS_ALIASES[axis_kind]
    except KeyError:
        raise ValueError(f"axis_kind must be one of: {', '.join(_AXIS_ALIASES)}") from None


def nucleon_number(hadron_pid: int) -> float:
    """Mass number A from a PDG ion code ``10LZZZAAAI``; plain hadrons count as 1."""
    pid = abs(int(hadron_pid))
    if pid >= ION_PID_THRESHOLD:
        return float((pid // 10) % 1000)
    return PROTON_NUCLEONS


def set_coupling_table(gridset: GridSet, member: int = 0) -> CouplingTable | None:
    """Stored coupling table of ``member``, else the one implied by AlphaS_Qs/AlphaS_Vals."""
    try:
        return gridset.coupling_for(member)
    except MissingCouplingTable:
        return CouplingTable.from_metadata(gridset.metadata)


def coupling_value(gridset: GridSet) -> float:
    """alpha_s(MZ^2) of the central member, used to place a set on the coupling axis."""
    table = set_coupling_table(gridset)
    if table is None:
        raise MissingCouplingTable(
            f"grid set {gridset.metadata.set_desc!r} has no coupling table; pass axis_values explicitly"
        )
    interp = GridInterpolator(InterpolationConfig(extrapolation="extrapolate", backend="numpy"))
    m_z = gridset.metadata.m_z
    return interp.alphas_from_table(table.row(0) if not table.is_1d else table, m_z * m_z, where="MZ^2 lookup")


def _check_subgrids(subgrids: Sequence[SubGrid], kind: str, where: str) -> None:
    first = subgrids[0]
    for i, sg in enumerate(subgrids):
        if not sg.axis(kind).is_degenerate:
            raise IncompatibleDomain(f"{where} of set {i}: {kind} axis already has {len(sg.axis(kind))} knots")
        if sg.pids != first.pids:
            raise IncompatibleDomain(f"{where}: parton ids of set {i} {list(sg.pids)} differ from set 0 {list(first.pids)}")
        for name in AXIS_NAMES:
            if name == kind:
                continue
            if sg.axis(name) != first.axis(name):
                raise IncompatibleDomain(
                    f"{where}: {name} knots of set {i} ({len(sg.axis(name))} knots) differ from set 0 "
                    f"({len(first.axis(name))} knots)"
                )


def _stack_subgrids(subgrids: Sequence[SubGrid], kind: str, values: Sequence[float]) -> SubGrid:
    first = subgrids[0]
    tensor = np.concatenate([sg.values for sg in subgrids], axis=1 + AXIS_INDEX[kind])
    axes = {name: first.axis(name) for name in AXIS_NAMES}
    axes[kind] = Axis(kind, values)
    return SubGrid(pids=first.pids, values=tensor, **axes)


def _stack_couplings(tables: Sequence[CouplingTable | None], values: Sequence[float], where: str) -> CouplingTable | None:
    if all(t is None for t in tables):
        return None
    if any(t is None for t in tables):
        raise IncompatibleDomain(f"{where}: only some of the sets carry a coupling table")
    try:
        return CouplingTable.stack(tables, values)
    except ValueError as exc:
        raise IncompatibleDomain(f"{where}: {exc}") from exc


def combine(gridsets: Sequence[GridSet], axis_kind: str, axis_values: Sequence[float] | None = None) -> GridSet:
    """Merge sets that differ only along ``axis_kind`` into one set with that axis.

    Inputs are ordered by their axis values. Nothing is returned unless every
    member and subgrid of every input is compatible.
    """
    kind = _axis_kind(axis_kind)
    gridsets = list(gridsets)
    if not gridsets:
        raise ValueError("combine needs at least one grid set")

    if axis_values is None:
        if kind == NUCLEONS:
            axis_values = [nucleon_number(gs.metadata.hadron_pid) for gs in gridsets]
        else:
            axis_values = [coupling_value(gs) for gs in gridsets]
    values = [float(v) for v in axis_values]
    if len(values) != len(gridsets):
        raise ValueError(f"got {len(values)} axis values for {len(gridsets)} grid sets")

    seen: dict[float, int] = {}
    for i, v in enumerate(values):
        if v in seen:
            raise DuplicateAxisValue(f"{kind} value {v!r} appears for set {seen[v]} and set {i}")
        seen[v] = i

    counts = [len(gs.members) for gs in gridsets]
    if len(set(counts)) != 1:
        raise MemberCountMismatch(f"member counts differ across sets: {counts}")

    order = sorted(range(len(values)), key=values.__getitem__)
    ordered = [gridsets[i] for i in order]
    knots = [values[i] for i in order]

    members = []
    for m in range(counts[0]):
        n_sub = [len(gs.members[m].subgrids) for gs in ordered]
        if len(set(n_sub)) != 1:
            raise IncompatibleDomain(f"member {m}: subgrid counts differ across sets: {n_sub}")
        subgrids = []
        for s in range(n_sub[0]):
            where = f"member {m} subgrid {s}"
            column = [gs.members[m].subgrids[s] for gs in ordered]
            _check_subgrids(column, kind, where)
            subgrids.append(_stack_subgrids(column, kind, knots))
        member_tables = [gs.members[m].coupling for gs in ordered]
        if kind == ALPHAS:
            coupling = _stack_couplings(member_tables, knots, f"member {m}")
        else:
            coupling = member_tables[0]
        members.append(Member(tuple(subgrids), coupling))

    base = ordered[0]
    if kind == ALPHAS:
        set_tables = [gs.coupling or CouplingTable.from_metadata(gs.metadata) for gs in ordered]
        set_coupling = _stack_couplings(set_tables, knots, "set-level coupling")
    else:
        set_coupling = base.coupling
    metadata = replace(base.metadata, num_members=len(members))

    logger.info("combined %d sets along %s at %s", len(ordered), kind, knots)
    return GridSet(tuple(members), metadata, set_coupling)


def combine_nucleon(gridsets: Sequence[GridSet], axis_values: Sequence[float] | None = None) -> GridSet:
    return combine(gridsets, NUCLEONS, axis_values)


def combine_coupling(gridsets: Sequence[GridSet], axis_values: Sequence[float] | None = None) -> GridSet:
    return combine(gridsets, ALPHAS, axis_values)


def project(gridset: GridSet, axis_kind: str, value: float) -> GridSet:
    """The single-valued set at knot ``value`` of a combined axis."""
    kind = _axis_kind(axis_kind)
    value = float(value)

    def knot_index(axis: Axis, where: str) -> int:
        hits = np.flatnonzero(axis.knots == value)
        if hits.size == 0:
            raise ValueError(f"{where}: {kind} value {value!r} is not a knot of {list(axis.knots)}")
        return int(hits[0])

    members = []
    for m, member in enumerate(gridset.members):
        subgrids = []
        for s, sg in enumerate(member.subgrids):
            k = knot_index(sg.axis(kind), f"member {m} subgrid {s}")
            sel = [slice(None)] * sg.values.ndim
            sel[1 + AXIS_INDEX[kind]] = slice(k, k + 1)
            axes = {name: sg.axis(name) for name in AXIS_NAMES}
            axes[kind] = Axis(kind, (value,))
            subgrids.append(SubGrid(pids=sg.pids, values=sg.values[tuple(sel)], **axes))
        coupling = member.coupling
        if kind == ALPHAS and coupling is not None and not coupling.is_1d:
            coupling = coupling.row(knot_index(coupling.coupling, f"member {m} coupling table"))
        members.append(Member(tuple(subgrids), coupling))

    set_coupling = gridset.coupling
    if kind == ALPHAS and set_coupling is not None and not set_coupling.is_1d:
        set_coupling = set_coupling.row(knot_index(set_coupling.coupling, "set-level coupling table"))
    return GridSet(tuple(members), gridset.metadata, set_coupling)
