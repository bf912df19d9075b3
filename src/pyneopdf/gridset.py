"""Members, grid sets and the strong-coupling table."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Sequence

import numpy as np

from .axis import Axis
from .constants import ALPHAS, Q2
from .errors import MissingCouplingTable
from .metadata import MetaData
from .subgrid import SubGrid


@dataclass(frozen=True, eq=False)
class CouplingSegment:
    """One Q2 patch of the coupling table; ``values`` has shape ``(n_coupling, n_q2)``."""

    q2: Axis
    values: np.ndarray

    def __post_init__(self) -> None:
        values = np.array(self.values, dtype=np.float64, copy=True)
        if values.ndim == 1:
            values = values[None, :]
        if values.ndim != 2 or values.shape[1] != len(self.q2):
            raise ValueError(f"coupling segment values have shape {values.shape}, expected (n, {len(self.q2)})")
        values.setflags(write=False)
        object.__setattr__(self, "values", values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, CouplingSegment):
            return NotImplemented
        return self.q2 == other.q2 and np.array_equal(self.values, other.values)


@dataclass(frozen=True)
class CouplingTable:
    """alpha_s as a function of Q2, optionally tabulated against a coupling-value axis.

    Segments tile the Q2 range and meet at shared threshold knots, in the same
    way subgrids do.
    """

    segments: tuple[CouplingSegment, ...]
    coupling: Axis = field(default_factory=lambda: Axis(ALPHAS, (0.0,)))

    def __post_init__(self) -> None:
        segments = tuple(self.segments)
        if not segments:
            raise ValueError("coupling table needs at least one segment")
        for i, seg in enumerate(segments):
            if seg.values.shape[0] != len(self.coupling):
                raise ValueError(
                    f"coupling segment {i} has {seg.values.shape[0]} coupling rows, "
                    f"expected {len(self.coupling)}"
                )
        for i in range(1, len(segments)):
            if segments[i].q2.knots[0] < segments[i - 1].q2.knots[-1]:
                raise ValueError(f"coupling segments {i - 1} and {i} overlap in Q2")
        object.__setattr__(self, "segments", segments)

    @classmethod
    def from_knots(cls, q_values: Sequence[float], alphas_values: Sequence[float]) -> "CouplingTable":
        """Build from LHAPDF-style ``AlphaS_Qs`` (not squared) and ``AlphaS_Vals``.

        Repeated Q knots mark flavour thresholds and start a new segment.
        """
        q2 = np.asarray(q_values, dtype=np.float64) ** 2
        vals = np.asarray(alphas_values, dtype=np.float64)
        if q2.shape != vals.shape or q2.size == 0:
            raise ValueError(f"AlphaS_Qs ({q2.size}) and AlphaS_Vals ({vals.size}) must be non-empty and equal length")
        bounds = [0] + [i for i in range(1, q2.size) if q2[i] == q2[i - 1]] + [q2.size]
        segments = [
            CouplingSegment(Axis(Q2, q2[lo:hi]), vals[lo:hi])
            for lo, hi in zip(bounds[:-1], bounds[1:])
            if hi > lo
        ]
        return cls(tuple(segments))

    @classmethod
    def from_metadata(cls, meta: MetaData) -> "CouplingTable | None":
        if not meta.alphas_q_values:
            return None
        return cls.from_knots(meta.alphas_q_values, meta.alphas_vals)

    @classmethod
    def stack(cls, tables: Sequence["CouplingTable"], coupling_values: Sequence[float]) -> "CouplingTable":
        """Combine 1-D tables into one table with a coupling-value axis."""
        if len(tables) != len(coupling_values):
            raise ValueError("one coupling value is required per table")
        first = tables[0]
        for t, table in enumerate(tables):
            if not table.is_1d:
                raise ValueError(f"coupling table {t} already has a coupling-value axis")
            if len(table.segments) != len(first.segments) or any(
                a.q2 != b.q2 for a, b in zip(table.segments, first.segments)
            ):
                raise ValueError(f"coupling table {t} has different Q2 knots than table 0")
        segments = []
        for s in range(len(first.segments)):
            rows = np.vstack([table.segments[s].values for table in tables])
            segments.append(CouplingSegment(first.segments[s].q2, rows))
        return cls(tuple(segments), Axis(ALPHAS, coupling_values))

    @property
    def is_1d(self) -> bool:
        return self.coupling.is_degenerate

    def q2_range(self) -> tuple[float, float]:
        return float(self.segments[0].q2.knots[0]), float(self.segments[-1].q2.knots[-1])

    def row(self, index: int) -> "CouplingTable":
        """1-D table at coupling knot ``index``."""
        segments = tuple(CouplingSegment(seg.q2, seg.values[index]) for seg in self.segments)
        return CouplingTable(segments)


@dataclass(frozen=True)
class Member:
    """One realization of the set: subgrids ordered by their lower Q2 bound."""

    subgrids: tuple[SubGrid, ...]
    coupling: CouplingTable | None = None
    _required: frozenset = field(default=frozenset(), init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        subgrids = tuple(self.subgrids)
        if not subgrids:
            raise ValueError("member needs at least one subgrid")
        lows = [float(sg.q2.knots[0]) for sg in subgrids]
        if any(b < a for a, b in zip(lows[:-1], lows[1:])):
            raise ValueError(f"subgrids must be ordered by increasing lower Q2 bound, got {lows}")
        object.__setattr__(self, "subgrids", subgrids)
        object.__setattr__(self, "_required", frozenset(a.name for sg in subgrids for a in sg.active_axes()))

    def __len__(self) -> int:
        return len(self.subgrids)

    @property
    def required_axes(self) -> frozenset:
        """Names of the coordinates some subgrid interpolates along."""
        return self._required

    def subgrid(self, index: int) -> SubGrid:
        if not (0 <= index < len(self.subgrids)):
            raise IndexError(f"subgrid index {index} out of range (member has {len(self.subgrids)})")
        return self.subgrids[index]


@dataclass(frozen=True)
class GridSet:
    """Ordered members (index 0 is the central value) plus set metadata."""

    members: tuple[Member, ...]
    metadata: MetaData = field(default_factory=MetaData)
    coupling: CouplingTable | None = None

    def __post_init__(self) -> None:
        members = tuple(self.members)
        if not members:
            raise ValueError("grid set needs at least one member")
        object.__setattr__(self, "members", members)

    def __len__(self) -> int:
        return len(self.members)

    def member(self, index: int) -> Member:
        if not (0 <= index < len(self.members)):
            raise IndexError(f"member index {index} out of range (set has {len(self.members)})")
        return self.members[index]

    def coupling_for(self, member: int) -> CouplingTable:
        """Coupling table of ``member``, falling back to the set-level table."""
        table = self.member(member).coupling or self.coupling
        if table is None:
            raise MissingCouplingTable(f"grid set {self.metadata.set_desc!r} has no coupling table (member {member})")
        return table
