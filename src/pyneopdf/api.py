"""Flat entry points used by the command line and by embedding code."""

from __future__ import annotations

from dataclasses import dataclass
import os
from typing import BinaryIO, Sequence

import numpy as np

from . import codec
from .combine import combine_coupling as _combine_coupling, combine_nucleon as _combine_nucleon
from .config import CodecConfig
from .constants import AXIS_NAMES, KT, Q2, X
from .gridset import GridSet
from .interpolation_api import GridInterpolator, default_interpolator
from .metadata import MetaData
from .subgrid import SubGrid


@dataclass(frozen=True)
class AxisDomain:
    min: float
    max: float
    size: int


def load(source: codec.Source, config: CodecConfig | None = None) -> GridSet:
    return codec.load(source, config)


def save(gridset: GridSet, sink: str | os.PathLike | BinaryIO, config: CodecConfig | None = None) -> None:
    codec.save(gridset, sink, config)


def metadata(gridset: GridSet) -> dict[str, str]:
    return gridset.metadata.to_strings()


def update_metadata(source: codec.Source, key: str, value) -> bytes:
    """Encoded set with one metadata key replaced; use ``update_metadata_file`` for files in place."""
    return codec.update_metadata(source, key, value)


update_metadata_file = codec.update_metadata_file


def num_subgrids(gridset: GridSet, member: int = 0) -> int:
    return len(gridset.member(member))


def subgrid_info(gridset: GridSet, member: int, subgrid: int) -> dict[str, AxisDomain]:
    return subgrid_domains(gridset.member(member).subgrid(subgrid))


def subgrid_domains(sg: SubGrid) -> dict[str, AxisDomain]:
    return {
        name: AxisDomain(sg.axis(name).domain.min, sg.axis(name).domain.max, len(sg.axis(name)))
        for name in AXIS_NAMES
    }


def subgrid_values(
    gridset: GridSet,
    member: int,
    subgrid: int,
    parton_id: int,
    nucleon_index: int = 0,
    coupling_index: int = 0,
    kt_index: int = 0,
) -> np.ndarray:
    """Stored ``(x, q2)`` table; rows follow x knots, columns Q2 knots."""
    sg = gridset.member(member).subgrid(subgrid)
    return sg.slice2d(parton_id, nucleon_index, coupling_index, kt_index)


def xfx_q2(
    gridset: GridSet,
    member: int,
    parton_id: int,
    x: float,
    q2: float,
    interpolator: GridInterpolator | None = None,
) -> float:
    return (interpolator or default_interpolator()).evaluate(gridset, member, parton_id, {X: x, Q2: q2})


def xfx_q2_kt(
    gridset: GridSet,
    member: int,
    parton_id: int,
    kt: float,
    x: float,
    q2: float,
    interpolator: GridInterpolator | None = None,
) -> float:
    return (interpolator or default_interpolator()).evaluate(gridset, member, parton_id, {KT: kt, X: x, Q2: q2})


def xfx_nd(
    gridset: GridSet,
    member: int,
    parton_id: int,
    point: dict[str, float],
    interpolator: GridInterpolator | None = None,
) -> float:
    """Evaluation at an arbitrary point, e.g. ``{"nucleons": 56, "x": 1e-3, "q2": 10}``."""
    return (interpolator or default_interpolator()).evaluate(gridset, member, parton_id, point)


def alphas_q2(
    gridset: GridSet,
    member: int,
    q2: float,
    coupling_value: float | None = None,
    interpolator: GridInterpolator | None = None,
) -> float:
    return (interpolator or default_interpolator()).alphas(gridset, member, q2, coupling_value)


def combine_nucleon(gridsets: Sequence[GridSet], axis_values: Sequence[float] | None = None) -> GridSet:
    return _combine_nucleon(gridsets, axis_values)


def combine_coupling(gridsets: Sequence[GridSet], axis_values: Sequence[float] | None = None) -> GridSet:
    return _combine_coupling(gridsets, axis_values)


def version_info(gridset: GridSet | MetaData) -> str:
    """Provenance tag of the file: the source revision, else the code version."""
    meta = gridset.metadata if isinstance(gridset, GridSet) else gridset
    return meta.git_version or meta.code_version
