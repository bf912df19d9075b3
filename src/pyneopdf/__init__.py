"""Compressed, interpolable parton-distribution grids."""

from . import constants
from .api import (
    AxisDomain,
    alphas_q2,
    combine_coupling,
    combine_nucleon,
    load,
    metadata,
    num_subgrids,
    save,
    subgrid_domains,
    subgrid_info,
    subgrid_values,
    update_metadata,
    update_metadata_file,
    version_info,
    xfx_nd,
    xfx_q2,
    xfx_q2_kt,
)
from .axis import Axis, AxisScheme, ParamRange
from .cache import GridSetCache
from .codec import decode, decode_partial, encode
from .combine import combine, project
from .config import CodecConfig, InterpolationConfig
from .diagnostics import run_diagnostics
from .errors import (
    CorruptData,
    DuplicateAxisValue,
    FormatError,
    GridError,
    IncompatibleDomain,
    MemberCountMismatch,
    MissingCouplingTable,
    OutOfDomain,
    UnknownMetadataKey,
    UnknownParton,
    UnsupportedVersion,
)
from .export import subgrid_dataframe
from .gridset import CouplingSegment, CouplingTable, GridSet, Member
from .interpolation_api import GridInterpolator, alphas, evaluate
from .metadata import InterpolatorType, MetaData, SetType
from .subgrid import SubGrid

__version__ = "0.1.0"

__all__ = [
    "constants",
    "Axis",
    "AxisDomain",
    "AxisScheme",
    "CodecConfig",
    "CorruptData",
    "CouplingSegment",
    "CouplingTable",
    "DuplicateAxisValue",
    "FormatError",
    "GridError",
    "GridInterpolator",
    "GridSet",
    "GridSetCache",
    "IncompatibleDomain",
    "InterpolationConfig",
    "InterpolatorType",
    "Member",
    "MemberCountMismatch",
    "MetaData",
    "MissingCouplingTable",
    "OutOfDomain",
    "ParamRange",
    "SetType",
    "SubGrid",
    "UnknownMetadataKey",
    "UnknownParton",
    "UnsupportedVersion",
    "alphas",
    "alphas_q2",
    "combine",
    "combine_coupling",
    "combine_nucleon",
    "decode",
    "decode_partial",
    "encode",
    "evaluate",
    "load",
    "metadata",
    "num_subgrids",
    "project",
    "run_diagnostics",
    "save",
    "subgrid_dataframe",
    "subgrid_domains",
    "subgrid_info",
    "subgrid_values",
    "update_metadata",
    "update_metadata_file",
    "version_info",
    "xfx_nd",
    "xfx_q2",
    "xfx_q2_kt",
]
