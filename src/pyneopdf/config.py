"""Runtime configuration for interpolation and encoding."""

from __future__ import annotations

from dataclasses import dataclass

from .constants import COMPRESSION_IDS

EXTRAPOLATION_POLICIES = ("fail", "extrapolate", "clamp")
BACKENDS = ("numpy", "numba", "auto")


@dataclass(frozen=True)
class InterpolationConfig:
    """User-controlled interpolation policy.

    ``extrapolation`` decides what happens outside the tabulated domain:
    ``"fail"`` raises :class:`~pyneopdf.errors.OutOfDomain`, ``"extrapolate"``
    continues the boundary segment linearly in the interpolation coordinate and
    ``"clamp"`` returns the value at the nearest knot.
    """

    extrapolation: str = "fail"
    backend: str = "auto"
    cubic_order: int = 3

    def __post_init__(self) -> None:
        if self.extrapolation not in EXTRAPOLATION_POLICIES:
            raise ValueError("extrapolation must be one of: fail, extrapolate, clamp")
        if self.backend not in BACKENDS:
            raise ValueError("backend must be one of: numpy, numba, auto")
        if self.cubic_order not in (1, 3):
            raise ValueError("cubic_order must be 1 or 3")


@dataclass(frozen=True)
class CodecConfig:
    """Block compression settings used by :func:`pyneopdf.codec.encode`."""

    compression: str = "zlib"
    level: int = 6
    workers: int = 1

    def __post_init__(self) -> None:
        if self.compression not in COMPRESSION_IDS:
            raise ValueError("compression must be one of: none, zlib, bz2")
        if not (1 <= self.level <= 9):
            raise ValueError("level must be in [1, 9]")
        if self.workers < 1:
            raise ValueError("workers must be >= 1")
