"""Default NumPy backend for stencil kernels."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from ..interpolation import stencil


@dataclass(frozen=True)
class NumpyStencilBackend:
    name: str = "numpy"

    def stencil(self, coords: np.ndarray, t: float, order: int, policy: int):
        return stencil(coords, t, order, policy)


def build_numpy_backend() -> NumpyStencilBackend:
    return NumpyStencilBackend()
