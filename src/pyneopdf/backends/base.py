"""Backend protocol for per-axis stencil kernels."""

from __future__ import annotations

from typing import Protocol, Tuple

import numpy as np


class StencilBackend(Protocol):
    name: str

    def stencil(self, coords: np.ndarray, t: float, order: int, policy: int) -> Tuple[int, np.ndarray]:
        ...
