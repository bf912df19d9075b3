"""Numba-accelerated stencil backend."""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

try:
    from numba import njit
except Exception as exc:  # pragma: no cover - optional dependency
    njit = None
    _NUMBA_IMPORT_ERROR = exc
else:
    _NUMBA_IMPORT_ERROR = None


if njit is not None:

    @njit(cache=True)
    def _stencil_numba(coords: np.ndarray, t: float, order: int, policy: int) -> tuple[int, np.ndarray]:
        n = coords.shape[0]
        one = np.ones(1, dtype=np.float64)
        if n == 1 or order == 0:
            return 0, one
        lo = 0
        hi = n
        while lo < hi:
            mid = (lo + hi) // 2
            if coords[mid] < t:
                lo = mid + 1
            else:
                hi = mid
        i = lo
        if i < n and coords[i] == t:
            return i, one
        if i == 0 or i == n:
            if policy == 0:
                return -1, np.zeros(0, dtype=np.float64)
            if policy == 2:
                if i == 0:
                    return 0, one
                return n - 1, one
            j = 0 if i == 0 else n - 2
            f = (t - coords[j]) / (coords[j + 1] - coords[j])
            w = np.empty(2, dtype=np.float64)
            w[0] = 1.0 - f
            w[1] = f
            return j, w
        j = i - 1
        if order == 1 or n == 2:
            f = (t - coords[j]) / (coords[j + 1] - coords[j])
            w = np.empty(2, dtype=np.float64)
            w[0] = 1.0 - f
            w[1] = f
            return j, w
        start = max(j - 1, 0)
        stop = min(j + 2, n - 1)
        m = stop - start + 1
        w = np.ones(m, dtype=np.float64)
        for a in range(m):
            for b in range(m):
                if a != b:
                    w[a] *= (t - coords[start + b]) / (coords[start + a] - coords[start + b])
        return start, w

    # Prime JIT cache once to avoid a latency spike in the first hot call.
    _stencil_numba(np.array([0.0, 1.0, 2.0, 3.0], dtype=np.float64), 1.5, 3, 0)


@dataclass(frozen=True)
class NumbaStencilBackend:
    """Stencil kernels compiled with numba; same results as the NumPy path."""

    name: str = "numba"

    def stencil(self, coords: np.ndarray, t: float, order: int, policy: int):
        return _stencil_numba(coords, float(t), int(order), int(policy))


def build_numba_backend() -> NumbaStencilBackend:
    if njit is None:
        raise RuntimeError(
            f"Numba backend unavailable: {_NUMBA_IMPORT_ERROR}"
        ) from _NUMBA_IMPORT_ERROR
    return NumbaStencilBackend()
