"""Per-axis interpolation kernels shared by all backends.

Every axis contributes a *stencil*: the first knot index of a contiguous
window and the weights of the knots in that window. Tensor-product
interpolation then contracts the value block one axis at a time.
"""

from __future__ import annotations

from typing import Sequence, Tuple

import numpy as np

POLICY_FAIL = 0
POLICY_EXTRAPOLATE = 1
POLICY_CLAMP = 2
POLICY_CODES = {"fail": POLICY_FAIL, "extrapolate": POLICY_EXTRAPOLATE, "clamp": POLICY_CLAMP}

_ONE = np.ones(1, dtype=np.float64)
_ONE.setflags(write=False)
_EMPTY = np.zeros(0, dtype=np.float64)
_EMPTY.setflags(write=False)


def _lin2(x0: float, x1: float, x: float) -> np.ndarray:
    f = (x - x0) / (x1 - x0)
    return np.array([1.0 - f, f], dtype=np.float64)


def lagrange_weights(nodes: np.ndarray, t: float) -> np.ndarray:
    """Weights of the interpolating polynomial through ``nodes`` evaluated at ``t``."""
    n = len(nodes)
    w = np.ones(n, dtype=np.float64)
    for j in range(n):
        for k in range(n):
            if k != j:
                w[j] *= (t - nodes[k]) / (nodes[j] - nodes[k])
    return w


def stencil(coords: np.ndarray, t: float, order: int, policy: int) -> Tuple[int, np.ndarray]:
    """Locate ``t`` on ``coords`` and return ``(start, weights)``.

    ``order`` 3 uses up to four knots around the bracketing interval and
    degrades to three knots (quadratic) in the first and last interval and to
    two (linear) on two-knot axes. A coordinate equal to a knot yields that
    knot alone. Outside the axis, ``start`` is -1 under ``POLICY_FAIL``.
    """
    n = coords.shape[0]
    if n == 1 or order == 0:
        return 0, _ONE
    i = int(np.searchsorted(coords, t, side="left"))
    if i < n and coords[i] == t:
        return i, _ONE
    if i == 0 or i == n:
        if policy == POLICY_FAIL:
            return -1, _EMPTY
        if policy == POLICY_CLAMP:
            return (0 if i == 0 else n - 1), _ONE
        j = 0 if i == 0 else n - 2
        return j, _lin2(float(coords[j]), float(coords[j + 1]), t)
    j = i - 1
    if order == 1 or n == 2:
        return j, _lin2(float(coords[j]), float(coords[j + 1]), t)
    lo = max(j - 1, 0)
    hi = min(j + 2, n - 1)
    return lo, lagrange_weights(coords[lo : hi + 1], t)


def barycentric_stencil(coords: np.ndarray, t: float, policy: int) -> Tuple[int, np.ndarray]:
    """Global polynomial through every knot, in barycentric form.

    Meant for Chebyshev-spaced knots, where the full-axis polynomial stays
    well conditioned. Knot hits and the outside policies behave as in
    :func:`stencil`.
    """
    n = coords.shape[0]
    if n <= 2 or not (coords[0] < t < coords[-1]):
        return stencil(coords, t, 1, policy)
    i = int(np.searchsorted(coords, t, side="left"))
    if coords[i] == t:
        return i, _ONE
    a, b = float(coords[0]), float(coords[-1])
    s = (2.0 * coords - (a + b)) / (b - a)
    u = (2.0 * t - (a + b)) / (b - a)
    diff = s[:, None] - s[None, :]
    np.fill_diagonal(diff, 1.0)
    lam = 1.0 / np.prod(diff, axis=1)
    r = lam / (u - s)
    return 0, r / r.sum()


def contract(block: np.ndarray, weights: Sequence[np.ndarray]) -> np.ndarray:
    """Contract the trailing ``len(weights)`` axes of ``block`` against ``weights``."""
    out = block
    for w in reversed(weights):
        out = out @ w
    return out
