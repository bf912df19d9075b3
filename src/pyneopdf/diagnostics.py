"""Consistency checks for loaded grid sets."""

from __future__ import annotations

import numpy as np

from .constants import Q2
from .gridset import GridSet


def _boundary_mismatch(gridset: GridSet) -> float:
    """Largest difference between adjacent subgrids on their shared Q2 knot."""
    worst = 0.0
    for member in gridset.members:
        for lower, upper in zip(member.subgrids[:-1], member.subgrids[1:]):
            if lower.q2.knots[-1] != upper.q2.knots[0]:
                continue
            if lower.shape[:-1] != upper.shape[:-1] or lower.pids != upper.pids:
                continue
            if any(a != b for a, b in zip(lower.axes[:-1], upper.axes[:-1])):
                continue
            diff = np.abs(lower.values[..., -1] - upper.values[..., 0])
            worst = max(worst, float(np.max(diff)) if diff.size else 0.0)
    return worst


def run_diagnostics(gridset: GridSet, *, tolerance: float = 1.0e-12) -> dict:
    subgrids = [sg for member in gridset.members for sg in member.subgrids]
    mismatch = _boundary_mismatch(gridset)
    checks = {
        "axes_increasing": all(bool(np.all(np.diff(a.knots) > 0.0)) for sg in subgrids for a in sg.axes),
        "values_finite": all(bool(np.all(np.isfinite(sg.values))) for sg in subgrids),
        "subgrids_ordered": all(
            lo.q2.knots[0] <= hi.q2.knots[0]
            for member in gridset.members
            for lo, hi in zip(member.subgrids[:-1], member.subgrids[1:])
        ),
        "boundaries_continuous": mismatch <= tolerance,
        "member_count_matches": gridset.metadata.num_members == len(gridset.members),
    }
    q2_lo = min(float(sg.axis(Q2).knots[0]) for sg in subgrids)
    q2_hi = max(float(sg.axis(Q2).knots[-1]) for sg in subgrids)
    return {
        "n_members": len(gridset.members),
        "n_subgrids": len(subgrids),
        "q2_range": (q2_lo, q2_hi),
        "max_boundary_mismatch": mismatch,
        "has_coupling": gridset.coupling is not None or any(m.coupling is not None for m in gridset.members),
        "checks": checks,
        "all_checks_pass": bool(all(checks.values())),
    }
