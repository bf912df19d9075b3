"""Tabular export of subgrid slices."""

from __future__ import annotations

import numpy as np

from .gridset import GridSet


def subgrid_dataframe(
    gridset: GridSet,
    member: int,
    subgrid: int,
    pid: int,
    *,
    nucleon_index: int = 0,
    alphas_index: int = 0,
    kt_index: int = 0,
):
    """Long-format ``(x, q2, value)`` table of one ``slice2d``."""
    try:
        import pandas as pd
    except Exception as exc:  # pragma: no cover
        raise RuntimeError("Dataframe export requires pandas installed") from exc

    sg = gridset.member(member).subgrid(subgrid)
    table = sg.slice2d(pid, nucleon_index, alphas_index, kt_index)
    xx, qq = np.meshgrid(sg.x.knots, sg.q2.knots, indexing="ij")
    return pd.DataFrame({"x": xx.ravel(), "q2": qq.ravel(), "value": np.asarray(table).ravel()})
