"""Small synthetic grid sets shared by the test modules."""

from __future__ import annotations

import math

import numpy as np

from pyneopdf.gridset import CouplingTable, GridSet, Member
from pyneopdf.metadata import MetaData
from pyneopdf.subgrid import SubGrid

X_KNOTS = (1.0e-5, 1.0e-3, 1.0e-1, 1.0)
LOW_Q2 = (1.0, 1.3, 1.69)
HIGH_Q2 = (1.69, 4.0, 10.0, 100.0)
PIDS = (-2, -1, 1, 2, 21)
ALPHAS_QS = (1.0, 1.2, 1.3, 1.3, 5.0, 10.0, 91.1876, 200.0)
MZ2 = 91.1876 ** 2


def xfx(pid, x, q2, *, nucleons=1.0, alphas=0.0, kt=0.0, member=0):
    """Quadratic in log(x), linear in log(q2) and in every other axis."""
    lx = math.log(x)
    lq = math.log(q2)
    return (
        (1.0 + 0.1 * abs(pid))
        * (2.0 + 0.3 * lx + 0.02 * lx * lx)
        * (1.0 + 0.25 * lq)
        * (1.0 + 0.01 * nucleons)
        * (1.0 + alphas)
        * (1.0 + 0.5 * kt)
        * (1.0 + 0.01 * member)
    )


def alphas_at(q2):
    return 0.118 / (1.0 + 0.05 * math.log(q2 / MZ2))


def make_subgrid(q2, *, x=X_KNOTS, pids=PIDS, nucleons=(1.0,), alphas=(0.0,), kt=(0.0,), member=0):
    values = np.empty((len(pids), len(nucleons), len(alphas), len(kt), len(x), len(q2)))
    for p, pid in enumerate(pids):
        for a, av in enumerate(nucleons):
            for b, bv in enumerate(alphas):
                for k, kv in enumerate(kt):
                    for i, xv in enumerate(x):
                        for j, qv in enumerate(q2):
                            values[p, a, b, k, i, j] = xfx(
                                pid, xv, qv, nucleons=av, alphas=bv, kt=kv, member=member
                            )
    return SubGrid.build(pids, x, q2, values, nucleons=nucleons, alphas=alphas, kt=kt)


def make_metadata(n_members=1, **overrides):
    fields = dict(
        set_desc="synthetic test set",
        num_members=n_members,
        x_min=X_KNOTS[0],
        x_max=X_KNOTS[-1],
        q_min=math.sqrt(LOW_Q2[0]),
        q_max=math.sqrt(HIGH_Q2[-1]),
        flavors=PIDS,
        alphas_q_values=ALPHAS_QS,
        alphas_vals=tuple(alphas_at(q * q) for q in ALPHAS_QS),
        git_version="abc1234",
        code_version="0.1.0",
    )
    fields.update(overrides)
    return MetaData(**fields)


def make_gridset(n_members=1, *, nucleons=(1.0,), alphas=(0.0,), kt=(0.0,), metadata=None, coupling=True):
    members = tuple(
        Member(
            (
                make_subgrid(LOW_Q2, nucleons=nucleons, alphas=alphas, kt=kt, member=m),
                make_subgrid(HIGH_Q2, nucleons=nucleons, alphas=alphas, kt=kt, member=m),
            )
        )
        for m in range(n_members)
    )
    meta = metadata or make_metadata(n_members)
    table = CouplingTable.from_metadata(meta) if coupling else None
    return GridSet(members, meta, table)
