from __future__ import annotations

import unittest

import numpy as np

from pyneopdf import api, codec
from pyneopdf.combine import combine, combine_coupling, combine_nucleon, coupling_value, nucleon_number, project
from pyneopdf.errors import DuplicateAxisValue, IncompatibleDomain, MemberCountMismatch
from pyneopdf.gridset import GridSet, Member

from _grids import ALPHAS_QS, HIGH_Q2, LOW_Q2, MZ2, make_gridset, make_metadata, make_subgrid, xfx

# PDG ion codes: 10LZZZAAAI
CARBON = 1000060120
IRON = 1000260560


def _nucleus(a: float, pid: int, n_members: int = 2) -> GridSet:
    return make_gridset(n_members, nucleons=(a,), metadata=make_metadata(n_members, hadron_pid=pid))


class TestNucleonCombination(unittest.TestCase):
    def setUp(self) -> None:
        self.inputs = [_nucleus(56.0, IRON), _nucleus(1.0, 2212), _nucleus(12.0, CARBON)]

    def test_nucleon_number_from_ion_code(self) -> None:
        self.assertEqual(nucleon_number(2212), 1.0)
        self.assertEqual(nucleon_number(CARBON), 12.0)
        self.assertEqual(nucleon_number(-IRON), 56.0)

    def test_combined_axis_is_sorted(self) -> None:
        combined = combine_nucleon(self.inputs)
        sg = combined.members[1].subgrids[0]
        np.testing.assert_array_equal(sg.nucleons.knots, [1.0, 12.0, 56.0])
        self.assertEqual(sg.shape, (5, 3, 1, 1, 4, 3))
        self.assertEqual(combined.metadata.num_members, 2)
        np.testing.assert_array_equal(sg.values[:, 2], self.inputs[0].members[1].subgrids[0].values[:, 0])

    def test_interpolates_between_nuclei(self) -> None:
        combined = combine_nucleon(self.inputs)
        value = api.xfx_nd(combined, 0, 2, {"nucleons": 30.0, "x": 1.0e-2, "q2": 5.0})
        self.assertAlmostEqual(value, xfx(2, 1.0e-2, 5.0, nucleons=30.0), delta=1.0e-10)

    def test_projection_recovers_inputs(self) -> None:
        combined = combine_nucleon(self.inputs)
        for gridset, a in zip(self.inputs, (56.0, 1.0, 12.0)):
            back = project(combined, "nucleon_number", a)
            for mb, mo in zip(back.members, gridset.members):
                self.assertEqual(mb.subgrids, mo.subgrids)

    def test_survives_encoding(self) -> None:
        combined = combine_nucleon(self.inputs)
        decoded = codec.decode(codec.encode(combined))
        self.assertEqual(decoded.members[0].subgrids, combined.members[0].subgrids)

    def test_duplicate_values(self) -> None:
        with self.assertRaises(DuplicateAxisValue):
            combine_nucleon(self.inputs, [1.0, 12.0, 1.0])

    def test_member_count_mismatch(self) -> None:
        with self.assertRaises(MemberCountMismatch):
            combine_nucleon([_nucleus(1.0, 2212, 2), _nucleus(12.0, CARBON, 3)])

    def test_incompatible_x_knots(self) -> None:
        meta = make_metadata(1)
        other = GridSet(
            (Member((make_subgrid(LOW_Q2, x=(1.0e-4, 1.0e-2, 1.0)), make_subgrid(HIGH_Q2, x=(1.0e-4, 1.0e-2, 1.0)))),),
            meta,
        )
        with self.assertRaises(IncompatibleDomain) as ctx:
            combine_nucleon([make_gridset(1), other], [1.0, 2.0])
        self.assertIn("member 0 subgrid 0", str(ctx.exception))

    def test_incompatible_pids(self) -> None:
        meta = make_metadata(1)
        other = GridSet((Member((make_subgrid(LOW_Q2, pids=(1, 2, 21)), make_subgrid(HIGH_Q2, pids=(1, 2, 21)))),), meta)
        with self.assertRaises(IncompatibleDomain):
            combine_nucleon([make_gridset(1), other], [1.0, 2.0])

    def test_already_combined_axis_is_rejected(self) -> None:
        combined = combine_nucleon(self.inputs)
        with self.assertRaises(IncompatibleDomain):
            combine_nucleon([combined, _nucleus(208.0, 1000822080)])

    def test_unknown_axis_kind(self) -> None:
        with self.assertRaises(ValueError):
            combine(self.inputs, "kt")


class TestCouplingCombination(unittest.TestCase):
    def _variant(self, alphas: float) -> GridSet:
        scale = alphas / 0.118
        meta = make_metadata(1, alphas_vals=tuple(scale * 0.118 / (1.0 + 0.05 * np.log(q * q / MZ2)) for q in ALPHAS_QS))
        return make_gridset(1, alphas=(alphas,), metadata=meta)

    def test_coupling_value_at_mz(self) -> None:
        self.assertAlmostEqual(coupling_value(self._variant(0.120)), 0.120, places=10)

    def test_combination_builds_two_dimensional_table(self) -> None:
        inputs = [self._variant(0.120), self._variant(0.116), self._variant(0.118)]
        combined = combine_coupling(inputs)
        sg = combined.members[0].subgrids[1]
        np.testing.assert_allclose(sg.alphas.knots, [0.116, 0.118, 0.120], rtol=1.0e-10)
        self.assertIsNotNone(combined.coupling)
        self.assertFalse(combined.coupling.is_1d)
        a_mid = float(sg.alphas.knots[1])
        self.assertAlmostEqual(api.alphas_q2(combined, 0, MZ2, a_mid), a_mid, places=10)
        value = api.xfx_nd(combined, 0, 1, {"alphas": 0.117, "x": 0.5, "q2": 20.0})
        self.assertAlmostEqual(value, xfx(1, 0.5, 20.0, alphas=0.117), delta=1.0e-10)

    def test_projection_restores_one_dimensional_table(self) -> None:
        inputs = [self._variant(0.116), self._variant(0.120)]
        combined = combine_coupling(inputs, [0.116, 0.120])
        back = project(combined, "coupling_value", 0.120)
        self.assertTrue(back.coupling.is_1d)
        self.assertEqual(back.coupling, inputs[1].coupling)
        self.assertEqual(back.members[0].subgrids, inputs[1].members[0].subgrids)


if __name__ == "__main__":
    unittest.main()
