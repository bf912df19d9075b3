from __future__ import annotations

import importlib.util
import unittest

import numpy as np

from pyneopdf import api
from pyneopdf.backends import build_backend
from pyneopdf.config import InterpolationConfig
from pyneopdf.interpolation import POLICY_CLAMP, POLICY_EXTRAPOLATE, POLICY_FAIL
from pyneopdf.interpolation_api import GridInterpolator

from _grids import make_gridset


def _has_numba() -> bool:
    return importlib.util.find_spec("numba") is not None


class TestFactory(unittest.TestCase):
    def test_numpy_and_auto(self) -> None:
        self.assertEqual(build_backend("numpy").name, "numpy")
        self.assertIn(build_backend("auto").name, {"numpy", "numba"})
        with self.assertRaises(ValueError):
            build_backend("jax")

    def test_config_validation(self) -> None:
        with self.assertRaises(ValueError):
            InterpolationConfig(extrapolation="wrap")
        with self.assertRaises(ValueError):
            InterpolationConfig(cubic_order=2)

    @unittest.skipIf(_has_numba(), "numba is installed")
    def test_numba_missing_raises(self) -> None:
        with self.assertRaises(RuntimeError):
            build_backend("numba")


@unittest.skipUnless(_has_numba(), "numba is not installed")
class TestNumbaBackend(unittest.TestCase):
    def test_stencils_match_numpy_backend(self) -> None:
        numpy_backend = build_backend("numpy")
        numba_backend = build_backend("numba")
        coords = np.log(np.array([1.0e-5, 1.0e-4, 1.0e-3, 1.0e-2, 0.1, 1.0]))
        points = [-12.0, -11.0, -9.0, -6.9, -4.0, -1.0, 0.0, 0.5]
        for t in points:
            for order in (1, 3):
                for policy in (POLICY_FAIL, POLICY_EXTRAPOLATE, POLICY_CLAMP):
                    s_np, w_np = numpy_backend.stencil(coords, t, order, policy)
                    s_nb, w_nb = numba_backend.stencil(coords, t, order, policy)
                    self.assertEqual(s_nb, s_np)
                    np.testing.assert_allclose(w_nb, w_np, rtol=1.0e-13, atol=1.0e-15)

    def test_evaluation_matches_numpy_backend(self) -> None:
        gridset = make_gridset()
        fast = GridInterpolator(InterpolationConfig(backend="numba"))
        self.assertEqual(fast.backend_name, "numba")
        for x, q2 in ((3.0e-5, 1.1), (2.0e-2, 1.5), (0.5, 2.5), (5.0e-4, 30.0)):
            self.assertAlmostEqual(
                api.xfx_q2(gridset, 0, 21, x, q2, fast), api.xfx_q2(gridset, 0, 21, x, q2), places=12
            )


if __name__ == "__main__":
    unittest.main()
