from __future__ import annotations

import os
import tempfile
import unittest

from pyneopdf import codec
from pyneopdf.cache import GridSetCache, file_token
from pyneopdf.diagnostics import run_diagnostics
from pyneopdf.gridset import GridSet, Member

from _grids import HIGH_Q2, LOW_Q2, make_gridset, make_metadata, make_subgrid


class TestDiagnostics(unittest.TestCase):
    def test_consistent_set_passes(self) -> None:
        diag = run_diagnostics(make_gridset(2))
        self.assertTrue(diag["all_checks_pass"], diag["checks"])
        self.assertEqual(diag["n_subgrids"], 4)
        self.assertEqual(diag["q2_range"], (1.0, 100.0))
        self.assertTrue(diag["has_coupling"])

    def test_detects_boundary_jump_and_member_count(self) -> None:
        low = make_subgrid(LOW_Q2)
        high = make_subgrid(HIGH_Q2, member=5)
        diag = run_diagnostics(GridSet((Member((low, high)),), make_metadata(3)))
        self.assertFalse(diag["checks"]["boundaries_continuous"])
        self.assertFalse(diag["checks"]["member_count_matches"])
        self.assertGreater(diag["max_boundary_mismatch"], 0.0)
        self.assertFalse(diag["all_checks_pass"])


class TestGridSetCache(unittest.TestCase):
    def test_reuses_until_file_changes(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "set.neopdf")
            codec.save(make_gridset(1), path)
            cache = GridSetCache()
            first = cache.get(path)
            self.assertIs(cache.get(path), first)
            self.assertIn(path, cache)
            token = file_token(path)

            codec.save(make_gridset(2), path)
            st = os.stat(path)
            os.utime(path, ns=(st.st_atime_ns, st.st_mtime_ns + 1_000_000_000))
            self.assertNotEqual(file_token(path), token)
            self.assertNotIn(path, cache)
            second = cache.get(path)
            self.assertEqual(len(second.members), 2)

            cache.invalidate(path)
            self.assertEqual(len(cache), 0)
            cache.get(path)
            cache.clear()
            self.assertEqual(len(cache), 0)


if __name__ == "__main__":
    unittest.main()
