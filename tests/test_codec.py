from __future__ import annotations

import io
import os
import struct
import tempfile
import unittest
from unittest import mock

import numpy as np

from pyneopdf import codec
from pyneopdf.config import CodecConfig
from pyneopdf.errors import CorruptData, FormatError, UnknownMetadataKey, UnsupportedVersion
from pyneopdf.gridset import CouplingTable, GridSet, Member

from _grids import HIGH_Q2, LOW_Q2, make_gridset, make_subgrid


def _assert_same_gridset(test: unittest.TestCase, a: GridSet, b: GridSet) -> None:
    test.assertEqual(a.metadata, b.metadata)
    test.assertEqual(len(a.members), len(b.members))
    for ma, mb in zip(a.members, b.members):
        test.assertEqual(len(ma.subgrids), len(mb.subgrids))
        for sa, sb in zip(ma.subgrids, mb.subgrids):
            test.assertEqual(sa.pids, sb.pids)
            for axa, axb in zip(sa.axes, sb.axes):
                np.testing.assert_array_equal(axa.knots, axb.knots)
            np.testing.assert_array_equal(sa.values, sb.values)
        test.assertEqual(ma.coupling, mb.coupling)
    test.assertEqual(a.coupling, b.coupling)


class TestRoundTrip(unittest.TestCase):
    def test_round_trip_is_bit_exact_for_every_compression(self) -> None:
        gridset = make_gridset(n_members=3)
        for compression in ("zlib", "bz2", "none"):
            with self.subTest(compression=compression):
                data = codec.encode(gridset, CodecConfig(compression=compression))
                _assert_same_gridset(self, gridset, codec.decode(data))

    def test_round_trip_keeps_multidimensional_axes_and_member_couplings(self) -> None:
        base = make_gridset()
        member = Member(
            (make_subgrid(HIGH_Q2, nucleons=(1.0, 56.0, 208.0), kt=(0.0, 0.5)),),
            CouplingTable.from_metadata(base.metadata),
        )
        gridset = GridSet((member,), base.metadata, None)
        decoded = codec.decode(codec.encode(gridset))
        _assert_same_gridset(self, gridset, decoded)
        self.assertIsNone(decoded.coupling)
        self.assertEqual(decoded.members[0].subgrids[0].shape, (5, 3, 1, 2, 4, 4))

    def test_parallel_member_decode_matches_serial(self) -> None:
        data = codec.encode(make_gridset(n_members=4))
        serial = codec.decode(data)
        parallel = codec.decode(data, CodecConfig(workers=3))
        _assert_same_gridset(self, serial, parallel)

    def test_file_object_and_path_sources(self) -> None:
        gridset = make_gridset(n_members=2)
        data = codec.encode(gridset)
        _assert_same_gridset(self, gridset, codec.decode(io.BytesIO(data)))
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "set.neopdf")
            codec.save(gridset, path)
            _assert_same_gridset(self, gridset, codec.load(path))
            self.assertFalse(os.path.exists(path + ".tmp"))


class TestPartialAccess(unittest.TestCase):
    def setUp(self) -> None:
        self.gridset = make_gridset(n_members=3)
        self.data = codec.encode(self.gridset)

    def test_partial_matches_full_decode(self) -> None:
        full = codec.decode(self.data)
        for m in range(3):
            for s in range(2):
                with self.subTest(member=m, subgrid=s):
                    self.assertEqual(codec.decode_partial(self.data, m, s), full.members[m].subgrids[s])

    def test_partial_from_stream(self) -> None:
        sg = codec.decode_partial(io.BytesIO(self.data), 2, 1)
        self.assertEqual(sg, self.gridset.members[2].subgrids[1])

    def test_partial_index_errors(self) -> None:
        with self.assertRaises(IndexError):
            codec.decode_partial(self.data, 3, 0)
        with self.assertRaises(IndexError):
            codec.decode_partial(self.data, 0, 2)

    def test_corrupt_block_only_affects_its_own_subgrid(self) -> None:
        prologue = codec.read_prologue(self.data)
        entry = prologue.toc.members[0].subgrids[0]
        buf = bytearray(self.data)
        buf[entry.offset + 8 + 3] ^= 0xFF
        corrupted = bytes(buf)
        with self.assertRaises(CorruptData):
            codec.decode_partial(corrupted, 0, 0)
        with self.assertRaises(CorruptData):
            codec.decode(corrupted)
        self.assertEqual(codec.decode_partial(corrupted, 0, 1), self.gridset.members[0].subgrids[1])

    def test_truncated_file(self) -> None:
        with self.assertRaises(CorruptData):
            codec.decode(self.data[:-20])


class TestHeader(unittest.TestCase):
    def setUp(self) -> None:
        self.data = codec.encode(make_gridset())

    def test_bad_magic(self) -> None:
        with self.assertRaises(FormatError):
            codec.decode(b"NOTAGRID" + self.data[8:])

    def test_newer_version_is_rejected(self) -> None:
        buf = bytearray(self.data)
        struct.pack_into("<H", buf, 8, 2)
        with self.assertRaises(UnsupportedVersion):
            codec.decode(bytes(buf))

    def test_swapped_byte_order_marker(self) -> None:
        buf = bytearray(self.data)
        struct.pack_into(">H", buf, 10, 0xFEFF)
        with self.assertRaises(FormatError) as ctx:
            codec.read_metadata(bytes(buf))
        self.assertIn("byte order", str(ctx.exception))

    def test_short_input(self) -> None:
        with self.assertRaises(FormatError):
            codec.decode(self.data[:10])

    def test_metadata_only_read(self) -> None:
        meta = codec.read_metadata(self.data)
        self.assertEqual(meta.git_version, "abc1234")


class TestUpdateMetadata(unittest.TestCase):
    def setUp(self) -> None:
        self.gridset = make_gridset(n_members=2)
        self.data = codec.encode(self.gridset, CodecConfig(compression="bz2"))

    def test_update_leaves_body_bytes_untouched(self) -> None:
        old = codec.read_prologue(self.data)
        updated = codec.update_metadata(self.data, "SetDesc", "a considerably longer description of this set")
        new = codec.read_prologue(updated)
        self.assertEqual(new.metadata.set_desc, "a considerably longer description of this set")
        self.assertEqual(new.compression, "bz2")
        self.assertEqual(self.data[old.body_start :], updated[new.body_start :])
        delta = new.body_start - old.body_start
        self.assertGreater(delta, 0)
        for before, after in zip(old.toc.entries(), new.toc.entries()):
            self.assertEqual(after.offset, before.offset + delta)
            self.assertEqual(after.length, before.length)
        decoded = codec.decode(updated)
        for ma, mb in zip(self.gridset.members, decoded.members):
            self.assertEqual(ma.subgrids, mb.subgrids)

    def test_update_parses_text_values(self) -> None:
        updated = codec.update_metadata(self.data, "AlphaS_OrderQCD", "2")
        self.assertEqual(codec.read_metadata(updated).alphas_order_qcd, 2)

    def test_unknown_key_is_rejected(self) -> None:
        with self.assertRaises(UnknownMetadataKey):
            codec.update_metadata(self.data, "NotAKey", "1")

    def test_update_file_in_place(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "set.neopdf")
            with open(path, "wb") as fh:
                fh.write(self.data)
            codec.update_metadata_file(path, "Polarized", "true")
            self.assertTrue(codec.read_metadata(path).polarised)
            self.assertEqual(len(codec.load(path).members), 2)
            self.assertEqual(sorted(os.listdir(tmp)), ["set.neopdf"])

    def test_failed_writes_leave_no_temporary_file(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            path = os.path.join(tmp, "set.neopdf")
            with open(path, "wb") as fh:
                fh.write(self.data)
            with mock.patch("pyneopdf.codec.shutil.copyfileobj", side_effect=OSError("disk full")):
                with self.assertRaises(OSError):
                    codec.update_metadata_file(path, "SetDesc", "renamed")
            self.assertEqual(sorted(os.listdir(tmp)), ["set.neopdf"])
            self.assertEqual(codec.read_metadata(path).set_desc, self.gridset.metadata.set_desc)

            target = os.path.join(tmp, "copy.neopdf")
            with mock.patch("pyneopdf.codec.encode", return_value=object()):
                with self.assertRaises(TypeError):
                    codec.save(self.gridset, target)
            self.assertEqual(sorted(os.listdir(tmp)), ["set.neopdf"])


if __name__ == "__main__":
    unittest.main()
