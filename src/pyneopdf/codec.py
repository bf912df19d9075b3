"""Compressed binary grid format.

File layout::

    header      magic, version, endianness marker, compression id
    metadata    framed block of length-prefixed key/value pairs (uncompressed)
    toc         framed block: per-member, per-subgrid (offset, length) entries
    subgrids    one framed, compressed block per subgrid
    coupling    framed, compressed coupling-table blocks (per member, then set-level)

A framed block is ``<u8 length> <stored bytes> <8-byte BLAKE2b digest>``.
Compression is applied per block so a single subgrid can be read by seeking
to its offset and inflating only that block. All numbers are little-endian;
floating-point data is stored as ``<f8``.
"""

from __future__ import annotations

import bz2
from concurrent.futures import ThreadPoolExecutor
from contextlib import contextmanager
from dataclasses import dataclass, field
import hashlib
import io
import json
import logging
import os
from pathlib import Path
import shutil
import struct
import threading
from typing import BinaryIO, Iterator, NamedTuple, Union
import zlib

import numpy as np

from .axis import Axis
from .config import CodecConfig
from .constants import (
    ALPHAS,
    AXIS_NAMES,
    CHECKSUM_SIZE,
    COMPRESSION_IDS,
    COMPRESSION_NAMES,
    ENDIAN_MARKER,
    FORMAT_VERSION,
    HEADER_FORMAT,
    MAGIC,
    Q2,
)
from .errors import CorruptData, FormatError, UnknownMetadataKey, UnsupportedVersion
from .gridset import CouplingSegment, CouplingTable, GridSet, Member
from .metadata import MetaData
from .subgrid import SubGrid

logger = logging.getLogger(__name__)

Source = Union[bytes, bytearray, memoryview, str, os.PathLike, BinaryIO]

HEADER_SIZE = struct.calcsize(HEADER_FORMAT)
_LEN = struct.Struct("<Q")
_U32 = struct.Struct("<I")
_ENTRY = struct.Struct("<QQ")
_SUBGRID_DIMS = struct.Struct("<6I")
_COUPLING_DIMS = struct.Struct("<II")
_SWAPPED_MARKER = struct.unpack("<H", struct.pack(">H", ENDIAN_MARKER))[0]


class Entry(NamedTuple):
    """Absolute offset and total framed length of one block."""

    offset: int
    length: int


@dataclass
class MemberToc:
    subgrids: list[Entry] = field(default_factory=list)
    coupling: Entry | None = None


@dataclass
class TableOfContents:
    members: list[MemberToc] = field(default_factory=list)
    coupling: Entry | None = None

    def shifted(self, delta: int) -> "TableOfContents":
        def mv(e: Entry | None) -> Entry | None:
            return None if e is None else Entry(e.offset + delta, e.length)

        return TableOfContents(
            members=[MemberToc([mv(e) for e in m.subgrids], mv(m.coupling)) for m in self.members],
            coupling=mv(self.coupling),
        )

    def entries(self) -> Iterator[Entry]:
        for m in self.members:
            yield from m.subgrids
            if m.coupling is not None:
                yield m.coupling
        if self.coupling is not None:
            yield self.coupling


@dataclass
class Prologue:
    """Everything in front of the block bodies."""

    version: int
    compression: str
    metadata: MetaData
    toc: TableOfContents
    metadata_span: Entry
    toc_span: Entry

    @property
    def body_start(self) -> int:
        return self.toc_span.offset + self.toc_span.length


# ---------------------------------------------------------------------------
# Byte sources
# ---------------------------------------------------------------------------


class _BufferSource:
    def __init__(self, data: bytes | bytearray | memoryview) -> None:
        self._view = memoryview(data).cast("B")

    def size(self) -> int:
        return len(self._view)

    def read_at(self, offset: int, size: int) -> bytes:
        return bytes(self._view[offset : offset + size])


class _FileSource:
    def __init__(self, fh: BinaryIO) -> None:
        self._fh = fh
        self._lock = threading.Lock()

    def size(self) -> int:
        with self._lock:
            pos = self._fh.tell()
            end = self._fh.seek(0, io.SEEK_END)
            self._fh.seek(pos)
        return end

    def read_at(self, offset: int, size: int) -> bytes:
        with self._lock:
            self._fh.seek(offset)
            return self._fh.read(size)


@contextmanager
def _open_source(source: Source):
    if isinstance(source, (bytes, bytearray, memoryview)):
        yield _BufferSource(source)
    elif isinstance(source, (str, os.PathLike)):
        with open(source, "rb") as fh:
            yield _FileSource(fh)
    elif hasattr(source, "read") and hasattr(source, "seek"):
        yield _FileSource(source)
    else:
        raise TypeError(f"unsupported grid source: {type(source).__name__}")


# ---------------------------------------------------------------------------
# Framing and compression
# ---------------------------------------------------------------------------


def _digest(stored: bytes) -> bytes:
    return hashlib.blake2b(stored, digest_size=CHECKSUM_SIZE).digest()


def _frame(stored: bytes) -> bytes:
    return _LEN.pack(len(stored)) + stored + _digest(stored)


def _read_frame(src, entry: Entry, what: str) -> bytes:
    raw = src.read_at(entry.offset, entry.length)
    if len(raw) != entry.length or entry.length < _LEN.size + CHECKSUM_SIZE:
        raise CorruptData(f"{what}: truncated block at offset {entry.offset} (expected {entry.length} bytes, got {len(raw)})")
    (n,) = _LEN.unpack_from(raw, 0)
    if _LEN.size + n + CHECKSUM_SIZE != entry.length:
        raise CorruptData(f"{what}: block length {n} inconsistent with table entry length {entry.length}")
    stored = raw[_LEN.size : _LEN.size + n]
    if _digest(stored) != raw[_LEN.size + n :]:
        raise CorruptData(f"{what}: checksum mismatch at offset {entry.offset}")
    return stored


def _read_prefixed_frame(src, offset: int, what: str) -> tuple[bytes, Entry]:
    head = src.read_at(offset, _LEN.size)
    if len(head) != _LEN.size:
        raise FormatError(f"{what}: file truncated at offset {offset}")
    (n,) = _LEN.unpack(head)
    entry = Entry(offset, _LEN.size + n + CHECKSUM_SIZE)
    return _read_frame(src, entry, what), entry


def _compress(payload: bytes, compression: str, level: int) -> bytes:
    if compression == "zlib":
        return zlib.compress(payload, level)
    if compression == "bz2":
        return bz2.compress(payload, level)
    return payload


def _decompress(stored: bytes, compression: str, what: str) -> bytes:
    try:
        if compression == "zlib":
            return zlib.decompress(stored)
        if compression == "bz2":
            return bz2.decompress(stored)
    except (zlib.error, OSError, ValueError) as exc:
        raise CorruptData(f"{what}: cannot decompress block ({exc})") from exc
    return stored


# ---------------------------------------------------------------------------
# Block payloads
# ---------------------------------------------------------------------------


def _f8(values: np.ndarray) -> bytes:
    return np.ascontiguousarray(values, dtype="<f8").tobytes()


class _Reader:
    """Sequential reader over one decompressed payload."""

    def __init__(self, payload: bytes, what: str) -> None:
        self._buf = payload
        self._pos = 0
        self._what = what

    def take(self, size: int) -> bytes:
        end = self._pos + size
        if end > len(self._buf):
            raise CorruptData(f"{self._what}: payload truncated (need {end} bytes, have {len(self._buf)})")
        out = self._buf[self._pos : end]
        self._pos = end
        return out

    def unpack(self, st: struct.Struct) -> tuple:
        return st.unpack(self.take(st.size))

    def array(self, count: int, dtype: str = "<f8") -> np.ndarray:
        itemsize = np.dtype(dtype).itemsize
        arr = np.frombuffer(self.take(count * itemsize), dtype=dtype)
        return arr.astype(np.float64 if dtype == "<f8" else np.int64)

    def done(self) -> None:
        if self._pos != len(self._buf):
            raise CorruptData(f"{self._what}: {len(self._buf) - self._pos} trailing bytes in payload")


def _subgrid_payload(sg: SubGrid) -> bytes:
    parts = [_SUBGRID_DIMS.pack(*sg.shape), np.asarray(sg.pids, dtype="<i4").tobytes()]
    parts.extend(_f8(axis.knots) for axis in sg.axes)
    parts.append(_f8(sg.values))
    return b"".join(parts)


def _parse_subgrid(payload: bytes, what: str) -> SubGrid:
    r = _Reader(payload, what)
    dims = r.unpack(_SUBGRID_DIMS)
    pids = tuple(int(p) for p in r.array(dims[0], "<i4"))
    knots = {name: r.array(n) for name, n in zip(AXIS_NAMES, dims[1:])}
    values = r.array(int(np.prod(dims)))
    r.done()
    try:
        return SubGrid(
            pids=pids,
            values=values.reshape(dims),
            **{name: Axis(name, knots[name]) for name in AXIS_NAMES},
        )
    except ValueError as exc:
        raise CorruptData(f"{what}: {exc}") from exc


def _coupling_payload(table: CouplingTable) -> bytes:
    parts = [_COUPLING_DIMS.pack(len(table.coupling), len(table.segments)), _f8(table.coupling.knots)]
    for seg in table.segments:
        parts.append(_U32.pack(len(seg.q2)))
        parts.append(_f8(seg.q2.knots))
        parts.append(_f8(seg.values))
    return b"".join(parts)


def _parse_coupling(payload: bytes, what: str) -> CouplingTable:
    r = _Reader(payload, what)
    n_coupling, n_segments = r.unpack(_COUPLING_DIMS)
    coupling = r.array(n_coupling)
    segments = []
    for _ in range(n_segments):
        (n_q2,) = r.unpack(_U32)
        q2 = r.array(n_q2)
        vals = r.array(n_coupling * n_q2).reshape(n_coupling, n_q2)
        segments.append((q2, vals))
    r.done()
    try:
        return CouplingTable(
            tuple(CouplingSegment(Axis(Q2, q2), vals) for q2, vals in segments),
            Axis(ALPHAS, coupling),
        )
    except ValueError as exc:
        raise CorruptData(f"{what}: {exc}") from exc


def _metadata_payload(meta: MetaData) -> bytes:
    items = meta.to_dict()
    parts = [_U32.pack(len(items))]
    for key, value in items.items():
        kb = key.encode("utf-8")
        vb = json.dumps(value, separators=(",", ":")).encode("utf-8")
        parts.extend((_U32.pack(len(kb)), kb, _U32.pack(len(vb)), vb))
    return b"".join(parts)


def _parse_metadata(payload: bytes) -> MetaData:
    r = _Reader(payload, "metadata block")
    (count,) = r.unpack(_U32)
    data = {}
    for _ in range(count):
        (klen,) = r.unpack(_U32)
        key = r.take(klen).decode("utf-8")
        (vlen,) = r.unpack(_U32)
        try:
            data[key] = json.loads(r.take(vlen).decode("utf-8"))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise CorruptData(f"metadata block: value of {key!r} is not valid JSON") from exc
    r.done()
    try:
        return MetaData.from_dict(data)
    except UnknownMetadataKey as exc:
        raise FormatError(f"metadata block: {exc.args[0]}") from exc
    except ValueError as exc:
        raise CorruptData(f"metadata block: {exc}") from exc


def _toc_size(gridset_shape: list[tuple[int, bool]]) -> int:
    size = _U32.size + 1 + _ENTRY.size
    for n_subgrids, _ in gridset_shape:
        size += _U32.size + 1 + _ENTRY.size + n_subgrids * _ENTRY.size
    return size


def _toc_payload(toc: TableOfContents) -> bytes:
    def opt(e: Entry | None) -> bytes:
        return b"\x00" + _ENTRY.pack(0, 0) if e is None else b"\x01" + _ENTRY.pack(*e)

    parts = [_U32.pack(len(toc.members)), opt(toc.coupling)]
    for m in toc.members:
        parts.append(_U32.pack(len(m.subgrids)))
        parts.append(opt(m.coupling))
        parts.extend(_ENTRY.pack(*e) for e in m.subgrids)
    return b"".join(parts)


def _parse_toc(payload: bytes) -> TableOfContents:
    r = _Reader(payload, "table of contents")

    def opt() -> Entry | None:
        flag = r.take(1)[0]
        e = Entry(*r.unpack(_ENTRY))
        return e if flag else None

    (n_members,) = r.unpack(_U32)
    toc = TableOfContents(coupling=opt())
    for _ in range(n_members):
        (n_subgrids,) = r.unpack(_U32)
        m = MemberToc(coupling=opt())
        m.subgrids = [Entry(*r.unpack(_ENTRY)) for _ in range(n_subgrids)]
        toc.members.append(m)
    r.done()
    return toc


# ---------------------------------------------------------------------------
# Header / prologue
# ---------------------------------------------------------------------------


def _header(compression: str) -> bytes:
    return struct.pack(HEADER_FORMAT, MAGIC, FORMAT_VERSION, ENDIAN_MARKER, COMPRESSION_IDS[compression])


def _read_prologue(src) -> Prologue:
    head = src.read_at(0, HEADER_SIZE)
    if len(head) != HEADER_SIZE:
        raise FormatError(f"file too short for header ({len(head)} < {HEADER_SIZE} bytes)")
    magic, version, marker, comp_id = struct.unpack(HEADER_FORMAT, head)
    if magic != MAGIC:
        raise FormatError(f"bad magic {magic!r}, expected {MAGIC!r}")
    if marker == _SWAPPED_MARKER:
        raise FormatError("byte order marker is swapped; file was not written little-endian")
    if marker != ENDIAN_MARKER:
        raise FormatError(f"bad byte order marker 0x{marker:04x}")
    if version > FORMAT_VERSION:
        raise UnsupportedVersion(f"format version {version} is newer than supported version {FORMAT_VERSION}")
    if version < 1:
        raise FormatError(f"invalid format version {version}")
    if comp_id not in COMPRESSION_NAMES:
        raise FormatError(f"unknown compression id {comp_id}")

    meta_stored, meta_span = _read_prefixed_frame(src, HEADER_SIZE, "metadata block")
    toc_stored, toc_span = _read_prefixed_frame(src, meta_span.offset + meta_span.length, "table of contents")
    return Prologue(
        version=version,
        compression=COMPRESSION_NAMES[comp_id],
        metadata=_parse_metadata(meta_stored),
        toc=_parse_toc(toc_stored),
        metadata_span=meta_span,
        toc_span=toc_span,
    )


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------


def encode(gridset: GridSet, config: CodecConfig | None = None) -> bytes:
    """Serialize ``gridset`` into the block-compressed binary layout."""
    cfg = config or CodecConfig()
    meta_frame = _frame(_metadata_payload(gridset.metadata))

    shape = [(len(m.subgrids), m.coupling is not None) for m in gridset.members]
    toc_frame_size = _LEN.size + _toc_size(shape) + CHECKSUM_SIZE
    offset = HEADER_SIZE + len(meta_frame) + toc_frame_size

    blocks: list[bytes] = []
    toc = TableOfContents()

    def add(payload: bytes) -> Entry:
        nonlocal offset
        framed = _frame(_compress(payload, cfg.compression, cfg.level))
        entry = Entry(offset, len(framed))
        blocks.append(framed)
        offset += len(framed)
        return entry

    for member in gridset.members:
        toc.members.append(MemberToc(subgrids=[add(_subgrid_payload(sg)) for sg in member.subgrids]))
    for member, mtoc in zip(gridset.members, toc.members):
        if member.coupling is not None:
            mtoc.coupling = add(_coupling_payload(member.coupling))
    if gridset.coupling is not None:
        toc.coupling = add(_coupling_payload(gridset.coupling))

    toc_frame = _frame(_toc_payload(toc))
    if len(toc_frame) != toc_frame_size:
        raise AssertionError("table of contents size changed during encoding")
    logger.debug(
        "encoded %d members, %d blocks, %d bytes (%s)",
        len(gridset.members),
        len(blocks),
        offset,
        cfg.compression,
    )
    return b"".join([_header(cfg.compression), meta_frame, toc_frame, *blocks])


def _decode_member(src, prologue: Prologue, index: int) -> Member:
    mtoc = prologue.toc.members[index]
    subgrids = tuple(
        _parse_subgrid(
            _decompress(_read_frame(src, e, f"member {index} subgrid {s}"), prologue.compression, f"member {index} subgrid {s}"),
            f"member {index} subgrid {s}",
        )
        for s, e in enumerate(mtoc.subgrids)
    )
    coupling = None
    if mtoc.coupling is not None:
        what = f"member {index} coupling table"
        coupling = _parse_coupling(_decompress(_read_frame(src, mtoc.coupling, what), prologue.compression, what), what)
    try:
        return Member(subgrids, coupling)
    except ValueError as exc:
        raise CorruptData(f"member {index}: {exc}") from exc


def decode(source: Source, config: CodecConfig | None = None) -> GridSet:
    """Decode a whole grid set, inflating one block at a time."""
    cfg = config or CodecConfig()
    with _open_source(source) as src:
        prologue = _read_prologue(src)
        n = len(prologue.toc.members)
        if cfg.workers > 1 and n > 1:
            with ThreadPoolExecutor(max_workers=cfg.workers) as pool:
                members = list(pool.map(lambda i: _decode_member(src, prologue, i), range(n)))
        else:
            members = [_decode_member(src, prologue, i) for i in range(n)]
        coupling = None
        if prologue.toc.coupling is not None:
            what = "set coupling table"
            stored = _read_frame(src, prologue.toc.coupling, what)
            coupling = _parse_coupling(_decompress(stored, prologue.compression, what), what)
    logger.debug("decoded %d members (format v%d, %s)", n, prologue.version, prologue.compression)
    try:
        return GridSet(tuple(members), prologue.metadata, coupling)
    except ValueError as exc:
        raise CorruptData(str(exc)) from exc


def decode_partial(source: Source, member: int, subgrid: int) -> SubGrid:
    """Decode a single subgrid without touching any other block."""
    with _open_source(source) as src:
        prologue = _read_prologue(src)
        members = prologue.toc.members
        if not (0 <= member < len(members)):
            raise IndexError(f"member index {member} out of range (file has {len(members)})")
        entries = members[member].subgrids
        if not (0 <= subgrid < len(entries)):
            raise IndexError(f"subgrid index {subgrid} out of range (member {member} has {len(entries)})")
        what = f"member {member} subgrid {subgrid}"
        stored = _read_frame(src, entries[subgrid], what)
        return _parse_subgrid(_decompress(stored, prologue.compression, what), what)


def read_prologue(source: Source) -> Prologue:
    """Header, metadata and table of contents only."""
    with _open_source(source) as src:
        return _read_prologue(src)


def read_metadata(source: Source) -> MetaData:
    return read_prologue(source).metadata


def _rewritten_prologue(prologue: Prologue, key: str, value) -> tuple[bytes, int]:
    meta = prologue.metadata.replace_key(key, value)
    meta_frame = _frame(_metadata_payload(meta))
    delta = len(meta_frame) - prologue.metadata_span.length
    toc_frame = _frame(_toc_payload(prologue.toc.shifted(delta)))
    logger.info("metadata %s updated; block offsets shifted by %+d bytes", key, delta)
    return _header(prologue.compression) + meta_frame + toc_frame, delta


def update_metadata(source: Source, key: str, value) -> bytes:
    """Return the file with ``key`` rewritten; subgrid blocks are copied verbatim."""
    with _open_source(source) as src:
        prologue = _read_prologue(src)
        prefix, _ = _rewritten_prologue(prologue, key, value)
        body = src.read_at(prologue.body_start, src.size() - prologue.body_start)
    return prefix + body


def update_metadata_file(path: str | os.PathLike, key: str, value) -> None:
    """In-place-equivalent metadata update of a file on disk (atomic replace)."""
    path = Path(path)
    tmp = path.with_name(path.name + ".tmp")
    with open(path, "rb") as fh:
        prologue = _read_prologue(_FileSource(fh))
        prefix, _ = _rewritten_prologue(prologue, key, value)
        fh.seek(prologue.body_start)
        try:
            with open(tmp, "wb") as out:
                out.write(prefix)
                shutil.copyfileobj(fh, out)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
    tmp.replace(path)


def load(source: Source, config: CodecConfig | None = None) -> GridSet:
    return decode(source, config)


def save(gridset: GridSet, sink: str | os.PathLike | BinaryIO, config: CodecConfig | None = None) -> None:
    """Write ``gridset`` to a path (atomically) or a writable binary stream."""
    data = encode(gridset, config)
    if isinstance(sink, (str, os.PathLike)):
        path = Path(sink)
        tmp = path.with_name(path.name + ".tmp")
        try:
            with open(tmp, "wb") as fh:
                fh.write(data)
        except BaseException:
            tmp.unlink(missing_ok=True)
            raise
        tmp.replace(path)
    else:
        sink.write(data)
