"""Command line front end: ``python -m pyneopdf {read,compute,write} ...``."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import Sequence

from . import api, codec
from .config import BACKENDS, EXTRAPOLATION_POLICIES, CodecConfig, InterpolationConfig
from .constants import ALPHAS, COMPRESSION_IDS, KT, NUCLEONS, Q2, X
from .errors import GridError
from .interpolation_api import GridInterpolator

logger = logging.getLogger(__name__)


def _add_grid_args(p: argparse.ArgumentParser, *, subgrid: bool = False) -> None:
    p.add_argument("path", help="Grid file")
    p.add_argument("--member", type=int, default=0)
    if subgrid:
        p.add_argument("--subgrid", type=int, default=0)


def _add_interp_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--pid", type=int, required=True, help="PDG parton id (21 or 0 for the gluon)")
    p.add_argument("--x", type=float, required=True)
    p.add_argument("--q2", type=float, required=True)
    p.add_argument("--nucleons", type=float, default=None, help="Nucleon number A for combined nuclear sets")
    p.add_argument("--alphas", type=float, default=None, help="alpha_s(MZ) for sets combined along the coupling")
    p.add_argument("--extrapolation", choices=EXTRAPOLATION_POLICIES, default="fail")
    p.add_argument("--backend", choices=BACKENDS, default="auto")


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(prog="pyneopdf", description="Inspect, evaluate and write compressed PDF grid sets.")
    ap.add_argument("-v", "--verbose", action="count", default=0)
    cmd = ap.add_subparsers(dest="command", required=True)

    read = cmd.add_parser("read", help="Inspect a grid file").add_subparsers(dest="action", required=True)
    _add_grid_args(read.add_parser("metadata"))
    _add_grid_args(read.add_parser("num-subgrids"))
    _add_grid_args(read.add_parser("subgrid-info"), subgrid=True)
    p = read.add_parser("subgrid", help="Print the (x, q2) table of one parton")
    _add_grid_args(p, subgrid=True)
    p.add_argument("--pid", type=int, required=True)
    p.add_argument("--nucleon-index", type=int, default=0)
    p.add_argument("--alphas-index", type=int, default=0)
    p.add_argument("--kt-index", type=int, default=0)
    _add_grid_args(read.add_parser("git-version"))

    compute = cmd.add_parser("compute", help="Evaluate a grid file").add_subparsers(dest="action", required=True)
    p = compute.add_parser("xfx_q2")
    _add_grid_args(p)
    _add_interp_args(p)
    p = compute.add_parser("xfx_q2_kt")
    _add_grid_args(p)
    _add_interp_args(p)
    p.add_argument("--kt", type=float, required=True)
    p = compute.add_parser("alphas_q2")
    _add_grid_args(p)
    p.add_argument("--q2", type=float, required=True)
    p.add_argument("--alphas", type=float, default=None, help="Coupling value for combined sets")
    p.add_argument("--extrapolation", choices=EXTRAPOLATION_POLICIES, default="fail")

    write = cmd.add_parser("write", help="Create or modify grid files").add_subparsers(dest="action", required=True)
    p = write.add_parser("metadata", help="Replace one metadata key")
    p.add_argument("path")
    p.add_argument("--key", required=True)
    p.add_argument("--value", required=True)
    p.add_argument("--output", default=None, help="Write to a new file instead of updating in place")
    for name, what in (("combine-npdfs", "nucleon number"), ("combine-alphas", "coupling value")):
        p = write.add_parser(name, help=f"Combine sets along the {what} axis")
        p.add_argument("inputs", nargs="+")
        p.add_argument("--output", "-o", required=True)
        p.add_argument("--values", type=float, nargs="+", default=None, help=f"Explicit {what} per input")
        p.add_argument("--compression", choices=tuple(COMPRESSION_IDS), default="zlib")
    return ap


def _read(args) -> None:
    # Only the prologue and the requested block are decoded.
    if args.action in ("subgrid-info", "subgrid"):
        sg = codec.decode_partial(args.path, args.member, args.subgrid)
        if args.action == "subgrid-info":
            for name, dom in api.subgrid_domains(sg).items():
                print(f"{name}: [{dom.min:.6e}, {dom.max:.6e}] ({dom.size} knots)")
            print(f"pids: {list(sg.pids)}")
            return
        table = sg.slice2d(args.pid, args.nucleon_index, args.alphas_index, args.kt_index)
        print("x \\ q2 " + " ".join(f"{q:.6e}" for q in sg.q2.knots))
        for x, row in zip(sg.x.knots, table):
            print(f"{x:.6e} " + " ".join(f"{v:.6e}" for v in row))
        return
    prologue = codec.read_prologue(args.path)
    if args.action == "metadata":
        print(prologue.metadata)
    elif args.action == "num-subgrids":
        members = prologue.toc.members
        if not (0 <= args.member < len(members)):
            raise IndexError(f"member index {args.member} out of range (file has {len(members)})")
        print(len(members[args.member].subgrids))
    elif args.action == "git-version":
        print(api.version_info(prologue.metadata))


def _point(args) -> dict[str, float]:
    point = {X: args.x, Q2: args.q2}
    for name in (KT, NUCLEONS, ALPHAS):
        value = getattr(args, name, None)
        if value is not None:
            point[name] = value
    return point


def _compute(args) -> None:
    gridset = api.load(args.path)
    backend = getattr(args, "backend", "numpy")
    interp = GridInterpolator(InterpolationConfig(extrapolation=args.extrapolation, backend=backend))
    if args.action == "alphas_q2":
        value = api.alphas_q2(gridset, args.member, args.q2, args.alphas, interp)
    else:
        value = api.xfx_nd(gridset, args.member, args.pid, _point(args), interp)
    print(f"{value:.10e}")


def _write(args) -> None:
    if args.action == "metadata":
        if args.output is None:
            api.update_metadata_file(args.path, args.key, args.value)
        else:
            with open(args.output, "wb") as fh:
                fh.write(api.update_metadata(args.path, args.key, args.value))
        return
    gridsets = [api.load(path) for path in args.inputs]
    if args.action == "combine-npdfs":
        combined = api.combine_nucleon(gridsets, args.values)
    else:
        combined = api.combine_coupling(gridsets, args.values)
    api.save(combined, args.output, CodecConfig(compression=args.compression))
    logger.info("wrote %s", args.output)


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    level = logging.WARNING - 10 * min(args.verbose, 2)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
    handlers = {"read": _read, "compute": _compute, "write": _write}
    try:
        handlers[args.command](args)
    except (GridError, IndexError, OSError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
