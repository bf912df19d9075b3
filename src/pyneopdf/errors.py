"""Exception hierarchy for grid loading, interpolation and combination."""

from __future__ import annotations


class GridError(Exception):
    """Base class for all ``pyneopdf`` failures."""


class FormatError(GridError, ValueError):
    """Unreadable header: wrong magic, endianness marker or truncated prologue."""


class UnsupportedVersion(FormatError):
    """File written by a newer format revision than this reader understands."""


class CorruptData(GridError, ValueError):
    """Checksum or length mismatch inside a block."""


class OutOfDomain(GridError, ValueError):
    """Query coordinate outside the tabulated range with extrapolation disabled."""


class IncompatibleDomain(GridError, ValueError):
    """Grid sets to combine do not share axes or parton ids."""


class DuplicateAxisValue(GridError, ValueError):
    """Two grid sets map to the same combined axis value."""


class MemberCountMismatch(GridError, ValueError):
    """Grid sets to combine have a different number of members."""


class UnknownMetadataKey(GridError, KeyError):
    """Metadata update references a key outside the closed schema."""


class MissingCouplingTable(GridError, LookupError):
    """``alphas`` requested from a grid set that carries no coupling table."""


class UnknownParton(GridError, KeyError):
    """Parton id not tabulated in the requested subgrid."""
