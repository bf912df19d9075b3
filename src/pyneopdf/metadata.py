"""Set-level metadata: the key/value header stored in every grid file.

The field set mirrors the LHAPDF ``.info`` vocabulary so that converted sets
keep their descriptive keys. The schema is closed: only the keys declared
here may be read from a file or updated in place.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields as dataclass_fields, replace
from enum import Enum
import json
import re
from typing import Any

from .errors import UnknownMetadataKey


class SetType(Enum):
    SPACE_LIKE = "spacelike"
    TIME_LIKE = "timelike"


class InterpolatorType(Enum):
    """Interpolation strategy along x and Q2 (and the extra axes for LogFourCubic)."""

    BILINEAR = "Bilinear"
    LOG_BILINEAR = "LogBilinear"
    LOG_BICUBIC = "LogBicubic"
    LOG_TRICUBIC = "LogTricubic"
    INTERP_ND_LINEAR = "InterpNDLinear"
    LOG_CHEBYSHEV = "LogChebyshev"
    LOG_FOUR_CUBIC = "LogFourCubic"


def _key(name: str) -> dict[str, str]:
    return {"key": name}


@dataclass(frozen=True)
class MetaData:
    """Descriptive header of a grid set."""

    set_desc: str = field(default="", metadata=_key("SetDesc"))
    set_index: int = field(default=0, metadata=_key("SetIndex"))
    num_members: int = field(default=1, metadata=_key("NumMembers"))
    x_min: float = field(default=0.0, metadata=_key("XMin"))
    x_max: float = field(default=1.0, metadata=_key("XMax"))
    q_min: float = field(default=0.0, metadata=_key("QMin"))
    q_max: float = field(default=0.0, metadata=_key("QMax"))
    flavors: tuple[int, ...] = field(default=(), metadata=_key("Flavors"))
    format: str = field(default="neopdf", metadata=_key("Format"))
    alphas_q_values: tuple[float, ...] = field(default=(), metadata=_key("AlphaS_Qs"))
    alphas_vals: tuple[float, ...] = field(default=(), metadata=_key("AlphaS_Vals"))
    polarised: bool = field(default=False, metadata=_key("Polarized"))
    set_type: SetType = field(default=SetType.SPACE_LIKE, metadata=_key("SetType"))
    interpolator_type: InterpolatorType = field(default=InterpolatorType.LOG_BICUBIC, metadata=_key("InterpolatorType"))
    error_type: str = field(default="", metadata=_key("ErrorType"))
    hadron_pid: int = field(default=2212, metadata=_key("Particle"))
    git_version: str = field(default="", metadata=_key("GitVersion"))
    code_version: str = field(default="", metadata=_key("CodeVersion"))
    flavor_scheme: str = field(default="", metadata=_key("FlavorScheme"))
    order_qcd: int = field(default=0, metadata=_key("OrderQCD"))
    alphas_order_qcd: int = field(default=0, metadata=_key("AlphaS_OrderQCD"))
    m_w: float = field(default=80.352, metadata=_key("MW"))
    m_z: float = field(default=91.1876, metadata=_key("MZ"))
    m_up: float = field(default=0.0, metadata=_key("MUp"))
    m_down: float = field(default=0.0, metadata=_key("MDown"))
    m_strange: float = field(default=0.0, metadata=_key("MStrange"))
    m_charm: float = field(default=1.51, metadata=_key("MCharm"))
    m_bottom: float = field(default=4.92, metadata=_key("MBottom"))
    m_top: float = field(default=172.5, metadata=_key("MTop"))
    alphas_type: str = field(default="ipol", metadata=_key("AlphaS_Type"))
    number_flavors: int = field(default=5, metadata=_key("NumFlavors"))

    def __post_init__(self) -> None:
        object.__setattr__(self, "flavors", tuple(int(v) for v in self.flavors))
        object.__setattr__(self, "alphas_q_values", tuple(float(v) for v in self.alphas_q_values))
        object.__setattr__(self, "alphas_vals", tuple(float(v) for v in self.alphas_vals))
        if len(self.alphas_q_values) != len(self.alphas_vals):
            raise ValueError("AlphaS_Qs and AlphaS_Vals must have the same length")
        if not isinstance(self.set_type, SetType):
            object.__setattr__(self, "set_type", SetType(self.set_type))
        if not isinstance(self.interpolator_type, InterpolatorType):
            object.__setattr__(self, "interpolator_type", InterpolatorType(self.interpolator_type))

    @classmethod
    def keys(cls) -> tuple[str, ...]:
        return tuple(f.metadata["key"] for f in dataclass_fields(cls))

    def to_dict(self) -> dict[str, Any]:
        """Plain JSON-compatible mapping keyed by file keys."""
        out: dict[str, Any] = {}
        for f in dataclass_fields(self):
            value = getattr(self, f.name)
            if isinstance(value, Enum):
                value = value.value
            elif isinstance(value, tuple):
                value = list(value)
            out[f.metadata["key"]] = value
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "MetaData":
        by_key = {f.metadata["key"]: f for f in dataclass_fields(cls)}
        kwargs = {}
        for key, value in data.items():
            f = by_key.get(key)
            if f is None:
                raise UnknownMetadataKey(f"unknown metadata key {key!r}; expected one of {sorted(by_key)}")
            kwargs[f.name] = _coerce(f.name, f.default, value)
        return cls(**kwargs)

    def to_strings(self) -> dict[str, str]:
        out = {}
        for key, value in self.to_dict().items():
            out[key] = value if isinstance(value, str) else json.dumps(value)
        return out

    def replace_key(self, key: str, value: Any) -> "MetaData":
        """Return a copy with ``key`` set to ``value`` (text values are parsed)."""
        for f in dataclass_fields(self):
            if f.metadata["key"] == key:
                return replace(self, **{f.name: _coerce(f.name, f.default, value)})
        raise UnknownMetadataKey(f"unknown metadata key {key!r}; expected one of {sorted(self.keys())}")

    def __str__(self) -> str:
        lines = [
            f"Set Description: {self.set_desc}",
            f"Set Index: {self.set_index}",
            f"Number of Members: {self.num_members}",
            f"XMin: {self.x_min}",
            f"XMax: {self.x_max}",
            f"QMin: {self.q_min}",
            f"QMax: {self.q_max}",
            f"Flavors: {list(self.flavors)}",
            f"Format: {self.format}",
            f"AlphaS Q Values: {list(self.alphas_q_values)}",
            f"AlphaS Values: {list(self.alphas_vals)}",
            f"Polarized: {self.polarised}",
            f"Set Type: {self.set_type.value}",
            f"Interpolator Type: {self.interpolator_type.value}",
            f"Error Type: {self.error_type}",
            f"Particle: {self.hadron_pid}",
            f"Flavor Scheme: {self.flavor_scheme}",
            f"Order QCD: {self.order_qcd}",
            f"AlphaS Order QCD: {self.alphas_order_qcd}",
            f"MW: {self.m_w}",
            f"MZ: {self.m_z}",
            f"MUp: {self.m_up}",
            f"MDown: {self.m_down}",
            f"MStrange: {self.m_strange}",
            f"MCharm: {self.m_charm}",
            f"MBottom: {self.m_bottom}",
            f"MTop: {self.m_top}",
            f"AlphaS Type: {self.alphas_type}",
            f"Number of PDF flavors: {self.number_flavors}",
        ]
        return "\n".join(lines)


def _coerce(name: str, default: Any, value: Any) -> Any:
    """Convert ``value`` to the type of the field's default, parsing text."""
    if isinstance(default, Enum):
        enum_cls = type(default)
        if isinstance(value, enum_cls):
            return value
        text = str(value).strip()
        for member in enum_cls:
            if text.lower() in (member.value.lower(), member.name.lower()):
                return member
        raise ValueError(f"{name} must be one of: {', '.join(m.value for m in enum_cls)}")
    if isinstance(default, str):
        return str(value)
    if isinstance(value, str):
        text = value.strip()
        if isinstance(default, bool):
            lowered = text.lower()
            if lowered in {"true", "1", "yes"}:
                return True
            if lowered in {"false", "0", "no"}:
                return False
            raise ValueError(f"{name} must be a boolean, got {value!r}")
        try:
            if isinstance(default, tuple):
                value = [float(p) for p in re.split(r"[\s,]+", text.strip("[]() ")) if p]
            else:
                value = float(text)
        except ValueError as exc:
            raise ValueError(f"{name} must be numeric, got {value!r}") from exc
    if isinstance(default, bool):
        return bool(value)
    if isinstance(default, int):
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"{name} must be an integer, got {value!r}")
        return int(value)
    if isinstance(default, float):
        return float(value)
    if isinstance(default, tuple):
        return tuple(value)
    return value
