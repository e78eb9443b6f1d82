"""Shape and welder settings (optionally persisted to disk)."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass, field
from enum import Enum
from pathlib import Path

from . import defaults

logger = logging.getLogger(__name__)


class CurveType(Enum):
    ARC = "arc"
    SPLINE = "spline"


@dataclass(frozen=True)
class ShapeSettings:
    """Parameters shared by every shape accumulator.

    Values are validated once in ``__post_init__`` and the instance is
    frozen; derive changed settings with :func:`dataclasses.replace`.
    A ``max_radius_mm`` above
    :data:`~curvewelder.config.defaults.DEFAULT_MAX_RADIUS_MM` is lowered to that
    ceiling without raising; check ``radius_was_clamped`` to detect it.
    """

    allow_3d_shapes: bool = defaults.DEFAULT_ALLOW_3D_SHAPES
    min_segments: int = defaults.DEFAULT_MIN_SEGMENTS
    max_segments: int = defaults.DEFAULT_MAX_SEGMENTS
    mm_per_segment: float = defaults.DEFAULT_MM_PER_SEGMENT
    resolution_mm: float = defaults.DEFAULT_RESOLUTION_MM
    path_tolerance_percent: float = defaults.DEFAULT_PATH_TOLERANCE_PERCENT
    max_gcode_length: int = defaults.DEFAULT_MAX_GCODE_LENGTH
    xyz_precision: int = defaults.DEFAULT_XYZ_PRECISION
    e_precision: int = defaults.DEFAULT_E_PRECISION
    max_radius_mm: float = defaults.DEFAULT_MAX_RADIUS_MM
    radius_was_clamped: bool = field(default=False, init=False, compare=False)

    def __post_init__(self) -> None:
        for name in ("min_segments", "max_segments", "max_gcode_length"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        for name in ("mm_per_segment", "resolution_mm", "path_tolerance_percent"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.max_radius_mm <= 0:
            raise ValueError("max_radius_mm must be positive")

        if self.max_radius_mm > defaults.DEFAULT_MAX_RADIUS_MM:
            logger.debug(
                "max_radius_mm %.3f above ceiling, using %.3f",
                self.max_radius_mm, defaults.DEFAULT_MAX_RADIUS_MM,
            )
            object.__setattr__(self, "max_radius_mm", defaults.DEFAULT_MAX_RADIUS_MM)
            object.__setattr__(self, "radius_was_clamped", True)

        object.__setattr__(self, "xyz_precision", _clamp_precision(self.xyz_precision))
        object.__setattr__(self, "e_precision", _clamp_precision(self.e_precision))
        if self.max_segments < self.min_segments:
            object.__setattr__(self, "max_segments", self.min_segments)

    @property
    def xyz_tolerance(self) -> float:
        """Smallest positional difference visible at the output precision."""
        return 10.0 ** -self.xyz_precision

    def to_dict(self) -> dict:
        d = asdict(self)
        d.pop("radius_was_clamped")
        return d

    @classmethod
    def from_dict(cls, d: dict) -> "ShapeSettings":
        return cls(**{k: v for k, v in d.items() if k in _init_fields(cls)})


@dataclass
class WelderSettings:
    """Pipeline options on top of the shape settings."""

    shape: ShapeSettings = field(default_factory=ShapeSettings)
    curve_type: CurveType = CurveType.ARC
    allow_travel: bool = False
    extrusion_rate_variance_percent: float = (
        defaults.DEFAULT_EXTRUSION_RATE_VARIANCE_PERCENT
    )
    g90_influences_extruder: bool = False

    def to_dict(self) -> dict:
        return {
            "shape": self.shape.to_dict(),
            "curve_type": self.curve_type.value,
            "allow_travel": self.allow_travel,
            "extrusion_rate_variance_percent": self.extrusion_rate_variance_percent,
            "g90_influences_extruder": self.g90_influences_extruder,
        }

    @classmethod
    def from_dict(cls, d: dict) -> "WelderSettings":
        d = dict(d)
        shape = ShapeSettings.from_dict(d.pop("shape", {}))
        if "curve_type" in d:
            d["curve_type"] = CurveType(d["curve_type"])
        return cls(shape=shape, **{k: v for k, v in d.items() if k in _init_fields(cls)})

    def save(self, path: Path) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(self.to_dict(), indent=2))

    @classmethod
    def load(cls, path: Path) -> "WelderSettings":
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Settings file not found: {path}")
        return cls.from_dict(json.loads(path.read_text()))


def _clamp_precision(value: int) -> int:
    return max(defaults.MIN_PRECISION, min(defaults.MAX_PRECISION, int(value)))


def _init_fields(cls) -> set[str]:
    return {
        name for name, f in cls.__dataclass_fields__.items()
        if f.init and name != "shape"
    }
