"""Curve models and the shared shape accumulator.

A :class:`SegmentedShape` owns a :class:`PointBuffer` and the best curve
fitted through it.  Curve-family specifics (fitting, post-fit filters and
the command terms) live in a solver object, so arcs and splines share one
accumulator instead of subclassing it.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Optional, Protocol, Sequence, Union

from ...config.settings import ShapeSettings
from ...gcode.gcode_writer import Term, format_command, predict_command_length
from ..point import PrinterPoint
from .buffer import PointBuffer
from .utils import greater_than_or_equal, is_equal, is_zero


@dataclass(frozen=True)
class Arc:
    """A fitted circular arc from ``start_point`` to ``end_point``."""
    start_point: PrinterPoint
    end_point: PrinterPoint
    center_x: float
    center_y: float
    radius: float
    angle_radians: float     # signed sweep, negative is clockwise
    length: float

    @property
    def i(self) -> float:
        """Centre offset from the start point along X."""
        return self.center_x - self.start_point.x

    @property
    def j(self) -> float:
        """Centre offset from the start point along Y."""
        return self.center_y - self.start_point.y

    @property
    def is_clockwise(self) -> bool:
        return self.angle_radians < 0


@dataclass(frozen=True)
class Spline:
    """A fitted cubic Bezier from ``start_point`` to ``end_point``.

    ``i, j`` offset the first control point from the start point and
    ``p, q`` offset the second control point from the end point.
    """
    start_point: PrinterPoint
    end_point: PrinterPoint
    i: float
    j: float
    p: float
    q: float
    length: float


Curve = Union[Arc, Spline]


class CurveSolver(Protocol):
    """What a curve family provides to :class:`SegmentedShape`."""

    name: str

    def fit(
        self,
        points: PointBuffer,
        original_length: float,
        settings: ShapeSettings,
    ) -> Optional[Curve]:
        ...

    def needs_firmware_compensation(
        self,
        curve: Curve,
        original_length: float,
        settings: ShapeSettings,
    ) -> bool:
        ...

    def is_degenerate(self, curve: Curve, settings: ShapeSettings) -> bool:
        ...

    def gcode_terms(
        self,
        curve: Curve,
        e_relative: float,
        settings: ShapeSettings,
    ) -> tuple[str, list[Term]]:
        ...


@dataclass(frozen=True)
class ShapeState:
    """Everything an attempt may change besides the buffer itself."""
    curve: Optional[Curve] = None
    e_relative: float = 0.0
    is_shape: bool = False


class SegmentedShape:
    """Greedy accumulator that grows one curve point by point.

    Parameters
    ----------
    solver:
        Curve family (:class:`~curvewelder.core.shapes.arc.ArcSolver` or
        :class:`~curvewelder.core.shapes.spline.SplineSolver`).
    settings:
        Shape settings; defaults are used when omitted.
    """

    def __init__(self, solver: CurveSolver, settings: Optional[ShapeSettings] = None):
        self.settings = settings or ShapeSettings()
        self._solver = solver
        self._points = PointBuffer()
        self._state = ShapeState()
        # Statistics, never rolled back
        self.num_gcode_length_exceptions = 0
        self.num_firmware_compensations = 0

    # ------------------------------------------------------------------
    # Adding points
    # ------------------------------------------------------------------

    def try_add_point(self, p: PrinterPoint) -> bool:
        """Add *p* to the shape if the shape can still be fitted with it.

        Returns False and leaves the shape untouched when the point is
        rejected.
        """
        s = self.settings
        if len(self._points) >= s.max_segments:
            return False
        if self._points:
            previous = self._points[-1]
            if is_zero(p.distance):
                return False
            if not s.allow_3d_shapes and not is_equal(previous.z, p.z, s.xyz_tolerance):
                return False

        # Not enough points for a fit yet, just buffer it
        if len(self._points) < s.min_segments - 1:
            e_relative = self._extrusion_after(p)
            self._points.append(p)
            self._state = replace(self._state, e_relative=e_relative)
            return True

        return self._try_fit(p)

    def _try_fit(self, p: PrinterPoint) -> bool:
        s = self.settings
        e_relative = self._extrusion_after(p)
        with self._points.tentative(p) as attempt:
            original_length = self._points.original_length
            curve = self._solver.fit(self._points, original_length, s)
            if curve is None:
                return False

            candidate = ShapeState(curve=curve, e_relative=e_relative, is_shape=True)
            rejected = False
            if s.max_gcode_length > 0 and self._predict_length(candidate) > s.max_gcode_length:
                rejected = True
                self.num_gcode_length_exceptions += 1
            if self._solver.needs_firmware_compensation(curve, original_length, s):
                rejected = True
                self.num_firmware_compensations += 1
            if not rejected and self._solver.is_degenerate(curve, s):
                rejected = True
            if rejected:
                return False

            attempt.commit()
            self._state = candidate
            return True

    def _extrusion_after(self, p: PrinterPoint) -> float:
        # The anchor's extrusion belongs to the previous command
        if not self._points:
            return self._state.e_relative
        return self._state.e_relative + p.e_relative

    # ------------------------------------------------------------------
    # Reading the shape
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._solver.name

    @property
    def is_shape(self) -> bool:
        """True once at least one fit has been accepted."""
        return self._state.is_shape

    @property
    def curve(self) -> Optional[Curve]:
        return self._state.curve

    @property
    def length(self) -> float:
        """Length of the accepted curve (0 before the first fit)."""
        return self._state.curve.length if self._state.curve is not None else 0.0

    @property
    def e_relative(self) -> float:
        """Extruder travel summed over every point after the anchor."""
        return self._state.e_relative

    @property
    def original_length(self) -> float:
        """Length of the buffered straight-line path."""
        return self._points.original_length

    @property
    def points(self) -> Sequence[PrinterPoint]:
        return tuple(self._points)

    @property
    def max_radius(self) -> float:
        """Effective radius ceiling (already clamped by the settings)."""
        return self.settings.max_radius_mm

    def get_gcode(self) -> str:
        """Command for the current curve.

        Raises
        ------
        RuntimeError:
            If no fit has been accepted yet.
        """
        if self._state.curve is None or not self._state.is_shape:
            raise RuntimeError(f"No {self.name} has been fitted")
        keyword, terms = self._solver.gcode_terms(
            self._state.curve, self._state.e_relative, self.settings,
        )
        return format_command(keyword, terms)

    def get_gcode_length(self) -> int:
        """Length of :meth:`get_gcode` output, computed without formatting."""
        if self._state.curve is None:
            return 0
        return self._predict_length(self._state)

    def _predict_length(self, state: ShapeState) -> int:
        keyword, terms = self._solver.gcode_terms(
            state.curve, state.e_relative, self.settings,
        )
        return predict_command_length(keyword, terms)


# ----------------------------------------------------------------------
# Optional words shared by every curve family
# ----------------------------------------------------------------------


def optional_z(curve: Curve, settings: ShapeSettings) -> list[Term]:
    start, end = curve.start_point, curve.end_point
    if settings.allow_3d_shapes and not is_equal(start.z, end.z, settings.xyz_tolerance):
        return [Term("Z", end.z, settings.xyz_precision)]
    return []


def optional_e_and_f(curve: Curve, e_relative: float, settings: ShapeSettings) -> list[Term]:
    """E when the shape extrudes, F when the feed rate changed."""
    terms: list[Term] = []
    end = curve.end_point
    if e_relative != 0:
        e = e_relative if end.is_extruder_relative else end.e_offset
        terms.append(Term("E", e, settings.e_precision))
    f = 0.0 if curve.start_point.f == end.f else end.f
    if greater_than_or_equal(f, 1):
        terms.append(Term("F", f, 0))
    return terms
