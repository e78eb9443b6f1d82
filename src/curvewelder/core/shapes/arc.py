"""Circular arc fitting (G2/G3).

Algorithm
---------
1. Fit a circle whose centre lies on the perpendicular bisector of the first
   and last point, minimising the algebraic residual
   ``|p - c|^2 - r^2`` of every buffered point.  Both endpoints lie on the
   circle exactly, so the emitted I/J agree with the emitted end point.
2. Reject the circle when its radius exceeds the ceiling, or any point or
   segment midpoint strays more than ``resolution_mm`` from it.
3. Sum the signed angle of every segment about the centre to get the sweep;
   a path that reverses direction or wraps a full turn is not an arc.
4. Compare the arc length with the original polyline length.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np

from ...config.defaults import ZERO_TOLERANCE
from ...config.settings import ShapeSettings
from ...gcode.gcode_writer import Term
from .base import Arc, SegmentedShape, optional_e_and_f, optional_z
from .buffer import PointBuffer
from .utils import firmware_segment_count, is_over_z_deviation, is_zero


def fit_circle(xy: np.ndarray, max_radius: float) -> Optional[tuple[float, float, float]]:
    """Return ``(cx, cy, r)`` through the first and last row of *xy*.

    Returns None for collinear points, a zero-length chord, or a radius
    above *max_radius*.
    """
    if len(xy) < 3:
        return None
    origin = xy[0]
    local = xy - origin          # start point at (0, 0)
    chord = local[-1]
    chord_length = math.hypot(chord[0], chord[1])
    if chord_length < ZERO_TOLERANCE:
        return None

    mid = chord / 2.0
    normal = np.array([-chord[1], chord[0]]) / chord_length

    # |p - c|^2 - |c|^2 with c = mid + t * normal is a + b * t
    heights = local @ normal
    if np.max(np.abs(heights)) < ZERO_TOLERANCE:
        return None
    a = np.einsum("ij,ij->i", local, local) - 2.0 * (local @ mid)
    b = -2.0 * heights
    t = -float(a @ b) / float(b @ b)

    center = mid + t * normal
    radius = math.hypot(center[0], center[1])
    if not math.isfinite(radius) or radius > max_radius:
        return None
    return float(center[0] + origin[0]), float(center[1] + origin[1]), radius


def is_over_deviation(
    xyz: np.ndarray,
    center: tuple[float, float],
    radius: float,
    resolution_mm: float,
    allow_3d: bool,
) -> bool:
    """True when a point or a segment midpoint is too far from the circle."""
    xy = xyz[:, :2]
    c = np.asarray(center)
    point_error = np.abs(np.hypot(*(xy - c).T) - radius)
    if np.any(point_error > resolution_mm):
        return True
    midpoints = (xy[:-1] + xy[1:]) / 2.0
    mid_error = np.abs(np.hypot(*(midpoints - c).T) - radius)
    if np.any(mid_error > resolution_mm):
        return True
    if allow_3d:
        return is_over_z_deviation(xyz, resolution_mm)
    return False


def sweep_angle(xy: np.ndarray, center: tuple[float, float]) -> Optional[float]:
    """Signed angle swept from the first to the last point about *center*.

    Returns None when the path changes winding direction.
    """
    rel = xy - np.asarray(center)
    cross = rel[:-1, 0] * rel[1:, 1] - rel[:-1, 1] * rel[1:, 0]
    dot = np.einsum("ij,ij->i", rel[:-1], rel[1:])
    steps = np.arctan2(cross, dot)
    if np.any(steps > 0) and np.any(steps < 0):
        return None
    return float(steps.sum())


def try_create_arc(
    points: PointBuffer,
    original_length: float,
    settings: ShapeSettings,
) -> Optional[Arc]:
    """Fit an arc through every point in *points*, or return None."""
    if len(points) < 3 or original_length <= 0:
        return None
    xyz = points.positions()
    if not settings.allow_3d_shapes:
        if np.any(np.abs(xyz[:, 2] - xyz[0, 2]) >= settings.xyz_tolerance):
            return None

    circle = fit_circle(xyz[:, :2], settings.max_radius_mm)
    if circle is None:
        return None
    cx, cy, radius = circle
    if is_over_deviation(
        xyz, (cx, cy), radius, settings.resolution_mm, settings.allow_3d_shapes,
    ):
        return None

    angle = sweep_angle(xyz[:, :2], (cx, cy))
    # G2/G3 cannot express more than one turn
    if angle is None or abs(angle) >= 2.0 * math.pi - ZERO_TOLERANCE:
        return None

    length = abs(angle) * radius
    if settings.allow_3d_shapes:
        length = math.hypot(length, xyz[-1, 2] - xyz[0, 2])
    if abs(original_length - length) / original_length > settings.path_tolerance_percent:
        return None

    return Arc(
        start_point=points[0],
        end_point=points[-1],
        center_x=cx,
        center_y=cy,
        radius=radius,
        angle_radians=angle,
        length=length,
    )


class ArcSolver:
    """Arc family for :class:`SegmentedShape`."""

    name = "arc"

    def fit(
        self,
        points: PointBuffer,
        original_length: float,
        settings: ShapeSettings,
    ) -> Optional[Arc]:
        return try_create_arc(points, original_length, settings)

    def needs_firmware_compensation(
        self,
        curve: Arc,
        original_length: float,
        settings: ShapeSettings,
    ) -> bool:
        """Would the firmware cut this arc into too few segments?

        The firmware's real segmentation is not modelled; the two divisors
        below are a rough estimate.  First the circumference is divided by
        the minimum segment count, and if that is too coarse, by the length
        of the original path.
        """
        if settings.min_segments <= 0 or settings.mm_per_segment <= 0:
            return False
        circumference = 2.0 * math.pi * curve.radius
        if firmware_segment_count(circumference, settings.min_segments) >= settings.min_segments:
            return False
        return firmware_segment_count(circumference, original_length) < settings.min_segments

    def is_degenerate(self, curve: Arc, settings: ShapeSettings) -> bool:
        tolerance = settings.xyz_tolerance
        if is_zero(curve.i, tolerance) and is_zero(curve.j, tolerance):
            return True
        return curve.length < tolerance

    def gcode_terms(
        self,
        curve: Arc,
        e_relative: float,
        settings: ShapeSettings,
    ) -> tuple[str, list[Term]]:
        precision = settings.xyz_precision
        keyword = "G2" if curve.is_clockwise else "G3"
        terms = [
            Term("X", curve.end_point.x, precision),
            Term("Y", curve.end_point.y, precision),
        ]
        terms.extend(optional_z(curve, settings))
        # I and J are always written, even when zero
        terms.append(Term("I", curve.i, precision))
        terms.append(Term("J", curve.j, precision))
        terms.extend(optional_e_and_f(curve, e_relative, settings))
        return keyword, terms


def segmented_arc(settings: Optional[ShapeSettings] = None) -> SegmentedShape:
    """New arc accumulator."""
    return SegmentedShape(ArcSolver(), settings)

