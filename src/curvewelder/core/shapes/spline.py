"""Cubic Bezier spline fitting (G5).

The spline is fitted in XY with both endpoints fixed at the first and last
buffered point.  The two inner control points are solved by linear least
squares over a chord-length parameterisation, then the parameters are
refined with a Newton step and the control points solved again.  Z, when 3D
shapes are allowed, must rise linearly along the path as for arcs.
"""

from __future__ import annotations

import math
from typing import Optional

import numpy as np
import shapely
from shapely.geometry import LineString

from ...config.defaults import ZERO_TOLERANCE
from ...config.settings import ShapeSettings
from ...gcode.gcode_writer import Term
from .base import SegmentedShape, Spline, optional_e_and_f, optional_z
from .buffer import PointBuffer
from .utils import is_over_z_deviation

MAX_REPARAMETERIZE = 4
SAMPLES_PER_POINT = 8
MIN_SAMPLES = 64


def bezier(control: np.ndarray, t: np.ndarray) -> np.ndarray:
    """Evaluate the cubic with ``(4, 2)`` *control* points at parameters *t*."""
    t = t[:, None]
    mt = 1.0 - t
    return (
        mt ** 3 * control[0]
        + 3.0 * mt ** 2 * t * control[1]
        + 3.0 * mt * t ** 2 * control[2]
        + t ** 3 * control[3]
    )


def _bezier_d1(control: np.ndarray, t: np.ndarray) -> np.ndarray:
    t = t[:, None]
    mt = 1.0 - t
    return (
        3.0 * mt ** 2 * (control[1] - control[0])
        + 6.0 * mt * t * (control[2] - control[1])
        + 3.0 * t ** 2 * (control[3] - control[2])
    )


def _bezier_d2(control: np.ndarray, t: np.ndarray) -> np.ndarray:
    t = t[:, None]
    return (
        6.0 * (1.0 - t) * (control[2] - 2.0 * control[1] + control[0])
        + 6.0 * t * (control[3] - 2.0 * control[2] + control[1])
    )


def chord_length_parameterize(xy: np.ndarray) -> Optional[np.ndarray]:
    steps = np.hypot(*np.diff(xy, axis=0).T)
    travelled = np.concatenate(([0.0], np.cumsum(steps)))
    if travelled[-1] < ZERO_TOLERANCE:
        return None
    return travelled / travelled[-1]


def _solve_inner_controls(xy: np.ndarray, t: np.ndarray) -> np.ndarray:
    """Least squares for the two inner control points, endpoints fixed.

    Solved as offsets from the straight-line controls, so an under-determined
    fit (three points) picks the flattest curve through them.
    """
    start, end = xy[0], xy[-1]
    mt = 1.0 - t
    basis = np.column_stack((3.0 * mt ** 2 * t, 3.0 * mt * t ** 2))
    residual = xy - (start + np.outer(t, end - start))
    offsets = np.linalg.lstsq(basis, residual, rcond=None)[0]
    straight = np.vstack((start + (end - start) / 3.0, start + 2.0 * (end - start) / 3.0))
    return np.vstack((start, straight + offsets, end))


def _reparameterize(control: np.ndarray, xy: np.ndarray, t: np.ndarray) -> np.ndarray:
    """One Newton-Raphson step towards each point's closest curve parameter."""
    diff = bezier(control, t) - xy
    d1 = _bezier_d1(control, t)
    d2 = _bezier_d2(control, t)
    numerator = np.einsum("ij,ij->i", diff, d1)
    denominator = np.einsum("ij,ij->i", d1, d1) + np.einsum("ij,ij->i", diff, d2)
    safe = np.abs(denominator) > ZERO_TOLERANCE
    step = np.where(safe, numerator / np.where(safe, denominator, 1.0), 0.0)
    refined = np.clip(t - step, 0.0, 1.0)
    refined[0], refined[-1] = 0.0, 1.0
    return refined


def sample_curve(control: np.ndarray, count: int) -> LineString:
    return LineString(bezier(control, np.linspace(0.0, 1.0, count)))


def max_deviation(curve: LineString, xy: np.ndarray) -> float:
    """Largest distance from any row of *xy* to *curve*."""
    return float(np.max(shapely.distance(curve, shapely.points(xy))))


def try_create_spline(
    points: PointBuffer,
    original_length: float,
    settings: ShapeSettings,
) -> Optional[Spline]:
    """Fit a cubic through every point in *points*, or return None."""
    if len(points) < 3 or original_length <= 0:
        return None
    xyz = points.positions()
    if not settings.allow_3d_shapes:
        if np.any(np.abs(xyz[:, 2] - xyz[0, 2]) >= settings.xyz_tolerance):
            return None
    elif is_over_z_deviation(xyz, settings.resolution_mm):
        return None

    xy = xyz[:, :2]
    t = chord_length_parameterize(xy)
    if t is None:
        return None

    samples = max(MIN_SAMPLES, SAMPLES_PER_POINT * len(points))
    control = None
    curve = None
    for _ in range(MAX_REPARAMETERIZE):
        control = _solve_inner_controls(xy, t)
        curve = sample_curve(control, samples)
        if max_deviation(curve, xy) <= settings.resolution_mm:
            break
        t = _reparameterize(control, xy, t)
    else:
        return None

    length = curve.length
    if settings.allow_3d_shapes:
        length = math.hypot(length, xyz[-1, 2] - xyz[0, 2])
    if abs(original_length - length) / original_length > settings.path_tolerance_percent:
        return None

    return Spline(
        start_point=points[0],
        end_point=points[-1],
        i=float(control[1, 0] - control[0, 0]),
        j=float(control[1, 1] - control[0, 1]),
        p=float(control[2, 0] - control[3, 0]),
        q=float(control[2, 1] - control[3, 1]),
        length=length,
    )


class SplineSolver:
    """Spline family for :class:`SegmentedShape`."""

    name = "spline"

    def fit(
        self,
        points: PointBuffer,
        original_length: float,
        settings: ShapeSettings,
    ) -> Optional[Spline]:
        return try_create_spline(points, original_length, settings)

    def needs_firmware_compensation(
        self,
        curve: Spline,
        original_length: float,
        settings: ShapeSettings,
    ) -> bool:
        return False

    def is_degenerate(self, curve: Spline, settings: ShapeSettings) -> bool:
        return curve.length < settings.xyz_tolerance

    def gcode_terms(
        self,
        curve: Spline,
        e_relative: float,
        settings: ShapeSettings,
    ) -> tuple[str, list[Term]]:
        # Control point words (I J P Q) are not written yet
        terms = [
            Term("X", curve.end_point.x, settings.xyz_precision),
            Term("Y", curve.end_point.y, settings.xyz_precision),
        ]
        terms.extend(optional_z(curve, settings))
        terms.extend(optional_e_and_f(curve, e_relative, settings))
        return "G5", terms


def segmented_spline(settings: Optional[ShapeSettings] = None) -> SegmentedShape:
    """New spline accumulator."""
    return SegmentedShape(SplineSolver(), settings)
