"""Curve fitting package."""

from .arc import ArcSolver, segmented_arc
from .base import Arc, Curve, SegmentedShape, Spline
from .buffer import PointBuffer
from .spline import SplineSolver, segmented_spline

__all__ = [
    "Arc", "ArcSolver", "Curve", "PointBuffer", "SegmentedShape",
    "Spline", "SplineSolver", "segmented_arc", "segmented_spline",
]
