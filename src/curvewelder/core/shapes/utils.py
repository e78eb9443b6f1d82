"""Numeric helpers shared across curve families."""

from __future__ import annotations

import math

import numpy as np

from ...config.defaults import ZERO_TOLERANCE


def is_zero(value: float, tolerance: float = ZERO_TOLERANCE) -> bool:
    return abs(value) < tolerance


def is_equal(a: float, b: float, tolerance: float = ZERO_TOLERANCE) -> bool:
    return abs(a - b) < tolerance


def greater_than_or_equal(a: float, b: float, tolerance: float = ZERO_TOLERANCE) -> bool:
    return a > b or is_equal(a, b, tolerance)


def firmware_segment_count(circumference: float, divisor: float) -> int:
    """Approximate firmware arc segment count, ``floor(circumference / divisor)``."""
    if divisor <= 0:
        return 0
    return int(math.floor(circumference / divisor))


def is_over_z_deviation(xyz: np.ndarray, resolution_mm: float) -> bool:
    """True unless Z rises linearly with planar travel (helical move)."""
    steps = np.hypot(*np.diff(xyz[:, :2], axis=0).T)
    travelled = np.concatenate(([0.0], np.cumsum(steps)))
    total = travelled[-1]
    if total <= 0:
        return True
    expected = xyz[0, 2] + (xyz[-1, 2] - xyz[0, 2]) * travelled / total
    return bool(np.any(np.abs(xyz[:, 2] - expected) > resolution_mm))
