"""Ordered buffer of candidate points for one shape."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

import numpy as np

from ..point import PrinterPoint


class Attempt:
    """Handle yielded by :meth:`PointBuffer.tentative`."""

    def __init__(self) -> None:
        self.committed = False

    def commit(self) -> None:
        self.committed = True


class PointBuffer:
    """Append / pop-back sequence of points with a running path length.

    The cumulative length after every point is stored, so popping a point
    restores the previous original length exactly rather than by
    subtraction.
    """

    def __init__(self) -> None:
        self._points: list[PrinterPoint] = []
        self._lengths: list[float] = []
        self._positions: np.ndarray | None = None

    def append(self, p: PrinterPoint) -> None:
        self._lengths.append(self.original_length + p.distance)
        self._points.append(p)
        self._positions = None

    def pop(self) -> PrinterPoint:
        self._lengths.pop()
        self._positions = None
        return self._points.pop()

    @contextmanager
    def tentative(self, p: PrinterPoint) -> Iterator[Attempt]:
        """Append *p* for one fit attempt; it is popped again unless committed."""
        self.append(p)
        attempt = Attempt()
        try:
            yield attempt
        finally:
            if not attempt.committed:
                self.pop()

    @property
    def original_length(self) -> float:
        """Sum of ``distance`` over the buffered points."""
        return self._lengths[-1] if self._lengths else 0.0

    def positions(self) -> np.ndarray:
        """``(n, 3)`` array of buffered XYZ coordinates."""
        if self._positions is None:
            self._positions = np.array(
                [p.as_tuple() for p in self._points], dtype=np.float64,
            ).reshape(-1, 3)
        return self._positions

    def __len__(self) -> int:
        return len(self._points)

    def __getitem__(self, index: int) -> PrinterPoint:
        return self._points[index]

    def __iter__(self) -> Iterator[PrinterPoint]:
        return iter(self._points)

    def __bool__(self) -> bool:
        return bool(self._points)
