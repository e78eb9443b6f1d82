"""Resolved printer position fed to the shape accumulators."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PrinterPoint:
    """A single fully-resolved point on the toolhead path.

    Coordinates are absolute, in the file's logical frame.  ``distance`` is
    the straight-line length of the move that ended here; the first point of
    a shape (its anchor) carries 0.
    """
    x: float
    y: float
    z: float = 0.0
    distance: float = 0.0
    e_offset: float = 0.0              # extruder position as written
    e_relative: float = 0.0            # extruder delta of this move
    is_extruder_relative: bool = False
    f: float = 0.0                     # feed rate, mm/min

    def as_tuple(self) -> tuple[float, float, float]:
        return (self.x, self.y, self.z)
