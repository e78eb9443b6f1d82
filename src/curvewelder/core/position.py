"""Printer position and extrusion-mode tracking.

Turns parsed G0/G1 commands into :class:`PrinterPoint` objects with the
move distance, extruder delta and extrusion mode already resolved.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

from ..gcode.parser import GcodeCommand
from .point import PrinterPoint

MOVE_COMMANDS = ("G0", "G1")


@dataclass
class Position:
    """Logical toolhead position as written in the file."""

    x: float = 0.0
    y: float = 0.0
    z: float = 0.0
    e: float = 0.0
    f: float = 0.0


class PositionTracker:
    """Follows the modal state of a G-code stream.

    Handles G90/G91 (absolute/relative XYZ), M82/M83 (absolute/relative E),
    G92 (set position) and G28 (home).  When ``g90_influences_extruder`` is
    set, G90/G91 switch the extruder mode as well.
    """

    def __init__(self, g90_influences_extruder: bool = False):
        self.position = Position()
        self.is_relative = False
        self.is_extruder_relative = False
        self.g90_influences_extruder = g90_influences_extruder

    def current_point(self) -> PrinterPoint:
        """The current position as a shape anchor (no distance, no extrusion)."""
        pos = self.position
        return PrinterPoint(
            pos.x, pos.y, pos.z,
            distance=0.0,
            e_offset=pos.e,
            e_relative=0.0,
            is_extruder_relative=self.is_extruder_relative,
            f=pos.f,
        )

    def update(self, cmd: GcodeCommand) -> Optional[PrinterPoint]:
        """Apply *cmd*; return the resulting point for G0/G1, else None."""
        if cmd.command in MOVE_COMMANDS:
            return self._move(cmd)

        if cmd.command == "G90":
            self.is_relative = False
            if self.g90_influences_extruder:
                self.is_extruder_relative = False
        elif cmd.command == "G91":
            self.is_relative = True
            if self.g90_influences_extruder:
                self.is_extruder_relative = True
        elif cmd.command == "M82":
            self.is_extruder_relative = False
        elif cmd.command == "M83":
            self.is_extruder_relative = True
        elif cmd.command == "G92":
            self._set_position(cmd, default_all=True)
        elif cmd.command == "G28":
            self._set_position(cmd, default_all=True, home=True)
        return None

    def _move(self, cmd: GcodeCommand) -> PrinterPoint:
        pos = self.position
        x, y, z = pos.x, pos.y, pos.z
        if self.is_relative:
            x += cmd.get("X", 0.0)
            y += cmd.get("Y", 0.0)
            z += cmd.get("Z", 0.0)
        else:
            x = cmd.get("X", x)
            y = cmd.get("Y", y)
            z = cmd.get("Z", z)

        if "E" in cmd.params:
            if self.is_extruder_relative:
                e_relative = cmd.params["E"]
                e = pos.e + e_relative
            else:
                e = cmd.params["E"]
                e_relative = e - pos.e
        else:
            e, e_relative = pos.e, 0.0

        f = cmd.get("F", pos.f)
        distance = math.sqrt((x - pos.x) ** 2 + (y - pos.y) ** 2 + (z - pos.z) ** 2)
        self.position = Position(x, y, z, e, f)
        return PrinterPoint(
            x, y, z,
            distance=distance,
            e_offset=e,
            e_relative=e_relative,
            is_extruder_relative=self.is_extruder_relative,
            f=f,
        )

    def _set_position(self, cmd: GcodeCommand, default_all: bool, home: bool = False) -> None:
        pos = self.position
        axes = [a for a in "XYZE" if a in cmd.params or (home and a in cmd.flags)]
        if not axes and default_all:
            axes = ["X", "Y", "Z"] if home else ["X", "Y", "Z", "E"]
        for axis in axes:
            value = 0.0 if home else cmd.params.get(axis, 0.0)
            setattr(pos, axis.lower(), value)
