"""Streaming welder: replaces runs of G0/G1 moves with curve commands.

The Welder is the top-level entry point for the CLI.  Lines are read one
at a time; weldable moves are fed to a shape accumulator and every other
line finalises the current shape and passes through unchanged.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Iterable, Iterator, Optional

from ..config.defaults import MAX_PRECISION
from ..config.settings import CurveType, ShapeSettings, WelderSettings
from ..gcode.parser import GcodeCommand, parse_line
from .point import PrinterPoint
from .position import PositionTracker
from .shapes import SegmentedShape, segmented_arc, segmented_spline
from .shapes.utils import is_zero

logger = logging.getLogger(__name__)

WELDABLE_WORDS = frozenset("XYZEF")


@dataclass
class WeldStats:
    """Counters collected while welding one stream."""

    lines_processed: int = 0
    moves_processed: int = 0
    shapes_emitted: int = 0
    points_compressed: int = 0
    source_bytes: int = 0
    target_bytes: int = 0
    gcode_length_exceptions: int = 0
    firmware_compensations: int = 0
    shapes_by_command: dict[str, int] = field(default_factory=dict)

    @property
    def compression_percent(self) -> float:
        """Size reduction of the output relative to the input."""
        if self.source_bytes == 0:
            return 0.0
        return 100.0 * (1.0 - self.target_bytes / self.source_bytes)

    def summary(self) -> list[str]:
        lines = [
            f"Lines processed: {self.lines_processed}",
            f"Moves processed: {self.moves_processed}",
            f"Shapes emitted: {self.shapes_emitted} "
            f"(replacing {self.points_compressed} moves)",
        ]
        for command, count in sorted(self.shapes_by_command.items()):
            lines.append(f"  {command}: {count}")
        lines.append(
            f"Size: {self.source_bytes} -> {self.target_bytes} bytes "
            f"({self.compression_percent:.1f}% smaller)"
        )
        if self.gcode_length_exceptions:
            lines.append(f"Rejected for gcode length: {self.gcode_length_exceptions}")
        if self.firmware_compensations:
            lines.append(f"Rejected for firmware compensation: {self.firmware_compensations}")
        return lines


class Welder:
    """Compresses a G-code stream with one shape accumulator per shape."""

    def __init__(self, settings: Optional[WelderSettings] = None):
        self.settings = settings or WelderSettings()
        self.stats = WeldStats()
        self._tracker = PositionTracker(self.settings.g90_influences_extruder)
        self._shape: Optional[SegmentedShape] = None
        self._pending: list[str] = []
        self._is_travel = False
        self._extrusion_rate: Optional[float] = None
        self._xyz_precision = self.settings.shape.xyz_precision
        self._e_precision = self.settings.shape.e_precision

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def process_lines(self, lines: Iterable[str]) -> Iterator[str]:
        """Yield the welded output for *lines* (without line endings)."""
        for raw in lines:
            line = raw.rstrip("\r\n")
            self.stats.lines_processed += 1
            self.stats.source_bytes += _encoded_size(line)
            for out in self._process_line(line):
                self.stats.target_bytes += _encoded_size(out)
                yield out
        for out in self._finish_shape():
            self.stats.target_bytes += _encoded_size(out)
            yield out

    def process_file(self, source: Path, target: Path) -> WeldStats:
        """Weld *source* into *target* and return the statistics."""
        source, target = Path(source), Path(target)
        if not source.exists():
            raise FileNotFoundError(f"G-code file not found: {source}")
        target.parent.mkdir(parents=True, exist_ok=True)
        with source.open("r", encoding="utf-8", errors="replace") as src, \
                target.open("w", encoding="utf-8", newline="\n") as dst:
            for out in self.process_lines(src):
                dst.write(out)
                dst.write("\n")
        logger.info(
            "Welded %s: %d shapes, %.1f%% smaller",
            source.name, self.stats.shapes_emitted, self.stats.compression_percent,
        )
        return self.stats

    # ------------------------------------------------------------------
    # Line handling
    # ------------------------------------------------------------------

    def _process_line(self, line: str) -> Iterator[str]:
        cmd = parse_line(line)
        self._track_precision(cmd)
        anchor = self._tracker.current_point()
        was_relative = self._tracker.is_relative
        point = self._tracker.update(cmd)

        if point is None:
            yield from self._finish_shape()
            yield line
            return

        self.stats.moves_processed += 1
        if was_relative or not self._is_weldable(cmd, point):
            yield from self._finish_shape()
            yield line
            return

        if self._shape is not None and self._fits_shape(point) \
                and self._shape.try_add_point(point):
            self._remember(point, line)
            return

        # Start over from the position before this move
        yield from self._finish_shape()
        self._start_shape(anchor, point)
        if self._shape.try_add_point(point):
            self._remember(point, line)
        else:
            self._shape = None
            yield line

    def _is_weldable(self, cmd: GcodeCommand, point: PrinterPoint) -> bool:
        if cmd.command == "G0" and not self.settings.allow_travel:
            return False
        if cmd.has_comment:
            return False
        if not (cmd.has("X") or cmd.has("Y")):
            return False
        if any(letter not in WELDABLE_WORDS for letter in cmd.params):
            return False
        if point.e_relative < 0:
            return False
        if is_zero(point.e_relative) and not self.settings.allow_travel:
            return False
        return True

    def _fits_shape(self, point: PrinterPoint) -> bool:
        """Pipeline-level checks the accumulator does not know about."""
        previous = self._shape.points[-1]
        if is_zero(point.e_relative) != self._is_travel:
            return False
        # The first move may change the feed rate, later ones may not
        if len(self._shape.points) > 1 and point.f != previous.f:
            return False
        if not self._is_travel and self._extrusion_rate is not None and point.distance > 0:
            variance = self.settings.extrusion_rate_variance_percent
            rate = point.e_relative / point.distance
            if variance > 0 and abs(rate - self._extrusion_rate) > variance * self._extrusion_rate:
                return False
        return True

    def _start_shape(self, anchor: PrinterPoint, first: PrinterPoint) -> None:
        shape_settings = self._shape_settings()
        if self.settings.curve_type is CurveType.SPLINE:
            self._shape = segmented_spline(shape_settings)
        else:
            self._shape = segmented_arc(shape_settings)
        self._shape.try_add_point(anchor)
        self._pending = []
        self._is_travel = is_zero(first.e_relative)
        self._extrusion_rate = None

    def _remember(self, point: PrinterPoint, line: str) -> None:
        self._pending.append(line)
        if self._extrusion_rate is None and not self._is_travel and point.distance > 0:
            self._extrusion_rate = point.e_relative / point.distance

    def _finish_shape(self) -> Iterator[str]:
        shape = self._shape
        if shape is None:
            return
        self.stats.gcode_length_exceptions += shape.num_gcode_length_exceptions
        self.stats.firmware_compensations += shape.num_firmware_compensations
        if shape.is_shape:
            gcode = shape.get_gcode()
            command = gcode.split(" ", 1)[0]
            self.stats.shapes_emitted += 1
            self.stats.points_compressed += len(self._pending)
            self.stats.shapes_by_command[command] = (
                self.stats.shapes_by_command.get(command, 0) + 1
            )
            logger.debug(
                "%s replaces %d moves, length %.4f", command, len(self._pending), shape.length,
            )
            yield gcode
        else:
            yield from self._pending
        self._shape = None
        self._pending = []

    # ------------------------------------------------------------------
    # Precision
    # ------------------------------------------------------------------

    def _track_precision(self, cmd: GcodeCommand) -> None:
        for letter, decimals in cmd.decimals.items():
            if letter in "XYZIJ" and decimals > self._xyz_precision:
                self._xyz_precision = min(decimals, MAX_PRECISION)
            elif letter == "E" and decimals > self._e_precision:
                self._e_precision = min(decimals, MAX_PRECISION)

    def _shape_settings(self) -> ShapeSettings:
        base = self.settings.shape
        if (self._xyz_precision, self._e_precision) == (base.xyz_precision, base.e_precision):
            return base
        return replace(base, xyz_precision=self._xyz_precision, e_precision=self._e_precision)


def _encoded_size(line: str) -> int:
    """UTF-8 size of *line* plus its newline."""
    return len(line.encode("utf-8")) + 1
