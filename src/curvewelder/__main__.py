"""CLI entry point: ``python -m curvewelder input.gcode -o output.gcode``"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

from .config import defaults
from .config.settings import CurveType, ShapeSettings, WelderSettings
from .core.welder import Welder

logger = logging.getLogger("curvewelder")


def _build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="curvewelder",
        description="Replace runs of G0/G1 moves with G2/G3 arcs or G5 splines.",
    )
    p.add_argument("input", type=Path, help="Input G-code file")
    p.add_argument(
        "-o", "--output", type=Path, default=None,
        help="Output file (default: <input>.welded.gcode)",
    )
    p.add_argument("--config", type=Path, default=None,
                   help="JSON settings file; command line flags override it")

    # Curve family
    p.add_argument("--spline", action="store_true",
                   help="Emit G5 cubic splines instead of G2/G3 arcs")
    p.add_argument("--allow-3d", action="store_true", default=None,
                   help="Allow helical shapes whose Z changes")
    p.add_argument("--allow-travel", action="store_true", default=None,
                   help="Also weld non-extruding moves")

    # Fit tolerances
    p.add_argument("--resolution", type=float, default=None,
                   help=f"Max deviation in mm (default: {defaults.DEFAULT_RESOLUTION_MM})")
    p.add_argument("--path-tolerance", type=float, default=None,
                   help="Max length difference as a fraction "
                        f"(default: {defaults.DEFAULT_PATH_TOLERANCE_PERCENT})")
    p.add_argument("--max-radius", type=float, default=None,
                   help=f"Max arc radius in mm (default: {defaults.DEFAULT_MAX_RADIUS_MM})")
    p.add_argument("--extrusion-rate-variance", type=float, default=None,
                   help="Allowed extrusion-per-mm change as a fraction "
                        f"(default: {defaults.DEFAULT_EXTRUSION_RATE_VARIANCE_PERCENT})")

    # Shape size and firmware compensation
    p.add_argument("--min-segments", type=int, default=None,
                   help=f"Minimum moves per shape (default: {defaults.DEFAULT_MIN_SEGMENTS})")
    p.add_argument("--max-segments", type=int, default=None,
                   help=f"Maximum moves per shape (default: {defaults.DEFAULT_MAX_SEGMENTS})")
    p.add_argument("--mm-per-segment", type=float, default=None,
                   help="Firmware arc segment length, 0 disables compensation")

    # Output
    p.add_argument("--max-gcode-length", type=int, default=None,
                   help="Max characters per command, 0 for no limit")
    p.add_argument("--xyz-precision", type=int, default=None,
                   help=f"Decimals for X/Y/Z/I/J (default: {defaults.DEFAULT_XYZ_PRECISION})")
    p.add_argument("--e-precision", type=int, default=None,
                   help=f"Decimals for E (default: {defaults.DEFAULT_E_PRECISION})")
    p.add_argument("--g90-influences-extruder", action="store_true", default=None,
                   help="G90/G91 also switch the extruder mode")

    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    p.add_argument("-q", "--quiet", action="store_true", help="Only log errors")
    return p


_SHAPE_FLAGS = {
    "allow_3d": "allow_3d_shapes",
    "resolution": "resolution_mm",
    "path_tolerance": "path_tolerance_percent",
    "max_radius": "max_radius_mm",
    "min_segments": "min_segments",
    "max_segments": "max_segments",
    "mm_per_segment": "mm_per_segment",
    "max_gcode_length": "max_gcode_length",
    "xyz_precision": "xyz_precision",
    "e_precision": "e_precision",
}


def build_settings(args: argparse.Namespace) -> WelderSettings:
    """Merge the optional JSON config with command line overrides."""
    settings = WelderSettings.load(args.config) if args.config else WelderSettings()

    shape_values = settings.shape.to_dict()
    for flag, name in _SHAPE_FLAGS.items():
        value = getattr(args, flag)
        if value is not None:
            shape_values[name] = value
    settings.shape = ShapeSettings.from_dict(shape_values)

    if args.spline:
        settings.curve_type = CurveType.SPLINE
    if args.allow_travel is not None:
        settings.allow_travel = args.allow_travel
    if args.extrusion_rate_variance is not None:
        settings.extrusion_rate_variance_percent = args.extrusion_rate_variance
    if args.g90_influences_extruder is not None:
        settings.g90_influences_extruder = args.g90_influences_extruder
    return settings


def main(argv: list[str] | None = None) -> int:
    args = _build_parser().parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.ERROR if args.quiet else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")

    output: Path = args.output or args.input.with_name(
        f"{args.input.stem}.welded{args.input.suffix or '.gcode'}"
    )

    try:
        settings = build_settings(args)
    except (ValueError, FileNotFoundError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    if settings.shape.radius_was_clamped:
        logger.warning("Max radius lowered to %.1f mm", settings.shape.max_radius_mm)

    print(f"Welding {args.input} ...")
    welder = Welder(settings)
    try:
        stats = welder.process_file(args.input, output)
    except FileNotFoundError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    for line in stats.summary():
        print(f"  {line}")
    print(f"Wrote {output}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
