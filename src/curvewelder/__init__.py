"""Arc and spline welding for G-code motion paths."""

__version__ = "0.1.0"
