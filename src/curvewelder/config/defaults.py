"""Default shape-fitting parameters.

Lengths are in millimetres.  These match what most FDM firmware handles
well; users should adjust the firmware compensation values to their
printer's arc settings.
"""

# Shape size
DEFAULT_MIN_SEGMENTS = 3
DEFAULT_MAX_SEGMENTS = 50

# Firmware compensation (0 disables it)
DEFAULT_MM_PER_SEGMENT = 0.0

# Fit tolerances
DEFAULT_RESOLUTION_MM = 0.05
DEFAULT_PATH_TOLERANCE_PERCENT = 0.05   # fraction, 0.05 == 5 %

# Output
DEFAULT_MAX_GCODE_LENGTH = 0            # 0 disables the check
DEFAULT_XYZ_PRECISION = 3
DEFAULT_E_PRECISION = 5
MIN_PRECISION = 3
MAX_PRECISION = 6

# 9.999 metre radius, also the absolute ceiling
DEFAULT_MAX_RADIUS_MM = 9999.0

DEFAULT_ALLOW_3D_SHAPES = False

# Pipeline
DEFAULT_EXTRUSION_RATE_VARIANCE_PERCENT = 0.05

# Comparisons that are not tied to the output precision
ZERO_TOLERANCE = 1e-6
