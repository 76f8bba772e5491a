from __future__ import annotations

GM_EARTH = 398600.4418  # km^3 / s^2

DEFAULT_MASS_KG = 1000.0
DEFAULT_FRAME = "GCRS"

DEFAULT_INTERPOLATION_POINTS = 2
DEFAULT_EXTRAPOLATION_FRACTION = 0.1

# Offsets closer than this collapse into one interpolation node.
DUPLICATE_EPOCH_TOL_S = 1e-9
