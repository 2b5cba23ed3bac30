"""
Physical constants, empirical conversion factors, and fixed units.
"""
from typing import Dict, Final

# Numerical stability
FLOATING_POINT_TOLERANCE: Final[float] = 1e-10

# Nitrogen: kg/ha = ppm / 100 * BD (g/cc) * thickness (mm)
PPM_TO_KG_HA_DIVISOR: Final[float] = 100.0

# Organic carbon: Total % = Walkley-Black % * 1.3
WALKLEY_BLACK_TO_TOTAL_OC: Final[float] = 1.3

# pH in water = (pH in CaCl2 * 1.1045) - 0.1375
PH_CACL2_TO_WATER_SLOPE: Final[float] = 1.1045
PH_CACL2_TO_WATER_INTERCEPT: Final[float] = 0.1375

# Unit conversion factors
UNIT_CONVERSIONS: Final[Dict[str, float]] = {
    "mm_to_cm": 0.1,
    "cm_to_mm": 10.0,
}

# Fixed units of quantities that are never converted
FIXED_UNITS: Final[Dict[str, str]] = {
    "electrical_conductivity": "1:5 dS/m",
    "chloride": "mg/kg",
    "exchangeable_sodium_percent": "%",
    "organic_nitrogen": "%",
}
