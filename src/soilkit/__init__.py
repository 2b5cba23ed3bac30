"""Soil sample unit conversion and pore-water state."""
from soilkit.data.sample import SoilMeasurementSample
from soilkit.physics.pore import PoreCompartment

__version__ = "0.1.0"

__all__ = [
    "SoilMeasurementSample",
    "PoreCompartment",
]
