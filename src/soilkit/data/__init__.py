"""
soilkit data package.

Soil sample measurements and the layer properties used to convert them.
"""

from soilkit.data.layers import (
    SoilLayerProperties,
    map_layer_values,
    to_depth_strings,
    to_thickness,
)
from soilkit.data.sample import (
    SoilMeasurementSample,
    TaggedValues,
)

__all__ = [
    "SoilLayerProperties",
    "map_layer_values",
    "to_depth_strings",
    "to_thickness",
    "SoilMeasurementSample",
    "TaggedValues",
]
