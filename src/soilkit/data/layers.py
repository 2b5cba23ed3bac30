"""
Layer structure helpers and an in-memory soil layer lookup.

Layer thicknesses are in mm; depth strings are in cm ("0-10", "10-30").
"""
import logging
from typing import List, Optional, Sequence, Union

import numpy as np
from pydantic import BaseModel, Field, field_validator, model_validator

from soilkit.core.constants import UNIT_CONVERSIONS
from soilkit.core.exceptions import DataValidationError, ErrorContext
from soilkit.core.types import LayerArray, LayerValues

logger = logging.getLogger(__name__)


def _format_depth_cm(value: float) -> str:
    if float(value).is_integer():
        return str(int(value))
    return f"{value:g}"


def to_depth_strings(thickness: Optional[LayerValues]) -> Optional[List[str]]:
    """
    Convert layer thicknesses (mm) to depth strings (cm).

    Example: [100, 200] -> ["0-10", "10-30"]
    """
    if thickness is None:
        return None

    bottoms_cm = np.cumsum(np.asarray(thickness, dtype=float)) * UNIT_CONVERSIONS["mm_to_cm"]
    tops_cm = np.concatenate(([0.0], bottoms_cm[:-1]))
    return [
        f"{_format_depth_cm(round(top, 6))}-{_format_depth_cm(round(bottom, 6))}"
        for top, bottom in zip(tops_cm, bottoms_cm)
    ]


def to_thickness(depth_strings: Optional[Sequence[str]]) -> Optional[LayerArray]:
    """
    Convert depth strings (cm) back to layer thicknesses (mm).

    Example: ["0-10", "10-30"] -> [100., 200.]
    """
    if depth_strings is None:
        return None

    thickness = np.empty(len(depth_strings), dtype=float)
    for i, depth in enumerate(depth_strings):
        parts = str(depth).strip().split("-")
        if len(parts) != 2:
            raise DataValidationError(
                f"Invalid depth string '{depth}', expected 'top-bottom'",
                ErrorContext(layer=i, operation="to_thickness"),
            )
        try:
            top, bottom = float(parts[0]), float(parts[1])
        except ValueError:
            raise DataValidationError(
                f"Invalid depth string '{depth}', bounds must be numeric",
                ErrorContext(layer=i, operation="to_thickness"),
            )
        if bottom <= top:
            raise DataValidationError(
                f"Invalid depth string '{depth}', bottom must be below top",
                ErrorContext(layer=i, operation="to_thickness"),
            )
        thickness[i] = (bottom - top) * UNIT_CONVERSIONS["cm_to_mm"]

    return thickness


def map_layer_values(
    from_thickness: LayerValues,
    values: LayerValues,
    to_thickness: LayerValues,
) -> LayerArray:
    """
    Map a per-layer concentration onto a different layer structure.

    Each target layer receives the thickness-weighted mean of the source
    layers it overlaps. The deepest source layer is extended downward when
    the target structure is deeper than the source profile.

    Args:
        from_thickness: Source layer thicknesses (mm)
        values: Source values, one per source layer
        to_thickness: Target layer thicknesses (mm)

    Returns:
        Mapped values, one per target layer
    """
    from_thickness = np.asarray(from_thickness, dtype=float)
    values = np.asarray(values, dtype=float)
    to_thickness = np.asarray(to_thickness, dtype=float)

    if from_thickness.shape != values.shape:
        raise DataValidationError(
            f"Got {values.size} values for {from_thickness.size} layers",
            ErrorContext(operation="map_layer_values"),
        )
    if to_thickness.size == 0:
        return np.empty(0, dtype=float)
    if from_thickness.size == 0:
        return np.full(to_thickness.size, np.nan)

    from_bottom = np.cumsum(from_thickness)
    from_top = from_bottom - from_thickness
    to_bottom = np.cumsum(to_thickness)
    to_top = to_bottom - to_thickness

    if to_bottom[-1] > from_bottom[-1]:
        logger.debug(
            "Extending deepest source layer from %.1f mm to %.1f mm",
            from_bottom[-1], to_bottom[-1],
        )
        from_bottom[-1] = to_bottom[-1]

    mapped = np.empty(to_thickness.size, dtype=float)
    for i, (top, bottom) in enumerate(zip(to_top, to_bottom)):
        overlap = np.clip(np.minimum(from_bottom, bottom) - np.maximum(from_top, top), 0.0, None)
        # Only overlapping layers contribute, so a NaN stays in its own layers
        overlaps = overlap > 0
        total = overlap[overlaps].sum()
        if total > 0:
            mapped[i] = np.dot(overlap[overlaps], values[overlaps]) / total
        else:
            mapped[i] = np.nan

    return mapped


class SoilLayerProperties(BaseModel):
    """
    Layer properties of a soil profile.

    Satisfies the SoilLayerLookup protocol so it can be handed to a
    SoilMeasurementSample. Bulk density is mapped from the profile layers
    onto whatever layer structure the caller asks for.
    """
    thickness: List[float] = Field(description="Profile layer thickness (mm)")
    bulk_density_values: List[float] = Field(
        alias="bulk_density", description="Bulk density per profile layer (g/cc)"
    )
    soil_cn: Optional[Union[float, List[float]]] = Field(
        default=None, description="Soil carbon:nitrogen ratio, scalar or per layer"
    )
    source: str = "user"

    model_config = {"populate_by_name": True}

    @field_validator("thickness")
    @classmethod
    def validate_thickness(cls, v):
        """Ensure all layers have positive thickness"""
        if any(t <= 0 for t in v):
            raise ValueError("layer thickness must be > 0")
        return v

    @field_validator("bulk_density_values")
    @classmethod
    def validate_bulk_density(cls, v):
        """Ensure bulk density is physically plausible"""
        if any(not np.isfinite(bd) or bd <= 0 for bd in v):
            raise ValueError("bulk density must be finite and > 0")
        return v

    @model_validator(mode="after")
    def validate_lengths(self):
        """Ensure per-layer arrays align with thickness"""
        if len(self.bulk_density_values) != len(self.thickness):
            raise ValueError(
                f"bulk_density has {len(self.bulk_density_values)} values "
                f"for {len(self.thickness)} layers"
            )
        if isinstance(self.soil_cn, list) and len(self.soil_cn) != len(self.thickness):
            raise ValueError(
                f"soil_cn has {len(self.soil_cn)} values for {len(self.thickness)} layers"
            )
        return self

    @property
    def depth(self) -> List[str]:
        return to_depth_strings(self.thickness)

    def bulk_density(self, thickness: LayerValues) -> LayerArray:
        """Bulk density mapped onto the given layer thicknesses"""
        return map_layer_values(self.thickness, self.bulk_density_values, thickness)

    def carbon_nitrogen_ratio(self) -> Optional[Union[float, LayerArray]]:
        """Soil C:N ratio as stored on the profile"""
        if self.soil_cn is None:
            return None
        if isinstance(self.soil_cn, list):
            return np.asarray(self.soil_cn, dtype=float)
        return float(self.soil_cn)
