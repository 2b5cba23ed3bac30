"""
Type definitions and type aliases for soilkit.
Provides strong typing throughout the codebase.
"""
from enum import Enum
from typing import Optional, Protocol, Sequence, Union, runtime_checkable
from typing_extensions import TypeAlias
import numpy as np


# Type aliases for clarity
ThicknessMm: TypeAlias = float
DiameterNm: TypeAlias = float
VolumeFraction: TypeAlias = float  # ml/ml

# One value per soil layer, aligned by index with the layer thicknesses
LayerArray: TypeAlias = np.ndarray  # Shape: (n_layers,)
LayerValues: TypeAlias = Union[Sequence[float], np.ndarray]


class NitrogenUnit(str, Enum):
    """Units for nitrate and ammonia"""
    PPM = "ppm"
    KG_HA = "kg/ha"

    @property
    def description(self) -> str:
        return {
            NitrogenUnit.PPM: "parts per million",
            NitrogenUnit.KG_HA: "kilograms per hectare",
        }[self]


class SoilWaterUnit(str, Enum):
    """Units for soil water"""
    VOLUMETRIC = "volumetric"  # mm/mm
    GRAVIMETRIC = "gravimetric"  # kg/kg
    MM = "mm"  # mm of water

    @property
    def description(self) -> str:
        return {
            SoilWaterUnit.VOLUMETRIC: "Volumetric mm/mm",
            SoilWaterUnit.GRAVIMETRIC: "Gravimetric kg/kg",
            SoilWaterUnit.MM: "mm of water",
        }[self]


class OrganicCarbonUnit(str, Enum):
    """Laboratory methods for reporting organic carbon"""
    TOTAL = "total%"
    WALKLEY_BLACK = "walkley_black%"

    @property
    def description(self) -> str:
        return {
            OrganicCarbonUnit.TOTAL: "Total %",
            OrganicCarbonUnit.WALKLEY_BLACK: "Walkley Black %",
        }[self]


class PHUnit(str, Enum):
    """Laboratory methods for measuring pH"""
    WATER = "water"
    CACL2 = "cacl2"

    @property
    def description(self) -> str:
        return {
            PHUnit.WATER: "1:5 water",
            PHUnit.CACL2: "CaCl2",
        }[self]


SampleUnit: TypeAlias = Union[NitrogenUnit, SoilWaterUnit, OrganicCarbonUnit, PHUnit]


class Quantity(str, Enum):
    """Convertible quantities held by a soil sample"""
    NITRATE = "nitrate"
    AMMONIA = "ammonia"
    SOIL_WATER = "soil_water"
    ORGANIC_CARBON = "organic_carbon"
    PH = "ph"

    @property
    def unit_type(self) -> type:
        return {
            Quantity.NITRATE: NitrogenUnit,
            Quantity.AMMONIA: NitrogenUnit,
            Quantity.SOIL_WATER: SoilWaterUnit,
            Quantity.ORGANIC_CARBON: OrganicCarbonUnit,
            Quantity.PH: PHUnit,
        }[self]


# Protocol definitions for dependency injection
@runtime_checkable
class SoilLayerLookup(Protocol):
    """Protocol for the soil profile that supplies layer properties to a sample"""

    def bulk_density(self, thickness: LayerValues) -> Optional[LayerValues]:
        """Bulk density (g/cc) for each of the given layers"""
        ...

    def carbon_nitrogen_ratio(self) -> Optional[Union[float, LayerValues]]:
        """Soil carbon:nitrogen ratio, scalar or one value per layer"""
        ...
