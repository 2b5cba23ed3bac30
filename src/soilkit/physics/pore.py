"""
Pore-water state for one pore-size class within a soil layer.

Each layer is discretised into pore-size compartments, each able to hold at
most `volume_fraction * thickness` mm of water. An external redistribution
step moves water between compartments; this module only stores the result
and guarantees

    0 <= water_depth <= volume_depth

to within an absolute tolerance that absorbs floating-point round-off from
repeatedly adding and removing small increments.
"""
import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional

import numpy as np
import pandas as pd

from soilkit.core.config import get_config
from soilkit.core.exceptions import (
    DataValidationError,
    ErrorContext,
    InvalidWaterDepth,
    PoreOverfill,
)
from soilkit.core.types import DiameterNm, ThicknessMm, VolumeFraction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PoreGeometry:
    """Fixed geometry of a pore compartment"""
    thickness: ThicknessMm  # Layer thickness (mm)
    max_diameter: DiameterNm  # Upper pore diameter boundary (nm)
    min_diameter: DiameterNm  # Lower pore diameter boundary (nm)
    volume_fraction: VolumeFraction  # Pore volume relative to soil volume (ml/ml)

    def __post_init__(self):
        for name in ("thickness", "max_diameter", "min_diameter", "volume_fraction"):
            value = getattr(self, name)
            if value is None or not np.isfinite(value):
                raise DataValidationError(f"PoreGeometry.{name} must be finite")
        if self.thickness <= 0:
            raise DataValidationError(f"Layer thickness must be > 0 (got {self.thickness})")
        if self.min_diameter < 0 or self.min_diameter > self.max_diameter:
            raise DataValidationError(
                f"Pore diameter bounds invalid: min={self.min_diameter}, max={self.max_diameter}"
            )
        if not 0 <= self.volume_fraction <= 1:
            raise DataValidationError(
                f"Pore volume fraction must be within [0, 1] (got {self.volume_fraction})"
            )

    @property
    def volume_depth(self) -> float:
        """Pore volume as a depth of water (mm)"""
        return self.volume_fraction * self.thickness


class PoreCompartment:
    """
    Water held in one pore-size class of one layer.

    `layer` and `compartment` identify the cell in error messages only.
    Water depth changes only through `set_water_depth` (the `water_depth`
    setter delegates to it):

    - below -tolerance: InvalidWaterDepth
    - in [-tolerance, 0): stored as 0
    - above volume_depth + tolerance: PoreOverfill, state unchanged
    - otherwise stored as given

    Hydraulic conductivity (mm/h) is supplied by the water movement model;
    `conductivity_in` and `conductivity_out` currently both return it.
    """

    def __init__(
        self,
        layer: int,
        compartment: int,
        thickness: ThicknessMm,
        max_diameter: DiameterNm,
        min_diameter: DiameterNm,
        volume_fraction: VolumeFraction,
        water_depth: float = 0.0,
        hydraulic_conductivity: float = 0.0,
        tolerance: Optional[float] = None,
    ):
        self.layer = layer
        self.compartment = compartment
        self.geometry = PoreGeometry(
            thickness=float(thickness),
            max_diameter=float(max_diameter),
            min_diameter=float(min_diameter),
            volume_fraction=float(volume_fraction),
        )
        self.tolerance = (
            get_config().pore.floating_point_tolerance if tolerance is None else float(tolerance)
        )
        self.hydraulic_conductivity = hydraulic_conductivity
        self._water_depth = 0.0
        self.set_water_depth(water_depth)

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(layer={self.layer}, compartment={self.compartment}, "
            f"water_depth={self._water_depth:.6g}, volume_depth={self.volume_depth:.6g})"
        )

    # Geometry
    @property
    def thickness(self) -> float:
        return self.geometry.thickness

    @property
    def max_diameter(self) -> float:
        return self.geometry.max_diameter

    @property
    def min_diameter(self) -> float:
        return self.geometry.min_diameter

    @property
    def volume_fraction(self) -> float:
        return self.geometry.volume_fraction

    @property
    def volume_depth(self) -> float:
        """Pore volume as a depth of water (mm)"""
        return self.geometry.volume_depth

    # Water state
    @property
    def water_depth(self) -> float:
        """Depth of water held in the pore (mm)"""
        return self._water_depth

    @water_depth.setter
    def water_depth(self, value: float):
        self.set_water_depth(value)

    def set_water_depth(self, value: float) -> float:
        """
        Validate and store a new water depth.

        Args:
            value: Water depth (mm)

        Returns:
            The depth actually stored

        Raises:
            InvalidWaterDepth: value is NaN or below zero by more than the tolerance
            PoreOverfill: value exceeds volume_depth by more than the tolerance
        """
        value = float(value)

        if np.isnan(value) or value < -self.tolerance:
            raise InvalidWaterDepth(
                "Trying to set a negative pore water depth",
                self._error_context(value, "set_water_depth"),
            )

        if value < 0:
            logger.debug(
                "Clamping round-off water depth %.3g to 0 in layer %s compartment %s",
                value, self.layer, self.compartment,
            )
            value = 0.0

        if value - self.volume_depth > self.tolerance:
            raise PoreOverfill(
                f"Trying to put {value:.6g} mm of water into pore {self.compartment} "
                f"in layer {self.layer}, which holds {self.volume_depth:.6g} mm",
                self._error_context(value, "set_water_depth"),
            )

        self._water_depth = value
        return value

    def add_water(self, amount: float) -> float:
        """Change the water depth by `amount` mm (negative removes water)"""
        return self.set_water_depth(self._water_depth + amount)

    def fill(self) -> float:
        return self.set_water_depth(self.volume_depth)

    def drain(self) -> float:
        return self.set_water_depth(0.0)

    # Derived quantities
    @property
    def water_filled_fraction(self) -> float:
        """Water filled volume relative to soil volume (ml/ml)"""
        return self._water_depth / self.thickness

    @property
    def air_filled_fraction(self) -> float:
        """Air filled volume relative to soil volume (ml/ml)"""
        return self.volume_fraction - self.water_filled_fraction

    @property
    def air_depth(self) -> float:
        """Depth of air in the pore (mm)"""
        return self.air_filled_fraction * self.thickness

    @property
    def saturation(self) -> float:
        """Fraction of the pore volume holding water (0-1)"""
        return self._water_depth / self.volume_depth if self.volume_depth > 0 else 0.0

    @property
    def is_full(self) -> bool:
        return self.volume_depth - self._water_depth <= self.tolerance

    # Conductivity
    @property
    def conductivity_in(self) -> float:
        """Conductivity of water moving into the pore, as measured for a wetting soil (mm/h)"""
        return self.hydraulic_conductivity

    @property
    def conductivity_out(self) -> float:
        """Conductivity of water moving out of the pore (mm/h)"""
        return self.hydraulic_conductivity

    def get_diagnostic_info(self) -> Dict[str, Any]:
        """Current state and derived quantities as a flat dict"""
        return {
            "layer": self.layer,
            "compartment": self.compartment,
            "thickness": self.thickness,
            "max_diameter": self.max_diameter,
            "min_diameter": self.min_diameter,
            "volume_fraction": self.volume_fraction,
            "volume_depth": self.volume_depth,
            "water_depth": self._water_depth,
            "air_depth": self.air_depth,
            "water_filled_fraction": self.water_filled_fraction,
            "air_filled_fraction": self.air_filled_fraction,
            "saturation": self.saturation,
            "hydraulic_conductivity": self.hydraulic_conductivity,
        }

    def _error_context(self, value: float, operation: str) -> ErrorContext:
        return ErrorContext(
            layer=self.layer,
            compartment=self.compartment,
            value=value,
            component="pore",
            operation=operation,
            details={"volume_depth": self.volume_depth, "tolerance": self.tolerance},
        )


def summarize_pores(pores: Iterable[PoreCompartment]) -> pd.DataFrame:
    """
    Per-layer totals over a set of pore compartments.

    Returns:
        DataFrame indexed by layer with volume_depth, water_depth and
        air_depth summed over compartments, plus n_compartments
    """
    records = [pore.get_diagnostic_info() for pore in pores]
    if not records:
        return pd.DataFrame(
            columns=["volume_depth", "water_depth", "air_depth", "n_compartments"],
            index=pd.Index([], name="layer"),
        )

    df = pd.DataFrame.from_records(records)
    summary = df.groupby("layer").agg(
        volume_depth=("volume_depth", "sum"),
        water_depth=("water_depth", "sum"),
        air_depth=("air_depth", "sum"),
        n_compartments=("compartment", "count"),
    )
    return summary
