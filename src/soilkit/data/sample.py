"""
Multi-unit soil sample.

A laboratory records each convertible quantity in one unit; the sample
stores it as recorded (a TaggedValues pair) and presents it in any of the
valid alternate units on demand. Conversions that need bulk density get it
from an injected SoilLayerLookup, resolved against the sample's own layer
thicknesses.

Reads never modify the stored values and never raise for missing data:
an unmeasured quantity reads as None and a missing laboratory value (NaN)
stays NaN in every unit.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd

from soilkit.core.config import SampleConfig, get_config
from soilkit.core.constants import (
    FIXED_UNITS,
    PH_CACL2_TO_WATER_INTERCEPT,
    PH_CACL2_TO_WATER_SLOPE,
    PPM_TO_KG_HA_DIVISOR,
    WALKLEY_BLACK_TO_TOTAL_OC,
)
from soilkit.core.exceptions import (
    DataError,
    DataValidationError,
    ErrorContext,
    UnsupportedUnitError,
)
from soilkit.core.types import (
    LayerArray,
    LayerValues,
    NitrogenUnit,
    OrganicCarbonUnit,
    PHUnit,
    Quantity,
    SampleUnit,
    SoilLayerLookup,
    SoilWaterUnit,
)
from soilkit.data.layers import to_depth_strings, to_thickness

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConversionContext:
    """Layer properties a conversion may need"""
    thickness: LayerArray  # mm
    bulk_density: Optional[LayerArray] = None  # g/cc
    nan_on_zero_divisor: bool = True

    def divide(self, numerator: LayerArray, divisor: LayerArray) -> LayerArray:
        """Element-wise division; a zero divisor gives NaN unless configured otherwise"""
        divisor = np.asarray(divisor, dtype=float)
        with np.errstate(divide="ignore", invalid="ignore"):
            result = np.true_divide(numerator, divisor)
        if self.nan_on_zero_divisor:
            result = np.where(divisor == 0, np.nan, result)
        return result


ConversionFunction = Callable[[LayerArray, ConversionContext], LayerArray]


@dataclass(frozen=True)
class Conversion:
    """One entry of the unit conversion table"""
    function: ConversionFunction
    needs_bulk_density: bool = False


# (from unit, to unit) -> conversion
CONVERSIONS: Dict[Tuple[SampleUnit, SampleUnit], Conversion] = {}


def _register(
    from_unit: SampleUnit,
    to_unit: SampleUnit,
    function: ConversionFunction,
    needs_bulk_density: bool = False,
):
    CONVERSIONS[(from_unit, to_unit)] = Conversion(function, needs_bulk_density)


def _identity(values: LayerArray, context: ConversionContext) -> LayerArray:
    return values.copy()


for _unit_type in (NitrogenUnit, SoilWaterUnit, OrganicCarbonUnit, PHUnit):
    for _unit in _unit_type:
        _register(_unit, _unit, _identity)


# Nitrate / ammonia
_register(
    NitrogenUnit.PPM, NitrogenUnit.KG_HA,
    lambda v, c: v / PPM_TO_KG_HA_DIVISOR * (c.bulk_density * c.thickness),
    needs_bulk_density=True,
)
_register(
    NitrogenUnit.KG_HA, NitrogenUnit.PPM,
    lambda v, c: c.divide(v * PPM_TO_KG_HA_DIVISOR, c.bulk_density * c.thickness),
    needs_bulk_density=True,
)

# Soil water, always from the recorded unit (never chained through a canonical one)
_register(
    SoilWaterUnit.VOLUMETRIC, SoilWaterUnit.MM,
    lambda v, c: v * c.thickness,
)
_register(
    SoilWaterUnit.GRAVIMETRIC, SoilWaterUnit.MM,
    lambda v, c: v * c.bulk_density * c.thickness,
    needs_bulk_density=True,
)
_register(
    SoilWaterUnit.VOLUMETRIC, SoilWaterUnit.GRAVIMETRIC,
    lambda v, c: c.divide(v, c.bulk_density),
    needs_bulk_density=True,
)
_register(
    SoilWaterUnit.MM, SoilWaterUnit.GRAVIMETRIC,
    lambda v, c: c.divide(c.divide(v, c.bulk_density), c.thickness),
    needs_bulk_density=True,
)
_register(
    SoilWaterUnit.GRAVIMETRIC, SoilWaterUnit.VOLUMETRIC,
    lambda v, c: v * c.bulk_density,
    needs_bulk_density=True,
)
_register(
    SoilWaterUnit.MM, SoilWaterUnit.VOLUMETRIC,
    lambda v, c: c.divide(v, c.thickness),
)

# Organic carbon
_register(
    OrganicCarbonUnit.WALKLEY_BLACK, OrganicCarbonUnit.TOTAL,
    lambda v, c: v * WALKLEY_BLACK_TO_TOTAL_OC,
)
_register(
    OrganicCarbonUnit.TOTAL, OrganicCarbonUnit.WALKLEY_BLACK,
    lambda v, c: v / WALKLEY_BLACK_TO_TOTAL_OC,
)

# pH
_register(
    PHUnit.CACL2, PHUnit.WATER,
    lambda v, c: v * PH_CACL2_TO_WATER_SLOPE - PH_CACL2_TO_WATER_INTERCEPT,
)
_register(
    PHUnit.WATER, PHUnit.CACL2,
    lambda v, c: (v + PH_CACL2_TO_WATER_INTERCEPT) / PH_CACL2_TO_WATER_SLOPE,
)

# Single-unit measurements stored alongside the convertible ones
FIXED_QUANTITIES: Tuple[str, ...] = ("electrical_conductivity", "chloride", "exchangeable_sodium_percent")

# Quantities whose readings depend on the soil profile, whatever the unit
LOOKUP_DEPENDENT: Tuple[Quantity, ...] = (Quantity.NITRATE, Quantity.AMMONIA, Quantity.SOIL_WATER)


@dataclass(frozen=True)
class TaggedValues:
    """Per-layer values tagged with the unit they were recorded in"""
    values: LayerArray
    unit: SampleUnit

    def to(self, unit: SampleUnit, context: ConversionContext) -> LayerArray:
        """Values expressed in `unit`, as a new array"""
        conversion = CONVERSIONS[(self.unit, unit)]
        return np.asarray(conversion.function(self.values, context), dtype=float)


class SoilMeasurementSample:
    """
    Soil sample measurements for a set of layers.

    Nitrate, ammonia, soil water, organic carbon and pH are stored in the
    unit selected for each and are readable in every valid unit through the
    `<quantity>_<unit>` properties or `get_values`. Electrical conductivity,
    chloride and ESP have a single unit.

    The editing path replaces whole arrays; every array must have one entry
    per layer in `thickness`.
    """

    def __init__(
        self,
        thickness: Optional[LayerValues] = None,
        lookup: Optional[SoilLayerLookup] = None,
        name: str = "Sample",
        nitrate_unit: NitrogenUnit = NitrogenUnit.PPM,
        ammonia_unit: NitrogenUnit = NitrogenUnit.PPM,
        soil_water_unit: SoilWaterUnit = SoilWaterUnit.VOLUMETRIC,
        organic_carbon_unit: OrganicCarbonUnit = OrganicCarbonUnit.TOTAL,
        ph_unit: PHUnit = PHUnit.WATER,
        config: Optional[SampleConfig] = None,
    ):
        self.name = name
        self.lookup = lookup
        self.config = config or get_config().sample

        self._thickness: Optional[LayerArray] = None
        if thickness is not None:
            self._thickness = self._as_layer_array(thickness, "thickness", check_length=False)

        self._units: Dict[Quantity, SampleUnit] = {
            Quantity.NITRATE: self._coerce_unit(Quantity.NITRATE, nitrate_unit),
            Quantity.AMMONIA: self._coerce_unit(Quantity.AMMONIA, ammonia_unit),
            Quantity.SOIL_WATER: self._coerce_unit(Quantity.SOIL_WATER, soil_water_unit),
            Quantity.ORGANIC_CARBON: self._coerce_unit(Quantity.ORGANIC_CARBON, organic_carbon_unit),
            Quantity.PH: self._coerce_unit(Quantity.PH, ph_unit),
        }
        self._raw: Dict[Quantity, Optional[LayerArray]] = {quantity: None for quantity in Quantity}
        self._fixed: Dict[str, Optional[LayerArray]] = {name: None for name in FIXED_QUANTITIES}

    def __repr__(self) -> str:
        n_layers = 0 if self._thickness is None else self._thickness.size
        measured = [q.value for q in Quantity if self._raw[q] is not None]
        measured += [name for name, values in self._fixed.items() if values is not None]
        return f"{self.__class__.__name__}(name={self.name!r}, layers={n_layers}, measured={measured})"

    # ------------------------------------------------------------------
    # Layer structure
    # ------------------------------------------------------------------

    @property
    def thickness(self) -> Optional[LayerArray]:
        """Layer thickness (mm)"""
        return None if self._thickness is None else self._thickness.copy()

    @thickness.setter
    def thickness(self, value: Optional[LayerValues]):
        thickness = None if value is None else self._as_layer_array(value, "thickness", check_length=False)
        n_layers = 0 if thickness is None else thickness.size
        for name, values in self._all_arrays():
            if values is not None and values.size != n_layers:
                raise DataValidationError(
                    f"Cannot change to {n_layers} layers while {name} has {values.size} values",
                    ErrorContext(component="sample", operation="set_thickness"),
                )
        self._thickness = thickness

    @property
    def depth(self) -> Optional[List[str]]:
        """Layer depths as strings in cm, e.g. ["0-10", "10-30"]"""
        return to_depth_strings(self._thickness)

    @depth.setter
    def depth(self, value: Optional[List[str]]):
        self.thickness = to_thickness(value)

    @property
    def n_layers(self) -> int:
        return 0 if self._thickness is None else int(self._thickness.size)

    def update(self, thickness: Optional[LayerValues] = None, **arrays: Optional[LayerValues]):
        """
        Replace the layer structure and any measurement arrays together.

        Arrays not named keep their current values and must still match the
        new thickness.
        """
        valid = {q.value for q in Quantity} | set(self._fixed)
        unknown = set(arrays) - valid
        if unknown:
            raise DataValidationError(
                f"Unknown measurement(s): {sorted(unknown)}",
                ErrorContext(component="sample", operation="update"),
            )

        new_thickness = self._thickness
        if thickness is not None:
            new_thickness = self._as_layer_array(thickness, "thickness", check_length=False)

        staged = {}
        for name, values in arrays.items():
            staged[name] = None if values is None else self._as_layer_array(
                values, name, check_length=False
            )

        for name, values in self._all_arrays():
            values = staged.get(name, values)
            if values is None:
                continue
            if new_thickness is None or values.size != new_thickness.size:
                n_expected = 0 if new_thickness is None else new_thickness.size
                raise DataValidationError(
                    f"{name} has {values.size} values for {n_expected} layers",
                    ErrorContext(component="sample", operation="update"),
                )

        self._thickness = new_thickness
        for name, values in staged.items():
            if name in self._fixed:
                self._fixed[name] = values
            else:
                self._raw[Quantity(name)] = values

    # ------------------------------------------------------------------
    # Raw measurements, in the recorded units
    # ------------------------------------------------------------------

    def get_raw(self, quantity: Union[Quantity, str]) -> Optional[LayerArray]:
        """Stored values of a convertible quantity, in its recorded unit"""
        values = self._raw[Quantity(quantity)]
        return None if values is None else values.copy()

    def set_raw(self, quantity: Union[Quantity, str], values: Optional[LayerValues]):
        """Replace the stored values of a convertible quantity"""
        quantity = Quantity(quantity)
        self._raw[quantity] = None if values is None else self._as_layer_array(values, quantity.value)

    def get_unit(self, quantity: Union[Quantity, str]) -> SampleUnit:
        return self._units[Quantity(quantity)]

    def set_unit(self, quantity: Union[Quantity, str], unit: Union[SampleUnit, str]):
        """
        Change the unit the stored values are recorded in.

        The stored values are not converted; use `convert_to` for that.
        """
        quantity = Quantity(quantity)
        self._units[quantity] = self._coerce_unit(quantity, unit)

    nitrate = property(
        lambda self: self.get_raw(Quantity.NITRATE),
        lambda self, v: self.set_raw(Quantity.NITRATE, v),
        doc="Nitrate (NO3), in nitrate_unit",
    )
    ammonia = property(
        lambda self: self.get_raw(Quantity.AMMONIA),
        lambda self, v: self.set_raw(Quantity.AMMONIA, v),
        doc="Ammonia (NH4), in ammonia_unit",
    )
    soil_water = property(
        lambda self: self.get_raw(Quantity.SOIL_WATER),
        lambda self, v: self.set_raw(Quantity.SOIL_WATER, v),
        doc="Soil water, in soil_water_unit",
    )
    organic_carbon = property(
        lambda self: self.get_raw(Quantity.ORGANIC_CARBON),
        lambda self, v: self.set_raw(Quantity.ORGANIC_CARBON, v),
        doc="Organic carbon, in organic_carbon_unit",
    )
    ph = property(
        lambda self: self.get_raw(Quantity.PH),
        lambda self, v: self.set_raw(Quantity.PH, v),
        doc="pH, in ph_unit",
    )

    nitrate_unit = property(
        lambda self: self.get_unit(Quantity.NITRATE),
        lambda self, u: self.set_unit(Quantity.NITRATE, u),
    )
    ammonia_unit = property(
        lambda self: self.get_unit(Quantity.AMMONIA),
        lambda self, u: self.set_unit(Quantity.AMMONIA, u),
    )
    soil_water_unit = property(
        lambda self: self.get_unit(Quantity.SOIL_WATER),
        lambda self, u: self.set_unit(Quantity.SOIL_WATER, u),
    )
    organic_carbon_unit = property(
        lambda self: self.get_unit(Quantity.ORGANIC_CARBON),
        lambda self, u: self.set_unit(Quantity.ORGANIC_CARBON, u),
    )
    ph_unit = property(
        lambda self: self.get_unit(Quantity.PH),
        lambda self, u: self.set_unit(Quantity.PH, u),
    )

    def _get_fixed(self, name: str) -> Optional[LayerArray]:
        values = self._fixed[name]
        return None if values is None else values.copy()

    def _set_fixed(self, name: str, values: Optional[LayerValues]):
        self._fixed[name] = None if values is None else self._as_layer_array(values, name)

    electrical_conductivity = property(
        lambda self: self._get_fixed("electrical_conductivity"),
        lambda self, v: self._set_fixed("electrical_conductivity", v),
        doc="Electrical conductivity (1:5 dS/m)",
    )
    chloride = property(
        lambda self: self._get_fixed("chloride"),
        lambda self, v: self._set_fixed("chloride", v),
        doc="Chloride (mg/kg)",
    )
    exchangeable_sodium_percent = property(
        lambda self: self._get_fixed("exchangeable_sodium_percent"),
        lambda self, v: self._set_fixed("exchangeable_sodium_percent", v),
        doc="Exchangeable sodium percentage (%)",
    )

    # ------------------------------------------------------------------
    # Unit conversion
    # ------------------------------------------------------------------

    def get_values(
        self,
        quantity: Union[Quantity, str],
        unit: Union[SampleUnit, str],
    ) -> Optional[LayerArray]:
        """
        Values of a quantity expressed in `unit`.

        Returns None when the quantity was not measured, or when the
        conversion needs soil profile data that is not available.
        """
        quantity = Quantity(quantity)
        raw = self._raw[quantity]
        try:
            unit = self._coerce_unit(quantity, unit)
        except UnsupportedUnitError:
            if self.config.unsupported_unit_policy != "passthrough":
                raise
            logger.debug("Returning %s unconverted for unsupported unit %r", quantity.value, unit)
            unit = self._units[quantity]

        if raw is None:
            return None

        recorded = TaggedValues(raw, self._units[quantity])
        conversion = CONVERSIONS[(recorded.unit, unit)]

        bulk_density = None
        if quantity in LOOKUP_DEPENDENT or conversion.needs_bulk_density:
            bulk_density = self._resolve_bulk_density()
            if bulk_density is None:
                return None

        return recorded.to(unit, self._context(bulk_density))

    def convert_to(self, quantity: Union[Quantity, str], unit: Union[SampleUnit, str]):
        """
        Re-express the stored values of a quantity in a new recorded unit.

        Raises:
            DataError: if the conversion needs soil profile data that is
                not available
        """
        quantity = Quantity(quantity)
        unit = self._coerce_unit(quantity, unit)
        if self._raw[quantity] is not None:
            converted = self.get_values(quantity, unit)
            if converted is None:
                raise DataError(
                    f"Cannot convert {quantity.value} to {unit.value} without bulk density",
                    ErrorContext(component="sample", operation="convert_to"),
                )
            self._raw[quantity] = converted
        self._units[quantity] = unit

    @property
    def nitrate_ppm(self) -> Optional[LayerArray]:
        return self.get_values(Quantity.NITRATE, NitrogenUnit.PPM)

    @property
    def nitrate_kgha(self) -> Optional[LayerArray]:
        return self.get_values(Quantity.NITRATE, NitrogenUnit.KG_HA)

    @property
    def ammonia_ppm(self) -> Optional[LayerArray]:
        return self.get_values(Quantity.AMMONIA, NitrogenUnit.PPM)

    @property
    def ammonia_kgha(self) -> Optional[LayerArray]:
        return self.get_values(Quantity.AMMONIA, NitrogenUnit.KG_HA)

    @property
    def soil_water_mm(self) -> Optional[LayerArray]:
        return self.get_values(Quantity.SOIL_WATER, SoilWaterUnit.MM)

    @property
    def soil_water_gravimetric(self) -> Optional[LayerArray]:
        return self.get_values(Quantity.SOIL_WATER, SoilWaterUnit.GRAVIMETRIC)

    @property
    def soil_water_volumetric(self) -> Optional[LayerArray]:
        return self.get_values(Quantity.SOIL_WATER, SoilWaterUnit.VOLUMETRIC)

    @property
    def organic_carbon_total(self) -> Optional[LayerArray]:
        return self.get_values(Quantity.ORGANIC_CARBON, OrganicCarbonUnit.TOTAL)

    @property
    def organic_carbon_walkley_black(self) -> Optional[LayerArray]:
        return self.get_values(Quantity.ORGANIC_CARBON, OrganicCarbonUnit.WALKLEY_BLACK)

    @property
    def ph_water(self) -> Optional[LayerArray]:
        return self.get_values(Quantity.PH, PHUnit.WATER)

    @property
    def ph_cacl2(self) -> Optional[LayerArray]:
        return self.get_values(Quantity.PH, PHUnit.CACL2)

    @property
    def organic_nitrogen(self) -> Optional[LayerArray]:
        """Organic nitrogen (%) from total organic carbon and the soil C:N ratio"""
        organic_carbon = self.organic_carbon_total
        if organic_carbon is None or self.lookup is None:
            return None

        cn_ratio = self.lookup.carbon_nitrogen_ratio()
        if cn_ratio is None:
            return None
        cn_ratio = np.asarray(cn_ratio, dtype=float)
        if cn_ratio.ndim > 0 and cn_ratio.shape != organic_carbon.shape:
            logger.warning(
                "Carbon:nitrogen ratio has %d values for %d sample layers; organic nitrogen unavailable",
                cn_ratio.size, organic_carbon.size,
            )
            return None

        return self._context(None).divide(organic_carbon, cn_ratio)

    # ------------------------------------------------------------------
    # Tabular view
    # ------------------------------------------------------------------

    def to_frame(
        self,
        units: Optional[Dict[Union[Quantity, str], Union[SampleUnit, str]]] = None,
    ) -> pd.DataFrame:
        """
        Measured quantities as a DataFrame indexed by layer depth.

        Args:
            units: Unit to show per quantity; recorded units otherwise

        Returns:
            One "<quantity> (<unit>)" column per quantity with data
        """
        units = {Quantity(q): u for q, u in (units or {}).items()}
        columns: Dict[str, LayerArray] = {}

        for quantity in Quantity:
            unit = self._coerce_unit(quantity, units.get(quantity, self._units[quantity]))
            values = self.get_values(quantity, unit)
            if values is not None:
                columns[f"{quantity.value} ({unit.value})"] = values

        for name in self._fixed:
            values = self._get_fixed(name)
            if values is not None:
                columns[f"{name} ({FIXED_UNITS[name]})"] = values

        organic_nitrogen = self.organic_nitrogen
        if organic_nitrogen is not None:
            columns[f"organic_nitrogen ({FIXED_UNITS['organic_nitrogen']})"] = organic_nitrogen

        index = pd.Index(self.depth or [], name="depth (cm)")
        return pd.DataFrame(columns, index=index)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _context(self, bulk_density: Optional[LayerArray]) -> ConversionContext:
        return ConversionContext(
            thickness=self._thickness,
            bulk_density=bulk_density,
            nan_on_zero_divisor=self.config.nan_on_zero_divisor,
        )

    def _resolve_bulk_density(self) -> Optional[LayerArray]:
        """Bulk density for this sample's layers, or None if unavailable"""
        if self.lookup is None or self._thickness is None:
            logger.debug("No soil layer lookup for sample %r", self.name)
            return None

        bulk_density = self.lookup.bulk_density(self._thickness.copy())
        if bulk_density is None:
            logger.debug("Soil layer lookup returned no bulk density for sample %r", self.name)
            return None

        bulk_density = np.asarray(bulk_density, dtype=float)
        if bulk_density.shape != self._thickness.shape:
            logger.warning(
                "Bulk density has %d values for %d layers in sample %r",
                bulk_density.size, self._thickness.size, self.name,
            )
            return None
        return bulk_density

    def _coerce_unit(self, quantity: Quantity, unit: Union[SampleUnit, str]) -> SampleUnit:
        unit_type = quantity.unit_type
        if isinstance(unit, Enum) and not isinstance(unit, unit_type):
            raise UnsupportedUnitError(
                f"{unit.value!r} is not a unit of {quantity.value}",
                ErrorContext(component="sample", details={"valid": [u.value for u in unit_type]}),
            )
        try:
            return unit_type(unit)
        except ValueError:
            raise UnsupportedUnitError(
                f"{unit!r} is not a unit of {quantity.value}",
                ErrorContext(component="sample", details={"valid": [u.value for u in unit_type]}),
            )

    def _as_layer_array(self, values: LayerValues, name: str, check_length: bool = True) -> LayerArray:
        try:
            array = np.array(values, dtype=float)
        except (TypeError, ValueError) as e:
            raise DataValidationError(
                f"{name} must be numeric: {e}",
                ErrorContext(component="sample", operation=f"set_{name}"),
            )
        if array.ndim != 1:
            raise DataValidationError(
                f"{name} must be one-dimensional, got shape {array.shape}",
                ErrorContext(component="sample", operation=f"set_{name}"),
            )
        if check_length:
            if self._thickness is None:
                raise DataValidationError(
                    f"Set thickness before {name}",
                    ErrorContext(component="sample", operation=f"set_{name}"),
                )
            if array.size != self._thickness.size:
                raise DataValidationError(
                    f"{name} has {array.size} values for {self._thickness.size} layers",
                    ErrorContext(component="sample", operation=f"set_{name}"),
                )
        return array

    def _all_arrays(self):
        for quantity, values in self._raw.items():
            yield quantity.value, values
        for name, values in self._fixed.items():
            yield name, values
