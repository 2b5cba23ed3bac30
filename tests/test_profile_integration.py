"""
Integration tests: a sample measured on one layer structure, converted with
profile bulk density, and used to fill pore compartments the way a water
redistribution step would.
"""
import numpy as np
import pytest

from soilkit.core.exceptions import PoreOverfill
from soilkit.core.types import SoilWaterUnit
from soilkit.data.layers import SoilLayerProperties
from soilkit.data.sample import SoilMeasurementSample
from soilkit.physics.pore import PoreCompartment, summarize_pores

pytestmark = pytest.mark.integration

# Pore-size classes (nm) and their share of total porosity
PORE_CLASSES = [(1e2, 1e3, 0.3), (1e3, 1e4, 0.3), (1e4, 1e5, 0.25), (1e5, 1e6, 0.15)]
POROSITY = 0.45


def _build_pores(thickness):
    return [
        PoreCompartment(
            layer=layer,
            compartment=c,
            thickness=t,
            max_diameter=max_d,
            min_diameter=min_d,
            volume_fraction=POROSITY * share,
        )
        for layer, t in enumerate(thickness)
        for c, (min_d, max_d, share) in enumerate(PORE_CLASSES)
    ]


def _fill_smallest_first(pores, layer, water_mm):
    remaining = water_mm
    for pore in sorted((p for p in pores if p.layer == layer), key=lambda p: p.max_diameter):
        amount = min(remaining, pore.volume_depth - pore.water_depth)
        pore.add_water(amount)
        remaining -= amount
    return remaining


class TestProfileIntegration:

    def setup_method(self):
        self.profile = SoilLayerProperties(
            thickness=[200, 400, 400],
            bulk_density=[1.25, 1.4, 1.55],
            soil_cn=12.0,
        )
        self.sample = SoilMeasurementSample(
            thickness=[100, 100, 200, 600], lookup=self.profile, name="Initial water"
        )
        self.sample.soil_water_unit = SoilWaterUnit.GRAVIMETRIC
        self.sample.soil_water = [0.2, 0.22, 0.21, 0.19]

    def test_fill_pores_from_sample(self):
        water_mm = self.sample.soil_water_mm
        pores = _build_pores(self.sample.thickness)

        for layer, amount in enumerate(water_mm):
            assert _fill_smallest_first(pores, layer, amount) == pytest.approx(0.0)

        summary = summarize_pores(pores)
        np.testing.assert_allclose(summary["water_depth"], water_mm)
        np.testing.assert_allclose(
            summary["volume_depth"], POROSITY * self.sample.thickness
        )
        for pore in pores:
            assert 0.0 <= pore.water_depth <= pore.volume_depth + pore.tolerance

    def test_bulk_density_mapped_from_profile(self):
        volumetric = self.sample.soil_water_volumetric
        expected_bd = np.array([1.25, 1.25, 1.4, (200 * 1.4 + 400 * 1.55) / 600])
        np.testing.assert_allclose(volumetric, self.sample.soil_water * expected_bd)

    def test_overfull_layer_rejected(self):
        pores = _build_pores(self.sample.thickness)
        too_much = POROSITY * 100 + 1.0

        remaining = _fill_smallest_first(pores, 0, too_much)
        assert remaining == pytest.approx(1.0)

        largest = max((p for p in pores if p.layer == 0), key=lambda p: p.max_diameter)
        with pytest.raises(PoreOverfill):
            largest.add_water(remaining)
