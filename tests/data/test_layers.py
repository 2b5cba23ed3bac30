"""
Tests for layer structure helpers and the in-memory soil layer lookup.
"""
import numpy as np
import pytest
from pydantic import ValidationError

from soilkit.core.exceptions import DataValidationError
from soilkit.data.layers import (
    SoilLayerProperties,
    map_layer_values,
    to_depth_strings,
    to_thickness,
)


class TestDepthStrings:

    def test_to_depth_strings(self):
        assert to_depth_strings([100, 200, 300]) == ["0-10", "10-30", "30-60"]

    def test_fractional_depths(self):
        assert to_depth_strings([25, 75]) == ["0-2.5", "2.5-10"]

    def test_none(self):
        assert to_depth_strings(None) is None
        assert to_thickness(None) is None

    def test_to_thickness(self):
        np.testing.assert_allclose(to_thickness(["0-10", "10-30", "30-60"]), [100, 200, 300])

    def test_inverse(self):
        thickness = [50.0, 100.0, 150.0, 300.0]
        np.testing.assert_allclose(to_thickness(to_depth_strings(thickness)), thickness)

    @pytest.mark.parametrize("depth", ["10", "a-b", "30-10", "0-10-20"])
    def test_malformed(self, depth):
        with pytest.raises(DataValidationError):
            to_thickness([depth])


class TestMapLayerValues:

    def test_same_structure(self):
        np.testing.assert_allclose(
            map_layer_values([100, 200], [1.1, 1.4], [100, 200]), [1.1, 1.4]
        )

    def test_split_layers(self):
        np.testing.assert_allclose(
            map_layer_values([300, 300], [1.2, 1.5], [150, 150, 300]), [1.2, 1.2, 1.5]
        )

    def test_thickness_weighted_overlap(self):
        mapped = map_layer_values([300, 300], [1.2, 1.5], [200, 200, 400])
        np.testing.assert_allclose(mapped, [1.2, 1.35, 1.5])

    def test_extends_below_profile(self):
        mapped = map_layer_values([100], [1.3], [100, 500])
        np.testing.assert_allclose(mapped, [1.3, 1.3])

    def test_nan_source_value(self):
        mapped = map_layer_values([100, 100], [np.nan, 1.4], [100, 100])
        assert np.isnan(mapped[0])
        assert mapped[1] == pytest.approx(1.4)

    def test_nan_stays_in_overlapping_layers(self):
        mapped = map_layer_values([100, 100, 100], [1.2, np.nan, 1.5], [50, 100, 50, 100])
        assert mapped[0] == pytest.approx(1.2)
        assert np.isnan(mapped[1])
        assert np.isnan(mapped[2])
        assert mapped[3] == pytest.approx(1.5)

    def test_empty(self):
        assert map_layer_values([100], [1.3], []).size == 0
        assert np.isnan(map_layer_values([], [], [100])).all()

    def test_length_mismatch(self):
        with pytest.raises(DataValidationError):
            map_layer_values([100, 100], [1.3], [100])


class TestSoilLayerProperties:

    @pytest.fixture
    def props(self):
        return SoilLayerProperties(
            thickness=[150, 150, 300],
            bulk_density=[1.1, 1.3, 1.5],
            soil_cn=[12.0, 11.0, 10.0],
        )

    def test_bulk_density_mapped(self, props):
        np.testing.assert_allclose(props.bulk_density([300, 300]), [1.2, 1.5])

    def test_carbon_nitrogen_ratio(self, props):
        np.testing.assert_allclose(props.carbon_nitrogen_ratio(), [12.0, 11.0, 10.0])

    def test_scalar_ratio(self):
        props = SoilLayerProperties(thickness=[100], bulk_density=[1.3], soil_cn=12.5)
        assert props.carbon_nitrogen_ratio() == 12.5

    def test_missing_ratio(self):
        props = SoilLayerProperties(thickness=[100], bulk_density=[1.3])
        assert props.carbon_nitrogen_ratio() is None

    def test_depth(self, props):
        assert props.depth == ["0-15", "15-30", "30-60"]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"thickness": [100, 100], "bulk_density": [1.3]},
            {"thickness": [100], "bulk_density": [0.0]},
            {"thickness": [0], "bulk_density": [1.3]},
            {"thickness": [100], "bulk_density": [1.3], "soil_cn": [10.0, 12.0]},
        ],
    )
    def test_validation(self, kwargs):
        with pytest.raises(ValidationError):
            SoilLayerProperties(**kwargs)
