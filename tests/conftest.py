"""
pytest configuration for soilkit tests.
"""
import numpy as np
import pytest

from soilkit.core.config import set_config


@pytest.fixture(autouse=True)
def _reset_config():
    """Reset the configuration singleton between tests."""
    set_config(None)
    yield
    set_config(None)


class FixedLookup:
    """Soil layer lookup returning fixed values, whatever the layers asked for."""

    def __init__(self, bulk_density, carbon_nitrogen_ratio=None):
        self._bulk_density = bulk_density
        self._cn = carbon_nitrogen_ratio
        self.calls = []

    def bulk_density(self, thickness):
        self.calls.append(np.array(thickness, copy=True))
        if self._bulk_density is None:
            return None
        return np.array(self._bulk_density, dtype=float)

    def carbon_nitrogen_ratio(self):
        return self._cn


@pytest.fixture
def fixed_lookup():
    """Factory for lookups with fixed bulk density / C:N ratio."""
    return FixedLookup
