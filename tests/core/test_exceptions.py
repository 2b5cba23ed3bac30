"""
Tests for the exception hierarchy and logging setup.
"""
import logging

from soilkit.core.config import LoggingConfig
from soilkit.core.exceptions import (
    ConfigurationError,
    DataError,
    DataValidationError,
    ErrorContext,
    InvalidWaterDepth,
    PhysicsModelError,
    PoreOverfill,
    SoilkitError,
    UnsupportedUnitError,
)
from soilkit.core.logging_config import get_logger, setup_logging, setup_logging_from_config


class TestExceptions:

    def test_hierarchy(self):
        assert issubclass(PoreOverfill, PhysicsModelError)
        assert issubclass(InvalidWaterDepth, PhysicsModelError)
        assert issubclass(UnsupportedUnitError, SoilkitError)

    def test_str_includes_context(self):
        error = PoreOverfill("too much water", ErrorContext(layer=3, compartment=1, value=2.5))
        assert str(error) == "PoreOverfill: too much water [Layer: 3] [Compartment: 1] [Value: 2.5]"

    def test_str_without_context(self):
        assert str(SoilkitError("plain")) == "SoilkitError: plain"

    def test_zero_indices_reported(self):
        error = PoreOverfill("x", ErrorContext(layer=0, compartment=0))
        assert "[Layer: 0]" in str(error)
        assert "[Compartment: 0]" in str(error)

    def test_categories(self):
        assert issubclass(DataValidationError, DataError)
        assert issubclass(UnsupportedUnitError, DataError)
        assert issubclass(ConfigurationError, SoilkitError)
        assert not issubclass(ConfigurationError, DataError)


class TestLogging:

    def test_setup_logging(self):
        logger = setup_logging(level="DEBUG")
        assert logger.name == "soilkit"
        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 1
        logger.handlers.clear()

    def test_setup_logging_with_file(self, tmp_path):
        log_file = tmp_path / "logs" / "soilkit.log"
        logger = setup_logging_from_config(LoggingConfig(log_level="WARNING", log_file=log_file))
        assert logger.level == logging.WARNING
        assert len(logger.handlers) == 2

        get_logger("soilkit.physics.pore").warning("pore warning")
        for handler in logger.handlers:
            handler.flush()
        assert "pore warning" in log_file.read_text()

        for handler in logger.handlers:
            handler.close()
        logger.handlers.clear()
