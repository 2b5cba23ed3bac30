"""
Custom exception hierarchy for soilkit.
Provides clear error categories and rich error information.
"""
from typing import Optional, Any, Dict
from dataclasses import dataclass


@dataclass
class ErrorContext:
    """Context information for errors"""
    layer: Optional[int] = None
    compartment: Optional[int] = None
    value: Optional[float] = None
    component: Optional[str] = None
    operation: Optional[str] = None
    details: Optional[Dict[str, Any]] = None


class SoilkitError(Exception):
    """Base exception for all soilkit errors"""

    def __init__(self, message: str, context: Optional[ErrorContext] = None):
        super().__init__(message)
        self.message = message
        self.context = context or ErrorContext()

    def __str__(self) -> str:
        context_str = ""
        if self.context.layer is not None:
            context_str += f" [Layer: {self.context.layer}]"
        if self.context.compartment is not None:
            context_str += f" [Compartment: {self.context.compartment}]"
        if self.context.value is not None:
            context_str += f" [Value: {self.context.value!r}]"
        if self.context.component:
            context_str += f" [Component: {self.context.component}]"

        return f"{self.__class__.__name__}: {self.message}{context_str}"


# Data-related errors
class DataError(SoilkitError):
    """Base class for data-related errors"""
    pass


class DataValidationError(DataError):
    """Data validation failed"""
    pass


class UnsupportedUnitError(DataError):
    """Requested unit is not valid for the quantity"""
    pass


# Physics model errors
class PhysicsModelError(SoilkitError):
    """Base class for physics model errors"""
    pass


class PoreWaterError(PhysicsModelError):
    """Pore water depth outside its physical bounds"""
    pass


class InvalidWaterDepth(PoreWaterError):
    """Water depth below zero by more than the tolerance"""
    pass


class PoreOverfill(PoreWaterError):
    """Water depth exceeds pore capacity by more than the tolerance"""
    pass


# Configuration errors
class ConfigurationError(SoilkitError):
    """Configuration error"""
    pass
