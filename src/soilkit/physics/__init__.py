"""Physics modules for pore-scale soil water."""
from soilkit.physics.pore import (
    PoreCompartment,
    PoreGeometry,
    summarize_pores,
)

__all__ = [
    "PoreCompartment",
    "PoreGeometry",
    "summarize_pores",
]
