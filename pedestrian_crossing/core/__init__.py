"""Core module for fundamental data structures and geometry."""

from .data_structures import (
    PedestrianPhase,
    Crossing,
    CrossingWaypoints,
    VehicleSnapshot,
    PedestrianSnapshot,
    CrossingSimulationResult,
)
from .geometry import (
    InvalidCrossingGeometry,
    perpendicular,
    derive_waypoints,
    compute_position,
)

__all__ = [
    'PedestrianPhase',
    'Crossing',
    'CrossingWaypoints',
    'VehicleSnapshot',
    'PedestrianSnapshot',
    'CrossingSimulationResult',
    'InvalidCrossingGeometry',
    'perpendicular',
    'derive_waypoints',
    'compute_position',
]
