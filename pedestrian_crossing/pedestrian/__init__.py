"""Pedestrian actor and traffic-safety heuristics."""

from .actor import Pedestrian, STATE_COLORS
from .traffic_safety import StoppedVehicleGate, is_safe_to_cross, vehicle_array

__all__ = ['Pedestrian', 'STATE_COLORS', 'StoppedVehicleGate', 'is_safe_to_cross', 'vehicle_array']
