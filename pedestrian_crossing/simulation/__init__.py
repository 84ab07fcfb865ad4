"""Tick harness for pedestrians on a crossing."""

from .crossing_simulator import CrossingSimulator, ScriptedVehicle

__all__ = ['CrossingSimulator', 'ScriptedVehicle']
