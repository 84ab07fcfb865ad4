"""Pedestrian actor crossing a road at a marked crossing."""

__version__ = "0.1.0"
