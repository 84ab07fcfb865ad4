"""Core data structures for the pedestrian crossing actor.

This module defines the fundamental data structures shared by the geometry,
traffic-safety, actor and simulation components, ensuring clear interfaces
between them.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import List, Optional

import numpy as np


class PedestrianPhase(Enum):
    """Pedestrian operational states."""
    WAITING_AT_EDGE = auto()
    CROSSING = auto()
    WAITING_AT_OTHER_SIDE = auto()


@dataclass(frozen=True, eq=False)
class Crossing:
    """Marked road crossing a pedestrian traverses.

    Attributes:
        center: Crossing center in world frame [x, y]
        direction_vector: Road direction (unit or non-unit) [dx, dy]
        width: Road width measured across the direction vector
    """
    center: np.ndarray
    direction_vector: np.ndarray
    width: float

    def __post_init__(self):
        """Normalize inputs to float arrays of shape (2,)."""
        object.__setattr__(self, 'center', np.asarray(self.center, dtype=float).reshape(2))
        object.__setattr__(self, 'direction_vector',
                           np.asarray(self.direction_vector, dtype=float).reshape(2))
        object.__setattr__(self, 'width', float(self.width))


@dataclass(frozen=True, eq=False)
class CrossingWaypoints:
    """Waypoints derived once from a crossing.

    Attributes:
        edge_a: Road-edge point on the positive perpendicular side
        edge_b: Road-edge point on the negative perpendicular side
        off_road_a: Waiting point beyond edge_a
        off_road_b: Waiting point beyond edge_b
    """
    edge_a: np.ndarray
    edge_b: np.ndarray
    off_road_a: np.ndarray
    off_road_b: np.ndarray


@dataclass
class VehicleSnapshot:
    """Read-only state of a vehicle for one tick.

    Attributes:
        x: X coordinate in world frame
        y: Y coordinate in world frame
        speed: Signed speed, only its magnitude is used
        id: Optional vehicle identifier
    """
    x: float
    y: float
    speed: float
    id: Optional[str] = None


@dataclass
class PedestrianSnapshot:
    """Recorded state of one pedestrian at one tick."""
    position: np.ndarray
    state: PedestrianPhase
    direction: int
    progress: float
    collision_polygon: np.ndarray = field(default_factory=lambda: np.empty((0, 2)))
    ready_to_return: bool = False


@dataclass
class CrossingSimulationResult:
    """Results from one simulation tick.

    Attributes:
        time: Simulation time [ms]
        pedestrians: Snapshot of every pedestrian after the tick
        vehicles: Vehicle snapshots seen by the pedestrians during the tick
    """
    time: float
    pedestrians: List[PedestrianSnapshot] = field(default_factory=list)
    vehicles: List[VehicleSnapshot] = field(default_factory=list)

    def min_vehicle_distance(self, phase: Optional[PedestrianPhase] = None) -> float:
        """Minimum vehicle-to-pedestrian distance, optionally for one phase."""
        if not self.vehicles:
            return float('inf')
        peds = [p.position for p in self.pedestrians if phase is None or p.state == phase]
        if not peds:
            return float('inf')
        ped_pos = np.array(peds)
        veh_pos = np.array([[v.x, v.y] for v in self.vehicles])
        diff = ped_pos[:, None, :] - veh_pos[None, :, :]
        return float(np.min(np.linalg.norm(diff, axis=2)))
