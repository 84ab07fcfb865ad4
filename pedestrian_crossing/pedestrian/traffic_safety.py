"""Traffic-safety heuristics for a waiting or crossing pedestrian.

Two independent checks operate on a vehicle snapshot collection:

* the stopped-vehicle gate, a longer-range "may I start crossing" signal that
  requires a nearby vehicle to stay stopped for a cumulative duration;
* the immediate-danger check, a shorter-range "abort" signal raised by any
  vehicle that is close and still moving.
"""

from typing import Any, Iterable, Optional

import numpy as np
from loguru import logger


def vehicle_array(vehicles: Optional[Iterable[Any]]) -> np.ndarray:
    """Convert a vehicle snapshot collection to an array [n_vehicles, 3].

    Each row is [x, y, |speed|]. ``None``, an empty collection and entries
    with missing or non-finite fields are treated as "no vehicle".

    Args:
        vehicles: Objects exposing ``x``, ``y`` and ``speed`` attributes

    Returns:
        Array of shape (n_valid, 3)
    """
    if vehicles is None:
        return np.empty((0, 3))

    try:
        vehicles = list(vehicles)
    except TypeError:
        logger.warning(f"Vehicle snapshots are not a collection, ignoring: {vehicles!r}")
        return np.empty((0, 3))

    rows = []
    for vehicle in vehicles:
        try:
            row = (float(vehicle.x), float(vehicle.y), abs(float(vehicle.speed)))
        except (AttributeError, TypeError, ValueError):
            logger.warning(f"Skipping malformed vehicle snapshot: {vehicle!r}")
            continue
        if not all(np.isfinite(row)):
            logger.warning(f"Skipping non-finite vehicle snapshot: {vehicle!r}")
            continue
        rows.append(row)

    if len(rows) == 0:
        return np.empty((0, 3))
    return np.array(rows)


def _distances(position: np.ndarray, vehicles: np.ndarray) -> np.ndarray:
    return np.linalg.norm(vehicles[:, 0:2] - position, axis=1)


def any_stopped_nearby(
    position: np.ndarray,
    vehicles: np.ndarray,
    proximity_radius: float = 200.0,
    stopped_speed_threshold: float = 0.5
) -> bool:
    """Whether any vehicle within ``proximity_radius`` is (nearly) stopped."""
    if len(vehicles) == 0:
        return False
    nearby = _distances(position, vehicles) < proximity_radius
    stopped = vehicles[:, 2] < stopped_speed_threshold
    return bool(np.any(nearby & stopped))


def is_safe_to_cross(
    position: np.ndarray,
    vehicles: Optional[Iterable[Any]],
    danger_radius: float = 150.0,
    moving_speed_threshold: float = 0.1
) -> bool:
    """Immediate-danger check.

    Args:
        position: Pedestrian position [x, y]
        vehicles: Vehicle snapshots, or an array from :func:`vehicle_array`
        danger_radius: Vehicles closer than this are considered
        moving_speed_threshold: Speed magnitude above which a vehicle is moving

    Returns:
        False if any vehicle within ``danger_radius`` is moving
    """
    if not isinstance(vehicles, np.ndarray):
        vehicles = vehicle_array(vehicles)
    if len(vehicles) == 0:
        return True
    close = _distances(np.asarray(position, dtype=float), vehicles) < danger_radius
    moving = vehicles[:, 2] > moving_speed_threshold
    return not bool(np.any(close & moving))


class StoppedVehicleGate:
    """Cumulative-time gate that permits a pedestrian to begin crossing.

    The timer advances by the tick length while any nearby vehicle is stopped
    and resets to zero as soon as none is, which filters out momentary
    near-zero speed readings.

    Args:
        proximity_radius: Vehicles closer than this are considered
        stopped_speed_threshold: Speed magnitude below which a vehicle is stopped
        required_stop_duration: Cumulative stopped time that opens the gate [ms]
    """

    def __init__(
        self,
        proximity_radius: float = 200.0,
        stopped_speed_threshold: float = 0.5,
        required_stop_duration: float = 100.0
    ):
        self.proximity_radius = proximity_radius
        self.stopped_speed_threshold = stopped_speed_threshold
        self.required_stop_duration = required_stop_duration
        self.stopped_time: float = 0.0

    def reset(self):
        """Reset the stopped-time accumulator."""
        self.stopped_time = 0.0

    def update(self, position: np.ndarray, vehicles: np.ndarray, dt: float) -> bool:
        """Advance the gate by one tick.

        Args:
            position: Pedestrian position [x, y]
            vehicles: Array from :func:`vehicle_array`
            dt: Tick length [ms]; negative or non-finite values count as 0

        Returns:
            True once the stopped time reaches ``required_stop_duration``
        """
        if not np.isfinite(dt) or dt < 0:
            dt = 0.0

        if any_stopped_nearby(position, vehicles,
                              self.proximity_radius, self.stopped_speed_threshold):
            self.stopped_time += dt
            return self.stopped_time >= self.required_stop_duration

        self.stopped_time = 0.0
        return False
