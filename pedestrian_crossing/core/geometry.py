"""Crossing geometry.

Derives the fixed waypoints of a crossing (road-edge points and off-road
waiting points) and maps a pedestrian's logical state to a world position.
"""

import numpy as np

from .data_structures import Crossing, CrossingWaypoints, PedestrianPhase


class InvalidCrossingGeometry(ValueError):
    """Raised when a crossing cannot produce well-defined waypoints."""
    pass


def perpendicular(vector: np.ndarray) -> np.ndarray:
    """Unit vector rotated 90 degrees counter-clockwise from ``vector``.

    Args:
        vector: 2D vector [dx, dy]

    Returns:
        Unit perpendicular [-dy, dx] / |vector|

    Raises:
        InvalidCrossingGeometry: If the vector has zero or non-finite length
    """
    vector = np.asarray(vector, dtype=float)
    norm = np.linalg.norm(vector)
    if not np.isfinite(norm) or norm < 1e-12:
        raise InvalidCrossingGeometry(
            f"Direction vector {vector.tolist()} has no well-defined perpendicular"
        )
    return np.array([-vector[1], vector[0]]) / norm


def derive_waypoints(crossing: Crossing, off_road_margin: float = 30.0) -> CrossingWaypoints:
    """Compute edge and off-road waypoints for a crossing.

    The edge points sit on the road boundary, ``width / 2`` from the center
    along the perpendicular of the road direction. The off-road points sit a
    further ``off_road_margin`` beyond them so waiting pedestrians stay clear
    of traffic.

    Args:
        crossing: Crossing descriptor
        off_road_margin: Extra distance beyond the road edge for waiting points

    Returns:
        Waypoints, fixed for the lifetime of the pedestrian

    Raises:
        InvalidCrossingGeometry: If the crossing is degenerate
    """
    if not np.all(np.isfinite(crossing.center)):
        raise InvalidCrossingGeometry(f"Crossing center must be finite, got {crossing.center.tolist()}")
    if not np.isfinite(crossing.width) or crossing.width < 0:
        raise InvalidCrossingGeometry(f"Crossing width must be finite and non-negative, got {crossing.width}")
    if not np.isfinite(off_road_margin) or off_road_margin <= 0:
        raise InvalidCrossingGeometry(f"off_road_margin must be positive, got {off_road_margin}")

    perp = perpendicular(crossing.direction_vector)
    edge_offset = crossing.width / 2
    off_road_offset = edge_offset + off_road_margin

    return CrossingWaypoints(
        edge_a=crossing.center + perp * edge_offset,
        edge_b=crossing.center - perp * edge_offset,
        off_road_a=crossing.center + perp * off_road_offset,
        off_road_b=crossing.center - perp * off_road_offset,
    )


def compute_position(
    state: PedestrianPhase,
    direction: int,
    progress: float,
    waypoints: CrossingWaypoints
) -> np.ndarray:
    """World position for a pedestrian state.

    Pure function: never mutates its inputs.

    Args:
        state: Current phase
        direction: +1 when travelling from side A to side B, -1 otherwise
        progress: Normalized position along the crossing [0, 1]
        waypoints: Crossing waypoints

    Returns:
        Position [x, y]
    """
    if state == PedestrianPhase.WAITING_AT_EDGE:
        start = waypoints.off_road_a if direction > 0 else waypoints.off_road_b
        return start.copy()
    elif state == PedestrianPhase.CROSSING:
        t = min(max(progress, 0.0), 1.0)
        return waypoints.edge_a + (waypoints.edge_b - waypoints.edge_a) * t
    elif state == PedestrianPhase.WAITING_AT_OTHER_SIDE:
        end = waypoints.off_road_b if direction > 0 else waypoints.off_road_a
        return end.copy()
    raise ValueError(f"Unknown pedestrian state: {state}")


def axis_aligned_square(center: np.ndarray, half_extent: float) -> np.ndarray:
    """Corners of an axis-aligned square, counter-clockwise from (-, -)."""
    x, y = center
    return np.array([
        [x - half_extent, y - half_extent],
        [x + half_extent, y - half_extent],
        [x + half_extent, y + half_extent],
        [x - half_extent, y + half_extent],
    ])

