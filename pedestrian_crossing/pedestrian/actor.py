"""Pedestrian actor crossing a road at a marked crossing.

The pedestrian waits off the road until a nearby vehicle has stayed stopped
long enough, crosses between the two road edges, waits on the far side for a
fixed dwell time and then turns around for the return leg.
"""

from typing import Any, Iterable, Optional

import numpy as np
from loguru import logger
from matplotlib.patches import Circle

from ..config import PedestrianConfig, validate_pedestrian_config
from ..core.data_structures import (
    Crossing,
    CrossingWaypoints,
    PedestrianPhase,
    PedestrianSnapshot,
)
from ..core.geometry import axis_aligned_square, compute_position, derive_waypoints
from .traffic_safety import StoppedVehicleGate, is_safe_to_cross, vehicle_array


STATE_COLORS = {
    PedestrianPhase.WAITING_AT_EDGE: '#D2691E',
    PedestrianPhase.CROSSING: '#333333',
    PedestrianPhase.WAITING_AT_OTHER_SIDE: '#8B4513',
}


class Pedestrian:
    """Pedestrian driven by a three-state machine.

    Args:
        crossing: Crossing the pedestrian uses; read once at construction
        config: Actor constants (defaults to :class:`PedestrianConfig`)
        rng: Random source exposing ``random() -> float`` in [0, 1); used once
            to pick the initial direction (defaults to ``numpy.random.default_rng()``)
        pedestrian_id: Optional identifier used in log messages

    Raises:
        InvalidCrossingGeometry: If the crossing is degenerate
        ConfigValidationError: If the constants are invalid
    """

    def __init__(
        self,
        crossing: Crossing,
        config: Optional[PedestrianConfig] = None,
        rng: Optional[Any] = None,
        pedestrian_id: Optional[str] = None
    ):
        self.config = config if config is not None else PedestrianConfig()
        validate_pedestrian_config(self.config)
        self.pedestrian_id = pedestrian_id if pedestrian_id is not None else f"ped_{id(self):x}"

        self.waypoints: CrossingWaypoints = derive_waypoints(
            crossing, off_road_margin=self.config.off_road_margin
        )

        self.speed = self.config.speed
        self.size = self.config.size

        if rng is None:
            rng = np.random.default_rng()
        self.state = PedestrianPhase.WAITING_AT_EDGE
        self.direction = 1 if rng.random() < 0.5 else -1
        self.progress = 0.0 if self.direction > 0 else 1.0
        self.wait_time_accumulated = 0.0
        self.ready_to_return = False

        self.stop_gate = StoppedVehicleGate(
            proximity_radius=self.config.proximity_radius,
            stopped_speed_threshold=self.config.stopped_speed_threshold,
            required_stop_duration=self.config.required_stop_duration,
        )

        logger.debug(
            f"Pedestrian {self.pedestrian_id} created at "
            f"({self.position[0]:.1f}, {self.position[1]:.1f}), direction={self.direction:+d}"
        )

    @property
    def position(self) -> np.ndarray:
        """Current world position [x, y], derived from state, direction and progress."""
        return compute_position(self.state, self.direction, self.progress, self.waypoints)

    @property
    def detection_radius(self) -> float:
        """Radius of the immediate-danger check."""
        return self.config.danger_radius

    @property
    def required_stop_time(self) -> float:
        """Stopped time that opens the gate [ms]."""
        return self.stop_gate.required_stop_duration

    @property
    def car_stopped_time_accumulated(self) -> float:
        """Time a nearby vehicle has stayed stopped [ms]."""
        return self.stop_gate.stopped_time

    @property
    def edge_a(self) -> np.ndarray:
        return self.waypoints.edge_a

    @property
    def edge_b(self) -> np.ndarray:
        return self.waypoints.edge_b

    @property
    def off_road_a(self) -> np.ndarray:
        return self.waypoints.off_road_a

    @property
    def off_road_b(self) -> np.ndarray:
        return self.waypoints.off_road_b

    def is_safe_to_cross(self, vehicles: Optional[Iterable[Any]]) -> bool:
        """Immediate-danger check around the current position.

        Returns:
            False if any vehicle within the danger radius is moving
        """
        return is_safe_to_cross(
            self.position,
            vehicles,
            danger_radius=self.config.danger_radius,
            moving_speed_threshold=self.config.moving_speed_threshold,
        )

    def update(self, vehicles: Optional[Iterable[Any]], dt: Optional[float] = None):
        """Advance the state machine by one tick.

        Args:
            vehicles: Vehicle snapshots exposing ``x``, ``y`` and ``speed``;
                read during the call only
            dt: Tick length [ms] (default: ``config.tick_ms``)
        """
        if dt is None:
            dt = self.config.tick_ms
        if not np.isfinite(dt) or dt < 0:
            logger.warning(f"Pedestrian {self.pedestrian_id}: invalid tick {dt}ms clamped to 0")
            dt = 0.0

        vehicle_states = vehicle_array(vehicles)

        if self.state == PedestrianPhase.WAITING_AT_EDGE:
            if self.stop_gate.update(self.position, vehicle_states, dt):
                self.stop_gate.reset()
                self.ready_to_return = False
                self._transition(PedestrianPhase.CROSSING)

        elif self.state == PedestrianPhase.CROSSING:
            if self.config.danger_policy == 'hold' and not self.is_safe_to_cross(vehicle_states):
                logger.debug(f"Pedestrian {self.pedestrian_id} holding at progress={self.progress:.2f}")
                return
            self._advance(dt)

        elif self.state == PedestrianPhase.WAITING_AT_OTHER_SIDE:
            self.wait_time_accumulated += dt
            if self.wait_time_accumulated >= self.config.far_side_dwell_duration:
                self.ready_to_return = True
                self.direction = -self.direction
                self._transition(PedestrianPhase.WAITING_AT_EDGE)

        else:
            raise ValueError(f"Unknown pedestrian state: {self.state}")

    def _advance(self, dt: float):
        """Move along the crossing and finish the leg at the far edge."""
        step = self.speed * self.direction * self.config.step_scale * (dt / self.config.tick_ms)
        self.progress = min(max(self.progress + step, 0.0), 1.0)

        if self.direction > 0 and self.progress >= 1.0:
            self.progress = 1.0
            self.wait_time_accumulated = 0.0
            self._transition(PedestrianPhase.WAITING_AT_OTHER_SIDE)
        elif self.direction < 0 and self.progress <= 0.0:
            self.progress = 0.0
            self.wait_time_accumulated = 0.0
            self._transition(PedestrianPhase.WAITING_AT_OTHER_SIDE)

    def _transition(self, new_state: PedestrianPhase):
        logger.debug(f"Pedestrian {self.pedestrian_id}: {self.state.name} -> {new_state.name}")
        self.state = new_state

    def draw(self, surface) -> None:
        """Draw the pedestrian as a filled circle coloured by state.

        Args:
            surface: matplotlib ``Axes`` to draw on
        """
        circle = Circle(
            tuple(self.position), radius=self.size,
            facecolor=STATE_COLORS[self.state], edgecolor='white',
            linewidth=2, zorder=6
        )
        surface.add_patch(circle)

    def get_collision_polygon(self) -> np.ndarray:
        """Collision square exposed to the vehicle collision system.

        Returns:
            Empty array (0, 2) while waiting on the far side, otherwise the
            four corners (4, 2) of an axis-aligned square around the position
        """
        if self.state == PedestrianPhase.WAITING_AT_OTHER_SIDE:
            return np.empty((0, 2))
        half_extent = self.size * self.config.collision_half_extent_multiplier
        return axis_aligned_square(self.position, half_extent)

    def snapshot(self) -> PedestrianSnapshot:
        """Record the observable state of the pedestrian."""
        return PedestrianSnapshot(
            position=self.position,
            state=self.state,
            direction=self.direction,
            progress=self.progress,
            collision_polygon=self.get_collision_polygon(),
            ready_to_return=self.ready_to_return,
        )
