"""Crossing simulator: a scripted tick source for pedestrian actors.

Drives one or more pedestrians on a single crossing together with cruising
vehicles that brake for any pedestrian collision polygon inside their sensor
corridor. Vehicles only cruise or brake; they exist to feed
the pedestrians a realistic vehicle snapshot each tick.
"""

import csv
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

import numpy as np
from loguru import logger
from shapely.geometry import LineString, Polygon

from ..config import CrossingSimulationConfig
from ..core.data_structures import Crossing, CrossingSimulationResult, VehicleSnapshot
from ..core.metrics import calculate_aggregate_metrics
from ..pedestrian.actor import Pedestrian


@dataclass
class ScriptedVehicle:
    """Vehicle cruising in a straight line at constant velocity.

    Attributes:
        id: Vehicle identifier
        position: Position [x, y]
        heading: Unit travel direction [dx, dy]
        cruise_speed: Speed when unobstructed [units per tick]
        speed: Current speed [units per tick]
    """
    id: str
    position: np.ndarray
    heading: np.ndarray
    cruise_speed: float
    speed: float = 0.0

    @classmethod
    def from_state(cls, state, vehicle_id: str) -> 'ScriptedVehicle':
        """Create from [x, y, vx, vy]."""
        velocity = np.array(state[2:4], dtype=float)
        cruise_speed = float(np.linalg.norm(velocity))
        heading = velocity / cruise_speed if cruise_speed > 1e-9 else np.array([1.0, 0.0])
        return cls(
            id=vehicle_id,
            position=np.array(state[0:2], dtype=float),
            heading=heading,
            cruise_speed=cruise_speed,
            speed=cruise_speed,
        )

    def snapshot(self) -> VehicleSnapshot:
        return VehicleSnapshot(x=float(self.position[0]), y=float(self.position[1]),
                               speed=self.speed, id=self.id)

    def sensor_corridor(self, sensor_range: float, half_width: float) -> Polygon:
        """Area ahead of the vehicle it must keep clear."""
        ahead = self.position + self.heading * sensor_range
        return LineString([tuple(self.position), tuple(ahead)]).buffer(half_width, cap_style='flat')


class CrossingSimulator:
    """Tick harness for pedestrians on a single crossing.

    Args:
        config: Simulation configuration
    """

    def __init__(self, config: CrossingSimulationConfig):
        self.config = config
        self.tick_ms = config.pedestrian.tick_ms
        self.time = 0.0
        self.step_count = 0
        self.history: List[CrossingSimulationResult] = []

        logger.info("Initializing crossing simulator...")

        self.crossing = Crossing(
            center=config.crossing_center,
            direction_vector=config.crossing_direction,
            width=config.crossing_width,
        )

        rng = np.random.default_rng(config.seed)
        self.pedestrians = [
            Pedestrian(self.crossing, config=config.pedestrian, rng=rng, pedestrian_id=f"PED_{i:03d}")
            for i in range(config.n_pedestrians)
        ]
        if not self.pedestrians:
            logger.warning("No pedestrians in scenario")

        self.vehicles = [
            ScriptedVehicle.from_state(state, f"CAR_{i:03d}")
            for i, state in enumerate(config.vehicle_initial_states)
        ]

        logger.info(
            f"Crossing simulator ready: {len(self.pedestrians)} pedestrian(s), "
            f"{len(self.vehicles)} vehicle(s), tick={self.tick_ms}ms"
        )

    def _collision_polygons(self) -> List[Polygon]:
        polygons = []
        for ped in self.pedestrians:
            corners = ped.get_collision_polygon()
            if len(corners) > 0:
                polygons.append(Polygon(corners))
        return polygons

    def _step_vehicles(self):
        """Brake for pedestrians inside the sensor corridor, then move."""
        polygons = self._collision_polygons()
        for vehicle in self.vehicles:
            corridor = vehicle.sensor_corridor(
                self.config.vehicle_sensor_range, self.config.vehicle_sensor_half_width
            )
            blocked = any(corridor.intersects(poly) for poly in polygons)
            vehicle.speed = 0.0 if blocked else vehicle.cruise_speed
            vehicle.position = vehicle.position + vehicle.heading * vehicle.speed

    def step(self) -> CrossingSimulationResult:
        """Advance the simulation by one tick.

        Returns:
            Result recorded after the tick
        """
        vehicle_snapshots = [v.snapshot() for v in self.vehicles]

        for ped in self.pedestrians:
            ped.update(vehicle_snapshots, self.tick_ms)

        self._step_vehicles()

        self.time += self.tick_ms
        self.step_count += 1

        result = CrossingSimulationResult(
            time=self.time,
            pedestrians=[ped.snapshot() for ped in self.pedestrians],
            vehicles=vehicle_snapshots,
        )
        self.history.append(result)
        return result

    def run(self, n_steps: Optional[int] = None) -> List[CrossingSimulationResult]:
        """Run simulation for multiple steps.

        Args:
            n_steps: Number of steps to run (if None, use config.total_time)

        Returns:
            List of simulation results
        """
        if n_steps is None:
            n_steps = int(self.config.total_time / self.tick_ms)

        logger.info(f"Running simulation for {n_steps} steps "
                    f"(T={n_steps * self.tick_ms / 1000.0:.1f}s)")

        for i in range(n_steps):
            result = self.step()

            if i % 250 == 0:
                states = ", ".join(f"{p.state.name}@{p.progress:.2f}" for p in result.pedestrians)
                logger.info(f"Step {i}/{n_steps}, t={self.time / 1000.0:.1f}s, pedestrians=[{states}]")

        logger.info(f"Simulation complete: {len(self.history)} steps")
        return self.history

    def save_results(self, output_path: Optional[str] = None):
        """Save simulation results to file.

        Args:
            output_path: Output directory path
        """
        if output_path is None:
            output_path = self.config.output_path
        if len(self.history) == 0:
            logger.warning("No simulation results to save, call run() first")
            return {}

        output_dir = Path(output_path)
        output_dir.mkdir(parents=True, exist_ok=True)

        trajectory_file = output_dir / "trajectory.npz"

        times = [r.time for r in self.history]
        ped_positions = [[p.position for p in r.pedestrians] for r in self.history]
        ped_states = [[p.state.name for p in r.pedestrians] for r in self.history]
        ped_progress = [[p.progress for p in r.pedestrians] for r in self.history]
        ped_direction = [[p.direction for p in r.pedestrians] for r in self.history]
        vehicle_positions = [[(v.x, v.y) for v in r.vehicles] for r in self.history]
        vehicle_speeds = [[v.speed for v in r.vehicles] for r in self.history]

        np.savez(
            trajectory_file,
            times=np.array(times),
            ped_positions=np.array(ped_positions, dtype=float).reshape(len(times), -1, 2),
            ped_states=np.array(ped_states, dtype=str),
            ped_progress=np.array(ped_progress, dtype=float),
            ped_direction=np.array(ped_direction, dtype=int),
            vehicle_positions=np.array(vehicle_positions, dtype=float).reshape(len(times), -1, 2),
            vehicle_speeds=np.array(vehicle_speeds, dtype=float),
        )
        logger.info(f"Saved trajectories to {trajectory_file}")

        metrics = calculate_aggregate_metrics(self.history, self.tick_ms)

        context = {
            "scenario_file": str(getattr(self.config, 'config_path', 'unknown')),
            "n_pedestrians": len(self.pedestrians),
            "n_vehicles": len(self.vehicles),
            "danger_policy": self.config.pedestrian.danger_policy,
            "total_time": self.time,
            "steps": len(self.history),
        }
        csv_data = context.copy()
        csv_data.update(metrics)

        csv_path = output_dir / "metrics_summary.csv"
        with open(csv_path, 'w', newline='') as f:
            writer = csv.DictWriter(f, fieldnames=csv_data.keys())
            writer.writeheader()
            writer.writerow(csv_data)
        logger.info(f"Saved metrics summary to {csv_path}")

        logger.info("Simulation Metrics:")
        for k, v in metrics.items():
            logger.info(f"  {k}: {v}")

        if self.config.visualization_enabled:
            try:
                from ..visualization.animator import create_simple_animation
                create_simple_animation(
                    self.history,
                    self.crossing,
                    output_path=output_dir / "simulation.gif",
                    show=False,
                    pedestrian_size=self.config.pedestrian.size,
                )
            except Exception as e:
                logger.error(f"Failed to generate animation: {e}")
        else:
            logger.debug("Visualization disabled, skipping animation.")

        return metrics
