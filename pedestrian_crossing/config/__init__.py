"""Configuration management module."""

import yaml
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Optional
from loguru import logger


DANGER_POLICIES = ('ignore', 'hold')


@dataclass
class PedestrianConfig:
    """Tunable constants of a pedestrian actor.

    Attributes:
        speed: Crossing speed in progress units (scaled by step_scale)
        size: Visual radius; also the basis of the collision square
        step_scale: Fraction of the crossing covered per tick at speed 1.0
        tick_ms: Default tick length [ms]
        proximity_radius: Gate radius for stopped-vehicle detection
        danger_radius: Gate radius for the immediate-danger check
        stopped_speed_threshold: Speed magnitude below which a vehicle counts as stopped
        moving_speed_threshold: Speed magnitude above which a vehicle counts as moving
        required_stop_duration: Time a nearby vehicle must stay stopped before crossing [ms]
        far_side_dwell_duration: Wait on the far side before heading back [ms]
        off_road_margin: Distance of the waiting points beyond the road edge
        collision_half_extent_multiplier: Half-extent of the collision square in units of size
        danger_policy: 'ignore' (always finish a crossing) or 'hold' (pause while in danger)
    """
    speed: float = 0.8
    size: float = 8.0
    step_scale: float = 0.01
    tick_ms: float = 16.0

    # Traffic-safety gates
    proximity_radius: float = 200.0
    danger_radius: float = 150.0
    stopped_speed_threshold: float = 0.5
    moving_speed_threshold: float = 0.1
    required_stop_duration: float = 100.0

    # Timing and geometry
    far_side_dwell_duration: float = 10000.0
    off_road_margin: float = 30.0
    collision_half_extent_multiplier: float = 4.0

    danger_policy: str = 'ignore'


@dataclass
class CrossingSimulationConfig:
    """Configuration for the crossing tick harness.

    Attributes:
        crossing_center: Crossing center [x, y]
        crossing_direction: Road direction vector [dx, dy]
        crossing_width: Road width

        n_pedestrians: Number of pedestrians sharing the crossing
        seed: Seed for the initial-direction random source (None = nondeterministic)

        vehicle_initial_states: List of [x, y, vx, vy] cruising vehicles
        vehicle_sensor_range: Look-ahead distance of a vehicle's sensor
        vehicle_sensor_half_width: Half-width of the sensor corridor

        total_time: Total simulation time [ms]
        output_path: Output directory for results
        visualization_enabled: Enable animation output

        pedestrian: Pedestrian actor constants
    """
    # Crossing geometry
    crossing_center: list = field(default_factory=lambda: [0.0, 0.0])
    crossing_direction: list = field(default_factory=lambda: [1.0, 0.0])
    crossing_width: float = 100.0

    # Pedestrians
    n_pedestrians: int = 1
    seed: Optional[int] = None

    # Vehicles
    vehicle_initial_states: list = field(default_factory=list)
    vehicle_sensor_range: float = 120.0
    vehicle_sensor_half_width: float = 30.0

    # Time
    total_time: float = 30000.0

    # Output
    output_path: str = 'output'
    visualization_enabled: bool = False

    pedestrian: PedestrianConfig = field(default_factory=PedestrianConfig)

    # Internal: loaded from
    config_path: Optional[str] = None


class ConfigValidationError(ValueError):
    """Raised when configuration validation fails."""
    pass


def _validate_pedestrian(config: PedestrianConfig, errors: List[str]) -> None:
    positive = {
        'speed': config.speed,
        'size': config.size,
        'step_scale': config.step_scale,
        'tick_ms': config.tick_ms,
        'proximity_radius': config.proximity_radius,
        'danger_radius': config.danger_radius,
        'stopped_speed_threshold': config.stopped_speed_threshold,
        'off_road_margin': config.off_road_margin,
        'collision_half_extent_multiplier': config.collision_half_extent_multiplier,
    }
    for name, value in positive.items():
        if value <= 0:
            errors.append(f"pedestrian.{name} must be positive, got {value}")

    non_negative = {
        'moving_speed_threshold': config.moving_speed_threshold,
        'required_stop_duration': config.required_stop_duration,
        'far_side_dwell_duration': config.far_side_dwell_duration,
    }
    for name, value in non_negative.items():
        if value < 0:
            errors.append(f"pedestrian.{name} must be non-negative, got {value}")

    if config.danger_radius > config.proximity_radius:
        logger.warning(
            f"pedestrian.danger_radius ({config.danger_radius}) exceeds proximity_radius "
            f"({config.proximity_radius}); the abort check is no longer the shorter-range one"
        )
    if config.danger_policy not in DANGER_POLICIES:
        errors.append(f"pedestrian.danger_policy must be one of {list(DANGER_POLICIES)}, "
                      f"got '{config.danger_policy}'")


def validate_pedestrian_config(config: PedestrianConfig) -> None:
    """Validate pedestrian constants.

    Raises:
        ConfigValidationError: If validation fails
    """
    errors: List[str] = []
    _validate_pedestrian(config, errors)
    if errors:
        error_msg = "Pedestrian configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigValidationError(error_msg)


def validate_config(config: CrossingSimulationConfig) -> None:
    """Validate configuration values for consistency and correctness.

    Args:
        config: Configuration to validate

    Raises:
        ConfigValidationError: If validation fails
    """
    errors: List[str] = []

    # Crossing geometry
    if len(config.crossing_center) != 2:
        errors.append(f"crossing_center must have 2 elements [x, y], got {len(config.crossing_center)}")
    if len(config.crossing_direction) != 2:
        errors.append(f"crossing_direction must have 2 elements [dx, dy], got {len(config.crossing_direction)}")
    elif all(abs(c) < 1e-12 for c in config.crossing_direction):
        errors.append("crossing_direction must be non-zero")
    if config.crossing_width < 0:
        errors.append(f"crossing_width must be non-negative, got {config.crossing_width}")

    # Pedestrians
    if config.n_pedestrians < 0:
        errors.append(f"n_pedestrians must be non-negative, got {config.n_pedestrians}")
    elif config.n_pedestrians == 0:
        logger.warning("No pedestrians in scenario")

    # Vehicles
    for i, veh in enumerate(config.vehicle_initial_states):
        if len(veh) != 4:
            errors.append(f"vehicle_initial_states[{i}] must have 4 elements [x, y, vx, vy], got {len(veh)}")
    if config.vehicle_sensor_range <= 0:
        errors.append(f"vehicle_sensor_range must be positive, got {config.vehicle_sensor_range}")
    if config.vehicle_sensor_half_width <= 0:
        errors.append(f"vehicle_sensor_half_width must be positive, got {config.vehicle_sensor_half_width}")

    # Time
    if config.total_time <= 0:
        errors.append(f"total_time must be positive, got {config.total_time}")

    _validate_pedestrian(config.pedestrian, errors)
    if config.pedestrian.tick_ms > config.total_time:
        errors.append(f"pedestrian.tick_ms ({config.pedestrian.tick_ms}) must be less than "
                      f"total_time ({config.total_time})")

    if errors:
        error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {e}" for e in errors)
        raise ConfigValidationError(error_msg)


def config_from_dict(config_dict: Dict[str, Any]) -> CrossingSimulationConfig:
    """Build a configuration from a plain dictionary (nested 'pedestrian' section allowed)."""
    config_dict = dict(config_dict)
    ped_dict = config_dict.pop('pedestrian', None) or {}
    pedestrian = PedestrianConfig(**ped_dict)
    return CrossingSimulationConfig(pedestrian=pedestrian, **config_dict)


def load_config(config_path: str) -> CrossingSimulationConfig:
    """Load configuration from YAML file.

    Args:
        config_path: Path to YAML configuration file

    Returns:
        Loaded configuration
    """
    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(config_path, 'r') as f:
            config_dict = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Failed to parse YAML file {config_path}: {e}") from e

    if config_dict is None:
        raise ValueError(f"YAML file {config_path} is empty or contains no valid content")

    try:
        config = config_from_dict(config_dict)
    except TypeError as e:
        raise ValueError(f"Invalid configuration structure in {config_path}: {e}") from e

    config.config_path = str(config_path)

    try:
        validate_config(config)
    except ConfigValidationError:
        logger.error(f"Configuration validation failed for {config_path}")
        raise

    logger.info(f"Configuration loaded and validated from {config_path}")

    return config


def save_config(config: CrossingSimulationConfig, config_path: str):
    """Save configuration to YAML file.

    Args:
        config: Configuration to save
        config_path: Path to save YAML file
    """
    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    config_dict = {
        f.name: getattr(config, f.name)
        for f in fields(config)
        if f.name not in ('pedestrian', 'config_path')
    }
    # safe_dump rejects tuples and numpy scalars
    config_dict['crossing_center'] = [float(c) for c in config.crossing_center]
    config_dict['crossing_direction'] = [float(c) for c in config.crossing_direction]
    config_dict['vehicle_initial_states'] = [
        [float(c) for c in veh] for veh in config.vehicle_initial_states
    ]
    config_dict['output_path'] = str(config.output_path)
    config_dict['pedestrian'] = asdict(config.pedestrian)

    with open(config_path, 'w') as f:
        yaml.safe_dump(config_dict, f, default_flow_style=False, indent=2)

    logger.info(f"Configuration saved to {config_path}")
