import numpy as np
from typing import Dict, List
from loguru import logger

from .data_structures import CrossingSimulationResult, PedestrianPhase


def count_completed_crossings(history: List[CrossingSimulationResult]) -> int:
    """Count CROSSING -> WAITING_AT_OTHER_SIDE transitions over all pedestrians.

    Args:
        history: List of simulation results, in tick order

    Returns:
        Number of completed crossing legs
    """
    completed = 0
    for prev, curr in zip(history[:-1], history[1:]):
        # Pedestrian count is fixed for a run; guard against mismatched records anyway
        for p_prev, p_curr in zip(prev.pedestrians, curr.pedestrians):
            if (p_prev.state == PedestrianPhase.CROSSING
                    and p_curr.state == PedestrianPhase.WAITING_AT_OTHER_SIDE):
                completed += 1
    return completed


def calculate_aggregate_metrics(history: List[CrossingSimulationResult], tick_ms: float) -> Dict[str, float]:
    """Calculate aggregate metrics for the entire simulation."""
    if len(history) == 0:
        logger.warning("Empty history, no metrics to aggregate")
        return {}

    phase_ticks = {phase: 0 for phase in PedestrianPhase}
    exposed_ticks = 0
    progresses = []
    for result in history:
        for ped in result.pedestrians:
            phase_ticks[ped.state] += 1
            progresses.append(ped.progress)
            if len(ped.collision_polygon) > 0:
                exposed_ticks += 1

    crossing_distances = [r.min_vehicle_distance(PedestrianPhase.CROSSING) for r in history]

    metrics = {
        "completed_crossings": count_completed_crossings(history),
        "time_waiting_at_edge": phase_ticks[PedestrianPhase.WAITING_AT_EDGE] * tick_ms,
        "time_crossing": phase_ticks[PedestrianPhase.CROSSING] * tick_ms,
        "time_waiting_at_other_side": phase_ticks[PedestrianPhase.WAITING_AT_OTHER_SIDE] * tick_ms,
        "exposed_ticks": exposed_ticks,
        "min_dist_while_crossing": min(crossing_distances) if crossing_distances else float('inf'),
        "min_progress": float(np.min(progresses)) if progresses else 0.0,
        "max_progress": float(np.max(progresses)) if progresses else 0.0,
    }

    return metrics
