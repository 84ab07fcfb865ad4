"""Tests for the pedestrian actor state machine."""

import pytest
import numpy as np
import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt
from matplotlib.colors import to_rgba

from pedestrian_crossing.config import ConfigValidationError, PedestrianConfig
from pedestrian_crossing.core.data_structures import Crossing, PedestrianPhase, VehicleSnapshot
from pedestrian_crossing.core.geometry import InvalidCrossingGeometry
from pedestrian_crossing.pedestrian.actor import STATE_COLORS, Pedestrian

MAX_TICKS = 5000


def start_crossing(ped, vehicles):
    """Tick with the given vehicles until the pedestrian starts crossing."""
    for _ in range(MAX_TICKS):
        ped.update(vehicles)
        if ped.state == PedestrianPhase.CROSSING:
            return
    pytest.fail("Pedestrian never started crossing")


def tick_until(ped, state, vehicles=None, check=None):
    """Tick until the pedestrian reaches ``state``, calling ``check`` after each tick."""
    for _ in range(MAX_TICKS):
        ped.update(vehicles)
        if check is not None:
            check(ped)
        if ped.state == state:
            return
    pytest.fail(f"Pedestrian never reached {state}")


def test_initial_direction_from_injected_rng(crossing, forward_rng, backward_rng):
    forward = Pedestrian(crossing, rng=forward_rng)
    backward = Pedestrian(crossing, rng=backward_rng)

    assert forward.state == PedestrianPhase.WAITING_AT_EDGE
    assert forward.direction == 1
    assert forward.progress == 0.0
    assert np.allclose(forward.position, [0.0, 80.0])

    assert backward.direction == -1
    assert backward.progress == 1.0
    assert np.allclose(backward.position, [0.0, -80.0])


def test_default_rng_picks_valid_direction(crossing):
    ped = Pedestrian(crossing)
    assert ped.direction in (1, -1)
    assert ped.progress == (0.0 if ped.direction > 0 else 1.0)


def test_waypoints_exposed(crossing, forward_rng):
    ped = Pedestrian(crossing, rng=forward_rng)
    assert np.allclose(ped.edge_a, [0.0, 50.0])
    assert np.allclose(ped.edge_b, [0.0, -50.0])
    assert np.allclose(ped.off_road_a, [0.0, 80.0])
    assert np.allclose(ped.off_road_b, [0.0, -80.0])


def test_degenerate_crossing_fails_construction():
    with pytest.raises(InvalidCrossingGeometry):
        Pedestrian(Crossing(center=[0.0, 0.0], direction_vector=[0.0, 0.0], width=100.0))


def test_invalid_config_fails_construction(crossing):
    with pytest.raises(ConfigValidationError):
        Pedestrian(crossing, config=PedestrianConfig(danger_policy='sprint'))


def test_no_vehicles_waits_indefinitely(crossing, forward_rng):
    ped = Pedestrian(crossing, rng=forward_rng)
    for _ in range(2000):
        ped.update([])
        ped.update(None)
    assert ped.state == PedestrianPhase.WAITING_AT_EDGE
    assert ped.car_stopped_time_accumulated == 0.0
    assert np.allclose(ped.position, [0.0, 80.0])


def test_stopped_vehicle_opens_crossing_on_threshold_tick(crossing, forward_rng, stopped_car):
    """Six 16ms ticks (96ms) are not enough; the seventh (112ms) starts the crossing."""
    ped = Pedestrian(crossing, rng=forward_rng)

    for _ in range(6):
        ped.update([stopped_car])
        assert ped.state == PedestrianPhase.WAITING_AT_EDGE
    assert ped.car_stopped_time_accumulated == pytest.approx(96.0)

    ped.update([stopped_car])
    assert ped.state == PedestrianPhase.CROSSING
    assert ped.car_stopped_time_accumulated == 0.0
    assert ped.progress == 0.0


def test_moving_vehicle_interrupts_stop_timer(crossing, forward_rng, stopped_car):
    ped = Pedestrian(crossing, rng=forward_rng)
    moving = VehicleSnapshot(x=0.0, y=30.0, speed=2.0)

    for _ in range(5):
        ped.update([stopped_car])
    ped.update([moving])
    assert ped.car_stopped_time_accumulated == 0.0

    for _ in range(6):
        ped.update([stopped_car])
    assert ped.state == PedestrianPhase.WAITING_AT_EDGE


def test_position_stays_on_crossing_segment(crossing, forward_rng, stopped_car):
    ped = Pedestrian(crossing, rng=forward_rng)
    start_crossing(ped, [stopped_car])

    a, b = ped.edge_a, ped.edge_b
    seen_crossing = []

    def check(p):
        assert 0.0 <= p.progress <= 1.0
        if p.state == PedestrianPhase.CROSSING:
            seen_crossing.append(p.progress)
            rel, seg = p.position - a, b - a
            assert abs(rel[0] * seg[1] - rel[1] * seg[0]) < 1e-9
            t = np.dot(rel, seg) / np.dot(seg, seg)
            assert -1e-9 <= t <= 1.0 + 1e-9

    tick_until(ped, PedestrianPhase.WAITING_AT_OTHER_SIDE, check=check)
    assert len(seen_crossing) > 100
    assert seen_crossing == sorted(seen_crossing)


def test_crossing_ignores_vehicles_once_started(crossing, forward_rng, stopped_car):
    """Default policy: a started crossing always completes."""
    ped = Pedestrian(crossing, rng=forward_rng)
    start_crossing(ped, [stopped_car])

    speeding = [VehicleSnapshot(x=5.0, y=40.0, speed=12.0)]
    ped.update(speeding)
    assert ped.progress > 0.0
    tick_until(ped, PedestrianPhase.WAITING_AT_OTHER_SIDE, vehicles=speeding)


def test_hold_policy_pauses_while_in_danger(crossing, forward_rng, stopped_car):
    ped = Pedestrian(crossing, config=PedestrianConfig(danger_policy='hold'), rng=forward_rng)
    start_crossing(ped, [stopped_car])
    ped.update([stopped_car])
    held_progress = ped.progress
    assert held_progress > 0.0

    speeding = [VehicleSnapshot(x=5.0, y=40.0, speed=12.0)]
    for _ in range(10):
        ped.update(speeding)
    assert ped.state == PedestrianPhase.CROSSING
    assert ped.progress == held_progress
    assert not ped.is_safe_to_cross(speeding)

    ped.update([stopped_car])
    assert ped.progress > held_progress


def test_progress_scales_with_tick_length(crossing, forward_rng, stopped_car):
    ped = Pedestrian(crossing, rng=forward_rng)
    start_crossing(ped, [stopped_car])

    ped.update([], dt=32.0)
    assert ped.progress == pytest.approx(0.8 * 0.01 * 2)


def test_negative_tick_never_rewinds(crossing, forward_rng, stopped_car):
    ped = Pedestrian(crossing, rng=forward_rng)
    start_crossing(ped, [stopped_car])
    ped.update([])
    progress = ped.progress

    ped.update([], dt=-100.0)
    assert ped.progress == progress

    tick_until(ped, PedestrianPhase.WAITING_AT_OTHER_SIDE)
    ped.update([])
    waited = ped.wait_time_accumulated
    ped.update([], dt=-1000.0)
    assert ped.wait_time_accumulated == waited


def test_non_finite_tick_is_ignored_while_crossing(crossing, forward_rng, stopped_car):
    ped = Pedestrian(crossing, rng=forward_rng)
    start_crossing(ped, [stopped_car])
    ped.update([])
    progress = ped.progress

    ped.update([], dt=float("nan"))
    ped.update([], dt=float("inf"))
    assert ped.progress == progress
    assert np.isfinite(ped.position).all()

    tick_until(ped, PedestrianPhase.WAITING_AT_OTHER_SIDE)


def test_non_finite_tick_does_not_stall_stop_timer(crossing, forward_rng, stopped_car):
    ped = Pedestrian(crossing, rng=forward_rng)
    ped.update([stopped_car], dt=float("nan"))
    assert ped.car_stopped_time_accumulated == 0.0

    for _ in range(7):
        ped.update([stopped_car])
    assert ped.state == PedestrianPhase.CROSSING


def test_single_snapshot_instead_of_collection_is_ignored(crossing, forward_rng, stopped_car):
    ped = Pedestrian(crossing, rng=forward_rng)
    for _ in range(10):
        ped.update(stopped_car)
    assert ped.state == PedestrianPhase.WAITING_AT_EDGE
    assert ped.car_stopped_time_accumulated == 0.0


def test_radius_and_stop_time_follow_config(crossing, forward_rng):
    config = PedestrianConfig(danger_radius=120.0, required_stop_duration=250.0)
    ped = Pedestrian(crossing, config=config, rng=forward_rng)
    assert ped.detection_radius == 120.0
    assert ped.required_stop_time == 250.0
    assert ped.stop_gate.required_stop_duration == 250.0


def test_round_trip_flips_direction(crossing, forward_rng, stopped_car):
    """Cross, wait on the far side, then become ready to head back."""
    ped = Pedestrian(crossing, rng=forward_rng)
    assert ped.direction == 1

    start_crossing(ped, [stopped_car])
    tick_until(ped, PedestrianPhase.WAITING_AT_OTHER_SIDE)
    assert ped.progress == 1.0
    assert ped.wait_time_accumulated == 0.0
    assert np.allclose(ped.position, ped.off_road_b)
    assert ped.direction == 1
    assert not ped.ready_to_return

    ticks = 0
    while ped.state == PedestrianPhase.WAITING_AT_OTHER_SIDE:
        ped.update([])
        ticks += 1
    assert ticks == int(np.ceil(10000.0 / 16.0))

    assert ped.state == PedestrianPhase.WAITING_AT_EDGE
    assert ped.direction == -1
    assert ped.ready_to_return
    assert np.allclose(ped.position, ped.off_road_b)


def test_return_leg_ends_on_starting_side(crossing, forward_rng):
    ped = Pedestrian(crossing, rng=forward_rng)
    near_a = VehicleSnapshot(x=0.0, y=30.0, speed=0.0)
    near_b = VehicleSnapshot(x=0.0, y=-30.0, speed=0.0)

    start_crossing(ped, [near_a])
    tick_until(ped, PedestrianPhase.WAITING_AT_EDGE)
    assert ped.direction == -1

    start_crossing(ped, [near_b])
    assert not ped.ready_to_return
    tick_until(ped, PedestrianPhase.WAITING_AT_OTHER_SIDE)
    assert ped.progress == 0.0
    assert np.allclose(ped.position, ped.off_road_a)

    tick_until(ped, PedestrianPhase.WAITING_AT_EDGE)
    assert ped.direction == 1


def test_collision_polygon_empty_only_on_far_side(crossing, forward_rng, stopped_car):
    ped = Pedestrian(crossing, rng=forward_rng)

    polygon = ped.get_collision_polygon()
    assert polygon.shape == (4, 2)
    assert np.allclose(polygon, [[-32.0, 48.0], [32.0, 48.0], [32.0, 112.0], [-32.0, 112.0]])

    def check(p):
        empty = len(p.get_collision_polygon()) == 0
        assert empty == (p.state == PedestrianPhase.WAITING_AT_OTHER_SIDE)

    start_crossing(ped, [stopped_car])
    tick_until(ped, PedestrianPhase.WAITING_AT_OTHER_SIDE, check=check)
    assert ped.get_collision_polygon().shape == (0, 2)
    tick_until(ped, PedestrianPhase.WAITING_AT_EDGE, check=check)
    assert ped.get_collision_polygon().shape == (4, 2)


def test_collision_polygon_follows_position(crossing, forward_rng, stopped_car):
    ped = Pedestrian(crossing, rng=forward_rng)
    start_crossing(ped, [stopped_car])
    for _ in range(40):
        ped.update([])

    polygon = ped.get_collision_polygon()
    assert np.allclose(polygon.mean(axis=0), ped.position)
    assert np.allclose(polygon.max(axis=0) - polygon.min(axis=0), [64.0, 64.0])


def test_update_does_not_retain_vehicles(crossing, forward_rng, stopped_car):
    ped = Pedestrian(crossing, rng=forward_rng)
    vehicles = [stopped_car]
    ped.update(vehicles)

    assert all(value is not vehicles for value in vars(ped).values())
    assert all(value is not vehicles for value in vars(ped.stop_gate).values())


def test_draw_adds_state_coloured_circle(crossing, forward_rng, stopped_car):
    fig, ax = plt.subplots()
    try:
        ped = Pedestrian(crossing, rng=forward_rng)
        state, position = ped.state, ped.position

        ped.draw(ax)

        assert len(ax.patches) == 1
        circle = ax.patches[0]
        assert np.allclose(circle.center, position)
        assert circle.radius == ped.size
        assert np.allclose(circle.get_facecolor(), to_rgba(STATE_COLORS[PedestrianPhase.WAITING_AT_EDGE]))
        assert np.allclose(circle.get_edgecolor(), to_rgba('white'))
        assert ped.state == state
        assert np.allclose(ped.position, position)

        start_crossing(ped, [stopped_car])
        ped.draw(ax)
        assert np.allclose(ax.patches[1].get_facecolor(), to_rgba(STATE_COLORS[PedestrianPhase.CROSSING]))
    finally:
        plt.close(fig)


def test_state_colors_are_distinct():
    assert set(STATE_COLORS) == set(PedestrianPhase)
    assert len(set(STATE_COLORS.values())) == 3


if __name__ == '__main__':
    pytest.main([__file__, '-v'])
