"""Shared fixtures for pedestrian crossing tests."""

import pytest

from pedestrian_crossing.core.data_structures import Crossing, VehicleSnapshot


class FixedRandom:
    """Random source that always returns the same value."""

    def __init__(self, value: float):
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture
def crossing():
    """Road along the x axis, 100 units wide, centered at the origin."""
    return Crossing(center=[0.0, 0.0], direction_vector=[1.0, 0.0], width=100.0)


@pytest.fixture
def forward_rng():
    """Random source yielding direction +1."""
    return FixedRandom(0.1)


@pytest.fixture
def backward_rng():
    """Random source yielding direction -1."""
    return FixedRandom(0.9)


@pytest.fixture
def stopped_car():
    """Stopped vehicle 50 units from the +1 side waiting point (0, 80)."""
    return VehicleSnapshot(x=0.0, y=30.0, speed=0.0, id="CAR_STOPPED")
