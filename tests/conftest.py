"""Shared fixtures: a fixed clock and a fleet seeded with one of each resource."""

from datetime import datetime, timedelta

import pytest

from fleet import Fleet, Settings

NOW = datetime(2025, 3, 10, 8, 0)


class FixedClock:
    """Callable clock that only moves when told to."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now += timedelta(**kwargs)
        return self.now


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def fleet(clock):
    return Fleet(settings=Settings(), clock=clock)


@pytest.fixture
def vehicle(fleet):
    return fleet.vehicles.create("p123abc", "volvo", "fh16", 2021, 5000, current_mileage=1000)


@pytest.fixture
def driver(fleet):
    return fleet.drivers.create("ana", "lopez", "lic-001", phone="5551 2345")


@pytest.fixture
def route(fleet):
    return fleet.routes.create("Guatemala", "Quetzaltenango", 200, 4)
