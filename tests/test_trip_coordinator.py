#!/usr/bin/env python3
"""
Tests for TripCoordinator.

Covers the trip state machine, resource validation at schedule and start,
mileage push-back on completion and rollback of failed completions.
"""

from datetime import date, datetime, timedelta, timezone

import pytest

from fleet import (
    AlreadyTerminal,
    DriverStatus,
    InvalidDate,
    InvalidMileage,
    InvalidTransition,
    NotFound,
    ResourcesChangedSinceScheduling,
    ResourceUnavailable,
    RouteStatus,
    TripStatus,
    VehicleStatus,
)

DEPARTURE = datetime(2025, 3, 10, 9, 0)


@pytest.fixture
def trip(fleet, vehicle, driver, route):
    return fleet.trips.schedule(vehicle.id, driver.id, route.id, DEPARTURE)


@pytest.fixture
def running(fleet, trip):
    return fleet.trips.start(trip.id)


# =============================================================================
# Scheduling
# =============================================================================


class TestScheduleTrip:
    """Tests for TripCoordinator.schedule."""

    def test_schedule(self, trip, vehicle):
        assert trip.status == TripStatus.SCHEDULED
        assert trip.initial_mileage == vehicle.current_mileage == 1000
        assert trip.start_time == DEPARTURE
        assert trip.final_mileage is None

    def test_initial_mileage_is_mileage_at_schedule_time(self, fleet, vehicle, driver, route):
        fleet.vehicles.update_mileage(vehicle.id, 1800)
        trip = fleet.trips.schedule(vehicle.id, driver.id, route.id, DEPARTURE)
        assert trip.initial_mileage == 1800

    def test_vehicle_in_shop_rejected(self, fleet, vehicle, driver, route):
        fleet.vehicles.set_status(vehicle.id, VehicleStatus.IN_SHOP)
        with pytest.raises(ResourceUnavailable) as excinfo:
            fleet.trips.schedule(vehicle.id, driver.id, route.id, DEPARTURE)
        assert excinfo.value.resource == "vehicle"
        assert fleet.trips.list() == []

    def test_suspended_driver_rejected(self, fleet, vehicle, driver, route):
        fleet.drivers.set_status(driver.id, DriverStatus.SUSPENDED)
        with pytest.raises(ResourceUnavailable) as excinfo:
            fleet.trips.schedule(vehicle.id, driver.id, route.id, DEPARTURE)
        assert excinfo.value.resource == "driver"

    def test_inactive_route_rejected(self, fleet, vehicle, driver, route):
        fleet.routes.set_status(route.id, RouteStatus.INACTIVE)
        with pytest.raises(ResourceUnavailable) as excinfo:
            fleet.trips.schedule(vehicle.id, driver.id, route.id, DEPARTURE)
        assert excinfo.value.resource == "route"

    def test_vehicle_on_trip_rejected(self, fleet, running, vehicle, route):
        other_driver = fleet.drivers.create("Luis", "Perez", "LIC-002")
        with pytest.raises(ResourceUnavailable) as excinfo:
            fleet.trips.schedule(vehicle.id, other_driver.id, route.id, DEPARTURE)
        assert excinfo.value.resource == "vehicle"

    def test_unknown_vehicle(self, fleet, driver, route):
        with pytest.raises(NotFound):
            fleet.trips.schedule(42, driver.id, route.id, DEPARTURE)


# =============================================================================
# Start
# =============================================================================


class TestStartTrip:
    """Tests for TripCoordinator.start."""

    def test_start_uses_clock(self, fleet, trip, vehicle, driver):
        fleet.trips.start(trip.id)
        assert trip.status == TripStatus.IN_PROGRESS
        assert trip.start_time == datetime(2025, 3, 10, 8, 0)
        assert fleet.store.active_trip_by_vehicle[vehicle.id] == trip.id
        assert fleet.store.active_trip_by_driver[driver.id] == trip.id

    def test_start_at_given_time(self, fleet, trip):
        at = datetime(2025, 3, 10, 7, 45)
        fleet.trips.start(trip.id, started_at=at)
        assert trip.start_time == at

    def test_start_with_zone_aware_time(self, fleet, clock, trip, vehicle):
        at = (clock() - timedelta(hours=1)).astimezone(timezone.utc)
        fleet.trips.start(trip.id, started_at=at)
        assert trip.start_time == clock() - timedelta(hours=1)
        assert trip.start_time.tzinfo is None

        clock.advance(hours=3)
        fleet.trips.complete(trip.id, 1200)
        assert trip.status == TripStatus.COMPLETED
        assert fleet.vehicles.is_available(vehicle.id)

    def test_start_twice_rejected(self, fleet, running):
        with pytest.raises(InvalidTransition):
            fleet.trips.start(running.id)

    def test_resources_changed_since_scheduling(self, fleet, trip, driver):
        fleet.drivers.set_status(driver.id, DriverStatus.SUSPENDED)
        with pytest.raises(ResourcesChangedSinceScheduling) as excinfo:
            fleet.trips.start(trip.id)
        assert excinfo.value.resource == "driver"
        assert trip.status == TripStatus.SCHEDULED
        assert fleet.store.active_trip_by_vehicle == {}

    def test_vehicle_sent_to_shop_after_scheduling(self, fleet, trip, vehicle):
        fleet.maintenance.schedule(vehicle.id, "brakes", date(2025, 3, 11))
        with pytest.raises(ResourcesChangedSinceScheduling) as excinfo:
            fleet.trips.start(trip.id)
        assert excinfo.value.resource == "vehicle"
        assert isinstance(excinfo.value, ResourceUnavailable)

    def test_vehicle_cannot_run_two_trips(self, fleet, trip, vehicle, route):
        other_driver = fleet.drivers.create("Luis", "Perez", "LIC-002")
        second = fleet.trips.schedule(vehicle.id, other_driver.id, route.id, DEPARTURE)
        fleet.trips.start(trip.id)
        with pytest.raises(ResourcesChangedSinceScheduling):
            fleet.trips.start(second.id)
        assert fleet.trips.in_progress() == [trip]


# =============================================================================
# Complete
# =============================================================================


class TestCompleteTrip:
    """Tests for TripCoordinator.complete."""

    def test_complete(self, fleet, clock, running, vehicle, driver):
        clock.advance(hours=5)
        fleet.trips.complete(running.id, 1200, notes="no incidents")
        assert running.status == TripStatus.COMPLETED
        assert running.final_mileage == 1200
        assert running.distance_traveled == 200
        assert running.end_time == datetime(2025, 3, 10, 13, 0)
        assert running.notes == "no incidents"
        assert vehicle.current_mileage == 1200
        assert fleet.store.active_trip_by_vehicle == {}
        assert fleet.store.active_trip_by_driver == {}
        assert fleet.vehicles.is_available(vehicle.id)
        assert fleet.drivers.is_available(driver.id)

    def test_final_below_initial_rejected(self, fleet, clock, running, vehicle):
        clock.advance(hours=1)
        with pytest.raises(InvalidMileage):
            fleet.trips.complete(running.id, 999)
        assert running.status == TripStatus.IN_PROGRESS
        assert vehicle.current_mileage == 1000

    def test_end_must_be_after_start(self, fleet, trip):
        fleet.trips.start(trip.id, started_at=datetime(2025, 3, 10, 9, 0))
        with pytest.raises(InvalidTransition, match="before its start"):
            fleet.trips.complete(trip.id, 1100)
        assert trip.status == TripStatus.IN_PROGRESS

    def test_complete_scheduled_trip_rejected(self, fleet, clock, trip):
        clock.advance(hours=1)
        with pytest.raises(InvalidTransition):
            fleet.trips.complete(trip.id, 1100)

    def test_failed_mileage_push_rolls_back_trip(self, fleet, clock, running, vehicle, driver):
        # vehicle odometer moved past the trip's final reading
        fleet.vehicles.update_mileage(vehicle.id, 2000)
        clock.advance(hours=2)
        with pytest.raises(InvalidMileage):
            fleet.trips.complete(running.id, 1500)
        assert running.status == TripStatus.IN_PROGRESS
        assert running.final_mileage is None
        assert running.end_time is None
        assert vehicle.current_mileage == 2000
        assert fleet.store.active_trip_by_vehicle[vehicle.id] == running.id
        assert fleet.store.active_trip_by_driver[driver.id] == running.id

    def test_round_trip_mileage_and_maintenance_due(self, fleet, clock, driver, route):
        truck = fleet.vehicles.create("T500", "Volvo", "Fh", 2020, 500, current_mileage=1000)
        trip = fleet.trips.schedule(truck.id, driver.id, route.id, DEPARTURE)
        fleet.trips.start(trip.id)
        clock.advance(hours=5)
        fleet.trips.complete(trip.id, 1500)

        assert truck.current_mileage == 1500
        assert trip.initial_mileage == 1000
        assert trip.final_mileage == 1500
        assert fleet.trips.efficiency(trip.id) == 80.0
        due = fleet.maintenance.maintenance_due(truck.id)
        assert due.mileage_at_last == 0
        assert due.is_due
        assert due.km_until_due == 0

    def test_mileage_non_decreasing_over_trips(self, fleet, clock, vehicle, driver, route):
        seen = [vehicle.current_mileage]
        for final in (1300, 1300, 1750):
            trip = fleet.trips.schedule(vehicle.id, driver.id, route.id, DEPARTURE)
            fleet.trips.start(trip.id, started_at=clock())
            clock.advance(hours=3)
            fleet.trips.complete(trip.id, final)
            assert trip.final_mileage >= trip.initial_mileage
            seen.append(vehicle.current_mileage)
        assert seen == sorted(seen)


# =============================================================================
# Cancel, reschedule, update, delete
# =============================================================================


class TestCancelTrip:
    """Tests for TripCoordinator.cancel."""

    def test_cancel_scheduled(self, fleet, trip):
        fleet.trips.cancel(trip.id, reason="customer postponed")
        assert trip.status == TripStatus.CANCELED
        assert trip.notes == "customer postponed"

    def test_cancel_running_frees_resources(self, fleet, running, vehicle, driver):
        fleet.trips.cancel(running.id)
        assert fleet.vehicles.is_available(vehicle.id)
        assert fleet.drivers.is_available(driver.id)
        assert vehicle.current_mileage == 1000

    def test_cancel_twice_fails_without_side_effects(self, fleet, trip):
        fleet.trips.cancel(trip.id, reason="first")
        with pytest.raises(AlreadyTerminal):
            fleet.trips.cancel(trip.id, reason="second")
        assert trip.status == TripStatus.CANCELED
        assert trip.notes == "first"

    def test_cancel_completed_rejected(self, fleet, clock, running):
        clock.advance(hours=1)
        fleet.trips.complete(running.id, 1100)
        with pytest.raises(AlreadyTerminal):
            fleet.trips.cancel(running.id)
        assert running.status == TripStatus.COMPLETED


class TestRescheduleTrip:
    def test_reschedule(self, fleet, trip):
        later = datetime(2025, 3, 12, 6, 0)
        fleet.trips.reschedule(trip.id, later)
        assert trip.start_time == later

    def test_reschedule_with_zone_aware_time(self, fleet, trip):
        later = datetime(2025, 3, 12, 6, 0)
        fleet.trips.reschedule(trip.id, later.astimezone(timezone.utc))
        assert trip.start_time == later
        assert trip.start_time.tzinfo is None

    def test_reschedule_to_now_rejected(self, fleet, trip, clock):
        with pytest.raises(InvalidDate):
            fleet.trips.reschedule(trip.id, clock())
        assert trip.start_time == DEPARTURE

    def test_reschedule_running_rejected(self, fleet, running):
        with pytest.raises(InvalidTransition):
            fleet.trips.reschedule(running.id, datetime(2025, 3, 12, 6, 0))


class TestUpdateTrip:
    def test_change_vehicle_revalidates_and_resets_mileage(self, fleet, trip):
        other = fleet.vehicles.create("T2", "Mack", "Anthem", 2020, 5000, current_mileage=7000)
        fleet.trips.update(trip.id, vehicle_id=other.id)
        assert trip.vehicle_id == other.id
        assert trip.initial_mileage == 7000

    def test_change_to_unavailable_driver_rejected(self, fleet, trip, driver):
        other = fleet.drivers.create("Luis", "Perez", "LIC-002", status="inactive")
        with pytest.raises(ResourceUnavailable) as excinfo:
            fleet.trips.update(trip.id, driver_id=other.id)
        assert excinfo.value.resource == "driver"
        assert trip.driver_id == driver.id

    def test_update_running_rejected(self, fleet, running):
        with pytest.raises(InvalidTransition):
            fleet.trips.update(running.id, notes="x")


class TestDeleteTrip:
    def test_delete_scheduled(self, fleet, trip):
        fleet.trips.delete(trip.id)
        with pytest.raises(NotFound):
            fleet.trips.get(trip.id)

    def test_delete_running_rejected(self, fleet, running):
        with pytest.raises(InvalidTransition):
            fleet.trips.delete(running.id)


# =============================================================================
# Queries
# =============================================================================


class TestTripQueries:
    def test_between(self, fleet, trip, vehicle, driver, route):
        later = fleet.trips.schedule(vehicle.id, driver.id, route.id, datetime(2025, 3, 20, 9))
        found = fleet.trips.between(datetime(2025, 3, 10), datetime(2025, 3, 15))
        assert found == [trip]
        assert later not in found

    def test_progress_and_delay(self, fleet, clock, running):
        clock.advance(hours=2)
        assert fleet.trips.progress(running.id) == 50.0
        assert not fleet.trips.is_delayed(running.id)
        clock.advance(hours=3)
        assert fleet.trips.is_delayed(running.id)
        assert fleet.trips.delayed() == [running]

    def test_summary(self, fleet, trip):
        assert fleet.trips.summary(trip.id) == (
            "Volvo Fh16 (P123ABC) | Ana Lopez | Guatemala → Quetzaltenango | scheduled"
        )

    def test_list_filters(self, fleet, trip, vehicle):
        assert fleet.trips.list("scheduled", vehicle_id=vehicle.id) == [trip]
        assert fleet.trips.list(TripStatus.COMPLETED) == []
