"""Trip coordinator: trip state machine and cross-resource validation."""

import logging
from contextlib import contextmanager
from datetime import datetime
from typing import Callable, Iterator, List, Optional

from .driver_registry import DriverRegistry
from .errors import (
    AlreadyTerminal,
    InvalidDate,
    InvalidMileage,
    InvalidTransition,
    ResourcesChangedSinceScheduling,
    ResourceUnavailable,
)
from .locks import KeyedLocks, driver_key, route_key, vehicle_key
from .normalize import local_naive
from .route_catalog import RouteCatalog
from .status import TripStatus
from .store import FleetStore
from .trip import Trip
from .vehicle_registry import VehicleRegistry

logger = logging.getLogger(__name__)


class TripCoordinator:
    """
    Moves trips through Scheduled -> InProgress -> Completed, or to Canceled.

    Every transition holds the locks of the trip's vehicle, driver and route and
    runs in a single store transaction, so a completed trip and the vehicle's
    new mileage are written together or not at all.
    """

    def __init__(
        self,
        store: FleetStore,
        locks: KeyedLocks,
        vehicles: VehicleRegistry,
        drivers: DriverRegistry,
        routes: RouteCatalog,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.locks = locks
        self.vehicles = vehicles
        self.drivers = drivers
        self.routes = routes
        self.clock = clock

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, trip_id: int) -> Trip:
        return self.store.get("trips", trip_id)

    def list(
        self,
        status=None,
        vehicle_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        route_id: Optional[int] = None,
    ) -> List[Trip]:
        trips = self.store.all("trips")
        if status is not None:
            status = TripStatus(status)
            trips = [t for t in trips if t.status == status]
        if vehicle_id is not None:
            trips = [t for t in trips if t.vehicle_id == vehicle_id]
        if driver_id is not None:
            trips = [t for t in trips if t.driver_id == driver_id]
        if route_id is not None:
            trips = [t for t in trips if t.route_id == route_id]
        return trips

    def between(self, start: datetime, end: datetime) -> List[Trip]:
        """Trips starting inside [start, end], earliest first."""
        start, end = local_naive(start), local_naive(end)
        return sorted(
            (t for t in self.store.all("trips") if start <= t.start_time <= end),
            key=lambda t: (t.start_time, t.id),
        )

    def in_progress(self) -> List[Trip]:
        return self.list(TripStatus.IN_PROGRESS)

    def delayed(self) -> List[Trip]:
        now = self.clock()
        return [t for t in self.in_progress() if t.is_delayed(self.routes.get(t.route_id), now)]

    def progress(self, trip_id: int) -> float:
        trip = self.get(trip_id)
        return trip.progress(self.routes.get(trip.route_id), self.clock())

    def is_delayed(self, trip_id: int) -> bool:
        trip = self.get(trip_id)
        return trip.is_delayed(self.routes.get(trip.route_id), self.clock())

    def efficiency(self, trip_id: int) -> Optional[float]:
        trip = self.get(trip_id)
        return trip.efficiency(self.routes.get(trip.route_id))

    def summary(self, trip_id: int) -> str:
        """One-line description: vehicle, driver, route and status."""
        trip = self.get(trip_id)
        vehicle = self.store.find("vehicles", trip.vehicle_id)
        driver = self.store.find("drivers", trip.driver_id)
        route = self.store.find("routes", trip.route_id)
        return " | ".join(
            [
                vehicle.display_name if vehicle else f"Vehicle {trip.vehicle_id}",
                driver.full_name if driver else f"Driver {trip.driver_id}",
                route.name if route else f"Route {trip.route_id}",
                trip.status.value,
            ]
        )

    # =========================================================================
    # Validation
    # =========================================================================

    def _check_resources(
        self,
        vehicle_id: Optional[int],
        driver_id: Optional[int],
        route_id: Optional[int],
        error=ResourceUnavailable,
    ) -> None:
        """Raise `error` naming the first resource that is not usable."""
        if vehicle_id is not None and not self.vehicles.is_available(vehicle_id):
            raise error(
                "vehicle",
                f"Vehicle {vehicle_id} is not available "
                f"(status {self.vehicles.get(vehicle_id).status.value} or on a trip)",
            )
        if driver_id is not None and not self.drivers.is_available(driver_id):
            raise error(
                "driver",
                f"Driver {driver_id} is not available "
                f"(status {self.drivers.get(driver_id).status.value} or on a trip)",
            )
        if route_id is not None and not self.routes.is_active(route_id):
            raise error("route", f"Route {route_id} is not active")

    @staticmethod
    def _require(trip: Trip, status: TripStatus, action: str) -> None:
        if trip.status.is_terminal:
            raise AlreadyTerminal(f"Trip {trip.id} is already {trip.status.value}, cannot {action}")
        if trip.status != status:
            raise InvalidTransition(
                f"Trip {trip.id} is {trip.status.value}, must be {status.value} to {action}"
            )

    def _set_active(self, trip: Trip, active: bool) -> None:
        value = trip.id if active else None
        self.store.set_index(self.store.active_trip_by_vehicle, trip.vehicle_id, value)
        self.store.set_index(self.store.active_trip_by_driver, trip.driver_id, value)

    @contextmanager
    def _locked(self, trip_id: int, *extra) -> Iterator[Trip]:
        """
        Lock a trip's vehicle, driver and route (plus `extra` keys), open a
        store transaction and yield the trip.

        The trip's resources are read before locking. If an edit reassigned
        the trip meanwhile, the locks are released and taken again for the
        new resources.
        """
        while True:
            trip = self.get(trip_id)
            assigned = (trip.vehicle_id, trip.driver_id, trip.route_id)
            held = self.locks.hold(
                vehicle_key(trip.vehicle_id),
                driver_key(trip.driver_id),
                route_key(trip.route_id),
                *extra,
            )
            with held:
                trip = self.get(trip_id)
                if (trip.vehicle_id, trip.driver_id, trip.route_id) != assigned:
                    logger.debug("Trip %s reassigned while waiting for locks", trip_id)
                    continue
                with self.store.transaction():
                    yield trip
                return

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def schedule(
        self,
        vehicle_id: int,
        driver_id: int,
        route_id: int,
        start_time: datetime,
        notes: Optional[str] = None,
    ) -> Trip:
        start_time = local_naive(start_time)
        held = self.locks.hold(
            vehicle_key(vehicle_id), driver_key(driver_id), route_key(route_id)
        )
        with held, self.store.transaction():
            self._check_resources(vehicle_id, driver_id, route_id)
            vehicle = self.vehicles.get(vehicle_id)
            trip = Trip(
                None,
                vehicle_id,
                driver_id,
                route_id,
                vehicle.current_mileage,
                start_time,
                notes=notes,
            )
            self.store.insert("trips", trip)
        logger.info(
            "Scheduled trip %s: vehicle %s, driver %s, route %s at %s",
            trip.id,
            vehicle_id,
            driver_id,
            route_id,
            start_time,
        )
        return trip

    def start(self, trip_id: int, started_at: Optional[datetime] = None) -> Trip:
        with self._locked(trip_id) as trip:
            self._require(trip, TripStatus.SCHEDULED, "start")
            self._check_resources(
                trip.vehicle_id,
                trip.driver_id,
                trip.route_id,
                error=ResourcesChangedSinceScheduling,
            )
            self.store.modify(trip)
            trip.status = TripStatus.IN_PROGRESS
            trip.start_time = local_naive(started_at) or self.clock()
            self._set_active(trip, True)
        logger.info("Started trip %s at %s", trip_id, trip.start_time)
        return trip

    def complete(
        self, trip_id: int, final_mileage: float, notes: Optional[str] = None
    ) -> Trip:
        with self._locked(trip_id) as trip:
            self._require(trip, TripStatus.IN_PROGRESS, "complete")
            if final_mileage < trip.initial_mileage:
                raise InvalidMileage(
                    f"Final mileage {final_mileage} is lower than initial mileage "
                    f"{trip.initial_mileage} of trip {trip_id}"
                )
            end_time = self.clock()
            if end_time <= trip.start_time:
                raise InvalidTransition(
                    f"Trip {trip_id} cannot end at {end_time}, before its start "
                    f"{trip.start_time}"
                )

            self.store.modify(trip)
            trip.status = TripStatus.COMPLETED
            trip.final_mileage = final_mileage
            trip.end_time = end_time
            if notes is not None:
                trip.notes = notes
            self._set_active(trip, False)
            self.vehicles.update_mileage(trip.vehicle_id, final_mileage)
        logger.info(
            "Completed trip %s: %s km in %.2f h",
            trip_id,
            trip.distance_traveled,
            trip.duration_hours,
        )
        return trip

    def cancel(self, trip_id: int, reason: Optional[str] = None) -> Trip:
        with self._locked(trip_id) as trip:
            if trip.status.is_terminal:
                raise AlreadyTerminal(
                    f"Trip {trip_id} is already {trip.status.value}, cannot cancel"
                )
            was_running = trip.status == TripStatus.IN_PROGRESS
            self.store.modify(trip)
            trip.status = TripStatus.CANCELED
            if reason is not None:
                trip.notes = reason
            if was_running:
                self._set_active(trip, False)
        logger.info("Canceled trip %s", trip_id)
        return trip

    def reschedule(self, trip_id: int, new_start_time: datetime) -> Trip:
        new_start_time = local_naive(new_start_time)
        with self._locked(trip_id) as trip:
            self._require(trip, TripStatus.SCHEDULED, "reschedule")
            if new_start_time <= self.clock():
                raise InvalidDate(f"New start time {new_start_time} is not in the future")
            self.store.modify(trip)
            trip.start_time = new_start_time
        logger.info("Rescheduled trip %s to %s", trip_id, new_start_time)
        return trip

    def update(
        self,
        trip_id: int,
        vehicle_id: Optional[int] = None,
        driver_id: Optional[int] = None,
        route_id: Optional[int] = None,
        start_time: Optional[datetime] = None,
        notes: Optional[str] = None,
    ) -> Trip:
        """Edit a scheduled trip; resources that change are checked again."""
        start_time = local_naive(start_time)
        extra = (vehicle_key(vehicle_id), driver_key(driver_id), route_key(route_id))
        with self._locked(trip_id, *extra) as trip:
            self._require(trip, TripStatus.SCHEDULED, "edit")
            changed_vehicle = vehicle_id if vehicle_id not in (None, trip.vehicle_id) else None
            changed_driver = driver_id if driver_id not in (None, trip.driver_id) else None
            changed_route = route_id if route_id not in (None, trip.route_id) else None
            self._check_resources(changed_vehicle, changed_driver, changed_route)

            self.store.modify(trip)
            if changed_vehicle is not None:
                trip.vehicle_id = changed_vehicle
                trip.initial_mileage = self.vehicles.get(changed_vehicle).current_mileage
            if changed_driver is not None:
                trip.driver_id = changed_driver
            if changed_route is not None:
                trip.route_id = changed_route
            if start_time is not None:
                trip.start_time = start_time
            if notes is not None:
                trip.notes = notes
        logger.info("Updated trip %s", trip_id)
        return trip

    def delete(self, trip_id: int) -> None:
        with self._locked(trip_id) as trip:
            if trip.status not in (TripStatus.SCHEDULED, TripStatus.CANCELED):
                raise InvalidTransition(
                    f"Trip {trip_id} is {trip.status.value} and cannot be deleted"
                )
            self.store.remove("trips", trip_id)
        logger.info("Deleted trip %s", trip_id)
