"""Vehicle registry: truck records, odometer and operational status."""

import logging
from typing import List, Optional

from .config import Settings
from .errors import DuplicateRecord, InvalidMileage, InvalidTransition
from .locks import KeyedLocks, registry_key, vehicle_key
from .normalize import title_case, upper_code
from .status import VehicleStatus
from .store import FleetStore
from .trip import Trip
from .vehicle import Vehicle

logger = logging.getLogger(__name__)

_UPDATABLE = ("plate", "make", "model", "year", "engine_number", "maintenance_interval_km")


class VehicleRegistry:
    """Creates, queries and updates vehicles."""

    def __init__(
        self, store: FleetStore, locks: KeyedLocks, settings: Optional[Settings] = None
    ):
        self.store = store
        self.locks = locks
        self.settings = settings or Settings()

    def get(self, vehicle_id: int) -> Vehicle:
        return self.store.get("vehicles", vehicle_id)

    def list(self, status=None) -> List[Vehicle]:
        vehicles = self.store.all("vehicles")
        if status is not None:
            status = VehicleStatus(status)
            vehicles = [v for v in vehicles if v.status == status]
        return vehicles

    def available(self) -> List[Vehicle]:
        return [v for v in self.store.all("vehicles") if self.is_available(v.id)]

    def find_by_plate(self, plate: str) -> Optional[Vehicle]:
        plate = upper_code(plate)
        for v in self.store.all("vehicles"):
            if v.plate == plate:
                return v
        return None

    def active_trip(self, vehicle_id: int) -> Optional[Trip]:
        """The vehicle's in-progress trip, if any."""
        return self.store.find("trips", self.store.active_trip_by_vehicle.get(vehicle_id))

    def is_available(self, vehicle_id: int) -> bool:
        vehicle = self.get(vehicle_id)
        return vehicle.status == VehicleStatus.ACTIVE and self.active_trip(vehicle_id) is None

    def _check_plate(self, plate: str, exclude_id: Optional[int] = None) -> None:
        existing = self.find_by_plate(plate)
        if existing is not None and existing.id != exclude_id:
            raise DuplicateRecord("Vehicle", "plate", plate)

    def _has_pending_maintenance(self, vehicle_id: int) -> bool:
        return any(
            m.vehicle_id == vehicle_id and m.is_pending for m in self.store.all("maintenance")
        )

    @staticmethod
    def _check_interval(interval) -> None:
        if interval is None or interval <= 0:
            raise InvalidMileage(f"Maintenance interval must be positive, got {interval}")

    def create(
        self,
        plate: str,
        make: str,
        model: str,
        year: int,
        maintenance_interval_km: Optional[int] = None,
        current_mileage: float = 0,
        engine_number: Optional[str] = None,
        status=VehicleStatus.ACTIVE,
    ) -> Vehicle:
        if maintenance_interval_km is None:
            maintenance_interval_km = self.settings.default_maintenance_interval_km
        if current_mileage is None or current_mileage < 0:
            raise InvalidMileage(f"Mileage cannot be negative, got {current_mileage}")
        self._check_interval(maintenance_interval_km)

        vehicle = Vehicle(
            None,
            upper_code(plate),
            title_case(make),
            title_case(model),
            int(year),
            maintenance_interval_km,
            current_mileage,
            VehicleStatus(status),
            engine_number.strip() if engine_number else None,
        )
        with self.locks.hold(registry_key("plates")), self.store.transaction():
            self._check_plate(vehicle.plate)
            self.store.insert("vehicles", vehicle)
        logger.info("Created vehicle %s (%s)", vehicle.id, vehicle.plate)
        return vehicle

    def update(self, vehicle_id: int, **fields) -> Vehicle:
        """Change descriptive fields; mileage and status have their own operations."""
        unknown = set(fields) - set(_UPDATABLE)
        if unknown:
            raise TypeError(f"Cannot update vehicle field(s): {', '.join(sorted(unknown))}")

        plates = registry_key("plates") if "plate" in fields else None
        with self.locks.hold(vehicle_key(vehicle_id), plates), self.store.transaction():
            vehicle = self.get(vehicle_id)
            if "plate" in fields:
                fields["plate"] = upper_code(fields["plate"])
                self._check_plate(fields["plate"], exclude_id=vehicle_id)
            for name in ("make", "model"):
                if name in fields:
                    fields[name] = title_case(fields[name])
            if "maintenance_interval_km" in fields:
                self._check_interval(fields["maintenance_interval_km"])

            self.store.modify(vehicle)
            for name, value in fields.items():
                setattr(vehicle, name, value)
        logger.info("Updated vehicle %s", vehicle_id)
        return vehicle

    def delete(self, vehicle_id: int) -> None:
        with self.locks.hold(vehicle_key(vehicle_id)), self.store.transaction():
            self.get(vehicle_id)
            if self.active_trip(vehicle_id) is not None:
                raise InvalidTransition(
                    f"Vehicle {vehicle_id} has a trip in progress and cannot be deleted"
                )
            if self._has_pending_maintenance(vehicle_id):
                raise InvalidTransition(
                    f"Vehicle {vehicle_id} has pending maintenance and cannot be deleted"
                )
            self.store.remove("vehicles", vehicle_id)
        logger.info("Deleted vehicle %s", vehicle_id)

    def update_mileage(self, vehicle_id: int, new_mileage: float) -> Vehicle:
        """Record a new odometer reading. Mileage never decreases."""
        with self.locks.hold(vehicle_key(vehicle_id)), self.store.transaction():
            vehicle = self.get(vehicle_id)
            if new_mileage < vehicle.current_mileage:
                raise InvalidMileage(
                    f"New mileage {new_mileage} is lower than current mileage "
                    f"{vehicle.current_mileage} of vehicle {vehicle_id}"
                )
            self.store.modify(vehicle)
            vehicle.current_mileage = new_mileage
        logger.info("Vehicle %s mileage now %s", vehicle_id, new_mileage)
        return vehicle

    def set_status(self, vehicle_id: int, status) -> Vehicle:
        status = VehicleStatus(status)
        with self.locks.hold(vehicle_key(vehicle_id)), self.store.transaction():
            vehicle = self.get(vehicle_id)
            if status in (VehicleStatus.IN_SHOP, VehicleStatus.INACTIVE) and (
                self.active_trip(vehicle_id) is not None
            ):
                raise InvalidTransition(
                    f"Vehicle {vehicle_id} has a trip in progress and cannot be set "
                    f"to {status.value}"
                )
            if status == VehicleStatus.ACTIVE and self._has_pending_maintenance(vehicle_id):
                raise InvalidTransition(
                    f"Vehicle {vehicle_id} has pending maintenance and cannot be set to active"
                )
            if vehicle.status != status:
                self.store.modify(vehicle)
                vehicle.status = status
                logger.info("Vehicle %s status -> %s", vehicle_id, status.value)
        return vehicle
