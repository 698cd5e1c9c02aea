"""Driver registry: driver records and status."""

import logging
from typing import List, Optional

from .driver import Driver
from .errors import DuplicateRecord, InvalidTransition
from .locks import KeyedLocks, driver_key, registry_key
from .normalize import clean_email, clean_phone, title_case, upper_code
from .status import DriverStatus, TripStatus
from .store import FleetStore
from .trip import Trip

logger = logging.getLogger(__name__)

_UPDATABLE = ("first_name", "last_name", "license_number", "phone", "email")


class DriverRegistry:
    """Creates, queries and updates drivers."""

    def __init__(self, store: FleetStore, locks: KeyedLocks):
        self.store = store
        self.locks = locks

    def get(self, driver_id: int) -> Driver:
        return self.store.get("drivers", driver_id)

    def list(self, status=None) -> List[Driver]:
        drivers = self.store.all("drivers")
        if status is not None:
            status = DriverStatus(status)
            drivers = [d for d in drivers if d.status == status]
        return drivers

    def available(self) -> List[Driver]:
        return [d for d in self.store.all("drivers") if self.is_available(d.id)]

    def find_by_license(self, license_number: str) -> Optional[Driver]:
        license_number = upper_code(license_number)
        for d in self.store.all("drivers"):
            if d.license_number == license_number:
                return d
        return None

    def active_trip(self, driver_id: int) -> Optional[Trip]:
        return self.store.find("trips", self.store.active_trip_by_driver.get(driver_id))

    def is_available(self, driver_id: int) -> bool:
        driver = self.get(driver_id)
        return driver.status == DriverStatus.ACTIVE and self.active_trip(driver_id) is None

    def completed_trips(self, driver_id: int) -> int:
        return sum(
            1
            for t in self.store.all("trips")
            if t.driver_id == driver_id and t.status == TripStatus.COMPLETED
        )

    def _check_license(self, license_number: str, exclude_id: Optional[int] = None):
        existing = self.find_by_license(license_number)
        if existing is not None and existing.id != exclude_id:
            raise DuplicateRecord("Driver", "license number", license_number)

    def create(
        self,
        first_name: str,
        last_name: str,
        license_number: str,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        status=DriverStatus.ACTIVE,
    ) -> Driver:
        driver = Driver(
            None,
            title_case(first_name),
            title_case(last_name),
            upper_code(license_number),
            clean_phone(phone),
            clean_email(email),
            DriverStatus(status),
        )
        with self.locks.hold(registry_key("licenses")), self.store.transaction():
            self._check_license(driver.license_number)
            self.store.insert("drivers", driver)
        logger.info("Created driver %s (%s)", driver.id, driver.full_name)
        return driver

    def update(self, driver_id: int, **fields) -> Driver:
        unknown = set(fields) - set(_UPDATABLE)
        if unknown:
            raise TypeError(f"Cannot update driver field(s): {', '.join(sorted(unknown))}")

        cleaners = {
            "first_name": title_case,
            "last_name": title_case,
            "license_number": upper_code,
            "phone": clean_phone,
            "email": clean_email,
        }
        fields = {name: cleaners[name](value) for name, value in fields.items()}

        licenses = registry_key("licenses") if "license_number" in fields else None
        with self.locks.hold(driver_key(driver_id), licenses), self.store.transaction():
            driver = self.get(driver_id)
            if "license_number" in fields:
                self._check_license(fields["license_number"], exclude_id=driver_id)
            self.store.modify(driver)
            for name, value in fields.items():
                setattr(driver, name, value)
        logger.info("Updated driver %s", driver_id)
        return driver

    def delete(self, driver_id: int) -> None:
        with self.locks.hold(driver_key(driver_id)), self.store.transaction():
            self.get(driver_id)
            if self.active_trip(driver_id) is not None:
                raise InvalidTransition(
                    f"Driver {driver_id} has a trip in progress and cannot be deleted"
                )
            self.store.remove("drivers", driver_id)
        logger.info("Deleted driver %s", driver_id)

    def set_status(self, driver_id: int, status) -> Driver:
        status = DriverStatus(status)
        with self.locks.hold(driver_key(driver_id)), self.store.transaction():
            driver = self.get(driver_id)
            if status != DriverStatus.ACTIVE and self.active_trip(driver_id) is not None:
                raise InvalidTransition(
                    f"Driver {driver_id} has a trip in progress and cannot be set "
                    f"to {status.value}"
                )
            if driver.status != status:
                self.store.modify(driver)
                driver.status = status
                logger.info("Driver %s status -> %s", driver_id, status.value)
        return driver
