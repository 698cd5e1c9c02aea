"""Fleet facade wiring the store, locks, settings and components together."""

from datetime import datetime
from pathlib import Path
from typing import Callable, Optional, Union

from .config import Settings
from .driver_registry import DriverRegistry
from .locks import KeyedLocks
from .maintenance_tracker import MaintenanceTracker
from .reports import Reports
from .route_catalog import RouteCatalog
from .store import FleetStore, YamlFleetStore
from .trip_coordinator import TripCoordinator
from .vehicle_registry import VehicleRegistry


class Fleet:
    """
    Entry point for all fleet operations.

    Components share one store, one set of keyed locks, the settings and
    the clock (a callable returning the current datetime).
    """

    def __init__(
        self,
        store: Optional[FleetStore] = None,
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.store = store if store is not None else FleetStore()
        self.settings = settings or Settings()
        self.clock = clock or datetime.now
        self.locks = KeyedLocks()

        self.vehicles = VehicleRegistry(self.store, self.locks, self.settings)
        self.drivers = DriverRegistry(self.store, self.locks)
        self.routes = RouteCatalog(self.store, self.locks)
        self.maintenance = MaintenanceTracker(
            self.store, self.locks, self.vehicles, self.settings, self.clock
        )
        self.trips = TripCoordinator(
            self.store, self.locks, self.vehicles, self.drivers, self.routes, self.clock
        )
        self.reports = Reports(self.store, self.settings, self.clock)

    @classmethod
    def open(
        cls,
        filename: Union[str, Path],
        settings: Optional[Settings] = None,
        clock: Optional[Callable[[], datetime]] = None,
    ) -> "Fleet":
        """Fleet backed by a YAML file, saved after every committed change."""
        return cls(YamlFleetStore(filename), settings, clock)
