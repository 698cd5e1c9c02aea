"""
Truck fleet lifecycle tracking.

This package keeps the records of a trucking fleet consistent:
- VehicleRegistry: trucks, odometer and operational status
- DriverRegistry: drivers and their availability
- RouteCatalog: routes and derived route metrics
- MaintenanceTracker: maintenance events and mileage-driven due status
- TripCoordinator: trip state machine and mileage push-back
- Fleet: facade wiring the components to one store
"""

from .status import (
    Difficulty,
    DriverStatus,
    MaintenanceStatus,
    Priority,
    RouteStatus,
    TripStatus,
    VehicleStatus,
)
from .errors import (
    AlreadyCompleted,
    AlreadyTerminal,
    DuplicateRecord,
    FleetError,
    InvalidDate,
    InvalidMileage,
    InvalidRoute,
    InvalidTransition,
    NotFound,
    ResourcesChangedSinceScheduling,
    ResourceUnavailable,
    VehicleUnavailable,
)
from .config import Settings
from .vehicle import Vehicle
from .driver import Driver
from .route import Route
from .maintenance_event import MaintenanceEvent
from .maintenance_due import MaintenanceDue, MaintenanceSuggestion
from .trip import Trip
from .store import FleetStore, YamlFleetStore
from .loader import load_fleet, save_fleet
from .fleet import Fleet

__all__ = [
    "Difficulty",
    "DriverStatus",
    "MaintenanceStatus",
    "Priority",
    "RouteStatus",
    "TripStatus",
    "VehicleStatus",
    "AlreadyCompleted",
    "AlreadyTerminal",
    "DuplicateRecord",
    "FleetError",
    "InvalidDate",
    "InvalidMileage",
    "InvalidRoute",
    "InvalidTransition",
    "NotFound",
    "ResourcesChangedSinceScheduling",
    "ResourceUnavailable",
    "VehicleUnavailable",
    "Settings",
    "Vehicle",
    "Driver",
    "Route",
    "MaintenanceEvent",
    "MaintenanceDue",
    "MaintenanceSuggestion",
    "Trip",
    "FleetStore",
    "YamlFleetStore",
    "load_fleet",
    "save_fleet",
    "Fleet",
]
