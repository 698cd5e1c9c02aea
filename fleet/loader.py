"""YAML loading and saving utilities for fleet data."""

import os
import tempfile
from datetime import date, datetime
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml
from dateutil.parser import isoparse
from jsonschema import validate

from .driver import Driver
from .maintenance_event import MaintenanceEvent
from .normalize import local_naive
from .route import Route
from .status import (
    DriverStatus,
    MaintenanceStatus,
    RouteStatus,
    TripStatus,
    VehicleStatus,
)
from .trip import Trip
from .vehicle import Vehicle

SCHEMA_PATH = Path(__file__).parent / "schema.yaml"


def load_schema() -> dict:
    """Load the JSON schema for fleet files."""
    with open(SCHEMA_PATH) as f:
        return yaml.safe_load(f)


def _parse_date(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    return isoparse(value).date()


def _parse_datetime(value: Optional[str]) -> Optional[datetime]:
    if value is None:
        return None
    return local_naive(isoparse(value))


# =============================================================================
# Records from YAML dicts
# =============================================================================


def _vehicle_from_dict(d: Dict[str, Any]) -> Vehicle:
    return Vehicle(
        d["id"],
        d["plate"],
        d["make"],
        d["model"],
        d["year"],
        d["maintenanceIntervalKm"],
        d.get("currentMileage", 0),
        VehicleStatus(d.get("status", "active")),
        d.get("engineNumber"),
    )


def _driver_from_dict(d: Dict[str, Any]) -> Driver:
    return Driver(
        d["id"],
        d["firstName"],
        d["lastName"],
        d["licenseNumber"],
        d.get("phone"),
        d.get("email"),
        DriverStatus(d.get("status", "active")),
    )


def _route_from_dict(d: Dict[str, Any]) -> Route:
    return Route(
        d["id"],
        d["origin"],
        d["destination"],
        d["distanceKm"],
        d["estimatedHours"],
        d.get("description"),
        RouteStatus(d.get("status", "active")),
    )


def _maintenance_from_dict(d: Dict[str, Any]) -> MaintenanceEvent:
    return MaintenanceEvent(
        d["id"],
        d["vehicleId"],
        d["type"],
        _parse_date(d["scheduledDate"]),
        MaintenanceStatus(d.get("status", "scheduled")),
        d.get("description"),
        _parse_date(d.get("completedDate")),
        d.get("cost"),
        d.get("notes"),
        d.get("mileageAtCompletion"),
    )


def _trip_from_dict(d: Dict[str, Any]) -> Trip:
    return Trip(
        d["id"],
        d["vehicleId"],
        d["driverId"],
        d["routeId"],
        d["initialMileage"],
        _parse_datetime(d["startTime"]),
        TripStatus(d.get("status", "scheduled")),
        d.get("finalMileage"),
        _parse_datetime(d.get("endTime")),
        d.get("notes"),
    )


_READERS = {
    "vehicles": _vehicle_from_dict,
    "drivers": _driver_from_dict,
    "routes": _route_from_dict,
    "maintenance": _maintenance_from_dict,
    "trips": _trip_from_dict,
}


def load_fleet(filename: Union[str, Path], store) -> None:
    """
    Validate a fleet YAML file and load its records into a store.

    The store's id counters continue after the highest id of each table and
    the active-trip indexes are rebuilt from the in-progress trips.
    """
    with open(filename, "r") as fp:
        data = yaml.load(fp, Loader=yaml.SafeLoader) or {}
    validate(instance=data, schema=load_schema())

    for table, reader in _READERS.items():
        rows = store.tables[table]
        rows.clear()
        for item in data.get(table) or []:
            record = reader(item)
            rows[record.id] = record
        store.next_ids[table] = max(rows, default=0) + 1

    store.active_trip_by_vehicle.clear()
    store.active_trip_by_driver.clear()
    for trip in store.tables["trips"].values():
        if trip.status == TripStatus.IN_PROGRESS:
            store.active_trip_by_vehicle[trip.vehicle_id] = trip.id
            store.active_trip_by_driver[trip.driver_id] = trip.id


# =============================================================================
# Records to YAML dicts
# =============================================================================


def _compact(d: Dict[str, Any]) -> Dict[str, Any]:
    """Omit None values for cleaner YAML."""
    return {k: v for k, v in d.items() if v is not None}


def _vehicle_to_dict(v: Vehicle) -> Dict[str, Any]:
    return _compact(
        {
            "id": v.id,
            "plate": v.plate,
            "make": v.make,
            "model": v.model,
            "year": v.year,
            "engineNumber": v.engine_number,
            "currentMileage": v.current_mileage,
            "maintenanceIntervalKm": v.maintenance_interval_km,
            "status": v.status.value,
        }
    )


def _driver_to_dict(d: Driver) -> Dict[str, Any]:
    return _compact(
        {
            "id": d.id,
            "firstName": d.first_name,
            "lastName": d.last_name,
            "licenseNumber": d.license_number,
            "phone": d.phone,
            "email": d.email,
            "status": d.status.value,
        }
    )


def _route_to_dict(r: Route) -> Dict[str, Any]:
    return _compact(
        {
            "id": r.id,
            "origin": r.origin,
            "destination": r.destination,
            "distanceKm": r.distance_km,
            "estimatedHours": r.estimated_hours,
            "description": r.description,
            "status": r.status.value,
        }
    )


def _maintenance_to_dict(m: MaintenanceEvent) -> Dict[str, Any]:
    return _compact(
        {
            "id": m.id,
            "vehicleId": m.vehicle_id,
            "type": m.maintenance_type,
            "description": m.description,
            "scheduledDate": m.scheduled_date.isoformat(),
            "completedDate": m.completed_date.isoformat() if m.completed_date else None,
            "cost": m.cost,
            "notes": m.notes,
            "mileageAtCompletion": m.mileage_at_completion,
            "status": m.status.value,
        }
    )


def _trip_to_dict(t: Trip) -> Dict[str, Any]:
    return _compact(
        {
            "id": t.id,
            "vehicleId": t.vehicle_id,
            "driverId": t.driver_id,
            "routeId": t.route_id,
            "initialMileage": t.initial_mileage,
            "finalMileage": t.final_mileage,
            "startTime": t.start_time.isoformat(),
            "endTime": t.end_time.isoformat() if t.end_time else None,
            "status": t.status.value,
            "notes": t.notes,
        }
    )


_WRITERS = {
    "vehicles": _vehicle_to_dict,
    "drivers": _driver_to_dict,
    "routes": _route_to_dict,
    "maintenance": _maintenance_to_dict,
    "trips": _trip_to_dict,
}


def record_to_dict(table: str, record) -> Dict[str, Any]:
    """Serialize one record the way it is stored in the fleet file."""
    return _WRITERS[table](record)


def fleet_to_dict(store) -> Dict[str, Any]:
    return {
        table: [writer(record) for record in store.all(table)]
        for table, writer in _WRITERS.items()
    }


def write_fleet(filename: Union[str, Path], data: Dict[str, Any]) -> None:
    """
    Dump fleet data to a YAML file.

    The document is written to a temporary file next to the target and moved
    over it, so a failed dump leaves the previous file intact.
    """
    path = Path(filename)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w") as fp:
            yaml.dump(
                data,
                fp,
                default_flow_style=False,
                allow_unicode=True,
                sort_keys=False,
                width=120,
            )
        os.replace(tmp_name, path)
    except BaseException:
        os.unlink(tmp_name)
        raise


def save_fleet(filename: Union[str, Path], store) -> None:
    """Write every record of a store to a YAML file."""
    write_fleet(filename, fleet_to_dict(store))
