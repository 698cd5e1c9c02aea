"""Flask JSON API for the truck fleet."""

import logging
import os
from datetime import date, datetime
from typing import Any, Optional

from dateutil.parser import isoparse
from flask import Flask, jsonify, request

from fleet import (
    DuplicateRecord,
    Fleet,
    FleetError,
    InvalidTransition,
    NotFound,
    ResourceUnavailable,
    Settings,
)
from fleet.calculations import estimate_travel_time
from fleet.loader import record_to_dict

logger = logging.getLogger(__name__)


def to_json(value: Any) -> Any:
    """Convert dates and datetimes inside nested dicts/lists to ISO strings."""
    if isinstance(value, (date, datetime)):
        return value.isoformat()
    if isinstance(value, dict):
        return {k: to_json(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_json(v) for v in value]
    return value


def error_status(error: FleetError) -> int:
    """HTTP status for a rejected fleet operation."""
    if isinstance(error, NotFound):
        return 404
    if isinstance(error, (DuplicateRecord, InvalidTransition, ResourceUnavailable)):
        return 409
    return 400


def _body() -> dict:
    return request.get_json(silent=True) or {}


def _date(value: Optional[str]) -> Optional[date]:
    return isoparse(value).date() if value else None


def _datetime(value: Optional[str]) -> Optional[datetime]:
    return isoparse(value) if value else None


def _ok(data, status: int = 200):
    return jsonify({"status": "success", "data": to_json(data)}), status


def create_app(fleet: Optional[Fleet] = None) -> Flask:
    """
    Build the app around a fleet.

    Without an explicit fleet the YAML file named by FLEET_FILE is opened
    (default: fleet.yaml in the working directory).
    """
    if fleet is None:
        fleet = Fleet.open(
            os.environ.get("FLEET_FILE", "fleet.yaml"), settings=Settings.from_env()
        )

    app = Flask(__name__)
    app.config["FLEET"] = fleet

    def vehicle_json(vehicle):
        data = record_to_dict("vehicles", vehicle)
        data["displayName"] = vehicle.display_name
        data["available"] = fleet.vehicles.is_available(vehicle.id)
        return data

    def driver_json(driver):
        data = record_to_dict("drivers", driver)
        data["fullName"] = driver.full_name
        data["formattedPhone"] = driver.formatted_phone
        data["experience"] = driver.experience_level(
            fleet.drivers.completed_trips(driver.id), fleet.settings
        )
        data["available"] = fleet.drivers.is_available(driver.id)
        return data

    def route_json(route):
        data = record_to_dict("routes", route)
        data["name"] = route.name
        data["averageSpeed"] = route.average_speed
        data["difficulty"] = route.difficulty(fleet.settings).value
        data["fuelEstimate"] = route.fuel_estimate(fleet.settings)
        data["formattedDuration"] = route.formatted_duration
        return data

    def trip_json(trip):
        data = record_to_dict("trips", trip)
        route = fleet.store.find("routes", trip.route_id)
        now = fleet.clock()
        data["distanceTraveled"] = trip.distance_traveled
        data["summary"] = fleet.trips.summary(trip.id)
        if route is not None:
            data["progress"] = trip.progress(route, now)
            data["delayed"] = trip.is_delayed(route, now)
            data["efficiency"] = trip.efficiency(route)
            data["estimatedArrival"] = trip.estimated_arrival(route)
            data["timeRemaining"] = trip.time_remaining(route, now)
        return data

    def maintenance_json(event):
        today = fleet.clock().date()
        data = record_to_dict("maintenance", event)
        data["priority"] = event.priority(today, fleet.settings).value
        data["overdue"] = event.is_overdue(today)
        data["daysUntilDue"] = event.days_until_due(today)
        return data

    @app.errorhandler(FleetError)
    def handle_fleet_error(error):
        logger.info("Rejected %s %s: %s", request.method, request.path, error)
        body = {"status": "error", "error": type(error).__name__, "message": str(error)}
        if isinstance(error, ResourceUnavailable):
            body["resource"] = error.resource
        return jsonify(body), error_status(error)

    @app.errorhandler(KeyError)
    def handle_missing_field(error):
        return jsonify({"status": "error", "message": f"Missing field {error}"}), 400

    @app.errorhandler(ValueError)
    @app.errorhandler(TypeError)
    def handle_bad_value(error):
        return jsonify({"status": "error", "message": str(error)}), 400

    # =========================================================================
    # Vehicles
    # =========================================================================

    @app.get("/vehicles")
    def list_vehicles():
        if request.args.get("available") == "true":
            vehicles = fleet.vehicles.available()
        else:
            vehicles = fleet.vehicles.list(request.args.get("status"))
        return _ok([vehicle_json(v) for v in vehicles])

    @app.post("/vehicles")
    def create_vehicle():
        body = _body()
        vehicle = fleet.vehicles.create(
            body["plate"],
            body["make"],
            body["model"],
            body["year"],
            maintenance_interval_km=body.get("maintenanceIntervalKm"),
            current_mileage=body.get("currentMileage", 0),
            engine_number=body.get("engineNumber"),
        )
        return _ok(vehicle_json(vehicle), 201)

    @app.get("/vehicles/<int:vehicle_id>")
    def get_vehicle(vehicle_id: int):
        return _ok(vehicle_json(fleet.vehicles.get(vehicle_id)))

    @app.patch("/vehicles/<int:vehicle_id>")
    def update_vehicle(vehicle_id: int):
        names = {
            "plate": "plate",
            "make": "make",
            "model": "model",
            "year": "year",
            "engineNumber": "engine_number",
            "maintenanceIntervalKm": "maintenance_interval_km",
        }
        fields = {names[k]: v for k, v in _body().items() if k in names}
        return _ok(vehicle_json(fleet.vehicles.update(vehicle_id, **fields)))

    @app.delete("/vehicles/<int:vehicle_id>")
    def delete_vehicle(vehicle_id: int):
        fleet.vehicles.delete(vehicle_id)
        return _ok(None)

    @app.post("/vehicles/<int:vehicle_id>/mileage")
    def update_vehicle_mileage(vehicle_id: int):
        vehicle = fleet.vehicles.update_mileage(vehicle_id, _body()["mileage"])
        return _ok(vehicle_json(vehicle))

    @app.post("/vehicles/<int:vehicle_id>/status")
    def set_vehicle_status(vehicle_id: int):
        vehicle = fleet.vehicles.set_status(vehicle_id, _body()["status"])
        return _ok(vehicle_json(vehicle))

    @app.get("/vehicles/<int:vehicle_id>/maintenance-due")
    def vehicle_maintenance_due(vehicle_id: int):
        due = fleet.maintenance.maintenance_due(vehicle_id)
        return _ok(
            {
                "vehicleId": due.vehicle_id,
                "currentMileage": due.current_mileage,
                "intervalKm": due.interval_km,
                "mileageAtLast": due.mileage_at_last,
                "kmSinceLast": due.km_since_last,
                "kmUntilDue": due.km_until_due,
                "isDue": due.is_due,
                "basis": due.basis,
            }
        )

    @app.get("/vehicles/<int:vehicle_id>/maintenance-suggestion")
    def vehicle_maintenance_suggestion(vehicle_id: int):
        s = fleet.maintenance.suggest(vehicle_id)
        return _ok(
            {
                "vehicleId": s.vehicle_id,
                "suggested": s.suggested,
                "reason": s.reason,
                "type": s.maintenance_type,
                "suggestedDate": s.suggested_date,
                "urgency": s.urgency,
            }
        )

    # =========================================================================
    # Drivers
    # =========================================================================

    @app.get("/drivers")
    def list_drivers():
        if request.args.get("available") == "true":
            drivers = fleet.drivers.available()
        else:
            drivers = fleet.drivers.list(request.args.get("status"))
        return _ok([driver_json(d) for d in drivers])

    @app.post("/drivers")
    def create_driver():
        body = _body()
        driver = fleet.drivers.create(
            body["firstName"],
            body["lastName"],
            body["licenseNumber"],
            phone=body.get("phone"),
            email=body.get("email"),
        )
        return _ok(driver_json(driver), 201)

    @app.get("/drivers/<int:driver_id>")
    def get_driver(driver_id: int):
        return _ok(driver_json(fleet.drivers.get(driver_id)))

    @app.patch("/drivers/<int:driver_id>")
    def update_driver(driver_id: int):
        names = {
            "firstName": "first_name",
            "lastName": "last_name",
            "licenseNumber": "license_number",
            "phone": "phone",
            "email": "email",
        }
        fields = {names[k]: v for k, v in _body().items() if k in names}
        return _ok(driver_json(fleet.drivers.update(driver_id, **fields)))

    @app.delete("/drivers/<int:driver_id>")
    def delete_driver(driver_id: int):
        fleet.drivers.delete(driver_id)
        return _ok(None)

    @app.post("/drivers/<int:driver_id>/status")
    def set_driver_status(driver_id: int):
        return _ok(driver_json(fleet.drivers.set_status(driver_id, _body()["status"])))

    @app.get("/drivers/<int:driver_id>/performance")
    def driver_performance(driver_id: int):
        return _ok(
            fleet.reports.driver_performance(
                driver_id,
                _date(request.args.get("start")),
                _date(request.args.get("end")),
            )
        )

    # =========================================================================
    # Routes
    # =========================================================================

    @app.get("/routes")
    def list_routes():
        return _ok([route_json(r) for r in fleet.routes.list(request.args.get("status"))])

    @app.post("/routes")
    def create_route():
        body = _body()
        route = fleet.routes.create(
            body["origin"],
            body["destination"],
            body["distanceKm"],
            body["estimatedHours"],
            body.get("description"),
        )
        return _ok(route_json(route), 201)

    @app.get("/routes/<int:route_id>")
    def get_route(route_id: int):
        return _ok(route_json(fleet.routes.get(route_id)))

    @app.patch("/routes/<int:route_id>")
    def update_route(route_id: int):
        names = {
            "origin": "origin",
            "destination": "destination",
            "distanceKm": "distance_km",
            "estimatedHours": "estimated_hours",
            "description": "description",
        }
        fields = {names[k]: v for k, v in _body().items() if k in names}
        return _ok(route_json(fleet.routes.update(route_id, **fields)))

    @app.delete("/routes/<int:route_id>")
    def delete_route(route_id: int):
        fleet.routes.delete(route_id)
        return _ok(None)

    @app.post("/routes/<int:route_id>/status")
    def set_route_status(route_id: int):
        return _ok(route_json(fleet.routes.set_status(route_id, _body()["status"])))

    @app.post("/routes/<int:route_id>/reverse")
    def reverse_route(route_id: int):
        return _ok(route_json(fleet.routes.reverse_route(route_id)), 201)

    @app.get("/routes/<int:route_id>/similar")
    def similar_routes(route_id: int):
        tolerance = request.args.get("tolerance", type=float)
        routes = fleet.routes.similar_routes(
            route_id, request.args.get("criterion", "distance"), tolerance
        )
        return _ok([route_json(r) for r in routes])

    @app.get("/routes/<int:route_id>/travel-time")
    def travel_time(route_id: int):
        route = fleet.routes.get(route_id)
        departure = _datetime(request.args.get("departure"))
        hours = estimate_travel_time(
            route.estimated_hours,
            weather=request.args.get("weather", "good"),
            traffic=request.args.get("traffic", "free"),
            departure=departure,
            load=request.args.get("load", "normal"),
        )
        data = {"routeId": route_id, "baseHours": route.estimated_hours, "hours": hours}
        if departure is not None:
            data["arrival"] = route.arrival_time(departure).replace(microsecond=0)
        return _ok(data)

    # =========================================================================
    # Trips
    # =========================================================================

    @app.get("/trips")
    def list_trips():
        start = _datetime(request.args.get("start"))
        end = _datetime(request.args.get("end"))
        if start and end:
            trips = fleet.trips.between(start, end)
        else:
            trips = fleet.trips.list(
                request.args.get("status"),
                vehicle_id=request.args.get("vehicleId", type=int),
                driver_id=request.args.get("driverId", type=int),
                route_id=request.args.get("routeId", type=int),
            )
        return _ok([trip_json(t) for t in trips])

    @app.post("/trips")
    def schedule_trip():
        body = _body()
        trip = fleet.trips.schedule(
            body["vehicleId"],
            body["driverId"],
            body["routeId"],
            _datetime(body["startTime"]),
            body.get("notes"),
        )
        return _ok(trip_json(trip), 201)

    @app.get("/trips/<int:trip_id>")
    def get_trip(trip_id: int):
        return _ok(trip_json(fleet.trips.get(trip_id)))

    @app.patch("/trips/<int:trip_id>")
    def update_trip(trip_id: int):
        body = _body()
        trip = fleet.trips.update(
            trip_id,
            vehicle_id=body.get("vehicleId"),
            driver_id=body.get("driverId"),
            route_id=body.get("routeId"),
            start_time=_datetime(body.get("startTime")),
            notes=body.get("notes"),
        )
        return _ok(trip_json(trip))

    @app.delete("/trips/<int:trip_id>")
    def delete_trip(trip_id: int):
        fleet.trips.delete(trip_id)
        return _ok(None)

    @app.post("/trips/<int:trip_id>/start")
    def start_trip(trip_id: int):
        trip = fleet.trips.start(trip_id, _datetime(_body().get("startedAt")))
        return _ok(trip_json(trip))

    @app.post("/trips/<int:trip_id>/complete")
    def complete_trip(trip_id: int):
        body = _body()
        trip = fleet.trips.complete(trip_id, body["finalMileage"], body.get("notes"))
        return _ok(trip_json(trip))

    @app.post("/trips/<int:trip_id>/cancel")
    def cancel_trip(trip_id: int):
        return _ok(trip_json(fleet.trips.cancel(trip_id, _body().get("reason"))))

    @app.post("/trips/<int:trip_id>/reschedule")
    def reschedule_trip(trip_id: int):
        trip = fleet.trips.reschedule(trip_id, _datetime(_body()["startTime"]))
        return _ok(trip_json(trip))

    # =========================================================================
    # Maintenance
    # =========================================================================

    @app.get("/maintenance")
    def list_maintenance():
        events = fleet.maintenance.list(
            request.args.get("vehicleId", type=int), request.args.get("status")
        )
        return _ok([maintenance_json(m) for m in events])

    @app.get("/maintenance/overdue")
    def overdue_maintenance():
        return _ok([maintenance_json(m) for m in fleet.maintenance.overdue()])

    @app.get("/maintenance/upcoming")
    def upcoming_maintenance():
        days = request.args.get("days", 7, type=int)
        return _ok([maintenance_json(m) for m in fleet.maintenance.upcoming(days)])

    @app.get("/maintenance/calendar/<int:year>/<int:month>")
    def maintenance_calendar(year: int, month: int):
        return _ok([maintenance_json(m) for m in fleet.maintenance.calendar(year, month)])

    @app.post("/maintenance")
    def schedule_maintenance():
        body = _body()
        event = fleet.maintenance.schedule(
            body["vehicleId"],
            body["type"],
            _date(body["scheduledDate"]),
            body.get("description"),
            body.get("cost"),
        )
        return _ok(maintenance_json(event), 201)

    @app.get("/maintenance/<int:event_id>")
    def get_maintenance(event_id: int):
        return _ok(maintenance_json(fleet.maintenance.get(event_id)))

    @app.patch("/maintenance/<int:event_id>")
    def update_maintenance(event_id: int):
        body = _body()
        fields = {}
        if "type" in body:
            fields["maintenance_type"] = body["type"]
        if "scheduledDate" in body:
            fields["scheduled_date"] = _date(body["scheduledDate"])
        for key in ("description", "cost", "notes"):
            if key in body:
                fields[key] = body[key]
        return _ok(maintenance_json(fleet.maintenance.update(event_id, **fields)))

    @app.delete("/maintenance/<int:event_id>")
    def delete_maintenance(event_id: int):
        fleet.maintenance.delete(event_id)
        return _ok(None)

    @app.post("/maintenance/<int:event_id>/start")
    def start_maintenance(event_id: int):
        return _ok(maintenance_json(fleet.maintenance.start(event_id)))

    @app.post("/maintenance/<int:event_id>/complete")
    def complete_maintenance(event_id: int):
        body = _body()
        event = fleet.maintenance.complete(event_id, body.get("cost"), body.get("notes"))
        return _ok(maintenance_json(event))

    @app.post("/maintenance/<int:event_id>/cancel")
    def cancel_maintenance(event_id: int):
        return _ok(maintenance_json(fleet.maintenance.cancel(event_id)))

    @app.post("/maintenance/<int:event_id>/reschedule")
    def reschedule_maintenance(event_id: int):
        event = fleet.maintenance.reschedule(event_id, _date(_body()["scheduledDate"]))
        return _ok(maintenance_json(event))

    # =========================================================================
    # Reports
    # =========================================================================

    @app.get("/reports/trips")
    def trip_report():
        report = fleet.reports.trip_report(
            _date(request.args["start"]), _date(request.args["end"])
        )
        return _ok(report)

    @app.get("/stats")
    def stats():
        return _ok(
            {
                "vehicles": fleet.reports.vehicle_stats(),
                "drivers": fleet.reports.driver_stats(),
                "routes": fleet.reports.route_stats(),
                "trips": fleet.reports.trip_stats(),
                "maintenance": fleet.reports.maintenance_stats(),
            }
        )

    return app


if __name__ == "__main__":
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    create_app().run(debug=os.environ.get("FLASK_DEBUG") == "1")
