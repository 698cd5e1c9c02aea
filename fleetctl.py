#!/usr/bin/env python3
"""
Command line interface for the truck fleet.

Commands:
  init                  - Create an empty fleet file
  vehicles / drivers / routes / trips / maintenance
                        - List records
  add-vehicle / add-driver / add-route
                        - Register records
  update-mileage        - Record a vehicle odometer reading
  set-status            - Change a vehicle, driver or route status
  schedule-trip / start-trip / complete-trip / cancel-trip / reschedule-trip
                        - Trip lifecycle
  schedule-maintenance / start-maintenance / complete-maintenance /
  cancel-maintenance    - Maintenance lifecycle
  due                   - Show mileage-driven maintenance status
  report                - Trip report for a date range
  stats                 - Fleet statistics
"""

import argparse
import logging
import sys
from datetime import date, datetime
from pathlib import Path
from typing import List, Optional

from dateutil.parser import isoparse
from jsonschema import ValidationError
from tabulate import tabulate

from fleet import Fleet, FleetError, FleetStore, Settings, save_fleet

logger = logging.getLogger("fleetctl")

# =============================================================================
# Formatting helpers
# =============================================================================


def format_km(km: Optional[float]) -> str:
    """Format a distance or odometer reading for display."""
    return f"{km:,.0f}" if km is not None else "-"


def format_cost(cost: Optional[float]) -> str:
    return f"${cost:,.2f}" if cost is not None else "-"


def format_datetime(value: Optional[datetime]) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value is not None else "-"


def format_percent(value: Optional[float]) -> str:
    return f"{value:.1f}%" if value is not None else "-"


def truncate(text: Optional[str], max_len: int = 30) -> str:
    """Truncate text with ellipsis if too long."""
    if text is None:
        return "-"
    if len(text) <= max_len:
        return text
    return text[: max_len - 3] + "..."


def parse_date(value: str) -> date:
    return isoparse(value).date()


def parse_datetime(value: str) -> datetime:
    return isoparse(value)


# =============================================================================
# Tables
# =============================================================================


def make_vehicle_table(fleet: Fleet) -> List[List[str]]:
    rows = []
    for v in fleet.vehicles.list():
        due = fleet.maintenance.maintenance_due(v.id)
        rows.append(
            [
                v.id,
                v.plate,
                f"{v.make} {v.model}",
                v.year,
                format_km(v.current_mileage),
                format_km(v.maintenance_interval_km),
                v.status.value,
                "yes" if due.is_due else "no",
            ]
        )
    return rows


def make_trip_table(fleet: Fleet, trips) -> List[List[str]]:
    rows = []
    for t in trips:
        vehicle = fleet.store.find("vehicles", t.vehicle_id)
        driver = fleet.store.find("drivers", t.driver_id)
        route = fleet.store.find("routes", t.route_id)
        rows.append(
            [
                t.id,
                vehicle.plate if vehicle else t.vehicle_id,
                driver.full_name if driver else t.driver_id,
                route.name if route else t.route_id,
                format_datetime(t.start_time),
                format_datetime(t.end_time),
                format_km(t.distance_traveled),
                t.status.value,
            ]
        )
    return rows


def make_maintenance_table(fleet: Fleet, events) -> List[List[str]]:
    today = fleet.clock().date()
    rows = []
    for m in events:
        vehicle = fleet.store.find("vehicles", m.vehicle_id)
        rows.append(
            [
                m.id,
                vehicle.plate if vehicle else m.vehicle_id,
                m.maintenance_type,
                m.scheduled_date.isoformat(),
                m.completed_date.isoformat() if m.completed_date else "-",
                m.status_display(today),
                m.priority(today, fleet.settings).value,
                format_cost(m.cost),
                truncate(m.notes),
            ]
        )
    return rows


# =============================================================================
# Commands
# =============================================================================


def cmd_init(args, fleet):
    if args.fleet_file.exists():
        print(f"Error: {args.fleet_file} already exists")
        return 1
    save_fleet(args.fleet_file, FleetStore())
    print(f"Created empty fleet file {args.fleet_file}")
    return 0


def cmd_vehicles(args, fleet):
    headers = ["Id", "Plate", "Vehicle", "Year", "Mileage", "Interval", "Status", "Due"]
    rows = make_vehicle_table(fleet)
    if args.status:
        rows = [r for r in rows if r[6] == args.status]
    print(tabulate(rows, headers=headers, tablefmt="simple"))
    return 0


def cmd_drivers(args, fleet):
    rows = []
    for d in fleet.drivers.list(args.status):
        completed = fleet.drivers.completed_trips(d.id)
        rows.append(
            [
                d.id,
                d.full_name,
                d.license_number,
                d.formatted_phone,
                d.status.value,
                d.experience_level(completed, fleet.settings),
            ]
        )
    headers = ["Id", "Name", "License", "Phone", "Status", "Experience"]
    print(tabulate(rows, headers=headers, tablefmt="simple"))
    return 0


def cmd_routes(args, fleet):
    rows = [
        [
            r.id,
            r.name,
            format_km(r.distance_km),
            r.formatted_duration,
            r.average_speed,
            r.difficulty(fleet.settings).value,
            r.status.value,
        ]
        for r in fleet.routes.list(args.status)
    ]
    headers = ["Id", "Route", "Km", "Duration", "Km/h", "Difficulty", "Status"]
    print(tabulate(rows, headers=headers, tablefmt="simple"))
    return 0


def cmd_trips(args, fleet):
    trips = fleet.trips.list(args.status, vehicle_id=args.vehicle, driver_id=args.driver)
    headers = ["Id", "Vehicle", "Driver", "Route", "Start", "End", "Km", "Status"]
    print(tabulate(make_trip_table(fleet, trips), headers=headers, tablefmt="simple"))
    return 0


def cmd_maintenance(args, fleet):
    if args.overdue:
        events = fleet.maintenance.overdue()
    elif args.upcoming is not None:
        events = fleet.maintenance.upcoming(args.upcoming)
    else:
        events = fleet.maintenance.list(args.vehicle, args.status)
    headers = [
        "Id",
        "Vehicle",
        "Type",
        "Scheduled",
        "Completed",
        "Status",
        "Priority",
        "Cost",
        "Notes",
    ]
    print(
        tabulate(
            make_maintenance_table(fleet, events), headers=headers, tablefmt="simple"
        )
    )
    return 0


def cmd_add_vehicle(args, fleet):
    vehicle = fleet.vehicles.create(
        args.plate,
        args.make,
        args.model,
        args.year,
        maintenance_interval_km=args.interval,
        current_mileage=args.mileage,
        engine_number=args.engine_number,
    )
    print(f"Vehicle {vehicle.id} added: {vehicle.display_name}")
    return 0


def cmd_add_driver(args, fleet):
    driver = fleet.drivers.create(
        args.first_name,
        args.last_name,
        args.license,
        phone=args.phone,
        email=args.email,
    )
    print(f"Driver {driver.id} added: {driver.full_name}")
    return 0


def cmd_add_route(args, fleet):
    route = fleet.routes.create(
        args.origin, args.destination, args.distance, args.hours, args.description
    )
    print(f"Route {route.id} added: {route.name}")
    return 0


def cmd_update_mileage(args, fleet):
    vehicle = fleet.vehicles.get(args.vehicle_id)
    old = vehicle.current_mileage
    fleet.vehicles.update_mileage(args.vehicle_id, args.mileage)
    print(f"Vehicle: {vehicle.display_name}")
    print(f"Mileage: {format_km(old)} -> {format_km(args.mileage)}")
    return 0


def cmd_set_status(args, fleet):
    component = {
        "vehicle": fleet.vehicles,
        "driver": fleet.drivers,
        "route": fleet.routes,
    }[args.kind]
    record = component.set_status(args.id, args.status)
    print(f"{args.kind.capitalize()} {record.id} is now {record.status.value}")
    return 0


def cmd_schedule_trip(args, fleet):
    trip = fleet.trips.schedule(
        args.vehicle_id, args.driver_id, args.route_id, args.start, args.notes
    )
    print(f"Trip {trip.id} scheduled: {fleet.trips.summary(trip.id)}")
    return 0


def cmd_start_trip(args, fleet):
    trip = fleet.trips.start(args.trip_id, args.at)
    print(f"Trip {trip.id} started at {format_datetime(trip.start_time)}")
    return 0


def cmd_complete_trip(args, fleet):
    trip = fleet.trips.complete(args.trip_id, args.final_mileage, args.notes)
    print(f"Trip {trip.id} completed: {format_km(trip.distance_traveled)} km")
    print(f"Duration:   {trip.formatted_duration}")
    print(f"Efficiency: {format_percent(fleet.trips.efficiency(trip.id))}")
    return 0


def cmd_cancel_trip(args, fleet):
    trip = fleet.trips.cancel(args.trip_id, args.reason)
    print(f"Trip {trip.id} canceled")
    return 0


def cmd_reschedule_trip(args, fleet):
    trip = fleet.trips.reschedule(args.trip_id, args.start)
    print(f"Trip {trip.id} rescheduled to {format_datetime(trip.start_time)}")
    return 0


def cmd_schedule_maintenance(args, fleet):
    event = fleet.maintenance.schedule(
        args.vehicle_id, args.type, args.date, args.description, args.cost
    )
    print(f"Maintenance {event.id} scheduled for {event.scheduled_date.isoformat()}")
    return 0


def cmd_start_maintenance(args, fleet):
    event = fleet.maintenance.start(args.event_id)
    print(f"Maintenance {event.id} in progress")
    return 0


def cmd_complete_maintenance(args, fleet):
    event = fleet.maintenance.complete(args.event_id, args.cost, args.notes)
    vehicle = fleet.vehicles.get(event.vehicle_id)
    print(f"Maintenance {event.id} completed at {format_km(event.mileage_at_completion)} km")
    print(f"Vehicle {vehicle.plate} is {vehicle.status.value}")
    return 0


def cmd_cancel_maintenance(args, fleet):
    event = fleet.maintenance.cancel(args.event_id)
    print(f"Maintenance {event.id} canceled")
    return 0


def cmd_due(args, fleet):
    """Show mileage-driven maintenance status per vehicle."""
    rows = []
    for v in fleet.vehicles.list():
        due = fleet.maintenance.maintenance_due(v.id)
        if args.due_only and not due.is_due:
            continue
        suggestion = fleet.maintenance.suggest(v.id)
        rows.append(
            [
                v.plate,
                format_km(due.current_mileage),
                format_km(due.mileage_at_last),
                format_km(due.km_until_due),
                "DUE" if due.is_due else "ok",
                suggestion.suggested_date.isoformat() if suggestion.suggested else "-",
                suggestion.urgency or "-",
            ]
        )
    headers = ["Vehicle", "Mileage", "Last (km)", "Until due", "Status", "Suggested", "Urgency"]
    print(tabulate(rows, headers=headers, tablefmt="simple"))
    return 0


def cmd_report(args, fleet):
    report = fleet.reports.trip_report(args.start, args.end)
    period = report["period"]
    summary = report["summary"]
    print(f"Trips from {period['start'].date()} to {period['end'].date()} ({period['days']} days)")
    print(f"Total trips: {summary['totalTrips']} ({summary['completedTrips']} completed)")
    print(f"Total km:    {format_km(summary['totalKm'])}")
    print(f"Efficiency:  {format_percent(summary['averageEfficiency'])}")
    print()

    if not report["trips"]:
        print("No trips in this period.")
        return 0

    rows = [
        [
            r["id"],
            r["vehicle"],
            r["driver"],
            r["route"],
            format_datetime(r["startTime"]),
            format_km(r["distanceKm"]),
            r["durationHours"] if r["durationHours"] is not None else "-",
            r["status"],
        ]
        for r in report["trips"]
    ]
    headers = ["Id", "Vehicle", "Driver", "Route", "Start", "Km", "Hours", "Status"]
    print(tabulate(rows, headers=headers, tablefmt="simple"))
    print()
    print(tabulate(report["byVehicle"], headers="keys", tablefmt="simple"))
    print()
    print(tabulate(report["byDriver"], headers="keys", tablefmt="simple"))
    return 0


def cmd_stats(args, fleet):
    sections = {
        "Vehicles": fleet.reports.vehicle_stats(),
        "Drivers": fleet.reports.driver_stats(),
        "Routes": fleet.reports.route_stats(),
        "Trips": fleet.reports.trip_stats(),
        "Maintenance": fleet.reports.maintenance_stats(),
    }
    for title, stats in sections.items():
        print(f"{title}:")
        rows = [[k, v] for k, v in stats.items() if not isinstance(v, (dict, list))]
        print(tabulate(rows, tablefmt="simple"))
        print()
    return 0


COMMANDS = {
    "init": cmd_init,
    "vehicles": cmd_vehicles,
    "drivers": cmd_drivers,
    "routes": cmd_routes,
    "trips": cmd_trips,
    "maintenance": cmd_maintenance,
    "add-vehicle": cmd_add_vehicle,
    "add-driver": cmd_add_driver,
    "add-route": cmd_add_route,
    "update-mileage": cmd_update_mileage,
    "set-status": cmd_set_status,
    "schedule-trip": cmd_schedule_trip,
    "start-trip": cmd_start_trip,
    "complete-trip": cmd_complete_trip,
    "cancel-trip": cmd_cancel_trip,
    "reschedule-trip": cmd_reschedule_trip,
    "schedule-maintenance": cmd_schedule_maintenance,
    "start-maintenance": cmd_start_maintenance,
    "complete-maintenance": cmd_complete_maintenance,
    "cancel-maintenance": cmd_cancel_maintenance,
    "due": cmd_due,
    "report": cmd_report,
    "stats": cmd_stats,
}


# =============================================================================
# Main
# =============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Truck fleet tracker",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s fleet.yaml init
  %(prog)s fleet.yaml add-vehicle P123ABC Volvo FH16 2021 --interval 10000
  %(prog)s fleet.yaml add-driver Ana Lopez LIC-001 --phone 55512345
  %(prog)s fleet.yaml add-route Guatemala Quetzaltenango 200 4
  %(prog)s fleet.yaml schedule-trip 1 1 1 2025-03-01T08:00
  %(prog)s fleet.yaml start-trip 1
  %(prog)s fleet.yaml complete-trip 1 1450
  %(prog)s fleet.yaml due --due-only
  %(prog)s fleet.yaml report 2025-03-01 2025-03-31
""",
    )
    parser.add_argument("fleet_file", type=Path, help="Path to fleet YAML file")
    parser.add_argument(
        "--settings",
        type=Path,
        help="YAML file with threshold overrides (default: $FLEET_SETTINGS)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Log debug output")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("init", help="Create an empty fleet file")

    # Listings
    p = subparsers.add_parser("vehicles", help="List vehicles")
    p.add_argument("--status", choices=["active", "in_shop", "inactive"])
    p = subparsers.add_parser("drivers", help="List drivers")
    p.add_argument("--status", choices=["active", "inactive", "suspended"])
    p = subparsers.add_parser("routes", help="List routes")
    p.add_argument("--status", choices=["active", "inactive"])
    p = subparsers.add_parser("trips", help="List trips")
    p.add_argument("--status", choices=["scheduled", "in_progress", "completed", "canceled"])
    p.add_argument("--vehicle", type=int, help="Only trips of this vehicle id")
    p.add_argument("--driver", type=int, help="Only trips of this driver id")
    p = subparsers.add_parser("maintenance", help="List maintenance events")
    p.add_argument("--vehicle", type=int, help="Only events of this vehicle id")
    p.add_argument("--status", choices=["scheduled", "in_progress", "completed", "canceled"])
    p.add_argument("--overdue", action="store_true", help="Only overdue events")
    p.add_argument("--upcoming", type=int, metavar="DAYS", help="Events due within DAYS")

    # Registration
    p = subparsers.add_parser("add-vehicle", help="Register a vehicle")
    p.add_argument("plate")
    p.add_argument("make")
    p.add_argument("model")
    p.add_argument("year", type=int)
    p.add_argument("--interval", type=int, help="Maintenance interval in km")
    p.add_argument("--mileage", type=float, default=0, help="Current mileage")
    p.add_argument("--engine-number")
    p = subparsers.add_parser("add-driver", help="Register a driver")
    p.add_argument("first_name")
    p.add_argument("last_name")
    p.add_argument("license")
    p.add_argument("--phone")
    p.add_argument("--email")
    p = subparsers.add_parser("add-route", help="Register a route")
    p.add_argument("origin")
    p.add_argument("destination")
    p.add_argument("distance", type=float, help="Distance in km")
    p.add_argument("hours", type=float, help="Estimated duration in hours")
    p.add_argument("--description")

    p = subparsers.add_parser("update-mileage", help="Record an odometer reading")
    p.add_argument("vehicle_id", type=int)
    p.add_argument("mileage", type=float)
    p = subparsers.add_parser("set-status", help="Change a vehicle, driver or route status")
    p.add_argument("kind", choices=["vehicle", "driver", "route"])
    p.add_argument("id", type=int)
    p.add_argument("status")

    # Trips
    p = subparsers.add_parser("schedule-trip", help="Schedule a trip")
    p.add_argument("vehicle_id", type=int)
    p.add_argument("driver_id", type=int)
    p.add_argument("route_id", type=int)
    p.add_argument("start", type=parse_datetime, help="Start time (ISO 8601)")
    p.add_argument("--notes")
    p = subparsers.add_parser("start-trip", help="Start a scheduled trip")
    p.add_argument("trip_id", type=int)
    p.add_argument("--at", type=parse_datetime, help="Actual start time (default: now)")
    p = subparsers.add_parser("complete-trip", help="Complete a running trip")
    p.add_argument("trip_id", type=int)
    p.add_argument("final_mileage", type=float)
    p.add_argument("--notes")
    p = subparsers.add_parser("cancel-trip", help="Cancel a trip")
    p.add_argument("trip_id", type=int)
    p.add_argument("--reason")
    p = subparsers.add_parser("reschedule-trip", help="Move a scheduled trip")
    p.add_argument("trip_id", type=int)
    p.add_argument("start", type=parse_datetime)

    # Maintenance
    p = subparsers.add_parser("schedule-maintenance", help="Schedule maintenance")
    p.add_argument("vehicle_id", type=int)
    p.add_argument("type")
    p.add_argument("date", type=parse_date)
    p.add_argument("--description")
    p.add_argument("--cost", type=float)
    for name, help_text in (
        ("start-maintenance", "Start scheduled maintenance"),
        ("cancel-maintenance", "Cancel maintenance"),
    ):
        p = subparsers.add_parser(name, help=help_text)
        p.add_argument("event_id", type=int)
    p = subparsers.add_parser("complete-maintenance", help="Complete maintenance")
    p.add_argument("event_id", type=int)
    p.add_argument("--cost", type=float)
    p.add_argument("--notes")

    # Analysis
    p = subparsers.add_parser("due", help="Show maintenance due status per vehicle")
    p.add_argument("--due-only", action="store_true", help="Only vehicles that are due")
    p = subparsers.add_parser("report", help="Trip report for a date range")
    p.add_argument("start", type=parse_date)
    p.add_argument("end", type=parse_date)
    subparsers.add_parser("stats", help="Fleet statistics")

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command != "init" and not args.fleet_file.exists():
        print(f"Error: File not found: {args.fleet_file}")
        return 1

    try:
        settings = Settings.from_yaml(args.settings) if args.settings else Settings.from_env()
        if args.command == "init":
            return cmd_init(args, None)
        fleet = Fleet.open(args.fleet_file, settings=settings)
        return COMMANDS[args.command](args, fleet)
    except FleetError as e:
        logger.debug("Command %s rejected", args.command, exc_info=True)
        print(f"Error: {e}")
        return 1
    except ValidationError as e:
        print(f"Error: invalid fleet file: {e.message}")
        return 1
    except ValueError as e:
        print(f"Error: {e}")
        return 1


if __name__ == "__main__":
    sys.exit(main() or 0)
