"""Date-range trip report and per-entity statistics."""

from collections import Counter, defaultdict
from datetime import date, datetime, time, timedelta
from typing import Any, Callable, Dict, List, Optional, Union

from .calculations import experience_level
from .config import Settings
from .normalize import local_naive
from .status import (
    Difficulty,
    DriverStatus,
    MaintenanceStatus,
    RouteStatus,
    TripStatus,
    VehicleStatus,
)
from .store import FleetStore

DateLike = Union[date, datetime]

PERFORMANCE_WINDOW = timedelta(days=90)


def _as_start(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return local_naive(value)
    return datetime.combine(value, time.min)


def _as_end(value: DateLike) -> datetime:
    if isinstance(value, datetime):
        return local_naive(value)
    return datetime.combine(value, time.max)


def _average(values: List[float]) -> Optional[float]:
    if not values:
        return None
    return round(sum(values) / len(values), 2)


class Reports:
    """Read-only aggregates over the store."""

    def __init__(
        self,
        store: FleetStore,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.settings = settings or Settings()
        self.clock = clock

    def _route(self, route_id):
        return self.store.find("routes", route_id)

    def _efficiency(self, trip) -> Optional[float]:
        route = self._route(trip.route_id)
        return trip.efficiency(route) if route else None

    def _completed_efficiencies(self, trips) -> List[float]:
        values = [self._efficiency(t) for t in trips if t.status == TripStatus.COMPLETED]
        return [v for v in values if v is not None and v > 0]

    # =========================================================================
    # Trip report
    # =========================================================================

    def _trip_row(self, trip) -> Dict[str, Any]:
        vehicle = self.store.find("vehicles", trip.vehicle_id)
        driver = self.store.find("drivers", trip.driver_id)
        route = self._route(trip.route_id)
        return {
            "id": trip.id,
            "startTime": trip.start_time,
            "endTime": trip.end_time,
            "status": trip.status.value,
            "vehicle": vehicle.plate if vehicle else None,
            "driver": driver.full_name if driver else None,
            "route": route.name if route else None,
            "initialMileage": trip.initial_mileage,
            "finalMileage": trip.final_mileage,
            "distanceKm": trip.distance_traveled,
            "durationHours": (
                round(trip.duration_hours, 2) if trip.duration_hours is not None else None
            ),
            "efficiency": self._efficiency(trip),
        }

    def trip_report(self, start: DateLike, end: DateLike) -> Dict[str, Any]:
        """
        Trips starting between start and end (dates are inclusive).

        Returns the period, a general summary, one row per trip and
        aggregates by status, vehicle and driver.
        """
        start_dt, end_dt = _as_start(start), _as_end(end)
        if end_dt < start_dt:
            raise ValueError("Report end must not be before its start")

        trips = sorted(
            (t for t in self.store.all("trips") if start_dt <= t.start_time <= end_dt),
            key=lambda t: (t.start_time, t.id),
        )
        rows = [self._trip_row(t) for t in trips]
        completed = [r for r in rows if r["status"] == TripStatus.COMPLETED.value]

        by_status = Counter(r["status"] for r in rows)

        by_vehicle: Dict[str, Dict[str, Any]] = defaultdict(lambda: {"trips": 0, "km": 0})
        by_driver: Dict[str, Dict[str, Any]] = defaultdict(lambda: {"trips": 0, "km": 0})
        for row in rows:
            for key, table in ((row["vehicle"], by_vehicle), (row["driver"], by_driver)):
                table[key]["trips"] += 1
                table[key]["km"] += row["distanceKm"] or 0

        return {
            "period": {
                "start": start_dt,
                "end": end_dt,
                "days": (end_dt.date() - start_dt.date()).days + 1,
            },
            "summary": {
                "totalTrips": len(rows),
                "completedTrips": len(completed),
                "totalKm": sum(r["distanceKm"] or 0 for r in completed),
                "totalHours": round(sum(r["durationHours"] or 0 for r in completed), 2),
                "averageEfficiency": _average(
                    [r["efficiency"] for r in completed if r["efficiency"]]
                ),
            },
            "trips": rows,
            "byStatus": {s.value: by_status.get(s.value, 0) for s in TripStatus},
            "byVehicle": [{"vehicle": k, **v} for k, v in by_vehicle.items()],
            "byDriver": [{"driver": k, **v} for k, v in by_driver.items()],
            "generatedAt": self.clock(),
        }

    # =========================================================================
    # Statistics
    # =========================================================================

    def trip_stats(self) -> Dict[str, Any]:
        trips = self.store.all("trips")
        now = self.clock()
        counts = Counter(t.status for t in trips)
        delayed = [
            t
            for t in trips
            if self._route(t.route_id) and t.is_delayed(self._route(t.route_id), now)
        ]
        return {
            "total": len(trips),
            "completed": counts[TripStatus.COMPLETED],
            "inProgress": counts[TripStatus.IN_PROGRESS],
            "scheduled": counts[TripStatus.SCHEDULED],
            "canceled": counts[TripStatus.CANCELED],
            "delayed": len(delayed),
            "totalKm": sum(
                t.distance_traveled or 0 for t in trips if t.status == TripStatus.COMPLETED
            ),
            "averageEfficiency": _average(self._completed_efficiencies(trips)),
        }

    def vehicle_stats(self) -> Dict[str, Any]:
        vehicles = self.store.all("vehicles")
        counts = Counter(v.status for v in vehicles)
        return {
            "total": len(vehicles),
            "active": counts[VehicleStatus.ACTIVE],
            "inShop": counts[VehicleStatus.IN_SHOP],
            "inactive": counts[VehicleStatus.INACTIVE],
            "onTrip": len(self.store.active_trip_by_vehicle),
            "totalMileage": sum(v.current_mileage for v in vehicles),
            "averageMileage": _average([v.current_mileage for v in vehicles]),
        }

    def driver_stats(self) -> Dict[str, Any]:
        drivers = self.store.all("drivers")
        counts = Counter(d.status for d in drivers)
        completed = Counter(
            t.driver_id for t in self.store.all("trips") if t.status == TripStatus.COMPLETED
        )
        levels = Counter(experience_level(completed[d.id], self.settings) for d in drivers)
        distribution = {"New": levels.get("New", 0)}
        for level in sorted(self.settings.experience_levels, key=self.settings.experience_levels.get):
            distribution[level] = levels.get(level, 0)
        return {
            "total": len(drivers),
            "active": counts[DriverStatus.ACTIVE],
            "inactive": counts[DriverStatus.INACTIVE],
            "suspended": counts[DriverStatus.SUSPENDED],
            "onTrip": len(self.store.active_trip_by_driver),
            "experience": distribution,
        }

    def route_stats(self, top: int = 5) -> Dict[str, Any]:
        routes = self.store.all("routes")
        counts = Counter(r.status for r in routes)
        difficulty = Counter(r.difficulty(self.settings) for r in routes)
        usage = Counter(
            t.route_id for t in self.store.all("trips") if t.status == TripStatus.COMPLETED
        )
        most_used = []
        for route_id, trips in usage.most_common(top):
            route = self._route(route_id)
            if route is not None:
                most_used.append({"route": route.name, "trips": trips})
        return {
            "total": len(routes),
            "active": counts[RouteStatus.ACTIVE],
            "inactive": counts[RouteStatus.INACTIVE],
            "longRoutes": sum(1 for r in routes if r.is_long(self.settings)),
            "averageDistanceKm": _average([r.distance_km for r in routes]),
            "difficulty": {d.value: difficulty.get(d, 0) for d in Difficulty},
            "mostUsed": most_used,
        }

    def maintenance_stats(self) -> Dict[str, Any]:
        events = self.store.all("maintenance")
        today = self.clock().date()
        counts = Counter(m.status for m in events)
        completed = [m for m in events if m.status == MaintenanceStatus.COMPLETED]
        return {
            "total": len(events),
            "scheduled": counts[MaintenanceStatus.SCHEDULED],
            "inProgress": counts[MaintenanceStatus.IN_PROGRESS],
            "completed": counts[MaintenanceStatus.COMPLETED],
            "canceled": counts[MaintenanceStatus.CANCELED],
            "overdue": sum(1 for m in events if m.is_overdue(today)),
            "upcoming": sum(1 for m in events if m.is_upcoming(today)),
            "totalCost": sum(m.cost or 0 for m in completed),
            "averageCost": _average([m.cost for m in completed if m.cost is not None]),
        }

    def driver_performance(
        self,
        driver_id: int,
        start: Optional[DateLike] = None,
        end: Optional[DateLike] = None,
    ) -> Dict[str, Any]:
        """Completed trips of one driver in a period (default: the last 90 days)."""
        self.store.get("drivers", driver_id)
        now = self.clock()
        start_dt = _as_start(start) if start is not None else now - PERFORMANCE_WINDOW
        end_dt = _as_end(end) if end is not None else now

        trips = [
            t
            for t in self.store.all("trips")
            if t.driver_id == driver_id
            and t.status == TripStatus.COMPLETED
            and start_dt <= t.start_time <= end_dt
        ]
        efficiencies = [(t, self._efficiency(t)) for t in trips]
        threshold = self.settings.on_time_efficiency

        per_route: Dict[int, Dict[str, Any]] = {}
        for trip in trips:
            entry = per_route.setdefault(trip.route_id, {"trips": 0, "km": 0})
            entry["trips"] += 1
            entry["km"] += trip.distance_traveled or 0
        frequent = sorted(per_route.items(), key=lambda kv: kv[1]["trips"], reverse=True)[:5]

        monthly: Dict[str, List[float]] = defaultdict(list)
        for trip, eff in efficiencies:
            bucket = monthly[trip.start_time.strftime("%Y-%m")]
            if eff:
                bucket.append(eff)

        return {
            "period": {"start": start_dt, "end": end_dt},
            "totalTrips": len(trips),
            "totalKm": sum(t.distance_traveled or 0 for t in trips),
            "averageEfficiency": _average([e for _, e in efficiencies if e]),
            "onTime": sum(1 for _, e in efficiencies if e is not None and e >= threshold),
            "late": sum(1 for _, e in efficiencies if e is not None and e < threshold),
            "frequentRoutes": [
                {
                    "route": self._route(route_id).name if self._route(route_id) else route_id,
                    **entry,
                }
                for route_id, entry in frequent
            ],
            "monthlyEfficiency": {
                month: {
                    "trips": sum(
                        1 for t in trips if t.start_time.strftime("%Y-%m") == month
                    ),
                    "averageEfficiency": _average(values),
                }
                for month, values in sorted(monthly.items())
            },
        }

