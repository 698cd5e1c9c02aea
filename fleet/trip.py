"""Trip class for a vehicle/driver assignment on a route."""

from datetime import datetime
from typing import Optional

from .calculations import (
    format_hours,
    hours_between,
    trip_efficiency,
    trip_is_delayed,
    trip_progress,
)
from .route import Route
from .status import TripStatus


class Trip:
    """One run of a vehicle and driver over a route."""

    def __init__(
        self,
        id: Optional[int],
        vehicle_id: int,
        driver_id: int,
        route_id: int,
        initial_mileage: float,
        start_time: datetime,
        status: TripStatus = TripStatus.SCHEDULED,
        final_mileage: Optional[float] = None,
        end_time: Optional[datetime] = None,
        notes: Optional[str] = None,
    ):
        self.id = id
        self.vehicle_id = vehicle_id
        self.driver_id = driver_id
        self.route_id = route_id
        self.initial_mileage = initial_mileage
        self.start_time = start_time
        self.status = status
        self.final_mileage = final_mileage
        self.end_time = end_time
        self.notes = notes

    @property
    def distance_traveled(self) -> Optional[float]:
        if self.final_mileage is None:
            return None
        return self.final_mileage - self.initial_mileage

    @property
    def duration_hours(self) -> Optional[float]:
        if self.end_time is None:
            return None
        return hours_between(self.start_time, self.end_time)

    @property
    def formatted_duration(self) -> Optional[str]:
        return format_hours(self.duration_hours)

    def progress(self, route: Route, now: datetime) -> float:
        return trip_progress(self.status, self.start_time, now, route.estimated_hours)

    def is_delayed(self, route: Route, now: datetime) -> bool:
        return trip_is_delayed(self.status, self.start_time, now, route.estimated_hours)

    def efficiency(self, route: Route) -> Optional[float]:
        """Estimated vs actual duration in percent, completed trips only."""
        if self.status != TripStatus.COMPLETED:
            return None
        return trip_efficiency(route.estimated_hours, self.duration_hours)

    def estimated_arrival(self, route: Route) -> datetime:
        return route.arrival_time(self.start_time)

    def time_remaining(self, route: Route, now: datetime) -> Optional[str]:
        """'2.5h remaining', '40m remaining' or 'Delayed 1.2h' for running trips."""
        if self.status != TripStatus.IN_PROGRESS:
            return None
        eta = self.estimated_arrival(route)
        if now > eta:
            return f"Delayed {round(hours_between(eta, now), 1)}h"
        remaining = hours_between(now, eta)
        if remaining >= 1:
            return f"{round(remaining, 1)}h remaining"
        return f"{round(remaining * 60)}m remaining"

    def __repr__(self):
        return (
            f"<Trip id={self.id} vehicle={self.vehicle_id} driver={self.driver_id} "
            f"route={self.route_id} status={self.status.value}>"
        )
