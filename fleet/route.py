"""Route class for origin/destination definitions."""

from datetime import datetime, timedelta
from typing import Optional

from .calculations import (
    average_speed,
    classify_difficulty,
    estimate_fuel,
    format_hours,
)
from .config import Settings
from .status import Difficulty, RouteStatus


class Route:
    """A route between two places with its distance and estimated duration."""

    def __init__(
        self,
        id: Optional[int],
        origin: str,
        destination: str,
        distance_km: float,
        estimated_hours: float,
        description: Optional[str] = None,
        status: RouteStatus = RouteStatus.ACTIVE,
    ):
        self.id = id
        self.origin = origin
        self.destination = destination
        self.distance_km = distance_km
        self.estimated_hours = estimated_hours
        self.description = description
        self.status = status

    @property
    def name(self) -> str:
        return f"{self.origin} → {self.destination}"

    @property
    def average_speed(self) -> float:
        return average_speed(self.distance_km, self.estimated_hours)

    @property
    def formatted_duration(self) -> str:
        return format_hours(self.estimated_hours)

    def difficulty(self, settings: Optional[Settings] = None) -> Difficulty:
        return classify_difficulty(self.distance_km, self.estimated_hours, settings)

    def fuel_estimate(self, settings: Optional[Settings] = None) -> float:
        return estimate_fuel(self.distance_km, settings)

    def is_long(self, settings: Optional[Settings] = None) -> bool:
        s = settings or Settings()
        return self.distance_km > s.long_route_km

    def arrival_time(self, departure: datetime) -> datetime:
        """Estimated arrival for a departure at the given time."""
        return departure + timedelta(hours=self.estimated_hours)

    def __repr__(self):
        return f"<Route id={self.id} '{self.name}' status={self.status.value}>"
