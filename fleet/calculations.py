"""Pure helper functions for the derived fleet metrics."""

import math
from datetime import date, datetime, timedelta
from typing import Optional

from .config import Settings
from .status import Difficulty, MaintenanceStatus, Priority, TripStatus

_DEFAULTS = Settings()

WEATHER_FACTORS = {"good": 1.0, "rain": 1.15, "fog": 1.25, "storm": 1.40}
TRAFFIC_FACTORS = {"free": 1.0, "moderate": 1.10, "heavy": 1.20, "congested": 1.35}
LOAD_FACTORS = {"light": 0.95, "normal": 1.0, "heavy": 1.10, "hazardous": 1.20}
RUSH_HOUR_FACTOR = 1.15
RUSH_HOURS = (range(7, 10), range(17, 20))


# =============================================================================
# Routes
# =============================================================================


def average_speed(distance_km: float, estimated_hours: float) -> float:
    """Average speed in km/h, 0 when the duration is not positive."""
    if estimated_hours <= 0:
        return 0.0
    return round(distance_km / estimated_hours, 2)


def classify_difficulty(
    distance_km: float, estimated_hours: float, settings: Optional[Settings] = None
) -> Difficulty:
    """
    Classify a route by distance and average speed.

    - Very Hard: distance above the very-hard threshold
    - Hard: distance above the hard threshold, or slow
    - Moderate: distance above the moderate threshold, or below cruising speed
    - Easy: everything else
    """
    s = settings or _DEFAULTS
    speed = average_speed(distance_km, estimated_hours)
    if distance_km > s.very_hard_distance_km:
        return Difficulty.VERY_HARD
    if distance_km > s.hard_distance_km or speed < s.hard_speed_kmh:
        return Difficulty.HARD
    if distance_km > s.moderate_distance_km or speed < s.moderate_speed_kmh:
        return Difficulty.MODERATE
    return Difficulty.EASY


def estimate_fuel(distance_km: float, settings: Optional[Settings] = None) -> float:
    """Estimated fuel use in liters."""
    s = settings or _DEFAULTS
    return round(distance_km * s.fuel_liters_per_100km / 100, 2)


def format_hours(hours: Optional[float]) -> Optional[str]:
    """Format a duration in hours as e.g. '2h 30m', '3h' or '45m'."""
    if hours is None:
        return None
    whole = math.floor(hours)
    minutes = (hours - whole) * 60
    if whole > 0 and minutes > 0:
        return f"{whole}h {round(minutes)}m"
    if whole > 0:
        return f"{whole}h"
    return f"{round(minutes)}m"


def estimate_travel_time(
    estimated_hours: float,
    weather: str = "good",
    traffic: str = "free",
    departure: Optional[datetime] = None,
    load: str = "normal",
) -> float:
    """Adjust a route's estimated hours for conditions on the road."""
    for name, value, table in (
        ("weather", weather, WEATHER_FACTORS),
        ("traffic", traffic, TRAFFIC_FACTORS),
        ("load", load, LOAD_FACTORS),
    ):
        if value not in table:
            raise ValueError(f"Unknown {name} condition '{value}'")

    factor = WEATHER_FACTORS[weather] * TRAFFIC_FACTORS[traffic] * LOAD_FACTORS[load]
    if departure is not None and any(departure.hour in r for r in RUSH_HOURS):
        factor *= RUSH_HOUR_FACTOR
    return round(estimated_hours * factor, 2)


# =============================================================================
# Maintenance
# =============================================================================


def calc_mileage_at_last_maintenance(
    current_mileage: float,
    interval_km: float,
    has_completed: bool,
    snapshot: Optional[float] = None,
) -> float:
    """
    Odometer reading at the last completed maintenance.

    - With a recorded snapshot: the snapshot
    - With completed maintenance but no snapshot: current - interval
    - Without completed maintenance: 0 (fresh at zero)
    """
    if not has_completed:
        return 0
    if snapshot is not None:
        return snapshot
    return current_mileage - interval_km


def calc_km_until_due(
    current_mileage: float, interval_km: float, last_mileage: float
) -> float:
    """Kilometers left before maintenance is due, never negative."""
    return max(0, interval_km - (current_mileage - last_mileage))


def is_maintenance_due(
    current_mileage: float, interval_km: float, last_mileage: float
) -> bool:
    return (current_mileage - last_mileage) >= interval_km


def days_until(target: date, today: date) -> int:
    """Signed day count from today to target (negative when past)."""
    return (target - today).days


def classify_priority(
    status: MaintenanceStatus,
    scheduled_date: date,
    today: date,
    settings: Optional[Settings] = None,
) -> Priority:
    """Priority of a maintenance event from its scheduled date."""
    s = settings or _DEFAULTS
    if status != MaintenanceStatus.SCHEDULED:
        return Priority.NOT_APPLICABLE
    days = days_until(scheduled_date, today)
    if days < 0:
        return Priority.URGENT
    if days <= s.high_priority_days:
        return Priority.HIGH
    if days <= s.medium_priority_days:
        return Priority.MEDIUM
    return Priority.LOW


# =============================================================================
# Trips
# =============================================================================


def hours_between(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def trip_progress(
    status: TripStatus, start_time: datetime, now: datetime, estimated_hours: float
) -> float:
    """Percent of the estimated duration elapsed, 0 outside IN_PROGRESS."""
    if status != TripStatus.IN_PROGRESS or estimated_hours <= 0:
        return 0.0
    elapsed = max(0.0, hours_between(start_time, now))
    return min(100.0, round(elapsed / estimated_hours * 100, 2))


def trip_is_delayed(
    status: TripStatus, start_time: datetime, now: datetime, estimated_hours: float
) -> bool:
    if status != TripStatus.IN_PROGRESS or estimated_hours <= 0:
        return False
    return now > start_time + timedelta(hours=estimated_hours)


def trip_efficiency(
    estimated_hours: float, actual_hours: Optional[float]
) -> Optional[float]:
    """Estimated / actual duration as a percentage."""
    if actual_hours is None or actual_hours <= 0:
        return None
    return round(estimated_hours / actual_hours * 100, 2)


def experience_level(completed_trips: int, settings: Optional[Settings] = None) -> str:
    """Driver experience label from the number of completed trips."""
    s = settings or _DEFAULTS
    for level, minimum in sorted(
        s.experience_levels.items(), key=lambda kv: kv[1], reverse=True
    ):
        if completed_trips >= minimum:
            return level
    return "New"
