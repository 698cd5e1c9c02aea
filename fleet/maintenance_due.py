"""MaintenanceDue dataclass for the calculated maintenance status of a vehicle."""

from dataclasses import dataclass
from datetime import date
from typing import Optional


@dataclass
class MaintenanceDue:
    """Mileage-driven maintenance status for one vehicle."""

    vehicle_id: int
    current_mileage: float
    interval_km: float
    mileage_at_last: float
    km_until_due: float
    is_due: bool
    basis: str

    @property
    def km_since_last(self) -> float:
        return self.current_mileage - self.mileage_at_last


@dataclass
class MaintenanceSuggestion:
    """Whether preventive maintenance should be booked for a vehicle, and when."""

    vehicle_id: int
    suggested: bool
    reason: str
    maintenance_type: Optional[str] = None
    suggested_date: Optional[date] = None
    urgency: Optional[str] = None
