"""MaintenanceEvent class for scheduled and performed maintenance."""

from datetime import date, timedelta
from typing import Optional

from .calculations import classify_priority, days_until
from .config import Settings
from .status import MaintenanceStatus, Priority


class MaintenanceEvent:
    """A maintenance job on one vehicle."""

    def __init__(
        self,
        id: Optional[int],
        vehicle_id: int,
        maintenance_type: str,
        scheduled_date: date,
        status: MaintenanceStatus = MaintenanceStatus.SCHEDULED,
        description: Optional[str] = None,
        completed_date: Optional[date] = None,
        cost: Optional[float] = None,
        notes: Optional[str] = None,
        mileage_at_completion: Optional[float] = None,
    ):
        self.id = id
        self.vehicle_id = vehicle_id
        self.maintenance_type = maintenance_type
        self.scheduled_date = scheduled_date
        self.status = status
        self.description = description
        self.completed_date = completed_date
        self.cost = cost
        self.notes = notes
        self.mileage_at_completion = mileage_at_completion

    @property
    def is_pending(self) -> bool:
        return self.status.is_pending

    @property
    def is_preventive(self) -> bool:
        return "preventive" in self.maintenance_type.lower()

    @property
    def is_corrective(self) -> bool:
        return "corrective" in self.maintenance_type.lower()

    def is_overdue(self, today: date) -> bool:
        """Still scheduled and the scheduled date has passed."""
        return self.status == MaintenanceStatus.SCHEDULED and self.scheduled_date < today

    def is_upcoming(self, today: date, days: int = 7) -> bool:
        return (
            self.status == MaintenanceStatus.SCHEDULED
            and today <= self.scheduled_date <= today + timedelta(days=days)
        )

    def days_until_due(self, today: date) -> Optional[int]:
        if self.status != MaintenanceStatus.SCHEDULED:
            return None
        return days_until(self.scheduled_date, today)

    def days_since_completed(self, today: date) -> Optional[int]:
        if self.completed_date is None:
            return None
        return (today - self.completed_date).days

    @property
    def duration_days(self) -> Optional[int]:
        """Days between the scheduled date and the completion date."""
        if self.completed_date is None:
            return None
        return (self.completed_date - self.scheduled_date).days

    def priority(self, today: date, settings: Optional[Settings] = None) -> Priority:
        return classify_priority(self.status, self.scheduled_date, today, settings)

    def status_display(self, today: date) -> str:
        label = self.status.value
        if self.is_overdue(today):
            label += " (overdue)"
        elif self.is_upcoming(today):
            label += " (upcoming)"
        return label

    def __repr__(self):
        return (
            f"<MaintenanceEvent id={self.id} vehicle={self.vehicle_id} "
            f"type='{self.maintenance_type}' status={self.status.value}>"
        )
