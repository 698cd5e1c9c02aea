"""Status enums for fleet records."""

from enum import Enum


class VehicleStatus(Enum):
    """Operational status of a truck."""

    ACTIVE = "active"
    IN_SHOP = "in_shop"
    INACTIVE = "inactive"


class DriverStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class RouteStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"


class MaintenanceStatus(Enum):
    """Maintenance event lifecycle. COMPLETED and CANCELED are terminal."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELED = "canceled"

    @property
    def is_pending(self) -> bool:
        return self in (MaintenanceStatus.SCHEDULED, MaintenanceStatus.IN_PROGRESS)

    @property
    def is_terminal(self) -> bool:
        return self in (MaintenanceStatus.COMPLETED, MaintenanceStatus.CANCELED)


class TripStatus(Enum):
    """Trip lifecycle. COMPLETED and CANCELED are terminal."""

    SCHEDULED = "scheduled"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELED = "canceled"

    @property
    def is_terminal(self) -> bool:
        return self in (TripStatus.COMPLETED, TripStatus.CANCELED)


class Priority(Enum):
    """Maintenance priority. Lower rank = more urgent."""

    URGENT = "Urgent"
    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"
    NOT_APPLICABLE = "N/A"

    @property
    def rank(self) -> int:
        return list(Priority).index(self)


class Difficulty(Enum):
    VERY_HARD = "Very Hard"
    HARD = "Hard"
    MODERATE = "Moderate"
    EASY = "Easy"
