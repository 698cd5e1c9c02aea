"""Driver class for driver records."""

from typing import Optional

from .calculations import experience_level
from .config import Settings
from .normalize import format_phone
from .status import DriverStatus


class Driver:
    """A licensed driver."""

    def __init__(
        self,
        id: Optional[int],
        first_name: str,
        last_name: str,
        license_number: str,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        status: DriverStatus = DriverStatus.ACTIVE,
    ):
        self.id = id
        self.first_name = first_name
        self.last_name = last_name
        self.license_number = license_number
        self.phone = phone
        self.email = email
        self.status = status

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    @property
    def initials(self) -> str:
        return (self.first_name[:1] + self.last_name[:1]).upper()

    @property
    def formatted_phone(self) -> str:
        return format_phone(self.phone)

    def experience_level(
        self, completed_trips: int, settings: Optional[Settings] = None
    ) -> str:
        """Experience label from the number of trips this driver completed."""
        return experience_level(completed_trips, settings)

    def __repr__(self):
        return f"<Driver id={self.id} name='{self.full_name}' status={self.status.value}>"
