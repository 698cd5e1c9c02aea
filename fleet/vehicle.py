"""Vehicle class for truck records."""

from typing import Optional

from .status import VehicleStatus


class Vehicle:
    """A truck with its odometer, maintenance interval and operational status."""

    def __init__(
        self,
        id: Optional[int],
        plate: str,
        make: str,
        model: str,
        year: int,
        maintenance_interval_km: int,
        current_mileage: float = 0,
        status: VehicleStatus = VehicleStatus.ACTIVE,
        engine_number: Optional[str] = None,
    ):
        self.id = id
        self.plate = plate
        self.make = make
        self.model = model
        self.year = year
        self.maintenance_interval_km = maintenance_interval_km
        self.current_mileage = current_mileage
        self.status = status
        self.engine_number = engine_number

    @property
    def display_name(self) -> str:
        """Human-readable vehicle name."""
        return f"{self.make} {self.model} ({self.plate})"

    def __repr__(self):
        return f"<Vehicle id={self.id} plate='{self.plate}' status={self.status.value}>"
