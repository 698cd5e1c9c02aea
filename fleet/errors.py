"""Exceptions raised by fleet operations.

Every rejected operation raises a subclass of FleetError whose message names
the precondition that failed, so callers can show it as-is.
"""

from typing import Optional


class FleetError(Exception):
    """Base class for all rejected fleet operations."""


class NotFound(FleetError):
    """Unknown record id."""

    def __init__(self, entity: str, entity_id):
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class DuplicateRecord(FleetError):
    """A unique field (plate, license number) is already taken."""

    def __init__(self, entity: str, field: str, value):
        super().__init__(f"{entity} with {field} '{value}' already exists")
        self.entity = entity
        self.field = field
        self.value = value


class InvalidTransition(FleetError):
    """State machine violation."""


class AlreadyTerminal(InvalidTransition):
    """Action attempted on a Completed or Canceled record."""


class AlreadyCompleted(AlreadyTerminal):
    pass


class ResourceUnavailable(FleetError):
    """A vehicle, driver or route is not eligible for the operation."""

    def __init__(self, resource: str, message: Optional[str] = None):
        super().__init__(message or f"{resource} not available")
        self.resource = resource


class VehicleUnavailable(ResourceUnavailable):
    def __init__(self, message: Optional[str] = None):
        super().__init__("vehicle", message)


class ResourcesChangedSinceScheduling(ResourceUnavailable):
    """A trip's resources stopped being available between schedule and start."""

    def __init__(self, resource: str, message: Optional[str] = None):
        super().__init__(
            resource, message or f"{resource} no longer available since scheduling"
        )


class InvalidMileage(FleetError):
    """Non-monotonic or out-of-order mileage value."""


class InvalidRoute(FleetError):
    """Route definition rejected (same endpoints, non-positive distance or time)."""


class InvalidDate(FleetError):
    """Date or timestamp outside the window an operation accepts."""
