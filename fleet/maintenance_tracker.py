"""Maintenance tracker: event lifecycle, due computation and vehicle side effects."""

import calendar
import logging
from datetime import date, datetime, timedelta
from typing import Callable, List, Optional

from .calculations import (
    calc_km_until_due,
    calc_mileage_at_last_maintenance,
    is_maintenance_due,
)
from .config import DUE_BASIS_SNAPSHOT, Settings
from .errors import (
    AlreadyCompleted,
    AlreadyTerminal,
    InvalidDate,
    InvalidTransition,
    VehicleUnavailable,
)
from .locks import KeyedLocks, vehicle_key
from .maintenance_due import MaintenanceDue, MaintenanceSuggestion
from .maintenance_event import MaintenanceEvent
from .normalize import title_case
from .status import MaintenanceStatus, VehicleStatus
from .store import FleetStore
from .vehicle_registry import VehicleRegistry

logger = logging.getLogger(__name__)

PREVENTIVE_TYPE = "Preventive Maintenance"

_UPDATABLE = ("maintenance_type", "description", "scheduled_date", "cost", "notes")


class MaintenanceTracker:
    """
    Schedules and moves maintenance events through their lifecycle.

    Scheduled -> InProgress -> Completed, and Scheduled/InProgress -> Canceled.
    A vehicle with pending maintenance is kept InShop; once its last pending
    event is completed, canceled or deleted it goes back to Active.
    """

    def __init__(
        self,
        store: FleetStore,
        locks: KeyedLocks,
        vehicles: VehicleRegistry,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.store = store
        self.locks = locks
        self.vehicles = vehicles
        self.settings = settings or Settings()
        self.clock = clock

    def today(self) -> date:
        return self.clock().date()

    # =========================================================================
    # Queries
    # =========================================================================

    def get(self, event_id: int) -> MaintenanceEvent:
        return self.store.get("maintenance", event_id)

    def list(self, vehicle_id: Optional[int] = None, status=None) -> List[MaintenanceEvent]:
        events = self.store.all("maintenance")
        if vehicle_id is not None:
            events = [m for m in events if m.vehicle_id == vehicle_id]
        if status is not None:
            status = MaintenanceStatus(status)
            events = [m for m in events if m.status == status]
        return events

    def pending_for(self, vehicle_id: int) -> List[MaintenanceEvent]:
        return [m for m in self.list(vehicle_id) if m.is_pending]

    def overdue(self) -> List[MaintenanceEvent]:
        today = self.today()
        return sorted(
            (m for m in self.store.all("maintenance") if m.is_overdue(today)),
            key=lambda m: m.scheduled_date,
        )

    def upcoming(self, days: int = 7) -> List[MaintenanceEvent]:
        today = self.today()
        return sorted(
            (m for m in self.store.all("maintenance") if m.is_upcoming(today, days)),
            key=lambda m: m.scheduled_date,
        )

    def calendar(self, year: int, month: int) -> List[MaintenanceEvent]:
        """Events scheduled in a calendar month, in date order."""
        first = date(year, month, 1)
        last = date(year, month, calendar.monthrange(year, month)[1])
        return sorted(
            (m for m in self.store.all("maintenance") if first <= m.scheduled_date <= last),
            key=lambda m: (m.scheduled_date, m.id),
        )

    # =========================================================================
    # Maintenance due
    # =========================================================================

    def _last_completed(self, vehicle_id: int) -> Optional[MaintenanceEvent]:
        completed = self.list(vehicle_id, MaintenanceStatus.COMPLETED)
        if not completed:
            return None
        return max(completed, key=lambda m: (m.completed_date or date.min, m.id))

    def maintenance_due(self, vehicle_id: int) -> MaintenanceDue:
        """
        Mileage-driven maintenance status of a vehicle.

        By default the mileage at the last completed maintenance is
        approximated as current - interval (0 when nothing was ever
        completed). With the "snapshot" due basis the odometer reading
        recorded at completion is used instead when there is one.
        """
        vehicle = self.vehicles.get(vehicle_id)
        last = self._last_completed(vehicle_id)
        snapshot = None
        if self.settings.due_basis == DUE_BASIS_SNAPSHOT and last is not None:
            snapshot = last.mileage_at_completion

        current = vehicle.current_mileage
        interval = vehicle.maintenance_interval_km
        last_mileage = calc_mileage_at_last_maintenance(
            current, interval, last is not None, snapshot
        )
        return MaintenanceDue(
            vehicle_id=vehicle_id,
            current_mileage=current,
            interval_km=interval,
            mileage_at_last=last_mileage,
            km_until_due=calc_km_until_due(current, interval, last_mileage),
            is_due=is_maintenance_due(current, interval, last_mileage),
            basis=self.settings.due_basis,
        )

    def vehicles_needing_maintenance(self) -> List[MaintenanceDue]:
        dues = (self.maintenance_due(v.id) for v in self.vehicles.list())
        return [d for d in dues if d.is_due]

    def suggest(self, vehicle_id: int) -> MaintenanceSuggestion:
        """Suggest preventive maintenance when the vehicle is due and nothing is booked."""
        due = self.maintenance_due(vehicle_id)
        pending = self.pending_for(vehicle_id)
        if due.is_due and not pending:
            return MaintenanceSuggestion(
                vehicle_id=vehicle_id,
                suggested=True,
                reason=f"Mileage reached ({due.km_since_last:,.0f} km since last maintenance)",
                maintenance_type=PREVENTIVE_TYPE,
                suggested_date=self.today()
                + timedelta(days=self.settings.suggestion_lead_days),
                urgency="Urgent" if due.km_until_due <= 0 else "Normal",
            )
        if pending:
            reason = "Maintenance already scheduled"
        else:
            reason = "Maintenance up to date"
        return MaintenanceSuggestion(vehicle_id=vehicle_id, suggested=False, reason=reason)

    # =========================================================================
    # Lifecycle
    # =========================================================================

    def _release_vehicle(self, vehicle_id: int) -> None:
        """Return an InShop vehicle to Active once nothing is pending for it."""
        vehicle = self.store.find("vehicles", vehicle_id)
        if vehicle is None or self.pending_for(vehicle_id):
            return
        if vehicle.status == VehicleStatus.IN_SHOP:
            self.vehicles.set_status(vehicle_id, VehicleStatus.ACTIVE)

    def _check_not_in_trip(self, vehicle_id: int) -> None:
        if self.vehicles.active_trip(vehicle_id) is not None:
            raise VehicleUnavailable(f"Vehicle {vehicle_id} has a trip in progress")

    def _check_date(self, scheduled_date: date) -> None:
        if scheduled_date < self.today():
            raise InvalidDate(f"Maintenance date {scheduled_date} is in the past")

    def schedule(
        self,
        vehicle_id: int,
        maintenance_type: str,
        scheduled_date: date,
        description: Optional[str] = None,
        cost: Optional[float] = None,
    ) -> MaintenanceEvent:
        with self.locks.hold(vehicle_key(vehicle_id)), self.store.transaction():
            vehicle = self.vehicles.get(vehicle_id)
            self._check_not_in_trip(vehicle_id)
            self._check_date(scheduled_date)

            event = MaintenanceEvent(
                None,
                vehicle_id,
                title_case(maintenance_type),
                scheduled_date,
                description=description,
                cost=cost,
            )
            self.store.insert("maintenance", event)
            if vehicle.status == VehicleStatus.ACTIVE:
                self.vehicles.set_status(vehicle_id, VehicleStatus.IN_SHOP)
        logger.info(
            "Scheduled maintenance %s (%s) for vehicle %s on %s",
            event.id,
            event.maintenance_type,
            vehicle_id,
            scheduled_date,
        )
        return event

    def _locked_event(self, event_id: int):
        event = self.get(event_id)
        return self.locks.hold(vehicle_key(event.vehicle_id))

    @staticmethod
    def _check_not_terminal(event: MaintenanceEvent, action: str) -> None:
        if event.status == MaintenanceStatus.COMPLETED:
            raise AlreadyCompleted(f"Maintenance {event.id} is already completed, cannot {action}")
        if event.status == MaintenanceStatus.CANCELED:
            raise AlreadyTerminal(f"Maintenance {event.id} is canceled, cannot {action}")

    def start(self, event_id: int) -> MaintenanceEvent:
        with self._locked_event(event_id), self.store.transaction():
            event = self.get(event_id)
            self._check_not_terminal(event, "start")
            if event.status != MaintenanceStatus.SCHEDULED:
                raise InvalidTransition(f"Maintenance {event_id} is already in progress")
            self._check_not_in_trip(event.vehicle_id)

            self.store.modify(event)
            event.status = MaintenanceStatus.IN_PROGRESS
            vehicle = self.vehicles.get(event.vehicle_id)
            if vehicle.status == VehicleStatus.ACTIVE:
                self.vehicles.set_status(vehicle.id, VehicleStatus.IN_SHOP)
        logger.info("Started maintenance %s on vehicle %s", event_id, event.vehicle_id)
        return event

    def complete(
        self, event_id: int, cost: Optional[float] = None, notes: Optional[str] = None
    ) -> MaintenanceEvent:
        with self._locked_event(event_id), self.store.transaction():
            event = self.get(event_id)
            self._check_not_terminal(event, "complete")
            vehicle = self.vehicles.get(event.vehicle_id)

            self.store.modify(event)
            event.status = MaintenanceStatus.COMPLETED
            event.completed_date = self.today()
            event.mileage_at_completion = vehicle.current_mileage
            if cost is not None:
                event.cost = cost
            if notes is not None:
                event.notes = notes
            self._release_vehicle(event.vehicle_id)
        logger.info(
            "Completed maintenance %s on vehicle %s at %s km",
            event_id,
            event.vehicle_id,
            event.mileage_at_completion,
        )
        return event

    def cancel(self, event_id: int) -> MaintenanceEvent:
        with self._locked_event(event_id), self.store.transaction():
            event = self.get(event_id)
            self._check_not_terminal(event, "cancel")
            self.store.modify(event)
            event.status = MaintenanceStatus.CANCELED
            self._release_vehicle(event.vehicle_id)
        logger.info("Canceled maintenance %s on vehicle %s", event_id, event.vehicle_id)
        return event

    def reschedule(self, event_id: int, new_date: date) -> MaintenanceEvent:
        with self._locked_event(event_id), self.store.transaction():
            event = self.get(event_id)
            if event.status != MaintenanceStatus.SCHEDULED:
                raise InvalidTransition(
                    f"Only scheduled maintenance can be rescheduled, "
                    f"{event_id} is {event.status.value}"
                )
            self._check_date(new_date)
            self.store.modify(event)
            event.scheduled_date = new_date
        logger.info("Rescheduled maintenance %s to %s", event_id, new_date)
        return event

    def update(self, event_id: int, **fields) -> MaintenanceEvent:
        unknown = set(fields) - set(_UPDATABLE)
        if unknown:
            raise TypeError(
                f"Cannot update maintenance field(s): {', '.join(sorted(unknown))}"
            )

        with self._locked_event(event_id), self.store.transaction():
            event = self.get(event_id)
            if event.status == MaintenanceStatus.COMPLETED:
                raise AlreadyCompleted(f"Maintenance {event_id} is completed and cannot be edited")
            if "scheduled_date" in fields and fields["scheduled_date"] != event.scheduled_date:
                self._check_date(fields["scheduled_date"])
            if "maintenance_type" in fields:
                fields["maintenance_type"] = title_case(fields["maintenance_type"])
            self.store.modify(event)
            for name, value in fields.items():
                setattr(event, name, value)
        logger.info("Updated maintenance %s", event_id)
        return event

    def delete(self, event_id: int) -> None:
        with self._locked_event(event_id), self.store.transaction():
            event = self.get(event_id)
            if event.status == MaintenanceStatus.COMPLETED:
                raise AlreadyCompleted(
                    f"Maintenance {event_id} is completed and cannot be deleted"
                )
            self.store.remove("maintenance", event_id)
            self._release_vehicle(event.vehicle_id)
        logger.info("Deleted maintenance %s", event_id)
