"""Event service - catalog, lifecycle and attendance for club events.

Services:
- Depend only on interfaces (stores)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors
"""

import logging
from datetime import date, time
from enum import Enum
from typing import TypeVar

from ticketing.domain import (
    AttendanceRecord,
    AttendanceReport,
    Capacity,
    ConsentStatus,
    Event,
    EventCategory,
    EventStatus,
    Role,
    TicketStatus,
)
from ticketing.domain.errors import InvalidInputError, NotFoundError
from ticketing.stores.interfaces import TicketingStore

logger = logging.getLogger(__name__)

_E = TypeVar("_E", bound=Enum)


class EventService:
    """Service for event catalog operations."""

    def __init__(self, store: TicketingStore) -> None:
        self._store = store

    def list_events(self, status: str | None = None, category: str | None = None) -> list[Event]:
        """Return events ordered by date, optionally filtered.

        Raises:
            InvalidInputError: Unknown status or category value.
        """
        return self._store.list_events(
            status=_choice(EventStatus, status, "status"),
            category=_choice(EventCategory, category, "category"),
        )

    def get_event(self, event_id: str) -> Event:
        """Return an event by ID.

        Raises:
            NotFoundError: If the event does not exist.
        """
        event = self._store.get_event(event_id)
        if event is None:
            raise NotFoundError("Event", event_id)
        return event

    def create_event(
        self,
        organizer_id: str,
        name: str,
        date: date | None,
        time: time | None,
        location: str,
        description: str,
        capacity: int,
        category: str = EventCategory.GENERAL.value,
        image: str | None = None,
        organizer_name: str | None = None,
    ) -> Event:
        organizer = self._store.get_user(organizer_id)
        if organizer is None:
            raise NotFoundError("User", organizer_id)
        if organizer.role != Role.CLUB_ADMIN:
            raise InvalidInputError("Only club admins can create events")
        if not name or not name.strip():
            raise InvalidInputError("Event name is required")
        if date is None:
            raise InvalidInputError("Event date is required")
        try:
            capacity = Capacity(capacity).value
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc

        event = self._store.create_event(
            name=name.strip(),
            date=date,
            time=time,
            location=location,
            description=description,
            organizer=organizer_name or organizer.name,
            organizer_id=organizer.id,
            capacity=capacity,
            category=_choice(EventCategory, category, "category") or EventCategory.GENERAL,
            image=image or None,
        )
        logger.info("Event %s created by %s", event.id, organizer.id)
        return event

    def cancel_event(self, event_id: str) -> Event:
        return self._close(event_id, EventStatus.CANCELLED)

    def mark_event_past(self, event_id: str) -> Event:
        return self._close(event_id, EventStatus.PAST)

    def get_attendance(self, event_id: str) -> AttendanceReport:
        event = self.get_event(event_id)
        tickets = self._store.list_tickets(event_id=event_id)
        pending = [r for r in self._store.list_consent_requests(event_id=event_id) if r.status == ConsentStatus.PENDING]
        return AttendanceReport(
            event=event,
            tickets_issued=len(tickets),
            checked_in=sum(1 for t in tickets if t.status == TicketStatus.USED),
            pending_requests=len(pending),
            records=tuple(
                AttendanceRecord(student_id=t.student_id, ticket_id=t.id, status=t.status, checked_in_at=t.used_at)
                for t in tickets
            ),
        )

    def _close(self, event_id: str, to_status: EventStatus) -> Event:
        event = self.get_event(event_id)
        if event.status != EventStatus.UPCOMING or not self._store.update_event_status(
            event_id, EventStatus.UPCOMING, to_status
        ):
            raise InvalidInputError("Only upcoming events can change status")
        logger.info("Event %s marked %s", event_id, to_status.value)
        return self.get_event(event_id)


def _choice(enum: type[_E], value: str | None, field: str) -> _E | None:
    if value is None or value == "":
        return None
    try:
        return enum(value)
    except ValueError as exc:
        raise InvalidInputError(f"Unknown {field}: {value}") from exc
