"""In-process implementation of the TicketingStore.

Used by the service unit tests and for running the workflow without a
database. A single re-entrant lock guards the maps; each consent request
additionally gets its own lock for ``locked_consent_request``.
"""

import threading
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import replace
from datetime import date, datetime, time, timezone

from ticketing.domain import (
    ConsentRequest,
    ConsentStatus,
    Event,
    EventCategory,
    EventStatus,
    Role,
    Ticket,
    TicketStatus,
    User,
    VerificationTokenRecord,
    new_id,
)
from ticketing.stores.interfaces import TicketingStore, digest_token


class InMemoryTicketingStore(TicketingStore):
    """Dictionary-backed store. Entities are immutable snapshots."""

    def __init__(self) -> None:
        self._guard = threading.RLock()
        self._request_locks: dict[str, threading.Lock] = {}
        self._users: dict[str, User] = {}
        self._events: dict[str, Event] = {}
        self._requests: dict[str, ConsentRequest] = {}
        self._tokens: dict[str, VerificationTokenRecord] = {}
        self._tickets: dict[str, Ticket] = {}

    def create_user(
        self,
        email: str,
        name: str,
        role: Role,
        verified: bool = False,
        department: str | None = None,
        user_id: str | None = None,
    ) -> User:
        with self._guard:
            if self.get_user_by_email(email) is not None:
                raise ValueError(f"User with email {email} already exists")
            user = User(
                id=user_id or new_id("user"),
                email=email,
                name=name,
                role=Role(role),
                verified=verified,
                department=department,
            )
            self._users[user.id] = user
            return user

    def get_user(self, user_id: str) -> User | None:
        return self._users.get(user_id)

    def get_user_by_email(self, email: str) -> User | None:
        wanted = email.lower()
        with self._guard:
            return next((u for u in self._users.values() if u.email.lower() == wanted), None)

    def update_user_wallet(self, user_id: str, wallet_address: str) -> User | None:
        with self._guard:
            user = self._users.get(user_id)
            if user is None:
                return None
            user = replace(user, wallet_address=wallet_address)
            self._users[user_id] = user
            return user

    def create_event(
        self,
        name: str,
        date: date,
        time: time | None,
        location: str,
        description: str,
        organizer: str,
        organizer_id: str,
        capacity: int,
        category: EventCategory,
        image: str | None = None,
        event_id: str | None = None,
    ) -> Event:
        event = Event(
            id=event_id or new_id("event"),
            name=name,
            date=date,
            time=time,
            location=location,
            description=description,
            organizer=organizer,
            organizer_id=organizer_id,
            capacity=capacity,
            category=EventCategory(category),
            status=EventStatus.UPCOMING,
            image=image,
        )
        with self._guard:
            self._events[event.id] = event
        return event

    def get_event(self, event_id: str) -> Event | None:
        return self._events.get(event_id)

    def list_events(
        self,
        status: EventStatus | None = None,
        category: EventCategory | None = None,
        organizer_id: str | None = None,
    ) -> list[Event]:
        with self._guard:
            events = list(self._events.values())
        if status is not None:
            events = [e for e in events if e.status == status]
        if category is not None:
            events = [e for e in events if e.category == category]
        if organizer_id is not None:
            events = [e for e in events if e.organizer_id == organizer_id]
        return sorted(events, key=lambda e: (e.date, e.time or time.min))

    def update_event_status(self, event_id: str, from_status: EventStatus, to_status: EventStatus) -> bool:
        with self._guard:
            event = self._events.get(event_id)
            if event is None or event.status != from_status:
                return False
            self._events[event_id] = replace(event, status=to_status)
            return True

    def create_consent_request(
        self, event_id: str, student_id: str, request_date: datetime
    ) -> ConsentRequest | None:
        request = ConsentRequest(
            id=new_id("consent"),
            event_id=event_id,
            student_id=student_id,
            request_date=request_date,
            status=ConsentStatus.PENDING,
        )
        with self._guard:
            if self.find_open_consent_request(event_id, student_id) is not None:
                return None
            self._requests[request.id] = request
        return request

    def get_consent_request(self, request_id: str) -> ConsentRequest | None:
        return self._requests.get(request_id)

    def list_consent_requests(
        self,
        student_id: str | None = None,
        event_id: str | None = None,
    ) -> list[ConsentRequest]:
        with self._guard:
            requests = list(self._requests.values())
        if student_id is not None:
            requests = [r for r in requests if r.student_id == student_id]
        if event_id is not None:
            requests = [r for r in requests if r.event_id == event_id]
        return sorted(requests, key=lambda r: r.request_date, reverse=True)

    def find_open_consent_request(self, event_id: str, student_id: str) -> ConsentRequest | None:
        pending = [
            r
            for r in self.list_consent_requests(student_id=student_id, event_id=event_id)
            if r.status == ConsentStatus.PENDING
        ]
        return pending[0] if pending else None

    @contextmanager
    def locked_consent_request(self, request_id: str) -> Iterator[ConsentRequest | None]:
        with self._guard:
            if request_id not in self._requests:
                lock = None
            else:
                lock = self._request_locks.setdefault(request_id, threading.Lock())
        if lock is None:
            yield None
            return
        with lock:
            yield self._requests.get(request_id)

    def attach_verification_token(self, request_id: str, token: str, expires_at: datetime) -> ConsentRequest | None:
        now = datetime.now(timezone.utc)
        with self._guard:
            request = self._requests.get(request_id)
            if request is None:
                return None
            for digest, record in self._tokens.items():
                if record.request_id == request_id and record.revoked_at is None and record.consumed_at is None:
                    self._tokens[digest] = replace(record, revoked_at=now)
            digest = digest_token(token)
            self._tokens[digest] = VerificationTokenRecord(
                token_digest=digest,
                request_id=request_id,
                expires_at=expires_at,
            )
            request = replace(request, verification_token=token, verification_expiry=expires_at)
            self._requests[request_id] = request
            return request

    def get_verification_token(self, token: str) -> VerificationTokenRecord | None:
        return self._tokens.get(digest_token(token))

    def mark_email_verified(self, request_id: str, token: str, verified_at: datetime) -> ConsentRequest | None:
        digest = digest_token(token)
        with self._guard:
            record = self._tokens.get(digest)
            request = self._requests.get(request_id)
            if record is None or request is None:
                return None
            if record.request_id != request_id or record.consumed_at or record.revoked_at:
                return None
            if request.status != ConsentStatus.PENDING or request.email_verified:
                return None
            self._tokens[digest] = replace(record, consumed_at=verified_at)
            request = replace(request, email_verified=True)
            self._requests[request_id] = request
            return request

    def reserve_issuance_ticket_id(self, request_id: str, ticket_id: str) -> ConsentRequest | None:
        with self._guard:
            request = self._requests.get(request_id)
            if request is None:
                return None
            request = replace(request, issuance_ticket_id=ticket_id)
            self._requests[request_id] = request
            return request

    def approve_with_ticket(self, request_id: str, ticket: Ticket) -> Ticket | None:
        with self._guard:
            request = self._requests.get(request_id)
            if request is None:
                return None
            if request.status != ConsentStatus.PENDING or not request.email_verified or request.blockchain_verified:
                return None
            if ticket.id in self._tickets:
                return None
            if self.get_active_ticket(ticket.event_id, ticket.student_id) is not None:
                return None
            self._requests[request_id] = replace(
                request,
                status=ConsentStatus.APPROVED,
                blockchain_verified=True,
            )
            self._tickets[ticket.id] = ticket
            return ticket

    def reject_consent_request(self, request_id: str) -> bool:
        with self._guard:
            request = self._requests.get(request_id)
            if request is None or request.status != ConsentStatus.PENDING:
                return False
            self._requests[request_id] = replace(request, status=ConsentStatus.REJECTED)
            return True

    def get_ticket(self, ticket_id: str) -> Ticket | None:
        return self._tickets.get(ticket_id)

    def get_active_ticket(self, event_id: str, student_id: str) -> Ticket | None:
        with self._guard:
            return next(
                (
                    t
                    for t in self._tickets.values()
                    if t.event_id == event_id and t.student_id == student_id and t.status == TicketStatus.ACTIVE
                ),
                None,
            )

    def list_tickets(self, student_id: str | None = None, event_id: str | None = None) -> list[Ticket]:
        with self._guard:
            tickets = list(self._tickets.values())
        if student_id is not None:
            tickets = [t for t in tickets if t.student_id == student_id]
        if event_id is not None:
            tickets = [t for t in tickets if t.event_id == event_id]
        return sorted(tickets, key=lambda t: t.issue_date, reverse=True)

    def mark_ticket_used(self, ticket_id: str, used_at: datetime) -> Ticket | None:
        with self._guard:
            ticket = self._tickets.get(ticket_id)
            if ticket is None or ticket.status != TicketStatus.ACTIVE:
                return None
            ticket = replace(ticket, status=TicketStatus.USED, used_at=used_at)
            self._tickets[ticket_id] = ticket
            return ticket
