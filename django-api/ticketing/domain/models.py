"""Domain models representing persisted state.

These are pure domain objects with no API input rules.
Django ORM models are in ticketing/models.py (persistence layer).
"""

from dataclasses import dataclass
from datetime import date, datetime, time
from enum import Enum


class Role(str, Enum):
    STUDENT = "student"
    CLUB_ADMIN = "club_admin"


class EventStatus(str, Enum):
    UPCOMING = "upcoming"
    PAST = "past"
    CANCELLED = "cancelled"


class EventCategory(str, Enum):
    GENERAL = "general"
    TECH = "tech"
    CULTURAL = "cultural"
    SPORTS = "sports"
    ACADEMIC = "academic"
    WORKSHOP = "workshop"


class ConsentStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class ConsentState(str, Enum):
    """Workflow state derived from a request's status and flags."""

    CREATED = "created"
    EMAIL_VERIFIED = "email_verified"
    APPROVED = "approved"
    REJECTED = "rejected"


class TicketStatus(str, Enum):
    ACTIVE = "active"
    USED = "used"
    EXPIRED = "expired"


@dataclass(frozen=True)
class User:
    """Domain representation of a User."""

    id: str
    email: str
    name: str
    role: Role
    verified: bool = False
    wallet_address: str | None = None
    department: str | None = None


@dataclass(frozen=True)
class Event:
    """Domain representation of an Event."""

    id: str
    name: str
    date: date
    time: time | None
    location: str
    description: str
    organizer: str
    organizer_id: str
    capacity: int
    category: EventCategory
    status: EventStatus
    image: str | None = None


@dataclass(frozen=True)
class ConsentRequest:
    """Domain representation of a student's consent for one event ticket."""

    id: str
    event_id: str
    student_id: str
    request_date: datetime
    status: ConsentStatus
    email_verified: bool = False
    blockchain_verified: bool = False
    verification_token: str | None = None
    verification_expiry: datetime | None = None
    issuance_ticket_id: str | None = None

    @property
    def state(self) -> ConsentState:
        if self.status == ConsentStatus.REJECTED:
            return ConsentState.REJECTED
        if self.status == ConsentStatus.APPROVED:
            return ConsentState.APPROVED
        if self.email_verified:
            return ConsentState.EMAIL_VERIFIED
        return ConsentState.CREATED


@dataclass(frozen=True)
class Ticket:
    """Domain representation of an issued Ticket."""

    id: str
    event_id: str
    student_id: str
    issue_date: datetime
    status: TicketStatus
    qr_code: str
    transaction_reference: str
    simulated_issuance: bool = False
    used_at: datetime | None = None


@dataclass(frozen=True)
class VerificationTokenRecord:
    """Issued verification token, keyed by the digest of the token string."""

    token_digest: str
    request_id: str
    expires_at: datetime
    consumed_at: datetime | None = None
    revoked_at: datetime | None = None


@dataclass(frozen=True)
class TokenClaims:
    """Validated claims carried by an email verification token."""

    email: str
    request_id: str
    event_id: str
    purpose: str
    issued_at: datetime
    expires_at: datetime


@dataclass(frozen=True)
class ConsentRequestDetail:
    """A consent request joined with the event it concerns."""

    request: ConsentRequest
    event: Event | None


@dataclass(frozen=True)
class TicketDetail:
    """A ticket joined with the event it admits to."""

    ticket: Ticket
    event: Event | None


@dataclass(frozen=True)
class AttendanceRecord:
    student_id: str
    ticket_id: str
    status: TicketStatus
    checked_in_at: datetime | None


@dataclass(frozen=True)
class AttendanceReport:
    """Ticket and check-in totals for one event."""

    event: Event
    tickets_issued: int
    checked_in: int
    pending_requests: int
    records: tuple[AttendanceRecord, ...] = ()
