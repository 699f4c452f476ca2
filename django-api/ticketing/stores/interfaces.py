"""Store interfaces (repository pattern).

Stores must be swappable and return domain models. Expected failures
(missing rows, lost compare-and-swap races) are reported as ``None`` or
``False``, never raised.
"""

import hashlib
from abc import ABC, abstractmethod
from contextlib import AbstractContextManager
from datetime import date, datetime, time

from ticketing.domain import (
    ConsentRequest,
    Event,
    EventCategory,
    EventStatus,
    Role,
    Ticket,
    User,
    VerificationTokenRecord,
)


class TicketingStore(ABC):
    """Interface for users, events, consent requests, tokens and tickets."""

    # Users

    @abstractmethod
    def create_user(
        self,
        email: str,
        name: str,
        role: Role,
        verified: bool = False,
        department: str | None = None,
        user_id: str | None = None,
    ) -> User:
        """Provision a user. Email must already be normalised."""
        ...

    @abstractmethod
    def get_user(self, user_id: str) -> User | None:
        ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> User | None:
        """Case-insensitive lookup."""
        ...

    @abstractmethod
    def update_user_wallet(self, user_id: str, wallet_address: str) -> User | None:
        ...

    # Events

    @abstractmethod
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
        """Create an event in the upcoming state."""
        ...

    @abstractmethod
    def get_event(self, event_id: str) -> Event | None:
        ...

    @abstractmethod
    def list_events(
        self,
        status: EventStatus | None = None,
        category: EventCategory | None = None,
        organizer_id: str | None = None,
    ) -> list[Event]:
        """Return matching events ordered by date ascending."""
        ...

    @abstractmethod
    def update_event_status(self, event_id: str, from_status: EventStatus, to_status: EventStatus) -> bool:
        """Move an event between statuses if it is still in ``from_status``."""
        ...

    # Consent requests

    @abstractmethod
    def create_consent_request(
        self, event_id: str, student_id: str, request_date: datetime
    ) -> ConsentRequest | None:
        """Open a pending request; ``None`` if the pair already has one.

        The check and the insert are one unit, so concurrent callers for the
        same (event, student) pair open at most one pending request.
        """
        ...

    @abstractmethod
    def get_consent_request(self, request_id: str) -> ConsentRequest | None:
        ...

    @abstractmethod
    def list_consent_requests(
        self,
        student_id: str | None = None,
        event_id: str | None = None,
    ) -> list[ConsentRequest]:
        """Return matching requests, newest first."""
        ...

    @abstractmethod
    def find_open_consent_request(self, event_id: str, student_id: str) -> ConsentRequest | None:
        """Return the pending request for the pair, if any."""
        ...

    @abstractmethod
    def locked_consent_request(self, request_id: str) -> AbstractContextManager[ConsentRequest | None]:
        """Hold the per-request mutual exclusion scope.

        Yields the current request (or ``None``). Other callers locking the
        same request id block until the scope exits.
        """
        ...

    @abstractmethod
    def attach_verification_token(self, request_id: str, token: str, expires_at: datetime) -> ConsentRequest | None:
        """Record a freshly minted token and revoke every earlier one."""
        ...

    @abstractmethod
    def get_verification_token(self, token: str) -> VerificationTokenRecord | None:
        ...

    @abstractmethod
    def mark_email_verified(self, request_id: str, token: str, verified_at: datetime) -> ConsentRequest | None:
        """Set ``email_verified`` and consume the token as one unit.

        Returns ``None`` if the request is no longer in the created state or
        the token was already consumed.
        """
        ...

    @abstractmethod
    def reserve_issuance_ticket_id(self, request_id: str, ticket_id: str) -> ConsentRequest | None:
        ...

    @abstractmethod
    def approve_with_ticket(self, request_id: str, ticket: Ticket) -> Ticket | None:
        """Approve the request and persist its ticket as one unit.

        Only succeeds from the email-verified state; returns ``None`` otherwise.
        """
        ...

    @abstractmethod
    def reject_consent_request(self, request_id: str) -> bool:
        """Reject a pending request. Returns False if it is not pending."""
        ...

    # Tickets

    @abstractmethod
    def get_ticket(self, ticket_id: str) -> Ticket | None:
        ...

    @abstractmethod
    def get_active_ticket(self, event_id: str, student_id: str) -> Ticket | None:
        ...

    @abstractmethod
    def list_tickets(self, student_id: str | None = None, event_id: str | None = None) -> list[Ticket]:
        ...

    @abstractmethod
    def mark_ticket_used(self, ticket_id: str, used_at: datetime) -> Ticket | None:
        """Flip an active ticket to used. Returns ``None`` if it was not active."""
        ...


def digest_token(token: str) -> str:
    """Tokens are looked up by digest; the raw string is never a key."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()
