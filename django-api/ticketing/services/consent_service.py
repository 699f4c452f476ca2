"""Consent workflow service - all business logic lives here.

Services:
- Depend only on interfaces (stores, gateways)
- Validate domain invariants
- Perform orchestration and error mapping
- Return domain models or domain errors

A consent request moves Created -> EmailVerified -> Approved, or to
Rejected from either pending state. Every transition is checked and written
inside ``store.locked_consent_request`` so concurrent callers on the same
request serialise; different requests never contend.
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from urllib.parse import urlencode

from ticketing.domain import (
    ConsentRequest,
    ConsentRequestDetail,
    ConsentState,
    EmailAddress,
    Event,
    EventStatus,
    Role,
    Ticket,
    TicketDetail,
    TicketStatus,
    User,
    WalletAddress,
    new_id,
)
from ticketing.domain.errors import (
    AlreadyConsumedError,
    DeliveryFailedError,
    DuplicateRequestError,
    InvalidInputError,
    InvalidTokenError,
    IssuanceFailedError,
    NotFoundError,
    RequestNotPendingError,
    TicketNotActiveError,
)
from ticketing.services.ledger import Issuance, IssuanceFailure, LedgerGateway
from ticketing.services.notifications import EventSummary, NotificationGateway
from ticketing.services.token_service import TokenService
from ticketing.stores.interfaces import TicketingStore

logger = logging.getLogger(__name__)

DEFAULT_QR_SERVICE_URL = "https://api.qrserver.com/v1/create-qr-code/"


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def consent_message(event_id: str, request_id: str) -> str:
    """Message the student signs with their wallet to consent to issuance."""
    return f"I consent to receive a ticket for event {event_id} (request {request_id})"


@dataclass(frozen=True)
class IssuanceOutcome:
    ticket: Ticket
    issuance: Issuance


@dataclass(frozen=True)
class TicketVerification:
    ticket: Ticket
    valid: bool


class ConsentService:
    """Drives a student's ticket request from consent to issued ticket."""

    def __init__(
        self,
        store: TicketingStore,
        tokens: TokenService,
        notifications: NotificationGateway,
        ledger: LedgerGateway,
        qr_service_url: str = DEFAULT_QR_SERVICE_URL,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._tokens = tokens
        self._notifications = notifications
        self._ledger = ledger
        self._qr_service_url = qr_service_url
        self._clock = clock

    # Workflow

    def request_consent(
        self,
        event_id: str,
        student_id: str,
        student_email: str,
        event_name: str = "",
    ) -> ConsentRequest:
        """Open a consent request and mail the verification link.

        Raises:
            NotFoundError: The event or the user does not exist.
            InvalidInputError: The event is not upcoming or is full, the user
                is not a student, or the email is malformed.
            DuplicateRequestError: The student already has a pending request
                or an active ticket for the event.
            DeliveryFailedError: The email was not sent. The request exists
                and stays pending; use ``resend_verification``.
        """
        event = self._store.get_event(event_id)
        if event is None:
            raise NotFoundError("Event", event_id)
        if event.status != EventStatus.UPCOMING:
            raise InvalidInputError("Event is not open for ticket requests")
        student = self._require_user(student_id)
        if student.role != Role.STUDENT:
            raise InvalidInputError("Only students can request tickets")
        email = _email(student_email)

        if self._store.find_open_consent_request(event_id, student_id) is not None:
            raise DuplicateRequestError("A consent request for this event is already pending")
        if self._store.get_active_ticket(event_id, student_id) is not None:
            raise DuplicateRequestError("A ticket for this event has already been issued")
        issued = [t for t in self._store.list_tickets(event_id=event_id) if t.status != TicketStatus.EXPIRED]
        if len(issued) >= event.capacity:
            raise InvalidInputError("Event is at capacity")

        request = self._store.create_consent_request(event_id, student_id, self._clock())
        if request is None:
            raise DuplicateRequestError("A consent request for this event is already pending")
        logger.info("Consent request %s created for event %s", request.id, event_id)
        request = self._attach_token(request, email)
        self._send_verification(request, email, event_name or event.name)
        return request

    def resend_verification(self, request_id: str, student_email: str | None = None) -> ConsentRequest:
        """Mint a fresh verification token and mail it.

        Earlier tokens for the request are revoked. Without ``student_email``
        the link goes to the student's account address.
        """
        with self._store.locked_consent_request(request_id) as request:
            if request is None:
                raise NotFoundError("Consent request", request_id)
            if request.state != ConsentState.CREATED:
                raise RequestNotPendingError(request_id, "Email has already been verified or the request is closed")
            student = self._require_user(request.student_id)
            email = _email(student_email) if student_email else student.email
            request = self._attach_token(request, email)
        event = self._store.get_event(request.event_id)
        self._send_verification(request, email, event.name if event else "")
        return request

    def verify_email(self, token: str) -> ConsentRequest:
        """Consume a verification token and mark the request's email verified.

        Raises:
            InvalidTokenError: Malformed, tampered, unknown or superseded token.
            TokenExpiredError: The token is past its expiry.
            AlreadyConsumedError: The token was already used.
            RequestNotPendingError: The request is past the created state.
        """
        claims = self._tokens.validate_token(token)
        with self._store.locked_consent_request(claims.request_id) as request:
            record = self._store.get_verification_token(token)
            if record is None or record.revoked_at is not None:
                logger.warning("Unknown or superseded token for consent request %s", claims.request_id)
                raise InvalidTokenError()
            if record.consumed_at is not None:
                raise AlreadyConsumedError()
            if request is None or record.request_id != request.id:
                raise InvalidTokenError()
            if request.state != ConsentState.CREATED:
                raise RequestNotPendingError(request.id)
            verified = self._store.mark_email_verified(request.id, token, self._clock())
            if verified is None:
                raise AlreadyConsumedError()
        logger.info("Email verified for consent request %s", verified.id)
        return verified

    def complete_issuance(self, request_id: str, wallet_address: str) -> IssuanceOutcome:
        """Issue the ticket for an email-verified request.

        The ticket id is reserved on the request before the ledger is called
        and the ledger is asked for an existing issuance first, so a retry
        after an ambiguous failure never issues twice.

        Raises:
            InvalidInputError: Malformed wallet address.
            NotFoundError: Unknown request, or its event or student is gone.
            RequestNotPendingError: The request is not email-verified.
            IssuanceFailedError: The ledger did not confirm issuance. The
                request stays email-verified and can be retried.
        """
        try:
            wallet = WalletAddress(wallet_address).value
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc

        failure: IssuanceFailure | None = None
        with self._store.locked_consent_request(request_id) as request:
            if request is None:
                raise NotFoundError("Consent request", request_id)
            if request.state != ConsentState.EMAIL_VERIFIED:
                raise RequestNotPendingError(request_id, "Email must be verified before a ticket is issued")
            event = self._require_event(request.event_id)
            student = self._require_user(request.student_id)

            ticket_id = request.issuance_ticket_id
            if ticket_id is None:
                # Fresh ids have never been sent to the ledger.
                ticket_id = new_id("ticket")
                self._store.reserve_issuance_ticket_id(request_id, ticket_id)
                result = None
            else:
                result = self._ledger.find_issuance(ticket_id)
            if result is None:
                result = self._ledger.issue_ticket(event.id, student.id, ticket_id)
            elif isinstance(result, Issuance):
                logger.info("Reusing earlier ledger issuance for ticket %s", ticket_id)

            if isinstance(result, IssuanceFailure):
                failure = result
            else:
                ticket = self._store.approve_with_ticket(
                    request_id,
                    Ticket(
                        id=ticket_id,
                        event_id=event.id,
                        student_id=student.id,
                        issue_date=self._clock(),
                        status=TicketStatus.ACTIVE,
                        qr_code=self.qr_reference(ticket_id),
                        transaction_reference=result.transaction_reference,
                        simulated_issuance=result.simulated,
                    ),
                )
                if ticket is None:
                    raise RequestNotPendingError(request_id)
                self._store.update_user_wallet(student.id, wallet)

        # Raised outside the lock so the reserved ticket id is kept for the retry.
        if failure is not None:
            logger.warning("Issuance for consent request %s failed: %s", request_id, failure.reason)
            raise IssuanceFailedError(request_id)

        logger.info(
            "Ticket %s issued for consent request %s (%s)",
            ticket.id,
            request_id,
            result.mode.value,
        )
        self._send_confirmation(student, event, ticket)
        return IssuanceOutcome(ticket=ticket, issuance=result)

    def request_wallet_consent(self, request_id: str) -> IssuanceOutcome:
        """Connect the student's wallet, collect the consent signature, then issue."""
        request = self.get_consent_request(request_id)
        if request.state != ConsentState.EMAIL_VERIFIED:
            raise RequestNotPendingError(request_id, "Email must be verified before a ticket is issued")
        address = self._ledger.connect_wallet()
        if address is None:
            raise InvalidInputError("Wallet connection was refused")
        signature = self._ledger.sign_message(consent_message(request.event_id, request.id), address)
        if signature is None:
            raise InvalidInputError("Consent signature was refused")
        return self.complete_issuance(request_id, address)

    def reject_consent(self, request_id: str) -> ConsentRequest:
        """Reject a pending request. Rejecting twice is a no-op."""
        with self._store.locked_consent_request(request_id) as request:
            if request is None:
                raise NotFoundError("Consent request", request_id)
            if request.state == ConsentState.REJECTED:
                return request
            if request.state == ConsentState.APPROVED:
                raise RequestNotPendingError(request_id, "Approved consent requests cannot be rejected")
            self._store.reject_consent_request(request_id)
        logger.info("Consent request %s rejected", request_id)
        return self.get_consent_request(request_id)

    # Queries

    def get_consent_request(self, request_id: str) -> ConsentRequest:
        request = self._store.get_consent_request(request_id)
        if request is None:
            raise NotFoundError("Consent request", request_id)
        return request

    def list_student_consent_requests(self, student_id: str) -> list[ConsentRequestDetail]:
        self._require_user(student_id)
        return [
            ConsentRequestDetail(request=r, event=self._store.get_event(r.event_id))
            for r in self._store.list_consent_requests(student_id=student_id)
        ]

    def list_student_tickets(self, student_id: str) -> list[TicketDetail]:
        self._require_user(student_id)
        return [
            TicketDetail(ticket=t, event=self._store.get_event(t.event_id))
            for t in self._store.list_tickets(student_id=student_id)
        ]

    # Tickets

    def get_ticket(self, ticket_id: str) -> Ticket:
        ticket = self._store.get_ticket(ticket_id)
        if ticket is None:
            raise NotFoundError("Ticket", ticket_id)
        return ticket

    def verify_ticket(self, ticket_id: str) -> TicketVerification:
        ticket = self.get_ticket(ticket_id)
        valid = self._ledger.verify_ticket(ticket.id, ticket.transaction_reference)
        return TicketVerification(ticket=ticket, valid=valid)

    def redeem_ticket(self, ticket_id: str, event_id: str | None = None) -> Ticket:
        """Check a ticket in at the door (active -> used).

        Raises:
            NotFoundError: Unknown ticket.
            InvalidInputError: The ticket is for a different event.
            TicketNotActiveError: The ticket was already used or has expired.
        """
        ticket = self.get_ticket(ticket_id)
        if event_id is not None and ticket.event_id != event_id:
            raise InvalidInputError("Ticket is not valid for this event")
        used = self._store.mark_ticket_used(ticket_id, self._clock())
        if used is None:
            raise TicketNotActiveError(ticket_id)
        logger.info("Ticket %s redeemed for event %s", ticket_id, ticket.event_id)
        return used

    def qr_reference(self, ticket_id: str) -> str:
        return f"{self._qr_service_url}?{urlencode({'size': '150x150', 'data': ticket_id})}"

    # Helpers

    def _require_event(self, event_id: str) -> Event:
        event = self._store.get_event(event_id)
        if event is None:
            raise NotFoundError("Event", event_id)
        return event

    def _require_user(self, user_id: str) -> User:
        user = self._store.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return user

    def _attach_token(self, request: ConsentRequest, email: str) -> ConsentRequest:
        token = self._tokens.issue_token(email, request.id, request.event_id)
        updated = self._store.attach_verification_token(request.id, token, self._tokens.expires_at(token))
        if updated is None:
            raise NotFoundError("Consent request", request.id)
        return updated

    def _send_verification(self, request: ConsentRequest, email: str, event_name: str) -> None:
        result = self._notifications.send_verification_email(
            to_address=email,
            subject=f"Verify your email for {event_name} ticket",
            verification_url=self._tokens.verification_url(request.verification_token),
            event_name=event_name,
        )
        if not result.success:
            logger.warning("Verification email for consent request %s not delivered: %s", request.id, result.error)
            raise DeliveryFailedError(request.id)
        logger.info("Verification email for consent request %s sent (%s)", request.id, result.message_id)

    def _send_confirmation(self, student: User, event: Event, ticket: Ticket) -> None:
        summary = EventSummary(
            name=event.name,
            date=event.date.isoformat(),
            time=event.time.strftime("%H:%M") if event.time else "",
            location=event.location,
            organizer=event.organizer,
        )
        result = self._notifications.send_ticket_confirmation(student.email, summary, ticket.id, ticket.qr_code)
        if not result.success:
            logger.warning("Confirmation email for ticket %s not delivered: %s", ticket.id, result.error)


def _email(value: str) -> str:
    try:
        return EmailAddress(value).value
    except ValueError as exc:
        raise InvalidInputError("Malformed email address") from exc
