"""Django ORM implementation of the TicketingStore.

Row locks come from ``select_for_update`` inside ``transaction.atomic``.
State transitions are additionally written as conditional updates so the
invariants hold on backends that ignore row locks (SQLite).
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import date, datetime, time

from django.db import IntegrityError, transaction
from django.utils import timezone

from ticketing import models
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

logger = logging.getLogger(__name__)


def _user(row: models.User) -> User:
    return User(
        id=row.id,
        email=row.email,
        name=row.name,
        role=Role(row.role),
        verified=row.verified,
        wallet_address=row.wallet_address,
        department=row.department,
    )


def _event(row: models.Event) -> Event:
    return Event(
        id=row.id,
        name=row.name,
        date=row.date,
        time=row.time,
        location=row.location,
        description=row.description,
        organizer=row.organizer,
        organizer_id=row.organizer_user_id,
        capacity=row.capacity,
        category=EventCategory(row.category),
        status=EventStatus(row.status),
        image=row.image,
    )


def _consent_request(row: models.ConsentRequest) -> ConsentRequest:
    return ConsentRequest(
        id=row.id,
        event_id=row.event_id,
        student_id=row.student_id,
        request_date=row.request_date,
        status=ConsentStatus(row.status),
        email_verified=row.email_verified,
        blockchain_verified=row.blockchain_verified,
        verification_token=row.verification_token,
        verification_expiry=row.verification_expiry,
        issuance_ticket_id=row.issuance_ticket_id,
    )


def _ticket(row: models.Ticket) -> Ticket:
    return Ticket(
        id=row.id,
        event_id=row.event_id,
        student_id=row.student_id,
        issue_date=row.issue_date,
        status=TicketStatus(row.status),
        qr_code=row.qr_code,
        transaction_reference=row.transaction_reference,
        simulated_issuance=row.simulated_issuance,
        used_at=row.used_at,
    )


def _token(row: models.VerificationToken) -> VerificationTokenRecord:
    return VerificationTokenRecord(
        token_digest=row.token_digest,
        request_id=row.consent_request_id,
        expires_at=row.expires_at,
        consumed_at=row.consumed_at,
        revoked_at=row.revoked_at,
    )


class DjangoTicketingStore(TicketingStore):
    """Database-backed store using the Django ORM."""

    def create_user(
        self,
        email: str,
        name: str,
        role: Role,
        verified: bool = False,
        department: str | None = None,
        user_id: str | None = None,
    ) -> User:
        row = models.User.objects.create(
            id=user_id or new_id("user"),
            email=email,
            name=name,
            role=Role(role).value,
            verified=verified,
            department=department,
        )
        return _user(row)

    def get_user(self, user_id: str) -> User | None:
        row = models.User.objects.filter(pk=user_id).first()
        return _user(row) if row else None

    def get_user_by_email(self, email: str) -> User | None:
        row = models.User.objects.filter(email__iexact=email).first()
        return _user(row) if row else None

    def update_user_wallet(self, user_id: str, wallet_address: str) -> User | None:
        if not models.User.objects.filter(pk=user_id).update(wallet_address=wallet_address):
            return None
        return self.get_user(user_id)

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
        row = models.Event.objects.create(
            id=event_id or new_id("event"),
            name=name,
            date=date,
            time=time,
            location=location,
            description=description,
            organizer=organizer,
            organizer_user_id=organizer_id,
            capacity=capacity,
            category=EventCategory(category).value,
            image=image,
            status=EventStatus.UPCOMING.value,
        )
        return _event(row)

    def get_event(self, event_id: str) -> Event | None:
        row = models.Event.objects.filter(pk=event_id).first()
        return _event(row) if row else None

    def list_events(
        self,
        status: EventStatus | None = None,
        category: EventCategory | None = None,
        organizer_id: str | None = None,
    ) -> list[Event]:
        qs = models.Event.objects.all()
        if status is not None:
            qs = qs.filter(status=EventStatus(status).value)
        if category is not None:
            qs = qs.filter(category=EventCategory(category).value)
        if organizer_id is not None:
            qs = qs.filter(organizer_user_id=organizer_id)
        return [_event(row) for row in qs.order_by("date", "time")]

    def update_event_status(self, event_id: str, from_status: EventStatus, to_status: EventStatus) -> bool:
        # Saved through the model so post_save cache invalidation fires.
        with transaction.atomic():
            row = models.Event.objects.select_for_update().filter(pk=event_id, status=from_status.value).first()
            if row is None:
                return False
            row.status = to_status.value
            row.save(update_fields=["status"])
        return True

    def create_consent_request(
        self, event_id: str, student_id: str, request_date: datetime
    ) -> ConsentRequest | None:
        # The student's row serialises request creation for that student.
        with transaction.atomic():
            models.User.objects.select_for_update().filter(pk=student_id).first()
            if self.find_open_consent_request(event_id, student_id) is not None:
                return None
            row = models.ConsentRequest.objects.create(
                id=new_id("consent"),
                event_id=event_id,
                student_id=student_id,
                request_date=request_date,
            )
        return _consent_request(row)

    def get_consent_request(self, request_id: str) -> ConsentRequest | None:
        row = models.ConsentRequest.objects.filter(pk=request_id).first()
        return _consent_request(row) if row else None

    def list_consent_requests(
        self,
        student_id: str | None = None,
        event_id: str | None = None,
    ) -> list[ConsentRequest]:
        qs = models.ConsentRequest.objects.all()
        if student_id is not None:
            qs = qs.filter(student_id=student_id)
        if event_id is not None:
            qs = qs.filter(event_id=event_id)
        return [_consent_request(row) for row in qs.order_by("-request_date")]

    def find_open_consent_request(self, event_id: str, student_id: str) -> ConsentRequest | None:
        row = (
            models.ConsentRequest.objects.filter(
                event_id=event_id,
                student_id=student_id,
                status=ConsentStatus.PENDING.value,
            )
            .order_by("-request_date")
            .first()
        )
        return _consent_request(row) if row else None

    @contextmanager
    def locked_consent_request(self, request_id: str) -> Iterator[ConsentRequest | None]:
        with transaction.atomic():
            row = models.ConsentRequest.objects.select_for_update().filter(pk=request_id).first()
            yield _consent_request(row) if row else None

    def attach_verification_token(self, request_id: str, token: str, expires_at: datetime) -> ConsentRequest | None:
        with transaction.atomic():
            row = models.ConsentRequest.objects.select_for_update().filter(pk=request_id).first()
            if row is None:
                return None
            models.VerificationToken.objects.filter(
                consent_request_id=request_id,
                revoked_at__isnull=True,
                consumed_at__isnull=True,
            ).update(revoked_at=timezone.now())
            models.VerificationToken.objects.create(
                token_digest=digest_token(token),
                consent_request_id=request_id,
                expires_at=expires_at,
            )
            row.verification_token = token
            row.verification_expiry = expires_at
            row.save(update_fields=["verification_token", "verification_expiry"])
        return _consent_request(row)

    def get_verification_token(self, token: str) -> VerificationTokenRecord | None:
        row = models.VerificationToken.objects.filter(pk=digest_token(token)).first()
        return _token(row) if row else None

    def mark_email_verified(self, request_id: str, token: str, verified_at: datetime) -> ConsentRequest | None:
        with transaction.atomic():
            consumed = models.VerificationToken.objects.filter(
                pk=digest_token(token),
                consent_request_id=request_id,
                consumed_at__isnull=True,
                revoked_at__isnull=True,
            ).update(consumed_at=verified_at)
            if not consumed:
                return None
            verified = models.ConsentRequest.objects.filter(
                pk=request_id,
                status=ConsentStatus.PENDING.value,
                email_verified=False,
            ).update(email_verified=True)
            if not verified:
                transaction.set_rollback(True)
                return None
        return self.get_consent_request(request_id)

    def reserve_issuance_ticket_id(self, request_id: str, ticket_id: str) -> ConsentRequest | None:
        if not models.ConsentRequest.objects.filter(pk=request_id).update(issuance_ticket_id=ticket_id):
            return None
        return self.get_consent_request(request_id)

    def approve_with_ticket(self, request_id: str, ticket: Ticket) -> Ticket | None:
        try:
            with transaction.atomic():
                approved = models.ConsentRequest.objects.filter(
                    pk=request_id,
                    status=ConsentStatus.PENDING.value,
                    email_verified=True,
                    blockchain_verified=False,
                ).update(status=ConsentStatus.APPROVED.value, blockchain_verified=True)
                if not approved:
                    return None
                row = models.Ticket.objects.create(
                    id=ticket.id,
                    event_id=ticket.event_id,
                    student_id=ticket.student_id,
                    consent_request_id=request_id,
                    issue_date=ticket.issue_date,
                    status=TicketStatus(ticket.status).value,
                    qr_code=ticket.qr_code,
                    transaction_reference=ticket.transaction_reference,
                    simulated_issuance=ticket.simulated_issuance,
                )
        except IntegrityError:
            logger.warning("Ticket %s conflicts with an existing ticket for request %s", ticket.id, request_id)
            return None
        return _ticket(row)

    def reject_consent_request(self, request_id: str) -> bool:
        return bool(
            models.ConsentRequest.objects.filter(
                pk=request_id,
                status=ConsentStatus.PENDING.value,
            ).update(status=ConsentStatus.REJECTED.value)
        )

    def get_ticket(self, ticket_id: str) -> Ticket | None:
        row = models.Ticket.objects.filter(pk=ticket_id).first()
        return _ticket(row) if row else None

    def get_active_ticket(self, event_id: str, student_id: str) -> Ticket | None:
        row = models.Ticket.objects.filter(
            event_id=event_id,
            student_id=student_id,
            status=TicketStatus.ACTIVE.value,
        ).first()
        return _ticket(row) if row else None

    def list_tickets(self, student_id: str | None = None, event_id: str | None = None) -> list[Ticket]:
        qs = models.Ticket.objects.all()
        if student_id is not None:
            qs = qs.filter(student_id=student_id)
        if event_id is not None:
            qs = qs.filter(event_id=event_id)
        return [_ticket(row) for row in qs.order_by("-issue_date")]

    def mark_ticket_used(self, ticket_id: str, used_at: datetime) -> Ticket | None:
        updated = models.Ticket.objects.filter(
            pk=ticket_id,
            status=TicketStatus.ACTIVE.value,
        ).update(status=TicketStatus.USED.value, used_at=used_at)
        if not updated:
            return None
        return self.get_ticket(ticket_id)
