"""Integration tests for DjangoTicketingStore.

Run with: pytest tests/test_django_store.py -v
"""

from datetime import date, datetime, time, timedelta, timezone

import pytest
from django.db import IntegrityError, transaction

from ticketing import models
from ticketing.domain import ConsentState, ConsentStatus, EventCategory, EventStatus, Role, Ticket, TicketStatus
from ticketing.stores.django_store import DjangoTicketingStore

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def _ticket(ticket_id: str, event_id: str, student_id: str) -> Ticket:
    return Ticket(
        id=ticket_id,
        event_id=event_id,
        student_id=student_id,
        issue_date=NOW,
        status=TicketStatus.ACTIVE,
        qr_code=f"https://qr.test/?data={ticket_id}",
        transaction_reference="0x" + "0" * 64,
        simulated_issuance=True,
    )


@pytest.fixture
def db_store() -> DjangoTicketingStore:
    return DjangoTicketingStore()


@pytest.fixture
def db_event(db_store):
    admin = db_store.create_user("admin@college.edu", "Coding Club Admin", Role.CLUB_ADMIN)
    return db_store.create_event(
        name="Tech Fest",
        date=date(2026, 4, 10),
        time=time(18, 0),
        location="Main Hall",
        description="Annual technology festival",
        organizer="Coding Club",
        organizer_id=admin.id,
        capacity=100,
        category=EventCategory.TECH,
    )


@pytest.fixture
def db_student(db_store):
    return db_store.create_user("a@b.edu", "Ada Lovelace", Role.STUDENT)


def _verified_request(db_store, event_id, student_id):
    request = db_store.create_consent_request(event_id, student_id, NOW)
    db_store.attach_verification_token(request.id, f"token-{request.id}", NOW + timedelta(days=1))
    return db_store.mark_email_verified(request.id, f"token-{request.id}", NOW)


@pytest.mark.django_db
class TestDjangoStore:
    def test_round_trips_domain_models(self, db_store, db_event, db_student):
        assert db_store.get_event(db_event.id) == db_event
        assert db_event.status == EventStatus.UPCOMING
        assert db_store.get_user_by_email("A@B.EDU") == db_student
        assert db_store.list_events(category=EventCategory.TECH) == [db_event]

    def test_token_lifecycle(self, db_store, db_event, db_student):
        request = db_store.create_consent_request(db_event.id, db_student.id, NOW)
        db_store.attach_verification_token(request.id, "token-one", NOW + timedelta(days=1))
        db_store.attach_verification_token(request.id, "token-two", NOW + timedelta(days=1))

        assert db_store.get_verification_token("token-one").revoked_at is not None
        assert db_store.mark_email_verified(request.id, "token-one", NOW) is None

        verified = db_store.mark_email_verified(request.id, "token-two", NOW)

        assert verified.state == ConsentState.EMAIL_VERIFIED
        assert db_store.get_verification_token("token-two").consumed_at == NOW
        assert db_store.mark_email_verified(request.id, "token-two", NOW) is None

    def test_token_digest_is_stored_not_raw_token(self, db_store, db_event, db_student):
        request = db_store.create_consent_request(db_event.id, db_student.id, NOW)
        db_store.attach_verification_token(request.id, "token-one", NOW + timedelta(days=1))

        assert not models.VerificationToken.objects.filter(pk="token-one").exists()
        assert models.VerificationToken.objects.filter(consent_request_id=request.id).count() == 1

    def test_approve_with_ticket_is_compare_and_swap(self, db_store, db_event, db_student):
        request = _verified_request(db_store, db_event.id, db_student.id)

        ticket = db_store.approve_with_ticket(request.id, _ticket("ticket-1", db_event.id, db_student.id))

        assert ticket.simulated_issuance is True
        assert db_store.get_consent_request(request.id).status == ConsentStatus.APPROVED
        assert db_store.approve_with_ticket(request.id, _ticket("ticket-2", db_event.id, db_student.id)) is None
        assert [t.id for t in db_store.list_tickets(event_id=db_event.id)] == ["ticket-1"]

    def test_second_active_ticket_for_pair_is_refused(self, db_store, db_event, db_student):
        first = _verified_request(db_store, db_event.id, db_student.id)
        db_store.approve_with_ticket(first.id, _ticket("ticket-1", db_event.id, db_student.id))
        second = _verified_request(db_store, db_event.id, db_student.id)

        assert db_store.approve_with_ticket(second.id, _ticket("ticket-2", db_event.id, db_student.id)) is None
        assert db_store.get_consent_request(second.id).state == ConsentState.EMAIL_VERIFIED

    def test_unique_active_ticket_constraint(self, db_store, db_event, db_student):
        first = _verified_request(db_store, db_event.id, db_student.id)
        db_store.approve_with_ticket(first.id, _ticket("ticket-1", db_event.id, db_student.id))
        second = _verified_request(db_store, db_event.id, db_student.id)

        with pytest.raises(IntegrityError), transaction.atomic():
            models.Ticket.objects.create(
                id="ticket-2",
                event_id=db_event.id,
                student_id=db_student.id,
                consent_request_id=second.id,
                issue_date=NOW,
                status="active",
                qr_code="https://qr.test/?data=ticket-2",
                transaction_reference="0x" + "1" * 64,
            )

    def test_second_pending_request_for_pair_is_refused(self, db_store, db_event, db_student):
        first = db_store.create_consent_request(db_event.id, db_student.id, NOW)

        assert db_store.create_consent_request(db_event.id, db_student.id, NOW) is None
        assert [r.id for r in db_store.list_consent_requests(student_id=db_student.id)] == [first.id]

        db_store.reject_consent_request(first.id)

        assert db_store.create_consent_request(db_event.id, db_student.id, NOW) is not None

    def test_used_ticket_frees_active_slot(self, db_store, db_event, db_student):
        first = _verified_request(db_store, db_event.id, db_student.id)
        db_store.approve_with_ticket(first.id, _ticket("ticket-1", db_event.id, db_student.id))

        used = db_store.mark_ticket_used("ticket-1", NOW)

        assert used.status == TicketStatus.USED
        assert db_store.mark_ticket_used("ticket-1", NOW) is None
        assert db_store.get_active_ticket(db_event.id, db_student.id) is None

    def test_locked_request_rolls_back_on_error(self, db_store, db_event, db_student):
        request = db_store.create_consent_request(db_event.id, db_student.id, NOW)

        with pytest.raises(RuntimeError):
            with db_store.locked_consent_request(request.id) as locked:
                assert locked.id == request.id
                db_store.reserve_issuance_ticket_id(request.id, "ticket-1")
                raise RuntimeError("boom")

        assert db_store.get_consent_request(request.id).issuance_ticket_id is None

    def test_reject_and_event_status(self, db_store, db_event, db_student):
        request = db_store.create_consent_request(db_event.id, db_student.id, NOW)

        assert db_store.reject_consent_request(request.id)
        assert not db_store.reject_consent_request(request.id)
        assert db_store.update_event_status(db_event.id, EventStatus.UPCOMING, EventStatus.PAST)
        assert not db_store.update_event_status(db_event.id, EventStatus.UPCOMING, EventStatus.CANCELLED)
