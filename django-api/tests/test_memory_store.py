"""Unit tests for InMemoryTicketingStore.

Run with: pytest tests/test_memory_store.py -v
"""

import threading
import time as time_module
from datetime import datetime, timedelta, timezone

import pytest

from ticketing.domain import ConsentState, ConsentStatus, EventStatus, Role, Ticket, TicketStatus

NOW = datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc)


def _ticket(ticket_id: str, event_id: str = "evt1", student_id: str = "stu1") -> Ticket:
    return Ticket(
        id=ticket_id,
        event_id=event_id,
        student_id=student_id,
        issue_date=NOW,
        status=TicketStatus.ACTIVE,
        qr_code=f"https://qr.test/?data={ticket_id}",
        transaction_reference="0x" + "0" * 64,
    )


@pytest.fixture
def consent(store, event, student):
    return store.create_consent_request(event.id, student.id, NOW)


class TestUsers:
    def test_duplicate_email_is_rejected(self, store, student):
        with pytest.raises(ValueError):
            store.create_user(student.email, "Someone Else", Role.STUDENT)

    def test_lookup_by_email_is_case_insensitive(self, store, student):
        assert store.get_user_by_email("A@B.EDU") == student


class TestEvents:
    def test_status_compare_and_swap(self, store, event):
        assert store.update_event_status(event.id, EventStatus.UPCOMING, EventStatus.CANCELLED)
        assert not store.update_event_status(event.id, EventStatus.UPCOMING, EventStatus.PAST)
        assert store.get_event(event.id).status == EventStatus.CANCELLED

    def test_list_filters_by_status(self, store, event):
        assert store.list_events(status=EventStatus.UPCOMING) == [event]
        assert store.list_events(status=EventStatus.PAST) == []


class TestConsentRequests:
    def test_second_pending_request_for_pair_is_refused(self, store, consent, event, student):
        assert store.create_consent_request(event.id, student.id, NOW) is None
        assert store.list_consent_requests(student_id=student.id) == [consent]

    def test_rejected_request_allows_a_new_one(self, store, consent, event, student):
        store.reject_consent_request(consent.id)

        assert store.create_consent_request(event.id, student.id, NOW) is not None


class TestVerificationTokens:
    def test_attaching_token_revokes_previous(self, store, consent):
        store.attach_verification_token(consent.id, "token-one", NOW + timedelta(days=1))
        store.attach_verification_token(consent.id, "token-two", NOW + timedelta(days=1))

        assert store.get_verification_token("token-one").revoked_at is not None
        assert store.get_verification_token("token-two").revoked_at is None
        assert store.get_consent_request(consent.id).verification_token == "token-two"

    def test_mark_email_verified_consumes_token_once(self, store, consent):
        store.attach_verification_token(consent.id, "token-one", NOW + timedelta(days=1))

        verified = store.mark_email_verified(consent.id, "token-one", NOW)

        assert verified.state == ConsentState.EMAIL_VERIFIED
        assert store.get_verification_token("token-one").consumed_at == NOW
        assert store.mark_email_verified(consent.id, "token-one", NOW) is None

    def test_revoked_token_cannot_verify(self, store, consent):
        store.attach_verification_token(consent.id, "token-one", NOW + timedelta(days=1))
        store.attach_verification_token(consent.id, "token-two", NOW + timedelta(days=1))

        assert store.mark_email_verified(consent.id, "token-one", NOW) is None
        assert store.get_consent_request(consent.id).state == ConsentState.CREATED


class TestApproval:
    def test_approve_requires_email_verified(self, store, consent):
        assert store.approve_with_ticket(consent.id, _ticket("ticket-1")) is None
        assert store.get_ticket("ticket-1") is None

    def test_approve_flips_request_and_stores_ticket(self, store, consent):
        store.attach_verification_token(consent.id, "token-one", NOW + timedelta(days=1))
        store.mark_email_verified(consent.id, "token-one", NOW)

        ticket = store.approve_with_ticket(consent.id, _ticket("ticket-1"))

        assert ticket.id == "ticket-1"
        request = store.get_consent_request(consent.id)
        assert request.status == ConsentStatus.APPROVED
        assert request.blockchain_verified
        assert store.approve_with_ticket(consent.id, _ticket("ticket-2")) is None
        assert [t.id for t in store.list_tickets(student_id="stu1")] == ["ticket-1"]

    def test_reject_only_from_pending(self, store, consent):
        assert store.reject_consent_request(consent.id)
        assert not store.reject_consent_request(consent.id)
        assert store.get_consent_request(consent.id).status == ConsentStatus.REJECTED


class TestTickets:
    def test_mark_used_once(self, store, consent):
        store.attach_verification_token(consent.id, "token-one", NOW + timedelta(days=1))
        store.mark_email_verified(consent.id, "token-one", NOW)
        store.approve_with_ticket(consent.id, _ticket("ticket-1"))

        used = store.mark_ticket_used("ticket-1", NOW)

        assert used.status == TicketStatus.USED
        assert used.used_at == NOW
        assert store.mark_ticket_used("ticket-1", NOW) is None
        assert store.get_active_ticket("evt1", "stu1") is None


class TestLocking:
    def test_locked_request_excludes_other_holders(self, store, consent):
        order = []
        entered = threading.Event()

        def hold():
            with store.locked_consent_request(consent.id):
                entered.set()
                time_module.sleep(0.05)
                order.append("first")

        def contend():
            entered.wait()
            with store.locked_consent_request(consent.id):
                order.append("second")

        threads = [threading.Thread(target=hold), threading.Thread(target=contend)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert order == ["first", "second"]

    def test_locked_unknown_request_yields_none(self, store):
        with store.locked_consent_request("consent-missing") as request:
            assert request is None

        assert "consent-missing" not in store._request_locks
