"""Pytest configuration and shared fixtures."""

from datetime import date, datetime, time, timedelta, timezone
from urllib.parse import parse_qs, urlsplit

import pytest
from rest_framework.test import APIClient

from ticketing.domain import EventCategory, Role
from ticketing.services.consent_service import ConsentService
from ticketing.services.event_service import EventService
from ticketing.services.ledger import SimulatedLedgerGateway
from ticketing.services.notifications import DeliveryResult, EventSummary, NotificationGateway
from ticketing.services.token_service import TokenService
from ticketing.stores.memory_store import InMemoryTicketingStore

TEST_SECRET = "test-secret-key-long-enough-for-hs256-signing"
WALLET = "0x" + "ab" * 20


class FakeClock:
    """Settable clock; starts on a whole second so JWT timestamps round-trip."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


class RecordingNotificationGateway(NotificationGateway):
    """Keeps sent emails in memory; can be told to fail."""

    def __init__(self) -> None:
        self.verifications: list[dict] = []
        self.confirmations: list[dict] = []
        self.fail_verification = False
        self.fail_confirmation = False

    def send_verification_email(self, to_address, subject, verification_url, event_name) -> DeliveryResult:
        if self.fail_verification:
            return DeliveryResult(success=False, error="SMTP unavailable")
        self.verifications.append(
            {
                "to": to_address,
                "subject": subject,
                "verification_url": verification_url,
                "event_name": event_name,
            }
        )
        return DeliveryResult(success=True, message_id=f"<verification-{len(self.verifications)}@test>")

    def send_ticket_confirmation(self, to_address, event_summary: EventSummary, ticket_id, qr_reference):
        if self.fail_confirmation:
            return DeliveryResult(success=False, error="SMTP unavailable")
        self.confirmations.append(
            {"to": to_address, "event": event_summary, "ticket_id": ticket_id, "qr_reference": qr_reference}
        )
        return DeliveryResult(success=True, message_id=f"<confirmation-{len(self.confirmations)}@test>")

    @property
    def last_token(self) -> str:
        url = self.verifications[-1]["verification_url"]
        return parse_qs(urlsplit(url).query)["token"][0]


@pytest.fixture
def api_client() -> APIClient:
    return APIClient()


@pytest.fixture(autouse=True)
def clear_cache():
    from django.core.cache import cache
    cache.clear()
    yield
    cache.clear()


@pytest.fixture(autouse=True)
def reset_services():
    from ticketing.wiring import reset_wiring
    reset_wiring()
    yield
    reset_wiring()


@pytest.fixture
def token_secret() -> str:
    return TEST_SECRET


@pytest.fixture
def wallet_address() -> str:
    return WALLET


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def store() -> InMemoryTicketingStore:
    return InMemoryTicketingStore()


@pytest.fixture
def tokens(clock) -> TokenService:
    return TokenService(TEST_SECRET, app_base_url="https://tickets.example.edu", clock=clock)


@pytest.fixture
def mailer() -> RecordingNotificationGateway:
    return RecordingNotificationGateway()


@pytest.fixture
def ledger() -> SimulatedLedgerGateway:
    return SimulatedLedgerGateway(TEST_SECRET, wallet_address=WALLET)


@pytest.fixture
def consent_service(store, tokens, mailer, ledger, clock) -> ConsentService:
    return ConsentService(store, tokens, mailer, ledger, clock=clock)


@pytest.fixture
def event_service(store) -> EventService:
    return EventService(store)


@pytest.fixture
def club_admin(store):
    return store.create_user("admin@college.edu", "Coding Club Admin", Role.CLUB_ADMIN, user_id="adm1")


@pytest.fixture
def student(store):
    return store.create_user("a@b.edu", "Ada Lovelace", Role.STUDENT, verified=True, user_id="stu1")


@pytest.fixture
def event(store, club_admin):
    return store.create_event(
        name="Tech Fest",
        date=date(2026, 4, 10),
        time=time(18, 0),
        location="Main Hall",
        description="Annual technology festival",
        organizer="Coding Club",
        organizer_id=club_admin.id,
        capacity=100,
        category=EventCategory.TECH,
        event_id="evt1",
    )
