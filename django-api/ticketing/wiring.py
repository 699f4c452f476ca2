"""Builds services and gateways from Django settings.

Builders are memoised so every request shares one ledger gateway (and with
it the simulated ledger's record of issued tickets). Tests call
``reset_wiring`` after overriding settings.
"""

from functools import lru_cache

from django.conf import settings
from django.core.exceptions import ImproperlyConfigured

from ticketing.services.consent_service import ConsentService
from ticketing.services.event_service import EventService
from ticketing.services.ledger import (
    FallbackLedgerGateway,
    HttpLedgerGateway,
    LedgerGateway,
    SimulatedLedgerGateway,
)
from ticketing.services.notifications import DjangoMailNotificationGateway, NotificationGateway
from ticketing.services.token_service import TokenService
from ticketing.stores.django_store import DjangoTicketingStore
from ticketing.stores.interfaces import TicketingStore


@lru_cache(maxsize=None)
def get_store() -> TicketingStore:
    return DjangoTicketingStore()


@lru_cache(maxsize=None)
def get_token_service() -> TokenService:
    return TokenService(
        secret=settings.TICKETING_TOKEN_SECRET,
        app_base_url=settings.TICKETING_APP_BASE_URL,
        ttl_seconds=settings.TICKETING_TOKEN_TTL_SECONDS,
    )


@lru_cache(maxsize=None)
def get_notification_gateway() -> NotificationGateway:
    return DjangoMailNotificationGateway()


@lru_cache(maxsize=None)
def get_ledger_gateway() -> LedgerGateway:
    simulated = SimulatedLedgerGateway(
        secret=settings.SECRET_KEY,
        wallet_address=settings.TICKETING_LEDGER_SIMULATED_WALLET,
    )
    backend = settings.TICKETING_LEDGER_BACKEND
    if backend == "simulated":
        return simulated
    if backend != "http":
        raise ImproperlyConfigured(f"Unknown TICKETING_LEDGER_BACKEND: {backend!r}")
    if not settings.TICKETING_LEDGER_API_URL:
        raise ImproperlyConfigured("TICKETING_LEDGER_API_URL is required for the http ledger backend")

    gateway = HttpLedgerGateway(
        base_url=settings.TICKETING_LEDGER_API_URL,
        timeout=settings.TICKETING_LEDGER_TIMEOUT_SECONDS,
    )
    if settings.TICKETING_LEDGER_FALLBACK_TO_SIMULATED:
        return FallbackLedgerGateway(primary=gateway, fallback=simulated)
    return gateway


@lru_cache(maxsize=None)
def get_consent_service() -> ConsentService:
    return ConsentService(
        store=get_store(),
        tokens=get_token_service(),
        notifications=get_notification_gateway(),
        ledger=get_ledger_gateway(),
        qr_service_url=settings.TICKETING_QR_SERVICE_URL,
    )


@lru_cache(maxsize=None)
def get_event_service() -> EventService:
    return EventService(store=get_store())


def reset_wiring() -> None:
    for builder in (
        get_store,
        get_token_service,
        get_notification_gateway,
        get_ledger_gateway,
        get_consent_service,
        get_event_service,
    ):
        builder.cache_clear()
