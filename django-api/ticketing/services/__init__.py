from ticketing.services.consent_service import ConsentService, IssuanceOutcome, TicketVerification
from ticketing.services.event_service import EventService
from ticketing.services.ledger import (
    FallbackLedgerGateway,
    HttpLedgerGateway,
    Issuance,
    IssuanceFailure,
    IssuanceMode,
    LedgerGateway,
    SimulatedLedgerGateway,
)
from ticketing.services.notifications import (
    DeliveryResult,
    DjangoMailNotificationGateway,
    EventSummary,
    NotificationGateway,
)
from ticketing.services.token_service import TokenService

__all__ = [
    "ConsentService",
    "IssuanceOutcome",
    "TicketVerification",
    "EventService",
    "FallbackLedgerGateway",
    "HttpLedgerGateway",
    "Issuance",
    "IssuanceFailure",
    "IssuanceMode",
    "LedgerGateway",
    "SimulatedLedgerGateway",
    "DeliveryResult",
    "DjangoMailNotificationGateway",
    "EventSummary",
    "NotificationGateway",
    "TokenService",
]
