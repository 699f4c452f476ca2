from ticketing.domain.models import (
    AttendanceRecord,
    AttendanceReport,
    ConsentRequest,
    ConsentRequestDetail,
    ConsentState,
    ConsentStatus,
    Event,
    EventCategory,
    EventStatus,
    Role,
    Ticket,
    TicketDetail,
    TicketStatus,
    TokenClaims,
    User,
    VerificationTokenRecord,
)
from ticketing.domain.value_objects import (
    Capacity,
    EmailAddress,
    TransactionReference,
    WalletAddress,
    new_id,
)

__all__ = [
    "AttendanceRecord",
    "AttendanceReport",
    "ConsentRequest",
    "ConsentRequestDetail",
    "ConsentState",
    "ConsentStatus",
    "Event",
    "EventCategory",
    "EventStatus",
    "Role",
    "Ticket",
    "TicketDetail",
    "TicketStatus",
    "TokenClaims",
    "User",
    "VerificationTokenRecord",
    "Capacity",
    "EmailAddress",
    "TransactionReference",
    "WalletAddress",
    "new_id",
]
