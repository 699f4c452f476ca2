from ticketing.handlers.views import (
    ConsentRequestCompleteView,
    ConsentRequestDetailView,
    ConsentRequestListView,
    ConsentRequestRejectView,
    ConsentRequestResendView,
    ConsentRequestWalletConsentView,
    EventAttendanceView,
    EventCancelView,
    EventDetailView,
    EventListView,
    StudentConsentRequestListView,
    StudentTicketListView,
    TicketDetailView,
    TicketRedeemView,
    TicketVerifyView,
    VerifyEmailView,
)

__all__ = [
    "ConsentRequestCompleteView",
    "ConsentRequestDetailView",
    "ConsentRequestListView",
    "ConsentRequestRejectView",
    "ConsentRequestResendView",
    "ConsentRequestWalletConsentView",
    "EventAttendanceView",
    "EventCancelView",
    "EventDetailView",
    "EventListView",
    "StudentConsentRequestListView",
    "StudentTicketListView",
    "TicketDetailView",
    "TicketRedeemView",
    "TicketVerifyView",
    "VerifyEmailView",
]
