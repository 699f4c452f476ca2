from django.urls import path

from ticketing.handlers import (
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

urlpatterns = [
    path("events", EventListView.as_view(), name="event-list"),
    path("events/<str:event_id>", EventDetailView.as_view(), name="event-detail"),
    path("events/<str:event_id>/cancel", EventCancelView.as_view(), name="event-cancel"),
    path("events/<str:event_id>/attendance", EventAttendanceView.as_view(), name="event-attendance"),
    path("consent-requests", ConsentRequestListView.as_view(), name="consent-request-list"),
    path(
        "consent-requests/<str:request_id>",
        ConsentRequestDetailView.as_view(),
        name="consent-request-detail",
    ),
    path(
        "consent-requests/<str:request_id>/resend",
        ConsentRequestResendView.as_view(),
        name="consent-request-resend",
    ),
    path(
        "consent-requests/<str:request_id>/complete",
        ConsentRequestCompleteView.as_view(),
        name="consent-request-complete",
    ),
    path(
        "consent-requests/<str:request_id>/wallet-consent",
        ConsentRequestWalletConsentView.as_view(),
        name="consent-request-wallet-consent",
    ),
    path(
        "consent-requests/<str:request_id>/reject",
        ConsentRequestRejectView.as_view(),
        name="consent-request-reject",
    ),
    path("verify-email", VerifyEmailView.as_view(), name="verify-email"),
    path(
        "students/<str:student_id>/consent-requests",
        StudentConsentRequestListView.as_view(),
        name="student-consent-requests",
    ),
    path("students/<str:student_id>/tickets", StudentTicketListView.as_view(), name="student-tickets"),
    path("tickets/<str:ticket_id>", TicketDetailView.as_view(), name="ticket-detail"),
    path("tickets/<str:ticket_id>/verify", TicketVerifyView.as_view(), name="ticket-verify"),
    path("tickets/<str:ticket_id>/redeem", TicketRedeemView.as_view(), name="ticket-redeem"),
]
