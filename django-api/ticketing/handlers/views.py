"""HTTP handlers (views) - handle HTTP concerns only.

Handlers:
- Parse requests and validate input format
- Call services for business logic
- Map domain errors to HTTP responses
- Never contain business logic
- Never expose internal error details
"""

import logging

from django.core.cache import cache
from rest_framework import status
from rest_framework.request import Request
from rest_framework.response import Response
from rest_framework.serializers import Serializer
from rest_framework.views import APIView

from ticketing.domain.errors import (
    DeliveryFailedError,
    DomainError,
    ErrorCode,
    InvalidInputError,
    IssuanceFailedError,
)
from ticketing.handlers.serializers import (
    AttendanceReportSerializer,
    CompleteIssuanceSerializer,
    ConsentRequestCreateSerializer,
    ConsentRequestDetailSerializer,
    ConsentRequestSerializer,
    EventCreateSerializer,
    EventSerializer,
    IssuanceOutcomeSerializer,
    RedeemTicketSerializer,
    ResendVerificationSerializer,
    TicketDetailSerializer,
    TicketSerializer,
    TicketVerificationSerializer,
)
from ticketing.wiring import get_consent_service, get_event_service

logger = logging.getLogger(__name__)

EVENT_LIST_CACHE_KEY = "events:list"
EVENT_CACHE_TIMEOUT = 60 * 5

_STATUS_BY_CODE = {
    ErrorCode.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ErrorCode.INVALID_TOKEN: status.HTTP_400_BAD_REQUEST,
    ErrorCode.TOKEN_EXPIRED: status.HTTP_410_GONE,
    ErrorCode.ALREADY_CONSUMED: status.HTTP_409_CONFLICT,
    ErrorCode.REQUEST_NOT_PENDING: status.HTTP_409_CONFLICT,
    ErrorCode.DELIVERY_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.ISSUANCE_FAILED: status.HTTP_502_BAD_GATEWAY,
    ErrorCode.INVALID_INPUT: status.HTTP_400_BAD_REQUEST,
    ErrorCode.DUPLICATE_REQUEST: status.HTTP_409_CONFLICT,
    ErrorCode.TICKET_NOT_ACTIVE: status.HTTP_409_CONFLICT,
}


def event_cache_key(event_id: str) -> str:
    return f"events:{event_id}"


def error_response(error: DomainError) -> Response:
    body = {"code": error.code.value, "message": error.message}
    if isinstance(error, (DeliveryFailedError, IssuanceFailedError)):
        body["requestId"] = error.request_id
    return Response({"error": body}, status=_STATUS_BY_CODE[error.code])


def validated(serializer_class: type[Serializer], data) -> dict:
    serializer = serializer_class(data=data)
    if not serializer.is_valid():
        raise InvalidInputError(f"Invalid fields: {', '.join(sorted(serializer.errors))}")
    return serializer.validated_data


class TicketingAPIView(APIView):
    """Base view that renders domain errors as ``{"error": {...}}``."""

    def handle_exception(self, exc: Exception) -> Response:
        if isinstance(exc, DomainError):
            logger.info("%s %s failed: %s", self.request.method, self.request.path, exc.code.value)
            return error_response(exc)
        return super().handle_exception(exc)


# Events


class EventListView(TicketingAPIView):
    """Handler for GET/POST /api/events"""

    def get(self, request: Request) -> Response:
        status_filter = request.query_params.get("status")
        category = request.query_params.get("category")
        if status_filter or category:
            events = get_event_service().list_events(status=status_filter, category=category)
            return Response(EventSerializer(events, many=True).data)

        data = cache.get(EVENT_LIST_CACHE_KEY)
        if data is None:
            data = EventSerializer(get_event_service().list_events(), many=True).data
            cache.set(EVENT_LIST_CACHE_KEY, data, EVENT_CACHE_TIMEOUT)
        return Response(data)

    def post(self, request: Request) -> Response:
        body = validated(EventCreateSerializer, request.data)
        event = get_event_service().create_event(
            organizer_id=body["organizerId"],
            name=body["name"],
            date=body["date"],
            time=body["time"],
            location=body["location"],
            description=body["description"],
            capacity=body["capacity"],
            category=body["category"],
            image=body["image"],
            organizer_name=body["organizerName"] or None,
        )
        return Response(EventSerializer(event).data, status=status.HTTP_201_CREATED)


class EventDetailView(TicketingAPIView):
    """Handler for GET /api/events/{event_id}"""

    def get(self, request: Request, event_id: str) -> Response:
        key = event_cache_key(event_id)
        data = cache.get(key)
        if data is None:
            data = EventSerializer(get_event_service().get_event(event_id)).data
            cache.set(key, data, EVENT_CACHE_TIMEOUT)
        return Response(data)


class EventCancelView(TicketingAPIView):
    """Handler for POST /api/events/{event_id}/cancel"""

    def post(self, request: Request, event_id: str) -> Response:
        event = get_event_service().cancel_event(event_id)
        return Response(EventSerializer(event).data)


class EventAttendanceView(TicketingAPIView):
    """Handler for GET /api/events/{event_id}/attendance"""

    def get(self, request: Request, event_id: str) -> Response:
        report = get_event_service().get_attendance(event_id)
        return Response(AttendanceReportSerializer(report).data)


# Consent workflow


class ConsentRequestListView(TicketingAPIView):
    """Handler for POST /api/consent-requests"""

    def post(self, request: Request) -> Response:
        body = validated(ConsentRequestCreateSerializer, request.data)
        consent = get_consent_service().request_consent(
            event_id=body["eventId"],
            student_id=body["studentId"],
            student_email=body["studentEmail"],
            event_name=body["eventName"],
        )
        return Response(ConsentRequestSerializer(consent).data, status=status.HTTP_201_CREATED)


class ConsentRequestDetailView(TicketingAPIView):
    """Handler for GET /api/consent-requests/{request_id}"""

    def get(self, request: Request, request_id: str) -> Response:
        consent = get_consent_service().get_consent_request(request_id)
        return Response(ConsentRequestSerializer(consent).data)


class ConsentRequestResendView(TicketingAPIView):
    """Handler for POST /api/consent-requests/{request_id}/resend"""

    def post(self, request: Request, request_id: str) -> Response:
        body = validated(ResendVerificationSerializer, request.data)
        consent = get_consent_service().resend_verification(request_id, body["studentEmail"] or None)
        return Response(ConsentRequestSerializer(consent).data)


class ConsentRequestCompleteView(TicketingAPIView):
    """Handler for POST /api/consent-requests/{request_id}/complete"""

    def post(self, request: Request, request_id: str) -> Response:
        body = validated(CompleteIssuanceSerializer, request.data)
        outcome = get_consent_service().complete_issuance(request_id, body["walletAddress"])
        return Response(IssuanceOutcomeSerializer(outcome).data, status=status.HTTP_201_CREATED)


class ConsentRequestWalletConsentView(TicketingAPIView):
    """Handler for POST /api/consent-requests/{request_id}/wallet-consent"""

    def post(self, request: Request, request_id: str) -> Response:
        outcome = get_consent_service().request_wallet_consent(request_id)
        return Response(IssuanceOutcomeSerializer(outcome).data, status=status.HTTP_201_CREATED)


class ConsentRequestRejectView(TicketingAPIView):
    """Handler for POST /api/consent-requests/{request_id}/reject"""

    def post(self, request: Request, request_id: str) -> Response:
        consent = get_consent_service().reject_consent(request_id)
        return Response(ConsentRequestSerializer(consent).data)


class VerifyEmailView(TicketingAPIView):
    """Handler for GET /api/verify-email?token=..."""

    def get(self, request: Request) -> Response:
        token = request.query_params.get("token")
        if not token:
            raise InvalidInputError("token is required")
        consent = get_consent_service().verify_email(token)
        return Response(ConsentRequestSerializer(consent).data)


# Student dashboard


class StudentConsentRequestListView(TicketingAPIView):
    """Handler for GET /api/students/{student_id}/consent-requests"""

    def get(self, request: Request, student_id: str) -> Response:
        details = get_consent_service().list_student_consent_requests(student_id)
        return Response(ConsentRequestDetailSerializer(details, many=True).data)


class StudentTicketListView(TicketingAPIView):
    """Handler for GET /api/students/{student_id}/tickets"""

    def get(self, request: Request, student_id: str) -> Response:
        details = get_consent_service().list_student_tickets(student_id)
        return Response(TicketDetailSerializer(details, many=True).data)


# Tickets


class TicketDetailView(TicketingAPIView):
    """Handler for GET /api/tickets/{ticket_id}"""

    def get(self, request: Request, ticket_id: str) -> Response:
        ticket = get_consent_service().get_ticket(ticket_id)
        return Response(TicketSerializer(ticket).data)


class TicketVerifyView(TicketingAPIView):
    """Handler for GET /api/tickets/{ticket_id}/verify"""

    def get(self, request: Request, ticket_id: str) -> Response:
        verification = get_consent_service().verify_ticket(ticket_id)
        return Response(TicketVerificationSerializer(verification).data)


class TicketRedeemView(TicketingAPIView):
    """Handler for POST /api/tickets/{ticket_id}/redeem"""

    def post(self, request: Request, ticket_id: str) -> Response:
        body = validated(RedeemTicketSerializer, request.data)
        ticket = get_consent_service().redeem_ticket(ticket_id, event_id=body["eventId"])
        return Response(TicketSerializer(ticket).data)
