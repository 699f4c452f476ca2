"""Serializers for transforming domain models to API responses and
validating request bodies.

Output serializers read attributes straight off the frozen domain
dataclasses. Enum fields are rendered through ``.value``.
"""

from rest_framework import serializers


class EventSerializer(serializers.Serializer):
    """Serializer for Event domain model."""

    id = serializers.CharField()
    name = serializers.CharField()
    date = serializers.DateField()
    time = serializers.TimeField(format="%H:%M")
    location = serializers.CharField()
    description = serializers.CharField()
    organizer = serializers.CharField()
    organizerId = serializers.CharField(source="organizer_id")
    capacity = serializers.IntegerField()
    category = serializers.CharField(source="category.value")
    status = serializers.CharField(source="status.value")
    image = serializers.CharField()


class ConsentRequestSerializer(serializers.Serializer):
    """Serializer for ConsentRequest domain model. The token itself is never exposed."""

    id = serializers.CharField()
    eventId = serializers.CharField(source="event_id")
    studentId = serializers.CharField(source="student_id")
    requestDate = serializers.DateTimeField(source="request_date")
    status = serializers.CharField(source="status.value")
    state = serializers.CharField(source="state.value")
    emailVerified = serializers.BooleanField(source="email_verified")
    blockchainVerified = serializers.BooleanField(source="blockchain_verified")
    verificationExpiry = serializers.DateTimeField(source="verification_expiry")


class TicketSerializer(serializers.Serializer):
    """Serializer for Ticket domain model."""

    id = serializers.CharField()
    eventId = serializers.CharField(source="event_id")
    studentId = serializers.CharField(source="student_id")
    issueDate = serializers.DateTimeField(source="issue_date")
    status = serializers.CharField(source="status.value")
    qrCode = serializers.CharField(source="qr_code")
    transactionReference = serializers.CharField(source="transaction_reference")
    simulatedIssuance = serializers.BooleanField(source="simulated_issuance")
    usedAt = serializers.DateTimeField(source="used_at")


class ConsentRequestDetailSerializer(serializers.Serializer):
    request = ConsentRequestSerializer()
    event = EventSerializer(allow_null=True)


class TicketDetailSerializer(serializers.Serializer):
    ticket = TicketSerializer()
    event = EventSerializer(allow_null=True)


class IssuanceOutcomeSerializer(serializers.Serializer):
    ticket = TicketSerializer()
    transactionReference = serializers.CharField(source="issuance.transaction_reference")
    mode = serializers.CharField(source="issuance.mode.value")


class TicketVerificationSerializer(serializers.Serializer):
    ticket = TicketSerializer()
    valid = serializers.BooleanField()


class AttendanceRecordSerializer(serializers.Serializer):
    studentId = serializers.CharField(source="student_id")
    ticketId = serializers.CharField(source="ticket_id")
    status = serializers.CharField(source="status.value")
    checkedInAt = serializers.DateTimeField(source="checked_in_at")


class AttendanceReportSerializer(serializers.Serializer):
    event = EventSerializer()
    capacity = serializers.IntegerField(source="event.capacity")
    ticketsIssued = serializers.IntegerField(source="tickets_issued")
    checkedIn = serializers.IntegerField(source="checked_in")
    pendingRequests = serializers.IntegerField(source="pending_requests")
    records = AttendanceRecordSerializer(many=True)


# Request bodies


class EventCreateSerializer(serializers.Serializer):
    organizerId = serializers.CharField()
    name = serializers.CharField()
    date = serializers.DateField()
    time = serializers.TimeField(required=False, allow_null=True, default=None)
    location = serializers.CharField(required=False, allow_blank=True, default="")
    description = serializers.CharField(required=False, allow_blank=True, default="")
    capacity = serializers.IntegerField()
    category = serializers.CharField(required=False, default="general")
    image = serializers.URLField(required=False, allow_null=True, allow_blank=True, default=None)
    organizerName = serializers.CharField(required=False, allow_blank=True, default="")


class ConsentRequestCreateSerializer(serializers.Serializer):
    eventId = serializers.CharField()
    studentId = serializers.CharField()
    studentEmail = serializers.CharField()
    eventName = serializers.CharField(required=False, allow_blank=True, default="")


class ResendVerificationSerializer(serializers.Serializer):
    studentEmail = serializers.CharField(required=False, allow_blank=True, default="")


class CompleteIssuanceSerializer(serializers.Serializer):
    walletAddress = serializers.CharField()


class RedeemTicketSerializer(serializers.Serializer):
    eventId = serializers.CharField(required=False, allow_null=True, default=None)
