"""Django ORM models (persistence layer).

These models handle database concerns. Domain logic lives in domain/models.py.
"""

from functools import partial

from django.db import models
from django.db.models import Q

from ticketing.domain import new_id


class User(models.Model):
    """Persistence model for students and club administrators."""

    ROLE_CHOICES = [("student", "Student"), ("club_admin", "Club admin")]

    id = models.CharField(primary_key=True, max_length=64, default=partial(new_id, "user"), editable=False)
    email = models.EmailField(unique=True)
    name = models.CharField(max_length=255)
    role = models.CharField(max_length=20, choices=ROLE_CHOICES)
    wallet_address = models.CharField(max_length=42, blank=True, null=True)
    department = models.CharField(max_length=255, blank=True, null=True)
    verified = models.BooleanField(default=False)

    def __str__(self) -> str:
        return self.email


class Event(models.Model):
    """Persistence model for events."""

    STATUS_CHOICES = [("upcoming", "Upcoming"), ("past", "Past"), ("cancelled", "Cancelled")]
    CATEGORY_CHOICES = [
        ("general", "General"),
        ("tech", "Technology"),
        ("cultural", "Cultural"),
        ("sports", "Sports"),
        ("academic", "Academic"),
        ("workshop", "Workshop"),
    ]

    id = models.CharField(primary_key=True, max_length=64, default=partial(new_id, "event"), editable=False)
    name = models.CharField(max_length=255)
    date = models.DateField()
    time = models.TimeField(blank=True, null=True)
    location = models.CharField(max_length=255)
    description = models.TextField(blank=True)
    organizer = models.CharField(max_length=255)
    organizer_user = models.ForeignKey(User, on_delete=models.PROTECT, related_name="organized_events")
    capacity = models.PositiveIntegerField()
    category = models.CharField(max_length=20, choices=CATEGORY_CHOICES, default="general")
    image = models.URLField(max_length=500, blank=True, null=True)
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="upcoming")
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["date", "time"]
        indexes = [
            models.Index(fields=["status", "date"], name="event_status_date_idx"),
        ]

    def __str__(self) -> str:
        return self.name


class ConsentRequest(models.Model):
    """Persistence model for a student's ticket consent."""

    STATUS_CHOICES = [("pending", "Pending"), ("approved", "Approved"), ("rejected", "Rejected")]

    id = models.CharField(primary_key=True, max_length=64, default=partial(new_id, "consent"), editable=False)
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="consent_requests")
    student = models.ForeignKey(User, on_delete=models.PROTECT, related_name="consent_requests")
    request_date = models.DateTimeField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="pending")
    email_verified = models.BooleanField(default=False)
    blockchain_verified = models.BooleanField(default=False)
    verification_token = models.TextField(blank=True, null=True)
    verification_expiry = models.DateTimeField(blank=True, null=True)
    issuance_ticket_id = models.CharField(max_length=64, blank=True, null=True)

    class Meta:
        ordering = ["-request_date"]
        indexes = [
            models.Index(fields=["event", "student"], name="consent_event_student_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.student_id} -> {self.event_id} ({self.status})"


class VerificationToken(models.Model):
    """Issued email verification tokens. Single-use, time-limited."""

    token_digest = models.CharField(primary_key=True, max_length=64)
    consent_request = models.ForeignKey(ConsentRequest, on_delete=models.CASCADE, related_name="tokens")
    expires_at = models.DateTimeField()
    consumed_at = models.DateTimeField(blank=True, null=True)
    revoked_at = models.DateTimeField(blank=True, null=True)
    created_at = models.DateTimeField(auto_now_add=True)

    def __str__(self) -> str:
        return f"token for {self.consent_request_id}"


class Ticket(models.Model):
    """Persistence model for issued tickets."""

    STATUS_CHOICES = [("active", "Active"), ("used", "Used"), ("expired", "Expired")]

    id = models.CharField(primary_key=True, max_length=64, editable=False)
    event = models.ForeignKey(Event, on_delete=models.PROTECT, related_name="tickets")
    student = models.ForeignKey(User, on_delete=models.PROTECT, related_name="tickets")
    consent_request = models.OneToOneField(ConsentRequest, on_delete=models.PROTECT, related_name="ticket")
    issue_date = models.DateTimeField()
    status = models.CharField(max_length=20, choices=STATUS_CHOICES, default="active")
    qr_code = models.URLField(max_length=500)
    transaction_reference = models.CharField(max_length=66)
    simulated_issuance = models.BooleanField(default=False)
    used_at = models.DateTimeField(blank=True, null=True)

    class Meta:
        ordering = ["-issue_date"]
        constraints = [
            models.UniqueConstraint(
                fields=["event", "student"],
                condition=Q(status="active"),
                name="one_active_ticket_per_student_event",
            ),
        ]

    def __str__(self) -> str:
        return self.id
