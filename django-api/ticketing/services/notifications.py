"""Outbound email notifications.

The consent service depends only on ``NotificationGateway``. The Django
implementation renders templates and hands the message to whichever mail
backend ``EMAIL_BACKEND`` selects (SMTP in production, console locally,
locmem under tests).
"""

import logging
import smtplib
from abc import ABC, abstractmethod
from dataclasses import dataclass
from email.utils import make_msgid

from django.conf import settings
from django.core.mail import EmailMultiAlternatives
from django.template.loader import render_to_string

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryResult:
    success: bool
    message_id: str | None = None
    error: str | None = None


@dataclass(frozen=True)
class EventSummary:
    """Event details quoted in a ticket confirmation."""

    name: str
    date: str
    time: str
    location: str
    organizer: str


class NotificationGateway(ABC):
    """Interface for delivering workflow emails.

    Implementations must not raise for ordinary delivery failures; they
    return ``DeliveryResult(success=False, error=...)`` instead.
    """

    @abstractmethod
    def send_verification_email(
        self,
        to_address: str,
        subject: str,
        verification_url: str,
        event_name: str,
    ) -> DeliveryResult:
        ...

    @abstractmethod
    def send_ticket_confirmation(
        self,
        to_address: str,
        event_summary: EventSummary,
        ticket_id: str,
        qr_reference: str,
    ) -> DeliveryResult:
        ...


class DjangoMailNotificationGateway(NotificationGateway):
    """Sends multipart (text + HTML) email through ``django.core.mail``."""

    def __init__(self, from_email: str | None = None) -> None:
        self._from_email = from_email or settings.DEFAULT_FROM_EMAIL

    def send_verification_email(
        self,
        to_address: str,
        subject: str,
        verification_url: str,
        event_name: str,
    ) -> DeliveryResult:
        context = {"event_name": event_name, "verification_url": verification_url}
        return self._send(to_address, subject, "ticketing/email/verification", context)

    def send_ticket_confirmation(
        self,
        to_address: str,
        event_summary: EventSummary,
        ticket_id: str,
        qr_reference: str,
    ) -> DeliveryResult:
        context = {"event": event_summary, "ticket_id": ticket_id, "qr_code_url": qr_reference}
        subject = f"Your Ticket for {event_summary.name}"
        return self._send(to_address, subject, "ticketing/email/ticket_confirmation", context)

    def _send(self, to_address: str, subject: str, template: str, context: dict) -> DeliveryResult:
        message_id = make_msgid(domain="campus-tickets")
        message = EmailMultiAlternatives(
            subject=subject,
            body=render_to_string(f"{template}.txt", context),
            from_email=self._from_email,
            to=[to_address],
            headers={"Message-ID": message_id},
        )
        message.attach_alternative(render_to_string(f"{template}.html", context), "text/html")
        try:
            sent = message.send(fail_silently=False)
        except (smtplib.SMTPException, OSError) as exc:
            logger.warning("Email delivery to %s failed: %s", to_address, exc)
            return DeliveryResult(success=False, error=str(exc))
        if not sent:
            return DeliveryResult(success=False, error="Mail backend accepted no messages")
        logger.info("Email %s sent to %s", message_id, to_address)
        return DeliveryResult(success=True, message_id=message_id)
