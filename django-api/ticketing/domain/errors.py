"""Domain error codes for the ticketing module."""

from dataclasses import dataclass
from enum import Enum


class ErrorCode(Enum):
    """Domain error codes."""

    NOT_FOUND = "NOT_FOUND"
    INVALID_TOKEN = "INVALID_TOKEN"
    TOKEN_EXPIRED = "TOKEN_EXPIRED"
    ALREADY_CONSUMED = "ALREADY_CONSUMED"
    REQUEST_NOT_PENDING = "REQUEST_NOT_PENDING"
    DELIVERY_FAILED = "DELIVERY_FAILED"
    ISSUANCE_FAILED = "ISSUANCE_FAILED"
    INVALID_INPUT = "INVALID_INPUT"
    DUPLICATE_REQUEST = "DUPLICATE_REQUEST"
    TICKET_NOT_ACTIVE = "TICKET_NOT_ACTIVE"


@dataclass(frozen=True)
class DomainError(Exception):
    """Base domain error with code and user-safe message."""

    code: ErrorCode
    message: str

    def __str__(self) -> str:
        return f"{self.code.value}: {self.message}"


class NotFoundError(DomainError):
    """Raised when a referenced user, event, consent request or ticket is absent."""

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(
            code=ErrorCode.NOT_FOUND,
            message=f"{entity} not found",
        )
        self.entity = entity
        self.entity_id = entity_id


class InvalidTokenError(DomainError):
    """Raised for malformed, tampered, superseded or wrong-purpose tokens."""

    def __init__(self, message: str = "Invalid verification token") -> None:
        super().__init__(code=ErrorCode.INVALID_TOKEN, message=message)


class TokenExpiredError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.TOKEN_EXPIRED,
            message="Verification token has expired",
        )


class AlreadyConsumedError(DomainError):
    def __init__(self) -> None:
        super().__init__(
            code=ErrorCode.ALREADY_CONSUMED,
            message="Verification token has already been used",
        )


class RequestNotPendingError(DomainError):
    """Raised when a consent request is not in the state an operation requires."""

    def __init__(self, request_id: str, message: str = "Consent request is not pending") -> None:
        super().__init__(code=ErrorCode.REQUEST_NOT_PENDING, message=message)
        self.request_id = request_id


class DeliveryFailedError(DomainError):
    """Raised when the verification email could not be delivered.

    The consent request stays pending; ``request_id`` lets the caller resend.
    """

    def __init__(self, request_id: str) -> None:
        super().__init__(
            code=ErrorCode.DELIVERY_FAILED,
            message="Verification email could not be delivered",
        )
        self.request_id = request_id


class IssuanceFailedError(DomainError):
    """Raised when the ledger did not confirm issuance. Safe to retry."""

    def __init__(self, request_id: str) -> None:
        super().__init__(
            code=ErrorCode.ISSUANCE_FAILED,
            message="Ticket issuance failed, please retry",
        )
        self.request_id = request_id


class InvalidInputError(DomainError):
    def __init__(self, message: str) -> None:
        super().__init__(code=ErrorCode.INVALID_INPUT, message=message)


class DuplicateRequestError(DomainError):
    """Raised when a student already has an open request or ticket for an event."""

    def __init__(self, message: str = "A consent request or ticket already exists for this event") -> None:
        super().__init__(code=ErrorCode.DUPLICATE_REQUEST, message=message)


class TicketNotActiveError(DomainError):
    def __init__(self, ticket_id: str) -> None:
        super().__init__(
            code=ErrorCode.TICKET_NOT_ACTIVE,
            message="Ticket is not active",
        )
        self.ticket_id = ticket_id
