"""Ledger gateways: wallet connection, signing and ticket issuance proofs.

Issuance results are tagged with ``IssuanceMode`` so callers can tell a
reference produced by the ledger node from one synthesised locally.

Ledger node HTTP API used by ``HttpLedgerGateway``:

    POST /wallets/connect                 -> {"address": "0x..."}   (4xx = refused)
    POST /wallets/{address}/sign          -> {"signature": "0x..."}
    POST /issuances                       -> {"transactionReference": "0x..."}
    GET  /issuances/{ticketId}            -> {"transactionReference": "0x..."} | 404
    GET  /transactions/{reference}        -> {"ticketId": "..."} | 404
"""

import hashlib
import hmac
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum

import httpx

from ticketing.domain import TransactionReference, WalletAddress

logger = logging.getLogger(__name__)


class IssuanceMode(str, Enum):
    REAL = "real"
    SIMULATED = "simulated"


@dataclass(frozen=True)
class Issuance:
    """Proof that a ticket was recorded on the ledger."""

    transaction_reference: str
    mode: IssuanceMode

    @property
    def simulated(self) -> bool:
        return self.mode == IssuanceMode.SIMULATED


@dataclass(frozen=True)
class IssuanceFailure:
    """A ledger call that did not confirm issuance.

    ``unreachable`` means the request never reached the ledger, so nothing
    can have been recorded. Timeouts and error replies leave that open.
    """

    reason: str
    retryable: bool = True
    unreachable: bool = False


class LedgerGateway(ABC):
    """Interface to the external asset-issuance system.

    Issuance is keyed by ticket id: callers look up ``find_issuance`` before
    retrying so an ambiguous earlier attempt is never issued twice.
    """

    @abstractmethod
    def connect_wallet(self) -> str | None:
        """Return the signer's address, or None if the user refused."""
        ...

    @abstractmethod
    def sign_message(self, message: str, address: str) -> str | None:
        ...

    @abstractmethod
    def issue_ticket(self, event_id: str, student_id: str, ticket_id: str) -> Issuance | IssuanceFailure:
        ...

    @abstractmethod
    def find_issuance(self, ticket_id: str) -> Issuance | IssuanceFailure | None:
        """Earlier issuance for ``ticket_id``; None if there definitely is none."""
        ...

    @abstractmethod
    def verify_ticket(self, ticket_id: str, transaction_reference: str) -> bool:
        """Return False (never raise) for malformed or unknown references."""
        ...


class SimulatedLedgerGateway(LedgerGateway):
    """Local stand-in for a ledger node.

    References are ``0x`` + HMAC-SHA256(secret, ticket_id): deterministic per
    ticket id and verifiable without stored state.
    """

    def __init__(self, secret: str, wallet_address: str | None = None) -> None:
        self._key = secret.encode("utf-8")
        self._wallet_address = wallet_address or None
        self._lock = threading.Lock()
        self._issued: dict[str, Issuance] = {}

    def _digest(self, value: str) -> str:
        return hmac.new(self._key, value.encode("utf-8"), hashlib.sha256).hexdigest()

    def connect_wallet(self) -> str | None:
        return self._wallet_address

    def sign_message(self, message: str, address: str) -> str | None:
        if self._wallet_address is None or address.lower() != self._wallet_address.lower():
            return None
        return f"0x{self._digest(f'{address.lower()}:{message}')}"

    def issue_ticket(self, event_id: str, student_id: str, ticket_id: str) -> Issuance | IssuanceFailure:
        issuance = Issuance(
            transaction_reference=TransactionReference.from_digest(self._digest(ticket_id)).value,
            mode=IssuanceMode.SIMULATED,
        )
        with self._lock:
            self._issued.setdefault(ticket_id, issuance)
        logger.info("Simulated issuance of ticket %s for event %s", ticket_id, event_id)
        return issuance

    def find_issuance(self, ticket_id: str) -> Issuance | IssuanceFailure | None:
        with self._lock:
            return self._issued.get(ticket_id)

    def verify_ticket(self, ticket_id: str, transaction_reference: str) -> bool:
        if not TransactionReference.is_well_formed(transaction_reference):
            return False
        expected = TransactionReference.from_digest(self._digest(ticket_id)).value
        return hmac.compare_digest(expected, transaction_reference)


class HttpLedgerGateway(LedgerGateway):
    """Talks to a ledger node over its JSON HTTP API."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._client = httpx.Client(base_url=base_url, timeout=timeout, transport=transport)

    def close(self) -> None:
        self._client.close()

    def connect_wallet(self) -> str | None:
        try:
            response = self._client.post("/wallets/connect")
        except httpx.HTTPError as exc:
            logger.warning("Wallet connection failed: %s", exc)
            return None
        if response.status_code != 200:
            return None
        address = _json_field(response, "address")
        try:
            return WalletAddress(address).value if address else None
        except ValueError:
            logger.warning("Ledger node returned a malformed wallet address")
            return None

    def sign_message(self, message: str, address: str) -> str | None:
        try:
            response = self._client.post(f"/wallets/{address}/sign", json={"message": message})
        except httpx.HTTPError as exc:
            logger.warning("Message signing failed: %s", exc)
            return None
        if response.status_code != 200:
            return None
        return _json_field(response, "signature")

    def issue_ticket(self, event_id: str, student_id: str, ticket_id: str) -> Issuance | IssuanceFailure:
        payload = {"eventId": event_id, "studentId": student_id, "ticketId": ticket_id}
        try:
            response = self._client.post("/issuances", json=payload)
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            logger.warning("Ledger unreachable for ticket %s: %s", ticket_id, exc)
            return IssuanceFailure("Ledger unreachable", retryable=True, unreachable=True)
        except httpx.TimeoutException:
            logger.warning("Ledger issuance of ticket %s timed out", ticket_id)
            return IssuanceFailure("Ledger request timed out", retryable=True)
        except httpx.HTTPError as exc:
            logger.warning("Ledger issuance of ticket %s failed: %s", ticket_id, exc)
            return IssuanceFailure("Ledger request failed", retryable=True)
        return _issuance_from(response, ticket_id)

    def find_issuance(self, ticket_id: str) -> Issuance | IssuanceFailure | None:
        try:
            response = self._client.get(f"/issuances/{ticket_id}")
        except (httpx.ConnectError, httpx.ConnectTimeout) as exc:
            logger.warning("Ledger unreachable for lookup of ticket %s: %s", ticket_id, exc)
            return IssuanceFailure("Ledger unreachable", retryable=True, unreachable=True)
        except httpx.HTTPError as exc:
            logger.warning("Ledger lookup of ticket %s failed: %s", ticket_id, exc)
            return IssuanceFailure("Ledger lookup failed", retryable=True)
        if response.status_code == 404:
            return None
        return _issuance_from(response, ticket_id)

    def verify_ticket(self, ticket_id: str, transaction_reference: str) -> bool:
        if not TransactionReference.is_well_formed(transaction_reference):
            return False
        try:
            response = self._client.get(f"/transactions/{transaction_reference}")
        except httpx.HTTPError as exc:
            logger.warning("Ledger verification of ticket %s failed: %s", ticket_id, exc)
            return False
        if response.status_code != 200:
            return False
        return _json_field(response, "ticketId") == ticket_id


class FallbackLedgerGateway(LedgerGateway):
    """Issues through ``fallback`` when ``primary`` cannot be reached.

    Only enabled explicitly. Fallback issuances keep their SIMULATED mode.
    A timed-out or failed primary call may still have been recorded, so
    those failures are returned as-is rather than issued a second time.
    """

    def __init__(self, primary: LedgerGateway, fallback: LedgerGateway) -> None:
        self._primary = primary
        self._fallback = fallback

    def connect_wallet(self) -> str | None:
        return self._primary.connect_wallet()

    def sign_message(self, message: str, address: str) -> str | None:
        return self._primary.sign_message(message, address)

    def issue_ticket(self, event_id: str, student_id: str, ticket_id: str) -> Issuance | IssuanceFailure:
        result = self._primary.issue_ticket(event_id, student_id, ticket_id)
        if isinstance(result, IssuanceFailure) and result.unreachable:
            logger.warning("Ledger unreachable (%s); issuing ticket %s through fallback", result.reason, ticket_id)
            return self._fallback.issue_ticket(event_id, student_id, ticket_id)
        return result

    def find_issuance(self, ticket_id: str) -> Issuance | IssuanceFailure | None:
        result = self._primary.find_issuance(ticket_id)
        if isinstance(result, Issuance):
            return result
        fallback = self._fallback.find_issuance(ticket_id)
        if isinstance(fallback, Issuance):
            return fallback
        # A failed primary lookup is never "not issued".
        return result if isinstance(result, IssuanceFailure) else fallback

    def verify_ticket(self, ticket_id: str, transaction_reference: str) -> bool:
        return self._primary.verify_ticket(ticket_id, transaction_reference) or self._fallback.verify_ticket(
            ticket_id, transaction_reference
        )


def _json_field(response: httpx.Response, name: str) -> str | None:
    try:
        value = response.json().get(name)
    except (ValueError, AttributeError):
        return None
    return value if isinstance(value, str) else None


def _issuance_from(response: httpx.Response, ticket_id: str) -> Issuance | IssuanceFailure:
    if response.status_code >= 500:
        logger.warning("Ledger returned %s for ticket %s", response.status_code, ticket_id)
        return IssuanceFailure(f"Ledger error {response.status_code}", retryable=True)
    if response.status_code >= 400:
        logger.warning("Ledger rejected ticket %s with %s", ticket_id, response.status_code)
        return IssuanceFailure(f"Ledger rejected issuance ({response.status_code})", retryable=False)
    reference = _json_field(response, "transactionReference")
    if not TransactionReference.is_well_formed(reference):
        logger.warning("Ledger returned a malformed reference for ticket %s", ticket_id)
        return IssuanceFailure("Malformed ledger response", retryable=False)
    return Issuance(transaction_reference=reference, mode=IssuanceMode.REAL)
