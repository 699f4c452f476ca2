"""Unit tests for domain primitives.

These test invariants that must hold at construction time.
Run with: pytest tests/test_domain.py -v
"""

from datetime import datetime, timezone

import pytest

from ticketing.domain import (
    Capacity,
    ConsentRequest,
    ConsentState,
    ConsentStatus,
    EmailAddress,
    TransactionReference,
    WalletAddress,
    new_id,
)
from ticketing.domain.errors import DomainError, ErrorCode, NotFoundError, RequestNotPendingError


class TestEmailAddress:
    """Tests for EmailAddress value object."""

    def test_email_is_normalised_to_lower_case(self):
        """Surrounding whitespace is stripped and the address lower-cased."""
        assert EmailAddress("  Ada@B.EDU ").value == "ada@b.edu"

    @pytest.mark.parametrize("value", ["", "no-at-sign", "two@@b.edu", "a@nodot", "a b@c.edu"])
    def test_email_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            EmailAddress(value)


class TestWalletAddress:
    """Tests for WalletAddress value object."""

    def test_wallet_accepts_mixed_case_hex(self):
        address = "0x" + "aB" * 20
        assert str(WalletAddress(address)) == address

    @pytest.mark.parametrize("value", ["0xabc", "ab" * 21, "0x" + "zz" * 20, "0x" + "ab" * 21])
    def test_wallet_rejects_malformed(self, value):
        with pytest.raises(ValueError):
            WalletAddress(value)


class TestTransactionReference:
    """Tests for TransactionReference value object."""

    def test_from_digest_prefixes_0x(self):
        reference = TransactionReference.from_digest("a" * 64)
        assert reference.value == "0x" + "a" * 64

    def test_rejects_upper_case_and_short_values(self):
        assert not TransactionReference.is_well_formed("0x" + "A" * 64)
        assert not TransactionReference.is_well_formed("0x" + "a" * 63)
        assert not TransactionReference.is_well_formed(None)
        with pytest.raises(ValueError):
            TransactionReference("0x1234")


class TestCapacity:
    """Tests for Capacity value object."""

    def test_capacity_accepts_positive_value(self):
        assert Capacity(50).value == 50

    def test_capacity_rejects_zero(self):
        with pytest.raises(ValueError):
            Capacity(0)

    def test_capacity_rejects_negative_value(self):
        with pytest.raises(ValueError):
            Capacity(-1)

    def test_capacity_rejects_bool(self):
        with pytest.raises(ValueError):
            Capacity(True)


class TestConsentState:
    """The workflow state is derived from status and flags."""

    def _request(self, **overrides) -> ConsentRequest:
        fields = {
            "id": "consent-1",
            "event_id": "evt1",
            "student_id": "stu1",
            "request_date": datetime(2026, 3, 1, tzinfo=timezone.utc),
            "status": ConsentStatus.PENDING,
        }
        fields.update(overrides)
        return ConsentRequest(**fields)

    def test_new_request_is_created(self):
        assert self._request().state == ConsentState.CREATED

    def test_verified_pending_request_is_email_verified(self):
        assert self._request(email_verified=True).state == ConsentState.EMAIL_VERIFIED

    def test_status_wins_over_flags(self):
        assert self._request(status=ConsentStatus.APPROVED, email_verified=True).state == ConsentState.APPROVED
        assert self._request(status=ConsentStatus.REJECTED, email_verified=True).state == ConsentState.REJECTED


class TestErrors:
    def test_domain_error_str_includes_code(self):
        error = RequestNotPendingError("consent-1")
        assert str(error) == "REQUEST_NOT_PENDING: Consent request is not pending"
        assert error.request_id == "consent-1"

    def test_not_found_keeps_entity(self):
        error = NotFoundError("Event", "evt1")
        assert isinstance(error, DomainError)
        assert error.code == ErrorCode.NOT_FOUND
        assert (error.entity, error.entity_id) == ("Event", "evt1")
        assert error.message == "Event not found"


def test_new_id_is_prefixed_and_unique():
    first, second = new_id("ticket"), new_id("ticket")
    assert first.startswith("ticket-")
    assert len(first) == len("ticket-") + 32
    assert first != second
