"""Unit tests for TokenService.

Run with: pytest tests/test_token_service.py -v
"""

from urllib.parse import parse_qs, urlsplit

import jwt
import pytest

from ticketing.domain.errors import InvalidTokenError, TokenExpiredError
from ticketing.services.token_service import PURPOSE_EMAIL_VERIFICATION, TokenService


class TestIssueAndValidate:
    def test_round_trip_returns_claims(self, tokens, clock):
        """A freshly minted token validates and carries its claims."""
        token = tokens.issue_token("a@b.edu", "consent-1", "evt1")

        claims = tokens.validate_token(token)

        assert claims.email == "a@b.edu"
        assert claims.request_id == "consent-1"
        assert claims.event_id == "evt1"
        assert claims.purpose == PURPOSE_EMAIL_VERIFICATION
        assert claims.issued_at == clock.now
        assert (claims.expires_at - claims.issued_at).total_seconds() == 24 * 60 * 60

    def test_token_is_hs256_jwt(self, tokens):
        token = tokens.issue_token("a@b.edu", "consent-1", "evt1")
        assert token.count(".") == 2
        assert jwt.get_unverified_header(token) == {"alg": "HS256", "typ": "JWT"}

    def test_expires_at_matches_exp_claim(self, tokens, clock):
        token = tokens.issue_token("a@b.edu", "consent-1", "evt1")
        assert tokens.expires_at(token) == tokens.validate_token(token).expires_at


class TestRejection:
    def test_expired_token_raises_token_expired(self, tokens, clock):
        token = tokens.issue_token("a@b.edu", "consent-1", "evt1")
        clock.advance(hours=24)

        with pytest.raises(TokenExpiredError):
            tokens.validate_token(token)

    def test_token_valid_just_before_expiry(self, tokens, clock):
        token = tokens.issue_token("a@b.edu", "consent-1", "evt1")
        clock.advance(hours=23, minutes=59, seconds=59)

        assert tokens.validate_token(token).request_id == "consent-1"

    def test_tampered_payload_is_invalid(self, tokens):
        token = tokens.issue_token("a@b.edu", "consent-1", "evt1")
        header, _, signature = token.split(".")
        forged = jwt.encode(
            {**jwt.decode(token, options={"verify_signature": False}), "requestId": "consent-2"},
            "another-secret-that-is-also-long-enough-here",
            algorithm="HS256",
        )
        tampered = ".".join([header, forged.split(".")[1], signature])

        with pytest.raises(InvalidTokenError):
            tokens.validate_token(tampered)

    def test_token_from_other_secret_is_invalid(self, tokens, clock):
        other = TokenService("a-completely-different-secret-for-signing", clock=clock)
        token = other.issue_token("a@b.edu", "consent-1", "evt1")

        with pytest.raises(InvalidTokenError):
            tokens.validate_token(token)

    def test_wrong_purpose_is_invalid(self, tokens, clock, token_secret):
        now = int(clock.now.timestamp())
        token = jwt.encode(
            {
                "email": "a@b.edu",
                "requestId": "consent-1",
                "eventId": "evt1",
                "purpose": "password-reset",
                "iat": now,
                "exp": now + 3600,
            },
            token_secret,
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            tokens.validate_token(token)

    def test_missing_claim_is_invalid(self, tokens, clock, token_secret):
        now = int(clock.now.timestamp())
        token = jwt.encode(
            {"email": "a@b.edu", "eventId": "evt1", "purpose": PURPOSE_EMAIL_VERIFICATION, "exp": now + 60},
            token_secret,
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            tokens.validate_token(token)

    def test_mistyped_claim_is_invalid(self, tokens, clock, token_secret):
        now = int(clock.now.timestamp())
        token = jwt.encode(
            {
                "email": "a@b.edu",
                "requestId": 42,
                "eventId": "evt1",
                "purpose": PURPOSE_EMAIL_VERIFICATION,
                "iat": now,
                "exp": now + 60,
            },
            token_secret,
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenError):
            tokens.validate_token(token)

    @pytest.mark.parametrize("garbage", ["", "not-a-token", "a.b.c", "eyJhbGciOiJub25lIn0.e30."])
    def test_garbage_is_invalid(self, tokens, garbage):
        with pytest.raises(InvalidTokenError):
            tokens.validate_token(garbage)


class TestConfiguration:
    def test_empty_secret_is_rejected(self):
        with pytest.raises(ValueError):
            TokenService("")

    def test_verification_url_encodes_token(self, tokens):
        token = tokens.issue_token("a@b.edu", "consent-1", "evt1")

        url = tokens.verification_url(token)

        parts = urlsplit(url)
        assert f"{parts.scheme}://{parts.netloc}{parts.path}" == "https://tickets.example.edu/verify-email"
        assert parse_qs(parts.query)["token"] == [token]
