"""Signed, time-limited email verification tokens.

Tokens are compact HS256 JWTs (header.payload.signature, base64url). Claims:

- email: address the verification link was sent to
- requestId: consent request the token authorises
- eventId: event the request is for
- purpose: always "email-verification"
- iat / exp: epoch seconds
- jti: random id, so two tokens minted in the same second differ

Single-use enforcement is not done here; the consent service records
consumption through the store.
"""

import logging
import uuid
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from urllib.parse import quote

import jwt

from ticketing.domain import TokenClaims
from ticketing.domain.errors import InvalidTokenError, TokenExpiredError

logger = logging.getLogger(__name__)

PURPOSE_EMAIL_VERIFICATION = "email-verification"
DEFAULT_TTL_SECONDS = 60 * 60 * 24
_ALGORITHM = "HS256"
_STRING_CLAIMS = ("email", "requestId", "eventId", "purpose")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TokenService:
    """Mints and validates email verification tokens."""

    def __init__(
        self,
        secret: str,
        app_base_url: str = "http://localhost:5173",
        ttl_seconds: int = DEFAULT_TTL_SECONDS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self._app_base_url = app_base_url.rstrip("/")
        self._ttl = timedelta(seconds=ttl_seconds)
        self._clock = clock

    def issue_token(self, email: str, request_id: str, event_id: str) -> str:
        issued_at = self._clock()
        payload = {
            "email": email,
            "requestId": request_id,
            "eventId": event_id,
            "purpose": PURPOSE_EMAIL_VERIFICATION,
            "iat": int(issued_at.timestamp()),
            "exp": int((issued_at + self._ttl).timestamp()),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self._secret, algorithm=_ALGORITHM)

    def validate_token(self, token: str) -> TokenClaims:
        """Verify signature, claim schema, purpose and expiry, in that order.

        Raises:
            InvalidTokenError: malformed token, bad signature, missing or
                mistyped claims, or wrong purpose.
            TokenExpiredError: the token is past its ``exp``.
        """
        if not isinstance(token, str) or not token:
            raise InvalidTokenError()
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[_ALGORITHM],
                # Time claims are checked below against the injected clock.
                options={"verify_exp": False, "verify_iat": False, "require": [*_STRING_CLAIMS, "exp"]},
            )
        except jwt.InvalidTokenError as exc:
            logger.warning("Rejected verification token: %s", type(exc).__name__)
            raise InvalidTokenError() from exc

        if not all(isinstance(payload.get(name), str) and payload[name] for name in _STRING_CLAIMS):
            raise InvalidTokenError()
        exp = payload["exp"]
        iat = payload.get("iat", exp - int(self._ttl.total_seconds()))
        if not isinstance(exp, int) or isinstance(exp, bool) or not isinstance(iat, int):
            raise InvalidTokenError()
        if payload["purpose"] != PURPOSE_EMAIL_VERIFICATION:
            raise InvalidTokenError("Token was not issued for email verification")

        expires_at = datetime.fromtimestamp(exp, tz=timezone.utc)
        if not self._clock() < expires_at:
            raise TokenExpiredError()

        return TokenClaims(
            email=payload["email"],
            request_id=payload["requestId"],
            event_id=payload["eventId"],
            purpose=payload["purpose"],
            issued_at=datetime.fromtimestamp(iat, tz=timezone.utc),
            expires_at=expires_at,
        )

    def expires_at(self, token: str) -> datetime:
        """Expiry of a token this service minted, without validating it."""
        payload = jwt.decode(token, options={"verify_signature": False})
        return datetime.fromtimestamp(payload["exp"], tz=timezone.utc)

    def verification_url(self, token: str) -> str:
        return f"{self._app_base_url}/verify-email?token={quote(token, safe='')}"
