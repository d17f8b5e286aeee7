"""Stateless session token codec."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from eatwise_auth.auth.models import IssuedSessionToken
from eatwise_auth.core.config import AuthConfig
from eatwise_auth.core.security import (
    InvalidSignatureError,
    build_signed_token,
    decode_signed_token,
)

TOKEN_TYPE = "session"


class SessionTokenCodec:
    """Sign and verify session tokens carrying a user id and expiry.

    Tokens are never stored server-side: validity is signature, issuer, type
    and ``exp`` only, so a token stays usable until it expires.
    """

    def __init__(self, config: AuthConfig) -> None:
        self._secret_key = config.secret_key
        self._issuer = config.issuer
        self._ttl_seconds = config.session_ttl_seconds

    @property
    def ttl_seconds(self) -> int:
        return self._ttl_seconds

    def issue(self, user_id: str, now: datetime | None = None) -> IssuedSessionToken:
        """Sign a token for ``user_id`` expiring ``ttl_seconds`` from now."""
        issued_at = (now or datetime.now(timezone.utc)).replace(microsecond=0)
        expires_at = issued_at + timedelta(seconds=self._ttl_seconds)
        payload = {
            "iss": self._issuer,
            "sub": user_id,
            "type": TOKEN_TYPE,
            "iat": int(issued_at.timestamp()),
            "exp": int(expires_at.timestamp()),
        }
        return IssuedSessionToken(
            token=build_signed_token(payload, self._secret_key),
            user_id=user_id,
            issued_at=issued_at,
            expires_at=expires_at,
            max_age_seconds=self._ttl_seconds,
        )

    def verify(self, token: str, now: datetime | None = None) -> str:
        """Return the embedded user id.

        Raises ``InvalidSignatureError`` or ``ExpiredError``.
        """
        now_ts = int(now.timestamp()) if now is not None else None
        payload = decode_signed_token(token, self._secret_key, now=now_ts)

        if str(payload.get("iss") or "") != self._issuer:
            raise InvalidSignatureError("Invalid token issuer")
        if str(payload.get("type") or "") != TOKEN_TYPE:
            raise InvalidSignatureError("Invalid token type")
        user_id = str(payload.get("sub") or "")
        if not user_id:
            raise InvalidSignatureError("Token has no subject")
        return user_id
