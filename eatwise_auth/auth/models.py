"""Pydantic models for authentication domain."""

from __future__ import annotations

from datetime import datetime, timezone

from pydantic import BaseModel, Field, field_validator, model_validator

from eatwise_auth.api.contracts import PublicAccount


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime | None) -> datetime | None:
    # Mongo hands back naive datetimes unless the client is tz-aware.
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Account(BaseModel):
    """Persisted account record."""

    user_id: str
    email: str
    password_hash: str
    name: str
    is_verified: bool = False
    verification_code: str | None = None
    verification_code_expires_at: datetime | None = None
    reset_token: str | None = None
    reset_token_expires_at: datetime | None = None
    last_login_at: datetime | None = None
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    @field_validator(
        "verification_code_expires_at",
        "reset_token_expires_at",
        "last_login_at",
        "created_at",
        "updated_at",
    )
    @classmethod
    def _normalize_timezone(cls, value: datetime | None) -> datetime | None:
        return _as_utc(value)

    @model_validator(mode="after")
    def _check_credential_pairs(self) -> "Account":
        if (self.verification_code is None) != (self.verification_code_expires_at is None):
            raise ValueError("verification_code and its expiry must be set together")
        if (self.reset_token is None) != (self.reset_token_expires_at is None):
            raise ValueError("reset_token and its expiry must be set together")
        return self

    @property
    def has_pending_reset(self) -> bool:
        return self.reset_token is not None

    def to_public(self) -> PublicAccount:
        """Return sanitized view without password hash or one-time secrets."""
        return PublicAccount(
            id=self.user_id,
            email=self.email,
            name=self.name,
            is_verified=self.is_verified,
            last_login_at=self.last_login_at,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class SignupRequest(BaseModel):
    """Signup request payload."""

    email: str = Field(min_length=3, max_length=254)
    password: str = Field(min_length=1, max_length=256)
    name: str = Field(min_length=1, max_length=120)


class LoginRequest(BaseModel):
    """Login request payload."""

    email: str = Field(min_length=3, max_length=254)
    password: str = Field(min_length=1, max_length=256)


class VerifyEmailRequest(BaseModel):
    """Email verification payload; ``email`` narrows the code lookup."""

    code: str = Field(pattern=r"^\d{6}$")
    email: str | None = Field(default=None, min_length=3, max_length=254)


class ForgotPasswordRequest(BaseModel):
    """Forgot password request payload."""

    email: str = Field(min_length=3, max_length=254)


class ResetPasswordRequest(BaseModel):
    """Reset password payload; the token travels in the URL path."""

    password: str = Field(min_length=1, max_length=256)


class IssuedSessionToken(BaseModel):
    """Signed session token plus the values the transport needs."""

    token: str
    user_id: str
    issued_at: datetime
    expires_at: datetime
    max_age_seconds: int


class AuthOutcome(BaseModel):
    """Result of an orchestrator operation."""

    message: str
    account: Account | None = None
    session: IssuedSessionToken | None = None
    warnings: list[str] = Field(default_factory=list)
