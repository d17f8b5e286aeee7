"""Authentication service: signup, verification, login and password reset."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timedelta
from functools import lru_cache
from typing import Callable, Iterator

from eatwise_auth.api.errors import ApiErrorCode
from eatwise_auth.auth.errors import (
    ConflictError,
    DownstreamError,
    InvalidCredentialsError,
    InvalidOrExpiredError,
    NotFoundError,
    UnauthenticatedError,
    ValidationError,
)
from eatwise_auth.auth.models import Account, AuthOutcome, utc_now
from eatwise_auth.auth.one_time import generate_reset_token, generate_verification_code
from eatwise_auth.auth.repository import (
    AccountRepository,
    AccountStoreError,
    DuplicateAccountError,
)
from eatwise_auth.auth.tokens import SessionTokenCodec
from eatwise_auth.core.config import AuthConfig
from eatwise_auth.core.security import (
    ExpiredError,
    InvalidSignatureError,
    hash_password,
    verify_password,
)
from eatwise_auth.notifications.mailer import NotificationError, NotificationSender

LOGGER = logging.getLogger(__name__)

FORGOT_PASSWORD_ACK = "If an account exists for this email, a password reset link has been sent"


@lru_cache(maxsize=1)
def _dummy_password_hash() -> str:
    # Verified against for unknown emails so login timing does not reveal existence.
    return hash_password("eatwise-timing-equalizer")


class AuthService:
    """Account lifecycle orchestrator.

    Verification axis is one-way (unverified -> verified). Reset axis cycles
    between no pending reset and pending reset via ``forgot_password`` and
    ``reset_password`` or natural expiry.

    Email delivery happens after the store write and is not transactional
    with it: when a send fails the write stands and the outcome carries a
    warning instead of an error. Nothing is retried.
    """

    def __init__(
        self,
        repo: AccountRepository,
        codec: SessionTokenCodec,
        notifier: NotificationSender,
        config: AuthConfig,
        *,
        client_url: str,
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        """Initialize service dependencies."""
        self._repo = repo
        self._codec = codec
        self._notifier = notifier
        self._config = config
        self._client_url = client_url.rstrip("/")
        self._clock = clock

    @contextmanager
    def _store(self) -> Iterator[None]:
        try:
            yield
        except AccountStoreError as exc:
            LOGGER.exception("account_store_failed")
            raise DownstreamError("Account storage is unavailable") from exc

    def _notify(self, name: str, account: Account, send: Callable[[], None]) -> str | None:
        """Run ``send``; return a warning code instead of raising on failure."""
        try:
            send()
        except NotificationError:
            LOGGER.error(
                "notification_not_delivered",
                extra={"user_id": account.user_id, "notification": name},
            )
            return f"{name}_email_not_sent"
        return None

    def signup(self, email: str, password: str, name: str) -> AuthOutcome:
        """Create an unverified account, start a session and email the code."""
        email = (email or "").strip()
        name = (name or "").strip()
        if not email or not password or not name:
            raise ValidationError("All fields are required")

        with self._store():
            if self._repo.get_by_email(email) is not None:
                raise ConflictError()

        now = self._clock()
        code = generate_verification_code()
        account = Account(
            user_id=uuid.uuid4().hex,
            email=email,
            password_hash=hash_password(password),
            name=name,
            is_verified=False,
            verification_code=code,
            verification_code_expires_at=now
            + timedelta(seconds=self._config.verification_code_ttl_seconds),
            created_at=now,
            updated_at=now,
        )
        with self._store():
            try:
                self._repo.create(account)
            except DuplicateAccountError as exc:
                # Lost a concurrent signup race; the store's unique index decided.
                raise ConflictError() from exc
        LOGGER.info("account_created", extra={"user_id": account.user_id})

        session = self._codec.issue(account.user_id, now=now)
        warning = self._notify(
            "verification",
            account,
            lambda: self._notifier.send_verification(account.email, code),
        )
        return AuthOutcome(
            message="User created successfully",
            account=account,
            session=session,
            warnings=[warning] if warning else [],
        )

    def verify_email(self, code: str, email: str | None = None) -> AuthOutcome:
        """Mark the account holding a live ``code`` as verified.

        Without ``email`` the code is matched against every account in the
        store; with it, only that account's code is considered.
        """
        code = (code or "").strip()
        now = self._clock()
        verified = None
        if code:
            with self._store():
                verified = self._repo.consume_verification_code(
                    code,
                    now,
                    {
                        "is_verified": True,
                        "verification_code": None,
                        "verification_code_expires_at": None,
                        "updated_at": now,
                    },
                    email=email.strip() if email else None,
                )
        if verified is None:
            raise InvalidOrExpiredError("Verification code is invalid or expired")
        LOGGER.info("email_verified", extra={"user_id": verified.user_id})

        warning = self._notify(
            "welcome",
            verified,
            lambda: self._notifier.send_welcome(verified.email, verified.name),
        )
        return AuthOutcome(
            message="Email verified",
            account=verified,
            warnings=[warning] if warning else [],
        )

    def login(self, email: str, password: str) -> AuthOutcome:
        """Check credentials, start a session and record the login time."""
        with self._store():
            account = self._repo.get_by_email((email or "").strip())
        if account is None:
            verify_password(password or "", _dummy_password_hash())
            raise InvalidCredentialsError()
        if not verify_password(password or "", account.password_hash):
            raise InvalidCredentialsError()

        now = self._clock()
        session = self._codec.issue(account.user_id, now=now)
        logged_in = account.model_copy(update={"last_login_at": now, "updated_at": now})
        with self._store():
            self._repo.save(logged_in)
        LOGGER.info("login_succeeded", extra={"user_id": logged_in.user_id})
        return AuthOutcome(message="Login successful", account=logged_in, session=session)

    def logout(self) -> AuthOutcome:
        """Sessions are stateless; the transport drops the cookie."""
        return AuthOutcome(message="Logged out successfully")

    def forgot_password(self, email: str) -> AuthOutcome:
        """Issue a reset token and email the link.

        The acknowledgment is identical whether or not the email is
        registered, and a failed send is only logged.
        """
        email = (email or "").strip()
        if not email:
            raise ValidationError("Email is required")

        with self._store():
            account = self._repo.get_by_email(email)
        if account is None:
            LOGGER.info("password_reset_requested_for_unknown_email")
            return AuthOutcome(message=FORGOT_PASSWORD_ACK)

        now = self._clock()
        token = generate_reset_token()
        pending = account.model_copy(
            update={
                "reset_token": token,
                "reset_token_expires_at": now
                + timedelta(seconds=self._config.reset_token_ttl_seconds),
                "updated_at": now,
            }
        )
        with self._store():
            self._repo.save(pending)
        LOGGER.info("password_reset_requested", extra={"user_id": pending.user_id})

        reset_url = f"{self._client_url}/reset-password/{token}"
        self._notify(
            "password_reset_request",
            pending,
            lambda: self._notifier.send_password_reset_request(pending.email, reset_url),
        )
        return AuthOutcome(message=FORGOT_PASSWORD_ACK)

    def reset_password(self, token: str, new_password: str) -> AuthOutcome:
        """Consume a live reset token and replace the password hash."""
        if not new_password:
            raise ValidationError("Password is required")

        token = (token or "").strip()
        now = self._clock()
        updated = None
        if token:
            changes = {
                "password_hash": hash_password(new_password),
                "reset_token": None,
                "reset_token_expires_at": None,
                "updated_at": now,
            }
            with self._store():
                updated = self._repo.consume_reset_token(token, now, changes)
        if updated is None:
            raise InvalidOrExpiredError("Invalid or expired reset token")
        LOGGER.info("password_reset_completed", extra={"user_id": updated.user_id})

        warning = self._notify(
            "reset_success",
            updated,
            lambda: self._notifier.send_password_reset_success(updated.email),
        )
        return AuthOutcome(
            message="Password reset successfully",
            warnings=[warning] if warning else [],
        )

    def get_account(self, user_id: str) -> Account:
        """Load the account a session points at."""
        with self._store():
            account = self._repo.get_by_id(user_id)
        if account is None:
            raise NotFoundError()
        return account

    def authenticate(self, session_token: str | None) -> Account:
        """Resolve a session token to its account or raise 401/404."""
        if not session_token:
            raise UnauthenticatedError("No token provided", ApiErrorCode.AUTH_MISSING_TOKEN)
        try:
            user_id = self._codec.verify(session_token, now=self._clock())
        except ExpiredError as exc:
            raise UnauthenticatedError(
                "Session expired", ApiErrorCode.AUTH_TOKEN_EXPIRED
            ) from exc
        except InvalidSignatureError as exc:
            raise UnauthenticatedError("Invalid token") from exc

        return self.get_account(user_id)

    def check_authentication(self, session_token: str | None) -> AuthOutcome:
        return AuthOutcome(message="Authenticated", account=self.authenticate(session_token))
