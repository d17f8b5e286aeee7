from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any

from eatwise_auth.auth.models import Account
from eatwise_auth.auth.repository import DuplicateAccountError
from eatwise_auth.core.config import (
    AppConfig,
    AuthConfig,
    LoggingConfig,
    MailConfig,
    MongoConfig,
    SecurityConfig,
)
from eatwise_auth.notifications.mailer import NotificationError

START = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@dataclass
class FixedClock:
    now: datetime = START

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now = self.now + timedelta(**delta)


@dataclass
class InMemoryAccounts:
    accounts: dict[str, Account] = field(default_factory=dict)

    def get_by_email(self, email: str) -> Account | None:
        return next((a for a in self.accounts.values() if a.email == email), None)

    def get_by_id(self, user_id: str) -> Account | None:
        return self.accounts.get(user_id)

    def consume_verification_code(
        self,
        code: str,
        now: datetime,
        changes: dict[str, Any],
        email: str | None = None,
    ) -> Account | None:
        for account in list(self.accounts.values()):
            if account.verification_code != code:
                continue
            if email is not None and account.email != email:
                continue
            if account.verification_code_expires_at and account.verification_code_expires_at > now:
                return self._apply(account, changes)
        return None

    def consume_reset_token(
        self, token: str, now: datetime, changes: dict[str, Any]
    ) -> Account | None:
        for account in list(self.accounts.values()):
            if account.reset_token == token and account.reset_token_expires_at and account.reset_token_expires_at > now:
                return self._apply(account, changes)
        return None

    def _apply(self, account: Account, changes: dict[str, Any]) -> Account:
        updated = account.model_copy(update=changes)
        self.accounts[account.user_id] = updated
        return updated

    def create(self, account: Account) -> None:
        if self.get_by_email(account.email) is not None:
            raise DuplicateAccountError(account.email)
        self.accounts[account.user_id] = account

    def save(self, account: Account) -> None:
        self.accounts[account.user_id] = account


@dataclass
class RecordingNotifier:
    sent: list[tuple[str, str, str]] = field(default_factory=list)
    failing: set[str] = field(default_factory=set)

    def _record(self, kind: str, email: str, value: str = "") -> None:
        if kind in self.failing:
            raise NotificationError(f"{kind} provider down")
        self.sent.append((kind, email, value))

    def send_verification(self, email: str, code: str) -> None:
        self._record("verification", email, code)

    def send_welcome(self, email: str, name: str) -> None:
        self._record("welcome", email, name)

    def send_password_reset_request(self, email: str, reset_url: str) -> None:
        self._record("password_reset_request", email, reset_url)

    def send_password_reset_success(self, email: str) -> None:
        self._record("password_reset_success", email)

    def kinds(self) -> list[str]:
        return [kind for kind, _, _ in self.sent]


def auth_config(**overrides: object) -> AuthConfig:
    values: dict[str, object] = {
        "secret_key": "test-secret",
        "issuer": "eatwise-test",
        "session_ttl_seconds": 7 * 24 * 60 * 60,
        "cookie_name": "token",
        "cookie_secure": False,
        "verification_code_ttl_seconds": 24 * 60 * 60,
        "reset_token_ttl_seconds": 30 * 60,
    }
    values.update(overrides)
    return AuthConfig(**values)  # type: ignore[arg-type]


def app_config(fallback_dir: str = "runtime/auth_store", request_max_bytes: int = 64 * 1024) -> AppConfig:
    return AppConfig(
        environment="test",
        auth=auth_config(),
        mongo=MongoConfig(uri="", database="eatwise_test", fallback_dir=fallback_dir),
        mail=MailConfig(
            api_token="",
            api_url="https://mail.test/api/send",
            sender_email="hello@eatwise.test",
            sender_name="EatWise",
            company_name="EatWise",
            welcome_template_uuid="",
            client_url="http://client.test",
            timeout_seconds=5,
        ),
        logging=LoggingConfig(level="INFO"),
        security=SecurityConfig(
            cors_allowed_origins=["http://client.test"],
            request_max_bytes=request_max_bytes,
        ),
    )
