"""Transactional email delivery for account lifecycle events."""

from __future__ import annotations

import logging
from typing import Any, Protocol

import requests

from eatwise_auth.core.config import MailConfig
from eatwise_auth.notifications.templates import (
    PASSWORD_RESET_REQUEST_TEMPLATE,
    PASSWORD_RESET_SUCCESS_TEMPLATE,
    VERIFICATION_EMAIL_TEMPLATE,
    WELCOME_EMAIL_TEMPLATE,
    render_email,
)

LOGGER = logging.getLogger(__name__)


class NotificationError(RuntimeError):
    """Email could not be handed to the provider."""


class NotificationSender(Protocol):
    """Outbound notifications triggered by the auth service."""

    def send_verification(self, email: str, code: str) -> None: ...

    def send_welcome(self, email: str, name: str) -> None: ...

    def send_password_reset_request(self, email: str, reset_url: str) -> None: ...

    def send_password_reset_success(self, email: str) -> None: ...


class MailtrapNotificationSender:
    """Send emails through the Mailtrap send API."""

    def __init__(self, config: MailConfig, session: requests.Session | None = None) -> None:
        self._config = config
        self._session = session or requests.Session()

    def _sender(self) -> dict[str, str]:
        return {"email": self._config.sender_email, "name": self._config.sender_name}

    def _html(self, template: str, **values: str) -> str:
        return render_email(template, sender_name=self._config.sender_name, **values)

    def _send(self, notification: str, message: dict[str, Any]) -> None:
        body = {"from": self._sender(), **message}
        try:
            response = self._session.post(
                self._config.api_url,
                json=body,
                headers={"Authorization": f"Bearer {self._config.api_token}"},
                timeout=self._config.timeout_seconds,
            )
            response.raise_for_status()
        except requests.RequestException as exc:
            LOGGER.error(
                "notification_failed",
                extra={"notification": notification},
                exc_info=True,
            )
            raise NotificationError(f"Error sending {notification} email: {exc}") from exc
        LOGGER.info("notification_sent", extra={"notification": notification})

    def send_verification(self, email: str, code: str) -> None:
        self._send(
            "verification",
            {
                "to": [{"email": email}],
                "subject": "Verify your email",
                "html": self._html(VERIFICATION_EMAIL_TEMPLATE, verification_code=code),
                "category": "Email verification",
            },
        )

    def send_welcome(self, email: str, name: str) -> None:
        # Mailtrap-hosted template when configured, inline HTML otherwise.
        if self._config.welcome_template_uuid:
            message: dict[str, Any] = {
                "to": [{"email": email}],
                "template_uuid": self._config.welcome_template_uuid,
                "template_variables": {
                    "company_info_name": self._config.company_name,
                    "name": name,
                },
            }
        else:
            message = {
                "to": [{"email": email}],
                "subject": f"Welcome to {self._config.company_name}",
                "html": self._html(
                    WELCOME_EMAIL_TEMPLATE,
                    company_name=self._config.company_name,
                    name=name,
                ),
                "category": "Welcome",
            }
        self._send("welcome", message)

    def send_password_reset_request(self, email: str, reset_url: str) -> None:
        self._send(
            "password_reset_request",
            {
                "to": [{"email": email}],
                "subject": "Reset your password",
                "html": self._html(PASSWORD_RESET_REQUEST_TEMPLATE, reset_url=reset_url),
                "category": "Password Reset",
            },
        )

    def send_password_reset_success(self, email: str) -> None:
        self._send(
            "password_reset_success",
            {
                "to": [{"email": email}],
                "subject": "Password Reset Successful",
                "html": self._html(PASSWORD_RESET_SUCCESS_TEMPLATE),
                "category": "Password Reset",
            },
        )


class LogOnlyNotificationSender:
    """Development sender that logs instead of delivering.

    Used when no Mailtrap token is configured. Codes and links are not logged.
    """

    def send_verification(self, email: str, code: str) -> None:
        LOGGER.info("notification_skipped", extra={"notification": "verification"})

    def send_welcome(self, email: str, name: str) -> None:
        LOGGER.info("notification_skipped", extra={"notification": "welcome"})

    def send_password_reset_request(self, email: str, reset_url: str) -> None:
        LOGGER.info("notification_skipped", extra={"notification": "password_reset_request"})

    def send_password_reset_success(self, email: str) -> None:
        LOGGER.info("notification_skipped", extra={"notification": "password_reset_success"})


def build_notification_sender(config: MailConfig) -> NotificationSender:
    """Pick the Mailtrap sender when a token is configured."""
    if config.api_token:
        return MailtrapNotificationSender(config)
    LOGGER.warning("mailtrap_token_missing_using_log_only_sender")
    return LogOnlyNotificationSender()
