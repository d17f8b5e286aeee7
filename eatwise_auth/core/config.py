"""Application configuration loaded from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass

DEV_SECRET_KEY = "dev-insecure-secret-change-me"


@dataclass(frozen=True)
class AuthConfig:
    """Session and one-time credential settings."""

    secret_key: str
    issuer: str
    session_ttl_seconds: int
    cookie_name: str
    cookie_secure: bool
    verification_code_ttl_seconds: int
    reset_token_ttl_seconds: int


@dataclass(frozen=True)
class MongoConfig:
    """Credential store connection settings."""

    uri: str
    database: str
    fallback_dir: str


@dataclass(frozen=True)
class MailConfig:
    """Transactional email provider settings."""

    api_token: str
    api_url: str
    sender_email: str
    sender_name: str
    company_name: str
    welcome_template_uuid: str
    client_url: str
    timeout_seconds: int


@dataclass(frozen=True)
class LoggingConfig:
    """Structured logging configuration."""

    level: str


@dataclass(frozen=True)
class SecurityConfig:
    """API perimeter security settings."""

    cors_allowed_origins: list[str]
    request_max_bytes: int


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""

    environment: str
    auth: AuthConfig
    mongo: MongoConfig
    mail: MailConfig
    logging: LoggingConfig
    security: SecurityConfig

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    @staticmethod
    def from_env() -> "AppConfig":
        """Build app config from process environment."""
        environment = os.getenv("APP_ENV", "development").strip().lower() or "development"
        is_production = environment == "production"

        secret_key = os.getenv("AUTH_SECRET_KEY", "").strip()
        if not secret_key:
            if is_production:
                raise ValueError("AUTH_SECRET_KEY must be set when APP_ENV=production")
            secret_key = DEV_SECRET_KEY
        elif is_production and len(secret_key) < 32:
            raise ValueError("AUTH_SECRET_KEY must be at least 32 characters long")

        issuer = os.getenv("AUTH_ISSUER", "eatwise-auth").strip() or "eatwise-auth"
        session_ttl = int(os.getenv("AUTH_SESSION_TTL_SECONDS", str(7 * 24 * 60 * 60)))
        cookie_name = os.getenv("AUTH_COOKIE_NAME", "token").strip() or "token"
        verification_ttl = int(
            os.getenv("AUTH_VERIFICATION_CODE_TTL_SECONDS", str(24 * 60 * 60))
        )
        reset_ttl = int(os.getenv("AUTH_RESET_TOKEN_TTL_SECONDS", str(30 * 60)))

        mongo_uri = os.getenv("MONGODB_URI", "").strip()
        mongo_db = os.getenv("MONGODB_DB", "eatwise").strip() or "eatwise"
        fallback_dir = (
            os.getenv("AUTH_STORE_DIR", "runtime/auth_store").strip()
            or "runtime/auth_store"
        )

        mail_token = os.getenv("MAILTRAP_TOKEN", "").strip()
        mail_api_url = (
            os.getenv("MAILTRAP_API_URL", "https://send.api.mailtrap.io/api/send").strip()
            or "https://send.api.mailtrap.io/api/send"
        )
        sender_email = (
            os.getenv("MAIL_SENDER_EMAIL", "hello@demomailtrap.com").strip()
            or "hello@demomailtrap.com"
        )
        sender_name = os.getenv("MAIL_SENDER_NAME", "EatWise").strip() or "EatWise"
        company_name = os.getenv("MAIL_COMPANY_NAME", sender_name).strip() or sender_name
        welcome_template_uuid = os.getenv("MAILTRAP_WELCOME_TEMPLATE_UUID", "").strip()
        client_url = (
            os.getenv("CLIENT_URL", "http://localhost:5173").strip().rstrip("/")
            or "http://localhost:5173"
        )
        mail_timeout = int(os.getenv("MAIL_TIMEOUT_SECONDS", "10"))

        log_level = os.getenv("LOG_LEVEL", "INFO").strip() or "INFO"
        cors_allowed_origins = [
            origin.strip()
            for origin in os.getenv("CORS_ALLOWED_ORIGINS", client_url).split(",")
            if origin.strip()
        ]
        request_max_bytes = int(os.getenv("REQUEST_MAX_BYTES", str(64 * 1024)))

        return AppConfig(
            environment=environment,
            auth=AuthConfig(
                secret_key=secret_key,
                issuer=issuer,
                session_ttl_seconds=session_ttl,
                cookie_name=cookie_name,
                cookie_secure=is_production,
                verification_code_ttl_seconds=verification_ttl,
                reset_token_ttl_seconds=reset_ttl,
            ),
            mongo=MongoConfig(
                uri=mongo_uri,
                database=mongo_db,
                fallback_dir=fallback_dir,
            ),
            mail=MailConfig(
                api_token=mail_token,
                api_url=mail_api_url,
                sender_email=sender_email,
                sender_name=sender_name,
                company_name=company_name,
                welcome_template_uuid=welcome_template_uuid,
                client_url=client_url,
                timeout_seconds=mail_timeout,
            ),
            logging=LoggingConfig(level=log_level),
            security=SecurityConfig(
                cors_allowed_origins=cors_allowed_origins,
                request_max_bytes=request_max_bytes,
            ),
        )
