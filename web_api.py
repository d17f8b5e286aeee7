from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime
from pathlib import Path
from typing import AsyncIterator, Callable

from dotenv import load_dotenv
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from eatwise_auth.api.contracts import HealthResponse
from eatwise_auth.api.http_setup import register_exception_handlers, register_http_middleware
from eatwise_auth.auth.models import utc_now
from eatwise_auth.auth.repository import AccountRepository
from eatwise_auth.auth.router import create_auth_router
from eatwise_auth.auth.service import AuthService
from eatwise_auth.auth.tokens import SessionTokenCodec
from eatwise_auth.core.config import AppConfig
from eatwise_auth.core.logging import setup_logging
from eatwise_auth.core.mongo_migrations import apply_mongo_migrations
from eatwise_auth.notifications.mailer import NotificationSender, build_notification_sender

load_dotenv()
APP_CONFIG = AppConfig.from_env()
setup_logging(APP_CONFIG.logging.level)
LOGGER = logging.getLogger(__name__)

APP_ROOT = Path(__file__).resolve().parent


def create_app(
    config: AppConfig = APP_CONFIG,
    *,
    repo: AccountRepository | None = None,
    notifier: NotificationSender | None = None,
    clock: Callable[[], datetime] = utc_now,
) -> FastAPI:
    apply_mongo_migrations(config.mongo)
    account_repo = repo or AccountRepository(config.mongo, APP_ROOT)

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        yield
        if repo is None:
            account_repo.close()

    app = FastAPI(title="EatWise Auth API", version="1.0.0", lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.security.cors_allowed_origins,
        allow_credentials=True,
        allow_methods=["GET", "POST", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type"],
    )
    register_http_middleware(app, config=config, logger=LOGGER)
    register_exception_handlers(app, logger=LOGGER)

    auth_service = AuthService(
        repo=account_repo,
        codec=SessionTokenCodec(config.auth),
        notifier=notifier or build_notification_sender(config.mail),
        config=config.auth,
        client_url=config.mail.client_url,
        clock=clock,
    )
    app.include_router(create_auth_router(auth_service, config.auth))

    @app.get("/api/health", response_model=HealthResponse)
    def health() -> HealthResponse:
        return HealthResponse(status="ok")

    LOGGER.info(
        "app_created store=%s",
        "mongo" if getattr(account_repo, "uses_mongo", False) else "file",
    )
    return app


app = create_app()
