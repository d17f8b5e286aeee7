"""FastAPI dependencies resolving the session token from a request."""

from __future__ import annotations

from typing import Callable

from fastapi import Request

from eatwise_auth.auth.models import Account
from eatwise_auth.auth.service import AuthService


def extract_session_token(request: Request, cookie_name: str) -> str:
    """Return the session token from the cookie, else a Bearer header."""
    token = request.cookies.get(cookie_name, "")
    if token:
        return token
    parts = request.headers.get("authorization", "").strip().split(" ", 1)
    if len(parts) == 2 and parts[0].lower() == "bearer":
        return parts[1].strip()
    return ""


def create_current_account_dependency(
    service: AuthService, cookie_name: str
) -> Callable[[Request], Account]:
    """Build a dependency that raises 401/404 unless the session resolves."""

    def current_account(request: Request) -> Account:
        token = extract_session_token(request, cookie_name)
        account = service.authenticate(token)
        request.state.user_id = account.user_id
        return account

    return current_account
