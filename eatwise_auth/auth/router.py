"""Authentication API router."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from eatwise_auth.api.contracts import ApiErrorResponse, AuthResponse
from eatwise_auth.auth.dependencies import create_current_account_dependency
from eatwise_auth.auth.models import (
    Account,
    AuthOutcome,
    ForgotPasswordRequest,
    IssuedSessionToken,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
    VerifyEmailRequest,
)
from eatwise_auth.auth.service import AuthService
from eatwise_auth.core.config import AuthConfig

_ERRORS_400 = {400: {"model": ApiErrorResponse}, 422: {"model": ApiErrorResponse}}


def _to_response(outcome: AuthOutcome) -> AuthResponse:
    return AuthResponse(
        message=outcome.message,
        user=outcome.account.to_public() if outcome.account else None,
        warnings=outcome.warnings,
    )


def create_auth_router(service: AuthService, config: AuthConfig) -> APIRouter:
    """Build authentication router; the session cookie is handled here only."""
    router = APIRouter(prefix="/api/auth", tags=["auth"])
    current_account = create_current_account_dependency(service, config.cookie_name)

    def attach_session(response: Response, session: IssuedSessionToken | None) -> None:
        if session is None:
            return
        response.set_cookie(
            config.cookie_name,
            value=session.token,
            max_age=session.max_age_seconds,
            httponly=True,
            secure=config.cookie_secure,
            samesite="strict",
            path="/",
        )
        response.headers["Cache-Control"] = "no-store"

    @router.post(
        "/signup",
        status_code=201,
        response_model=AuthResponse,
        responses={**_ERRORS_400, 409: {"model": ApiErrorResponse}},
    )
    def signup(req: SignupRequest, response: Response) -> AuthResponse:
        """Register an account and start an unverified session."""
        outcome = service.signup(req.email, req.password, req.name)
        attach_session(response, outcome.session)
        return _to_response(outcome)

    @router.post("/login", response_model=AuthResponse, responses=_ERRORS_400)
    def login(req: LoginRequest, response: Response) -> AuthResponse:
        """Authenticate with email and password."""
        outcome = service.login(req.email, req.password)
        attach_session(response, outcome.session)
        return _to_response(outcome)

    @router.post("/logout", response_model=AuthResponse)
    def logout(response: Response) -> AuthResponse:
        """Clear the session cookie."""
        outcome = service.logout()
        response.delete_cookie(
            config.cookie_name,
            path="/",
            httponly=True,
            secure=config.cookie_secure,
            samesite="strict",
        )
        return _to_response(outcome)

    @router.post("/verify-email", response_model=AuthResponse, responses=_ERRORS_400)
    def verify_email(req: VerifyEmailRequest) -> AuthResponse:
        """Confirm email ownership with the emailed 6-digit code."""
        return _to_response(service.verify_email(req.code, email=req.email))

    @router.post("/forgot-password", response_model=AuthResponse, responses=_ERRORS_400)
    def forgot_password(req: ForgotPasswordRequest) -> AuthResponse:
        """Email a reset link if the account exists."""
        return _to_response(service.forgot_password(req.email))

    @router.post(
        "/reset-password/{token}", response_model=AuthResponse, responses=_ERRORS_400
    )
    def reset_password(token: str, req: ResetPasswordRequest) -> AuthResponse:
        """Set a new password using the emailed reset token."""
        return _to_response(service.reset_password(token, req.password))

    @router.get(
        "/check-authentication",
        response_model=AuthResponse,
        responses={401: {"model": ApiErrorResponse}, 404: {"model": ApiErrorResponse}},
    )
    def check_authentication(account: Account = Depends(current_account)) -> AuthResponse:
        """Return the account behind the session cookie."""
        return AuthResponse(user=account.to_public())

    return router
