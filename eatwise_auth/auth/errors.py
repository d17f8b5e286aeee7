"""Authentication failure taxonomy.

Every error is an ``ApiError`` so the shared exception handlers render it into
the ``success=false`` envelope without per-route translation.
"""

from __future__ import annotations

from eatwise_auth.api.errors import ApiError, ApiErrorCode


class ValidationError(ApiError):
    """Required input is missing or blank."""

    def __init__(self, message: str = "All fields are required") -> None:
        super().__init__(
            status_code=400, error_code=ApiErrorCode.VALIDATION_ERROR, message=message
        )


class ConflictError(ApiError):
    """An account with this email already exists."""

    def __init__(self, message: str = "User already exists") -> None:
        super().__init__(
            status_code=409, error_code=ApiErrorCode.AUTH_ACCOUNT_EXISTS, message=message
        )


class InvalidCredentialsError(ApiError):
    """Unknown email or wrong password; deliberately indistinguishable."""

    def __init__(self) -> None:
        super().__init__(
            status_code=400,
            error_code=ApiErrorCode.AUTH_INVALID_CREDENTIALS,
            message="Invalid credentials",
        )


class InvalidOrExpiredError(ApiError):
    """Verification code or reset token does not match a live credential."""

    def __init__(self, message: str = "Code is invalid or expired") -> None:
        super().__init__(
            status_code=400, error_code=ApiErrorCode.AUTH_CODE_INVALID, message=message
        )


class UnauthenticatedError(ApiError):
    """Session token is missing, malformed, forged, or expired."""

    def __init__(
        self,
        message: str = "Not authenticated",
        error_code: ApiErrorCode = ApiErrorCode.AUTH_TOKEN_INVALID,
    ) -> None:
        super().__init__(status_code=401, error_code=error_code, message=message)


class NotFoundError(ApiError):
    """Session referenced an account that no longer exists."""

    def __init__(self, message: str = "User not found") -> None:
        super().__init__(
            status_code=404,
            error_code=ApiErrorCode.AUTH_ACCOUNT_NOT_FOUND,
            message=message,
        )


class DownstreamError(ApiError):
    """Credential store or email provider failed."""

    def __init__(self, message: str = "Upstream service unavailable") -> None:
        super().__init__(
            status_code=502,
            error_code=ApiErrorCode.DOWNSTREAM_UNAVAILABLE,
            message=message,
        )
