"""Public API response contracts."""

from eatwise_auth.api.contracts.models import (
    ApiErrorResponse,
    AuthResponse,
    HealthResponse,
    PublicAccount,
)

__all__ = [
    "ApiErrorResponse",
    "AuthResponse",
    "HealthResponse",
    "PublicAccount",
]
