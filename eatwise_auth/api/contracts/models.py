"""Pydantic API response models used in OpenAPI contracts."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class ApiErrorResponse(BaseModel):
    """Stable error envelope for API responses."""

    success: Literal[False] = False
    error_code: str = Field(description="Machine-readable error code")
    message: str = Field(description="Human-readable error message")


class HealthResponse(BaseModel):
    """Health check response payload."""

    status: Literal["ok"]


class PublicAccount(BaseModel):
    """Sanitized account view returned to clients."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    email: str
    name: str
    is_verified: bool
    last_login_at: datetime | None = None
    created_at: datetime
    updated_at: datetime


class AuthResponse(BaseModel):
    """Success envelope shared by all auth endpoints."""

    success: Literal[True] = True
    message: str | None = None
    user: PublicAccount | None = None
    warnings: list[str] = Field(default_factory=list)
