"""One-time verification codes and password reset tokens."""

from __future__ import annotations

import secrets

VERIFICATION_CODE_MIN = 100_000
VERIFICATION_CODE_MAX = 999_999
RESET_TOKEN_BYTES = 20


def generate_verification_code() -> str:
    """Return a 6-digit code in 100000-999999; no leading zeros."""
    span = VERIFICATION_CODE_MAX - VERIFICATION_CODE_MIN + 1
    return str(VERIFICATION_CODE_MIN + secrets.randbelow(span))


def generate_reset_token() -> str:
    """Return a URL-safe hex reset token (40 chars)."""
    return secrets.token_hex(RESET_TOKEN_BYTES)
