"""Security primitives for password hashing and token signing."""

from __future__ import annotations

import base64
import hashlib
import hmac
import json
import os
import time
from typing import Any

PBKDF2_ALGORITHM = "pbkdf2_sha256"
PBKDF2_ROUNDS = 240_000


class TokenError(ValueError):
    """Base class for signed token verification failures."""


class InvalidSignatureError(TokenError):
    """Token is malformed, tampered with, or signed by another key."""


class ExpiredError(TokenError):
    """Token signature is valid but its ``exp`` claim has passed."""


def _b64url_encode(raw: bytes) -> str:
    """Return URL-safe base64 string without padding."""
    return base64.urlsafe_b64encode(raw).decode("utf-8").rstrip("=")


def _b64url_decode(value: str) -> bytes:
    """Decode URL-safe base64 string with optional missing padding."""
    padding = "=" * (-len(value) % 4)
    return base64.urlsafe_b64decode((value + padding).encode("utf-8"))


def hash_password(password: str, *, rounds: int = PBKDF2_ROUNDS) -> str:
    """Hash password using PBKDF2-HMAC-SHA256 with random salt."""
    salt = os.urandom(16)
    derived = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return f"{PBKDF2_ALGORITHM}${rounds}${_b64url_encode(salt)}${_b64url_encode(derived)}"


def verify_password(password: str, stored_hash: str) -> bool:
    """Verify password against a stored PBKDF2 hash.

    Unparseable hashes verify as ``False`` instead of raising so a damaged
    record behaves like a wrong password.
    """
    try:
        algo, rounds_raw, salt_b64, digest_b64 = stored_hash.split("$", 3)
        if algo != PBKDF2_ALGORITHM:
            return False
        rounds = int(rounds_raw)
        salt = _b64url_decode(salt_b64)
        expected = _b64url_decode(digest_b64)
    except (ValueError, TypeError):
        return False

    derived = hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, rounds)
    return hmac.compare_digest(derived, expected)


def _sign(signing_input: bytes, secret_key: str) -> bytes:
    return hmac.new(secret_key.encode("utf-8"), signing_input, hashlib.sha256).digest()


def build_signed_token(payload: dict[str, Any], secret_key: str) -> str:
    """Create compact signed token using JWT-like 3-part structure."""
    header = {"alg": "HS256", "typ": "JWT"}
    header_part = _b64url_encode(json.dumps(header, separators=(",", ":")).encode("utf-8"))
    payload_part = _b64url_encode(json.dumps(payload, separators=(",", ":")).encode("utf-8"))
    signature = _sign(f"{header_part}.{payload_part}".encode("utf-8"), secret_key)
    return f"{header_part}.{payload_part}.{_b64url_encode(signature)}"


def decode_signed_token(
    token: str, secret_key: str, *, now: int | None = None
) -> dict[str, Any]:
    """Decode and verify compact signed token.

    Raises ``InvalidSignatureError`` for anything structurally wrong and
    ``ExpiredError`` once ``exp`` is at or before ``now``.
    """
    try:
        header_part, payload_part, signature_part = token.split(".")
    except ValueError as exc:
        raise InvalidSignatureError("Malformed token") from exc

    try:
        got_sig = _b64url_decode(signature_part)
    except ValueError as exc:
        raise InvalidSignatureError("Malformed token signature") from exc

    expected_sig = _sign(f"{header_part}.{payload_part}".encode("utf-8"), secret_key)
    if not hmac.compare_digest(expected_sig, got_sig):
        raise InvalidSignatureError("Invalid token signature")

    try:
        payload = json.loads(_b64url_decode(payload_part).decode("utf-8"))
    except ValueError as exc:
        raise InvalidSignatureError("Invalid token payload") from exc
    if not isinstance(payload, dict):
        raise InvalidSignatureError("Invalid token payload")

    try:
        exp = int(payload.get("exp") or 0)
    except (TypeError, ValueError) as exc:
        raise InvalidSignatureError("Invalid token expiry") from exc
    if not exp:
        raise InvalidSignatureError("Token has no expiry")

    current = int(time.time()) if now is None else now
    if exp <= current:
        raise ExpiredError("Token expired")

    return payload
