from __future__ import annotations

from eatwise_auth.api.errors import to_error_payload
from eatwise_auth.auth.errors import InvalidCredentialsError


def test_to_error_payload_preserves_structured_detail() -> None:
    payload = to_error_payload(
        {"error_code": "AUTH_TOKEN_INVALID", "message": "Invalid"},
        401,
    )

    assert payload == {
        "success": False,
        "error_code": "AUTH_TOKEN_INVALID",
        "message": "Invalid",
    }


def test_to_error_payload_normalizes_plain_string() -> None:
    payload = to_error_payload("boom", 500)

    assert payload == {"success": False, "error_code": "HTTP_500", "message": "boom"}


def test_auth_errors_carry_code_and_message() -> None:
    error = InvalidCredentialsError()

    assert error.status_code == 400
    assert error.error_code == "AUTH_INVALID_CREDENTIALS"
    assert error.message == "Invalid credentials"
