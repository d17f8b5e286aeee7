from __future__ import annotations

import asyncio
import inspect
import json
import logging
from pathlib import Path
from typing import Any, Awaitable, Coroutine, cast

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.testclient import TestClient
from starlette.requests import Request
from starlette.responses import Response

from eatwise_auth.api.http_setup import (
    SECURITY_HEADERS,
    register_exception_handlers,
    register_http_middleware,
)
from eatwise_auth.auth.errors import ConflictError
from tests.fakes import app_config
from web_api import create_app

LOGGER = logging.getLogger(__name__)


def _request(path: str, method: str = "GET", headers: list[tuple[bytes, bytes]] | None = None) -> Request:
    scope: dict[str, Any] = {
        "type": "http",
        "asgi": {"version": "3.0"},
        "http_version": "1.1",
        "method": method,
        "scheme": "http",
        "path": path,
        "raw_path": path.encode("utf-8"),
        "query_string": b"",
        "root_path": "",
        "headers": headers or [],
        "client": ("127.0.0.1", 1234),
        "server": ("testserver", 80),
    }

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": b"", "more_body": False}

    return Request(scope, receive)


def _app() -> FastAPI:
    app = FastAPI()
    register_http_middleware(app, config=app_config(request_max_bytes=8), logger=LOGGER)
    register_exception_handlers(app, logger=LOGGER)
    return app


def _dispatch_by_name(app: FastAPI, name: str):
    for middleware in app.user_middleware:
        dispatch = middleware.kwargs.get("dispatch")
        if callable(dispatch) and getattr(dispatch, "__name__", "") == name:
            return dispatch
    raise AssertionError(f"Dispatch {name!r} not found")


def _resolve_response(result: Response | Awaitable[Response]) -> Response:
    if inspect.iscoroutine(result):
        return asyncio.run(cast(Coroutine[Any, Any, Response], result))
    return cast(Response, result)


def _body(response: Response) -> dict[str, Any]:
    return json.loads(bytes(response.body))


def test_http_setup_adds_security_headers_and_request_id() -> None:
    dispatch = _dispatch_by_name(_app(), "request_logging_middleware")
    request = _request("/ok", headers=[(b"x-request-id", b"req-123")])

    async def call_next(_request: Request) -> Response:
        return Response(content="ok", status_code=200)

    response = asyncio.run(dispatch(request, call_next))
    assert response.headers["X-Request-ID"] == "req-123"
    assert response.headers["X-Frame-Options"] == "DENY"
    assert response.headers["X-Content-Type-Options"] == "nosniff"
    assert response.headers["Permissions-Policy"] == "geolocation=(), microphone=(), camera=()"
    assert response.headers["Referrer-Policy"] == "no-referrer"


def test_http_setup_rejects_large_request_before_handler() -> None:
    dispatch = _dispatch_by_name(_app(), "request_size_limit_middleware")
    request = _request("/api/auth/signup", method="POST", headers=[(b"content-length", b"20")])

    async def call_next(_request: Request) -> Response:
        raise AssertionError("handler must not run")

    response = asyncio.run(dispatch(request, call_next))
    assert response.status_code == 413
    assert _body(response)["error_code"] == "REQUEST_TOO_LARGE"


def test_http_setup_serializes_auth_error_envelope() -> None:
    handler = _app().exception_handlers[HTTPException]

    response: Response = _resolve_response(handler(_request("/api/auth/signup"), ConflictError()))

    assert response.status_code == 409
    assert _body(response) == {
        "success": False,
        "error_code": "AUTH_ACCOUNT_EXISTS",
        "message": "User already exists",
    }


def test_http_setup_hides_unexpected_exception_details() -> None:
    handler = _app().exception_handlers[Exception]

    response: Response = _resolve_response(handler(_request("/boom"), RuntimeError("db password=x")))

    assert response.status_code == 500
    body = _body(response)
    assert body["error_code"] == "INTERNAL_SERVER_ERROR"
    assert "password" not in body["message"]


def test_http_setup_handles_validation_exception() -> None:
    handler = _app().exception_handlers[RequestValidationError]
    error = RequestValidationError(
        [{"loc": ("body", "code"), "msg": "String should match pattern", "type": "string_pattern_mismatch"}]
    )

    response: Response = _resolve_response(handler(_request("/validation"), error))

    assert response.status_code == 422
    body = _body(response)
    assert body["success"] is False
    assert body["error_code"] == "VALIDATION_ERROR"
    assert body["message"].startswith("code:")


def test_http_setup_applies_every_security_header_to_app_responses(tmp_path: Path) -> None:
    client = TestClient(create_app(app_config(fallback_dir=str(tmp_path / "auth_store"))))

    response = client.get("/api/health")

    assert response.status_code == 200
    for name, value in SECURITY_HEADERS.items():
        assert response.headers[name] == value
    assert "permissions-policy" in response.headers
