"""HTTP middleware and exception handler wiring for FastAPI apps."""

from __future__ import annotations

import uuid
from typing import Any, Mapping

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from eatwise_auth.api.contracts import ApiErrorResponse
from eatwise_auth.api.errors import ApiErrorCode, to_error_payload
from eatwise_auth.core.config import AppConfig
from eatwise_auth.core.logging import set_correlation_id

SECURITY_HEADERS: dict[str, str] = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "no-referrer",
    "Permissions-Policy": "geolocation=(), microphone=(), camera=()",
    "Content-Security-Policy": "default-src 'none'; frame-ancestors 'none'; base-uri 'none'",
}


def _error_response(
    status_code: int,
    error_code: str,
    message: str,
    headers: Mapping[str, str] | None = None,
) -> JSONResponse:
    """Render the ``success=false`` envelope shared by every auth failure."""
    return JSONResponse(
        status_code=status_code,
        content=ApiErrorResponse(error_code=error_code, message=message).model_dump(),
        headers=dict(headers) if headers else None,
    )


def _request_extra(request: Request, status_code: int) -> dict[str, Any]:
    return {
        "path": request.url.path,
        "method": request.method,
        "status_code": status_code,
    }


def _validation_message(exc: RequestValidationError) -> str:
    """Summarize pydantic errors as ``field: reason`` pairs."""
    parts = []
    for error in exc.errors():
        location = ".".join(
            str(item) for item in error.get("loc", ()) if item != "body"
        )
        reason = str(error.get("msg", "invalid"))
        parts.append(f"{location}: {reason}" if location else reason)
    return "; ".join(parts) or "Invalid request payload"


def register_http_middleware(app: FastAPI, *, config: AppConfig, logger: Any) -> None:
    """Attach body size limit, correlation id and security headers."""
    max_bytes = config.security.request_max_bytes

    @app.middleware("http")
    async def request_size_limit_middleware(request: Request, call_next):
        try:
            declared_length = int(request.headers.get("content-length") or 0)
        except ValueError:
            declared_length = 0
        if declared_length > max_bytes:
            logger.warning("request_too_large", extra=_request_extra(request, 413))
            return _error_response(
                413,
                ApiErrorCode.REQUEST_TOO_LARGE,
                f"Request size exceeds configured limit ({max_bytes} bytes).",
            )
        return await call_next(request)

    @app.middleware("http")
    async def request_logging_middleware(request: Request, call_next):
        correlation_id = (
            request.headers.get("x-request-id")
            or request.headers.get("x-correlation-id")
            or uuid.uuid4().hex
        )
        set_correlation_id(correlation_id)
        response = await call_next(request)
        response.headers["X-Request-ID"] = correlation_id
        response.headers.update(SECURITY_HEADERS)
        logger.info(
            "request_completed", extra=_request_extra(request, response.status_code)
        )
        return response


def register_exception_handlers(app: FastAPI, *, logger: Any) -> None:
    """Attach handlers that render every failure as ``success=false`` JSON."""

    @app.exception_handler(HTTPException)
    async def handle_http_exception(request: Request, exc: HTTPException) -> JSONResponse:
        payload = to_error_payload(exc.detail, exc.status_code)
        logger.warning(
            "auth_request_rejected",
            extra={
                **_request_extra(request, exc.status_code),
                "error_code": payload["error_code"],
            },
        )
        return _error_response(
            exc.status_code,
            payload["error_code"],
            payload["message"],
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def handle_validation_exception(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        logger.warning("validation_exception", extra=_request_extra(request, 422))
        return _error_response(422, ApiErrorCode.VALIDATION_ERROR, _validation_message(exc))

    @app.exception_handler(Exception)
    async def handle_unexpected_exception(request: Request, exc: Exception) -> JSONResponse:
        # Details stay in the log; the client only sees a generic envelope.
        logger.exception("unexpected_exception", extra=_request_extra(request, 500))
        return _error_response(
            500, ApiErrorCode.INTERNAL_SERVER_ERROR, "Internal server error"
        )
