from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from vokalconnect.apps.api.response import error_response, get_request_id


logger = logging.getLogger(__name__)

_DEFAULT_ERROR_CODES: dict[int, str] = {
    400: "BAD_REQUEST",
    401: "AUTH_UNAUTHORIZED",
    403: "AUTH_FORBIDDEN",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_ERROR",
    502: "UPSTREAM_ERROR",
}


def _default_code(status_code: int) -> str:
    return _DEFAULT_ERROR_CODES.get(status_code, "UNKNOWN_ERROR")


def _split_detail(detail: Any, status_code: int) -> tuple[str, str, dict[str, Any] | None]:
    # A dict detail carries code and message; any other keys become details.
    fallback = _default_code(status_code)
    if isinstance(detail, str):
        return fallback, detail, None
    if not isinstance(detail, dict):
        return fallback, "Request failed", None
    extra = {key: value for key, value in detail.items() if key not in ("code", "message")}
    return (
        str(detail.get("code") or fallback),
        str(detail.get("message") or "Request failed"),
        extra or None,
    )


def _render(exc: StarletteHTTPException) -> JSONResponse:
    code, message, details = _split_detail(exc.detail, exc.status_code)
    payload = error_response(code=code, message=message, details=details)
    return JSONResponse(content=jsonable_encoder(payload), status_code=exc.status_code, headers=exc.headers)


async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return _render(exc)


async def starlette_http_exception_handler(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    # Router-level 404/405 use the same flat error body.
    return _render(exc)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    # Surface validation errors with structured details for UI parsing.
    payload = error_response(
        code="REQUEST_VALIDATION_ERROR",
        message="Validation error",
        details={"errors": jsonable_encoder(exc.errors())},
    )
    return JSONResponse(content=payload, status_code=422)


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Avoid leaking stack traces to clients; keep them in the server log.
    logger.error(
        "unhandled_exception path=%s request_id=%s",
        request.url.path,
        get_request_id(request),
        exc_info=exc,
    )
    payload = error_response(code="INTERNAL_ERROR", message="Internal server error")
    return JSONResponse(content=payload, status_code=500)
