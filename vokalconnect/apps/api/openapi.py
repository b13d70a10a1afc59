from __future__ import annotations

from typing import Any

from vokalconnect.apps.api.response import ErrorBody


def _error_example(*, code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    # Build a consistent error body example for OpenAPI docs.
    payload: dict[str, Any] = {"error": message, "code": code}
    if details:
        payload["details"] = details
    return payload


def _response(description: str, example: dict[str, Any]) -> dict[str, Any]:
    return {
        "model": ErrorBody,
        "description": description,
        "content": {"application/json": {"example": example}},
    }


DEFAULT_ERROR_RESPONSES: dict[int, dict[str, Any]] = {
    400: _response("Bad request", _error_example(code="BAD_REQUEST", message="Access code is required")),
    401: _response(
        "Unauthorized", _error_example(code="AUTH_UNAUTHORIZED", message="Authentication required")
    ),
    403: _response("Forbidden", _error_example(code="AUTH_FORBIDDEN", message="Not authorized")),
    404: _response("Not found", _error_example(code="NOT_FOUND", message="Business not found")),
    422: _response(
        "Validation error",
        _error_example(
            code="REQUEST_VALIDATION_ERROR",
            message="Validation error",
            details={"errors": [{"loc": ["body", "code"], "msg": "Field required"}]},
        ),
    ),
    500: _response("Internal error", _error_example(code="INTERNAL_ERROR", message="Internal server error")),
}
