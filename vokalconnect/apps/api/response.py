from __future__ import annotations

from typing import Any
from uuid import uuid4

from fastapi import Request
from pydantic import BaseModel


class ErrorBody(BaseModel):
    # Flat error shape consumed by the portal and admin pages.
    error: str
    code: str
    details: dict[str, Any] | None = None


def get_request_id(request: Request) -> str:
    # Use existing request IDs when provided to preserve traceability.
    request_id = getattr(request.state, "request_id", None)
    if request_id:
        return request_id
    header_request_id = request.headers.get("X-Request-Id")
    if header_request_id:
        request.state.request_id = header_request_id
        return header_request_id
    generated = str(uuid4())
    request.state.request_id = generated
    return generated


def error_response(*, code: str, message: str, details: dict[str, Any] | None = None) -> dict[str, Any]:
    body = ErrorBody(error=message, code=code, details=details)
    return body.model_dump(exclude_none=True)


def success_response(**fields: Any) -> dict[str, Any]:
    # Mutations answer {success: true, ...} so clients can branch on one key.
    return {"success": True, **fields}
