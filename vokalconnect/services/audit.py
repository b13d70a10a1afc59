"""Audit trail for portal and admin actions.

Events cover logins, access-code redemptions, publish changes, content
mutations and OAuth grants. Writes never fail the calling request: a broken
audit insert is logged and dropped unless the caller asks otherwise.
"""

from __future__ import annotations

from datetime import datetime, timezone
import logging
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.requests import Request

from vokalconnect.domain.models import AuditEvent
from vokalconnect.persistence.db import SessionLocal


logger = logging.getLogger(__name__)

# Access codes and OAuth material are credentials in this system.
_REDACT_FRAGMENTS = ("authorization", "token", "secret", "password", "code")
REDACTED = "[REDACTED]"


def _should_redact(key: str) -> bool:
    lowered = key.lower()
    return any(fragment in lowered for fragment in _REDACT_FRAGMENTS)


def sanitize_metadata(value: Any) -> Any:
    """Return a copy of ``value`` with credential-like keys replaced at any depth."""
    if isinstance(value, list):
        return [sanitize_metadata(item) for item in value]
    if not isinstance(value, dict):
        return value
    return {
        str(key): REDACTED if _should_redact(str(key)) else sanitize_metadata(item)
        for key, item in value.items()
    }


def get_request_context(request: Request | None) -> dict[str, str | None]:
    # The middleware-assigned id wins so audit rows match the X-Request-Id header.
    if request is None:
        return {"request_id": None, "ip_address": None, "user_agent": None}
    return {
        "request_id": getattr(request.state, "request_id", None) or request.headers.get("X-Request-Id"),
        "ip_address": request.client.host if request.client else None,
        "user_agent": request.headers.get("user-agent"),
    }


def _report_failure(event: AuditEvent, exc: SQLAlchemyError, *, best_effort: bool) -> None:
    log = logger.warning if best_effort else logger.error
    log(
        "audit_event_write_failed event_type=%s request_id=%s",
        event.event_type,
        event.request_id,
        exc_info=exc,
    )


async def _write_detached(event: AuditEvent, *, best_effort: bool) -> None:
    async with SessionLocal() as audit_session:
        audit_session.add(event)
        try:
            await audit_session.commit()
        except SQLAlchemyError as exc:
            await audit_session.rollback()
            _report_failure(event, exc, best_effort=best_effort)


async def record_event(
    *,
    session: AsyncSession | None = None,
    occurred_at: datetime | None = None,
    actor_type: str,
    actor_id: str | None,
    actor_role: str | None,
    event_type: str,
    outcome: str,
    resource_type: str | None = None,
    resource_id: str | None = None,
    request: Request | None = None,
    metadata: dict[str, Any] | None = None,
    error_code: str | None = None,
    commit: bool | None = None,
    best_effort: bool = True,
) -> None:
    """Persist one audit event.

    Without ``session`` the event goes through its own short-lived session.
    With one, it is added to the caller's unit of work and only committed
    when ``commit`` is true.
    """
    context = get_request_context(request)
    event = AuditEvent(
        occurred_at=occurred_at or datetime.now(timezone.utc),
        actor_type=actor_type,
        actor_id=actor_id,
        actor_role=actor_role,
        event_type=event_type,
        outcome=outcome,
        resource_type=resource_type,
        resource_id=resource_id,
        request_id=context["request_id"],
        ip_address=context["ip_address"],
        user_agent=context["user_agent"],
        metadata_json=sanitize_metadata(metadata or {}),
        error_code=error_code,
    )
    if session is None:
        await _write_detached(event, best_effort=best_effort)
        return

    session.add(event)
    if not commit:
        return
    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        _report_failure(event, exc, best_effort=best_effort)
