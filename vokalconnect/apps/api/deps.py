from __future__ import annotations

from typing import AsyncGenerator

from fastapi import Depends, HTTPException, Request, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.core.config import get_settings
from vokalconnect.domain.models import Business, ClientPortal
from vokalconnect.persistence.db import get_session
from vokalconnect.persistence.repos import businesses as businesses_repo
from vokalconnect.persistence.repos import portals as portals_repo
from vokalconnect.persistence.repos import users as users_repo
from vokalconnect.services.audit import record_event
from vokalconnect.services.auth.sessions import ROLE_ADMIN, InvalidSessionToken, decode_session_token


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    # One AsyncSession per request; context manager ensures close on success/error.
    async with get_session() as session:
        yield session


class Principal(BaseModel):
    # The only identity handlers ever see; resolved once per request.
    user_id: str
    role: str
    email: str | None = None

    @property
    def is_admin(self) -> bool:
        return self.role == ROLE_ADMIN


def _auth_error(message: str = "Authentication required") -> HTTPException:
    # Normalize auth errors for clients without leaking internal details.
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail={"code": "AUTH_UNAUTHORIZED", "message": message},
        headers={"WWW-Authenticate": "Bearer"},
    )


def _forbidden_error(message: str = "Not authorized") -> HTTPException:
    # Use 403 for authenticated principals lacking permissions.
    return HTTPException(
        status_code=status.HTTP_403_FORBIDDEN,
        detail={"code": "AUTH_FORBIDDEN", "message": message},
    )


def _not_found(message: str) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail={"code": "NOT_FOUND", "message": message})


def _parse_bearer_token(header_value: str | None) -> str | None:
    # Enforce Bearer token format when the header is present.
    if not header_value:
        return None
    parts = header_value.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise _auth_error("Missing or invalid bearer token")
    return parts[1]


def _extract_token(request: Request) -> str | None:
    # Header wins over cookie so API clients never depend on browser state.
    bearer = _parse_bearer_token(request.headers.get("Authorization"))
    if bearer:
        return bearer
    return request.cookies.get(get_settings().session_cookie_name) or None


async def _resolve_principal(request: Request, db: AsyncSession) -> Principal:
    token = _extract_token(request)
    if not token:
        raise _auth_error()
    try:
        claims = decode_session_token(token)
    except InvalidSessionToken as exc:
        raise _auth_error("Invalid or expired session") from exc
    user = await users_repo.get_user(db, claims.user_id)
    if user is None:
        raise _auth_error("Invalid or expired session")
    # Role comes from the database so demotions apply before token expiry.
    return Principal(user_id=user.id, role=user.role, email=user.email)


async def get_current_principal(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Principal:
    try:
        principal = await _resolve_principal(request, db)
    except HTTPException as exc:
        detail = exc.detail if isinstance(exc.detail, dict) else {}
        await record_event(
            session=db,
            actor_type="anonymous",
            actor_id=None,
            actor_role=None,
            event_type="auth.access.failure",
            outcome="failure",
            resource_type="auth",
            request=request,
            metadata={"path": request.url.path, "method": request.method},
            error_code=detail.get("code"),
            commit=True,
            best_effort=True,
        )
        raise
    return principal


async def get_optional_principal(
    request: Request,
    db: AsyncSession = Depends(get_db),
) -> Principal | None:
    # Callback routes accept anonymous callers and fall back to other lookups.
    try:
        return await _resolve_principal(request, db)
    except HTTPException:
        return None


async def require_admin(principal: Principal = Depends(get_current_principal)) -> Principal:
    if not principal.is_admin:
        raise _forbidden_error()
    return principal


async def has_business_access(db: AsyncSession, business: Business, principal: Principal) -> bool:
    # Owners and explicitly granted members manage the business.
    if business.admin_id == principal.user_id:
        return True
    return await businesses_repo.is_member(db, business.id, principal.user_id)


async def load_managed_business(db: AsyncSession, business_id: str, principal: Principal) -> Business:
    """Fetch a business the caller may manage, else 404/403."""
    business = await businesses_repo.get_business(db, business_id)
    if business is None:
        raise _not_found("Business not found")
    if not principal.is_admin or not await has_business_access(db, business, principal):
        raise _forbidden_error()
    return business


async def load_owned_business(db: AsyncSession, business_id: str, principal: Principal) -> Business:
    # Owner-only operations (leadsie url, intake questions).
    business = await businesses_repo.get_business(db, business_id)
    if business is None:
        raise _not_found("Business not found")
    if business.admin_id != principal.user_id:
        raise _forbidden_error()
    return business


async def require_portal(db: AsyncSession, business_id: str, principal: Principal) -> ClientPortal:
    """Return the caller's active portal for the business or raise 401."""
    portal = await portals_repo.get_active_portal(db, business_id, principal.user_id)
    if portal is None:
        raise _auth_error("Unauthorized")
    return portal


async def load_visible_business(db: AsyncSession, business_id: str, principal: Principal) -> Business:
    # Portal reads: managers see everything, clients need an active portal.
    business = await businesses_repo.get_business(db, business_id)
    if business is None:
        raise _not_found("Business not found")
    if principal.is_admin and await has_business_access(db, business, principal):
        return business
    await require_portal(db, business_id, principal)
    return business
