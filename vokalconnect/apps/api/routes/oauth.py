from __future__ import annotations

import logging
from urllib.parse import quote

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import RedirectResponse
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.apps.api.deps import (
    Principal,
    get_current_principal,
    get_db,
    get_optional_principal,
    has_business_access,
    require_portal,
)
from vokalconnect.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from vokalconnect.core.config import get_settings
from vokalconnect.core.errors import ProviderConfigError, TokenExchangeError
from vokalconnect.domain.models import ClientPortal
from vokalconnect.persistence.repos import businesses as businesses_repo
from vokalconnect.persistence.repos import portals as portals_repo
from vokalconnect.services.audit import record_event
from vokalconnect.services.businesses import normalize_access_code
from vokalconnect.services.oauth.client import (
    append_query_params,
    build_authorize_url,
    callback_url,
    exchange_code_for_tokens,
)
from vokalconnect.services.oauth.connections import store_tool_connection
from vokalconnect.services.oauth.providers import OAuthProvider, get_provider
from vokalconnect.services.tools import mark_tool_granted


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["oauth"], responses=DEFAULT_ERROR_RESPONSES)

ERROR_MISSING_PARAMETERS = "Missing required parameters"
ERROR_INVALID_BUSINESS = "Invalid business code"
ERROR_PORTAL_NOT_FOUND = "Client portal not found"
ERROR_EXCHANGE_FAILED = "Failed to exchange authorization code"
ERROR_UNEXPECTED = "An unexpected error occurred"


def _resolve_provider(key: str) -> OAuthProvider:
    try:
        return get_provider(key)
    except ProviderConfigError as exc:
        raise HTTPException(status_code=404, detail="Provider not found") from exc


def _connect_page(business_code: str | None, **params: str) -> RedirectResponse:
    # Every terminal outcome lands on the client's connect page with a flash param.
    base = get_settings().public_base_url.rstrip("/")
    url = f"{base}/connect/{quote(business_code or '', safe='')}"
    return RedirectResponse(append_query_params(url, params), status_code=302)


async def _resolve_portal(
    db: AsyncSession, business_id: str, principal: Principal | None
) -> ClientPortal | None:
    # Prefer the signed-in caller's portal; browsers returning from the provider
    # without a session fall back to the business's first active portal.
    if principal is not None:
        portal = await portals_repo.get_active_portal(db, business_id, principal.user_id)
        if portal is not None:
            return portal
    return await portals_repo.get_first_active_portal(db, business_id)


@router.get("/{provider}")
async def start_authorization(
    provider: str,
    business_code: str | None = Query(default=None),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    resolved = _resolve_provider(provider)
    if not business_code or not business_code.strip():
        raise HTTPException(status_code=400, detail="business_code is required")
    business = await businesses_repo.get_business_by_code(db, normalize_access_code(business_code))
    if business is None:
        raise HTTPException(status_code=404, detail=ERROR_INVALID_BUSINESS)
    # The connection is stored against a portal, so the caller must own one
    # unless they manage the business.
    if not (principal.is_admin and await has_business_access(db, business, principal)):
        await require_portal(db, business.id, principal)
    try:
        authorize_url = build_authorize_url(
            provider=resolved,
            redirect_uri=callback_url(resolved),
            state=business.code,
        )
    except ProviderConfigError as exc:
        logger.error("oauth_provider_not_configured provider=%s", resolved.key)
        raise HTTPException(status_code=500, detail="Provider not configured") from exc
    logger.info("oauth_authorization_started provider=%s user_id=%s", resolved.key, principal.user_id)
    return RedirectResponse(authorize_url, status_code=302)


@router.get("/{provider}/callback")
async def authorization_callback(
    provider: str,
    request: Request,
    code: str | None = Query(default=None),
    state: str | None = Query(default=None),
    principal: Principal | None = Depends(get_optional_principal),
    db: AsyncSession = Depends(get_db),
) -> RedirectResponse:
    resolved = _resolve_provider(provider)
    if not code or not state:
        return _connect_page(state, error=ERROR_MISSING_PARAMETERS)

    try:
        business = await businesses_repo.get_business_by_code(db, normalize_access_code(state))
        if business is None:
            return _connect_page(state, error=ERROR_INVALID_BUSINESS)
        business_id = business.id

        portal = await _resolve_portal(db, business_id, principal)
        if portal is None:
            return _connect_page(state, error=ERROR_PORTAL_NOT_FOUND)
        client_id = portal.client_id

        try:
            tokens = await exchange_code_for_tokens(
                provider=resolved,
                code=code,
                redirect_uri=callback_url(resolved),
            )
        except TokenExchangeError:
            return _connect_page(state, error=ERROR_EXCHANGE_FAILED)

        await store_tool_connection(db, user_id=client_id, tool_name=resolved.tool_name, tokens=tokens)
        await mark_tool_granted(db, business_id, resolved.tool_name)
        await db.commit()
    except Exception as exc:
        await db.rollback()
        logger.error("oauth_callback_failed provider=%s", resolved.key, exc_info=exc)
        return _connect_page(state, error=ERROR_UNEXPECTED)

    await record_event(
        session=db,
        actor_type="user",
        actor_id=client_id,
        actor_role=principal.role if principal else None,
        event_type="oauth.connection.granted",
        outcome="success",
        resource_type="tool",
        resource_id=business_id,
        request=request,
        metadata={"provider": resolved.key, "tool": resolved.tool_name},
        commit=True,
    )
    return _connect_page(state, success=f"{resolved.tool_name} connected successfully")
