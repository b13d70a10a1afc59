from __future__ import annotations

import logging
from typing import Any

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.apps.api.deps import (
    Principal,
    get_current_principal,
    get_db,
    has_business_access,
    load_managed_business,
    require_admin,
    require_portal,
)
from vokalconnect.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from vokalconnect.apps.api.response import success_response
from vokalconnect.core.errors import IntegrationError, NotFoundError, ProviderConfigError, TokenRefreshError
from vokalconnect.domain.models import Tool
from vokalconnect.persistence.repos import businesses as businesses_repo
from vokalconnect.persistence.repos import tools as tools_repo
from vokalconnect.services.audit import record_event
from vokalconnect.services.integrations import fetch_provider_summary
from vokalconnect.services.oauth.connections import is_expired
from vokalconnect.services.oauth.providers import PROVIDERS
from vokalconnect.services.tools import normalize_tool_status


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["tools"], responses=DEFAULT_ERROR_RESPONSES)

# Clients may only raise a request; every other transition is an admin action.
_CLIENT_STATUS = "REQUESTED"


class ToolUpdateRequest(BaseModel):
    status: str | None = None
    isRequested: bool | None = None


def _tool_to_dict(tool: Tool) -> dict[str, Any]:
    return {
        "id": tool.id,
        "businessId": tool.business_id,
        "name": tool.name,
        "description": tool.description,
        "status": tool.status,
        "isRequested": tool.is_requested,
    }


@router.get("/business/{business_id}/tools")
async def list_business_tools(
    business_id: str,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    tools = await tools_repo.list_tools(db, business_id)
    return {"tools": [_tool_to_dict(tool) for tool in tools]}


@router.patch("/tools/{tool_id}")
async def update_tool(
    tool_id: str,
    payload: ToolUpdateRequest,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    tool = await tools_repo.get_tool(db, tool_id)
    if tool is None:
        raise HTTPException(status_code=404, detail="Tool not found")
    business = await businesses_repo.get_business(db, tool.business_id)
    if business is None:
        raise HTTPException(status_code=404, detail="Business not found")

    status = None
    if payload.status is not None:
        try:
            status = normalize_tool_status(payload.status)
        except ValueError as exc:
            raise HTTPException(status_code=400, detail=str(exc)) from exc

    manager = principal.is_admin and await has_business_access(db, business, principal)
    if not manager:
        await require_portal(db, business.id, principal)
        if status not in (None, _CLIENT_STATUS):
            raise HTTPException(
                status_code=403,
                detail={"code": "AUTH_FORBIDDEN", "message": "Not authorized"},
            )

    if status is not None:
        tool.status = status
    if payload.isRequested is not None:
        tool.is_requested = payload.isRequested
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to update tool") from exc
    await record_event(
        session=db,
        actor_type="user",
        actor_id=principal.user_id,
        actor_role=principal.role,
        event_type="tool.update",
        outcome="success",
        resource_type="tool",
        resource_id=tool.id,
        request=request,
        metadata={"business_id": business.id, "status": tool.status, "is_requested": tool.is_requested},
        commit=True,
    )
    return success_response(tool=_tool_to_dict(tool))


@router.get("/tool-connections")
async def list_tool_connections(
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    # Token material never leaves the server.
    connections = await tools_repo.list_connections(db, principal.user_id)
    return {
        "connections": [
            {
                "toolName": connection.tool_name,
                "connected": bool(connection.access_token),
                "expired": is_expired(connection),
                "expiresAt": connection.expires_at.isoformat() if connection.expires_at else None,
            }
            for connection in connections
        ]
    }


@router.get("/integrations/{provider}/summary")
async def integration_summary(
    provider: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    if provider not in PROVIDERS:
        raise HTTPException(status_code=404, detail=f"Unsupported provider: {provider}")
    try:
        summary = await fetch_provider_summary(db, provider_key=provider, user_id=principal.user_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except TokenRefreshError as exc:
        raise HTTPException(
            status_code=401,
            detail={"code": "TOKEN_REFRESH_FAILED", "message": str(exc)},
        ) from exc
    except ProviderConfigError as exc:
        logger.warning("integration_provider_unavailable provider=%s reason=%s", provider, exc)
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except IntegrationError as exc:
        detail: dict[str, Any] = {"code": "UPSTREAM_ERROR", "message": str(exc)}
        if exc.status_code is not None:
            detail["upstreamStatus"] = exc.status_code
        if exc.upstream is not None:
            detail["upstream"] = exc.upstream
        raise HTTPException(status_code=500, detail=detail) from exc
    except httpx.HTTPError as exc:
        logger.warning("integration_transport_failed provider=%s", provider, exc_info=exc)
        raise HTTPException(
            status_code=500,
            detail={"code": "UPSTREAM_ERROR", "message": "Integration request failed"},
        ) from exc
    return {"provider": provider, "summary": summary}
