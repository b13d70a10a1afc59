from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.apps.api.deps import (
    Principal,
    get_current_principal,
    get_db,
    load_managed_business,
    load_owned_business,
    load_visible_business,
    require_admin,
)
from vokalconnect.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from vokalconnect.apps.api.response import success_response
from vokalconnect.domain.models import Business
from vokalconnect.persistence.repos import businesses as businesses_repo
from vokalconnect.services.audit import record_event
from vokalconnect.services.brain import build_business_brain
from vokalconnect.services.businesses import create_business, regenerate_access_code
from vokalconnect.services.publishing import publish_state_for


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api", tags=["businesses"], responses=DEFAULT_ERROR_RESPONSES)

LEADSIE_URL_KEY = "leadsieUrl"


class BusinessCreateRequest(BaseModel):
    name: str = Field(min_length=1)
    industry: str | None = None
    website: str | None = None
    description: str | None = None


class BusinessUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    industry: str | None = None
    website: str | None = None
    description: str | None = None


class ConnectionsRequest(BaseModel):
    connections: dict[str, Any] = Field(default_factory=dict)


class LeadsieUrlRequest(BaseModel):
    url: str = Field(min_length=1)


def _to_dict(business: Business) -> dict[str, Any]:
    return {
        "id": business.id,
        "name": business.name,
        "code": business.code,
        "industry": business.industry,
        "website": business.website,
        "description": business.description,
        "connections": business.connections or {},
        "adminId": business.admin_id,
        "publishedTypes": publish_state_for(business).as_dict(),
        "createdAt": business.created_at.isoformat() if business.created_at else None,
    }


async def _audit(
    db: AsyncSession,
    request: Request,
    principal: Principal,
    event_type: str,
    business_id: str,
    metadata: dict[str, Any] | None = None,
) -> None:
    await record_event(
        session=db,
        actor_type="user",
        actor_id=principal.user_id,
        actor_role=principal.role,
        event_type=event_type,
        outcome="success",
        resource_type="business",
        resource_id=business_id,
        request=request,
        metadata=metadata,
        commit=True,
    )


@router.post("/businesses", status_code=201)
async def create_business_route(
    payload: BusinessCreateRequest,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    try:
        business = await create_business(
            db,
            admin_id=principal.user_id,
            name=payload.name,
            industry=payload.industry,
            website=payload.website,
            description=payload.description,
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to create business") from exc
    await _audit(db, request, principal, "business.create", business.id, {"name": business.name})
    return success_response(business=_to_dict(business))


@router.get("/businesses")
async def list_businesses(
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    rows = await businesses_repo.list_businesses_for_user(db, principal.user_id)
    return {"businesses": [_to_dict(row) for row in rows]}


@router.get("/businesses/{business_id}")
async def get_business(
    business_id: str,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    business = await load_managed_business(db, business_id, principal)
    return {"business": _to_dict(business)}


@router.patch("/businesses/{business_id}")
async def update_business(
    business_id: str,
    payload: BusinessUpdateRequest,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    try:
        business = await businesses_repo.update_fields(
            db,
            business_id,
            name=payload.name,
            industry=payload.industry,
            website=payload.website,
            description=payload.description,
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to update business") from exc
    if business is None:
        raise HTTPException(status_code=404, detail="Business not found")
    await _audit(
        db,
        request,
        principal,
        "business.update",
        business_id,
        {"fields": sorted(payload.model_dump(exclude_none=True))},
    )
    return success_response(business=_to_dict(business))


@router.post("/businesses/{business_id}/access-code")
async def rotate_access_code(
    business_id: str,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    business = await load_managed_business(db, business_id, principal)
    try:
        code = await regenerate_access_code(db, business)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to regenerate access code") from exc
    # The code itself is redacted by the audit sanitizer.
    await _audit(db, request, principal, "business.access_code.rotate", business_id)
    return success_response(code=code)


@router.put("/businesses/{business_id}/connections")
async def merge_connections(
    business_id: str,
    payload: ConnectionsRequest,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    try:
        business = await businesses_repo.merge_connections(db, business_id, payload.connections)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to update connections") from exc
    if business is None:
        raise HTTPException(status_code=404, detail="Business not found")
    return success_response(connections=business.connections or {})


@router.get("/business/{business_id}/leadsie-url")
async def get_leadsie_url(
    business_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    business = await load_visible_business(db, business_id, principal)
    return {"url": (business.connections or {}).get(LEADSIE_URL_KEY)}


@router.post("/business/{business_id}/leadsie-url")
async def set_leadsie_url(
    business_id: str,
    payload: LeadsieUrlRequest,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_owned_business(db, business_id, principal)
    try:
        business = await businesses_repo.merge_connections(db, business_id, {LEADSIE_URL_KEY: payload.url})
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to save Leadsie URL") from exc
    await _audit(db, request, principal, "business.leadsie_url.update", business_id)
    return success_response(url=(business.connections or {}).get(LEADSIE_URL_KEY) if business else None)


@router.get("/business/{business_id}/brain")
async def get_business_brain(
    business_id: str,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    business = await load_managed_business(db, business_id, principal)
    return await build_business_brain(db, business)
