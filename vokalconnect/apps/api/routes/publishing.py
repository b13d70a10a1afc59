from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.apps.api.deps import Principal, get_db, load_managed_business, require_admin
from vokalconnect.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from vokalconnect.core.errors import NotFoundError
from vokalconnect.services import publishing
from vokalconnect.services.audit import record_event


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/business", tags=["publishing"], responses=DEFAULT_ERROR_RESPONSES)


class PublishResponse(BaseModel):
    success: bool = True
    domain: str
    isPublished: bool
    hasPublishedItems: bool


class PublishStatusResponse(BaseModel):
    domain: str
    isPublished: bool


def _resolve_domain(domain: str) -> str:
    try:
        return publishing.normalize_domain(domain)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


async def _change_state(
    *,
    request: Request,
    db: AsyncSession,
    principal: Principal,
    business_id: str,
    domain: str,
    is_published: bool,
) -> PublishResponse:
    resolved = _resolve_domain(domain)
    await load_managed_business(db, business_id, principal)
    try:
        state = await publishing.set_published(db, resolved, business_id, is_published)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        action = "publish" if is_published else "unpublish"
        raise HTTPException(status_code=500, detail=f"Failed to {action} {resolved}") from exc
    await record_event(
        session=db,
        actor_type="user",
        actor_id=principal.user_id,
        actor_role=principal.role,
        event_type="business.publish" if is_published else "business.unpublish",
        outcome="success",
        resource_type="business",
        resource_id=business_id,
        request=request,
        metadata={"domain": resolved},
        commit=True,
    )
    return PublishResponse(
        domain=resolved,
        isPublished=is_published,
        hasPublishedItems=state.has_published_items,
    )


@router.post("/{business_id}/{domain}/publish", response_model=PublishResponse)
async def publish_domain(
    business_id: str,
    domain: str,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> PublishResponse:
    return await _change_state(
        request=request,
        db=db,
        principal=principal,
        business_id=business_id,
        domain=domain,
        is_published=True,
    )


@router.post("/{business_id}/{domain}/unpublish", response_model=PublishResponse)
async def unpublish_domain(
    business_id: str,
    domain: str,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> PublishResponse:
    return await _change_state(
        request=request,
        db=db,
        principal=principal,
        business_id=business_id,
        domain=domain,
        is_published=False,
    )


@router.get("/{business_id}/{domain}/publish-status", response_model=PublishStatusResponse)
async def domain_publish_status(
    business_id: str,
    domain: str,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> PublishStatusResponse:
    resolved = _resolve_domain(domain)
    await load_managed_business(db, business_id, principal)
    try:
        is_published = await publishing.get_publish_status(db, resolved, business_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return PublishStatusResponse(domain=resolved, isPublished=is_published)
