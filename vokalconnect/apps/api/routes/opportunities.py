from __future__ import annotations

import logging
from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.apps.api.deps import Principal, get_db, load_managed_business, require_admin
from vokalconnect.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from vokalconnect.apps.api.response import success_response
from vokalconnect.domain.models import Opportunity
from vokalconnect.persistence.repos import opportunities as opportunities_repo
from vokalconnect.services.audit import record_event
from vokalconnect.services.opportunities import (
    extract_span_marker,
    is_known_category,
    is_legacy_scorecard_title,
    normalize_status,
)


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/opportunities", tags=["opportunities"], responses=DEFAULT_ERROR_RESPONSES)


class OpportunityCreateRequest(BaseModel):
    businessId: str
    title: str = Field(min_length=1)
    description: str | None = None
    category: str
    status: str = "OPEN"
    timelineSpan: int | None = Field(default=None, ge=0)


class OpportunityUpdateRequest(BaseModel):
    title: str | None = Field(default=None, min_length=1)
    description: str | None = None
    category: str | None = None
    status: str | None = None
    timelineSpan: int | None = Field(default=None, ge=0)


def _to_dict(opportunity: Opportunity) -> dict[str, Any]:
    return {
        "id": opportunity.id,
        "businessId": opportunity.business_id,
        "title": opportunity.title,
        "description": opportunity.description,
        "category": opportunity.category,
        "status": opportunity.status,
        "isPublished": opportunity.is_published,
        "timelineSpan": opportunity.timeline_span,
        "createdAt": opportunity.created_at.isoformat() if opportunity.created_at else None,
    }


def _validated_status(status: str) -> str:
    try:
        return normalize_status(status)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc


def _validated_category(category: str) -> str:
    if not is_known_category(category):
        raise HTTPException(status_code=400, detail=f"Unsupported opportunity category: {category}")
    return category


async def _load_opportunity(db: AsyncSession, opportunity_id: str, principal: Principal) -> Opportunity:
    opportunity = await opportunities_repo.get_opportunity(db, opportunity_id)
    if opportunity is None:
        raise HTTPException(status_code=404, detail="Opportunity not found")
    await load_managed_business(db, opportunity.business_id, principal)
    return opportunity


@router.get("")
async def list_opportunities(
    business_id: str = Query(alias="businessId"),
    kind: Literal["scorecard", "regular"] | None = Query(default=None, alias="type"),
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    rows = await opportunities_repo.list_opportunities(db, business_id, kind=kind)
    return {"opportunities": [_to_dict(row) for row in rows]}


@router.post("", status_code=201)
async def create_opportunity(
    payload: OpportunityCreateRequest,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    business = await load_managed_business(db, payload.businessId, principal)
    category = _validated_category(payload.category)
    status = _validated_status(payload.status)
    # Older clients still embed the span in the description.
    description, span = extract_span_marker(payload.description)
    opportunity = Opportunity(
        business_id=business.id,
        title=payload.title,
        description=description,
        category=category,
        status=status,
        timeline_span=payload.timelineSpan if payload.timelineSpan is not None else span,
        is_published=bool(
            business.is_scorecard_published
            if is_legacy_scorecard_title(payload.title)
            else business.is_opportunities_published
        ),
    )
    try:
        db.add(opportunity)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to create opportunity") from exc
    await record_event(
        session=db,
        actor_type="user",
        actor_id=principal.user_id,
        actor_role=principal.role,
        event_type="opportunity.create",
        outcome="success",
        resource_type="opportunity",
        resource_id=opportunity.id,
        request=request,
        metadata={"business_id": business.id, "category": category},
        commit=True,
    )
    return success_response(opportunity=_to_dict(opportunity))


@router.patch("/{opportunity_id}")
async def update_opportunity(
    opportunity_id: str,
    payload: OpportunityUpdateRequest,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    opportunity = await _load_opportunity(db, opportunity_id, principal)
    if payload.title is not None:
        opportunity.title = payload.title
    if payload.description is not None:
        description, span = extract_span_marker(payload.description)
        opportunity.description = description
        if span is not None and payload.timelineSpan is None:
            opportunity.timeline_span = span
    if payload.category is not None:
        opportunity.category = _validated_category(payload.category)
    if payload.status is not None:
        opportunity.status = _validated_status(payload.status)
    if payload.timelineSpan is not None:
        opportunity.timeline_span = payload.timelineSpan
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to update opportunity") from exc
    return success_response(opportunity=_to_dict(opportunity))


@router.delete("/{opportunity_id}", status_code=204)
async def delete_opportunity(
    opportunity_id: str,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Response:
    opportunity = await _load_opportunity(db, opportunity_id, principal)
    business_id = opportunity.business_id
    try:
        await db.delete(opportunity)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to delete opportunity") from exc
    await record_event(
        session=db,
        actor_type="user",
        actor_id=principal.user_id,
        actor_role=principal.role,
        event_type="opportunity.delete",
        outcome="success",
        resource_type="opportunity",
        resource_id=opportunity_id,
        request=request,
        metadata={"business_id": business_id},
        commit=True,
    )
    return Response(status_code=204)
