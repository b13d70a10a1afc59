from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.apps.api.deps import (
    Principal,
    get_current_principal,
    get_db,
    load_visible_business,
    require_portal,
)
from vokalconnect.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from vokalconnect.core.errors import NotFoundError
from vokalconnect.persistence.repos import assessments as assessments_repo
from vokalconnect.persistence.repos import intake as intake_repo
from vokalconnect.persistence.repos import opportunities as opportunities_repo
from vokalconnect.persistence.repos import tools as tools_repo
from vokalconnect.services.access_gate import redeem_access_code
from vokalconnect.services.assessments import parse_description
from vokalconnect.services.audit import record_event
from vokalconnect.services.intake import group_by_area, save_answers
from vokalconnect.services.publishing import publish_state_for
from vokalconnect.services.scorecards import highlights_payload, list_scorecard_views


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["portal"], responses=DEFAULT_ERROR_RESPONSES)


class AccessCodeRequest(BaseModel):
    code: str | None = None


class PublishedTypes(BaseModel):
    scorecard: bool
    opportunities: bool
    assessments: bool


class AccessCodeResponse(BaseModel):
    success: bool = True
    businessId: str
    portalActive: bool
    hasPublishedItems: bool
    publishedTypes: PublishedTypes


class PublishStatusResponse(BaseModel):
    hasPublishedItems: bool
    publishedTypes: PublishedTypes


class IntakeAnswersRequest(BaseModel):
    businessId: str
    answers: dict[str, Any] = Field(default_factory=dict)


@router.post("/verify-access-code", response_model=AccessCodeResponse)
async def verify_access_code(
    request: Request,
    payload: AccessCodeRequest | None = None,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> AccessCodeResponse:
    code = (payload.code if payload else None) or ""
    if not code.strip():
        raise HTTPException(status_code=400, detail="Access code is required")
    try:
        grant = await redeem_access_code(db, code=code, client_id=principal.user_id)
    except NotFoundError as exc:
        await record_event(
            session=db,
            actor_type="user",
            actor_id=principal.user_id,
            actor_role=principal.role,
            event_type="portal.access_code.rejected",
            outcome="failure",
            resource_type="business",
            request=request,
            error_code="NOT_FOUND",
            commit=True,
        )
        raise HTTPException(status_code=404, detail="Invalid access code") from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        logger.error("access_code_verification_failed user_id=%s", principal.user_id, exc_info=exc)
        raise HTTPException(status_code=500, detail="Failed to verify access code") from exc

    await record_event(
        session=db,
        actor_type="user",
        actor_id=principal.user_id,
        actor_role=principal.role,
        event_type="portal.access_code.redeemed",
        outcome="success",
        resource_type="business",
        resource_id=grant.business_id,
        request=request,
        metadata={"portal_created": grant.portal_created, "tools_seeded": grant.tools_seeded},
        commit=True,
    )
    state = grant.publish_state
    return AccessCodeResponse(
        businessId=grant.business_id,
        portalActive=grant.portal_active,
        hasPublishedItems=state.has_published_items,
        publishedTypes=PublishedTypes(**state.as_dict()),
    )


@router.get("/portal/{business_id}/publish-status", response_model=PublishStatusResponse)
async def portal_publish_status(
    business_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> PublishStatusResponse:
    business = await load_visible_business(db, business_id, principal)
    state = publish_state_for(business)
    return PublishStatusResponse(
        hasPublishedItems=state.has_published_items,
        publishedTypes=PublishedTypes(**state.as_dict()),
    )


@router.get("/portal/{business_id}/dashboard")
async def portal_dashboard(
    business_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    # Clients only ever receive content from published domains.
    business = await load_visible_business(db, business_id, principal)
    state = publish_state_for(business)
    scorecards: list[dict[str, Any]] = []
    if state.scorecard:
        views = await list_scorecard_views(db, business_id, published_only=True)
        scorecards = [
            {"id": view.scorecard.id, "category": view.scorecard.category, **highlights_payload(view)}
            for view in views
        ]
    opportunities: list[dict[str, Any]] = []
    if state.opportunities:
        rows = await opportunities_repo.list_opportunities(
            db, business_id, kind="regular", published_only=True
        )
        opportunities = [
            {
                "id": row.id,
                "title": row.title,
                "description": row.description,
                "category": row.category,
                "status": row.status,
                "timelineSpan": row.timeline_span,
            }
            for row in rows
        ]
    assessments: list[dict[str, Any]] = []
    if state.assessments:
        rows = await assessments_repo.list_assessments(db, business_id, published_only=True)
        assessments = [
            {"id": row.id, "name": row.name, "score": row.score, **parse_description(row.description)}
            for row in rows
        ]
    return {
        "business": {"id": business.id, "name": business.name, "industry": business.industry},
        "publishedTypes": state.as_dict(),
        "scorecards": scorecards,
        "opportunities": opportunities,
        "assessments": assessments,
    }


@router.get("/portal/{business_id}/tools")
async def portal_tools(
    business_id: str,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    business = await load_visible_business(db, business_id, principal)
    tools = await tools_repo.list_tools(db, business_id)
    return {
        "businessCode": business.code,
        "tools": [
            {
                "id": tool.id,
                "name": tool.name,
                "description": tool.description,
                "status": tool.status,
                "isRequested": tool.is_requested,
            }
            for tool in tools
        ],
    }


@router.get("/portal/intake-questions")
async def portal_intake_questions(
    business_id: str = Query(alias="businessId"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    portal = await require_portal(db, business_id, principal)
    questions = await intake_repo.list_questions(db, business_id, active_only=True)
    answers = await intake_repo.answers_by_question(db, portal.id)
    return {"questions": group_by_area(questions, answers)}


@router.post("/portal/intake-answers")
async def portal_intake_answers(
    payload: IntakeAnswersRequest,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    portal = await require_portal(db, payload.businessId, principal)
    try:
        stored = await save_answers(
            db,
            business_id=payload.businessId,
            client_portal_id=portal.id,
            answers=payload.answers,
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to save answers") from exc
    await record_event(
        session=db,
        actor_type="user",
        actor_id=principal.user_id,
        actor_role=principal.role,
        event_type="portal.intake.answered",
        outcome="success",
        resource_type="business",
        resource_id=payload.businessId,
        request=request,
        metadata={"answers": stored},
        commit=True,
    )
    return {"success": True, "saved": stored}
