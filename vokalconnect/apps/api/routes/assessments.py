from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.apps.api.deps import Principal, get_db, load_managed_business, require_admin
from vokalconnect.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from vokalconnect.apps.api.response import success_response
from vokalconnect.domain.models import Assessment
from vokalconnect.persistence.repos import assessments as assessments_repo
from vokalconnect.services.assessments import QuestionScore, parse_description, save_assessment_answers
from vokalconnect.services.audit import record_event


router = APIRouter(prefix="/api/business", tags=["assessments"], responses=DEFAULT_ERROR_RESPONSES)


class AssessmentUpsertRequest(BaseModel):
    score: float = 0.0
    description: str | None = None


class QuestionAnswer(BaseModel):
    question: str
    score: float
    note: str = ""


class AssessmentAnswersRequest(BaseModel):
    questions: list[QuestionAnswer] = Field(default_factory=list)


def _to_dict(assessment: Assessment) -> dict[str, Any]:
    return {
        "id": assessment.id,
        "businessId": assessment.business_id,
        "name": assessment.name,
        "score": assessment.score,
        "description": assessment.description,
        "isPublished": assessment.is_published,
    }


@router.get("/{business_id}/assessments")
async def list_assessments(
    business_id: str,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    rows = await assessments_repo.list_assessments(db, business_id)
    return {"assessments": [_to_dict(row) for row in rows]}


@router.put("/{business_id}/assessments/{name}")
async def upsert_assessment(
    business_id: str,
    name: str,
    payload: AssessmentUpsertRequest,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    business = await load_managed_business(db, business_id, principal)
    try:
        # Rows always mirror the business publish flag.
        assessment = await assessments_repo.upsert_assessment(
            db,
            business_id,
            name,
            score=payload.score,
            description=payload.description,
            is_published=bool(business.is_assessments_published),
        )
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to save assessment") from exc
    await record_event(
        session=db,
        actor_type="user",
        actor_id=principal.user_id,
        actor_role=principal.role,
        event_type="assessment.upsert",
        outcome="success",
        resource_type="assessment",
        resource_id=assessment.id,
        request=request,
        metadata={"business_id": business_id, "name": name},
        commit=True,
    )
    return success_response(assessment=_to_dict(assessment))


@router.post("/{business_id}/assessments/{name}/answers")
async def save_answers(
    business_id: str,
    name: str,
    payload: AssessmentAnswersRequest,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    questions = [QuestionScore(text=item.question, score=item.score, note=item.note) for item in payload.questions]
    try:
        assessment = await save_assessment_answers(db, business_id, name, questions)
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to save assessment answers") from exc
    return success_response(assessment=_to_dict(assessment), **parse_description(assessment.description))


@router.get("/{business_id}/assessments/{name}/answers")
async def load_answers(
    business_id: str,
    name: str,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    assessment = await assessments_repo.get_assessment(db, business_id, name)
    if assessment is None:
        raise HTTPException(status_code=404, detail="Assessment not found")
    return {"score": assessment.score, **parse_description(assessment.description)}
