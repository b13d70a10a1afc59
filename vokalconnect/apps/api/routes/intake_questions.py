from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.apps.api.deps import Principal, get_db, load_owned_business, require_admin
from vokalconnect.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from vokalconnect.apps.api.response import success_response
from vokalconnect.domain.models import IntakeQuestion
from vokalconnect.persistence.repos import intake as intake_repo
from vokalconnect.services.intake import question_to_dict


router = APIRouter(prefix="/api/intake-questions", tags=["intake"], responses=DEFAULT_ERROR_RESPONSES)

QUESTION_TYPES = ("TEXT", "TEXTAREA", "SELECT", "MULTI_SELECT", "NUMBER", "BOOLEAN")


class IntakeQuestionCreateRequest(BaseModel):
    businessId: str
    question: str = Field(min_length=1)
    type: str = "TEXT"
    options: list[str] | None = None
    order: int = 0
    area: str | None = None
    isActive: bool = True


class IntakeQuestionUpdateRequest(BaseModel):
    question: str | None = Field(default=None, min_length=1)
    type: str | None = None
    options: list[str] | None = None
    order: int | None = None
    area: str | None = None
    isActive: bool | None = None


def _validated_type(value: str) -> str:
    normalized = value.strip().upper()
    if normalized not in QUESTION_TYPES:
        raise HTTPException(status_code=400, detail=f"Unsupported question type: {value}")
    return normalized


async def _load_question(db: AsyncSession, question_id: str, principal: Principal) -> IntakeQuestion:
    question = await intake_repo.get_question(db, question_id)
    if question is None:
        raise HTTPException(status_code=404, detail="Question not found")
    await load_owned_business(db, question.business_id, principal)
    return question


@router.get("")
async def list_intake_questions(
    business_id: str = Query(alias="businessId"),
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_owned_business(db, business_id, principal)
    questions = await intake_repo.list_questions(db, business_id)
    return {"questions": [question_to_dict(question) for question in questions]}


@router.post("", status_code=201)
async def create_intake_question(
    payload: IntakeQuestionCreateRequest,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_owned_business(db, payload.businessId, principal)
    question = IntakeQuestion(
        business_id=payload.businessId,
        question=payload.question,
        type=_validated_type(payload.type),
        options=payload.options,
        order=payload.order,
        area=payload.area,
        is_active=payload.isActive,
    )
    try:
        db.add(question)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to create question") from exc
    return success_response(question=question_to_dict(question))


@router.patch("/{question_id}")
async def update_intake_question(
    question_id: str,
    payload: IntakeQuestionUpdateRequest,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    question = await _load_question(db, question_id, principal)
    if payload.question is not None:
        question.question = payload.question
    if payload.type is not None:
        question.type = _validated_type(payload.type)
    if payload.options is not None:
        question.options = list(payload.options)
    if payload.order is not None:
        question.order = payload.order
    if payload.area is not None:
        question.area = payload.area
    if payload.isActive is not None:
        question.is_active = payload.isActive
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to update question") from exc
    return success_response(question=question_to_dict(question))


@router.delete("/{question_id}", status_code=204)
async def delete_intake_question(
    question_id: str,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Response:
    question = await _load_question(db, question_id, principal)
    try:
        await db.delete(question)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to delete question") from exc
    return Response(status_code=204)
