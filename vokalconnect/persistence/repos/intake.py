from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.domain.models import IntakeAnswer, IntakeQuestion


async def get_question(session: AsyncSession, question_id: str) -> IntakeQuestion | None:
    return await session.get(IntakeQuestion, question_id)


async def list_questions(
    session: AsyncSession, business_id: str, *, active_only: bool = False
) -> list[IntakeQuestion]:
    stmt = select(IntakeQuestion).where(IntakeQuestion.business_id == business_id)
    if active_only:
        stmt = stmt.where(IntakeQuestion.is_active.is_(True))
    result = await session.execute(stmt.order_by(IntakeQuestion.order, IntakeQuestion.created_at))
    return list(result.scalars().all())


async def answers_by_question(session: AsyncSession, client_portal_id: str) -> dict[str, IntakeAnswer]:
    result = await session.execute(
        select(IntakeAnswer).where(IntakeAnswer.client_portal_id == client_portal_id)
    )
    return {answer.question_id: answer for answer in result.scalars().all()}


async def list_answers_for_business(session: AsyncSession, business_id: str) -> list[IntakeAnswer]:
    question_ids = select(IntakeQuestion.id).where(IntakeQuestion.business_id == business_id)
    result = await session.execute(
        select(IntakeAnswer).where(IntakeAnswer.question_id.in_(question_ids))
    )
    return list(result.scalars().all())
