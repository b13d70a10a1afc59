from __future__ import annotations

import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.domain.models import IntakeAnswer, IntakeQuestion
from vokalconnect.persistence.repos import intake as intake_repo


logger = logging.getLogger(__name__)

DEFAULT_AREA = "Other"


def question_to_dict(question: IntakeQuestion, saved_answer: str | None = None) -> dict[str, Any]:
    return {
        "id": question.id,
        "businessId": question.business_id,
        "question": question.question,
        "type": question.type,
        "options": question.options or [],
        "order": question.order,
        "area": question.area or DEFAULT_AREA,
        "isActive": question.is_active,
        "savedAnswer": saved_answer,
    }


def group_by_area(
    questions: list[IntakeQuestion], answers: dict[str, IntakeAnswer]
) -> dict[str, list[dict[str, Any]]]:
    # Areas keep first-seen order; questions keep their configured order.
    grouped: dict[str, list[dict[str, Any]]] = {}
    for question in questions:
        answer = answers.get(question.id)
        grouped.setdefault(question.area or DEFAULT_AREA, []).append(
            question_to_dict(question, answer.answer if answer else None)
        )
    return grouped


async def save_answers(
    session: AsyncSession,
    *,
    business_id: str,
    client_portal_id: str,
    answers: dict[str, Any],
) -> int:
    """Upsert one answer per question for the portal; unknown ids are skipped.

    Returns the number of answers stored. The caller owns the commit.
    """
    questions = {q.id: q for q in await intake_repo.list_questions(session, business_id, active_only=True)}
    existing = await intake_repo.answers_by_question(session, client_portal_id)
    stored = 0
    for question_id, raw_answer in answers.items():
        if question_id not in questions:
            logger.info("intake_answer_skipped question_id=%s", question_id)
            continue
        value = raw_answer if isinstance(raw_answer, str) else str(raw_answer)
        answer = existing.get(question_id)
        if answer is None:
            session.add(
                IntakeAnswer(question_id=question_id, client_portal_id=client_portal_id, answer=value)
            )
        else:
            answer.answer = value
        stored += 1
    await session.flush()
    return stored
