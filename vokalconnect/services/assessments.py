from __future__ import annotations

from dataclasses import dataclass
import json
import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.domain.models import Assessment
from vokalconnect.persistence.repos import assessments as assessments_repo
from vokalconnect.persistence.repos import businesses as businesses_repo


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QuestionScore:
    text: str
    score: float
    note: str = ""


def summarize_questions(questions: list[QuestionScore]) -> tuple[float, str]:
    """Return (average score, JSON description) for a questionnaire.

    Blank notes are dropped; scores keep question order.
    """
    scores = [question.score for question in questions]
    average = sum(scores) / len(scores) if scores else 0.0
    notes = [question.note for question in questions if question.note.strip()]
    return average, json.dumps({"notes": notes, "scores": scores})


def parse_description(description: str | None) -> dict[str, Any]:
    # Free-text descriptions predate the JSON format and surface as a single note.
    if not description:
        return {"notes": [], "scores": []}
    try:
        parsed = json.loads(description)
    except ValueError:
        return {"notes": [description], "scores": []}
    if not isinstance(parsed, dict):
        return {"notes": [description], "scores": []}
    return {"notes": list(parsed.get("notes") or []), "scores": list(parsed.get("scores") or [])}


async def save_assessment_answers(
    session: AsyncSession, business_id: str, name: str, questions: list[QuestionScore]
) -> Assessment:
    average, description = summarize_questions(questions)
    business = await businesses_repo.get_business(session, business_id)
    assessment = await assessments_repo.upsert_assessment(
        session,
        business_id,
        name,
        score=average,
        description=description,
        is_published=bool(business.is_assessments_published) if business else None,
    )
    await session.commit()
    logger.info("assessment_saved business_id=%s name=%s questions=%s", business_id, name, len(questions))
    return assessment
