"""Aggregated snapshot of everything known about one business.

Used by the admin "brain" view and as the context document handed to
downstream analysis. Read-only.
"""

from __future__ import annotations

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.domain.models import Business
from vokalconnect.persistence.repos import assessments as assessments_repo
from vokalconnect.persistence.repos import intake as intake_repo
from vokalconnect.persistence.repos import metrics as metrics_repo
from vokalconnect.persistence.repos import opportunities as opportunities_repo
from vokalconnect.services.assessments import parse_description
from vokalconnect.services.intake import DEFAULT_AREA
from vokalconnect.services.publishing import publish_state_for
from vokalconnect.services.scorecards import highlights_payload, list_scorecard_views


async def build_business_brain(session: AsyncSession, business: Business) -> dict[str, Any]:
    metrics = await metrics_repo.list_metrics(session, business.id)
    opportunities = await opportunities_repo.list_opportunities(session, business.id, kind="regular")
    scorecards = await list_scorecard_views(session, business.id)
    assessments = await assessments_repo.list_assessments(session, business.id)
    questions = await intake_repo.list_questions(session, business.id)
    answers = await intake_repo.list_answers_for_business(session, business.id)

    answers_by_question: dict[str, list[str]] = {}
    for answer in answers:
        answers_by_question.setdefault(answer.question_id, []).append(answer.answer)

    return {
        "business": {
            "id": business.id,
            "name": business.name,
            "industry": business.industry,
            "website": business.website,
            "description": business.description,
            "connections": business.connections or {},
        },
        "publishedTypes": publish_state_for(business).as_dict(),
        "metrics": [
            {
                "name": metric.name,
                "type": metric.type,
                "value": metric.value,
                "target": metric.target,
                "benchmark": metric.benchmark,
            }
            for metric in metrics
        ],
        "scorecards": [
            {"category": view.scorecard.category, **highlights_payload(view)} for view in scorecards
        ],
        "opportunities": [
            {
                "title": opportunity.title,
                "category": opportunity.category,
                "status": opportunity.status,
                "description": opportunity.description,
                "timelineSpan": opportunity.timeline_span,
            }
            for opportunity in opportunities
        ],
        "assessments": [
            {"name": assessment.name, "score": assessment.score, **parse_description(assessment.description)}
            for assessment in assessments
        ],
        "intake": [
            {
                "area": question.area or DEFAULT_AREA,
                "question": question.question,
                "answers": answers_by_question.get(question.id, []),
            }
            for question in questions
        ],
    }
