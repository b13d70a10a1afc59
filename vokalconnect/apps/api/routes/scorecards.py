from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.apps.api.deps import Principal, get_db, load_managed_business, require_admin
from vokalconnect.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from vokalconnect.apps.api.response import success_response
from vokalconnect.core.errors import NotFoundError
from vokalconnect.services import scorecards as scorecards_service
from vokalconnect.services.audit import record_event
from vokalconnect.services.scorecards import HighlightInput, ScorecardView


logger = logging.getLogger(__name__)
router = APIRouter(prefix="/api/business", tags=["scorecards"], responses=DEFAULT_ERROR_RESPONSES)


class ScorecardUpsertRequest(BaseModel):
    score: float | None = None
    maxScore: float | None = Field(default=None, gt=0)
    # Any legacy shape is accepted: null, JSON string, list or {items, ...}.
    highlights: Any = None


class ScoreUpdateRequest(BaseModel):
    score: float
    maxScore: float | None = Field(default=None, gt=0)


class HighlightCreateRequest(BaseModel):
    text: str = Field(min_length=1)
    serviceArea: str | None = None
    relatedMetricId: str | None = None
    aiGenerated: bool = False


class HighlightUpdateRequest(BaseModel):
    text: str | None = Field(default=None, min_length=1)
    serviceArea: str | None = None
    relatedMetricId: str | None = None


class MetricSignalRequest(BaseModel):
    metricName: str
    value: Any = None
    direction: str | None = None
    note: str | None = None


def _scorecard_to_dict(view: ScorecardView) -> dict[str, Any]:
    scorecard = view.scorecard
    return {
        "id": scorecard.id,
        "businessId": scorecard.business_id,
        "category": scorecard.category,
        "score": scorecard.score,
        "maxScore": scorecard.max_score,
        "isPublished": scorecard.is_published,
        "version": scorecard.version,
        "metricSignals": list(scorecard.metric_signals or []),
        "highlights": scorecards_service.highlights_payload(view),
        "lastAuditedAt": scorecard.last_audited_at.isoformat() if scorecard.last_audited_at else None,
    }


async def _audit(
    db: AsyncSession,
    request: Request,
    principal: Principal,
    event_type: str,
    business_id: str,
    metadata: dict[str, Any],
) -> None:
    await record_event(
        session=db,
        actor_type="user",
        actor_id=principal.user_id,
        actor_role=principal.role,
        event_type=event_type,
        outcome="success",
        resource_type="scorecard",
        resource_id=business_id,
        request=request,
        metadata=metadata,
        commit=True,
    )


@router.get("/{business_id}/scorecards")
async def list_scorecards(
    business_id: str,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    views = await scorecards_service.list_scorecard_views(db, business_id)
    return {"scorecards": [_scorecard_to_dict(view) for view in views]}


@router.post("/{business_id}/scorecards/initialize")
async def initialize_scorecards(
    business_id: str,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    try:
        created = await scorecards_service.initialize_scorecards(db, business_id)
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to initialize scorecards") from exc
    await _audit(db, request, principal, "scorecard.initialize", business_id, {"created": created})
    return success_response(created=created)


@router.post("/{business_id}/scorecards/preload")
async def preload_scorecards(
    business_id: str,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    try:
        count = await scorecards_service.preload_placeholder_scorecards(db, business_id)
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to preload scorecards") from exc
    await _audit(db, request, principal, "scorecard.preload", business_id, {"categories": count})
    views = await scorecards_service.list_scorecard_views(db, business_id)
    return success_response(scorecards=[_scorecard_to_dict(view) for view in views])


@router.put("/{business_id}/scorecards/{category}")
async def upsert_scorecard(
    business_id: str,
    category: str,
    payload: ScorecardUpsertRequest,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    # Only replace highlights when the caller actually sent the field.
    replace = "highlights" in payload.model_fields_set
    try:
        view = await scorecards_service.upsert_scorecard(
            db,
            business_id,
            category,
            score=payload.score,
            max_score=payload.maxScore,
            highlights=payload.highlights,
            replace_highlights=replace,
        )
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to save scorecard") from exc
    await _audit(db, request, principal, "scorecard.upsert", business_id, {"category": category})
    return success_response(scorecard=_scorecard_to_dict(view))


@router.patch("/{business_id}/scorecards/{category}/score")
async def update_scorecard_score(
    business_id: str,
    category: str,
    payload: ScoreUpdateRequest,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    try:
        scorecard = await scorecards_service.update_score(
            db, business_id, category, score=payload.score, max_score=payload.maxScore
        )
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to update score") from exc
    return success_response(category=scorecard.category, score=scorecard.score, maxScore=scorecard.max_score)


@router.post("/{business_id}/scorecards/{category}/metric-signals")
async def add_metric_signal(
    business_id: str,
    category: str,
    payload: MetricSignalRequest,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    try:
        signal = await scorecards_service.add_metric_signal(
            db, business_id, category, payload.model_dump(exclude_none=True)
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to add metric signal") from exc
    return success_response(signal=signal)


@router.post("/{business_id}/scorecards/{category}/highlights", status_code=201)
async def add_highlight(
    business_id: str,
    category: str,
    payload: HighlightCreateRequest,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    try:
        highlight = await scorecards_service.add_highlight(
            db,
            business_id,
            category,
            HighlightInput(
                text=payload.text,
                service_area=payload.serviceArea,
                related_metric_id=payload.relatedMetricId,
                ai_generated=payload.aiGenerated,
            ),
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to add highlight") from exc
    await _audit(
        db,
        request,
        principal,
        "scorecard.highlight.create",
        business_id,
        {"category": category, "highlight_id": highlight.id},
    )
    return success_response(highlight=scorecards_service.highlight_to_dict(highlight))


@router.patch("/{business_id}/scorecards/{category}/highlights/{highlight_id}")
async def update_highlight(
    business_id: str,
    category: str,
    highlight_id: str,
    payload: HighlightUpdateRequest,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    try:
        highlight = await scorecards_service.update_highlight(
            db,
            business_id,
            category,
            highlight_id,
            text=payload.text,
            service_area=payload.serviceArea,
            related_metric_id=payload.relatedMetricId,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to update highlight") from exc
    return success_response(highlight=scorecards_service.highlight_to_dict(highlight))


@router.delete("/{business_id}/scorecards/{category}/highlights/{highlight_id}", status_code=204)
async def delete_highlight(
    business_id: str,
    category: str,
    highlight_id: str,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await load_managed_business(db, business_id, principal)
    try:
        await scorecards_service.delete_highlight(db, business_id, category, highlight_id)
    except NotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to delete highlight") from exc
    await _audit(
        db,
        request,
        principal,
        "scorecard.highlight.delete",
        business_id,
        {"category": category, "highlight_id": highlight_id},
    )
    return Response(status_code=204)
