from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.apps.api.deps import (
    Principal,
    get_current_principal,
    get_db,
    load_managed_business,
    require_admin,
)
from vokalconnect.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from vokalconnect.apps.api.response import success_response
from vokalconnect.domain.models import Metric
from vokalconnect.persistence.repos import metrics as metrics_repo
from vokalconnect.services.audit import record_event
from vokalconnect.services.metrics import (
    DEFAULT_INDUSTRY,
    INDUSTRY_BENCHMARKS,
    benchmark_for,
    normalize_metric_type,
)


router = APIRouter(prefix="/api", tags=["metrics"], responses=DEFAULT_ERROR_RESPONSES)


class MetricInput(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    type: str = "TEXT"
    value: str | None = None
    target: str | None = None
    benchmark: str | None = None
    isClientRequested: bool = False


class MetricsReplaceRequest(BaseModel):
    metrics: list[MetricInput] = Field(default_factory=list)


class MetricUpdateRequest(BaseModel):
    value: str | None = None
    target: str | None = None
    benchmark: str | None = None
    description: str | None = None
    isClientRequested: bool | None = None


def _to_dict(metric: Metric) -> dict[str, Any]:
    return {
        "id": metric.id,
        "businessId": metric.business_id,
        "name": metric.name,
        "description": metric.description,
        "type": metric.type,
        "value": metric.value,
        "target": metric.target,
        "benchmark": metric.benchmark,
        "isClientRequested": metric.is_client_requested,
    }


@router.get("/businesses/{business_id}/metrics")
async def list_metrics(
    business_id: str,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    rows = await metrics_repo.list_metrics(db, business_id)
    return {"metrics": [_to_dict(row) for row in rows]}


@router.put("/businesses/{business_id}/metrics")
async def replace_metrics(
    business_id: str,
    payload: MetricsReplaceRequest,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    business = await load_managed_business(db, business_id, principal)
    try:
        types = [normalize_metric_type(item.type) for item in payload.metrics]
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    created: list[Metric] = []
    try:
        await metrics_repo.delete_metrics_for_business(db, business_id)
        for item, metric_type in zip(payload.metrics, types):
            metric = Metric(
                business_id=business_id,
                name=item.name,
                description=item.description,
                type=metric_type,
                value=item.value,
                target=item.target,
                # Fall back to the industry table when no benchmark was supplied.
                benchmark=item.benchmark or benchmark_for(business.industry, item.name),
                is_client_requested=item.isClientRequested,
            )
            db.add(metric)
            created.append(metric)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to save metrics") from exc
    await record_event(
        session=db,
        actor_type="user",
        actor_id=principal.user_id,
        actor_role=principal.role,
        event_type="business.metrics.replace",
        outcome="success",
        resource_type="business",
        resource_id=business_id,
        request=request,
        metadata={"count": len(created)},
        commit=True,
    )
    return success_response(metrics=[_to_dict(metric) for metric in created])


@router.patch("/businesses/{business_id}/metrics/{metric_id}")
async def update_metric(
    business_id: str,
    metric_id: str,
    payload: MetricUpdateRequest,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    metric = await metrics_repo.get_metric(db, business_id, metric_id)
    if metric is None:
        raise HTTPException(status_code=404, detail="Metric not found")
    if payload.value is not None:
        metric.value = payload.value
    if payload.target is not None:
        metric.target = payload.target
    if payload.benchmark is not None:
        metric.benchmark = payload.benchmark
    if payload.description is not None:
        metric.description = payload.description
    if payload.isClientRequested is not None:
        metric.is_client_requested = payload.isClientRequested
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to update metric") from exc
    return success_response(metric=_to_dict(metric))


@router.get("/metrics/benchmarks")
async def get_benchmarks(
    industry: str | None = Query(default=None),
    principal: Principal = Depends(get_current_principal),
) -> dict[str, Any]:
    resolved = industry if industry in INDUSTRY_BENCHMARKS else DEFAULT_INDUSTRY
    return {"industry": resolved, "benchmarks": INDUSTRY_BENCHMARKS[resolved]}
