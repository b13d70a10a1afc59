from __future__ import annotations

from datetime import datetime
from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.apps.api.deps import Principal, get_current_principal, get_db, has_business_access
from vokalconnect.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from vokalconnect.apps.api.response import success_response
from vokalconnect.domain.models import Business, Goal, Kpi
from vokalconnect.persistence.repos import businesses as businesses_repo
from vokalconnect.persistence.repos import goals as goals_repo
from vokalconnect.services.audit import record_event


router = APIRouter(prefix="/api/admin", tags=["goals"], responses=DEFAULT_ERROR_RESPONSES)

GOAL_STATUSES = ("NOT_STARTED", "IN_PROGRESS", "COMPLETED")


class GoalCreateRequest(BaseModel):
    businessId: str
    name: str = Field(min_length=1)
    description: str | None = None
    status: str = "IN_PROGRESS"
    targetDate: datetime | None = None


class GoalUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    status: str | None = None
    targetDate: datetime | None = None


class KpiCreateRequest(BaseModel):
    businessId: str
    name: str = Field(min_length=1)
    description: str | None = None
    target: str | None = None
    current: str | None = None
    unit: str | None = None


class KpiUpdateRequest(BaseModel):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    target: str | None = None
    current: str | None = None
    unit: str | None = None


def _goal_to_dict(goal: Goal) -> dict[str, Any]:
    return {
        "id": goal.id,
        "businessId": goal.business_id,
        "name": goal.name,
        "description": goal.description,
        "status": goal.status,
        "targetDate": goal.target_date.isoformat() if goal.target_date else None,
        "createdAt": goal.created_at.isoformat() if goal.created_at else None,
    }


def _kpi_to_dict(kpi: Kpi) -> dict[str, Any]:
    return {
        "id": kpi.id,
        "businessId": kpi.business_id,
        "name": kpi.name,
        "description": kpi.description,
        "target": kpi.target,
        "current": kpi.current,
        "unit": kpi.unit,
        "createdAt": kpi.created_at.isoformat() if kpi.created_at else None,
    }


def _validated_status(value: str) -> str:
    normalized = value.strip().upper().replace(" ", "_")
    if normalized not in GOAL_STATUSES:
        raise HTTPException(status_code=400, detail=f"Unsupported goal status: {value}")
    return normalized


async def _load_business(db: AsyncSession, business_id: str | None, principal: Principal) -> Business:
    # Owners and members only; an unknown id is indistinguishable from no access.
    if not business_id:
        raise HTTPException(status_code=400, detail="Business ID is required")
    business = await businesses_repo.get_business(db, business_id)
    if business is None or not await has_business_access(db, business, principal):
        raise HTTPException(
            status_code=403,
            detail={"code": "AUTH_FORBIDDEN", "message": "You do not have access to this business"},
        )
    return business


async def _commit(db: AsyncSession, failure: str) -> None:
    try:
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail=failure) from exc


async def _audit(
    db: AsyncSession, request: Request, principal: Principal, event_type: str, resource_id: str, business_id: str
) -> None:
    await record_event(
        session=db,
        actor_type="user",
        actor_id=principal.user_id,
        actor_role=principal.role,
        event_type=event_type,
        outcome="success",
        resource_type=event_type.split(".")[0],
        resource_id=resource_id,
        request=request,
        metadata={"business_id": business_id},
        commit=True,
    )


@router.get("/goals")
async def list_goals(
    business_id: str | None = Query(default=None, alias="businessId"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    business = await _load_business(db, business_id, principal)
    return {"items": [_goal_to_dict(goal) for goal in await goals_repo.list_goals(db, business.id)]}


@router.post("/goals", status_code=201)
async def create_goal(
    payload: GoalCreateRequest,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    business = await _load_business(db, payload.businessId, principal)
    goal = Goal(
        business_id=business.id,
        name=payload.name,
        description=payload.description,
        status=_validated_status(payload.status),
        target_date=payload.targetDate,
    )
    db.add(goal)
    await _commit(db, "Failed to create goal")
    await _audit(db, request, principal, "goal.create", goal.id, business.id)
    return success_response(goal=_goal_to_dict(goal))


async def _owned_goal(db: AsyncSession, goal_id: str, principal: Principal) -> Goal:
    goal = await goals_repo.get_goal(db, goal_id)
    if goal is None:
        raise HTTPException(status_code=404, detail="Goal not found")
    await _load_business(db, goal.business_id, principal)
    return goal


@router.patch("/goals/{goal_id}")
async def update_goal(
    goal_id: str,
    payload: GoalUpdateRequest,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    goal = await _owned_goal(db, goal_id, principal)
    if payload.name is not None:
        goal.name = payload.name
    if payload.description is not None:
        goal.description = payload.description
    if payload.status is not None:
        goal.status = _validated_status(payload.status)
    if payload.targetDate is not None:
        goal.target_date = payload.targetDate
    await _commit(db, "Failed to update goal")
    await _audit(db, request, principal, "goal.update", goal.id, goal.business_id)
    return success_response(goal=_goal_to_dict(goal))


@router.delete("/goals/{goal_id}", status_code=204)
async def delete_goal(
    goal_id: str,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> Response:
    goal = await _owned_goal(db, goal_id, principal)
    business_id = goal.business_id
    await db.delete(goal)
    await _commit(db, "Failed to delete goal")
    await _audit(db, request, principal, "goal.delete", goal_id, business_id)
    return Response(status_code=204)


@router.get("/kpis")
async def list_kpis(
    business_id: str | None = Query(default=None, alias="businessId"),
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    business = await _load_business(db, business_id, principal)
    return {"items": [_kpi_to_dict(kpi) for kpi in await goals_repo.list_kpis(db, business.id)]}


@router.post("/kpis", status_code=201)
async def create_kpi(
    payload: KpiCreateRequest,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    business = await _load_business(db, payload.businessId, principal)
    kpi = Kpi(
        business_id=business.id,
        name=payload.name,
        description=payload.description,
        target=payload.target,
        current=payload.current,
        unit=payload.unit,
    )
    db.add(kpi)
    await _commit(db, "Failed to create KPI")
    await _audit(db, request, principal, "kpi.create", kpi.id, business.id)
    return success_response(kpi=_kpi_to_dict(kpi))


async def _owned_kpi(db: AsyncSession, kpi_id: str, principal: Principal) -> Kpi:
    kpi = await goals_repo.get_kpi(db, kpi_id)
    if kpi is None:
        raise HTTPException(status_code=404, detail="KPI not found")
    await _load_business(db, kpi.business_id, principal)
    return kpi


@router.patch("/kpis/{kpi_id}")
async def update_kpi(
    kpi_id: str,
    payload: KpiUpdateRequest,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    kpi = await _owned_kpi(db, kpi_id, principal)
    for field_name in ("name", "description", "target", "current", "unit"):
        value = getattr(payload, field_name)
        if value is not None:
            setattr(kpi, field_name, value)
    await _commit(db, "Failed to update KPI")
    await _audit(db, request, principal, "kpi.update", kpi.id, kpi.business_id)
    return success_response(kpi=_kpi_to_dict(kpi))


@router.delete("/kpis/{kpi_id}", status_code=204)
async def delete_kpi(
    kpi_id: str,
    request: Request,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
) -> Response:
    kpi = await _owned_kpi(db, kpi_id, principal)
    business_id = kpi.business_id
    await db.delete(kpi)
    await _commit(db, "Failed to delete KPI")
    await _audit(db, request, principal, "kpi.delete", kpi_id, business_id)
    return Response(status_code=204)
