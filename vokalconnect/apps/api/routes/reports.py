from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from pydantic import BaseModel, Field
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.apps.api.deps import Principal, get_db, load_managed_business, require_admin
from vokalconnect.apps.api.openapi import DEFAULT_ERROR_RESPONSES
from vokalconnect.apps.api.response import success_response
from vokalconnect.domain.models import Report
from vokalconnect.persistence.repos import reports as reports_repo
from vokalconnect.services.audit import record_event


router = APIRouter(prefix="/api/business", tags=["reports"], responses=DEFAULT_ERROR_RESPONSES)

REQUIRED_REPORT_FIELDS = ("auditTypeId", "title", "bucket")


class ReportCreateRequest(BaseModel):
    # Required fields are checked by hand so the 400 can list them.
    auditTypeId: str | None = None
    title: str | None = None
    bucket: str | None = None
    score: float = 0.0
    summary: str = ""
    metrics: list[Any] = Field(default_factory=list)
    findings: list[Any] = Field(default_factory=list)
    recommendations: list[Any] = Field(default_factory=list)
    status: str = "draft"
    importSource: str = "manual"


def _to_dict(report: Report) -> dict[str, Any]:
    return {
        "id": report.id,
        "businessId": report.business_id,
        "auditTypeId": report.audit_type_id,
        "title": report.title,
        "bucket": report.bucket,
        "score": report.score,
        "summary": report.summary,
        "metrics": report.metrics or [],
        "findings": report.findings or [],
        "recommendations": report.recommendations or [],
        "status": report.status,
        "createdById": report.created_by_id,
        "importSource": report.import_source,
        "createdAt": report.created_at.isoformat() if report.created_at else None,
    }


@router.get("/{business_id}/reports")
async def list_reports(
    business_id: str,
    bucket: str | None = Query(default=None),
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    rows = await reports_repo.list_reports(db, business_id, bucket=bucket)
    return {"reports": [_to_dict(row) for row in rows]}


@router.post("/{business_id}/reports", status_code=201)
async def create_report(
    business_id: str,
    payload: ReportCreateRequest,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> dict[str, Any]:
    await load_managed_business(db, business_id, principal)
    missing = [name for name in REQUIRED_REPORT_FIELDS if not getattr(payload, name)]
    if missing:
        raise HTTPException(
            status_code=400,
            detail={
                "code": "BAD_REQUEST",
                "message": "Required fields missing",
                "requiredFields": list(REQUIRED_REPORT_FIELDS),
                "missingFields": missing,
            },
        )
    report = Report(
        business_id=business_id,
        audit_type_id=payload.auditTypeId,
        title=payload.title,
        bucket=payload.bucket,
        score=payload.score,
        summary=payload.summary,
        metrics=list(payload.metrics),
        findings=list(payload.findings),
        recommendations=list(payload.recommendations),
        status=payload.status,
        created_by_id=principal.user_id,
        import_source=payload.importSource,
    )
    try:
        db.add(report)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to create report") from exc
    await record_event(
        session=db,
        actor_type="user",
        actor_id=principal.user_id,
        actor_role=principal.role,
        event_type="report.create",
        outcome="success",
        resource_type="report",
        resource_id=report.id,
        request=request,
        metadata={"business_id": business_id, "bucket": report.bucket},
        commit=True,
    )
    return success_response(report=_to_dict(report))


@router.delete("/{business_id}/reports/{report_id}", status_code=204)
async def delete_report(
    business_id: str,
    report_id: str,
    request: Request,
    principal: Principal = Depends(require_admin),
    db: AsyncSession = Depends(get_db),
) -> Response:
    await load_managed_business(db, business_id, principal)
    report = await reports_repo.get_report(db, business_id, report_id)
    if report is None:
        raise HTTPException(status_code=404, detail="Report not found")
    try:
        await db.delete(report)
        await db.commit()
    except SQLAlchemyError as exc:
        await db.rollback()
        raise HTTPException(status_code=500, detail="Failed to delete report") from exc
    await record_event(
        session=db,
        actor_type="user",
        actor_id=principal.user_id,
        actor_role=principal.role,
        event_type="report.delete",
        outcome="success",
        resource_type="report",
        resource_id=report_id,
        request=request,
        metadata={"business_id": business_id},
        commit=True,
    )
    return Response(status_code=204)
