from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.domain.models import Report


async def list_reports(session: AsyncSession, business_id: str, *, bucket: str | None = None) -> list[Report]:
    stmt = select(Report).where(Report.business_id == business_id)
    if bucket:
        stmt = stmt.where(Report.bucket == bucket)
    result = await session.execute(stmt.order_by(Report.created_at.desc(), Report.id))
    return list(result.scalars().all())


async def get_report(session: AsyncSession, business_id: str, report_id: str) -> Report | None:
    # Scope by business so report ids from another workspace resolve to None.
    result = await session.execute(
        select(Report).where(Report.id == report_id, Report.business_id == business_id)
    )
    return result.scalar_one_or_none()
