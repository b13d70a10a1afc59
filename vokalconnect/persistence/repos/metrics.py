from __future__ import annotations

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.domain.models import Metric


async def list_metrics(session: AsyncSession, business_id: str) -> list[Metric]:
    result = await session.execute(
        select(Metric).where(Metric.business_id == business_id).order_by(Metric.created_at, Metric.name)
    )
    return list(result.scalars().all())


async def get_metric(session: AsyncSession, business_id: str, metric_id: str) -> Metric | None:
    result = await session.execute(
        select(Metric).where(Metric.id == metric_id, Metric.business_id == business_id)
    )
    return result.scalar_one_or_none()


async def delete_metrics_for_business(session: AsyncSession, business_id: str) -> None:
    await session.execute(delete(Metric).where(Metric.business_id == business_id))
