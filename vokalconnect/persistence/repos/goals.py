from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.domain.models import Goal, Kpi


async def list_goals(session: AsyncSession, business_id: str) -> list[Goal]:
    result = await session.execute(
        select(Goal).where(Goal.business_id == business_id).order_by(Goal.created_at.desc(), Goal.id)
    )
    return list(result.scalars().all())


async def get_goal(session: AsyncSession, goal_id: str) -> Goal | None:
    return await session.get(Goal, goal_id)


async def list_kpis(session: AsyncSession, business_id: str) -> list[Kpi]:
    # The goals page renders KPIs alphabetically.
    result = await session.execute(
        select(Kpi).where(Kpi.business_id == business_id).order_by(Kpi.name, Kpi.id)
    )
    return list(result.scalars().all())


async def get_kpi(session: AsyncSession, kpi_id: str) -> Kpi | None:
    return await session.get(Kpi, kpi_id)
