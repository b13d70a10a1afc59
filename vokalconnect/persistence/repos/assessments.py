from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.domain.models import Assessment


async def get_assessment(session: AsyncSession, business_id: str, name: str) -> Assessment | None:
    result = await session.execute(
        select(Assessment).where(Assessment.business_id == business_id, Assessment.name == name)
    )
    return result.scalar_one_or_none()


async def list_assessments(
    session: AsyncSession, business_id: str, *, published_only: bool = False
) -> list[Assessment]:
    stmt = select(Assessment).where(Assessment.business_id == business_id)
    if published_only:
        stmt = stmt.where(Assessment.is_published.is_(True))
    result = await session.execute(stmt.order_by(Assessment.name))
    return list(result.scalars().all())


async def upsert_assessment(
    session: AsyncSession,
    business_id: str,
    name: str,
    *,
    score: float,
    description: str | None,
    is_published: bool | None = None,
) -> Assessment:
    assessment = await get_assessment(session, business_id, name)
    if assessment is None:
        assessment = Assessment(
            business_id=business_id,
            name=name,
            score=score,
            description=description,
            is_published=bool(is_published),
        )
        session.add(assessment)
        await session.flush()
        return assessment
    assessment.score = score
    assessment.description = description
    if is_published is not None:
        assessment.is_published = is_published
    return assessment


async def set_published_for_business(session: AsyncSession, business_id: str, is_published: bool) -> None:
    await session.execute(
        update(Assessment)
        .where(Assessment.business_id == business_id)
        .values(is_published=is_published)
    )
