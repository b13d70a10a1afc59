from __future__ import annotations

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.domain.models import Scorecard, ScorecardHighlight


async def get_scorecard(session: AsyncSession, business_id: str, category: str) -> Scorecard | None:
    result = await session.execute(
        select(Scorecard).where(Scorecard.business_id == business_id, Scorecard.category == category)
    )
    return result.scalar_one_or_none()


async def list_scorecards(session: AsyncSession, business_id: str) -> list[Scorecard]:
    result = await session.execute(
        select(Scorecard)
        .where(Scorecard.business_id == business_id)
        .order_by(Scorecard.created_at.desc(), Scorecard.category)
    )
    return list(result.scalars().all())


async def count_scorecards(session: AsyncSession, business_id: str) -> int:
    result = await session.execute(
        select(func.count(Scorecard.id)).where(Scorecard.business_id == business_id)
    )
    return int(result.scalar_one())


async def list_highlights(session: AsyncSession, scorecard_id: str) -> list[ScorecardHighlight]:
    result = await session.execute(
        select(ScorecardHighlight)
        .where(ScorecardHighlight.scorecard_id == scorecard_id)
        .order_by(ScorecardHighlight.position, ScorecardHighlight.created_at, ScorecardHighlight.id)
    )
    return list(result.scalars().all())


async def list_highlights_for_scorecards(
    session: AsyncSession, scorecard_ids: list[str]
) -> dict[str, list[ScorecardHighlight]]:
    # Batch load to avoid one query per scorecard on list endpoints.
    grouped: dict[str, list[ScorecardHighlight]] = {scorecard_id: [] for scorecard_id in scorecard_ids}
    if not scorecard_ids:
        return grouped
    result = await session.execute(
        select(ScorecardHighlight)
        .where(ScorecardHighlight.scorecard_id.in_(scorecard_ids))
        .order_by(ScorecardHighlight.position, ScorecardHighlight.created_at, ScorecardHighlight.id)
    )
    for highlight in result.scalars().all():
        grouped[highlight.scorecard_id].append(highlight)
    return grouped


async def get_highlight(
    session: AsyncSession, scorecard_id: str, highlight_id: str
) -> ScorecardHighlight | None:
    result = await session.execute(
        select(ScorecardHighlight).where(
            ScorecardHighlight.id == highlight_id,
            ScorecardHighlight.scorecard_id == scorecard_id,
        )
    )
    return result.scalar_one_or_none()


async def bump_version(session: AsyncSession, scorecard_id: str) -> int:
    # Single-statement increment takes the row lock for the rest of the transaction.
    result = await session.execute(
        update(Scorecard)
        .where(Scorecard.id == scorecard_id)
        .values(version=Scorecard.version + 1)
        .returning(Scorecard.version)
    )
    return int(result.scalar_one())


async def next_highlight_position(session: AsyncSession, scorecard_id: str) -> int:
    result = await session.execute(
        select(func.coalesce(func.max(ScorecardHighlight.position), -1)).where(
            ScorecardHighlight.scorecard_id == scorecard_id
        )
    )
    return int(result.scalar_one()) + 1


async def set_published_for_business(session: AsyncSession, business_id: str, is_published: bool) -> None:
    await session.execute(
        update(Scorecard)
        .where(Scorecard.business_id == business_id)
        .values(is_published=is_published)
    )
