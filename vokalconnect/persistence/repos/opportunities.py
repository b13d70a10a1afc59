from __future__ import annotations

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.domain.models import Opportunity


# Legacy rows carrying scorecard data were tagged by title only. Matching is
# case-insensitive so sqlite and Postgres classify rows the same way.
LEGACY_SCORECARD_MARKER = "Scorecard"


async def get_opportunity(session: AsyncSession, opportunity_id: str) -> Opportunity | None:
    return await session.get(Opportunity, opportunity_id)


async def list_opportunities(
    session: AsyncSession,
    business_id: str,
    *,
    kind: str | None = None,
    published_only: bool = False,
) -> list[Opportunity]:
    stmt = select(Opportunity).where(Opportunity.business_id == business_id)
    if kind == "scorecard":
        stmt = stmt.where(Opportunity.title.icontains(LEGACY_SCORECARD_MARKER))
    elif kind == "regular":
        stmt = stmt.where(~Opportunity.title.icontains(LEGACY_SCORECARD_MARKER))
    if published_only:
        stmt = stmt.where(Opportunity.is_published.is_(True))
    stmt = stmt.order_by(Opportunity.created_at.desc(), Opportunity.id)
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def list_legacy_scorecard_rows(session: AsyncSession) -> list[Opportunity]:
    result = await session.execute(
        select(Opportunity)
        .where(Opportunity.title.icontains(LEGACY_SCORECARD_MARKER))
        .order_by(Opportunity.business_id, Opportunity.created_at)
    )
    return list(result.scalars().all())


async def list_with_span_markers(session: AsyncSession) -> list[Opportunity]:
    result = await session.execute(
        select(Opportunity).where(Opportunity.description.contains("[SPAN:"))
    )
    return list(result.scalars().all())


async def set_published_for_business(session: AsyncSession, business_id: str, is_published: bool) -> None:
    await session.execute(
        update(Opportunity)
        .where(
            Opportunity.business_id == business_id,
            ~Opportunity.title.icontains(LEGACY_SCORECARD_MARKER),
        )
        .values(is_published=is_published)
    )


async def set_legacy_scorecard_published(session: AsyncSession, business_id: str, is_published: bool) -> None:
    # Scorecard-by-title rows follow the scorecard flag, not the opportunities one.
    await session.execute(
        update(Opportunity)
        .where(
            Opportunity.business_id == business_id,
            Opportunity.title.icontains(LEGACY_SCORECARD_MARKER),
        )
        .values(is_published=is_published)
    )
