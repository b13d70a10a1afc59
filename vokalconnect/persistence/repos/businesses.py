from __future__ import annotations

from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.domain.models import Business, BusinessMember


async def get_business(session: AsyncSession, business_id: str) -> Business | None:
    return await session.get(Business, business_id)


async def get_business_by_code(session: AsyncSession, code: str) -> Business | None:
    result = await session.execute(select(Business).where(Business.code == code))
    return result.scalar_one_or_none()


async def code_exists(session: AsyncSession, code: str) -> bool:
    result = await session.execute(select(Business.id).where(Business.code == code))
    return result.first() is not None


async def list_businesses_for_user(session: AsyncSession, user_id: str) -> list[Business]:
    # Owners and explicitly granted members both see the business.
    member_ids = select(BusinessMember.business_id).where(BusinessMember.user_id == user_id)
    result = await session.execute(
        select(Business)
        .where(or_(Business.admin_id == user_id, Business.id.in_(member_ids)))
        .order_by(Business.created_at.desc(), Business.id)
    )
    return list(result.scalars().all())


async def list_all_business_ids(session: AsyncSession) -> list[str]:
    result = await session.execute(select(Business.id).order_by(Business.id))
    return list(result.scalars().all())


async def is_member(session: AsyncSession, business_id: str, user_id: str) -> bool:
    result = await session.execute(
        select(BusinessMember.id).where(
            BusinessMember.business_id == business_id,
            BusinessMember.user_id == user_id,
        )
    )
    return result.first() is not None


async def list_member_pairs(session: AsyncSession) -> set[tuple[str, str]]:
    result = await session.execute(select(BusinessMember.business_id, BusinessMember.user_id))
    return {(row[0], row[1]) for row in result.all()}


async def update_fields(
    session: AsyncSession,
    business_id: str,
    *,
    name: str | None = None,
    industry: str | None = None,
    website: str | None = None,
    description: str | None = None,
) -> Business | None:
    # Fetch first so callers get None for unknown ids instead of a silent no-op.
    business = await get_business(session, business_id)
    if business is None:
        return None
    if name is not None:
        business.name = name
    if industry is not None:
        business.industry = industry
    if website is not None:
        business.website = website
    if description is not None:
        business.description = description
    return business


async def merge_connections(
    session: AsyncSession,
    business_id: str,
    values: dict[str, Any],
) -> Business | None:
    business = await get_business(session, business_id)
    if business is None:
        return None
    # Reassign a new dict so the JSON column is flagged dirty.
    merged = dict(business.connections or {})
    merged.update(values)
    business.connections = merged
    return business
