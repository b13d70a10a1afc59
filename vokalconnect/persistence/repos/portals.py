from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.domain.models import ClientPortal


async def get_portal(session: AsyncSession, business_id: str, client_id: str) -> ClientPortal | None:
    result = await session.execute(
        select(ClientPortal).where(
            ClientPortal.business_id == business_id,
            ClientPortal.client_id == client_id,
        )
    )
    return result.scalar_one_or_none()


async def get_active_portal(session: AsyncSession, business_id: str, client_id: str) -> ClientPortal | None:
    portal = await get_portal(session, business_id, client_id)
    if portal is None or not portal.is_active:
        return None
    return portal


async def get_first_active_portal(session: AsyncSession, business_id: str) -> ClientPortal | None:
    # Oldest active portal wins when the caller is not identified.
    result = await session.execute(
        select(ClientPortal)
        .where(ClientPortal.business_id == business_id, ClientPortal.is_active.is_(True))
        .order_by(ClientPortal.created_at, ClientPortal.id)
        .limit(1)
    )
    return result.scalar_one_or_none()


async def count_portals(session: AsyncSession, business_id: str, client_id: str) -> int:
    result = await session.execute(
        select(func.count(ClientPortal.id)).where(
            ClientPortal.business_id == business_id,
            ClientPortal.client_id == client_id,
        )
    )
    return int(result.scalar_one())
