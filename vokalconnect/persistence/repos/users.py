from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.domain.models import User


async def get_user(session: AsyncSession, user_id: str) -> User | None:
    return await session.get(User, user_id)


async def get_user_by_email(session: AsyncSession, email: str) -> User | None:
    # Emails are stored lower-cased so lookups stay case-insensitive.
    result = await session.execute(select(User).where(User.email == email.strip().lower()))
    return result.scalar_one_or_none()


async def list_users(session: AsyncSession) -> list[User]:
    result = await session.execute(select(User).order_by(User.created_at, User.id))
    return list(result.scalars().all())


async def create_user(
    session: AsyncSession,
    *,
    email: str,
    password_hash: str,
    role: str,
    name: str | None = None,
) -> User:
    user = User(email=email.strip().lower(), password_hash=password_hash, role=role, name=name)
    session.add(user)
    await session.flush()
    return user
