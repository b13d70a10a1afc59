from __future__ import annotations

import logging
import secrets

from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.core.config import ACCESS_CODE_ALPHABET, get_settings
from vokalconnect.domain.models import Business, BusinessMember
from vokalconnect.persistence.repos import businesses as businesses_repo
from vokalconnect.persistence.repos import users as users_repo
from vokalconnect.services.tools import ensure_default_tools


logger = logging.getLogger(__name__)

_MAX_CODE_ATTEMPTS = 10


def generate_access_code(length: int | None = None) -> str:
    # Uniform draw from 0-9A-Z using the OS CSPRNG.
    resolved = length or get_settings().access_code_length
    return "".join(secrets.choice(ACCESS_CODE_ALPHABET) for _ in range(resolved))


def normalize_access_code(code: str | None) -> str:
    return (code or "").strip().upper()


async def generate_unique_access_code(session: AsyncSession) -> str:
    # Collisions are rare at 36^8; retry a bounded number of times anyway.
    for _ in range(_MAX_CODE_ATTEMPTS):
        code = generate_access_code()
        if not await businesses_repo.code_exists(session, code):
            return code
    raise RuntimeError("Unable to allocate a unique access code")


async def create_business(
    session: AsyncSession,
    *,
    admin_id: str,
    name: str,
    industry: str | None = None,
    website: str | None = None,
    description: str | None = None,
) -> Business:
    """Create a business with a fresh access code and the default tool set."""
    code = await generate_unique_access_code(session)
    business = Business(
        name=name,
        code=code,
        industry=industry,
        website=website,
        description=description,
        connections={},
        admin_id=admin_id,
    )
    session.add(business)
    await session.flush()
    await ensure_default_tools(session, business.id)
    logger.info("business_created business_id=%s admin_id=%s", business.id, admin_id)
    return business


async def regenerate_access_code(session: AsyncSession, business: Business) -> str:
    # Old codes stop working immediately; existing portals are unaffected.
    business.code = await generate_unique_access_code(session)
    return business.code


async def grant_all_access(session: AsyncSession, *, granted_by: str) -> int:
    """Add a membership for every (user, business) pair that lacks one.

    Existing memberships are left as they are. Commits and returns the number
    of rows created.
    """
    existing = await businesses_repo.list_member_pairs(session)
    business_ids = await businesses_repo.list_all_business_ids(session)
    users = await users_repo.list_users(session)
    created = 0
    for user in users:
        for business_id in business_ids:
            if (business_id, user.id) in existing:
                continue
            session.add(BusinessMember(business_id=business_id, user_id=user.id, granted_by=granted_by))
            created += 1
    await session.commit()
    logger.info("business_access_granted created=%s users=%s businesses=%s", created, len(users), len(business_ids))
    return created
