"""Access-code redemption for the client portal.

A business access code is the only capability a client needs to bootstrap
portal access. Redeeming it idempotently provisions a ClientPortal row for
the caller and seeds the default tool requests the first time a business is
visited.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.core.errors import NotFoundError
from vokalconnect.domain.models import ClientPortal
from vokalconnect.persistence.repos import businesses as businesses_repo
from vokalconnect.persistence.repos import portals as portals_repo
from vokalconnect.services.businesses import normalize_access_code
from vokalconnect.services.publishing import PublishState, publish_state_for
from vokalconnect.services.tools import ensure_default_tools


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AccessGrant:
    business_id: str
    portal_id: str
    portal_active: bool
    portal_created: bool
    tools_seeded: int
    publish_state: PublishState


async def ensure_client_portal(
    session: AsyncSession, business_id: str, client_id: str
) -> tuple[ClientPortal, bool]:
    """Return the caller's portal, creating it active when missing.

    Existing portals are returned untouched, including deactivated ones. A
    concurrent redeemer that loses the unique-constraint race re-reads the
    winner's row.
    """
    portal = await portals_repo.get_portal(session, business_id, client_id)
    if portal is not None:
        return portal, False
    portal = ClientPortal(business_id=business_id, client_id=client_id, is_active=True)
    session.add(portal)
    try:
        await session.flush()
    except IntegrityError:
        # Nothing but reads precede the insert, so a full rollback is safe here.
        await session.rollback()
        logger.info("client_portal_race_lost business_id=%s client_id=%s", business_id, client_id)
        existing = await portals_repo.get_portal(session, business_id, client_id)
        if existing is None:
            raise
        return existing, False
    return portal, True


async def redeem_access_code(session: AsyncSession, *, code: str, client_id: str) -> AccessGrant:
    """Resolve ``code`` to a business and provision the caller's portal.

    Raises NotFoundError when no business carries the code. Commits on success.
    """
    normalized = normalize_access_code(code)
    business = await businesses_repo.get_business_by_code(session, normalized)
    if business is None:
        raise NotFoundError("Invalid access code")

    business_id = business.id
    portal, created = await ensure_client_portal(session, business_id, client_id)
    seeded = await ensure_default_tools(session, business_id)
    await session.commit()
    if created:
        logger.info("client_portal_created business_id=%s client_id=%s", business_id, client_id)
    # Re-read so a rolled-back race does not leave expired attributes behind.
    business = await businesses_repo.get_business(session, business_id)
    return AccessGrant(
        business_id=business_id,
        portal_id=portal.id,
        portal_active=portal.is_active,
        portal_created=created,
        tools_seeded=seeded,
        publish_state=publish_state_for(business),
    )
