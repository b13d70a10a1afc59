"""Publish-state flow for client-visible content.

Each domain (scorecard, opportunities, assessments) has one boolean flag on
the business. The flag is authoritative: publish/unpublish flip it and
bulk-align the domain's rows in the same transaction, and status reads only
consult the flag, so an empty domain still reports what was last requested.
"""

from __future__ import annotations

from dataclasses import dataclass
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.core.errors import NotFoundError
from vokalconnect.domain.models import Business
from vokalconnect.persistence.repos import assessments as assessments_repo
from vokalconnect.persistence.repos import businesses as businesses_repo
from vokalconnect.persistence.repos import opportunities as opportunities_repo
from vokalconnect.persistence.repos import scorecards as scorecards_repo


logger = logging.getLogger(__name__)

DOMAIN_SCORECARD = "scorecard"
DOMAIN_OPPORTUNITIES = "opportunities"
DOMAIN_ASSESSMENTS = "assessments"
PUBLISH_DOMAINS = (DOMAIN_SCORECARD, DOMAIN_OPPORTUNITIES, DOMAIN_ASSESSMENTS)

SCORECARD_CATEGORIES = ("Foundation", "Acquisition", "Conversion", "Retention")
OPPORTUNITY_CATEGORIES = ("EBITDA", "Revenue", "De-Risk")

_FLAG_ATTRS = {
    DOMAIN_SCORECARD: "is_scorecard_published",
    DOMAIN_OPPORTUNITIES: "is_opportunities_published",
    DOMAIN_ASSESSMENTS: "is_assessments_published",
}


async def _align_scorecard_rows(session: AsyncSession, business_id: str, is_published: bool) -> None:
    await scorecards_repo.set_published_for_business(session, business_id, is_published)
    await opportunities_repo.set_legacy_scorecard_published(session, business_id, is_published)


_ROW_UPDATERS = {
    DOMAIN_SCORECARD: _align_scorecard_rows,
    DOMAIN_OPPORTUNITIES: opportunities_repo.set_published_for_business,
    DOMAIN_ASSESSMENTS: assessments_repo.set_published_for_business,
}


@dataclass(frozen=True)
class PublishState:
    scorecard: bool
    opportunities: bool
    assessments: bool

    @property
    def has_published_items(self) -> bool:
        return self.scorecard or self.opportunities or self.assessments

    def as_dict(self) -> dict[str, bool]:
        return {
            DOMAIN_SCORECARD: self.scorecard,
            DOMAIN_OPPORTUNITIES: self.opportunities,
            DOMAIN_ASSESSMENTS: self.assessments,
        }


def normalize_domain(domain: str) -> str:
    normalized = domain.strip().lower()
    # Accept the plural form used by older admin pages.
    if normalized == "scorecards":
        normalized = DOMAIN_SCORECARD
    if normalized not in PUBLISH_DOMAINS:
        raise ValueError(f"Unsupported publish domain: {domain}")
    return normalized


def publish_state_for(business: Business) -> PublishState:
    return PublishState(
        scorecard=bool(business.is_scorecard_published),
        opportunities=bool(business.is_opportunities_published),
        assessments=bool(business.is_assessments_published),
    )


async def _load_business(session: AsyncSession, business_id: str) -> Business:
    business = await businesses_repo.get_business(session, business_id)
    if business is None:
        raise NotFoundError("Business not found")
    return business


async def set_published(session: AsyncSession, domain: str, business_id: str, is_published: bool) -> PublishState:
    """Flip the domain flag and align every row of that domain.

    Commits once so the flag and the rows never disagree after a failure.
    """
    resolved = normalize_domain(domain)
    business = await _load_business(session, business_id)
    setattr(business, _FLAG_ATTRS[resolved], is_published)
    await _ROW_UPDATERS[resolved](session, business_id, is_published)
    await session.commit()
    logger.info(
        "publish_state_changed business_id=%s domain=%s published=%s",
        business_id,
        resolved,
        is_published,
    )
    return publish_state_for(business)


async def publish(session: AsyncSession, domain: str, business_id: str) -> PublishState:
    return await set_published(session, domain, business_id, True)


async def unpublish(session: AsyncSession, domain: str, business_id: str) -> PublishState:
    return await set_published(session, domain, business_id, False)


async def get_publish_status(session: AsyncSession, domain: str, business_id: str) -> bool:
    resolved = normalize_domain(domain)
    business = await _load_business(session, business_id)
    return bool(getattr(business, _FLAG_ATTRS[resolved]))


async def get_publish_state(session: AsyncSession, business_id: str) -> PublishState:
    business = await _load_business(session, business_id)
    return publish_state_for(business)
