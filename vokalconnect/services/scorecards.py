"""Scorecards and their highlight annotations.

Highlights live in their own table keyed by scorecard. Every highlight
mutation first bumps ``scorecards.version`` with a single UPDATE statement,
which takes the scorecard row lock for the rest of the transaction, so two
concurrent writers to the same scorecard are serialized instead of racing.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
import json
import logging
import secrets
import time
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from vokalconnect.core.errors import HighlightNotFoundError, NotFoundError, ScorecardNotFoundError
from vokalconnect.domain.models import Business, Scorecard, ScorecardHighlight
from vokalconnect.persistence.repos import businesses as businesses_repo
from vokalconnect.persistence.repos import scorecards as scorecards_repo
from vokalconnect.services.publishing import SCORECARD_CATEGORIES


logger = logging.getLogger(__name__)

DEFAULT_MAX_SCORE = 100.0

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"
_SUFFIX_LENGTH = 7


# Seed content for new client workspaces; generated highlights are marked
# ai_generated so a later preload can replace them without touching manual ones.
PLACEHOLDER_SCORECARDS: tuple[dict[str, Any], ...] = (
    {
        "category": "Foundation",
        "score": 75,
        "highlights": (
            ("Brand messaging inconsistent across digital touchpoints", "Brand/GTM Strategy"),
            ("Marketing automation tools severely underutilized", "Martech"),
            ("Analytics implementation lacks cross-channel customer journey tracking", "Data & Analytics"),
        ),
    },
    {
        "category": "Acquisition",
        "score": 82,
        "highlights": (
            ("Google Ads quality scores below industry average", "Performance Media"),
            ("Campaign attribution lacking for multi-touch journeys", "Campaigns"),
            ("PR and earned media strategy not aligned with overall marketing goals", "Earned Media"),
        ),
    },
    {
        "category": "Conversion",
        "score": 65,
        "highlights": (
            ("Mobile page load speed exceeding 4 seconds on product pages", "Website"),
            ("Cart abandonment rate 15% above industry average", "Ecommerce Platforms"),
            ("Product recommendation algorithm performing below benchmark standards", "Digital Product"),
        ),
    },
    {
        "category": "Retention",
        "score": 70,
        "highlights": (
            ("Email list declining 5% month-over-month due to unsubscribes", "CRM"),
            ("Social content calendar inconsistently maintained", "Organic Social"),
            ("Mobile app retention rate drops 40% after first week of installation", "App"),
        ),
    },
)


@dataclass
class HighlightInput:
    text: str
    service_area: str | None = None
    related_metric_id: str | None = None
    ai_generated: bool = False


@dataclass
class ScorecardView:
    scorecard: Scorecard
    highlights: list[ScorecardHighlight] = field(default_factory=list)


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _base36_suffix(length: int = _SUFFIX_LENGTH) -> str:
    return "".join(secrets.choice(_BASE36) for _ in range(length))


def generate_highlight_id(now_ms: int | None = None) -> str:
    # "{epoch_ms}-{7 base36 chars}", the format existing clients already store.
    stamp = int(time.time() * 1000) if now_ms is None else now_ms
    return f"{stamp}-{_base36_suffix()}"


def generate_metric_signal_id(now_ms: int | None = None) -> str:
    stamp = int(time.time() * 1000) if now_ms is None else now_ms
    return f"metric-{stamp}-{_base36_suffix()}"


def normalize_highlights(raw: Any, score: float | None = None, max_score: float | None = None) -> dict[str, Any]:
    """Coerce any stored highlights payload into ``{items, score, maxScore}``.

    Accepted inputs: None, a JSON-encoded string, a bare list of items, or a
    dict with or without ``items``. Unparseable strings and unknown types
    yield an empty item list. Explicit ``score``/``max_score`` arguments
    override values carried in the payload.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError:
            logger.warning("highlights_payload_unparseable length=%s", len(raw))
            raw = None
    if isinstance(raw, list):
        items = list(raw)
        extra: dict[str, Any] = {}
    elif isinstance(raw, dict):
        items = raw.get("items")
        items = list(items) if isinstance(items, list) else []
        extra = {k: v for k, v in raw.items() if k != "items"}
    else:
        items = []
        extra = {}

    normalized: dict[str, Any] = dict(extra)
    normalized["items"] = [item for item in items if isinstance(item, dict)]
    resolved_score = score if score is not None else extra.get("score")
    resolved_max = max_score if max_score is not None else extra.get("maxScore")
    normalized["score"] = resolved_score if resolved_score is not None else 0
    normalized["maxScore"] = resolved_max if resolved_max is not None else DEFAULT_MAX_SCORE
    return normalized


def highlight_input_from_item(item: dict[str, Any]) -> HighlightInput | None:
    # Legacy items use camelCase keys; items without text are dropped.
    text = item.get("text")
    if not isinstance(text, str) or not text.strip():
        return None
    return HighlightInput(
        text=text,
        service_area=item.get("serviceArea"),
        related_metric_id=item.get("relatedMetricId"),
        ai_generated=bool(item.get("aiGenerated", False)),
    )


def highlight_to_dict(highlight: ScorecardHighlight) -> dict[str, Any]:
    return {
        "id": highlight.id,
        "text": highlight.text,
        "serviceArea": highlight.service_area,
        "relatedMetricId": highlight.related_metric_id,
        "aiGenerated": highlight.ai_generated,
        "createdAt": highlight.created_at.isoformat() if highlight.created_at else None,
    }


def highlights_payload(view: ScorecardView) -> dict[str, Any]:
    return {
        "items": [highlight_to_dict(item) for item in view.highlights],
        "score": view.scorecard.score,
        "maxScore": view.scorecard.max_score,
    }


async def _load_business(session: AsyncSession, business_id: str) -> Business:
    business = await businesses_repo.get_business(session, business_id)
    if business is None:
        raise NotFoundError("Business not found")
    return business


async def _require_scorecard(session: AsyncSession, business_id: str, category: str) -> Scorecard:
    scorecard = await scorecards_repo.get_scorecard(session, business_id, category)
    if scorecard is None:
        raise ScorecardNotFoundError(category)
    return scorecard


async def get_scorecard_view(session: AsyncSession, business_id: str, category: str) -> ScorecardView:
    scorecard = await _require_scorecard(session, business_id, category)
    highlights = await scorecards_repo.list_highlights(session, scorecard.id)
    return ScorecardView(scorecard=scorecard, highlights=highlights)


async def list_scorecard_views(
    session: AsyncSession, business_id: str, *, published_only: bool = False
) -> list[ScorecardView]:
    scorecards = await scorecards_repo.list_scorecards(session, business_id)
    if published_only:
        scorecards = [scorecard for scorecard in scorecards if scorecard.is_published]
    grouped = await scorecards_repo.list_highlights_for_scorecards(
        session, [scorecard.id for scorecard in scorecards]
    )
    return [ScorecardView(scorecard=scorecard, highlights=grouped[scorecard.id]) for scorecard in scorecards]


async def _insert_highlight(
    session: AsyncSession, scorecard_id: str, payload: HighlightInput, position: int
) -> ScorecardHighlight:
    highlight = ScorecardHighlight(
        id=generate_highlight_id(),
        scorecard_id=scorecard_id,
        text=payload.text,
        service_area=payload.service_area,
        related_metric_id=payload.related_metric_id,
        ai_generated=payload.ai_generated,
        position=position,
        created_at=_utc_now(),
    )
    session.add(highlight)
    await session.flush()
    return highlight


async def add_highlight(
    session: AsyncSession, business_id: str, category: str, payload: HighlightInput
) -> ScorecardHighlight:
    """Append a highlight to the scorecard for ``category`` and commit."""
    scorecard = await _require_scorecard(session, business_id, category)
    await scorecards_repo.bump_version(session, scorecard.id)
    position = await scorecards_repo.next_highlight_position(session, scorecard.id)
    highlight = await _insert_highlight(session, scorecard.id, payload, position)
    await session.commit()
    logger.info(
        "scorecard_highlight_added business_id=%s category=%s highlight_id=%s",
        business_id,
        category,
        highlight.id,
    )
    return highlight


async def update_highlight(
    session: AsyncSession,
    business_id: str,
    category: str,
    highlight_id: str,
    *,
    text: str | None = None,
    service_area: str | None = None,
    related_metric_id: str | None = None,
) -> ScorecardHighlight:
    scorecard = await _require_scorecard(session, business_id, category)
    highlight = await scorecards_repo.get_highlight(session, scorecard.id, highlight_id)
    if highlight is None:
        raise HighlightNotFoundError(highlight_id)
    await scorecards_repo.bump_version(session, scorecard.id)
    if text is not None:
        highlight.text = text
    if service_area is not None:
        highlight.service_area = service_area
    if related_metric_id is not None:
        highlight.related_metric_id = related_metric_id
    # Edited highlights count as manual content from here on.
    highlight.ai_generated = False
    await session.commit()
    return highlight


async def delete_highlight(session: AsyncSession, business_id: str, category: str, highlight_id: str) -> None:
    """Remove one highlight. Misses raise without touching the scorecard."""
    scorecard = await _require_scorecard(session, business_id, category)
    highlight = await scorecards_repo.get_highlight(session, scorecard.id, highlight_id)
    if highlight is None:
        raise HighlightNotFoundError(highlight_id)
    await scorecards_repo.bump_version(session, scorecard.id)
    await session.delete(highlight)
    await session.commit()
    logger.info(
        "scorecard_highlight_deleted business_id=%s category=%s highlight_id=%s",
        business_id,
        category,
        highlight_id,
    )


async def initialize_scorecards(session: AsyncSession, business_id: str) -> int:
    """Create one empty scorecard per category when the business has none."""
    business = await _load_business(session, business_id)
    if await scorecards_repo.count_scorecards(session, business_id) > 0:
        return 0
    for category in SCORECARD_CATEGORIES:
        session.add(
            Scorecard(
                business_id=business_id,
                category=category,
                score=0,
                max_score=DEFAULT_MAX_SCORE,
                is_published=bool(business.is_scorecard_published),
                metric_signals=[],
            )
        )
    await session.commit()
    return len(SCORECARD_CATEGORIES)


async def _get_or_create_scorecard(session: AsyncSession, business: Business, category: str) -> Scorecard:
    scorecard = await scorecards_repo.get_scorecard(session, business.id, category)
    if scorecard is None:
        scorecard = Scorecard(
            business_id=business.id,
            category=category,
            score=0,
            max_score=DEFAULT_MAX_SCORE,
            is_published=bool(business.is_scorecard_published),
            metric_signals=[],
        )
        session.add(scorecard)
        await session.flush()
    return scorecard


async def upsert_scorecard(
    session: AsyncSession,
    business_id: str,
    category: str,
    *,
    score: float | None = None,
    max_score: float | None = None,
    highlights: Any = None,
    replace_highlights: bool = False,
) -> ScorecardView:
    """Create or update a category scorecard.

    When ``replace_highlights`` is set, ``highlights`` may be in any legacy
    shape; it is normalized and replaces the current items. Publication
    always mirrors the business flag.
    """
    business = await _load_business(session, business_id)
    scorecard = await _get_or_create_scorecard(session, business, category)
    await scorecards_repo.bump_version(session, scorecard.id)

    if replace_highlights:
        normalized = normalize_highlights(highlights, score, max_score)
        for existing in await scorecards_repo.list_highlights(session, scorecard.id):
            await session.delete(existing)
        await session.flush()
        position = 0
        for item in normalized["items"]:
            payload = highlight_input_from_item(item)
            if payload is None:
                continue
            await _insert_highlight(session, scorecard.id, payload, position)
            position += 1
        if score is None:
            score = normalized["score"]
        if max_score is None:
            max_score = normalized["maxScore"]

    if score is not None:
        scorecard.score = float(score)
    if max_score is not None:
        scorecard.max_score = float(max_score)
    scorecard.is_published = bool(business.is_scorecard_published)
    scorecard.last_audited_at = _utc_now()
    await session.commit()
    return await get_scorecard_view(session, business_id, category)


async def update_score(
    session: AsyncSession,
    business_id: str,
    category: str,
    *,
    score: float,
    max_score: float | None = None,
) -> Scorecard:
    business = await _load_business(session, business_id)
    scorecard = await _get_or_create_scorecard(session, business, category)
    scorecard.score = float(score)
    if max_score is not None:
        scorecard.max_score = float(max_score)
    await session.commit()
    return scorecard


async def add_metric_signal(
    session: AsyncSession, business_id: str, category: str, signal: dict[str, Any]
) -> dict[str, Any]:
    scorecard = await _require_scorecard(session, business_id, category)
    await scorecards_repo.bump_version(session, scorecard.id)
    # Refresh after the locking update so the append sees committed signals.
    await session.refresh(scorecard, attribute_names=["metric_signals"])
    entry = dict(signal)
    entry["id"] = generate_metric_signal_id()
    entry["createdAt"] = _utc_now().isoformat()
    # Reassign a new list so the JSON column is flagged dirty.
    scorecard.metric_signals = list(scorecard.metric_signals or []) + [entry]
    await session.commit()
    return entry


async def preload_placeholder_scorecards(session: AsyncSession, business_id: str) -> int:
    """Seed placeholder scores and highlights for each category.

    Generated highlights from an earlier preload are replaced; manually
    written highlights are kept ahead of the new generated ones.
    """
    business = await _load_business(session, business_id)
    for entry in PLACEHOLDER_SCORECARDS:
        scorecard = await _get_or_create_scorecard(session, business, entry["category"])
        await scorecards_repo.bump_version(session, scorecard.id)
        existing = await scorecards_repo.list_highlights(session, scorecard.id)
        kept = [item for item in existing if not item.ai_generated]
        for item in existing:
            if item.ai_generated:
                await session.delete(item)
        await session.flush()
        position = max((item.position for item in kept), default=-1) + 1
        for text, service_area in entry["highlights"]:
            await _insert_highlight(
                session,
                scorecard.id,
                HighlightInput(text=text, service_area=service_area, ai_generated=True),
                position,
            )
            position += 1
        scorecard.score = float(entry["score"])
        scorecard.max_score = DEFAULT_MAX_SCORE
        scorecard.is_published = bool(business.is_scorecard_published)
    await session.commit()
    logger.info("scorecards_preloaded business_id=%s", business_id)
    return len(PLACEHOLDER_SCORECARDS)


async def import_legacy_highlights(session: AsyncSession, business_id: str, category: str, raw: Any) -> int:
    """Fold a legacy highlights blob into the category scorecard.

    A scorecard holding only generated or no highlights is a placeholder: its
    items and score are replaced by the legacy ones. Otherwise the legacy
    items are appended after the manual ones and the score is kept. The
    caller owns the commit. Returns the number of highlights written.
    """
    business = await _load_business(session, business_id)
    scorecard = await _get_or_create_scorecard(session, business, category)
    await scorecards_repo.bump_version(session, scorecard.id)
    normalized = normalize_highlights(raw)
    existing = await scorecards_repo.list_highlights(session, scorecard.id)
    placeholder = all(item.ai_generated for item in existing)
    if placeholder:
        for item in existing:
            await session.delete(item)
        await session.flush()
        scorecard.score = float(normalized["score"])
        scorecard.max_score = float(normalized["maxScore"])
        position = 0
    else:
        position = max(item.position for item in existing) + 1
    written = 0
    for item in normalized["items"]:
        payload = highlight_input_from_item(item)
        if payload is None:
            continue
        await _insert_highlight(session, scorecard.id, payload, position)
        position += 1
        written += 1
    scorecard.is_published = bool(business.is_scorecard_published)
    scorecard.last_audited_at = _utc_now()
    return written
