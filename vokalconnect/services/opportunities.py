from __future__ import annotations

import re

from vokalconnect.persistence.repos.opportunities import LEGACY_SCORECARD_MARKER
from vokalconnect.services.publishing import OPPORTUNITY_CATEGORIES


OPPORTUNITY_STATUSES = ("OPEN", "IN_PROGRESS", "COMPLETED", "CLOSED")

_SPAN_MARKER = re.compile(r"\s*\[SPAN:(\d+)\]\s*")


def normalize_status(status: str) -> str:
    normalized = status.strip().upper().replace(" ", "_")
    if normalized not in OPPORTUNITY_STATUSES:
        raise ValueError(f"Unsupported opportunity status: {status}")
    return normalized


def is_known_category(category: str) -> bool:
    return category in OPPORTUNITY_CATEGORIES


def is_legacy_scorecard_title(title: str | None) -> bool:
    return LEGACY_SCORECARD_MARKER.lower() in (title or "").lower()


def extract_span_marker(description: str | None) -> tuple[str | None, int | None]:
    """Split a legacy ``[SPAN:n]`` marker out of a description.

    Returns the cleaned description and the span, or the input unchanged and
    None when no marker is present. Only the first marker is honoured.
    """
    if not description:
        return description, None
    match = _SPAN_MARKER.search(description)
    if match is None:
        return description, None
    cleaned = (description[: match.start()] + " " + description[match.end():]).strip()
    return cleaned, int(match.group(1))
