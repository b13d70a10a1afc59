from __future__ import annotations

import argparse
import asyncio
import sys

from vokalconnect.core.logging import configure_logging
from vokalconnect.domain.models import Opportunity
from vokalconnect.persistence.db import SessionLocal
from vokalconnect.persistence.repos import opportunities as opportunities_repo
from vokalconnect.services.opportunities import extract_span_marker
from vokalconnect.services.publishing import SCORECARD_CATEGORIES
from vokalconnect.services.scorecards import (
    highlight_input_from_item,
    import_legacy_highlights,
    normalize_highlights,
)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Copy legacy scorecard opportunities into scorecards and move [SPAN:n] markers"
    )
    parser.add_argument("--dry-run", action="store_true", help="Report changes without writing")
    return parser


def legacy_category(row: Opportunity) -> str | None:
    # Legacy rows are titled e.g. "Foundation Scorecard"; fall back to the category column.
    for category in SCORECARD_CATEGORIES:
        if category.lower() in (row.title or "").lower():
            return category
    if row.category in SCORECARD_CATEGORIES:
        return row.category
    return None


async def _migrate_scorecards(*, dry_run: bool) -> tuple[int, int]:
    migrated = 0
    skipped = 0
    async with SessionLocal() as session:
        for row in await opportunities_repo.list_legacy_scorecard_rows(session):
            # The blob is cleared once copied, so a cleared row is already moved.
            if row.highlights is None:
                skipped += 1
                continue
            category = legacy_category(row)
            if category is None:
                print(f"  skip {row.id}: no scorecard category in title")
                skipped += 1
                continue
            normalized = normalize_highlights(row.highlights)
            usable = [item for item in normalized["items"] if highlight_input_from_item(item) is not None]
            print(
                f"  {row.business_id} {category}: score={normalized['score']} "
                f"maxScore={normalized['maxScore']} highlights={len(usable)}"
            )
            migrated += 1
            if dry_run:
                continue
            await import_legacy_highlights(session, row.business_id, category, row.highlights)
            row.highlights = None
            await session.commit()
    return migrated, skipped


async def _migrate_span_markers(*, dry_run: bool) -> int:
    moved = 0
    async with SessionLocal() as session:
        for row in await opportunities_repo.list_with_span_markers(session):
            cleaned, span = extract_span_marker(row.description)
            if span is None:
                continue
            moved += 1
            if dry_run:
                continue
            row.description = cleaned
            if row.timeline_span is None:
                row.timeline_span = span
        if not dry_run:
            await session.commit()
    return moved


async def _run(args: argparse.Namespace) -> int:
    migrated, skipped = await _migrate_scorecards(dry_run=args.dry_run)
    moved = await _migrate_span_markers(dry_run=args.dry_run)
    prefix = "[dry-run] " if args.dry_run else ""
    print(f"{prefix}scorecards migrated: {migrated}")
    print(f"{prefix}scorecards skipped: {skipped}")
    print(f"{prefix}span markers moved: {moved}")
    return 0


def main() -> int:
    parser = _build_parser()
    args = parser.parse_args()
    configure_logging()
    try:
        return asyncio.run(_run(args))
    except Exception as exc:  # noqa: BLE001 - surface migration failures clearly
        print(f"migrate_legacy_scorecards failed: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
