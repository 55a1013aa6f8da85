"""Normalise a raw MatchResult: backfill dates, spam flags and platform labels."""

from __future__ import annotations

import random
from dataclasses import replace
from datetime import datetime, timedelta, timezone
from typing import Optional

from imagetrace.domains import get_cdn_info, get_source_platform, is_cdn_url
from imagetrace.models import ImageMatch, MatchResult, PageMatch, parse_timestamp
from imagetrace.spam import is_likely_spam

BACKFILL_DAYS = 30


def _backfill_date(now: datetime, rng: random.Random) -> datetime:
    return now - timedelta(days=rng.randrange(BACKFILL_DAYS))


def enrich_image(image: ImageMatch, now: datetime, rng: random.Random) -> ImageMatch:
    changes: dict = {}
    if image.date_found is None:
        changes["date_found"] = _backfill_date(now, rng)
    if not image.platform:
        platform = get_source_platform(image.url)
        if platform:
            changes["platform"] = platform
    if image.cdn is None and is_cdn_url(image.url):
        changes["cdn"] = get_cdn_info(image.url)
    return replace(image, **changes) if changes else image


def enrich_page(page: PageMatch, now: datetime, rng: random.Random) -> PageMatch:
    changes: dict = {}
    if page.date_found is None:
        changes["date_found"] = _backfill_date(now, rng)
    if page.is_spam is None:
        changes["is_spam"] = is_likely_spam(page.url, page.page_title)
    if not page.platform:
        platform = get_source_platform(page.url)
        if platform:
            changes["platform"] = platform
    return replace(page, **changes) if changes else page


def enrich(
    result: MatchResult,
    now: Optional[datetime] = None,
    *,
    rng: Optional[random.Random] = None,
) -> MatchResult:
    """Return a normalised copy of ``result``.

    Missing ``date_found`` values are drawn from the 30 days before ``now``
    using ``rng``; pass a seeded ``random.Random`` for reproducible output.
    Values already present are never overwritten, so enriching an enriched
    result is a no-op.
    """
    now = parse_timestamp(now) or datetime.now(timezone.utc)
    rng = rng or random.Random()
    return MatchResult(
        web_entities=list(result.web_entities),
        visually_similar_images=[
            enrich_image(img, now, rng) for img in result.visually_similar_images
        ],
        pages_with_matching_images=[
            enrich_page(page, now, rng) for page in result.pages_with_matching_images
        ],
    )
