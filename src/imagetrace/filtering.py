"""Apply user filter options to a normalised MatchResult."""

from __future__ import annotations

import locale
import logging
from collections import Counter
from dataclasses import fields, replace
from datetime import datetime, timezone
from typing import Optional, Sequence, TypeVar

from imagetrace.categorize import (
    DEFAULT_THRESHOLDS,
    Thresholds,
    partition_images,
    partition_pages,
    relevant_pages,
)
from imagetrace.domains import get_hostname
from imagetrace.models import FilteredData, FilterOptions, MatchResult, parse_timestamp

logger = logging.getLogger(__name__)

M = TypeVar("M")

_OPTION_NAMES = {f.name for f in fields(FilterOptions)}


def clamp_confidence(value) -> int:
    """Clamp a minimum-confidence percentage into 0..100."""
    try:
        value = int(round(float(value)))
    except (TypeError, ValueError, OverflowError):
        return 0
    return min(max(value, 0), 100)


def default_options() -> FilterOptions:
    return FilterOptions()


def merge_options(options: FilterOptions, **changes) -> FilterOptions:
    """Return a copy of ``options`` with ``changes`` applied.

    Unknown option names are a caller error and raise ``TypeError``.
    """
    unknown = set(changes) - _OPTION_NAMES
    if unknown:
        raise TypeError(f"Unknown filter option(s): {', '.join(sorted(unknown))}")
    if "min_confidence" in changes:
        changes["min_confidence"] = clamp_confidence(changes["min_confidence"])
    if "active_filters" in changes:
        changes["active_filters"] = list(changes["active_filters"] or [])
    return replace(options, **changes)


def _domain_key(url: str) -> str:
    # strxfrm rejects embedded NULs, which unparseable URLs may carry
    return locale.strxfrm(get_hostname(url).casefold().replace("\x00", ""))


def sort_matches(
    items: Sequence[M],
    options: FilterOptions,
    now: Optional[datetime] = None,
) -> list[M]:
    """Sort one bucket according to ``options.sort_by`` and ``sort_order``.

    The sort is stable: ties keep their input order in either direction.
    An unrecognised ``sort_by`` returns the items in their input order.
    """
    reverse = options.sort_order != "asc"
    sort_by = options.sort_by

    if sort_by == "confidence":
        return sorted(items, key=lambda m: m.score, reverse=reverse)
    if sort_by == "date":
        now = parse_timestamp(now) or datetime.now(timezone.utc)
        return sorted(items, key=lambda m: parse_timestamp(m.date_found) or now, reverse=reverse)
    if sort_by == "domain":
        return sorted(items, key=lambda m: _domain_key(m.url), reverse=reverse)
    if sort_by == "count":
        counts = Counter(get_hostname(m.url) for m in items)
        return sorted(items, key=lambda m: counts[get_hostname(m.url)], reverse=reverse)

    logger.debug("Unknown sort field %r, keeping source order", sort_by)
    return list(items)


def filter_results(
    result: Optional[MatchResult],
    options: FilterOptions,
    *,
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
    now: Optional[datetime] = None,
) -> FilteredData:
    """Categorise, filter and sort a normalised result into a FilteredData."""
    if result is None:
        return FilteredData()

    now = parse_timestamp(now) or datetime.now(timezone.utc)
    min_confidence = clamp_confidence(options.min_confidence) / 100

    exact, partial, similar = partition_images(result.visually_similar_images, thresholds)

    pages = [
        p for p in relevant_pages(result.pages_with_matching_images, thresholds)
        if p.score >= min_confidence and (options.show_spam or p.is_spam is not True)
    ]
    product, category, search, other = partition_pages(pages)

    def keep(bucket):
        return sort_matches([m for m in bucket if m.score >= min_confidence], options, now)

    return FilteredData(
        exact_matches=keep(exact),
        partial_matches=keep(partial),
        similar_matches=keep(similar),
        product_pages=sort_matches(product, options, now),
        category_pages=sort_matches(category, options, now),
        search_pages=sort_matches(search, options, now),
        other_pages=sort_matches(other, options, now),
        all_pages=sort_matches(pages, options, now),
    )
