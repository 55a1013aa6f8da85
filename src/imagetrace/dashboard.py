"""Per-domain aggregation and summary statistics for the results dashboard."""

from __future__ import annotations

from typing import Iterable, Optional

from imagetrace.domains import categorize_website, get_hostname
from imagetrace.models import DashboardData, DomainStat, FilteredData, MatchCounts

TOP_DOMAINS_LIMIT = 10

_CATEGORY_FIELDS = {
    "marketplace": "marketplaces_count",
    "social": "social_media_count",
    "ecommerce": "ecommerce_count",
}


def _included(filtered: FilteredData) -> Iterable:
    """Every record the dashboard counts, in accumulation order."""
    yield from filtered.exact_matches
    yield from filtered.partial_matches
    yield from filtered.similar_matches
    yield from filtered.all_pages


def domain_stats(filtered: FilteredData) -> dict[str, DomainStat]:
    """Match count and category per hostname; a domain keeps its first-seen type."""
    stats: dict[str, DomainStat] = {}
    for match in _included(filtered):
        hostname = get_hostname(match.url)
        stat = stats.get(hostname)
        if stat is None:
            stats[hostname] = DomainStat(
                domain=hostname, count=1, type=categorize_website(hostname)
            )
        else:
            stat.count += 1
    return stats


def summarize(filtered: Optional[FilteredData]) -> DashboardData:
    """Project a FilteredData into dashboard statistics."""
    if filtered is None:
        return DashboardData()

    stats = domain_stats(filtered)

    category_counts = dict.fromkeys(_CATEGORY_FIELDS.values(), 0)
    for stat in stats.values():
        field_name = _CATEGORY_FIELDS.get(stat.type)
        if field_name:
            category_counts[field_name] += 1

    # sorted() is stable, so equal counts keep first-encountered order
    top_domains = sorted(stats.values(), key=lambda s: s.count, reverse=True)

    scores = [m.score for m in _included(filtered)]
    total = (
        len(filtered.exact_matches)
        + len(filtered.partial_matches)
        + len(filtered.similar_matches)
        + sum(len(bucket) for _, bucket in filtered.page_buckets())
    )

    return DashboardData(
        total_matches=total,
        exact_matches=list(filtered.exact_matches),
        partial_matches=list(filtered.partial_matches),
        similar_matches=list(filtered.similar_matches),
        domains_count=len(stats),
        highest_confidence=max(scores, default=0.0),
        top_domains=[
            DomainStat(domain=s.domain, count=s.count, type=s.type)
            for s in top_domains[:TOP_DOMAINS_LIMIT]
        ],
        **category_counts,
    )


def calculate_counts(filtered: Optional[FilteredData], spam_pages_count: int = 0) -> MatchCounts:
    """Bucket sizes for tab badges and summary lines."""
    if filtered is None:
        return MatchCounts()

    counts = MatchCounts(
        exact=len(filtered.exact_matches),
        partial=len(filtered.partial_matches),
        similar=len(filtered.similar_matches),
        product_pages=len(filtered.product_pages),
        category_pages=len(filtered.category_pages),
        search_pages=len(filtered.search_pages),
        other_pages=len(filtered.other_pages),
        spam_pages=spam_pages_count,
    )
    counts.pages = (
        counts.product_pages + counts.category_pages + counts.search_pages + counts.other_pages
    )
    counts.total = counts.exact + counts.partial + counts.similar + counts.pages
    return counts
