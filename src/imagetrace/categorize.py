"""Partition image and page matches into confidence tiers and page types."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Iterable, Optional

from imagetrace.domains import is_cdn_url
from imagetrace.models import ImageMatch, PageMatch


@dataclass(frozen=True)
class Thresholds:
    """Score boundaries for the image tiers and the page relevance floor.

    Tiers are half-open: exact is ``[exact, 1]``, partial ``[partial, exact)``
    and similar ``[similar, partial)``.  ``similar=None`` drops that tier.
    """

    exact: float = 0.90
    partial: float = 0.70
    similar: Optional[float] = 0.65
    page_floor: float = 0.60


DEFAULT_THRESHOLDS = Thresholds()
TWO_TIER_THRESHOLDS = Thresholds(similar=None)

PRODUCT_URL_PATTERNS = (
    "/product/", "/item/", "/dp/", "/products/", "product-detail", "productdetails",
)
PRODUCT_TITLE_PATTERNS = ("buy", "product details")
PRODUCT_URL_REGEX = re.compile(r"/p/\d+")
PRICE_TITLE_REGEX = re.compile(r" - \$\d+| \| \$\d+|\$\d+\.\d+")

CATEGORY_URL_PATTERNS = (
    "/category/", "/categories/", "/collection/", "/collections/",
    "/shop/", "/catalog/", "/department/", "/browse/",
)
CATEGORY_TITLE_PATTERNS = ("collection", "category", "categories", "products", "catalog")

SEARCH_URL_PATTERNS = ("/search", "q=", "query=", "keyword=", "/find/")
SEARCH_TITLE_PATTERNS = ("search results", "search for")

PAGE_BUCKETS = ("product", "category", "search", "other")


def image_tier(score: float, thresholds: Thresholds = DEFAULT_THRESHOLDS) -> Optional[str]:
    """Name of the tier a score falls into, or None below the lowest floor."""
    if score >= thresholds.exact:
        return "exact"
    if score >= thresholds.partial:
        return "partial"
    if thresholds.similar is not None and score >= thresholds.similar:
        return "similar"
    return None


def partition_images(
    images: Iterable[ImageMatch],
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> tuple[list[ImageMatch], list[ImageMatch], list[ImageMatch]]:
    """Split images into (exact, partial, similar), keeping input order."""
    buckets: dict[str, list[ImageMatch]] = {"exact": [], "partial": [], "similar": []}
    for img in images:
        tier = image_tier(img.score, thresholds)
        if tier is not None:
            buckets[tier].append(img)
    return buckets["exact"], buckets["partial"], buckets["similar"]


def determine_page_type(url: str, title: str, *, infer_search: bool = False) -> str:
    """Guess whether a page is a product page, a category listing or neither.

    Search pages are only recognised with ``infer_search``; without it a
    page becomes "search" only through an explicit ``page_type``.
    """
    url_lower = url.lower()
    title_lower = (title or "").lower()

    if (
        any(p in url_lower for p in PRODUCT_URL_PATTERNS)
        or any(p in title_lower for p in PRODUCT_TITLE_PATTERNS)
        or PRODUCT_URL_REGEX.search(url_lower)
        or PRICE_TITLE_REGEX.search(title_lower)
    ):
        return "product"

    if any(p in url_lower for p in CATEGORY_URL_PATTERNS) or any(
        p in title_lower for p in CATEGORY_TITLE_PATTERNS
    ):
        return "category"

    if infer_search and (
        any(p in url_lower for p in SEARCH_URL_PATTERNS)
        or any(p in title_lower for p in SEARCH_TITLE_PATTERNS)
    ):
        return "search"

    return "unknown"


def page_bucket(page: PageMatch) -> str:
    page_type = page.page_type or determine_page_type(page.url, page.page_title)
    if page_type in ("product", "category", "search"):
        return page_type
    return "other"


def relevant_pages(
    pages: Iterable[PageMatch],
    thresholds: Thresholds = DEFAULT_THRESHOLDS,
) -> list[PageMatch]:
    """Pages above the relevance floor that are real content pages.

    A page whose own URL is a CDN asset is image hosting, not a page.
    """
    return [
        p for p in pages
        if p.score >= thresholds.page_floor and not is_cdn_url(p.url)
    ]


def partition_pages(
    pages: Iterable[PageMatch],
) -> tuple[list[PageMatch], list[PageMatch], list[PageMatch], list[PageMatch]]:
    """Split pages into (product, category, search, other), keeping input order."""
    buckets: dict[str, list[PageMatch]] = {name: [] for name in PAGE_BUCKETS}
    for page in pages:
        buckets[page_bucket(page)].append(page)
    return buckets["product"], buckets["category"], buckets["search"], buckets["other"]
