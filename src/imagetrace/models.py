"""Data models for web-detection matches and the views derived from them."""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Union

PAGE_TYPES = ("product", "category", "search", "unknown")
SORT_FIELDS = ("confidence", "date", "domain", "count")
SORT_ORDERS = ("asc", "desc")
DISPLAY_MODES = ("list", "grid", "improved")
GROUP_MODES = ("none", "domain", "type")


def clamp_score(value: Any) -> float:
    """Coerce a raw score into [0, 1]; unusable values become 0."""
    try:
        score = float(value)
    except (TypeError, ValueError):
        return 0.0
    if score != score:  # NaN
        return 0.0
    return min(max(score, 0.0), 1.0)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 string (or datetime) into an aware UTC datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        dt = value
    else:
        try:
            dt = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def _format_timestamp(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value is not None else None


@dataclass
class WebEntity:
    """An entity label the upstream API attached to the query image."""

    entity_id: str
    score: float
    description: str


@dataclass
class ImageMatch:
    """An image found to resemble the query image."""

    url: str
    score: float
    image_url: Optional[str] = None
    platform: Optional[str] = None
    date_found: Optional[datetime] = None
    cdn: Optional[str] = None
    kind: str = field(default="image", init=False)

    @classmethod
    def from_dict(cls, data: dict) -> ImageMatch:
        return cls(
            url=data.get("url") or "",
            score=clamp_score(data.get("score", 0.0)),
            image_url=data.get("imageUrl"),
            platform=data.get("platform") or None,
            date_found=parse_timestamp(data.get("dateFound")),
            cdn=data.get("cdn") or None,
        )

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "score": self.score,
            "imageUrl": self.image_url,
            "platform": self.platform,
            "dateFound": _format_timestamp(self.date_found),
            "cdn": self.cdn,
        }


@dataclass
class PageMatch:
    """A web page that embeds one or more matching images."""

    url: str
    score: float
    page_title: str = ""
    platform: Optional[str] = None
    page_type: Optional[str] = None  # one of PAGE_TYPES, or None when not known
    matching_images: list[ImageMatch] = field(default_factory=list)
    date_found: Optional[datetime] = None
    is_spam: Optional[bool] = None
    kind: str = field(default="page", init=False)

    @classmethod
    def from_dict(cls, data: dict) -> PageMatch:
        page_type = data.get("pageType")
        if page_type not in PAGE_TYPES:
            page_type = None
        return cls(
            url=data.get("url") or "",
            score=clamp_score(data.get("score", 0.0)),
            page_title=data.get("pageTitle") or "",
            platform=data.get("platform") or None,
            page_type=page_type,
            matching_images=[
                ImageMatch.from_dict(img) for img in data.get("matchingImages") or []
            ],
            date_found=parse_timestamp(data.get("dateFound")),
            is_spam=data.get("isSpam"),
        )

    def to_dict(self) -> dict:
        return {
            "url": self.url,
            "score": self.score,
            "pageTitle": self.page_title,
            "platform": self.platform,
            "pageType": self.page_type,
            "matchingImages": [img.to_dict() for img in self.matching_images],
            "dateFound": _format_timestamp(self.date_found),
            "isSpam": self.is_spam,
        }


Match = Union[ImageMatch, PageMatch]


@dataclass
class MatchResult:
    """Raw output of one web-detection request."""

    web_entities: list[WebEntity] = field(default_factory=list)
    visually_similar_images: list[ImageMatch] = field(default_factory=list)
    pages_with_matching_images: list[PageMatch] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.visually_similar_images) + len(self.pages_with_matching_images)

    @classmethod
    def from_dict(cls, data: dict) -> MatchResult:
        entities = [
            WebEntity(
                entity_id=e.get("entityId") or "",
                score=clamp_score(e.get("score", 0.0)),
                description=e.get("description") or "",
            )
            for e in data.get("webEntities") or []
        ]
        return cls(
            web_entities=entities,
            visually_similar_images=[
                ImageMatch.from_dict(img) for img in data.get("visuallySimilarImages") or []
            ],
            pages_with_matching_images=[
                PageMatch.from_dict(p) for p in data.get("pagesWithMatchingImages") or []
            ],
        )

    def to_dict(self) -> dict:
        return {
            "webEntities": [
                {"entityId": e.entity_id, "score": e.score, "description": e.description}
                for e in self.web_entities
            ],
            "visuallySimilarImages": [img.to_dict() for img in self.visually_similar_images],
            "pagesWithMatchingImages": [p.to_dict() for p in self.pages_with_matching_images],
        }

    def save(self, path: Path) -> None:
        path.write_text(json.dumps(self.to_dict(), indent=2, ensure_ascii=False))

    @classmethod
    def load(cls, path: Path) -> MatchResult:
        return cls.from_dict(json.loads(path.read_text()))


@dataclass
class FilteredData:
    """Categorised, filtered and sorted view over a MatchResult."""

    exact_matches: list[ImageMatch] = field(default_factory=list)
    partial_matches: list[ImageMatch] = field(default_factory=list)
    similar_matches: list[ImageMatch] = field(default_factory=list)
    product_pages: list[PageMatch] = field(default_factory=list)
    category_pages: list[PageMatch] = field(default_factory=list)
    search_pages: list[PageMatch] = field(default_factory=list)
    other_pages: list[PageMatch] = field(default_factory=list)
    all_pages: list[PageMatch] = field(default_factory=list)

    def image_buckets(self) -> list[tuple[str, list[ImageMatch]]]:
        return [
            ("exact", self.exact_matches),
            ("partial", self.partial_matches),
            ("similar", self.similar_matches),
        ]

    def page_buckets(self) -> list[tuple[str, list[PageMatch]]]:
        return [
            ("product", self.product_pages),
            ("category", self.category_pages),
            ("search", self.search_pages),
            ("other", self.other_pages),
        ]


@dataclass
class DomainStat:
    domain: str
    count: int
    type: str


@dataclass
class DashboardData:
    """Summary statistics projected from a FilteredData."""

    total_matches: int = 0
    exact_matches: list[ImageMatch] = field(default_factory=list)
    partial_matches: list[ImageMatch] = field(default_factory=list)
    similar_matches: list[ImageMatch] = field(default_factory=list)
    domains_count: int = 0
    marketplaces_count: int = 0
    social_media_count: int = 0
    ecommerce_count: int = 0
    highest_confidence: float = 0.0
    top_domains: list[DomainStat] = field(default_factory=list)


@dataclass
class MatchCounts:
    exact: int = 0
    partial: int = 0
    similar: int = 0
    product_pages: int = 0
    category_pages: int = 0
    search_pages: int = 0
    other_pages: int = 0
    pages: int = 0
    total: int = 0
    spam_pages: int = 0


@dataclass
class FilterOptions:
    """User-controlled filter, sort and display settings."""

    sort_by: str = "confidence"
    sort_order: str = "desc"
    min_confidence: int = 65
    show_spam: bool = False
    display_mode: str = "list"
    group_by: str = "domain"
    active_filters: list[str] = field(default_factory=list)
