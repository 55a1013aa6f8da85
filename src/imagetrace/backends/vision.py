"""Google Cloud Vision web detection."""

from __future__ import annotations

import base64
import logging
import os
from pathlib import Path
from typing import Optional

import httpx

from imagetrace.categorize import determine_page_type
from imagetrace.config import get_vision_key
from imagetrace.domains import identify_platform, is_cdn_url
from imagetrace.models import ImageMatch, MatchResult, PageMatch, WebEntity, clamp_score

logger = logging.getLogger(__name__)

TIMEOUT = int(os.getenv("API_TIMEOUT", "30"))

VISION_ENDPOINT = "https://vision.googleapis.com/v1/images:annotate"
MAX_API_RESULTS = 100

# The API only scores visually similar images and pages; full and partial
# matches get fixed scores so they land in the exact and partial tiers.
MINIMUM_MATCH_SCORE = 0.5
FULL_MATCH_SCORE = 0.98
PARTIAL_MATCH_SCORE = 0.85
VISUAL_SIMILAR_DEFAULT_SCORE = 0.65
PAGE_MATCH_SCORE = 0.7
WEB_ENTITY_MIN_SCORE = 0.5


class VisionAPIError(RuntimeError):
    """The API answered 200 but reported an error for the request."""


def is_remote(image: str) -> bool:
    return image.startswith(("http://", "https://"))


def build_request(image: str, *, max_results: int = MAX_API_RESULTS) -> dict:
    """Build an annotate request for an image URL or a local file path."""
    if is_remote(image):
        source = {"source": {"imageUri": image}}
    else:
        path = Path(image)
        if not path.is_file():
            raise FileNotFoundError(f"No such image file: {image}")
        source = {"content": base64.b64encode(path.read_bytes()).decode("ascii")}
    return {
        "requests": [
            {
                "image": source,
                "features": [{"type": "WEB_DETECTION", "maxResults": max_results}],
            }
        ]
    }


def _fixed_score_images(items: list[dict], score: float) -> list[ImageMatch]:
    return [
        ImageMatch(url=item["url"], score=score, image_url=item["url"],
                   platform=identify_platform(item["url"]) or None)
        for item in items
        if item.get("url")
    ]


def _similar_images(items: list[dict]) -> list[ImageMatch]:
    images = []
    for item in items:
        url = item.get("url")
        if not url:
            continue
        score = clamp_score(item.get("score") or VISUAL_SIMILAR_DEFAULT_SCORE)
        if score < MINIMUM_MATCH_SCORE:
            continue
        images.append(ImageMatch(url=url, score=score, image_url=url,
                                 platform=identify_platform(url) or None))
    return images


def _entities(items: list[dict]) -> list[WebEntity]:
    return [
        WebEntity(
            entity_id=item.get("entityId", ""),
            score=clamp_score(item.get("score", 0)),
            description=item["description"],
        )
        for item in items
        if item.get("description") and (item.get("score") or 0) >= WEB_ENTITY_MIN_SCORE
    ]


def _pages(items: list[dict]) -> list[PageMatch]:
    pages = []
    for item in items:
        url = item.get("url") or ""
        score = clamp_score(item.get("score") or PAGE_MATCH_SCORE)
        if score < MINIMUM_MATCH_SCORE or is_cdn_url(url):
            continue
        title = item.get("pageTitle") or ""
        pages.append(PageMatch(
            url=url,
            score=score,
            page_title=title,
            platform=identify_platform(url) or None,
            page_type=determine_page_type(url, title, infer_search=True),
            matching_images=_fixed_score_images(
                item.get("fullMatchingImages") or [], PAGE_MATCH_SCORE
            ),
        ))
    return pages


def parse_response(data: dict) -> MatchResult:
    """Convert an annotate response into a MatchResult."""
    responses = data.get("responses") or [{}]
    first = responses[0]
    if "error" in first:
        raise VisionAPIError(first["error"].get("message", "unknown error"))
    web = first.get("webDetection") or {}

    images = (
        _fixed_score_images(web.get("fullMatchingImages") or [], FULL_MATCH_SCORE)
        + _fixed_score_images(web.get("partialMatchingImages") or [], PARTIAL_MATCH_SCORE)
        + _similar_images(web.get("visuallySimilarImages") or [])
    )
    return MatchResult(
        web_entities=_entities(web.get("webEntities") or []),
        visually_similar_images=images,
        pages_with_matching_images=_pages(web.get("pagesWithMatchingImages") or []),
    )


def analyze_image(
    image: str,
    *,
    api_key: Optional[str] = None,
    max_results: int = MAX_API_RESULTS,
    timeout: int = TIMEOUT,
) -> MatchResult:
    """Run web detection for an image URL or local file."""
    api_key = api_key or get_vision_key()
    body = build_request(image, max_results=max_results)
    resp = httpx.post(
        VISION_ENDPOINT,
        params={"key": api_key},
        json=body,
        headers={"Content-Type": "application/json"},
        timeout=timeout,
    )
    resp.raise_for_status()
    result = parse_response(resp.json())
    logger.info(
        "Web detection returned %d images, %d pages, %d entities",
        len(result.visually_similar_images),
        len(result.pages_with_matching_images),
        len(result.web_entities),
    )
    return result
