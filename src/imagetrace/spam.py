"""Heuristics for flagging low-value or spammy match results."""

from __future__ import annotations

import re
from urllib.parse import parse_qsl, urlsplit

from imagetrace.domains import get_hostname

SPAM_URL_PATTERNS = [
    re.compile(r"\.(ru|cn)/(?![\w-]+/)$"),
    re.compile(r"bit\.ly"),
    re.compile(r"goo\.gl"),
    re.compile(r"tinyurl"),
    re.compile(r"(\d{1,3}\.){3}\d{1,3}"),
    re.compile(r"porn|xxx|sex|adult|dating|casino|bet|loan|pharma|рф|бг"),
    re.compile(r"\.(jsp|php|aspx)\?id=\d+$"),
    re.compile(r"forum|topic|thread|blog.*\?p=\d+$"),
]

SPAM_TITLE_PATTERN = re.compile(r"sex|porn|xxx|hot|dating|viagra|casino")

SHORT_URL_DOMAINS = (
    "bit.ly", "goo.gl", "tinyurl.com", "t.co", "ow.ly", "is.gd",
    "buff.ly", "rebrand.ly", "cutt.ly", "shorturl.at",
)

TRACKING_PARAMS = ("ref", "affiliate", "aff", "track", "tracking", "campaign")

SHORT_URL_MAX_SCORE = 0.8
TRACKING_MAX_SCORE = 0.85


def is_spam_url(url: str) -> bool:
    url_lower = url.lower()
    return any(pattern.search(url_lower) for pattern in SPAM_URL_PATTERNS)


def is_spam_title(page_title: str) -> bool:
    if not page_title or len(page_title) < 3:
        return True
    if re.fullmatch(r"[0-9]+", page_title):
        return True
    return bool(SPAM_TITLE_PATTERN.search(page_title.lower()))


def is_likely_spam(url: str, page_title: str) -> bool:
    """Score-independent check used when enriching page results."""
    return is_spam_url(url) or is_spam_title(page_title)


def is_short_url(url: str) -> bool:
    hostname = get_hostname(url).lower()
    return any(hostname == d or hostname.endswith("." + d) for d in SHORT_URL_DOMAINS)


def has_tracking_params(url: str) -> bool:
    try:
        query = urlsplit(url).query
    except ValueError:
        return False
    for key, _ in parse_qsl(query, keep_blank_values=True):
        key = key.lower()
        if key in TRACKING_PARAMS or key.startswith("utm_"):
            return True
    return False


def is_suspicious_link(url: str, score: float) -> bool:
    """Score-dependent check: short links and tracking links are only
    suspicious when the match itself is weak."""
    if is_short_url(url) and score < SHORT_URL_MAX_SCORE:
        return True
    if has_tracking_params(url) and score < TRACKING_MAX_SCORE:
        return True
    return False
