"""Hostname normalisation and website classification heuristics."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Sequence, TypeVar
from urllib.parse import urlsplit

MARKETPLACES = (
    "amazon", "ebay", "walmart", "etsy", "aliexpress", "shopify", "alibaba",
    "wish", "target", "newegg", "bestbuy", "wayfair", "homedepot", "overstock",
    "groupon", "rakuten", "costco", "macys", "nordstrom", "kohls",
)

SOCIAL_MEDIA = (
    "facebook", "instagram", "twitter", "pinterest", "linkedin", "tumblr",
    "reddit", "youtube", "tiktok", "snapchat", "flickr", "medium",
    "quora", "vimeo", "whatsapp", "telegram", "discord", "vk",
)

# Store-builder platforms plus retail keywords that show up in shop domains.
ECOMMERCE = (
    "shopify", "magento", "bigcommerce", "woocommerce", "prestashop",
    "opencart", "squarespace", "wix", "weebly", "3dcart", "volusion",
    "storenvy", "ecwid", "bigcartel", "solidus", "spree", "boutique",
    "shop", "store", "market", "apparel", "clothing", "fashion",
    "wear", "jewelry", "accessory", "accessories", "baby", "kids",
    "child", "children", "toys",
)

CDNS = (
    "cloudfront.net", "cdn.shopify", "cloudinary", "imgix", "fastly", "akamaized",
    "cdn.", "ibb.co", "imgur.com", "postimg.cc", "amazonaws.com", "s3.",
    "media-amazon.com", "staticflickr.com", "cdninstagram.com", "fbcdn.net",
    "pinimg.com", "twimg.com", "assets.", "static.",
)

# Checked in order; the first fragment found in the hostname names the provider.
CDN_PROVIDERS = (
    ("cloudfront.net", "Amazon CloudFront"),
    ("amazonaws.com", "Amazon S3"),
    ("s3.", "Amazon S3"),
    ("cdn.shopify", "Shopify CDN"),
    ("cloudinary", "Cloudinary CDN"),
    ("imgix", "Imgix CDN"),
    ("media-amazon", "Amazon Media"),
    ("akamaized", "Akamai CDN"),
    ("staticflickr", "Flickr CDN"),
    ("twimg", "Twitter CDN"),
    ("fbcdn", "Facebook CDN"),
    ("cdninstagram", "Instagram CDN"),
    ("pinimg", "Pinterest CDN"),
)

# Image hosts whose hostname differs from the platform that serves the image.
IMAGE_HOSTS = (
    ("media-amazon.com", "Amazon"),
    ("staticflickr.com", "Flickr"),
    ("cdninstagram.com", "Instagram"),
    ("fbcdn.net", "Instagram"),
    ("pinimg.com", "Pinterest"),
    ("twimg.com", "Twitter"),
    ("wikimedia.org", "Wikimedia"),
    ("ytimg.com", "YouTube"),
)

# Keyword -> display label used when ingesting raw API results.
PLATFORM_KEYWORDS = (
    ("amazon", "Amazon"),
    ("amzn", "Amazon"),
    ("aliexpress", "AliExpress"),
    ("etsy", "Etsy"),
    ("ebay", "eBay"),
    ("walmart", "Walmart"),
    ("shopify", "Shopify Store"),
    ("target", "Target"),
    ("wayfair", "Wayfair"),
    ("homedepot", "Home Depot"),
    ("bestbuy", "Best Buy"),
    ("ikea", "IKEA"),
    ("shopee", "Shopee"),
    ("lazada", "Lazada"),
)

CATEGORIES = ("marketplace", "social", "ecommerce", "other")


def get_hostname(url: str) -> str:
    """Return the URL's hostname without a leading ``www.``.

    Falls back to the input string when it cannot be parsed as an absolute URL.
    """
    try:
        hostname = urlsplit(url).hostname
    except (ValueError, TypeError, AttributeError):
        return url
    if not hostname:
        return url
    if hostname.startswith("www."):
        hostname = hostname[4:]
    return hostname


def get_domain(hostname: str) -> str:
    """Return the registrable label of a hostname, e.g. ``amazon`` for ``amazon.co.uk``."""
    parts = hostname.split(".")
    if len(parts) > 2 and parts[-2] == "co":
        return parts[-3]
    if len(parts) > 1:
        return parts[-2]
    return hostname


def _capitalize(label: str) -> str:
    return label[:1].upper() + label[1:]


def get_website_name(url: str, platform: Optional[str] = None) -> str:
    if platform:
        return platform
    return _capitalize(get_domain(get_hostname(url)))


def categorize_website(hostname: str) -> str:
    """Classify a hostname as marketplace, social, ecommerce or other."""
    domain = get_domain(hostname).lower()
    if any(m in domain for m in MARKETPLACES):
        return "marketplace"
    if any(s in domain for s in SOCIAL_MEDIA):
        return "social"
    if any(e in domain for e in ECOMMERCE):
        return "ecommerce"
    return "other"


def is_cdn_url(url: str) -> bool:
    url_lower = url.lower()
    return any(fragment in url_lower for fragment in CDNS)


def get_cdn_info(url: str) -> str:
    """Friendly CDN provider name for a URL, or its hostname when unknown."""
    hostname = get_hostname(url)
    host_lower = hostname.lower()
    for fragment, name in CDN_PROVIDERS:
        if fragment in host_lower:
            return name
    return hostname


def get_source_platform(url: str) -> Optional[str]:
    """Resolve the platform an image really comes from, or None."""
    hostname = get_hostname(url).lower()
    for fragment, name in IMAGE_HOSTS:
        if fragment in hostname:
            return name

    domain = get_domain(hostname)
    for name in MARKETPLACES + SOCIAL_MEDIA:
        if name in domain:
            return _capitalize(name)
    return None


def identify_platform(url: str) -> str:
    """Ingestion-time platform label: known store, "CDN Hosted", or ""."""
    url_lower = url.lower()
    for keyword, label in PLATFORM_KEYWORDS:
        if keyword in url_lower:
            return label
    if is_cdn_url(url):
        return "CDN Hosted"
    return ""


T = TypeVar("T")


@dataclass
class DomainGroup:
    """Items sharing one hostname, in first-seen order."""

    domain: str
    items: list = field(default_factory=list)
    platform: Optional[str] = None


def group_by_domain(items: Sequence[T]) -> list[DomainGroup]:
    groups: dict[str, DomainGroup] = {}
    for item in items:
        hostname = get_hostname(item.url)
        group = groups.get(hostname)
        if group is None:
            groups[hostname] = DomainGroup(
                domain=hostname,
                items=[item],
                platform=get_source_platform(item.url),
            )
        else:
            group.items.append(item)
    return list(groups.values())
