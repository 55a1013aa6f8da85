"""CSV export of filtered match results."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from imagetrace.categorize import page_bucket
from imagetrace.domains import get_hostname
from imagetrace.models import FilteredData
from imagetrace.storage import SessionState

HEADERS = ["Match Type", "Domain", "URL", "Page Type", "Confidence", "Date Found"]
STATUS_HEADERS = ["Reviewed", "Saved"]

IMAGE_MATCH_TYPES = (
    ("exact_matches", "Exact Match"),
    ("partial_matches", "Partial Match"),
    ("similar_matches", "Similar Match"),
)
PAGE_MATCH_TYPE = "Page with Image"


def _quote(value: str) -> str:
    """Always-quoted cell; the URL column is quoted on every row, not only when needed."""
    return '"' + value.replace('"', '""') + '"'


def _cell(value: str) -> str:
    """Quote only when the value holds a comma, quote or newline."""
    if any(c in value for c in ",\"\n"):
        return _quote(value)
    return value


def _date(value: Optional[datetime], now: datetime) -> str:
    return (value or now).strftime("%Y-%m-%d")


def _yes_no(flag: bool) -> str:
    return "Yes" if flag else "No"


def export_rows(
    filtered: FilteredData,
    *,
    now: Optional[datetime] = None,
    state: Optional[SessionState] = None,
    include_status: bool = False,
) -> list[list[str]]:
    """One row per image match and per page, header row first."""
    now = now or datetime.now(timezone.utc)
    state = state or SessionState()

    rows = [HEADERS + (STATUS_HEADERS if include_status else [])]

    def add(match_type: str, match, page_type: str) -> None:
        row = [
            match_type,
            _cell(get_hostname(match.url)),
            _quote(match.url),
            page_type,
            f"{match.score * 100:.1f}%",
            _date(match.date_found, now),
        ]
        if include_status:
            row += [_yes_no(state.is_reviewed(match.url)), _yes_no(state.is_saved(match.url))]
        rows.append(row)

    for attr, label in IMAGE_MATCH_TYPES:
        for img in getattr(filtered, attr):
            add(label, img, "Image")

    for page in filtered.all_pages:
        bucket = page_bucket(page)
        add(PAGE_MATCH_TYPE, page, "Unknown" if bucket == "other" else bucket.capitalize())

    return rows


def to_csv(
    filtered: FilteredData,
    *,
    now: Optional[datetime] = None,
    state: Optional[SessionState] = None,
    include_status: bool = False,
) -> str:
    rows = export_rows(filtered, now=now, state=state, include_status=include_status)
    return "".join(",".join(row) + "\n" for row in rows)


def default_export_name(now: Optional[datetime] = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"image-matches-{now:%Y-%m-%d}.csv"
