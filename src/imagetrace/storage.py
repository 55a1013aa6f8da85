"""Manage the ~/.imagetrace/ state directory: reviewed/saved items and search stats."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional
from urllib.parse import urlsplit

logger = logging.getLogger(__name__)

IMAGETRACE_DIR = Path.home() / ".imagetrace"


def _safe_json_load(path: Path, fallback=None):
    """Load JSON from a file, returning fallback if corrupted."""
    try:
        return json.loads(path.read_text())
    except (json.JSONDecodeError, ValueError):
        logger.warning("Corrupted JSON file: %s (ignoring)", path)
        return fallback


def _atomic_write(path: Path, data) -> None:
    ensure_dirs()
    tmp = path.with_suffix(".tmp")
    tmp.write_text(json.dumps(data, indent=2, ensure_ascii=False))
    tmp.rename(path)


def ensure_dirs() -> None:
    IMAGETRACE_DIR.mkdir(parents=True, exist_ok=True)


# --- Reviewed / saved items ---


@dataclass
class SessionState:
    """URLs the user has marked as reviewed or saved."""

    reviewed: set[str] = field(default_factory=set)
    saved: set[str] = field(default_factory=set)

    def is_reviewed(self, url: str) -> bool:
        return url in self.reviewed

    def is_saved(self, url: str) -> bool:
        return url in self.saved


def state_path() -> Path:
    return IMAGETRACE_DIR / "state.json"


def load_state() -> SessionState:
    p = state_path()
    if not p.exists():
        return SessionState()
    data = _safe_json_load(p, fallback={})
    if not isinstance(data, dict):
        data = {}
    return SessionState(
        reviewed=set(data.get("reviewed", [])),
        saved=set(data.get("saved", [])),
    )


def save_state(state: SessionState) -> None:
    _atomic_write(state_path(), {
        "reviewed": sorted(state.reviewed),
        "saved": sorted(state.saved),
    })


# --- Search tracking ---


def stats_path() -> Path:
    return IMAGETRACE_DIR / "searches.json"


def _source_type(image: str) -> str:
    if urlsplit(image).scheme in ("http", "https"):
        return "url"
    return "file"


def _load_entries(p: Path) -> list[dict]:
    if not p.exists():
        return []
    entries = _safe_json_load(p, fallback=[])
    return entries if isinstance(entries, list) else []


def record_search(image: str, result_count: int, when: Optional[datetime] = None) -> None:
    """Append one search to the local log.  Failures are logged, never raised."""
    when = when or datetime.now(timezone.utc)
    p = stats_path()
    try:
        entries = _load_entries(p)
        entries.append({
            "type": _source_type(image),
            "result_count": result_count,
            "created_at": when.isoformat(),
        })
        _atomic_write(p, entries)
    except OSError as e:
        logger.warning("Could not record search in %s: %s", p, e)


def get_search_stats() -> dict:
    """Totals over the local search log."""
    entries = [e for e in _load_entries(stats_path()) if isinstance(e, dict)]

    total = len(entries)
    with_results = sum(1 for e in entries if e.get("result_count", 0) > 0)
    result_sum = sum(e.get("result_count", 0) for e in entries)
    by_type: dict[str, int] = {}
    for e in entries:
        by_type[e.get("type", "unknown")] = by_type.get(e.get("type", "unknown"), 0) + 1

    return {
        "total_searches": total,
        "searches_with_results": with_results,
        "average_results": result_sum / total if total else 0.0,
        "searches_by_type": by_type,
    }
