"""Environment variable configuration for imagetrace.

Settings are loaded in priority order:
  1. Shell environment variables (highest priority)
  2. .env file in current directory
  3. ~/.imagetrace/.env (persistent config, set via `imagetrace env set`)

Run `imagetrace env` to see which keys are configured.
Run `imagetrace env set KEY value` to save a key persistently.

Keys:
    GOOGLE_VISION_API_KEY  ->  required by `imagetrace analyze`
    IMAGETRACE_PAGE_SIZE   ->  results shown per page (default: 10)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

IMAGETRACE_DIR = Path.home() / ".imagetrace"
PERSISTENT_ENV = IMAGETRACE_DIR / ".env"

DEFAULT_PAGE_SIZE = 10

# Load in reverse priority order (later loads don't overwrite existing)
if PERSISTENT_ENV.exists():
    load_dotenv(PERSISTENT_ENV)

load_dotenv()


# --- Persistent config ---

def save_key(name: str, value: str) -> Path:
    """Save a setting to ~/.imagetrace/.env for persistent use."""
    IMAGETRACE_DIR.mkdir(parents=True, exist_ok=True)

    lines: list[str] = []
    replaced = False
    if PERSISTENT_ENV.exists():
        for line in PERSISTENT_ENV.read_text().splitlines():
            if line.startswith(f"{name}="):
                lines.append(f"{name}={value}")
                replaced = True
            else:
                lines.append(line)

    if not replaced:
        lines.append(f"{name}={value}")

    PERSISTENT_ENV.write_text("\n".join(lines) + "\n")

    # Also set in current process
    os.environ[name] = value

    return PERSISTENT_ENV


# --- Accessors ---

def get_vision_key() -> str:
    key = os.getenv("GOOGLE_VISION_API_KEY", "")
    if not key:
        raise ValueError(
            "GOOGLE_VISION_API_KEY is not set. "
            "Run `imagetrace env set GOOGLE_VISION_API_KEY <your-key>` to configure it."
        )
    return key


def get_page_size() -> int:
    raw = os.getenv("IMAGETRACE_PAGE_SIZE", "")
    if not raw:
        return DEFAULT_PAGE_SIZE
    try:
        size = int(raw)
    except ValueError:
        logger.warning("Ignoring invalid IMAGETRACE_PAGE_SIZE=%r", raw)
        return DEFAULT_PAGE_SIZE
    return size if size > 0 else DEFAULT_PAGE_SIZE


# --- Status check ---

VALID_KEYS = {"GOOGLE_VISION_API_KEY", "IMAGETRACE_PAGE_SIZE"}

ENV_VARS = {
    "GOOGLE_VISION_API_KEY": {
        "required_by": ["imagetrace analyze"],
        "description": "Google Cloud Vision API key (web detection)",
    },
    "IMAGETRACE_PAGE_SIZE": {
        "required_by": ["imagetrace analyze", "imagetrace report (optional)"],
        "description": "Number of results revealed per page",
    },
}


def check_env() -> list[tuple[str, bool, dict]]:
    """Return list of (var_name, is_set, info) for all known env vars."""
    result = []
    for var, info in ENV_VARS.items():
        is_set = bool(os.getenv(var))
        result.append((var, is_set, info))
    return result
