"""Application settings loaded from TOML with environment overrides.

Example ``<data root>/config/receiptbeaver.toml``::

    [extraction]
    model = "gemini-2.0-flash"
    base_url = "https://generativelanguage.googleapis.com/v1beta"
    timeout_seconds = 60

    [search]
    limit = 100

Environment variables win over the file:
    GOOGLE_GENAI_API_KEY, RECEIPTBEAVER_GENAI_MODEL, RECEIPTBEAVER_GENAI_URL
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from receiptbeaver.runtime.logging import get_logger
from receiptbeaver.runtime.paths import get_paths

logger = get_logger(__name__)

DEFAULT_GENAI_MODEL = "gemini-2.0-flash"
DEFAULT_GENAI_URL = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_EXTRACTION_TIMEOUT = 60.0
DEFAULT_SEARCH_LIMIT = 100


@dataclass(frozen=True)
class AppConfig:
    """Runtime settings for extraction and search."""

    genai_api_key: str | None = None
    genai_model: str = DEFAULT_GENAI_MODEL
    genai_base_url: str = DEFAULT_GENAI_URL
    extraction_timeout: float = DEFAULT_EXTRACTION_TIMEOUT
    search_limit: int = DEFAULT_SEARCH_LIMIT


def load_toml(path: Path) -> dict[str, Any]:
    """Load TOML file and return parsed dict; missing files map to empty dict."""
    if not path.exists():
        return {}

    with open(path, "rb") as f:
        data = tomllib.load(f)
    return data if isinstance(data, dict) else {}


def _section(data: dict[str, Any], name: str) -> dict[str, Any]:
    section = data.get(name, {})
    return section if isinstance(section, dict) else {}


def load_config(path: Path | None = None, environ: dict[str, str] | None = None) -> AppConfig:
    """Build AppConfig from the settings file and the environment."""
    if path is None:
        path = get_paths().app_config
    if environ is None:
        environ = dict(os.environ)

    data = load_toml(path)
    extraction = _section(data, "extraction")
    search = _section(data, "search")

    api_key = environ.get("GOOGLE_GENAI_API_KEY") or extraction.get("api_key") or None
    model = environ.get("RECEIPTBEAVER_GENAI_MODEL") or str(extraction.get("model") or DEFAULT_GENAI_MODEL)
    base_url = environ.get("RECEIPTBEAVER_GENAI_URL") or str(extraction.get("base_url") or DEFAULT_GENAI_URL)

    try:
        timeout = float(extraction.get("timeout_seconds", DEFAULT_EXTRACTION_TIMEOUT))
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid extraction.timeout_seconds in %s", path)
        timeout = DEFAULT_EXTRACTION_TIMEOUT

    try:
        search_limit = int(search.get("limit", DEFAULT_SEARCH_LIMIT))
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid search.limit in %s", path)
        search_limit = DEFAULT_SEARCH_LIMIT

    return AppConfig(
        genai_api_key=str(api_key) if api_key else None,
        genai_model=model,
        genai_base_url=base_url.rstrip("/"),
        extraction_timeout=timeout,
        search_limit=max(1, search_limit),
    )
