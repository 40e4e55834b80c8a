"""
Configuration: non-secret settings from config.yaml, secrets from the
environment (a local .env is loaded via python-dotenv).
"""

import copy
import logging
import os
import sys
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

from errors import ConfigurationError

load_dotenv()

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent / "config.yaml"

# Used when config.yaml is absent or leaves a section out.
DEFAULTS: dict = {
    "site": {
        "public_host":    "goldesel.de",
        "cms_host":       "goldeselblog.de",
        "internal_hosts": ["goldesel.de", "goldeselblog.de"],
    },
    "analytics": {
        "report_limit": 10000,
    },
    "content": {
        "path_prefixes":         ["/news/", "/artikel/", "/"],
        "topstory_category_id":  234,
        "max_posts":             100,
        "topstory_max_posts":    50,
        "analysis_max_posts":    200,
    },
    "search_console": {
        "site_url": "https://goldesel.de/",
        "sections": {
            "news": {
                "include":       "/news/",
                "exclude_regex": "^https://goldesel\\.de/aktien/news/",
                "debug_key":     "newsPages_excludingAktien",
            },
            "aktien_news": {
                "include":   "/aktien/news/",
                "debug_key": "aktienNewsPages",
            },
        },
    },
    "ai": {
        "review_model":   "claude-sonnet-4-20250514",
        "assist_model":   "claude-sonnet-4-20250514",
        "review_max_tokens": 2000,
        "assist_max_tokens": 4000,
        "max_text_chars": 12000,
        "language":       "German",
        "brand":          "Goldesel.de",
    },
    "images": {
        "model": "gpt-image-1",
        "size":  "1536x1024",
    },
    "settings": {
        "default_range":           "30daysAgo",
        "analysis_range":          "90daysAgo",
        "request_timeout_seconds": 60,
        "http_timeout_seconds":    30,
        "top_n":                   5,
        "flop_min_views":          0,
    },
}


def _merge(base: dict, override: dict) -> dict:
    merged = copy.deepcopy(base)
    for key, value in (override or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Optional[str] = None) -> dict:
    """Read config.yaml (or $DASHBOARD_CONFIG) on top of the built-in defaults."""
    path = Path(path or os.getenv("DASHBOARD_CONFIG") or DEFAULT_CONFIG_PATH)
    if not path.exists():
        logger.warning("Config file %s not found — using defaults", path)
        return copy.deepcopy(DEFAULTS)
    with open(path, "r", encoding="utf-8") as f:
        return _merge(DEFAULTS, yaml.safe_load(f) or {})


def setup_logging(level: Optional[str] = None) -> None:
    logging.basicConfig(
        level=(level or os.getenv("LOG_LEVEL") or "INFO").upper(),
        format="%(asctime)s [%(levelname)s] %(name)s — %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


def require_env(name: str) -> str:
    value = os.getenv(name)
    if not value:
        raise ConfigurationError(f"{name} not set")
    return value
