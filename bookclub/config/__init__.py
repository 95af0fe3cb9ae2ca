"""Application configuration accessors.

Centralizes environment variable parsing & defaults. Each setting is read
on call so tests can monkeypatch the environment without reloading modules.
A `.env` file in the working directory is loaded once at import time.
"""
from __future__ import annotations

import os
import secrets
from functools import lru_cache
from typing import List, Optional

from dotenv import load_dotenv

load_dotenv()

APP_NAME = "bookclub"
APP_VERSION = "0.4.0"
APP_DESCRIPTION = "Authenticated book-club catalog with cover resolution"

DEFAULT_DATABASE_URL = "sqlite:///bookclub.db"
DEFAULT_LIBRARY_ROOT = "library"
DEFAULT_LOG_LEVEL = "INFO"
_FALLBACK_SECRET = secrets.token_hex(32)


def _raw_env(name: str, default: str | None = None) -> str | None:
    val = os.getenv(name)
    return val if val is not None else default


def _stripped_env(name: str) -> Optional[str]:
    value = os.getenv(name)
    if value is None:
        return None
    value = value.strip()
    return value or None


def env_int(name: str, default: int, *, minimum: int | None = None) -> int:
    raw = _stripped_env(name)
    try:
        value = int(raw) if raw is not None else default
    except ValueError:
        value = default
    if minimum is not None and value < minimum:
        return minimum
    return value


def env_float(name: str, default: float, *, minimum: float | None = None) -> float:
    raw = _stripped_env(name)
    try:
        value = float(raw) if raw is not None else default
    except ValueError:
        value = default
    if minimum is not None and value < minimum:
        return minimum
    return value


def database_url() -> str:
    return _stripped_env("BOOKCLUB_DATABASE_URL") or DEFAULT_DATABASE_URL


def log_level_name() -> str:
    return (_raw_env("BOOKCLUB_LOG_LEVEL", DEFAULT_LOG_LEVEL) or DEFAULT_LOG_LEVEL).upper()


def secret_key() -> str:
    """Flask session key (BOOKCLUB_SECRET_KEY).

    Falls back to a random per-process value, which invalidates sessions on
    restart and is not shared across workers.
    """
    return _stripped_env("BOOKCLUB_SECRET_KEY") or _FALLBACK_SECRET


def admin_secret() -> Optional[str]:
    """Shared secret required by the schema update endpoint (no default)."""
    return _stripped_env("BOOKCLUB_ADMIN_SECRET")


def admin_emails() -> List[str]:
    raw = _stripped_env("BOOKCLUB_ADMIN_EMAILS") or ""
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


def library_root() -> str:
    """Directory every downloadable file must live under (relative to the working dir unless absolute)."""
    return _stripped_env("BOOKCLUB_LIBRARY_ROOT") or DEFAULT_LIBRARY_ROOT


@lru_cache(maxsize=1)
def metadata() -> dict:
    return {
        "name": APP_NAME,
        "version": APP_VERSION,
        "description": APP_DESCRIPTION,
    }


__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "APP_DESCRIPTION",
    "env_int",
    "env_float",
    "database_url",
    "log_level_name",
    "secret_key",
    "admin_secret",
    "admin_emails",
    "library_root",
    "metadata",
]


# ---------------- Cover resolution ---------------

def cover_cache_ttl_seconds() -> float:
    """Lifetime of a resolved cover in the in-memory cache.

    Environment Variable: COVER_CACHE_TTL_SECONDS
    Default: one week.
    """
    return env_float("COVER_CACHE_TTL_SECONDS", 7 * 24 * 3600.0, minimum=1.0)


def cover_rate_limit() -> int:
    """Requests allowed per provider per window (COVER_RATE_LIMIT)."""
    return env_int("COVER_RATE_LIMIT", 40, minimum=0)


def cover_rate_window_seconds() -> float:
    return env_float("COVER_RATE_WINDOW_SECONDS", 60.0, minimum=1.0)


def cover_http_timeout() -> float:
    return env_float("COVER_HTTP_TIMEOUT", 5.0, minimum=0.5)


def cover_http_retries() -> int:
    return env_int("COVER_HTTP_RETRIES", 2, minimum=0)


def cover_retry_backoff_seconds() -> float:
    return env_float("COVER_RETRY_BACKOFF_SECONDS", 1.0, minimum=0.0)


def cover_provider_order() -> List[str]:
    raw = _stripped_env("COVER_PROVIDER_ORDER") or "google_books,open_library"
    return [item.strip().lower() for item in raw.split(",") if item.strip()]


def google_books_api_key() -> Optional[str]:
    return _stripped_env("GOOGLE_BOOKS_API_KEY")


def google_books_api_base() -> str:
    return os.getenv("GOOGLE_BOOKS_API_BASE", "https://www.googleapis.com/books/v1")


def open_library_api_base() -> str:
    return os.getenv("OPEN_LIBRARY_API_BASE", "https://openlibrary.org")


def cover_placeholder_base() -> str:
    """Base URL for keyword placeholder images (COVER_PLACEHOLDER_BASE)."""
    return os.getenv("COVER_PLACEHOLDER_BASE", "https://loremflickr.com/200/300")


__all__ += [
    "cover_cache_ttl_seconds",
    "cover_rate_limit",
    "cover_rate_window_seconds",
    "cover_http_timeout",
    "cover_http_retries",
    "cover_retry_backoff_seconds",
    "cover_provider_order",
    "google_books_api_key",
    "google_books_api_base",
    "open_library_api_base",
    "cover_placeholder_base",
]


# ---------------- Catalog & admin ---------------

def catalog_default_page_size() -> int:
    return env_int("CATALOG_DEFAULT_PAGE_SIZE", 10, minimum=1)


def catalog_max_page_size() -> int:
    return env_int("CATALOG_MAX_PAGE_SIZE", 100, minimum=1)


def schema_update_rate_limit() -> int:
    return env_int("SCHEMA_UPDATE_RATE_LIMIT", 5, minimum=1)


def schema_update_rate_window_seconds() -> float:
    return env_float("SCHEMA_UPDATE_RATE_WINDOW_SECONDS", 3600.0, minimum=1.0)


def proxy_hops() -> int:
    """Reverse proxies in front of the app whose X-Forwarded-For is trusted (0 = none)."""
    return env_int("BOOKCLUB_PROXY_HOPS", 0, minimum=0)


__all__ += [
    "catalog_default_page_size",
    "catalog_max_page_size",
    "schema_update_rate_limit",
    "schema_update_rate_window_seconds",
    "proxy_hops",
]


def summarize_runtime_config() -> dict:
    """Non-secret view of the active configuration (values or set/not set)."""
    return {
        "database_url": "set" if _stripped_env("BOOKCLUB_DATABASE_URL") else "default",
        "log_level": log_level_name(),
        "secret_key": "set" if _stripped_env("BOOKCLUB_SECRET_KEY") else "not set",
        "admin_secret": "set" if admin_secret() else "not set",
        "library_root": "set" if _stripped_env("BOOKCLUB_LIBRARY_ROOT") else "default",
        "proxy_hops": proxy_hops(),
        "google_books_api_key": "set" if google_books_api_key() else "not set",
        "cover_cache_ttl_seconds": cover_cache_ttl_seconds(),
        "cover_rate_limit": cover_rate_limit(),
        "cover_rate_window_seconds": cover_rate_window_seconds(),
        "cover_provider_order": cover_provider_order(),
    }


__all__.append("summarize_runtime_config")
