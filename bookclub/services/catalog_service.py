"""Catalog listing and book creation."""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Dict, Mapping, Optional

from bookclub import config as app_config
from bookclub.db.models import Book
from bookclub.db.repositories import books_repo
from bookclub.services import download_service
from bookclub.utils.logging import get_logger

LOG = get_logger("catalog_service")

DEFAULT_DESCRIPTION = "No description available."
# keeps the SQL offset well inside a 64-bit integer
MAX_PAGE = 1_000_000
_REQUIRED_FIELDS = ("title", "author", "download_link", "month", "year")


class CatalogError(RuntimeError):
    """Validation failure for catalog input; str() is the error code."""


@dataclass(frozen=True)
class CatalogQuery:
    page: int = 1
    limit: int = 10
    search: Optional[str] = None
    book_format: Optional[str] = None
    language: Optional[str] = None
    random: bool = False

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


def _int_arg(raw: Any, default: int) -> int:
    try:
        return int(str(raw).strip())
    except (TypeError, ValueError):
        return default


def _text_arg(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    cleaned = raw.strip()
    return cleaned or None


def parse_query(args: Mapping[str, Any]) -> CatalogQuery:
    """Build a query from request args; bad numbers fall back, sizes are clamped."""
    default_limit = app_config.catalog_default_page_size()
    page = min(max(1, _int_arg(args.get("page"), 1)), MAX_PAGE)
    limit = _int_arg(args.get("limit"), default_limit)
    limit = min(max(1, limit), app_config.catalog_max_page_size())
    return CatalogQuery(
        page=page,
        limit=limit,
        search=_text_arg(args.get("search")),
        book_format=_text_arg(args.get("format")),
        language=_text_arg(args.get("language")),
        random=str(args.get("random") or "").strip().lower() == "true",
    )


def list_catalog(query: CatalogQuery) -> Dict[str, Any]:
    filters = dict(search=query.search, book_format=query.book_format, language=query.language)
    total = books_repo.count_books(**filters)
    books = books_repo.list_books(limit=query.limit, offset=query.offset, random=query.random, **filters)
    total_pages = math.ceil(total / query.limit) if total else 0
    return {
        "books": [book.as_list_item() for book in books],
        "total": total,
        "page": query.page,
        "limit": query.limit,
        "pagination": {
            "page": query.page,
            "limit": query.limit,
            "total": total,
            "totalPages": total_pages,
        },
        "filters": books_repo.facet_counts(),
    }


def _require_int(payload: Mapping[str, Any], field: str) -> int:
    try:
        return int(payload.get(field))
    except (TypeError, ValueError) as exc:
        raise CatalogError(f"{field}_invalid") from exc


def add_book(payload: Mapping[str, Any]) -> Book:
    if not isinstance(payload, Mapping):
        raise CatalogError("invalid_payload")
    missing = [field for field in _REQUIRED_FIELDS if payload.get(field) in (None, "")]
    if missing:
        raise CatalogError("missing_required_fields")
    month = _require_int(payload, "month")
    if not 1 <= month <= 12:
        raise CatalogError("month_invalid")
    year = _require_int(payload, "year")
    if year < 1:
        raise CatalogError("year_invalid")
    download_link = str(payload["download_link"]).strip()
    legacy_path = download_service.legacy_link_path(download_link)
    if legacy_path is not None and not download_service.is_within_library(legacy_path):
        raise CatalogError("download_link_invalid")
    book = books_repo.create_book(
        title=str(payload["title"]).strip(),
        author=str(payload["author"]).strip(),
        description=_text_arg(payload.get("description")) or DEFAULT_DESCRIPTION,
        cover_image=_text_arg(payload.get("cover_image")),
        download_link=download_link,
        month=month,
        year=year,
    )
    LOG.info("Added book id=%s title=%s", book.id, book.title)
    return book


def format_file_size(size: Optional[int]) -> str:
    """Human readable size: B, KB, MB or GB with one decimal."""
    if not size:
        return "Unknown size"
    value = float(size)
    units = ("B", "KB", "MB", "GB")
    unit_index = 0
    while value >= 1024 and unit_index < len(units) - 1:
        value /= 1024
        unit_index += 1
    return f"{value:.1f} {units[unit_index]}"


__all__ = [
    "CatalogError",
    "CatalogQuery",
    "DEFAULT_DESCRIPTION",
    "MAX_PAGE",
    "parse_query",
    "list_catalog",
    "add_book",
    "format_file_size",
]
