"""Service exports."""

from .catalog_service import (
    CatalogError,
    add_book,
    list_catalog,
    parse_query,
)
from .cover_resolver import (
    ResolvedCover,
    get_resolver,
    reset_resolver,
    resolve_cover,
)
from .cover_sources import CoverSourceTag
from .download_service import DownloadError, prepare_download
from .schema_migrations import MigrationError, run_migrations
from .auth_service import AuthError, authenticate, register
from . import library_import, placeholder_service

__all__ = [
    "CatalogError",
    "add_book",
    "list_catalog",
    "parse_query",
    "ResolvedCover",
    "CoverSourceTag",
    "get_resolver",
    "reset_resolver",
    "resolve_cover",
    "DownloadError",
    "prepare_download",
    "MigrationError",
    "run_migrations",
    "AuthError",
    "authenticate",
    "register",
    "library_import",
    "placeholder_service",
]
