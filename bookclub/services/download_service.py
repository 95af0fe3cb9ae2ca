"""Locate the file behind a catalog book and prepare it for download."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional
from urllib.parse import parse_qs, unquote, urlsplit

from bookclub import config as app_config
from bookclub.db.models import Book
from bookclub.db.repositories import books_repo
from bookclub.utils.logging import get_logger

LOG = get_logger("download_service")

LEGACY_DOWNLOAD_PREFIX = "/api/download?path="

CONTENT_TYPES = {
    ".pdf": "application/pdf",
    ".epub": "application/epub+zip",
    ".mobi": "application/x-mobipocket-ebook",
}
DEFAULT_CONTENT_TYPE = "application/octet-stream"


class DownloadError(RuntimeError):
    status = 400


class BookIdRequiredError(DownloadError):
    status = 400

    def __init__(self):
        super().__init__("book_id_required")


class BookNotFoundError(DownloadError):
    status = 404

    def __init__(self):
        super().__init__("book_not_found")


class FilePathMissingError(DownloadError):
    status = 404

    def __init__(self):
        super().__init__("file_path_missing")


class InvalidFilePathError(DownloadError):
    status = 400

    def __init__(self):
        super().__init__("invalid_file_path")


class FileMissingError(DownloadError):
    status = 404

    def __init__(self):
        super().__init__("file_not_found")


@dataclass(frozen=True)
class DownloadTarget:
    book_id: int
    path: str
    filename: str
    content_type: str


def legacy_link_path(download_link: Optional[str]) -> Optional[str]:
    """Decode the ``path`` parameter of an ``/api/download?path=...`` link."""
    if not download_link or not download_link.startswith(LEGACY_DOWNLOAD_PREFIX):
        return None
    values = parse_qs(urlsplit(download_link).query).get("path") or []
    if not values or not values[0]:
        return None
    return unquote(values[0])


def content_type_for(path: str) -> str:
    return CONTENT_TYPES.get(os.path.splitext(path)[1].lower(), DEFAULT_CONTENT_TYPE)


def _file_path_for(book: Book) -> str:
    path = (book.file_path or "").strip() or legacy_link_path(book.download_link)
    if not path:
        raise FilePathMissingError()
    return path


def resolve_library_path(path: str) -> str:
    """Real path of ``path`` if it lies under the library root.

    Relative paths are taken relative to the root. Anything containing
    ``..`` or resolving outside the root raises `InvalidFilePathError`.
    """
    if not path or ".." in path:
        raise InvalidFilePathError()
    real_root = os.path.realpath(app_config.library_root())
    real_path = os.path.realpath(path if os.path.isabs(path) else os.path.join(real_root, path))
    if os.path.commonpath([real_root, real_path]) != real_root:
        LOG.warning("Rejected path outside library root path=%s", path)
        raise InvalidFilePathError()
    return real_path


def is_within_library(path: str) -> bool:
    try:
        resolve_library_path(path)
    except InvalidFilePathError:
        return False
    return True


def _parse_book_id(raw_id) -> int:
    if raw_id is None or str(raw_id).strip() == "":
        raise BookIdRequiredError()
    try:
        return int(str(raw_id).strip())
    except ValueError as exc:
        # non-numeric ids can never match a row
        raise BookNotFoundError() from exc


def prepare_download(raw_id) -> DownloadTarget:
    """Resolve the file for ``raw_id`` and count the download.

    The counter is bumped only once the file is known to exist on disk.
    """
    book_id = _parse_book_id(raw_id)
    book = books_repo.get_book(book_id)
    if book is None:
        raise BookNotFoundError()
    path = resolve_library_path(_file_path_for(book))
    if not os.path.isfile(path):
        LOG.warning("Download file missing book_id=%s path=%s", book_id, path)
        raise FileMissingError()
    books_repo.increment_downloads(book_id)
    LOG.info("Serving download book_id=%s", book_id)
    return DownloadTarget(
        book_id=book_id,
        path=path,
        filename=os.path.basename(path),
        content_type=content_type_for(path),
    )


__all__ = [
    "DownloadError",
    "BookIdRequiredError",
    "BookNotFoundError",
    "FilePathMissingError",
    "InvalidFilePathError",
    "FileMissingError",
    "DownloadTarget",
    "legacy_link_path",
    "resolve_library_path",
    "is_within_library",
    "content_type_for",
    "prepare_download",
]
