"""Bulk import of e-book files from a directory tree into the catalog."""
from __future__ import annotations

import datetime
import os
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional
from urllib.parse import quote

from bookclub.db.models import DEFAULT_LANGUAGE
from bookclub.db.repositories import books_repo
from bookclub.services.download_service import LEGACY_DOWNLOAD_PREFIX
from bookclub.services.title_normalizer import UNKNOWN_AUTHOR
from bookclub.utils.logging import get_logger

LOG = get_logger("library_import")

IMPORT_EXTENSIONS = (".pdf", ".epub")

_LANGUAGE_HINTS = (
    ("French", ("french", "français")),
    ("German", ("german", "deutsch")),
)


@dataclass(frozen=True)
class ScannedBook:
    title: str
    author: str
    format: str
    language: str
    file_size: int
    file_path: str
    download_link: str


def guess_language(path: str) -> str:
    lowered = path.lower()
    for language, hints in _LANGUAGE_HINTS:
        if any(hint in lowered for hint in hints):
            return language
    return DEFAULT_LANGUAGE


def parse_filename(filename: str) -> Dict[str, str]:
    """``"Author - Title.ext"`` into author/title; other names keep the stem as title."""
    stem, _ext = os.path.splitext(filename)
    if " - " in stem:
        author, title = stem.split(" - ", 1)
        author, title = author.strip(), title.strip()
        if author and title:
            return {"author": author, "title": title}
    return {"author": UNKNOWN_AUTHOR, "title": stem.strip() or filename}


def describe_file(path: str) -> ScannedBook:
    meta = parse_filename(os.path.basename(path))
    return ScannedBook(
        title=meta["title"],
        author=meta["author"],
        format=os.path.splitext(path)[1].lower().lstrip("."),
        language=guess_language(path),
        file_size=os.path.getsize(path),
        file_path=path,
        download_link=LEGACY_DOWNLOAD_PREFIX + quote(path, safe=""),
    )


def scan_directory(root: str) -> List[ScannedBook]:
    if not os.path.isdir(root):
        raise FileNotFoundError(root)
    found: List[ScannedBook] = []
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames.sort()
        for filename in sorted(filenames):
            if os.path.splitext(filename)[1].lower() not in IMPORT_EXTENSIONS:
                continue
            path = os.path.join(dirpath, filename)
            try:
                found.append(describe_file(path))
            except OSError as exc:
                LOG.warning("Skipping unreadable file path=%s error=%s", path, exc)
    LOG.info("Scanned %s books under %s", len(found), root)
    return found


def import_books(entries: Iterable[ScannedBook], *, now: Optional[datetime.datetime] = None) -> Dict[str, int]:
    """Insert scanned books not yet in the catalog; existing file paths are skipped."""
    stamp = now or datetime.datetime.now()
    imported = skipped = failed = 0
    for entry in entries:
        try:
            if books_repo.find_by_file_path(entry.file_path) is not None:
                skipped += 1
                continue
            books_repo.create_book(
                title=entry.title,
                author=entry.author,
                download_link=entry.download_link,
                file_path=entry.file_path,
                format=entry.format,
                language=entry.language,
                file_size=entry.file_size,
                month=stamp.month,
                year=stamp.year,
            )
            imported += 1
        except Exception:
            LOG.exception("Failed importing %s", entry.file_path)
            failed += 1
    LOG.info("Import finished imported=%s skipped=%s failed=%s", imported, skipped, failed)
    return {"imported": imported, "skipped": skipped, "failed": failed}


def update_file_sizes() -> Dict[str, int]:
    """Refresh ``file_size`` from disk for every book that has a file path."""
    updated = missing = failed = 0
    for book in books_repo.books_with_files():
        path = book.file_path
        if not os.path.isfile(path):
            LOG.warning("File not found for book id=%s path=%s", book.id, path)
            missing += 1
            continue
        try:
            books_repo.update_file_size(book.id, os.path.getsize(path))
            updated += 1
        except Exception:
            LOG.exception("Failed updating size for book id=%s", book.id)
            failed += 1
    return {"updated": updated, "missing": missing, "failed": failed}


__all__ = [
    "IMPORT_EXTENSIONS",
    "ScannedBook",
    "guess_language",
    "parse_filename",
    "describe_file",
    "scan_directory",
    "import_books",
    "update_file_sizes",
]
