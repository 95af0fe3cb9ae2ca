"""Clean raw catalog titles and authors before they are sent to metadata APIs.

Titles in the catalog often come straight from file names
("Tolkien-Gandalf-PenguinBooks-1999.epub"), which match nothing at the
providers. `normalize` peels the noise off the end of the string; it never
returns an empty title.
"""
from __future__ import annotations

import re
from typing import Optional

UNKNOWN_AUTHOR = "Unknown Author"

BOOK_EXTENSIONS = ("pdf", "epub", "mobi", "azw3", "djvu", "fb2", "doc", "docx")

_EXTENSION_RE = re.compile(
    r"\.(?:%s)\s*$" % "|".join(BOOK_EXTENSIONS),
    re.IGNORECASE,
)
# "-Publisher-1999" or "-Publisher (1999)"
_PUBLISHER_YEAR_RE = re.compile(r"\s*-[^-()]+?\s*(?:-\s*\d{4}|\(\s*\d{4}\s*\))\s*$")
_YEAR_RE = re.compile(r"[\s_-]*(?:\(\s*\d{4}\s*\)|(?<!\d)\d{4})\s*$")
_TRAILING_JUNK = " \t-_.,;:"
_WS_RE = re.compile(r"\s+")

_AUTHOR_PREFIX_RE = re.compile(r"^\s*by\s+", re.IGNORECASE)
_AUTHOR_SPLIT_RE = re.compile(r"\s*(?:;|&|\band\b|/)\s*", re.IGNORECASE)
_BRACKETED_RE = re.compile(r"[\(\[][^\)\]]*[\)\]]")


def normalize(raw_title: str) -> str:
    """Return ``raw_title`` without trailing extension, publisher and year tokens."""
    if not raw_title:
        return raw_title
    value = raw_title.strip()
    value = _EXTENSION_RE.sub("", value)
    stripped = _PUBLISHER_YEAR_RE.sub("", value)
    if stripped == value:
        stripped = _YEAR_RE.sub("", value)
    value = _WS_RE.sub(" ", stripped.strip(_TRAILING_JUNK)).strip()
    return value or raw_title


def clean_author(raw_author: Optional[str]) -> Optional[str]:
    """First named author without "by" prefixes or bracketed notes.

    Returns None for blanks and the ``Unknown Author`` sentinel.
    """
    if not raw_author:
        return None
    value = _BRACKETED_RE.sub(" ", raw_author)
    value = _AUTHOR_PREFIX_RE.sub("", value)
    value = _AUTHOR_SPLIT_RE.split(value, maxsplit=1)[0]
    value = _WS_RE.sub(" ", value).strip(_TRAILING_JUNK).strip()
    if not value or value.lower() == UNKNOWN_AUTHOR.lower():
        return None
    return value


__all__ = ["UNKNOWN_AUTHOR", "BOOK_EXTENSIONS", "normalize", "clean_author"]
