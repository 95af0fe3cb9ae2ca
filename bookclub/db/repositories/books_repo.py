"""Repository helpers for catalog book rows."""
from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Query, Session

from bookclub.db import app_session
from bookclub.db.models import Book


def _contains_ci(column, needle: str):
    escaped = needle.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return column.ilike(f"%{escaped}%", escape="\\")


def _apply_filters(
    query: Query,
    *,
    search: Optional[str] = None,
    book_format: Optional[str] = None,
    language: Optional[str] = None,
) -> Query:
    if search:
        query = query.filter(or_(_contains_ci(Book.title, search), _contains_ci(Book.author, search)))
    if book_format:
        query = query.filter(Book.format == book_format)
    if language:
        query = query.filter(Book.language == language)
    return query


def _random_order(session: Session):
    dialect = session.get_bind().dialect.name
    return func.rand() if dialect == "mysql" else func.random()


def list_books(
    *,
    search: Optional[str] = None,
    book_format: Optional[str] = None,
    language: Optional[str] = None,
    limit: int = 10,
    offset: int = 0,
    random: bool = False,
) -> List[Book]:
    with app_session() as session:
        query = _apply_filters(session.query(Book), search=search, book_format=book_format, language=language)
        order = _random_order(session) if random else Book.id.desc()
        return query.order_by(order).limit(limit).offset(offset).all()


def count_books(
    *,
    search: Optional[str] = None,
    book_format: Optional[str] = None,
    language: Optional[str] = None,
) -> int:
    with app_session() as session:
        query = _apply_filters(
            session.query(func.count(Book.id)),
            search=search,
            book_format=book_format,
            language=language,
        )
        return int(query.scalar() or 0)


def facet_counts() -> Dict[str, List[Dict[str, object]]]:
    """Distinct languages and formats with their book counts."""
    with app_session() as session:
        languages = (
            session.query(Book.language, func.count(Book.id))
            .filter(Book.language.isnot(None), Book.language != "")
            .group_by(Book.language)
            .order_by(Book.language)
            .all()
        )
        formats = (
            session.query(Book.format, func.count(Book.id))
            .filter(Book.format.isnot(None), Book.format != "")
            .group_by(Book.format)
            .order_by(Book.format)
            .all()
        )
    return {
        "languages": [{"language": value, "count": int(count)} for value, count in languages],
        "formats": [{"format": value, "count": int(count)} for value, count in formats],
    }


def get_book(book_id: int) -> Optional[Book]:
    with app_session() as session:
        return session.query(Book).filter(Book.id == book_id).one_or_none()


def find_by_file_path(file_path: str) -> Optional[Book]:
    with app_session() as session:
        return session.query(Book).filter(Book.file_path == file_path).first()


def create_book(**fields) -> Book:
    book = Book(**fields)
    with app_session() as session:
        session.add(book)
        session.flush()
    return book


def increment_downloads(book_id: int) -> bool:
    with app_session() as session:
        updated = (
            session.query(Book)
            .filter(Book.id == book_id)
            .update({Book.downloads: func.coalesce(Book.downloads, 0) + 1}, synchronize_session=False)
        )
        return bool(updated)


def books_with_files() -> List[Book]:
    with app_session() as session:
        return session.query(Book).filter(Book.file_path.isnot(None), Book.file_path != "").all()


def update_file_size(book_id: int, file_size: int) -> bool:
    with app_session() as session:
        updated = (
            session.query(Book)
            .filter(Book.id == book_id)
            .update({Book.file_size: int(file_size)}, synchronize_session=False)
        )
        return bool(updated)


def _cover_match(query: Query, title: str, author: Optional[str]) -> Query:
    query = query.filter(_contains_ci(Book.title, title))
    if author:
        query = query.filter(_contains_ci(Book.author, author))
    return query


def find_cover(title: str, author: Optional[str] = None) -> Optional[str]:
    """Return a stored cover for the first book whose title/author contain the inputs."""
    cleaned_title = (title or "").strip()
    if not cleaned_title:
        return None
    cleaned_author = (author or "").strip() or None
    with app_session() as session:
        row = (
            _cover_match(session.query(Book.cover_image), cleaned_title, cleaned_author)
            .filter(Book.cover_image.isnot(None), Book.cover_image != "")
            .order_by(Book.id)
            .first()
        )
    return row[0] if row else None


def save_cover(title: str, author: Optional[str], url: str) -> int:
    """Store ``url`` on matching books that have no cover yet; returns rows touched."""
    cleaned_title = (title or "").strip()
    if not cleaned_title or not url:
        return 0
    cleaned_author = (author or "").strip() or None
    with app_session() as session:
        updated = (
            _cover_match(session.query(Book), cleaned_title, cleaned_author)
            .filter(or_(Book.cover_image.is_(None), Book.cover_image == ""))
            .update({Book.cover_image: url}, synchronize_session=False)
        )
        return int(updated or 0)


__all__ = [
    "list_books",
    "count_books",
    "facet_counts",
    "get_book",
    "find_by_file_path",
    "create_book",
    "increment_downloads",
    "books_with_files",
    "update_file_size",
    "find_cover",
    "save_cover",
]
