"""ORM models for the catalog DB (books + local user accounts)."""
from __future__ import annotations

import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Index,
    Integer,
    SmallInteger,
    String,
    Text,
)
from sqlalchemy.orm import declarative_base

Base = declarative_base()

DEFAULT_LANGUAGE = "English"


class Book(Base):
    """A downloadable e-book in the shared catalog.

    `cover_image` doubles as the persisted cover store: resolved provider
    covers are written back here so later lookups skip the network.
    """

    __tablename__ = "books"

    id = Column(Integer, primary_key=True, autoincrement=True)
    title = Column(String(255), nullable=False)
    author = Column(String(255), nullable=False)
    description = Column(Text, nullable=True)
    cover_image = Column(String(500), nullable=True)
    download_link = Column(String(500), nullable=False)
    file_path = Column(String(500), nullable=True)
    format = Column(String(10), nullable=True)
    language = Column(String(50), nullable=True, default=DEFAULT_LANGUAGE)
    file_size = Column(BigInteger, nullable=True)
    downloads = Column(Integer, nullable=False, default=0)
    month = Column(SmallInteger, nullable=True)
    year = Column(SmallInteger, nullable=True)
    created_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)
    updated_at = Column(
        DateTime,
        default=datetime.datetime.utcnow,
        onupdate=datetime.datetime.utcnow,
        nullable=False,
    )

    __table_args__ = (
        Index("idx_month_year", "month", "year"),
        Index("idx_language", "language"),
        Index("idx_format", "format"),
    )

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "description": self.description,
            "cover_image": self.cover_image,
            "download_link": self.download_link,
            "format": self.format,
            "language": self.language,
            "file_size": self.file_size,
            "downloads": self.downloads or 0,
            "month": self.month,
            "year": self.year,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }

    def as_list_item(self) -> dict:
        """Catalog listing payload (no description, link or timestamps)."""
        return {
            "id": self.id,
            "title": self.title,
            "author": self.author,
            "format": self.format,
            "language": self.language,
            "cover_image": self.cover_image,
            "downloads": self.downloads or 0,
            "file_size": self.file_size,
            "month": self.month,
            "year": self.year,
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<Book id={self.id} title={self.title!r} author={self.author!r}>"


class User(Base):
    """Local account used for sign-in."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    name = Column(String(255), nullable=True)
    password_hash = Column(String(255), nullable=False)
    is_admin = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=datetime.datetime.utcnow, nullable=False)

    def as_dict(self) -> dict:
        return {
            "id": self.id,
            "email": self.email,
            "name": self.name,
            "is_admin": bool(self.is_admin),
            "created_at": self.created_at.isoformat() if self.created_at else None,
        }

    def __repr__(self) -> str:  # pragma: no cover
        return f"<User id={self.id} email={self.email}>"


__all__ = ["Base", "Book", "User", "DEFAULT_LANGUAGE"]
