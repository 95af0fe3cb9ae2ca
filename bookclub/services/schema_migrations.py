"""Idempotent in-place upgrades for databases created by older releases.

Older deployments have a ``books`` table without the file, format, language,
size and download-counter columns. Each run inspects the live schema and only
issues DDL for what is missing, so running it twice is harmless.
"""
from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy import inspect, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from bookclub.db import get_engine
from bookclub.db.models import Book, DEFAULT_LANGUAGE
from bookclub.utils.logging import get_logger

LOG = get_logger("schema_migrations")

# column name -> DDL default clause
UPGRADE_COLUMNS = (
    ("file_path", None),
    ("format", None),
    ("language", f"'{DEFAULT_LANGUAGE}'"),
    ("file_size", None),
    ("downloads", "0"),
)
UPGRADE_INDEXES = ("idx_language", "idx_format", "idx_month_year")


class MigrationError(RuntimeError):
    pass


def _column_ddl(engine: Engine, name: str, default: Optional[str]) -> str:
    column = Book.__table__.c[name]
    ddl_type = column.type.compile(dialect=engine.dialect)
    preparer = engine.dialect.identifier_preparer
    ddl = f"ALTER TABLE {preparer.quote(Book.__tablename__)} ADD COLUMN {preparer.quote(name)} {ddl_type}"
    if default is not None:
        ddl += f" DEFAULT {default}"
    return ddl


def _index_by_name(name: str):
    for index in Book.__table__.indexes:
        if index.name == name:
            return index
    raise MigrationError(f"unknown_index:{name}")


def run_migrations(engine: Optional[Engine] = None) -> Dict[str, List[str]]:
    """Bring the ``books`` table up to date; returns ``{"applied": [...], "skipped": [...]}``."""
    engine = engine or get_engine()
    applied: List[str] = []
    skipped: List[str] = []
    table = Book.__tablename__
    try:
        with engine.begin() as conn:
            inspector = inspect(conn)
            if not inspector.has_table(table):
                Book.__table__.create(conn)
                applied.append(f"table:{table}")
                skipped.extend(f"column:{name}" for name, _ in UPGRADE_COLUMNS)
                skipped.extend(f"index:{name}" for name in UPGRADE_INDEXES)
            else:
                skipped.append(f"table:{table}")
                existing = {col["name"] for col in inspector.get_columns(table)}
                for name, default in UPGRADE_COLUMNS:
                    if name in existing:
                        skipped.append(f"column:{name}")
                        continue
                    conn.execute(text(_column_ddl(engine, name, default)))
                    applied.append(f"column:{name}")
                indexes = {idx["name"] for idx in inspect(conn).get_indexes(table)}
                for name in UPGRADE_INDEXES:
                    if name in indexes:
                        skipped.append(f"index:{name}")
                        continue
                    _index_by_name(name).create(conn)
                    applied.append(f"index:{name}")
    except SQLAlchemyError as exc:
        LOG.exception("Schema migration failed")
        raise MigrationError("migration_failed") from exc
    LOG.info("Schema migration applied=%s skipped=%s", applied, len(skipped))
    return {"applied": applied, "skipped": skipped}


__all__ = ["MigrationError", "UPGRADE_COLUMNS", "UPGRADE_INDEXES", "run_migrations"]
