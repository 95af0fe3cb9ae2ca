"""Database engine & session management.

One engine per process, created lazily under a lock. SQLite URLs get a
connect timeout so a locked database cannot stall a request indefinitely,
and in-memory URLs share a single connection across threads.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Callable, Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import Session as SASession
from sqlalchemy.orm import scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from bookclub import config as app_config
from bookclub.db.models import Base
from bookclub.utils.logging import get_logger

_engine: Optional[Engine] = None
_SessionFactory: Optional[Callable[[], SASession]] = None
_scoped: Optional[scoped_session] = None
_LOCK = threading.Lock()

SQLITE_TIMEOUT_SECONDS = 5

LOG = get_logger("bookclub.db")


def _engine_kwargs(url: str) -> dict:
    parsed = make_url(url)
    if parsed.get_backend_name() != "sqlite":
        return {"pool_pre_ping": True}
    kwargs: dict = {
        "connect_args": {"check_same_thread": False, "timeout": SQLITE_TIMEOUT_SECONDS},
    }
    if parsed.database in (None, "", ":memory:"):
        kwargs["poolclass"] = StaticPool
    return kwargs


def init_engine_once() -> None:
    global _engine, _SessionFactory, _scoped
    if _engine is not None:
        return
    with _LOCK:
        if _engine is not None:
            return
        url = app_config.database_url()
        LOG.info("Initializing database engine backend=%s", make_url(url).get_backend_name())
        _engine = create_engine(url, future=True, **_engine_kwargs(url))
        _SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False, class_=SASession)
        _scoped = scoped_session(_SessionFactory)
        _safe_create_schema()
        LOG.debug("schema ready")


def _safe_create_schema() -> None:
    """Run metadata.create_all tolerating the parallel-start race.

    Several workers booting together can trip 'table ... already exists'
    between the existence check and the DDL; that message is swallowed,
    anything else propagates.
    """
    if _engine is None:
        return
    try:
        Base.metadata.create_all(_engine)
    except OperationalError as e:  # pragma: no cover - concurrency edge
        if "already exists" in str(e).lower():
            LOG.warning("Schema create encountered existing tables (benign race)")
        else:
            raise


def get_engine() -> Engine:
    if _engine is None:
        init_engine_once()
    return _engine  # type: ignore[return-value]


def get_session_factory() -> Callable[[], SASession]:
    if _SessionFactory is None:
        init_engine_once()
    return _SessionFactory  # type: ignore[return-value]


def get_scoped_session() -> scoped_session:
    if _scoped is None:
        init_engine_once()
    if _scoped is None:
        raise RuntimeError("Scoped session could not be initialized.")
    return _scoped


@contextmanager
def app_session() -> Iterator[SASession]:
    scoped = get_scoped_session()
    sess = scoped()
    try:
        yield sess
        sess.commit()
    except Exception:
        sess.rollback()
        raise
    finally:
        sess.close()


def reset_for_tests(drop: bool = False) -> None:
    global _engine, _SessionFactory, _scoped
    with _LOCK:
        if _engine is not None and drop:
            try:
                Base.metadata.drop_all(_engine)
            except Exception:
                LOG.warning("Failed dropping tables during reset", exc_info=True)
        if _scoped is not None:
            _scoped.remove()
        if _engine is not None:
            _engine.dispose()
        _engine = None
        _SessionFactory = None
        _scoped = None


__all__ = [
    "init_engine_once",
    "get_engine",
    "get_session_factory",
    "get_scoped_session",
    "app_session",
    "reset_for_tests",
]
