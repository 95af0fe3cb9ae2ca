"""Resolve a book cover URL from cache, stored covers, providers, or a placeholder.

Lookup order for ``resolve(title, author)``:

1. in-memory cache keyed by the raw (title, author) pair;
2. the persisted store (covers already saved on matching catalog rows);
3. each provider source in configured priority order;
4. a deterministic placeholder picked from the title.

A provider hit is cached and written back to the store on a background
thread. Placeholders are cached but never stored. `resolve` does not raise.
"""
from __future__ import annotations

import threading
import time
from concurrent.futures import Executor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Any, Callable, List, Optional, Sequence

from bookclub import config as app_config
from bookclub.services.cover_cache import CoverCache, make_key
from bookclub.services.cover_sources import (
    SOURCE_TYPES,
    CoverSource,
    CoverSourceTag,
    GoogleBooksSource,
    OpenLibrarySource,
)
from bookclub.services.rate_limiter import FixedWindowRateLimiter
from bookclub.services.title_normalizer import normalize
from bookclub.utils.hashing import stable_bucket
from bookclub.utils.logging import get_logger

LOG = get_logger("cover_resolver")

PLACEHOLDER_VARIANTS = 100
DEFAULT_BUCKET = "default"

# First match wins; keywords are matched as substrings of the lower-cased title.
PLACEHOLDER_BUCKETS = (
    ("technology", (
        "programming", "code", "software", "computer", "python", "java", "linux",
        "algorithm", "database", "network", "developer", "machine learning", "devops",
    )),
    ("history", (
        "history", "histoire", "wars", "empire", "ancient", "revolution",
        "century", "civilization", "medieval", "biography",
    )),
    ("science", (
        "science", "physics", "chemistry", "biology", "mathemat", "astronomy",
        "quantum", "evolution", "universe", "cosmos",
    )),
    ("fiction", (
        "novel", "stories", "tale", "fiction", "mystery", "romance",
        "fantasy", "adventure", "saga", "murder", "dragon",
    )),
)

_EXECUTOR = ThreadPoolExecutor(max_workers=2, thread_name_prefix="cover-persist")


@dataclass(frozen=True)
class ResolvedCover:
    url: str
    source: CoverSourceTag

    def as_dict(self) -> dict:
        return {"coverImage": self.url, "source": self.source.value}


class BooksCoverStore:
    """Persisted covers on the catalog's ``books.cover_image`` column."""

    def find_cover(self, title: str, author: Optional[str]) -> Optional[str]:
        from bookclub.db.repositories import books_repo

        return books_repo.find_cover(title, author)

    def save_cover(self, title: str, author: Optional[str], url: str) -> None:
        from bookclub.db.repositories import books_repo

        updated = books_repo.save_cover(title, author, url)
        LOG.debug("Stored cover rows=%s title=%s", updated, title)


def classify_title(title: str) -> str:
    lowered = normalize(title or "").lower()
    for bucket, keywords in PLACEHOLDER_BUCKETS:
        if any(keyword in lowered for keyword in keywords):
            return bucket
    return DEFAULT_BUCKET


def placeholder_url(title: str, *, base: Optional[str] = None) -> str:
    """Same title, same URL: bucket from keywords, variant from the title hash."""
    root = (base or app_config.cover_placeholder_base()).rstrip("/")
    clean_title = (title or "").strip()
    variant = stable_bucket(clean_title, PLACEHOLDER_VARIANTS)
    return f"{root}/{classify_title(clean_title)}?lock={variant}"


class CoverResolver:
    def __init__(
        self,
        *,
        cache: CoverCache,
        sources: Sequence[CoverSource],
        store: Any = None,
        executor: Optional[Executor] = None,
        placeholder_base: Optional[str] = None,
    ):
        self.cache = cache
        self.sources: List[CoverSource] = list(sources)
        self.store = store
        self._executor = executor or _EXECUTOR
        self.placeholder_base = placeholder_base

    def resolve(self, title: str, author: Optional[str] = None) -> ResolvedCover:
        try:
            return self._resolve(title, author)
        except Exception:
            LOG.exception("Cover resolution failed title=%s", title)
            return ResolvedCover(placeholder_url(title, base=self.placeholder_base), CoverSourceTag.PLACEHOLDER)

    def _resolve(self, title: str, author: Optional[str]) -> ResolvedCover:
        key = make_key(title, author)
        cached = self.cache.get(key)
        if cached:
            return ResolvedCover(cached, CoverSourceTag.PERSISTED)

        stored = self._find_stored(title, author)
        if stored:
            self.cache.put(key, stored)
            return ResolvedCover(stored, CoverSourceTag.PERSISTED)

        for source in self.sources:
            try:
                url = source.lookup(title, author)
            except Exception:
                LOG.exception("Source %s raised during lookup title=%s", source.name, title)
                url = None
            if url:
                self.cache.put(key, url)
                self._persist_later(title, author, url)
                return ResolvedCover(url, source.tag)

        url = placeholder_url(title, base=self.placeholder_base)
        self.cache.put(key, url)
        LOG.info("No provider cover; using placeholder title=%s", title)
        return ResolvedCover(url, CoverSourceTag.PLACEHOLDER)

    def _find_stored(self, title: str, author: Optional[str]) -> Optional[str]:
        if self.store is None:
            return None
        try:
            return self.store.find_cover(title, author)
        except Exception:
            LOG.warning("Stored cover lookup failed title=%s", title, exc_info=True)
            return None

    def _persist_later(self, title: str, author: Optional[str], url: str) -> None:
        if self.store is None:
            return
        try:
            self._executor.submit(self._persist, title, author, url)
        except RuntimeError:
            LOG.warning("Cover persist skipped; executor unavailable title=%s", title)

    def _persist(self, title: str, author: Optional[str], url: str) -> None:
        try:
            self.store.save_cover(title, author, url)
        except Exception:
            LOG.warning("Failed persisting cover title=%s", title, exc_info=True)


def build_sources(
    *,
    session: Any = None,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], None] = time.sleep,
) -> List[CoverSource]:
    """Instantiate the configured providers, each with its own rate limiter."""
    sources: List[CoverSource] = []
    for name in app_config.cover_provider_order():
        if name not in SOURCE_TYPES:
            LOG.warning("Unknown cover provider %s ignored", name)
            continue
        common = dict(
            rate_limiter=FixedWindowRateLimiter(
                app_config.cover_rate_limit(),
                app_config.cover_rate_window_seconds(),
                clock=clock,
            ),
            timeout=app_config.cover_http_timeout(),
            retries=app_config.cover_http_retries(),
            backoff_seconds=app_config.cover_retry_backoff_seconds(),
            session=session,
            sleep=sleep,
        )
        if name == GoogleBooksSource.name:
            sources.append(
                GoogleBooksSource(
                    base_url=app_config.google_books_api_base(),
                    api_key=app_config.google_books_api_key(),
                    **common,
                )
            )
        else:
            sources.append(OpenLibrarySource(base_url=app_config.open_library_api_base(), **common))
    return sources


def build_resolver(
    *,
    session: Any = None,
    store: Any = None,
    executor: Optional[Executor] = None,
    clock: Callable[[], float] = time.time,
    sleep: Callable[[float], None] = time.sleep,
) -> CoverResolver:
    return CoverResolver(
        cache=CoverCache(app_config.cover_cache_ttl_seconds(), clock=clock),
        sources=build_sources(session=session, clock=clock, sleep=sleep),
        store=store if store is not None else BooksCoverStore(),
        executor=executor,
        placeholder_base=app_config.cover_placeholder_base(),
    )


_RESOLVER: Optional[CoverResolver] = None
_RESOLVER_LOCK = threading.Lock()


def get_resolver() -> CoverResolver:
    """Process-wide resolver, built on first use."""
    global _RESOLVER
    if _RESOLVER is not None:
        return _RESOLVER
    with _RESOLVER_LOCK:
        if _RESOLVER is None:
            _RESOLVER = build_resolver()
            LOG.info("Cover resolver ready providers=%s", [s.name for s in _RESOLVER.sources])
        return _RESOLVER


def set_resolver(resolver: Optional[CoverResolver]) -> None:
    global _RESOLVER
    with _RESOLVER_LOCK:
        _RESOLVER = resolver


def reset_resolver() -> None:
    set_resolver(None)


def resolve_cover(title: str, author: Optional[str] = None) -> ResolvedCover:
    return get_resolver().resolve(title, author)


__all__ = [
    "CoverSourceTag",
    "ResolvedCover",
    "BooksCoverStore",
    "CoverResolver",
    "classify_title",
    "placeholder_url",
    "build_sources",
    "build_resolver",
    "get_resolver",
    "set_resolver",
    "reset_resolver",
    "resolve_cover",
]
