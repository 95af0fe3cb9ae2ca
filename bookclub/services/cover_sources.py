"""Cover lookups against the public book-metadata APIs.

Each source turns a (title, author) pair into a single search request and
returns the first usable image URL, or None. Sources never raise: network
trouble, throttling and odd payloads all end up as None so the resolver can
move on to the next source.
"""
from __future__ import annotations

import enum
import time
from typing import Any, Callable, Dict, Optional
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

import requests

from bookclub.services.rate_limiter import FixedWindowRateLimiter
from bookclub.services.title_normalizer import clean_author, normalize
from bookclub.utils.logging import get_logger

LOG = get_logger("cover_sources")

# Titles longer than this are searched without the author.
AUTHOR_TITLE_LIMIT = 60
DEFAULT_MAX_RESULTS = 5
OPEN_LIBRARY_COVERS_BASE = "https://covers.openlibrary.org"


class CoverSourceTag(str, enum.Enum):
    PERSISTED = "persisted"
    PROVIDER_A = "google_books"
    PROVIDER_B = "open_library"
    PLACEHOLDER = "placeholder"


def upgrade_https(url: str) -> str:
    if url.startswith("http://"):
        return "https://" + url[len("http://"):]
    if url.startswith("//"):
        return "https:" + url
    return url


class CoverSource:
    """Shared request/retry plumbing; subclasses build the query and parse the payload."""

    name = "source"
    tag = CoverSourceTag.PLACEHOLDER

    def __init__(
        self,
        *,
        base_url: str,
        rate_limiter: FixedWindowRateLimiter,
        timeout: float = 5.0,
        retries: int = 2,
        backoff_seconds: float = 1.0,
        max_results: int = DEFAULT_MAX_RESULTS,
        session: Any = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.base_url = base_url.rstrip("/")
        self.rate_limiter = rate_limiter
        self.timeout = timeout
        self.retries = max(0, int(retries))
        self.backoff_seconds = backoff_seconds
        self.max_results = max_results
        self._http = session if session is not None else requests
        self._sleep = sleep

    # -- subclass hooks -------------------------------------------------
    def _endpoint(self) -> str:  # pragma: no cover - abstract
        raise NotImplementedError

    def _params(self, title: str, author: Optional[str]) -> Dict[str, Any]:  # pragma: no cover - abstract
        raise NotImplementedError

    def _extract(self, payload: Dict[str, Any]) -> Optional[str]:  # pragma: no cover - abstract
        raise NotImplementedError

    # -- public ---------------------------------------------------------
    def lookup(self, title: str, author: Optional[str] = None) -> Optional[str]:
        query_title = normalize((title or "").strip())
        if not query_title:
            return None
        query_author = clean_author(author) if len(query_title) <= AUTHOR_TITLE_LIMIT else None
        payload = self._fetch_json(self._params(query_title, query_author))
        if payload is None:
            return None
        try:
            url = self._extract(payload)
        except (AttributeError, KeyError, TypeError, ValueError) as exc:
            LOG.warning("%s malformed payload title=%s error=%s", self.name, query_title, exc)
            return None
        if url:
            LOG.debug("%s cover found title=%s url=%s", self.name, query_title, url)
        return url

    def _fetch_json(self, params: Dict[str, Any]) -> Optional[Dict[str, Any]]:
        """GET the endpoint; every attempt, retries included, spends one rate-limit slot."""
        url = self._endpoint()
        for attempt in range(self.retries + 1):
            if attempt:
                self._sleep(self.backoff_seconds * attempt)
            if not self.rate_limiter.try_acquire():
                LOG.info("%s rate limited; skipping attempt=%s", self.name, attempt + 1)
                return None
            try:
                resp = self._http.get(url, params=params, timeout=self.timeout)
            except (requests.Timeout, requests.ConnectionError) as exc:
                LOG.warning("%s request failed attempt=%s error=%s", self.name, attempt + 1, exc)
                continue
            except requests.RequestException as exc:
                LOG.warning("%s request error=%s", self.name, exc)
                return None
            if resp.status_code >= 500:
                LOG.warning("%s upstream status=%s attempt=%s", self.name, resp.status_code, attempt + 1)
                continue
            if resp.status_code != 200:
                LOG.info("%s status=%s; not retrying", self.name, resp.status_code)
                return None
            try:
                data = resp.json()
            except ValueError:
                LOG.warning("%s returned non-JSON body", self.name)
                return None
            return data if isinstance(data, dict) else None
        LOG.warning("%s giving up after %s attempts", self.name, self.retries + 1)
        return None


def normalize_google_cover_url(raw_url: str) -> str:
    """https, no page-curl overlay, and zoom capped at 1 (the full thumbnail)."""
    url = upgrade_https(raw_url.strip())
    parts = urlsplit(url)
    if not parts.query:
        return url
    params = []
    for key, value in parse_qsl(parts.query, keep_blank_values=True):
        if key == "edge":
            continue
        if key == "zoom" and value.isdigit() and int(value) > 1:
            value = "1"
        params.append((key, value))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(params), parts.fragment))


class GoogleBooksSource(CoverSource):
    name = "google_books"
    tag = CoverSourceTag.PROVIDER_A

    _IMAGE_FIELDS = ("extraLarge", "large", "medium", "thumbnail", "smallThumbnail")

    def __init__(self, *, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key

    def _endpoint(self) -> str:
        return f"{self.base_url}/volumes"

    def _params(self, title: str, author: Optional[str]) -> Dict[str, Any]:
        query = f"intitle:{title}"
        if author:
            query = f"{query} inauthor:{author}"
        params: Dict[str, Any] = {"q": query, "maxResults": self.max_results, "printType": "books"}
        if self.api_key:
            params["key"] = self.api_key
        return params

    def _extract(self, payload: Dict[str, Any]) -> Optional[str]:
        for item in payload.get("items") or []:
            links = (item.get("volumeInfo") or {}).get("imageLinks") or {}
            for field in self._IMAGE_FIELDS:
                value = links.get(field)
                if isinstance(value, str) and value.strip():
                    return normalize_google_cover_url(value)
        return None


class OpenLibrarySource(CoverSource):
    name = "open_library"
    tag = CoverSourceTag.PROVIDER_B

    def __init__(self, *, covers_base: str = OPEN_LIBRARY_COVERS_BASE, **kwargs):
        super().__init__(**kwargs)
        self.covers_base = covers_base.rstrip("/")

    def _endpoint(self) -> str:
        return f"{self.base_url}/search.json"

    def _params(self, title: str, author: Optional[str]) -> Dict[str, Any]:
        params: Dict[str, Any] = {"title": title, "limit": self.max_results, "fields": "key,title,author_name,cover_i"}
        if author:
            params["author"] = author
        return params

    def _extract(self, payload: Dict[str, Any]) -> Optional[str]:
        for doc in payload.get("docs") or []:
            cover_id = doc.get("cover_i")
            if cover_id:
                return upgrade_https(f"{self.covers_base}/b/id/{int(cover_id)}-L.jpg")
        return None


SOURCE_TYPES = {
    GoogleBooksSource.name: GoogleBooksSource,
    OpenLibrarySource.name: OpenLibrarySource,
}


__all__ = [
    "AUTHOR_TITLE_LIMIT",
    "CoverSourceTag",
    "CoverSource",
    "GoogleBooksSource",
    "OpenLibrarySource",
    "SOURCE_TYPES",
    "normalize_google_cover_url",
    "upgrade_https",
]
