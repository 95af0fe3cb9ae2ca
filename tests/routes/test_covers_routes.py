from __future__ import annotations

import pytest

from bookclub.db.engine import reset_for_tests
from bookclub.services.cover_resolver import ResolvedCover, reset_resolver, set_resolver
from bookclub.services.cover_sources import CoverSourceTag
from bookclub.startup.wiring import create_app


class StubResolver:
    sources: list = []

    def __init__(self):
        self.calls = []

    def resolve(self, title, author=None):
        self.calls.append((title, author))
        return ResolvedCover("https://covers.example.com/dune.jpg", CoverSourceTag.PROVIDER_B)


@pytest.fixture
def resolver():
    return StubResolver()


@pytest.fixture
def client(monkeypatch, resolver):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKCLUB_DATABASE_URL", "sqlite:///:memory:")
    set_resolver(resolver)
    app = create_app({"TESTING": True, "WTF_CSRF_ENABLED": False, "SECRET_KEY": "covers-test"})
    client = app.test_client()
    with client.session_transaction() as sess:
        sess["user_id"] = 7
        sess["email"] = "reader@example.com"
    yield client
    reset_resolver()
    reset_for_tests(drop=True)


def test_book_cover_requires_title(client, resolver):
    resp = client.get("/api/book-cover?title=%20%20")
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "title_required"}
    assert resolver.calls == []


def test_book_cover_returns_resolved_url(client, resolver):
    resp = client.get("/api/book-cover?title=Dune&author=Frank%20Herbert")

    assert resp.status_code == 200
    assert resp.get_json() == {"coverImage": "https://covers.example.com/dune.jpg", "source": "open_library"}
    assert resolver.calls == [("Dune", "Frank Herbert")]


def test_blank_author_is_dropped(client, resolver):
    client.get("/api/book-cover?title=Dune&author=")
    assert resolver.calls == [("Dune", None)]


def test_placeholder_svg(client):
    resp = client.get("/api/placeholder?title=Dune&author=Frank%20Herbert")

    assert resp.status_code == 200
    assert resp.mimetype == "image/svg+xml"
    assert resp.headers["Cache-Control"] == "public, max-age=31536000"
    assert "Frank Herbert" in resp.get_data(as_text=True)


def test_cover_endpoints_require_login(client):
    with client.session_transaction() as sess:
        sess.clear()
    assert client.get("/api/book-cover?title=Dune").status_code == 401
    assert client.get("/api/placeholder").status_code == 401
