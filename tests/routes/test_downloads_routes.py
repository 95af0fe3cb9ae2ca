from __future__ import annotations

from urllib.parse import quote

import pytest

from bookclub.db.engine import reset_for_tests
from bookclub.db.repositories import books_repo
from bookclub.services.cover_resolver import reset_resolver, set_resolver
from bookclub.startup.wiring import create_app


class StubResolver:
    sources: list = []


@pytest.fixture
def client(monkeypatch, tmp_path):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKCLUB_DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("BOOKCLUB_LIBRARY_ROOT", str(tmp_path / "library"))
    set_resolver(StubResolver())
    app = create_app({"TESTING": True, "WTF_CSRF_ENABLED": False, "SECRET_KEY": "downloads-test"})
    client = app.test_client()
    with client.session_transaction() as sess:
        sess["user_id"] = 3
        sess["email"] = "reader@example.com"
    yield client
    reset_resolver()
    reset_for_tests(drop=True)


def _book(file_path):
    return books_repo.create_book(
        title="Dune",
        author="Frank Herbert",
        download_link="/api/download?path=x",
        file_path=file_path,
        month=1,
        year=2024,
    )


def test_download_streams_file_and_counts(client, tmp_path):
    path = tmp_path / "library" / "Frank Herbert - Dune.epub"
    path.parent.mkdir()
    path.write_bytes(b"epub-bytes")
    book = _book(str(path))

    resp = client.get(f"/api/download?id={book.id}")

    assert resp.status_code == 200
    assert resp.data == b"epub-bytes"
    assert resp.mimetype == "application/epub+zip"
    assert "attachment" in resp.headers["Content-Disposition"]
    assert "Dune.epub" in resp.headers["Content-Disposition"]
    resp.close()
    assert books_repo.get_book(book.id).downloads == 1


@pytest.mark.parametrize(
    "query,status,code",
    [
        ("", 400, "book_id_required"),
        ("?id=abc", 404, "book_not_found"),
        ("?id=999", 404, "book_not_found"),
    ],
)
def test_download_errors(client, query, status, code):
    resp = client.get(f"/api/download{query}")
    assert resp.status_code == status
    assert resp.get_json() == {"error": code}


def test_download_of_missing_file(client, tmp_path):
    book = _book(str(tmp_path / "library" / "gone.pdf"))
    resp = client.get(f"/api/download?id={book.id}")
    assert resp.status_code == 404
    assert resp.get_json() == {"error": "file_not_found"}
    assert books_repo.get_book(book.id).downloads == 0


def test_files_outside_the_library_cannot_be_added_or_served(client, tmp_path):
    secret = tmp_path / "secret.txt"
    secret.write_text("TOPSECRET")
    link = "/api/download?path=" + quote(str(secret), safe="")

    added = client.post(
        "/api/books/add",
        json={"title": "Secret", "author": "Nobody", "download_link": link, "month": 1, "year": 2024},
    )
    assert added.status_code == 400
    assert added.get_json() == {"error": "download_link_invalid"}

    book = books_repo.create_book(title="Secret", author="Nobody", download_link=link, month=1, year=2024)
    resp = client.get(f"/api/download?id={book.id}")
    assert resp.status_code == 400
    assert resp.get_json() == {"error": "invalid_file_path"}
    assert b"TOPSECRET" not in resp.data
