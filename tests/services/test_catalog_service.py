from __future__ import annotations

import pytest

from bookclub.db.engine import init_engine_once, reset_for_tests
from bookclub.db.repositories import books_repo
from bookclub.services import catalog_service
from bookclub.services.catalog_service import CatalogError


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKCLUB_DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.delenv("CATALOG_DEFAULT_PAGE_SIZE", raising=False)
    monkeypatch.setenv("CATALOG_MAX_PAGE_SIZE", "50")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


def test_parse_query_defaults_and_clamping():
    query = catalog_service.parse_query({})
    assert (query.page, query.limit, query.random) == (1, 10, False)

    query = catalog_service.parse_query({"page": "abc", "limit": "500", "random": "true", "search": "  dune "})
    assert query.page == 1
    assert query.limit == 50
    assert query.random is True
    assert query.search == "dune"

    query = catalog_service.parse_query({"page": "-3", "limit": "0", "format": "", "language": "French"})
    assert query.page == 1
    assert query.limit == 1
    assert query.book_format is None
    assert query.language == "French"


def test_list_catalog_payload_shape():
    for idx in range(3):
        books_repo.create_book(
            title=f"Book {idx}", author="Author", download_link="/x", format="pdf", language="English"
        )
    payload = catalog_service.list_catalog(catalog_service.parse_query({"limit": "2", "page": "2"}))

    assert payload["total"] == 3
    assert payload["page"] == 2
    assert payload["limit"] == 2
    assert payload["pagination"] == {"page": 2, "limit": 2, "total": 3, "totalPages": 2}
    assert [b["title"] for b in payload["books"]] == ["Book 0"]
    assert payload["filters"]["languages"] == [{"language": "English", "count": 3}]
    assert payload["filters"]["formats"] == [{"format": "pdf", "count": 3}]


def test_add_book_applies_description_default():
    book = catalog_service.add_book(
        {"title": "Dune", "author": "Frank Herbert", "download_link": "/d", "month": "3", "year": 2024}
    )
    stored = books_repo.get_book(book.id)
    assert stored.description == catalog_service.DEFAULT_DESCRIPTION
    assert (stored.month, stored.year) == (3, 2024)


@pytest.mark.parametrize(
    "payload,code",
    [
        ({"title": "Dune"}, "missing_required_fields"),
        ({"title": "Dune", "author": "F", "download_link": "/d", "month": 13, "year": 2024}, "month_invalid"),
        ({"title": "Dune", "author": "F", "download_link": "/d", "month": "x", "year": 2024}, "month_invalid"),
        ({"title": "Dune", "author": "F", "download_link": "/d", "month": 1, "year": "soon"}, "year_invalid"),
        (["not", "a", "dict"], "invalid_payload"),
    ],
)
def test_add_book_validation_errors(payload, code):
    with pytest.raises(CatalogError) as exc:
        catalog_service.add_book(payload)
    assert str(exc.value) == code


@pytest.mark.parametrize(
    "size,expected",
    [
        (None, "Unknown size"),
        (0, "Unknown size"),
        (512, "512.0 B"),
        (1536, "1.5 KB"),
        (5 * 1024 * 1024, "5.0 MB"),
        (3 * 1024 ** 3, "3.0 GB"),
        (5 * 1024 ** 4, "5120.0 GB"),
    ],
)
def test_format_file_size(size, expected):
    assert catalog_service.format_file_size(size) == expected


def test_huge_page_numbers_are_capped():
    books_repo.create_book(title="Dune", author="Frank Herbert", download_link="/x")

    query = catalog_service.parse_query({"page": str(10**20), "limit": "50"})
    payload = catalog_service.list_catalog(query)

    assert query.page == catalog_service.MAX_PAGE
    assert payload["books"] == []
    assert payload["total"] == 1


def test_add_book_rejects_legacy_links_outside_library(tmp_path, monkeypatch):
    library = tmp_path / "library"
    library.mkdir()
    monkeypatch.setenv("BOOKCLUB_LIBRARY_ROOT", str(library))
    base = {"title": "Dune", "author": "Frank Herbert", "month": 1, "year": 2024}

    with pytest.raises(CatalogError) as exc:
        catalog_service.add_book(dict(base, download_link=f"/api/download?path={tmp_path}/secret.txt"))
    assert str(exc.value) == "download_link_invalid"

    book = catalog_service.add_book(dict(base, download_link=f"/api/download?path={library}/dune.epub"))
    assert book.id is not None
