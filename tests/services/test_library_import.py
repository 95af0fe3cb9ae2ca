from __future__ import annotations

import datetime
from urllib.parse import unquote

import pytest

from bookclub.db.engine import init_engine_once, reset_for_tests
from bookclub.db.repositories import books_repo
from bookclub.services import library_import


@pytest.fixture(autouse=True)
def in_memory_db(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKCLUB_DATABASE_URL", "sqlite:///:memory:")
    init_engine_once()
    yield
    reset_for_tests(drop=True)


@pytest.fixture
def library(tmp_path):
    (tmp_path / "french").mkdir()
    (tmp_path / "Frank Herbert - Dune.epub").write_bytes(b"e" * 10)
    (tmp_path / "french" / "Antoine de Saint-Exupery - Le Petit Prince.pdf").write_bytes(b"p" * 20)
    (tmp_path / "notes.txt").write_text("skip me")
    (tmp_path / "Untitled Scan.PDF").write_bytes(b"x")
    return tmp_path


def test_parse_filename():
    assert library_import.parse_filename("Frank Herbert - Dune.epub") == {"author": "Frank Herbert", "title": "Dune"}
    assert library_import.parse_filename("A - B - C.pdf") == {"author": "A", "title": "B - C"}
    assert library_import.parse_filename("Dune.epub") == {"author": "Unknown Author", "title": "Dune"}


@pytest.mark.parametrize(
    "path,language",
    [
        ("/books/French/x.pdf", "French"),
        ("/books/français/x.pdf", "French"),
        ("/books/Deutsch/x.pdf", "German"),
        ("/books/german-classics/x.pdf", "German"),
        ("/books/misc/x.pdf", "English"),
    ],
)
def test_guess_language(path, language):
    assert library_import.guess_language(path) == language


def test_scan_directory_collects_pdf_and_epub_only(library):
    entries = library_import.scan_directory(str(library))
    by_title = {entry.title: entry for entry in entries}

    assert set(by_title) == {"Dune", "Le Petit Prince", "Untitled Scan"}
    dune = by_title["Dune"]
    assert dune.author == "Frank Herbert"
    assert dune.format == "epub"
    assert dune.file_size == 10
    assert dune.language == "English"
    assert unquote(dune.download_link.split("path=", 1)[1]) == dune.file_path
    assert by_title["Le Petit Prince"].language == "French"
    assert by_title["Untitled Scan"].author == "Unknown Author"
    assert by_title["Untitled Scan"].format == "pdf"


def test_scan_directory_requires_existing_directory(tmp_path):
    with pytest.raises(FileNotFoundError):
        library_import.scan_directory(str(tmp_path / "missing"))


def test_import_books_skips_existing_paths(library):
    entries = library_import.scan_directory(str(library))
    stamp = datetime.datetime(2024, 5, 1)

    first = library_import.import_books(entries, now=stamp)
    second = library_import.import_books(entries, now=stamp)

    assert first == {"imported": 3, "skipped": 0, "failed": 0}
    assert second == {"imported": 0, "skipped": 3, "failed": 0}
    stored = books_repo.list_books(limit=10)
    assert {(b.month, b.year) for b in stored} == {(5, 2024)}


def test_update_file_sizes_refreshes_from_disk(library):
    library_import.import_books(library_import.scan_directory(str(library)))
    dune_path = library / "Frank Herbert - Dune.epub"
    dune_path.write_bytes(b"e" * 99)
    (library / "Untitled Scan.PDF").unlink()

    report = library_import.update_file_sizes()

    assert report == {"updated": 2, "missing": 1, "failed": 0}
    assert books_repo.find_by_file_path(str(dune_path)).file_size == 99
