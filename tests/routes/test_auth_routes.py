"""Sign-in / sign-up / sign-out flows through the real app factory."""
from __future__ import annotations

import pytest

from bookclub.db.engine import reset_for_tests
from bookclub.services.cover_resolver import reset_resolver, set_resolver
from bookclub.startup.wiring import create_app


class StubResolver:
    sources: list = []

    def resolve(self, title, author=None):  # pragma: no cover - unused here
        raise AssertionError("not expected")


@pytest.fixture
def client(monkeypatch):
    reset_for_tests(drop=True)
    monkeypatch.setenv("BOOKCLUB_DATABASE_URL", "sqlite:///:memory:")
    monkeypatch.setenv("BOOKCLUB_ADMIN_EMAILS", "boss@example.com")
    set_resolver(StubResolver())
    app = create_app({"TESTING": True, "WTF_CSRF_ENABLED": False, "SECRET_KEY": "auth-test"})
    yield app.test_client()
    reset_resolver()
    reset_for_tests(drop=True)


def _sign_up(client, email="reader@example.com", password="correct horse"):
    return client.post("/sign-up", json={"email": email, "password": password, "name": "Reader"})


def test_sign_in_page_renders(client):
    resp = client.get("/sign-in")
    assert resp.status_code == 200
    assert b'name="password"' in resp.data


def test_json_sign_up_creates_session(client):
    resp = _sign_up(client)

    assert resp.status_code == 201
    body = resp.get_json()
    assert body["user"]["email"] == "reader@example.com"
    assert body["redirect"] == "/dashboard"
    with client.session_transaction() as sess:
        assert sess["email"] == "reader@example.com"
        assert sess["is_admin"] is False


def test_sign_up_flags_admin_emails(client):
    _sign_up(client, email="Boss@Example.com")
    with client.session_transaction() as sess:
        assert sess["is_admin"] is True


def test_duplicate_sign_up_conflicts(client):
    _sign_up(client)
    resp = _sign_up(client, email="READER@example.com")
    assert resp.status_code == 409
    assert resp.get_json() == {"error": "email_taken"}


def test_form_sign_up_validation_renders_message(client):
    resp = client.post("/sign-up", data={"email": "reader@example.com", "password": "short"})
    assert resp.status_code == 400
    assert b"Password must be at least 8 characters." in resp.data


def test_sign_in_rejects_bad_password(client):
    _sign_up(client)
    client.post("/sign-out", json={})

    resp = client.post("/sign-in", json={"email": "reader@example.com", "password": "nope nope"})

    assert resp.status_code == 401
    assert resp.get_json() == {"error": "invalid_credentials"}


def test_form_sign_in_redirects_to_local_next_only(client):
    _sign_up(client)
    client.post("/sign-out", json={})

    resp = client.post(
        "/sign-in?next=//evil.example.com/",
        data={"email": "reader@example.com", "password": "correct horse"},
    )
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/dashboard")

    client.post("/sign-out", json={})
    resp = client.post(
        "/sign-in?next=/dashboard%3Fpage%3D2",
        data={"email": "reader@example.com", "password": "correct horse"},
    )
    assert resp.headers["Location"].endswith("/dashboard?page=2")


@pytest.mark.parametrize(
    "target",
    ["/\\evil.example.com", "//evil.example.com", "https://evil.example.com", "/ok\\..\\x"],
)
def test_sign_in_refuses_off_site_next(client, target):
    _sign_up(client)
    client.post("/sign-out", json={})

    resp = client.post(
        "/sign-in",
        data={"email": "reader@example.com", "password": "correct horse", "next": target},
    )

    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/dashboard")


def test_sign_out_clears_identity(client):
    _sign_up(client)

    resp = client.post("/sign-out")

    assert resp.status_code == 302
    with client.session_transaction() as sess:
        assert "user_id" not in sess
