"""Blueprint registration, called once from startup."""
from __future__ import annotations

from typing import Any

from .admin import register_admin
from .auth import register_auth
from .books import register_books
from .covers import register_covers
from .downloads import register_downloads
from .health import register_health


def register_all(app: Any) -> None:
    register_health(app)
    register_auth(app)
    register_books(app)
    register_covers(app)
    register_downloads(app)
    register_admin(app)


__all__ = ["register_all"]
