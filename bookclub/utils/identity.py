"""Identity & permission helpers backed by the Flask session."""
from __future__ import annotations

from functools import wraps
from typing import Any, Callable, Optional
from urllib.parse import urlencode

from flask import jsonify, redirect, request, session

from bookclub import config as app_config

SESSION_USER_ID_KEY = "user_id"
SESSION_EMAIL_KEY = "email"
SESSION_ADMIN_KEY = "is_admin"


def normalize_email(raw: Any) -> Optional[str]:
    if not isinstance(raw, str):
        return None
    cleaned = raw.strip().lower()
    return cleaned or None


def get_current_user_email() -> Optional[str]:
    return normalize_email(session.get(SESSION_EMAIL_KEY))


def get_current_user_id() -> Optional[int]:
    uid = session.get(SESSION_USER_ID_KEY)
    if uid is None:
        return None
    try:
        return int(uid)
    except (TypeError, ValueError):
        return None


def is_authenticated() -> bool:
    return get_current_user_id() is not None


def is_admin_user() -> bool:
    if not is_authenticated():
        return False
    if bool(session.get(SESSION_ADMIN_KEY, False)):
        return True
    email = get_current_user_email()
    return bool(email and email in app_config.admin_emails())


def login_session(*, user_id: int, email: str, is_admin: bool = False, remember: bool = False) -> None:
    session.clear()
    session[SESSION_USER_ID_KEY] = int(user_id)
    session[SESSION_EMAIL_KEY] = normalize_email(email)
    session[SESSION_ADMIN_KEY] = bool(is_admin)
    session.permanent = bool(remember)


def clear_identity_session() -> None:
    for key in (SESSION_USER_ID_KEY, SESSION_EMAIL_KEY, SESSION_ADMIN_KEY):
        session.pop(key, None)


class PermissionError(Exception):
    pass


def ensure_admin() -> None:
    if not is_admin_user():
        raise PermissionError("admin_required")


def _wants_json() -> bool:
    return request.path.startswith("/api/")


def login_redirect():
    target = request.full_path or request.path or "/"
    if target.endswith("?"):
        target = target[:-1]
    return redirect("/sign-in?" + urlencode({"next": target}))


def login_required(view: Callable) -> Callable:
    """Reject anonymous requests: 401 JSON for API paths, redirect for pages."""

    @wraps(view)
    def wrapper(*args, **kwargs):
        if not is_authenticated():
            if _wants_json():
                return jsonify({"error": "unauthorized"}), 401
            return login_redirect()
        return view(*args, **kwargs)

    return wrapper


def admin_required(view: Callable) -> Callable:
    @wraps(view)
    def wrapper(*args, **kwargs):
        if not is_authenticated():
            return jsonify({"error": "unauthorized"}), 401
        try:
            ensure_admin()
        except PermissionError as exc:
            return jsonify({"error": str(exc)}), 403
        return view(*args, **kwargs)

    return wrapper


__all__ = [
    "normalize_email",
    "get_current_user_email",
    "get_current_user_id",
    "is_authenticated",
    "is_admin_user",
    "login_session",
    "clear_identity_session",
    "ensure_admin",
    "PermissionError",
    "login_redirect",
    "login_required",
    "admin_required",
]
