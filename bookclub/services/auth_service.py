"""Local email/password accounts backing the sign-in and sign-up pages."""
from __future__ import annotations

import re
from typing import Optional

from werkzeug.security import check_password_hash, generate_password_hash

from bookclub import config as app_config
from bookclub.db.models import User
from bookclub.db.repositories import users_repo
from bookclub.utils.identity import normalize_email
from bookclub.utils.logging import get_logger

LOG = get_logger("auth_service")

MIN_PASSWORD_LENGTH = 8
_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AuthError(RuntimeError):
    """Base error for account workflows; str() is a stable code."""


class InvalidCredentialsError(AuthError):
    pass


def _require_email(email: Optional[str]) -> str:
    normalized = normalize_email(email)
    if not normalized:
        raise AuthError("email_required")
    if not _EMAIL_RE.match(normalized):
        raise AuthError("email_invalid")
    return normalized


def register(email: Optional[str], password: Optional[str], name: Optional[str] = None) -> User:
    normalized = _require_email(email)
    if not password or len(password) < MIN_PASSWORD_LENGTH:
        raise AuthError("password_too_short")
    is_admin = normalized in app_config.admin_emails()
    try:
        user = users_repo.create_user(
            email=normalized,
            password_hash=generate_password_hash(password),
            name=(name or "").strip() or None,
            is_admin=is_admin,
        )
    except users_repo.UserExistsError as exc:
        raise AuthError("email_taken") from exc
    LOG.info("Registered user id=%s admin=%s", user.id, is_admin)
    return user


def authenticate(email: Optional[str], password: Optional[str]) -> User:
    normalized = normalize_email(email)
    if not normalized or not password:
        raise InvalidCredentialsError("invalid_credentials")
    user = users_repo.get_user_by_email(normalized)
    if user is None or not check_password_hash(user.password_hash, password):
        LOG.info("Failed sign-in email=%s", normalized)
        raise InvalidCredentialsError("invalid_credentials")
    return user


def is_admin_account(user: User) -> bool:
    return bool(user.is_admin) or (user.email or "").lower() in app_config.admin_emails()


__all__ = [
    "AuthError",
    "InvalidCredentialsError",
    "MIN_PASSWORD_LENGTH",
    "register",
    "authenticate",
    "is_admin_account",
]
