"""Repository helpers for local user accounts."""
from __future__ import annotations

from typing import Optional

from sqlalchemy.exc import IntegrityError

from bookclub.db import app_session
from bookclub.db.models import User
from bookclub.utils.logging import get_logger

LOG = get_logger("users_repo")


class UserExistsError(Exception):
    pass


def get_user(user_id: int) -> Optional[User]:
    with app_session() as session:
        return session.query(User).filter(User.id == user_id).one_or_none()


def get_user_by_email(email: str) -> Optional[User]:
    """Lookup by already-normalized email."""
    with app_session() as session:
        return session.query(User).filter(User.email == email).one_or_none()


def create_user(*, email: str, password_hash: str, name: Optional[str] = None, is_admin: bool = False) -> User:
    user = User(email=email, password_hash=password_hash, name=name, is_admin=bool(is_admin))
    try:
        with app_session() as session:
            if session.query(User.id).filter(User.email == email).first() is not None:
                raise UserExistsError("user_exists")
            session.add(user)
            session.flush()
    except IntegrityError as exc:
        LOG.info("Duplicate user insert email=%s", email)
        raise UserExistsError("user_exists") from exc
    return user


__all__ = ["UserExistsError", "get_user", "get_user_by_email", "create_user"]
