"""Utility helpers.

Re-exports the identity surface so routes can import from one place.
"""
from .identity import (
    normalize_email,
    get_current_user_email,
    get_current_user_id,
    is_authenticated,
    is_admin_user,
    ensure_admin,
    login_required,
    admin_required,
    PermissionError,
)

__all__ = [
    "normalize_email",
    "get_current_user_email",
    "get_current_user_id",
    "is_authenticated",
    "is_admin_user",
    "ensure_admin",
    "login_required",
    "admin_required",
    "PermissionError",
]
