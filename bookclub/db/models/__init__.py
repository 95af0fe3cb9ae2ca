"""ORM models aggregate exports."""
from .books import (  # noqa: F401
    Base,
    Book,
    User,
    DEFAULT_LANGUAGE,
)

__all__ = [
    "Base",
    "Book",
    "User",
    "DEFAULT_LANGUAGE",
]
