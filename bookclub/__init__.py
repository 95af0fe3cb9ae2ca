"""Book club application package.

Flask app serving a shared e-book catalog: sign-in, browsing, downloads and
the cover resolution pipeline used by every page that shows a book.
"""

__all__ = [
]
